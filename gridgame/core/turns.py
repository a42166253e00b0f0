"""
GridGame Turns - Phase state machine and turn timer

A turn is resource -> action -> build for the active player. Real time only
enters through TurnManager.update(dt), which drives the turn timer and any
delayed callbacks (e.g. leaving the action phase once the player is out of
actions).
"""
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from .config import (
    PHASES,
    PHASE_RESOURCE,
    PHASE_ACTION,
    PHASE_BUILD,
    PLAYER_IDS,
    STATUS_PLAYING,
    TURN_TIME_LIMIT,
    TIMER_TICK,
    AUTO_END_TURN,
    ACTION_PHASE_AUTO_ADVANCE_DELAY,
    BASE_ENERGY_INCOME,
)
from .events import (
    Subscription,
    GameStartedEvent,
    TurnStartedEvent,
    PhaseChangedEvent,
    ActionPhaseStartedEvent,
    BuildPhaseStartedEvent,
    ActionUsedEvent,
    ResourcePhaseCompleteEvent,
    TurnTimerTickEvent,
    TurnTimeExpiredEvent,
    TurnForcedEndEvent,
    TurnEndedEvent,
)
from .systems import ResourceManager


logger = logging.getLogger(__name__)


class TurnTimer:
    """Countdown in whole seconds, advanced by elapsed time."""

    def __init__(self, time_limit: int = TURN_TIME_LIMIT, tick: float = TIMER_TICK):
        self.time_limit = time_limit
        self.tick = tick
        self.time_remaining = time_limit
        self.running = False
        self._accumulator = 0.0

    def start(self) -> None:
        self.time_remaining = self.time_limit
        self._accumulator = 0.0
        self.running = self.time_limit > 0

    def stop(self) -> None:
        self.running = False
        self._accumulator = 0.0

    def advance(self, dt: float) -> List[int]:
        """Consume dt seconds. Returns time_remaining after each whole tick."""
        if not self.running:
            return []
        ticks = []
        self._accumulator += dt
        while self.running and self._accumulator >= self.tick:
            self._accumulator -= self.tick
            self.time_remaining -= 1
            ticks.append(self.time_remaining)
            if self.time_remaining <= 0:
                self.stop()
        return ticks


@dataclass
class ScheduledCall:
    delay: float
    callback: Callable[[], None]


class TurnManager:
    """Runs the resource/action/build cycle for a GameState."""

    def __init__(self, state, resource_manager: Optional[ResourceManager] = None,
                 time_limit: int = TURN_TIME_LIMIT, auto_end_turn: bool = AUTO_END_TURN):
        self.state = state
        self.resource_manager = resource_manager if resource_manager is not None else ResourceManager(state)
        self.timer = TurnTimer(time_limit)
        self.auto_end_turn = auto_end_turn
        self._scheduled: List[ScheduledCall] = []
        self._ending_turn = False
        self._turn_serial = 0  # bumped by every start_turn
        self._destroyed = False
        self._subscription: Optional[Subscription] = state.events.subscribe(GameStartedEvent, self._on_game_started)

        # A restored game in progress keeps its turn; only the clock restarts
        if state.status == STATUS_PLAYING:
            self.timer.start()

    def _on_game_started(self, event: GameStartedEvent) -> None:
        self.start_turn()

    def _check_alive(self) -> None:
        if self._destroyed:
            raise RuntimeError("TurnManager has been destroyed")

    @property
    def time_remaining(self) -> int:
        return self.timer.time_remaining

    @property
    def phase_index(self) -> int:
        return PHASES.index(self.state.current_phase)

    # === Turn flow ===

    def start_turn(self) -> bool:
        """Begin the current player's turn with the resource phase."""
        self._check_alive()
        state = self.state
        if state.status != STATUS_PLAYING:
            return False

        player = state.get_current_player()
        player.reset_actions()
        player.is_active = True
        for unit in state.get_player_units(player.id):
            unit.reset_actions()

        state.current_phase = PHASE_RESOURCE
        self._turn_serial += 1
        self._scheduled.clear()
        self.timer.start()
        self.resource_manager.clear_gathering_cooldowns()

        self._execute_resource_phase()

        logger.info("Turn %d started for player %d", state.turn_number, player.id)
        state.events.publish(TurnStartedEvent(
            player=player.id,
            turn_number=state.turn_number,
            phase=state.current_phase,
        ))
        state.check_stalemate()
        return True

    def _execute_resource_phase(self) -> None:
        player = self.state.get_current_player()
        bonus = self.resource_manager.calculate_resource_bonus(player.id)
        player.add_energy(BASE_ENERGY_INCOME + bonus)
        player.resources_gathered += bonus
        self.resource_manager.regenerate_resources()

        self.state.events.publish(ResourcePhaseCompleteEvent(
            player=player.id,
            energy_gained=BASE_ENERGY_INCOME + bonus,
            resource_bonus=bonus,
        ))

    def next_phase(self) -> bool:
        """Advance resource -> action -> build; past build the turn ends."""
        self._check_alive()
        state = self.state
        if state.status != STATUS_PLAYING:
            return False

        index = self.phase_index + 1
        if index >= len(PHASES):
            return self.end_turn()

        phase = PHASES[index]
        state.current_phase = phase
        state.events.publish(PhaseChangedEvent(phase=phase, player=state.current_player))

        player = state.get_current_player()
        if phase == PHASE_ACTION:
            state.events.publish(ActionPhaseStartedEvent(player=player.id, actions_remaining=player.actions_remaining))
        elif phase == PHASE_BUILD:
            state.events.publish(BuildPhaseStartedEvent(player=player.id, energy=player.energy))
        return True

    def can_advance_phase(self) -> bool:
        if self.state.current_phase == PHASE_ACTION:
            return self.state.get_current_player().actions_remaining == 0
        return True

    def use_player_action(self) -> bool:
        """Spend one of the active player's actions."""
        self._check_alive()
        state = self.state
        if state.status != STATUS_PLAYING:
            return False
        player = state.get_current_player()
        if not player.use_action():
            return False

        state.events.publish(ActionUsedEvent(player=player.id, actions_remaining=player.actions_remaining))

        if state.current_phase == PHASE_ACTION and player.actions_remaining == 0:
            serial = self._turn_serial
            self.schedule(ACTION_PHASE_AUTO_ADVANCE_DELAY, lambda: self._auto_advance_action_phase(serial))
        return True

    def _auto_advance_action_phase(self, serial: int) -> None:
        # Skip if the player already moved on
        if serial != self._turn_serial or self.state.current_phase != PHASE_ACTION:
            return
        if not self._ending_turn:
            self.next_phase()

    def end_turn(self) -> bool:
        """Hand the turn to the other player. Re-entrant calls are ignored."""
        self._check_alive()
        if self._ending_turn:
            logger.debug("end_turn ignored: turn is already ending")
            return False
        state = self.state
        if state.status != STATUS_PLAYING:
            return False

        self._ending_turn = True
        try:
            self.timer.stop()
            self._scheduled.clear()

            previous = state.get_current_player()
            previous.is_active = False

            state.check_victory_condition()
            if state.is_ended:
                return True

            next_id = state.get_opponent_id(previous.id)
            state.current_player = next_id
            if next_id == PLAYER_IDS[0]:
                state.turn_number += 1
            state.get_current_player().is_active = True

            state.events.publish(TurnEndedEvent(
                previous_player=previous.id,
                next_player=next_id,
                turn_number=state.turn_number,
            ))

            self.start_turn()
        finally:
            self._ending_turn = False
        return True

    def force_end_turn(self) -> bool:
        """End the turn on the player's request."""
        self._check_alive()
        if self._ending_turn or self.state.status != STATUS_PLAYING:
            return False
        self.state.events.publish(TurnForcedEndEvent(player=self.state.current_player))
        return self.end_turn()

    # === Timing ===

    def schedule(self, delay: float, callback: Callable[[], None]) -> None:
        """Run callback once after delay seconds of update() time."""
        self._scheduled.append(ScheduledCall(delay, callback))

    def update(self, dt: float) -> None:
        """Advance the turn clock. Does nothing unless the game is playing."""
        self._check_alive()
        if self.state.status != STATUS_PLAYING:
            return

        serial = self._turn_serial
        self._run_scheduled(dt)
        if serial != self._turn_serial or self.state.status != STATUS_PLAYING:
            return

        for remaining in self.timer.advance(dt):
            self.state.events.publish(TurnTimerTickEvent(
                time_remaining=remaining,
                total_time=self.timer.time_limit,
            ))
            if remaining <= 0:
                self._on_time_expired()
                break

    def _run_scheduled(self, dt: float) -> None:
        due = []
        for call in self._scheduled:
            call.delay -= dt
            if call.delay <= 0:
                due.append(call)
        for call in due:
            if call in self._scheduled:
                self._scheduled.remove(call)
                call.callback()

    def _on_time_expired(self) -> None:
        player = self.state.current_player
        logger.info("Turn timer expired for player %d", player)
        self.state.events.publish(TurnTimeExpiredEvent(player=player))
        if self.auto_end_turn:
            self.end_turn()

    def get_current_phase_info(self) -> dict:
        return {
            "phase": self.state.current_phase,
            "phase_index": self.phase_index,
            "total_phases": len(PHASES),
            "player": self.state.current_player,
            "time_remaining": self.timer.time_remaining,
        }

    def destroy(self) -> None:
        """Stop the clock and detach from the state. Safe to call twice."""
        if self._destroyed:
            return
        self.timer.stop()
        self._scheduled.clear()
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
        self.state = None
        self._destroyed = True
