"""
GridGame Event Logger

Subscribes to a game's EventBus and writes what happens to the `gridgame.events`
logger. Quiet mode only reports the events that change the course of the game.
"""
import logging
from typing import List

from .events import (
    GameEvent,
    Subscription,
    UnitRemovedEvent,
    BaseDestroyedEvent,
    GameEndedEvent,
    PlayerSurrenderedEvent,
    DrawDeclaredEvent,
    TurnEndedEvent,
)


event_logger = logging.getLogger("gridgame.events")


class LoggerHandler:
    """Logs game events. verbose=True logs every event at INFO."""

    def __init__(self, state, verbose: bool = False):
        self.verbose = verbose
        self._subscriptions: List[Subscription] = []
        if verbose:
            self._subscriptions.append(state.events.subscribe_all(self.on_event))
        else:
            self._subscriptions.append(state.events.subscribe(UnitRemovedEvent, self.on_unit_removed))
            self._subscriptions.append(state.events.subscribe(BaseDestroyedEvent, self.on_base_destroyed))
            self._subscriptions.append(state.events.subscribe(TurnEndedEvent, self.on_turn_ended))
            self._subscriptions.append(state.events.subscribe(PlayerSurrenderedEvent, self.on_surrender))
            self._subscriptions.append(state.events.subscribe(DrawDeclaredEvent, self.on_draw))
            self._subscriptions.append(state.events.subscribe(GameEndedEvent, self.on_game_ended))

    def on_event(self, event: GameEvent) -> None:
        event_logger.info("[%s] %s", event.name, event.to_dict())

    def on_unit_removed(self, event: UnitRemovedEvent) -> None:
        event_logger.info("[UNIT] Unit %d of player %d removed", event.unit_id, event.player_id)

    def on_base_destroyed(self, event: BaseDestroyedEvent) -> None:
        event_logger.info("[BASE] Player %d lost their base", event.player_id)

    def on_turn_ended(self, event: TurnEndedEvent) -> None:
        event_logger.info("[TURN] Player %d hands over to player %d (turn %d)",
                          event.previous_player, event.next_player, event.turn_number)

    def on_surrender(self, event: PlayerSurrenderedEvent) -> None:
        event_logger.info("[GAME] Player %d surrendered", event.surrendered_player)

    def on_draw(self, event: DrawDeclaredEvent) -> None:
        event_logger.info("[GAME] Draw declared on turn %d", event.turn_number)

    def on_game_ended(self, event: GameEndedEvent) -> None:
        if event.winner is None:
            event_logger.info("[GAME] Game over: draw")
        else:
            event_logger.info("[GAME] Game over: player %d wins", event.winner)

    def detach(self) -> None:
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions.clear()
