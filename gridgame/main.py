#!/usr/bin/env python3
"""
GridGame - Hot-seat console
===========================

Run with: gridgame [--verbose] [--load SAVE.json]

Commands (one per line):
  create TYPE X Y     build a unit for the current player (build phase)
  move ID X Y         move a unit (action phase)
  attack ID X Y       attack the cell at X Y (action phase)
  gather ID           gather with a worker (resource phase)
  next                advance to the next phase
  end                 end the turn
  surrender | draw    end the game
  state               show the board and players
  save PATH           write a save file
  quit
"""
import argparse
import logging
import time
from pathlib import Path
from typing import List, Optional

from gridgame.core.config import GRID_SIZE, PHASE_ACTION, TURN_TIME_LIMIT
from gridgame.core.events import GameRestoredEvent
from gridgame.core.logger import LoggerHandler
from gridgame.core.persistence import SnapshotError, export_save, import_save
from gridgame.core.systems import ResourceManager
from gridgame.core.turns import TurnManager
from gridgame.core.world import GameState


logger = logging.getLogger(__name__)


class Game:
    """Wires a GameState to its resource and turn systems."""

    SIM_HZ = 10  # Turn clock updates per second
    SIM_DT = 1.0 / SIM_HZ

    def __init__(self, verbose: bool = False, time_limit: int = TURN_TIME_LIMIT,
                 state: Optional[GameState] = None, resources: Optional[ResourceManager] = None):
        self.state = state if state is not None else GameState()
        self.resources = resources if resources is not None else ResourceManager(self.state)
        self.turns = TurnManager(self.state, self.resources, time_limit=time_limit)
        self.logger = LoggerHandler(self.state, verbose=verbose)
        self.running = True

        # Timing
        self.accumulator = 0.0
        self.last_time = time.time()

    @classmethod
    def from_save(cls, text: str, verbose: bool = False, time_limit: int = TURN_TIME_LIMIT) -> "Game":
        state, resources = import_save(text)
        game = cls(verbose=verbose, time_limit=time_limit, state=state, resources=resources)
        state.events.publish(GameRestoredEvent(game_id=state.game_id, turn_number=state.turn_number))
        return game

    def setup(self) -> None:
        """Start the game; the turn manager opens player 1's first turn."""
        self.state.start_game()
        self.last_time = time.time()

    def update(self) -> None:
        """Update the turn clock with a fixed timestep."""
        current_time = time.time()
        frame_time = current_time - self.last_time
        self.last_time = current_time

        self.accumulator += frame_time
        player, turn = self.state.current_player, self.state.turn_number
        while self.accumulator >= self.SIM_DT:
            self._tick(self.SIM_DT)
            self.accumulator -= self.SIM_DT
            # Never drain time from a turn whose player was not prompted yet
            if (self.state.current_player, self.state.turn_number) != (player, turn) or self.state.is_ended:
                self.accumulator = 0.0
                break

    def _tick(self, dt: float) -> None:
        if self.state.is_ended:
            return
        self.turns.update(dt)

    # === Commands ===

    def submit(self, line: str, player: int) -> str:
        """Catch up the clock, then run a line typed at player's prompt."""
        self.update()
        if self.state.is_ended:
            return ""
        if self.state.current_player != player:
            return f"Time ran out for player {player}; command ignored"
        return self.execute(line)

    def execute(self, line: str) -> str:
        """Run one console command and return the reply."""
        parts = line.split()
        if not parts:
            return ""
        command, args = parts[0].lower(), parts[1:]
        handler = getattr(self, f"cmd_{command}", None)
        if handler is None:
            return f"Unknown command: {command}"
        try:
            return handler(*args)
        except (TypeError, ValueError):
            return f"Bad arguments for {command}"

    def cmd_create(self, unit_type: str, x: str, y: str) -> str:
        unit = self.state.build_unit(unit_type, int(x), int(y))
        if unit is None:
            return "Cannot create unit there"
        return f"Created {unit.type} #{unit.id} at ({unit.x}, {unit.y})"

    def cmd_move(self, unit_id: str, x: str, y: str) -> str:
        if not self._check_action(int(unit_id)):
            return "No action available"
        if not self.state.move_unit(int(unit_id), int(x), int(y)):
            return "Cannot move there"
        self.turns.use_player_action()
        return f"Moved #{unit_id} to ({x}, {y})"

    def cmd_attack(self, unit_id: str, x: str, y: str) -> str:
        if not self._check_action(int(unit_id)):
            return "No action available"
        if not self.state.attack_unit(int(unit_id), int(x), int(y)):
            return "Cannot attack there"
        self.turns.use_player_action()
        return f"#{unit_id} attacked ({x}, {y})"

    def cmd_gather(self, unit_id: str) -> str:
        unit = self.state.get_unit(int(unit_id))
        if unit is None or unit.player_id != self.state.current_player:
            return "Not your unit"
        result = self.resources.gather_resources(int(unit_id))
        if not result.success:
            return result.reason
        return f"Gathered {result.amount} from {result.node_id}"

    def cmd_next(self) -> str:
        self.turns.next_phase()
        return f"Phase: {self.state.current_phase}"

    def cmd_end(self) -> str:
        self.turns.force_end_turn()
        return f"Player {self.state.current_player} to move"

    def cmd_surrender(self) -> str:
        self.state.player_surrender(self.state.current_player)
        return "Surrendered"

    def cmd_draw(self) -> str:
        self.state.declare_draw()
        return "Draw declared"

    def cmd_state(self) -> str:
        return render_text(self.state, self.resources)

    def cmd_save(self, path: str) -> str:
        Path(path).write_text(export_save(self.state, self.resources))
        return f"Saved to {path}"

    def cmd_quit(self) -> str:
        self.running = False
        return "Bye"

    def _check_action(self, unit_id: int) -> bool:
        unit = self.state.get_unit(unit_id)
        if unit is None or unit.player_id != self.state.current_player:
            return False
        if self.state.current_phase != PHASE_ACTION:
            return False
        return self.state.get_current_player().actions_remaining > 0

    def shutdown(self) -> None:
        self.logger.detach()
        self.turns.destroy()
        self.resources.destroy()


def render_text(state: GameState, resources: Optional[ResourceManager] = None) -> str:
    """Board as text: B/b bases, digits for unit owners, * resource nodes."""
    nodes = {node.pos for node in resources.resource_nodes} if resources else set()
    lines: List[str] = []
    for y in range(GRID_SIZE):
        row = []
        for x in range(GRID_SIZE):
            ref = state.get_entity_at(x, y)
            if ref is None:
                row.append("*" if (x, y) in nodes else ".")
            elif ref.kind == "base":
                row.append("B" if ref.entity.player_id == 1 else "b")
            else:
                row.append(str(ref.entity.player_id))
        lines.append("".join(row))
    for player in state.get_all_players():
        lines.append(
            f"{player.name}: energy={player.energy} gathered={player.resources_gathered} "
            f"actions={player.actions_remaining} units={sorted(player.units_owned)}"
        )
    lines.append(f"Turn {state.turn_number}, player {state.current_player}, phase {state.current_phase}, {state.status}")
    return "\n".join(lines)


def main():
    parser = argparse.ArgumentParser(description="GridGame - two-player grid strategy")
    parser.add_argument('--verbose', action='store_true',
                        help='Log every game event')
    parser.add_argument('--load', metavar='SAVE',
                        help='Resume from a save file')
    parser.add_argument('--time-limit', type=int, default=TURN_TIME_LIMIT,
                        help='Seconds per turn (0 disables the clock)')
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.load:
        try:
            game = Game.from_save(Path(args.load).read_text(), verbose=args.verbose, time_limit=args.time_limit)
        except (OSError, SnapshotError) as e:
            logger.error("Could not load %s: %s", args.load, e)
            return 1
    else:
        game = Game(verbose=args.verbose, time_limit=args.time_limit)
        game.setup()

    print(render_text(game.state, game.resources))
    while game.running and not game.state.is_ended:
        player = game.state.current_player
        try:
            line = input(f"P{player} [{game.state.current_phase}]> ")
        except EOFError:
            break
        reply = game.submit(line, player)
        if reply:
            print(reply)

    if game.state.is_ended:
        winner = game.state.winner
        print("Draw" if winner is None else f"Player {winner} wins")
    game.shutdown()
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
