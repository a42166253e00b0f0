"""
GridGame World - Board and GameState

GameState is the single owner of the entity maps and the board. Every mutator
validates all of its preconditions before touching anything, so a rejected
call leaves the state exactly as it was and publishes nothing.
"""
import logging
import uuid
from typing import Callable, Dict, Iterator, List, NamedTuple, Optional, Tuple

from .config import (
    GRID_SIZE,
    PLAYER_IDS,
    SCENARIO,
    STARTING_ENERGY,
    PLACEMENT_RADIUS,
    MAX_PLACEMENT_RADIUS,
    STATUS_READY,
    STATUS_PLAYING,
    STATUS_PAUSED,
    STATUS_ENDED,
    PHASE_RESOURCE,
    PHASE_BUILD,
)
from .entities import Entity, Player, Unit, Base, create_entity, is_valid_unit_type, get_unit_stats, in_bounds
from .events import (
    EventBus,
    Subscription,
    UnitCreatedEvent,
    UnitMovedEvent,
    UnitRemovedEvent,
    BaseCreatedEvent,
    GameStartedEvent,
    GamePausedEvent,
    GameResumedEvent,
    StalemateDetectedEvent,
)
from .systems import CombatResolver, VictoryEvaluator, AttackTarget


logger = logging.getLogger(__name__)


class EntityRef(NamedTuple):
    """What occupies a cell: kind is "unit" or "base"."""
    kind: str
    entity: Entity


class MovePosition(NamedTuple):
    x: int
    y: int
    cost: int


class Board:
    """25x25 occupancy grid. cells[x][y] is None or an entity id."""

    def __init__(self, size: int = GRID_SIZE):
        self.size = size
        self.cells: List[List[Optional[int]]] = [[None for _ in range(size)] for _ in range(size)]

    def get(self, x: int, y: int) -> Optional[int]:
        return self.cells[x][y]

    def place(self, entity_id: int, x: int, y: int) -> None:
        self.cells[x][y] = entity_id

    def clear(self, x: int, y: int) -> None:
        self.cells[x][y] = None

    def occupied(self) -> Iterator[Tuple[int, int, int]]:
        """Yield (x, y, entity_id) for every occupied cell."""
        for x, column in enumerate(self.cells):
            for y, entity_id in enumerate(column):
                if entity_id is not None:
                    yield x, y, entity_id


class GameState:
    """Authoritative game aggregate: players, units, bases, board, turn bookkeeping."""

    def __init__(self, scenario: Optional[dict] = None, setup: bool = True):
        self.scenario = scenario if scenario is not None else SCENARIO
        self.game_id = uuid.uuid4().hex
        self.status = STATUS_READY
        self.current_player = PLAYER_IDS[0]
        self.current_phase = PHASE_RESOURCE
        self.turn_number = 1
        self.winner: Optional[int] = None

        self.players: Dict[int, Player] = {}
        self.units: Dict[int, Unit] = {}
        self.bases: Dict[int, Base] = {}
        self.board = Board()
        self.next_id = 1

        self.events = EventBus()
        self.combat = CombatResolver(self)
        self.victory = VictoryEvaluator(self)

        if setup:
            self._initialize_players()
            self._initialize_bases()

    # === Setup ===

    def _initialize_players(self) -> None:
        starting_energy = self.scenario.get("starting_energy", STARTING_ENERGY)
        players_data = self.scenario.get("players", {})
        for player_id in PLAYER_IDS:
            name = players_data.get(str(player_id), {}).get("name")
            self.players[player_id] = Player(player_id, name, starting_energy)
        self.players[PLAYER_IDS[0]].is_active = True

    def _initialize_bases(self) -> None:
        for player_id in PLAYER_IDS:
            player_data = self.scenario.get("players", {}).get(str(player_id))
            if not player_data:
                continue
            x, y = player_data["base_pos"]
            base = create_entity("base", self._allocate_id(), player_id, (x, y))
            self.bases[base.id] = base
            self.board.place(base.id, x, y)

    def _allocate_id(self) -> int:
        entity_id = self.next_id
        self.next_id += 1
        return entity_id

    # === Events ===

    def subscribe(self, event_type: type, handler: Callable) -> Subscription:
        return self.events.subscribe(event_type, handler)

    def unsubscribe(self, event_type: type, handler: Callable) -> None:
        self.events.unsubscribe(event_type, handler)

    def remove_all_listeners(self, event_type: Optional[type] = None) -> None:
        self.events.clear(event_type)

    # === Lifecycle ===

    def start_game(self) -> bool:
        """Move from ready to playing. TurnManager starts the first turn on gameStarted."""
        if self.status != STATUS_READY:
            return False
        self.status = STATUS_PLAYING
        logger.info("Game %s started", self.game_id)
        for base in self.get_all_bases():
            self.events.publish(BaseCreatedEvent(base_id=base.id, player_id=base.player_id, pos=base.pos))
        self.events.publish(GameStartedEvent(game_id=self.game_id))
        return True

    def pause(self) -> bool:
        if self.status != STATUS_PLAYING:
            return False
        self.status = STATUS_PAUSED
        self.events.publish(GamePausedEvent(turn_number=self.turn_number))
        return True

    def resume(self) -> bool:
        if self.status != STATUS_PAUSED:
            return False
        self.status = STATUS_PLAYING
        self.events.publish(GameResumedEvent(turn_number=self.turn_number))
        return True

    @property
    def is_ended(self) -> bool:
        return self.status == STATUS_ENDED

    def _accepts_commands(self) -> bool:
        return self.status not in (STATUS_PAUSED, STATUS_ENDED)

    # === Queries ===

    def get_current_player(self) -> Player:
        return self.players[self.current_player]

    def get_player(self, player_id: int) -> Optional[Player]:
        return self.players.get(player_id)

    def get_all_players(self) -> List[Player]:
        return [self.players[pid] for pid in sorted(self.players)]

    def get_opponent_id(self, player_id: int) -> int:
        return PLAYER_IDS[1] if player_id == PLAYER_IDS[0] else PLAYER_IDS[0]

    def is_valid_position(self, x: int, y: int) -> bool:
        return in_bounds(x, y)

    def is_position_empty(self, x: int, y: int) -> bool:
        return self.is_valid_position(x, y) and self.board.get(x, y) is None

    def get_entity_at(self, x: int, y: int) -> Optional[EntityRef]:
        """Unit or base at a cell, or None."""
        if not self.is_valid_position(x, y):
            return None
        entity_id = self.board.get(x, y)
        if entity_id is None:
            return None
        if entity_id in self.units:
            return EntityRef("unit", self.units[entity_id])
        if entity_id in self.bases:
            return EntityRef("base", self.bases[entity_id])
        return None

    def get_unit_at(self, x: int, y: int) -> Optional[Unit]:
        ref = self.get_entity_at(x, y)
        if ref and ref.kind == "unit":
            return ref.entity
        return None

    def get_unit(self, unit_id: int) -> Optional[Unit]:
        return self.units.get(unit_id)

    def get_player_units(self, player_id: int) -> List[Unit]:
        return [u for u in self.units.values() if u.player_id == player_id]

    def get_player_base(self, player_id: int) -> Optional[Base]:
        """A player's live base."""
        for base in self.bases.values():
            if base.player_id == player_id and not base.is_destroyed:
                return base
        return None

    def get_all_bases(self) -> List[Base]:
        return list(self.bases.values())

    @staticmethod
    def get_movement_distance(x1: int, y1: int, x2: int, y2: int) -> int:
        """Manhattan distance."""
        return abs(x1 - x2) + abs(y1 - y2)

    def is_within_base_radius(self, player_id: int, x: int, y: int, radius: int = PLACEMENT_RADIUS) -> bool:
        base = self.get_player_base(player_id)
        if not base:
            return False
        return self.get_movement_distance(base.x, base.y, x, y) <= radius

    def find_best_placement_near_base(self, player_id: int) -> Optional[dict]:
        """Closest empty cell around the base, widening the search when crowded."""
        base = self.get_player_base(player_id)
        if not base:
            return None
        positions = base.get_valid_placement_positions(self, PLACEMENT_RADIUS)
        if not positions:
            positions = base.get_valid_placement_positions(self, MAX_PLACEMENT_RADIUS)
        return positions[0] if positions else None

    # === Unit creation ===

    def create_unit(self, unit_type: str, player_id: int, x: int, y: int) -> Optional[Unit]:
        """Place a new unit next to the owner's base. Returns None on rejection."""
        if not self._accepts_commands():
            return self._reject("create_unit", f"game is {self.status}")
        if not is_valid_unit_type(unit_type):
            return self._reject("create_unit", f"unknown unit type {unit_type!r}")
        player = self.players.get(player_id)
        if player is None:
            return self._reject("create_unit", f"unknown player {player_id!r}")
        if not self.is_position_empty(x, y):
            return self._reject("create_unit", f"cell ({x}, {y}) is not free")
        if not self.is_within_base_radius(player_id, x, y):
            return self._reject("create_unit", f"cell ({x}, {y}) is outside base radius")
        cost = get_unit_stats(unit_type)["cost"]
        if player.energy < cost:
            return self._reject("create_unit", f"player {player_id} has {player.energy} energy, needs {cost}")

        player.spend_energy(cost)
        unit = create_entity(unit_type, self._allocate_id(), player_id, (x, y))
        self.units[unit.id] = unit
        player.add_unit(unit.id)
        self.board.place(unit.id, x, y)

        self.events.publish(UnitCreatedEvent(
            unit_id=unit.id,
            player_id=player_id,
            unit_type=unit_type,
            pos=unit.pos,
        ))
        return unit

    def build_unit(self, unit_type: str, x: int, y: int) -> Optional[Unit]:
        """Create a unit for the current player. Only allowed in the build phase."""
        if self.current_phase != PHASE_BUILD:
            return self._reject("build_unit", f"cannot build during {self.current_phase} phase")
        return self.create_unit(unit_type, self.current_player, x, y)

    # === Movement ===

    def can_unit_move_to(self, unit_id: int, x: int, y: int) -> bool:
        unit = self.units.get(unit_id)
        if not unit or not unit.can_act() or not self.is_position_empty(x, y):
            return False
        return self.get_movement_distance(unit.x, unit.y, x, y) <= unit.remaining_actions

    def calculate_movement_cost(self, unit_id: int, x: int, y: int) -> int:
        """Manhattan distance from the unit to (x, y); -1 for an unknown unit."""
        unit = self.units.get(unit_id)
        if not unit:
            return -1
        return self.get_movement_distance(unit.x, unit.y, x, y)

    def get_valid_move_positions(self, unit_id: int) -> List[MovePosition]:
        unit = self.units.get(unit_id)
        if not unit or not unit.can_act():
            return []

        budget = unit.remaining_actions
        positions = []
        for x in range(max(0, unit.x - budget), min(GRID_SIZE - 1, unit.x + budget) + 1):
            for y in range(max(0, unit.y - budget), min(GRID_SIZE - 1, unit.y + budget) + 1):
                if (x, y) == unit.pos:
                    continue
                cost = self.get_movement_distance(unit.x, unit.y, x, y)
                if cost <= budget and self.is_position_empty(x, y):
                    positions.append(MovePosition(x, y, cost))
        return positions

    def move_unit(self, unit_id: int, x: int, y: int) -> bool:
        """Move a unit, spending one action per grid step."""
        if not self._accepts_commands():
            self._reject("move_unit", f"game is {self.status}")
            return False
        unit = self.units.get(unit_id)
        if not unit:
            self._reject("move_unit", f"unknown unit {unit_id!r}")
            return False
        if not self.is_position_empty(x, y):
            self._reject("move_unit", f"cell ({x}, {y}) is not free")
            return False
        cost = self.get_movement_distance(unit.x, unit.y, x, y)
        if cost > unit.remaining_actions:
            self._reject(
                "move_unit", f"unit {unit_id} needs {cost} actions, has {unit.remaining_actions}"
            )
            return False

        from_pos = unit.pos
        self.board.clear(unit.x, unit.y)
        unit.move_to(x, y)
        self.board.place(unit.id, x, y)
        unit.use_action(cost)

        self.events.publish(UnitMovedEvent(unit_id=unit.id, from_pos=from_pos, to_pos=unit.pos, cost=cost))
        return True

    # === Removal ===

    def remove_unit(self, unit_id: int) -> bool:
        """Take a unit off the board. Always followed by a victory check."""
        unit = self.units.get(unit_id)
        if not unit:
            return False

        self.board.clear(unit.x, unit.y)
        owner = self.players.get(unit.player_id)
        if owner:
            owner.remove_unit(unit_id)
        del self.units[unit_id]

        self.events.publish(UnitRemovedEvent(unit_id=unit_id, player_id=unit.player_id))
        self.check_victory_condition()
        return True

    # === Combat (see systems.CombatResolver) ===

    def can_unit_attack(self, attacker_id: int, x: int, y: int) -> bool:
        return self.combat.can_attack(attacker_id, x, y)

    def attack_unit(self, attacker_id: int, x: int, y: int) -> bool:
        if not self._accepts_commands():
            self._reject("attack_unit", f"game is {self.status}")
            return False
        return self.combat.attack(attacker_id, x, y)

    def get_valid_attack_targets(self, attacker_id: int) -> List[AttackTarget]:
        return self.combat.get_valid_targets(attacker_id)

    # === Victory (see systems.VictoryEvaluator) ===

    def check_victory_condition(self) -> bool:
        return self.victory.check()

    def end_game(self, winner: Optional[int] = None) -> bool:
        return self.victory.end_game(winner)

    def player_surrender(self, player_id: int) -> bool:
        return self.victory.surrender(player_id)

    def declare_draw(self) -> bool:
        return self.victory.declare_draw()

    def check_stalemate(self) -> bool:
        """Draw when the current player has units but none can move or attack."""
        if self.is_ended:
            return False
        units = self.get_player_units(self.current_player)
        if not units:
            return False
        for unit in units:
            if self.get_valid_move_positions(unit.id) or self.get_valid_attack_targets(unit.id):
                return False
        self.events.publish(StalemateDetectedEvent(player=self.current_player, turn_number=self.turn_number))
        return self.declare_draw()

    # === Serialization (see persistence.py) ===

    def serialize(self, resource_manager=None) -> dict:
        from .persistence import serialize
        return serialize(self, resource_manager)

    @classmethod
    def deserialize(cls, data: dict) -> "GameState":
        from .persistence import deserialize
        return deserialize(data)

    # === Helpers ===

    def _reject(self, operation: str, reason: str) -> None:
        logger.debug("%s rejected: %s", operation, reason)
        return None
