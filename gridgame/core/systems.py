"""
GridGame Systems - Rules that act on a GameState

- CombatResolver: adjacency attacks against units and bases
- VictoryEvaluator: base, resource and elimination win conditions
- ResourceManager: resource nodes, gathering and regeneration
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, NamedTuple, Optional

from .config import (
    ATTACK_RANGE,
    DAMAGE_VALUES,
    DEFAULT_DAMAGE,
    GATHER_AMOUNT,
    GATHER_RANGE,
    PHASE_RESOURCE,
    PLAYER_IDS,
    RESOURCE_BONUS_DIVISOR,
    RESOURCE_BONUS_RANGE,
    RESOURCE_NODE_VALUE,
    RESOURCE_REGENERATION_RATE,
    RESOURCE_VICTORY_THRESHOLD,
    ELIMINATION_MIN_TURN,
    SCENARIO,
    STATUS_ENDED,
    STATUS_PAUSED,
)
from .entities import ResourceNode
from .events import (
    Subscription,
    UnitAttackedEvent,
    UnitRemovedEvent,
    BaseDestroyedEvent,
    ResourcesGatheredEvent,
    ResourceNodeRegeneratedEvent,
    VictoryCheckEvent,
    GameEndedEvent,
    PlayerSurrenderedEvent,
    DrawDeclaredEvent,
)


logger = logging.getLogger(__name__)

NEIGHBOURS = [(dx, dy) for dx in (-1, 0, 1) for dy in (-1, 0, 1) if (dx, dy) != (0, 0)]


def chebyshev(x1: int, y1: int, x2: int, y2: int) -> int:
    return max(abs(x1 - x2), abs(y1 - y2))


def manhattan(x1: int, y1: int, x2: int, y2: int) -> int:
    return abs(x1 - x2) + abs(y1 - y2)


class AttackTarget(NamedTuple):
    x: int
    y: int
    target_type: str  # "unit" or "base"
    target_id: int
    damage: int


class CombatResolver:
    """Resolves melee attacks. Every attack costs the attacker one action."""

    def __init__(self, state):
        self.state = state

    @staticmethod
    def get_damage(unit_type: str) -> int:
        return DAMAGE_VALUES.get(unit_type, DEFAULT_DAMAGE)

    def can_attack(self, attacker_id: int, x: int, y: int) -> bool:
        attacker = self.state.units.get(attacker_id)
        if not attacker or not attacker.can_act():
            return False
        ref = self.state.get_entity_at(x, y)
        if ref is None or ref.entity.player_id == attacker.player_id:
            return False
        if ref.kind == "base" and ref.entity.is_destroyed:
            return False
        return chebyshev(attacker.x, attacker.y, x, y) <= ATTACK_RANGE

    def attack(self, attacker_id: int, x: int, y: int) -> bool:
        if not self.can_attack(attacker_id, x, y):
            logger.debug("attack_unit rejected: unit %r cannot attack (%r, %r)", attacker_id, x, y)
            return False

        attacker = self.state.units[attacker_id]
        kind, target = self.state.get_entity_at(x, y)
        damage = self.get_damage(attacker.type)
        destroyed = target.take_damage(damage)
        attacker.use_action()

        self.state.events.publish(UnitAttackedEvent(
            attacker_id=attacker.id,
            target_id=target.id,
            target_type=kind,
            damage=damage,
            target_health=target.health,
            destroyed=destroyed,
        ))

        if destroyed:
            if kind == "unit":
                logger.info("Unit %d destroyed by unit %d", target.id, attacker.id)
                self.state.remove_unit(target.id)
            else:
                logger.info("Base of player %d destroyed", target.player_id)
                self.state.board.clear(target.x, target.y)
                self.state.events.publish(BaseDestroyedEvent(base_id=target.id, player_id=target.player_id))
                self.state.check_victory_condition()
        return True

    def get_valid_targets(self, attacker_id: int) -> List[AttackTarget]:
        attacker = self.state.units.get(attacker_id)
        if not attacker or not attacker.can_act():
            return []

        damage = self.get_damage(attacker.type)
        targets = []
        for dx, dy in NEIGHBOURS:
            x, y = attacker.x + dx, attacker.y + dy
            if self.can_attack(attacker_id, x, y):
                ref = self.state.get_entity_at(x, y)
                targets.append(AttackTarget(x, y, ref.kind, ref.entity.id, damage))
        return targets


class VictoryEvaluator:
    """Decides when and how the game ends. Once ended, nothing here changes state."""

    def __init__(self, state):
        self.state = state

    def check(self) -> bool:
        """Evaluate all win conditions in order. Returns True if the game ended."""
        state = self.state
        if state.is_ended:
            return False

        bases = {pid: state.get_player_base(pid) for pid in PLAYER_IDS}
        state.events.publish(VictoryCheckEvent(
            player1_base_health=bases[PLAYER_IDS[0]].health if bases[PLAYER_IDS[0]] else 0,
            player2_base_health=bases[PLAYER_IDS[1]].health if bases[PLAYER_IDS[1]] else 0,
            game_status=state.status,
            turn_number=state.turn_number,
        ))

        # 1. Base destruction
        alive = [pid for pid in PLAYER_IDS if bases[pid] is not None]
        if not alive:
            return self.end_game(None)
        if len(alive) == 1:
            return self.end_game(alive[0])

        # 2. Resource accumulation
        for pid in PLAYER_IDS:
            player = state.players.get(pid)
            if player and player.resources_gathered >= RESOURCE_VICTORY_THRESHOLD:
                return self.end_game(pid)

        # 3. Elimination
        if state.turn_number > ELIMINATION_MIN_TURN:
            eliminated = [pid for pid in PLAYER_IDS if not state.get_player_units(pid)]
            if len(eliminated) == len(PLAYER_IDS):
                return self.end_game(None)
            if eliminated:
                return self.end_game(state.get_opponent_id(eliminated[0]))

        return False

    def end_game(self, winner: Optional[int] = None) -> bool:
        state = self.state
        if state.is_ended:
            return False
        state.status = STATUS_ENDED
        state.winner = winner
        if winner is None:
            logger.info("Game %s ended in a draw on turn %d", state.game_id, state.turn_number)
        else:
            logger.info("Game %s won by player %d on turn %d", state.game_id, winner, state.turn_number)
        state.events.publish(GameEndedEvent(winner=winner))
        return True

    def surrender(self, player_id: int) -> bool:
        state = self.state
        if state.is_ended or player_id not in state.players:
            return False
        winner = state.get_opponent_id(player_id)
        state.events.publish(PlayerSurrenderedEvent(surrendered_player=player_id, winner=winner))
        return self.end_game(winner)

    def declare_draw(self) -> bool:
        state = self.state
        if state.is_ended:
            return False
        state.events.publish(DrawDeclaredEvent(turn_number=state.turn_number))
        return self.end_game(None)


@dataclass
class GatherResult:
    """Outcome of a gather attempt. reason is set on failure."""
    success: bool
    amount: int = 0
    reason: Optional[str] = None
    node_id: Optional[str] = None
    node_value_remaining: Optional[int] = None


def create_resource_nodes(scenario: Optional[dict] = None) -> List[ResourceNode]:
    """Build the fixed node list from scenario data, in scenario order."""
    scenario = scenario if scenario is not None else SCENARIO
    nodes = []
    for index, node_data in enumerate(scenario.get("resource_nodes", []), start=1):
        x, y = node_data["pos"]
        nodes.append(ResourceNode(
            id=node_data.get("id", f"node_{index}"),
            x=x,
            y=y,
            value=node_data.get("value", RESOURCE_NODE_VALUE),
            max_value=node_data.get("max_value", RESOURCE_NODE_VALUE),
            regeneration_rate=node_data.get("regeneration_rate", RESOURCE_REGENERATION_RATE),
        ))
    return nodes


class ResourceManager:
    """Owns resource nodes and per-turn gathering cooldowns for one GameState."""

    def __init__(self, state, nodes: Optional[List[ResourceNode]] = None):
        self.state = state
        self.resource_nodes: List[ResourceNode] = nodes if nodes is not None else create_resource_nodes(state.scenario)
        self.gathering_cooldowns: Dict[int, int] = {}  # unit_id -> turn number of last gather
        self._subscription: Optional[Subscription] = state.events.subscribe(UnitRemovedEvent, self._on_unit_removed)

    def _on_unit_removed(self, event: UnitRemovedEvent) -> None:
        self.gathering_cooldowns.pop(event.unit_id, None)

    # === Node queries ===

    def get_node(self, node_id: str) -> Optional[ResourceNode]:
        for node in self.resource_nodes:
            if node.id == node_id:
                return node
        return None

    def get_resource_node_at(self, x: int, y: int) -> Optional[ResourceNode]:
        for node in self.resource_nodes:
            if node.x == x and node.y == y:
                return node
        return None

    def get_resource_nodes_in_range(self, x: int, y: int, distance: int = RESOURCE_BONUS_RANGE) -> List[ResourceNode]:
        """Nodes within Manhattan distance, in stored order."""
        return [n for n in self.resource_nodes if manhattan(n.x, n.y, x, y) <= distance]

    def _gatherable_nodes(self, x: int, y: int) -> List[ResourceNode]:
        return [
            n for n in self.resource_nodes
            if chebyshev(n.x, n.y, x, y) <= GATHER_RANGE and n.value > 0
        ]

    def is_on_cooldown(self, unit_id: int) -> bool:
        return unit_id in self.gathering_cooldowns

    def can_gather_at_position(self, unit_id: int) -> bool:
        unit = self.state.units.get(unit_id)
        if not unit or not unit.has_ability("gather"):
            return False
        return bool(self._gatherable_nodes(unit.x, unit.y))

    # === Gathering ===

    def gather_resources(self, unit_id: int) -> GatherResult:
        """Harvest from the first adjacent node that still holds value."""
        state = self.state
        if state.status in (STATUS_PAUSED, STATUS_ENDED):
            return self._fail(unit_id, f"Game is {state.status}")
        if state.current_phase != PHASE_RESOURCE:
            return self._fail(unit_id, f"Can only gather during resource phase, current phase: {state.current_phase}")
        unit = state.units.get(unit_id)
        if not unit:
            return self._fail(unit_id, "Unit not found")
        if not unit.has_ability("gather"):
            return self._fail(unit_id, f"A {unit.type} cannot gather")
        if not unit.can_act():
            return self._fail(unit_id, "Unit has no actions left")
        if self.is_on_cooldown(unit_id):
            return self._fail(unit_id, "Unit already gathered this turn")
        nodes = self._gatherable_nodes(unit.x, unit.y)
        if not nodes:
            return self._fail(unit_id, "No resources available at nearby nodes")

        node = nodes[0]
        amount = min(GATHER_AMOUNT, node.value)
        node.value -= amount

        player = state.players[unit.player_id]
        player.add_energy(amount)
        player.resources_gathered += amount
        self.gathering_cooldowns[unit_id] = state.turn_number
        unit.use_action()

        state.events.publish(ResourcesGatheredEvent(
            unit_id=unit_id,
            player_id=unit.player_id,
            amount=amount,
            node_id=node.id,
            node_value_remaining=node.value,
        ))
        return GatherResult(True, amount, node_id=node.id, node_value_remaining=node.value)

    def _fail(self, unit_id: int, reason: str) -> GatherResult:
        logger.debug("gather_resources rejected for unit %r: %s", unit_id, reason)
        return GatherResult(False, 0, reason)

    def clear_gathering_cooldowns(self) -> None:
        self.gathering_cooldowns.clear()

    def regenerate_resources(self) -> int:
        """Regenerate every node. Returns the total amount added."""
        total = 0
        for node in self.resource_nodes:
            amount = node.regenerate()
            if amount > 0:
                total += amount
                self.state.events.publish(ResourceNodeRegeneratedEvent(
                    node_id=node.id,
                    regenerated_amount=amount,
                    current_value=node.value,
                    max_value=node.max_value,
                ))
        return total

    def calculate_resource_bonus(self, player_id: int) -> int:
        """Income bonus for workers standing near resource nodes."""
        bonus = 0
        for unit in self.state.get_player_units(player_id):
            if unit.type != "worker":
                continue
            for node in self.get_resource_nodes_in_range(unit.x, unit.y, RESOURCE_BONUS_RANGE):
                if node.value <= 0:
                    continue
                distance = manhattan(node.x, node.y, unit.x, unit.y)
                bonus += node.value // (RESOURCE_BONUS_DIVISOR * max(1, distance))
        return bonus

    # === Analytics ===

    def get_total_resources_available(self) -> int:
        return sum(node.value for node in self.resource_nodes)

    def get_gathering_potential(self, x: int, y: int, unit_type: str = "worker") -> int:
        if unit_type != "worker":
            return 0
        return sum(node.value for node in self._gatherable_nodes(x, y))

    def get_optimal_gathering_positions(self, node_id: str) -> List[dict]:
        node = self.get_node(node_id)
        if not node:
            return []
        positions = []
        for dx, dy in NEIGHBOURS:
            x, y = node.x + dx, node.y + dy
            if self.state.is_position_empty(x, y):
                positions.append({"x": x, "y": y, "potential": self.get_gathering_potential(x, y)})
        positions.sort(key=lambda p: p["potential"], reverse=True)
        return positions

    def calculate_player_resource_income(self, player_id: int) -> int:
        return sum(
            self.get_gathering_potential(unit.x, unit.y)
            for unit in self.state.get_player_units(player_id)
            if unit.type == "worker"
        )

    def get_resource_stats(self) -> dict:
        total = self.get_total_resources_available()
        max_possible = sum(node.max_value for node in self.resource_nodes)
        count = len(self.resource_nodes)
        return {
            "total_available": total,
            "max_possible": max_possible,
            "efficiency": total / max_possible if max_possible else 0.0,
            "node_count": count,
            "average_node_value": total / count if count else 0.0,
            "regeneration_per_turn": sum(node.regeneration_rate for node in self.resource_nodes),
        }

    def get_resource_node_info(self) -> List[dict]:
        return [
            {
                "id": node.id,
                "position": {"x": node.x, "y": node.y},
                "value": node.value,
                "max_value": node.max_value,
                "regeneration_rate": node.regeneration_rate,
                "efficiency": node.value / node.max_value if node.max_value else 0.0,
            }
            for node in self.resource_nodes
        ]

    # === Persistence ===

    def to_dict(self) -> dict:
        return {
            "resource_nodes": [node.to_dict() for node in self.resource_nodes],
            "gathering_cooldowns": {str(uid): turn for uid, turn in sorted(self.gathering_cooldowns.items())},
        }

    def load_dict(self, data: dict) -> None:
        """Restore node values and cooldowns. Raises KeyError/TypeError/ValueError on bad data."""
        nodes = [
            ResourceNode(
                id=str(n["id"]),
                x=int(n["x"]),
                y=int(n["y"]),
                value=int(n["value"]),
                max_value=int(n.get("max_value", RESOURCE_NODE_VALUE)),
                regeneration_rate=int(n.get("regeneration_rate", RESOURCE_REGENERATION_RATE)),
            )
            for n in data["resource_nodes"]
        ]
        cooldowns = {int(uid): int(turn) for uid, turn in data.get("gathering_cooldowns", {}).items()}
        self.resource_nodes = nodes
        self.gathering_cooldowns = cooldowns

    def destroy(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
