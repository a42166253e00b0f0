"""
GridGame Entities

Plain data holders with small behavioral methods:
- Player: energy pool, action budget, ids of owned units
- Unit: mobile piece with a per-turn action budget
- Base: static win-condition building
- ResourceNode: depletable, regenerating energy source
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .config import (
    UNIT_STATS,
    STARTING_ENERGY,
    MAX_PLAYER_ACTIONS,
    BASE_HEALTH,
    GRID_SIZE,
    RESOURCE_NODE_VALUE,
    RESOURCE_REGENERATION_RATE,
)


UNIT_TYPES = tuple(UNIT_STATS.keys())


def get_unit_stats(unit_type: str) -> dict:
    """Stat block for a unit type. Raises ValueError for unknown types."""
    if unit_type not in UNIT_STATS:
        raise ValueError(f"Unknown unit type: {unit_type}")
    return UNIT_STATS[unit_type]


def is_valid_unit_type(unit_type: Any) -> bool:
    return isinstance(unit_type, str) and unit_type in UNIT_STATS


class Player:
    """One of the two hot-seat players."""

    def __init__(self, player_id: int, name: Optional[str] = None, energy: int = STARTING_ENERGY):
        self.id = player_id
        self.name = name or f"Player {player_id}"
        self.energy = energy
        self.resources_gathered = 0
        self.actions_remaining = MAX_PLAYER_ACTIONS
        self.units_owned = set()  # Unit ids only
        self.is_active = False

    def add_energy(self, amount: int) -> None:
        self.energy += amount

    def spend_energy(self, amount: int) -> bool:
        """Spend energy. Returns True if successful."""
        if self.energy >= amount:
            self.energy -= amount
            return True
        return False

    def add_unit(self, unit_id: int) -> None:
        self.units_owned.add(unit_id)

    def remove_unit(self, unit_id: int) -> None:
        self.units_owned.discard(unit_id)

    def reset_actions(self) -> None:
        self.actions_remaining = MAX_PLAYER_ACTIONS

    def use_action(self) -> bool:
        if self.actions_remaining > 0:
            self.actions_remaining -= 1
            return True
        return False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "energy": self.energy,
            "resources_gathered": self.resources_gathered,
            "actions_remaining": self.actions_remaining,
            "units_owned": sorted(self.units_owned),
            "is_active": self.is_active,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Player":
        player = cls(int(data["id"]), data.get("name"), int(data["energy"]))
        player.resources_gathered = int(data.get("resources_gathered", 0))
        player.actions_remaining = int(data.get("actions_remaining", MAX_PLAYER_ACTIONS))
        player.is_active = bool(data.get("is_active", False))
        # units_owned is rebuilt from the unit map on restore
        return player


class Entity:
    """Base class for everything that occupies a board cell."""

    def __init__(self, entity_id: int, player_id: int, pos: tuple, health: int):
        self.id = entity_id
        self.player_id = player_id
        self.x, self.y = pos
        self.health = health
        self.max_health = health

    def take_damage(self, amount: int) -> bool:
        """Reduce health by amount, floored at zero. Returns True if destroyed."""
        self.health = max(0, self.health - amount)
        return self.health <= 0

    @property
    def pos(self) -> tuple:
        return (self.x, self.y)

    @property
    def kind(self) -> str:
        return self.__class__.__name__.lower()


class Unit(Entity):
    """Mobile piece. Each grid step, attack or gather costs one action."""

    def __init__(self, entity_id: int, unit_type: str, player_id: int, pos: tuple):
        stats = get_unit_stats(unit_type)
        super().__init__(entity_id, player_id, pos, health=stats["health"])
        self.type = unit_type
        self.cost = stats["cost"]
        self.attack = stats["attack"]
        self.movement = stats["movement"]
        self.abilities = frozenset(stats["abilities"])
        self.actions_used = 0
        self.max_actions = stats["movement"]

    @property
    def remaining_actions(self) -> int:
        return self.max_actions - self.actions_used

    def has_ability(self, ability: str) -> bool:
        return ability in self.abilities

    def can_act(self) -> bool:
        return self.actions_used < self.max_actions

    def use_action(self, count: int = 1) -> bool:
        """Spend actions. Returns False (and spends nothing) if the budget is short."""
        if count > self.remaining_actions:
            return False
        self.actions_used += count
        return True

    def reset_actions(self) -> None:
        self.actions_used = 0

    def move_to(self, x: int, y: int) -> None:
        self.x, self.y = x, y

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "player_id": self.player_id,
            "position": {"x": self.x, "y": self.y},
            "health": self.health,
            "max_health": self.max_health,
            "actions_used": self.actions_used,
            "max_actions": self.max_actions,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Unit":
        pos = (int(data["position"]["x"]), int(data["position"]["y"]))
        unit = cls(int(data["id"]), data["type"], int(data["player_id"]), pos)
        unit.max_health = int(data.get("max_health", unit.max_health))
        unit.health = int(data["health"])
        unit.max_actions = int(data.get("max_actions", unit.max_actions))
        unit.actions_used = int(data.get("actions_used", 0))
        return unit


class Base(Entity):
    """A player's headquarters. Destroyed permanently at zero health."""

    def __init__(self, entity_id: int, player_id: int, pos: tuple, health: int = BASE_HEALTH):
        super().__init__(entity_id, player_id, pos, health=health)
        self.is_destroyed = False

    def take_damage(self, amount: int) -> bool:
        destroyed = super().take_damage(amount)
        if destroyed:
            self.is_destroyed = True
        return destroyed

    def get_valid_placement_positions(self, state, radius: int) -> List[dict]:
        """Empty in-bounds cells within Manhattan radius, closest first."""
        positions = []
        for dx in range(-radius, radius + 1):
            for dy in range(-radius, radius + 1):
                distance = abs(dx) + abs(dy)
                if distance == 0 or distance > radius:
                    continue
                x, y = self.x + dx, self.y + dy
                if state.is_position_empty(x, y):
                    positions.append({"x": x, "y": y, "distance": distance})
        positions.sort(key=lambda p: p["distance"])
        return positions

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "player_id": self.player_id,
            "position": {"x": self.x, "y": self.y},
            "health": self.health,
            "max_health": self.max_health,
            "is_destroyed": self.is_destroyed,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Base":
        pos = (int(data["position"]["x"]), int(data["position"]["y"]))
        base = cls(int(data["id"]), int(data["player_id"]), pos, health=int(data.get("max_health", BASE_HEALTH)))
        base.health = int(data["health"])
        base.is_destroyed = bool(data.get("is_destroyed", base.health <= 0))
        return base


@dataclass
class ResourceNode:
    """A resource node on the map. Does not occupy a board cell."""
    id: str
    x: int
    y: int
    value: int = RESOURCE_NODE_VALUE
    max_value: int = RESOURCE_NODE_VALUE
    regeneration_rate: int = RESOURCE_REGENERATION_RATE

    @property
    def pos(self) -> tuple:
        return (self.x, self.y)

    @property
    def depleted(self) -> bool:
        return self.value <= 0

    def regenerate(self) -> int:
        """Grow by regeneration_rate, capped at max_value. Returns the amount added."""
        amount = max(0, min(self.regeneration_rate, self.max_value - self.value))
        self.value += amount
        return amount

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "x": self.x,
            "y": self.y,
            "value": self.value,
            "max_value": self.max_value,
            "regeneration_rate": self.regeneration_rate,
        }


def create_entity(kind: str, entity_id: int, player_id: int, pos: tuple) -> Entity:
    """Factory function to create entities by kind name ("base" or a unit type)."""
    if kind == "base":
        return Base(entity_id, player_id, pos)
    return Unit(entity_id, kind, player_id, pos)


def in_bounds(x: Any, y: Any) -> bool:
    """True for integer coordinates inside the grid."""
    for v in (x, y):
        if isinstance(v, bool) or not isinstance(v, int):
            return False
    return 0 <= x < GRID_SIZE and 0 <= y < GRID_SIZE
