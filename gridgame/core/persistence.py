"""
GridGame Persistence - Snapshots and save files

A snapshot is a plain JSON-able dict of the game. Restoring never trusts a
stored grid: the board is recomputed from entity positions, so a restored
state always satisfies the board/entity invariant or is rejected outright.
"""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from .config import (
    PHASES,
    PLAYER_IDS,
    SAVE_VERSION,
    STATUS_READY,
    STATUS_PLAYING,
    STATUS_PAUSED,
    STATUS_ENDED,
)
from .entities import Player, Unit, Base
from .systems import ResourceManager
from .world import GameState


logger = logging.getLogger(__name__)

STATUSES = (STATUS_READY, STATUS_PLAYING, STATUS_PAUSED, STATUS_ENDED)


class SnapshotError(ValueError):
    """Raised for snapshots or save files that cannot be restored."""


def serialize(state: GameState, resource_manager: Optional[ResourceManager] = None) -> Dict[str, Any]:
    """Snapshot the game (and optionally its resource nodes)."""
    return {
        "game_id": state.game_id,
        "status": state.status,
        "current_player": state.current_player,
        "current_phase": state.current_phase,
        "turn_number": state.turn_number,
        "winner": state.winner,
        "next_id": state.next_id,
        "players": [state.players[pid].to_dict() for pid in sorted(state.players)],
        "units": [state.units[uid].to_dict() for uid in sorted(state.units)],
        "bases": [state.bases[bid].to_dict() for bid in sorted(state.bases)],
        "resources": resource_manager.to_dict() if resource_manager is not None else None,
    }


def deserialize(data: Dict[str, Any]) -> GameState:
    """Rebuild a GameState from a snapshot. Raises SnapshotError if malformed."""
    if not isinstance(data, dict):
        raise SnapshotError("Snapshot must be a dict")
    try:
        return _build_state(data)
    except SnapshotError:
        raise
    except (KeyError, TypeError, ValueError) as e:
        raise SnapshotError(f"Malformed snapshot: {e!r}") from e


def _build_state(data: Dict[str, Any]) -> GameState:
    state = GameState(setup=False)
    state.game_id = str(data["game_id"])
    state.status = data["status"]
    state.current_player = int(data["current_player"])
    state.current_phase = data["current_phase"]
    state.turn_number = int(data["turn_number"])
    state.winner = None if data.get("winner") is None else int(data["winner"])

    if state.status not in STATUSES:
        raise SnapshotError(f"Unknown status {state.status!r}")
    if state.current_phase not in PHASES:
        raise SnapshotError(f"Unknown phase {state.current_phase!r}")
    if state.current_player not in PLAYER_IDS:
        raise SnapshotError(f"Unknown current player {state.current_player!r}")

    for player_data in data["players"]:
        player = Player.from_dict(player_data)
        state.players[player.id] = player
    if set(state.players) != set(PLAYER_IDS):
        raise SnapshotError(f"Snapshot must hold players {PLAYER_IDS}")

    highest_id = 0
    for base_data in data["bases"]:
        base = Base.from_dict(base_data)
        _check_owner(state, base)
        if base.id in state.bases:
            raise SnapshotError(f"Duplicate entity id {base.id}")
        if base.health <= 0 and not base.is_destroyed:
            raise SnapshotError(f"Base {base.id} has no health left but is not destroyed")
        state.bases[base.id] = base
        if not base.is_destroyed:
            _place(state, base)
        highest_id = max(highest_id, base.id)

    for unit_data in data["units"]:
        unit = Unit.from_dict(unit_data)
        _check_owner(state, unit)
        if unit.id in state.units or unit.id in state.bases:
            raise SnapshotError(f"Duplicate entity id {unit.id}")
        if unit.health <= 0:
            raise SnapshotError(f"Unit {unit.id} has no health left")
        state.units[unit.id] = unit
        state.players[unit.player_id].add_unit(unit.id)
        _place(state, unit)
        highest_id = max(highest_id, unit.id)

    state.next_id = max(int(data.get("next_id", 1)), highest_id + 1)
    return state


def _check_owner(state: GameState, entity) -> None:
    if entity.player_id not in state.players:
        raise SnapshotError(f"Entity {entity.id} belongs to unknown player {entity.player_id}")


def _place(state: GameState, entity) -> None:
    if not state.is_valid_position(entity.x, entity.y):
        raise SnapshotError(f"Entity {entity.id} is out of bounds at {entity.pos}")
    occupant = state.board.get(entity.x, entity.y)
    if occupant is not None:
        raise SnapshotError(f"Entities {occupant} and {entity.id} share cell {entity.pos}")
    state.board.place(entity.id, entity.x, entity.y)


def restore_resources(resource_manager: ResourceManager, data: Dict[str, Any]) -> None:
    """Load node values and cooldowns from a snapshot, if it carries them."""
    resources = data.get("resources")
    if not resources:
        return
    try:
        resource_manager.load_dict(resources)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise SnapshotError(f"Malformed resource data: {e!r}") from e


def restore_game(data: Dict[str, Any]) -> Tuple[GameState, ResourceManager]:
    """Rebuild a GameState and a ResourceManager bound to it."""
    state = deserialize(data)
    resource_manager = ResourceManager(state)
    restore_resources(resource_manager, data)
    logger.info("Restored game %s at turn %d", state.game_id, state.turn_number)
    return state, resource_manager


# === Save files ===

def create_save(state: GameState, resource_manager: Optional[ResourceManager] = None) -> Dict[str, Any]:
    return {
        "version": SAVE_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "game_state": serialize(state, resource_manager),
        "metadata": {
            "turn_number": state.turn_number,
            "current_player": state.current_player,
            "game_status": state.status,
        },
    }


def is_compatible_version(version: Any) -> bool:
    """Saves are compatible when the major version matches."""
    if not isinstance(version, str):
        return False
    return version.split(".")[0] == SAVE_VERSION.split(".")[0]


def validate_save_data(data: Any) -> bool:
    return (
        isinstance(data, dict)
        and isinstance(data.get("version"), str)
        and isinstance(data.get("timestamp"), str)
        and isinstance(data.get("game_state"), dict)
    )


def load_save(save: Dict[str, Any]) -> Tuple[GameState, ResourceManager]:
    if not validate_save_data(save):
        raise SnapshotError("Invalid save file format")
    if not is_compatible_version(save["version"]):
        raise SnapshotError(f"Incompatible save version: {save['version']}")
    return restore_game(save["game_state"])


def export_save(state: GameState, resource_manager: Optional[ResourceManager] = None, indent: int = 2) -> str:
    return json.dumps(create_save(state, resource_manager), indent=indent)


def import_save(text: str) -> Tuple[GameState, ResourceManager]:
    try:
        save = json.loads(text)
    except json.JSONDecodeError as e:
        raise SnapshotError(f"Save file is not valid JSON: {e}") from e
    return load_save(save)
