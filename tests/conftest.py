"""Pytest fixtures for GridGame tests."""
import pytest
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent


@pytest.fixture
def project_root():
    """Return the project root path."""
    return PROJECT_ROOT


@pytest.fixture
def data_dir():
    """Return the data directory path."""
    return PROJECT_ROOT / "gridgame" / "data"


@pytest.fixture
def state():
    """A fresh GameState with both bases placed, not yet started."""
    from gridgame.core.world import GameState
    return GameState()


@pytest.fixture
def playing_state(state):
    """A started GameState with no turn manager attached (phase stays resource)."""
    state.start_game()
    return state


@pytest.fixture
def resource_manager(state):
    from gridgame.core.systems import ResourceManager
    rm = ResourceManager(state)
    yield rm
    rm.destroy()


@pytest.fixture
def turn_manager(state, resource_manager):
    from gridgame.core.turns import TurnManager
    tm = TurnManager(state, resource_manager)
    yield tm
    tm.destroy()


@pytest.fixture
def game():
    """Create a full Game instance, already started."""
    from gridgame.main import Game
    g = Game()
    g.setup()
    yield g
    g.shutdown()


@pytest.fixture
def spawn():
    """Place a unit anywhere on the board, skipping the base-radius and energy rules."""
    from gridgame.core.entities import Unit

    def _spawn(state, unit_type, player_id, x, y):
        unit = Unit(state._allocate_id(), unit_type, player_id, (x, y))
        state.units[unit.id] = unit
        state.players[player_id].add_unit(unit.id)
        state.board.place(unit.id, x, y)
        return unit

    return _spawn


@pytest.fixture
def recorder():
    """Collect events of the given types from a state's bus."""

    def _record(state, *event_types):
        received = []
        for event_type in event_types:
            state.events.subscribe(event_type, received.append)
        return received

    return _record


@pytest.fixture
def check_board():
    """Return an assertion helper for the board/entity invariant."""
    return assert_board_consistent


def assert_board_consistent(state):
    """Every unit and live base sits on its own cell, and nothing else is on the board."""
    expected = {}
    for unit in state.units.values():
        expected[unit.pos] = unit.id
    for base in state.bases.values():
        if not base.is_destroyed:
            expected[base.pos] = base.id
    actual = {(x, y): entity_id for x, y, entity_id in state.board.occupied()}
    assert actual == expected
    for player in state.players.values():
        assert player.units_owned == {u.id for u in state.units.values() if u.player_id == player.id}
