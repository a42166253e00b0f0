"""Test that all modules can be imported."""


def test_core_imports():
    """Core modules should import cleanly."""
    from gridgame.core.entities import Player, Unit, Base, ResourceNode
    from gridgame.core.events import EventBus, Subscription, UnitCreatedEvent, GameEndedEvent
    from gridgame.core.world import GameState, Board
    from gridgame.core.systems import CombatResolver, VictoryEvaluator, ResourceManager
    from gridgame.core.turns import TurnManager, TurnTimer
    from gridgame.core.persistence import SnapshotError, serialize, deserialize
    from gridgame.core.logger import LoggerHandler


def test_package_reexports():
    """The core package should re-export the main classes."""
    import gridgame.core as core
    assert core.GameState is not None
    assert core.TurnManager is not None
    assert core.ResourceManager is not None


def test_main_import():
    """Console module should import."""
    from gridgame.main import Game, main


def test_config_data_loaded():
    """Unit stats and scenario should load from package data."""
    from gridgame.core.config import UNIT_STATS, SCENARIO
    assert set(UNIT_STATS) == {"worker", "scout", "infantry", "heavy"}
    assert len(SCENARIO["resource_nodes"]) == 9
