"""GridGame Core - Game Logic"""
from .entities import Entity, Player, Unit, Base, ResourceNode
from .events import (
    EventBus,
    Subscription,
    UnitCreatedEvent,
    UnitMovedEvent,
    UnitRemovedEvent,
    UnitAttackedEvent,
    ResourcesGatheredEvent,
    TurnStartedEvent,
    TurnEndedEvent,
    GameEndedEvent,
)
from .world import GameState, Board
from .systems import CombatResolver, VictoryEvaluator, ResourceManager, GatherResult
from .turns import TurnManager, TurnTimer
from .persistence import SnapshotError, serialize, deserialize, restore_game
