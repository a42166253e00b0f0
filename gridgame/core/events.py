"""
GridGame Events

Every state change is announced as a dataclass event on the game's EventBus.
Each event class carries its catalog `name` (e.g. "unitCreated") so observers
outside Python can key on the same strings.
"""
from dataclasses import dataclass, asdict
from typing import Any, Callable, ClassVar, Dict, List, Optional


class GameEvent:
    """Mixin for all events."""

    name: ClassVar[str] = "event"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# === Entity events ===

@dataclass
class UnitCreatedEvent(GameEvent):
    """Fired when a new unit is placed on the board."""
    name: ClassVar[str] = "unitCreated"
    unit_id: int
    player_id: int
    unit_type: str
    pos: tuple


@dataclass
class UnitMovedEvent(GameEvent):
    """Fired when a unit changes cell."""
    name: ClassVar[str] = "unitMoved"
    unit_id: int
    from_pos: tuple
    to_pos: tuple
    cost: int


@dataclass
class UnitRemovedEvent(GameEvent):
    """Fired when a unit leaves the game."""
    name: ClassVar[str] = "unitRemoved"
    unit_id: int
    player_id: int


@dataclass
class UnitAttackedEvent(GameEvent):
    """Fired when a unit hits an enemy unit or base."""
    name: ClassVar[str] = "unitAttacked"
    attacker_id: int
    target_id: int
    target_type: str  # "unit" or "base"
    damage: int
    target_health: int
    destroyed: bool


@dataclass
class BaseCreatedEvent(GameEvent):
    """Fired for each base when the game starts."""
    name: ClassVar[str] = "baseCreated"
    base_id: int
    player_id: int
    pos: tuple


@dataclass
class BaseDestroyedEvent(GameEvent):
    """Fired when a base reaches zero health."""
    name: ClassVar[str] = "baseDestroyed"
    base_id: int
    player_id: int


# === Resource events ===

@dataclass
class ResourcesGatheredEvent(GameEvent):
    """Fired when a worker harvests a resource node."""
    name: ClassVar[str] = "resourcesGathered"
    unit_id: int
    player_id: int
    amount: int
    node_id: str = None
    node_value_remaining: int = None


@dataclass
class ResourceNodeRegeneratedEvent(GameEvent):
    """Fired for every node whose value actually grew."""
    name: ClassVar[str] = "resourceNodeRegenerated"
    node_id: str
    regenerated_amount: int
    current_value: int = None
    max_value: int = None


@dataclass
class ResourcePhaseCompleteEvent(GameEvent):
    """Fired after the active player's resource income is paid."""
    name: ClassVar[str] = "resourcePhaseComplete"
    player: int
    energy_gained: int
    resource_bonus: int


# === Turn events ===

@dataclass
class TurnStartedEvent(GameEvent):
    name: ClassVar[str] = "turnStarted"
    player: int
    turn_number: int
    phase: str


@dataclass
class PhaseChangedEvent(GameEvent):
    name: ClassVar[str] = "phaseChanged"
    phase: str
    player: int


@dataclass
class ActionPhaseStartedEvent(GameEvent):
    name: ClassVar[str] = "actionPhaseStarted"
    player: int
    actions_remaining: int


@dataclass
class BuildPhaseStartedEvent(GameEvent):
    name: ClassVar[str] = "buildPhaseStarted"
    player: int
    energy: int


@dataclass
class ActionUsedEvent(GameEvent):
    name: ClassVar[str] = "actionUsed"
    player: int
    actions_remaining: int


@dataclass
class TurnTimerTickEvent(GameEvent):
    name: ClassVar[str] = "turnTimerTick"
    time_remaining: int
    total_time: int


@dataclass
class TurnTimeExpiredEvent(GameEvent):
    name: ClassVar[str] = "turnTimeExpired"
    player: int


@dataclass
class TurnForcedEndEvent(GameEvent):
    name: ClassVar[str] = "turnForcedEnd"
    player: int


@dataclass
class TurnEndedEvent(GameEvent):
    name: ClassVar[str] = "turnEnded"
    previous_player: int
    next_player: int
    turn_number: int


# === Game lifecycle events ===

@dataclass
class GameStartedEvent(GameEvent):
    name: ClassVar[str] = "gameStarted"
    game_id: str


@dataclass
class GamePausedEvent(GameEvent):
    name: ClassVar[str] = "gamePaused"
    turn_number: int


@dataclass
class GameResumedEvent(GameEvent):
    name: ClassVar[str] = "gameResumed"
    turn_number: int


@dataclass
class GameRestoredEvent(GameEvent):
    """Fired by a state rebuilt from a snapshot."""
    name: ClassVar[str] = "gameRestored"
    game_id: str
    turn_number: int


@dataclass
class VictoryCheckEvent(GameEvent):
    """Fired before every victory evaluation, so observers can show base health."""
    name: ClassVar[str] = "victoryCheck"
    player1_base_health: int
    player2_base_health: int
    game_status: str
    turn_number: int


@dataclass
class GameEndedEvent(GameEvent):
    name: ClassVar[str] = "gameEnded"
    winner: Optional[int]  # None means draw


@dataclass
class PlayerSurrenderedEvent(GameEvent):
    name: ClassVar[str] = "playerSurrendered"
    surrendered_player: int
    winner: int


@dataclass
class DrawDeclaredEvent(GameEvent):
    name: ClassVar[str] = "drawDeclared"
    turn_number: int


@dataclass
class StalemateDetectedEvent(GameEvent):
    name: ClassVar[str] = "stalemateDetected"
    player: int
    turn_number: int


ALL_EVENTS = (
    UnitCreatedEvent,
    UnitMovedEvent,
    UnitRemovedEvent,
    UnitAttackedEvent,
    BaseCreatedEvent,
    BaseDestroyedEvent,
    ResourcesGatheredEvent,
    ResourceNodeRegeneratedEvent,
    ResourcePhaseCompleteEvent,
    TurnStartedEvent,
    PhaseChangedEvent,
    ActionPhaseStartedEvent,
    BuildPhaseStartedEvent,
    ActionUsedEvent,
    TurnTimerTickEvent,
    TurnTimeExpiredEvent,
    TurnForcedEndEvent,
    TurnEndedEvent,
    GameStartedEvent,
    GamePausedEvent,
    GameResumedEvent,
    GameRestoredEvent,
    VictoryCheckEvent,
    GameEndedEvent,
    PlayerSurrenderedEvent,
    DrawDeclaredEvent,
    StalemateDetectedEvent,
)

EVENTS_BY_NAME = {event_type.name: event_type for event_type in ALL_EVENTS}


# === EventBus ===

class Subscription:
    """Handle returned by EventBus.subscribe. Cancelling twice is harmless."""

    def __init__(self, bus: "EventBus", event_type: Optional[type], handler: Callable):
        self._bus = bus
        self.event_type = event_type
        self.handler = handler

    @property
    def active(self) -> bool:
        return self._bus is not None and self._bus.is_subscribed(self.event_type, self.handler)

    def cancel(self) -> None:
        if self._bus is None:
            return
        if self.event_type is None:
            self._bus.unsubscribe_all(self.handler)
        else:
            self._bus.unsubscribe(self.event_type, self.handler)
        self._bus = None


class EventBus:
    """Synchronous publish/subscribe dispatcher owned by one GameState."""

    def __init__(self):
        self._subscribers: Dict[type, List[Callable]] = {}
        self._catch_all: List[Callable] = []
        self._event_history: List[Any] = []  # For debugging/replay
        self._recording = False

    def subscribe(self, event_type: type, handler: Callable) -> Subscription:
        """Register a handler for an event type."""
        if event_type not in self._subscribers:
            self._subscribers[event_type] = []
        self._subscribers[event_type].append(handler)
        return Subscription(self, event_type, handler)

    def subscribe_all(self, handler: Callable) -> Subscription:
        """Register a handler that receives every event."""
        self._catch_all.append(handler)
        return Subscription(self, None, handler)

    def unsubscribe(self, event_type: type, handler: Callable) -> None:
        """Remove a handler from an event type."""
        if event_type in self._subscribers:
            try:
                self._subscribers[event_type].remove(handler)
            except ValueError:
                pass

    def unsubscribe_all(self, handler: Callable) -> None:
        """Remove a catch-all handler."""
        try:
            self._catch_all.remove(handler)
        except ValueError:
            pass

    def is_subscribed(self, event_type: Optional[type], handler: Callable) -> bool:
        if event_type is None:
            return handler in self._catch_all
        return handler in self._subscribers.get(event_type, [])

    def publish(self, event: Any) -> None:
        """Notify all handlers subscribed to this event's type, in registration order.

        Handlers registered while dispatching are first called on the next publish.
        """
        if self._recording:
            self._event_history.append(event)

        event_type = type(event)
        for handler in list(self._subscribers.get(event_type, [])):
            handler(event)
        for handler in list(self._catch_all):
            handler(event)

    def clear(self, event_type: Optional[type] = None) -> None:
        """Remove all handlers for one event type, or every handler when no type is given."""
        if event_type is None:
            self._subscribers.clear()
            self._catch_all.clear()
        else:
            self._subscribers.pop(event_type, None)

    def start_recording(self) -> None:
        """Start recording events for replay/debugging."""
        self._recording = True
        self._event_history.clear()

    def stop_recording(self) -> List[Any]:
        """Stop recording and return event history."""
        self._recording = False
        return self._event_history.copy()
