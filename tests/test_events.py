"""Test the event bus and event catalog."""
import pytest
from gridgame.core.events import (
    EventBus,
    ALL_EVENTS,
    EVENTS_BY_NAME,
    UnitCreatedEvent,
    UnitRemovedEvent,
    GameEndedEvent,
)


class TestEventBus:
    """Tests for EventBus."""

    def test_subscribe_and_publish(self):
        bus = EventBus()
        received = []
        bus.subscribe(UnitRemovedEvent, received.append)
        bus.publish(UnitRemovedEvent(unit_id=3, player_id=1))
        assert received == [UnitRemovedEvent(unit_id=3, player_id=1)]

    def test_handlers_only_get_their_type(self):
        bus = EventBus()
        received = []
        bus.subscribe(GameEndedEvent, received.append)
        bus.publish(UnitRemovedEvent(unit_id=3, player_id=1))
        assert received == []

    def test_registration_order(self):
        bus = EventBus()
        calls = []
        bus.subscribe(GameEndedEvent, lambda e: calls.append("first"))
        bus.subscribe(GameEndedEvent, lambda e: calls.append("second"))
        bus.publish(GameEndedEvent(winner=1))
        assert calls == ["first", "second"]

    def test_handler_added_during_dispatch_waits(self):
        bus = EventBus()
        late = []

        def add_late(event):
            bus.subscribe(GameEndedEvent, late.append)

        bus.subscribe(GameEndedEvent, add_late)
        bus.publish(GameEndedEvent(winner=1))
        assert late == []
        bus.publish(GameEndedEvent(winner=2))
        assert len(late) == 1

    def test_unsubscribe(self):
        bus = EventBus()
        received = []
        bus.subscribe(GameEndedEvent, received.append)
        bus.unsubscribe(GameEndedEvent, received.append)
        bus.unsubscribe(GameEndedEvent, received.append)  # second time is a no-op
        bus.publish(GameEndedEvent(winner=None))
        assert received == []

    def test_subscription_cancel_idempotent(self):
        bus = EventBus()
        received = []
        sub = bus.subscribe(GameEndedEvent, received.append)
        assert sub.active
        sub.cancel()
        sub.cancel()
        assert not sub.active
        assert not bus.is_subscribed(GameEndedEvent, received.append)

    def test_catch_all_runs_after_typed(self):
        bus = EventBus()
        calls = []
        bus.subscribe_all(lambda e: calls.append(("all", e.name)))
        bus.subscribe(GameEndedEvent, lambda e: calls.append(("typed", e.name)))
        bus.publish(GameEndedEvent(winner=None))
        assert calls == [("typed", "gameEnded"), ("all", "gameEnded")]

    def test_clear_one_type(self):
        bus = EventBus()
        ended, removed = [], []
        bus.subscribe(GameEndedEvent, ended.append)
        bus.subscribe(UnitRemovedEvent, removed.append)
        bus.clear(GameEndedEvent)
        assert not bus.is_subscribed(GameEndedEvent, ended.append)
        assert bus.is_subscribed(UnitRemovedEvent, removed.append)
        bus.clear()
        assert not bus.is_subscribed(UnitRemovedEvent, removed.append)

    def test_handler_errors_propagate(self):
        bus = EventBus()

        def broken(event):
            raise RuntimeError("boom")

        bus.subscribe(GameEndedEvent, broken)
        with pytest.raises(RuntimeError):
            bus.publish(GameEndedEvent(winner=1))

    def test_recording(self):
        bus = EventBus()
        bus.start_recording()
        bus.publish(GameEndedEvent(winner=2))
        history = bus.stop_recording()
        assert [e.name for e in history] == ["gameEnded"]


class TestEventCatalog:
    """Tests for event names and payloads."""

    def test_names_unique(self):
        assert len(EVENTS_BY_NAME) == len(ALL_EVENTS)

    def test_core_names_present(self):
        for name in (
            "unitCreated", "unitMoved", "unitRemoved", "unitAttacked", "baseDestroyed",
            "resourcesGathered", "resourceNodeRegenerated", "turnStarted", "phaseChanged",
            "actionUsed", "turnTimerTick", "turnTimeExpired", "turnEnded", "gameEnded",
            "playerSurrendered", "drawDeclared", "victoryCheck",
        ):
            assert name in EVENTS_BY_NAME

    def test_to_dict(self):
        event = UnitCreatedEvent(unit_id=3, player_id=1, unit_type="worker", pos=(2, 24))
        assert event.to_dict() == {"unit_id": 3, "player_id": 1, "unit_type": "worker", "pos": (2, 24)}
