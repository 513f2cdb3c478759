import uuid

from django.test import SimpleTestCase

from quota_core.core.domain.events.events import (
    DomainEvent,
    QuotaSyncCompletedEvent,
    QuotaSyncFailedEvent,
)
from quota_core.core.domain.services.event_dispatcher import EventDispatcher


def completed() -> QuotaSyncCompletedEvent:
    return QuotaSyncCompletedEvent(
        clinic_id=uuid.uuid4(), pms_type="cliniko", sync_log_id=uuid.uuid4(),
        sync_type="manual", cases_created=1, cases_updated=0, issues=0,
    )


class EventDispatcherTests(SimpleTestCase):
    def setUp(self):
        self.dispatcher = EventDispatcher()

    def test_listener_receives_only_its_event_type(self):
        seen = []
        self.dispatcher.subscribe(QuotaSyncFailedEvent, seen.append)
        self.dispatcher.dispatch(completed())
        self.assertEqual(seen, [])

    def test_base_class_listener_sees_every_event(self):
        seen = []
        self.dispatcher.subscribe(DomainEvent, seen.append)
        evt = completed()
        self.dispatcher.dispatch(evt)
        self.assertEqual(seen, [evt])

    def test_duplicate_subscription_is_ignored(self):
        seen = []
        self.dispatcher.subscribe(QuotaSyncCompletedEvent, seen.append)
        self.dispatcher.subscribe(QuotaSyncCompletedEvent, seen.append)
        self.dispatcher.dispatch(completed())
        self.assertEqual(len(seen), 1)

    def test_listens_to_decorator(self):
        seen = []

        @self.dispatcher.listens_to(QuotaSyncCompletedEvent, QuotaSyncFailedEvent)
        def on_sync(event):
            seen.append(type(event).__name__)

        self.dispatcher.dispatch(completed())
        self.assertEqual(seen, ["QuotaSyncCompletedEvent"])
        self.assertEqual(self.dispatcher.listeners_for(QuotaSyncFailedEvent), [on_sync])

    def test_failing_listener_does_not_stop_the_others(self):
        seen = []

        def broken(event):
            raise RuntimeError("boom")

        self.dispatcher.subscribe(QuotaSyncCompletedEvent, broken)
        self.dispatcher.subscribe(QuotaSyncCompletedEvent, seen.append)
        self.dispatcher.dispatch(completed())
        self.assertEqual(len(seen), 1)
