from dataclasses import FrozenInstanceError

import pytest
from flash_forms import Config, EventDispatcher, FormData, FormsEvents, LifecycleEvent
from flash_forms.meta import MetaData


@pytest.fixture
def event() -> LifecycleEvent:
    form_config = Config({"contact": {}}).get_form("contact")
    return LifecycleEvent(
        form_config=form_config,
        form_data=FormData({"name": "Ada"}),
        meta=MetaData({"source": "footer"}).snapshot(),
        clicked_button=None,
    )


class TestEventDispatcher:
    def test_listeners_called_by_priority(self, event):
        dispatcher = EventDispatcher()
        calls = []
        dispatcher.subscribe(FormsEvents.SUBMISSION_PROCESSOR, lambda e: calls.append("low"))
        dispatcher.subscribe(
            FormsEvents.SUBMISSION_PROCESSOR, lambda e: calls.append("high"), priority=10
        )
        dispatcher.subscribe(FormsEvents.SUBMISSION_PROCESSOR, lambda e: calls.append("low2"))

        returned = dispatcher.dispatch(FormsEvents.SUBMISSION_PROCESSOR, event)

        assert calls == ["high", "low", "low2"]
        assert returned is event

    def test_dispatch_without_listeners(self, event):
        dispatcher = EventDispatcher()
        assert dispatcher.has_listeners(FormsEvents.SUBMISSION_PROCESSOR) is False
        assert dispatcher.dispatch(FormsEvents.SUBMISSION_PROCESSOR, event) is event

    def test_unsubscribe(self, event):
        dispatcher = EventDispatcher()
        calls = []

        def listener(e):
            calls.append(e)

        dispatcher.subscribe(FormsEvents.SUBMISSION_PROCESSOR, listener)
        dispatcher.unsubscribe(FormsEvents.SUBMISSION_PROCESSOR, listener)
        dispatcher.dispatch(FormsEvents.SUBMISSION_PROCESSOR, event)

        assert calls == []
        assert dispatcher.get_listeners(FormsEvents.SUBMISSION_PROCESSOR) == []

    def test_listen_decorator(self, event):
        dispatcher = EventDispatcher()

        @dispatcher.listen(FormsEvents.SUBMISSION_POST_PROCESSOR)
        def listener(e):
            return e

        assert dispatcher.get_listeners(FormsEvents.SUBMISSION_POST_PROCESSOR) == [listener]

    def test_listener_errors_propagate(self, event):
        dispatcher = EventDispatcher()

        def explode(e):
            raise RuntimeError("boom")

        dispatcher.subscribe(FormsEvents.SUBMISSION_PROCESSOR, explode)
        with pytest.raises(RuntimeError, match="boom"):
            dispatcher.dispatch(FormsEvents.SUBMISSION_PROCESSOR, event)


class TestLifecycleEvent:
    def test_event_is_frozen(self, event):
        with pytest.raises(FrozenInstanceError):
            event.clicked_button = object()

    def test_event_meta_is_read_only(self, event):
        assert event.meta["source"] == "footer"
        with pytest.raises(TypeError):
            event.meta["source"] = "header"

    def test_lifecycle_order(self):
        assert FormsEvents.LIFECYCLE == (
            FormsEvents.SUBMISSION_PRE_PROCESSOR,
            FormsEvents.SUBMISSION_PROCESSOR,
            FormsEvents.SUBMISSION_POST_PROCESSOR,
        )
