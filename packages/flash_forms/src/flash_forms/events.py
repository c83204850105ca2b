"""
Submission lifecycle events.

Listeners react to successful submissions (send an e-mail, store a record, ...)
without knowing anything about rendering::

    dispatcher = EventDispatcher()

    @dispatcher.listen(FormsEvents.SUBMISSION_PROCESSOR)
    def store(event: LifecycleEvent) -> None:
        save_to_db(event.form_config.name, event.form_data.all())

Dispatch is synchronous and happens once per lifecycle point.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Mapping

if TYPE_CHECKING:
    from flash_forms.config import FormConfig
    from flash_forms.forms import SubmitButton
    from flash_forms.meta import FormData

logger = logging.getLogger(__name__)


class FormsEvents:
    # After the submission validated, before listeners process it
    SUBMISSION_PRE_PROCESSOR = "flash_forms.submission_pre_processor"
    SUBMISSION_PROCESSOR = "flash_forms.submission_processor"
    # Processing finished, the response is about to be built
    SUBMISSION_POST_PROCESSOR = "flash_forms.submission_post_processor"

    LIFECYCLE = (
        SUBMISSION_PRE_PROCESSOR,
        SUBMISSION_PROCESSOR,
        SUBMISSION_POST_PROCESSOR,
    )


@dataclass(frozen=True)
class LifecycleEvent:
    form_config: FormConfig
    form_data: FormData
    meta: Mapping[str, Any]
    clicked_button: SubmitButton | None


Listener = Callable[[LifecycleEvent], Any]


class EventDispatcher:
    def __init__(self) -> None:
        self._listeners: dict[str, list[tuple[int, Listener]]] = defaultdict(list)

    def subscribe(self, name: str, listener: Listener, priority: int = 0) -> None:
        """Register ``listener``; higher priorities are called first."""
        self._listeners[name].append((priority, listener))
        # sort() is stable, so equal priorities keep registration order
        self._listeners[name].sort(key=lambda item: -item[0])

    def unsubscribe(self, name: str, listener: Listener) -> None:
        self._listeners[name] = [
            item for item in self._listeners.get(name, []) if item[1] != listener
        ]

    def listen(self, name: str, priority: int = 0) -> Callable[[Listener], Listener]:
        def decorator(listener: Listener) -> Listener:
            self.subscribe(name, listener, priority)
            return listener

        return decorator

    def has_listeners(self, name: str) -> bool:
        return bool(self._listeners.get(name))

    def get_listeners(self, name: str) -> list[Listener]:
        return [listener for _, listener in self._listeners.get(name, [])]

    def dispatch(self, name: str, event: LifecycleEvent) -> LifecycleEvent:
        listeners = self.get_listeners(name)
        logger.debug("Dispatching %s to %d listener(s)", name, len(listeners))
        for listener in listeners:
            listener(event)
        return event
