from __future__ import annotations

import logging
from typing import Any, MutableMapping

from fastapi import Request

logger = logging.getLogger(__name__)

_FALLBACK_ATTR = "flash_forms_session"


def get_session(request: Request) -> MutableMapping[str, Any]:
    """
    Return the request's session, or a request-local dict without one.

    Without Starlette's ``SessionMiddleware`` nothing survives the request,
    but rendering keeps working.
    """
    if "session" in request.scope:
        return request.session

    store = getattr(request.state, _FALLBACK_ATTR, None)
    if store is None:
        logger.warning(
            "SessionMiddleware not installed; form context and feedback "
            "will not survive the current request"
        )
        store = {}
        setattr(request.state, _FALLBACK_ATTR, store)
    return store


class Feedback:
    """
    One-time messages ("flashes") for the user, grouped by type.

    Each form has its own bag (``<namespace>_feedback_<form>``), so one form
    never consumes another form's messages. Types in use are ``info``,
    ``error`` and ``debug``. Messages are stored in the session so they
    survive a redirect and are removed once read.
    """

    def __init__(self, session: MutableMapping[str, Any], key: str) -> None:
        self._session = session
        self._key = key

    def _bag(self) -> dict[str, list[str]]:
        return self._session.get(self._key) or {}

    def add(self, type_: str, message: str) -> None:
        bag = self._bag()
        bag.setdefault(type_, []).append(message)
        # Reassign so cookie based sessions notice the change
        self._session[self._key] = bag

    def peek(self, type_: str) -> list[str]:
        return list(self._bag().get(type_, []))

    def peek_all(self) -> dict[str, list[str]]:
        return {type_: list(messages) for type_, messages in self._bag().items()}

    def get(self, type_: str) -> list[str]:
        bag = self._bag()
        messages = bag.pop(type_, [])
        self._session[self._key] = bag
        return messages

    def all(self) -> dict[str, list[str]]:
        bag = self._bag()
        self._session.pop(self._key, None)
        return bag

    def has(self, type_: str) -> bool:
        return bool(self._bag().get(type_))
