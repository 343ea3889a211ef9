# storefront/app/core/session.py
from __future__ import annotations

import logging
from typing import Callable, List, Optional

log = logging.getLogger(__name__)

IdentityListener = Callable[[Optional[str], Optional[str]], None]


class SessionSource:
    """
    Subscribable "who is logged in" signal.

    Holds the current identity (opaque id, or None when anonymous) and notifies
    listeners with (previous, current) whenever it changes. One instance per
    session context; pass it to whatever needs it instead of importing a global.
    """

    def __init__(self, identity: Optional[str] = None) -> None:
        self._identity = identity
        self._listeners: List[IdentityListener] = []

    @property
    def identity(self) -> Optional[str]:
        return self._identity

    @property
    def is_authenticated(self) -> bool:
        return self._identity is not None

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]:
        """Register a listener; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def set_identity(self, identity: Optional[str]) -> None:
        """Report a login (id), logout (None) or account switch; no-op if unchanged."""
        identity = identity or None
        previous = self._identity
        if identity == previous:
            return
        self._identity = identity
        log.info("session identity changed: %s -> %s", previous or "anonymous", identity or "anonymous")
        for listener in list(self._listeners):
            listener(previous, identity)

    def announce(self) -> None:
        """Re-emit the current identity so listeners can re-run their login handling."""
        if self._identity is None:
            return
        for listener in list(self._listeners):
            listener(None, self._identity)
