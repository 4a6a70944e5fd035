"""EventChannel — named-event publish/subscribe for long-lived resources.

Dispatch calls every current subscriber, in subscription order, synchronously
inside emit(). The reserved "error" event carries ErrorObjects; emitting it
with nobody listening routes the error to the UncaughtExceptionBoundary.

A subscriber that raises aborts dispatch to the remaining subscribers and the
raise propagates out of emit() to its caller.
"""

from __future__ import annotations

import itertools
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import structlog

from faultline.boundary import UncaughtExceptionBoundary, get_boundary
from faultline.errors.model import coerce

logger = structlog.get_logger(__name__)

ERROR_EVENT = "error"

Listener = Callable[..., Any]

_subscription_ids = itertools.count(1)


@dataclass(eq=False)
class Subscription:
    """Handle returned by Emitter.on / Emitter.once; pass it to Emitter.off."""

    event: str
    listener: Listener
    once: bool = False
    id: int = field(default_factory=lambda: next(_subscription_ids))
    active: bool = True


class Emitter:
    """Ordered subscriber lists per event name. Subscribers are not owned."""

    def __init__(self, boundary: UncaughtExceptionBoundary | None = None) -> None:
        self._subscriptions: dict[str, list[Subscription]] = {}
        self._boundary = boundary

    @property
    def boundary(self) -> UncaughtExceptionBoundary:
        return self._boundary if self._boundary is not None else get_boundary()

    def on(self, event: str, listener: Listener) -> Subscription:
        return self._subscribe(event, listener, once=False)

    def once(self, event: str, listener: Listener) -> Subscription:
        """Subscribe for the next dispatch of `event` only."""
        return self._subscribe(event, listener, once=True)

    def off(self, subscription: Subscription) -> bool:
        """Remove a subscription. Returns False if it was already gone."""
        subs = self._subscriptions.get(subscription.event)
        if not subs or subscription not in subs:
            return False
        subscription.active = False
        subs.remove(subscription)
        if not subs:
            del self._subscriptions[subscription.event]
        return True

    def listeners(self, event: str) -> list[Listener]:
        return [s.listener for s in self._subscriptions.get(event, ())]

    def listener_count(self, event: str) -> int:
        return len(self._subscriptions.get(event, ()))

    def event_names(self) -> list[str]:
        return list(self._subscriptions)

    def remove_all_listeners(self, event: str | None = None) -> None:
        if event is None:
            targets = list(self._subscriptions.values())
            self._subscriptions = {}
        else:
            targets = [self._subscriptions.pop(event, [])]
        for subs in targets:
            for sub in subs:
                sub.active = False

    def close(self) -> None:
        """Release every subscriber reference at teardown."""
        self.remove_all_listeners()

    def emit(self, event: str, *args: Any) -> bool:
        """
        Dispatch `event` to its subscribers. Returns True if any were called.

        For ERROR_EVENT the first argument is coerced to an ErrorObject. With
        no subscribers, or when the error is fatal, it goes to the boundary
        exactly once and emit returns False if the process survives.
        """
        if event == ERROR_EVENT:
            if not args:
                raise TypeError("the error event requires an error payload")
            args = (coerce(args[0]), *args[1:])
            if args[0].fatal:
                self.boundary.handle(args[0])
                return False

        snapshot = tuple(self._subscriptions.get(event, ()))
        if not snapshot:
            if event == ERROR_EVENT:
                err = args[0]
                logger.warning("error_event_unhandled", kind=err.kind.value, code=err.code)
                self.boundary.handle(err)
            return False

        for sub in snapshot:
            if not sub.active:
                continue
            if sub.once:
                self.off(sub)
            try:
                sub.listener(*args)
            except Exception:
                logger.error("event_listener_raised", event_name=event, subscription=sub.id)
                raise
        return True

    def _subscribe(self, event: str, listener: Listener, once: bool) -> Subscription:
        if not callable(listener):
            raise TypeError("listener must be callable")
        sub = Subscription(event=event, listener=listener, once=once)
        self._subscriptions.setdefault(event, []).append(sub)
        return sub
