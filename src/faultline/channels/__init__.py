"""Delivery channels — SyncRaise, CallbackSlot, EventChannel."""

from __future__ import annotations

from faultline.channels.callback import Completion, CompletionState, defer_call, promisify
from faultline.channels.events import ERROR_EVENT, Emitter, Subscription
from faultline.channels.sync import Caught, catch, guarded, invariant, raise_error

__all__ = [
    "ERROR_EVENT",
    "Caught",
    "Completion",
    "CompletionState",
    "Emitter",
    "Subscription",
    "catch",
    "defer_call",
    "guarded",
    "invariant",
    "promisify",
    "raise_error",
]
