"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from faultline.boundary import UncaughtExceptionBoundary, reset_boundary
from faultline.errors.model import ErrorObject
from faultline.runtime import Runtime, reset_runtime


@pytest.fixture(autouse=True)
def _fresh_process_state() -> Iterator[None]:
    """Process-wide singletons start empty for every test."""
    reset_boundary()
    reset_runtime()
    yield
    reset_boundary()
    reset_runtime()


@pytest.fixture
def boundary() -> UncaughtExceptionBoundary:
    return UncaughtExceptionBoundary()


@pytest.fixture
def recorded(boundary: UncaughtExceptionBoundary) -> list[ErrorObject]:
    """Errors that reached the boundary (a recording handler is installed)."""
    seen: list[ErrorObject] = []
    boundary.set_handler(seen.append)
    return seen


@pytest.fixture
def runtime(boundary: UncaughtExceptionBoundary) -> Iterator[Runtime]:
    rt = Runtime(boundary=boundary)
    yield rt
    rt.close()
