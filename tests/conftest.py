"""Shared pytest fixtures."""

from __future__ import annotations

import logging
import os

import pytest

# Run Qt headless unless a platform is explicitly chosen.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from draftline.core.ranges import PastedRange


class FakeClock:
    """Monotonic clock stand-in advanced explicitly by tests."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def ranges():
    """Build a sorted tuple of pasted ranges from ``(start, end)`` pairs."""

    def _build(*pairs: tuple[int, int]) -> tuple[PastedRange, ...]:
        return tuple(sorted(PastedRange(start, end) for start, end in pairs))

    return _build


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
