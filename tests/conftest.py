"""Shared fixtures for gridcalc tests."""

from __future__ import annotations

import asyncio
from collections.abc import Iterator

import pytest


@pytest.fixture
def loop() -> Iterator[asyncio.AbstractEventLoop]:
    """A fresh event loop, driven explicitly with run_until_complete."""
    ev_loop = asyncio.new_event_loop()
    try:
        yield ev_loop
    finally:
        ev_loop.close()
