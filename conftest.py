#!/usr/bin/env python3
"""
Shared fixtures for the callguard test suite
"""

import os
import sys

import pytest
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def no_sleep(monkeypatch):
    """Make asyncio.sleep return at once and record requested delays."""
    import asyncio

    delays = []

    async def sleeper(delay, *args, **kwargs):
        # speed up tests
        delays.append(delay)
        return None

    monkeypatch.setattr(asyncio, "sleep", sleeper)
    return delays
