"""Shared test fixtures."""

from __future__ import annotations

from typing import Callable

import httpx
import pytest

from imgcache.api.client import ImageClient
from imgcache.config import Settings


class FakeClock:
    """Manually advanced clock, in seconds."""

    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(api_url="http://api.test/api")


@pytest.fixture
def make_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], ImageClient]:
    """Build an ImageClient whose requests are answered by ``handler``."""

    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> ImageClient:
        return ImageClient(transport=httpx.MockTransport(handler))

    return _make

