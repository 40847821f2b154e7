"""Shared fixtures for netcall tests."""

from __future__ import annotations

import threading

import httpx
import pytest

from netcall.helper import HttpHelper
from netcall.transport import Transport


class Recorder:
    """Collects continuation calls and the thread they ran on."""

    def __init__(self) -> None:
        self.successes: list = []
        self.failures: list[str] = []
        self.threads: list[str] = []

    def on_success(self, value) -> None:
        self.threads.append(threading.current_thread().name)
        self.successes.append(value)

    def on_failure(self, message: str) -> None:
        self.threads.append(threading.current_thread().name)
        self.failures.append(message)

    @property
    def total(self) -> int:
        return len(self.successes) + len(self.failures)


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def make_helper():
    """Build helpers backed by ``httpx.MockTransport``; closed on teardown."""
    helpers: list[HttpHelper] = []

    def _make(handler) -> HttpHelper:
        transport = Transport(http_transport=httpx.MockTransport(handler))
        helper = HttpHelper(transport=transport)
        helpers.append(helper)
        return helper

    yield _make
    for helper in helpers:
        helper.close()
