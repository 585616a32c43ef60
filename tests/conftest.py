"""Shared fixtures for the installer tests."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from unittest.mock import MagicMock

import pytest

from qz_installer.host import detect_architecture, detect_platform
from qz_installer.logging_config import TextFormatter


@dataclass
class FakeProcess:
    """Stands in for ``psutil.Process`` as yielded by ``process_iter``."""

    pid: int
    name: str = ""
    cmdline: list[str] = field(default_factory=list)
    exe: str | None = None
    terminate: MagicMock = field(default_factory=MagicMock)
    kill: MagicMock = field(default_factory=MagicMock)

    @property
    def info(self) -> dict:
        return {"pid": self.pid, "name": self.name, "cmdline": self.cmdline, "exe": self.exe}


@pytest.fixture(autouse=True)
def _clear_host_cache():
    detect_platform.cache_clear()
    detect_architecture.cache_clear()
    yield
    detect_platform.cache_clear()
    detect_architecture.cache_clear()


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        if isinstance(handler.formatter, TextFormatter):
            root.removeHandler(handler)
