"""Ordered, short-circuiting install-path resolution."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from qz_installer.models import InstallationRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DetectionStrategy:
    """A named probe that either finds an installation or returns None."""

    name: str
    probe: Callable[[], InstallationRecord | None]

    def __call__(self) -> InstallationRecord | None:
        return self.probe()


class InstallPathResolver:
    """Runs detection strategies in order and returns the first hit.

    Once a strategy succeeds no later strategy is executed.
    """

    def __init__(self, strategies: Sequence[DetectionStrategy]) -> None:
        self._strategies = list(strategies)

    @property
    def strategy_names(self) -> list[str]:
        return [strategy.name for strategy in self._strategies]

    def resolve(self) -> InstallationRecord | None:
        """Return the installation found by the first successful strategy."""
        for strategy in self._strategies:
            logger.debug("Trying detection strategy: %s", strategy.name)
            try:
                record = strategy()
            except OSError as exc:
                logger.debug("Strategy %s not applicable: %s", strategy.name, exc)
                continue
            if record is not None:
                logger.info("QZ Tray found via %s: %s", strategy.name, record.install_dir)
                return record

        logger.info("QZ Tray installation not found (tried: %s)", ", ".join(self.strategy_names))
        return None
