"""Install-path detection: ordered strategies, first success wins."""

from qz_installer.detection.registry import from_registry
from qz_installer.detection.resolver import DetectionStrategy, InstallPathResolver
from qz_installer.detection.strategies import (
    from_bounded_search,
    from_command_lookup,
    from_known_locations,
    from_running_process,
    from_spotlight,
)

__all__ = [
    "DetectionStrategy",
    "InstallPathResolver",
    "from_bounded_search",
    "from_command_lookup",
    "from_known_locations",
    "from_registry",
    "from_running_process",
    "from_spotlight",
]
