"""Reads, writes and edits the installer config file."""

from __future__ import annotations

import logging
import os
import platform
import stat
import tomllib
from pathlib import Path

import tomli_w

from qz_installer.config.defaults import DEFAULT_CONFIG
from qz_installer.config.schema import InstallerConfig

logger = logging.getLogger(__name__)

_CONFIG_DIR = Path("~/.config/qz-installer").expanduser()
_CONFIG_FILE = "config.toml"


class ConfigManager:
    """Locates and persists ``~/.config/qz-installer/config.toml``.

    Values in the file are layered over :data:`DEFAULT_CONFIG`. Without a
    file, ``QZ_INSTALLER_<SECTION>__<FIELD>`` environment variables are
    applied over the built-in defaults instead.
    """

    def __init__(self, config_dir: Path | None = None) -> None:
        self._config_dir = config_dir or _CONFIG_DIR

    def load(self) -> InstallerConfig:
        """Return the effective installer configuration.

        A missing or unreadable file yields the built-in defaults with any
        environment overrides applied.
        """
        raw = self._read()
        if raw is None:
            return InstallerConfig()
        return InstallerConfig(**_deep_merge(DEFAULT_CONFIG, raw))

    def save(self, config: InstallerConfig) -> None:
        path = self.get_config_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(tomli_w.dumps(config.model_dump()), encoding="utf-8")

        # owner read/write only
        if platform.system() in ("Linux", "Darwin"):
            os.chmod(path, stat.S_IRUSR | stat.S_IWUSR)
        logger.debug("Wrote installer config %s", path)

    def _read(self) -> dict[str, object] | None:
        path = self.get_config_path()
        if not path.is_file():
            logger.debug("No installer config at %s", path)
            return None
        try:
            return tomllib.loads(path.read_text(encoding="utf-8"))
        except (tomllib.TOMLDecodeError, OSError) as exc:
            logger.warning("Ignoring unreadable installer config %s (%s)", path, exc)
            return None

    def get_value(self, key: str) -> object:
        """Return the value at dotted *key*, e.g. ``release.repo``.

        Raises:
            KeyError: If the key does not exist.
        """
        value: object = self.load().model_dump()
        for part in key.split("."):
            if not isinstance(value, dict) or part not in value:
                raise KeyError(key)
            value = value[part]
        return value

    def set_value(self, key: str, value: str) -> object:
        """Coerce *value* to the type of ``section.field`` and save it.

        Returns:
            The stored value.

        Raises:
            KeyError: If *key* is not an existing ``section.field``.
            ValueError: If *value* cannot be converted to the field's type.
        """
        parts = key.split(".")
        if len(parts) != 2:
            raise KeyError(key)
        section, field = parts

        data = self.load().model_dump()
        if not isinstance(data.get(section), dict) or field not in data[section]:
            raise KeyError(key)

        coerced = _coerce(data[section][field], value)
        self.save(InstallerConfig(**_deep_merge(data, {section: {field: coerced}})))
        return coerced

    def exists(self) -> bool:
        return self.get_config_path().is_file()

    def get_config_path(self) -> Path:
        return self._config_dir / _CONFIG_FILE


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _coerce(existing: object, value: str) -> object:
    """Convert *value* to the type of *existing*."""
    if isinstance(existing, bool):
        return value.strip().lower() in ("true", "1", "yes")
    if isinstance(existing, int):
        return int(value)
    if isinstance(existing, float):
        return float(value)
    return value


def _deep_merge(base: dict[str, object], override: dict[str, object]) -> dict[str, object]:
    """Recursively merge *override* into a copy of *base*.

    Nested dicts are merged rather than replaced so that partial TOML
    sections keep their defaults.
    """
    merged: dict[str, object] = dict(base)
    for key, over_val in override.items():
        base_val = base.get(key)
        if isinstance(base_val, dict) and isinstance(over_val, dict):
            merged[key] = _deep_merge(base_val, over_val)  # type: ignore[arg-type]
        else:
            merged[key] = over_val
    return merged
