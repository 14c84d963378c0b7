"""Configuration for folio-sync, stored as YAML.

Keys are dotted paths (``api.base_url``) mapped onto nested YAML sections::

    api:
      base_url: http://localhost:3000
    sync:
      debounce_ms: 500
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog
import yaml

logger = structlog.get_logger()

CONFIG_DIRNAME = ".folio"

KNOWN_KEYS: dict[str, str] = {
    "backend": "Where writes go: http or memory",
    "api.base_url": "Root URL of the dashboard API",
    "api.token": "Bearer token sent with every request",
    "sync.debounce_ms": "Quiet period before a text edit is sent",
    "sync.beacon_timeout_s": "Timeout for writes flushed on shutdown",
    "notify.dismiss_s": "Seconds before an error toast disappears",
}

SECRET_KEYS = frozenset({"api.token"})


def _flatten(data: dict[str, Any], prefix: str = "") -> dict[str, Any]:
    flat = {}
    for name, value in data.items():
        key = f"{prefix}{name}"
        if isinstance(value, dict):
            flat.update(_flatten(value, f"{key}."))
        else:
            flat[key] = value
    return flat


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.is_file():
        return {}
    try:
        data = yaml.safe_load(path.read_text()) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error("Could not read config", path=str(path), error=str(e))
        raise ValueError(f"Failed to load config from {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    return data


class Config:
    """One config file, optionally backed by the global file.

    The local file is ``.folio/config.yaml`` under the working directory and
    the global one ``~/.folio/config.yaml``. A local config answers reads from
    its own file first and then from the global file. Writes only touch the
    config's own file.
    """

    def __init__(self, use_global: bool = False, config_dir: Path | None = None) -> None:
        """Open a config file.

        Args:
            use_global: Work on the global file instead of the local one
            config_dir: Directory holding config.yaml, overriding the default location
        """
        if config_dir is None:
            config_dir = (Path.home() if use_global else Path.cwd()) / CONFIG_DIRNAME
        self.config_dir = Path(config_dir)
        self.is_global = use_global
        self.config_file = self.config_dir / "config.yaml"
        self._data = _read_yaml(self.config_file)

        self._fallback: dict[str, Any] = {}
        global_file = Path.home() / CONFIG_DIRNAME / "config.yaml"
        if not use_global and global_file != self.config_file:
            try:
                self._fallback = _flatten(_read_yaml(global_file))
            except ValueError as e:
                logger.warning("Ignoring unreadable global config", error=str(e))

        logger.debug("Opened config", path=str(self.config_file), is_global=use_global)

    def _write(self) -> None:
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            self.config_file.write_text(yaml.safe_dump(self._data, default_flow_style=False, sort_keys=True))
        except OSError as e:
            logger.error("Could not write config", path=str(self.config_file), error=str(e))
            raise ValueError(f"Failed to save config to {self.config_file}: {e}") from e

    def get(self, key: str, default: Any = None) -> Any:
        """Look a dotted key up locally, then in the global file."""
        node: Any = self._data
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return self._fallback.get(key, default)
            node = node[part]
        return node

    def set(self, key: str, value: str) -> None:
        """Store a value under a known dotted key.

        Raises:
            ValueError: If the key is not one folio-sync reads
        """
        if key not in KNOWN_KEYS:
            raise ValueError(f"Unknown config key '{key}'. Known keys: {', '.join(KNOWN_KEYS)}")
        *sections, leaf = key.split(".")
        node = self._data
        for section in sections:
            node = node.setdefault(section, {})
        node[leaf] = value
        self._write()
        logger.debug("Config value set", key=key)

    def unset(self, key: str) -> None:
        *sections, leaf = key.split(".")
        parents = [self._data]
        for section in sections:
            child = parents[-1].get(section)
            if not isinstance(child, dict):
                return
            parents.append(child)
        if leaf not in parents[-1]:
            return
        del parents[-1][leaf]
        # Drop sections left empty.
        for section, parent in zip(reversed(sections), reversed(parents[:-1])):
            if parent[section]:
                break
            del parent[section]
        self._write()
        logger.debug("Config value removed", key=key)

    def list(self) -> dict[str, Any]:
        """All values as dotted keys, local ones overriding global ones."""
        return {**self._fallback, **_flatten(self._data)}


def get_config(use_global: bool = False) -> Config:
    return Config(use_global=use_global)


def _number(config: Config, key: str, default: float) -> float:
    value = config.get(key)
    if value is None or value == "":
        return default
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Config value '{key}' must be a number, got '{value}'") from e
    if number < 0:
        raise ValueError(f"Config value '{key}' must not be negative")
    return number


@dataclass(frozen=True)
class SyncSettings:
    """Settings the sync engine and its backend are built from."""

    backend: str = "http"
    base_url: str = "http://localhost:3000"
    token: str | None = None
    debounce_ms: float = 500
    beacon_timeout_s: float = 2.0
    dismiss_s: float = 5.0

    @property
    def debounce_s(self) -> float:
        return self.debounce_ms / 1000

    @classmethod
    def from_config(cls, config: Config) -> "SyncSettings":
        backend = config.get("backend", "http")
        if backend not in ("http", "memory"):
            raise ValueError(f"Unknown backend: {backend}")
        return cls(
            backend=backend,
            base_url=config.get("api.base_url", cls.base_url),
            token=config.get("api.token"),
            debounce_ms=_number(config, "sync.debounce_ms", cls.debounce_ms),
            beacon_timeout_s=_number(config, "sync.beacon_timeout_s", cls.beacon_timeout_s),
            dismiss_s=_number(config, "notify.dismiss_s", cls.dismiss_s),
        )
