"""Configuration loading and validation for slackcat."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, MutableMapping, Tuple

import yaml

from .logging_utils import resolve_level

USER_CONFIG_PATH = Path("~/.config/slackcat/config.yaml")
LEGACY_TOKEN_PATH = Path("~/.slackcat")
ENV_CONFIG_PATH = "SLACKCAT_CONFIG"
ENV_TOKEN = "SLACK_TOKEN"


DEFAULT_CONFIG: Dict[str, Any] = {
    "token": "",
    "channel": "",
    "api_url": "https://slack.com/api",
    "request_timeout": 30,
    "flush_interval": 3.0,
    "drain_interval": 3.0,
    "dry_run": False,
    "tee": False,
    "logging": {
        "console_level": "INFO",
        "file_level": "DEBUG",
        "log_dir": None,
        "color": True,
    },
}


class ConfigError(ValueError):
    """Raised when configuration values are missing or invalid."""


@dataclass(frozen=True)
class ConfigLoadResult:
    """Container for the merged configuration."""

    config: Dict[str, Any]
    sources: Tuple[str, ...]


@dataclass(frozen=True)
class Settings:
    """Typed view over the merged configuration mapping."""

    token: str
    channel: str
    api_url: str = DEFAULT_CONFIG["api_url"]
    request_timeout: float = 30.0
    flush_interval: float = 3.0
    drain_interval: float = 3.0
    dry_run: bool = False
    tee: bool = False
    logging: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> "Settings":
        merged = _deep_merge(DEFAULT_CONFIG, config)
        settings = cls(
            token=str(merged.get("token") or "").strip(),
            channel=str(merged.get("channel") or "").strip(),
            api_url=str(merged.get("api_url") or DEFAULT_CONFIG["api_url"]).rstrip("/"),
            request_timeout=_coerce_positive(merged, "request_timeout"),
            flush_interval=_coerce_positive(merged, "flush_interval"),
            drain_interval=_coerce_positive(merged, "drain_interval"),
            dry_run=bool(merged.get("dry_run")),
            tee=bool(merged.get("tee")),
            logging=_checked_logging(merged.get("logging") or {}),
        )
        return settings

    def require_token(self) -> str:
        if not self.token:
            raise ConfigError(
                f"No Slack API token configured; set {ENV_TOKEN}, write it to "
                f"{LEGACY_TOKEN_PATH} or add 'token' to the config file"
            )
        return self.token

    def require_channel(self) -> str:
        if not self.channel:
            raise ConfigError("No channel given; pass --channel or set 'channel' in the config file")
        return self.channel


def _coerce_positive(config: Mapping[str, Any], key: str) -> float:
    raw = config.get(key)
    try:
        value = float(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{key} must be a number, got {raw!r}") from exc
    if value <= 0:
        raise ConfigError(f"{key} must be > 0")
    return value


def _checked_logging(section: Mapping[str, Any]) -> Dict[str, Any]:
    for key in ("console_level", "file_level"):
        try:
            resolve_level(section.get(key))
        except ValueError as exc:
            raise ConfigError(f"logging.{key}: {exc}") from exc
    return dict(section)


def _load_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        try:
            data = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, MutableMapping):
        raise ConfigError(f"Configuration file {path} must contain a mapping at the root")
    return dict(data)


def _deep_merge(base: Mapping[str, Any], overlay: Mapping[str, Any]) -> Dict[str, Any]:
    merged: Dict[str, Any] = dict(base)
    for key, value in overlay.items():
        if (
            key in merged
            and isinstance(merged[key], MutableMapping)
            and isinstance(value, MutableMapping)
        ):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _collect_sources(config_path: str | Path | None) -> Iterable[Tuple[Path, bool]]:
    yield USER_CONFIG_PATH.expanduser(), False
    env_path = os.getenv(ENV_CONFIG_PATH)
    if env_path:
        yield Path(env_path).expanduser(), False
    if config_path:
        yield Path(config_path).expanduser(), True


def _read_legacy_token(path: Path) -> str:
    if not path.is_file():
        return ""
    return path.read_text(encoding="utf-8").strip()


def load_config(
    config_path: str | Path | None = None,
    *,
    overrides: Mapping[str, Any] | None = None,
    token_path: str | Path | None = None,
    include_sources: bool = False,
) -> ConfigLoadResult | Dict[str, Any]:
    """Load defaults merged with config files, environment and overrides."""

    config: Dict[str, Any] = json.loads(json.dumps(DEFAULT_CONFIG))
    sources: list[str] = []

    legacy = Path(token_path).expanduser() if token_path else LEGACY_TOKEN_PATH.expanduser()
    token = _read_legacy_token(legacy)
    if token:
        config["token"] = token
        sources.append(str(legacy.resolve()))

    for path, required in _collect_sources(config_path):
        if not path.exists():
            if required:
                raise ConfigError(f"Configuration file not found: {path}")
            continue
        config = _deep_merge(config, _load_yaml(path))
        sources.append(str(path.resolve()))

    env_token = os.getenv(ENV_TOKEN)
    if env_token:
        config["token"] = env_token.strip()
        sources.append(f"${ENV_TOKEN}")

    if overrides:
        config = _deep_merge(config, {k: v for k, v in overrides.items() if v is not None})

    result = ConfigLoadResult(config=config, sources=tuple(sources))
    if include_sources:
        return result
    return result.config


__all__ = [
    "DEFAULT_CONFIG",
    "ConfigError",
    "ConfigLoadResult",
    "Settings",
    "load_config",
]
