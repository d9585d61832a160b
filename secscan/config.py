"""Runtime settings: defaults, optional YAML file, ``SECSCAN_*`` environment overrides."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .cache import DEFAULT_CACHE_DURATION
from .errors import SecScanError
from .history import MAX_HISTORY
from .scanners.dependency import DEFAULT_MAX_CONCURRENCY, OSV_QUERY_URL
from .scanners.dependency import DEFAULT_TIMEOUT as DEFAULT_DEPENDENCY_TIMEOUT
from .scanners.headers import DEFAULT_TIMEOUT as DEFAULT_HEADER_TIMEOUT
from .severity import Severity
from .utils import read_yaml_file

logger = logging.getLogger(__name__)

ENV_PREFIX = "SECSCAN_"


@dataclass(frozen=True)
class Settings:
    history_path: Optional[Path] = None
    policy_path: Optional[Path] = None
    osv_url: str = OSV_QUERY_URL
    dependency_timeout: float = DEFAULT_DEPENDENCY_TIMEOUT
    header_timeout: float = DEFAULT_HEADER_TIMEOUT
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    cache_duration: float = DEFAULT_CACHE_DURATION
    max_history: int = MAX_HISTORY
    unknown_severity: Severity = Severity.MEDIUM


def _coerce(name: str, value: Any) -> Any:
    if value is None:
        return None
    if name in ("history_path", "policy_path"):
        return Path(str(value)).expanduser()
    if name in ("dependency_timeout", "header_timeout", "cache_duration"):
        return float(value)
    if name in ("max_concurrency", "max_history"):
        return int(value)
    if name == "unknown_severity":
        severity = Severity.parse(value)
        if severity is None or not severity.counted:
            raise ValueError(f"unknown severity {value!r}")
        return severity
    return str(value)


def _apply(settings: Settings, overrides: Mapping[str, Any], source: str) -> Settings:
    known = {f.name for f in fields(Settings)}
    changes: Dict[str, Any] = {}
    for name, value in overrides.items():
        if name not in known:
            logger.warning("Ignoring unknown setting %s from %s", name, source)
            continue
        try:
            changes[name] = _coerce(name, value)
        except (TypeError, ValueError) as exc:
            raise SecScanError(f"Invalid setting {name} from {source}: {exc}") from exc
    return replace(settings, **changes)


def load_settings(path: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build settings from defaults, then ``path`` (YAML), then the environment."""

    settings = Settings()
    if path is not None:
        data = read_yaml_file(path)
        if data is None:
            raise SecScanError(f"Config file not found: {path}")
        if not isinstance(data, dict):
            raise SecScanError(f"Config file {path} is not a mapping")
        settings = _apply(settings, data, str(path))

    env = os.environ if environ is None else environ
    overrides = {
        key[len(ENV_PREFIX):].lower(): value
        for key, value in env.items()
        if key.startswith(ENV_PREFIX) and key != f"{ENV_PREFIX}CONFIG"
    }
    if overrides:
        settings = _apply(settings, overrides, "environment")
    return settings
