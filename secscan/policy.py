"""Compliance policy: the active thresholds, their validation and evaluation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml

from .errors import PolicyValidationError
from .result import SeverityCounts
from .utils import read_yaml_file, write_yaml_file

logger = logging.getLogger(__name__)

FAIL_ON_LEVELS = ("critical", "high", "medium", "low")

# camelCase interchange key -> dataclass field; legacy keys map onto the same fields
FIELD_KEYS = {
    "failOnSeverity": "fail_on_severity",
    "failOn": "fail_on_severity",
    "maxCritical": "max_critical",
    "maxHigh": "max_high",
    "maxMedium": "max_medium",
    "maxLow": "max_low",
    "blockOnFailure": "block_on_failure",
    "blockPipeline": "block_on_failure",
    "notifyOnFailure": "notify_on_failure",
}


@dataclass(frozen=True)
class Policy:
    """Severity thresholds a scan result is checked against."""

    fail_on_severity: str = "critical"
    max_critical: int = 0
    max_high: int = 5
    max_medium: int = 20
    max_low: int = 50
    block_on_failure: bool = True
    notify_on_failure: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "failOnSeverity": self.fail_on_severity,
            "maxCritical": self.max_critical,
            "maxHigh": self.max_high,
            "maxMedium": self.max_medium,
            "maxLow": self.max_low,
            "blockOnFailure": self.block_on_failure,
            "notifyOnFailure": self.notify_on_failure,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], base: Optional["Policy"] = None) -> "Policy":
        """Merge ``data`` over ``base`` (defaults when omitted) and validate the outcome."""

        values = {f.name: getattr(base or cls(), f.name) for f in fields(cls)}
        for key, value in data.items():
            attr = FIELD_KEYS.get(key, key if key in values else None)
            if attr is None:
                logger.debug("Ignoring unknown policy key %s", key)
                continue
            values[attr] = value
        if isinstance(values["fail_on_severity"], str):
            values["fail_on_severity"] = values["fail_on_severity"].strip().lower()
        policy = cls(**values)
        errors = validate_policy(policy)
        if errors:
            raise PolicyValidationError(errors)
        return policy


def validate_policy(policy: Policy) -> List[str]:
    errors: List[str] = []
    if policy.fail_on_severity not in FAIL_ON_LEVELS:
        errors.append(
            f"failOnSeverity must be one of {', '.join(FAIL_ON_LEVELS)}, got {policy.fail_on_severity!r}"
        )
    for name in ("max_critical", "max_high", "max_medium", "max_low"):
        value = getattr(policy, name)
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            errors.append(f"{name} must be a non-negative integer, got {value!r}")
    for name in ("block_on_failure", "notify_on_failure"):
        if not isinstance(getattr(policy, name), bool):
            errors.append(f"{name} must be a boolean")
    return errors


def evaluate_policy(counts: SeverityCounts, policy: Policy) -> bool:
    """Return True when ``counts`` complies with ``policy``.

    Ceilings are checked from the most severe level down; the ``failOn``
    level additionally demands zero findings at or above it, regardless of
    the ceilings.
    """

    if counts.critical > policy.max_critical:
        return False
    if policy.fail_on_severity == "critical":
        return counts.critical == 0

    if counts.high > policy.max_high:
        return False
    if policy.fail_on_severity == "high":
        return counts.critical == 0 and counts.high == 0

    if counts.medium > policy.max_medium:
        return False
    if policy.fail_on_severity == "medium":
        return counts.critical == 0 and counts.high == 0 and counts.medium == 0

    if counts.low > policy.max_low:
        return False

    return True


class PolicyStore:
    """Hold the single active policy and persist it as YAML."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = path
        self._policy = self._load()

    @property
    def policy(self) -> Policy:
        return self._policy

    def save(self, update: Union[Policy, Mapping[str, Any]]) -> Policy:
        """Validate and activate a policy; the previous policy stays active on error."""

        if isinstance(update, Policy):
            errors = validate_policy(update)
            if errors:
                raise PolicyValidationError(errors)
            policy = update
        else:
            policy = Policy.from_dict(update)
        if self.path is not None:
            write_yaml_file(self.path, policy.to_dict())
        self._policy = policy
        logger.info("Saved policy: %s", policy.to_dict())
        return policy

    def restore_defaults(self) -> Policy:
        return self.save(Policy())

    def _load(self) -> Policy:
        if self.path is None or not self.path.exists():
            return Policy()
        try:
            data = read_yaml_file(self.path)
            if not isinstance(data, dict):
                raise PolicyValidationError([f"{self.path} does not contain a mapping"])
            return Policy.from_dict(data)
        except (yaml.YAMLError, PolicyValidationError) as exc:
            logger.warning("Falling back to the default policy, cannot load %s: %s", self.path, exc)
            return Policy()
