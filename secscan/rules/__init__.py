"""Rule catalog: pattern rules stored as data, grouped into named rule sets."""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass, replace
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Pattern, Tuple

from secscan.errors import RuleValidationError
from secscan.severity import Severity
from secscan.utils import read_structured_file

logger = logging.getLogger(__name__)

FALLBACK_LANGUAGE = "javascript"

LANGUAGE_ALIASES = {
    "js": "javascript",
    "jsx": "javascript",
    "ts": "javascript",
    "typescript": "javascript",
    "node": "javascript",
    "py": "python",
    "python3": "python",
    "robotframework": "robot",
}

_FLAG_BITS = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL}


@lru_cache(maxsize=None)
def _compile(pattern: str, flags: str) -> Pattern[str]:
    bits = 0
    for flag in flags:
        if flag not in _FLAG_BITS:
            raise re.error(f"unsupported flag {flag!r}")
        bits |= _FLAG_BITS[flag]
    return re.compile(pattern, bits)


@dataclass(frozen=True)
class PatternRule:
    """A named, severity-tagged text pattern."""

    id: str
    name: str
    severity: Severity
    pattern: str
    description: str
    recommendation: str = ""
    flags: str = ""
    sensitive: bool = False

    def compiled(self) -> Pattern[str]:
        """Compile the pattern on first use; raises ``re.error`` when invalid."""

        return _compile(self.pattern, self.flags)


def build_rule(data: Mapping[str, Any]) -> PatternRule:
    """Validate a rule mapping from a custom bundle and return the rule."""

    rule_id = str(data.get("id") or "").strip()
    if not rule_id:
        raise RuleValidationError("", "missing id")
    severity = Severity.parse(data.get("severity"))
    if severity is None or not severity.counted:
        raise RuleValidationError(rule_id, f"unknown severity {data.get('severity')!r}")
    pattern = data.get("pattern")
    if not isinstance(pattern, str) or not pattern:
        raise RuleValidationError(rule_id, "pattern must be a non-empty string")
    flags = str(data.get("flags") or "").lower()
    rule = PatternRule(
        id=rule_id,
        name=str(data.get("name") or rule_id),
        severity=severity,
        pattern=pattern,
        description=str(data.get("description") or ""),
        recommendation=str(data.get("recommendation") or ""),
        flags=flags,
        sensitive=bool(data.get("sensitive", False)),
    )
    try:
        rule.compiled()
    except re.error as exc:
        raise RuleValidationError(rule_id, f"invalid pattern: {exc}") from exc
    return rule


class RuleSet:
    """Ordered rules with ids unique inside the set."""

    def __init__(self, rules: Iterable[PatternRule] = ()) -> None:
        self._rules: List[PatternRule] = []
        self._ids: set[str] = set()
        self.merge(rules)

    def merge(self, rules: Iterable[PatternRule]) -> int:
        """Append rules whose id is new; return how many were added."""

        added = 0
        for rule in rules:
            if rule.id in self._ids:
                continue
            self._ids.add(rule.id)
            self._rules.append(rule)
            added += 1
        return added

    def rules(self) -> Tuple[PatternRule, ...]:
        return tuple(self._rules)

    def __len__(self) -> int:
        return len(self._rules)


class RuleCatalog:
    """Static rule sets per language plus the global secret pattern set."""

    def __init__(
        self,
        static_rules: Optional[Mapping[str, Iterable[PatternRule]]] = None,
        secret_patterns: Optional[Iterable[PatternRule]] = None,
        fallback_language: str = FALLBACK_LANGUAGE,
    ) -> None:
        from .secret_patterns import SECRET_PATTERNS
        from .static_rules import STATIC_RULES

        source = STATIC_RULES if static_rules is None else static_rules
        self._static: Dict[str, RuleSet] = {lang.lower(): RuleSet(rules) for lang, rules in source.items()}
        self._secrets = RuleSet(SECRET_PATTERNS if secret_patterns is None else secret_patterns)
        self._fallback = fallback_language.lower()
        self._lock = threading.Lock()

    @property
    def languages(self) -> List[str]:
        return sorted(self._static)

    def resolve_language(self, language: Optional[str]) -> str:
        """Map a free-form language key to the rule set that will be used."""

        key = (language or "").strip().lower()
        if key in self._static:
            return key
        alias = LANGUAGE_ALIASES.get(key)
        if alias in self._static:
            return alias
        return self._fallback

    def rules_for(self, language: Optional[str]) -> Tuple[PatternRule, ...]:
        ruleset = self._static.get(self.resolve_language(language))
        return ruleset.rules() if ruleset else ()

    def secret_patterns(self) -> Tuple[PatternRule, ...]:
        return self._secrets.rules()

    def load_custom_rules(self, bundle: Mapping[str, Iterable[Any]]) -> int:
        """Merge a ``{language: [rule, ...]}`` bundle; return the number of rules added."""

        added = 0
        with self._lock:
            for language, entries in bundle.items():
                key = str(language).strip().lower()
                rules = _valid_rules(entries, context=key)
                ruleset = self._static.setdefault(key, RuleSet())
                added += ruleset.merge(rules)
        logger.info("Loaded %d custom static rule(s)", added)
        return added

    def load_secret_patterns(self, entries: Iterable[Any]) -> int:
        with self._lock:
            rules = [replace(rule, sensitive=True) for rule in _valid_rules(entries, context="secrets")]
            added = self._secrets.merge(rules)
        logger.info("Loaded %d custom secret pattern(s)", added)
        return added


def _valid_rules(entries: Iterable[Any], context: str) -> List[PatternRule]:
    rules: List[PatternRule] = []
    for entry in entries or ():
        if isinstance(entry, PatternRule):
            rules.append(entry)
            continue
        if not isinstance(entry, Mapping):
            logger.warning("Skipping non-mapping rule entry in %s: %r", context, entry)
            continue
        try:
            rules.append(build_rule(entry))
        except RuleValidationError as exc:
            logger.warning("Skipping custom rule in %s: %s", context, exc)
    return rules


def load_rule_bundle(path: Path) -> Dict[str, List[Any]]:
    """Read a custom rule bundle (YAML or JSON) mapping language to rule list."""

    data = read_structured_file(path)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise RuleValidationError("", f"bundle at {path} is not a mapping")
    bundle: Dict[str, List[Any]] = {}
    for language, entries in data.items():
        if not isinstance(entries, list):
            raise RuleValidationError("", f"rules for {language!r} must be a list")
        bundle[str(language)] = entries
    return bundle


__all__ = [
    "FALLBACK_LANGUAGE",
    "PatternRule",
    "RuleCatalog",
    "RuleSet",
    "build_rule",
    "load_rule_bundle",
]
