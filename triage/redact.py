"""PII redaction: load patterns from YAML, replace matches with placeholders."""

import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

import yaml

from triage.config import PII_PATTERNS_YAML


def load_patterns(path: Path) -> list[dict[str, Any]]:
    """Load PII patterns from a YAML file. Returns an ordered list of {name, regex, mask}."""
    if not path.exists():
        return []
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    patterns = data.get("patterns", [])
    out = []
    for p in patterns:
        if "regex" not in p or "mask" not in p:
            continue
        out.append(
            {
                **p,
                "regex": str(p["regex"]).strip(),
                "mask": str(p.get("mask", "[REDACTED]")).strip(),
            }
        )
    return out


@lru_cache(maxsize=1)
def default_patterns() -> tuple[dict[str, Any], ...]:
    """Patterns bundled with the package (email, phone, postal code, My Number)."""
    return tuple(load_patterns(PII_PATTERNS_YAML))


def redact(text: str, patterns: Optional[list[dict[str, Any]]] = None) -> str:
    """Apply each pattern in order, replacing matches with pattern['mask']."""
    out = text
    for p in default_patterns() if patterns is None else patterns:
        try:
            out = re.sub(p["regex"], p.get("mask", "[REDACTED]"), out)
        except re.error:
            continue
    return out


def redact_with_config(text: str, config_path: Path) -> str:
    """Load patterns from config_path and redact text. Convenience for the CLI."""
    patterns = load_patterns(config_path)
    return redact(text, patterns)
