"""Config, data paths and runtime settings."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Project root (parent of triage/)
ROOT = Path(__file__).resolve().parent.parent
DEFAULT_DATA_DIR = ROOT / "data"

INQUIRIES_CSV = "inquiries.csv"
KB_DIR = "kb"
PII_PATTERNS_YAML = Path(__file__).resolve().parent / "pii_patterns.yaml"

# Model used for generative calls (cost-effective, low latency)
DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_TIMEOUT_S = 30.0


@dataclass(frozen=True)
class Settings:
    """Runtime settings passed explicitly into the engines and the CLI."""

    api_key: str = ""
    model: str = DEFAULT_MODEL
    timeout_s: float = DEFAULT_TIMEOUT_S
    max_retries: int = 1
    max_tokens: int = 1024
    temperature: float = 0.3
    data_dir: Path = DEFAULT_DATA_DIR

    @property
    def generative_enabled(self) -> bool:
        return bool(self.api_key.strip())

    @property
    def kb_dir(self) -> Path:
        return self.data_dir / KB_DIR

    @property
    def inquiries_path(self) -> Path:
        return self.data_dir / INQUIRIES_CSV

    @classmethod
    def from_env(cls, env_path: Optional[Path] = None) -> "Settings":
        """
        Build settings from the environment, loading .env from the project root first.
        OPENAI_API_KEY enables the generative engine; TRIAGE_* override the defaults.
        """
        load_dotenv(env_path or ROOT / ".env")
        data_dir = os.environ.get("TRIAGE_DATA_DIR", "").strip()
        timeout = os.environ.get("TRIAGE_LLM_TIMEOUT", "").strip()
        return cls(
            api_key=os.environ.get("OPENAI_API_KEY", "").strip(),
            model=os.environ.get("TRIAGE_MODEL", "").strip() or DEFAULT_MODEL,
            timeout_s=float(timeout) if timeout else DEFAULT_TIMEOUT_S,
            data_dir=Path(data_dir) if data_dir else DEFAULT_DATA_DIR,
        )


def configure_logging(level: str = "WARNING") -> None:
    """Route log records through rich so they render alongside CLI output."""
    from rich.logging import RichHandler

    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )
