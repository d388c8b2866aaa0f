"""Inquiry history: past inquiries with final answers, read from inquiries.csv."""

from pathlib import Path

import pandas as pd

from triage.models import HistoryRecord
from triage.scoring import normalize_text

REQUIRED_COLUMNS = ("id", "raw_text", "final_answer_text")
DEFAULT_HISTORY_LIMIT = 50


def read_inquiries(path: Path) -> pd.DataFrame:
    """Load inquiries.csv as strings with blanks for missing cells (empty frame if absent)."""
    if not path.exists():
        return pd.DataFrame(columns=list(REQUIRED_COLUMNS))
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"{path.name} is missing columns: {', '.join(missing)}")
    return df


def load_history(path: Path, limit: int = DEFAULT_HISTORY_LIMIT) -> list[HistoryRecord]:
    """
    Most recent inquiries (by created_at when present) that carry a non-empty final answer.
    normalized_text falls back to the normalised raw_text.
    """
    df = read_inquiries(path)
    df = df[df["final_answer_text"].str.strip() != ""]
    if "created_at" in df.columns:
        df = df.sort_values("created_at", ascending=False, kind="stable")
    df = df.head(limit)
    records = []
    for _, row in df.iterrows():
        normalized = row.get("normalized_text", "") or normalize_text(row["raw_text"])
        records.append(
            HistoryRecord(
                id=str(row["id"]),
                normalized_text=normalized,
                summary=str(row.get("summary", "")),
                final_answer_text=str(row["final_answer_text"]),
            )
        )
    return records
