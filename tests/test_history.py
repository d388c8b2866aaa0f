"""Unit tests for the inquiry history reader and evaluation helpers."""

from pathlib import Path

import pandas as pd
import pytest

from triage.eval import classification_metrics, eval_draft_checks
from triage.history import load_history, read_inquiries

DATA_DIR = Path(__file__).resolve().parent.parent / "data"
INQUIRIES = DATA_DIR / "inquiries.csv"


def test_load_history_keeps_answered_rows_newest_first():
    records = load_history(INQUIRIES)
    ids = [r.id for r in records]
    assert ids == ["inq-008", "inq-006", "inq-005", "inq-003", "inq-001"]
    assert all(r.final_answer_text for r in records)


def test_load_history_limit():
    assert [r.id for r in load_history(INQUIRIES, limit=2)] == ["inq-008", "inq-006"]


def test_load_history_missing_file(tmp_path: Path):
    assert load_history(tmp_path / "inquiries.csv") == []


def test_read_inquiries_requires_columns(tmp_path: Path):
    path = tmp_path / "inquiries.csv"
    path.write_text("id,raw_text\n1,道路\n", encoding="utf-8")
    with pytest.raises(ValueError):
        read_inquiries(path)


def test_classification_metrics_on_dataframe():
    df = pd.DataFrame(
        [
            {
                "raw_text": "近所の道路に大きな穴が開いていて危険です",
                "urgency": "HIGH",
                "importance": "HIGH",
                "dept_suggested": "道路管理課",
                "tags": '["道路"]',
            },
            {
                "raw_text": "粗大ごみの申込方法を知りたい",
                "urgency": "LOW",
                "importance": "LOW",
                "dept_suggested": "総務課",
                "tags": "",
            },
        ]
    )
    metrics = classification_metrics(Path("unused.csv"), df=df)
    assert metrics["total"] == 2
    assert metrics["urgency_accuracy"] == 1.0
    assert metrics["dept_suggested_accuracy"] == 0.5
    assert metrics["tag_recall"] == 1.0


def test_classification_metrics_missing_file(tmp_path: Path):
    assert "error" in classification_metrics(tmp_path / "inquiries.csv")


def test_eval_draft_checks_on_bundled_data():
    result = eval_draft_checks(DATA_DIR, limit=10)
    assert result["total"] == 10
    assert result["passed"] + result["failed"] == 10
