"""Evaluation: rule-classifier agreement with labelled inquiries, draft guardrail checks."""

from pathlib import Path
from typing import Optional

import pandas as pd
from sklearn.metrics import accuracy_score

from triage.classify import classify
from triage.config import DEFAULT_DATA_DIR, INQUIRIES_CSV, KB_DIR, Settings
from triage.draft import compose_answer_package
from triage.guardrails import run_draft_checks
from triage.history import load_history, read_inquiries
from triage.kb import load_knowledge_sources
from triage.models import parse_tags
from triage.retrieve import find_similar, search_sources

LABEL_COLUMNS = {
    "urgency": "urgency",
    "importance": "importance",
    "dept_suggested": "dept_suggested",
}


def classification_metrics(
    inquiries_path: Path, df: Optional[pd.DataFrame] = None
) -> dict:
    """Accuracy of the rule classifier per routing field against the labelled columns.
    If df is provided, evaluate on that DataFrame instead of loading inquiries_path.
    """
    if df is None:
        if not inquiries_path.exists():
            return {"error": f"{INQUIRIES_CSV} not found"}
        df = read_inquiries(inquiries_path)
    missing = [c for c in LABEL_COLUMNS.values() if c not in df.columns]
    if missing:
        return {"error": f"missing columns: {', '.join(missing)}"}
    if df.empty:
        return {"error": "no rows", "total": 0}

    predictions = [classify(str(text)) for text in df["raw_text"]]
    metrics: dict = {"total": len(df)}
    for field, column in LABEL_COLUMNS.items():
        predicted = [getattr(p, field) for p in predictions]
        metrics[f"{field}_accuracy"] = float(accuracy_score(df[column].tolist(), predicted))
    if "tags" in df.columns:
        # Share of labelled tags the vocabulary rules recover
        hits = total = 0
        for p, raw in zip(predictions, df["tags"]):
            expected = parse_tags(raw)
            total += len(expected)
            hits += sum(1 for t in expected if t in p.tags)
        metrics["tag_recall"] = hits / total if total else 0.0
    return metrics


def eval_draft_checks(data_dir: Path, limit: int = 20) -> dict:
    """Compose deterministic answer packages for a sample of inquiries; count guardrail passes."""
    inquiries_path = data_dir / INQUIRIES_CSV
    if not inquiries_path.exists():
        return {"error": f"{INQUIRIES_CSV} not found", "passed": 0, "failed": 0}
    df = read_inquiries(inquiries_path).head(limit)
    knowledge = load_knowledge_sources(data_dir / KB_DIR)
    history = load_history(inquiries_path)
    passed = 0
    failed = 0
    reasons: dict[str, int] = {}
    for _, row in df.iterrows():
        text = str(row["raw_text"])
        sources = search_sources(text, knowledge)
        # Exclude the row itself so it cannot be its own precedent
        similar = find_similar(text, [h for h in history if h.id != str(row["id"])])
        package = compose_answer_package(text, [], sources, similar)
        ok, failures = run_draft_checks(package, sources)
        if ok:
            passed += 1
        else:
            failed += 1
            for f in failures:
                reasons[f] = reasons.get(f, 0) + 1
    return {"passed": passed, "failed": failed, "total": passed + failed, "reasons": reasons}


def main(data_dir: Optional[Path] = None) -> None:
    data_dir = data_dir or Settings.from_env().data_dir
    print("Evaluation")
    print("=========")
    metrics = classification_metrics(data_dir / INQUIRIES_CSV)
    print("Classification:", metrics)
    draft_res = eval_draft_checks(data_dir, limit=30)
    print("Draft checks (sample):", draft_res)


if __name__ == "__main__":
    import argparse

    p = argparse.ArgumentParser()
    p.add_argument("--data-dir", type=Path, default=DEFAULT_DATA_DIR)
    args = p.parse_args()
    main(args.data_dir)
