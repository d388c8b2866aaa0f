"""Guardrails: automated checks on a draft answer package before staff review."""

from triage.models import AnswerPackage, SearchSource
from triage.redact import redact


def check_draft_no_raw_pii(text: str) -> bool:
    """Return True if redaction would leave the text unchanged (no e-mail, phone, postal code, ID)."""
    return redact(text) == text


def check_citations_match_sources(package: AnswerPackage, sources: list[SearchSource]) -> bool:
    """Return True if every citation points at one of the retrieved sources."""
    known = {s.source_id for s in sources}
    return all(c.source_id in known for c in package.citations)


def check_answer_not_empty(package: AnswerPackage) -> bool:
    return bool(package.answer_text.strip())


def run_draft_checks(
    package: AnswerPackage, sources: list[SearchSource]
) -> tuple[bool, list[str]]:
    """
    Run all checks. Returns (all_passed, list of failure reasons).
    """
    failures = []
    if not check_answer_not_empty(package):
        failures.append("answer_empty")
    if not check_citations_match_sources(package, sources):
        failures.append("citation_unknown_source")
    if not check_draft_no_raw_pii(package.answer_text):
        failures.append("possible_pii_in_draft")
    return (len(failures) == 0, failures)
