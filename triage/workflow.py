"""Inquiry intake and the answer lifecycle: submit/import → draft → approve → send.

Routing fields are written once, at intake. Drafting may be repeated until an
answer is approved; after that the answer only moves forward to sent.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from triage.engine import Assistant
from triage.models import (
    CHANNELS,
    STATUS_ANSWERED,
    STATUS_IN_PROGRESS,
    STATUSES,
    Answer,
    AnswerPackage,
    FollowupAnswer,
    Inquiry,
    SearchSource,
    SimilarInquiry,
    parse_followup_qa,
)
from triage.scoring import normalize_text

logger = logging.getLogger(__name__)

_SUBJECT = re.compile(r"^Subject:\s*(.+)$", re.IGNORECASE | re.MULTILINE)
_FROM = re.compile(r"^From:\s*(.+)$", re.IGNORECASE | re.MULTILINE)
_DISPLAY_NAME = re.compile(r"^(.+?)\s*<")

# Citizen form and phone intake limit; e-mail imports are not capped
MAX_INQUIRY_LENGTH = 2000


def submit_inquiry(
    assistant: Assistant,
    raw_text: str,
    channel: str = "web",
    followup_qa: Optional[list[FollowupAnswer]] = None,
    needs_reply: bool = False,
    contact_name: str = "",
    contact_email: str = "",
    contact_phone: str = "",
    address_text: str = "",
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    locale: str = "ja",
    max_length: Optional[int] = MAX_INQUIRY_LENGTH,
) -> Inquiry:
    """Create an inquiry from citizen text; classification runs once here and is not recomputed."""
    if not raw_text.strip():
        raise ValueError("Inquiry text must not be empty")
    if max_length is not None and len(raw_text) > max_length:
        raise ValueError(f"Inquiry text exceeds {max_length} characters")
    if channel not in CHANNELS:
        raise ValueError(f"Unknown channel: {channel}")
    result = assistant.summarize_and_route(raw_text)
    # Contact details are only kept when the citizen asked for a reply
    inquiry = Inquiry(
        raw_text=raw_text,
        normalized_text=normalize_text(raw_text),
        summary=result.summary,
        urgency=result.urgency,
        importance=result.importance,
        dept_suggested=result.dept_suggested,
        dept_actual=result.dept_suggested,
        tags=list(result.tags),
        channel=channel,
        locale=locale,
        followup_qa=list(followup_qa or []),
        needs_reply=needs_reply,
        contact_name=contact_name if needs_reply else "",
        contact_email=contact_email if needs_reply else "",
        contact_phone=contact_phone if needs_reply else "",
        address_text=address_text,
        lat=lat,
        lng=lng,
    )
    logger.info(
        "Inquiry %s: urgency=%s importance=%s dept=%s",
        inquiry.id,
        inquiry.urgency,
        inquiry.importance,
        inquiry.dept_suggested,
    )
    return inquiry


def parse_email(raw: str) -> tuple[str, str, str]:
    """Split a raw .eml (or plain text) into (subject, from display name, body)."""
    lines = raw.split("\n")
    body_lines: list[str] = []
    in_body = False
    for line in lines:
        if in_body:
            body_lines.append(line)
        elif line.strip() == "":
            in_body = True
    body = "\n".join(body_lines).strip() or raw.strip()

    subject_match = _SUBJECT.search(raw)
    subject = subject_match.group(1).strip() if subject_match else ""
    from_name = ""
    from_match = _FROM.search(raw)
    if from_match:
        name_match = _DISPLAY_NAME.match(from_match.group(1))
        from_name = name_match.group(1).strip().strip('"') if name_match else ""
    return subject, from_name, body


def import_email(assistant: Assistant, raw_content: str) -> Inquiry:
    """Staff import of an e-mail: subject is prefixed to the body as 件名."""
    subject, from_name, body = parse_email(raw_content)
    text = f"件名: {subject}\n\n{body}" if subject else body
    inquiry = submit_inquiry(assistant, text, channel="email", max_length=None)
    inquiry.contact_name = from_name
    return inquiry


def import_phone(
    assistant: Assistant, text: str, caller_name: str = "", caller_phone: str = ""
) -> Inquiry:
    """Staff transcription of a phone call. A reply is expected when a callback number was given."""
    inquiry = submit_inquiry(
        assistant, text, channel="phone", needs_reply=bool(caller_phone.strip())
    )
    # Caller details are kept even without a callback number
    inquiry.contact_name = caller_name
    inquiry.contact_phone = caller_phone
    return inquiry


def update_inquiry(
    inquiry: Inquiry,
    tags: Optional[list[str]] = None,
    dept_actual: Optional[str] = None,
    status: Optional[str] = None,
) -> Inquiry:
    """Staff edits. Routing fields set at intake (urgency, importance, dept_suggested) stay as they are."""
    if status is not None and status not in STATUSES:
        raise ValueError(f"Unknown status: {status}")
    if dept_actual is not None and not dept_actual.strip():
        raise ValueError("Department must not be empty")
    if tags is not None:
        inquiry.tags = [t.strip() for t in tags if t.strip()]
    if dept_actual is not None:
        inquiry.dept_actual = dept_actual.strip()
    if status is not None:
        inquiry.status = status
    logger.info("Inquiry %s updated by staff", inquiry.id)
    return inquiry


@dataclass
class DraftResult:
    answer: Answer
    package: AnswerPackage
    sources: list[SearchSource]
    similar: list[SimilarInquiry]
    created: bool


def draft_answer(
    assistant: Assistant,
    inquiry: Inquiry,
    existing: Optional[Answer] = None,
    followup_qa_json: Optional[str] = None,
) -> DraftResult:
    """
    Build an answer package for the inquiry and store it on the unapproved answer.
    existing is updated in place when it is not yet approved; otherwise a new answer is created.
    followup_qa_json, when given, is the stored Q&A field (corrupt JSON counts as no answers).
    """
    text = inquiry.normalized_text
    sources = assistant.search_sources(text)
    similar = assistant.find_similar(text)
    followup_qa = (
        parse_followup_qa(followup_qa_json)
        if followup_qa_json is not None
        else inquiry.followup_qa
    )
    package = assistant.generate_answer_package(text, followup_qa, sources, similar)

    if existing is not None and not existing.is_approved:
        existing.update_draft(package, sources)
        answer, created = existing, False
    else:
        answer = Answer(
            inquiry_id=inquiry.id,
            draft_policy=package.policy,
            draft_answer_text=package.answer_text,
            draft_supplemental_text=package.supplemental_text,
            sources=list(sources),
        )
        created = True
    inquiry.status = STATUS_IN_PROGRESS
    logger.info(
        "Drafted answer %s for inquiry %s (%d sources, created=%s)",
        answer.id,
        inquiry.id,
        len(sources),
        created,
    )
    return DraftResult(
        answer=answer, package=package, sources=sources, similar=similar, created=created
    )


def approve_answer(
    inquiry: Inquiry,
    answer: Answer,
    final_answer_text: str,
    approver: str,
    at: Optional[datetime] = None,
) -> Answer:
    answer.approve(final_answer_text, approver, at)
    inquiry.status = STATUS_IN_PROGRESS
    return answer


def send_answer(
    inquiry: Inquiry,
    answer: Answer,
    channel: str = "email",
    at: Optional[datetime] = None,
) -> Answer:
    """Mark an approved answer as sent (delivery itself is outside this package)."""
    answer.mark_sent(channel, at)
    inquiry.status = STATUS_ANSWERED
    logger.info("Answer %s sent via %s", answer.id, channel)
    return answer
