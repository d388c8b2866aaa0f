"""Value types for inquiries, knowledge sources, answers and pipeline outputs.

Storage keeps tags, follow-up answers, policy and cited sources as JSON text;
the helpers here convert at that boundary so the pipeline only sees dataclasses.
"""

import hashlib
import json
import uuid
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Optional

LEVELS = ("HIGH", "MED", "LOW")
CHANNELS = ("web", "email", "phone")
SEND_CHANNELS = ("email", "phone", "none")
QUESTION_TYPES = ("text", "single", "multi")

STATUS_NEW = "NEW"
STATUS_IN_PROGRESS = "IN_PROGRESS"
STATUS_ANSWERED = "ANSWERED"
STATUSES = (STATUS_NEW, STATUS_IN_PROGRESS, STATUS_ANSWERED)


class AnswerStateError(ValueError):
    """Answer lifecycle violation (edit after approval, send before approval)."""


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Pipeline outputs
# ---------------------------------------------------------------------------


@dataclass
class ClassificationResult:
    """Routing metadata: summary, urgency, importance, suggested department, tags."""

    summary: str
    urgency: str
    importance: str
    dept_suggested: str
    tags: list[str] = field(default_factory=list)


@dataclass
class Recommendation:
    title: str
    body: str
    url: Optional[str] = None


@dataclass
class SelfHelpResult:
    recommendations: list[Recommendation]
    disclaimer: str


@dataclass
class FollowupQuestion:
    id: str
    text: str
    type: str
    options: Optional[list[str]] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"id": self.id, "text": self.text, "type": self.type}
        if self.options is not None:
            out["options"] = list(self.options)
        return out


@dataclass
class FollowupAnswer:
    """A follow-up question as asked, with the citizen's answer (may be empty)."""

    question: str
    answer: str = ""


@dataclass
class SimilarInquiry:
    inquiry_id: str
    score: float
    summary: str
    final_answer_text: Optional[str] = None


@dataclass
class SearchSource:
    source_id: str
    type: str
    title: str
    uri: str
    snippet: str
    score: float

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SearchSource":
        return cls(
            source_id=str(data.get("source_id", "")),
            type=str(data.get("type", "text")),
            title=str(data.get("title", "")),
            uri=str(data.get("uri", "")),
            snippet=str(data.get("snippet", "")),
            score=float(data.get("score", 0.0)),
        )


@dataclass
class AnswerPolicy:
    conclusion: str
    reasoning: str
    missing_info: list[str] = field(default_factory=list)
    cautions: list[str] = field(default_factory=list)
    next_actions: list[str] = field(default_factory=list)


@dataclass
class Citation:
    claim: str
    source_id: str


@dataclass
class AnswerPackage:
    """Draft bundle for staff review: policy rationale, answer text, supplement, citations."""

    policy: AnswerPolicy
    answer_text: str
    supplemental_text: str
    citations: list[Citation] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# ---------------------------------------------------------------------------
# Stored entities
# ---------------------------------------------------------------------------


def content_hash(content: str) -> str:
    """SHA-256 hex digest of knowledge-source content."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


@dataclass
class KnowledgeSource:
    id: str
    type: str
    name: str
    uri: str
    content: str
    content_hash: str = ""
    last_synced_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not self.content_hash:
            self.content_hash = content_hash(self.content)

    def with_content(self, content: str) -> "KnowledgeSource":
        """Edited copy; the hash always follows the content."""
        return replace(self, content=content, content_hash=content_hash(content))


@dataclass
class HistoryRecord:
    """Past inquiry with a final answer, as read for similar-case retrieval."""

    id: str
    normalized_text: str
    summary: str
    final_answer_text: str


@dataclass
class Inquiry:
    raw_text: str
    normalized_text: str
    summary: str
    urgency: str
    importance: str
    dept_suggested: str
    dept_actual: str
    tags: list[str] = field(default_factory=list)
    channel: str = "web"
    locale: str = "ja"
    status: str = STATUS_NEW
    followup_qa: list[FollowupAnswer] = field(default_factory=list)
    needs_reply: bool = False
    contact_name: str = ""
    contact_email: str = ""
    contact_phone: str = ""
    address_text: str = ""
    lat: Optional[float] = None
    lng: Optional[float] = None
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class Answer:
    """Draft and final answer for one inquiry. Frozen once approved_at is set."""

    inquiry_id: str
    draft_policy: AnswerPolicy
    draft_answer_text: str
    draft_supplemental_text: str
    sources: list[SearchSource] = field(default_factory=list)
    final_answer_text: str = ""
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    sent_channel: Optional[str] = None
    sent_at: Optional[datetime] = None
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)

    @property
    def is_approved(self) -> bool:
        return self.approved_at is not None

    def update_draft(self, package: AnswerPackage, sources: list[SearchSource]) -> None:
        if self.is_approved:
            raise AnswerStateError(f"Answer {self.id} is approved and can no longer change")
        self.draft_policy = package.policy
        self.draft_answer_text = package.answer_text
        self.draft_supplemental_text = package.supplemental_text
        self.sources = list(sources)

    def approve(self, final_answer_text: str, approver: str, at: Optional[datetime] = None) -> None:
        if self.is_approved:
            raise AnswerStateError(f"Answer {self.id} is already approved")
        if not final_answer_text.strip():
            raise AnswerStateError("Final answer text must not be empty")
        self.final_answer_text = final_answer_text
        self.approved_by = approver
        self.approved_at = at or utcnow()

    def mark_sent(self, channel: str = "email", at: Optional[datetime] = None) -> None:
        if not self.is_approved:
            raise AnswerStateError(f"Answer {self.id} is not approved yet")
        if channel not in SEND_CHANNELS:
            raise AnswerStateError(f"Unknown send channel: {channel}")
        self.sent_channel = channel
        self.sent_at = at or utcnow()


# ---------------------------------------------------------------------------
# JSON field helpers (storage boundary)
# ---------------------------------------------------------------------------


def parse_tags(raw: Optional[str]) -> list[str]:
    """Tags stored as a JSON list; falls back to comma-separated text."""
    if not raw:
        return []
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        return [t.strip() for t in raw.split(",") if t.strip()]
    return [str(t) for t in parsed] if isinstance(parsed, list) else []


def parse_followup_qa(raw: Optional[str]) -> list[FollowupAnswer]:
    """Stored follow-up Q&A list. Corrupt or unexpected JSON is treated as empty."""
    if not raw:
        return []
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        return []
    if not isinstance(parsed, list):
        return []
    out = []
    for item in parsed:
        if isinstance(item, dict) and "question" in item:
            out.append(
                FollowupAnswer(
                    question=str(item["question"]),
                    answer=str(item.get("answer") or ""),
                )
            )
    return out


def followup_qa_to_json(items: list[FollowupAnswer]) -> str:
    return json.dumps([asdict(i) for i in items], ensure_ascii=False)


def policy_to_json(policy: AnswerPolicy) -> str:
    return json.dumps(asdict(policy), ensure_ascii=False)


def sources_to_json(sources: list[SearchSource]) -> str:
    return json.dumps([asdict(s) for s in sources], ensure_ascii=False)


def parse_sources(raw: Optional[str]) -> list[SearchSource]:
    if not raw:
        return []
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        return []
    if not isinstance(parsed, list):
        return []
    return [SearchSource.from_dict(s) for s in parsed if isinstance(s, dict)]
