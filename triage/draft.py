"""Answer package: policy rationale, templated answer text, supplement and citations.

Staff edit answer_text before sending, so section order and truncation lengths
stay fixed from one draft to the next.
"""

from triage.classify import detect_department, detect_urgency
from triage.models import (
    AnswerPackage,
    AnswerPolicy,
    Citation,
    FollowupAnswer,
    SearchSource,
    SimilarInquiry,
)
from triage.scoring import truncate

INQUIRY_ECHO_LENGTH = 100
SOURCE_SNIPPET_LENGTH = 200
SIMILAR_ANSWER_LENGTH = 200
MAX_SOURCES_IN_ANSWER = 3

GREETING = "お問い合わせありがとうございます。"
CLOSING = "ご不明な点がございましたら、お気軽にお問い合わせください。"
GENERIC_REASONING = "類似事例と一般的な行政手続きの知識に基づいています。"
HIGH_URGENCY_CAUTIONS = ("緊急案件として優先対応が必要です。", "現地確認が必要な場合があります。")
DEFAULT_CAUTIONS = ("内容によっては現地確認や追加書類が必要な場合があります。",)
ONSITE_ACTION = "必要に応じて現地確認"


def build_policy(
    text: str, followup_qa: list[FollowupAnswer], sources: list[SearchSource]
) -> AnswerPolicy:
    dept = detect_department(text)
    urgency = detect_urgency(text)
    if sources:
        reasoning = "、".join(s.title for s in sources) + "の情報を参照しました。"
    else:
        reasoning = GENERIC_REASONING
    return AnswerPolicy(
        conclusion=f"{dept}として対応し、関連情報を提供します。",
        reasoning=reasoning,
        missing_info=[qa.question for qa in followup_qa if not qa.answer],
        cautions=list(HIGH_URGENCY_CAUTIONS if urgency == "HIGH" else DEFAULT_CAUTIONS),
        next_actions=[f"担当部署（{dept}）へ連絡", ONSITE_ACTION],
    )


def build_answer_text(
    text: str, sources: list[SearchSource], similar: list[SimilarInquiry]
) -> str:
    parts = [GREETING + "\n\n"]
    parts.append(f"【ご質問の内容】\n{truncate(text, INQUIRY_ECHO_LENGTH)}\n\n")

    if sources:
        parts.append("【ご案内】\n")
        for src in sources[:MAX_SOURCES_IN_ANSWER]:
            parts.append(f"■ {src.title}\n{src.snippet[:SOURCE_SNIPPET_LENGTH]}\n\n")
    else:
        parts.append(f"担当窓口（{detect_department(text)}）より詳しいご案内をいたします。\n\n")

    if similar and similar[0].final_answer_text:
        past = similar[0].final_answer_text[:SIMILAR_ANSWER_LENGTH]
        parts.append(f"【参考：過去の類似回答】\n{past}\n\n")

    parts.append(CLOSING)
    return "".join(parts)


def build_supplemental_text(sources: list[SearchSource]) -> str:
    if not sources:
        return ""
    lines = [f"・{s.title}（{s.uri}）" if s.uri else f"・{s.title}" for s in sources]
    return "【参照情報】\n" + "\n".join(lines)


def compose_answer_package(
    text: str,
    followup_qa: list[FollowupAnswer],
    sources: list[SearchSource],
    similar: list[SimilarInquiry],
) -> AnswerPackage:
    """Deterministic draft answer package from the inquiry and the retrievers' output."""
    return AnswerPackage(
        policy=build_policy(text, followup_qa, sources),
        answer_text=build_answer_text(text, sources, similar),
        supplemental_text=build_supplemental_text(sources),
        citations=[Citation(claim=s.title + "に基づく情報", source_id=s.source_id) for s in sources],
    )
