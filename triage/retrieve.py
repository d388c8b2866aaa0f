"""Retrieval over knowledge sources and past inquiries.

One ranking backbone (scoring.rank) feeds three surfaces: source search for
answer citations, self-help recommendations for citizens and the similar-case
panel for staff.
"""

from triage.models import (
    HistoryRecord,
    KnowledgeSource,
    Recommendation,
    SearchSource,
    SelfHelpResult,
    SimilarInquiry,
)
from triage.scoring import rank, truncate

MAX_SOURCES = 5
MAX_SIMILAR = 5
MAX_RECOMMENDATIONS = 3

SNIPPET_LENGTH = 200
RECOMMENDATION_BODY_LENGTH = 150
SIMILAR_SUMMARY_FALLBACK_LENGTH = 80

FALLBACK_RECOMMENDATION = Recommendation(
    title="市のホームページをご確認ください",
    body="各種手続きや問い合わせ情報は市の公式ホームページに掲載されています。",
    url="https://www.city.example.jp",
)
SELF_HELP_DISCLAIMER = (
    "この情報はAIが自動生成したものです。内容に不正確な部分が含まれる可能性があります。"
    "最新情報は各担当窓口にご確認ください。"
)


def _source_text(source: KnowledgeSource) -> str:
    return source.name + " " + source.content


def search_sources(text: str, sources: list[KnowledgeSource]) -> list[SearchSource]:
    """Knowledge sources ranked by lexical score against name + content (top 5, score > 0)."""
    return [
        SearchSource(
            source_id=s.id,
            type=s.type,
            title=s.name,
            uri=s.uri,
            snippet=truncate(s.content, SNIPPET_LENGTH),
            score=sc,
        )
        for s, sc in rank(text, sources, _source_text, limit=MAX_SOURCES)
    ]


def recommend_self_help(text: str, sources: list[KnowledgeSource]) -> SelfHelpResult:
    """Top 3 sources as citizen-facing recommendations; a static pointer when nothing matches."""
    recommendations = [
        Recommendation(
            title=s.name,
            body=truncate(s.content, RECOMMENDATION_BODY_LENGTH),
            url=s.uri or None,
        )
        for s, _ in rank(text, sources, _source_text, limit=MAX_RECOMMENDATIONS)
    ]
    if not recommendations:
        recommendations.append(FALLBACK_RECOMMENDATION)
    return SelfHelpResult(recommendations=recommendations, disclaimer=SELF_HELP_DISCLAIMER)


def _history_text(record: HistoryRecord) -> str:
    return record.normalized_text + " " + record.summary


def find_similar(text: str, history: list[HistoryRecord]) -> list[SimilarInquiry]:
    """Past answered inquiries ranked by lexical score against normalized text + summary."""
    return [
        SimilarInquiry(
            inquiry_id=r.id,
            score=sc,
            summary=r.summary or r.normalized_text[:SIMILAR_SUMMARY_FALLBACK_LENGTH],
            final_answer_text=r.final_answer_text or None,
        )
        for r, sc in rank(text, history, _history_text, limit=MAX_SIMILAR)
    ]
