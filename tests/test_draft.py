"""Unit tests for answer package composition and draft guardrails."""

from triage.draft import (
    CLOSING,
    DEFAULT_CAUTIONS,
    GENERIC_REASONING,
    GREETING,
    HIGH_URGENCY_CAUTIONS,
    compose_answer_package,
)
from triage.guardrails import run_draft_checks
from triage.models import Citation, FollowupAnswer, SearchSource, SimilarInquiry


def _src(source_id: str = "oversized_garbage", snippet: str = "粗大ごみは事前申込制です。", uri: str = "") -> SearchSource:
    return SearchSource(
        source_id=source_id,
        type="url" if uri else "text",
        title="粗大ごみ申込案内",
        uri=uri,
        snippet=snippet,
        score=1.0,
    )


def test_single_source_no_similar():
    text = "粗大ごみの出し方を教えてください"
    package = compose_answer_package(text, [], [_src()], [])
    assert package.answer_text.startswith(GREETING)
    assert package.answer_text.endswith(CLOSING)
    assert "【ご質問の内容】\n" + text in package.answer_text
    assert "■ 粗大ごみ申込案内\n粗大ごみは事前申込制です。" in package.answer_text
    assert "過去の類似回答" not in package.answer_text
    assert package.policy.missing_info == []
    assert package.policy.reasoning == "粗大ごみ申込案内の情報を参照しました。"
    assert package.citations == [Citation(claim="粗大ごみ申込案内に基づく情報", source_id="oversized_garbage")]


def test_no_sources_points_to_department():
    package = compose_answer_package("年金の住所変更について", [], [], [])
    assert "担当窓口" in package.answer_text
    assert "【ご案内】" not in package.answer_text
    assert package.policy.reasoning == GENERIC_REASONING
    assert package.supplemental_text == ""
    assert package.citations == []


def test_snippet_and_echo_are_truncated():
    text = "粗大ごみ" + "あ" * 200
    package = compose_answer_package(text, [], [_src(snippet="い" * 300)], [])
    assert text[:100] + "…" in package.answer_text
    assert "い" * 200 + "\n" in package.answer_text
    assert "い" * 201 not in package.answer_text


def test_at_most_three_sources_in_answer_text():
    sources = [
        SearchSource(f"k{i}", "text", f"案内{i}", "", f"本文{i}", 0.5) for i in range(5)
    ]
    package = compose_answer_package("ゴミ", [], sources, [])
    assert package.answer_text.count("■ ") == 3
    assert len(package.citations) == 5


def test_similar_answer_is_quoted():
    similar = [SimilarInquiry("inq-1", 1.0, "粗大ごみ", "事前に電話で申し込んでください。")]
    package = compose_answer_package("粗大ごみの出し方", [], [], similar)
    assert "【参考：過去の類似回答】\n事前に電話で申し込んでください。" in package.answer_text


def test_similar_without_final_answer_is_skipped():
    similar = [SimilarInquiry("inq-1", 1.0, "粗大ごみ", None)]
    package = compose_answer_package("粗大ごみの出し方", [], [], similar)
    assert "過去の類似回答" not in package.answer_text


def test_missing_info_lists_unanswered_questions():
    qa = [
        FollowupAnswer(question="場所はどこですか", answer="3丁目"),
        FollowupAnswer(question="いつからですか", answer=""),
    ]
    package = compose_answer_package("道路に穴", qa, [], [])
    assert package.policy.missing_info == ["いつからですか"]


def test_high_urgency_cautions():
    package = compose_answer_package("道路に穴が開いていて危険です", [], [], [])
    assert package.policy.cautions == list(HIGH_URGENCY_CAUTIONS)
    assert package.policy.conclusion.startswith("道路管理課")
    assert package.policy.next_actions[0] == "担当部署（道路管理課）へ連絡"


def test_default_cautions():
    package = compose_answer_package("粗大ごみの出し方", [], [], [])
    assert package.policy.cautions == list(DEFAULT_CAUTIONS)


def test_supplemental_text_lists_sources_with_uri():
    sources = [_src(), _src("citizen_events", uri="https://www.city.example.jp/events")]
    package = compose_answer_package("ゴミ", [], sources, [])
    assert package.supplemental_text.startswith("【参照情報】\n")
    assert "・粗大ごみ申込案内（https://www.city.example.jp/events）" in package.supplemental_text


def test_guardrails_pass_for_composed_package():
    sources = [_src()]
    package = compose_answer_package("粗大ごみの出し方を教えてください", [], sources, [])
    ok, failures = run_draft_checks(package, sources)
    assert ok
    assert failures == []


def test_guardrails_flag_unknown_citation_and_pii():
    sources = [_src()]
    package = compose_answer_package("連絡先は yamada@example.com です", [], sources, [])
    package.citations.append(Citation(claim="?", source_id="unknown"))
    ok, failures = run_draft_checks(package, sources)
    assert not ok
    assert "citation_unknown_source" in failures
    assert "possible_pii_in_draft" in failures


def test_guardrails_flag_empty_answer():
    package = compose_answer_package("ゴミ", [], [], [])
    package.answer_text = "  "
    ok, failures = run_draft_checks(package, [])
    assert failures == ["answer_empty"]
