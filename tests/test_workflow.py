"""Unit tests for inquiry intake and the draft → approve → send lifecycle."""

from datetime import datetime, timezone

import pytest

from triage.config import Settings
from triage.engine import Assistant
from triage.models import (
    STATUS_ANSWERED,
    STATUS_IN_PROGRESS,
    STATUS_NEW,
    AnswerStateError,
    FollowupAnswer,
    HistoryRecord,
    KnowledgeSource,
    followup_qa_to_json,
)
from triage.workflow import (
    MAX_INQUIRY_LENGTH,
    approve_answer,
    draft_answer,
    import_email,
    import_phone,
    parse_email,
    send_answer,
    submit_inquiry,
    update_inquiry,
)

SOURCES = [
    KnowledgeSource(
        id="road_repair",
        type="text",
        name="道路の損傷・陥没の通報",
        uri="",
        content="道路の陥没や損傷を見つけた場合は道路管理課へ通報してください。",
    ),
]
HISTORY = [
    HistoryRecord("inq-002", "近所の道路が陥没しています", "道路陥没の通報", "現地を確認し補修します。"),
]

EMAIL = """From: "山田 太郎" <yamada@example.com>
To: info@city.example.jp
Subject: 道路の陥没について

3丁目の道路が陥没しています。
対応をお願いします。
"""


@pytest.fixture
def assistant() -> Assistant:
    return Assistant(
        Settings(),
        list_sources=lambda: list(SOURCES),
        list_history=lambda limit: list(HISTORY),
    )


def test_submit_inquiry_classifies_once(assistant):
    inquiry = submit_inquiry(assistant, "  近所の道路に大きな穴が開いていて\n危険です ")
    assert inquiry.status == STATUS_NEW
    assert inquiry.urgency == "HIGH"
    assert inquiry.dept_suggested == inquiry.dept_actual == "道路管理課"
    assert inquiry.normalized_text == "近所の道路に大きな穴が開いていて 危険です"
    assert inquiry.channel == "web"


def test_submit_inquiry_drops_contact_without_reply(assistant):
    inquiry = submit_inquiry(
        assistant, "公園のベンチが壊れています", contact_name="山田", contact_email="a@example.com"
    )
    assert inquiry.contact_name == ""
    assert inquiry.contact_email == ""

    inquiry = submit_inquiry(
        assistant,
        "公園のベンチが壊れています",
        needs_reply=True,
        contact_name="山田",
        contact_email="a@example.com",
    )
    assert inquiry.contact_email == "a@example.com"


@pytest.mark.parametrize("text,channel", [("   ", "web"), ("道路", "fax")])
def test_submit_inquiry_rejects_bad_input(assistant, text, channel):
    with pytest.raises(ValueError):
        submit_inquiry(assistant, text, channel=channel)


def test_parse_email():
    subject, from_name, body = parse_email(EMAIL)
    assert subject == "道路の陥没について"
    assert from_name == "山田 太郎"
    assert body == "3丁目の道路が陥没しています。\n対応をお願いします。"


def test_parse_email_plain_text():
    subject, from_name, body = parse_email("ゴミの日を教えてください")
    assert (subject, from_name) == ("", "")
    assert body == "ゴミの日を教えてください"


def test_import_email_prefixes_subject(assistant):
    inquiry = import_email(assistant, EMAIL)
    assert inquiry.raw_text.startswith("件名: 道路の陥没について\n\n3丁目")
    assert inquiry.channel == "email"
    assert inquiry.contact_name == "山田 太郎"
    assert inquiry.dept_suggested == "道路管理課"


def test_draft_creates_then_updates(assistant):
    inquiry = submit_inquiry(assistant, "道路 陥没しています")
    first = draft_answer(assistant, inquiry)
    assert first.created
    assert inquiry.status == STATUS_IN_PROGRESS
    assert [s.source_id for s in first.answer.sources] == ["road_repair"]
    assert [s.inquiry_id for s in first.similar] == ["inq-002"]
    assert "現地を確認し補修します。" in first.answer.draft_answer_text

    second = draft_answer(assistant, inquiry, existing=first.answer)
    assert not second.created
    assert second.answer is first.answer


def test_draft_uses_stored_followup_answers(assistant):
    inquiry = submit_inquiry(assistant, "道路 陥没しています")
    stored = followup_qa_to_json(
        [FollowupAnswer("損傷の程度を教えてください", ""), FollowupAnswer("場所", "3丁目")]
    )
    result = draft_answer(assistant, inquiry, followup_qa_json=stored)
    assert result.answer.draft_policy.missing_info == ["損傷の程度を教えてください"]


def test_draft_with_corrupt_followup_json(assistant):
    inquiry = submit_inquiry(assistant, "道路 陥没しています")
    result = draft_answer(assistant, inquiry, followup_qa_json="{not json")
    assert result.answer.draft_policy.missing_info == []


def test_approved_answer_is_immutable(assistant):
    inquiry = submit_inquiry(assistant, "道路 陥没しています")
    answer = draft_answer(assistant, inquiry).answer
    at = datetime(2025, 1, 8, 9, 0, tzinfo=timezone.utc)
    approve_answer(inquiry, answer, "補修いたします。", "staff-1", at=at)
    assert answer.approved_at == at
    assert answer.final_answer_text == "補修いたします。"

    with pytest.raises(AnswerStateError):
        approve_answer(inquiry, answer, "別の回答", "staff-2")
    result = draft_answer(assistant, inquiry, existing=answer)
    # A fresh draft is created; the approved one is untouched
    assert result.created
    assert answer.final_answer_text == "補修いたします。"


def test_approve_requires_text(assistant):
    inquiry = submit_inquiry(assistant, "道路 陥没しています")
    answer = draft_answer(assistant, inquiry).answer
    with pytest.raises(AnswerStateError):
        approve_answer(inquiry, answer, "   ", "staff-1")


def test_send_before_approve_is_rejected(assistant):
    inquiry = submit_inquiry(assistant, "道路 陥没しています")
    answer = draft_answer(assistant, inquiry).answer
    with pytest.raises(AnswerStateError):
        send_answer(inquiry, answer)
    assert answer.sent_at is None


def test_send_marks_inquiry_answered(assistant):
    inquiry = submit_inquiry(assistant, "道路 陥没しています")
    answer = draft_answer(assistant, inquiry).answer
    approve_answer(inquiry, answer, "補修いたします。", "staff-1")
    send_answer(inquiry, answer, channel="phone")
    assert answer.sent_channel == "phone"
    assert inquiry.status == STATUS_ANSWERED

    with pytest.raises(AnswerStateError):
        answer.update_draft(draft_answer(assistant, inquiry).package, [])


def test_submit_inquiry_rejects_overlong_text(assistant):
    submit_inquiry(assistant, "あ" * MAX_INQUIRY_LENGTH)
    with pytest.raises(ValueError):
        submit_inquiry(assistant, "あ" * (MAX_INQUIRY_LENGTH + 1))


def test_import_email_is_not_length_capped(assistant):
    raw = "Subject: 長文\n\n" + "道路" * MAX_INQUIRY_LENGTH
    assert import_email(assistant, raw).channel == "email"


def test_import_phone_keeps_caller_details(assistant):
    inquiry = import_phone(
        assistant, "3丁目の道路が陥没しています", caller_name="佐藤", caller_phone="090-1111-2222"
    )
    assert inquiry.channel == "phone"
    assert inquiry.needs_reply
    assert inquiry.contact_name == "佐藤"
    assert inquiry.contact_phone == "090-1111-2222"
    assert inquiry.dept_suggested == "道路管理課"


def test_import_phone_without_callback_number(assistant):
    inquiry = import_phone(assistant, "公園のベンチが壊れています", caller_name="佐藤")
    assert not inquiry.needs_reply
    assert inquiry.contact_name == "佐藤"
    assert inquiry.contact_phone == ""


def test_import_phone_rejects_empty_and_overlong_text(assistant):
    with pytest.raises(ValueError):
        import_phone(assistant, "  ")
    with pytest.raises(ValueError):
        import_phone(assistant, "あ" * (MAX_INQUIRY_LENGTH + 1))


def test_update_inquiry_edits_staff_fields_only(assistant):
    inquiry = submit_inquiry(assistant, "近所の道路に大きな穴が開いていて危険です")
    update_inquiry(inquiry, tags=["道路", " 補修 ", ""], dept_actual="土木課", status=STATUS_IN_PROGRESS)
    assert inquiry.tags == ["道路", "補修"]
    assert inquiry.dept_actual == "土木課"
    assert inquiry.dept_suggested == "道路管理課"
    assert inquiry.urgency == "HIGH"
    assert inquiry.status == STATUS_IN_PROGRESS


@pytest.mark.parametrize("changes", [{"status": "CLOSED"}, {"dept_actual": "  "}])
def test_update_inquiry_rejects_invalid_values(assistant, changes):
    inquiry = submit_inquiry(assistant, "公園のベンチが壊れています")
    with pytest.raises(ValueError):
        update_inquiry(inquiry, **changes)
    assert inquiry.status == STATUS_NEW
    assert inquiry.dept_actual == inquiry.dept_suggested
