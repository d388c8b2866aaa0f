"""Follow-up questions: ask the citizen for the details staff need to answer.

An ordered decision list: the first matching domain category contributes its
questions, then generic questions fill the remaining slots. At most 3 are returned.
"""

import re

from triage.models import FollowupQuestion

MAX_QUESTIONS = 3

GARBAGE = re.compile(r"(ゴミ|ごみ|廃棄|粗大|不燃|可燃|資源ゴミ|回収|収集)")
ROAD = re.compile(r"(道路|陥没|穴|舗装|アスファルト|歩道|車道|段差|ひび|路面)")
NOISE = re.compile(r"(騒音|うるさい|振動|悪臭|臭い|においが|音がする|轟音)")
PARK = re.compile(r"(公園|遊具|ブランコ|滑り台|砂場|ベンチ|花壇|草木|雑草)")
WATER = re.compile(r"(水道|水漏れ|断水|下水|排水|詰まり|異臭|水が出ない|ガス管)")
PROCEDURE = re.compile(r"(年金|国民年金|厚生年金|受給|申請|手続|書類|マイナンバー|住所変更|転入|転出)")
CHILDCARE = re.compile(r"(子育て|保育|幼稚園|保育園|育児|児童|小学校|学童|入園)")

LOCATION_CUE = re.compile(r"(丁目|番地|交差点|公園|駅|付近|の前|場所|住所|地図)")
DATE_CUE = re.compile(r"(今日|昨日|先週|[0-9]+日|午前|午後|時頃|いつから)")
EVENT_CUE = re.compile(r"(いつ|発生|困って|気づい|始まっ)")
URGENCY_CUE = re.compile(r"(困って|危険|今すぐ|至急|緊急|早急)")

CATEGORY_QUESTIONS: tuple[tuple[re.Pattern, tuple[FollowupQuestion, ...]], ...] = (
    (
        GARBAGE,
        (
            FollowupQuestion(
                id="garbage_type",
                text="廃棄したいものの種類を教えてください",
                type="single",
                options=["可燃ごみ", "不燃ごみ", "資源ごみ（びん・缶・ペットボトル）", "粗大ごみ", "その他"],
            ),
            FollowupQuestion(
                id="garbage_volume",
                text="おおよその量・サイズを教えてください（例：45Lの袋3袋、タンス1台）",
                type="text",
            ),
        ),
    ),
    (
        ROAD,
        (
            FollowupQuestion(
                id="road_severity",
                text="損傷の程度を教えてください",
                type="single",
                options=["人や車が通れない（通行不可）", "通行できるが危険を感じる", "軽微なひびや段差がある"],
            ),
            FollowupQuestion(
                id="road_location",
                text="損傷箇所の詳しい場所（交差点名・目印など）を教えてください",
                type="text",
            ),
        ),
    ),
    (
        NOISE,
        (
            FollowupQuestion(
                id="noise_time",
                text="騒音・被害が発生する時間帯はいつですか？",
                type="multi",
                options=["早朝（6時前）", "日中（6〜18時）", "夜間（18〜22時）", "深夜（22時〜）", "不定期"],
            ),
            FollowupQuestion(
                id="noise_source",
                text="騒音・悪臭の原因として考えられるものを教えてください",
                type="single",
                options=["工事・建設作業", "近隣住民", "商業施設・店舗", "車両・交通", "原因不明"],
            ),
        ),
    ),
    (
        PARK,
        (
            FollowupQuestion(
                id="park_issue",
                text="問題の種類を教えてください",
                type="single",
                options=["遊具の破損・危険", "草木の手入れ（草刈り・剪定）", "清掃・ゴミ", "施設・設備の不具合", "その他"],
            ),
        ),
    ),
    (
        WATER,
        (
            FollowupQuestion(
                id="water_type",
                text="水道に関する問題の種類を教えてください",
                type="single",
                options=["水が出ない（断水）", "水漏れ・破裂している", "水の色・におい・味がおかしい", "下水・排水の詰まり", "その他"],
            ),
            FollowupQuestion(
                id="water_urgency",
                text="現在の状況はどの程度緊急ですか？",
                type="single",
                options=["今すぐ対応が必要（水が使えない・漏水中）", "本日中に対応してほしい", "数日内でよい"],
            ),
        ),
    ),
    (
        PROCEDURE,
        (
            FollowupQuestion(
                id="procedure_type",
                text="お手続きの種類を教えてください",
                type="single",
                options=["転入・転出・住所変更", "年金・給付金の申請", "各種証明書の発行", "マイナンバー関連", "その他"],
            ),
            FollowupQuestion(
                id="procedure_urgency",
                text="期限はありますか？",
                type="single",
                options=["今週中に必要", "今月中に必要", "急ぎではない"],
            ),
        ),
    ),
    (
        CHILDCARE,
        (
            FollowupQuestion(
                id="childcare_type",
                text="お子さんの年齢や状況を教えてください",
                type="single",
                options=["0〜2歳（乳幼児）", "3〜5歳（幼稚園・保育園年齢）", "小学生", "中学生以上"],
            ),
            FollowupQuestion(
                id="childcare_issue",
                text="ご相談の内容はどちらですか？",
                type="single",
                options=["保育園・幼稚園への入園", "学童保育", "子育て支援サービスの紹介", "その他"],
            ),
        ),
    ),
)

LOCATION_QUESTION = FollowupQuestion(
    id="location",
    text="問い合わせに関連する場所・住所があれば教えてください",
    type="text",
)
DATETIME_QUESTION = FollowupQuestion(
    id="datetime",
    text="問題に気づいた日時や時間帯を教えてください",
    type="text",
)
URGENCY_QUESTION = FollowupQuestion(
    id="urgency_level",
    text="どの程度の緊急対応が必要ですか？",
    type="single",
    options=["今すぐ（生命・安全に関わる）", "本日中", "数日内でよい", "急ぎではない"],
)


def _copy(q: FollowupQuestion) -> FollowupQuestion:
    return FollowupQuestion(
        id=q.id, text=q.text, type=q.type, options=list(q.options) if q.options else None
    )


def _category_questions(text: str) -> list[FollowupQuestion]:
    for pattern, questions in CATEGORY_QUESTIONS:
        if pattern.search(text):
            return [_copy(q) for q in questions]
    return []


def generate_followups(text: str) -> list[FollowupQuestion]:
    """Clarifying questions for an inquiry: domain questions first, then generic ones, max 3."""
    questions = _category_questions(text)

    if len(questions) < MAX_QUESTIONS and not LOCATION_CUE.search(text):
        questions.append(_copy(LOCATION_QUESTION))

    # Only ask for a date when the text describes something that happened
    if (
        len(questions) < MAX_QUESTIONS
        and not DATE_CUE.search(text)
        and EVENT_CUE.search(text)
    ):
        questions.append(_copy(DATETIME_QUESTION))

    if len(questions) < MAX_QUESTIONS and URGENCY_CUE.search(text):
        questions.append(_copy(URGENCY_QUESTION))

    return questions[:MAX_QUESTIONS]
