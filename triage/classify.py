"""Rule-based classification: urgency, importance, department, tags and summary.

Every rule table is ordered and evaluated first-match-wins, so a text that
matches several tables resolves the same way every time.
"""

from triage.models import ClassificationResult

URGENCY_HIGH = ("緊急", "危険", "事故", "破裂", "爆発", "火事", "倒れ", "死", "血", "骨折", "至急")
URGENCY_LOW = ("教えて", "知りたい", "確認", "案内", "申込方法")

# (keywords, level); HIGH is checked before LOW
URGENCY_RULES: tuple[tuple[tuple[str, ...], str], ...] = (
    (URGENCY_HIGH, "HIGH"),
    (URGENCY_LOW, "LOW"),
)

IMPORTANCE_HIGH = ("道路", "水道", "信号", "ライフライン", "緊急", "危険")
IMPORTANCE_LENGTH_THRESHOLD = 100

DEPARTMENT_RULES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("ゴミ", "粗大", "分別", "可燃", "不燃", "資源", "リサイクル"), "環境課"),
    (("道路", "陥没", "信号", "舗装", "アスファルト", "歩道"), "道路管理課"),
    (("年金", "国民年金", "厚生年金", "老齢", "受給"), "市民課"),
    (("公園", "遊具", "花壇", "緑地", "草"), "公園管理課"),
    (("水道", "下水", "排水", "水漏れ", "断水"), "上下水道課"),
    (("イベント", "講座", "市民活動", "参加", "申込"), "市民活動推進課"),
    (("騒音", "振動", "悪臭", "環境被害"), "生活安全課"),
    (("子育て", "保育", "幼稚園", "育児", "児童"), "子育て支援課"),
    (("高齢", "介護", "福祉", "ケア", "ヘルパー"), "福祉課"),
    (("税金", "市税", "固定資産", "軽自動車税"), "税務課"),
)
DEFAULT_DEPARTMENT = "総務課"

TAG_VOCABULARY = (
    "ゴミ", "粗大ごみ", "道路", "年金", "公園", "水道", "イベント", "騒音",
    "子育て", "介護", "税金", "喫煙", "信号", "陥没", "申込", "手続き",
    "住所変更", "収集日", "費用", "緊急",
)
MAX_TAGS = 5

SUMMARY_LENGTH = 60
SUMMARY_SUFFIX = "に関するお問い合わせです。"


def _contains_any(text: str, keywords: tuple[str, ...]) -> bool:
    return any(k in text for k in keywords)


def detect_urgency(text: str) -> str:
    for keywords, level in URGENCY_RULES:
        if _contains_any(text, keywords):
            return level
    return "MED"


def detect_importance(text: str) -> str:
    if _contains_any(text, IMPORTANCE_HIGH):
        return "HIGH"
    if len(text) > IMPORTANCE_LENGTH_THRESHOLD:
        return "MED"
    return "LOW"


def detect_department(text: str) -> str:
    for keywords, dept in DEPARTMENT_RULES:
        if _contains_any(text, keywords):
            return dept
    return DEFAULT_DEPARTMENT


def detect_tags(text: str) -> list[str]:
    return [k for k in TAG_VOCABULARY if k in text][:MAX_TAGS]


def summarize(text: str) -> str:
    """First 60 characters (with an ellipsis when cut) plus the fixed suffix clause."""
    if len(text) > SUMMARY_LENGTH:
        return text[:SUMMARY_LENGTH] + "…" + SUMMARY_SUFFIX
    return text + SUMMARY_SUFFIX


def classify(text: str) -> ClassificationResult:
    """Deterministic classifier: raw inquiry text -> routing metadata. Never fails."""
    return ClassificationResult(
        summary=summarize(text),
        urgency=detect_urgency(text),
        importance=detect_importance(text),
        dept_suggested=detect_department(text),
        tags=detect_tags(text),
    )
