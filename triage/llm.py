"""
Generative engine: prompts, OpenAI transport and response parsing.

Every prompt is built from redacted text. Responses are expected to be a JSON
object matching the schema embedded in the prompt; anything else raises
GenerationError so the caller can fall back to the rule engine.
"""

import json
from typing import Any, Callable

from triage.config import Settings
from triage.models import (
    LEVELS,
    QUESTION_TYPES,
    AnswerPackage,
    AnswerPolicy,
    Citation,
    ClassificationResult,
    FollowupAnswer,
    FollowupQuestion,
    Recommendation,
    SearchSource,
    SelfHelpResult,
    SimilarInquiry,
)
from triage.redact import redact

Completer = Callable[[str], str]

MAX_FOLLOWUPS = 3
MAX_RECOMMENDATIONS = 3
SOURCE_CONTEXT_LENGTH = 300
MAX_SIMILAR_IN_PROMPT = 2


class GenerationError(RuntimeError):
    """Generative call failed or returned a response that does not match the schema."""


def _client(settings: Settings):
    """Lazy import so the rule engine works without touching the OpenAI SDK."""
    from openai import OpenAI

    return OpenAI(
        api_key=settings.api_key,
        timeout=settings.timeout_s,
        max_retries=settings.max_retries,
    )


def complete(prompt: str, settings: Settings) -> str:
    """Single-turn completion. Raises GenerationError on an empty reply; SDK errors propagate."""
    client = _client(settings)
    resp = client.chat.completions.create(
        model=settings.model,
        messages=[{"role": "user", "content": prompt}],
        max_tokens=settings.max_tokens,
        temperature=settings.temperature,
    )
    if resp.choices and resp.choices[0].message.content:
        return resp.choices[0].message.content.strip()
    raise GenerationError("Model returned no content")


def make_completer(settings: Settings) -> Completer:
    return lambda prompt: complete(prompt, settings)


def extract_json_object(raw: str) -> dict[str, Any]:
    """
    Parse the outermost {...} in raw. Models sometimes wrap JSON in prose or code fences.
    """
    if not raw:
        raise GenerationError("Empty model output")
    start = raw.find("{")
    end = raw.rfind("}")
    if start == -1 or end == -1 or end <= start:
        raise GenerationError("No JSON object found in model output")
    try:
        payload = json.loads(raw[start : end + 1])
    except ValueError as exc:
        raise GenerationError(f"Invalid JSON in model output: {exc}") from exc
    if not isinstance(payload, dict):
        raise GenerationError("Model output is not a JSON object")
    return payload


def _str(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str):
        raise GenerationError(f"{key} must be a string")
    return value


def _str_list(payload: dict[str, Any], key: str) -> list[str]:
    value = payload.get(key, [])
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise GenerationError(f"{key} must be a list of strings")
    return value


def _level(payload: dict[str, Any], key: str) -> str:
    value = _str(payload, key).strip().upper()
    if value not in LEVELS:
        raise GenerationError(f"{key} must be one of {LEVELS}, got {value!r}")
    return value


# ---------------------------------------------------------------------------
# Summarize and route
# ---------------------------------------------------------------------------


def build_summary_prompt(text: str) -> str:
    return f"""以下の行政問い合わせを分析してください。JSONのみ返してください（コードブロック不要）。

問い合わせ: {redact(text)}

出力形式:
{{
  "summary": "80文字以内のサマリー",
  "urgency": "HIGH|MED|LOW",
  "importance": "HIGH|MED|LOW",
  "deptSuggested": "担当部署名",
  "tagSuggestions": ["タグ1", "タグ2"]
}}"""


def parse_summary(raw: str) -> ClassificationResult:
    payload = extract_json_object(raw)
    summary = _str(payload, "summary").strip()
    dept = _str(payload, "deptSuggested").strip()
    if not summary or not dept:
        raise GenerationError("summary and deptSuggested must not be empty")
    return ClassificationResult(
        summary=summary,
        urgency=_level(payload, "urgency"),
        importance=_level(payload, "importance"),
        dept_suggested=dept,
        tags=_str_list(payload, "tagSuggestions")[:5],
    )


def generate_summary(text: str, complete: Completer) -> ClassificationResult:
    return parse_summary(complete(build_summary_prompt(text)))


# ---------------------------------------------------------------------------
# Self-help recommendations
# ---------------------------------------------------------------------------


def build_self_help_prompt(text: str, candidates: SelfHelpResult) -> str:
    context = "\n\n".join(f"【{r.title}】\n{r.body}" for r in candidates.recommendations)
    return f"""行政窓口の問い合わせに対し、自己解決できる情報を3件以内で提案してください。JSONのみ返してください。

問い合わせ: {redact(text)}

参考情報:
{context}

出力形式:
{{
  "recommendations": [
    {{"title": "タイトル", "body": "案内文（200文字以内）", "url": "URLまたは空文字"}}
  ],
  "disclaimer": "注意書き"
}}"""


def parse_self_help(raw: str) -> SelfHelpResult:
    payload = extract_json_object(raw)
    items = payload.get("recommendations")
    if not isinstance(items, list):
        raise GenerationError("recommendations must be a list")
    recommendations = []
    for item in items[:MAX_RECOMMENDATIONS]:
        if not isinstance(item, dict):
            raise GenerationError("recommendation must be an object")
        url = item.get("url") or None
        recommendations.append(
            Recommendation(
                title=_str(item, "title"),
                body=_str(item, "body"),
                url=str(url) if url else None,
            )
        )
    if not recommendations:
        raise GenerationError("No recommendations in model output")
    return SelfHelpResult(recommendations=recommendations, disclaimer=_str(payload, "disclaimer"))


def generate_self_help(text: str, candidates: SelfHelpResult, complete: Completer) -> SelfHelpResult:
    """Rewrite lexical candidates into citizen-facing guidance."""
    return parse_self_help(complete(build_self_help_prompt(text, candidates)))


# ---------------------------------------------------------------------------
# Follow-up questions
# ---------------------------------------------------------------------------


def build_followups_prompt(text: str) -> str:
    return f"""行政への問い合わせに対し、回答に必要な追加情報を聞く質問を0〜3件生成してください。不要なら空配列。JSONのみ返してください。

問い合わせ: {redact(text)}

出力形式:
{{
  "questions": [
    {{"id": "q1", "text": "質問文", "type": "text|single|multi", "options": ["選択肢1"] }}
  ]
}}"""


def parse_followups(raw: str) -> list[FollowupQuestion]:
    payload = extract_json_object(raw)
    items = payload.get("questions")
    if not isinstance(items, list):
        raise GenerationError("questions must be a list")
    questions = []
    for idx, item in enumerate(items[:MAX_FOLLOWUPS], start=1):
        if not isinstance(item, dict):
            raise GenerationError("question must be an object")
        qtype = str(item.get("type", "text"))
        if qtype not in QUESTION_TYPES:
            raise GenerationError(f"Unknown question type: {qtype}")
        options = item.get("options")
        if qtype == "text":
            options = None
        elif not isinstance(options, list) or not options:
            raise GenerationError(f"{qtype} question needs options")
        questions.append(
            FollowupQuestion(
                id=str(item.get("id") or f"q{idx}"),
                text=_str(item, "text"),
                type=qtype,
                options=[str(o) for o in options] if options else None,
            )
        )
    return questions


def generate_followups(text: str, complete: Completer) -> list[FollowupQuestion]:
    return parse_followups(complete(build_followups_prompt(text)))


# ---------------------------------------------------------------------------
# Answer package
# ---------------------------------------------------------------------------


def build_answer_prompt(
    text: str,
    followup_qa: list[FollowupAnswer],
    sources: list[SearchSource],
    similar: list[SimilarInquiry],
) -> str:
    source_context = "\n".join(
        f"[{s.source_id}] {s.title}: {s.snippet[:SOURCE_CONTEXT_LENGTH]}" for s in sources
    )
    similar_context = "\n".join(
        f"類似事例(スコア{c.score}): {redact(c.summary)}\n過去回答: {redact(c.final_answer_text)}"
        for c in [c for c in similar if c.final_answer_text][:MAX_SIMILAR_IN_PROMPT]
    )
    qa_context = "\n".join(f"Q: {qa.question}\nA: {redact(qa.answer)}" for qa in followup_qa)
    return f"""あなたは行政職員のAIアシスタントです。以下の問い合わせに対する回答案を作成してください。JSONのみ返してください。

【問い合わせ】
{redact(text)}

【追加情報】
{qa_context or '（なし）'}

【参照ソース】
{source_context or '（なし）'}

【類似過去事例】
{similar_context or '（なし）'}

出力形式:
{{
  "policy": {{
    "conclusion": "回答方針",
    "reasoning": "根拠",
    "missingInfo": ["不足情報"],
    "cautions": ["注意点"],
    "nextActions": ["次のアクション"]
  }},
  "answerText": "住民への回答文（です・ます調）",
  "supplementalText": "補足情報",
  "citations": [{{"claim": "根拠となる主張", "sourceId": "ソースID"}}]
}}"""


def parse_answer_package(raw: str, sources: list[SearchSource]) -> AnswerPackage:
    """Parse the model's package; citations must point at sources that were supplied."""
    payload = extract_json_object(raw)
    policy = payload.get("policy")
    if not isinstance(policy, dict):
        raise GenerationError("policy must be an object")
    known_ids = {s.source_id for s in sources}
    citations = []
    raw_citations = payload.get("citations", [])
    if not isinstance(raw_citations, list):
        raise GenerationError("citations must be a list")
    for c in raw_citations:
        if not isinstance(c, dict):
            raise GenerationError("citation must be an object")
        source_id = _str(c, "sourceId")
        if source_id not in known_ids:
            raise GenerationError(f"Citation references unknown source {source_id!r}")
        citations.append(Citation(claim=_str(c, "claim"), source_id=source_id))
    answer_text = _str(payload, "answerText")
    if not answer_text.strip():
        raise GenerationError("answerText must not be empty")
    return AnswerPackage(
        policy=AnswerPolicy(
            conclusion=_str(policy, "conclusion"),
            reasoning=_str(policy, "reasoning"),
            missing_info=_str_list(policy, "missingInfo"),
            cautions=_str_list(policy, "cautions"),
            next_actions=_str_list(policy, "nextActions"),
        ),
        answer_text=answer_text,
        supplemental_text=str(payload.get("supplementalText") or ""),
        citations=citations,
    )


def generate_answer_package(
    text: str,
    followup_qa: list[FollowupAnswer],
    sources: list[SearchSource],
    similar: list[SimilarInquiry],
    complete: Completer,
) -> AnswerPackage:
    prompt = build_answer_prompt(text, followup_qa, sources, similar)
    return parse_answer_package(complete(prompt), sources)
