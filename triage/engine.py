"""
Engine selection: rule-based vs generative implementations of the six pipeline operations.

RuleEngine is deterministic and always available. GenerativeEngine wraps it:
each call tries the model and, on any failure or malformed reply, logs and
returns the rule result for that call only. Assistant picks the engine per call
from Settings, so both modes can be exercised without touching the environment.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, TypeVar

from triage import llm
from triage.classify import classify
from triage.config import Settings
from triage.draft import compose_answer_package
from triage.followups import generate_followups
from triage.history import DEFAULT_HISTORY_LIMIT, load_history
from triage.kb import load_knowledge_sources
from triage.models import (
    AnswerPackage,
    ClassificationResult,
    FollowupAnswer,
    FollowupQuestion,
    HistoryRecord,
    KnowledgeSource,
    SearchSource,
    SelfHelpResult,
    SimilarInquiry,
)
from triage.retrieve import find_similar, recommend_self_help, search_sources

logger = logging.getLogger(__name__)

T = TypeVar("T")

SourceReader = Callable[[], list[KnowledgeSource]]
HistoryReader = Callable[[int], list[HistoryRecord]]


class EngineMode(str, Enum):
    RULES = "rules"
    GENERATIVE = "generative"


def select_engine(settings: Settings) -> EngineMode:
    """Generative mode iff a model credential is configured."""
    return EngineMode.GENERATIVE if settings.generative_enabled else EngineMode.RULES


class RuleEngine:
    """Keyword rules and lexical ranking over the injected corpus readers."""

    mode = EngineMode.RULES

    def __init__(
        self,
        list_sources: SourceReader,
        list_history: HistoryReader,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ):
        self._list_sources = list_sources
        self._list_history = list_history
        self._history_limit = history_limit

    def summarize_and_route(self, text: str) -> ClassificationResult:
        return classify(text)

    def recommend_self_help(self, text: str) -> SelfHelpResult:
        return recommend_self_help(text, self._list_sources())

    def generate_followups(self, text: str) -> list[FollowupQuestion]:
        return generate_followups(text)

    def find_similar(self, text: str) -> list[SimilarInquiry]:
        return find_similar(text, self._list_history(self._history_limit))

    def search_sources(self, text: str) -> list[SearchSource]:
        return search_sources(text, self._list_sources())

    def generate_answer_package(
        self,
        text: str,
        followup_qa: list[FollowupAnswer],
        sources: list[SearchSource],
        similar: list[SimilarInquiry],
    ) -> AnswerPackage:
        return compose_answer_package(text, followup_qa, sources, similar)


class GenerativeEngine:
    """Model-backed operations composed over a RuleEngine used as per-call fallback."""

    mode = EngineMode.GENERATIVE

    def __init__(self, rules: RuleEngine, complete: llm.Completer):
        self.rules = rules
        self._complete = complete

    def _with_fallback(
        self, operation: str, generative: Callable[[], T], deterministic: Callable[[], T]
    ) -> T:
        try:
            return generative()
        except Exception as exc:
            logger.warning("%s: generative call failed, using rule engine (%s)", operation, exc)
            return deterministic()

    def summarize_and_route(self, text: str) -> ClassificationResult:
        return self._with_fallback(
            "summarize_and_route",
            lambda: llm.generate_summary(text, self._complete),
            lambda: self.rules.summarize_and_route(text),
        )

    def recommend_self_help(self, text: str) -> SelfHelpResult:
        candidates = self.rules.recommend_self_help(text)
        return self._with_fallback(
            "recommend_self_help",
            lambda: llm.generate_self_help(text, candidates, self._complete),
            lambda: candidates,
        )

    def generate_followups(self, text: str) -> list[FollowupQuestion]:
        return self._with_fallback(
            "generate_followups",
            lambda: llm.generate_followups(text, self._complete),
            lambda: self.rules.generate_followups(text),
        )

    # Lexical ranking is good enough here; these never call the model.
    def find_similar(self, text: str) -> list[SimilarInquiry]:
        return self.rules.find_similar(text)

    def search_sources(self, text: str) -> list[SearchSource]:
        return self.rules.search_sources(text)

    def generate_answer_package(
        self,
        text: str,
        followup_qa: list[FollowupAnswer],
        sources: list[SearchSource],
        similar: list[SimilarInquiry],
    ) -> AnswerPackage:
        return self._with_fallback(
            "generate_answer_package",
            lambda: llm.generate_answer_package(
                text, followup_qa, sources, similar, self._complete
            ),
            lambda: self.rules.generate_answer_package(text, followup_qa, sources, similar),
        )


@dataclass
class Understanding:
    """Everything the pipeline derives from one inquiry text before drafting."""

    classification: ClassificationResult
    self_help: SelfHelpResult
    followups: list[FollowupQuestion]
    similar: list[SimilarInquiry]
    sources: list[SearchSource]


class Assistant:
    """Entry point for callers: routes every operation to the engine selected by settings."""

    MAX_WORKERS = 5

    def __init__(
        self,
        settings: Settings,
        list_sources: SourceReader,
        list_history: HistoryReader,
        complete: Optional[llm.Completer] = None,
    ):
        self.settings = settings
        self.rules = RuleEngine(list_sources, list_history)
        self.generative = GenerativeEngine(
            self.rules, complete or llm.make_completer(settings)
        )

    @property
    def mode(self) -> EngineMode:
        return select_engine(self.settings)

    def _engine(self):
        return self.generative if self.mode is EngineMode.GENERATIVE else self.rules

    def summarize_and_route(self, text: str) -> ClassificationResult:
        return self._engine().summarize_and_route(text)

    def recommend_self_help(self, text: str) -> SelfHelpResult:
        return self._engine().recommend_self_help(text)

    def generate_followups(self, text: str) -> list[FollowupQuestion]:
        return self._engine().generate_followups(text)

    def find_similar(self, text: str) -> list[SimilarInquiry]:
        return self._engine().find_similar(text)

    def search_sources(self, text: str) -> list[SearchSource]:
        return self._engine().search_sources(text)

    def generate_answer_package(
        self,
        text: str,
        followup_qa: list[FollowupAnswer],
        sources: list[SearchSource],
        similar: list[SimilarInquiry],
    ) -> AnswerPackage:
        return self._engine().generate_answer_package(text, followup_qa, sources, similar)

    def understand(self, text: str) -> Understanding:
        """Run the independent analysis stages concurrently."""
        with ThreadPoolExecutor(max_workers=self.MAX_WORKERS) as pool:
            classification = pool.submit(self.summarize_and_route, text)
            self_help = pool.submit(self.recommend_self_help, text)
            followups = pool.submit(self.generate_followups, text)
            similar = pool.submit(self.find_similar, text)
            sources = pool.submit(self.search_sources, text)
            return Understanding(
                classification=classification.result(),
                self_help=self_help.result(),
                followups=followups.result(),
                similar=similar.result(),
                sources=sources.result(),
            )


def build_assistant(settings: Settings, complete: Optional[llm.Completer] = None) -> Assistant:
    """Assistant over the file-backed corpora in settings.data_dir."""
    return Assistant(
        settings,
        list_sources=lambda: load_knowledge_sources(settings.kb_dir),
        list_history=lambda limit: load_history(settings.inquiries_path, limit),
        complete=complete,
    )
