import random
from typing import Any, Optional

from ..models import (
    FLOWERS,
    AnswerOutcome,
    AnswerResolution,
    ContentCatalog,
    Malformed,
    Ok,
    ParseResult,
    QuestionScript,
    SessionState,
    UserProgress,
)


class QuestionHelper:
    """
    Tracks question progress per category and resolves user answers.

    The first flowers question is the onboarding question. Once a user has been through
    every flowers question the counter wraps to 1 so that it is never asked again.
    """

    MAX_ERRORS = 3
    BOTH_KEYWORDS = ("both", "both of them", "all", "either")
    REPEAT_KEYWORDS = ("repeat", "again", "say that again", "what")

    def __init__(self, catalog: ContentCatalog, rng: Optional[random.Random] = None):
        self.catalog = catalog
        self.rng = rng or random.Random()

    def question_count(self, category: str) -> int:
        return self.catalog.question_count(category)

    @staticmethod
    def wrap_target(category: str) -> int:
        return 1 if category == FLOWERS else 0

    def _bounded_index(self, category: str, index: int) -> int:
        count = self.question_count(category)
        if count == 0:
            raise KeyError(f"No questions defined for category '{category}'.")
        if 0 <= index < count:
            return index
        target = self.wrap_target(category)
        return target if target < count else 0

    def next_question(self, category: str, user_progress: UserProgress) -> QuestionScript:
        index = self._bounded_index(category, user_progress.get(category))
        return self.catalog.questions[category][index]

    def advance(self, category: str, user_progress: UserProgress) -> UserProgress:
        """Moves the category counter on by one, wrapping when every question has been asked."""

        value = user_progress.get(category) + 1
        if value >= self.question_count(category):
            value = self.wrap_target(category)
        user_progress.set(category, value)
        return user_progress

    def question_prefix(self, category: str, user_progress: UserProgress) -> str:
        """Random lead-in for a question. The two onboarding flower questions get none."""

        if category == FLOWERS and user_progress.get(category) <= 1:
            return ""
        prefixes = self.catalog.gnome_list("question_prefixes")
        return self.rng.choice(prefixes) if prefixes else ""

    @staticmethod
    def parse_answer(raw: Any) -> ParseResult:
        """Normalizes a raw utterance. Anything that is not usable text is Malformed."""

        if not isinstance(raw, str):
            return Malformed(f"expected text, got {type(raw).__name__}")

        normalized = " ".join(raw.strip().lower().split())
        if not normalized:
            return Malformed("empty answer")
        return Ok(normalized)

    def classify(self, question: QuestionScript, parsed: ParseResult) -> AnswerOutcome:
        if isinstance(parsed, Malformed):
            return AnswerOutcome.REJECTED

        utterance = parsed.value
        if question.find_answer(utterance):
            return AnswerOutcome.ACCEPTED
        if utterance in self.BOTH_KEYWORDS:
            return AnswerOutcome.AMBIGUOUS
        if utterance in self.REPEAT_KEYWORDS:
            return AnswerOutcome.REPEATED
        return AnswerOutcome.REJECTED

    def resolve_answer(self, question: QuestionScript, raw: Any, session: SessionState) -> AnswerResolution:
        """
        Runs one step of the answer state machine and updates the session error counter.
        Three rejected answers to the same question means giving up on the session.
        """

        parsed = self.parse_answer(raw)
        outcome = self.classify(question, parsed)

        if outcome is AnswerOutcome.ACCEPTED:
            session.error_count = 0
            return AnswerResolution(outcome, 0, answer_key=parsed.value)

        if outcome is AnswerOutcome.REJECTED:
            session.error_count += 1
            return AnswerResolution(outcome, session.error_count, give_up=session.error_count >= self.MAX_ERRORS)

        return AnswerResolution(outcome, session.error_count)

    def retry_line(self, error_count: int) -> str:
        lines = self.catalog.gnome_list(f"question_nomatch_{min(error_count, self.MAX_ERRORS)}")
        return self.rng.choice(lines) if lines else ""
