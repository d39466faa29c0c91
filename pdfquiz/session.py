import asyncio
import logging
from enum import Enum
from typing import Dict, List, Optional

from .errors import (
    IncompleteAnswers,
    InvalidAnswerLabel,
    NoQuestionsAvailable,
    QuestionLoadError,
    QuizError,
    user_facing_message,
)
from .grading import grade_quiz, record_attempt, validate_quiz_answers
from .models import LABELS, Question, QuizResult
from .stores import RowStore

log = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ANSWERING = "answering"
    ANSWERED = "answered"
    SUBMITTING = "submitting"
    COMPLETED = "completed"
    ERRORED = "errored"


class QuizSession:
    """State of one open quiz: questions, position, answers and the last result.

    Owned by whatever presents the quiz and passed explicitly to collaborators.
    Failures never raise out of `open` or `submit`; they are recorded in
    `error` so the caller can show it and trigger the same call again.
    """

    def __init__(self, row_store: RowStore, user_id: str):
        self.row_store = row_store
        self.user_id = user_id
        self._epoch = 0
        self.reset()

    def reset(self):
        # In-flight submits compare epochs to detect a reset
        self._epoch += 1
        self.document_id: Optional[str] = None
        self.questions: List[Question] = []
        self.current_index = 0
        self.answers: Dict[str, str] = {}
        self.result: Optional[QuizResult] = None
        self.error: Optional[str] = None
        self.busy = False
        self._phase = SessionStatus.IDLE

    # ── State ──────────────────────────────────────────────────────────────────

    @property
    def status(self) -> SessionStatus:
        if self._phase is SessionStatus.READY:
            if self.current_index == 0 and not self.answers:
                return SessionStatus.READY
            if self.current_question.id in self.answers:
                return SessionStatus.ANSWERED
            return SessionStatus.ANSWERING
        return self._phase

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    @property
    def answered_count(self) -> int:
        return len(self.answers)

    @property
    def current_question(self) -> Optional[Question]:
        if not self.questions:
            return None
        return self.questions[self.current_index]

    @property
    def is_last_question(self) -> bool:
        return bool(self.questions) and self.current_index == len(self.questions) - 1

    def _fail(self, exc: BaseException, fallback_phase: SessionStatus):
        self.error = user_facing_message(exc)
        self._phase = fallback_phase

    # ── Operations ─────────────────────────────────────────────────────────────

    async def open(self, document_id: str) -> bool:
        """Load the question batch for a document in creation order."""
        self.reset()
        self.document_id = document_id
        self._phase = SessionStatus.LOADING
        try:
            rows = await asyncio.to_thread(
                self.row_store.select, "questions", {"document_id": document_id}, "created_at"
            )
        except Exception as e:
            log.error("Failed to load questions for %s: %s", document_id, e)
            self._fail(QuestionLoadError(str(e)), SessionStatus.ERRORED)
            return False

        if not rows:
            self._fail(NoQuestionsAvailable(document_id), SessionStatus.ERRORED)
            return False

        try:
            self.questions = [Question.model_validate(row) for row in rows]
        except ValueError as e:
            log.error("Malformed question rows for %s: %s", document_id, e)
            self._fail(QuestionLoadError(str(e)), SessionStatus.ERRORED)
            return False

        self._phase = SessionStatus.READY
        return True

    def select_answer(self, question_id: str, label: str):
        if label not in LABELS:
            raise InvalidAnswerLabel(label)
        self.answers[question_id] = label

    def next(self):
        if self.current_index < len(self.questions) - 1:
            self.current_index += 1

    async def submit(self) -> Optional[QuizResult]:
        if self.busy:
            log.info("Quiz submission already in progress")
            return None
        if self._phase is SessionStatus.COMPLETED:
            return self.result

        epoch = self._epoch
        self.busy = True
        previous_phase = self._phase
        self._phase = SessionStatus.SUBMITTING
        self.error = None
        try:
            if not self.questions:
                raise NoQuestionsAvailable(str(self.document_id))
            validate_quiz_answers(self.answers, self.total_questions)
            result = grade_quiz(self.questions, self.answers)
            await record_attempt(self.row_store, self.user_id, self.document_id, result)
        except QuizError as e:
            if epoch != self._epoch:
                log.info("Ignoring failed submission of a quiz that was reset")
                return None
            # Unanswered questions keep the quiz open; a failed save is retryable
            if isinstance(e, (IncompleteAnswers, InvalidAnswerLabel)):
                self._fail(e, previous_phase)
            else:
                self._fail(e, SessionStatus.ERRORED)
            return None
        finally:
            if epoch == self._epoch:
                self.busy = False

        if epoch != self._epoch:
            log.info("Quiz was reset during submission; result not applied")
            return result
        self.result = result
        self._phase = SessionStatus.COMPLETED
        return result
