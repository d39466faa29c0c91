import logging
from typing import List, Optional

from .grading import list_attempts, percentage
from .interfaces import InteractionInterface
from .models import LABELS, Question, QuizAttempt, QuizResult
from .session import QuizSession

log = logging.getLogger(__name__)


class QuizRunner:
    """Walks a user through one quiz session over an interaction interface."""

    def __init__(self, interface: InteractionInterface, session: QuizSession):
        self.io = interface
        self.session = session

    def ask_question(self, question: Question):
        number = self.session.current_index + 1
        lines = [f"Question {number}/{self.session.total_questions}: {question.question}"]
        lines += [f"  {label}. {text}" for label, text in question.options.items()]
        self.io.output("\n".join(lines))

    def listen_answer(self) -> str:
        while True:
            answer = self.io.input(" (A-D)").upper()
            if answer in LABELS:
                return answer
            self.io.error("Please answer with A, B, C or D.")

    def show_result(self, result: QuizResult):
        lines = [f"Score: {result.score}/{result.total_questions} ({result.percentage}%)"]
        for i, record in enumerate(result.answers, start=1):
            mark = "correct" if record.is_correct else f"wrong, answer {record.correct_answer}"
            lines.append(f"  Q{i}: {record.selected_answer or '-'} ({mark})")
        self.io.output("\n".join(lines))

    async def run(self, document_id: str) -> Optional[QuizResult]:
        if not await self.session.open(document_id):
            self.io.error(self.session.error)
            return None

        while True:
            question = self.session.current_question
            self.ask_question(question)
            self.session.select_answer(question.id, self.listen_answer())
            if not self.session.is_last_question:
                self.session.next()
                continue

            result = await self.session.submit()
            if result is not None:
                break
            self.io.error(self.session.error)
            if self.io.input(" Retry submit? (y/n)").lower() != "y":
                self.session.reset()
                return None

        self.show_result(result)
        self.session.reset()
        return result

    async def show_history(self, document_id: str) -> List[QuizAttempt]:
        attempts = await list_attempts(self.session.row_store, self.session.user_id, document_id)
        if not attempts:
            self.io.output("No attempts yet.")
        for attempt in attempts:
            pct = percentage(attempt.score, attempt.total_questions)
            self.io.output(f"{attempt.completed_at}: {attempt.score}/{attempt.total_questions} ({pct}%)")
        return attempts
