"""Scoring of a finished quiz and the attempt history built from it."""
import asyncio
import logging
from typing import Dict, List, Sequence

from .errors import IncompleteAnswers, InvalidAnswerLabel, AttemptSaveError, HistoryLoadError
from .models import LABELS, AnswerRecord, Question, QuizAttempt, QuizResult
from .stores import RowStore

log = logging.getLogger(__name__)


def percentage(score: int, total: int) -> int:
    """round(score / total * 100), halves rounded up, on the exact quotient."""
    if total <= 0:
        return 0
    return (200 * score + total) // (2 * total)


def validate_quiz_answers(answers: Dict[str, str], total: int) -> None:
    if len(answers) < total:
        raise IncompleteAnswers(len(answers), total)
    for label in answers.values():
        if label not in LABELS:
            raise InvalidAnswerLabel(label)


def grade_quiz(questions: Sequence[Question], answers: Dict[str, str]) -> QuizResult:
    records = []
    for q in questions:
        selected = answers.get(q.id)
        records.append(AnswerRecord(
            question_id=q.id,
            question=q.question,
            selected_answer=selected if selected in LABELS else None,
            correct_answer=q.correct_answer,
            is_correct=selected == q.correct_answer,
        ))

    score = sum(1 for r in records if r.is_correct)
    total = len(questions)
    return QuizResult(
        score=score,
        total_questions=total,
        percentage=percentage(score, total),
        answers=records,
    )


async def record_attempt(row_store: RowStore, user_id: str, document_id: str,
                         result: QuizResult) -> QuizAttempt:
    row = {
        "user_id": user_id,
        "document_id": document_id,
        "score": result.score,
        "total_questions": result.total_questions,
        "answers": [a.model_dump() for a in result.answers],
    }
    try:
        saved = await asyncio.to_thread(row_store.insert, "quiz_attempts", row)
    except Exception as e:
        log.error("Failed to save quiz attempt: %s", e)
        raise AttemptSaveError(str(e)) from e
    return QuizAttempt.model_validate(saved[0])


async def list_attempts(row_store: RowStore, user_id: str, document_id: str) -> List[QuizAttempt]:
    """One user's attempts at a document, newest first."""
    try:
        rows = await asyncio.to_thread(
            row_store.select, "quiz_attempts",
            {"document_id": document_id, "user_id": user_id},
            "completed_at", True,
        )
        return [QuizAttempt.model_validate(row) for row in rows]
    except Exception as e:
        log.error("Failed to load quiz history for %s: %s", document_id, e)
        raise HistoryLoadError(str(e)) from e
