# tests/test_session.py
import asyncio
import threading

import pytest

from pdfquiz.errors import InvalidAnswerLabel
from pdfquiz.session import QuizSession, SessionStatus
from pdfquiz.stores import SqliteRowStore
from conftest import ANSWER_KEY


class FailingInsertStore(SqliteRowStore):
    def insert(self, table, rows):
        if table == "quiz_attempts":
            raise RuntimeError("database is locked")
        return super().insert(table, rows)


class FailingSelectStore(SqliteRowStore):
    def select(self, table, filters=None, order_by=None, descending=False):
        raise RuntimeError("connection reset")


class GatedInsertStore(SqliteRowStore):
    def __init__(self, path):
        super().__init__(path)
        self.entered = threading.Event()
        self.release = threading.Event()

    def insert(self, table, rows):
        if table == "quiz_attempts":
            self.entered.set()
            self.release.wait(5)
        return super().insert(table, rows)


def wrong(label):
    return "D" if label != "D" else "A"


def answer_all(session, correct=10):
    for i, q in enumerate(session.questions):
        session.select_answer(q.id, q.correct_answer if i < correct else wrong(q.correct_answer))
        session.next()


def test_open_loads_questions_in_creation_order(row_store, document, seeded_questions):
    session = QuizSession(row_store, "user-1")
    assert asyncio.run(session.open(document["id"])) is True
    assert session.status is SessionStatus.READY
    assert session.total_questions == 10
    assert "".join(q.correct_answer for q in session.questions) == ANSWER_KEY
    assert [q.id for q in session.questions] == [r["id"] for r in seeded_questions]
    assert session.current_index == 0


def test_open_without_questions(row_store, document):
    session = QuizSession(row_store, "user-1")
    assert document["processed"] is False
    assert asyncio.run(session.open(document["id"])) is False
    assert session.status is SessionStatus.ERRORED
    assert session.error == "No questions found. Please generate questions first."
    assert session.questions == []


def test_open_store_failure_is_retryable(tmp_db, document):
    session = QuizSession(FailingSelectStore(tmp_db), "user-1")
    assert asyncio.run(session.open(document["id"])) is False
    assert session.status is SessionStatus.ERRORED
    assert session.error == "Failed to load questions. Please try again."


def test_select_and_advance(row_store, document, seeded_questions):
    session = QuizSession(row_store, "user-1")
    asyncio.run(session.open(document["id"]))
    first = session.current_question
    session.select_answer(first.id, "B")
    assert session.status is SessionStatus.ANSWERED
    session.select_answer(first.id, "C")
    session.select_answer(first.id, "C")
    assert session.answers == {first.id: "C"}
    assert session.current_index == 0

    session.next()
    assert session.current_index == 1
    assert session.status is SessionStatus.ANSWERING


def test_next_stops_at_last_question(row_store, document, seeded_questions):
    session = QuizSession(row_store, "user-1")
    asyncio.run(session.open(document["id"]))
    for _ in range(15):
        session.next()
    assert session.current_index == 9
    assert session.is_last_question


def test_select_rejects_unknown_label(row_store, document, seeded_questions):
    session = QuizSession(row_store, "user-1")
    asyncio.run(session.open(document["id"]))
    with pytest.raises(InvalidAnswerLabel):
        session.select_answer(session.current_question.id, "E")
    assert session.answers == {}


def test_submit_six_correct(row_store, document, seeded_questions):
    session = QuizSession(row_store, "user-1")
    asyncio.run(session.open(document["id"]))
    answer_all(session, correct=6)

    result = asyncio.run(session.submit())
    assert (result.score, result.total_questions, result.percentage) == (6, 10, 60)
    assert session.status is SessionStatus.COMPLETED
    assert session.result == result

    attempts = row_store.select("quiz_attempts", {"document_id": document["id"]})
    assert len(attempts) == 1
    stored = attempts[0]
    assert stored["score"] == 6
    assert stored["user_id"] == "user-1"
    assert [a["question_id"] for a in stored["answers"]] == [r["id"] for r in seeded_questions]


def test_submit_incomplete_keeps_quiz_open(row_store, document, seeded_questions):
    session = QuizSession(row_store, "user-1")
    asyncio.run(session.open(document["id"]))
    q = session.current_question
    session.select_answer(q.id, "A")

    assert asyncio.run(session.submit()) is None
    assert session.error == "Please answer all questions before submitting (1/10 answered)."
    assert session.status is SessionStatus.ANSWERED
    assert session.busy is False
    assert row_store.select("quiz_attempts") == []


def test_concurrent_submit_persists_once(row_store, document, seeded_questions):
    session = QuizSession(row_store, "user-1")
    asyncio.run(session.open(document["id"]))
    answer_all(session)

    async def submit_twice():
        return await asyncio.gather(session.submit(), session.submit())

    first, second = asyncio.run(submit_twice())
    assert first.score == 10
    assert second is None
    assert len(row_store.select("quiz_attempts")) == 1


def test_submit_save_failure_can_retry(tmp_db, document, seeded_questions):
    store = FailingInsertStore(tmp_db)
    session = QuizSession(store, "user-1")
    asyncio.run(session.open(document["id"]))
    answer_all(session)

    assert asyncio.run(session.submit()) is None
    assert session.status is SessionStatus.ERRORED
    assert session.error == "Failed to save quiz results. Please try again."
    assert session.busy is False
    assert len(session.answers) == 10

    session.row_store = SqliteRowStore(tmp_db)
    result = asyncio.run(session.submit())
    assert result.score == 10
    assert session.status is SessionStatus.COMPLETED


def test_reset_from_completed(row_store, document, seeded_questions):
    session = QuizSession(row_store, "user-1")
    asyncio.run(session.open(document["id"]))
    answer_all(session)
    asyncio.run(session.submit())

    session.reset()
    assert session.questions == []
    assert session.current_index == 0
    assert session.answers == {}
    assert session.result is None
    assert session.error is None
    assert session.busy is False
    assert session.status is SessionStatus.IDLE


def test_submit_after_completion_returns_same_result(row_store, document, seeded_questions):
    session = QuizSession(row_store, "user-1")
    asyncio.run(session.open(document["id"]))
    answer_all(session, correct=4)

    first = asyncio.run(session.submit())
    again = asyncio.run(session.submit())
    assert again == first
    assert session.status is SessionStatus.COMPLETED
    assert len(row_store.select("quiz_attempts")) == 1


def test_reset_during_submit_discards_late_result(tmp_db, document, seeded_questions):
    store = GatedInsertStore(tmp_db)
    session = QuizSession(store, "user-1")
    asyncio.run(session.open(document["id"]))
    answer_all(session)

    async def reset_mid_submit():
        task = asyncio.create_task(session.submit())
        await asyncio.to_thread(store.entered.wait, 5)
        session.reset()
        store.release.set()
        return await task

    result = asyncio.run(reset_mid_submit())
    assert result.score == 10
    assert session.result is None
    assert session.status is SessionStatus.IDLE
    assert session.busy is False
    assert session.questions == []
