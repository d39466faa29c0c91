import json
import pytest

from pdfquiz.llm import ModelProvider
from pdfquiz.stores import LocalObjectStore, SqliteRowStore

ANSWER_KEY = "ABCDABCDAB"
FAKE_PDF = b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\n%%EOF\n"


class FakeProvider(ModelProvider):
    """Returns a canned completion, or raises, and records each call."""

    def __init__(self, response="", error=None):
        self.response = response
        self.error = error
        self.calls = []

    async def complete(self, system_prompt, user_prompt, temperature, max_tokens):
        self.calls.append({
            "system": system_prompt,
            "user": user_prompt,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        if self.error is not None:
            raise self.error
        return self.response


def make_question(i: int, correct: str = "A") -> dict:
    return {
        "question": f"What does section {i} describe?",
        "options": {
            "A": f"Answer {i}a",
            "B": f"Answer {i}b",
            "C": f"Answer {i}c",
            "D": f"Answer {i}d",
        },
        "correctAnswer": correct,
    }


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    return str(tmp_path / "test_quiz.db")


@pytest.fixture
def row_store(tmp_db):
    return SqliteRowStore(tmp_db)


@pytest.fixture
def object_store(tmp_path):
    return LocalObjectStore(str(tmp_path / "storage"))


@pytest.fixture
def question_batch():
    """Ten valid model-output questions following ANSWER_KEY."""
    return [make_question(i, ANSWER_KEY[i]) for i in range(10)]


@pytest.fixture
def model_output(question_batch):
    return json.dumps(question_batch)


@pytest.fixture
def document(row_store, object_store):
    object_store.upload("user-1/paper.pdf", FAKE_PDF, "application/pdf")
    return row_store.insert("documents", {
        "user_id": "user-1",
        "file_name": "paper.pdf",
        "file_path": "user-1/paper.pdf",
        "file_size": len(FAKE_PDF),
        "processed": False,
    })[0]


@pytest.fixture
def seeded_questions(row_store, document, question_batch):
    """Persist the ten-question batch for `document` and return the stored rows."""
    rows = []
    for q in question_batch:
        rows.append({
            "document_id": document["id"],
            "question": q["question"],
            "option_a": q["options"]["A"],
            "option_b": q["options"]["B"],
            "option_c": q["options"]["C"],
            "option_d": q["options"]["D"],
            "correct_answer": q["correctAnswer"],
        })
    row_store.insert("questions", rows)
    return row_store.select("questions", {"document_id": document["id"]}, "created_at")
