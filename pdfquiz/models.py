from typing import List, Dict, Optional, Literal, Annotated
from pydantic import BaseModel, Field, ConfigDict, StringConstraints
from typing_extensions import TypedDict

Label = Literal["A", "B", "C", "D"]
LABELS = ("A", "B", "C", "D")

NonEmptyText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class SourceDocument(BaseModel):
    id: str
    user_id: str
    file_name: str
    file_path: str
    file_size: int = 0
    uploaded_at: Optional[str] = None
    processed: bool = False


# What the model is asked to emit, one element of the JSON array.
class OptionSet(BaseModel):
    A: NonEmptyText
    B: NonEmptyText
    C: NonEmptyText
    D: NonEmptyText


class QuestionDraft(BaseModel):
    question: NonEmptyText
    options: OptionSet
    correct_answer: Label = Field(..., alias="correctAnswer")
    model_config = ConfigDict(populate_by_name=True)

    def to_row(self, document_id: str) -> dict:
        return {
            "document_id": document_id,
            "question": self.question,
            "option_a": self.options.A,
            "option_b": self.options.B,
            "option_c": self.options.C,
            "option_d": self.options.D,
            "correct_answer": self.correct_answer,
        }


class Question(BaseModel):
    id: str
    document_id: str
    question: NonEmptyText
    option_a: NonEmptyText
    option_b: NonEmptyText
    option_c: NonEmptyText
    option_d: NonEmptyText
    correct_answer: Label
    created_at: Optional[str] = None

    @property
    def options(self) -> Dict[str, str]:
        return {
            "A": self.option_a,
            "B": self.option_b,
            "C": self.option_c,
            "D": self.option_d,
        }


class AnswerRecord(BaseModel):
    question_id: str
    question: str
    selected_answer: Optional[Label] = None
    correct_answer: Label
    is_correct: bool


class QuizResult(BaseModel):
    score: int
    total_questions: int
    percentage: int
    answers: List[AnswerRecord]


class QuizAttempt(BaseModel):
    id: str
    user_id: str
    document_id: str
    score: int
    total_questions: int
    answers: List[AnswerRecord]
    completed_at: Optional[str] = None


# LangGraph state for one generation run
class GenerationState(TypedDict, total=False):
    document_id: str
    document_path: str
    pdf_bytes: bytes
    text: str
    questions: List[QuestionDraft]
    questions_count: int
    processed: bool
