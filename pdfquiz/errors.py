"""
Failure taxonomy shared by the generation pipeline and the quiz session.

Every failure carries the single string shown to the user, whether retrying
the same call can help, and the HTTP status used at the service boundary.
"""

GENERIC_MESSAGE = "Something went wrong. Please try again."
MAX_RAW_MESSAGE_LENGTH = 200


class QuizError(Exception):
    user_message = GENERIC_MESSAGE
    retryable = False
    status_code = 500

    def __init__(self, detail: str = ""):
        super().__init__(detail or self.user_message)
        self.detail = detail


# ── Pipeline ───────────────────────────────────────────────────────────────────

class PipelineError(QuizError):
    user_message = "Failed to generate questions. Please try again later."


class ConfigurationError(PipelineError):
    user_message = "The quiz service is not configured correctly. Please contact support."


class DownloadError(PipelineError):
    user_message = "Failed to download PDF from storage. Please check your connection and try again."
    retryable = True


class NetworkError(PipelineError):
    user_message = "Connection failed. Please check your internet connection."
    retryable = True
    status_code = 503


class PersistenceError(PipelineError):
    user_message = "Failed to save to the database. Please try again."
    retryable = True


class ExtractionError(PipelineError):
    status_code = 400


class UnreadableDocument(ExtractionError):
    user_message = "Unable to read PDF file. Please ensure it's a valid, readable PDF document."


class EmptyContent(ExtractionError):
    user_message = "No text found in PDF. Please upload a PDF with readable text content."


class InsufficientContent(ExtractionError):
    user_message = (
        "Not enough text in PDF to generate a quiz. "
        "Please choose a longer document."
    )


class GenerationError(PipelineError):
    status_code = 502


class ModelAuthError(GenerationError):
    user_message = "The question generator rejected our credentials. Please contact support."
    status_code = 500


class ModelRateLimited(GenerationError):
    user_message = "The question generator is busy right now. Please try again later."
    status_code = 429


class MalformedModelOutput(GenerationError):
    user_message = "Failed to generate questions. Please try again."
    retryable = True


class EmptyModelResponse(MalformedModelOutput):
    pass


class InvalidQuestionShape(GenerationError):
    user_message = "Failed to generate questions. Please try again."
    retryable = True


class RemoteGenerationError(PipelineError):
    """Failure reported by the remote generation service, already user-facing."""

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.user_message = message
        self.status_code = status_code
        self.retryable = status_code >= 500


# ── Client side ────────────────────────────────────────────────────────────────

class InvalidUpload(QuizError):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.user_message = message


class UploadError(QuizError):
    user_message = "Failed to upload PDF. Please try again."
    retryable = True


class SessionError(QuizError):
    pass


class NoQuestionsAvailable(SessionError):
    user_message = "No questions found. Please generate questions first."
    status_code = 404


class QuestionLoadError(SessionError):
    user_message = "Failed to load questions. Please try again."
    retryable = True


class IncompleteAnswers(SessionError):
    status_code = 400

    def __init__(self, answered: int, total: int):
        self.answered = answered
        self.total = total
        self.user_message = (
            f"Please answer all questions before submitting ({answered}/{total} answered)."
        )
        super().__init__(self.user_message)


class InvalidAnswerLabel(SessionError):
    status_code = 400

    def __init__(self, label):
        self.label = label
        self.user_message = f"Invalid answer {label!r}. Choose one of A, B, C or D."
        super().__init__(self.user_message)


class AttemptSaveError(SessionError):
    user_message = "Failed to save quiz results. Please try again."
    retryable = True


class HistoryLoadError(SessionError):
    user_message = "Failed to load quiz history. Please try again."
    retryable = True


def user_facing_message(exc: BaseException) -> str:
    """Translate any failure into one string that is safe to show."""
    if isinstance(exc, QuizError):
        return exc.user_message
    raw = str(exc).strip()
    if raw and len(raw) < MAX_RAW_MESSAGE_LENGTH:
        return raw
    return GENERIC_MESSAGE
