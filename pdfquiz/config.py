import os
from pathlib import Path
from dotenv import load_dotenv

from .errors import ConfigurationError

load_dotenv()

_DATA_DIR = Path(os.getenv("QUIZ_DATA_DIR", str(Path.home() / ".pdfquiz"))).expanduser()


class Config:
    GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY")
    MODEL_NAME = os.getenv("MODEL_NAME", "gemini-2.5-flash")

    DB_PATH = os.getenv("QUIZ_DB_PATH", str(_DATA_DIR / "quiz.db"))
    STORAGE_DIR = os.getenv("QUIZ_STORAGE_DIR", str(_DATA_DIR / "storage"))
    SERVICE_URL = os.getenv("QUIZ_SERVICE_URL", "http://localhost:8000")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Generation
    QUESTION_COUNT = 10
    MIN_TEXT_LENGTH = 500
    MAX_PROMPT_CHARS = 12000
    TEMPERATURE = 0.7
    MAX_OUTPUT_TOKENS = 2000

    # Uploads
    MAX_FILE_SIZE = 10 * 1024 * 1024
    ALLOWED_FILE_TYPES = ("application/pdf",)

    @classmethod
    def validate(cls):
        if not cls.GOOGLE_API_KEY:
            raise ConfigurationError("Missing GOOGLE_API_KEY in environment or .env file")
        if not cls.DB_PATH or not cls.STORAGE_DIR:
            raise ConfigurationError("Missing QUIZ_DB_PATH or QUIZ_STORAGE_DIR")
