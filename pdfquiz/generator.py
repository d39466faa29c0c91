import json
import logging
import re
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError

from .config import Config
from .errors import MalformedModelOutput, InvalidQuestionShape
from .llm import ModelProvider
from .models import QuestionDraft

log = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a helpful assistant that generates educational multiple-choice questions. "
    "Always respond with valid JSON only, no additional text."
)

USER_PROMPT = """Generate {count} multiple-choice questions from the following text.
The questions should be university level or above, suitable for adult learners.
Each question should have 4 options (A, B, C, D) with only one correct answer.

Return the response as a JSON array of exactly {count} elements with this exact format:
[
  {{
    "question": "Question text here?",
    "options": {{
      "A": "Option A text",
      "B": "Option B text",
      "C": "Option C text",
      "D": "Option D text"
    }},
    "correctAnswer": "A"
  }}
]

Text to analyze:
{text}"""

_FENCE_OPEN = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\s*```$")
_INVALID_ESCAPE = re.compile(r'\\(?![/u"\\bfnrt])')

_QUESTION_LIST = TypeAdapter(List[QuestionDraft])


def find_json_array(text: str) -> Optional[str]:
    """Return the first balanced [...] substring, skipping brackets inside strings."""
    start = text.find("[")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
            elif ch == '"':
                in_string = True
            elif ch == "[":
                depth += 1
            elif ch == "]":
                depth -= 1
                if depth == 0:
                    return text[start:i + 1]
        start = text.find("[", start + 1)
    return None


def repair_model_output(raw: str) -> str:
    # 1. Remove Markdown fences
    clean = _FENCE_OPEN.sub("", raw.strip())
    clean = _FENCE_CLOSE.sub("", clean).strip()

    # 2. Cut the array out of surrounding prose
    if not clean.startswith("["):
        array = find_json_array(clean)
        if array is not None:
            clean = array
    return clean


def parse_questions(raw: str, count: int = Config.QUESTION_COUNT) -> List[QuestionDraft]:
    clean = repair_model_output(raw)
    try:
        parsed = json.loads(clean)
    except json.JSONDecodeError:
        # Invalid escapes are common with LaTeX in model output
        try:
            parsed = json.loads(_INVALID_ESCAPE.sub(r"\\\\", clean))
        except json.JSONDecodeError as e:
            log.error("Model output is not JSON: %s", e)
            log.debug("Failed JSON snippet: %s...", raw[:500])
            raise MalformedModelOutput(str(e)) from e

    if not isinstance(parsed, list):
        raise InvalidQuestionShape(f"Expected a JSON array, got {type(parsed).__name__}")
    if len(parsed) != count:
        raise InvalidQuestionShape(f"Expected {count} questions, got {len(parsed)}")

    try:
        return _QUESTION_LIST.validate_python(parsed)
    except ValidationError as e:
        log.error("Question batch rejected: %d validation errors", e.error_count())
        raise InvalidQuestionShape(str(e)) from e


class QuestionGenerator:
    def __init__(self, provider: ModelProvider, count: int = Config.QUESTION_COUNT,
                 max_chars: int = Config.MAX_PROMPT_CHARS,
                 temperature: float = Config.TEMPERATURE,
                 max_tokens: int = Config.MAX_OUTPUT_TOKENS):
        self.provider = provider
        self.count = count
        self.max_chars = max_chars
        self.temperature = temperature
        self.max_tokens = max_tokens

    def build_prompt(self, text: str) -> str:
        return USER_PROMPT.format(count=self.count, text=text[:self.max_chars])

    async def generate(self, text: str) -> List[QuestionDraft]:
        if len(text) > self.max_chars:
            log.info("Truncating text from %d to %d chars", len(text), self.max_chars)

        raw = await self.provider.complete(
            SYSTEM_PROMPT,
            self.build_prompt(text),
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        questions = parse_questions(raw, self.count)
        log.info("Generated %d questions", len(questions))
        return questions
