import logging
import os
import tempfile
from typing import Callable, Optional

from .config import Config
from .errors import UnreadableDocument, EmptyContent, InsufficientContent

log = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF"


class MarkerRenderer:
    """Renders a PDF on disk to text with Marker, loading its models once."""

    def __init__(self):
        self._converter = None

    def __call__(self, file_path: str) -> str:
        from marker.output import text_from_rendered

        if self._converter is None:
            from marker.converters.pdf import PdfConverter
            from marker.models import create_model_dict

            log.info("Loading Marker models (this may take time on first run)...")
            self._converter = PdfConverter(artifact_dict=create_model_dict())
        full_text, _, _ = text_from_rendered(self._converter(file_path))
        return full_text


class TextExtractor:
    def __init__(self, render: Optional[Callable[[str], str]] = None,
                 min_length: int = Config.MIN_TEXT_LENGTH):
        self.render = render or MarkerRenderer()
        self.min_length = min_length

    def extract_text(self, pdf_bytes: bytes) -> str:
        if not pdf_bytes or PDF_MAGIC not in pdf_bytes[:1024]:
            raise UnreadableDocument("Missing PDF header")

        # Marker only reads from a path
        fd, tmp_path = tempfile.mkstemp(suffix=".pdf")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(pdf_bytes)
            try:
                text = self.render(tmp_path)
            except Exception as e:
                log.warning("PDF parsing failed: %s", e)
                raise UnreadableDocument(str(e)) from e
        finally:
            os.remove(tmp_path)

        return self.classify(text)

    def classify(self, text: Optional[str]) -> str:
        if not text or not text.strip():
            raise EmptyContent("Extracted text is empty")
        length = len(text.strip())
        if length < self.min_length:
            raise InsufficientContent(
                f"Extracted {length} characters, need at least {self.min_length}"
            )
        log.info("Content extracted: %d chars", length)
        return text
