import asyncio
import logging
from typing import Optional

from langgraph.graph import StateGraph, END

from .config import Config
from .errors import DownloadError, PersistenceError
from .generator import QuestionGenerator
from .ingestion import TextExtractor
from .llm import GeminiProvider
from .models import GenerationState
from .stores import ObjectStore, RowStore, LocalObjectStore, SqliteRowStore

log = logging.getLogger(__name__)


class IngestionPipeline:
    """Takes one uploaded document from stored bytes to a persisted question batch.

    Stages run strictly in sequence: download, extract, generate, persist,
    mark_processed. Any stage before mark_processed aborts the run with a
    typed PipelineError; a failed processed-flag update is only logged.
    """

    def __init__(self, object_store: ObjectStore, row_store: RowStore,
                 extractor: TextExtractor, generator: QuestionGenerator):
        self.object_store = object_store
        self.row_store = row_store
        self.extractor = extractor
        self.generator = generator
        self.app = self.build_workflow()

    async def download(self, state: GenerationState):
        path = state["document_path"]
        log.info("Downloading %s", path)
        try:
            data = await asyncio.to_thread(self.object_store.download, path)
        except Exception as e:
            log.error("Download error for %s: %s", path, e)
            raise DownloadError(str(e)) from e
        if not data:
            raise DownloadError(f"Empty object at {path}")
        return {"pdf_bytes": data}

    async def extract(self, state: GenerationState):
        text = await asyncio.to_thread(self.extractor.extract_text, state["pdf_bytes"])
        return {"text": text}

    async def generate(self, state: GenerationState):
        questions = await self.generator.generate(state["text"])
        return {"questions": questions}

    async def persist(self, state: GenerationState):
        rows = [q.to_row(state["document_id"]) for q in state["questions"]]
        try:
            inserted = await asyncio.to_thread(self.row_store.insert, "questions", rows)
        except Exception as e:
            log.error("Database insert error: %s", e)
            raise PersistenceError(str(e)) from e
        return {"questions_count": len(inserted)}

    async def mark_processed(self, state: GenerationState):
        document_id = state["document_id"]
        try:
            await asyncio.to_thread(
                self.row_store.update, "documents", {"processed": True}, {"id": document_id}
            )
        except Exception:
            # Questions are already usable; the flag is only a marker
            log.exception("Failed to mark document %s as processed", document_id)
            return {"processed": False}
        return {"processed": True}

    def build_workflow(self):
        workflow = StateGraph(GenerationState)
        workflow.add_node("download", self.download)
        workflow.add_node("extract", self.extract)
        workflow.add_node("generate", self.generate)
        workflow.add_node("persist", self.persist)
        workflow.add_node("mark_processed", self.mark_processed)

        workflow.set_entry_point("download")
        workflow.add_edge("download", "extract")
        workflow.add_edge("extract", "generate")
        workflow.add_edge("generate", "persist")
        workflow.add_edge("persist", "mark_processed")
        workflow.add_edge("mark_processed", END)

        return workflow.compile()

    async def generate_quiz(self, document_path: str, document_id: str) -> int:
        """Run every stage for one document and return the number of questions saved."""
        initial_state = {"document_path": document_path, "document_id": document_id}
        final_state = await self.app.ainvoke(initial_state)
        count = final_state["questions_count"]
        log.info("Generated %d questions for document %s", count, document_id)
        return count


def build_pipeline(settings=Config, provider=None, extractor: Optional[TextExtractor] = None):
    """Resolve configuration and wire the pipeline for one invocation."""
    settings.validate()
    provider = provider or GeminiProvider(settings.GOOGLE_API_KEY, settings.MODEL_NAME)
    return IngestionPipeline(
        object_store=LocalObjectStore(settings.STORAGE_DIR),
        row_store=SqliteRowStore(settings.DB_PATH),
        extractor=extractor or TextExtractor(min_length=settings.MIN_TEXT_LENGTH),
        generator=QuestionGenerator(
            provider,
            count=settings.QUESTION_COUNT,
            max_chars=settings.MAX_PROMPT_CHARS,
            temperature=settings.TEMPERATURE,
            max_tokens=settings.MAX_OUTPUT_TOKENS,
        ),
    )
