import asyncio
import logging
from functools import lru_cache
from typing import Callable

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from .config import Config
from .errors import QuizError, user_facing_message
from .ingestion import TextExtractor
from .pipeline import IngestionPipeline, build_pipeline

log = logging.getLogger(__name__)

app = FastAPI(title="PDF Quiz Generator")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)


class GenerateQuizRequest(BaseModel):
    document_path: str = Field(..., alias="documentPath", min_length=1)
    document_id: str = Field(..., alias="documentId", min_length=1)
    model_config = ConfigDict(populate_by_name=True)


@app.exception_handler(RequestValidationError)
async def missing_parameters(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400,
                        content={"error": "Missing documentPath or documentId parameter"})


@app.exception_handler(QuizError)
async def quiz_error(request: Request, exc: QuizError):
    log.warning("%s: %s", type(exc).__name__, exc)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.user_message})


@lru_cache(maxsize=1)
def get_extractor() -> TextExtractor:
    return TextExtractor(min_length=Config.MIN_TEXT_LENGTH)


def get_pipeline_builder(
    extractor: TextExtractor = Depends(get_extractor),
) -> Callable[[], IngestionPipeline]:
    # Configuration is resolved only once the request body has been accepted
    return lambda: build_pipeline(extractor=extractor)


@app.post("/functions/generate-quiz")
async def generate_quiz(payload: GenerateQuizRequest,
                        make_pipeline: Callable[[], IngestionPipeline] = Depends(get_pipeline_builder)):
    pipeline = await asyncio.to_thread(make_pipeline)
    try:
        count = await pipeline.generate_quiz(payload.document_path, payload.document_id)
    except QuizError:
        raise
    except Exception as e:
        log.exception("Unexpected error generating quiz for %s", payload.document_id)
        return JSONResponse(status_code=500, content={"error": user_facing_message(e)})

    return {
        "success": True,
        "message": f"{count} questions generated successfully",
        "questionsCount": count,
    }
