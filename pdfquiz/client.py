import logging
from typing import Optional

import httpx

from .config import Config
from .errors import NetworkError, RemoteGenerationError

log = logging.getLogger(__name__)

GENERATE_QUIZ_PATH = "/functions/generate-quiz"
FALLBACK_ERROR = "Failed to generate questions. Please try again later."


class GenerationClient:
    """Calls the generation service from the client side."""

    def __init__(self, base_url: Optional[str] = None, timeout: float = 300.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url or Config.SERVICE_URL
        self.timeout = timeout
        self.transport = transport

    async def generate_quiz(self, document_path: str, document_id: str) -> int:
        payload = {"documentPath": document_path, "documentId": document_id}
        try:
            async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout,
                                         transport=self.transport) as client:
                response = await client.post(GENERATE_QUIZ_PATH, json=payload)
        except httpx.TransportError as e:
            log.error("Generation request failed: %s", e)
            raise NetworkError(str(e)) from e

        # Error bodies still carry a readable message
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if response.is_error or not body.get("success"):
            message = body.get("error") or FALLBACK_ERROR
            raise RemoteGenerationError(message, status_code=response.status_code)
        return int(body["questionsCount"])
