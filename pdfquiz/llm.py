"""
Generative model boundary for question generation.

`ModelProvider.complete` is the only call the generator makes. The Gemini
implementation goes through LangChain; its failures are sorted into the
error taxonomy by exception type.
"""

import logging
from typing import Optional

import httpx
from langchain_core import exceptions as model_errors
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_core.messages import SystemMessage, HumanMessage

from .config import Config
from .errors import (
    ConfigurationError,
    EmptyModelResponse,
    ModelAuthError,
    ModelRateLimited,
    NetworkError,
)

log = logging.getLogger(__name__)

AUTH_ERRORS = (
    model_errors.ModelAuthenticationError,
    model_errors.ModelPermissionDeniedError,
)
RATE_LIMIT_ERRORS = (model_errors.ModelRateLimitError,)
TRANSIENT_ERRORS = (
    model_errors.ModelAPIError,
    model_errors.ModelConnectionError,
    model_errors.ModelTimeoutError,
    httpx.TransportError,
    ConnectionError,
    TimeoutError,
)


def classify_provider_error(exc: BaseException) -> Optional[Exception]:
    """Map a provider exception onto the error taxonomy; None if unrecognised."""
    if isinstance(exc, AUTH_ERRORS):
        return ModelAuthError(str(exc))
    if isinstance(exc, RATE_LIMIT_ERRORS):
        return ModelRateLimited(str(exc))
    if isinstance(exc, TRANSIENT_ERRORS):
        return NetworkError(str(exc))
    return None


class ModelProvider:
    async def complete(self, system_prompt: str, user_prompt: str,
                       temperature: float, max_tokens: int) -> str:
        raise NotImplementedError


class GeminiProvider(ModelProvider):
    def __init__(self, api_key: Optional[str] = None, model_name: Optional[str] = None):
        self.api_key = api_key or Config.GOOGLE_API_KEY
        self.model_name = model_name or Config.MODEL_NAME
        if not self.api_key:
            raise ConfigurationError("GOOGLE_API_KEY is not set")

    def _chat(self, temperature: float, max_tokens: int) -> ChatGoogleGenerativeAI:
        return ChatGoogleGenerativeAI(
            model=self.model_name,
            google_api_key=self.api_key,
            temperature=temperature,
            max_output_tokens=max_tokens,
        )

    async def complete(self, system_prompt: str, user_prompt: str,
                       temperature: float, max_tokens: int) -> str:
        messages = [
            SystemMessage(content=system_prompt),
            HumanMessage(content=user_prompt),
        ]
        try:
            response = await self._chat(temperature, max_tokens).ainvoke(messages)
        except Exception as e:
            classified = classify_provider_error(e)
            if classified is None:
                raise
            log.error("Model call failed (%s): %s", type(e).__name__, e)
            raise classified from e

        content = response.content
        if isinstance(content, list):
            # Gemini may return content parts
            content = "".join(
                part if isinstance(part, str) else part.get("text", "")
                for part in content
            )
        if not content or not content.strip():
            raise EmptyModelResponse("Empty response from model")
        return content
