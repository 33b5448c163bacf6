"""Model relay: forwards a conversation to OpenRouter with the user's stored key."""
from dataclasses import dataclass
from typing import List, Dict, Any, Optional, Sequence
import json
import logging
import os

import httpx
from sqlalchemy.orm import Session

from errors import MissingCredential, UpstreamError, InvalidUpstreamResponse, RelayTransportError
from services.credentials import CredentialService

logger = logging.getLogger(__name__)

OPENROUTER_API_URL = os.getenv("OPENROUTER_API_URL", "https://openrouter.ai/api/v1/chat/completions")
OPENROUTER_REFERER = os.getenv("OPENROUTER_REFERER", "https://chat-worlds.lovableproject.com")
OPENROUTER_TITLE = os.getenv("OPENROUTER_TITLE", "Chat Worlds")
RELAY_TIMEOUT_SECONDS = float(os.getenv("RELAY_TIMEOUT_SECONDS", "120"))
DEFAULT_MODEL_ID = os.getenv("DEFAULT_MODEL_ID", "openai/gpt-4-turbo")

TEMPERATURE = 0.7
MAX_TOKENS = 2000


@dataclass
class RelayCompletion:
    """First completion of an upstream response."""
    content: str
    model: Optional[str] = None
    usage: Optional[Dict[str, Any]] = None


def build_payload(history: Sequence[Dict[str, str]], model_id: str) -> Dict[str, Any]:
    """Request body sent to the completion endpoint."""
    return {
        "model": model_id or DEFAULT_MODEL_ID,
        "messages": [{"role": m["role"], "content": m["content"]} for m in history],
        "temperature": TEMPERATURE,
        "max_tokens": MAX_TOKENS,
    }


def extract_error_message(body: str) -> Optional[str]:
    """Pull error.message out of an upstream error body, if it has one."""
    try:
        data = json.loads(body)
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    error = data.get("error")
    if isinstance(error, dict):
        return error.get("message") or None
    if isinstance(error, str):
        return error or None
    return None


def extract_completion(data: Any) -> RelayCompletion:
    """Return the first choice's message content or raise InvalidUpstreamResponse."""
    if not isinstance(data, dict):
        raise InvalidUpstreamResponse()
    choices = data.get("choices")
    if not choices or not isinstance(choices, list):
        raise InvalidUpstreamResponse()
    message = choices[0].get("message") if isinstance(choices[0], dict) else None
    if not isinstance(message, dict) or "content" not in message:
        raise InvalidUpstreamResponse()
    content = message["content"]
    if content is not None and not isinstance(content, str):
        raise InvalidUpstreamResponse()

    return RelayCompletion(
        content=content or "",
        model=data.get("model"),
        usage=data.get("usage"),
    )


class ModelRelay:
    """
    Relay for a single user's completion calls.

    The credential is read on every call, so a key saved in settings is
    picked up by the next send without any coordination.
    """

    def __init__(self, db: Session, user_id: str, http_client: httpx.AsyncClient, api_url: str = OPENROUTER_API_URL):
        self.db = db
        self.user_id = user_id
        self.http_client = http_client
        self.api_url = api_url

    def _headers(self, api_key: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": OPENROUTER_REFERER,
            "X-Title": OPENROUTER_TITLE,
        }

    async def complete_raw(self, history: Sequence[Dict[str, str]], model_id: str) -> RelayCompletion:
        """Call the completion API and return content plus model and usage."""
        api_key = CredentialService.get_api_key(self.db, self.user_id)
        if not api_key:
            logger.warning(f"No API key stored for user {self.user_id}")
            raise MissingCredential()

        payload = build_payload(history, model_id)
        logger.info(f"Making OpenRouter request with model: {payload['model']}")

        try:
            response = await self.http_client.post(
                self.api_url,
                headers=self._headers(api_key),
                json=payload,
                timeout=RELAY_TIMEOUT_SECONDS,
            )
        except httpx.HTTPError as e:
            logger.error(f"OpenRouter request failed: {type(e).__name__}")
            raise RelayTransportError(f"Could not reach OpenRouter: {type(e).__name__}") from e

        if not response.is_success:
            message = extract_error_message(response.text)
            logger.error(f"OpenRouter API error: {response.status_code} {message or ''}")
            raise UpstreamError(response.status_code, message)

        try:
            data = response.json()
        except ValueError:
            logger.error("OpenRouter returned a non-JSON body")
            raise InvalidUpstreamResponse()

        completion = extract_completion(data)
        logger.info("OpenRouter response received")
        return completion

    async def complete(self, history: List[Dict[str, str]], model_id: str) -> str:
        """Return only the reply text."""
        completion = await self.complete_raw(history, model_id)
        return completion.content
