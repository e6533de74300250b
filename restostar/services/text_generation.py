"""
Text generation client used for email personalization and feedback insights.

Wraps the OpenAI chat completions API. Responses are never trusted as typed
data: free text is length-checked, JSON is parsed and must be an object.
"""
import json
from typing import Any, Dict, Optional
import logging

from openai import OpenAI

from restostar.core.config import get_settings
from restostar.core.errors import UpstreamError

logger = logging.getLogger(__name__)

# Anything shorter is almost certainly a refusal or a cut-off reply
MIN_MESSAGE_LENGTH = 20


class TextGenerationClient:
    """
    Thin wrapper around the OpenAI SDK.

    Without an API key the client is "unconfigured": `generate_message`
    returns None (callers fall back to templates) and `generate_json`
    raises UpstreamError.
    """

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, timeout: Optional[float] = None):
        settings = get_settings()
        self.api_key = api_key or settings.OPENAI_API_KEY
        self.model = model or settings.OPENAI_MODEL
        self.timeout = timeout or settings.AI_TIMEOUT_SECONDS
        self.client = OpenAI(api_key=self.api_key, timeout=self.timeout) if self.api_key else None

    @property
    def is_configured(self) -> bool:
        return self.client is not None

    def generate_message(self, prompt: str, temperature: float = 0.7, max_tokens: int = 400) -> Optional[str]:
        """
        Short free-text message, or None if it could not be produced.

        Truncated and suspiciously short replies count as failures.
        """
        if not self.client:
            return None

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": "You write short, warm, human-sounding email messages for restaurants."},
                    {"role": "user", "content": prompt},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except Exception as e:
            logger.warning(f"Text generation failed: {e}")
            return None

        choice = response.choices[0] if response.choices else None
        content = choice.message.content if choice and choice.message else None

        if choice is None or choice.finish_reason == "length":
            return None
        if not isinstance(content, str) or len(content.strip()) < MIN_MESSAGE_LENGTH:
            return None

        return content.strip()

    def generate_json(self, prompt: str, temperature: float = 0.2) -> Dict[str, Any]:
        """
        Structured reply as a JSON object.

        Raises:
            UpstreamError: not configured, API failure, or a reply that is not a JSON object
        """
        if not self.client:
            raise UpstreamError("Text generation is not configured (OPENAI_API_KEY missing)")

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": "You analyze restaurant customer feedback and answer in JSON."},
                    {"role": "user", "content": prompt},
                ],
                temperature=temperature,
                response_format={"type": "json_object"},
            )
        except Exception as e:
            logger.error(f"Text generation request failed: {e}")
            raise UpstreamError(f"Text generation failed: {e}")

        content = response.choices[0].message.content if response.choices else None
        if not content or not isinstance(content, str):
            raise UpstreamError("Unexpected text generation response")

        try:
            parsed = json.loads(content)
        except json.JSONDecodeError:
            raise UpstreamError("Failed to parse text generation JSON response")

        if not isinstance(parsed, dict):
            raise UpstreamError("Text generation response is not a JSON object")

        return parsed
