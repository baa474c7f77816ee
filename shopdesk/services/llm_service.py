"""
LLM Service for AI-Powered Insights
Thin wrapper around the Anthropic Messages API: prompt in, text out
"""
from typing import Optional

from anthropic import Anthropic

from shopdesk.config import get_settings
from shopdesk.utils.logger import log


class LLMError(Exception):
    """The model call did not produce text (not configured, network, quota, timeout...)."""


class LLMService:
    """
    Service for generating text completions using Claude
    """

    def __init__(self, client: Optional[Anthropic] = None):
        settings = get_settings()
        self.model = settings.llm_model
        self.max_tokens = settings.llm_max_tokens
        self.client = client
        self.enabled = bool(client) or bool(settings.enable_llm_insights and settings.anthropic_api_key)

        if self.client is None and self.enabled:
            try:
                self.client = Anthropic(
                    api_key=settings.anthropic_api_key,
                    timeout=settings.llm_timeout_seconds,
                    max_retries=0,
                )
                log.info("LLM Service initialized with Claude")
            except Exception as e:
                log.error(f"Failed to initialize Anthropic client: {str(e)}")
                self.enabled = False
        elif not self.enabled:
            log.info("LLM insights disabled (no API key or feature disabled)")

    def is_available(self) -> bool:
        return bool(self.enabled and self.client is not None)

    def complete(self, prompt: str, max_tokens: Optional[int] = None) -> str:
        """Send a single-turn prompt and return the concatenated text blocks."""
        if not self.is_available():
            raise LLMError("LLM service not configured. Set ANTHROPIC_API_KEY in .env")

        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=max_tokens or self.max_tokens,
                messages=[{"role": "user", "content": prompt}]
            )
        except Exception as e:
            log.error(f"LLM request failed: {str(e)}")
            raise LLMError(str(e)) from e

        text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        if not text.strip():
            raise LLMError("LLM returned an empty response")
        return text
