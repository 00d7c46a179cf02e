import logging
from typing import Protocol

import anthropic

from review_insights.services.errors import ModelCallError

logger = logging.getLogger(__name__)


class TextGenerator(Protocol):
    def submit(self, prompt: str) -> str: ...


class ClaudeClient:
    """Single-shot, non-streaming text generation through the Anthropic API."""

    def __init__(
        self,
        api_key: str,
        model_name: str,
        max_tokens: int = 1024,
        timeout: float = 60.0,
        client: anthropic.Anthropic | None = None,
    ):
        self.model_name = model_name
        self.max_tokens = max_tokens
        self._client = client or anthropic.Anthropic(
            api_key=api_key, timeout=timeout, max_retries=0
        )

    def submit(self, prompt: str) -> str:
        """
        Send ``prompt`` as one user message and return the raw text reply.

        Raises:
            ModelCallError: The API rejected or failed the call (auth, quota,
                network, timeout) or returned no text.
        """
        try:
            message = self._client.messages.create(
                model=self.model_name,
                max_tokens=self.max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.AuthenticationError as exc:
            logger.error("Claude API authentication failed, check ANTHROPIC_API_KEY")
            raise ModelCallError(f"authentication failed: {exc}") from exc
        except anthropic.APIError as exc:
            logger.error("Claude API error: %s", exc)
            raise ModelCallError(str(exc)) from exc

        text = "".join(
            block.text for block in message.content if getattr(block, "type", None) == "text"
        )
        if not text:
            raise ModelCallError(f"empty response (stop_reason={message.stop_reason})")

        logger.info(
            "Claude analysis completed | model=%s | input_tokens=%d | output_tokens=%d",
            self.model_name,
            message.usage.input_tokens,
            message.usage.output_tokens,
        )
        return text
