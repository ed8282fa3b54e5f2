"""Single-call adapter around the Anthropic Messages API."""

import logging

from anthropic import APIConnectionError, APIError, APIStatusError, AsyncAnthropic

from studybuddy.config import get_settings
from studybuddy.errors import GenerationFailed
from studybuddy.services.prompt_builder import PromptPayload

logger = logging.getLogger(__name__)
settings = get_settings()


class ModelGateway:
    """
    The only component that talks to the model provider.

    One request per generate() call. The SDK's built-in retries are switched
    off so every failure reaches the caller.
    """

    def __init__(self, client: AsyncAnthropic | None = None, model: str | None = None):
        """Initialize Anthropic client."""
        self.client = client or AsyncAnthropic(
            api_key=settings.anthropic_api_key,
            max_retries=0,
            timeout=settings.llm_timeout_seconds,
        )
        self.model = model or settings.llm_model

    async def generate(self, payload: PromptPayload) -> str:
        """
        Send one prompt and return the raw text of the reply.

        Raises:
            GenerationFailed: the API call failed or the reply had no text
        """
        logger.info(
            "Calling %s for %s (%d messages)",
            self.model,
            payload.task_kind.value,
            len(payload.messages),
        )
        try:
            message = await self.client.messages.create(
                model=self.model,
                max_tokens=payload.max_tokens,
                temperature=payload.temperature,
                system=payload.system,
                messages=payload.messages,
            )
        except APIStatusError as e:
            logger.error("Model API returned %s for %s", e.status_code, payload.task_kind.value)
            raise GenerationFailed(
                f"Model API error: {e.status_code}", upstream_status=e.status_code
            ) from e
        except APIConnectionError as e:
            logger.error("Could not reach model API for %s: %s", payload.task_kind.value, e)
            raise GenerationFailed("Could not reach the model API") from e
        except APIError as e:
            logger.error("Model API call failed for %s: %s", payload.task_kind.value, e)
            raise GenerationFailed(f"Model API error: {e}") from e

        text = "".join(
            block.text for block in (message.content or []) if getattr(block, "type", None) == "text"
        )
        if not text:
            raise GenerationFailed("No response from the model")
        return text


# Singleton instance
model_gateway = ModelGateway()
