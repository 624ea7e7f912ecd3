"""OpenAI LLM service for document insight answers."""
from typing import Dict, List, Optional, Sequence

import openai
from openai import AsyncOpenAI

from app.core.config import Settings
from app.core.errors import UpstreamError
from app.services.conversation import MODEL_ROLE, PromptSegment


# OpenAI's chat API calls the model role "assistant"
_OPENAI_ROLES = {MODEL_ROLE: "assistant"}


def build_client(settings: Settings) -> AsyncOpenAI:
    """Create the pooled client shared by every request of one app."""
    return AsyncOpenAI(
        api_key=settings.OPENAI_API_KEY,
        base_url=settings.OPENAI_BASE_URL,
        timeout=settings.LLM_TIMEOUT_SECONDS,
        max_retries=0,
    )


class OpenAIService:
    """Service for interacting with OpenAI API."""

    def __init__(self, client: AsyncOpenAI, model: str = "gpt-4o-mini", temperature: float = 0.3):
        self.client = client
        self.model = model
        self.temperature = temperature

    @classmethod
    def from_settings(cls, client: AsyncOpenAI, settings: Settings) -> "OpenAIService":
        return cls(client, model=settings.OPENAI_MODEL)

    @staticmethod
    def to_messages(segments: Sequence[PromptSegment]) -> List[Dict[str, str]]:
        """Map prompt segments onto OpenAI chat messages."""
        return [
            {"role": _OPENAI_ROLES.get(segment.role, segment.role), "content": segment.content}
            for segment in segments
        ]

    async def generate(self, segments: Sequence[PromptSegment], max_tokens: Optional[int] = None) -> str:
        """
        Generate an answer for an assembled prompt.

        Args:
            segments: Prompt built by the conversation assembler
            max_tokens: Upper bound on generated tokens

        Returns:
            The generated answer text

        Raises:
            UpstreamError: If the API call fails or returns no content
        """
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=self.to_messages(segments),
                temperature=self.temperature,
                max_tokens=max_tokens if max_tokens is not None else openai.NOT_GIVEN,
            )
        except openai.APIStatusError as e:
            raise UpstreamError("LLM API error", upstream_status=e.status_code) from e
        except openai.APITimeoutError as e:
            raise UpstreamError("LLM API timed out") from e
        except openai.APIError as e:
            raise UpstreamError(f"LLM API error: {e.__class__.__name__}") from e

        if not response.choices or not response.choices[0].message.content:
            raise UpstreamError("LLM API returned no content")

        return response.choices[0].message.content.strip()
