"""Content moderation pre-checks."""

import logging
from typing import Optional

from groundrag.errors import ApplicationError

from .base import BaseModerator
from .document import ModerationResult

logger = logging.getLogger(__name__)


class NoopModerator(BaseModerator):
    """Moderator that never flags anything."""

    async def check(self, text: str) -> ModerationResult:
        return ModerationResult()


class OpenAIModerator(BaseModerator):
    """Moderation through the OpenAI moderations endpoint."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        client=None,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.model = model
        self._client = client

    def _get_client(self):
        """Get or create the OpenAI client."""
        if self._client is None:
            try:
                from openai import AsyncOpenAI
            except ImportError:
                raise ImportError(
                    "openai package not installed. "
                    "Install with: pip install openai"
                )

            self._client = AsyncOpenAI(api_key=self.api_key, base_url=self.base_url)
        return self._client

    async def check(self, text: str) -> ModerationResult:
        client = self._get_client()

        params = {"input": text}
        if self.model:
            params["model"] = self.model

        try:
            response = await client.moderations.create(**params)
        except Exception as e:
            raise ApplicationError("Moderation check failed", data={"error": str(e)}) from e

        if not response.results:
            raise ApplicationError("Moderation check returned no results")

        result = response.results[0]
        categories = result.categories.model_dump() if result.categories else {}
        return ModerationResult(
            flagged=bool(result.flagged),
            categories={name: bool(value) for name, value in categories.items() if value is not None},
        )
