"""Fact checking through the OpenAI chat completions API.

Only the HTTP controls use this; lobby mutations never call out.
"""

from __future__ import annotations

import logging

from openai import OpenAI, OpenAIError


logger = logging.getLogger(__name__)

PROMPT = (
    "Please verify the following statement. Provide a concise confirmation or correction, "
    'and if possible, a source. Statement: "{statement}"'
)


class FactCheckError(Exception):
    """Raised when the upstream model call fails."""


class FactCheckNotConfigured(FactCheckError):
    def __init__(self):
        super().__init__("Fact-checking is not configured on the server.")


class FactChecker:
    def __init__(self, api_key: str | None = None, model: str = "gpt-4o-mini", client: OpenAI | None = None):
        self.model = model
        if client is None and api_key:
            client = OpenAI(api_key=api_key)
        self._client = client

    @property
    def is_configured(self) -> bool:
        return self._client is not None

    def check(self, statement: str) -> str:
        if self._client is None:
            raise FactCheckNotConfigured()

        try:
            response = self._client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": PROMPT.format(statement=statement)}],
            )
        except OpenAIError as exc:
            logger.warning(
                "factcheck.upstream.failed",
                extra={"context": {"model": self.model, "error": str(exc)}},
            )
            raise FactCheckError("The fact-check service failed to respond.") from exc

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise FactCheckError("The fact-check service returned an empty answer.")
        return content.strip()
