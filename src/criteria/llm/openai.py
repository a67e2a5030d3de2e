"""OpenAI LLM provider."""

import logging
import os

from src.criteria.llm.base import SYSTEM_PROMPT, LLMProvider

logger = logging.getLogger(__name__)


class OpenAIProvider(LLMProvider):
    """Criteria extraction through the OpenAI chat completions API."""

    base_url: str | None = None

    @property
    def provider_id(self) -> str:
        return "openai"

    @property
    def default_model(self) -> str:
        return "gpt-4o-mini"

    @property
    def env_var(self) -> str | None:
        return "OPENAI_API_KEY"

    def _api_key(self) -> str:
        api_key = os.environ.get(self.env_var or "")
        if not api_key:
            msg = f"{self.env_var} environment variable is required"
            raise ValueError(msg)
        return api_key

    def complete(
        self,
        prompt: str,
        model: str | None = None,
        *,
        system: str | None = None,
    ) -> str:
        api_key = self._api_key()

        try:
            import openai
        except ImportError:
            msg = (
                "openai is required for natural-language search. "
                "Install with: pip install 'flight-browser[openai]'"
            )
            raise ImportError(msg) from None

        client = openai.OpenAI(api_key=api_key, base_url=self.base_url)
        use_model = model or self.default_model

        logger.info("Parsing search request with %s (%s)", self.provider_id, use_model)
        response = client.chat.completions.create(
            model=use_model,
            messages=[
                {"role": "system", "content": system if system is not None else SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        )
        return response.choices[0].message.content or ""
