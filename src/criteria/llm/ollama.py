"""Ollama local LLM provider (OpenAI-compatible API)."""

from src.criteria.llm.openai import OpenAIProvider


class OllamaProvider(OpenAIProvider):
    """Criteria extraction through a local Ollama instance. No API key needed."""

    base_url = "http://localhost:11434/v1"

    @property
    def provider_id(self) -> str:
        return "ollama"

    @property
    def default_model(self) -> str:
        return "llama3"

    @property
    def env_var(self) -> None:
        return None

    def _api_key(self) -> str:
        return "ollama"
