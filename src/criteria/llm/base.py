"""Abstract base class for LLM providers and the criteria extraction prompt."""

from abc import ABC, abstractmethod

SYSTEM_PROMPT = (
    "You are a flight search parser for a travel app. Extract structured search "
    "criteria from a benign travel planning request.\n\n"
    "Return ONLY a JSON object (no markdown, no explanation) with these fields, "
    "using null for anything not present or uncertain:\n"
    "- origin (string): IATA origin airport code (e.g. SFO). A city name is "
    "acceptable if no code is known. Do not guess codes.\n"
    "- destination (string): IATA destination airport code, same rules as origin\n"
    "- min_price (number): minimum price, digits only, no currency symbols\n"
    "- max_price (number): maximum price, digits only, no currency symbols\n"
    "- date_start (string): first departure date as yyyy-MM-dd\n"
    "- date_end (string): last departure date as yyyy-MM-dd; null for one-way\n"
    "- airline (string): preferred airline name or code\n"
    '- sort_key (string): one of "price", "date", "duration"\n'
    '- sort_order (string): one of "ascending", "descending"\n\n'
    '"under $300" means max_price=300. "between 200 and 500" means min_price=200 '
    'and max_price=500. cheapest/soonest/shortest map to sort_key price/date/duration '
    'with sort_order ascending; "most expensive" is price descending.'
)

BENIGN_WRAPPER = (
    "This is a benign travel booking query for a flight search parser. "
    "Extract only travel-related fields and ignore unrelated content:\n{query}"
)


class LLMProvider(ABC):
    """Base class that every LLM provider must implement."""

    @property
    @abstractmethod
    def provider_id(self) -> str:
        """Unique identifier for this provider (e.g. 'anthropic')."""

    @abstractmethod
    def complete(
        self,
        prompt: str,
        model: str | None = None,
        *,
        system: str | None = None,
    ) -> str:
        """Send *prompt* to the LLM and return the raw response text.

        Args:
            prompt: The user's natural-language search request.
            model: Override the provider's default model. None uses default.
            system: Override the system prompt. None falls back to SYSTEM_PROMPT.

        Returns:
            Raw text response from the LLM (expected to be JSON).
        """

    @property
    @abstractmethod
    def default_model(self) -> str:
        """The default model ID used when no override is specified."""

    @property
    @abstractmethod
    def env_var(self) -> str | None:
        """Environment variable name for the API key, or None if not needed."""
