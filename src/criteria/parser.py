"""Natural-language to QueryCriteria parsing.

The pipeline only depends on the CriteriaParser interface. Two
implementations ship here: an LLM-backed parser and a local heuristic one
that also serves as its fallback for origin/destination.
"""

import asyncio
import json
import logging
import re
from abc import ABC, abstractmethod

from pydantic import ValidationError

from src.core.config import CriteriaParserConfig
from src.core.schemas import ParsedCriteria, QueryCriteria, SortKey, SortOrder
from src.criteria.llm import get_provider
from src.criteria.llm.base import BENIGN_WRAPPER, LLMProvider
from src.pipeline.dates import parse_date

logger = logging.getLogger(__name__)


class CriteriaParseError(Exception):
    """The natural-language request could not be turned into criteria."""


class CriteriaParser(ABC):
    """Base class that every criteria parser must implement."""

    @abstractmethod
    async def parse(self, text: str) -> ParsedCriteria:
        """Parse *text* into criteria. Raises CriteriaParseError on failure."""


def parse_response(raw_text: str) -> ParsedCriteria:
    """Parse an LLM response text into ParsedCriteria.

    Handles markdown-wrapped JSON (```json ... ```) and plain JSON. Unknown
    sort values are dropped rather than rejected.
    """
    cleaned = re.sub(r"^```(?:json)?\s*\n?", "", raw_text.strip())
    cleaned = re.sub(r"\n?```\s*$", "", cleaned)

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        msg = f"Failed to parse LLM response as JSON: {e}"
        raise CriteriaParseError(msg) from e
    if not isinstance(data, dict):
        msg = "LLM response is not a JSON object"
        raise CriteriaParseError(msg)

    for key, allowed in (("sort_key", SortKey), ("sort_order", SortOrder)):
        value = data.get(key)
        if value is not None and value not in {member.value for member in allowed}:
            logger.debug("Dropping unknown %s %r", key, value)
            data[key] = None

    try:
        return ParsedCriteria.model_validate(data)
    except ValidationError as e:
        msg = f"LLM response does not match the criteria schema: {e}"
        raise CriteriaParseError(msg) from e


# ---------------------------------------------------------------------------
# Heuristic parser
# ---------------------------------------------------------------------------

_FROM_TO = re.compile(r"from\s+([^,.;\n]+?)\s+(?:to|->|→)\s+([^,.;\n]+)")
_TO = re.compile(r"\bto\s+([^,.;\n]+)")
_FROM = re.compile(r"\bfrom\s+([^,.;\n]+)")
_CODE = re.compile(r"\b([A-Z]{3})\b")
_BETWEEN = re.compile(r"between\s+\$?(\d+(?:\.\d+)?)\s+and\s+\$?(\d+(?:\.\d+)?)")
_UNDER = re.compile(r"(?:under|below|less than|max(?:imum)?|up to)\s+\$?(\d+(?:\.\d+)?)")
_OVER = re.compile(r"(?:over|above|more than|min(?:imum)?|at least)\s+\$?(\d+(?:\.\d+)?)")
_ISO_DATE = re.compile(r"\b(\d{4}-\d{2}-\d{2})\b")

_PLACE_STOPWORDS = frozenset({
    "under", "below", "less", "over", "above", "more", "between", "max", "maximum",
    "min", "minimum", "up", "at", "on", "in", "for", "from", "to", "sorted", "by",
    "cheapest", "cheap", "soonest", "earliest", "shortest", "fastest", "with",
})

_SORT_HINTS: tuple[tuple[re.Pattern[str], SortKey, SortOrder], ...] = (
    (re.compile(r"most expensive|priciest"), SortKey.PRICE, SortOrder.DESCENDING),
    (re.compile(r"cheapest|lowest price|cheap"), SortKey.PRICE, SortOrder.ASCENDING),
    (re.compile(r"soonest|earliest"), SortKey.DATE, SortOrder.ASCENDING),
    (re.compile(r"latest"), SortKey.DATE, SortOrder.DESCENDING),
    (re.compile(r"shortest|fastest|quickest"), SortKey.DURATION, SortOrder.ASCENDING),
    (re.compile(r"longest"), SortKey.DURATION, SortOrder.DESCENDING),
)


def _resolve_place(phrase: str) -> str | None:
    """Reduce a captured phrase to a code or a bare place name."""
    kept: list[str] = []
    for word in phrase.strip().split():
        if word.lower() in _PLACE_STOPWORDS or any(ch.isdigit() for ch in word):
            break
        kept.append(word)
    if len(kept) == 1 and re.fullmatch(r"[A-Za-z]{3}", kept[0]):
        return kept[0].upper()
    return " ".join(kept) or None


def extract_route(text: str) -> tuple[str | None, str | None]:
    """Pull (origin, destination) out of free text.

    Tries "from X to Y", then "to Y" with an optional "from X", then bare
    upper-case 3-letter codes (two codes are origin and destination, one is
    the destination).
    """
    lower = text.lower()
    match = _FROM_TO.search(lower)
    if match:
        return _resolve_place(match.group(1)), _resolve_place(match.group(2))

    match = _TO.search(lower)
    if match:
        destination = _resolve_place(match.group(1))
        origin_match = _FROM.search(lower)
        origin = _resolve_place(origin_match.group(1)) if origin_match else None
        return origin, destination

    codes = _CODE.findall(text)
    if len(codes) >= 2:
        return codes[0], codes[1]
    if len(codes) == 1:
        return None, codes[0]
    return None, None


class HeuristicCriteriaParser(CriteriaParser):
    """Regex-based parser that runs locally with no model."""

    async def parse(self, text: str) -> ParsedCriteria:
        lower = text.lower()
        origin, destination = extract_route(text)
        fields: dict[str, object] = {"origin": origin, "destination": destination}

        between = _BETWEEN.search(lower)
        if between:
            fields["min_price"] = float(between.group(1))
            fields["max_price"] = float(between.group(2))
        else:
            under = _UNDER.search(lower)
            if under:
                fields["max_price"] = float(under.group(1))
            over = _OVER.search(lower)
            if over:
                fields["min_price"] = float(over.group(1))

        dates = _ISO_DATE.findall(text)
        if dates:
            fields["date_start"] = dates[0]
        if len(dates) > 1:
            fields["date_end"] = dates[1]

        for pattern, key, order in _SORT_HINTS:
            if pattern.search(lower):
                fields["sort_key"] = key
                fields["sort_order"] = order
                break

        try:
            parsed = ParsedCriteria.model_validate(fields)
        except ValidationError as e:
            msg = f"Extracted criteria are out of range: {e}"
            raise CriteriaParseError(msg) from e

        if not parsed.model_dump(exclude_none=True):
            msg = f"Could not extract any search criteria from: {text!r}"
            raise CriteriaParseError(msg)
        return parsed


# ---------------------------------------------------------------------------
# LLM parser
# ---------------------------------------------------------------------------


class LLMCriteriaParser(CriteriaParser):
    """Parses requests with an LLM, retrying once with a benign wrapper.

    When the model returns neither origin nor destination, the route is
    filled in from the heuristic extractor.
    """

    def __init__(self, provider: LLMProvider, model: str | None = None) -> None:
        self._provider = provider
        self._model = model

    async def parse(self, text: str) -> ParsedCriteria:
        try:
            parsed = await self._attempt(text)
        except CriteriaParseError as first:
            logger.info("First parse attempt failed (%s), retrying with wrapper", first)
            parsed = await self._attempt(BENIGN_WRAPPER.format(query=text))
        return _ground(parsed, text)

    async def _attempt(self, prompt: str) -> ParsedCriteria:
        try:
            raw = await asyncio.to_thread(self._provider.complete, prompt, self._model)
        except Exception as e:
            msg = f"{self._provider.provider_id} criteria parsing failed: {e}"
            raise CriteriaParseError(msg) from e
        return parse_response(raw)


def _ground(parsed: ParsedCriteria, text: str) -> ParsedCriteria:
    """Normalize codes and fill a missing route from the raw request."""
    origin = _resolve_place(parsed.origin) if parsed.origin else None
    destination = _resolve_place(parsed.destination) if parsed.destination else None
    if origin is None and destination is None:
        origin, destination = extract_route(text)
    return parsed.model_copy(update={"origin": origin, "destination": destination})


def get_criteria_parser(config: CriteriaParserConfig) -> CriteriaParser:
    """Build the parser selected in config."""
    if config.provider == "heuristic":
        return HeuristicCriteriaParser()
    return LLMCriteriaParser(get_provider(config.provider), model=config.model)


# ---------------------------------------------------------------------------
# Applying parsed criteria
# ---------------------------------------------------------------------------


def merge_parsed_criteria(current: QueryCriteria, parsed: ParsedCriteria) -> QueryCriteria:
    """Overlay the fields present in *parsed* onto *current*.

    Airline goes into the free-text query. Dates that do not parse are ignored.
    """
    changes: dict[str, object] = {}
    if parsed.origin:
        changes["origin_filter"] = parsed.origin
    if parsed.destination:
        changes["destination_filter"] = parsed.destination
    if parsed.min_price is not None:
        changes["min_price"] = parsed.min_price
    if parsed.max_price is not None:
        changes["max_price"] = parsed.max_price
    if parsed.airline:
        changes["search_text"] = parsed.airline
    if parsed.sort_key is not None:
        changes["sort_key"] = parsed.sort_key
    if parsed.sort_order is not None:
        changes["sort_order"] = parsed.sort_order

    for source, target in ((parsed.date_start, "date_start"), (parsed.date_end, "date_end")):
        if not source:
            continue
        value = parse_date(source)
        if value is None:
            logger.warning("Ignoring unparseable %s from parsed criteria: %r", target, source)
            continue
        changes[target] = value.date()

    data = current.model_dump()
    data.update(changes)
    return QueryCriteria.model_validate(data)
