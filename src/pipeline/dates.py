"""Multi-format departure date parsing with a per-run cache.

Formats are tried in order and the first successful parse wins, so an
ambiguous string like "03/04/2025" always resolves day-first.
"""

import logging
import threading
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

DATE_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%d/%m/%Y",
    "%m/%d/%Y",
    "%d-%m-%Y",
    "%m-%d-%Y",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%d %H:%M:%S",
)


def parse_date(text: str) -> datetime | None:
    """Parse a departure date string, or return None if no format matches.

    Offset-aware values are converted to naive UTC so every result compares
    with every other.
    """
    value = text.strip()
    if not value:
        return None
    for fmt in DATE_FORMATS:
        try:
            parsed = datetime.strptime(value, fmt)
        except ValueError:
            continue
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
        return parsed
    return None


class DateCache:
    """Memoizes parse_date for one pipeline run.

    Failures are cached too. A lock allows at most one mutator at a time.
    """

    def __init__(self) -> None:
        self._cache: dict[str, datetime | None] = {}
        self._lock = threading.Lock()

    def get(self, text: str) -> datetime | None:
        with self._lock:
            if text in self._cache:
                return self._cache[text]
        parsed = parse_date(text)
        if parsed is None:
            logger.debug("Unparseable date: %r", text)
        with self._lock:
            self._cache.setdefault(text, parsed)
            return self._cache[text]

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)
