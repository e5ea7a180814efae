"""
Data Ingestion - Normalizer Base.

============================================================
RESPONSIBILITY
============================================================
Shared contract and field helpers for normalizers.

A normalizer turns one raw provider payload into a canonical
LaunchEvent or MigrationEvent, or raises:
- MalformedEvent: no token address or no resolvable actor wallet
- UnidentifiableEvent: no stable event id; ids are never invented

============================================================
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional

from storage.models.base import to_naive_utc, utc_now

from ..types import CanonicalEvent, MalformedEvent, SourceTag, UnidentifiableEvent

Clock = Callable[[], datetime]


class EventNormalizer(ABC):
    """Base class for per-source-family normalizers."""

    source_tag: SourceTag

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._clock = clock or utc_now

    @abstractmethod
    def normalize(self, payload: Mapping[str, Any]) -> CanonicalEvent:
        ...

    # =========================================================
    # FIELD HELPERS
    # =========================================================

    def _malformed(self, reason: str, payload: Mapping[str, Any]) -> MalformedEvent:
        return MalformedEvent(
            reason,
            source=self.source_tag.value,
            details={"keys": sorted(str(k) for k in payload.keys())},
        )

    def _require_address(self, payload: Mapping[str, Any], *keys: str) -> str:
        """First non-empty string under any of keys, else MalformedEvent."""
        value = _first_str(payload, keys)
        if value is None:
            raise self._malformed(f"missing {' / '.join(keys)}", payload)
        return value

    def _require_event_id(self, payload: Mapping[str, Any], *keys: str) -> str:
        value = _first_str(payload, keys)
        if value is None:
            raise UnidentifiableEvent(
                f"no stable id ({' / '.join(keys)}) in payload",
                source=self.source_tag.value,
                details={"keys": sorted(str(k) for k in payload.keys())},
            )
        return value

    def _timestamp(self, value: Any) -> datetime:
        """
        Parse a provider timestamp to naive UTC.

        Accepts unix seconds, unix milliseconds, ISO-8601 strings
        and datetimes. Missing or unparseable values fall back to
        the normalizer clock.
        """
        if value is None or value == "":
            return self._clock()
        if isinstance(value, datetime):
            return to_naive_utc(value)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            seconds = value / 1000 if value > 1e12 else value
            try:
                return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(tzinfo=None)
            except (OverflowError, OSError, ValueError):
                return self._clock()
        if isinstance(value, str):
            try:
                parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
            except ValueError:
                return self._clock()
            return to_naive_utc(parsed)
        return self._clock()


def _first_str(payload: Mapping[str, Any], keys: tuple) -> Optional[str]:
    for key in keys:
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def optional_str(payload: Mapping[str, Any], key: str) -> Optional[str]:
    value = payload.get(key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None
