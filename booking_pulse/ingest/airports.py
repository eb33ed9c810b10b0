"""Static airport directory.

Maps an IATA-style code to display name, country, continent and
coordinates. Loaded once at startup and read-only afterwards.

The data file is JSON, either a list of records or a mapping keyed by
code, each record shaped like:

    {"iata": "JFK", "airport": "John F. Kennedy International Airport",
     "country": "United States", "continent": "North America",
     "lat": 40.6413, "lng": -73.7781}
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AirportRecord:
    """One airport, keyed by code."""

    code: str
    display_name: str
    country: str
    continent: str
    latitude: float
    longitude: float


def normalize_code(code: str) -> str:
    """Canonical form of an airport code used as the directory key."""
    return code.strip().upper()


def _record_from_raw(code: str | None, raw: Mapping[str, Any]) -> AirportRecord:
    """Build a record from one raw JSON entry.

    Raises:
        KeyError: A required field is missing.
        ValueError/TypeError: Coordinates are not numeric.
    """
    key = code if code is not None else raw["iata"]
    return AirportRecord(
        code=normalize_code(str(key)),
        display_name=str(raw["airport"]),
        country=str(raw["country"]),
        continent=str(raw["continent"]),
        latitude=float(raw["lat"]),
        longitude=float(raw["lng"]),
    )


class AirportDirectory:
    """Read-only code -> AirportRecord lookup."""

    def __init__(self, records: Iterable[AirportRecord] = ()) -> None:
        self._records: dict[str, AirportRecord] = {}
        for record in records:
            self._records[normalize_code(record.code)] = record

    @classmethod
    def from_raw(cls, data: Any) -> AirportDirectory:
        """Build a directory from decoded JSON (list or code-keyed mapping).

        Malformed entries are skipped with a warning.
        """
        items: list[tuple[str | None, Any]]
        if isinstance(data, Mapping):
            items = [(str(code), raw) for code, raw in data.items()]
        elif isinstance(data, list):
            items = [(None, raw) for raw in data]
        else:
            raise ValueError(
                f"Airport data must be a list or mapping, got {type(data).__name__}"
            )

        records: list[AirportRecord] = []
        for code, raw in items:
            if not isinstance(raw, Mapping):
                logger.warning("Skipping airport entry that is not an object: %r", raw)
                continue
            try:
                records.append(_record_from_raw(code, raw))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed airport entry %r: %s", code or raw, e)
        return cls(records)

    @classmethod
    def load(cls, path: str | Path) -> AirportDirectory:
        """Load the directory from a JSON file.

        A missing or unreadable file is logged and yields an empty
        directory: every lookup then fails validation instead of the
        process refusing to start.
        """
        file_path = Path(path)
        try:
            with open(file_path, encoding="utf-8") as f:
                data = json.load(f)
            directory = cls.from_raw(data)
        except (OSError, ValueError) as e:
            logger.error("Error loading airport data from %s: %s", file_path, e)
            logger.error("No airport data available - all lookups will fail")
            return cls()

        logger.info("Loaded %d airports from %s", len(directory), file_path)
        return directory

    def lookup(self, code: str) -> AirportRecord | None:
        """Return the record for a code, or None if unknown."""
        return self._records.get(normalize_code(code))

    def __contains__(self, code: object) -> bool:
        return isinstance(code, str) and normalize_code(code) in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[AirportRecord]:
        return iter(self._records.values())
