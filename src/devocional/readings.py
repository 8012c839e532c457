"""Daily Bible reading plan.

The plan is a JSON array with one entry per day, in either format:

    {"date": "2026-01-02", "reading": "Gênesis 4-6"}
    {"date": "2026-01-02", "at1": "Gênesis 4", "at2": "Salmos 2", "nt": "Mateus 2"}

The second (legacy) format carries three passages per day, labelled
AT1/AT2/NT in the message.
"""

import json
import logging
import unicodedata
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from urllib.parse import quote
from zoneinfo import ZoneInfo

from devocional.shortener import UrlShortener

logger = logging.getLogger(__name__)

BIBLE_GATEWAY_URL = "https://www.biblegateway.com/passage/"
DEFAULT_BIBLE_VERSION = "NVI-PT"
DEFAULT_FOOTER_URL = "https://bit.ly/devocional-restauracao"
LEGACY_FIELDS = (("at1", "AT1"), ("at2", "AT2"), ("nt", "NT"))


class ReadingsError(Exception):
    """The reading plan is missing or malformed."""

    pass


@dataclass(frozen=True)
class Passage:
    text: str
    label: str | None = None


@dataclass(frozen=True)
class Reading:
    """The passages assigned to one day."""

    date: str
    passages: tuple[Passage, ...]

    @property
    def reading(self) -> str:
        return "; ".join(p.text for p in self.passages)

    @property
    def formatted_date(self) -> str:
        return date.fromisoformat(self.date).strftime("%d/%m/%Y")

    def to_dict(self) -> dict[str, str]:
        data = {"date": self.date}
        if len(self.passages) == 1 and self.passages[0].label is None:
            data["reading"] = self.passages[0].text
        else:
            for key, label in LEGACY_FIELDS:
                for passage in self.passages:
                    if passage.label == label:
                        data[key] = passage.text
        return data


def passage_link(passage: str, version: str = DEFAULT_BIBLE_VERSION) -> str:
    """Bible Gateway link for a passage.

    The search term is lowercased with accents stripped, which Bible Gateway
    resolves the same way for Portuguese book names.
    """
    normalized = unicodedata.normalize("NFD", passage)
    ascii_text = "".join(c for c in normalized if not unicodedata.combining(c))
    search = quote(ascii_text.strip().lower(), safe="")
    return f"{BIBLE_GATEWAY_URL}?search={search}&version={quote(version, safe='')}"


def _parse_entry(raw: object, index: int) -> Reading:
    if not isinstance(raw, dict):
        raise ReadingsError(f"Entry {index}: expected an object")

    day = raw.get("date")
    if not isinstance(day, str) or not day:
        raise ReadingsError(f"Entry {index}: missing 'date'")
    try:
        date.fromisoformat(day)
    except ValueError as e:
        raise ReadingsError(f"Entry {index}: invalid date '{day}'") from e

    text = raw.get("reading")
    if isinstance(text, str) and text.strip():
        return Reading(date=day, passages=(Passage(text.strip()),))

    passages = []
    for key, label in LEGACY_FIELDS:
        value = raw.get(key)
        if not isinstance(value, str) or not value.strip():
            raise ReadingsError(
                f"Entry {index} ({day}): needs 'reading' or all of at1, at2, nt"
            )
        passages.append(Passage(value.strip(), label))
    return Reading(date=day, passages=tuple(passages))


class ReadingPlan:
    """Reading plan loaded from a JSON file.

    Example:
        plan = ReadingPlan(Path("data/leituras.json"))
        reading = plan.get_todays_reading("America/Sao_Paulo")
        if reading:
            text = await plan.format_message(reading)
    """

    def __init__(
        self,
        path: Path,
        *,
        bible_version: str = DEFAULT_BIBLE_VERSION,
        footer_url: str | None = DEFAULT_FOOTER_URL,
        shortener: UrlShortener | None = None,
    ):
        self._path = path
        self._bible_version = bible_version
        self._footer_url = footer_url
        self._shortener = shortener
        self._readings = self._load()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def count(self) -> int:
        return len(self._readings)

    def _load(self) -> list[Reading]:
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            raise ReadingsError(f"Reading plan not found: {self._path}") from e
        except (OSError, json.JSONDecodeError) as e:
            raise ReadingsError(f"Failed to load reading plan {self._path}: {e}") from e

        if not isinstance(raw, list):
            raise ReadingsError("Reading plan must be a JSON array")

        readings = [_parse_entry(entry, i) for i, entry in enumerate(raw)]
        logger.info(
            "readings_loaded",
            extra={"file.path": str(self._path), "readings.count": len(readings)},
        )
        return readings

    def validate(self) -> bool:
        """True if every entry has a date and its passages.

        Loading already rejects malformed entries; this re-checks the
        in-memory plan after a reload.
        """
        return all(r.date and r.passages for r in self._readings)

    def reload(self) -> None:
        self._readings = self._load()

    def get_reading_for_date(self, day: date) -> Reading | None:
        key = day.isoformat()
        for reading in self._readings:
            if reading.date == key:
                return reading
        logger.warning("reading_not_found", extra={"readings.date": key})
        return None

    def get_todays_reading(self, timezone: str = "UTC") -> Reading | None:
        today = datetime.now(ZoneInfo(timezone)).date()
        return self.get_reading_for_date(today)

    def all(self, date_filter: str | None = None) -> list[Reading]:
        if not date_filter:
            return list(self._readings)
        return [r for r in self._readings if r.date == date_filter]

    async def _link(self, passage: Passage) -> str:
        url = passage_link(passage.text, self._bible_version)
        if self._shortener is None:
            return url
        return await self._shortener.shorten(url)

    async def format_message(self, reading: Reading) -> str:
        lines = [f"📖 Devocional - {reading.formatted_date}", ""]
        for passage in reading.passages:
            heading = f"{passage.label}: {passage.text}" if passage.label else passage.text
            lines.append(heading)
            lines.append(await self._link(passage))
            lines.append("")
        if self._footer_url:
            lines.append(self._footer_url)
        return "\n".join(lines).rstrip()

    async def get_content_for_date(self, day: date) -> str | None:
        reading = self.get_reading_for_date(day)
        if reading is None:
            return None
        return await self.format_message(reading)
