from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import ENTRIES_FILENAME
from .errors import DecodeError, ExportIOError


@dataclass(frozen=True)
class Center:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class Region:
    center: Center


@dataclass(frozen=True)
class Location:
    region: Region
    address: str = ""
    place_name: str = ""
    locality_name: str = ""
    administrative_area: str = ""
    country: str = ""
    latitude: float = 0.0
    longitude: float = 0.0


# Entries without a location are written at 0,0 because Joplin notes have no "unknown" position.
NO_LOCATION = Location(region=Region(center=Center(latitude=0.0, longitude=0.0)))


@dataclass(frozen=True)
class Weather:
    conditions_description: str = ""
    temperature_celsius: float = 0.0
    relative_humidity: float = 0.0
    pressure_mb: float = 0.0
    visibility_km: float = 0.0
    weather_code: str = ""
    weather_service_name: str = ""
    wind_bearing: float = 0.0
    wind_chill_celsius: float = 0.0
    wind_speed_kph: float = 0.0


@dataclass(frozen=True)
class Photo:
    identifier: str
    md5: str
    type: str
    width: float = 0.0
    height: float = 0.0
    order_in_entry: float = 0.0
    exposure_bias_value: float = 0.0

    @property
    def filename(self) -> str:
        return f"{self.md5}.{self.type}"


@dataclass(frozen=True)
class JournalEntry:
    uuid: str
    creation_date: datetime
    text: str = ""
    time_zone: str = ""
    location: Optional[Location] = None
    weather: Optional[Weather] = None
    photos: List[Photo] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    starred: bool = False
    audios: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class JournalExport:
    entries: List[JournalEntry]
    version: str = ""


def _require(data: Dict[str, Any], key: str, where: str) -> Any:
    if key not in data or data[key] is None:
        raise DecodeError(f"{where}: missing required field '{key}'")
    return data[key]


def _expect_object(value: Any, where: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise DecodeError(f"{where}: expected an object, got {type(value).__name__}")
    return value


def _string(data: Dict[str, Any], key: str, where: str, *, required: bool = False) -> str:
    value = _require(data, key, where) if required else data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise DecodeError(f"{where}.{key}: expected a string, got {type(value).__name__}")
    return value


def _number(data: Dict[str, Any], key: str, where: str, *, required: bool = False) -> float:
    value = _require(data, key, where) if required else data.get(key)
    if value is None:
        return 0.0
    # bool is an int subclass but never a valid coordinate or dimension
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DecodeError(f"{where}.{key}: expected a number, got {type(value).__name__}")
    return float(value)


def _string_list(data: Dict[str, Any], key: str, where: str) -> List[str]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise DecodeError(f"{where}.{key}: expected a list of strings")
    return list(value)


def parse_creation_date(raw_value: Any, where: str = "entry") -> datetime:
    """Parse a Day One ISO-8601 timestamp; values without an offset are taken as UTC."""

    if not isinstance(raw_value, str):
        raise DecodeError(f"{where}.creationDate: expected a string, got {type(raw_value).__name__}")

    cleaned = raw_value.strip()
    if cleaned.endswith("Z"):
        cleaned = cleaned[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(cleaned)
    except ValueError as exc:
        raise DecodeError(f"{where}.creationDate: invalid timestamp {raw_value!r}") from exc

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_location(raw: Any, where: str) -> Location:
    data = _expect_object(raw, where)
    region = _expect_object(_require(data, "region", where), f"{where}.region")
    center = _expect_object(_require(region, "center", f"{where}.region"), f"{where}.region.center")

    return Location(
        region=Region(
            center=Center(
                latitude=_number(center, "latitude", f"{where}.region.center", required=True),
                longitude=_number(center, "longitude", f"{where}.region.center", required=True),
            )
        ),
        address=_string(data, "address", where),
        place_name=_string(data, "placeName", where),
        locality_name=_string(data, "localityName", where),
        administrative_area=_string(data, "administrativeArea", where),
        country=_string(data, "country", where),
        latitude=_number(data, "latitude", where),
        longitude=_number(data, "longitude", where),
    )


def parse_weather(raw: Any, where: str) -> Weather:
    data = _expect_object(raw, where)
    return Weather(
        conditions_description=_string(data, "conditionsDescription", where),
        temperature_celsius=_number(data, "temperatureCelsius", where),
        relative_humidity=_number(data, "relativeHumidity", where),
        pressure_mb=_number(data, "pressureMB", where),
        visibility_km=_number(data, "visibilityKM", where),
        weather_code=_string(data, "weatherCode", where),
        weather_service_name=_string(data, "weatherServiceName", where),
        wind_bearing=_number(data, "windBearing", where),
        wind_chill_celsius=_number(data, "windChillCelsius", where),
        wind_speed_kph=_number(data, "windSpeedKPH", where),
    )


def parse_photo(raw: Any, where: str) -> Photo:
    data = _expect_object(raw, where)
    return Photo(
        identifier=_string(data, "identifier", where, required=True),
        md5=_string(data, "md5", where, required=True),
        type=_string(data, "type", where, required=True),
        width=_number(data, "width", where),
        height=_number(data, "height", where),
        order_in_entry=_number(data, "orderInEntry", where),
        exposure_bias_value=_number(data, "exposureBiasValue", where),
    )


def parse_entry(raw: Any, index: int) -> JournalEntry:
    where = f"entries[{index}]"
    data = _expect_object(raw, where)
    uuid = _string(data, "uuid", where, required=True)
    where = f"entry {uuid}"

    starred = data.get("starred", False)
    if not isinstance(starred, bool):
        raise DecodeError(f"{where}.starred: expected a boolean")

    raw_photos = data.get("photos") or []
    if not isinstance(raw_photos, list):
        raise DecodeError(f"{where}.photos: expected a list")

    location = data.get("location")
    weather = data.get("weather")

    return JournalEntry(
        uuid=uuid,
        creation_date=parse_creation_date(_require(data, "creationDate", where), where),
        text=_string(data, "text", where),
        time_zone=_string(data, "timeZone", where),
        location=parse_location(location, f"{where}.location") if location is not None else None,
        weather=parse_weather(weather, f"{where}.weather") if weather is not None else None,
        photos=[parse_photo(photo, f"{where}.photos[{idx}]") for idx, photo in enumerate(raw_photos)],
        tags=_string_list(data, "tags", where),
        starred=starred,
        audios=_string_list(data, "audios", where),
    )


def parse_export(document: Any) -> JournalExport:
    data = _expect_object(document, ENTRIES_FILENAME)
    raw_entries = _require(data, "entries", ENTRIES_FILENAME)
    if not isinstance(raw_entries, list):
        raise DecodeError(f"{ENTRIES_FILENAME}.entries: expected a list")

    metadata = data.get("metadata") or {}
    version = _string(_expect_object(metadata, "metadata"), "version", "metadata")

    return JournalExport(
        entries=[parse_entry(raw, idx) for idx, raw in enumerate(raw_entries)],
        version=version,
    )


def load_export(journal_folder: Path) -> JournalExport:
    """Read and decode <journal_folder>/AllEntries.json, failing on the first schema problem."""

    path = Path(journal_folder) / ENTRIES_FILENAME
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise DecodeError(f"{path} is not UTF-8: {exc}") from exc
    except OSError as exc:
        raise ExportIOError(f"Cannot read export {path}: {exc}") from exc

    try:
        document = json.loads(text)
    except ValueError as exc:
        raise DecodeError(f"{path} is not valid JSON: {exc}") from exc

    return parse_export(document)
