from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Iterable

import requests

from .errors import (
    ConfigError,
    ConversionError,
    FetchError,
    PersistError,
    UnknownSourceError,
    ValidationError,
)
from .settings import DEFAULT_SOURCE_NAME, DEFAULT_SOURCE_URL
from .vendor import HEX_DIGITS, VendorRecord

logger = logging.getLogger(__name__)

_ADAPTERS: dict[str, type[SourceAdapter]] = {}


# -------------------------------------------------
# Adapters
# -------------------------------------------------

class SourceAdapter(ABC):
    """
    Converts one provider's payload into VendorRecords and back.

    The registry snapshot on disk is written with the same adapter, so the
    file keeps the provider's own shape.
    """

    name: str = ""

    @abstractmethod
    def convert(self, raw: str) -> list[VendorRecord]:
        ...

    @abstractmethod
    def serialize(self, records: Iterable[VendorRecord]) -> str:
        ...


def register_adapter(cls: type[SourceAdapter]) -> type[SourceAdapter]:
    _ADAPTERS[cls.name.lower()] = cls
    return cls


def get_adapter(name: str) -> SourceAdapter:
    try:
        return _ADAPTERS[name.lower()]()
    except KeyError:
        raise UnknownSourceError(name) from None


def available_sources() -> list[str]:
    return sorted(_ADAPTERS)


def convert(source_name: str, raw: str) -> list[VendorRecord]:
    adapter = get_adapter(source_name)
    return adapter.convert(raw)


def _is_long_block(prefix: str) -> bool:
    """MA-M (7 hex digits) and MA-S (9 hex digits) style prefixes."""
    digits = prefix.replace(":", "")
    return 6 < len(digits) < 12 and all(ch in HEX_DIGITS for ch in digits)


@register_adapter
class MacLookupAppAdapter(SourceAdapter):
    """
    maclookup.app JSON database:
    [{"macPrefix": "00:00:0C", "vendorName": "...", "private": false, "blockType": "MA-L"}, ...]
    """

    name = "maclookupapp"

    _FIELDS = (
        ("macPrefix", str),
        ("vendorName", str),
        ("private", bool),
        ("blockType", str),
    )

    def convert(self, raw: str) -> list[VendorRecord]:
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise ConversionError(f"Failed to parse JSON: {e}") from e

        if not isinstance(data, list):
            raise ConversionError("Expected a JSON array of vendor entries")

        out: list[VendorRecord] = []
        skipped = 0
        for idx, item in enumerate(data):
            if not isinstance(item, dict):
                raise ConversionError(f"Entry {idx} is not an object")
            for field, kind in self._FIELDS:
                if not isinstance(item.get(field), kind):
                    raise ConversionError(f"Entry {idx}: missing or invalid field {field!r}")
            if _is_long_block(item["macPrefix"]):
                # MA-M / MA-S blocks: more than 3 octets are vendor assigned
                skipped += 1
                continue
            try:
                out.append(
                    VendorRecord(
                        prefix=item["macPrefix"],
                        vendor_name=item["vendorName"],
                        is_private=item["private"],
                        block_type=item["blockType"],
                        source_format=self.name,
                    )
                )
            except ValidationError as e:
                raise ConversionError(f"Entry {idx}: {e} ({item['macPrefix']!r})") from e
        if skipped:
            logger.debug("Skipped %d entries with prefixes longer than 24 bits", skipped)
        return out

    def serialize(self, records: Iterable[VendorRecord]) -> str:
        return json.dumps(
            [
                {
                    "macPrefix": r.prefix,
                    "vendorName": r.vendor_name,
                    "private": r.is_private,
                    "blockType": r.block_type,
                }
                for r in records
            ]
        )


# -------------------------------------------------
# Data source
# -------------------------------------------------

@dataclass(frozen=True)
class DataSource:
    url: str
    name: str

    @classmethod
    def default(cls) -> DataSource:
        return cls(url=DEFAULT_SOURCE_URL, name=DEFAULT_SOURCE_NAME)

    @classmethod
    def from_persisted(cls, path: str | Path) -> DataSource:
        p = Path(path)
        try:
            raw = json.loads(p.read_text(encoding="utf-8"))
        except OSError as e:
            raise ConfigError(f"Failed to read {p}: {e}") from e
        except ValueError as e:
            raise ConfigError(f"Failed to parse JSON in {p}: {e}") from e

        if not isinstance(raw, dict):
            raise ConfigError(f"{p}: expected a JSON object")
        url, name = raw.get("url"), raw.get("name")
        if not isinstance(url, str) or not isinstance(name, str):
            raise ConfigError(f"{p}: 'url' and 'name' must be strings")
        return cls(url=url, name=name)

    @classmethod
    def try_load(cls, path: str | Path) -> DataSource | None:
        if not Path(path).exists():
            return None
        return cls.from_persisted(path)

    @classmethod
    def initialize_default_and_persist(cls, path: str | Path) -> DataSource:
        ds = cls.default()
        ds.save(path)
        logger.info("Wrote default datasource to %s", path)
        return ds

    def save(self, path: str | Path) -> None:
        p = Path(path)
        try:
            p.parent.mkdir(parents=True, exist_ok=True)
            p.write_text(json.dumps(asdict(self)), encoding="utf-8")
        except OSError as e:
            raise PersistError(f"Failed to write datasource {p}: {e}") from e

    def fetch_information(self) -> list[VendorRecord]:
        # Unknown adapter names fail here, before any request is made
        adapter = get_adapter(self.name)

        logger.debug("Fetching %s", self.url)
        try:
            response = requests.get(self.url)
            response.raise_for_status()
        except requests.RequestException as e:
            raise FetchError(FetchError.NETWORK, f"Error fetching data: {e}") from e

        try:
            text = response.content.decode(response.encoding or "utf-8")
        except (UnicodeDecodeError, LookupError) as e:
            raise FetchError(FetchError.DECODE, f"Error decoding data: {e}") from e

        return adapter.convert(text)


def load_datasource(path: str | Path) -> DataSource:
    ds = DataSource.try_load(path)
    if ds is None:
        ds = DataSource.initialize_default_and_persist(path)
    return ds
