from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator

from .errors import PersistError
from .sources import DataSource, get_adapter
from .vendor import VendorRecord

logger = logging.getLogger(__name__)


@dataclass
class VendorRegistry:
    """
    Ordered vendor records backed by a snapshot file.

    Order matters: lookups return the first match.
    """

    storage_path: Path
    records: list[VendorRecord] = field(default_factory=list)
    source_name: str = "maclookupapp"
    # set when the records came from the data source rather than the snapshot
    fetched: bool = field(default=False, compare=False)

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[VendorRecord]:
        return iter(self.records)

    # -------------------------------------------------
    # Lookups
    # -------------------------------------------------

    def lookup_by_prefix(self, address: str) -> VendorRecord | None:
        address = address.casefold()
        for rec in self.records:
            if address.startswith(rec.prefix.casefold()):
                return rec
        return None

    def lookup_by_vendor(self, name: str) -> VendorRecord | None:
        name = name.casefold()
        for rec in self.records:
            if name in rec.vendor_name.casefold():
                return rec
        return None

    # -------------------------------------------------
    # Persistence
    # -------------------------------------------------

    def save(self) -> None:
        p = Path(self.storage_path)
        try:
            payload = get_adapter(self.source_name).serialize(self.records)
        except (TypeError, ValueError) as e:
            raise PersistError(f"Failed to serialize JSON: {e}") from e

        tmp = p.with_name(p.name + ".tmp")
        try:
            p.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(payload, encoding="utf-8")
            os.replace(tmp, p)
        except OSError as e:
            tmp.unlink(missing_ok=True)
            raise PersistError(f"Failed to write JSON to {p}: {e}") from e
        logger.debug("Saved %d records to %s", len(self.records), p)

    @classmethod
    def load(cls, path: str | Path, source_name: str) -> VendorRegistry:
        p = Path(path)
        adapter = get_adapter(source_name)
        try:
            raw = p.read_text(encoding="utf-8")
        except OSError as e:
            raise PersistError(f"Failed to read {p}: {e}") from e
        return cls(storage_path=p, records=adapter.convert(raw), source_name=adapter.name)

    @classmethod
    def fetch(cls, datasource: DataSource, path: str | Path) -> VendorRegistry:
        records = datasource.fetch_information()
        return cls(
            storage_path=Path(path),
            records=records,
            source_name=datasource.name,
            fetched=True,
        )

    @classmethod
    def load_or_fetch(cls, datasource: DataSource, path: str | Path) -> VendorRegistry:
        """
        Load the snapshot at `path`, or download a fresh one and save it.
        A malformed snapshot is an error; it is not re-fetched.
        """
        if Path(path).exists():
            return cls.load(path, datasource.name)

        registry = cls.fetch(datasource, path)
        registry.save()
        return registry


def update(datasource: DataSource, path: str | Path) -> VendorRegistry:
    registry = VendorRegistry.fetch(datasource, path)
    registry.save()
    return registry
