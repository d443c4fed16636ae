import json
from unittest import mock

import pytest

from random_mac.errors import ConversionError, PersistError
from random_mac.registry import VendorRegistry, update
from random_mac.sources import DataSource
from random_mac.vendor import VendorRecord


def _registry(tmp_path, *records):
    return VendorRegistry(storage_path=tmp_path / "database.json", records=list(records))


ACME = VendorRecord(prefix="AA:BB:CC", vendor_name="Acme", is_private=False, block_type="MA-L")
EXAMPLE = VendorRecord(prefix="00:1B:77", vendor_name="Example Corp", block_type="MA-L")
EXAMPLE_2 = VendorRecord(prefix="00:1B:78", vendor_name="Example Corp Two", block_type="MA-L")


def test_lookup_by_prefix(tmp_path):
    reg = _registry(tmp_path, ACME)
    assert reg.lookup_by_prefix("AA:BB:CC:11:22:33") is ACME
    assert reg.lookup_by_prefix("11:22:33:44:55:66") is None


def test_lookup_by_prefix_case_insensitive(tmp_path):
    reg = _registry(tmp_path, ACME)
    assert reg.lookup_by_prefix("aa:bb:cc:11:22:33") is ACME


def test_lookup_by_prefix_starts_with(tmp_path):
    reg = _registry(tmp_path, ACME)
    assert reg.lookup_by_prefix("AA:BB:CC") is ACME
    # no normalization beyond case folding
    assert reg.lookup_by_prefix("AABBCC112233") is None


def test_lookup_by_prefix_first_match_wins(tmp_path):
    dup = VendorRecord(prefix="AA:BB:CC", vendor_name="Second")
    reg = _registry(tmp_path, ACME, dup)
    assert reg.lookup_by_prefix("AA:BB:CC:00:00:01") is ACME


def test_lookup_by_vendor(tmp_path):
    reg = _registry(tmp_path, ACME, EXAMPLE, EXAMPLE_2)
    assert reg.lookup_by_vendor("example") is EXAMPLE
    assert reg.lookup_by_vendor("CORP TWO") is EXAMPLE_2
    assert reg.lookup_by_vendor("nobody") is None


def test_save_and_load_round_trip(tmp_path):
    private = VendorRecord(prefix="02:00:00", vendor_name="Private", is_private=True, block_type="IAB")
    reg = _registry(tmp_path, ACME, EXAMPLE, private)
    reg.save()

    loaded = VendorRegistry.load(reg.storage_path, "maclookupapp")
    assert loaded.records == reg.records
    assert not (tmp_path / "database.json.tmp").exists()


def test_save_writes_provider_shape(tmp_path):
    reg = _registry(tmp_path, ACME)
    reg.save()
    assert json.loads(reg.storage_path.read_text()) == [
        {"macPrefix": "AA:BB:CC", "vendorName": "Acme", "private": False, "blockType": "MA-L"}
    ]


def test_save_creates_parent(tmp_path):
    reg = VendorRegistry(storage_path=tmp_path / "a" / "b" / "db.json", records=[ACME])
    reg.save()
    assert reg.storage_path.exists()


def test_save_failure(tmp_path):
    target = tmp_path / "dir"
    target.mkdir()
    reg = VendorRegistry(storage_path=target, records=[ACME])
    with pytest.raises(PersistError):
        reg.save()


def test_load_malformed_snapshot(tmp_path):
    path = tmp_path / "database.json"
    path.write_text("{broken")
    with pytest.raises(ConversionError):
        VendorRegistry.load(path, "maclookupapp")


def test_load_or_fetch_uses_snapshot(tmp_path):
    _registry(tmp_path, ACME).save()
    ds = DataSource(url="http://example.invalid/db", name="MacLookupApp")

    with mock.patch.object(DataSource, "fetch_information") as fetch:
        reg = VendorRegistry.load_or_fetch(ds, tmp_path / "database.json")

    fetch.assert_not_called()
    assert reg.records == [ACME]


def test_load_or_fetch_malformed_does_not_refetch(tmp_path):
    path = tmp_path / "database.json"
    path.write_text("[1]")
    ds = DataSource(url="http://example.invalid/db", name="maclookupapp")

    with mock.patch.object(DataSource, "fetch_information") as fetch:
        with pytest.raises(ConversionError):
            VendorRegistry.load_or_fetch(ds, path)
    fetch.assert_not_called()


def test_load_or_fetch_downloads_and_saves(tmp_path):
    path = tmp_path / "database.json"
    ds = DataSource(url="http://example.invalid/db", name="maclookupapp")

    with mock.patch.object(DataSource, "fetch_information", return_value=[ACME, EXAMPLE]):
        reg = VendorRegistry.load_or_fetch(ds, path)

    assert len(reg) == 2
    assert VendorRegistry.load(path, "maclookupapp").records == [ACME, EXAMPLE]


def test_update_overwrites_snapshot(tmp_path):
    path = tmp_path / "database.json"
    _registry(tmp_path, ACME).save()
    ds = DataSource(url="http://example.invalid/db", name="maclookupapp")

    with mock.patch.object(DataSource, "fetch_information", return_value=[EXAMPLE]):
        reg = update(ds, path)

    assert list(reg) == [EXAMPLE]
    assert VendorRegistry.load(path, "maclookupapp").records == [EXAMPLE]


def test_fetched_flag(tmp_path):
    path = tmp_path / "database.json"
    ds = DataSource(url="http://example.invalid/db", name="maclookupapp")

    with mock.patch.object(DataSource, "fetch_information", return_value=[ACME]):
        assert VendorRegistry.load_or_fetch(ds, path).fetched is True
    assert VendorRegistry.load_or_fetch(ds, path).fetched is False
