import json
import os
import time
from types import SimpleNamespace
from unittest import mock

import platformdirs
import pytest
import requests
import zstandard

from wtr.fetch import (
    Crate,
    FetchError,
    FetchedCrate,
    VersionSource,
    cache_dir,
    check_latest_version,
    fetch_crate,
    parse_rustdoc_json,
)


def _document(format_version=57, crate_version="1.7.1"):
    return {
        "format_version": format_version,
        "root": 0,
        "crate_version": crate_version,
        "includes_private": False,
        "index": {
            "0": {"id": 0, "name": "rangemap", "inner": {"module": {"items": [1]}}},
            "1": {"id": 1, "name": "RangeMap", "inner": {"struct": {"impls": []}}},
        },
        "paths": {
            "1": {"crate_id": 0, "path": ["rangemap", "RangeMap"], "kind": "struct"},
        },
        "external_crates": {"0": "anything"},
    }


def _bytes(document):
    return json.dumps(document).encode()


def _response(status_code=200, content=b"", text=""):
    return SimpleNamespace(status_code=status_code, content=content, text=text)


@pytest.fixture
def cache_root(tmp_path, monkeypatch):
    monkeypatch.setattr(platformdirs, "user_cache_dir", lambda *a, **k: str(tmp_path))
    return tmp_path / "wtr"


def test_cache_dir_is_under_platform_cache(cache_root):
    assert cache_dir() == cache_root


def test_parse_current_format():
    krate = parse_rustdoc_json(_bytes(_document()), "rangemap")
    assert krate.root == 0
    assert krate.crate_version == "1.7.1"
    assert set(krate.index) == {0, 1}
    assert krate.paths[1]["path"] == ["rangemap", "RangeMap"]


def test_v54_json_parses_successfully(capsys):
    krate = parse_rustdoc_json(_bytes(_document(54, "1.6.0")), "rangemap")
    assert krate.crate_version == "1.6.0"
    assert "format version 54" in capsys.readouterr().err


def test_unsupported_old_format_version_gives_clear_error():
    data = b'{"format_version": 1, "root": 0, "index": {}, "paths": {}}'
    with pytest.raises(FetchError) as excinfo:
        parse_rustdoc_json(data, "fake")
    assert "too old" in str(excinfo.value)
    assert "`fake`" in str(excinfo.value)


def test_invalid_json_reports_format_version():
    with pytest.raises(FetchError, match="format_version"):
        parse_rustdoc_json(b"not json", "fake")


def test_missing_format_version():
    with pytest.raises(FetchError, match="format_version"):
        parse_rustdoc_json(b'{"root": 0}', "fake")


def test_missing_index_is_parse_error():
    document = _document()
    del document["index"]
    with pytest.raises(FetchError, match="failed to parse rustdoc JSON for `fake`"):
        parse_rustdoc_json(_bytes(document), "fake")


def test_fetch_explicit_version_from_cache(cache_root):
    crate_dir = cache_root / "rangemap"
    crate_dir.mkdir(parents=True)
    (crate_dir / "1.7.1.json").write_bytes(_bytes(_document()))
    with mock.patch("requests.get") as get:
        fetched = fetch_crate("rangemap", "1.7.1", False, VersionSource.EXPLICIT)
    assert get.call_count == 0
    assert fetched.version == "1.7.1"
    assert fetched.version_source is VersionSource.EXPLICIT
    assert fetched.krate.crate_version == "1.7.1"


def test_fetch_latest_uses_fresh_sidecar(cache_root):
    crate_dir = cache_root / "rangemap"
    crate_dir.mkdir(parents=True)
    (crate_dir / "1.6.0.json").write_bytes(_bytes(_document(57, "1.6.0")))
    (crate_dir / "latest.version").write_text("1.6.0\n")
    with mock.patch("requests.get") as get:
        fetched = fetch_crate("rangemap", "latest", False, VersionSource.LATEST)
    assert get.call_count == 0
    assert fetched.version == "1.6.0"


def test_fetch_latest_downloads_and_caches(cache_root):
    raw = _bytes(_document())
    compressed = zstandard.ZstdCompressor().compress(raw)
    with mock.patch("requests.get", return_value=_response(content=compressed)) as get:
        fetched = fetch_crate("rangemap", "latest", False, VersionSource.LATEST)
    assert "docs.rs/crate/rangemap/latest/json" in get.call_args.args[0]
    assert fetched.version == "1.7.1"
    assert isinstance(fetched, FetchedCrate)
    assert (cache_root / "rangemap" / "1.7.1.json").read_bytes() == raw
    assert (cache_root / "rangemap" / "latest.version").read_text() == "1.7.1"


def test_stale_sidecar_is_ignored(cache_root):
    crate_dir = cache_root / "rangemap"
    crate_dir.mkdir(parents=True)
    (crate_dir / "1.6.0.json").write_bytes(_bytes(_document(57, "1.6.0")))
    sidecar = crate_dir / "latest.version"
    sidecar.write_text("1.6.0")
    old = time.time() - 2 * 24 * 60 * 60
    os.utime(sidecar, (old, old))
    compressed = zstandard.ZstdCompressor().compress(_bytes(_document()))
    with mock.patch("requests.get", return_value=_response(content=compressed)) as get:
        fetched = fetch_crate("rangemap", "latest", False, VersionSource.LATEST)
    assert get.call_count == 1
    assert fetched.version == "1.7.1"


def test_refresh_bypasses_cache(cache_root):
    crate_dir = cache_root / "rangemap"
    crate_dir.mkdir(parents=True)
    (crate_dir / "1.7.1.json").write_bytes(_bytes(_document()))
    downloaded = _document()
    downloaded["index"]["2"] = {"id": 2, "name": "RangeSet", "inner": {"struct": {"impls": []}}}
    raw = _bytes(downloaded)
    compressed = zstandard.ZstdCompressor().compress(raw)
    with mock.patch("requests.get", return_value=_response(content=compressed)) as get:
        fetched = fetch_crate("rangemap", "1.7.1", True, VersionSource.EXPLICIT)
    assert get.call_count == 1
    assert set(fetched.krate.index) == {0, 1, 2}
    assert (crate_dir / "1.7.1.json").read_bytes() == raw


def test_missing_crate_version_falls_back_to_requested(cache_root):
    compressed = zstandard.ZstdCompressor().compress(_bytes(_document(crate_version=None)))
    with mock.patch("requests.get", return_value=_response(content=compressed)):
        fetched = fetch_crate("rangemap", "1.0.0", False, VersionSource.WORKSPACE)
    assert fetched.version == "1.0.0"
    assert fetched.version_source is VersionSource.WORKSPACE
    assert (cache_root / "rangemap" / "1.0.0.json").exists()


def test_not_found(cache_root):
    with mock.patch("requests.get", return_value=_response(status_code=404)):
        with pytest.raises(FetchError, match="not found on docs.rs"):
            fetch_crate("nope", "latest", False, VersionSource.LATEST)


def test_server_error(cache_root):
    with mock.patch("requests.get", return_value=_response(status_code=500)):
        with pytest.raises(FetchError) as excinfo:
            fetch_crate("nope", "1.0.0", False, VersionSource.EXPLICIT)
    assert str(excinfo.value) == (
        "docs.rs returned HTTP 500 Internal Server Error: Internal Server Error"
    )


def test_connection_error(cache_root):
    with mock.patch("requests.get", side_effect=requests.ConnectionError("down")):
        with pytest.raises(FetchError, match="failed to connect to docs.rs"):
            fetch_crate("rangemap", "latest", False, VersionSource.LATEST)


def test_bad_compressed_body(cache_root):
    with mock.patch("requests.get", return_value=_response(content=b"garbage data")):
        with pytest.raises(FetchError, match="decompress"):
            fetch_crate("rangemap", "latest", False, VersionSource.LATEST)


def test_check_latest_version_from_crates_io(cache_root):
    body = json.dumps({"crate": {"max_stable_version": "2.0.1"}})
    with mock.patch("requests.get", return_value=_response(text=body)) as get:
        assert check_latest_version("serde") == "2.0.1"
    assert "crates.io/api/v1/crates/serde" in get.call_args.args[0]
    assert "User-Agent" in get.call_args.kwargs["headers"]
    assert (cache_root / "serde" / "latest.version").read_text() == "2.0.1"


def test_check_latest_version_uses_sidecar(cache_root):
    crate_dir = cache_root / "serde"
    crate_dir.mkdir(parents=True)
    (crate_dir / "latest.version").write_text("1.0.5")
    with mock.patch("requests.get") as get:
        assert check_latest_version("serde") == "1.0.5"
    assert get.call_count == 0


def test_check_latest_version_http_error(cache_root):
    with mock.patch("requests.get", return_value=_response(status_code=503)):
        assert check_latest_version("serde") is None


def test_check_latest_version_bad_body(cache_root):
    with mock.patch("requests.get", return_value=_response(text='{"crate": {}}')):
        assert check_latest_version("serde") is None
    with mock.patch("requests.get", return_value=_response(text="<html>")):
        assert check_latest_version("serde") is None


def test_check_latest_version_connection_error(cache_root):
    with mock.patch("requests.get", side_effect=requests.ConnectionError("down")):
        assert check_latest_version("serde") is None


def test_crate_is_plain_data():
    krate = Crate(root=3, crate_version=None, index={}, paths={})
    assert krate == Crate(3, None, {}, {})