"""Fetching, caching and parsing rustdoc JSON published on docs.rs."""

from __future__ import annotations

import io
import json
import sys
import time
from dataclasses import dataclass
from enum import Enum
from http import HTTPStatus
from pathlib import Path
from typing import Any

import platformdirs
import requests
import zstandard

MIN_FORMAT_VERSION = 39
FORMAT_VERSION = 57
LATEST_MAX_AGE_SECS = 24 * 60 * 60
REQUEST_TIMEOUT_SECS = 60

DOCS_RS_URL = "https://docs.rs/crate/{name}/{version}/json"
CRATES_IO_URL = "https://crates.io/api/v1/crates/{name}"
USER_AGENT = "wtr (rustdoc lookup tool)"


class FetchError(Exception):
    """Raised when crate documentation cannot be fetched or parsed."""


class VersionSource(Enum):
    """Where the requested crate version came from."""

    LATEST = "latest"
    EXPLICIT = "explicit"
    WORKSPACE = "workspace"


@dataclass
class Crate:
    """The parts of a rustdoc JSON document that lookups and rendering use.

    Item ids are integers; ``index`` and ``paths`` hold the raw JSON objects.
    """

    root: int
    crate_version: str | None
    index: dict[int, dict[str, Any]]
    paths: dict[int, dict[str, Any]]


@dataclass
class FetchedCrate:
    """Parsed crate data together with the version it resolved to."""

    krate: Crate
    version: str
    version_source: VersionSource


def cache_dir() -> Path:
    """Directory under which downloaded rustdoc JSON is kept."""
    return Path(platformdirs.user_cache_dir()) / "wtr"


def _crate_cache_dir(crate_name: str) -> Path:
    return cache_dir() / crate_name


def _sidecar_path(crate_name: str) -> Path:
    return _crate_cache_dir(crate_name) / "latest.version"


def _cached_json_path(crate_name: str, version: str) -> Path:
    return _crate_cache_dir(crate_name) / f"{version}.json"


def _read_latest_sidecar(crate_name: str) -> str | None:
    """Return the cached "latest" version if the sidecar is under a day old."""
    sidecar = _sidecar_path(crate_name)
    if not sidecar.exists():
        return None
    age = time.time() - sidecar.stat().st_mtime
    if int(age) > LATEST_MAX_AGE_SECS:
        return None
    version = sidecar.read_text(encoding="utf-8").strip()
    return version or None


def _write_latest_sidecar(crate_name: str, version: str) -> None:
    directory = _crate_cache_dir(crate_name)
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "latest.version").write_text(version, encoding="utf-8")


def _load_cached(crate_name: str, version: str) -> Crate | None:
    path = _cached_json_path(crate_name, version)
    if not path.exists():
        return None
    return parse_rustdoc_json(path.read_bytes(), crate_name)


def _save_to_cache(crate_name: str, version: str, json_bytes: bytes) -> None:
    _crate_cache_dir(crate_name).mkdir(parents=True, exist_ok=True)
    _cached_json_path(crate_name, version).write_bytes(json_bytes)


def _warn(message: str) -> None:
    print(f"warning: {message}", file=sys.stderr)


def _status_text(status: int) -> tuple[str, str]:
    try:
        reason = HTTPStatus(status).phrase
    except ValueError:
        return str(status), "unknown"
    return f"{status} {reason}", reason


def _decompress(compressed: bytes) -> bytes:
    try:
        with zstandard.ZstdDecompressor().stream_reader(io.BytesIO(compressed)) as reader:
            return reader.read()
    except zstandard.ZstdError as exc:
        raise FetchError(f"failed to decompress zstd data: {exc}") from exc


def fetch_crate(
    crate_name: str,
    version: str,
    refresh: bool,
    version_source: VersionSource,
) -> FetchedCrate:
    """Fetch rustdoc JSON for a crate from docs.rs, using the disk cache."""
    is_latest = version == "latest"

    if not refresh:
        if is_latest:
            resolved = _read_latest_sidecar(crate_name)
            if resolved is not None:
                krate = _load_cached(crate_name, resolved)
                if krate is not None:
                    return FetchedCrate(krate, resolved, version_source)
        else:
            krate = _load_cached(crate_name, version)
            if krate is not None:
                return FetchedCrate(krate, version, version_source)

    url = DOCS_RS_URL.format(name=crate_name, version=version)
    try:
        response = requests.get(url, timeout=REQUEST_TIMEOUT_SECS)
    except requests.RequestException as exc:
        raise FetchError(f"failed to connect to docs.rs: {exc}") from exc

    status = response.status_code
    if status == HTTPStatus.NOT_FOUND:
        raise FetchError(
            f"crate `{crate_name}` version `{version}` not found on docs.rs.\n"
            "This could mean:\n"
            "  - The crate name is misspelled\n"
            "  - The version doesn't exist\n"
            "  - Rustdoc JSON is not available "
            "(only crates published after 2025-05-23 have it)"
        )
    if not 200 <= status < 300:
        full, reason = _status_text(status)
        raise FetchError(f"docs.rs returned HTTP {full}: {reason}")

    try:
        compressed = response.content
    except requests.RequestException as exc:
        raise FetchError(f"failed to read response body: {exc}") from exc

    json_bytes = _decompress(compressed)
    krate = parse_rustdoc_json(json_bytes, crate_name)
    resolved_version = krate.crate_version or version

    try:
        _save_to_cache(crate_name, resolved_version, json_bytes)
    except OSError as exc:
        _warn(f"failed to cache: {exc}")

    if is_latest:
        try:
            _write_latest_sidecar(crate_name, resolved_version)
        except OSError as exc:
            _warn(f"failed to write latest sidecar: {exc}")

    return FetchedCrate(krate, resolved_version, version_source)


def _read_document(json_bytes: bytes) -> tuple[dict[str, Any], int]:
    try:
        document = json.loads(json_bytes)
    except (ValueError, UnicodeDecodeError) as exc:
        raise FetchError(f"failed to read format_version from rustdoc JSON: {exc}") from exc
    version = document.get("format_version") if isinstance(document, dict) else None
    if isinstance(version, bool) or not isinstance(version, int) or version < 0:
        raise FetchError("failed to read format_version from rustdoc JSON")
    return document, version


def parse_rustdoc_json(json_bytes: bytes, crate_name: str) -> Crate:
    """Parse rustdoc JSON, rejecting format versions that are too old."""
    document, version = _read_document(json_bytes)
    if version < MIN_FORMAT_VERSION:
        raise FetchError(
            f"rustdoc JSON for `{crate_name}` uses format version {version}, "
            f"which is too old (minimum supported: {MIN_FORMAT_VERSION})"
        )
    if version != FORMAT_VERSION:
        _warn(
            f"rustdoc JSON for `{crate_name}` uses format version {version} "
            f"(expected {FORMAT_VERSION})."
        )

    try:
        crate_version = document.get("crate_version")
        if crate_version is not None and not isinstance(crate_version, str):
            raise TypeError("crate_version must be a string")
        return Crate(
            root=int(document["root"]),
            crate_version=crate_version,
            index={int(key): value for key, value in document["index"].items()},
            paths={int(key): value for key, value in document["paths"].items()},
        )
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise FetchError(
            f"failed to parse rustdoc JSON for `{crate_name}` "
            f"(format version {version}, expected {FORMAT_VERSION}): {exc}"
        ) from exc


def _max_stable_version(body: Any) -> str | None:
    krate = body.get("crate") if isinstance(body, dict) else None
    version = krate.get("max_stable_version") if isinstance(krate, dict) else None
    return version if isinstance(version, str) else None


def check_latest_version(crate_name: str) -> str | None:
    """Best-effort lookup of the latest stable version on crates.io."""
    try:
        cached = _read_latest_sidecar(crate_name)
    except OSError:
        cached = None
    if cached is not None:
        return cached

    url = CRATES_IO_URL.format(name=crate_name)
    try:
        response = requests.get(
            url, headers={"User-Agent": USER_AGENT}, timeout=REQUEST_TIMEOUT_SECS
        )
        if not 200 <= response.status_code < 300:
            return None
        body = json.loads(response.text)
    except (requests.RequestException, ValueError):
        return None

    version = _max_stable_version(body)
    if version is None:
        return None

    try:
        _write_latest_sidecar(crate_name, version)
    except OSError:
        pass
    return version