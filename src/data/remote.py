"""
Opaque key-value remotes for trade-store sync.

A remote stores one JSON document per key. Two adapters:

    DirectoryRemote  {directory}/{key}.json on a local or mounted filesystem
    HttpRemote       Firebase-style REST: GET/PUT {base_url}/{key}.json

Transport and filesystem failures raise RemoteSyncError. A document that
exists but is not valid JSON is logged and read as absent.
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger("tradelog.remote")


class RemoteSyncError(Exception):
    """Raised when a remote cannot be reached, read or written."""


class KeyValueRemote(Protocol):
    """Protocol for sync remotes. ``get`` returns None when the key is absent."""

    def get(self, key: str) -> dict[str, Any] | None:
        ...

    def put(self, key: str, document: dict[str, Any]) -> None:
        ...


def _decode(raw: str | bytes, where: str) -> dict[str, Any] | None:
    try:
        doc = json.loads(raw)
    except ValueError as exc:
        logger.warning("Unreadable remote document at %s: %s", where, exc)
        return None
    if doc is None:
        return None
    if not isinstance(doc, dict):
        logger.warning("Remote document at %s is not a mapping", where)
        return None
    return doc


class DirectoryRemote:
    """One JSON file per key under *directory*."""

    def __init__(self, directory: str | Path) -> None:
        self._dir = Path(directory)

    def _file(self, key: str) -> Path:
        return self._dir / f"{key}.json"

    def get(self, key: str) -> dict[str, Any] | None:
        path = self._file(key)
        if not path.exists():
            return None
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise RemoteSyncError(f"Could not read {path}: {exc}") from exc
        return _decode(raw, str(path))

    def put(self, key: str, document: dict[str, Any]) -> None:
        path = self._file(key)
        tmp = path.with_suffix(".json.tmp")
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(document), encoding="utf-8")
            tmp.replace(path)
        except OSError as exc:
            raise RemoteSyncError(f"Could not write {path}: {exc}") from exc


class HttpRemote:
    """JSON-over-HTTP key-value store. *token*, when set, is sent as the ``auth`` query parameter."""

    def __init__(self, base_url: str, *, token: str = "", timeout: float = 10.0) -> None:
        self._base = base_url.rstrip("/")
        self._token = token
        self._timeout = timeout

    def _url(self, key: str) -> str:
        url = f"{self._base}/{urllib.parse.quote(key)}.json"
        if self._token:
            url += "?" + urllib.parse.urlencode({"auth": self._token})
        return url

    def _request(self, key: str, method: str, body: bytes | None = None) -> bytes:
        req = urllib.request.Request(
            self._url(key),
            data=body,
            headers={"Content-Type": "application/json"},
            method=method,
        )
        try:
            with urllib.request.urlopen(req, timeout=self._timeout) as resp:
                return resp.read()
        except urllib.error.HTTPError as exc:
            raise RemoteSyncError(f"{method} {self._base}/{key}.json failed: HTTP {exc.code}") from exc
        except (urllib.error.URLError, OSError) as exc:
            raise RemoteSyncError(f"{method} {self._base}/{key}.json failed: {exc}") from exc

    def get(self, key: str) -> dict[str, Any] | None:
        raw = self._request(key, "GET")
        return _decode(raw, f"{self._base}/{key}.json")

    def put(self, key: str, document: dict[str, Any]) -> None:
        self._request(key, "PUT", json.dumps(document).encode("utf-8"))
