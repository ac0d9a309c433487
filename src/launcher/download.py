"""HTTP downloads with integrity verification."""

from __future__ import annotations

import hashlib
import logging
import os
import uuid
from typing import TYPE_CHECKING

import httpx

from contract.errors import DownloadError, IntegrityError

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

USER_AGENT = "decompipe"
DEFAULT_TIMEOUT = 60.0
_CHUNK_SIZE = 1 << 16


def create_client(
    *,
    timeout: float = DEFAULT_TIMEOUT,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    return httpx.Client(
        timeout=timeout,
        follow_redirects=True,
        headers={"User-Agent": USER_AGENT},
        transport=transport,
    )


def sha1_file(path: Path) -> str:
    digest = hashlib.sha1(usedforsecurity=False)
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


class Downloader:
    """Stream URLs into files.

    The body is written next to the target and renamed into place only after
    the size and SHA-1 checks passed, so a failed download never leaves a
    file at the target path.
    """

    def __init__(self, client: httpx.Client) -> None:
        self.client = client

    def fetch_bytes(self, url: str) -> bytes:
        try:
            response = self.client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            msg = f"GET {url} returned {exc.response.status_code}"
            raise DownloadError(msg) from exc
        except httpx.HTTPError as exc:
            msg = f"GET {url} failed: {exc}"
            raise DownloadError(msg) from exc
        return response.content

    def fetch(
        self,
        url: str,
        target: Path,
        *,
        sha1: str | None = None,
        size: int | None = None,
    ) -> Path:
        target.parent.mkdir(parents=True, exist_ok=True)
        partial = target.with_name(f".{target.name}.{uuid.uuid4().hex}.partial")
        digest = hashlib.sha1(usedforsecurity=False)
        received = 0
        try:
            try:
                with self.client.stream("GET", url) as response:
                    response.raise_for_status()
                    with partial.open("wb") as handle:
                        for chunk in response.iter_bytes(_CHUNK_SIZE):
                            handle.write(chunk)
                            digest.update(chunk)
                            received += len(chunk)
            except httpx.HTTPStatusError as exc:
                msg = f"GET {url} returned {exc.response.status_code}"
                raise DownloadError(msg) from exc
            except httpx.HTTPError as exc:
                msg = f"GET {url} failed: {exc}"
                raise DownloadError(msg) from exc

            if size is not None and received != size:
                msg = f"{url}: expected {size} bytes, received {received}"
                raise IntegrityError(msg)
            actual = digest.hexdigest()
            if sha1 is not None and actual != sha1.lower():
                msg = f"{url}: expected sha1 {sha1}, got {actual}"
                raise IntegrityError(msg)
            os.replace(partial, target)
        finally:
            partial.unlink(missing_ok=True)

        logger.info(
            "event=download_completed url=%s bytes=%d sha1=%s", url, received, actual
        )
        return target


__all__ = ["DEFAULT_TIMEOUT", "USER_AGENT", "Downloader", "create_client", "sha1_file"]
