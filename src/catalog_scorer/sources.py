from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path
from urllib.parse import urlparse

import requests

from catalog_scorer.errors import DownloadFailure, error_summary

HYG_DATABASE_URL = "https://astronexus.com/downloads/catalogs/hygdata_v42.csv.gz"
DOWNLOAD_TIMEOUT_SECONDS = 60
DOWNLOAD_CHUNK_BYTES = 1 << 20
USER_AGENT = "catalog-scorer/0.1 (batch catalog scoring)"


def is_remote(value: str) -> bool:
    return urlparse(value).scheme in ("http", "https")


def _cache_filename(url: str) -> str:
    name = Path(urlparse(url).path).name
    return name or "catalog.csv"


def download_catalog(
    url: str,
    dest: Path,
    *,
    timeout_s: float = DOWNLOAD_TIMEOUT_SECONDS,
    log: Callable[[int, str], None] | None = None,
) -> Path:
    """Stream ``url`` to ``dest``; the file only appears once fully written."""
    dest.parent.mkdir(parents=True, exist_ok=True)
    partial = dest.with_name(dest.name + ".part")
    written = 0
    try:
        with requests.get(url, stream=True, timeout=timeout_s, headers={"User-Agent": USER_AGENT}) as response:
            response.raise_for_status()
            with partial.open("wb") as handle:
                for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_BYTES):
                    if chunk:
                        handle.write(chunk)
                        written += len(chunk)
    except requests.RequestException as exc:
        partial.unlink(missing_ok=True)
        raise DownloadFailure(f"Failed to download {url}: {error_summary(exc)}") from exc
    except OSError as exc:
        partial.unlink(missing_ok=True)
        raise DownloadFailure(f"Failed to store download of {url} at {dest}: {error_summary(exc)}") from exc

    if written == 0:
        partial.unlink(missing_ok=True)
        raise DownloadFailure(f"Download of {url} returned an empty body")

    os.replace(partial, dest)
    if log is not None:
        log(1, f"[download] wrote {written / (1024 * 1024):.2f} MB to {dest}")
    return dest


def resolve_catalog_input(
    value: str,
    *,
    cache_dir: Path,
    refresh: bool = False,
    timeout_s: float = DOWNLOAD_TIMEOUT_SECONDS,
    log: Callable[[int, str], None] | None = None,
) -> Path:
    if not is_remote(value):
        path = Path(value)
        if not path.exists():
            raise DownloadFailure(f"Input catalog does not exist: {path}")
        return path

    dest = cache_dir / _cache_filename(value)
    if dest.exists() and not refresh:
        if log is not None:
            log(1, f"[download] reusing cached catalog {dest}")
        return dest

    if log is not None:
        log(1, f"[download] fetching {value}")
    return download_catalog(value, dest, timeout_s=timeout_s, log=log)
