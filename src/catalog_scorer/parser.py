from __future__ import annotations

import csv
import gzip
import io
import re
import zlib
from collections.abc import Iterator
from pathlib import Path
from typing import BinaryIO

from catalog_scorer.errors import DecompressionFailure, SchemaMismatch
from catalog_scorer.schema import CatalogSchema, detect_schema

GZIP_MAGIC = b"\x1f\x8b"
_STREAM_ERRORS = (gzip.BadGzipFile, EOFError, zlib.error)
# Undecodable bytes survive decoding as lone surrogates in this range.
_UNDECODABLE_RE = re.compile("[\udc80-\udcff]")


def is_gzip_file(path: Path) -> bool:
    with path.open("rb") as handle:
        return handle.read(2) == GZIP_MAGIC


def open_catalog_stream(raw: BinaryIO, compressed: bool) -> io.TextIOWrapper:
    """Wrap a binary catalog handle in a lazily decoding text stream."""
    binary: BinaryIO = gzip.GzipFile(fileobj=raw, mode="rb") if compressed else raw
    return io.TextIOWrapper(binary, encoding="utf-8-sig", errors="surrogateescape", newline="")


class CatalogReader:
    """Streams a delimited catalog as loosely typed field maps.

    The header is validated when the reader is opened; rows are produced
    lazily by :meth:`iter_rows` and can only be consumed once.
    """

    def __init__(
        self,
        path: Path,
        schema: CatalogSchema | None = None,
        *,
        delimiter: str = ",",
    ) -> None:
        self.path = path
        self.rows_read = 0
        self.rows_malformed = 0
        self.compressed = is_gzip_file(path)
        self._size = max(1, path.stat().st_size)
        self._raw = path.open("rb")
        self._text = open_catalog_stream(self._raw, self.compressed)
        self._reader = csv.reader(self._text, delimiter=delimiter)
        self._consumed = False

        try:
            self.header = self._read_header()
            self.schema = schema or detect_schema(self.header)
            missing = self.schema.missing_columns(self.header)
            if missing:
                raise SchemaMismatch(missing, self.header)
        except Exception:
            self.close()
            raise

    def __enter__(self) -> CatalogReader:
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()

    def close(self) -> None:
        if not self._text.closed:
            self._text.close()
        self._raw.close()

    def _next_fields(self) -> list[str] | None:
        while True:
            try:
                return next(self._reader)
            except StopIteration:
                return None
            except csv.Error:
                self.rows_malformed += 1
            except _STREAM_ERRORS as exc:
                raise DecompressionFailure(f"Unable to read catalog stream {self.path}: {exc}") from exc

    def _read_header(self) -> list[str]:
        while True:
            fields = self._next_fields()
            if fields is None:
                return []
            if any(value.strip() for value in fields):
                return [value.strip().lower() for value in fields]

    def progress_fraction(self) -> float:
        """Fraction of the (possibly compressed) input consumed so far."""
        if self._raw.closed:
            return 1.0
        return min(1.0, self._raw.tell() / self._size)

    def iter_rows(self) -> Iterator[dict[str, str]]:
        if self._consumed:
            raise RuntimeError("Catalog rows can only be iterated once")
        self._consumed = True

        width = len(self.header)
        try:
            while True:
                fields = self._next_fields()
                if fields is None:
                    return
                if not any(value.strip() for value in fields):
                    continue
                if len(fields) != width or any(_UNDECODABLE_RE.search(value) for value in fields):
                    self.rows_malformed += 1
                    continue
                self.rows_read += 1
                yield {column: value.strip() for column, value in zip(self.header, fields)}
        finally:
            self.close()
