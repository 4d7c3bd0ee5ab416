"""Line-oriented byte sources for the backfill ingestor.

Sources are pulled, never pushed: the next chunk is only read when the
consumer asks for the next line, so a consumer that is awaiting a crawler
submission holds the source (and, for HTTP, the TCP window) still.
"""

from __future__ import annotations

import asyncio
import contextlib
import typing as typ
from pathlib import Path
from urllib.parse import unquote, urlparse

import httpx

from .errors import SourceStreamError, SourceUnavailableError

_CHUNK_SIZE = 64 * 1024
_HTTP_ERROR_STATUS_THRESHOLD = 400
_DEFAULT_TIMEOUT_S = 60.0

type ByteChunks = typ.AsyncIterator[bytes]


async def split_lines(chunks: ByteChunks) -> typ.AsyncIterator[bytes]:
    r"""Yield ``\n``-terminated lines from ``chunks`` without terminators.

    Lines are yielded as soon as their terminator arrives. A trailing ``\r``
    is dropped so CRLF sources behave like LF ones. A final line without a
    terminator is still yielded.
    """
    partial = bytearray()
    async for chunk in chunks:
        if b"\n" not in chunk:
            partial += chunk
            continue
        first, *rest, tail = chunk.split(b"\n")
        partial += first
        yield bytes(partial).removesuffix(b"\r")
        for line in rest:
            yield line.removesuffix(b"\r")
        partial = bytearray(tail)
    if partial:
        yield bytes(partial).removesuffix(b"\r")


def _local_path(location: str) -> Path | None:
    parsed = urlparse(location)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    if parsed.scheme in {"http", "https"}:
        return None
    return Path(location)


async def _file_chunks(handle: typ.BinaryIO) -> ByteChunks:
    while True:
        chunk = await asyncio.to_thread(handle.read, _CHUNK_SIZE)
        if not chunk:
            return
        yield chunk


async def _guarded(location: str, chunks: ByteChunks) -> ByteChunks:
    """Re-raise request faults from an open stream as ``SourceStreamError``."""
    try:
        async for chunk in chunks:
            yield chunk
    except (httpx.RequestError, OSError) as exc:
        raise SourceStreamError(location, str(exc)) from exc


@contextlib.asynccontextmanager
async def _open_http(
    location: str, client: httpx.AsyncClient | None
) -> typ.AsyncIterator[ByteChunks]:
    async with contextlib.AsyncExitStack() as stack:
        if client is None:
            client = await stack.enter_async_context(
                httpx.AsyncClient(timeout=_DEFAULT_TIMEOUT_S, follow_redirects=True)
            )
        try:
            response = await stack.enter_async_context(
                client.stream("GET", location)
            )
        except httpx.RequestError as exc:
            raise SourceUnavailableError(location, str(exc)) from exc
        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise SourceUnavailableError(location, f"HTTP {response.status_code}")
        yield response.aiter_bytes()


@contextlib.asynccontextmanager
async def _open_file(path: Path, location: str) -> typ.AsyncIterator[ByteChunks]:
    try:
        handle = path.open("rb")
    except OSError as exc:
        raise SourceUnavailableError(location, exc.strerror or str(exc)) from exc
    with handle:
        yield _file_chunks(handle)


@contextlib.asynccontextmanager
async def open_source(
    location: str,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> typ.AsyncIterator[typ.AsyncIterator[bytes]]:
    """Open ``location`` and yield an async iterator over its lines.

    ``location`` is an ``http(s)://`` URL, a ``file://`` URL or a local
    path. The stream is closed when the context exits.

    Raises
    ------
    SourceUnavailableError
        If the resource cannot be opened.

    The yielded iterator raises :class:`SourceStreamError` if the transport
    fails after the source was opened.
    """
    path = _local_path(location)
    opener = (
        _open_http(location, http_client)
        if path is None
        else _open_file(path, location)
    )
    async with opener as chunks:
        yield split_lines(_guarded(location, chunks))
