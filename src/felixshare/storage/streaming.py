import re

from pathlib import Path, PurePosixPath
from typing import Dict, Iterator, Tuple

from felixshare.utils.dataModels import STREAM_CHUNK_SIZE, StreamResponse
from felixshare.utils.errors import RangeNotSatisfiable

DEFAULT_CONTENT_TYPE = "application/octet-stream"

MIME_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".bmp": "image/bmp",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".tiff": "image/tiff",
    ".mp4": "video/mp4",
    ".m4v": "video/mp4",
    ".webm": "video/webm",
    ".mov": "video/quicktime",
    ".mkv": "video/x-matroska",
    ".avi": "video/x-msvideo",
}

_RANGE_RE = re.compile(r"^\s*bytes\s*=\s*(\d*)\s*-\s*(\d*)\s*$")


def content_type_for(name: str) -> str:
    return MIME_TYPES.get(PurePosixPath(name).suffix.lower(), DEFAULT_CONTENT_TYPE)


def parse_range(header: str, total: int) -> Tuple[int, int]:
    """Resolve a `bytes=start-end` header against the content size.

    A missing end means the last byte; an end past the content is clamped.
    `bytes=-N` selects the last N bytes.
    """
    m = _RANGE_RE.match(header)
    if not m or (not m.group(1) and not m.group(2)):
        raise RangeNotSatisfiable(f"malformed range: {header!r}", total)
    first, last = m.group(1), m.group(2)
    if not first:
        suffix = int(last)
        if suffix == 0 or total == 0:
            raise RangeNotSatisfiable(f"empty suffix range: {header!r}", total)
        return max(total - suffix, 0), total - 1
    start = int(first)
    end = int(last) if last else total - 1
    if start >= total:
        raise RangeNotSatisfiable(f"range start {start} beyond size {total}", total)
    if start > end:
        raise RangeNotSatisfiable(f"range start {start} after end {end}", total)
    return start, min(end, total - 1)


def _headers(name: str, length: int) -> Dict[str, str]:
    return {
        "Content-Type": content_type_for(name),
        "Content-Length": str(length),
        "Accept-Ranges": "bytes",
    }


def stream_bytes(content: bytes, name: str, range_header: str | None = None) -> StreamResponse:
    """Serve in-memory content; private objects arrive here already decrypted."""
    total = len(content)
    if not range_header:
        return StreamResponse("full", _headers(name, total), iter((content,)))
    start, end = parse_range(range_header, total)
    headers = _headers(name, end - start + 1)
    headers["Content-Range"] = f"bytes {start}-{end}/{total}"
    return StreamResponse("partial", headers, iter((content[start:end + 1],)))


def _read_window(path: Path, start: int, length: int) -> Iterator[bytes]:
    with path.open("rb") as f:
        f.seek(start)
        remaining = length
        while remaining > 0:
            block = f.read(min(STREAM_CHUNK_SIZE, remaining))
            if not block:
                break
            remaining -= len(block)
            yield block


def stream_path(path: Path, name: str, range_header: str | None = None) -> StreamResponse:
    """Serve a plaintext file from disk; only its size is read up front."""
    total = path.stat().st_size
    if not range_header:
        return StreamResponse("full", _headers(name, total), _read_window(path, 0, total))
    start, end = parse_range(range_header, total)
    length = end - start + 1
    headers = _headers(name, length)
    headers["Content-Range"] = f"bytes {start}-{end}/{total}"
    return StreamResponse("partial", headers, _read_window(path, start, length))
