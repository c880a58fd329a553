from pathlib import Path, PurePosixPath
from typing import Dict

from felixshare.utils.errors import InvalidPath


def storage_paths(root: Path) -> Dict[str, Path]:
    from felixshare.utils.dataModels import PUBLIC_DIRNAME, PRIVATE_DIRNAME

    return {
        "public": root / PUBLIC_DIRNAME,
        "private": root / PRIVATE_DIRNAME,
    }


def rel_time_iso(ts: float | None) -> str:
    import datetime as _dt
    if ts is None:
        return _dt.datetime.now(_dt.timezone.utc).replace(microsecond=0, tzinfo=None).isoformat() + "Z"
    return _dt.datetime.fromtimestamp(ts, _dt.timezone.utc).replace(microsecond=0, tzinfo=None).isoformat() + "Z"


def split_logical(logical: str) -> tuple[str, ...]:
    """Normalize a user supplied relative path into its segments.

    Backslashes are treated as separators, empty and "." segments are dropped.
    Absolute paths and ".." segments are rejected.
    """
    if logical is None:
        raise InvalidPath("empty path")
    text = logical.replace("\\", "/")
    if text.startswith("/"):
        raise InvalidPath(f"absolute path not allowed: {logical}")
    parts = tuple(p for p in PurePosixPath(text).parts if p not in ("", "."))
    if not parts:
        raise InvalidPath("empty path")
    if ".." in parts:
        raise InvalidPath(f"parent references not allowed: {logical}")
    return parts


def normalize_logical(logical: str) -> str:
    return "/".join(split_logical(logical))


def is_under(key: str, prefix: str) -> bool:
    return key == prefix or key.startswith(prefix + "/")
