import logging
import os
import tempfile

from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, List, Tuple

from felixshare.config import Settings
from felixshare.crypto.codec import StorageCodec
from felixshare.crypto.hash import unique_token
from felixshare.storage.archive import Cancelled, export_private, export_public, object_path
from felixshare.storage.lister import list_top_level, list_tree
from felixshare.storage.mapping import MappingStore, write_atomic
from felixshare.storage.resolver import StorageResolver
from felixshare.storage.streaming import stream_bytes, stream_path
from felixshare.utils.dataModels import TEMP_SUFFIX, ExportResult, LogicalEntry, StreamResponse
from felixshare.utils.errors import NotFound, WriteFailure
from felixshare.utils.helper import split_logical

log = logging.getLogger(__name__)


@dataclass
class Storage:
    """Everything an operation needs; built once per process by open_storage()."""
    settings: Settings
    resolver: StorageResolver
    mappings: MappingStore
    codec: StorageCodec


def open_storage(settings: Settings, codec: StorageCodec | None = None) -> Storage:
    resolver = StorageResolver(settings.storage_root)
    if codec is None:
        codec = StorageCodec.from_passphrase(
            settings.passphrase, settings.kdf_salt, settings.t_cost, settings.m_cost_kib, settings.parallelism
        )
    return Storage(settings=settings, resolver=resolver, mappings=MappingStore(resolver), codec=codec)


def store_file(storage: Storage, identity: str | None, logical_path: str, data: bytes) -> str:
    """Write `data` at a logical path. Returns the physical name used.

    Private content is sealed and stored under a fresh opaque token next to
    its logical parent directories; a previous upload of the same path is
    replaced and its object removed.
    """
    parts = split_logical(logical_path)
    logical = "/".join(parts)
    root = storage.resolver.root_for(identity)
    directory = root.joinpath(*parts[:-1])

    if identity is None:
        try:
            directory.mkdir(parents=True, exist_ok=True)
            write_atomic(directory / parts[-1], data)
        except OSError as exc:
            raise WriteFailure(f"cannot write {logical}: {exc}") from exc
        log.info("stored public %s (%d bytes)", logical, len(data))
        return parts[-1]

    sealed = storage.codec.encrypt(data)
    written = None
    try:
        with storage.mappings.update(identity) as mapping:
            previous = mapping.get(logical)
            taken = set(mapping.values())
            token = unique_token(logical, taken)
            while (directory / token).exists():
                log.warning("token for %s collides with an unmapped object; regenerating", logical)
                taken.add(token)
                token = unique_token(logical, taken)
            try:
                directory.mkdir(parents=True, exist_ok=True)
                write_atomic(directory / token, sealed)
            except OSError as exc:
                raise WriteFailure(f"cannot write {logical}: {exc}") from exc
            written = directory / token
            mapping[logical] = token
    except BaseException:
        # the mapping was not saved, so the new object must not outlive it
        if written is not None:
            try:
                written.unlink()
            except FileNotFoundError:
                pass
        raise

    if previous is not None:
        try:
            object_path(root, logical, previous).unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            log.warning("could not remove replaced object %s for %s: %s", previous, logical, exc)
    log.info("stored private %s for %r (%d bytes)", logical, identity, len(data))
    return token


def locate(storage: Storage, identity: str | None, logical_path: str) -> Path:
    """Physical path of an existing file, or NotFound."""
    parts = split_logical(logical_path)
    root = storage.resolver.root_for(identity)
    if identity is None:
        path = root.joinpath(*parts)
    else:
        token = storage.mappings.load(identity).get("/".join(parts))
        if token is None:
            raise NotFound(f"file not found: {logical_path}")
        path = object_path(root, "/".join(parts), token)
    if not path.is_file():
        raise NotFound(f"file not found: {logical_path}")
    return path


def read_file(storage: Storage, identity: str | None, logical_path: str) -> bytes:
    path = locate(storage, identity, logical_path)
    try:
        data = path.read_bytes()
    except FileNotFoundError as exc:
        raise NotFound(f"file not found: {logical_path}") from exc
    if identity is None:
        return data
    return storage.codec.decrypt(data)


def list_files(storage: Storage, identity: str | None, base: str | None = None) -> List[LogicalEntry]:
    root = storage.resolver.root_for(identity)
    sort = storage.settings.sort_listings
    if base:
        return list_tree(root, base, identity, storage.mappings, sort=sort)
    return list_top_level(root, identity, storage.mappings, sort=sort)


def stream_file(storage: Storage, identity: str | None, logical_path: str,
                range_header: str | None = None) -> StreamResponse:
    """Full or partial content of a file. Private objects are decrypted whole first."""
    if identity is None:
        return stream_path(locate(storage, None, logical_path), logical_path, range_header)
    return stream_bytes(read_file(storage, identity, logical_path), logical_path, range_header)


def export_folder(storage: Storage, identity: str | None, logical_path: str, out: BinaryIO,
                  cancelled: Cancelled = None) -> ExportResult:
    if identity is None:
        root = storage.resolver.root_for(None)
        return export_public(out, logical_path, root, cancelled)
    return export_private(out, logical_path, identity, storage.resolver, storage.mappings, storage.codec, cancelled)


def export_folder_to(storage: Storage, identity: str | None, logical_path: str, dest: Path,
                     cancelled: Cancelled = None) -> Tuple[ExportResult, Path]:
    """Export into `dest` (a directory gets `<folder>.zip`). The temp file is removed on failure."""
    dest = Path(dest)
    directory = dest if dest.is_dir() else dest.parent
    try:
        fd, tmp = tempfile.mkstemp(dir=directory, prefix=".", suffix=TEMP_SUFFIX)
    except OSError as exc:
        raise WriteFailure(f"cannot create export file in {directory}: {exc}") from exc
    try:
        with os.fdopen(fd, "wb") as f:
            result = export_folder(storage, identity, logical_path, f, cancelled)
        target = directory / result.name if dest.is_dir() else dest
        os.replace(tmp, target)
    except BaseException as exc:
        try:
            os.unlink(tmp)
        except FileNotFoundError:
            pass
        if isinstance(exc, OSError):
            raise WriteFailure(f"cannot write export of {logical_path}: {exc}") from exc
        raise
    return result, target
