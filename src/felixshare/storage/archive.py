import logging
import zipfile

from pathlib import Path, PurePosixPath
from typing import BinaryIO, Callable, Optional

from felixshare.crypto.codec import StorageCodec
from felixshare.storage.lister import walk_files
from felixshare.storage.mapping import MappingStore
from felixshare.storage.resolver import StorageResolver
from felixshare.utils.dataModels import ZIP_COMPRESSLEVEL, ExportResult
from felixshare.utils.errors import ExportCancelled, MalformedCiphertext, NotFound, PartialArchiveFailure
from felixshare.utils.helper import is_under, normalize_logical, split_logical

log = logging.getLogger(__name__)

Cancelled = Optional[Callable[[], bool]]


def archive_name(prefix: str) -> str:
    return f"{PurePosixPath(prefix).name}.zip"


def member_name(key: str, prefix: str) -> str:
    """Path of `key` relative to the exported folder."""
    if key.startswith(prefix + "/"):
        return key[len(prefix) + 1:]
    return PurePosixPath(key).name


def object_path(root: Path, key: str, token: str) -> Path:
    """Physical location of a private object: logical parent dirs + token."""
    return root.joinpath(*split_logical(key)[:-1], token)


def _check(cancelled: Cancelled, prefix: str) -> None:
    if cancelled is not None and cancelled():
        raise ExportCancelled(f"export of {prefix} cancelled")


def _open_zip(out: BinaryIO) -> zipfile.ZipFile:
    return zipfile.ZipFile(out, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=ZIP_COMPRESSLEVEL)


def export_private(out: BinaryIO, prefix: str, identity: str, resolver: StorageResolver,
                   mappings: MappingStore, codec: StorageCodec, cancelled: Cancelled = None) -> ExportResult:
    """Zip every mapped file at or below `prefix`, decrypted.

    Members that are missing or fail to decrypt are logged and listed on the
    result; the archive is still completed with the rest.
    """
    prefix = normalize_logical(prefix)
    mapping = mappings.load(identity)
    keys = sorted(k for k in mapping if is_under(k, prefix))
    if not keys:
        raise NotFound(f"folder not found or empty: {prefix}")

    root = resolver.root_for(identity)
    result = ExportResult(name=archive_name(prefix))
    with _open_zip(out) as zf:
        for key in keys:
            _check(cancelled, prefix)
            path = object_path(root, key, mapping[key])
            try:
                plaintext = codec.decrypt(path.read_bytes())
            except FileNotFoundError:
                log.warning("skipping %s: object %s is missing", key, mapping[key])
                result.failed.append(PartialArchiveFailure(key, "missing object"))
                continue
            except (MalformedCiphertext, OSError) as exc:
                log.warning("skipping %s: %s", key, exc)
                result.failed.append(PartialArchiveFailure(key, str(exc)))
                continue
            name = member_name(key, prefix)
            zf.writestr(name, plaintext)
            result.added.append(name)
    log.info("exported %d of %d files from %s for %r", len(result.added), len(keys), prefix, identity)
    return result


def export_public(out: BinaryIO, prefix: str, root: Path, cancelled: Cancelled = None) -> ExportResult:
    prefix = normalize_logical(prefix)
    if not root.joinpath(*split_logical(prefix)).is_dir():
        raise NotFound(f"folder not found: {prefix}")

    result = ExportResult(name=archive_name(prefix))
    with _open_zip(out) as zf:
        for logical, path in walk_files(root, base=prefix):
            _check(cancelled, prefix)
            name = member_name(logical, prefix)
            try:
                zf.write(path, name)
            except OSError as exc:
                log.warning("skipping %s: %s", logical, exc)
                result.failed.append(PartialArchiveFailure(logical, str(exc)))
                continue
            result.added.append(name)
    log.info("exported %d files from public %s", len(result.added), prefix)
    return result
