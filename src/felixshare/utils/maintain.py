import logging
import shutil

from typing import List, Tuple

from felixshare.storage.archive import object_path
from felixshare.utils.core import Storage
from felixshare.utils.dataModels import MAPPING_FILENAME, DeleteResult
from felixshare.utils.errors import NotFound, WriteFailure
from felixshare.utils.helper import is_under, split_logical

log = logging.getLogger(__name__)


def delete_path(storage: Storage, identity: str | None, logical_path: str) -> DeleteResult:
    """Delete a file, or a directory with everything below it.

    For a private directory every mapping entry at or below the path goes
    with its object. Entries whose object could not be removed are kept in
    the mapping and reported through WriteFailure once the rest is saved.
    """
    parts = split_logical(logical_path)
    logical = "/".join(parts)
    root = storage.resolver.root_for(identity)
    directory = root.joinpath(*parts)

    if identity is None:
        if not directory.exists():
            raise NotFound(f"file or directory not found: {logical}")
        is_dir = directory.is_dir()
        try:
            if is_dir:
                shutil.rmtree(directory)
            else:
                directory.unlink()
        except OSError as exc:
            raise WriteFailure(f"cannot delete {logical}: {exc}") from exc
        log.info("deleted public %s", logical)
        return DeleteResult(path=logical, is_dir=is_dir, removed=[logical])

    failures: List[str] = []
    with storage.mappings.update(identity) as mapping:
        keys = [k for k in mapping if is_under(k, logical)]
        is_dir = any(k != logical for k in keys) or (logical not in mapping and directory.is_dir())
        if not keys and not is_dir:
            # listed under its raw name, so removable under it too
            if directory.is_file() and parts[-1] != MAPPING_FILENAME and parts[-1] not in mapping.values():
                try:
                    directory.unlink()
                except OSError as exc:
                    raise WriteFailure(f"cannot delete {logical}: {exc}") from exc
                log.info("deleted unmapped object %s for %r", logical, identity)
                return DeleteResult(path=logical, is_dir=False, removed=[logical])
            raise NotFound(f"file or directory not found: {logical}")

        result = DeleteResult(path=logical, is_dir=is_dir)
        for key in keys:
            try:
                object_path(root, key, mapping[key]).unlink()
            except FileNotFoundError:
                log.warning("object for %s was already gone; dropping its mapping entry", key)
            except OSError as exc:
                failures.append(f"{key}: {exc}")
                continue
            del mapping[key]
            result.removed.append(key)

        if is_dir and not failures and directory.exists():
            try:
                shutil.rmtree(directory)
            except OSError as exc:
                log.warning("could not remove directory structure %s: %s", logical, exc)

    if failures:
        raise WriteFailure(
            f"deleted {len(result.removed)} files but {len(failures)} failed under {logical}", failures
        )
    log.info("deleted private %s for %r (%d files)", logical, identity, len(result.removed))
    return result


def prune_orphans(storage: Storage, identity: str) -> List[str]:
    """Drop mapping entries whose physical object no longer exists."""
    root = storage.resolver.root_for(identity)
    dropped: List[str] = []
    with storage.mappings.update(identity) as mapping:
        for key, token in list(mapping.items()):
            if not object_path(root, key, token).is_file():
                log.warning("dropping orphaned mapping entry %s -> %s", key, token)
                del mapping[key]
                dropped.append(key)
    return dropped


def mapping_report(storage: Storage, identity: str) -> List[Tuple[str, str, bool]]:
    """(logical path, token, object exists) for every mapping entry."""
    root = storage.resolver.root_for(identity)
    mapping = storage.mappings.load(identity)
    return [(key, token, object_path(root, key, token).is_file()) for key, token in sorted(mapping.items())]
