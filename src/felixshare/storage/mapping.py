import json
import logging
import os
import tempfile
import threading

from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator

from felixshare.storage.resolver import StorageResolver
from felixshare.utils.dataModels import MAPPING_FILENAME, TEMP_SUFFIX
from felixshare.utils.errors import WriteFailure

log = logging.getLogger(__name__)

Mapping = Dict[str, str]


def reverse_of(mapping: Mapping) -> Dict[str, str]:
    """token -> logical path. The forward mapping must be injective."""
    return {token: logical for logical, token in mapping.items()}


def write_atomic(path: Path, data: bytes) -> None:
    """Write to a hidden sibling temp file, then rename over the target."""
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=".", suffix=TEMP_SUFFIX)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except FileNotFoundError:
            pass
        raise


class MappingStore:
    """Per-identity JSON document of logical path -> opaque token.

    Nothing is cached: every call reads or writes the document on disk.
    Mutations should go through update(), which serializes the whole
    load/mutate/save cycle per identity.
    """

    def __init__(self, resolver: StorageResolver):
        self.resolver = resolver
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def path_for(self, identity: str) -> Path:
        return self.resolver.root_for(identity) / MAPPING_FILENAME

    def load(self, identity: str) -> Mapping:
        path = self.path_for(identity)
        if not path.exists():
            return {}
        try:
            obj = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, ValueError) as exc:
            log.warning("unreadable file mapping for %r (%s); treating as empty", identity, exc)
            return {}
        if not isinstance(obj, dict) or not all(isinstance(k, str) and isinstance(v, str) for k, v in obj.items()):
            log.warning("malformed file mapping for %r; treating as empty", identity)
            return {}
        return obj

    def save(self, identity: str, mapping: Mapping) -> None:
        path = self.path_for(identity)
        data = json.dumps(mapping, ensure_ascii=False, indent=2).encode("utf-8")
        try:
            write_atomic(path, data)
        except OSError as exc:
            raise WriteFailure(f"cannot save file mapping for {identity!r}: {exc}") from exc

    def _lock_for(self, identity: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(identity)
            if lock is None:
                lock = self._locks[identity] = threading.Lock()
            return lock

    @contextmanager
    def update(self, identity: str) -> Iterator[Mapping]:
        """Yield the loaded mapping under the identity's lock; save it on clean exit."""
        with self._lock_for(identity):
            mapping = self.load(identity)
            yield mapping
            self.save(identity, mapping)
