from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List

from felixshare.utils.helper import rel_time_iso

DEFAULT_T_COST = 3
DEFAULT_M_COST_KiB = 65536  # 64 MiB (tune per device)
DEFAULT_PARALLELISM = 2
DEFAULT_PASSPHRASE = "felixshare-secret-key"
DEFAULT_KDF_SALT = "felixshare-kdf-salt"

KEY_SIZE = 32
IV_SIZE = 16

MAPPING_FILENAME = ".filemapping.json"
TEMP_SUFFIX = ".tmp"
PUBLIC_DIRNAME = "public"
PRIVATE_DIRNAME = "private"

STREAM_CHUNK_SIZE = 64 * 1024
ZIP_COMPRESSLEVEL = 9

FILE = "file"
DIRECTORY = "directory"


@dataclass
class LogicalEntry:
    path: tuple[str, ...]
    type: str
    size: int
    modified_at: float
    children: List["LogicalEntry"] = field(default_factory=list)
    file_count: int = 0

    @property
    def name(self) -> str:
        return self.path[-1]

    @property
    def relpath(self) -> str:
        return "/".join(self.path)

    @property
    def is_dir(self) -> bool:
        return self.type == DIRECTORY

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "name": self.name,
            "path": self.relpath,
            "type": self.type,
            "size": self.size,
            "modified": rel_time_iso(self.modified_at),
        }
        if self.is_dir:
            d["children"] = [c.to_dict() for c in self.children]
            d["fileCount"] = self.file_count
        return d


@dataclass
class StreamResponse:
    status: str  # "full" or "partial"
    headers: Dict[str, str]
    body: Iterator[bytes]

    @property
    def status_code(self) -> int:
        return 206 if self.status == "partial" else 200

    def read(self) -> bytes:
        return b"".join(self.body)


@dataclass
class ExportResult:
    name: str
    added: List[str] = field(default_factory=list)
    failed: List[Any] = field(default_factory=list)  # PartialArchiveFailure

    @property
    def partial(self) -> bool:
        return bool(self.failed)


@dataclass
class DeleteResult:
    path: str
    is_dir: bool
    removed: List[str] = field(default_factory=list)
