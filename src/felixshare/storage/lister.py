"""Rebuild the logical tree of a storage root.

Private roots keep directory names as given and store each file under its
opaque token, so file names are translated back through the reverse of the
identity's mapping. A physical file with no mapping entry is listed under
its raw name rather than hidden.
"""
import os

from pathlib import Path
from typing import Dict, Iterator, List, Tuple

from felixshare.storage.mapping import MappingStore, reverse_of
from felixshare.utils.dataModels import DIRECTORY, FILE, MAPPING_FILENAME, TEMP_SUFFIX, LogicalEntry
from felixshare.utils.errors import NotFound
from felixshare.utils.helper import split_logical


def _is_hidden(name: str) -> bool:
    # the mapping document and in-flight uploads
    return name == MAPPING_FILENAME or (name.startswith(".") and name.endswith(TEMP_SUFFIX))


def _reverse_for(identity: str | None, mappings: MappingStore | None) -> Dict[str, str]:
    if identity is None or mappings is None:
        return {}
    return reverse_of(mappings.load(identity))


def _display_name(name: str, reverse: Dict[str, str]) -> str:
    logical = reverse.get(name)
    if logical is None:
        return name
    return logical.rsplit("/", 1)[-1]


def _scan(directory: Path, base: Tuple[str, ...], reverse: Dict[str, str], sort: bool) -> List[LogicalEntry]:
    with os.scandir(directory) as it:
        items = [e for e in it if not _is_hidden(e.name)]
    if sort:
        items.sort(key=lambda e: e.name)

    entries: List[LogicalEntry] = []
    for item in items:
        try:
            st = item.stat()
            if item.is_dir():
                path = base + (item.name,)
                children = _scan(Path(item.path), path, reverse, sort)
            else:
                children = None
        except FileNotFoundError:
            # removed by a concurrent delete or replace
            continue
        if children is not None:
            file_count = sum(1 for c in children if c.type == FILE) + sum(c.file_count for c in children if c.is_dir)
            entries.append(LogicalEntry(path, DIRECTORY, 0, st.st_mtime, children=children, file_count=file_count))
        else:
            path = base + (_display_name(item.name, reverse),)
            entries.append(LogicalEntry(path, FILE, st.st_size, st.st_mtime))
    return entries


def list_top_level(root: Path, identity: str | None = None, mappings: MappingStore | None = None,
                   sort: bool = True) -> List[LogicalEntry]:
    """Top-level entries of a root, each directory carrying its whole subtree and fileCount."""
    return _scan(root, (), _reverse_for(identity, mappings), sort)


def list_tree(root: Path, base: str, identity: str | None = None, mappings: MappingStore | None = None,
              sort: bool = True) -> List[LogicalEntry]:
    """Recursive listing of the logical directory `base` inside a root."""
    parts = split_logical(base)
    directory = root.joinpath(*parts)
    if not directory.is_dir():
        raise NotFound(f"no such directory: {base}")
    return _scan(directory, parts, _reverse_for(identity, mappings), sort)


def walk_files(root: Path, base: str | None = None, identity: str | None = None,
               mappings: MappingStore | None = None) -> Iterator[Tuple[str, Path]]:
    """Flat recursive walk yielding (logical relpath, physical path) for every file."""
    reverse = _reverse_for(identity, mappings)
    parts = split_logical(base) if base else ()
    start = root.joinpath(*parts)
    for dirpath, dirnames, filenames in os.walk(start):
        dirnames.sort()
        rel = Path(dirpath).relative_to(root).parts
        for name in sorted(filenames):
            if _is_hidden(name):
                continue
            logical = "/".join(rel + (_display_name(name, reverse),))
            yield logical, Path(dirpath) / name
