from pathlib import Path

from felixshare.utils.errors import InvalidPath, WriteFailure
from felixshare.utils.helper import split_logical, storage_paths


class StorageResolver:
    """Maps an identity (None for the public space) to its physical root."""

    def __init__(self, base: Path):
        paths = storage_paths(Path(base))
        self.public_root = paths["public"]
        self.private_root = paths["private"]

    def root_for(self, identity: str | None) -> Path:
        if identity is None:
            root = self.public_root
        else:
            if not identity or identity in (".", "..") or "/" in identity or "\\" in identity or "\0" in identity:
                raise InvalidPath(f"unusable identity: {identity!r}")
            root = self.private_root / identity
        try:
            root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise WriteFailure(f"cannot create storage root {root}: {exc}") from exc
        return root

    def resolve(self, identity: str | None, logical: str) -> Path:
        """Physical path of a logical path with its names left as given."""
        return self.root_for(identity).joinpath(*split_logical(logical))
