"""
Configuration for the storage core.

Defaults live in utils.dataModels; each value can be overridden from the
environment, and the CLI overrides both.
"""
import os

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from felixshare.utils.dataModels import (
    DEFAULT_KDF_SALT,
    DEFAULT_M_COST_KiB,
    DEFAULT_PARALLELISM,
    DEFAULT_PASSPHRASE,
    DEFAULT_T_COST,
)

ENV_PREFIX = "FELIXSHARE_"


@dataclass
class Settings:
    storage_root: Path
    passphrase: str = DEFAULT_PASSPHRASE
    kdf_salt: bytes = DEFAULT_KDF_SALT.encode("utf-8")
    t_cost: int = DEFAULT_T_COST
    m_cost_kib: int = DEFAULT_M_COST_KiB
    parallelism: int = DEFAULT_PARALLELISM
    sort_listings: bool = True

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if environ is None else environ

        def get(name: str, default):
            return env.get(ENV_PREFIX + name, default)

        return cls(
            storage_root=Path(get("STORAGE_ROOT", "uploads")),
            passphrase=get("PASSPHRASE", DEFAULT_PASSPHRASE),
            kdf_salt=get("KDF_SALT", DEFAULT_KDF_SALT).encode("utf-8"),
            t_cost=int(get("KDF_T_COST", DEFAULT_T_COST)),
            m_cost_kib=int(get("KDF_M_COST_KIB", DEFAULT_M_COST_KiB)),
            parallelism=int(get("KDF_PARALLELISM", DEFAULT_PARALLELISM)),
            sort_listings=get("SORT_LISTINGS", "1").lower() not in ("0", "false", "no"),
        )
