import time

from argon2.low_level import hash_secret_raw, Type as Argon2Type
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes
from typing import Collection

from felixshare.utils.dataModels import KEY_SIZE


def sha3_512_bytes(data: bytes) -> bytes:
    digest = hashes.Hash(hashes.SHA3_512(), backend=default_backend())
    digest.update(data)
    return digest.finalize()


def sha256_hex(data: bytes) -> str:
    digest = hashes.Hash(hashes.SHA256(), backend=default_backend())
    digest.update(data)
    return digest.finalize().hex()


def derive_storage_key(passphrase: str, salt: bytes, t_cost: int, m_cost_kib: int, parallelism: int) -> bytes:
    """Kstorage = Argon2id(SHA3-512(passphrase)) -> 32 bytes

    The salt is fixed by configuration so the same key comes back on every start.
    """
    prehash = sha3_512_bytes(passphrase.encode("utf-8"))
    return hash_secret_raw(
        secret=prehash,
        salt=salt,
        time_cost=t_cost,
        memory_cost=m_cost_kib,
        parallelism=parallelism,
        hash_len=KEY_SIZE,
        type=Argon2Type.ID,
    )


def obfuscate_name(logical_name: str) -> str:
    """SHA-256 of the logical name salted with the current time, as hex."""
    return sha256_hex(f"{logical_name}{time.time_ns()}".encode("utf-8"))


def unique_token(logical_name: str, taken: Collection[str]) -> str:
    token = obfuscate_name(logical_name)
    while token in taken:
        token = obfuscate_name(logical_name)
    return token
