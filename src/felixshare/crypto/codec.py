import logging
import os

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from felixshare.crypto.hash import derive_storage_key
from felixshare.utils.dataModels import IV_SIZE, KEY_SIZE
from felixshare.utils.errors import MalformedCiphertext

log = logging.getLogger(__name__)

BLOCK_BITS = algorithms.AES.block_size


def cbc_encrypt(key: bytes, plaintext: bytes) -> bytes:
    """AES-256-CBC with PKCS7 padding; returns IV || ciphertext."""
    iv = os.urandom(IV_SIZE)
    padder = padding.PKCS7(BLOCK_BITS).padder()
    padded = padder.update(plaintext) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv), backend=default_backend()).encryptor()
    return iv + encryptor.update(padded) + encryptor.finalize()


def cbc_decrypt(key: bytes, sealed: bytes) -> bytes:
    if len(sealed) < IV_SIZE:
        raise MalformedCiphertext(f"sealed buffer too short ({len(sealed)} bytes)")
    iv, ct = sealed[:IV_SIZE], sealed[IV_SIZE:]
    if not ct or len(ct) % (BLOCK_BITS // 8):
        raise MalformedCiphertext("ciphertext is not a whole number of blocks")
    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv), backend=default_backend()).decryptor()
    padded = decryptor.update(ct) + decryptor.finalize()
    unpadder = padding.PKCS7(BLOCK_BITS).unpadder()
    try:
        return unpadder.update(padded) + unpadder.finalize()
    except ValueError as exc:
        raise MalformedCiphertext("bad padding") from exc


class StorageCodec:
    """Seals private objects under the single process-wide storage key.

    Holds nothing but the key, so one instance is shared by every operation.
    """

    def __init__(self, key: bytes):
        if len(key) != KEY_SIZE:
            raise ValueError(f"storage key must be {KEY_SIZE} bytes")
        self._key = key

    @classmethod
    def from_passphrase(cls, passphrase: str, salt: bytes, t_cost: int, m_cost_kib: int, parallelism: int) -> "StorageCodec":
        return cls(derive_storage_key(passphrase, salt, t_cost, m_cost_kib, parallelism))

    def encrypt(self, plaintext: bytes) -> bytes:
        sealed = cbc_encrypt(self._key, plaintext)
        log.debug("encrypted %d bytes -> %d bytes", len(plaintext), len(sealed))
        return sealed

    def decrypt(self, sealed: bytes) -> bytes:
        plaintext = cbc_decrypt(self._key, sealed)
        log.debug("decrypted %d bytes -> %d bytes", len(sealed), len(plaintext))
        return plaintext
