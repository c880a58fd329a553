import os
import tempfile
import unittest

from pathlib import Path

from felixshare.config import Settings
from felixshare.crypto.codec import StorageCodec
from felixshare.utils.core import open_storage

# Cheapest Argon2id parameters accepted, for tests that exercise the KDF
FAST_KDF = {"t_cost": 1, "m_cost_kib": 64, "parallelism": 1}


class StorageTestCase(unittest.TestCase):
    """Fresh storage root per test, with a random key instead of the slow KDF."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.base = Path(self._tmp.name)
        self.settings = Settings(storage_root=self.base / "uploads", **FAST_KDF)
        self.codec = StorageCodec(os.urandom(32))
        self.storage = open_storage(self.settings, codec=self.codec)

    def tearDown(self):
        self._tmp.cleanup()

    def user_root(self, identity: str = "alice") -> Path:
        return self.storage.resolver.root_for(identity)
