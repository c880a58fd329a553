import unittest

from felixshare.utils.errors import InvalidPath

from support import StorageTestCase


class ResolverTests(StorageTestCase):
    def test_public_root_for_no_identity(self):
        root = self.storage.resolver.root_for(None)
        self.assertEqual(root, self.settings.storage_root / "public")
        self.assertTrue(root.is_dir())

    def test_private_root_per_identity(self):
        root = self.storage.resolver.root_for("alice")
        self.assertEqual(root, self.settings.storage_root / "private" / "alice")
        self.assertTrue(root.is_dir())
        self.assertNotEqual(root, self.storage.resolver.root_for("bob"))

    def test_creation_is_idempotent(self):
        first = self.storage.resolver.root_for("alice")
        (first / "keep").write_text("x")
        second = self.storage.resolver.root_for("alice")
        self.assertEqual(first, second)
        self.assertTrue((second / "keep").exists())

    def test_identity_cannot_escape_private_root(self):
        for bad in ("", ".", "..", "a/b", "..\\x"):
            with self.assertRaises(InvalidPath):
                self.storage.resolver.root_for(bad)

    def test_resolve_rejects_traversal(self):
        for bad in ("../x", "a/../../b", "/etc/passwd", "", "./"):
            with self.assertRaises(InvalidPath):
                self.storage.resolver.resolve("alice", bad)

    def test_resolve_joins_segments(self):
        path = self.storage.resolver.resolve(None, "docs\\sub/./a.txt")
        self.assertEqual(path, self.settings.storage_root / "public" / "docs" / "sub" / "a.txt")


if __name__ == "__main__":
    unittest.main()
