import contextlib
import os
import unittest

from unittest import mock

from felixshare.storage.lister import list_top_level, list_tree, walk_files
from felixshare.utils.errors import NotFound

from support import StorageTestCase


def _by_name(entries):
    return {e.name: e for e in entries}


class PrivateListingTests(StorageTestCase):
    def setUp(self):
        super().setUp()
        self.root = self.user_root("alice")

    def _list(self):
        return list_top_level(self.root, "alice", self.storage.mappings)

    def test_opaque_names_are_translated(self):
        self.storage.mappings.save("alice", {"notes.txt": "a1b2"})
        (self.root / "a1b2").write_bytes(b"sealed")
        entries = _by_name(self._list())
        self.assertIn("notes.txt", entries)
        self.assertNotIn("a1b2", entries)
        self.assertEqual(entries["notes.txt"].size, len(b"sealed"))
        self.assertEqual(entries["notes.txt"].type, "file")

    def test_unmapped_file_stays_visible_under_raw_name(self):
        self.storage.mappings.save("alice", {"notes.txt": "a1b2"})
        (self.root / "a1b2").write_bytes(b"x")
        (self.root / "legacy.bin").write_bytes(b"y")
        self.assertEqual(set(_by_name(self._list())), {"notes.txt", "legacy.bin"})

    def test_mapping_document_is_never_listed(self):
        self.storage.mappings.save("alice", {})
        self.assertEqual(self._list(), [])

    def test_in_flight_temp_files_are_hidden(self):
        (self.root / ".abc123.tmp").write_bytes(b"partial")
        self.assertEqual(self._list(), [])

    def test_nested_directories_and_file_counts(self):
        self.storage.mappings.save("alice", {
            "photos/a.jpg": "t1",
            "photos/b.jpg": "t2",
            "photos/2024/c.jpg": "t3",
            "photos/2024/may/d.jpg": "t4",
        })
        (self.root / "photos" / "2024" / "may").mkdir(parents=True)
        for rel in ("photos/t1", "photos/t2", "photos/2024/t3", "photos/2024/may/t4"):
            (self.root / rel).write_bytes(b"z")

        photos = _by_name(self._list())["photos"]
        self.assertTrue(photos.is_dir)
        self.assertEqual(photos.size, 0)
        self.assertEqual(photos.file_count, 4)
        children = _by_name(photos.children)
        self.assertEqual(set(children), {"a.jpg", "b.jpg", "2024"})
        self.assertEqual(children["2024"].file_count, 2)
        self.assertEqual(children["2024"].relpath, "photos/2024")
        may = _by_name(children["2024"].children)["may"]
        self.assertEqual(may.children[0].relpath, "photos/2024/may/d.jpg")

    def test_to_dict_shape(self):
        self.storage.mappings.save("alice", {"dir/n.txt": "t1"})
        (self.root / "dir").mkdir()
        (self.root / "dir" / "t1").write_bytes(b"abc")
        d = self._list()[0].to_dict()
        self.assertEqual(d["name"], "dir")
        self.assertEqual(d["type"], "directory")
        self.assertEqual(d["fileCount"], 1)
        self.assertEqual(d["children"][0]["path"], "dir/n.txt")
        self.assertTrue(d["modified"].endswith("Z"))
        self.assertNotIn("children", d["children"][0])

    def test_entry_vanishing_mid_listing_is_skipped(self):
        (self.root / "kept.txt").write_bytes(b"k")
        real_scandir = os.scandir

        class Vanished:
            name = "gone.txt"
            path = str(self.root / "gone.txt")

            def stat(self):
                raise FileNotFoundError(self.path)

            def is_dir(self):
                return False

        def scandir(path):
            with real_scandir(path) as it:
                found = list(it)
            return contextlib.nullcontext(found + [Vanished()])

        with mock.patch.object(os, "scandir", scandir):
            entries = self._list()
        self.assertEqual([e.name for e in entries], ["kept.txt"])

    def test_siblings_sorted(self):
        for name in ("c", "a", "b"):
            (self.root / name).write_bytes(b"")
        self.assertEqual([e.name for e in self._list()], ["a", "b", "c"])

    def test_list_tree_of_subdirectory(self):
        self.storage.mappings.save("alice", {"docs/x.txt": "t1"})
        (self.root / "docs").mkdir()
        (self.root / "docs" / "t1").write_bytes(b"1")
        entries = list_tree(self.root, "docs", "alice", self.storage.mappings)
        self.assertEqual([e.relpath for e in entries], ["docs/x.txt"])
        with self.assertRaises(NotFound):
            list_tree(self.root, "nope", "alice", self.storage.mappings)

    def test_walk_files_is_flat(self):
        self.storage.mappings.save("alice", {"docs/x.txt": "t1", "top.txt": "t2"})
        (self.root / "docs").mkdir()
        (self.root / "docs" / "t1").write_bytes(b"1")
        (self.root / "t2").write_bytes(b"2")
        walked = dict(walk_files(self.root, identity="alice", mappings=self.storage.mappings))
        self.assertEqual(set(walked), {"docs/x.txt", "top.txt"})
        self.assertEqual(walked["docs/x.txt"], self.root / "docs" / "t1")


class PublicListingTests(StorageTestCase):
    def test_public_names_used_as_is(self):
        root = self.storage.resolver.root_for(None)
        (root / "music").mkdir()
        (root / "music" / "song.mp3").write_bytes(b"abc")
        (root / "readme.txt").write_bytes(b"hi")
        entries = _by_name(list_top_level(root))
        self.assertEqual(entries["music"].file_count, 1)
        self.assertEqual(entries["readme.txt"].size, 2)


if __name__ == "__main__":
    unittest.main()
