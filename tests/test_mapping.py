import json
import threading
import unittest

from felixshare.storage.mapping import MappingStore, reverse_of
from felixshare.utils.dataModels import MAPPING_FILENAME

from support import StorageTestCase


class MappingStoreTests(StorageTestCase):
    def test_missing_document_loads_empty(self):
        self.assertEqual(self.storage.mappings.load("alice"), {})

    def test_save_then_load_in_fresh_store(self):
        mapping = {"notes.txt": "a1b2", "docs/report.pdf": "c3d4"}
        self.storage.mappings.save("alice", mapping)
        fresh = MappingStore(self.storage.resolver)
        self.assertEqual(fresh.load("alice"), mapping)

    def test_document_lives_in_identity_root(self):
        self.storage.mappings.save("alice", {"a": "b"})
        doc = self.user_root("alice") / MAPPING_FILENAME
        self.assertEqual(json.loads(doc.read_text(encoding="utf-8")), {"a": "b"})

    def test_identities_are_separate(self):
        self.storage.mappings.save("alice", {"a": "1"})
        self.storage.mappings.save("bob", {"b": "2"})
        self.assertEqual(self.storage.mappings.load("alice"), {"a": "1"})
        self.assertEqual(self.storage.mappings.load("bob"), {"b": "2"})

    def test_corrupt_document_degrades_to_empty(self):
        (self.user_root() / MAPPING_FILENAME).write_text("{not json", encoding="utf-8")
        with self.assertLogs("felixshare.storage.mapping", level="WARNING"):
            self.assertEqual(self.storage.mappings.load("alice"), {})

    def test_non_object_document_degrades_to_empty(self):
        (self.user_root() / MAPPING_FILENAME).write_text("[1, 2]", encoding="utf-8")
        with self.assertLogs("felixshare.storage.mapping", level="WARNING"):
            self.assertEqual(self.storage.mappings.load("alice"), {})

    def test_save_replaces_whole_document(self):
        self.storage.mappings.save("alice", {"a": "1", "b": "2"})
        self.storage.mappings.save("alice", {"c": "3"})
        self.assertEqual(self.storage.mappings.load("alice"), {"c": "3"})

    def test_no_temp_files_left_behind(self):
        self.storage.mappings.save("alice", {"a": "1"})
        self.assertEqual([p.name for p in self.user_root().iterdir()], [MAPPING_FILENAME])

    def test_reverse_of(self):
        self.assertEqual(reverse_of({"notes.txt": "a1b2", "x/y": "c3"}), {"a1b2": "notes.txt", "c3": "x/y"})

    def test_update_saves_on_exit(self):
        with self.storage.mappings.update("alice") as mapping:
            mapping["new.txt"] = "tok"
        self.assertEqual(self.storage.mappings.load("alice"), {"new.txt": "tok"})

    def test_update_discards_on_error(self):
        self.storage.mappings.save("alice", {"keep": "1"})
        with self.assertRaises(RuntimeError):
            with self.storage.mappings.update("alice") as mapping:
                mapping["lost"] = "2"
                raise RuntimeError("boom")
        self.assertEqual(self.storage.mappings.load("alice"), {"keep": "1"})

    def test_concurrent_updates_are_serialized(self):
        def add(i):
            with self.storage.mappings.update("alice") as mapping:
                mapping[f"file{i}.txt"] = f"tok{i}"

        threads = [threading.Thread(target=add, args=(i,)) for i in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        self.assertEqual(len(self.storage.mappings.load("alice")), 20)


if __name__ == "__main__":
    unittest.main()
