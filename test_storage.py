from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from hashvault.errors import NotFound
from hashvault.storage import FileStorage, MemoryStorage, check_key


class CheckKeyTests(unittest.TestCase):
    def test_valid(self):
        self.assertEqual("abc-_XYZ09", check_key("abc-_XYZ09"))
        self.assertEqual("a=b", check_key("a=b"))

    def test_invalid(self):
        for key in ("", ".", "..", "a/b", "/abs", "a\\b", "a\x00b"):
            with self.subTest(key=key):
                with self.assertRaises(ValueError):
                    check_key(key)


class FileStorageTests(unittest.TestCase):
    def run_with_tmpdir(self, func):
        with tempfile.TemporaryDirectory() as tmp:
            func(Path(tmp))

    def test_write_read_exists(self):
        def scenario(tmp_path: Path):
            root = tmp_path / "nested" / "store"
            storage = FileStorage(root)
            self.assertFalse(storage.exists("k1"))
            storage.write("k1", b"\x00payload\xff")
            self.assertTrue(storage.exists("k1"))
            self.assertEqual(b"\x00payload\xff", storage.read("k1"))
            # flat layout: one file per key directly under root
            self.assertEqual(["k1"], sorted(p.name for p in root.iterdir()))
            self.assertEqual(b"\x00payload\xff", (root / "k1").read_bytes())

        self.run_with_tmpdir(scenario)

    def test_no_temp_files_left_behind(self):
        def scenario(tmp_path: Path):
            storage = FileStorage(tmp_path)
            storage.write("k1", b"first")
            storage.write("k1", b"second")
            self.assertEqual(["k1"], sorted(p.name for p in tmp_path.iterdir()))
            self.assertEqual(b"second", storage.read("k1"))

            # os.replace onto a directory fails; the temp file must be removed
            (tmp_path / "occupied").mkdir()
            with self.assertRaises(OSError):
                storage.write("occupied", b"data")
            self.assertEqual([], [p.name for p in tmp_path.iterdir() if p.name.startswith(".tmp-")])
            self.assertEqual(["k1", "occupied"], sorted(p.name for p in tmp_path.iterdir()))

        self.run_with_tmpdir(scenario)

    def test_read_missing(self):
        def scenario(tmp_path: Path):
            storage = FileStorage(tmp_path)
            with self.assertRaises(NotFound):
                storage.read("absent")

        self.run_with_tmpdir(scenario)

    def test_rejects_unsafe_keys(self):
        def scenario(tmp_path: Path):
            storage = FileStorage(tmp_path / "store")
            with self.assertRaises(ValueError):
                storage.write("../escape", b"x")
            self.assertFalse((tmp_path / "escape").exists())

        self.run_with_tmpdir(scenario)

    def test_directory_is_not_a_fragment(self):
        def scenario(tmp_path: Path):
            (tmp_path / "subdir").mkdir()
            self.assertFalse(FileStorage(tmp_path).exists("subdir"))

        self.run_with_tmpdir(scenario)


class MemoryStorageTests(unittest.TestCase):
    def test_basic(self):
        storage = MemoryStorage()
        self.assertFalse(storage.exists("k"))
        with self.assertRaises(NotFound):
            storage.read("k")
        storage.write("k", bytearray(b"v"))
        self.assertEqual(b"v", storage.read("k"))
        self.assertIsInstance(storage.read("k"), bytes)
        self.assertEqual(1, storage.write_count)
        self.assertEqual(1, len(storage))


if __name__ == "__main__":
    unittest.main()
