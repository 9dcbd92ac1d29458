"""
Tests for complete sync runs (parse -> load -> reconcile -> single write).

A run must either write the complete new document exactly once or fail
before writing anything.
"""

import tempfile
import unittest
from pathlib import Path
from unittest import mock

import requests

from lecturesync.errors import StoreIOError, StructuralParseError
from lecturesync.pipeline import fix_thumbnails, read_export, sync_schedule
from lecturesync.reconcile import IdFactory
from lecturesync.storage import JsonDocumentStore, MemoryDocumentStore

EXPORT = (
    "Lecture Schedule\n"
    'Groups,"Slot [1, 2]","Slot [101]",,,,,,,Day\n'
    "03-04-24,10:00AM to 11:00AM,02:00PM to 03:00PM,,,,,,,Monday\n"
    "03-05-24,10:00AM to 11:00AM,,,,,,,,Tuesday\n"
)


def lecture(title: str, url: str, **extra) -> dict:
    data = {"title": title, "youtube_url": url, "thumbnail_url": "", "delivered": True}
    data.update(extra)
    return data


DOCUMENT = {
    "liveClassAnnouncement": None,
    "globalAnnouncements": [{"id": 1, "message": "Exams next week"}],
    "Batch A": {
        "lectures": {
            "1": [lecture("A1", "https://youtu.be/a1"), lecture("A2", "https://youtu.be/a2")],
            "2": [lecture("B1", "https://youtu.be/b1"), lecture("B2", "https://youtu.be/b2"), lecture("B3", "x")],
        }
    },
    "Batch B": {"lectures": {"101": [lecture("C1", "https://www.youtube.com/watch?v=c1")]}},
}


class TestSyncSchedule(unittest.TestCase):
    def test_sync_writes_once(self) -> None:
        store = MemoryDocumentStore(DOCUMENT)
        result = sync_schedule(EXPORT, store, new_id=IdFactory(start=1))

        self.assertTrue(result.written)
        self.assertEqual(store.saves, 1)
        self.assertEqual(store.document, result.document)

        doc = store.document
        self.assertEqual(doc["globalAnnouncements"], DOCUMENT["globalAnnouncements"])
        self.assertIsNone(doc["liveClassAnnouncement"])

        course1 = doc["Batch A"]["lectures"]["1"]
        self.assertEqual([l["title"] for l in course1], ["A1", "A2"])
        self.assertEqual([l["date"] for l in course1], ["2024-03-04", "2024-03-05"])
        self.assertEqual(course1[0]["thumbnail_url"], "https://img.youtube.com/vi/a1/maxresdefault.jpg")
        self.assertFalse(course1[0]["delivered"])

        # course 2 had three lectures but only two slots
        self.assertEqual([l["title"] for l in doc["Batch A"]["lectures"]["2"]], ["B1", "B2"])

        course101 = doc["Batch B"]["lectures"]["101"]
        self.assertEqual(len(course101), 1)
        self.assertEqual(course101[0]["time"], "14:00")
        self.assertEqual(course101[0]["batch"], "Batch B")

        self.assertEqual(result.counts["Batch A"]["1"], 2)
        self.assertEqual(result.counts["Batch A"]["3"], 0)

    def test_dry_run_does_not_write(self) -> None:
        store = MemoryDocumentStore(DOCUMENT)
        result = sync_schedule(EXPORT, store, dry_run=True)

        self.assertFalse(result.written)
        self.assertEqual(store.saves, 0)
        self.assertEqual(store.document, DOCUMENT)
        self.assertEqual(len(result.schedule["Batch A"]["1"]), 2)

    def test_broken_export_writes_nothing(self) -> None:
        store = MemoryDocumentStore(DOCUMENT)
        with self.assertRaises(StructuralParseError):
            sync_schedule('title\n"[1],x\n', store)
        self.assertEqual(store.saves, 0)

    def test_missing_document_leaves_no_file(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            path = Path(d) / "lectures.json"
            with self.assertRaises(StoreIOError):
                sync_schedule(EXPORT, JsonDocumentStore(path))
            self.assertFalse(path.exists())

    def test_second_sync_converges(self) -> None:
        store = MemoryDocumentStore(DOCUMENT)
        first = sync_schedule(EXPORT, store)
        second = sync_schedule(EXPORT, store)

        def strip_ids(doc: dict) -> dict:
            return {
                batch: {c: [{k: v for k, v in l.items() if k != "id"} for l in ls] for c, ls in data["lectures"].items()}
                for batch, data in doc.items()
                if batch.startswith("Batch")
            }

        self.assertEqual(strip_ids(first.document), strip_ids(second.document))


class TestFixThumbnails(unittest.TestCase):
    def test_fix_thumbnails_saves_only_when_changed(self) -> None:
        store = MemoryDocumentStore(DOCUMENT)
        self.assertEqual(fix_thumbnails(store), 5)
        self.assertEqual(store.saves, 1)

        self.assertEqual(fix_thumbnails(store), 0)
        self.assertEqual(store.saves, 1)

    def test_dry_run(self) -> None:
        store = MemoryDocumentStore(DOCUMENT)
        self.assertEqual(fix_thumbnails(store, dry_run=True), 5)
        self.assertEqual(store.saves, 0)


class TestReadExport(unittest.TestCase):
    def test_reads_file_and_strips_bom(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "Lecture json.csv"
            p.write_text("\ufeffa,b\n", encoding="utf-8")
            self.assertEqual(read_export(p), "a,b\n")

    def test_missing_file_raises(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            with self.assertRaises(StoreIOError):
                read_export(Path(d) / "missing.csv")

    def test_downloads_url(self) -> None:
        resp = mock.Mock()
        resp.headers = {"Content-Type": "text/csv"}
        resp.text = "a,b\n"
        with mock.patch("lecturesync.pipeline.requests.get", return_value=resp) as get:
            text = read_export("https://example.com/pub?output=csv")

        self.assertEqual(text, "a,b\n")
        get.assert_called_once_with("https://example.com/pub?output=csv", timeout=30)
        resp.raise_for_status.assert_called_once_with()
        self.assertEqual(resp.encoding, "utf-8")

    def test_download_error_raises(self) -> None:
        with mock.patch("lecturesync.pipeline.requests.get", side_effect=requests.ConnectionError("offline")):
            with self.assertRaises(StoreIOError):
                read_export("https://example.com/pub?output=csv")


if __name__ == "__main__":
    unittest.main()
