"""
Tests for the metadata reader and the capture date priority.
"""

import datetime
import os
import tempfile
import unittest
from unittest.mock import patch

import piexif
from PIL import Image, UnidentifiedImageError

from photoorganiser import (
    parse_exif_datetime,
    read_capture_timestamps,
    resolve_capture_date,
)
from photoorganiser.errors import MetadataError, NoValidDateError


def make_jpeg(path, original=None, created=None):
    img = Image.new("RGB", (8, 8), "red")
    if original is None and created is None:
        img.save(path, "JPEG")
        return
    exif = {"0th": {}, "Exif": {}, "GPS": {}, "1st": {}, "thumbnail": None}
    if original is not None:
        exif["Exif"][piexif.ExifIFD.DateTimeOriginal] = original.encode()
    if created is not None:
        exif["Exif"][piexif.ExifIFD.DateTimeDigitized] = created.encode()
    img.save(path, "JPEG", exif=piexif.dump(exif))


class TestParseExifDatetime(unittest.TestCase):

    def test_standard_exif_format(self):
        self.assertEqual(parse_exif_datetime("2024:03:15 10:00:00"), datetime.datetime(2024, 3, 15, 10, 0, 0))

    def test_bytes_with_trailing_nul(self):
        self.assertEqual(parse_exif_datetime(b"2024:03:15 10:00:00\x00"), datetime.datetime(2024, 3, 15, 10, 0, 0))

    def test_dash_separated_format(self):
        self.assertEqual(parse_exif_datetime("2024-03-15 10:00:00"), datetime.datetime(2024, 3, 15, 10, 0, 0))

    def test_placeholder_and_empty_values_are_absent(self):
        self.assertIsNone(parse_exif_datetime("0000:00:00 00:00:00"))
        self.assertIsNone(parse_exif_datetime("    "))
        self.assertIsNone(parse_exif_datetime(None))


class TestReadCaptureTimestamps(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = self._tmp.name

    def tearDown(self):
        self._tmp.cleanup()

    def test_reads_original_and_create_date(self):
        path = os.path.join(self.tmp, "IMG_0001.JPG")
        make_jpeg(path, original="2024:03:15 10:00:00", created="2024:03:16 11:00:00")
        original, created = read_capture_timestamps(path)
        self.assertEqual(original, datetime.datetime(2024, 3, 15, 10, 0, 0))
        self.assertEqual(created, datetime.datetime(2024, 3, 16, 11, 0, 0))

    def test_jpeg_without_exif(self):
        path = os.path.join(self.tmp, "plain.jpg")
        make_jpeg(path)
        self.assertEqual(read_capture_timestamps(path), (None, None))

    def test_non_image_file(self):
        path = os.path.join(self.tmp, "notes.txt")
        with open(path, "w") as f:
            f.write("not an image")
        self.assertEqual(read_capture_timestamps(path), (None, None))

    def test_text_starting_like_a_tiff_byte_order_mark(self):
        path = os.path.join(self.tmp, "notes.txt")
        with open(path, "wb") as f:
            f.write(b"MM hello world notes")
        self.assertEqual(read_capture_timestamps(path), (None, None))

    def test_truncated_tiff_raises_metadata_error(self):
        path = os.path.join(self.tmp, "DSC_0002.NEF")
        with open(path, "wb") as f:
            f.write(b"MM\x00*\x00")
        with self.assertRaises(MetadataError):
            read_capture_timestamps(path)

    def test_unparseable_original_is_absent(self):
        path = os.path.join(self.tmp, "IMG_0002.JPG")
        make_jpeg(path, original="0000:00:00 00:00:00", created="2021:07:04 09:30:00")
        original, created = read_capture_timestamps(path)
        self.assertIsNone(original)
        self.assertEqual(created, datetime.datetime(2021, 7, 4, 9, 30, 0))

    def test_falls_back_to_piexif_for_files_pillow_cannot_open(self):
        path = os.path.join(self.tmp, "DSC_0001.NEF")
        with open(path, "wb") as f:
            f.write(b"II*\x00raw")
        exif = {"Exif": {piexif.ExifIFD.DateTimeOriginal: b"2022:01:02 03:04:05"}}
        with patch("photoorganiser.Image.open", side_effect=UnidentifiedImageError("cannot identify")), \
                patch("photoorganiser.piexif.load", return_value=exif) as load:
            original, created = read_capture_timestamps(path)
        load.assert_called_once_with(path)
        self.assertEqual(original, datetime.datetime(2022, 1, 2, 3, 4, 5))
        self.assertIsNone(created)

    def test_missing_file_raises(self):
        with self.assertRaises(OSError):
            read_capture_timestamps(os.path.join(self.tmp, "gone.jpg"))


class TestResolveCaptureDate(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = os.path.join(self._tmp.name, "IMG_0001.JPG")
        with open(self.path, "wb") as f:
            f.write(b"data")

    def tearDown(self):
        self._tmp.cleanup()

    def test_original_wins(self):
        original = datetime.datetime(2024, 3, 15, 10, 0, 0)
        created = datetime.datetime(2020, 1, 1, 0, 0, 0)
        label, date = resolve_capture_date(self.path, reader=lambda p: (original, created))
        self.assertEqual((label, date), ("DateTimeOriginal", original))

    def test_create_date_when_original_missing(self):
        created = datetime.datetime(2020, 1, 1, 12, 0, 0)
        label, date = resolve_capture_date(self.path, reader=lambda p: (None, created))
        self.assertEqual((label, date), ("CreateDate", created))

    def test_modification_time_fallback(self):
        mtime = datetime.datetime(2023, 12, 31, 23, 59, 0)
        os.utime(self.path, (mtime.timestamp(), mtime.timestamp()))
        label, date = resolve_capture_date(self.path, reader=lambda p: (None, None))
        self.assertEqual(label, "Modified")
        self.assertEqual(date, mtime)

    def test_no_date_at_all(self):
        missing = os.path.join(self._tmp.name, "vanished.jpg")
        with self.assertLogs(level="WARNING") as logs:
            with self.assertRaises(NoValidDateError):
                resolve_capture_date(missing, reader=lambda p: (None, None))
        self.assertIn("could not get file dates", logs.output[0])


if __name__ == "__main__":
    unittest.main()
