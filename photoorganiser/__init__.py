from .__version__ import __version__

import os
import sys
import datetime
import logging
import struct
from collections import defaultdict
from datetime import timedelta

import piexif
from PIL import Image, UnidentifiedImageError
from colorama import Fore, Style, init

from .errors import MetadataError, NoValidDateError





# ========================================
# logs with color
# ========================================
init(autoreset=True)
class ColoredFormatter(logging.Formatter):
    COLORS = {
        'DEBUG': Fore.CYAN,
        'INFO': Fore.GREEN,
        'WARNING': Fore.YELLOW,
        'ERROR': Fore.RED,
        'CRITICAL': Fore.MAGENTA
    }

    def format(self, record):
        if not hasattr(record, 'target'):
            record.target = '-'  # Default value if 'target' is not provided
        log_color = self.COLORS.get(record.levelname, '')
        log_format = (
            f"{log_color}[%(levelname)s]\t%(target)s:\t%(message)s{Style.RESET_ALL}"
        )
        formatter = logging.Formatter(log_format)
        return formatter.format(record)


def configure_logging(verbose: bool = False) -> None:
    """Route all log records to stdout through the colored formatter."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ColoredFormatter())
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, handlers=[handler], force=True)




# ========================================
# definitions
# ========================================
EXIF_IFD_POINTER = 0x8769
TAG_DATETIME_ORIGINAL = 0x9003
TAG_CREATE_DATE = 0x9004  # DateTimeDigitized, exiftool calls it CreateDate
EXIF_DATE_FORMATS = ["%Y:%m:%d %H:%M:%S", "%Y-%m-%d %H:%M:%S", "%Y:%m:%d", "%Y-%m-%d"]
DATE_LABELS = ("DateTimeOriginal", "CreateDate", "Modified")
EXIF_CONTAINER_MAGIC = (b"\xff\xd8", b"II*\x00", b"MM\x00*")  # JPEG, little and big endian TIFF





# ========================================
# files
# ========================================
def is_hidden(path: str) -> bool:
    return os.path.basename(os.path.normpath(path)).startswith(".")


def iter_files(root: str, *, include_hidden: bool = False):
    """Yield the regular files directly inside root, sorted by name. Subfolders are not entered."""
    for name in sorted(os.listdir(root)):
        path = os.path.join(root, name)
        if not include_hidden and is_hidden(path):
            continue
        if os.path.isfile(path):
            yield path





# ========================================
# Function to get the capture timestamps embedded in a file
# ========================================
def parse_exif_datetime(value):
    """Parse an EXIF date string. Returns None for empty or placeholder values."""
    if value is None:
        return None
    if isinstance(value, bytes):
        value = value.decode("ascii", errors="ignore")
    value = str(value).strip().strip("\x00").strip()
    if not value:
        return None
    for fmt in EXIF_DATE_FORMATS:
        try:
            return datetime.datetime.strptime(value, fmt)
        except ValueError:
            continue
    return None


def _timestamps_from_pillow(img):
    exif = img.getexif()
    if not exif:
        return None, None
    exif_ifd = exif.get_ifd(EXIF_IFD_POINTER)

    def lookup(tag):
        value = exif_ifd.get(tag) if exif_ifd else None
        if value is None:
            value = exif.get(tag)
        return parse_exif_datetime(value)

    return lookup(TAG_DATETIME_ORIGINAL), lookup(TAG_CREATE_DATE)


def _has_exif_container(file_path) -> bool:
    with open(file_path, "rb") as f:
        header = f.read(12)
    return header.startswith(EXIF_CONTAINER_MAGIC) or (header[:4] == b"RIFF" and header[8:12] == b"WEBP")


def _timestamps_from_piexif(file_path):
    # piexif only sniffs two bytes, so plain text starting with "MM" or "II" would be parsed as TIFF
    if not _has_exif_container(file_path):
        return None, None
    try:
        exif_dict = piexif.load(file_path)
    except piexif.InvalidImageDataError:
        return None, None
    exif = exif_dict.get("Exif") or {}
    return (
        parse_exif_datetime(exif.get(piexif.ExifIFD.DateTimeOriginal)),
        parse_exif_datetime(exif.get(piexif.ExifIFD.DateTimeDigitized)),
    )


def read_capture_timestamps(file_path):
    """
    Return (original_capture_time, create_time) from the file's EXIF block.
    Either value is None when the tag is missing or unparseable. Files that are
    not images yield (None, None). I/O errors propagate; undecodable EXIF
    structures raise MetadataError.
    """
    try:
        with Image.open(file_path) as img:
            return _timestamps_from_pillow(img)
    except UnidentifiedImageError:
        pass
    except (SyntaxError, struct.error, ValueError, KeyError, IndexError, TypeError) as e:
        raise MetadataError(f"could not decode EXIF: {e}") from e

    # Pillow can't open most camera RAW files, but the TIFF-based ones carry a readable EXIF block
    try:
        return _timestamps_from_piexif(file_path)
    except (struct.error, ValueError, KeyError, IndexError, TypeError) as e:
        raise MetadataError(f"could not decode EXIF: {e}") from e





# ========================================
# date selection
# ========================================
def resolve_capture_date(file_path, reader=read_capture_timestamps):
    """
    Selects the capture date of a file in strict priority order:
    DateTimeOriginal, then CreateDate, then the filesystem modification time.
    Returns a tuple (label, datetime) where label is one of DATE_LABELS.
    Raises NoValidDateError if none of them is available.
    """
    original, created = reader(file_path)
    if original is not None:
        return DATE_LABELS[0], original
    if created is not None:
        return DATE_LABELS[1], created

    try:
        modified = datetime.datetime.fromtimestamp(os.stat(file_path).st_mtime)
    except (OSError, OverflowError, ValueError) as e:
        logging.warning("could not get file dates: %s", e, extra={'target': os.path.basename(file_path)})
        modified = None
    if modified is not None:
        return DATE_LABELS[2], modified

    raise NoValidDateError("No valid date found")





# ========================================
# summary helpers (end-of-run reporting)
# ========================================
def format_duration(seconds: float) -> str:
    """Return HH:MM:SS for a duration in seconds."""
    if seconds is None:
        return "00:00:00"
    td = timedelta(seconds=int(round(seconds)))
    total_seconds = int(td.total_seconds())
    h = total_seconds // 3600
    m = (total_seconds % 3600) // 60
    s = total_seconds % 60
    return f"{h:02d}:{m:02d}:{s:02d}"

class RunSummary:
    """
    Lightweight tracker for end-of-run summaries.

    Usage:
        s = RunSummary()
        s.inc('processed')
        # ... do your work ...
        s.emit_lines([
            f"Files processed: {s['processed']}",
            f"Duration: {s.duration_hms}",
        ])
    """
    def __init__(self):
        self._t0 = datetime.datetime.now()
        self._t1 = None
        self.counters = defaultdict(int)   # any numeric counters

    # timing
    @property
    def duration_s(self) -> float:
        end = self._t1 or datetime.datetime.now()
        return (end - self._t0).total_seconds()

    @property
    def duration_hms(self) -> str:
        return format_duration(self.duration_s)

    def stop(self):
        self._t1 = datetime.datetime.now()

    # counters
    def inc(self, key: str, n: int = 1):
        self.counters[key] += n

    def __getitem__(self, key: str):
        # missing counters read as 0
        return self.counters.get(key, 0)

    def prefixed(self, prefix: str) -> dict:
        """Counters whose key starts with prefix, with the prefix stripped."""
        return {k[len(prefix):]: v for k, v in self.counters.items() if k.startswith(prefix)}

    # emission
    def emit_lines(self, lines, level=logging.INFO):
        """Stop the clock and log each human-readable line under the SUMMARY target."""
        self.stop()
        for line in lines:
            logging.log(level, line, extra={'target': 'SUMMARY'})
