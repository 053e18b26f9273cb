"""
VowelSeg Feature Table - Row parser, reader and writer.

The feature table is line-oriented delimited text produced by the acoustic
analysis step: one exact header line, then one row per analysis frame.

Schema (fixed order):
    Time (seconds, fractional), Intensity (dB), Pitch (Hz),
    F1, F2, F3 (Hz), MFCC1..MFCC12

INVARIANTS:
    - "--undefined--" in any field parses to 0
    - Time is converted to integer milliseconds (rounded)
    - All other fields are integers (rounded)
    - A field wider than MAX_FIELD_WIDTH is corrupt data, never truncated
    - Rows need at least Time..F3; cepstral fields are all-or-nothing
    - Any malformed row is fatal for the whole stream
    - Frame times never decrease; blank lines only at the end
"""

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator

from vowelseg.errors import FieldTooWide, HeaderMismatch, MalformedRecord


# =============================================================================
# Constants (schema)
# =============================================================================

CORE_FIELDS = ("Time", "Intensity", "Pitch", "F1", "F2", "F3")
MFCC_FIELDS = tuple(f"MFCC{i}" for i in range(1, 13))
HEADER_FIELDS = CORE_FIELDS + MFCC_FIELDS

DELIMITER = ","
MATRIX_HEADER = DELIMITER.join(HEADER_FIELDS)
FIELD_UNDEFINED = "--undefined--"
MAX_FIELD_WIDTH = 15
FILE_EXT_DATA = ".txt"
ENCODING = "utf-8"


# =============================================================================
# FeatureRecord
# =============================================================================


@dataclass(frozen=True)
class FeatureRecord:
    """
    One analysis frame.

    Attributes:
        time_ms: Frame time in milliseconds
        intensity_db: Intensity (dB)
        pitch_hz: Fundamental frequency (Hz), 0 when undefined
        f1_hz: First formant (Hz)
        f2_hz: Second formant (Hz)
        f3_hz: Third formant (Hz)
        mfcc: Twelve cepstral coefficients, or () when the row has none
        raw_line: Source row text without line terminator
    """
    time_ms: int
    intensity_db: int
    pitch_hz: int
    f1_hz: int
    f2_hz: int
    f3_hz: int
    mfcc: tuple[int, ...] = ()
    raw_line: str = ""

    @property
    def time_s(self) -> float:
        return self.time_ms / 1000.0

    def to_row(self, delimiter: str = DELIMITER) -> str:
        """Render as a table row; uses the source text when available."""
        if self.raw_line:
            return self.raw_line
        values = [
            f"{self.time_ms / 1000.0:.6f}",
            self.intensity_db,
            self.pitch_hz,
            self.f1_hz,
            self.f2_hz,
            self.f3_hz,
            *self.mfcc,
        ]
        return delimiter.join(str(v) for v in values)


# =============================================================================
# Field decoding
# =============================================================================


def _round_half_away(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def _to_number(text: str, name: str) -> float:
    if text == FIELD_UNDEFINED:
        return 0.0
    try:
        value = float(text)
    except ValueError:
        raise MalformedRecord(f"field {name} is not numeric: {text!r}") from None
    if not math.isfinite(value):
        raise MalformedRecord(f"field {name} is not finite: {text!r}")
    return value


def split_fields(line: str, delimiter: str = DELIMITER) -> list[str]:
    """
    Split a row into fields, enforcing the per-field width bound.

    Raises:
        FieldTooWide: If any field is longer than MAX_FIELD_WIDTH.
    """
    fields = line.rstrip("\r\n").split(delimiter)
    for position, text in enumerate(fields):
        if len(text) > MAX_FIELD_WIDTH:
            name = HEADER_FIELDS[position] if position < len(HEADER_FIELDS) else str(position + 1)
            raise FieldTooWide(
                f"field {name} is {len(text)} characters wide "
                f"(max {MAX_FIELD_WIDTH}); data may be corrupt"
            )
    return fields


def parse_line(line: str, delimiter: str = DELIMITER) -> FeatureRecord:
    """
    Decode one table row into a FeatureRecord.

    Args:
        line: Row text (a trailing newline is ignored)
        delimiter: Single-character field delimiter

    Returns:
        Parsed FeatureRecord; raw_line keeps the row text.

    Raises:
        FieldTooWide: A field exceeds MAX_FIELD_WIDTH.
        MalformedRecord: Too few fields, a partial cepstral tail,
            too many fields, or non-numeric text.
    """
    if len(delimiter) != 1:
        raise ValueError(f"delimiter must be a single character, got {delimiter!r}")

    fields = split_fields(line, delimiter)
    count = len(fields)
    if count < len(CORE_FIELDS):
        raise MalformedRecord(
            f"expected at least {len(CORE_FIELDS)} fields, found {count}"
        )
    if count not in (len(CORE_FIELDS), len(HEADER_FIELDS)):
        raise MalformedRecord(
            f"expected {len(CORE_FIELDS)} or {len(HEADER_FIELDS)} fields, found {count}"
        )

    values = [_to_number(text, name) for text, name in zip(fields, HEADER_FIELDS)]
    time_ms = _round_half_away(values[0] * 1000)
    intensity, pitch, f1, f2, f3 = (_round_half_away(v) for v in values[1:6])
    mfcc = tuple(_round_half_away(v) for v in values[6:])

    return FeatureRecord(
        time_ms=time_ms,
        intensity_db=intensity,
        pitch_hz=pitch,
        f1_hz=f1,
        f2_hz=f2,
        f3_hz=f3,
        mfcc=mfcc,
        raw_line=line.rstrip("\r\n"),
    )


# =============================================================================
# Table I/O
# =============================================================================


def check_header(line: str) -> None:
    """Raise HeaderMismatch unless line is exactly the expected header."""
    found = line.rstrip("\r\n")
    if found != MATRIX_HEADER:
        raise HeaderMismatch(
            f"file header doesn't match: expected {MATRIX_HEADER!r}, got {found!r}",
            line_number=1,
        )


def iter_records(lines: Iterable[str], delimiter: str = DELIMITER) -> Iterator[FeatureRecord]:
    """
    Parse a header line followed by data rows, lazily and in order.

    Blank lines are only allowed at the end of the table (the analysis
    tool may leave a trailing empty line); a data row after a blank line
    is malformed. A missing header is a HeaderMismatch.

    Yields:
        One FeatureRecord per data row.

    Raises:
        MalformedRecord: With the offending 1-based line number.
    """
    it = iter(lines)
    header = next(it, None)
    if header is None:
        raise HeaderMismatch("feature table is empty", line_number=1)
    check_header(header)

    blank_line = None
    previous_ms = None
    for line_number, line in enumerate(it, start=2):
        if not line.strip():
            if blank_line is None:
                blank_line = line_number
            continue
        if blank_line is not None:
            raise MalformedRecord(
                f"data row after blank line {blank_line}", line_number=line_number
            )
        try:
            record = parse_line(line, delimiter)
        except MalformedRecord as e:
            raise type(e)(str(e), line_number=line_number) from None
        if previous_ms is not None and record.time_ms < previous_ms:
            raise MalformedRecord(
                f"time goes backwards ({record.time_ms} ms after {previous_ms} ms)",
                line_number=line_number,
            )
        previous_ms = record.time_ms
        yield record


def _decode_lines(lines: Iterable[bytes], encoding: str) -> Iterator[str]:
    for line_number, raw in enumerate(lines, start=1):
        try:
            yield raw.decode(encoding)
        except UnicodeDecodeError as e:
            raise MalformedRecord(
                f"not valid {encoding} text: {e.reason}", line_number=line_number
            ) from None


def read_feature_table(path: Path, delimiter: str = DELIMITER) -> Iterator[FeatureRecord]:
    """
    Stream records from a feature table file.

    The file is decoded as UTF-8 one line at a time, so undecodable bytes
    are reported against their own line. The file stays open only while
    the iterator is being consumed.
    """
    with open(path, "rb") as f:
        yield from iter_records(_decode_lines(f, ENCODING), delimiter)


def format_table(records: Iterable[FeatureRecord], delimiter: str = DELIMITER) -> str:
    """Render header plus rows, newline-terminated."""
    rows = [MATRIX_HEADER]
    rows.extend(r.to_row(delimiter) for r in records)
    return "\n".join(rows) + "\n"
