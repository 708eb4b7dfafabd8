"""CSV row source: one user code per data row."""
from __future__ import annotations
import csv
import logging
from pathlib import Path
from typing import List

from app.core.validators import normalize_user_code

logger = logging.getLogger(__name__)

DEFAULT_COLUMN = "codUser"


class RowSourceError(ValueError):
    """The row source file is missing, unreadable or malformed."""
    pass


def read_user_codes(path: str | Path, column: str = DEFAULT_COLUMN, delimiter: str = ",") -> List[str]:
    """Read every user code from a delimited file with a header row.

    Codes are returned in file order. The whole file is read before any
    provisioning starts so a malformed row aborts the batch up front.

    Args:
        path: CSV file path
        column: Header name holding the user code
        delimiter: Field delimiter

    Returns:
        List of normalized user codes

    Raises:
        RowSourceError: If the file cannot be read, the column is absent
            or a row holds an invalid code
    """
    path = Path(path)
    if len(delimiter) != 1:
        raise RowSourceError(f"Delimiter must be a single character, got {delimiter!r}")
    codes: List[str] = []
    try:
        # utf-8-sig tolerates the BOM spreadsheet exports prepend
        with path.open("r", encoding="utf-8-sig", newline="") as handle:
            reader = csv.DictReader(handle, delimiter=delimiter)
            if not reader.fieldnames or column not in [name.strip() for name in reader.fieldnames]:
                raise RowSourceError(f"{path}: header has no '{column}' column (found {reader.fieldnames})")
            for row in reader:
                raw = _get_column(row, column)
                try:
                    codes.append(normalize_user_code(raw))
                except ValueError as exc:
                    raise RowSourceError(f"{path}:{reader.line_num}: {exc}") from exc
    except OSError as exc:
        raise RowSourceError(f"Cannot read row source {path}: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise RowSourceError(f"{path}: not valid UTF-8: {exc}") from exc
    except csv.Error as exc:
        raise RowSourceError(f"{path}: malformed CSV: {exc}") from exc

    logger.info("Read %d user codes from %s", len(codes), path)
    return codes


def _get_column(row: dict, column: str) -> str | None:
    if column in row:
        return row[column]
    # Header cells padded with spaces ("codUser ") still match
    for key, value in row.items():
        if key is not None and key.strip() == column:
            return value
    return None
