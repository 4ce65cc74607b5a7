"""
CSV import/export helpers for survey locations.
"""
from typing import Iterable, List, Optional
import io
import logging

import pandas as pd

from app.domain.exceptions import MissingOrMalformedField
from app.domain.models import ImportCandidate, LocationRecord

logger = logging.getLogger(__name__)


IMPORT_COLUMNS = ["project_code", "location_name", "x", "y", "remarks"]
EXPORT_COLUMNS = ["location_id", "location_name", "x", "y", "remarks"]


def _blank_to_none(value) -> Optional[str]:
    # Short rows come back as NaN rather than ""
    if not isinstance(value, str) or not value.strip():
        return None
    return value


def parse_import_csv(content: bytes, max_rows: Optional[int] = None) -> List[ImportCandidate]:
    """
    Parse uploaded CSV content into import candidates.

    Every cell is read as text; blank cells become None. Columns other than
    the import columns are ignored.

    Args:
        content: Raw CSV bytes (UTF-8, optional BOM)
        max_rows: Reject files with more data rows than this

    Returns:
        List of ImportCandidate in file order

    Raises:
        MissingOrMalformedField: If the file is unreadable, lacks a required
            header or exceeds max_rows
    """
    try:
        frame = pd.read_csv(
            io.BytesIO(content),
            dtype=str,
            keep_default_na=False,
            encoding="utf-8-sig",
            skip_blank_lines=True,
        )
    except pd.errors.EmptyDataError:
        raise MissingOrMalformedField("CSV file is empty")
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise MissingOrMalformedField(f"CSV file could not be parsed: {e}")

    frame.columns = [str(column).strip() for column in frame.columns]
    missing = [column for column in IMPORT_COLUMNS if column not in frame.columns]
    if missing:
        raise MissingOrMalformedField(
            f"CSV file is missing required columns: {', '.join(missing)}",
            details={"missing_columns": missing},
        )

    if max_rows is not None and len(frame) > max_rows:
        raise MissingOrMalformedField(
            f"CSV file has {len(frame)} rows, the limit is {max_rows}",
            details={"rows": len(frame), "max_rows": max_rows},
        )

    candidates = [
        ImportCandidate(**{column: _blank_to_none(row[column]) for column in IMPORT_COLUMNS})
        for row in frame[IMPORT_COLUMNS].to_dict(orient="records")
    ]
    logger.debug(f"Parsed {len(candidates)} import candidates from CSV")
    return candidates


def build_export_csv(records: Iterable[LocationRecord]) -> str:
    """
    Render persisted locations as CSV.

    Returns:
        CSV text with the columns location_id, location_name, x, y, remarks
    """
    rows = [
        {
            "location_id": record.id,
            "location_name": record.location_name,
            "x": record.x,
            "y": record.y,
            "remarks": record.remarks,
        }
        for record in records
    ]
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS).to_csv(index=False)


def build_template_csv() -> str:
    """Render the import template: the import headers and one empty row."""
    template = pd.DataFrame([{column: None for column in IMPORT_COLUMNS}], columns=IMPORT_COLUMNS)
    return template.to_csv(index=False)
