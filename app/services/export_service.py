"""
GlucoTrack - Export Service
CSV and JSON serialization for readings and extraction results
"""

import csv
import io
import json
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

from app.models import GlucoseReading
from app.schemas import ExtractedValue, UnitSummary

logger = logging.getLogger(__name__)

READINGS_CSV_HEADERS = ["Date", "Time", "Glucose Level", "Unit", "Meal Tag", "Notes"]
EXTRACTION_CSV_HEADERS = ["Entry", "Pattern", "Value", "Unit", "Line", "Context"]

NORMAL_RANGES = {
    "mg/dL": "70-100 mg/dL",
    "mmol/L": "3.9-5.5 mmol/L",
}


def _format_number(value: float) -> str:
    """Render 95.0 as "95" and 5.5 as "5.5" """
    return f"{value:g}"


def _write_csv(headers: List[str], rows: Iterable[List[Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(headers)
    writer.writerows(rows)
    return buffer.getvalue()


# =============================================================================
# Readings
# =============================================================================

def readings_to_csv(readings: Sequence[GlucoseReading]) -> str:
    """Readings as CSV, oldest first"""
    ordered = sorted(readings, key=lambda r: r.timestamp)
    rows = [
        [
            r.timestamp.strftime("%Y-%m-%d"),
            r.timestamp.strftime("%H:%M:%S"),
            _format_number(r.glucose_level),
            r.unit,
            r.meal_tag or "",
            r.notes or "",
        ]
        for r in ordered
    ]
    logger.info(f"Exported {len(rows)} readings to CSV")
    return _write_csv(READINGS_CSV_HEADERS, rows)


def readings_to_backup(
    readings: Sequence[GlucoseReading],
    settings_data: Dict[str, Any],
    export_date: Optional[datetime] = None
) -> Dict[str, Any]:
    """JSON-serializable backup document: exportDate, settings, data"""
    return {
        "exportDate": (export_date or datetime.now()).isoformat(),
        "settings": settings_data,
        "data": [r.to_dict() for r in readings],
    }


# =============================================================================
# Extraction Results
# =============================================================================

def extraction_to_csv(values: Sequence[ExtractedValue]) -> str:
    """
    Extraction results as CSV

    Columns: Entry (1-based), Pattern, Value, Unit, Line, Context
    """
    rows = [
        [
            index,
            item.pattern,
            _format_number(item.value),
            item.unit.value,
            item.line_number,
            item.context,
        ]
        for index, item in enumerate(values, start=1)
    ]
    return _write_csv(EXTRACTION_CSV_HEADERS, rows)


def extraction_to_json(
    values: Sequence[ExtractedValue],
    summary: Dict[str, UnitSummary],
    timestamp: Optional[datetime] = None
) -> str:
    """Extraction results as a JSON document with summary and reference ranges"""
    document = {
        "timestamp": (timestamp or datetime.now()).isoformat(),
        "summary": {unit: s.model_dump(mode="json") for unit, s in summary.items()},
        "entries": [v.model_dump(mode="json") for v in values],
        "normal_ranges": NORMAL_RANGES,
    }
    return json.dumps(document, indent=2)
