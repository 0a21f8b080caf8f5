"""
GlucoTrack Pattern Registry
Static marker phrases and numeric patterns for fasting glucose extraction
"""

import re
from typing import NamedTuple, Tuple

from app.schemas import GlucoseUnit


class NumericPattern(NamedTuple):
    """A numeric extraction rule; the regex captures exactly one number"""
    name: str
    regex: re.Pattern


def classify_unit(matched_text: str) -> GlucoseUnit:
    """Classify a match as mmol/L if it mentions mmol, otherwise mg/dL"""
    if "mmol" in matched_text.lower():
        return GlucoseUnit.MMOL_L
    return GlucoseUnit.MG_DL


class GlucosePatterns:
    """Regular expression patterns for fasting blood sugar extraction"""

    # Phrases that flag a line as fasting-glucose relevant (substring, any case)
    MARKERS: Tuple[str, ...] = (
        "FASTING PLASMA GLUCOSE",
        "FBS",
        "fasting blood sugar",
        "fasting glucose",
        "fasting blood glucose",
        "FPG",
        "Glucose, Fasting",
        "GLUCOSE FASTING",
    )

    # Bare mention accepted by the lenient scanning mode
    LENIENT_KEYWORD = "glucose"

    # Evaluation order matters: earlier patterns win a shared number token
    NUMERIC: Tuple[NumericPattern, ...] = (
        NumericPattern("mg_dl_suffix", re.compile(r'\b(\d+\.?\d*)\s*mg/dL', re.IGNORECASE)),
        NumericPattern("mmol_l_suffix", re.compile(r'\b(\d+\.?\d*)\s*mmol/L', re.IGNORECASE)),
        NumericPattern("glucose_label", re.compile(r'glucose\s*:?\s*(\d+\.?\d*)', re.IGNORECASE)),
        NumericPattern("fbs_label", re.compile(r'FBS\s*:?\s*(\d+\.?\d*)', re.IGNORECASE)),
        NumericPattern("hba1c_label", re.compile(r'HbA1c\s*:?\s*(\d+\.?\d*)', re.IGNORECASE)),
    )

    # Lowercased once for case-insensitive containment tests
    MARKERS_LOWER: Tuple[str, ...] = tuple(m.lower() for m in MARKERS)


def has_marker(line: str) -> bool:
    """True if any marker phrase occurs in the line, ignoring case"""
    lowered = line.lower()
    return any(marker in lowered for marker in GlucosePatterns.MARKERS_LOWER)
