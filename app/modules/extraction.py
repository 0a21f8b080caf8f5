"""
GlucoTrack Extraction Engine
Rule-based fasting blood sugar extraction from decoded report text
"""

import re
import math
import logging
from typing import List, Dict, Optional, Tuple, NamedTuple, Sequence, Set, Union

from app.schemas import (
    ExtractedValue, ExtractionResult, GlucoseUnit, ScanMode, UnitSummary, to_mg_dl
)
from app.modules.patterns import GlucosePatterns, NumericPattern, classify_unit, has_marker

logger = logging.getLogger(__name__)

LINE_BREAK = re.compile(r'\r\n|\r|\n')

# Physiological plausibility filter in mg/dL, inclusive; overridable per call
DEFAULT_PLAUSIBLE_RANGE: Tuple[float, float] = (30.0, 500.0)


def split_lines(text: str) -> List[str]:
    """Split text on any line break, keeping blank lines"""
    return LINE_BREAK.split(text)


# =============================================================================
# Line Scanner
# =============================================================================

class ScanWindow(NamedTuple):
    """A flagged line and the text searched for values on its behalf"""
    line_index: int
    context_text: str

    @property
    def line_number(self) -> int:
        return self.line_index + 1


class LineScanner:
    """Flags fasting-glucose lines and builds their context windows"""

    CONTEXT_RADIUS = 2

    def __init__(self, mode: Union[ScanMode, str] = ScanMode.LENIENT):
        self.mode = ScanMode(mode)

    def is_flagged(self, line: str) -> bool:
        if has_marker(line):
            return True
        if self.mode is ScanMode.LENIENT:
            return GlucosePatterns.LENIENT_KEYWORD in line.lower()
        return False

    def window_for(self, lines: Sequence[str], index: int) -> str:
        if self.mode is ScanMode.LENIENT:
            return lines[index]
        start = max(0, index - self.CONTEXT_RADIUS)
        end = min(len(lines) - 1, index + self.CONTEXT_RADIUS)
        return " ".join(lines[start:end + 1])

    def scan_lines(self, lines: Sequence[str]) -> List[ScanWindow]:
        return [
            ScanWindow(index, self.window_for(lines, index))
            for index, line in enumerate(lines)
            if self.is_flagged(line)
        ]

    def scan(self, text: str) -> List[ScanWindow]:
        """
        Scan text for flagged lines

        Args:
            text: Decoded report text

        Returns:
            One window per flagged line, in ascending line order
        """
        if not text or not text.strip():
            return []
        return self.scan_lines(split_lines(text))


# =============================================================================
# Value Extractor
# =============================================================================

class ValueExtractor:
    """Applies numeric patterns to a context window"""

    def __init__(
        self,
        plausible_range: Optional[Tuple[float, float]] = None,
        patterns: Sequence[NumericPattern] = GlucosePatterns.NUMERIC
    ):
        low, high = plausible_range or DEFAULT_PLAUSIBLE_RANGE
        self.min_value = float(low)
        self.max_value = float(high)
        self.patterns = tuple(patterns)

    def is_plausible(self, value: float, unit: GlucoseUnit) -> bool:
        """Check a value against the mg/dL range, converting mmol/L first"""
        return self.min_value <= to_mg_dl(value, unit) <= self.max_value

    def extract(self, context_text: str, line_number: int, anchor_line: str) -> List[ExtractedValue]:
        """
        Extract plausible glucose values from a context window

        A number token captured by an earlier pattern is not emitted again
        by a later one; equal values at other positions are all kept.

        Args:
            context_text: Text searched for values
            line_number: 1-based anchor line number
            anchor_line: Untrimmed anchor line, used as the display context

        Returns:
            Values in pattern order, then match order
        """
        values: List[ExtractedValue] = []
        claimed: Set[Tuple[int, int]] = set()
        context = anchor_line.strip()

        for pattern in self.patterns:
            for match in pattern.regex.finditer(context_text):
                span = match.span(1)
                if span in claimed:
                    continue

                try:
                    value = float(match.group(1))
                except (TypeError, ValueError):
                    logger.debug(f"Skipping unparsable capture {match.group(1)!r} on line {line_number}")
                    continue
                if not math.isfinite(value):
                    logger.debug(f"Skipping non-finite capture on line {line_number}")
                    continue

                matched_text = match.group(0)
                unit = classify_unit(matched_text)
                claimed.add(span)

                if not self.is_plausible(value, unit):
                    logger.debug(f"Discarding out-of-range value {value} {unit.value} on line {line_number}")
                    continue

                values.append(ExtractedValue(
                    value=value,
                    unit=unit,
                    context=context,
                    line_number=line_number,
                    pattern=pattern.name,
                    matched_text=matched_text
                ))

        return values


# =============================================================================
# Result Aggregator
# =============================================================================

class ResultAggregator:
    """Collects extraction results and summarizes them per unit"""

    @staticmethod
    def median(values: Sequence[float]) -> float:
        # Upper-middle element for even counts, never an average
        ordered = sorted(values)
        return ordered[len(ordered) // 2]

    @classmethod
    def summarize(cls, values: Sequence[ExtractedValue]) -> Dict[str, UnitSummary]:
        groups: Dict[GlucoseUnit, List[float]] = {}
        for item in values:
            groups.setdefault(item.unit, []).append(item.value)

        summary = {}
        for unit, group in groups.items():
            summary[unit.value] = UnitSummary(
                unit=unit,
                count=len(group),
                min=min(group),
                max=max(group),
                mean=sum(group) / len(group),
                median=cls.median(group),
                values=list(group)
            )
        return summary

    def aggregate(
        self,
        values: Sequence[ExtractedValue]
    ) -> Tuple[List[ExtractedValue], Dict[str, UnitSummary]]:
        """Return results in scan order with a freshly computed summary"""
        ordered = list(values)
        return ordered, self.summarize(ordered)


# =============================================================================
# Main Extraction Pipeline
# =============================================================================

class GlucoseExtractionEngine:
    """
    Line scanner, value extractor and aggregator wired into one pass
    Holds no state between calls beyond its configuration
    """

    def __init__(
        self,
        mode: Union[ScanMode, str] = ScanMode.LENIENT,
        plausible_range: Optional[Tuple[float, float]] = None
    ):
        self.scanner = LineScanner(mode)
        self.extractor = ValueExtractor(plausible_range)
        self.aggregator = ResultAggregator()

    @property
    def mode(self) -> ScanMode:
        return self.scanner.mode

    def extract(self, text: str, include_summary: bool = True) -> ExtractionResult:
        """
        Extract glucose values from text

        Args:
            text: Decoded report or pasted text
            include_summary: Compute per-unit statistics

        Returns:
            Extraction result; empty for empty or glucose-free text
        """
        if not text or not text.strip():
            return ExtractionResult(mode=self.mode)

        lines = split_lines(text)
        windows = self.scanner.scan_lines(lines)

        found: List[ExtractedValue] = []
        for window in windows:
            found.extend(self.extractor.extract(
                window.context_text,
                window.line_number,
                lines[window.line_index]
            ))

        results, summary = self.aggregator.aggregate(found)
        logger.info(
            f"Scanned {len(lines)} lines in {self.mode.value} mode: "
            f"{len(windows)} flagged, {len(results)} values extracted"
        )

        return ExtractionResult(
            results=results,
            summary=summary if include_summary else {},
            mode=self.mode,
            lines_scanned=len(lines)
        )


# =============================================================================
# Public API
# =============================================================================

def extract_glucose_values(
    text: str,
    mode: Union[ScanMode, str] = ScanMode.LENIENT,
    include_summary: bool = True,
    plausible_range: Optional[Tuple[float, float]] = None
) -> ExtractionResult:
    """
    Main entry point for glucose value extraction

    Args:
        text: Text to extract from
        mode: "strict" (report pathway) or "lenient" (pasted text pathway)
        include_summary: Compute per-unit statistics
        plausible_range: (low, high) in mg/dL, defaults to 30-500

    Returns:
        Ordered results and per-unit summary
    """
    engine = GlucoseExtractionEngine(mode, plausible_range)
    return engine.extract(text or "", include_summary=include_summary)
