"""
Unit tests for extraction module
"""

import pytest
from app.modules.extraction import (
    GlucoseExtractionEngine,
    LineScanner,
    ValueExtractor,
    ResultAggregator,
    extract_glucose_values,
    split_lines
)
from app.schemas import ExtractedValue, GlucoseUnit, ScanMode


def make_value(value, unit=GlucoseUnit.MG_DL, line_number=1):
    return ExtractedValue(
        value=value,
        unit=unit,
        context="FBS",
        line_number=line_number,
        pattern="mg_dl_suffix",
        matched_text=f"{value} {unit.value}"
    )


class TestLineScanner:
    """Test line flagging and context windows"""

    def test_strict_ignores_bare_glucose_mention(self):
        """Test strict mode only flags marker phrases"""
        scanner = LineScanner(ScanMode.STRICT)

        windows = scanner.scan("Random glucose 140 mg/dL\nFBS 95 mg/dL")

        assert [w.line_index for w in windows] == [1]

    def test_lenient_flags_bare_glucose_mention(self):
        """Test lenient mode also flags any glucose mention"""
        scanner = LineScanner(ScanMode.LENIENT)

        windows = scanner.scan("Random GLUCOSE 140 mg/dL\nFBS 95 mg/dL\nHemoglobin 14 g/dL")

        assert [w.line_number for w in windows] == [1, 2]

    def test_strict_window_spans_two_lines_each_side(self):
        """Test strict window is clipped to the text bounds"""
        lines = ["a", "b", "FBS", "d", "e", "f"]
        scanner = LineScanner(ScanMode.STRICT)

        windows = scanner.scan("\n".join(lines))

        assert len(windows) == 1
        assert windows[0].context_text == "a b FBS d e"

    def test_strict_window_at_start_of_text(self):
        """Test window clipping at the first line"""
        scanner = LineScanner(ScanMode.STRICT)

        windows = scanner.scan("fasting blood sugar\nx\ny\nz")

        assert windows[0].context_text == "fasting blood sugar x y"

    def test_lenient_window_is_single_line(self):
        """Test lenient window is the flagged line alone"""
        scanner = LineScanner(ScanMode.LENIENT)

        windows = scanner.scan("before\nFPG 101 mg/dL\nafter")

        assert windows[0].context_text == "FPG 101 mg/dL"

    def test_overlapping_windows_are_not_merged(self):
        """Test one window per flagged line even when windows overlap"""
        scanner = LineScanner(ScanMode.STRICT)

        windows = scanner.scan("FBS\nFPG\nGlucose, Fasting")

        assert [w.line_index for w in windows] == [0, 1, 2]

    @pytest.mark.parametrize("text", ["", "   ", "\n\n\t\n"])
    def test_blank_text_yields_no_windows(self, text):
        """Test empty or whitespace-only text"""
        assert LineScanner(ScanMode.STRICT).scan(text) == []

    def test_mode_accepts_string(self):
        """Test scanner mode given by name"""
        assert LineScanner("strict").mode is ScanMode.STRICT

    def test_split_lines_handles_all_line_breaks(self):
        """Test CRLF, CR and LF all separate lines"""
        assert split_lines("a\r\nb\rc\nd") == ["a", "b", "c", "d"]


class TestValueExtractor:
    """Test numeric pattern application"""

    def test_suffix_pattern_wins_shared_number(self):
        """Test a number hit by two patterns is emitted once"""
        extractor = ValueExtractor()

        values = extractor.extract("FBS: 95 mg/dL", 1, "FBS: 95 mg/dL")

        assert len(values) == 1
        assert values[0].pattern == "mg_dl_suffix"
        assert values[0].unit == GlucoseUnit.MG_DL

    def test_mmol_suffix_classifies_mmol(self):
        """Test mmol/L classification from the matched text"""
        extractor = ValueExtractor()

        values = extractor.extract("Glucose: 5.5 mmol/L", 1, "Glucose: 5.5 mmol/L")

        assert len(values) == 1
        assert values[0].value == 5.5
        assert values[0].unit == GlucoseUnit.MMOL_L

    def test_label_without_unit_defaults_to_mg_dl(self):
        """Test label patterns default to mg/dL"""
        extractor = ValueExtractor()

        values = extractor.extract("glucose 150", 3, "glucose 150")

        assert values[0].unit == GlucoseUnit.MG_DL
        assert values[0].pattern == "glucose_label"
        assert values[0].line_number == 3

    def test_repeated_value_at_different_positions_kept(self):
        """Test equal values at different positions are not deduplicated"""
        extractor = ValueExtractor()

        values = extractor.extract("FBS: 95 mg/dL, repeat 95 mg/dL", 1, "x")

        assert [v.value for v in values] == [95.0, 95.0]

    def test_pattern_order_then_match_order(self):
        """Test results follow pattern order before match order"""
        extractor = ValueExtractor()

        values = extractor.extract("HbA1c: 45 then FBS 99 mg/dL and 101 mg/dL", 1, "x")

        assert [(v.value, v.pattern) for v in values] == [
            (99.0, "mg_dl_suffix"),
            (101.0, "mg_dl_suffix"),
            (45.0, "hba1c_label"),
        ]

    @pytest.mark.parametrize("text,expected", [
        ("FBS: 30 mg/dL", [30.0]),
        ("FBS: 500 mg/dL", [500.0]),
        ("FBS: 29.9 mg/dL", []),
        ("FBS: 500.1 mg/dL", []),
    ])
    def test_range_bounds_are_inclusive(self, text, expected):
        """Test the plausibility filter bounds"""
        values = ValueExtractor().extract(text, 1, text)

        assert [v.value for v in values] == expected

    def test_mmol_range_checked_in_mg_dl(self):
        """Test mmol/L values are range-checked after conversion"""
        extractor = ValueExtractor()

        assert extractor.extract("glucose 30 mmol/L", 1, "x") == []
        assert [v.value for v in extractor.extract("glucose 1.5 mmol/L", 1, "x")] == []
        assert [v.value for v in extractor.extract("glucose 2.0 mmol/L", 1, "x")] == [2.0]

    def test_hba1c_percentage_filtered(self):
        """Test HbA1c percentages fall below the range"""
        assert ValueExtractor().extract("HbA1c: 6.5", 1, "HbA1c: 6.5") == []

    def test_custom_range(self):
        """Test a configured plausibility range"""
        extractor = ValueExtractor(plausible_range=(50, 300))

        values = extractor.extract("FBS 40 mg/dL, FBS 250 mg/dL", 1, "x")

        assert [v.value for v in values] == [250.0]

    def test_context_is_trimmed_anchor_line(self):
        """Test display context comes from the anchor line, not the window"""
        values = ValueExtractor().extract("a  FBS  b 95 mg/dL", 2, "   FBS   ")

        assert values[0].context == "FBS"


class TestResultAggregator:
    """Test result collection and summaries"""

    def test_median_uses_upper_middle_element(self):
        """Test even-length median picks index n // 2"""
        values = [make_value(v) for v in (110, 70, 100, 90)]

        _, summary = ResultAggregator().aggregate(values)

        assert summary["mg/dL"].median == 100

    def test_odd_length_median(self):
        """Test odd-length median"""
        assert ResultAggregator.median([5, 1, 3]) == 3

    def test_summary_grouped_by_unit(self):
        """Test per-unit statistics"""
        values = [
            make_value(90),
            make_value(5.0, GlucoseUnit.MMOL_L),
            make_value(110),
        ]

        ordered, summary = ResultAggregator().aggregate(values)

        assert ordered == values
        assert set(summary) == {"mg/dL", "mmol/L"}
        mg = summary["mg/dL"]
        assert (mg.count, mg.min, mg.max, mg.mean) == (2, 90, 110, 100)
        assert mg.values == [90, 110]
        assert summary["mmol/L"].count == 1

    def test_empty_input(self):
        """Test empty input yields no groups"""
        assert ResultAggregator().aggregate([]) == ([], {})


class TestGlucoseExtractionEngine:
    """Test the complete extraction pass"""

    def test_single_fbs_line(self):
        """Test a single FBS mention with unit"""
        result = extract_glucose_values("FBS: 95 mg/dL")

        assert len(result.results) == 1
        value = result.results[0]
        assert value.value == 95
        assert value.unit == GlucoseUnit.MG_DL
        assert value.context == "FBS: 95 mg/dL"
        assert value.line == 1

    def test_mmol_value_in_lenient_mode(self):
        """Test a labelled mmol/L value"""
        result = extract_glucose_values("Glucose: 5.5 mmol/L\nsome unrelated line", mode="lenient")

        assert len(result.results) == 1
        assert result.results[0].value == 5.5
        assert result.results[0].unit == GlucoseUnit.MMOL_L
        assert result.results[0].line_number == 1

    def test_strict_window_out_of_range_value_discarded(self):
        """Test the range filter on a value reached through the window"""
        result = extract_glucose_values("FASTING PLASMA GLUCOSE\n\n720 mg/dL", mode=ScanMode.STRICT)

        assert result.results == []

    def test_strict_window_reaches_following_lines(self):
        """Test a value two lines below the marker"""
        result = extract_glucose_values("FASTING PLASMA GLUCOSE\n\n120 mg/dL", mode=ScanMode.STRICT)

        assert len(result.results) == 1
        assert result.results[0].value == 120
        assert result.results[0].line_number == 1
        assert result.results[0].context == "FASTING PLASMA GLUCOSE"

    def test_results_in_ascending_line_order(self):
        """Test two mentions on different lines"""
        text = "FBS: 95 mg/dL\nnotes\nmore notes\neven more\nFBS: 110 mg/dL"

        result = extract_glucose_values(text, mode="lenient")

        assert [(v.value, v.line_number) for v in result.results] == [(95, 1), (110, 5)]

    def test_overlapping_strict_windows_repeat_values(self):
        """Test values reached from two flagged lines are kept for both"""
        result = extract_glucose_values("Fasting glucose\nFBS 102 mg/dL", mode="strict")

        assert [(v.value, v.line_number) for v in result.results] == [(102, 1), (102, 2)]

    def test_empty_text(self):
        """Test empty input"""
        result = extract_glucose_values("")

        assert result.results == []
        assert result.summary == {}

    def test_no_glucose_mention_yields_nothing(self):
        """Test text without markers or glucose mentions"""
        result = extract_glucose_values(
            "Hemoglobin 14 g/dL\nCholesterol 180 mg/dL",
            mode="lenient"
        )

        assert result.results == []

    def test_modes_differ_on_report_layout(self, sample_report_text):
        """Test strict and lenient modes on the same report"""
        strict = extract_glucose_values(sample_report_text, mode="strict")
        lenient = extract_glucose_values(sample_report_text, mode="lenient")

        assert [v.value for v in strict.results] == [98, 100]
        assert all(v.line_number == 4 for v in strict.results)
        assert lenient.results == []

    def test_extraction_is_deterministic(self, sample_report_text):
        """Test identical input gives identical output"""
        engine = GlucoseExtractionEngine(ScanMode.STRICT)

        assert engine.extract(sample_report_text) == engine.extract(sample_report_text)

    def test_summary_can_be_skipped(self):
        """Test summary omission"""
        result = extract_glucose_values("FBS 95 mg/dL", include_summary=False)

        assert len(result.results) == 1
        assert result.summary == {}

    def test_summary_included(self):
        """Test summary over extracted values"""
        text = "FBS 90 mg/dL\nglucose 5.0 mmol/L\nFBS 110 mg/dL"

        result = extract_glucose_values(text)

        assert result.summary["mg/dL"].count == 2
        assert result.summary["mg/dL"].median == 110
        assert result.summary["mmol/L"].values == [5.0]
        assert result.lines_scanned == 3

    def test_invariants_hold_on_noisy_text(self):
        """Test range and unit invariants over mixed content"""
        text = (
            "Glucose 12 mg/dL 45 mg/dL 999 mg/dL\n"
            "FBS: 7.2 mmol/L, FBS: 88\n"
            "glucose, fasting 3.1 mmol/L 600 mg/dL\n"
        )

        result = extract_glucose_values(text)

        assert result.results
        for value in result.results:
            assert value.unit in (GlucoseUnit.MG_DL, GlucoseUnit.MMOL_L)
            assert (value.unit == GlucoseUnit.MMOL_L) == ("mmol" in value.matched_text.lower())
            if value.unit == GlucoseUnit.MG_DL:
                assert 30 <= value.value <= 500

    def test_never_raises_on_odd_input(self):
        """Test odd input returns results rather than raising"""
        result = extract_glucose_values("FBS: .\nglucose ::: \x00 1e999 mg/dL\nFBS 9" * 3)

        assert isinstance(result.results, list)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
