"""Tests for G-code validation."""

import pytest

from lasercam.gcode.validate import PlatformEnvelope, parse_words, validate_program


@pytest.fixture
def small_envelope() -> PlatformEnvelope:
    return PlatformEnvelope(
        x_min=0.0, x_max=100.0,
        y_min=0.0, y_max=50.0,
        overscan_margin=5.0,
        max_scan_power=100.0,
        max_spindle=1000,
        max_feed=5000.0,
    )


class TestParseWords:
    def test_words_and_comment(self):
        words = parse_words("G02 X1.5 Y-2 I.5 J0 ; X999")
        assert words == {"G": 2.0, "X": 1.5, "Y": -2.0, "I": 0.5, "J": 0.0}

    def test_comment_only_line(self):
        assert parse_words("; Layer: Cut") == {}

    def test_blank_line(self):
        assert parse_words("") == {}


class TestValidation:
    def test_valid_program_passes(self, small_envelope):
        result = validate_program(["G0 X10 Y10", "G1 X20 Y10 S50 F1000"], small_envelope)
        assert result.is_ok

    def test_x_out_of_range(self, small_envelope):
        result = validate_program(["G1 X150 Y10 S50"], small_envelope)
        assert result.has_errors

    def test_y_out_of_range(self, small_envelope):
        result = validate_program(["G1 X10 Y80 S50"], small_envelope)
        assert result.has_errors

    def test_overscan_margin_is_warning(self, small_envelope):
        result = validate_program(["G0 X-3 Y10", "G1 X20 S50"], small_envelope)
        assert result.has_warnings
        assert not result.has_errors

    def test_feed_too_high_is_warning(self, small_envelope):
        result = validate_program(["G1 X10 Y10 S50 F9000"], small_envelope)
        assert result.has_warnings
        assert not result.has_errors

    def test_laser_power_too_high_is_warning(self, small_envelope):
        result = validate_program(["M3 S1500", "G1 X10 Y10 F1000"], small_envelope)
        assert result.has_warnings
        assert any("S1500" in i.message for i in result.issues)

    def test_scan_power_too_high_is_warning(self, small_envelope):
        result = validate_program(["G1 X10 Y10 S150"], small_envelope)
        assert result.has_warnings

    def test_no_cutting_moves_is_warning(self, small_envelope):
        result = validate_program(["G0 X0 Y0", "M2"], small_envelope)
        assert result.has_warnings
        assert not result.has_errors

    def test_comments_are_ignored(self, small_envelope):
        lines = ["; Content bounds: X[999, 1000]", "G1 X10 Y10 S50"]
        assert validate_program(lines, small_envelope).is_ok

    def test_issue_carries_line_number(self, small_envelope):
        result = validate_program(["G0 X0 Y0", "G1 X500 Y0 S10"], small_envelope)
        errors = [i for i in result.issues if i.severity == "error"]
        assert errors[0].line_number == 2
