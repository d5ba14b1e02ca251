"""Tests for the G-code emission state machine and line formatting."""

from lasercam.core.toolpath.base import MotionRequest, MoveType
from lasercam.gcode.emitter import GCodeEmitter
from lasercam.gcode.gcode_writer import arc, comment, fmt, linear, rapid


class TestFormatting:
    def test_strips_trailing_zeros(self):
        assert fmt(100.0) == "100"
        assert fmt(12.5, 3) == "12.5"

    def test_never_negative_zero(self):
        assert fmt(-0.0001, 2) == "0"
        assert fmt(-0.0) == "0"

    def test_negative_values_keep_sign(self):
        assert fmt(-1.25, 2) == "-1.25"

    def test_rapid_and_linear(self):
        assert rapid(1.0, 2.5) == "G0 X1 Y2.5"
        assert linear(3.0, None, f=1000) == "G1 X3 F1000"

    def test_arc_words(self):
        assert arc(True, 60, 50, -10, 0, f=1000) == "G02 X60 Y50 I-10 J0 F1000"
        assert arc(False, 1, 2, 3, 4).startswith("G03 ")

    def test_comment(self):
        assert comment("Layer: Cut") == "; Layer: Cut"
        assert comment("two\nlines") == "; two lines"


class TestGCodeEmitter:
    def test_first_move_writes_axes_and_feed(self):
        e = GCodeEmitter(decimals=2)
        e.go_to(1, 2, 0, 6000, force_flush=True)
        assert e.lines == ["G0 X1 Y2 F6000"]

    def test_equal_state_requests_merge(self):
        e = GCodeEmitter(decimals=2)
        e.go_to(1, 0, 50, 1000)
        e.go_to(2, None, 50, 1000)
        e.go_to(3, None, 50, 1000, force_flush=True)
        assert e.lines == ["G1 X3 Y0 S50 F1000"]

    def test_power_change_flushes_pending_move(self):
        e = GCodeEmitter(decimals=2)
        e.go_to(0, 0, 0, 100, force_flush=True)
        e.go_to(1, None, 50, 100)
        e.go_to(2, None, 0, 100)
        e.flush()
        assert e.lines == ["G0 X0 Y0 F100", "G1 X1 S50", "G0 X2"]

    def test_feed_only_written_when_changed(self):
        e = GCodeEmitter(decimals=2)
        e.go_to(0, 0, 0, 6000, force_flush=True)
        e.go_to(5, None, 20, 1000)
        e.go_to(6, None, 30, 1000)
        e.flush()
        assert e.lines[1] == "G1 X5 S20 F1000"
        assert e.lines[2] == "G1 X6 S30"

    def test_empty_flush_is_suppressed(self):
        e = GCodeEmitter(decimals=2)
        e.go_to(5, 5, 0, 100, force_flush=True)
        e.go_to(5, 5, 0, 100, force_flush=True)
        assert len(e.lines) == 1
        assert e.flush() is None

    def test_rounding_precision(self):
        e = GCodeEmitter(decimals=3)
        e.go_to(1.23456, -0.0001, 10, 500, force_flush=True)
        assert e.lines == ["G1 X1.235 Y0 S10 F500"]

    def test_submit_motion_requests(self):
        e = GCodeEmitter()
        e.submit_all([
            MotionRequest(0.0, 1.0, 0, 6000, force_flush=True),
            MotionRequest(4.0, None, 100, 1000),
            MotionRequest(8.0, None, 0, 6000, force_flush=True),
        ])
        assert e.lines == ["G0 X0 Y1 F6000", "G1 X4 S100 F1000", "G0 X8 F6000"]

    def test_emitters_do_not_share_state(self):
        a = GCodeEmitter()
        a.go_to(1, 1, 0, 100, force_flush=True)
        b = GCodeEmitter()
        b.go_to(1, 1, 0, 100, force_flush=True)
        assert a.lines == b.lines == ["G0 X1 Y1 F100"]


class TestMotionRequest:
    def test_move_type_follows_power(self):
        assert MotionRequest(0, 0, 0, 100).move_type is MoveType.TRAVEL
        assert MotionRequest(0, 0, 5, 100).move_type is MoveType.BURN

    def test_move_type_picks_motion_word(self):
        assert MoveType.for_power(0) is MoveType.TRAVEL
        assert MoveType.for_power(0.5) is MoveType.BURN
        e = GCodeEmitter()
        for req in (MotionRequest(1, 1, 0, 100), MotionRequest(2, 1, 0.5, 100)):
            e.submit(req)
            e.flush()
            word = "G0" if req.move_type is MoveType.TRAVEL else "G1"
            assert e.lines[-1].startswith(word + " ")
