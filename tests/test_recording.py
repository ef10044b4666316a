"""Tests for recording capture."""

import pytest

from pitchperfect.core.recording import RecordingCapture, RecordingStateError
from pitchperfect.core.schemas_coach import FrameSample, PromptMode


def _frame(t: float) -> FrameSample:
    return FrameSample(timestamp=t, eye_contact=True, smiling=False, head_deviation=2.0)


class TestRecordingCapture:
    def test_start_tick_stop(self):
        capture = RecordingCapture()
        capture.start(PromptMode.CUE_CARDS)
        capture.add_frame(_frame(0.5))
        capture.add_frame(_frame(1.0))
        capture.tick()
        capture.tick()

        session = capture.stop(b"audio", b"video")

        assert session.duration_seconds == 2
        assert len(session.frames) == 2
        assert session.prompt_mode == PromptMode.CUE_CARDS
        assert session.video == b"video"
        assert capture.is_active is False

    def test_frames_are_append_only(self):
        capture = RecordingCapture()
        capture.start()
        first = capture.add_frame(_frame(0.1))
        second = capture.add_frame(_frame(0.2))

        assert first == (_frame(0.1),)
        assert second[0] is first[0]
        assert len(second) == 2

    def test_double_start_rejected(self):
        capture = RecordingCapture()
        capture.start()

        with pytest.raises(RecordingStateError):
            capture.start()

    def test_samples_outside_recording_rejected(self):
        capture = RecordingCapture()

        with pytest.raises(RecordingStateError):
            capture.add_frame(_frame(0))
        with pytest.raises(RecordingStateError):
            capture.tick()
        with pytest.raises(RecordingStateError):
            capture.stop(b"")

    def test_stopped_session_is_sealed(self):
        capture = RecordingCapture()
        capture.start()
        session = capture.stop(b"audio")

        with pytest.raises(RecordingStateError):
            capture.add_frame(_frame(1))
        assert session.frames == ()

    def test_discard_releases_buffers(self):
        capture = RecordingCapture()
        capture.start()
        capture.add_frame(_frame(0))
        capture.tick()

        capture.discard()
        capture.discard()

        assert capture.is_active is False
        assert capture.frames == ()
        assert capture.duration_seconds == 0

    def test_restart_after_stop_starts_clean(self):
        capture = RecordingCapture()
        capture.start()
        capture.add_frame(_frame(0))
        capture.tick()
        capture.stop(b"a")

        capture.start()

        assert capture.frames == ()
        assert capture.duration_seconds == 0
