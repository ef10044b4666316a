"""Tests for the AI Coach store and processing pipeline."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from pitchperfect.core.coach import CoachPipeline, CoachStateError, CoachStore
from pitchperfect.core.schemas_coach import (
    CoachView,
    ContentAnalysis,
    FrameSample,
    ProcessingStep,
    PromptMode,
    ScriptBlock,
)
from pitchperfect.core.schemas_services import TranscriptionResult

TRANSCRIPT = "Um, founders struggle with the problem of pitching. Our solution is a coach."


def _analysis(score=7):
    return ContentAnalysis(
        score=score,
        strengths=["Clear problem"],
        recommendations=["Add traction numbers"],
    )


def _recorded_store(frames=2, seconds=30) -> CoachStore:
    store = CoachStore()
    store.set_script_blocks([ScriptBlock(title="Hook", content="Founders struggle to pitch.")])
    store.set_bullet_points(["Hook: Founders struggle to pitch"])
    store.start_recording()
    for i in range(frames):
        store.add_frame(
            FrameSample(timestamp=i, eye_contact=True, smiling=i == 0, head_deviation=1.0)
        )
    for _ in range(seconds):
        store.tick()
    store.stop_recording(b"audio-bytes")
    return store


class TestCoachStore:
    """Tests for view transitions and reset."""

    def test_views_move_forward(self):
        store = CoachStore()
        assert store.state.current_view == CoachView.SETUP

        store.start_recording()
        assert store.state.current_view == CoachView.RECORDING
        assert store.state.is_recording is True

        store.tick()
        session = store.stop_recording(b"audio")
        assert store.state.current_view == CoachView.PROCESSING
        assert store.state.recording == session
        assert session.duration_seconds == 1

    def test_cannot_start_twice(self):
        store = CoachStore()
        store.start_recording()

        with pytest.raises(CoachStateError):
            store.start_recording()

    def test_cannot_stop_from_setup(self):
        with pytest.raises(CoachStateError):
            CoachStore().stop_recording(b"audio")

    def test_prompt_mode_only_in_setup(self):
        store = CoachStore()
        store.set_prompt_mode(PromptMode.CUE_CARDS)
        store.start_recording()

        with pytest.raises(CoachStateError):
            store.set_prompt_mode(PromptMode.TELEPROMPTER)
        assert store.stop_recording(b"a").prompt_mode == PromptMode.CUE_CARDS

    def test_unknown_voice_rejected(self):
        store = CoachStore()

        store.set_voice("JBFqnCBsd6RMkjVDRZzb")
        assert store.state.selected_voice_id == "JBFqnCBsd6RMkjVDRZzb"
        with pytest.raises(ValueError):
            store.set_voice("nobody")

    def test_generate_bullets_from_script(self):
        store = CoachStore()
        store.set_script_blocks(
            [
                ScriptBlock(title="Hook", content="Pitching is hard. Really hard."),
                ScriptBlock(title="Ask", content="Fund us today."),
            ]
        )

        bullets = store.generate_bullet_points_from_script()

        assert bullets == ("Hook: Pitching is hard.", "Ask: Fund us today.")

    def test_reset_keeps_rehearsal_material(self):
        store = _recorded_store()
        store.set_voice("JBFqnCBsd6RMkjVDRZzb")
        epoch = store.epoch

        store.reset()
        store.reset()

        state = store.state
        assert state.current_view == CoachView.SETUP
        assert state.recording is None
        assert state.frame_data == ()
        assert state.recording_duration == 0
        assert state.script_blocks[0].title == "Hook"
        assert state.bullet_points == ("Hook: Founders struggle to pitch",)
        assert state.selected_voice_id == "JBFqnCBsd6RMkjVDRZzb"
        assert store.epoch == epoch + 2

    def test_reset_during_recording_allows_new_recording(self):
        store = CoachStore()
        store.start_recording()
        store.tick()

        store.reset()
        store.start_recording()

        assert store.state.recording_duration == 0


class TestCoachPipeline:
    """Tests for sequential processing."""

    @pytest.mark.asyncio
    async def test_success(self):
        store = _recorded_store()
        progress = []
        store.subscribe(
            lambda new, old: progress.append((new.processing_step, new.processing_progress))
            if new.processing_progress != old.processing_progress
            else None
        )
        transcribe = AsyncMock(return_value=TranscriptionResult(text=TRANSCRIPT))
        analyze = AsyncMock(return_value=_analysis())

        results = await CoachPipeline(store, transcribe=transcribe, analyze=analyze).process()

        assert store.state.current_view == CoachView.RESULTS
        assert store.state.results == results
        assert [p for _, p in progress] == [10, 40, 70, 100]
        assert progress[0][0] == ProcessingStep.TRANSCRIBING
        assert results.delivery_metrics.wpm == round(len(TRANSCRIPT.split()) / 0.5)
        assert results.delivery_metrics.filler_count == 1
        assert results.delivery_metrics.smile_percent == 50
        assert results.content_coverage.problem is True
        assert results.bullet_coverage[0].covered is True
        assert results.duration_seconds == 30
        transcribe.assert_awaited_once_with(b"audio-bytes")
        analyze.assert_awaited_once_with(TRANSCRIPT)

    @pytest.mark.asyncio
    async def test_requires_sealed_recording(self):
        with pytest.raises(CoachStateError):
            await CoachPipeline(CoachStore()).process()

    @pytest.mark.asyncio
    async def test_empty_transcript_is_an_error(self):
        store = _recorded_store()
        analyze = AsyncMock()

        results = await CoachPipeline(
            store,
            transcribe=AsyncMock(return_value=TranscriptionResult(text="   ")),
            analyze=analyze,
        ).process()

        assert results is None
        assert store.state.error == "No speech detected in the recording"
        assert store.state.current_view == CoachView.PROCESSING
        assert store.state.results is None
        analyze.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_analysis_failure_publishes_nothing(self):
        store = _recorded_store()

        results = await CoachPipeline(
            store,
            transcribe=AsyncMock(return_value=TranscriptionResult(text=TRANSCRIPT)),
            analyze=AsyncMock(side_effect=RuntimeError("analysis unavailable")),
        ).process()

        assert results is None
        assert store.state.error == "analysis unavailable"
        assert store.state.results is None

    @pytest.mark.asyncio
    async def test_reset_during_processing_drops_results(self):
        store = _recorded_store()
        release = asyncio.Event()

        async def slow_transcribe(audio):
            await release.wait()
            return TranscriptionResult(text=TRANSCRIPT)

        analyze = AsyncMock(return_value=_analysis())
        pending = asyncio.create_task(
            CoachPipeline(store, transcribe=slow_transcribe, analyze=analyze).process()
        )
        await asyncio.sleep(0)

        store.reset()
        release.set()

        assert await pending is None
        assert store.state.current_view == CoachView.SETUP
        assert store.state.results is None
        analyze.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_saves_for_signed_in_user(self):
        store = _recorded_store()
        save = MagicMock(return_value={"id": "analysis-1"})

        results = await CoachPipeline(
            store,
            transcribe=AsyncMock(return_value=TranscriptionResult(text=TRANSCRIPT)),
            analyze=AsyncMock(return_value=_analysis()),
            save_results=save,
            user_id="user-1",
            pitch_id="pitch-1",
        ).process()

        save.assert_called_once_with("user-1", results, pitch_id="pitch-1")

    @pytest.mark.asyncio
    async def test_anonymous_results_not_saved(self):
        store = _recorded_store()
        save = MagicMock()

        await CoachPipeline(
            store,
            transcribe=AsyncMock(return_value=TranscriptionResult(text=TRANSCRIPT)),
            analyze=AsyncMock(return_value=_analysis()),
            save_results=save,
        ).process()

        save.assert_not_called()
