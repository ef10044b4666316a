"""
AI Coach session store and processing pipeline.

Views only move forward: SETUP -> RECORDING -> PROCESSING -> RESULTS.
``reset`` returns to SETUP from anywhere, keeps the rehearsal material
(script blocks, bullet points, prompt mode, transcription settings, voice)
and discards everything produced by the recording. Processing started before
a reset never writes into the store afterwards.
"""

from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Iterable

from pitchperfect.core.delivery_metrics import (
    bullet_point_coverage,
    build_delivery_metrics,
    detect_content_coverage,
)
from pitchperfect.core.logging import get_logger, track_event
from pitchperfect.core.recording import RecordingCapture
from pitchperfect.core.schemas_coach import (
    TTS_VOICES,
    AnalysisResults,
    CoachState,
    CoachView,
    ContentAnalysis,
    FrameSample,
    ProcessingStep,
    PromptMode,
    RecordingSession,
    ScriptBlock,
    TranscriptionSettings,
)
from pitchperfect.core.schemas_services import TranscriptionResult
from pitchperfect.core.script_builder import generate_bullet_points
from pitchperfect.core.store import Store

logger = get_logger(__name__)


class CoachStateError(Exception):
    """Raised when a coach action is not valid for the current view."""


# =============================================================================
# Store
# =============================================================================


class CoachStore(Store[CoachState]):
    """State for one coach instance; at most one recording is active."""

    def __init__(self, initial: CoachState | None = None):
        super().__init__(initial or CoachState())
        self._capture = RecordingCapture()
        self._epoch = 0

    @property
    def epoch(self) -> int:
        """Incremented on every reset; work started earlier must not commit."""
        return self._epoch

    def _require_view(self, *views: CoachView) -> None:
        if self.state.current_view not in views:
            allowed = ", ".join(v.value for v in views)
            raise CoachStateError(
                f"Action requires view {allowed}, current view is {self.state.current_view.value}"
            )

    # -------------------------------------------------------------------------
    # Setup
    # -------------------------------------------------------------------------

    def set_script_blocks(self, blocks: Iterable[ScriptBlock]) -> None:
        self.set_state(script_blocks=tuple(blocks))

    def set_bullet_points(self, bullets: Iterable[str]) -> None:
        self.set_state(bullet_points=tuple(bullets))

    def generate_bullet_points_from_script(self) -> tuple[str, ...]:
        bullets = tuple(generate_bullet_points(self.state.script_blocks))
        self.set_state(bullet_points=bullets)
        return bullets

    def set_prompt_mode(self, mode: PromptMode) -> None:
        self._require_view(CoachView.SETUP)
        self.set_state(prompt_mode=mode)

    def set_transcription_settings(self, settings: TranscriptionSettings) -> None:
        self.set_state(transcription_settings=settings)

    def set_voice(self, voice_id: str) -> None:
        if voice_id not in {voice.id for voice in TTS_VOICES}:
            raise ValueError(f"Unknown voice: {voice_id}")
        self.set_state(selected_voice_id=voice_id)

    # -------------------------------------------------------------------------
    # Recording
    # -------------------------------------------------------------------------

    def start_recording(self) -> None:
        self._require_view(CoachView.SETUP)
        self._capture.start(self.state.prompt_mode)
        self.set_state(
            current_view=CoachView.RECORDING,
            is_recording=True,
            recording_duration=0,
            frame_data=(),
            recording=None,
            results=None,
            error=None,
        )

    def add_frame(self, sample: FrameSample) -> None:
        self.set_state(frame_data=self._capture.add_frame(sample))

    def tick(self) -> int:
        duration = self._capture.tick()
        self.set_state(recording_duration=duration)
        return duration

    def stop_recording(self, audio: bytes, video: bytes | None = None) -> RecordingSession:
        self._require_view(CoachView.RECORDING)
        session = self._capture.stop(audio, video)
        self.set_state(
            current_view=CoachView.PROCESSING,
            is_recording=False,
            recording=session,
            processing_step=None,
            processing_progress=0,
        )
        return session

    # -------------------------------------------------------------------------
    # Processing
    # -------------------------------------------------------------------------

    def set_processing(self, step: ProcessingStep, progress: int) -> None:
        self._require_view(CoachView.PROCESSING)
        self.set_state(processing_step=step, processing_progress=progress)

    def set_results(self, results: AnalysisResults) -> None:
        self._require_view(CoachView.PROCESSING)
        self.set_state(current_view=CoachView.RESULTS, results=results, processing_progress=100)

    def set_error(self, message: str) -> None:
        self.set_state(error=message)

    def reset(self) -> None:
        """Back to setup, keeping the rehearsal material. Idempotent."""
        self._epoch += 1
        self._capture.discard()
        current = self.state
        self.replace_state(
            CoachState(
                script_blocks=current.script_blocks,
                bullet_points=current.bullet_points,
                prompt_mode=current.prompt_mode,
                transcription_settings=current.transcription_settings,
                selected_voice_id=current.selected_voice_id,
            )
        )


# =============================================================================
# Pipeline
# =============================================================================

Transcriber = Callable[[bytes], Awaitable[TranscriptionResult]]
Analyzer = Callable[[str], Awaitable[ContentAnalysis]]
ResultSaver = Callable[..., Any]


class CoachPipeline:
    """
    Sequential processing of a sealed recording.

    transcribing (10 -> 40) -> analyzing (-> 70) -> aggregating (-> 100).
    A failed step records the error on the store and stops; no partial
    results are published.
    """

    def __init__(
        self,
        store: CoachStore,
        transcribe: Transcriber | None = None,
        analyze: Analyzer | None = None,
        save_results: ResultSaver | None = None,
        user_id: str | None = None,
        pitch_id: str | None = None,
    ):
        self.store = store
        self._transcribe = transcribe
        self._analyze = analyze
        self._save_results = save_results
        self.user_id = user_id
        self.pitch_id = pitch_id

    def _resolve_services(self) -> tuple[Transcriber, Analyzer]:
        transcribe = self._transcribe
        analyze = self._analyze
        if transcribe is None:
            from pitchperfect.services.transcription import transcribe_audio

            transcribe = transcribe_audio
        if analyze is None:
            from pitchperfect.services.content_analysis import analyze_pitch_content

            analyze = analyze_pitch_content
        return transcribe, analyze

    async def process(self) -> AnalysisResults | None:
        """
        Run the pipeline for the store's sealed recording.

        Returns:
            The results, or None when a step failed or the session was reset

        Raises:
            CoachStateError: If there is no sealed recording to process
        """
        state = self.store.state
        if state.current_view != CoachView.PROCESSING or state.recording is None:
            raise CoachStateError("No sealed recording to process")

        recording = state.recording
        epoch = self.store.epoch
        transcribe, analyze = self._resolve_services()

        def cancelled() -> bool:
            return self.store.epoch != epoch

        try:
            self.store.set_processing(ProcessingStep.TRANSCRIBING, 10)
            transcription = await transcribe(recording.audio)
            if cancelled():
                return None
            transcript = transcription.text.strip()
            if not transcript:
                raise ValueError("No speech detected in the recording")

            self.store.set_processing(ProcessingStep.ANALYZING, 40)
            content_analysis = await analyze(transcript)
            if cancelled():
                return None

            self.store.set_processing(ProcessingStep.AGGREGATING, 70)
            results = AnalysisResults(
                transcript=transcript,
                delivery_metrics=build_delivery_metrics(
                    transcript, recording.duration_seconds, recording.frames
                ),
                content_analysis=content_analysis,
                content_coverage=detect_content_coverage(transcript),
                bullet_coverage=tuple(
                    bullet_point_coverage(self.store.state.bullet_points, transcript)
                ),
                processed_at=datetime.now(timezone.utc),
                prompt_mode=recording.prompt_mode,
                duration_seconds=recording.duration_seconds,
            )
        except Exception as e:
            if cancelled():
                return None
            logger.warning(f"Coach processing failed: {e}")
            self.store.set_error(str(e) or "Processing failed")
            return None

        self.store.set_results(results)
        self._persist(results)
        return results

    def _persist(self, results: AnalysisResults) -> None:
        if not self.user_id:
            return
        save = self._save_results
        if save is None:
            from pitchperfect.db.coach_analysis import save_coach_analysis

            save = save_coach_analysis

        saved = save(self.user_id, results, pitch_id=self.pitch_id)
        if saved:
            track_event(
                logger,
                "coach_analysis_saved",
                user_id=self.user_id,
                score=results.content_analysis.score,
            )
