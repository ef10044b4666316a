"""
Interview/sales simulator turn loop.

Status moves INACTIVE -> ACTIVE -> COMPLETED. User turns are appended as
soon as they are submitted, then the counterpart is asked for its reply with
the full conversation. Turn numbers strictly increase and the turn list is
append-only. A reply that arrives after ``end`` or ``cancel`` is dropped.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Protocol

from pitchperfect.core.logging import get_logger, log_with_context
from pitchperfect.core.schemas_simulator import (
    CounterpartReply,
    SimulationConfig,
    SimulationMode,
    SimulationStatus,
    SimulationTurn,
    SimulatorState,
    TurnAssessment,
    TurnRole,
)
from pitchperfect.core.store import Store

logger = get_logger(__name__)

COUNTERPART_NAMES = {
    SimulationMode.INTERVIEW: "interviewer",
    SimulationMode.SALES: "client",
}


class SimulatorStateError(Exception):
    """Raised when a simulator action is not valid for the current status."""


class Speaker(Protocol):
    def speak(self, text: str) -> Any: ...

    def stop(self) -> None: ...


TurnRequester = Callable[..., Awaitable[CounterpartReply]]
Scorer = Callable[[SimulationConfig], Awaitable[dict[str, Any]]]
Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SimulatorSession(Store[SimulatorState]):
    """One live simulation against a hosted counterpart."""

    def __init__(
        self,
        config: SimulationConfig,
        request_turn: TurnRequester | None = None,
        score: Scorer | None = None,
        speaker: Speaker | None = None,
        persist: bool = True,
        clock: Clock = _utcnow,
    ):
        super().__init__(SimulatorState())
        self.config = config
        self._request_turn = request_turn
        self._score = score
        self._speaker = speaker
        self._persist = persist
        self._clock = clock
        self._epoch = 0
        self._turn_counter = 0

    @classmethod
    def load(
        cls, mode: SimulationMode, simulation_id: str, user_id: str, **kwargs: Any
    ) -> "SimulatorSession":
        """
        Build a session for a stored simulation.

        Raises:
            SimulationNotFoundError: If the simulation does not exist for the user
        """
        from pitchperfect.db.simulations import get_simulation

        return cls(get_simulation(mode, simulation_id, user_id), **kwargs)

    @property
    def counterpart_name(self) -> str:
        return COUNTERPART_NAMES[self.config.mode]

    def _requester(self) -> TurnRequester:
        if self._request_turn is None:
            from pitchperfect.services.simulator_turns import request_counterpart_turn

            self._request_turn = request_counterpart_turn
        return self._request_turn

    def _scorer(self) -> Scorer:
        if self._score is None:
            from pitchperfect.services.simulator_turns import score_simulation

            self._score = score_simulation
        return self._score

    def _require_status(self, status: SimulationStatus) -> None:
        if self.state.status != status:
            raise SimulatorStateError(
                f"Simulation is {self.state.status.value}, expected {status.value}"
            )

    def _append_turn(
        self,
        role: TurnRole,
        content: str,
        intent: str | None = None,
        assessment: TurnAssessment | None = None,
    ) -> SimulationTurn:
        self._turn_counter += 1
        turn = SimulationTurn(
            id=str(uuid.uuid4()),
            turn_number=self._turn_counter,
            role=role,
            content=content,
            timestamp=self._clock(),
            intent=intent,
            assessment=assessment,
        )
        self.set_state(turns=self.state.turns + (turn,))

        if self._persist:
            from pitchperfect.db.simulations import insert_turn

            insert_turn(self.config.mode, self.config.id, turn)
        return turn

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self) -> SimulationTurn | None:
        """Activate the session and fetch the counterpart's opening line."""
        self._require_status(SimulationStatus.INACTIVE)
        self.set_state(status=SimulationStatus.ACTIVE, started_at=self._clock())

        if self._persist:
            from pitchperfect.db.simulations import mark_started

            mark_started(self.config.mode, self.config.id)

        log_with_context(
            logger,
            logging.INFO,
            "Simulation started",
            session_id=self.config.id,
            mode=self.config.mode.value,
        )
        return await self._fetch_counterpart_turn("", is_opening=True)

    async def submit_user_turn(self, text: str) -> SimulationTurn | None:
        """
        Append the user's turn and fetch the counterpart's reply.

        Returns:
            The counterpart turn, or None if the reply failed or was dropped

        Raises:
            ValueError: If ``text`` is empty
            SimulatorStateError: If the session is not active or a reply is pending
        """
        message = text.strip()
        if not message:
            raise ValueError("Response text is required")
        self._require_status(SimulationStatus.ACTIVE)
        if self.state.is_processing:
            raise SimulatorStateError(f"Waiting for the {self.counterpart_name} to respond")

        self._append_turn(TurnRole.USER, message)
        return await self._fetch_counterpart_turn(message)

    async def retry_counterpart_turn(self) -> SimulationTurn | None:
        """Ask again after a failed counterpart reply."""
        self._require_status(SimulationStatus.ACTIVE)
        if self.state.is_processing or self.state.error is None:
            return None

        user_turns = [t for t in self.state.turns if t.role == TurnRole.USER]
        if not user_turns:
            return await self._fetch_counterpart_turn("", is_opening=True)
        return await self._fetch_counterpart_turn(user_turns[-1].content)

    async def _fetch_counterpart_turn(
        self, user_text: str, is_opening: bool = False
    ) -> SimulationTurn | None:
        epoch = self._epoch
        question_number = self.state.question_number + 1
        self.set_state(is_processing=True, error=None, question_number=question_number)

        try:
            reply = await self._requester()(
                self.config,
                list(self.state.turns),
                user_text=user_text,
                is_opening=is_opening,
                question_number=question_number,
                current_stage=self.state.current_stage,
            )
        except Exception as e:
            if epoch != self._epoch:
                return None
            logger.warning(f"Counterpart turn failed for {self.config.id}: {e}")
            self.set_state(
                is_processing=False,
                error=f"Failed to get {self.counterpart_name} response",
            )
            return None

        if epoch != self._epoch or self.state.status != SimulationStatus.ACTIVE:
            logger.info(f"Dropping {self.counterpart_name} reply received after the session ended")
            return None

        turn = self._append_turn(
            TurnRole.COUNTERPART,
            reply.message,
            intent=reply.intent,
            assessment=reply.assessment,
        )
        self.set_state(
            is_processing=False,
            final_question_hint=reply.final_question_hint,
            current_stage=reply.stage or self.state.current_stage,
        )
        if self._speaker is not None:
            self._speaker.speak(reply.message)
        return turn

    async def end(self) -> dict[str, Any] | None:
        """
        Complete the session, persist its duration and score it.

        Returns:
            The scoring summary, or None if scoring failed

        Raises:
            SimulatorStateError: If the session is not active
        """
        self._require_status(SimulationStatus.ACTIVE)
        self._epoch += 1
        if self._speaker is not None:
            self._speaker.stop()

        ended_at = self._clock()
        started_at = self.state.started_at or ended_at
        duration = max(0, round((ended_at - started_at).total_seconds()))
        self.set_state(
            status=SimulationStatus.COMPLETED,
            is_processing=False,
            ended_at=ended_at,
            duration_seconds=duration,
        )

        if self._persist:
            from pitchperfect.db.simulations import mark_completed

            mark_completed(self.config.mode, self.config.id, duration)

        try:
            summary = await self._scorer()(self.config)
        except Exception as e:
            logger.warning(f"Scoring failed for {self.config.id}: {e}")
            self.set_state(error="Failed to analyze the session")
            return None

        self.set_state(summary=summary)
        return summary

    def cancel(self) -> None:
        """Leave the session: stop speech and ignore any pending reply."""
        self._epoch += 1
        if self._speaker is not None:
            self._speaker.stop()
        if self.state.status == SimulationStatus.ACTIVE:
            self.set_state(status=SimulationStatus.COMPLETED, is_processing=False)
