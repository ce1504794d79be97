"""Session state machine driving a learner through a quiz.

A session moves Intro -> InSection(section, question) -> Results. Answers
are kept in memory only; results are recomputed from them on demand and
handed to the completion callback once per attempt.
"""

import asyncio
import inspect
import logging
import math
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable, Mapping, Union

from poker_quiz.engine.errors import (
    InvalidModeError,
    InvalidTransitionError,
    UnknownQuestionError,
)
from poker_quiz.engine.loader import load_quiz_definition
from poker_quiz.engine.scorer import calculate_results
from poker_quiz.engine.timer import CountdownTimer
from poker_quiz.models.quiz import (
    BaseQuestion,
    QuizDefinition,
    QuizMode,
    QuizResults,
    QuizSection,
)

logger = logging.getLogger(__name__)

INTRO = "intro"
DEFAULT_TIMED_MINUTES = 20
DEFAULT_SPEED_MINUTES = 10

CompletionCallback = Callable[[QuizResults], Union[None, Awaitable[None]]]


class SessionPhase(str, Enum):
    """Externally visible phase of a session."""

    INTRO = "intro"
    IN_SECTION = "in_section"
    RESULTS = "results"


@dataclass
class SessionState:
    """Mutable state of one quiz attempt."""

    phase: SessionPhase = SessionPhase.INTRO
    current_section_id: str = INTRO
    current_question_index: int = 0
    mode: QuizMode | None = None
    remaining_seconds: int | None = None
    results_visible: bool = False
    start_timestamp: float | None = None
    elapsed_seconds: int | None = None
    answers: dict[str, Any] = field(default_factory=dict)
    show_explanation: bool = False
    already_notified: bool = False


def create_initial_state() -> SessionState:
    """
    Create the state a session starts in and returns to on restart.

    Returns:
        SessionState in the intro phase with no answers and no timer
    """
    return SessionState()


# Events accepted by QuizSession.dispatch


@dataclass(frozen=True)
class StartQuiz:
    mode: QuizMode | str


@dataclass(frozen=True)
class Answer:
    question_id: str
    value: Any


@dataclass(frozen=True)
class Next:
    pass


@dataclass(frozen=True)
class Previous:
    pass


@dataclass(frozen=True)
class ToggleExplanation:
    pass


@dataclass(frozen=True)
class Tick:
    seconds: int = 1


@dataclass(frozen=True)
class Restart:
    pass


QuizEvent = Union[StartQuiz, Answer, Next, Previous, ToggleExplanation, Tick, Restart]


def _event_priority(event: QuizEvent) -> int:
    # Learner actions land before timer ticks queued in the same batch
    return 1 if isinstance(event, Tick) else 0


def parse_mode(mode: QuizMode | str) -> QuizMode:
    """
    Resolve a mode name.

    Raises:
        InvalidModeError: For anything other than standard, timed or speed
    """
    if isinstance(mode, QuizMode):
        return mode
    try:
        return QuizMode(str(mode).strip().lower())
    except ValueError:
        valid = ", ".join(m.value for m in QuizMode)
        raise InvalidModeError(f"Unknown quiz mode {mode!r}; expected one of {valid}") from None


class QuizSession:
    """Drives one learner through one quiz definition.

    Each session owns its own SessionState, so any number of sessions can
    run side by side. All transitions are synchronous; the only outward
    effect is ``on_complete``, called at most once per attempt.
    """

    def __init__(
        self,
        quiz: QuizDefinition | Mapping[str, Any],
        on_complete: CompletionCallback | None = None,
        clock: Callable[[], float] = time.time,
        default_timed_minutes: float = DEFAULT_TIMED_MINUTES,
        default_speed_minutes: float = DEFAULT_SPEED_MINUTES,
    ):
        self.quiz = load_quiz_definition(quiz)
        self.on_complete = on_complete
        self.default_timed_minutes = default_timed_minutes
        self.default_speed_minutes = default_speed_minutes
        self._clock = clock
        self._timer: CountdownTimer | None = None
        self._pending_tasks: set[asyncio.Task] = set()
        self.state = create_initial_state()

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def phase(self) -> SessionPhase:
        return self.state.phase

    @property
    def current_section(self) -> QuizSection | None:
        if self.state.phase is not SessionPhase.IN_SECTION:
            return None
        return self.quiz.get_section(self.state.current_section_id)

    @property
    def current_question(self) -> BaseQuestion | None:
        section = self.current_section
        if section is None:
            return None
        return section.questions[self.state.current_question_index]

    @property
    def section_number(self) -> int:
        """1-based position of the current section, 0 outside a section."""
        section = self.current_section
        return self.quiz.section_index(section.id) + 1 if section else 0

    @property
    def is_last_question(self) -> bool:
        section = self.current_section
        return section is not None and (
            self.state.current_question_index >= section.question_count - 1
        )

    @property
    def is_last_section(self) -> bool:
        return self.section_number == len(self.quiz.sections)

    @property
    def can_advance(self) -> bool:
        """Whether the current question has an answer; the UI gates Next on it."""
        question = self.current_question
        return question is not None and self.state.answers.get(question.id) is not None

    @property
    def can_go_back(self) -> bool:
        return (
            self.state.phase is SessionPhase.IN_SECTION
            and self.state.current_question_index > 0
        )

    @property
    def hints_visible(self) -> bool:
        return self.state.mode is not None and self.state.mode.hints_visible

    @property
    def current_explanation(self) -> str | None:
        """Explanation for the current question, if the learner asked for it."""
        question = self.current_question
        if question is None or not (self.hints_visible and self.state.show_explanation):
            return None
        return question.explanation

    @property
    def answered_count(self) -> int:
        return sum(1 for value in self.state.answers.values() if value is not None)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start_quiz(self, mode: QuizMode | str) -> None:
        """
        Leave the intro and open the first question of the first section.

        Args:
            mode: standard, timed or speed

        Raises:
            InvalidModeError: If the mode is not recognised
            InvalidTransitionError: If the quiz is already under way
        """
        quiz_mode = parse_mode(mode)
        self._require(SessionPhase.INTRO, "start the quiz")

        state = self.state
        state.mode = quiz_mode
        state.start_timestamp = self._clock()
        state.phase = SessionPhase.IN_SECTION
        state.current_section_id = self.quiz.sections[0].id
        state.current_question_index = 0
        state.show_explanation = False

        if quiz_mode.is_timed:
            seconds = self._countdown_seconds(quiz_mode)
            self._timer = CountdownTimer(seconds, clock=self._clock)
            state.remaining_seconds = seconds
        else:
            self._timer = None
            state.remaining_seconds = None

        logger.info(
            "Started quiz %s in %s mode (time limit: %s)",
            self.quiz.module_info.id,
            quiz_mode.value,
            f"{state.remaining_seconds}s" if state.remaining_seconds else "none",
        )

    def answer(self, question_id: str, value: Any) -> None:
        """
        Record an answer, replacing any earlier one. Does not move position.

        Raises:
            InvalidTransitionError: Outside a section
            UnknownQuestionError: If the question id is not in the quiz
        """
        self._require(SessionPhase.IN_SECTION, "answer a question")
        if self.quiz.get_question(question_id) is None:
            raise UnknownQuestionError(question_id)
        self.state.answers[question_id] = value
        logger.debug("Recorded answer for %s: %r", question_id, value)

    def next(self) -> SessionPhase:
        """
        Move to the next question, the next section, or the results.

        Returns:
            Phase after the move
        """
        self._require(SessionPhase.IN_SECTION, "move to the next question")
        state = self.state
        section = self.current_section
        state.show_explanation = False

        if state.current_question_index + 1 < section.question_count:
            state.current_question_index += 1
            return state.phase

        section_index = self.quiz.section_index(section.id)
        if section_index + 1 < len(self.quiz.sections):
            state.current_section_id = self.quiz.sections[section_index + 1].id
            state.current_question_index = 0
            logger.debug("Entered section %s", state.current_section_id)
            return state.phase

        self._enter_results("all sections completed")
        return state.phase

    def previous(self) -> bool:
        """
        Step back one question within the current section.

        Returns:
            True if the position moved; earlier sections are never reopened
        """
        self._require(SessionPhase.IN_SECTION, "move to the previous question")
        if self.state.current_question_index == 0:
            return False
        self.state.current_question_index -= 1
        self.state.show_explanation = False
        return True

    def toggle_explanation(self) -> bool:
        """Show or hide the hint; always hidden in speed mode. Returns visibility."""
        self._require(SessionPhase.IN_SECTION, "toggle the explanation")
        if not self.hints_visible:
            self.state.show_explanation = False
        else:
            self.state.show_explanation = not self.state.show_explanation
        return self.state.show_explanation

    def tick(self, seconds: int = 1) -> bool:
        """
        Advance the countdown by a fixed number of seconds.

        Returns:
            True if this tick expired the timer and ended the quiz
        """
        if self.state.phase is not SessionPhase.IN_SECTION or self._timer is None:
            return False
        self._sync_timer()
        return self._after_timer_step(self._timer.tick(seconds))

    def poll_timer(self) -> bool:
        """Advance the countdown by the wall-clock time since the last poll."""
        if self.state.phase is not SessionPhase.IN_SECTION or self._timer is None:
            return False
        self._sync_timer()
        return self._after_timer_step(self._timer.poll())

    def restart(self) -> None:
        """Discard the attempt and return to the intro with a clean slate."""
        if self._timer is not None:
            self._timer.stop()
            self._timer = None
        self.state = create_initial_state()
        logger.info("Restarted quiz %s", self.quiz.module_info.id)

    def results(self) -> QuizResults:
        """
        Compute the results of the finished attempt.

        Safe to call repeatedly; the completion callback still fires once.

        Raises:
            InvalidTransitionError: If the quiz has not finished
        """
        self._require(SessionPhase.RESULTS, "read results")
        results = calculate_results(
            self.quiz,
            self.state.answers,
            time_spent=self.state.elapsed_seconds or 0,
            mode=self.state.mode,
        )
        self._notify_complete(results)
        return results

    # ------------------------------------------------------------------
    # Event driver
    # ------------------------------------------------------------------

    def dispatch(self, event: QuizEvent) -> Any:
        """Apply a single event and return what the matching method returns."""
        if isinstance(event, StartQuiz):
            return self.start_quiz(event.mode)
        if isinstance(event, Answer):
            return self.answer(event.question_id, event.value)
        if isinstance(event, Next):
            return self.next()
        if isinstance(event, Previous):
            return self.previous()
        if isinstance(event, ToggleExplanation):
            return self.toggle_explanation()
        if isinstance(event, Tick):
            return self.tick(event.seconds)
        if isinstance(event, Restart):
            return self.restart()
        raise TypeError(f"Unsupported quiz event: {type(event).__name__}")

    def dispatch_all(self, events: Iterable[QuizEvent]) -> list[Any]:
        """
        Apply a batch of pending events.

        Learner actions keep their relative order and are applied before any
        timer tick in the same batch, so a last-second answer still counts.
        Events that arrive after the quiz has ended are dropped.
        """
        outcomes = []
        for event in sorted(events, key=_event_priority):
            if self.state.phase is SessionPhase.RESULTS and not isinstance(event, Restart):
                logger.debug("Dropping %s after results", type(event).__name__)
                continue
            outcomes.append(self.dispatch(event))
        return outcomes

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require(self, phase: SessionPhase, action: str) -> None:
        if self.state.phase is not phase:
            raise InvalidTransitionError(
                f"Cannot {action} while the quiz is in the {self.state.phase.value} phase"
            )

    def _countdown_seconds(self, mode: QuizMode) -> int:
        info = self.quiz.module_info
        if mode is QuizMode.TIMED:
            minutes = info.timed_mode_minutes or self.default_timed_minutes
        else:
            minutes = info.speed_mode_minutes or self.default_speed_minutes
        return max(1, int(minutes * 60))

    def _sync_timer(self) -> None:
        # SessionState.remaining_seconds is authoritative; the timer counts it down
        if self.state.remaining_seconds is not None:
            self._timer.remaining = self.state.remaining_seconds

    def _after_timer_step(self, expired: bool) -> bool:
        self.state.remaining_seconds = self._timer.remaining
        if expired:
            self._enter_results("time expired")
        return expired

    def _enter_results(self, reason: str) -> None:
        state = self.state
        if self._timer is not None:
            self._timer.stop()
            self._timer = None
        state.elapsed_seconds = max(0, math.floor(self._clock() - state.start_timestamp))
        state.phase = SessionPhase.RESULTS
        state.results_visible = True
        state.show_explanation = False
        logger.info(
            "Quiz %s finished (%s) after %ss",
            self.quiz.module_info.id,
            reason,
            state.elapsed_seconds,
        )
        self.results()

    def _notify_complete(self, results: QuizResults) -> None:
        if self.state.already_notified:
            return
        self.state.already_notified = True
        if self.on_complete is None:
            return

        try:
            outcome = self.on_complete(results)
        except Exception:
            logger.exception(
                "Completion callback failed for quiz %s", self.quiz.module_info.id
            )
            return

        if inspect.isawaitable(outcome):
            self._schedule(outcome)

    def _schedule(self, awaitable: Awaitable[None]) -> None:
        async def guarded() -> None:
            try:
                await awaitable
            except Exception:
                logger.exception(
                    "Completion callback failed for quiz %s", self.quiz.module_info.id
                )

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(guarded())
            return

        task = loop.create_task(guarded())
        self._pending_tasks.add(task)
        task.add_done_callback(self._pending_tasks.discard)
