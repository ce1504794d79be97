"""Tests for the quiz session state machine."""

import asyncio
import logging

import pytest

from poker_quiz.engine.errors import (
    InvalidModeError,
    InvalidTransitionError,
    QuizDefinitionError,
    UnknownQuestionError,
)
from poker_quiz.engine.session import (
    INTRO,
    Answer,
    Next,
    Previous,
    QuizSession,
    Restart,
    SessionPhase,
    StartQuiz,
    Tick,
    ToggleExplanation,
    create_initial_state,
)
from poker_quiz.models.quiz import QuizMode


def finish(session: QuizSession) -> None:
    """Press Next until the results appear."""
    while session.phase is SessionPhase.IN_SECTION:
        session.next()


class TestCreateInitialState:
    """Test the intro state."""

    def test_starts_in_intro(self):
        state = create_initial_state()

        assert state.phase is SessionPhase.INTRO
        assert state.current_section_id == INTRO
        assert state.current_question_index == 0
        assert state.mode is None
        assert state.remaining_seconds is None
        assert state.results_visible is False
        assert state.answers == {}
        assert state.already_notified is False

    def test_states_do_not_share_answers(self):
        first = create_initial_state()
        second = create_initial_state()
        first.answers["q1"] = 1
        assert second.answers == {}


class TestStartQuiz:
    """Test leaving the intro."""

    def test_standard_mode_opens_first_question(self, session, clock):
        session.start_quiz("standard")

        assert session.phase is SessionPhase.IN_SECTION
        assert session.state.current_section_id == "basics"
        assert session.state.current_question_index == 0
        assert session.state.mode is QuizMode.STANDARD
        assert session.state.remaining_seconds is None
        assert session.state.start_timestamp == clock.now
        assert session.current_question.id == "q1"

    def test_timed_mode_uses_module_limit(self, session):
        session.start_quiz(QuizMode.TIMED)
        assert session.state.remaining_seconds == 2 * 60

    def test_speed_mode_uses_module_limit(self, session):
        session.start_quiz("speed")
        assert session.state.remaining_seconds == 60

    @pytest.mark.parametrize("mode,seconds", [("timed", 20 * 60), ("speed", 10 * 60)])
    def test_default_limits_when_module_has_none(self, true_false_quiz, clock, mode, seconds):
        session = QuizSession(true_false_quiz([1], [100]), clock=clock)
        session.start_quiz(mode)
        assert session.state.remaining_seconds == seconds

    def test_configured_default_limits(self, true_false_quiz, clock):
        session = QuizSession(true_false_quiz([1], [100]), clock=clock, default_speed_minutes=3)
        session.start_quiz("speed")
        assert session.state.remaining_seconds == 180

    def test_mode_names_are_case_insensitive(self, session):
        session.start_quiz(" Timed ")
        assert session.state.mode is QuizMode.TIMED

    def test_unknown_mode_is_rejected(self, session):
        with pytest.raises(InvalidModeError, match="blitz"):
            session.start_quiz("blitz")
        assert session.phase is SessionPhase.INTRO

    def test_cannot_start_twice(self, session):
        session.start_quiz("standard")
        with pytest.raises(InvalidTransitionError):
            session.start_quiz("standard")

    def test_invalid_definition_cannot_start(self, sample_quiz_data):
        sample_quiz_data["sections"][0]["questions"] = []
        with pytest.raises(QuizDefinitionError):
            QuizSession(sample_quiz_data)

    def test_accepts_raw_definition(self, sample_quiz_data, clock):
        session = QuizSession(sample_quiz_data, clock=clock)
        session.start_quiz("standard")
        assert session.current_question.id == "q1"


class TestAnswer:
    """Test recording answers."""

    def test_records_without_moving(self, session):
        session.start_quiz("standard")
        session.answer("q1", 2)

        assert session.state.answers == {"q1": 2}
        assert session.current_question.id == "q1"

    def test_last_write_wins(self, session):
        session.start_quiz("standard")
        session.answer("q1", 2)
        session.answer("q1", 1)
        assert session.state.answers["q1"] == 1

    def test_unknown_question_rejected(self, session):
        session.start_quiz("standard")
        with pytest.raises(UnknownQuestionError):
            session.answer("nope", 1)

    def test_cannot_answer_from_intro(self, session):
        with pytest.raises(InvalidTransitionError):
            session.answer("q1", 1)

    def test_can_advance_only_once_answered(self, session):
        session.start_quiz("standard")
        assert not session.can_advance
        session.answer("q1", 0)
        assert session.can_advance


class TestNavigation:
    """Test next and previous."""

    def test_next_walks_questions_then_sections(self, session):
        session.start_quiz("standard")
        visited = []
        while session.phase is SessionPhase.IN_SECTION:
            visited.append((session.state.current_section_id, session.current_question.id))
            session.next()

        assert visited == [
            ("basics", "q1"),
            ("basics", "q2"),
            ("math", "q3"),
            ("math", "q4"),
            ("math", "q5"),
        ]
        assert session.phase is SessionPhase.RESULTS
        assert session.state.results_visible

    def test_next_does_not_require_an_answer(self, session):
        session.start_quiz("standard")
        session.next()
        assert session.current_question.id == "q2"

    def test_previous_within_section(self, session):
        session.start_quiz("standard")
        session.next()
        assert session.previous() is True
        assert session.current_question.id == "q1"

    def test_previous_at_first_question_is_noop(self, session):
        session.start_quiz("standard")
        assert session.previous() is False
        assert session.current_question.id == "q1"

    def test_previous_never_reopens_earlier_section(self, session):
        session.start_quiz("standard")
        session.next()
        session.next()
        assert session.state.current_section_id == "math"

        assert session.previous() is False
        assert session.state.current_section_id == "math"
        assert session.current_question.id == "q3"

    def test_position_flags(self, session):
        session.start_quiz("standard")
        assert session.section_number == 1
        assert not session.is_last_section
        session.next()
        assert session.is_last_question
        session.next()
        assert session.section_number == 2
        assert session.is_last_section
        assert not session.can_go_back

    def test_navigation_rejected_outside_section(self, session):
        with pytest.raises(InvalidTransitionError):
            session.next()
        with pytest.raises(InvalidTransitionError):
            session.previous()


class TestExplanations:
    """Test hint visibility per mode."""

    def test_standard_mode_toggles_hint(self, session):
        session.start_quiz("standard")
        assert session.current_explanation is None
        assert session.toggle_explanation() is True
        assert session.current_explanation == "The pot against the price of a call."
        assert session.toggle_explanation() is False

    def test_timed_mode_allows_hints(self, session):
        session.start_quiz("timed")
        assert session.toggle_explanation() is True

    def test_speed_mode_suppresses_hints(self, session):
        session.start_quiz("speed")
        assert session.toggle_explanation() is False
        assert session.current_explanation is None
        assert not session.hints_visible

    def test_hint_hides_on_navigation(self, session):
        session.start_quiz("standard")
        session.toggle_explanation()
        session.next()
        assert session.current_explanation is None


class TestResults:
    """Test entering the results and the completion callback."""

    def test_results_score_answers(self, session, correct_answers):
        session.start_quiz("standard")
        for question_id, value in correct_answers.items():
            session.answer(question_id, value)
        finish(session)

        results = session.results()
        assert results.total_correct == 5
        assert results.passed
        assert results.mode is QuizMode.STANDARD

    def test_elapsed_time_is_floored_and_fixed(self, session, clock):
        session.start_quiz("standard")
        clock.advance(12.9)
        finish(session)
        clock.advance(100)

        assert session.results().time_spent == 12
        assert session.state.elapsed_seconds == 12

    def test_completion_fires_once_across_reads(self, session, completions):
        session.start_quiz("standard")
        finish(session)

        first = session.results()
        session.results()
        session.results()

        assert len(completions) == 1
        assert completions[0] == first

    def test_results_before_finish_rejected(self, session):
        session.start_quiz("standard")
        with pytest.raises(InvalidTransitionError):
            session.results()

    def test_no_transitions_out_of_results_except_restart(self, session):
        session.start_quiz("standard")
        finish(session)

        with pytest.raises(InvalidTransitionError):
            session.answer("q1", 1)
        with pytest.raises(InvalidTransitionError):
            session.start_quiz("standard")
        assert session.state.results_visible

    def test_failing_sink_does_not_break_results(self, sample_quiz, clock, caplog):
        def broken_sink(results):
            raise ConnectionError("progress store unavailable")

        session = QuizSession(sample_quiz, on_complete=broken_sink, clock=clock)
        session.start_quiz("standard")
        session.answer("q1", 1)

        with caplog.at_level(logging.ERROR, logger="poker_quiz.engine.session"):
            finish(session)

        assert session.phase is SessionPhase.RESULTS
        assert session.results().total_correct == 1
        assert "Completion callback failed" in caplog.text

    def test_async_sink_runs_without_event_loop(self, sample_quiz, clock):
        received = []

        async def sink(results):
            received.append(results.module_id)

        session = QuizSession(sample_quiz, on_complete=sink, clock=clock)
        session.start_quiz("standard")
        finish(session)

        assert received == ["9.9"]

    def test_async_sink_failure_is_swallowed(self, sample_quiz, clock, caplog):
        async def sink(results):
            raise RuntimeError("boom")

        session = QuizSession(sample_quiz, on_complete=sink, clock=clock)
        session.start_quiz("standard")
        with caplog.at_level(logging.ERROR, logger="poker_quiz.engine.session"):
            finish(session)

        assert session.phase is SessionPhase.RESULTS
        assert "Completion callback failed" in caplog.text

    def test_async_sink_scheduled_on_running_loop(self, sample_quiz, clock):
        received = []

        async def sink(results):
            received.append(results.passed)

        async def scenario():
            session = QuizSession(sample_quiz, on_complete=sink, clock=clock)
            session.start_quiz("standard")
            finish(session)
            # The sink has not run yet; results are already final
            assert received == []
            assert session.phase is SessionPhase.RESULTS
            await asyncio.sleep(0)
            await asyncio.sleep(0)

        asyncio.run(scenario())
        assert received == [False]


class TestTimer:
    """Test countdown behaviour inside a session."""

    def test_tick_counts_down(self, session):
        session.start_quiz("timed")
        session.tick()
        assert session.state.remaining_seconds == 119

    def test_tick_is_inert_in_intro(self, session):
        assert session.tick() is False
        assert session.state.remaining_seconds is None
        assert session.phase is SessionPhase.INTRO

    def test_standard_mode_never_expires(self, session):
        session.start_quiz("standard")
        assert session.tick(10_000) is False
        assert session.phase is SessionPhase.IN_SECTION

    def test_expiry_scores_unanswered_as_incorrect(self, true_false_quiz, clock, completions):
        session = QuizSession(true_false_quiz([2], [100]), on_complete=completions.append, clock=clock)
        session.start_quiz("timed")
        session.answer("s0q0", True)

        assert session.tick(session.state.remaining_seconds) is True

        assert session.phase is SessionPhase.RESULTS
        results = session.results()
        assert results.question_results == {"s0q0": True, "s0q1": False}
        assert results.section_results["s0"].total == 2
        assert len(completions) == 1

    def test_timer_torn_down_after_results(self, session, clock):
        session.start_quiz("speed")
        session.tick(60)
        assert session.state.remaining_seconds == 0

        clock.advance(30)
        assert session.tick() is False
        assert session.poll_timer() is False
        assert session.state.remaining_seconds == 0

    def test_finishing_early_stops_the_clock(self, session, clock):
        session.start_quiz("timed")
        session.tick(5)
        finish(session)

        assert session.tick(200) is False
        assert session.state.remaining_seconds == 115

    def test_forcing_remaining_to_zero_ends_the_quiz(self, session, completions):
        session.start_quiz("timed")
        session.state.remaining_seconds = 0

        assert session.tick() is True
        assert session.phase is SessionPhase.RESULTS
        assert session.state.remaining_seconds == 0
        assert len(completions) == 1

    def test_forced_zero_expires_on_poll(self, session):
        session.start_quiz("speed")
        session.state.remaining_seconds = 0

        assert session.poll_timer() is True
        assert session.phase is SessionPhase.RESULTS

    def test_state_drives_the_countdown(self, session):
        session.start_quiz("timed")
        session.state.remaining_seconds = 10

        session.tick(3)
        assert session.state.remaining_seconds == 7

    def test_poll_follows_wall_clock(self, session, clock):
        session.start_quiz("timed")
        clock.advance(30)
        assert session.poll_timer() is False
        assert session.state.remaining_seconds == 90

        clock.advance(90)
        assert session.poll_timer() is True
        assert session.phase is SessionPhase.RESULTS
        assert session.results().time_spent == 120


class TestDispatch:
    """Test the event driver."""

    def test_dispatch_routes_events(self, session):
        session.dispatch(StartQuiz("standard"))
        session.dispatch(Answer("q1", 1))
        session.dispatch(Next())
        session.dispatch(Previous())
        assert session.dispatch(ToggleExplanation()) is True

        assert session.state.answers == {"q1": 1}
        assert session.current_question.id == "q1"

    def test_dispatch_rejects_unknown_events(self, session):
        with pytest.raises(TypeError):
            session.dispatch("next")

    def test_last_second_answer_counts(self, true_false_quiz, clock):
        """An answer queued with the expiring tick is applied first."""
        session = QuizSession(true_false_quiz([2], [100]), clock=clock)
        session.start_quiz("timed")
        session.next()

        session.dispatch_all([Tick(20 * 60), Answer("s0q1", True)])

        assert session.phase is SessionPhase.RESULTS
        assert session.results().question_results["s0q1"] is True

    def test_events_after_results_are_dropped(self, session):
        session.start_quiz("speed")
        session.dispatch_all([Tick(60), Tick(1)])

        assert session.phase is SessionPhase.RESULTS
        assert session.dispatch_all([Answer("q1", 1), Next()]) == []
        assert session.state.answers == {}

    def test_restart_event_after_results(self, session):
        session.start_quiz("standard")
        finish(session)
        session.dispatch_all([Restart(), StartQuiz("timed")])

        assert session.phase is SessionPhase.IN_SECTION
        assert session.state.mode is QuizMode.TIMED


class TestRestart:
    """Test returning to the intro."""

    def test_restart_resets_everything(self, session):
        session.start_quiz("timed")
        session.answer("q1", 1)
        session.tick(10)
        session.toggle_explanation()

        session.restart()

        assert session.state == create_initial_state()
        assert session.phase is SessionPhase.INTRO
        assert session.state.answers == {}
        assert session.state.remaining_seconds is None
        assert session.tick() is False

    def test_second_attempt_matches_first(self, session):
        session.start_quiz("timed")
        first_start = session.state.__dict__.copy()
        first_start["answers"] = dict(first_start["answers"])
        session.answer("q1", 1)
        finish(session)

        session.restart()
        session.start_quiz("timed")

        assert session.state.__dict__ == first_start

    def test_restart_rearms_completion(self, session, completions):
        session.start_quiz("standard")
        finish(session)
        session.restart()
        session.start_quiz("speed")
        finish(session)

        assert len(completions) == 2
        assert completions[1].mode is QuizMode.SPEED

    def test_restart_from_intro_is_harmless(self, session):
        session.restart()
        session.restart()
        assert session.state == create_initial_state()


class TestIsolation:
    """Test that sessions never share state."""

    def test_sessions_are_independent(self, sample_quiz, clock):
        first = QuizSession(sample_quiz, clock=clock)
        second = QuizSession(sample_quiz, clock=clock)
        first.start_quiz("standard")
        second.start_quiz("speed")
        first.answer("q1", 1)

        assert second.state.answers == {}
        assert second.state.mode is QuizMode.SPEED
        assert first.state.remaining_seconds is None
