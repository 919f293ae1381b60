"""
Unit Tests for the Exam Session Controller

Covers the session lifecycle, the three submission triggers and the guard that
lets exactly one of them produce a score record.
"""

from threading import Barrier, Thread

import pytest

from exam_app.core.errors import SessionLoadError, SubmissionError
from exam_app.core.models import IntegrityAction, SessionPhase, SubmissionTrigger
from exam_app.core.services.sequence_randomizer import SequenceRandomizer
from exam_app.core.session_controller import ExamSession, SubmissionStatus, normalize_answer


ALL_ANSWERED = {"q-capital": "Paris", "q-primes": ["3", "2"], "q-blank": "oxygen"}


@pytest.fixture
def make_session(bank, user, sink):
    def factory(quiz_set_id="exam", score_sink=None):
        return ExamSession(quiz_set_id, user, bank, score_sink or sink, randomizer=SequenceRandomizer(seed=1))

    return factory


@pytest.fixture
def active_session(make_session):
    session = make_session()
    session.start()
    return session


def _answer_all(session, answers=ALL_ANSWERED):
    for question_id, value in answers.items():
        session.set_answer(question_id, value)


class InterruptedSource:
    """Question source that runs a callback while questions are loading."""

    def __init__(self, bank):
        self.bank = bank
        self.during_load = None

    def get_quiz_set_config(self, quiz_set_id):
        return self.bank.get_quiz_set_config(quiz_set_id)

    def load_questions(self, quiz_set_id):
        if self.during_load is not None:
            self.during_load()
        return self.bank.load_questions(quiz_set_id)


class TestStart:
    """Tests for ExamSession.start()."""

    def test_start_when_exam_then_active_with_clock(self, active_session):
        snapshot = active_session.snapshot()

        assert snapshot.phase is SessionPhase.ACTIVE
        assert snapshot.remaining_seconds == 60
        assert sorted(question.id for question in snapshot.questions) == ["q-blank", "q-capital", "q-primes"]
        assert snapshot.unanswered_count == 3

    def test_start_when_called_twice_then_raises_error(self, active_session):
        with pytest.raises(RuntimeError):
            active_session.start()

    @pytest.mark.parametrize("quiz_set_id", ["missing", "closed", "empty"])
    def test_start_when_set_unusable_then_load_error(self, make_session, quiz_set_id):
        session = make_session(quiz_set_id)

        with pytest.raises(SessionLoadError):
            session.start()
        assert session.phase is SessionPhase.PREPARING

    def test_start_when_survey_then_no_clock_and_no_monitoring(self, make_session):
        session = make_session("survey")
        session.start()

        assert session.snapshot().remaining_seconds is None
        assert session.focus_signal.listener_count == 0
        assert session.report_focus_lost() is None

    def test_start_when_abandoned_while_loading_then_never_activated(self, bank, user, sink):
        source = InterruptedSource(bank)
        session = ExamSession("exam", user, source, sink, randomizer=SequenceRandomizer(seed=1))
        source.during_load = session.abandon

        with pytest.raises(SessionLoadError):
            session.start()

        snapshot = session.snapshot()
        assert snapshot.phase is SessionPhase.TERMINAL
        assert snapshot.is_abandoned
        assert snapshot.questions == ()
        assert snapshot.remaining_seconds is None
        assert session.focus_signal.listener_count == 0
        assert session.tick() is None
        assert sink.records == []

    def test_snapshot_when_exam_started_then_display_time_included(self, active_session):
        snapshot = active_session.snapshot()

        assert snapshot.remaining_display == "01:00"
        assert snapshot.is_low_on_time is True

    def test_snapshot_when_survey_then_no_display_time(self, make_session):
        session = make_session("survey")
        session.start()

        snapshot = session.snapshot()
        assert snapshot.remaining_display is None
        assert snapshot.is_low_on_time is False


class TestSetAnswer:
    """Tests for ExamSession.set_answer()."""

    def test_set_when_unknown_question_then_raises_key_error(self, active_session):
        with pytest.raises(KeyError):
            active_session.set_answer("nope", "x")

    def test_set_when_selection_given_then_stored_sorted(self, active_session):
        feedback = active_session.set_answer("q-primes", ["3", "2"])

        assert feedback.accepted
        assert active_session.snapshot().answers["q-primes"] == ("2", "3")

    def test_set_when_changed_then_last_value_kept(self, active_session):
        active_session.set_answer("q-capital", "Rome")
        active_session.set_answer("q-capital", "Paris")

        assert active_session.snapshot().answers["q-capital"] == "Paris"

    def test_set_when_session_finished_then_rejected(self, active_session):
        _answer_all(active_session)
        active_session.request_submit()

        feedback = active_session.set_answer("q-capital", "Rome")

        assert not feedback.accepted
        assert active_session.record.answers["q-capital"] == "Paris"

    def test_set_when_instant_feedback_then_question_locked(self, make_session):
        session = make_session("instant")
        session.start()

        first = session.set_answer("q-capital", "Rome")
        second = session.set_answer("q-capital", "Paris")

        assert first.accepted and first.locked and first.is_correct is False
        assert not second.accepted and second.locked
        snapshot = session.snapshot()
        assert snapshot.answers["q-capital"] == "Rome"
        assert snapshot.feedback == {"q-capital": False}

    def test_normalize_when_plain_string_then_unchanged(self):
        assert normalize_answer("Paris") == "Paris"
        assert normalize_answer(None) is None
        assert normalize_answer({"b", "a"}) == ("a", "b")


class TestClockExpiry:
    """Tests for submission triggered by the clock."""

    def test_tick_when_time_runs_out_then_submitted_once(self, active_session, sink):
        active_session.set_answer("q-capital", "Paris")

        for _ in range(60):
            active_session.tick()

        assert active_session.phase is SessionPhase.TERMINAL
        assert len(sink.records) == 1
        assert sink.records[0].raw_score == 1

    def test_tick_when_already_terminal_then_no_second_record(self, active_session, sink):
        for _ in range(75):
            active_session.tick()

        assert sink.calls == 1

    def test_tick_when_persistence_fails_then_active_and_retry_allowed(self, make_session, flaky_sink):
        session = make_session(score_sink=flaky_sink)
        session.start()
        _answer_all(session)

        for _ in range(60):
            session.tick()

        snapshot = session.snapshot()
        assert snapshot.phase is SessionPhase.ACTIVE
        assert snapshot.last_error is not None
        assert snapshot.answers["q-capital"] == "Paris"

        outcome = session.request_submit()

        assert outcome.status is SubmissionStatus.SUBMITTED
        assert flaky_sink.calls == 2
        assert session.snapshot().last_error is None


class TestFocusLoss:
    """Tests for integrity escalation inside a session."""

    def test_report_when_four_losses_then_penalized_and_forced_submit(self, active_session, sink):
        active_session.set_answer("q-capital", "Paris")
        active_session.set_answer("q-primes", ("2", "3"))

        notices = [active_session.report_focus_lost() for _ in range(4)]

        assert [notice.action for notice in notices] == [
            IntegrityAction.WARNING,
            IntegrityAction.PENALTY,
            IntegrityAction.PENALTY,
            IntegrityAction.FORCE_SUBMIT,
        ]
        assert active_session.phase is SessionPhase.TERMINAL
        assert len(sink.records) == 1
        record = sink.records[0]
        assert record.tamper_count == 4
        assert record.penalty_points == 5
        assert record.raw_score == 2
        assert record.final_score == 0

    def test_report_when_fifth_loss_then_no_effect(self, active_session, sink):
        for _ in range(4):
            active_session.report_focus_lost()

        assert active_session.report_focus_lost() is None
        assert active_session.snapshot().tamper_count == 4
        assert len(sink.records) == 1

    def test_emit_when_signal_fired_then_session_notified(self, active_session):
        active_session.focus_signal.emit()

        snapshot = active_session.snapshot()
        assert snapshot.tamper_count == 1
        assert snapshot.notices[0].action is IntegrityAction.WARNING


class TestRequestSubmit:
    """Tests for manual submission."""

    def test_submit_when_unanswered_then_needs_confirmation(self, active_session, sink):
        active_session.set_answer("q-capital", "Paris")

        outcome = active_session.request_submit()

        assert outcome.status is SubmissionStatus.NEEDS_CONFIRMATION
        assert outcome.unanswered_count == 2
        assert active_session.phase is SessionPhase.ACTIVE
        assert sink.records == []

    def test_submit_when_confirm_declined_then_nothing_emitted(self, active_session, sink):
        asked = []

        outcome = active_session.request_submit(confirm=lambda count: asked.append(count) or False)

        assert outcome.status is SubmissionStatus.DECLINED
        assert asked == [3]
        assert sink.records == []

    def test_submit_when_partial_confirmed_then_submitted(self, active_session, sink):
        outcome = active_session.request_submit(confirm_partial=True)

        assert outcome.status is SubmissionStatus.SUBMITTED
        assert outcome.trigger is SubmissionTrigger.MANUAL
        assert outcome.record.raw_score == 0
        assert active_session.record_id == "rec-1"

    def test_submit_when_two_of_three_correct_then_scored(self, active_session):
        _answer_all(active_session)

        outcome = active_session.request_submit()

        assert outcome.record.raw_score == 2
        assert outcome.record.total_possible_points == 3
        assert outcome.record.percentage == pytest.approx(66.67, abs=0.01)
        assert set(outcome.record.question_order) == {"q-capital", "q-primes", "q-blank"}

    def test_submit_when_repeated_then_second_ignored(self, active_session, sink):
        _answer_all(active_session)

        first = active_session.request_submit()
        second = active_session.request_submit()

        assert first.status is SubmissionStatus.SUBMITTED
        assert second.status is SubmissionStatus.IGNORED
        assert len(sink.records) == 1

    def test_submit_when_persistence_fails_then_error_and_state_kept(self, make_session, flaky_sink):
        session = make_session(score_sink=flaky_sink)
        session.start()
        _answer_all(session)
        session.report_focus_lost()
        session.report_focus_lost()

        with pytest.raises(SubmissionError):
            session.request_submit()

        snapshot = session.snapshot()
        assert snapshot.phase is SessionPhase.ACTIVE
        assert snapshot.penalty_points == 2
        assert snapshot.answers["q-blank"] == "oxygen"

        outcome = session.request_submit()
        assert outcome.status is SubmissionStatus.SUBMITTED
        assert flaky_sink.records[0].penalty_points == 2

    def test_submit_when_triggers_race_then_exactly_one_record(self, active_session, sink):
        _answer_all(active_session)
        barrier = Barrier(8)
        statuses = []

        def submit():
            barrier.wait()
            statuses.append(active_session.request_submit().status)

        threads = [Thread(target=submit) for _ in range(6)]
        threads.append(Thread(target=lambda: (barrier.wait(), [active_session.tick() for _ in range(60)])))
        threads.append(Thread(target=lambda: (barrier.wait(), [active_session.report_focus_lost() for _ in range(4)])))
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(sink.records) == 1
        assert statuses.count(SubmissionStatus.SUBMITTED) <= 1
        assert active_session.phase is SessionPhase.TERMINAL


class TestAbandon:
    def test_abandon_when_active_then_terminal_without_record(self, active_session, sink):
        assert active_session.abandon() is True

        snapshot = active_session.snapshot()
        assert snapshot.phase is SessionPhase.TERMINAL
        assert snapshot.is_abandoned
        assert active_session.request_submit().status is SubmissionStatus.IGNORED
        assert sink.records == []
        assert active_session.focus_signal.listener_count == 0

    def test_abandon_when_already_submitted_then_refused(self, active_session):
        active_session.request_submit(confirm_partial=True)

        assert active_session.abandon() is False
        assert not active_session.is_abandoned


class TestSurveySession:
    def test_submit_when_survey_then_zero_of_zero(self, make_session, sink):
        session = make_session("survey")
        session.start()
        session.set_answer("s-rating", "Good")
        session.set_answer("s-comment", "More coffee")

        outcome = session.request_submit()

        record = outcome.record
        assert record.is_survey
        assert (record.raw_score, record.total_possible_points, record.percentage) == (0, 0, 0.0)
        assert record.answers["s-comment"] == "More coffee"
