"""FastAPI server that exposes the exam endpoints and the student page."""

from __future__ import annotations

from html import escape
from threading import Thread

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import HTMLResponse
from pydantic import BaseModel
import uvicorn

from exam_app.constants.about import APP_NAME, APP_VERSION
from exam_app.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from exam_app.constants.ui_constants import UNANSWERED_CONFIRM_TEMPLATE
from exam_app.core.errors import SessionLoadError, SubmissionError
from exam_app.core.markdown_math_renderer import renderer
from exam_app.core.models import IntegrityNotice, ScoreRecord, SessionSnapshot, UserIdentity
from exam_app.core.review import ReviewItem
from exam_app.core.session_controller import ExamSession, SubmissionStatus
from exam_app.core.session_hub import SessionHub

_STUDENT_PAGE_HTML = """<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <title>ExamQt</title>
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <style>
      :root { font-family: 'Inter', system-ui, sans-serif; background: #0b1120; color: #f5f7ff; }
      body { margin: 0 auto; padding: 1.5rem; max-width: 48rem; display: flex; flex-direction: column; gap: 1rem; }
      .card { background: #111a30; border-radius: 0.75rem; padding: 1.5rem; box-shadow: 0 0.5rem 1.5rem rgba(0, 0, 0, 0.4); }
      .hidden { display: none; }
      .primary-button { border: none; border-radius: 0.75rem; padding: 0.85rem 1.5rem; font-size: 1rem; background: #16a34a; color: #fff; cursor: pointer; }
      .primary-button:disabled { opacity: 0.6; cursor: not-allowed; }
      label.field { display: block; margin-bottom: 0.75rem; }
      input[type=text], select { width: 100%; padding: 0.6rem; border-radius: 0.5rem; border: 1px solid #334155; background: #0f172a; color: #f5f7ff; }
      .header { position: sticky; top: 0.5rem; display: flex; justify-content: space-between; align-items: center; z-index: 10; }
      #timer.low { color: #ef4444; }
      .option { display: block; padding: 0.75rem; margin: 0.4rem 0; border-radius: 0.6rem; border: 2px solid #334155; cursor: pointer; }
      .option.selected { border-color: #ef4444; background: rgba(239, 68, 68, 0.15); }
      .feedback-correct { color: #4ade80; }
      .feedback-wrong { color: #f87171; }
      .question-image { max-width: 100%; max-height: 20rem; border-radius: 0.5rem; }
      #notice { border-left: 4px solid #ef4444; }
    </style>
    <script>
      window.MathJax = { tex: { inlineMath: [['$','$']], displayMath: [['$$','$$']] }, svg: { fontCache: 'global' } };
    </script>
    <script defer src="https://cdn.jsdelivr.net/npm/mathjax@3/es5/tex-mml-chtml.js"></script>
  </head>
  <body>
    <section class="card" id="start-card">
      <h1>ExamQt</h1>
      <label class="field">Quiz set <select id="quiz-set"></select></label>
      <label class="field">User id <input type="text" id="user-id" /></label>
      <label class="field">Name <input type="text" id="user-name" /></label>
      <label class="field">Department <input type="text" id="user-department" /></label>
      <button id="start-button" class="primary-button">Start</button>
      <p id="start-status"></p>
    </section>
    <section class="card header hidden" id="header-card">
      <div><strong id="set-name"></strong><div id="who"></div></div>
      <div><span id="timer"></span> <button id="submit-top" class="primary-button">Submit</button></div>
    </section>
    <section class="card hidden" id="notice"><strong id="notice-title"></strong><p id="notice-message"></p></section>
    <section id="questions"></section>
    <section class="card hidden" id="submit-card"><button id="submit-bottom" class="primary-button">Submit all answers</button><p id="submit-status"></p></section>
    <section class="card hidden" id="result-card"></section>
    <script>
      let sessionId = null;
      let session = null;
      let attentionLost = false;
      let lastNoticeCount = 0;
      let pollHandle = null;
      const pendingSelections = {};
      const $ = (id) => document.getElementById(id);

      async function loadQuizSets() {
        const response = await fetch('/quiz-sets');
        const payload = await response.json();
        $('quiz-set').innerHTML = '';
        payload.quiz_sets.forEach(set => {
          const option = document.createElement('option');
          option.value = set.id;
          option.textContent = set.name + (set.is_survey ? ' (survey)' : ` (${set.question_count} questions)`);
          $('quiz-set').appendChild(option);
        });
      }

      async function startSession() {
        $('start-button').disabled = true;
        const response = await fetch('/sessions', {
          method: 'POST',
          headers: { 'Content-Type': 'application/json' },
          body: JSON.stringify({
            quiz_set_id: $('quiz-set').value,
            user_id: $('user-id').value,
            display_name: $('user-name').value,
            department: $('user-department').value,
          }),
        });
        const body = await response.json().catch(() => ({}));
        if (!response.ok) {
          $('start-status').textContent = body.detail || 'Could not start the exam.';
          $('start-button').disabled = false;
          return;
        }
        sessionId = body.session_id;
        session = body;
        $('start-card').classList.add('hidden');
        ['header-card', 'submit-card'].forEach(id => $(id).classList.remove('hidden'));
        renderQuestions();
        renderHeader();
        pollHandle = setInterval(refreshSession, 1000);
      }

      function renderHeader() {
        $('set-name').textContent = session.quiz_set.name;
        $('who').textContent = session.user.display_name;
        if (session.remaining_display === null) {
          $('timer').textContent = '';
        } else {
          $('timer').textContent = session.remaining_display;
          $('timer').classList.toggle('low', session.low_on_time);
        }
        if (session.notices.length > lastNoticeCount) {
          const notice = session.notices[session.notices.length - 1];
          lastNoticeCount = session.notices.length;
          $('notice-title').textContent = notice.title;
          $('notice-message').textContent = notice.message;
          $('notice').classList.remove('hidden');
        }
        if (session.last_error) {
          $('submit-status').textContent = session.last_error;
        }
      }

      function renderQuestions() {
        const container = $('questions');
        container.innerHTML = '';
        session.questions.forEach((question, index) => {
          const card = document.createElement('div');
          card.className = 'card';
          card.id = `question-card-${question.id}`;
          card.innerHTML = `<h3>${index + 1}.</h3>${question.html}`;
          const body = document.createElement('div');
          if (question.type === 'fill_in_blank') {
            const input = document.createElement('input');
            input.type = 'text';
            input.value = question.answer || '';
            input.disabled = question.locked;
            input.addEventListener('change', () => sendAnswer(question.id, input.value));
            body.appendChild(input);
          } else {
            const multi = question.type === 'multiple_choice_multiple';
            // Instant-feedback sets lock on the first answer, so selections are sent once on confirm.
            const confirmFirst = multi && session.quiz_set.instant_feedback && !question.locked;
            const current = confirmFirst && pendingSelections[question.id]
              ? pendingSelections[question.id]
              : (question.answer || []);
            question.options.forEach(option => {
              const label = document.createElement('label');
              const selected = multi ? current.includes(option) : question.answer === option;
              label.className = 'option' + (selected ? ' selected' : '');
              label.textContent = option;
              if (!question.locked) {
                label.addEventListener('click', () => {
                  if (!multi) {
                    sendAnswer(question.id, option);
                    return;
                  }
                  const next = new Set(current);
                  next.has(option) ? next.delete(option) : next.add(option);
                  if (confirmFirst) {
                    pendingSelections[question.id] = Array.from(next);
                    renderQuestions();
                  } else {
                    sendAnswer(question.id, Array.from(next));
                  }
                });
              }
              body.appendChild(label);
            });
            if (confirmFirst) {
              const confirmButton = document.createElement('button');
              confirmButton.className = 'primary-button';
              confirmButton.textContent = 'Confirm answer';
              confirmButton.disabled = current.length === 0;
              confirmButton.addEventListener('click', () => {
                const value = pendingSelections[question.id] || [];
                delete pendingSelections[question.id];
                sendAnswer(question.id, value);
              });
              body.appendChild(confirmButton);
            }
          }
          if (question.is_correct !== null) {
            const feedback = document.createElement('p');
            feedback.className = question.is_correct ? 'feedback-correct' : 'feedback-wrong';
            feedback.textContent = question.is_correct ? 'Correct' : 'Incorrect';
            body.appendChild(feedback);
          }
          card.appendChild(body);
          container.appendChild(card);
        });
        if (window.MathJax && window.MathJax.typesetPromise) {
          window.MathJax.typesetPromise([container]).catch(() => {});
        }
      }

      async function sendAnswer(questionId, value) {
        await fetch(`/sessions/${sessionId}/answers/${encodeURIComponent(questionId)}`, {
          method: 'PUT',
          headers: { 'Content-Type': 'application/json' },
          body: JSON.stringify({ value }),
        });
        await refreshSession(true);
      }

      async function refreshSession(rerender = false) {
        if (!sessionId) return;
        const response = await fetch(`/sessions/${sessionId}`);
        if (!response.ok) return;
        session = await response.json();
        renderHeader();
        if (rerender) renderQuestions();
        if (session.phase === 'terminal') finishView();
      }

      async function submit(confirmPartial = false) {
        const response = await fetch(`/sessions/${sessionId}/submit`, {
          method: 'POST',
          headers: { 'Content-Type': 'application/json' },
          body: JSON.stringify({ confirm_partial: confirmPartial }),
        });
        const body = await response.json().catch(() => ({}));
        if (response.status === 409 && body.detail && body.detail.unanswered_count) {
          const first = session.questions.find(q => q.answer === null || q.answer === '' || (Array.isArray(q.answer) && q.answer.length === 0));
          if (first) $(`question-card-${first.id}`).scrollIntoView({ behavior: 'smooth', block: 'center' });
          if (window.confirm(body.detail.message)) await submit(true);
          return;
        }
        if (!response.ok) {
          $('submit-status').textContent = body.detail || 'Submission failed, please try again.';
          return;
        }
        await refreshSession();
      }

      async function finishView() {
        clearInterval(pollHandle);
        pollHandle = null;
        ['header-card', 'submit-card', 'questions'].forEach(id => $(id).classList.add('hidden'));
        const card = $('result-card');
        card.classList.remove('hidden');
        if (!session.record_id) {
          card.textContent = 'This session has ended.';
          return;
        }
        const score = await (await fetch(`/scores/${session.record_id}`)).json();
        const review = await (await fetch(`/scores/${session.record_id}/review`)).json();
        const lines = review.items.map((item, index) =>
          `<p>${index + 1}. ${item.question_html}<br/>Your answer: <strong>${item.user_answer_text}</strong>` +
          (score.is_survey ? '' : (item.is_correct ? ' <span class="feedback-correct">&#10003;</span>' :
            ` <span class="feedback-wrong">&#10007;</span> Correct answer: ${item.correct_answer_text}`)) + '</p>');
        const summary = score.is_survey ? '<h2>Thank you for your answers.</h2>' :
          `<h2>Score: ${score.final_score} / ${score.total_possible_points} (${score.percentage.toFixed(1)}%)</h2>` +
          (score.penalty_points ? `<p>Penalty: ${score.penalty_points} point(s)</p>` : '');
        card.innerHTML = summary + lines.join('');

        const history = await (await fetch(`/users/${encodeURIComponent(session.user.id)}/scores`)).json();
        if (history.scores.length > 1) {
          const heading = document.createElement('h3');
          heading.textContent = 'Your attempts';
          const list = document.createElement('ul');
          history.scores.forEach(entry => {
            const item = document.createElement('li');
            item.textContent = entry.is_survey
              ? `${entry.quiz_set_name}: submitted`
              : `${entry.quiz_set_name}: ${entry.final_score} / ${entry.total_possible_points} (${entry.percentage.toFixed(1)}%)`;
            list.appendChild(item);
          });
          card.append(heading, list);
        }
      }

      function reportFocusLost() {
        if (!sessionId || attentionLost || !session || session.phase !== 'active' || session.quiz_set.is_survey) return;
        attentionLost = true;
        fetch(`/sessions/${sessionId}/focus-lost`, { method: 'POST' }).then(() => refreshSession());
      }

      function reportFocusRegained() {
        attentionLost = false;
      }

      document.addEventListener('visibilitychange', () => {
        if (document.hidden) { reportFocusLost(); } else { reportFocusRegained(); }
      });
      window.addEventListener('blur', reportFocusLost);
      window.addEventListener('focus', reportFocusRegained);
      $('start-button').addEventListener('click', startSession);
      $('submit-top').addEventListener('click', () => submit());
      $('submit-bottom').addEventListener('click', () => submit());
      loadQuizSets();
    </script>
  </body>
</html>
"""


class StartSessionPayload(BaseModel):
    """Payload schema for starting a session."""

    quiz_set_id: str
    user_id: str
    display_name: str
    department: str = ""


class AnswerPayload(BaseModel):
    """Payload schema for recording an answer."""

    value: str | list[str] | None = None


class SubmitPayload(BaseModel):
    """Payload schema for a manual submission."""

    confirm_partial: bool = False


def _get_hub_dependency(hub: SessionHub):
    def dependency() -> SessionHub:
        return hub

    return dependency


def _require_session(hub: SessionHub, session_id: str) -> ExamSession:
    try:
        return hub.get_session(session_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Session not found.") from exc


def _serialize_notice(notice: IntegrityNotice) -> dict[str, object]:
    return {
        "tamper_count": notice.tamper_count,
        "action": notice.action.value,
        "penalty_delta": notice.penalty_delta,
        "title": notice.title,
        "message": notice.message,
    }


def _serialize_snapshot(snapshot: SessionSnapshot) -> dict[str, object]:
    quiz_set = snapshot.quiz_set
    questions = []
    for question in snapshot.questions:
        answer = snapshot.answers.get(question.id)
        questions.append(
            {
                "id": question.id,
                "type": question.type.value,
                "html": renderer.render_prompt(question.text, question.image_url),
                "options": list(question.options),
                "points": question.points,
                "answer": list(answer) if isinstance(answer, tuple) else answer,
                "locked": question.id in snapshot.locked_question_ids,
                "is_correct": snapshot.feedback.get(question.id),
            }
        )
    return {
        "session_id": snapshot.session_id,
        "phase": snapshot.phase.name.lower(),
        "user": {
            "id": snapshot.user.id,
            "display_name": snapshot.user.display_name,
            "department": snapshot.user.department,
        },
        "quiz_set": {
            "id": quiz_set.id if quiz_set else None,
            "name": quiz_set.name if quiz_set else None,
            "is_survey": quiz_set.is_survey if quiz_set else False,
            "instant_feedback": quiz_set.instant_feedback if quiz_set else False,
        },
        "remaining_seconds": snapshot.remaining_seconds,
        "remaining_display": snapshot.remaining_display,
        "low_on_time": snapshot.is_low_on_time,
        "tamper_count": snapshot.tamper_count,
        "penalty_points": snapshot.penalty_points,
        "notices": [_serialize_notice(notice) for notice in snapshot.notices],
        "unanswered_count": snapshot.unanswered_count,
        "last_error": snapshot.last_error,
        "record_id": snapshot.record_id,
        "questions": questions,
    }


def _serialize_record(record_id: str, record: ScoreRecord) -> dict[str, object]:
    return {
        "record_id": record_id,
        "user_id": record.user_id,
        "user_name": record.user_name,
        "department": record.department,
        "quiz_set_id": record.quiz_set_id,
        "quiz_set_name": record.quiz_set_name,
        "raw_score": record.raw_score,
        "final_score": record.final_score,
        "total_possible_points": record.total_possible_points,
        "percentage": record.percentage,
        "answers": {
            question_id: list(answer) if isinstance(answer, tuple) else answer
            for question_id, answer in record.answers.items()
        },
        "question_order": list(record.question_order),
        "tamper_count": record.tamper_count,
        "penalty_points": record.penalty_points,
        "is_survey": record.is_survey,
        "created_at": record.created_at.isoformat(),
    }


def _serialize_review_item(item: ReviewItem) -> dict[str, object]:
    return {
        "question_id": item.question.id,
        "question_html": renderer.render_prompt(item.question.text, item.question.image_url),
        "user_answer_text": escape(item.user_answer_text),
        "correct_answer_text": escape(item.correct_answer_text),
        "is_correct": item.is_correct,
    }


def _serialize_score_list(entries: list[tuple[str, ScoreRecord]]) -> dict[str, object]:
    return {"scores": [_serialize_record(record_id, record) for record_id, record in entries]}


def create_api_app(hub: SessionHub) -> FastAPI:
    """Create a FastAPI application wired to the provided session hub."""
    app = FastAPI(title=f"{APP_NAME} API", version=APP_VERSION)
    hub_dep = _get_hub_dependency(hub)

    @app.get("/", response_class=HTMLResponse)
    def serve_student_page() -> str:
        return _STUDENT_PAGE_HTML

    @app.get("/quiz-sets")
    def list_quiz_sets(manager: SessionHub = Depends(hub_dep)) -> dict[str, object]:
        return {
            "quiz_sets": [
                {
                    "id": config.id,
                    "name": config.name,
                    "description": config.description,
                    "time_limit_minutes": config.time_limit_minutes,
                    "is_survey": config.is_survey,
                    "instant_feedback": config.instant_feedback,
                    "question_count": manager.get_question_count(config.id),
                }
                for config in manager.list_quiz_sets()
            ]
        }

    @app.post("/sessions", status_code=201)
    def start_session(
        payload: StartSessionPayload,
        manager: SessionHub = Depends(hub_dep),
    ) -> dict[str, object]:
        user_id = payload.user_id.strip()
        display_name = payload.display_name.strip()
        if not user_id or not display_name:
            raise HTTPException(status_code=422, detail="User id and name are required.")
        user = UserIdentity(id=user_id, display_name=display_name, department=payload.department.strip())
        try:
            session = manager.start_session(payload.quiz_set_id, user)
        except SessionLoadError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return _serialize_snapshot(session.snapshot())

    @app.get("/sessions/{session_id}")
    def get_session(session_id: str, manager: SessionHub = Depends(hub_dep)) -> dict[str, object]:
        return _serialize_snapshot(_require_session(manager, session_id).snapshot())

    @app.put("/sessions/{session_id}/answers/{question_id}")
    def set_answer(
        session_id: str,
        question_id: str,
        payload: AnswerPayload,
        manager: SessionHub = Depends(hub_dep),
    ) -> dict[str, object]:
        session = _require_session(manager, session_id)
        try:
            feedback = session.set_answer(question_id, payload.value)
        except KeyError as exc:
            raise HTTPException(status_code=422, detail="Unknown question id.") from exc
        return {
            "question_id": feedback.question_id,
            "accepted": feedback.accepted,
            "locked": feedback.locked,
            "is_correct": feedback.is_correct,
        }

    @app.post("/sessions/{session_id}/focus-lost")
    def report_focus_lost(session_id: str, manager: SessionHub = Depends(hub_dep)) -> dict[str, object]:
        session = _require_session(manager, session_id)
        before = session.snapshot().notices
        session.focus_signal.emit()
        snapshot = session.snapshot()
        new_notices = snapshot.notices[len(before):]
        return {
            "notice": _serialize_notice(new_notices[-1]) if new_notices else None,
            "tamper_count": snapshot.tamper_count,
            "penalty_points": snapshot.penalty_points,
            "phase": snapshot.phase.name.lower(),
        }

    @app.post("/sessions/{session_id}/submit")
    def submit(
        session_id: str,
        payload: SubmitPayload,
        manager: SessionHub = Depends(hub_dep),
    ) -> dict[str, object]:
        session = _require_session(manager, session_id)
        try:
            outcome = session.request_submit(confirm_partial=payload.confirm_partial)
        except SubmissionError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        if outcome.status is SubmissionStatus.NEEDS_CONFIRMATION:
            raise HTTPException(
                status_code=409,
                detail={
                    "message": UNANSWERED_CONFIRM_TEMPLATE.format(count=outcome.unanswered_count),
                    "unanswered_count": outcome.unanswered_count,
                },
            )
        return {
            "status": outcome.status.value,
            "trigger": outcome.trigger.value,
            "record_id": outcome.record_id or session.record_id,
        }

    @app.delete("/sessions/{session_id}")
    def abandon_session(session_id: str, manager: SessionHub = Depends(hub_dep)) -> dict[str, object]:
        session = _require_session(manager, session_id)
        return {"abandoned": session.abandon()}

    @app.get("/scores/{record_id}")
    def get_score(record_id: str, manager: SessionHub = Depends(hub_dep)) -> dict[str, object]:
        try:
            record = manager.get_score_record(record_id)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail="Score record not found.") from exc
        return _serialize_record(record_id, record)

    @app.get("/scores/{record_id}/review")
    def review_score(record_id: str, manager: SessionHub = Depends(hub_dep)) -> dict[str, object]:
        try:
            items = manager.review_score(record_id)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail="Score record not found.") from exc
        return {"record_id": record_id, "items": [_serialize_review_item(item) for item in items]}

    @app.get("/users/{user_id}/scores")
    def list_user_scores(user_id: str, manager: SessionHub = Depends(hub_dep)) -> dict[str, object]:
        return _serialize_score_list(manager.scores_for_user(user_id))

    @app.get("/quiz-sets/{quiz_set_id}/scores")
    def list_quiz_set_scores(quiz_set_id: str, manager: SessionHub = Depends(hub_dep)) -> dict[str, object]:
        try:
            entries = manager.scores_for_quiz_set(quiz_set_id)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail="Quiz set not found.") from exc
        return _serialize_score_list(entries)

    return app


def start_api_server(
    hub: SessionHub,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
) -> Thread:
    """Start the FastAPI server in a background daemon thread."""
    app = create_api_app(hub)
    config = uvicorn.Config(app=app, host=host, port=port, log_level="info")
    server = uvicorn.Server(config)

    def run_server() -> None:
        server.run()

    thread = Thread(target=run_server, name="ExamApiServer", daemon=True)
    thread.start()
    return thread
