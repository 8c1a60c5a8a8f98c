from __future__ import annotations

import logging
from typing import Callable, Dict, List

from flask import Flask, abort, g, redirect, render_template, request, send_file, session, url_for

from quiz_funnel.config import FunnelConfig, load_config
from quiz_funnel.errors import InvalidEmail, InvalidTransition, LeadCaptureError
from quiz_funnel.flow import FlowController, SessionState
from quiz_funnel.leads import (
    FunctionClient,
    InMemoryLeadStore,
    LeadCapture,
    LoggingFunctionClient,
    NotificationDispatcher,
    RestLeadStore,
)
from quiz_funnel.localization import DEFAULT_LANGUAGE, LANGUAGES, get_copy, resolve_language, resolve_text
from quiz_funnel.logging_setup import configure_logging
from quiz_funnel.models import QuizContent
from quiz_funnel.report import generate_pdf_report
from quiz_funnel.store import JsonContentStore

CONFIG = load_config()
configure_logging(CONFIG.log_level)
logger = logging.getLogger(__name__)


def build_lead_capture(config: FunnelConfig) -> LeadCapture:
    backend = config.backend
    if backend.enabled:
        store = RestLeadStore(backend.url, backend.api_key, backend.lead_table, timeout=backend.timeout_seconds)
        functions = FunctionClient(backend.url, backend.api_key, timeout=backend.timeout_seconds)
    else:
        logger.warning("No backend configured; leads are kept in memory")
        store = InMemoryLeadStore()
        functions = LoggingFunctionClient()
    return LeadCapture(store, functions, NotificationDispatcher(functions, config.notification_workers))


app = Flask(__name__)
app.config["SECRET_KEY"] = CONFIG.secret_key
app.config["DEFAULT_QUIZ"] = CONFIG.default_quiz
app.config["CONTENT_STORE"] = JsonContentStore(CONFIG.content_dir)
app.config["LEAD_CAPTURE"] = build_lead_capture(CONFIG)


def _session_key(slug: str) -> str:
    return f"quiz:{slug}"


def load_quiz(slug: str) -> QuizContent:
    content = app.config["CONTENT_STORE"].load(slug)
    if content is None:
        abort(404)
    g.quiz = content
    g.language = resolve_language(
        request.values.get("lang"), content.config.languages, content.config.primary_language
    )
    return content


def load_flow(content: QuizContent) -> FlowController:
    data = session.get(_session_key(content.config.slug))
    state = SessionState.from_dict(data) if data else SessionState()
    return FlowController(content, state)


def save_flow(flow: FlowController) -> None:
    session[_session_key(flow.config.slug)] = flow.state.to_dict()


def quiz_redirect(slug: str):
    return redirect(url_for("quiz_page", slug=slug, lang=g.language))


def run_action(slug: str, action: Callable[[FlowController], None]):
    content = load_quiz(slug)
    flow = load_flow(content)
    try:
        action(flow)
    except InvalidTransition as e:
        # stale form (browser back, double submit): show the current stage instead
        logger.info("Ignoring %s for quiz %s", e, slug)
    else:
        save_flow(flow)
    return quiz_redirect(slug)


def build_language_switcher(language: str) -> List[Dict[str, object]]:
    quiz = getattr(g, "quiz", None)
    codes = quiz.config.languages if quiz else (DEFAULT_LANGUAGE,)
    links = []
    for code in codes:
        if quiz is not None:
            url = url_for("quiz_page", slug=quiz.config.slug, lang=code)
        else:
            url = url_for("index", lang=code)
        label = LANGUAGES.get(code, {}).get("label", code.upper())
        links.append({"code": code, "label": label, "url": url, "active": code == language})
    return links


@app.context_processor
def inject_language():
    language = getattr(g, "language", DEFAULT_LANGUAGE)
    return {
        "language": language,
        "copy": get_copy(language),
        "language_switcher": build_language_switcher(language),
        "t": lambda text_map, fallback=None: resolve_text(text_map, language, fallback),
    }


def render_stage(flow: FlowController, error: str | None = None, status: int = 200):
    state = flow.state
    config = flow.config
    context = {"quiz": config, "flow": flow, "state": state, "error": error}

    if state.stage == "welcome":
        template = "welcome.html"
    elif state.stage == "quiz" and flow.is_hypothesis:
        template = "hypothesis_page.html"
        context.update(page=flow.current_page(), questions=flow.page_questions())
    elif state.stage == "quiz":
        template = "question.html"
        question = flow.current_question()
        context.update(
            question=question,
            answers=flow.display_answers(question),
            selected=flow.selected_answer(),
        )
    elif state.stage == "mindedness":
        template = "mindedness.html"
        context.update(open_mindedness=flow.content.open_mindedness, selected=set(state.open_mindedness))
    elif state.stage == "email":
        template = "email.html"
    else:
        template = "result.html"
        context.update(summary=flow.summary(), level_names=get_copy(g.language)["emotional_levels"])

    save_flow(flow)
    return render_template(template, **context), status


@app.get("/")
def index():
    lang = request.args.get("lang")
    return redirect(url_for("quiz_page", slug=app.config["DEFAULT_QUIZ"], lang=lang))


@app.get("/q/<slug>")
def quiz_page(slug: str):
    content = load_quiz(slug)
    return render_stage(load_flow(content))


@app.post("/q/<slug>/start")
def start_quiz(slug: str):
    return run_action(slug, lambda flow: flow.start())


@app.post("/q/<slug>/answer")
def answer_question(slug: str):
    answer_id = request.form.get("answer_id")
    if not answer_id:
        # nothing selected; the page keeps the visitor where they are
        return redirect(url_for("quiz_page", slug=slug, lang=request.values.get("lang")))
    return run_action(slug, lambda flow: flow.select_answer(answer_id))


@app.post("/q/<slug>/back")
def previous_question(slug: str):
    return run_action(slug, lambda flow: flow.back())


@app.post("/q/<slug>/mindedness")
def open_mindedness(slug: str):
    selected = request.form.getlist("options")
    go_back = request.form.get("action") == "back"

    def action(flow: FlowController) -> None:
        flow.set_open_mindedness(selected)
        if go_back:
            flow.mindedness_back()
        else:
            flow.mindedness_next()

    return run_action(slug, action)


@app.post("/q/<slug>/page")
def submit_page(slug: str):
    content = load_quiz(slug)
    flow = load_flow(content)
    answers = {}
    for question in flow.page_questions():
        value = request.form.get(f"h_{question.id}")
        if value in ("true", "false"):
            answers[question.id] = value == "true"
    try:
        complete = flow.submit_page(answers)
    except InvalidTransition as e:
        logger.info("Ignoring %s for quiz %s", e, slug)
        return quiz_redirect(slug)
    if not complete:
        return render_stage(flow, error=get_copy(g.language)["errors"]["page_incomplete"], status=400)
    save_flow(flow)
    return quiz_redirect(slug)


@app.post("/q/<slug>/next-page")
def next_page(slug: str):
    return run_action(slug, lambda flow: flow.next_page())


@app.post("/q/<slug>/email")
def capture_email(slug: str):
    content = load_quiz(slug)
    flow = load_flow(content)
    if flow.state.stage != "email":
        return quiz_redirect(slug)

    errors = get_copy(g.language)["errors"]
    feedback = None
    if flow.is_hypothesis:
        feedback = (
            request.form.get("feedback_new_learnings", ""),
            request.form.get("feedback_action_plan", ""),
        )
    try:
        app.config["LEAD_CAPTURE"].submit(flow, request.form.get("email", ""), g.language, feedback)
    except InvalidEmail:
        return render_stage(flow, error=errors["invalid_email"], status=400)
    except LeadCaptureError:
        return render_stage(flow, error=errors["email_failed"], status=502)
    save_flow(flow)
    return quiz_redirect(slug)


@app.post("/q/<slug>/reset")
def reset_quiz(slug: str):
    return run_action(slug, lambda flow: flow.reset())


@app.get("/q/<slug>/report.pdf")
def export_pdf(slug: str):
    content = load_quiz(slug)
    flow = load_flow(content)
    if flow.state.stage != "results":
        return quiz_redirect(slug)

    pdf_buffer = generate_pdf_report(content, flow.summary(), flow.state.ledger, g.language)
    pdf_buffer.seek(0)
    return send_file(
        pdf_buffer,
        mimetype="application/pdf",
        as_attachment=True,
        download_name=f"{slug}-results.pdf",
    )


@app.errorhandler(404)
def not_found(error):
    language = getattr(g, "language", None) or resolve_language(request.args.get("lang"))
    g.language = language
    return render_template("not_found.html"), 404


@app.get("/health")
def health_check():
    return {"status": "ok"}


if __name__ == "__main__":
    app.run(debug=True, port=5001)
