"""Lead capture and result notifications.

The lead insert is the primary effect and gates the move to results. If it
fails, the email function is invoked synchronously once as a backup, since it
can create the lead itself. When the insert succeeds the same function is
dispatched in the background and its failures are only logged.
"""
from __future__ import annotations

import base64
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Tuple

import httpx
from email_validator import EmailNotValidError, validate_email

from .errors import BackendError, InvalidEmail, LeadCaptureError
from .flow import FlowController
from .localization import get_copy, resolve_text
from .report import generate_pdf_report
from .scoring import ScoreSummary

logger = logging.getLogger(__name__)

MAX_EMAIL_LENGTH = 255

EMAIL_FUNCTIONS = {
    "emotional": "send-emotional-user-email",
    "hypothesis": "send-hypothesis-user-email",
}
DEFAULT_EMAIL_FUNCTION = "send-quiz-results"


def email_function_name(quiz_type: Optional[str]) -> str:
    return EMAIL_FUNCTIONS.get(quiz_type or "", DEFAULT_EMAIL_FUNCTION)


def validate_email_address(value: Optional[str]) -> str:
    candidate = (value or "").strip()
    if not candidate or len(candidate) > MAX_EMAIL_LENGTH:
        raise InvalidEmail("Please enter a valid email address")
    try:
        return validate_email(candidate, check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise InvalidEmail(str(e)) from e


@dataclass(frozen=True)
class LeadRecord:
    email: str
    score: int
    total_questions: int
    result_category: str
    openness_score: Optional[int]
    language: str
    quiz_id: str
    quiz_type: str = "standard"
    session_id: Optional[str] = None
    feedback_new_learnings: Optional[str] = None
    feedback_action_plan: Optional[str] = None

    def to_row(self) -> Dict[str, Any]:
        row = asdict(self)
        row.pop("quiz_type")
        if self.quiz_type != "hypothesis":
            for key in ("session_id", "feedback_new_learnings", "feedback_action_plan"):
                row.pop(key)
        return row


class LeadStore:
    def insert(self, lead: LeadRecord) -> str:
        """Persist a lead and return its id; raise BackendError on failure."""
        raise NotImplementedError


class InMemoryLeadStore(LeadStore):
    def __init__(self):
        self.leads: Dict[str, LeadRecord] = {}

    def insert(self, lead: LeadRecord) -> str:
        lead_id = f"lead_{len(self.leads) + 1}"
        self.leads[lead_id] = lead
        return lead_id


def _auth_headers(api_key: Optional[str]) -> Dict[str, str]:
    if not api_key:
        return {}
    return {"apikey": api_key, "Authorization": f"Bearer {api_key}"}


class RestLeadStore(LeadStore):
    """Inserts rows through the hosted backend's REST interface."""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        table: str = "quiz_leads",
        hypothesis_table: str = "hypothesis_leads",
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ):
        self.table = table
        self.hypothesis_table = hypothesis_table
        self.client = client or httpx.Client(base_url=base_url, timeout=timeout)
        self.headers = {"Prefer": "return=representation", **_auth_headers(api_key)}

    def insert(self, lead: LeadRecord) -> str:
        table = self.hypothesis_table if lead.quiz_type == "hypothesis" else self.table
        try:
            response = self.client.post(f"/rest/v1/{table}", json=lead.to_row(), headers=self.headers)
            response.raise_for_status()
            rows = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise BackendError(f"lead insert into {table} failed: {e}") from e
        row = rows[0] if isinstance(rows, list) and rows else rows
        if not isinstance(row, dict) or not row.get("id"):
            raise BackendError(f"lead insert into {table} returned no id")
        return str(row["id"])


class FunctionClient:
    """Invokes serverless functions on the hosted backend."""

    def __init__(self, base_url: str, api_key: Optional[str] = None, timeout: float = 10.0, client: Optional[httpx.Client] = None):
        self.client = client or httpx.Client(base_url=base_url, timeout=timeout)
        self.headers = _auth_headers(api_key)

    def invoke(self, name: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self.client.post(f"/functions/v1/{name}", json=payload, headers=self.headers)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise BackendError(f"function {name} failed: {e}") from e
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}


class LoggingFunctionClient(FunctionClient):
    """Development stand-in used when no backend is configured."""

    def __init__(self):
        self.calls: List[tuple] = []

    def invoke(self, name: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append((name, payload))
        logger.info("Function %s invoked for %s (no backend configured)", name, payload.get("email"))
        return {"leadId": payload.get("existingLeadId")}


class NotificationDispatcher:
    """Runs function invocations off the request path."""

    def __init__(self, functions: FunctionClient, workers: int = 2):
        self.functions = functions
        self.executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="notify")

    def dispatch(self, name: str, payload: Dict[str, Any]) -> Future:
        future = self.executor.submit(self.functions.invoke, name, payload)
        future.add_done_callback(lambda f: self._log_failure(name, f))
        return future

    @staticmethod
    def _log_failure(name: str, future: Future) -> None:
        error = future.exception()
        if error is not None:
            logger.error("Notification %s failed: %s", name, error)

    def shutdown(self, wait: bool = True) -> None:
        self.executor.shutdown(wait=wait)


def build_lead(flow: FlowController, summary: ScoreSummary, email: str, language: str) -> LeadRecord:
    state = flow.state
    config = flow.config
    title = resolve_text(summary.tier.title, language) if summary.tier else ""
    return LeadRecord(
        email=email,
        score=summary.score,
        total_questions=summary.max_score,
        result_category=title or get_copy(language)["result"]["default_title"],
        openness_score=summary.openness_score if flow.has_open_mindedness else None,
        language=language,
        quiz_id=config.id,
        quiz_type=config.quiz_type,
        session_id=state.session_id,
        feedback_new_learnings=state.feedback_new_learnings or None,
        feedback_action_plan=state.feedback_action_plan or None,
    )


def build_notification(
    flow: FlowController,
    summary: ScoreSummary,
    lead: LeadRecord,
    lead_id: Optional[str],
    report: Optional[bytes] = None,
) -> Dict[str, Any]:
    language = lead.language
    config = flow.config
    tier = summary.tier
    payload: Dict[str, Any] = {
        "email": lead.email,
        "quizId": config.id,
        "quizSlug": config.slug,
        "language": language,
        "existingLeadId": lead_id,
    }
    if summary.quiz_type == "emotional":
        payload.update(averageScore=summary.average, emotionalLevel=summary.level)
    else:
        payload.update(
            totalScore=summary.score,
            maxScore=summary.max_score,
            resultTitle=lead.result_category,
            resultDescription=resolve_text(tier.description, language) if tier else "",
            insights=[resolve_text(item, language) for item in tier.insights] if tier else [],
            opennessScore=summary.openness_score,
            opennessMaxScore=summary.openness_max,
            opennessTitle=resolve_text(summary.openness_tier.title, language) if summary.openness_tier else "",
            opennessDescription=resolve_text(summary.openness_tier.description, language)
            if summary.openness_tier
            else "",
        )
    if summary.quiz_type == "hypothesis":
        payload.update(
            correctAnswers=summary.correct,
            totalQuestions=summary.total_questions,
            percentage=summary.percentage,
            sessionId=lead.session_id,
            feedbackNewLearnings=lead.feedback_new_learnings,
            feedbackActionPlan=lead.feedback_action_plan,
        )
    if report:
        payload["attachments"] = [
            {
                "filename": f"{config.slug}-results.pdf",
                "content": base64.b64encode(report).decode("ascii"),
            }
        ]
    return payload


class LeadCapture:
    def __init__(self, store: LeadStore, functions: FunctionClient, dispatcher: NotificationDispatcher, attach_report: bool = True):
        self.store = store
        self.functions = functions
        self.dispatcher = dispatcher
        self.attach_report = attach_report

    def _report_bytes(self, flow: FlowController, summary: ScoreSummary, language: str) -> Optional[bytes]:
        if not self.attach_report:
            return None
        try:
            return generate_pdf_report(flow.content, summary, flow.state.ledger, language).getvalue()
        except Exception:
            logger.exception("Report for quiz %s could not be built; sending without attachment", flow.config.id)
            return None

    def submit(
        self,
        flow: FlowController,
        email: str,
        language: str,
        feedback: Optional[Tuple[str, str]] = None,
    ) -> Optional[str]:
        """Validate, persist and notify; moves the flow to results on success.

        Raises InvalidEmail before anything is sent or stored on the flow, and
        LeadCaptureError when neither the insert nor its backup succeeded. The
        flow stays on the email stage in both cases. Once a lead exists the
        flow moves to results whatever happens to the notification.
        """
        address = validate_email_address(email)
        if feedback is not None:
            flow.set_feedback(*feedback)
        flow.set_email(address)
        summary = flow.summary()
        lead = build_lead(flow, summary, address, language)
        function_name = email_function_name(lead.quiz_type)

        try:
            lead_id: Optional[str] = self.store.insert(lead)
        except BackendError as e:
            logger.error("Lead insert failed for quiz %s: %s", lead.quiz_id, e)
        else:
            logger.info("Lead %s saved for quiz %s", lead_id, lead.quiz_id)
            flow.complete_email(address, lead_id)
            payload = build_notification(flow, summary, lead, lead_id, self._report_bytes(flow, summary, language))
            self.dispatcher.dispatch(function_name, payload)
            return lead_id

        payload = build_notification(flow, summary, lead, None, self._report_bytes(flow, summary, language))
        try:
            response = self.functions.invoke(function_name, payload)
        except BackendError as e:
            logger.error("Backup lead creation via %s failed: %s", function_name, e)
            raise LeadCaptureError("lead could not be saved") from e
        lead_id = response.get("leadId") or response.get("lead_id")
        logger.info("Lead for quiz %s created by %s", lead.quiz_id, function_name)
        flow.complete_email(address, lead_id)
        return lead_id
