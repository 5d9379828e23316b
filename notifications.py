# notifications.py - WhatsApp gateway notifier and background dispatch after commit
import logging
import uuid
from datetime import datetime, timedelta
from typing import List, Optional

import httpx
from apscheduler.schedulers.background import BackgroundScheduler

import config
from constants import (
    BIRTH_DATE,
    FULL_NAME,
    MONTHLY_COMMITMENTS,
    MONTHLY_SALARY,
    NATIONAL_ID,
    SERVICE_DURATION,
    STATUS_APPROVED,
    UNSPECIFIED_REASON,
)
from db import session_scope
from phone import PhoneFormatError, normalize_phone
from submissions import get_submission, phone_of

logger = logging.getLogger("form-backend.notifications")

DEFAULT_CUSTOMER_NAME = "عميل محزم"


def _value(values, field_name, default=UNSPECIFIED_REASON):
    for v in values:
        if v.field_name_at_submission == field_name and v.field_value:
            return v.field_value
    return default


def _full_name(values) -> str:
    for v in values:
        if "name" in v.field_name_at_submission.lower() or "اسم" in v.label_at_submission:
            if v.field_value:
                return v.field_value
    return DEFAULT_CUSTOMER_NAME


class TransientDeliveryError(Exception):
    """The gateway may accept the same message if it is sent again later."""


class LoggingNotifier:
    """Used when no gateway token is configured; nothing is sent."""

    def notify_approved(self, submission, values) -> bool:
        logger.warning("Messaging gateway not configured; approval for submission %s not sent",
                       submission.submission_id)
        return False

    def notify_rejected(self, submission, values) -> bool:
        logger.warning("Messaging gateway not configured; rejection for submission %s not sent",
                       submission.submission_id)
        return False

    def close(self):
        pass


class MessagingGatewayNotifier:
    """Sends WhatsApp template messages through the messaging gateway HTTP API."""

    def __init__(self, client: Optional[httpx.Client] = None, base_url: str = config.MESSAGING_API_URL,
                 token: Optional[str] = config.MESSAGING_API_TOKEN,
                 timeout: float = config.MESSAGING_TIMEOUT_SECONDS):
        if client is None:
            if not token:
                raise RuntimeError("Set MESSAGING_API_TOKEN in .env")
            client = httpx.Client(
                base_url=base_url,
                timeout=httpx.Timeout(timeout),
                headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
            )
        self._client = client

    def _post(self, path: str, payload: dict, phone: str) -> bool:
        """True when accepted, False when refused; raises TransientDeliveryError if worth retrying."""
        try:
            resp = self._client.post(path, json=payload)
        except httpx.HTTPError as e:
            logger.error("Gateway call %s failed for %s: %s", path, phone, e)
            raise TransientDeliveryError(f"{path}: {e}") from e
        if resp.is_success:
            return True
        logger.warning("Gateway call %s for %s returned %s: %s", path, phone, resp.status_code, resp.text)
        if resp.is_server_error:
            raise TransientDeliveryError(f"{path}: HTTP {resp.status_code}")
        return False

    def create_subscriber(self, phone: str, full_name: str) -> bool:
        parts = full_name.split()
        payload = {
            "first_name": parts[0] if parts else "Unknown",
            "last_name": " ".join(parts[1:]),
            "name": full_name,
            "phone": phone,
            "gender": "male",
        }
        logger.info("Creating subscriber for phone: %s, name: %s", phone, full_name)
        try:
            return self._post("/subscriber/create", payload, phone)
        except TransientDeliveryError:
            return False

    def send_template(self, phone: str, template: str, params: List[str]) -> bool:
        body = {f"BODY_{i}": p for i, p in enumerate(params, start=1)}
        body["QUICK_REPLY_1"] = config.MESSAGING_QUICK_REPLY_ID
        payload = {
            "user_id": phone,
            "create_if_not_found": "yes",
            "content": {
                "namespace": config.MESSAGING_TEMPLATE_NAMESPACE,
                "name": template,
                "lang": config.MESSAGING_TEMPLATE_LANG,
                "params": body,
            },
        }
        logger.info("Sending WhatsApp template %s to %s", template, phone)
        return self._post("/subscriber/send-whatsapp-template-by-user-id", payload, phone)

    def _prepare(self, submission, values):
        raw_phone = phone_of(values)
        if not raw_phone:
            logger.warning("No phone number found for submission %s", submission.submission_id)
            return None
        try:
            phone = normalize_phone(raw_phone)
        except PhoneFormatError as e:
            logger.warning("Cannot notify submission %s: %s", submission.submission_id, e)
            return None
        if not self.create_subscriber(phone, _full_name(values)):
            logger.warning("Failed to create subscriber for %s, continuing with template send", phone)
        return phone

    def notify_approved(self, submission, values) -> bool:
        phone = self._prepare(submission, values)
        if phone is None:
            return False
        params = [
            str(submission.submission_id),
            _value(values, FULL_NAME),
            phone,
            _value(values, NATIONAL_ID),
            _value(values, BIRTH_DATE),
            _value(values, MONTHLY_SALARY),
            _value(values, MONTHLY_COMMITMENTS),
            _value(values, SERVICE_DURATION, default="جديد"),
        ]
        return self.send_template(phone, config.MESSAGING_APPROVAL_TEMPLATE, params)

    def notify_rejected(self, submission, values) -> bool:
        phone = self._prepare(submission, values)
        if phone is None:
            return False
        params = [str(submission.submission_id), submission.rejection_reason or "تم رفض طلبك"]
        return self.send_template(phone, config.MESSAGING_REJECTION_TEMPLATE, params)

    def close(self):
        self._client.close()


def build_notifier():
    if config.MESSAGING_API_TOKEN:
        return MessagingGatewayNotifier()
    return LoggingNotifier()


class NotificationDispatcher:
    """Runs notifications as APScheduler jobs so they never block or fail a request."""

    def __init__(self, notifier, session_factory=None, scheduler: Optional[BackgroundScheduler] = None,
                 max_attempts: int = config.NOTIFICATION_MAX_ATTEMPTS,
                 backoff_seconds: float = config.NOTIFICATION_RETRY_BACKOFF_SECONDS):
        self.notifier = notifier
        self.session_factory = session_factory
        self.scheduler = scheduler or BackgroundScheduler()
        self.max_attempts = max(1, max_attempts)
        self.backoff_seconds = max(0.0, backoff_seconds)

    def start(self):
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("[STARTUP] Notification scheduler started")

    def shutdown(self):
        if self.scheduler.running:
            self.scheduler.shutdown()
            logger.info("[SHUTDOWN] Notification scheduler stopped")

    def _schedule(self, submission_id: int, status: str, attempt: int, run_date: Optional[datetime] = None):
        kwargs = {"run_date": run_date} if run_date is not None else {}
        self.scheduler.add_job(
            self.deliver, "date", args=[submission_id, status, attempt],
            id=f"notify-{submission_id}-{uuid.uuid4().hex[:8]}", misfire_grace_time=None, **kwargs,
        )

    def dispatch(self, submission_id: int, status: str):
        """Queue a notification job; failures to queue are logged, not raised."""
        try:
            self._schedule(submission_id, status, 1)
        except Exception:
            logger.exception("Failed to queue %s notification for submission %s", status, submission_id)

    def retry_delay(self, attempt: int) -> timedelta:
        """Delay before the attempt after ``attempt``; doubles each time."""
        return timedelta(seconds=self.backoff_seconds * 2 ** (attempt - 1))

    def deliver(self, submission_id: int, status: str, attempt: int = 1) -> bool:
        """Make one delivery attempt.

        Gateway outages and 5xx answers are retried later as a new scheduler job. A notifier that
        reports "not sent" (no gateway configured, no usable phone, a refused request) is final.
        """
        try:
            with session_scope(self.session_factory) as sess:
                submission = get_submission(sess, submission_id)
                if submission is None:
                    logger.warning("Submission %s vanished before notification", submission_id)
                    return False
                values = list(submission.values)
                if status == STATUS_APPROVED:
                    sent = self.notifier.notify_approved(submission, values)
                else:
                    sent = self.notifier.notify_rejected(submission, values)
        except TransientDeliveryError as e:
            logger.warning("Attempt %d/%d to notify submission %s failed: %s",
                           attempt, self.max_attempts, submission_id, e)
            if attempt >= self.max_attempts:
                logger.error("Giving up on %s notification for submission %s", status, submission_id)
                return False
            delay = self.retry_delay(attempt)
            try:
                self._schedule(submission_id, status, attempt + 1, run_date=datetime.now() + delay)
            except Exception:
                logger.exception("Failed to requeue %s notification for submission %s", status, submission_id)
                return False
            logger.info("Retrying %s notification for submission %s in %ss",
                        status, submission_id, delay.total_seconds())
            return False
        except Exception:
            logger.exception("Notifying submission %s raised; not retrying", submission_id)
            return False

        if sent:
            logger.info("Sent %s notification for submission %s", status, submission_id)
            return True
        logger.warning("%s notification for submission %s was not sent", status, submission_id)
        return False
