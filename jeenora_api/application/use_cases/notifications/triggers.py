"""Notifications raised automatically by Hire portal events."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from sqlalchemy.orm import Session

from jeenora_api.domain.entities import (
    CHANNEL_DASHBOARD,
    CHANNEL_EMAIL,
    CHANNEL_WHATSAPP,
    JobSummary,
    Notification,
    NotificationTemplate,
    PlanSummary,
)
from jeenora_api.infrastructure.whatsapp import ConnectionStateTracker

from .service import NotificationService

TRIGGER_JOB_MATCH = "job_match"
TRIGGER_PAYMENT_SUCCESS = "payment_success"
TRIGGER_INTERVIEW_SCHEDULED = "interview_scheduled"
TRIGGER_SELECTION = "selection"
TRIGGER_PLAN_EXPIRY = "plan_expiry"
TRIGGER_URGENT_ALERT = "urgent_alert"


@dataclass(frozen=True)
class TriggerPolicy:
    type: str
    category: str
    channels: tuple[str, ...]
    whatsapp_when_ready: bool


TRIGGER_POLICIES: dict[str, TriggerPolicy] = {
    TRIGGER_JOB_MATCH: TriggerPolicy("job", "Job", (CHANNEL_DASHBOARD,), True),
    TRIGGER_PAYMENT_SUCCESS: TriggerPolicy(
        "payment", "Payment", (CHANNEL_DASHBOARD, CHANNEL_EMAIL), False
    ),
    TRIGGER_INTERVIEW_SCHEDULED: TriggerPolicy(
        "interview", "Interview", (CHANNEL_DASHBOARD, CHANNEL_EMAIL), True
    ),
    TRIGGER_SELECTION: TriggerPolicy("status", "Alert", (CHANNEL_DASHBOARD,), True),
    TRIGGER_PLAN_EXPIRY: TriggerPolicy(
        "payment", "Alert", (CHANNEL_DASHBOARD, CHANNEL_EMAIL), False
    ),
    TRIGGER_URGENT_ALERT: TriggerPolicy(
        "system", "Alert", (CHANNEL_DASHBOARD, CHANNEL_EMAIL), True
    ),
}


def _display_date(value: date | datetime | str) -> str:
    if isinstance(value, datetime):
        return value.strftime("%d %b %Y, %I:%M %p")
    if isinstance(value, date):
        return value.strftime("%d %b %Y")
    return str(value)


def _meta_date(value: date | datetime | str) -> str:
    return value.isoformat() if isinstance(value, (date, datetime)) else str(value)


class AutomatedNotificationTriggers:
    """Build templates for portal events and hand them to the fan-out service.

    The ``build_*`` methods are pure apart from reading WhatsApp readiness;
    the ``send_*`` methods notify a single user with the built template.
    """

    def __init__(self, service: NotificationService, tracker: ConnectionStateTracker) -> None:
        self._service = service
        self._tracker = tracker

    def channels_for(self, trigger: str) -> list[str]:
        policy = TRIGGER_POLICIES[trigger]
        channels = list(policy.channels)
        if policy.whatsapp_when_ready and self._tracker.is_ready():
            channels.append(CHANNEL_WHATSAPP)
        return channels

    def _template(self, trigger: str, **fields) -> NotificationTemplate:
        policy = TRIGGER_POLICIES[trigger]
        return NotificationTemplate(
            type=policy.type,
            category=policy.category,
            channels=self.channels_for(trigger),
            **fields,
        )

    # Builders ------------------------------------------------------------------

    def build_job_match(self, job: JobSummary) -> NotificationTemplate:
        return self._template(
            TRIGGER_JOB_MATCH,
            title="🎯 New Job Matched!",
            message=f"A new job in {job.location} suits your skill ({job.category}). Check it out!",
            link=f"/jobs/{job.id}",
            meta={"jobId": job.id, "location": job.location, "category": job.category},
        )

    def build_payment_success(
        self, plan: PlanSummary, expiry_date: date | datetime | str
    ) -> NotificationTemplate:
        return self._template(
            TRIGGER_PAYMENT_SUCCESS,
            title="🧾 Payment Success!",
            message=(
                f"Your {plan.name} plan is active till {_display_date(expiry_date)}. "
                "Enjoy premium features!"
            ),
            meta={
                "plan": plan.name,
                "expiryDate": _meta_date(expiry_date),
                "price": plan.price,
            },
        )

    def build_interview_scheduled(
        self, job: JobSummary, scheduled_for: date | datetime | str
    ) -> NotificationTemplate:
        return self._template(
            TRIGGER_INTERVIEW_SCHEDULED,
            title="💼 Interview Scheduled!",
            message=(
                f'Your interview for "{job.title}" is scheduled on '
                f"{_display_date(scheduled_for)}. Please be prepared!"
            ),
            link=f"/interviews/{job.id}",
            meta={
                "jobId": job.id,
                "interviewDate": _meta_date(scheduled_for),
                "company": job.company,
            },
        )

    def build_selection(self, company: str) -> NotificationTemplate:
        return self._template(
            TRIGGER_SELECTION,
            title="✅ Selection Update!",
            message=(
                f"Congratulations! You've been selected by {company}. "
                "They will contact you soon."
            ),
            meta={"company": company, "status": "selected"},
        )

    def build_plan_expiry(self, plan: PlanSummary, days_left: int) -> NotificationTemplate:
        return self._template(
            TRIGGER_PLAN_EXPIRY,
            title="⚠️ Plan Expiry Soon!",
            message=(
                f"Your {plan.name} plan will expire in {days_left} days. "
                "Renew to continue premium features."
            ),
            meta={"plan": plan.name, "daysLeft": days_left, "isExpiryReminder": True},
        )

    def build_urgent_alert(self, title: str, message: str) -> NotificationTemplate:
        return self._template(
            TRIGGER_URGENT_ALERT,
            title=f"🚨 {title}",
            message=message,
            meta={"urgent": True, "priority": "high"},
        )

    # Senders -------------------------------------------------------------------

    async def _send(
        self, session: Session, user_id: int, template: NotificationTemplate
    ) -> Notification:
        return await self._service.notify(
            session,
            user_id,
            template.title,
            template.message,
            type=template.type,
            category=template.category,
            link=template.link,
            channels=template.channels,
            meta=template.meta,
        )

    async def send_job_match(self, session: Session, user_id: int, job: JobSummary) -> Notification:
        return await self._send(session, user_id, self.build_job_match(job))

    async def send_payment_success(
        self,
        session: Session,
        user_id: int,
        plan: PlanSummary,
        expiry_date: date | datetime | str,
    ) -> Notification:
        return await self._send(session, user_id, self.build_payment_success(plan, expiry_date))

    async def send_interview_scheduled(
        self,
        session: Session,
        user_id: int,
        job: JobSummary,
        scheduled_for: date | datetime | str,
    ) -> Notification:
        return await self._send(
            session, user_id, self.build_interview_scheduled(job, scheduled_for)
        )

    async def send_selection(self, session: Session, user_id: int, company: str) -> Notification:
        return await self._send(session, user_id, self.build_selection(company))

    async def send_plan_expiry(
        self, session: Session, user_id: int, plan: PlanSummary, days_left: int
    ) -> Notification:
        return await self._send(session, user_id, self.build_plan_expiry(plan, days_left))

    async def send_urgent_alert(
        self, session: Session, user_id: int, title: str, message: str
    ) -> Notification:
        return await self._send(session, user_id, self.build_urgent_alert(title, message))


__all__ = [
    "AutomatedNotificationTriggers",
    "TRIGGER_INTERVIEW_SCHEDULED",
    "TRIGGER_JOB_MATCH",
    "TRIGGER_PAYMENT_SUCCESS",
    "TRIGGER_PLAN_EXPIRY",
    "TRIGGER_POLICIES",
    "TRIGGER_SELECTION",
    "TRIGGER_URGENT_ALERT",
    "TriggerPolicy",
]
