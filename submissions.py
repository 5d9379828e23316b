# submissions.py - submission store: create, status updates, soft delete and paged queries
import datetime
import logging
import math
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence
from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session, selectinload

from constants import STATUS_APPROVED, STATUS_DELETED, STATUS_REJECTED, SUBMISSION_STATUSES
from exceptions import InvalidStatus
from models import Form, FormSubmission, FormSubmissionValue
from schemas import FieldValueOut, SubmissionOut, SubmissionPage, SubmissionSummary, ValueSummary

logger = logging.getLogger("form-backend.submissions")

PREDEFINED_LABELS = {
    "name": "Name",
    "fullname": "Name",
    "email": "Email",
    "phone": "Phone Number",
    "phonenumber": "Phone Number",
    "address": "Address",
    "birthdate": "Birth Date",
    "age": "Age",
    "gender": "Gender",
    "nationality": "Nationality",
    "nationalid": "National ID",
    "maritalstatus": "Marital Status",
    "citizenshipstatus": "Citizenship Status",
    "hasmortgage": "Has Mortgage",
    "monthlysalary": "Monthly Salary",
    "monthlycommitments": "Monthly Commitments",
    "serviceduration": "Service Duration",
    "jobsector": "Job Sector",
}


@dataclass
class SubmissionFilter:
    form_id: Optional[int] = None
    status: Optional[str] = None
    from_date: Optional[datetime.datetime] = None
    to_date: Optional[datetime.datetime] = None
    form_is_active: Optional[bool] = None
    reason_contains: Optional[str] = None
    marker_field: Optional[str] = None
    marker_value: Optional[str] = None

    def conditions(self) -> list:
        conds = []
        if self.form_id is not None:
            conds.append(FormSubmission.form_id == self.form_id)
        if self.status:
            conds.append(FormSubmission.status == self.status)
        if self.from_date is not None:
            conds.append(FormSubmission.submitted_date >= self.from_date)
        if self.to_date is not None:
            conds.append(FormSubmission.submitted_date <= self.to_date)
        if self.form_is_active is not None:
            conds.append(FormSubmission.form.has(Form.is_active == self.form_is_active))
        if self.reason_contains:
            conds.append(or_(
                FormSubmission.rejection_reason.contains(self.reason_contains, autoescape=True),
                FormSubmission.rejection_reason_en.contains(self.reason_contains, autoescape=True),
            ))
        if self.marker_field is not None:
            conds.append(FormSubmission.values.any(and_(
                FormSubmissionValue.field_name_at_submission == self.marker_field,
                FormSubmissionValue.field_value == self.marker_value,
            )))
        return conds


def english_label(field_name: str) -> str:
    """English display label for a field name: known names first, else split camelCase."""
    known = PREDEFINED_LABELS.get(field_name.lower())
    if known:
        return known
    spaced = re.sub(r"([a-z])([A-Z])", r"\1 \2", field_name).replace("_", " ").replace("-", " ")
    return " ".join(word[:1].upper() + word[1:].lower() for word in spaced.split())


def _find_value(values: Sequence[FormSubmissionValue], *terms) -> Optional[FormSubmissionValue]:
    for v in values:
        name = v.field_name_at_submission.lower()
        if any(t in name or t in v.label_at_submission for t in terms):
            return v
    return None


def phone_of(values) -> Optional[str]:
    v = _find_value(values, "phone", "mobile", "جوال", "هاتف")
    return v.field_value if v else None


def preview_of(values) -> str:
    parts = []
    name = _find_value(values, "name", "اسم")
    phone = _find_value(values, "phone", "mobile", "جوال", "هاتف")
    if name is not None:
        parts.append(name.field_value)
    if phone is not None and phone is not name:
        parts.append(phone.field_value)
    return " - ".join(parts)


def value_summary(values) -> List[ValueSummary]:
    return [
        ValueSummary(ar_label=v.label_at_submission, en_label=english_label(v.field_name_at_submission), value=v.field_value)
        for v in sorted(values, key=lambda v: v.field_id)
    ]


def to_summary(submission: FormSubmission) -> SubmissionSummary:
    return SubmissionSummary(
        submission_id=submission.submission_id,
        form_id=submission.form_id,
        form_name=submission.form.name,
        submitted_date=submission.submitted_date,
        status=submission.status,
        submitted_by=submission.submitted_by,
        phone_number=phone_of(submission.values),
        rejection_reason=submission.rejection_reason,
        rejection_reason_en=submission.rejection_reason_en,
        preview=preview_of(submission.values),
        values=value_summary(submission.values),
    )


def to_detail(submission: FormSubmission) -> SubmissionOut:
    return SubmissionOut(
        submission_id=submission.submission_id,
        form_id=submission.form_id,
        form_name=submission.form.name,
        submitted_date=submission.submitted_date,
        status=submission.status,
        submitted_by=submission.submitted_by,
        phone_number=phone_of(submission.values),
        rejection_reason=submission.rejection_reason,
        rejection_reason_en=submission.rejection_reason_en,
        values=[
            FieldValueOut(
                field_name=v.field_name_at_submission,
                label=v.label_at_submission,
                value=v.field_value,
                field_type=v.field_type_at_submission,
            )
            for v in sorted(submission.values, key=lambda v: v.field_id)
        ],
    )


def create_submission(db_sess: Session, submission: FormSubmission, values: List[FormSubmissionValue]) -> int:
    """Stage a submission and its snapshot values; the caller owns the transaction."""
    db_sess.add(submission)
    db_sess.flush()
    for v in values:
        v.submission_id = submission.submission_id
        submission.values.append(v)
    db_sess.flush()
    return submission.submission_id


def get_submission(db_sess: Session, submission_id: int) -> Optional[FormSubmission]:
    stmt = (
        select(FormSubmission)
        .options(selectinload(FormSubmission.values), selectinload(FormSubmission.form))
        .where(FormSubmission.submission_id == submission_id)
    )
    return db_sess.execute(stmt).scalars().first()


def get_submission_detail(db_sess: Session, submission_id: int) -> Optional[SubmissionOut]:
    submission = get_submission(db_sess, submission_id)
    return to_detail(submission) if submission is not None else None


def update_status(db_sess: Session, submission_id: int, status: str, reason_ar: Optional[str] = None,
                  reason_en: Optional[str] = None, dispatcher=None) -> Optional[FormSubmission]:
    """Set a submission's status; repeated calls with the same arguments are no-ops.

    Deleted submissions are not guarded and may be moved back to any status.
    """
    if status not in SUBMISSION_STATUSES:
        raise InvalidStatus(status)
    submission = get_submission(db_sess, submission_id)
    if submission is None:
        return None

    old_status = submission.status
    try:
        submission.status = status
        if status == STATUS_APPROVED:
            submission.rejection_reason = None
            submission.rejection_reason_en = None
        if reason_ar is not None:
            submission.rejection_reason = reason_ar
        if reason_en is not None:
            submission.rejection_reason_en = reason_en
        db_sess.commit()
    except Exception:
        db_sess.rollback()
        logger.exception("Failed to update status of submission %s", submission_id)
        raise

    logger.info("Submission %s status %s -> %s", submission_id, old_status, status)
    if dispatcher is not None and old_status != status and status in (STATUS_APPROVED, STATUS_REJECTED):
        dispatcher.dispatch(submission_id, status)
    return submission


def delete_submission(db_sess: Session, submission_id: int) -> bool:
    """Soft delete: the row stays, its status becomes ``deleted``."""
    return update_status(db_sess, submission_id, STATUS_DELETED) is not None


def _day_bounds(now: Optional[datetime.datetime] = None):
    now = now or datetime.datetime.utcnow()
    start = datetime.datetime(now.year, now.month, now.day)
    return start, start + datetime.timedelta(days=1)


def query_submissions(db_sess: Session, filters: Optional[SubmissionFilter] = None, page: int = 1,
                      page_size: int = 10, now: Optional[datetime.datetime] = None) -> SubmissionPage:
    """Page of submission summaries, newest first, with per-status and today counters."""
    conds = (filters or SubmissionFilter()).conditions()

    def count(*extra):
        stmt = select(func.count(FormSubmission.submission_id)).where(*conds, *extra)
        return db_sess.execute(stmt).scalar_one()

    day_start, day_end = _day_bounds(now)
    today = (FormSubmission.submitted_date >= day_start, FormSubmission.submitted_date < day_end)

    total = count()
    total_pages = math.ceil(total / page_size) if page_size else 0

    stmt = (
        select(FormSubmission)
        .options(selectinload(FormSubmission.values), selectinload(FormSubmission.form))
        .where(*conds)
        .order_by(FormSubmission.submitted_date.desc(), FormSubmission.submission_id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    rows = db_sess.execute(stmt).scalars().all()

    return SubmissionPage(
        items=[to_summary(s) for s in rows],
        total_count=total,
        today_submissions_count=count(*today),
        today_approved_submissions_count=count(*today, FormSubmission.status == STATUS_APPROVED),
        today_rejected_submissions_count=count(*today, FormSubmission.status == STATUS_REJECTED),
        approved_submissions_count=count(FormSubmission.status == STATUS_APPROVED),
        rejected_submissions_count=count(FormSubmission.status == STATUS_REJECTED),
        page=page,
        page_size=page_size,
        total_pages=total_pages,
        has_next_page=page < total_pages,
        has_previous_page=page > 1,
    )
