# rejection_analytics.py - reporting over rejected submissions
import datetime
import logging
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from constants import SERVICE_DURATION, SERVICE_UNDER_THREE_MONTHS, STATUS_REJECTED, UNSPECIFIED_REASON
from models import FormSubmission
from schemas import RejectionStatistic, SubmissionPage
from submissions import SubmissionFilter, query_submissions

logger = logging.getLogger("form-backend.analytics")


def rejected_by_marker(db_sess: Session, page: int = 1, page_size: int = 10,
                       from_date: Optional[datetime.datetime] = None, to_date: Optional[datetime.datetime] = None,
                       field_name: str = SERVICE_DURATION, marker: str = SERVICE_UNDER_THREE_MONTHS) -> SubmissionPage:
    """Rejected submissions whose stored ``field_name`` value equals ``marker``."""
    filters = SubmissionFilter(
        status=STATUS_REJECTED,
        from_date=from_date,
        to_date=to_date,
        marker_field=field_name,
        marker_value=marker,
    )
    return query_submissions(db_sess, filters, page=page, page_size=page_size)


def rejection_statistics(db_sess: Session, from_date: Optional[datetime.datetime] = None,
                         to_date: Optional[datetime.datetime] = None) -> List[RejectionStatistic]:
    """Rejected submissions grouped by their full Arabic reason, most frequent first."""
    conds = SubmissionFilter(status=STATUS_REJECTED, from_date=from_date, to_date=to_date).conditions()
    count = func.count(FormSubmission.submission_id).label("n")
    stmt = (
        select(FormSubmission.rejection_reason, count)
        .where(*conds)
        .group_by(FormSubmission.rejection_reason)
        .order_by(count.desc(), FormSubmission.rejection_reason)
    )
    rows = db_sess.execute(stmt).all()

    total = sum(n for _, n in rows)
    stats = []
    for reason, n in rows:
        percentage = round(n / total * 100, 2) if total else 0.0
        stats.append(RejectionStatistic(rejection_reason=reason or UNSPECIFIED_REASON, count=n, percentage=percentage))
    logger.info("Computed rejection statistics over %d rejected submissions", total)
    return stats


def submissions_by_rejection_reason(db_sess: Session, pattern: str, page: int = 1, page_size: int = 10,
                                    from_date: Optional[datetime.datetime] = None,
                                    to_date: Optional[datetime.datetime] = None) -> SubmissionPage:
    """Rejected submissions whose Arabic or English reason contains ``pattern``."""
    filters = SubmissionFilter(
        status=STATUS_REJECTED,
        from_date=from_date,
        to_date=to_date,
        reason_contains=pattern,
    )
    return query_submissions(db_sess, filters, page=page, page_size=page_size)
