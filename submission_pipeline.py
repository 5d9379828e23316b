# submission_pipeline.py - validate, persist, decide and notify for one form submission
import datetime
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

import forms
from approval import ApprovalDecisionEngine, Decision
from constants import REASON_DELIMITER, STATUS_APPROVED, STATUS_REJECTED, STATUS_UNDER_REVIEW
from exceptions import MissingRequiredFields, SchemaNotFound
from models import Form, FormSubmission, FormSubmissionValue
from schemas import SubmissionOut
from submissions import create_submission, to_detail
from validation import FieldValidationEngine, ValidationResult

logger = logging.getLogger("form-backend.pipeline")


@dataclass
class SubmissionResult:
    submission_id: int
    status: str
    rejection_reason: Optional[str] = None
    rejection_reason_en: Optional[str] = None
    errors: List[str] = field(default_factory=list)
    errors_en: List[str] = field(default_factory=list)
    detail: Optional[SubmissionOut] = None

    @property
    def approved(self) -> bool:
        return self.status == STATUS_APPROVED


def _is_blank(value) -> bool:
    return value is None or not str(value).strip()


class SubmissionPipeline:
    """Processes one submission against the active form schema.

    Only the schema lookup and the required-field check raise. Validation and
    business-rule problems are merged, stored with the submission and returned.
    The submission, its value snapshots and its final status are written in a
    single transaction; notification runs afterwards on the dispatcher.
    """

    def __init__(self, db_sess: Session, validator: Optional[FieldValidationEngine] = None,
                 approval_engine: Optional[ApprovalDecisionEngine] = None, dispatcher=None):
        self.db_sess = db_sess
        self.validator = validator or FieldValidationEngine()
        self.approval_engine = approval_engine or ApprovalDecisionEngine()
        self.dispatcher = dispatcher

    def resolve_schema(self, form_id: Optional[int]) -> Form:
        form = forms.get_active_schema(self.db_sess) if form_id is None else forms.get_schema(self.db_sess, form_id)
        if form is None or not form.is_active:
            raise SchemaNotFound(form_id)
        return form

    @staticmethod
    def missing_required(form: Form, values: Dict[str, Optional[str]]) -> List[str]:
        return [
            f.label for f in form.active_fields
            if f.is_required and _is_blank(values.get(f.field_name))
        ]

    @staticmethod
    def snapshot_values(form: Form, values: Dict[str, Optional[str]]) -> List[FormSubmissionValue]:
        """One snapshot row per supplied value whose field is known and active."""
        return [
            FormSubmissionValue.snapshot_of(f, "" if values[f.field_name] is None else str(values[f.field_name]))
            for f in form.active_fields
            if f.field_name in values
        ]

    @staticmethod
    def merge(validation: ValidationResult, decision: Decision):
        errors = list(validation.all_errors)
        errors_en = list(validation.all_errors_en)
        for v in decision.violations:
            errors.append(v.message_ar)
            errors_en.append(v.message_en)
        return errors, errors_en

    def submit(self, form_id: Optional[int], submitted_by: Optional[str],
               values: Dict[str, Optional[str]]) -> SubmissionResult:
        form = self.resolve_schema(form_id)
        values = dict(values or {})

        missing = self.missing_required(form, values)
        if missing:
            logger.info("Submission to form %s missing required fields: %s", form.form_id, missing)
            raise MissingRequiredFields(missing)

        validation = self.validator.validate_all(values, form.active_fields)

        try:
            submission = FormSubmission(
                form=form,
                submitted_by=submitted_by,
                submitted_date=datetime.datetime.utcnow(),
                status=STATUS_UNDER_REVIEW,
            )
            snapshot = self.snapshot_values(form, values)
            submission_id = create_submission(self.db_sess, submission, snapshot)

            # Decide on exactly what was stored.
            stored = {v.field_name_at_submission: v.field_value for v in snapshot}
            decision = self.approval_engine.decide(stored)

            errors, errors_en = self.merge(validation, decision)
            if errors or errors_en:
                submission.status = STATUS_REJECTED
                submission.rejection_reason = REASON_DELIMITER.join(errors)
                submission.rejection_reason_en = REASON_DELIMITER.join(errors_en)
                logger.warning("Submission %s rejected: %s", submission_id, submission.rejection_reason_en)
            else:
                submission.status = STATUS_APPROVED
                logger.info("Submission %s approved", submission_id)

            self.db_sess.commit()
        except Exception:
            self.db_sess.rollback()
            logger.exception("Error persisting submission for form %s", form.form_id)
            raise

        if submission.status == STATUS_APPROVED and self.dispatcher is not None:
            self.dispatcher.dispatch(submission_id, STATUS_APPROVED)

        return SubmissionResult(
            submission_id=submission_id,
            status=submission.status,
            rejection_reason=submission.rejection_reason,
            rejection_reason_en=submission.rejection_reason_en,
            errors=errors,
            errors_en=errors_en,
            detail=to_detail(submission),
        )
