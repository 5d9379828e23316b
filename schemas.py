from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


def _to_text(value):
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class ValidationRule(BaseModel):
    """Structured per-field rule: operator + operand, polarity and custom messages.

    Stored as JSON on the field; both snake_case and camelCase keys are accepted.
    """
    model_config = ConfigDict(populate_by_name=True)

    operator: Optional[str] = None
    valid_value: Optional[str] = Field(default=None, alias="validValue")
    is_valid: bool = Field(default=True, alias="isValid")
    error_message_ar: Optional[str] = Field(default=None, alias="errorMessageAr")
    error_message_en: Optional[str] = Field(default=None, alias="errorMessageEn")

    @field_validator("valid_value", mode="before")
    @classmethod
    def _operand_as_text(cls, v):
        return _to_text(v)

    @classmethod
    def parse_stored(cls, raw):
        if isinstance(raw, str):
            return cls.model_validate_json(raw)
        if isinstance(raw, dict):
            return cls.model_validate(raw)
        raise ValueError(f"Unsupported validation rule payload: {type(raw).__name__}")


class FieldIn(BaseModel):
    field_name: str
    field_type: str
    label: str
    label_en: Optional[str] = None
    is_required: bool = False
    options: Optional[List[str]] = None
    validation_rules: Optional[ValidationRule] = None


class FieldOut(BaseModel):
    field_id: int
    field_name: str
    field_type: str
    label: str
    label_en: Optional[str] = None
    is_required: bool
    options: Optional[List[str]] = None
    validation_rules: Optional[Dict[str, Any]] = None
    display_order: int


class FormOut(BaseModel):
    form_id: int
    name: str
    description: Optional[str] = None
    is_active: bool
    created_date: datetime
    fields: List[FieldOut]


class SubmissionIn(BaseModel):
    submitted_by: Optional[str] = None
    values: Dict[str, Optional[str]] = {}

    @field_validator("values", mode="before")
    @classmethod
    def _values_as_text(cls, v):
        if isinstance(v, dict):
            return {k: _to_text(val) for k, val in v.items()}
        return v


class FieldValueOut(BaseModel):
    field_name: str
    label: str
    value: str
    field_type: str


class SubmissionOut(BaseModel):
    submission_id: int
    form_id: int
    form_name: str
    submitted_date: datetime
    status: str
    submitted_by: Optional[str] = None
    phone_number: Optional[str] = None
    rejection_reason: Optional[str] = None
    rejection_reason_en: Optional[str] = None
    values: List[FieldValueOut] = []


class ValueSummary(BaseModel):
    ar_label: str
    en_label: str
    value: str


class SubmissionSummary(BaseModel):
    submission_id: int
    form_id: int
    form_name: str
    submitted_date: datetime
    status: str
    submitted_by: Optional[str] = None
    phone_number: Optional[str] = None
    rejection_reason: Optional[str] = None
    rejection_reason_en: Optional[str] = None
    preview: str = ""
    values: List[ValueSummary] = []


class SubmissionPage(BaseModel):
    items: List[SubmissionSummary] = []
    total_count: int = 0
    today_submissions_count: int = 0
    today_approved_submissions_count: int = 0
    today_rejected_submissions_count: int = 0
    approved_submissions_count: int = 0
    rejected_submissions_count: int = 0
    page: int = 1
    page_size: int = 10
    total_pages: int = 0
    has_next_page: bool = False
    has_previous_page: bool = False


class StatusUpdateIn(BaseModel):
    status: str
    rejection_reason: Optional[str] = None
    rejection_reason_en: Optional[str] = None


class PossibleRejectionReason(BaseModel):
    reason_text_ar: str
    reason_text_en: str
    category: str
    field_name: Optional[str] = None
    search_pattern_ar: str
    search_pattern_en: str


class FormRejectionReasons(BaseModel):
    form_id: int
    form_name: str
    possible_reasons: List[PossibleRejectionReason] = []


class RejectionStatistic(BaseModel):
    rejection_reason: str
    count: int
    percentage: float


class FormIn(BaseModel):
    name: str
    description: Optional[str] = None
    created_by: Optional[str] = None
    fields: List[FieldIn] = []
    activate: bool = True


class SubmissionResultOut(BaseModel):
    submission_id: int
    status: str
    is_approved: bool
    rejection_reason: Optional[str] = None
    rejection_reason_en: Optional[str] = None
    errors: List[str] = []
    errors_en: List[str] = []
    submission: Optional[SubmissionOut] = None
