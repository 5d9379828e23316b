# models.py - SQLAlchemy models for forms, fields, submissions and value snapshots
import datetime
import logging
from sqlalchemy import Column, Integer, String, Text, Boolean, TIMESTAMP, JSON, ForeignKey, UniqueConstraint
from sqlalchemy.orm import declarative_base, relationship

from constants import STATUS_UNDER_REVIEW

Base = declarative_base()

logger = logging.getLogger("form-backend.models")


class Form(Base):
    __tablename__ = "forms"
    form_id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    description = Column(String(500))
    is_active = Column(Boolean, nullable=False, default=False)
    created_date = Column(TIMESTAMP(timezone=True), nullable=False, default=datetime.datetime.utcnow)
    modified_date = Column(TIMESTAMP(timezone=True), nullable=True)
    created_by = Column(String(100))

    fields = relationship("FormField", back_populates="form", order_by="FormField.display_order")
    submissions = relationship("FormSubmission", back_populates="form")

    @property
    def active_fields(self):
        return [f for f in self.fields if f.is_active]


class FormField(Base):
    __tablename__ = "form_fields"
    __table_args__ = (UniqueConstraint("form_id", "field_name", name="uq_form_field_name"),)
    field_id = Column(Integer, primary_key=True)
    form_id = Column(Integer, ForeignKey("forms.form_id"), nullable=False)
    field_name = Column(String(100), nullable=False)
    field_type = Column(String(50), nullable=False)
    label = Column(String(200), nullable=False)
    label_en = Column(String(200))
    is_required = Column(Boolean, nullable=False, default=False)
    options = Column(JSON)
    validation_rules = Column(JSON)
    display_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    form = relationship("Form", back_populates="fields")

    @property
    def validation_rule(self):
        """Parsed ValidationRule, or None when absent or malformed."""
        if not self.validation_rules:
            return None
        from schemas import ValidationRule
        try:
            return ValidationRule.parse_stored(self.validation_rules)
        except ValueError:
            logger.warning("Malformed validation rule on field %s: %r", self.field_name, self.validation_rules)
            return None


class FormSubmission(Base):
    __tablename__ = "form_submissions"
    submission_id = Column(Integer, primary_key=True)
    form_id = Column(Integer, ForeignKey("forms.form_id"), nullable=False)
    submitted_date = Column(TIMESTAMP(timezone=True), nullable=False, default=datetime.datetime.utcnow)
    submitted_by = Column(String(100))
    status = Column(String(50), nullable=False, default=STATUS_UNDER_REVIEW)
    rejection_reason = Column(Text)
    rejection_reason_en = Column(Text)

    form = relationship("Form", back_populates="submissions")
    values = relationship("FormSubmissionValue", back_populates="submission", order_by="FormSubmissionValue.value_id")


class FormSubmissionValue(Base):
    __tablename__ = "form_submission_values"
    value_id = Column(Integer, primary_key=True)
    submission_id = Column(Integer, ForeignKey("form_submissions.submission_id"), nullable=False)
    field_id = Column(Integer, ForeignKey("form_fields.field_id"), nullable=False)
    field_value = Column(Text, nullable=False, default="")
    # Snapshot of the field as it was at submission time; written once.
    field_name_at_submission = Column(String(100), nullable=False)
    field_type_at_submission = Column(String(50), nullable=False)
    label_at_submission = Column(String(200), nullable=False)
    options_at_submission = Column(JSON)
    created_date = Column(TIMESTAMP(timezone=True), nullable=False, default=datetime.datetime.utcnow)

    submission = relationship("FormSubmission", back_populates="values")
    field = relationship("FormField")

    @classmethod
    def snapshot_of(cls, field, value):
        return cls(
            field_id=field.field_id,
            field_value=value,
            field_name_at_submission=field.field_name,
            field_type_at_submission=field.field_type,
            label_at_submission=field.label,
            options_at_submission=list(field.options) if field.options is not None else None,
            created_date=datetime.datetime.utcnow(),
        )
