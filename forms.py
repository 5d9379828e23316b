# forms.py - form schema store: lookup, activation and seeding
import datetime
import logging
from typing import Iterable, Optional
from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from constants import (
    AGE,
    BIRTH_DATE,
    CITIZENSHIP_STATUS,
    FIELD_DATE,
    FIELD_DROPDOWN,
    FIELD_NUMBER,
    FIELD_TEXT,
    FULL_NAME,
    HAS_MORTGAGE,
    MONTHLY_COMMITMENTS,
    MONTHLY_SALARY,
    PHONE_NUMBER,
)
from models import Form, FormField
from schemas import FieldOut, FormOut

logger = logging.getLogger("form-backend.forms")

# (field_name, field_type, label, label_en, options)
MANDATORY_FIELDS = [
    (FULL_NAME, FIELD_TEXT, "الاسم الثلاثي", "Full Name", None),
    (PHONE_NUMBER, FIELD_TEXT, "رقم الجوال", "Phone Number", None),
    (BIRTH_DATE, FIELD_DATE, "تاريخ الميلاد", "Birth Date", None),
    (AGE, FIELD_NUMBER, "العمر", "Age", None),
    (CITIZENSHIP_STATUS, FIELD_DROPDOWN, "مواطن أو مقيم", "Citizenship Status", ["مواطن", "مقيم"]),
    (HAS_MORTGAGE, FIELD_DROPDOWN, "قرض عقاري", "Has Mortgage", ["نعم", "لا"]),
    (MONTHLY_SALARY, FIELD_NUMBER, "الراتب الشهري", "Monthly Salary", None),
    (MONTHLY_COMMITMENTS, FIELD_NUMBER, "الالتزامات الشهرية", "Monthly Commitments", None),
]


def get_schema(db_sess: Session, form_id: int) -> Optional[Form]:
    stmt = select(Form).options(selectinload(Form.fields)).where(Form.form_id == form_id)
    return db_sess.execute(stmt).scalars().first()


def get_active_schema(db_sess: Session) -> Optional[Form]:
    stmt = select(Form).options(selectinload(Form.fields)).where(Form.is_active == True)
    return db_sess.execute(stmt).scalars().first()


def activate(db_sess: Session, form_id: int) -> Optional[Form]:
    """Make ``form_id`` the single active form; one transaction, None if absent."""
    try:
        form = db_sess.get(Form, form_id)
        if form is None:
            return None
        now = datetime.datetime.utcnow()
        db_sess.execute(
            update(Form).where(Form.is_active == True, Form.form_id != form_id)
            .values(is_active=False, modified_date=now)
        )
        form.is_active = True
        form.modified_date = now
        db_sess.commit()
    except Exception:
        db_sess.rollback()
        logger.exception("Failed to activate form %s", form_id)
        raise
    logger.info("Activated form %s", form_id)
    return form


def create_form(db_sess: Session, name: str, fields: Iterable = (), description: Optional[str] = None,
                created_by: Optional[str] = None, activate_now: bool = True) -> Form:
    """Create a form with the mandatory loan fields first, then ``fields`` (schemas.FieldIn)."""
    try:
        if activate_now:
            db_sess.execute(
                update(Form).where(Form.is_active == True)
                .values(is_active=False, modified_date=datetime.datetime.utcnow())
            )
        form = Form(name=name, description=description, created_by=created_by, is_active=activate_now)
        db_sess.add(form)
        db_sess.flush()

        order = 1
        mandatory_names = set()
        for field_name, field_type, label, label_en, options in MANDATORY_FIELDS:
            db_sess.add(FormField(
                form_id=form.form_id, field_name=field_name, field_type=field_type, label=label,
                label_en=label_en, is_required=True, options=options, display_order=order, is_active=True,
            ))
            mandatory_names.add(field_name)
            order += 1

        for f in fields:
            if f.field_name in mandatory_names:
                continue
            db_sess.add(FormField(
                form_id=form.form_id,
                field_name=f.field_name,
                field_type=f.field_type,
                label=f.label,
                label_en=f.label_en,
                is_required=f.is_required,
                options=f.options,
                validation_rules=f.validation_rules.model_dump(exclude_none=True) if f.validation_rules else None,
                display_order=order,
                is_active=True,
            ))
            order += 1

        db_sess.commit()
    except Exception:
        db_sess.rollback()
        logger.exception("Failed to create form %s", name)
        raise
    db_sess.refresh(form)
    logger.info("Created form %s (%s) with %d fields", form.form_id, name, len(form.fields))
    return form


def deactivate_field(db_sess: Session, field_id: int) -> bool:
    """Soft-deactivate a field; stored submission snapshots are untouched."""
    field = db_sess.get(FormField, field_id)
    if field is None:
        return False
    field.is_active = False
    db_sess.commit()
    return True


def to_form_out(form: Form) -> FormOut:
    """Schema view of a form with its active fields in display order."""
    fields = []
    for f in form.active_fields:
        rule = f.validation_rule
        fields.append(FieldOut(
            field_id=f.field_id,
            field_name=f.field_name,
            field_type=f.field_type,
            label=f.label,
            label_en=f.label_en,
            is_required=f.is_required,
            options=f.options,
            validation_rules=rule.model_dump(exclude_none=True) if rule else None,
            display_order=f.display_order,
        ))
    return FormOut(
        form_id=form.form_id,
        name=form.name,
        description=form.description,
        is_active=form.is_active,
        created_date=form.created_date,
        fields=fields,
    )
