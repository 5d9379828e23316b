# rejection_catalog.py - possible rejection reasons for a form, with search patterns for analytics
import logging
from typing import List

from sqlalchemy.orm import Session

import config
import forms
from approval import PROCESSING_ERROR_AR, PROCESSING_ERROR_EN
from constants import (
    AGE,
    BIRTH_DATE,
    CITIZENSHIP_STATUS,
    HAS_MORTGAGE,
    JOB_SECTOR,
    MONTHLY_COMMITMENTS,
    MONTHLY_SALARY,
    PHONE_NUMBER,
    SERVICE_DURATION,
)
from exceptions import SchemaNotFound
from models import Form
from schemas import FormRejectionReasons, PossibleRejectionReason

logger = logging.getLogger("form-backend.catalog")

CATEGORY_VALIDATION = "Validation"
CATEGORY_DYNAMIC_FIELD = "DynamicField"
CATEGORY_BUSINESS_RULE = "BusinessRule"
CATEGORY_SYSTEM = "System"

NO_ACTIVE_FORM_NAME = "لا يوجد نموذج نشط"


def _reason(category, field_name, text_ar, text_en, pattern_ar, pattern_en) -> PossibleRejectionReason:
    return PossibleRejectionReason(
        reason_text_ar=text_ar,
        reason_text_en=text_en,
        category=category,
        field_name=field_name,
        search_pattern_ar=pattern_ar,
        search_pattern_en=pattern_en,
    )


def _unconditional_reasons() -> List[PossibleRejectionReason]:
    """Checks that run on every submission, whatever fields the form has."""
    return [
        _reason(
            CATEGORY_VALIDATION, PHONE_NUMBER,
            "رقم الجوال مطلوب", "Phone number is required",
            "رقم الجوال مطلوب", "Phone number is required",
        ),
        _reason(
            CATEGORY_VALIDATION, BIRTH_DATE,
            "تاريخ الميلاد مطلوب", "Birth date is required",
            "تاريخ الميلاد مطلوب", "Birth date is required",
        ),
        _reason(
            CATEGORY_VALIDATION, MONTHLY_SALARY,
            "الراتب الشهري والالتزامات الشهرية يجب أن تكون أرقاماً صحيحة",
            "Monthly salary and monthly commitments must be valid numbers",
            "الراتب الشهري والالتزامات الشهرية يجب أن تكون أرقاماً صحيحة",
            "Monthly salary and monthly commitments must be valid numbers",
        ),
        _reason(
            CATEGORY_SYSTEM, None,
            PROCESSING_ERROR_AR, PROCESSING_ERROR_EN,
            PROCESSING_ERROR_AR, PROCESSING_ERROR_EN,
        ),
    ]


def _validation_reasons(names) -> List[PossibleRejectionReason]:
    reasons = []
    if PHONE_NUMBER in names:
        reasons.append(_reason(
            CATEGORY_VALIDATION, PHONE_NUMBER,
            "رقم الجوال غير صحيح: برجاء ادخال الرقم الصحيح مثال (966-5xxxxxxxx)",
            "Invalid phone number format",
            "رقم الجوال غير صحيح", "Invalid phone number",
        ))
    if BIRTH_DATE in names:
        min_age = config.MIN_APPLICANT_AGE
        reasons.append(_reason(
            CATEGORY_VALIDATION, BIRTH_DATE,
            f"العمر أقل من الحد الأدنى المطلوب ({min_age} سنة)",
            f"Age is below the minimum required ({min_age} years)",
            "العمر أقل من الحد الأدنى", "Age is below the minimum",
        ))
        reasons.append(_reason(
            CATEGORY_VALIDATION, BIRTH_DATE,
            "تاريخ الميلاد غير صحيح، يجب أن يكون بالصيغة YYYY-MM-DD",
            "Invalid birth date, expected format YYYY-MM-DD",
            "تاريخ الميلاد غير صحيح", "Invalid birth date",
        ))
    if AGE in names and BIRTH_DATE in names:
        reasons.append(_reason(
            CATEGORY_VALIDATION, AGE,
            "العمر المدخل لا يتطابق مع العمر المحسوب من تاريخ الميلاد",
            "Declared age does not match the age calculated from birth date",
            "لا يتطابق مع العمر المحسوب", "does not match the age calculated",
        ))
    if MONTHLY_SALARY in names:
        reasons.append(_reason(
            CATEGORY_VALIDATION, MONTHLY_SALARY,
            "الراتب الشهري يجب أن يكون رقم صحيح أكبر من صفر",
            "Monthly salary must be a valid number greater than zero",
            "الراتب الشهري يجب أن يكون رقم صحيح", "Monthly salary must be a valid number",
        ))
    if MONTHLY_COMMITMENTS in names:
        reasons.append(_reason(
            CATEGORY_VALIDATION, MONTHLY_COMMITMENTS,
            "الالتزامات الشهرية يجب أن تكون رقم صحيح لا يقل عن صفر",
            "Monthly commitments must be a valid number not less than zero",
            "الالتزامات الشهرية يجب أن تكون رقم صحيح", "Monthly commitments must be a valid number",
        ))
    if SERVICE_DURATION in names:
        reasons.append(_reason(
            CATEGORY_VALIDATION, SERVICE_DURATION,
            "عذراً، مدة الخدمة يجب أن تكون أكثر من 3 شهور",
            "Sorry, service duration must be more than 3 months",
            "مدة الخدمة يجب أن تكون أكثر من 3", "service duration must be more than 3",
        ))
    if JOB_SECTOR in names:
        reasons.append(_reason(
            CATEGORY_VALIDATION, JOB_SECTOR,
            "عذراً، هذا النموذج غير متاح للمتقاعدين",
            "Sorry, this form is not available for retirees",
            "غير متاح للمتقاعدين", "not available for retirees",
        ))
    return reasons


def _dynamic_field_reasons(fields) -> List[PossibleRejectionReason]:
    """One entry per field rule; a missing custom message falls back to the validator's default wording."""
    reasons = []
    for f in fields:
        rule = f.validation_rule
        if rule is None or not rule.valid_value:
            continue
        if rule.error_message_ar:
            text_ar = pattern_ar = rule.error_message_ar
        else:
            text_ar = f"القيمة المدخلة في حقل '{f.label}' غير مقبولة"
            pattern_ar = f"حقل '{f.label}'"
        if rule.error_message_en:
            text_en = pattern_en = rule.error_message_en
        else:
            text_en = f"Value of '{f.field_name}' field is not acceptable"
            pattern_en = f"'{f.field_name}'"
        reasons.append(_reason(CATEGORY_DYNAMIC_FIELD, f.field_name, text_ar, text_en, pattern_ar, pattern_en))
    return reasons


def _business_rule_reasons(names) -> List[PossibleRejectionReason]:
    reasons = []
    if CITIZENSHIP_STATUS in names:
        reasons.append(_reason(
            CATEGORY_BUSINESS_RULE, CITIZENSHIP_STATUS,
            "مقدم الطلب مقيم وليس مواطن", "Applicant is a resident, not a citizen",
            "مقدم الطلب مقيم", "Applicant is a resident",
        ))
    if MONTHLY_SALARY in names and MONTHLY_COMMITMENTS in names:
        with_mortgage = config.MAX_COMMITMENT_RATIO_WITH_MORTGAGE.normalize()
        without_mortgage = config.MAX_COMMITMENT_RATIO_WITHOUT_MORTGAGE.normalize()
        reasons.append(_reason(
            CATEGORY_BUSINESS_RULE, MONTHLY_COMMITMENTS,
            f"نسبة الالتزامات تتجاوز الحد المسموح ({without_mortgage:f}% أو {with_mortgage:f}%)",
            "Commitment ratio exceeds the allowed limit",
            "نسبة الالتزامات", "Commitment ratio",
        ))
        if HAS_MORTGAGE in names:
            reasons.append(_reason(
                CATEGORY_BUSINESS_RULE, HAS_MORTGAGE,
                f"نسبة الالتزامات تتجاوز الحد المسموح ({with_mortgage:f}%) للأشخاص الذين لديهم قرض عقاري",
                "Commitment ratio exceeds the allowed limit for those with mortgage loans",
                "لديهم قرض عقاري", "for those with mortgage loans",
            ))
    return reasons


def catalog_for(form: Form) -> FormRejectionReasons:
    """Every reason a submission to ``form`` could be rejected with.

    Field-gated entries consider active fields only. Entries are unique on their bilingual text and
    ordered by category, then Arabic text, so the result is stable.
    """
    fields = form.active_fields
    names = {f.field_name for f in fields}
    candidates = (
        _unconditional_reasons()
        + _validation_reasons(names)
        + _dynamic_field_reasons(fields)
        + _business_rule_reasons(names)
    )

    seen = set()
    reasons = []
    for r in candidates:
        key = (r.reason_text_ar, r.reason_text_en)
        if key in seen:
            continue
        seen.add(key)
        reasons.append(r)
    reasons.sort(key=lambda r: (r.category, r.reason_text_ar))

    return FormRejectionReasons(form_id=form.form_id, form_name=form.name, possible_reasons=reasons)


def catalog_for_form(db_sess: Session, form_id: int) -> FormRejectionReasons:
    form = forms.get_schema(db_sess, form_id)
    if form is None:
        raise SchemaNotFound(form_id)
    return catalog_for(form)


def catalog_for_active_form(db_sess: Session) -> FormRejectionReasons:
    form = forms.get_active_schema(db_sess)
    if form is None:
        logger.info("No active form; returning empty rejection catalog")
        return FormRejectionReasons(form_id=0, form_name=NO_ACTIVE_FORM_NAME, possible_reasons=[])
    return catalog_for(form)
