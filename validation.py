# validation.py - per-field structural validation against a field's ValidationRule
import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, List, Optional, Tuple

from constants import FIELD_CHECKBOX, FIELD_DROPDOWN, FIELD_NUMBER, FIELD_TEXT

logger = logging.getLogger("form-backend.validation")

ARABIC_OPERATORS = {
    "=": "يساوي",
    ">": "أكبر من",
    "<": "أصغر من",
    ">=": "أكبر من أو يساوي",
    "<=": "أصغر من أو يساوي",
    "!=": "لا يساوي",
}


def parse_decimal(raw) -> Optional[Decimal]:
    """Parse a finite decimal from user input; None when it is not one."""
    if raw is None:
        return None
    text = str(raw).strip()
    if not text:
        return None
    try:
        value = Decimal(text)
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


@dataclass
class ValidationResult:
    all_errors: List[str] = field(default_factory=list)
    all_errors_en: List[str] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.all_errors or self.all_errors_en)

    def extend(self, ar_errors, en_errors):
        self.all_errors.extend(ar_errors)
        self.all_errors_en.extend(en_errors)


def _compare_numbers(op: str, value: Decimal, operand: Decimal) -> bool:
    if op == "=":
        return value == operand
    if op == "!=":
        return value != operand
    if op == ">":
        return value > operand
    if op == "<":
        return value < operand
    if op == ">=":
        return value >= operand
    if op == "<=":
        return value <= operand
    # unknown operator passes
    return True


class FieldValidationEngine:
    """Validates submitted values against each field's declared type and rule.

    Errors are collected as bilingual message lists; nothing is raised.
    """

    def validate_field(self, field, raw_value) -> Tuple[List[str], List[str]]:
        ar_errors: List[str] = []
        en_errors: List[str] = []
        try:
            rule = field.validation_rule
            if rule is None:
                return ar_errors, en_errors
            value = "" if raw_value is None else str(raw_value)
            field_type = (field.field_type or "").lower()
            if field_type in (FIELD_DROPDOWN, FIELD_CHECKBOX):
                self._validate_choice(field, value, rule, ar_errors, en_errors)
            elif field_type == FIELD_TEXT:
                self._validate_text(field, value, rule, ar_errors, en_errors)
            elif field_type == FIELD_NUMBER:
                self._validate_number(field, value, rule, ar_errors, en_errors)
        except Exception:
            logger.warning("Error validating field %s", getattr(field, "field_name", "?"), exc_info=True)
        return ar_errors, en_errors

    def validate_all(self, values: Dict[str, Optional[str]], fields: Iterable) -> ValidationResult:
        result = ValidationResult()
        for f in fields:
            if f.field_name not in values:
                continue
            ar_errors, en_errors = self.validate_field(f, values[f.field_name])
            result.extend(ar_errors, en_errors)
        return result

    @staticmethod
    def _add(rule, ar_errors, en_errors, default_ar, default_en):
        ar_errors.append(rule.error_message_ar or default_ar)
        en_errors.append(rule.error_message_en or default_en)

    def _validate_choice(self, field, value, rule, ar_errors, en_errors):
        if not rule.valid_value:
            return
        matches = value.casefold() == rule.valid_value.casefold()
        if (rule.is_valid and not matches) or (not rule.is_valid and matches):
            self._add(
                rule, ar_errors, en_errors,
                f"القيمة المختارة في حقل '{field.label}' غير مقبولة: {value}",
                f"Selected value in '{field.field_name}' field is not acceptable: {value}",
            )

    def _validate_text(self, field, value, rule, ar_errors, en_errors):
        if not rule.valid_value or not rule.operator:
            return
        if rule.operator == "=":
            ok = value.casefold() == rule.valid_value.casefold()
        elif rule.operator == "!=":
            ok = value.casefold() != rule.valid_value.casefold()
        else:
            ok = True
        if not ok:
            self._add(
                rule, ar_errors, en_errors,
                f"قيمة حقل '{field.label}' يجب أن تكون {rule.operator} '{rule.valid_value}' (القيمة المدخلة: {value})",
                f"Field '{field.field_name}' value must be {rule.operator} '{rule.valid_value}' (provided: {value})",
            )

    def _validate_number(self, field, value, rule, ar_errors, en_errors):
        if not rule.valid_value or not rule.operator:
            return
        number = parse_decimal(value)
        operand = parse_decimal(rule.valid_value)
        if number is None or operand is None:
            self._add(
                rule, ar_errors, en_errors,
                f"قيمة حقل '{field.label}' يجب أن تكون رقماً صحيحاً",
                f"Field '{field.field_name}' must be a valid number",
            )
            return
        if not _compare_numbers(rule.operator, number, operand):
            arabic_op = ARABIC_OPERATORS.get(rule.operator, rule.operator)
            self._add(
                rule, ar_errors, en_errors,
                f"قيمة حقل '{field.label}' يجب أن تكون {arabic_op} {rule.valid_value} (القيمة المدخلة: {value})",
                f"Field '{field.field_name}' must be {rule.operator} {rule.valid_value} (provided: {value})",
            )
