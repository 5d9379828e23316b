# approval.py - approval/rejection decision over a submission's values
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, List, Mapping, Optional, Sequence

import config
from constants import (
    AGE,
    BIRTH_DATE,
    CITIZENSHIP_STATUS,
    HAS_MORTGAGE,
    JOB_SECTOR,
    MONTHLY_COMMITMENTS,
    MONTHLY_SALARY,
    MORTGAGE_YES_TOKENS,
    PHONE_NUMBER,
    REASON_DELIMITER,
    RESIDENT_TOKENS,
    RETIREE_SECTOR,
    SERVICE_DURATION,
    SERVICE_UNDER_THREE_MONTHS,
    STATUS_APPROVED,
    STATUS_REJECTED,
)
from phone import PhoneFormatError, normalize_phone
from validation import parse_decimal

logger = logging.getLogger("form-backend.approval")

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

PROCESSING_ERROR_AR = "خطأ في نظام المراجعة"
PROCESSING_ERROR_EN = "System review error"


@dataclass(frozen=True)
class Violation:
    message_ar: str
    message_en: str
    rule: str = ""


@dataclass
class Decision:
    approved: bool
    status: str
    rejection_reason_ar: Optional[str] = None
    rejection_reason_en: Optional[str] = None
    violations: List[Violation] = field(default_factory=list)

    @classmethod
    def from_violations(cls, violations: Sequence[Violation]) -> "Decision":
        if not violations:
            return cls(approved=True, status=STATUS_APPROVED)
        return cls(
            approved=False,
            status=STATUS_REJECTED,
            rejection_reason_ar=REASON_DELIMITER.join(v.message_ar for v in violations),
            rejection_reason_en=REASON_DELIMITER.join(v.message_en for v in violations),
            violations=list(violations),
        )

    @classmethod
    def processing_error(cls) -> "Decision":
        return cls.from_violations([Violation(PROCESSING_ERROR_AR, PROCESSING_ERROR_EN, "processing_error")])


def compute_age(birth_date: date, today: date) -> int:
    """Whole years, counting this year only once the birthday has passed."""
    before_birthday = (today.month, today.day) < (birth_date.month, birth_date.day)
    return today.year - birth_date.year - (1 if before_birthday else 0)


def parse_iso_date(raw) -> Optional[date]:
    """Parse an exact YYYY-MM-DD calendar date."""
    if raw is None:
        return None
    text = str(raw).strip()
    if not _ISO_DATE.match(text):
        return None
    try:
        return datetime.strptime(text, "%Y-%m-%d").date()
    except ValueError:
        return None


def _plain_number(value: Decimal) -> str:
    return format(value.normalize(), "f")


@dataclass
class ApplicantProfile:
    """Typed view of the values the approval rules read.

    Raw strings are kept next to their parsed counterparts so a rule can tell
    "missing" (raw is None) from "present but unparsable" (parsed is None).
    """
    phone_raw: Optional[str] = None
    phone: Optional[str] = None
    phone_error: Optional[str] = None
    birth_date_raw: Optional[str] = None
    birth_date: Optional[date] = None
    age: Optional[int] = None
    declared_age_raw: Optional[str] = None
    declared_age: Optional[Decimal] = None
    citizenship_status: Optional[str] = None
    has_mortgage: bool = False
    salary: Optional[Decimal] = None
    commitments: Optional[Decimal] = None
    service_duration: Optional[str] = None
    job_sector: Optional[str] = None

    @classmethod
    def from_values(cls, values: Mapping[str, Optional[str]], today: date) -> "ApplicantProfile":
        lookup = {}
        for name, value in values.items():
            text = None if value is None else str(value).strip()
            lookup.setdefault(name.casefold(), text or None)

        def get(name):
            return lookup.get(name.casefold())

        profile = cls(
            phone_raw=get(PHONE_NUMBER),
            birth_date_raw=get(BIRTH_DATE),
            declared_age_raw=get(AGE),
            citizenship_status=get(CITIZENSHIP_STATUS),
            salary=parse_decimal(get(MONTHLY_SALARY)),
            commitments=parse_decimal(get(MONTHLY_COMMITMENTS)),
            service_duration=get(SERVICE_DURATION),
            job_sector=get(JOB_SECTOR),
        )

        if profile.phone_raw is not None:
            try:
                profile.phone = normalize_phone(profile.phone_raw)
            except PhoneFormatError as exc:
                profile.phone_error = str(exc)

        profile.birth_date = parse_iso_date(profile.birth_date_raw)
        if profile.birth_date is not None:
            profile.age = compute_age(profile.birth_date, today)

        profile.declared_age = parse_decimal(profile.declared_age_raw)

        mortgage = get(HAS_MORTGAGE)
        profile.has_mortgage = mortgage is not None and mortgage.casefold() in MORTGAGE_YES_TOKENS
        return profile


class ApprovalRule:
    """One independent policy check; returns a Violation or None."""

    name = "rule"

    def check(self, profile: ApplicantProfile) -> Optional[Violation]:
        raise NotImplementedError

    def violation(self, message_ar: str, message_en: str) -> Violation:
        return Violation(message_ar, message_en, self.name)


class PhoneRule(ApprovalRule):
    name = "phone"

    def check(self, profile):
        if profile.phone_raw is None:
            return self.violation("رقم الجوال مطلوب", "Phone number is required")
        if profile.phone_error:
            return self.violation(
                "رقم الجوال غير صحيح: برجاء ادخال الرقم الصحيح مثال (966-5xxxxxxxx)",
                f"Invalid phone number: {profile.phone_error}",
            )
        return None


class BirthDateRule(ApprovalRule):
    name = "birth_date"

    def __init__(self, min_age: int):
        self.min_age = min_age

    def check(self, profile):
        if profile.birth_date_raw is None:
            return self.violation("تاريخ الميلاد مطلوب", "Birth date is required")
        if profile.birth_date is None:
            return self.violation(
                f"تاريخ الميلاد غير صحيح، يجب أن يكون بالصيغة YYYY-MM-DD (القيمة المدخلة: {profile.birth_date_raw})",
                f"Invalid birth date, expected format YYYY-MM-DD (provided: {profile.birth_date_raw})",
            )
        if profile.age < self.min_age:
            return self.violation(
                f"العمر أقل من الحد الأدنى المطلوب ({self.min_age} سنة) - العمر المحسوب: {profile.age}",
                f"Age is below the minimum required ({self.min_age} years) - calculated age: {profile.age}",
            )
        return None


class AgeConsistencyRule(ApprovalRule):
    name = "age_consistency"

    def __init__(self, tolerance_years: int):
        self.tolerance_years = tolerance_years

    def check(self, profile):
        if profile.declared_age_raw is None or profile.age is None:
            return None
        declared = profile.declared_age
        if declared is not None and abs(Decimal(profile.age) - declared) <= self.tolerance_years:
            return None
        shown = profile.declared_age_raw if declared is None else _plain_number(declared)
        return self.violation(
            f"العمر المدخل ({shown}) لا يتطابق مع العمر المحسوب من تاريخ الميلاد ({profile.age})",
            f"Declared age ({shown}) does not match the age calculated from birth date ({profile.age})",
        )


class CitizenshipRule(ApprovalRule):
    name = "citizenship"

    def __init__(self, resident_tokens=RESIDENT_TOKENS):
        self.resident_tokens = frozenset(t.casefold() for t in resident_tokens)

    def check(self, profile):
        status = profile.citizenship_status
        if status is not None and status.casefold() in self.resident_tokens:
            return self.violation("مقدم الطلب مقيم وليس مواطن", "Applicant is a resident, not a citizen")
        return None


class CommitmentRatioRule(ApprovalRule):
    name = "commitment_ratio"

    def __init__(self, max_with_mortgage: Decimal, max_without_mortgage: Decimal):
        self.max_with_mortgage = Decimal(max_with_mortgage)
        self.max_without_mortgage = Decimal(max_without_mortgage)

    def check(self, profile):
        salary, commitments = profile.salary, profile.commitments
        if salary is None or commitments is None:
            return self.violation(
                "الراتب الشهري والالتزامات الشهرية يجب أن تكون أرقاماً صحيحة",
                "Monthly salary and monthly commitments must be valid numbers",
            )
        if salary <= 0:
            return self.violation(
                "الراتب الشهري يجب أن يكون رقم صحيح أكبر من صفر",
                "Monthly salary must be a valid number greater than zero",
            )
        if commitments < 0:
            return self.violation(
                "الالتزامات الشهرية يجب أن تكون رقم صحيح لا يقل عن صفر",
                "Monthly commitments must be a valid number not less than zero",
            )

        ratio = commitments / salary * 100
        ceiling = self.max_with_mortgage if profile.has_mortgage else self.max_without_mortgage
        if ratio <= ceiling:
            return None

        shown_ratio = str(ratio.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))
        shown_ceiling = _plain_number(ceiling)
        if profile.has_mortgage:
            return self.violation(
                f"نسبة الالتزامات ({shown_ratio}%) تتجاوز الحد المسموح ({shown_ceiling}%) للأشخاص الذين لديهم قرض عقاري",
                f"Commitment ratio ({shown_ratio}%) exceeds the allowed limit ({shown_ceiling}%) for those with mortgage loans",
            )
        return self.violation(
            f"نسبة الالتزامات ({shown_ratio}%) تتجاوز الحد المسموح ({shown_ceiling}%)",
            f"Commitment ratio ({shown_ratio}%) exceeds the allowed limit ({shown_ceiling}%)",
        )


class ServiceDurationRule(ApprovalRule):
    name = "service_duration"

    def check(self, profile):
        if profile.service_duration == SERVICE_UNDER_THREE_MONTHS:
            return self.violation(
                "عذراً، مدة الخدمة يجب أن تكون أكثر من 3 شهور",
                "Sorry, service duration must be more than 3 months",
            )
        return None


class JobSectorRule(ApprovalRule):
    name = "job_sector"

    def check(self, profile):
        if profile.job_sector == RETIREE_SECTOR:
            return self.violation(
                "عذراً، هذا النموذج غير متاح للمتقاعدين",
                "Sorry, this form is not available for retirees",
            )
        return None


def default_rules() -> List[ApprovalRule]:
    """The loan policy, in evaluation (and message) order."""
    return [
        PhoneRule(),
        BirthDateRule(config.MIN_APPLICANT_AGE),
        AgeConsistencyRule(config.AGE_TOLERANCE_YEARS),
        CitizenshipRule(),
        CommitmentRatioRule(config.MAX_COMMITMENT_RATIO_WITH_MORTGAGE, config.MAX_COMMITMENT_RATIO_WITHOUT_MORTGAGE),
        ServiceDurationRule(),
        JobSectorRule(),
    ]


class ApprovalDecisionEngine:
    """Evaluates every rule (no short-circuit) and joins all violations."""

    def __init__(self, rules: Optional[Sequence[ApprovalRule]] = None, today: Optional[Callable[[], date]] = None):
        self.rules = list(rules) if rules is not None else default_rules()
        self.today = today or date.today

    def decide(self, values: Mapping[str, Optional[str]]) -> Decision:
        try:
            profile = ApplicantProfile.from_values(values, self.today())
            violations = []
            for rule in self.rules:
                violation = rule.check(profile)
                if violation is not None:
                    violations.append(violation)
            return Decision.from_violations(violations)
        except Exception:
            logger.exception("Approval evaluation failed; rejecting with processing error")
            return Decision.processing_error()
