import datetime

import pytest

from approval import (
    ApprovalDecisionEngine,
    ApprovalRule,
    CommitmentRatioRule,
    Decision,
    compute_age,
    parse_iso_date,
)
from constants import STATUS_APPROVED, STATUS_REJECTED

TODAY = datetime.date(2025, 6, 15)


def engine(**kwargs):
    return ApprovalDecisionEngine(today=lambda: TODAY, **kwargs)


def values(**overrides):
    base = {
        "fullName": "سارة خالد",
        "phoneNumber": "+966 55 123 4567",
        "birthDate": "1990-03-01",
        "age": "35",
        "citizenshipStatus": "مواطن",
        "hasMortgage": "لا",
        "monthlySalary": "12000",
        "monthlyCommitments": "3000",
    }
    base.update(overrides)
    return base


def test_clean_applicant_is_approved():
    decision = engine().decide(values())
    assert decision.approved
    assert decision.status == STATUS_APPROVED
    assert decision.rejection_reason_ar is None
    assert decision.violations == []


def test_compute_age_is_birthday_aware():
    assert compute_age(datetime.date(2005, 6, 15), TODAY) == 20
    assert compute_age(datetime.date(2005, 6, 16), TODAY) == 19
    assert compute_age(datetime.date(2004, 2, 29), datetime.date(2025, 2, 28)) == 20


def test_parse_iso_date_is_strict():
    assert parse_iso_date("2000-01-31") == datetime.date(2000, 1, 31)
    assert parse_iso_date("31/01/2000") is None
    assert parse_iso_date("2000-02-30") is None
    assert parse_iso_date("2000-1-5") is None


def test_exactly_twenty_today_is_accepted():
    decision = engine().decide(values(birthDate="2005-06-15", age="20"))
    assert decision.approved


def test_one_day_short_of_twenty_is_rejected():
    decision = engine().decide(values(birthDate="2005-06-16", age="19"))
    assert not decision.approved
    assert decision.rejection_reason_en == "Age is below the minimum required (20 years) - calculated age: 19"
    assert decision.rejection_reason_ar == "العمر أقل من الحد الأدنى المطلوب (20 سنة) - العمر المحسوب: 19"


def test_missing_and_invalid_birth_date():
    missing = engine().decide(values(birthDate=""))
    assert missing.rejection_reason_en == "Birth date is required"

    invalid = engine().decide(values(birthDate="15-06-1990"))
    assert invalid.rejection_reason_en == "Invalid birth date, expected format YYYY-MM-DD (provided: 15-06-1990)"


def test_declared_age_within_one_year_passes():
    assert engine().decide(values(age="36")).approved
    assert engine().decide(values(age="34")).approved


def test_declared_age_mismatch():
    decision = engine().decide(values(age="40"))
    assert decision.rejection_reason_en == "Declared age (40) does not match the age calculated from birth date (35)"


def test_unparsable_declared_age_is_a_mismatch():
    decision = engine().decide(values(age="thirty"))
    assert decision.rejection_reason_en == "Declared age (thirty) does not match the age calculated from birth date (35)"


@pytest.mark.parametrize("status", ["مقيم", "Resident", "RESIDENT"])
def test_resident_is_rejected(status):
    decision = engine().decide(values(citizenshipStatus=status))
    assert decision.rejection_reason_en == "Applicant is a resident, not a citizen"


@pytest.mark.parametrize("salary, commitments, mortgage, approved", [
    ("10000", "4300", "لا", True),
    ("10000", "4301", "لا", False),
    ("10000", "5500", "نعم", True),
    ("10000", "5501", "نعم", False),
    ("10000", "0", "لا", True),
])
def test_commitment_ratio_boundaries(salary, commitments, mortgage, approved):
    decision = engine().decide(values(monthlySalary=salary, monthlyCommitments=commitments, hasMortgage=mortgage))
    assert decision.approved is approved


def test_ratio_message_without_mortgage():
    decision = engine().decide(values(monthlySalary="10000", monthlyCommitments="5000"))
    assert decision.rejection_reason_en == "Commitment ratio (50.0%) exceeds the allowed limit (43%)"
    assert decision.rejection_reason_ar == "نسبة الالتزامات (50.0%) تتجاوز الحد المسموح (43%)"


def test_ratio_message_with_mortgage():
    decision = engine().decide(values(monthlySalary="10000", monthlyCommitments="6000", hasMortgage="yes"))
    assert decision.rejection_reason_en == (
        "Commitment ratio (60.0%) exceeds the allowed limit (55%) for those with mortgage loans"
    )


def test_salary_and_commitment_parsing():
    assert engine().decide(values(monthlySalary="abc")).rejection_reason_en == (
        "Monthly salary and monthly commitments must be valid numbers"
    )
    assert engine().decide(values(monthlySalary="0")).rejection_reason_en == (
        "Monthly salary must be a valid number greater than zero"
    )
    assert engine().decide(values(monthlyCommitments="-1")).rejection_reason_en == (
        "Monthly commitments must be a valid number not less than zero"
    )


def test_custom_ceilings():
    rule = CommitmentRatioRule(max_with_mortgage=60, max_without_mortgage=50)
    decision = ApprovalDecisionEngine(rules=[rule], today=lambda: TODAY).decide(
        values(monthlySalary="10000", monthlyCommitments="5000")
    )
    assert decision.approved


def test_phone_required_and_invalid():
    missing = engine().decide(values(phoneNumber=""))
    assert missing.rejection_reason_en == "Phone number is required"
    assert missing.rejection_reason_ar == "رقم الجوال مطلوب"

    invalid = engine().decide(values(phoneNumber="123"))
    assert invalid.rejection_reason_en.startswith("Invalid phone number: Unsupported phone number format")


def test_violations_are_all_reported_in_rule_order():
    decision = engine().decide(values(phoneNumber="123", citizenshipStatus="مقيم"))
    assert decision.status == STATUS_REJECTED
    assert decision.rejection_reason_ar == (
        "رقم الجوال غير صحيح: برجاء ادخال الرقم الصحيح مثال (966-5xxxxxxxx), مقدم الطلب مقيم وليس مواطن"
    )
    assert [v.rule for v in decision.violations] == ["phone", "citizenship"]


def test_service_duration_and_retiree_rules():
    decision = engine().decide(values(ServiceDuration="اقل من ٣ شهور", jobSector="متقاعد"))
    assert decision.rejection_reason_en == (
        "Sorry, service duration must be more than 3 months, Sorry, this form is not available for retirees"
    )


def test_field_names_are_matched_case_insensitively():
    raw = values()
    raw.pop("citizenshipStatus")
    raw["CitizenshipStatus"] = "مقيم"
    assert engine().decide(raw).rejection_reason_en == "Applicant is a resident, not a citizen"


class ExplodingRule(ApprovalRule):
    name = "exploding"

    def check(self, profile):
        raise RuntimeError("boom")


def test_unexpected_error_becomes_processing_rejection():
    decision = engine(rules=[ExplodingRule()]).decide(values())
    assert decision == Decision.processing_error()
    assert decision.rejection_reason_en == "System review error"
    assert decision.rejection_reason_ar == "خطأ في نظام المراجعة"


def test_ratio_is_shown_rounded_half_up():
    decision = engine().decide(values(monthlySalary="10000", monthlyCommitments="5025"))
    assert decision.rejection_reason_en == "Commitment ratio (50.3%) exceeds the allowed limit (43%)"


def test_age_consistency_is_skipped_without_a_valid_birth_date():
    decision = engine().decide(values(birthDate="1990/03/01", age="99"))
    assert [v.rule for v in decision.violations] == ["birth_date"]
    assert decision.rejection_reason_en == "Invalid birth date, expected format YYYY-MM-DD (provided: 1990/03/01)"
