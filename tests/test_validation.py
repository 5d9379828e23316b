from decimal import Decimal

from models import FormField
from validation import FieldValidationEngine, parse_decimal


def make_field(field_type, rules, name="field", label="حقل"):
    return FormField(field_name=name, field_type=field_type, label=label, validation_rules=rules)


validator = FieldValidationEngine()


def test_parse_decimal():
    assert parse_decimal(" 10.5 ") == Decimal("10.5")
    assert parse_decimal("abc") is None
    assert parse_decimal("") is None
    assert parse_decimal("nan") is None
    assert parse_decimal(None) is None


def test_field_without_rule_has_no_errors():
    assert validator.validate_field(make_field("text", None), "anything") == ([], [])


def test_dropdown_must_match_valid_value_case_insensitive():
    field = make_field("dropdown", {"validValue": "Yes", "isValid": True}, name="agree", label="موافقة")
    assert validator.validate_field(field, "yes") == ([], [])
    ar, en = validator.validate_field(field, "no")
    assert ar == ["القيمة المختارة في حقل 'موافقة' غير مقبولة: no"]
    assert en == ["Selected value in 'agree' field is not acceptable: no"]


def test_dropdown_negative_polarity_rejects_match():
    field = make_field("dropdown", {"validValue": "متقاعد", "isValid": False,
                                    "errorMessageAr": "غير متاح", "errorMessageEn": "Not available"})
    assert validator.validate_field(field, "متقاعد") == (["غير متاح"], ["Not available"])
    assert validator.validate_field(field, "حكومي") == ([], [])


def test_text_equality_operators():
    equal = make_field("text", {"operator": "=", "validValue": "ABC"}, name="code")
    assert validator.validate_field(equal, "abc") == ([], [])
    ar, en = validator.validate_field(equal, "xyz")
    assert en == ["Field 'code' value must be = 'ABC' (provided: xyz)"]

    not_equal = make_field("text", {"operator": "!=", "validValue": "ABC"})
    assert validator.validate_field(not_equal, "abc")[1]
    # ordering operators are not applied to text
    greater = make_field("text", {"operator": ">", "validValue": "ABC"})
    assert validator.validate_field(greater, "a") == ([], [])


def test_number_comparisons():
    field = make_field("number", {"operator": ">=", "validValue": 3000}, name="monthlySalary", label="الراتب")
    assert validator.validate_field(field, "3000") == ([], [])
    ar, en = validator.validate_field(field, "2999.99")
    assert ar == ["قيمة حقل 'الراتب' يجب أن تكون أكبر من أو يساوي 3000 (القيمة المدخلة: 2999.99)"]
    assert en == ["Field 'monthlySalary' must be >= 3000 (provided: 2999.99)"]


def test_number_not_parsable():
    field = make_field("number", {"operator": "<", "validValue": "10"}, name="count")
    assert validator.validate_field(field, "ten")[1] == ["Field 'count' must be a valid number"]


def test_unknown_number_operator_passes():
    field = make_field("number", {"operator": "~", "validValue": "10"})
    assert validator.validate_field(field, "99") == ([], [])


def test_malformed_rule_is_ignored():
    field = make_field("number", "{not json")
    assert validator.validate_field(field, "1") == ([], [])


def test_validate_all_only_checks_supplied_fields():
    fields = [
        make_field("number", {"operator": ">", "validValue": "5"}, name="a"),
        make_field("number", {"operator": ">", "validValue": "5"}, name="b"),
    ]
    result = validator.validate_all({"a": "1"}, fields)
    assert result.has_errors
    assert result.all_errors_en == ["Field 'a' must be > 5 (provided: 1)"]
