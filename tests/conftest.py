import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import datetime

import pytest
from sqlalchemy.orm import sessionmaker

import forms
from db import build_engine
from models import Base
from schemas import FieldIn, ValidationRule


class RecordingDispatcher:
    """Stands in for NotificationDispatcher; remembers what would have been queued."""

    def __init__(self):
        self.calls = []

    def dispatch(self, submission_id, status):
        self.calls.append((submission_id, status))


@pytest.fixture()
def engine():
    eng = build_engine("sqlite://")
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, future=True, expire_on_commit=False)


@pytest.fixture()
def db_sess(session_factory):
    sess = session_factory()
    yield sess
    sess.close()


@pytest.fixture()
def dispatcher():
    return RecordingDispatcher()


EXTRA_FIELDS = [
    FieldIn(field_name="ServiceDuration", field_type="dropdown", label="مدة الخدمة", label_en="Service Duration",
            is_required=False, options=["اقل من ٣ شهور", "من ٣ شهور إلى سنة", "أكثر من سنة"]),
    FieldIn(field_name="jobSector", field_type="dropdown", label="قطاع العمل", label_en="Job Sector",
            is_required=False, options=["حكومي", "خاص", "عسكري", "متقاعد"]),
    FieldIn(field_name="bankName", field_type="dropdown", label="البنك", label_en="Bank",
            is_required=False, options=["الراجحي", "الأهلي"],
            validation_rules=ValidationRule(valid_value="الراجحي", is_valid=True,
                                            error_message_ar="البنك غير مدعوم حالياً",
                                            error_message_en="Bank is not supported yet")),
]


@pytest.fixture()
def loan_form(db_sess):
    return forms.create_form(db_sess, "نموذج التمويل الشخصي", EXTRA_FIELDS, description="loan", created_by="admin")


def birth_date_for_age(age, today=None):
    today = today or datetime.date.today()
    return datetime.date(today.year - age, 1, 1)


@pytest.fixture()
def good_values():
    return {
        "fullName": "محمد أحمد علي",
        "phoneNumber": "0501234567",
        "birthDate": birth_date_for_age(30).isoformat(),
        "age": "30",
        "citizenshipStatus": "مواطن",
        "hasMortgage": "لا",
        "monthlySalary": "10000",
        "monthlyCommitments": "2000",
        "ServiceDuration": "أكثر من سنة",
        "jobSector": "حكومي",
        "bankName": "الراجحي",
    }


@pytest.fixture()
def extra_fields():
    return list(EXTRA_FIELDS)
