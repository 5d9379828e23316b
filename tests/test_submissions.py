import datetime

import pytest

import submissions
from constants import STATUS_APPROVED, STATUS_DELETED, STATUS_REJECTED, STATUS_UNDER_REVIEW
from exceptions import InvalidStatus
from submission_pipeline import SubmissionPipeline
from submissions import SubmissionFilter, english_label, query_submissions


def submit(db_sess, values, **overrides):
    data = dict(values)
    data.update(overrides)
    return SubmissionPipeline(db_sess).submit(None, "tester", data).submission_id


def test_english_label():
    assert english_label("phoneNumber") == "Phone Number"
    assert english_label("monthlySalary") == "Monthly Salary"
    assert english_label("employerName") == "Employer Name"
    assert english_label("years_of_service") == "Years Of Service"


def test_detail_has_phone_and_values(db_sess, loan_form, good_values):
    sid = submit(db_sess, good_values)
    detail = submissions.get_submission_detail(db_sess, sid)
    assert detail.phone_number == "0501234567"
    assert detail.submitted_by == "tester"
    assert [v.field_name for v in detail.values][:2] == ["fullName", "phoneNumber"]
    assert submissions.get_submission_detail(db_sess, 404) is None


def test_manual_status_update_dispatches_notification(db_sess, loan_form, good_values, dispatcher):
    sid = submit(db_sess, good_values, citizenshipStatus="مقيم")

    updated = submissions.update_status(db_sess, sid, STATUS_APPROVED, dispatcher=dispatcher)
    assert updated.status == STATUS_APPROVED
    assert updated.rejection_reason is None
    assert updated.rejection_reason_en is None
    assert dispatcher.calls == [(sid, STATUS_APPROVED)]

    # same status again is a no-op for notifications
    submissions.update_status(db_sess, sid, STATUS_APPROVED, dispatcher=dispatcher)
    assert len(dispatcher.calls) == 1

    submissions.update_status(db_sess, sid, STATUS_REJECTED, "سبب يدوي", "Manual reason", dispatcher=dispatcher)
    stored = submissions.get_submission(db_sess, sid)
    assert stored.rejection_reason == "سبب يدوي"
    assert stored.rejection_reason_en == "Manual reason"
    assert dispatcher.calls[-1] == (sid, STATUS_REJECTED)


def test_unknown_status_is_refused(db_sess, loan_form, good_values):
    sid = submit(db_sess, good_values)
    with pytest.raises(InvalidStatus):
        submissions.update_status(db_sess, sid, "archived")


def test_update_missing_submission(db_sess, loan_form):
    assert submissions.update_status(db_sess, 12345, STATUS_REJECTED) is None
    assert not submissions.delete_submission(db_sess, 12345)


def test_soft_delete_keeps_row_and_can_be_revived(db_sess, loan_form, good_values):
    sid = submit(db_sess, good_values)
    assert submissions.delete_submission(db_sess, sid)
    assert submissions.get_submission(db_sess, sid).status == STATUS_DELETED

    submissions.update_status(db_sess, sid, STATUS_UNDER_REVIEW)
    assert submissions.get_submission(db_sess, sid).status == STATUS_UNDER_REVIEW


def test_query_filters_and_paging(db_sess, loan_form, good_values):
    now = datetime.datetime(2025, 6, 15, 12, 0)
    ids = [submit(db_sess, good_values) for _ in range(3)]
    rejected = submit(db_sess, good_values, citizenshipStatus="مقيم")

    dates = [now - datetime.timedelta(days=2), now - datetime.timedelta(days=1), now, now]
    for sid, when in zip(ids + [rejected], dates):
        submissions.get_submission(db_sess, sid).submitted_date = when
    db_sess.commit()

    page = query_submissions(db_sess, page=1, page_size=3, now=now)
    assert page.total_count == 4
    assert page.total_pages == 2
    assert page.has_next_page and not page.has_previous_page
    assert [i.submission_id for i in page.items] == [rejected, ids[2], ids[1]]
    assert page.today_submissions_count == 2
    assert page.today_approved_submissions_count == 1
    assert page.today_rejected_submissions_count == 1
    assert page.approved_submissions_count == 3
    assert page.rejected_submissions_count == 1
    assert page.items[0].preview == "محمد أحمد علي - 0501234567"
    assert page.items[0].values[0].en_label == "Name"

    second = query_submissions(db_sess, page=2, page_size=3, now=now)
    assert [i.submission_id for i in second.items] == [ids[0]]
    assert second.has_previous_page and not second.has_next_page

    only_rejected = query_submissions(db_sess, SubmissionFilter(status=STATUS_REJECTED), now=now)
    assert [i.submission_id for i in only_rejected.items] == [rejected]

    window = SubmissionFilter(from_date=now - datetime.timedelta(days=1, hours=1),
                              to_date=now - datetime.timedelta(hours=1))
    assert [i.submission_id for i in query_submissions(db_sess, window, now=now).items] == [ids[1]]

    by_form = query_submissions(db_sess, SubmissionFilter(form_id=loan_form.form_id + 1), now=now)
    assert by_form.total_count == 0
