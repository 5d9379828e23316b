# exceptions.py - precondition errors raised to callers before anything is persisted


class FormBackendError(Exception):
    """Base class for caller-correctable failures."""

    status_code = 400

    def __init__(self, message, message_en=None):
        super().__init__(message_en or message)
        self.message = message
        self.message_en = message_en or message


class SchemaNotFound(FormBackendError):
    status_code = 404

    def __init__(self, form_id=None):
        if form_id is None:
            super().__init__("لا يوجد نموذج نشط", "No active form")
        else:
            super().__init__(
                f"النموذج رقم {form_id} غير موجود أو غير نشط",
                f"Form {form_id} does not exist or is not active",
            )
        self.form_id = form_id


class MissingRequiredFields(FormBackendError):
    def __init__(self, labels):
        self.labels = list(labels)
        super().__init__(
            f"الحقول التالية مطلوبة: {', '.join(self.labels)}",
            f"The following fields are required: {', '.join(self.labels)}",
        )


class SubmissionNotFound(FormBackendError):
    status_code = 404

    def __init__(self, submission_id):
        self.submission_id = submission_id
        super().__init__("المرسلة غير موجودة", f"Submission {submission_id} not found")


class InvalidStatus(FormBackendError):
    def __init__(self, status):
        self.status = status
        super().__init__(f"حالة غير معروفة: {status}", f"Unknown submission status: {status}")
