# constants.py - statuses, well-known field names and value tokens

# Submission status
STATUS_UNDER_REVIEW = "under_review"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
STATUS_DELETED = "deleted"

SUBMISSION_STATUSES = (STATUS_UNDER_REVIEW, STATUS_APPROVED, STATUS_REJECTED, STATUS_DELETED)

# Field types
FIELD_TEXT = "text"
FIELD_NUMBER = "number"
FIELD_DROPDOWN = "dropdown"
FIELD_CHECKBOX = "checkbox"
FIELD_DATE = "date"

# Well-known field names read by the approval rules
FULL_NAME = "fullName"
PHONE_NUMBER = "phoneNumber"
BIRTH_DATE = "birthDate"
AGE = "age"
CITIZENSHIP_STATUS = "citizenshipStatus"
HAS_MORTGAGE = "hasMortgage"
MONTHLY_SALARY = "monthlySalary"
MONTHLY_COMMITMENTS = "monthlyCommitments"
SERVICE_DURATION = "ServiceDuration"
JOB_SECTOR = "jobSector"
NATIONAL_ID = "nationalId"

# Value tokens
RESIDENT_TOKENS = frozenset(["مقيم", "resident"])
MORTGAGE_YES_TOKENS = frozenset(["نعم", "yes", "true", "1"])
SERVICE_UNDER_THREE_MONTHS = "اقل من ٣ شهور"
RETIREE_SECTOR = "متقاعد"

REASON_DELIMITER = ", "
UNSPECIFIED_REASON = "غير محدد"
