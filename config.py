# config.py - environment-driven settings
import os
from decimal import Decimal
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Approval policy
MIN_APPLICANT_AGE = int(os.getenv("MIN_APPLICANT_AGE", "20"))
AGE_TOLERANCE_YEARS = int(os.getenv("AGE_TOLERANCE_YEARS", "1"))
MAX_COMMITMENT_RATIO_WITH_MORTGAGE = Decimal(os.getenv("MAX_COMMITMENT_RATIO_WITH_MORTGAGE", "55"))
MAX_COMMITMENT_RATIO_WITHOUT_MORTGAGE = Decimal(os.getenv("MAX_COMMITMENT_RATIO_WITHOUT_MORTGAGE", "43"))

# Messaging gateway (WhatsApp templates)
MESSAGING_API_URL = os.getenv("MESSAGING_API_URL", "https://crm.morasalaty.net/api")
MESSAGING_API_TOKEN = os.getenv("MESSAGING_API_TOKEN")
MESSAGING_TIMEOUT_SECONDS = float(os.getenv("MESSAGING_TIMEOUT_SECONDS", "20"))
MESSAGING_TEMPLATE_NAMESPACE = os.getenv("MESSAGING_TEMPLATE_NAMESPACE", "676e0a58_1340_4060_a74f_3248368335fa")
MESSAGING_APPROVAL_TEMPLATE = os.getenv("MESSAGING_APPROVAL_TEMPLATE", "m_4_10_1006")
MESSAGING_REJECTION_TEMPLATE = os.getenv("MESSAGING_REJECTION_TEMPLATE", "m_4_10_1007")
MESSAGING_QUICK_REPLY_ID = os.getenv("MESSAGING_QUICK_REPLY_ID", "f146755s2591243")
MESSAGING_TEMPLATE_LANG = os.getenv("MESSAGING_TEMPLATE_LANG", "ar")

NOTIFICATION_MAX_ATTEMPTS = int(os.getenv("NOTIFICATION_MAX_ATTEMPTS", "3"))
NOTIFICATION_RETRY_BACKOFF_SECONDS = float(os.getenv("NOTIFICATION_RETRY_BACKOFF_SECONDS", "30"))
