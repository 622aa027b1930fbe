"""
Centralized constants for notification delivery and the retry scheduler.

Change statuses, defaults or job IDs here instead of scattering literals across services and routes.
"""

# Subscription kind used by restock subscriptions (channel_type column)
RESTOCK_CHANNEL_TYPE = "restocked"

# Delivery log statuses
STATUS_PENDING = "pending"
STATUS_SENT = "sent"
STATUS_FAILED = "failed"
STATUS_RETRIED = "retried"
DELIVERY_STATUSES = (STATUS_PENDING, STATUS_SENT, STATUS_FAILED, STATUS_RETRIED)

# Channels a preference can enable
CHANNEL_EMAIL = "email"
CHANNEL_PUSH = "push"
CHANNEL_SMS = "sms"
CHANNEL_IN_APP = "in_app"
ALL_CHANNELS = (CHANNEL_EMAIL, CHANNEL_PUSH, CHANNEL_SMS, CHANNEL_IN_APP)

# Preference defaults on first access
DEFAULT_PREFERENCES = {
    "email_enabled": True,
    "push_enabled": False,
    "sms_enabled": False,
    "in_app_enabled": True,
}

# Scheduler job IDs (must match ids used in main.py add_job)
RETRY_JOB_ID = "retry_failed_deliveries"

# Scalability: cap rows per list request / retry sweep
LOG_LIST_LIMIT = 200
RETRY_SWEEP_LIMIT = 500
