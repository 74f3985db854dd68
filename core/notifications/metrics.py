from prometheus_client import Counter

DELIVERY_ATTEMPTS = Counter(
    'clinic_notification_delivery_attempts_total',
    'Notification delivery attempts by channel, driver and outcome',
    ['channel', 'driver', 'outcome'],
)

QUEUED_JOBS = Counter(
    'clinic_notification_jobs_queued_total',
    'Notification jobs pushed onto a queue',
    ['queue'],
)
