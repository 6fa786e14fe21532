"""Configuration settings for the marketplace event core."""

import os


def get_postgres_uri(db_name=None):
    """Get PostgreSQL connection URI from environment variables."""
    host = os.environ.get("DB_HOST", "localhost")
    port = 5433 if host == "localhost" else 5432
    password = os.environ.get("DB_PASSWORD", "quhealthy_pass")
    user = os.environ.get("DB_USER", "quhealthy_user")
    db_name = db_name or os.environ.get("DB_NAME", "quhealthy_db")
    return f"postgresql://{user}:{password}@{host}:{port}/{db_name}"


def get_service_db_name(service: str) -> str:
    """Database name for one owning service, e.g. APPOINTMENTS_DB_NAME."""
    return os.environ.get(f"{service.upper()}_DB_NAME", f"{service}_db")


def get_redis_host_and_port():
    """Get Redis connection details from environment variables."""
    host = os.environ.get("REDIS_HOST", "localhost")
    port = int(os.environ.get("REDIS_PORT", "6379"))
    return dict(host=host, port=port)


def get_bus_config():
    """Event bus switches and consumer tuning."""
    return dict(
        enabled=os.environ.get("EVENT_BUS_ENABLED", "false").lower() == "true",
        stream_prefix=os.environ.get("EVENT_STREAM_PREFIX", "quhealthy"),
        consumer_name=os.environ.get("EVENT_CONSUMER_NAME", os.environ.get("HOSTNAME", "consumer-1")),
        max_deliveries=int(os.environ.get("EVENT_MAX_DELIVERIES", "5")),
        handler_timeout=float(os.environ.get("EVENT_HANDLER_TIMEOUT_SECONDS", "30")),
        claim_idle_ms=int(os.environ.get("EVENT_CLAIM_IDLE_MS", "60000")),
        block_ms=int(os.environ.get("EVENT_BLOCK_MS", "5000")),
        workers=int(os.environ.get("EVENT_WORKERS", "4")),
        dlq_prefix=os.environ.get("EVENT_DLQ_PREFIX", "dlq"),
    )


# Event type -> topic. Anything unlisted goes to the stream named by its first word.
EVENT_TOPICS = {
    "USER_REGISTERED": "user-events",
    "USER_DELETED": "user-events",
    "APPOINTMENT_CREATED": "appointment-events",
    "APPOINTMENT_COMPLETED": "appointment-events",
    "APPOINTMENT_CANCELED": "appointment-events",
    "APPOINTMENT_RESCHEDULED": "appointment-events",
    "REVIEW_CREATED": "review-events",
    "PROVIDER_REPLIED": "review-events",
    "REVIEW_REQUEST": "notification-events",
    "ITEM_CREATED": "catalog-events",
    "ITEM_UPDATED": "catalog-events",
    "ITEM_ARCHIVED": "catalog-events",
    "PLAN_DOWNGRADED": "payment-events",
    "ONBOARDING_STEP_COMPLETED": "onboarding-events",
    "ONBOARDING_STEP_REJECTED": "onboarding-events",
}


def get_stream_for(event_type: str) -> str:
    """Redis stream an event type is published to."""
    prefix = get_bus_config()["stream_prefix"]
    topic = EVENT_TOPICS.get(event_type)
    if topic is None:
        topic = f"{event_type.split('_')[0].lower()}-events"
    return f"{prefix}:{topic}"


def get_streams(*topics: str):
    """Fully qualified stream names for the given topics."""
    prefix = get_bus_config()["stream_prefix"]
    return [f"{prefix}:{topic}" for topic in topics]


def get_notification_config():
    """Delivery retry policy for the notification service."""
    return dict(
        max_attempts=int(os.environ.get("NOTIFICATION_MAX_ATTEMPTS", "3")),
        default_channel=os.environ.get("NOTIFICATION_DEFAULT_CHANNEL", "EMAIL"),
        relay_url=os.environ.get("NOTIFICATION_RELAY_URL"),
    )


def get_payment_config():
    """Subscription defaults for the payment service."""
    return dict(
        free_plan_id=os.environ.get("FREE_PLAN_ID", "5"),
    )


def get_api_port():
    """Port the webhook APIs listen on."""
    return int(os.environ.get("API_PORT", "8000"))
