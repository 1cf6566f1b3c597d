# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real tokens. Use .env (local, gitignored).

This file exists to make the repo self-documenting.
"""

ENV_VARS = {
    # App / logging
    "TASKDECK_APP_NAME": "App display name (default: taskdeck).",
    "TASKDECK_LOG_LEVEL": "Console logging level (default: INFO).",
    "TASKDECK_DATA_DIR": "Local data directory for logs (default: .local/taskdeck).",
    # Backend
    "TASKDECK_API_BASE_URL": "REST backend base URL (default: http://localhost:5000).",
    "TASKDECK_REALTIME_URL": "Realtime websocket URL (default: ws://localhost:5000/ws).",
    "TASKDECK_API_TOKEN": "Bearer token for the REST API and realtime handshake.",
    # HTTP
    "TASKDECK_HTTP_TIMEOUT_SECONDS": "Per-request timeout (default: 10).",
    "TASKDECK_HTTP_RETRY_ATTEMPTS": "Attempts for idempotent reads (default: 3).",
    "TASKDECK_HTTP_RETRY_BASE_DELAY": "First retry delay in seconds, doubling (default: 0.5).",
    # Realtime
    "TASKDECK_RECONNECT_ATTEMPTS": "Consecutive reconnect attempts before giving up (default: 5).",
    "TASKDECK_RECONNECT_BASE_DELAY": "First reconnect delay in seconds, doubling (default: 1.0).",
    "TASKDECK_RECONNECT_MAX_DELAY": "Reconnect delay cap in seconds (default: 30).",
    "TASKDECK_HANDSHAKE_TIMEOUT": "Seconds to wait for the credential acknowledgement (default: 10).",
    # Reminders
    "TASKDECK_NOTIFY_ENABLED": "Enable reminders (true/false, default: true).",
    "TASKDECK_NOTIFY_PRIORITIES": "Priorities to remind about (default: 'high medium').",
    "TASKDECK_REMINDER_HOURS": "Look-ahead window in hours (default: 24).",
    "TASKDECK_OVERDUE_REMINDERS": "Also list overdue tasks (true/false, default: true).",
}
