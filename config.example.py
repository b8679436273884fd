# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
See src/zen_tasks/config.py for parsing and defaults.
"""

ENV_VARS = {
    # App / logging
    "ZEN_APP_NAME": "App display name (default: zen-tasks).",
    "ZEN_LOG_LEVEL": "Console logging level (default: INFO).",
    # Paths (gitignored)
    "ZEN_DATA_DIR": "Local data directory, also holds zen.log (default: .local/zen).",
    "ZEN_STORE_DB_PATH": "Key/value SQLite path (default: <data_dir>/store.sqlite3).",
    # Focus timer
    "ZEN_RESUME_AFTER_RESTART": (
        "Keep a running focus session across a process restart (true/false, default: true)."
    ),
    "ZEN_TIMER_POLL_SECONDS": "How often the running timer is re-checked (default: 1.0).",
    "ZEN_WORK_MINUTES": "Work phase length, 1..90 (default: 25).",
    "ZEN_SHORT_BREAK_MINUTES": "Short break length, 1..30 (default: 5).",
    "ZEN_LONG_BREAK_MINUTES": "Long break length, 1..60 (default: 15).",
    "ZEN_SESSIONS_BEFORE_LONG_BREAK": "Work sessions per long break, 1..10 (default: 4).",
    # Tier
    "ZEN_PREMIUM": (
        "Unlock custom recurrence intervals and pomodoro durations (true/false, default: false)."
    ),
}
