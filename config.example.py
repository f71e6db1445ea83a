# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets. Keep the Google access token in .env or in the token file.

This file exists to make the repo self-documenting even without opening .env.
"""

ENV_VARS = {
    # App / logging
    "TASKPULSE_APP_NAME": "App display name, also used as the desktop notifier app name (default: taskpulse).",
    "TASKPULSE_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    "TASKPULSE_USER_ID": "Owner of the tasks this session works on (default: local).",
    "TASKPULSE_TIMEZONE": "IANA zone for due dates, working hours and habit weeks (default: system zone).",
    "TASKPULSE_CONSOLE_ENABLED": "Run the console REPL (true/false). Off => schedulers only.",
    # Paths (gitignored)
    "TASKPULSE_DATA_DIR": "Local data directory (default: .local/taskpulse).",
    "TASKPULSE_DB_PATH": "SQLite file for tasks, task logs and the key-value table "
                         "(default: <data_dir>/taskpulse.sqlite3).",
    # Notification defaults (seed the session settings; /settings changes them at runtime)
    "TASKPULSE_NOTIFICATIONS_ENABLED": "Master switch (true/false).",
    "TASKPULSE_REMINDER_MINUTES": "Due-soon window in minutes (default: 30).",
    "TASKPULSE_MOTIVATION_ENABLED": "Encouragement messages during working hours (true/false).",
    "TASKPULSE_HABIT_TRACKING_ENABLED": "Daily habit check (true/false).",
    "TASKPULSE_OS_NOTIFICATIONS_ENABLED": "Also show desktop notifications (true/false, default: false).",
    # Scheduling
    "TASKPULSE_REMINDER_INTERVAL_SECONDS": "Reminder check interval (default: 300).",
    "TASKPULSE_MOTIVATION_INTERVAL_SECONDS": "Motivation interval (default: 7200).",
    "TASKPULSE_MOTIVATION_START_HOUR": "First local hour with motivation messages (default: 9).",
    "TASKPULSE_MOTIVATION_END_HOUR": "Last local hour with motivation messages, inclusive (default: 18).",
    "TASKPULSE_HABIT_CHECK_TIME": "Local HH:MM of the daily habit check (default: 20:00).",
    # Google Calendar
    "TASKPULSE_CALENDAR_API_BASE": "Calendar v3 base URL (default: https://www.googleapis.com/calendar/v3).",
    "TASKPULSE_CALENDAR_ID": "Target calendar (default: primary).",
    "TASKPULSE_GOOGLE_TOKEN": "OAuth access token with the calendar.events scope.",
    "TASKPULSE_GOOGLE_TOKEN_PATH": "Token file (plain token or JSON with access_token) "
                                   "(default: <data_dir>/google_token.json).",
    "TASKPULSE_CALENDAR_REQUEST_DELAY_MS": "Pause between requests during batch sync (default: 100).",
    "TASKPULSE_CALENDAR_AUTO_CONNECT": "Silently reconnect the calendar at startup (true/false).",
}
