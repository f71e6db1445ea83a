"""taskpulse: reminders, motivation, habit tracking and calendar sync for a personal task list."""

__version__ = "0.1.0"
