"""
Periodic notification components.

Components:
- base.py: lifecycle (idle/running/stopped) and generation-guarded runner task
- reminders.py: due-soon and overdue alerts
- motivation.py: encouragement during working hours
"""
