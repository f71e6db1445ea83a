"""
Habit subsystem.

Components:
- analysis.py: pure functions (weekly histogram, streaks, strength classification)
- detector.py: on-demand report plus the daily "habit formed" check
"""
