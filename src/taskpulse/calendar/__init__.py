"""
Calendar reconciliation.

Components:
- mapping.py: task -> event payload
- sync_records.py: persisted task -> event id map and the auto-sync flag
- google.py: token authorizer and Calendar v3 client (httpx)
- reconciler.py: single-task and batch sync, auto-sync, connect/disconnect
"""
