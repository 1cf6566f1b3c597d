"""
Notification subsystem.

Components:
- models.py: Notification + JSON codec
- store.py: REST-backed notification store
- sync.py: merges snapshots and realtime pushes, tracks read/unread
"""
