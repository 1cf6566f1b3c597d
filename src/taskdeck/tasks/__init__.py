"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskStatus, TaskPriority, Bucket) + JSON codec
- buckets.py: pure bucket classification used by the board view
- task_store.py: REST-backed task store
- coordinator.py: optimistic mutation coordinator (task cache owner)
- reminders.py: reminder selection from notification preferences
"""
