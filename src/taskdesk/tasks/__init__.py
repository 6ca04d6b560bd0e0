"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskComment, TaskStatus, TaskAction)
- task_store.py: SQLite-backed storage + conditional transitions
- comment_ledger.py: append-only comments, written inside transitions
- state_machine.py: transition table and guard order
"""
