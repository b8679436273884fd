"""
Task subsystem.

Components:
- task_models.py: data structures (Task, Subtask, Reminder, Priority)
- task_store.py: task collection stored under one key in the PersistentStore
- completion.py: archive-then-insert completion for one-off and recurring tasks
"""
