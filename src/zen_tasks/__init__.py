"""Personal task manager core: tasks, recurrence and a focus timer."""

__version__ = "0.1.0"
