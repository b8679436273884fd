"""
Focus timer.

Components:
- timer_models.py: phases, the persisted TimerSession and read-only snapshots
- session_store.py: the single persisted focus slot
- timer_engine.py: wall-clock anchored pomodoro state machine
- timer_loop.py: polling loop that completes phases whose end time passed
"""
