"""Background workers."""

from alphasignal.workers.sweep_worker import IdentityError, SweepResult, SweepState, SweepWorker

__all__ = ["IdentityError", "SweepResult", "SweepState", "SweepWorker"]
