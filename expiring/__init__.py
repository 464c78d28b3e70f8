from expiring.cache import ExpiringMap, ExpiringSet
from expiring.scheduler import ManualScheduler, ManualTimer, Scheduler, TimerHandle

__all__ = [
    "ExpiringMap",
    "ExpiringSet",
    "ManualScheduler",
    "ManualTimer",
    "Scheduler",
    "TimerHandle",
]
