from .health import LoopHealth, RuntimeHealth
from .scheduler import Scheduler, SchedulerState
from .supervisor import LoopSupervisor

__all__ = ["LoopHealth", "RuntimeHealth", "Scheduler", "SchedulerState", "LoopSupervisor"]
