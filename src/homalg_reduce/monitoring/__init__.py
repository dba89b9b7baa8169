from homalg_reduce.monitoring.reduction_monitor import ReductionMonitor

__all__ = ['ReductionMonitor']
