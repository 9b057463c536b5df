"""
Probe executors, one per monitor type, and the registry that maps
type strings to them.
"""

from monitoring.executors.base import Executor, ExecutorConfig, ProbeContext
from monitoring.executors.registry import ExecutorRegistry, build_default_registry

__all__ = [
    "Executor",
    "ExecutorConfig",
    "ProbeContext",
    "ExecutorRegistry",
    "build_default_registry",
]
