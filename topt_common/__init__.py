"""Shared helpers for task-optimizer."""

from topt_common.api import TaskOptimizerError, configure_logging

__all__ = ["configure_logging", "TaskOptimizerError"]
