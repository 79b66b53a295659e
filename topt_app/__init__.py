"""Application-level facade between the CLI and the tuning engine."""

from .api import OptimizerService, OptimizerSettings

__all__ = ["OptimizerService", "OptimizerSettings"]
