"""Presentation adapters for task-optimizer."""

from topt_ui.ui.adapters import ConsoleUIAdapter, HeadlessUIAdapter
from topt_ui.ui.interfaces import UIAdapter

__all__ = ["ConsoleUIAdapter", "HeadlessUIAdapter", "UIAdapter"]
