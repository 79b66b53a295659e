from topt_ui.ui.adapters.console import ConsoleUIAdapter
from topt_ui.ui.adapters.headless import HeadlessUIAdapter

__all__ = ["ConsoleUIAdapter", "HeadlessUIAdapter"]
