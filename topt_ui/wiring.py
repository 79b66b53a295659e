from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Optional

from topt_app.api import OptimizerService, OptimizerSettings, PrivilegeBroker
from topt_common.api import configure_logging
from topt_ui.ui.adapters import ConsoleUIAdapter, HeadlessUIAdapter
from topt_ui.ui.interfaces import UIAdapter


@dataclass
class UIContext:
    """Container for UI services and state, initialized lazily."""
    headless: bool = False
    interactive: bool = True

    # Lazily initialized services
    _ui: Optional[UIAdapter] = None
    _settings: Optional[OptimizerSettings] = None
    _service: Optional[OptimizerService] = None

    @property
    def ui(self) -> UIAdapter:
        if self._ui is None:
            if self.headless or not sys.stdout.isatty():
                self._ui = HeadlessUIAdapter()
            else:
                self._ui = ConsoleUIAdapter()
        return self._ui

    @ui.setter
    def ui(self, value: UIAdapter):
        self._ui = value

    @property
    def settings(self) -> OptimizerSettings:
        if self._settings is None:
            self._settings = OptimizerSettings.from_env()
            if not self.interactive:
                self._settings.interactive = False
        return self._settings

    @settings.setter
    def settings(self, value: OptimizerSettings):
        self._settings = value

    @property
    def service(self) -> OptimizerService:
        if self._service is None:
            self._service = OptimizerService(
                settings=self.settings,
                privilege_broker=PrivilegeBroker(interactive=self.settings.interactive),
            )
        return self._service

    @service.setter
    def service(self, value: OptimizerService):
        self._service = value


__all__ = [
    "UIContext",
    "configure_logging",
]
