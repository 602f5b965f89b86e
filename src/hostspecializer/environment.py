"""Process and host environment collaborators."""

import logging
import os
import threading
from dataclasses import dataclass
from typing import MutableMapping, Optional

from hostspecializer.constants import MOUNT_DISABLED, MOUNT_ENABLED
from hostspecializer.models import SpecializerSettings


class ProcessEnvironment:
    """Reads and writes app settings in the process environment."""

    def __init__(self, variables: Optional[MutableMapping[str, str]] = None):
        self.variables = os.environ if variables is None else variables

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.variables.get(name, default)

    def apply_app_settings(self, settings):
        for name, value in settings.items():
            self.variables[name] = value

    def is_mount_disabled(self) -> bool:
        return self.get(MOUNT_DISABLED) == "1"

    def is_mount_enabled(self) -> bool:
        return self.get(MOUNT_ENABLED) == "1"


class HostEnvironment:
    """In-memory host state: standby flag, request gate and readiness."""

    def __init__(self, logger: logging.Logger, in_standby_mode: bool = True):
        self.logger = logger
        self._standby = in_standby_mode
        self._requests_open = threading.Event()
        self._requests_open.set()
        self._ready = threading.Event()
        if not in_standby_mode:
            self._ready.set()

    @property
    def in_standby_mode(self) -> bool:
        return self._standby

    @property
    def delaying_requests(self) -> bool:
        return not self._requests_open.is_set()

    def delay_requests(self):
        self.logger.debug("Delaying inbound requests")
        self._requests_open.clear()

    def resume_requests(self):
        self.logger.debug("Resuming inbound requests")
        self._requests_open.set()

    def flag_specialized_and_ready(self):
        self._standby = False
        self._ready.set()

    def wait_for_requests(self, timeout: Optional[float] = None) -> bool:
        """Block a request handler until traffic is flowing again."""
        return self._requests_open.wait(timeout)

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._ready.wait(timeout)


@dataclass(frozen=True)
class HostOptions:
    script_path: str


class HostOptionsFactory:
    """Resolves the script path the host should serve from."""

    def __init__(self, settings: SpecializerSettings, host_environment: HostEnvironment):
        self.settings = settings
        self.host_environment = host_environment

    def create(self, skip_placeholder: bool = False) -> HostOptions:
        if self.host_environment.in_standby_mode and not skip_placeholder:
            return HostOptions(script_path=self.settings.placeholder_script_root)
        return HostOptions(script_path=self.settings.script_root)
