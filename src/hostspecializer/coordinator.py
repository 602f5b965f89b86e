import logging
import os
import platform
import threading
from typing import Dict, Optional

import requests

from . import __version__
from .constants import WORKER_BUNDLE_DIR
from .environment import HostEnvironment, HostOptionsFactory, ProcessEnvironment
from .errors import SpecializationError
from .errors_catalog import actionable_error
from .models import (
    AssignmentContext,
    AssignmentSlot,
    ClaimResult,
    DeploymentPolicy,
    SpecializationStatus,
    SpecializerSettings,
)
from .services.archive import ArchiveService
from .services.command_runner import CommandRunner
from .services.deployer import PackageDeployer
from .services.download import PackageFetcher
from .services.metrics import MetricsLogger
from .services.package_format import PackageFormatDetector
from .services.sidecar import SidecarNotifier
from .services.validation import ContextValidator

logger = logging.getLogger("hostspecializer")


class SpecializationCoordinator:
    """Turns a placeholder host into a site-specific one, at most once per process."""

    def __init__(
        self,
        host_environment: HostEnvironment,
        environment: Optional[ProcessEnvironment] = None,
        settings: Optional[SpecializerSettings] = None,
        options_factory: Optional[HostOptionsFactory] = None,
        slot: Optional[AssignmentSlot] = None,
        requests_module=requests,
        command_runner=None,
        metrics: Optional[MetricsLogger] = None,
    ):
        self.host_environment = host_environment
        self.environment = environment or ProcessEnvironment()
        self.settings = settings or SpecializerSettings()
        self.options_factory = options_factory or HostOptionsFactory(self.settings, host_environment)
        self.slot = slot or AssignmentSlot()
        self.metrics = metrics or MetricsLogger(logger=logger)
        self.status = SpecializationStatus.PENDING
        self._assignment_thread: Optional[threading.Thread] = None

        self.command_runner = command_runner or CommandRunner(
            logger=logger,
            metrics=self.metrics,
            default_timeout=self.settings.command_timeout,
        )
        self.validator = ContextValidator(
            logger=logger,
            metrics=self.metrics,
            requests_module=requests_module,
            max_retries=self.settings.probe_retries,
            retry_interval=self.settings.probe_retry_interval,
            timeout=self.settings.probe_timeout,
        )
        self.fetcher = PackageFetcher(
            logger=logger,
            metrics=self.metrics,
            temp_dir=self.settings.temp_dir,
            requests_module=requests_module,
            max_retries=self.settings.download_retries,
            retry_interval=self.settings.download_retry_interval,
            timeout=self.settings.http_timeout,
        )
        self.detector = PackageFormatDetector(command_runner=self.command_runner, logger=logger)
        self.deployer = PackageDeployer(
            detector=self.detector,
            command_runner=self.command_runner,
            archive_service=ArchiveService(),
            metrics=self.metrics,
            logger=logger,
        )
        self.sidecar_notifier = SidecarNotifier(
            logger=logger,
            metrics=self.metrics,
            requests_module=requests_module,
            timeout=self.settings.http_timeout,
        )

    @property
    def assignment_context(self) -> Optional[AssignmentContext]:
        return self.slot.context

    def specialize_sidecar(self, context: AssignmentContext) -> Optional[str]:
        return self.sidecar_notifier.notify(context)

    def validate_context(self, context: AssignmentContext) -> Optional[str]:
        logger.info(
            "Validating host assignment context (SiteId: %s, SiteName: '%s')",
            context.site_id,
            context.site_name,
        )
        return self.validator.validate(context)

    def start_assignment(self, context: AssignmentContext) -> bool:
        if not self.host_environment.in_standby_mode:
            logger.error(actionable_error("not_in_placeholder_mode"))
            return False

        claim = self.slot.claim(context)
        if claim is ClaimResult.MATCHED:
            return True
        if claim is ClaimResult.CONFLICT:
            current = self.slot.context
            logger.warning(actionable_error("assignment_conflict", site_name=current.site_name))
            return False

        logger.info("Starting assignment for site %s", context.site_name)

        # Requests arriving from here on are held until the pipeline finalizes
        self.host_environment.delay_requests()

        self._assignment_thread = threading.Thread(
            target=self._assign,
            args=(context,),
            name="specialization",
            daemon=True,
        )
        self._assignment_thread.start()
        return True

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Join the assignment thread. Returns False if it is still running."""
        thread = self._assignment_thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def _assign(self, context: AssignmentContext):
        self.status = SpecializationStatus.RUNNING
        try:
            self.apply_context(context)
            if self.status is SpecializationStatus.RUNNING:
                self.status = SpecializationStatus.SUCCEEDED
        except Exception:
            self.status = SpecializationStatus.FAILED
            logger.exception("Assign failed")
            raise
        finally:
            # Leave placeholder mode even when applying the context failed
            logger.info("Triggering specialization")
            self.host_environment.flag_specialized_and_ready()
            self.host_environment.resume_requests()

    def apply_context(self, context: AssignmentContext):
        logger.info("Applying %s app setting(s)", len(context.environment))
        context.apply_app_settings(self.environment)

        options = self.options_factory.create(skip_placeholder=True)

        if not context.package_url:
            return

        file_path = self.fetcher.download(context.package_url)
        policy = DeploymentPolicy.from_environment(self.environment)
        result = self.deployer.deploy(file_path, options.script_path, policy)
        if result is not None and not result.succeeded:
            self.status = SpecializationStatus.DEGRADED

        if os.path.isdir(os.path.join(options.script_path, WORKER_BUNDLE_DIR)):
            logger.info("Python worker bundle detected")

    def get_instance_info(self) -> Dict[str, str]:
        return {
            "HOST_SPECIALIZER_VERSION": __version__,
            "PYTHON_VERSION": platform.python_version(),
        }


__all__ = ["SpecializationCoordinator", "SpecializationError"]
