"""Subprocess execution service for HostSpecializer."""

import subprocess
from typing import Optional

from hostspecializer.errors import CommandTimeoutError, SpecializationError
from hostspecializer.errors_catalog import actionable_error
from hostspecializer.models import CommandResult


class CommandRunner:
    """Runs shell commands through bash and times each call."""

    def __init__(self, logger, metrics, default_timeout: Optional[float] = None):
        self.logger = logger
        self.metrics = metrics
        self.default_timeout = default_timeout

    def run(self, command: str, metric_name: str, timeout: Optional[float] = None) -> CommandResult:
        effective_timeout = timeout if timeout is not None else self.default_timeout
        self.logger.info("Running: bash -c %s", command)

        with self.metrics.latency_event(metric_name):
            try:
                completed = subprocess.run(
                    ["bash", "-c", command],
                    text=True,
                    capture_output=True,
                    timeout=effective_timeout,
                )
            except FileNotFoundError as exc:
                raise SpecializationError(
                    actionable_error("command_not_found", command="bash")
                ) from exc
            except subprocess.TimeoutExpired as exc:
                raise CommandTimeoutError(
                    actionable_error("command_timeout", timeout=str(effective_timeout), command=command)
                ) from exc

        result = CommandResult(
            stdout=(completed.stdout or "").strip(),
            stderr=(completed.stderr or "").strip(),
            exit_code=completed.returncode,
        )
        self.logger.info("Output: %s", result.stdout)
        self.logger.info("Error: %s", result.stderr)
        self.logger.info("Exit code: %s", result.exit_code)
        return result
