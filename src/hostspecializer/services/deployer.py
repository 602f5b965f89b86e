"""Package deployment: extract or mount a package at the script path."""

import shlex
from typing import Optional

from hostspecializer.constants import (
    FUSE_MOUNT_WRAPPER,
    METRIC_FUSE_MOUNT,
    METRIC_UNSQUASH,
    METRIC_ZIP_EXTRACT,
    SQUASHFS_MOUNT_COMMAND,
    UNSQUASH_COMMAND,
    ZIP_MOUNT_COMMAND,
)
from hostspecializer.models import CommandResult, DeploymentPolicy, PackageType


class PackageDeployer:
    """Chooses between extracting and mounting based on package type and policy.

    Tool failures are logged and handed back to the caller; they are never
    raised from here.
    """

    def __init__(self, detector, command_runner, archive_service, metrics, logger):
        self.detector = detector
        self.command_runner = command_runner
        self.archive_service = archive_service
        self.metrics = metrics
        self.logger = logger

    def deploy(self, file_path: str, target_dir: str, policy: DeploymentPolicy) -> Optional[CommandResult]:
        package_type = self.detector.classify(file_path)
        self.logger.info("Deploying %s package %s to %s", package_type.value, file_path, target_dir)

        if package_type is PackageType.SQUASHFS:
            if policy.mount_disabled:
                result = self.unsquash_image(file_path, target_dir)
            else:
                result = self.mount_squashfs_image(file_path, target_dir)
        elif policy.mount_enabled:
            result = self.mount_zip_file(file_path, target_dir)
        else:
            self.unzip_package(file_path, target_dir)
            return None

        if not result.succeeded:
            self.logger.warning(
                "Deployment command exited with %s for %s: %s",
                result.exit_code,
                file_path,
                result.stderr,
            )
        return result

    def unzip_package(self, file_path: str, target_dir: str):
        with self.metrics.latency_event(METRIC_ZIP_EXTRACT):
            self.logger.info("Extracting files to '%s'", target_dir)
            count = self.archive_service.extract_zip(file_path, target_dir)
            self.logger.info("Zip extraction complete (%s files)", count)

    def unsquash_image(self, file_path: str, target_dir: str) -> CommandResult:
        command = UNSQUASH_COMMAND.format(
            target_dir=shlex.quote(target_dir),
            file_path=shlex.quote(file_path),
        )
        return self.command_runner.run(command, METRIC_UNSQUASH)

    def mount_squashfs_image(self, file_path: str, target_dir: str) -> CommandResult:
        return self._fuse_mount(
            SQUASHFS_MOUNT_COMMAND.format(
                file_path=shlex.quote(file_path),
                target_dir=shlex.quote(target_dir),
            ),
            target_dir,
        )

    def mount_zip_file(self, file_path: str, target_dir: str) -> CommandResult:
        return self._fuse_mount(
            ZIP_MOUNT_COMMAND.format(
                file_path=shlex.quote(file_path),
                target_dir=shlex.quote(target_dir),
            ),
            target_dir,
        )

    def _fuse_mount(self, mount_command: str, target_dir: str) -> CommandResult:
        command = FUSE_MOUNT_WRAPPER.format(
            target_dir=shlex.quote(target_dir),
            mount_command=mount_command,
        )
        return self.command_runner.run(command, METRIC_FUSE_MOUNT)
