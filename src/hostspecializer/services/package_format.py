"""Package format detection for downloaded artifacts."""

import shlex

from hostspecializer.constants import (
    FILE_COMMAND,
    METRIC_FILE_COMMAND,
    SQUASHFS_EXTENSIONS,
    ZIP_EXTENSION,
)
from hostspecializer.errors import PackageFormatError
from hostspecializer.errors_catalog import actionable_error
from hostspecializer.models import PackageType


class PackageFormatDetector:
    """Classifies a package by file name, then by magic number."""

    def __init__(self, command_runner, logger):
        self.command_runner = command_runner
        self.logger = logger

    def classify(self, file_path: str) -> PackageType:
        lowered = file_path.lower()
        if lowered.endswith(SQUASHFS_EXTENSIONS):
            return PackageType.SQUASHFS
        if lowered.endswith(ZIP_EXTENSION):
            return PackageType.ZIP

        result = self.command_runner.run(
            FILE_COMMAND.format(file_path=shlex.quote(file_path)),
            METRIC_FILE_COMMAND,
        )
        description = result.stdout.lower()
        if description.startswith("squashfs"):
            return PackageType.SQUASHFS
        if description.startswith("zip"):
            return PackageType.ZIP

        raise PackageFormatError(actionable_error("unrecognized_package_format", path=file_path))
