"""Configuration and assignment context loaders for HostSpecializer."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from hostspecializer.errors import SpecializationError
from hostspecializer.errors_catalog import actionable_error
from hostspecializer.models import AssignmentContext


def _read_yaml(path: Path, label: str) -> Any:
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8"))
    except (yaml.YAMLError, OSError) as exc:
        raise SpecializationError(f"Invalid {label} '{path}': {exc}") from exc


class ConfigLoader:
    """Loads YAML configuration files for CLI defaults."""

    SUPPORTED_KEYS = {
        "script_root",
        "placeholder_script_root",
        "temp_dir",
        "command_timeout",
        "download_retries",
        "download_retry_interval",
        "probe_retries",
        "probe_retry_interval",
        "probe_timeout",
        "http_timeout",
        "verbose",
        "log_file",
        "report_file",
        "wait_timeout",
    }

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.exists():
            raise SpecializationError(actionable_error("config_not_found", path=config_path))

        parsed = _read_yaml(path, "config file")
        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise SpecializationError("Config file must contain a YAML mapping at the root.")

        unknown = sorted(set(parsed.keys()) - self.SUPPORTED_KEYS)
        if unknown:
            unknown_list = ", ".join(unknown)
            raise SpecializationError(f"Unknown configuration keys: {unknown_list}")

        return parsed

    def load_context(self, context_path: str) -> AssignmentContext:
        """Read an assignment context from a JSON or YAML file."""
        path = Path(context_path)
        if not path.is_file():
            raise SpecializationError(actionable_error("context_not_found", path=context_path))

        parsed = _read_yaml(path, "assignment context")
        if not isinstance(parsed, dict):
            raise SpecializationError("Assignment context file must contain a mapping at the root.")
        return AssignmentContext.from_dict(parsed)
