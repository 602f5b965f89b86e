"""Shared domain models for HostSpecializer."""

import tempfile
import threading
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from hostspecializer.constants import MSI_ENDPOINT, RUN_FROM_PACKAGE, SCM_RUN_FROM_PACKAGE
from hostspecializer.errors import SpecializationError
from hostspecializer.services.validation import is_url


class PackageType(Enum):
    SQUASHFS = "squashfs"
    ZIP = "zip"


class ClaimResult(Enum):
    CLAIMED = "claimed"
    MATCHED = "matched"
    CONFLICT = "conflict"


class SpecializationStatus(Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    DEGRADED = "degraded"
    FAILED = "failed"


@dataclass(frozen=True)
class CommandResult:
    """Captured outcome of one external tool invocation."""

    stdout: str
    stderr: str
    exit_code: int

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


@dataclass(frozen=True)
class IdentityContext:
    """Identity delegation details forwarded to the sidecar."""

    secret: Optional[str] = None
    identities: Tuple[str, ...] = ()
    delegated_identities: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "IdentityContext":
        return cls(
            secret=data.get("secret"),
            identities=tuple(data.get("identities") or ()),
            delegated_identities=tuple(data.get("delegated_identities") or ()),
        )

    def to_payload(self) -> Dict[str, Any]:
        return {
            "secret": self.secret,
            "identities": list(self.identities),
            "delegated_identities": list(self.delegated_identities),
        }


@dataclass(frozen=True)
class AssignmentContext:
    """One specialization request. Equality over every field is the idempotency key."""

    site_id: int
    site_name: str
    environment: Mapping[str, str] = field(default_factory=dict, hash=False)
    package_url: Optional[str] = None
    identity: Optional[IdentityContext] = None

    def __post_init__(self):
        # Read-only copy so an accepted assignment cannot change under the slot
        object.__setattr__(self, "environment", MappingProxyType(dict(self.environment)))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AssignmentContext":
        if not isinstance(data, Mapping):
            raise SpecializationError("Assignment context must be a mapping.")

        try:
            site_id = int(data["site_id"])
        except KeyError as exc:
            raise SpecializationError("Assignment context is missing 'site_id'.") from exc
        except (TypeError, ValueError) as exc:
            raise SpecializationError(f"Invalid site_id: {data['site_id']!r}") from exc

        environment = data.get("environment") or {}
        if not isinstance(environment, Mapping):
            raise SpecializationError("Assignment context 'environment' must be a mapping.")
        environment = {str(key): str(value) for key, value in environment.items()}

        package_url = data.get("package_url") or _package_url_from_settings(environment)

        identity_data = data.get("identity")
        identity = IdentityContext.from_dict(identity_data) if identity_data else None

        return cls(
            site_id=site_id,
            site_name=str(data.get("site_name") or ""),
            environment=environment,
            package_url=package_url,
            identity=identity,
        )

    def identity_endpoint(self) -> Optional[str]:
        if self.identity is None:
            return None
        return self.environment.get(MSI_ENDPOINT) or None

    def apply_app_settings(self, environment) -> None:
        environment.apply_app_settings(self.environment)


def _package_url_from_settings(environment: Mapping[str, str]) -> Optional[str]:
    # Run-from-package may also hold "1" for a locally staged package
    for key in (RUN_FROM_PACKAGE, SCM_RUN_FROM_PACKAGE):
        value = environment.get(key, "")
        if is_url(value):
            return value
    return None


class AssignmentSlot:
    """Holds the single accepted assignment for this process."""

    def __init__(self):
        self._lock = threading.Lock()
        self._context: Optional[AssignmentContext] = None

    @property
    def context(self) -> Optional[AssignmentContext]:
        return self._context

    def claim(self, context: AssignmentContext) -> ClaimResult:
        with self._lock:
            if self._context is None:
                self._context = context
                return ClaimResult.CLAIMED
            if self._context == context:
                return ClaimResult.MATCHED
            return ClaimResult.CONFLICT

    def reset(self):
        """Empty the slot. Only meant for tests."""
        with self._lock:
            self._context = None


@dataclass(frozen=True)
class DeploymentPolicy:
    mount_disabled: bool = False
    mount_enabled: bool = False

    @classmethod
    def from_environment(cls, environment) -> "DeploymentPolicy":
        return cls(
            mount_disabled=environment.is_mount_disabled(),
            mount_enabled=environment.is_mount_enabled(),
        )


@dataclass
class SpecializerSettings:
    """Runtime tunables resolved from CLI flags and config."""

    script_root: str = "/home/site/wwwroot"
    placeholder_script_root: str = "/home/site/placeholder"
    temp_dir: str = field(default_factory=tempfile.gettempdir)
    command_timeout: Optional[float] = 300.0
    download_retries: int = 2
    download_retry_interval: float = 0.5
    probe_retries: int = 2
    probe_retry_interval: float = 0.3
    probe_timeout: float = 0.3
    http_timeout: float = 30.0

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "SpecializerSettings":
        known = {name for name in cls.__dataclass_fields__}
        return cls(**{key: value for key, value in values.items() if key in known and value is not None})
