"""Domain errors for HostSpecializer."""


class SpecializationError(RuntimeError):
    """Raised when the specialization cannot continue safely."""


class PackageFormatError(SpecializationError):
    """Raised when a downloaded package matches no known format."""


class CommandTimeoutError(SpecializationError):
    """Raised when an external tool exceeds its deadline."""
