"""
Exceptions raised by the CI pipeline.

Everything except ConfigError is fatal for the current commit event or
job only; the scheduler logs it and moves on to the next item.
"""


class CIError(Exception):
    """Base exception for CI errors."""

    pass


class ConfigError(CIError):
    """Configuration is missing or invalid."""

    pass


class RepositoryError(CIError):
    """A repository could not be cloned, fetched or checked out."""

    pass


class DiscoveryError(CIError):
    """The jobs declared by ci.nix could not be determined."""

    pass


class PlanError(CIError):
    """nix-instantiate did not print exactly one .drv path."""

    def __init__(self, message: str, stdout: str, stderr: str):
        super().__init__(message)
        self.stdout = stdout
        self.stderr = stderr


class CommandTimeoutError(CIError):
    """An external command ran longer than the configured timeout."""

    pass


class StatusPublishError(CIError):
    """The commit status could not be published to GitHub."""

    pass


class LogNotFoundError(CIError):
    """No build logs exist for the requested plan."""

    pass
