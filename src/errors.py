"""Exception classes shared by the core, the enrichers and the HTTP layer."""


class SparkError(Exception):
    """Base exception for all Spark Finder errors."""

    status_code = 500

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")


class ValidationError(SparkError):
    """Raised when a required parameter is missing or malformed."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__("VALIDATION_ERROR", message)


class NotFoundError(SparkError):
    """Raised when the upstream reports that a repository does not exist."""

    status_code = 404

    def __init__(self, message: str = "Repository not found") -> None:
        super().__init__("NOT_FOUND", message)


class UpstreamError(SparkError):
    """Raised on any non-2xx response or network failure from an upstream API.

    ``status`` is the upstream HTTP status, or None for transport failures.
    """

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__("UPSTREAM_ERROR", message)
        self.status = status

    @property
    def status_code(self) -> int:
        if self.status is not None and 400 <= self.status < 600:
            return self.status
        return 502


class ConfigurationError(SparkError):
    """Raised when required configuration (e.g. a GitHub token) is missing."""

    def __init__(self, message: str) -> None:
        super().__init__("CONFIGURATION_ERROR", message)
