class AdoSearchError(Exception):
    """Base class for every error this service reports to a caller."""


class ConfigError(AdoSearchError):
    """Settings are missing or malformed. Fatal at startup."""


class UpstreamConnectionError(AdoSearchError):
    """The Azure DevOps session could not be established. Fatal at startup."""


class ToolArgumentError(AdoSearchError):
    """A tool argument is missing or has the wrong type."""


class RepositoryNotFoundError(AdoSearchError):
    def __init__(self, name: str):
        super().__init__(f"repository not found: {name}")
        self.name = name


class UpstreamError(AdoSearchError):
    """Azure DevOps rejected a call or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
