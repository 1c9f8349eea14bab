"""
Standard exit codes and error types for imageupdate commands.

Following Unix/POSIX conventions for command-line tools.
"""
from typing import Optional

# Standard POSIX exit codes
SUCCESS = 0              # Successful termination
GENERAL_ERROR = 1        # General errors
USAGE_ERROR = 2          # Misuse of shell command (wrong arguments, etc.)

# Application-specific exit codes (64-113 are typically available)
API_ERROR = 65           # Forge API call failed
CONFIG_ERROR = 66        # Configuration file error
NETWORK_ERROR = 68       # Network connection failed
AUTH_ERROR = 69          # Authentication/authorization failed
DATA_ERROR = 70          # Data format or validation error
INTERRUPTED = 130        # Terminated by Ctrl+C (SIGINT)

# Exit code mappings for common exceptions
EXCEPTION_EXIT_CODES = {
    'ConnectionError': NETWORK_ERROR,
    'TimeoutError': NETWORK_ERROR,
    'ValueError': DATA_ERROR,
    'JSONDecodeError': DATA_ERROR,
    'KeyboardInterrupt': INTERRUPTED,
}


def get_exit_code_for_exception(exc: Exception) -> int:
    """
    Get the appropriate exit code for an exception.

    Args:
        exc: The exception that occurred

    Returns:
        Appropriate exit code
    """
    if isinstance(exc, CommandError):
        return exc.exit_code
    exc_name = exc.__class__.__name__
    return EXCEPTION_EXIT_CODES.get(exc_name, GENERAL_ERROR)


class CommandError(Exception):
    """
    Exception that commands can raise to indicate specific exit codes.
    """
    def __init__(self, message: str, exit_code: int = GENERAL_ERROR):
        super().__init__(message)
        self.exit_code = exit_code


class ConfigError(CommandError):
    """Raised when there's a configuration error."""
    def __init__(self, message: str):
        super().__init__(message, CONFIG_ERROR)


class AuthError(CommandError):
    """Raised when the authenticated forge user cannot be determined."""
    def __init__(self, message: str = "Could not retrieve authenticated user."):
        super().__init__(message, AUTH_ERROR)


class ForgeError(CommandError):
    """Base class for failures talking to the forge."""
    def __init__(self, message: str):
        super().__init__(message, API_ERROR)


class ForgeAPIError(ForgeError):
    """Raised when the forge answers with an unexpected status or is unreachable."""
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(ForgeError):
    """Raised when a repository or file does not exist on the forge."""


class ForkError(ForgeError):
    """Raised when forking a repository fails. Aborts the whole run."""
    def __init__(self, message: str, repository: Optional[str] = None):
        super().__init__(message)
        self.repository = repository


class UpdateError(ForgeError):
    """
    Raised when updating one repository fails.

    Covers content fetch, commit and pull request creation. The run
    coordinator collects these and keeps going.
    """
    def __init__(self, message: str, repository: Optional[str] = None):
        super().__init__(message)
        self.repository = repository
