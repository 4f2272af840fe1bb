from __future__ import annotations
"""Error taxonomy for script generation and the stores behind it.

Every error carries an HTTP status code and a ``recoverable`` flag.
Recoverable errors are ones the user can fix by retrying or changing
input; the rest need an operator.
"""


class ThreadFlowError(Exception):
    """Base error with a user-facing message."""

    status_code: int = 500
    recoverable: bool = True

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ConfigurationError(ThreadFlowError):
    """A required credential or setting is missing."""

    status_code = 500
    recoverable = False


class InputValidationError(ThreadFlowError):
    status_code = 400


class QuotaExceededError(ThreadFlowError):
    status_code = 402


class GenerationInProgressError(ThreadFlowError):
    """Another attempt is already running for the same session."""

    status_code = 409


class UpstreamServiceError(ThreadFlowError):
    """The completion service returned an error or could not be reached."""

    status_code = 502


class GenerationTimeoutError(UpstreamServiceError):
    status_code = 504


class ScriptParseError(ThreadFlowError):
    """The completion reply was not a usable script payload."""

    status_code = 502


class PersistenceError(ThreadFlowError):
    status_code = 500


class ProfileNotFoundError(ThreadFlowError):
    status_code = 404


class ProjectNotFoundError(ThreadFlowError):
    status_code = 404


class NonFatalAccountingError(ThreadFlowError):
    """A credit debit failed after the script was saved.

    Never raised out of the workflow; recorded in the accounting sink.
    """

    status_code = 500
