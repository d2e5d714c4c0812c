# glue_core/exceptions.py
"""
@file exceptions.py
@brief Custom exception classes for the glue engine.
"""

from __future__ import annotations
from typing import Any, Dict, Optional


class GlueError(Exception):
    """Base exception for the framework."""
    pass


class ConfigError(GlueError):
    """Raised when YAML configuration or the object map is invalid."""
    pass


class TimeoutError(GlueError):
    """
    Raised when a wait/retry times out.

    The last exception raised before the timeout is kept on the error so
    that transient interaction failures remain debuggable.

    Attributes:
        original_exception: The last exception that was raised before timeout
        description: Human-readable description of what was being waited for
        timeout: The timeout value in seconds
        attempt_count: Number of attempts made (if applicable)
        elapsed_time: Actual elapsed time in seconds (if applicable)
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.original_exception: Optional[BaseException] = None
        self.description: Optional[str] = None
        self.timeout: Optional[float] = None
        self.attempt_count: Optional[int] = None
        self.elapsed_time: Optional[float] = None
        self.stage: Optional[str] = None

    def __str__(self) -> str:
        base_msg = super().__str__()

        details = []
        if self.original_exception is not None:
            details.append(f"Original exception: {type(self.original_exception).__name__}")
        if self.attempt_count is not None:
            details.append(f"Attempts: {self.attempt_count}")
        if self.elapsed_time is not None:
            details.append(f"Elapsed: {self.elapsed_time:.2f}s")
        if self.stage is not None:
            details.append(f"Stage: {self.stage}")

        if details:
            return f"{base_msg} [{', '.join(details)}]"
        return base_msg

    def get_root_cause(self) -> Optional[BaseException]:
        """
        Get the root cause exception by traversing the chain.

        @return The deepest original_exception in the chain, or None
        """
        current = self.original_exception
        while current is not None:
            if hasattr(current, 'original_exception') and current.original_exception is not None:
                current = current.original_exception
            else:
                return current
        return None

    def get_traceback_str(self) -> str:
        """
        Get a formatted traceback string from the original exception.

        @return Formatted traceback string or empty string if no original exception
        """
        if self.original_exception is None:
            return ""

        import traceback
        return "".join(traceback.format_exception(
            type(self.original_exception),
            self.original_exception,
            self.original_exception.__traceback__
        ))


class InvariantViolation(GlueError):
    """
    Raised when the detector or caller contract is broken.

    Multiple simultaneous detections, a correlation id mismatch and a
    dequeue from an empty task queue all land here. None of them can be
    recovered from without risking corrupted correlation state.
    """
    pass


class FatalError(GlueError):
    """
    Unrecoverable failure handed to the session supervisor.

    The engine never exits the process itself; the owner of the session
    decides what to do with this value.
    """

    def __init__(self, cause: BaseException, origin: str = "watcher"):
        self.cause = cause
        self.origin = origin
        super().__init__(self.__str__())

    def __str__(self) -> str:
        return f"FatalError: origin='{self.origin}' cause='{type(self.cause).__name__}: {self.cause}'"

    def get_cause_traceback(self) -> str:
        import traceback
        return "".join(traceback.format_exception(
            type(self.cause),
            self.cause,
            self.cause.__traceback__
        ))


class UnsupportedCommandError(GlueError):
    """Raised for a command or action variant with no handler."""

    def __init__(self, command: str, action: Optional[str] = None):
        self.command = command
        self.action = action
        msg = f"{command}: not implemented"
        if action:
            msg = f"{command}: action '{action}' not implemented"
        super().__init__(msg)


class SessionClosedError(GlueError):
    """Raised when work is submitted to a session that has been stopped."""
    pass


class ResourceError(GlueError):
    """Raised when the underlying automation link fails."""

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.cause = cause
        msg = f"ResourceError: operation='{operation}'"
        if cause is not None:
            msg += f" cause='{type(cause).__name__}: {cause}'"
        super().__init__(msg)


class ElementNotFoundError(GlueError):
    """Raised when an element cannot be found within the timeout period."""

    def __init__(
        self,
        element_name: str,
        xpath: str,
        timeout: float,
        last_error: Optional[str] = None,
    ):
        self.element_name = element_name
        self.xpath = xpath
        self.timeout = timeout
        self.last_error = last_error
        super().__init__(self.__str__())

    def __str__(self) -> str:
        lines = [
            f"ElementNotFoundError: element='{self.element_name}' timeout={self.timeout}s",
            f"XPath: {self.xpath}",
        ]
        if self.last_error:
            lines.append(f"Last error: {self.last_error}")
        return "\n".join(lines)


class ActionError(GlueError):
    """
    Raised when a UI action fails.

    Contains information about the action, target element,
    and the underlying cause.
    """

    def __init__(
        self,
        action: str,
        element_name: Optional[str] = None,
        details: Optional[str] = None,
        artifacts: Optional[Dict[str, str]] = None,
        cause: Optional[BaseException] = None,
    ):
        self.action = action
        self.element_name = element_name
        self.details = details
        self.artifacts = artifacts or {}
        self.cause = cause
        super().__init__(self.__str__())

    def __str__(self) -> str:
        base = f"ActionError: action='{self.action}'"
        if self.element_name:
            base += f" element='{self.element_name}'"
        if self.details:
            base += f" details='{self.details}'"
        if self.cause:
            base += f" cause='{type(self.cause).__name__}: {self.cause}'"
        if self.artifacts:
            base += f" artifacts={self.artifacts}"
        return base


def describe(error: BaseException) -> Dict[str, Any]:
    """Serializable summary of an error, used in transport replies."""
    return {"type": type(error).__name__, "message": str(error)}
