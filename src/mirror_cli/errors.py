"""
Exception classes raised by the mirror CLI library.

Every error the library raises derives from MirrorCliError so the CLI layer
can turn any of them into a readable message and a non-zero exit code:
- FileAccessError: a path is missing, unreadable or unwritable
- ParseError: a document or settings file is not well-formed
- UnsupportedKindError: unrecognized document kind or peer type
- ValidationError: required fields are missing or invalid
- RemoteError: a call to the mirror service failed (RemoteTimeoutError
  when it ran out of time)
- ConfirmationDeclinedError: the operator did not confirm a destructive action

Each exception stores its context in attributes and builds a message that
names the offending file, document, field or operation.
"""

from pathlib import Path


class MirrorCliError(Exception):
    """Base class for all mirror CLI errors."""


class FileAccessError(MirrorCliError):
    """
    Raised when a path cannot be accessed, read or written.

    Attributes:
        path: The path that failed
        reason: Underlying OS error text
    """

    def __init__(self, path: Path | str, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Cannot access {self.path}: {reason}")


class ParseError(MirrorCliError):
    """
    Raised when a file's text cannot be parsed into the expected structure.

    Attributes:
        path: File that failed to parse
        reason: What was wrong with it
    """

    def __init__(self, path: Path | str, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Failed to parse {self.path}: {reason}")


class UnsupportedKindError(MirrorCliError):
    """
    Raised for a document kind or peer type this client does not know.

    Attributes:
        category: What was being resolved ("document kind", "peer type")
        value: The literal value received
        supported: Values that would have been accepted
    """

    def __init__(self, category: str, value: str, supported: list[str]) -> None:
        self.category = category
        self.value = value
        self.supported = supported
        super().__init__(
            f"Unsupported {category}: {value!r} "
            f"(supported: {', '.join(supported)})"
        )


class ValidationError(MirrorCliError):
    """
    Raised when a document or request is missing required fields.

    Collects every problem for one subject before raising, so the operator
    sees the whole list at once.

    Attributes:
        subject: What was validated (e.g. "Peer 'pg_source'")
        problems: Human-readable problem descriptions
        fields: Names of the offending fields
    """

    def __init__(
        self,
        subject: str,
        problems: list[str],
        fields: list[str] | None = None,
    ) -> None:
        self.subject = subject
        self.problems = problems
        self.fields = fields or []
        super().__init__(str(self))

    def __str__(self) -> str:
        return f"Validation failed for {self.subject}: {'; '.join(self.problems)}"


class RemoteError(MirrorCliError):
    """
    Raised when a call to the mirror service fails.

    Attributes:
        operation: The remote operation (e.g. "create peer")
        reason: Error text from the service or the transport
        status_code: HTTP status when the service answered, else None
    """

    def __init__(
        self, operation: str, reason: str, status_code: int | None = None
    ) -> None:
        self.operation = operation
        self.reason = reason
        self.status_code = status_code
        detail = f" (HTTP {status_code})" if status_code is not None else ""
        super().__init__(f"Failed to {operation}{detail}: {reason}")


class RemoteTimeoutError(RemoteError):
    """
    Raised when a remote call does not complete within its time budget.

    Attributes:
        timeout: The budget in seconds that was exceeded
    """

    def __init__(self, operation: str, timeout: float | None) -> None:
        self.timeout = timeout
        reason = (
            f"timed out after {timeout:g}s" if timeout is not None else "timed out"
        )
        super().__init__(operation, reason)


class ConfirmationDeclinedError(MirrorCliError):
    """
    Raised when the operator declines a destructive action.

    Attributes:
        action: Description of the declined action
    """

    def __init__(self, action: str) -> None:
        self.action = action
        super().__init__(f"Operation cancelled: {action} was not confirmed")
