"""
Error taxonomy shared by the finders, mappers and resource providers.

- ``NotFoundError``: the remote entity is absent, either because the API said
  so or because it answered with an empty payload.
- ``MalformedIdentifierError``: a persisted resource ID cannot be parsed.
- ``ReplicationConfigurationError``: declarative replication input has the
  wrong shape or an invalid value.
- ``ResourceOperationError``: any other API failure raised by a resource
  provider, naming the operation and resource ID.

Finders pass other botocore ``ClientError``s through unchanged.
"""

from typing import Any

from botocore.exceptions import ClientError


class NotFoundError(LookupError):
    """
    Remote entity not found.

    Attributes:
        message: Human readable reason ("Empty result" for empty payloads).
        last_request: Request parameters of the failed lookup.
        last_error: API error reporting the absence, if any.
    """

    def __init__(
        self,
        message: str = "",
        last_request: dict[str, Any] | None = None,
        last_error: Exception | None = None,
    ):
        self.message = message or (str(last_error) if last_error else "not found")
        self.last_request = last_request or {}
        self.last_error = last_error
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.last_request:
            return f"{self.message} (request: {self.last_request})"
        return self.message


class MalformedIdentifierError(ValueError):
    """Resource ID does not have the expected two-part form."""

    def __init__(
        self,
        id_: str,
        separator: str,
        fields: tuple[str, str],
    ):
        self.id = id_
        self.separator = separator
        self.fields = fields
        super().__init__(
            f"unexpected format for ID ({id_}), expected {separator.join(fields)}"
        )


class ReplicationConfigurationError(ValueError):
    """Invalid replication configuration at ``path``."""

    def __init__(
        self,
        path: str,
        reason: str,
    ):
        self.path = path
        super().__init__(f"{path}: {reason}")


class ResourceOperationError(RuntimeError):
    """
    API failure during a resource lifecycle operation.

    Wraps the underlying error with the operation ("reading", "deleting", ...)
    and the resource it was attempted on.
    """

    def __init__(
        self,
        operation: str,
        kind: str,
        resource_id: str,
        cause: BaseException,
    ):
        self.operation = operation
        self.kind = kind
        self.resource_id = resource_id
        self.cause = cause
        super().__init__(f"error {operation} {kind} ({resource_id}): {cause}")


def error_code(err: BaseException) -> str | None:
    if isinstance(err, ClientError):
        return err.response.get("Error", {}).get("Code")
    return None


def is_error_code(err: BaseException, *codes: str) -> bool:
    """Return True if ``err`` is a ClientError carrying one of ``codes``."""
    return error_code(err) in codes


def status_code(err: BaseException) -> int | None:
    """HTTP status of a ClientError, or None when it carries none."""
    if isinstance(err, ClientError):
        return err.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return None
