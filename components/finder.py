"""
Single-call lookups against the Amplify API.

Each finder issues exactly one request and returns the entity dict from the
response. A ``NotFoundException`` and a successful response without the
entity both raise ``NotFoundError``; any other error propagates unchanged.
No retries and no caching.
"""

import logging
from typing import Any, Callable

from botocore.exceptions import ClientError

from components.errors import NotFoundError, is_error_code

logger = logging.getLogger(__name__)

NOT_FOUND_CODE: str = "NotFoundException"


def _find(
    operation: Callable[..., dict[str, Any]],
    request: dict[str, Any],
    payload_key: str,
) -> dict[str, Any]:
    """
    Call ``operation(**request)`` once and return ``output[payload_key]``.

    Raises:
        NotFoundError: On ``NotFoundException`` or a missing or empty payload.
        ClientError: Any other API error, unchanged.
    """
    logger.debug("Amplify %s: %s", payload_key, request)

    try:
        output = operation(**request)
    except ClientError as e:
        if is_error_code(e, NOT_FOUND_CODE):
            raise NotFoundError(last_request=request, last_error=e) from e
        raise

    entity = (output or {}).get(payload_key)
    if not entity:
        raise NotFoundError("Empty result", last_request=request)

    return entity


def app_by_id(conn, app_id: str) -> dict[str, Any]:
    """Return the ``app`` of get_app, or raise NotFoundError."""
    return _find(conn.get_app, {"appId": app_id}, "app")


def backend_environment_by_app_id_and_environment_name(
    conn,
    app_id: str,
    environment_name: str,
) -> dict[str, Any]:
    """
    Look up a backend environment by app ID and environment name.

    Args:
        conn: boto3 Amplify client.
        app_id: ID of the owning app.
        environment_name: Backend environment name.

    Returns:
        The ``backendEnvironment`` dict of get_backend_environment.
    """
    return _find(
        conn.get_backend_environment,
        {"appId": app_id, "environmentName": environment_name},
        "backendEnvironment",
    )


def branch_by_app_id_and_branch_name(
    conn,
    app_id: str,
    branch_name: str,
) -> dict[str, Any]:
    """
    Look up a branch by app ID and branch name.

    Args:
        conn: boto3 Amplify client.
        app_id: ID of the owning app.
        branch_name: Branch name.

    Returns:
        The ``branch`` dict of get_branch.
    """
    return _find(
        conn.get_branch,
        {"appId": app_id, "branchName": branch_name},
        "branch",
    )


def webhook_by_id(conn, webhook_id: str) -> dict[str, Any]:
    """Return the ``webhook`` of get_webhook, or raise NotFoundError."""
    return _find(conn.get_webhook, {"webhookId": webhook_id}, "webhook")
