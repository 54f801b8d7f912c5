"""
Pure helpers for resource IDs, diffs and replication policies. Testable
without Pulumi runtime.

Used by the Amplify providers (ResourceIdCodec, diff_inputs,
contains_unknown), the S3 replication provider (diff_inputs,
contains_unknown) and the AWS component (IAM policy and default replication
documents). All functions accept and return plain Python types; the only
Pulumi import is the string sentinel for unknown preview values.

Amplify child resources (backend environments, branches) are only unique
within their app, so their resource ID joins the app ID and the child name
with a single ``/``. No escaping is applied: a child name containing ``/``
cannot be round-tripped and fails to parse. Encoding does not validate its
inputs either; an empty part yields an ID that is rejected on decode.
"""

from dataclasses import dataclass
from typing import Any

from pulumi.runtime.rpc import UNKNOWN

from components.errors import MalformedIdentifierError

RESOURCE_ID_SEPARATOR: str = "/"


@dataclass(frozen=True)
class ResourceIdCodec:
    """
    Two-part resource ID codec.

    Attributes:
        parent_field: Label of the first part, used in error messages
            (e.g. "APPID").
        child_field: Label of the second part (e.g. "BRANCHNAME").
        separator: Separator between the two parts.
    """

    parent_field: str
    child_field: str
    separator: str = RESOURCE_ID_SEPARATOR

    def encode(
        self,
        parent_id: str,
        discriminator: str,
    ) -> str:
        return self.separator.join([parent_id, discriminator])

    def decode(
        self,
        id_: str,
    ) -> tuple[str, str]:
        """
        Split ``id_`` into (parent ID, discriminator).

        Raises:
            MalformedIdentifierError: Unless ``id_`` splits into exactly two
                non-empty parts.
        """
        parts = id_.split(self.separator)

        if len(parts) == 2 and parts[0] and parts[1]:
            return parts[0], parts[1]

        raise MalformedIdentifierError(
            id_,
            self.separator,
            (self.parent_field, self.child_field),
        )


BACKEND_ENVIRONMENT_ID = ResourceIdCodec("APPID", "ENVIRONMENTNAME")
BRANCH_ID = ResourceIdCodec("APPID", "BRANCHNAME")


def contains_unknown(value: Any) -> bool:
    """
    Return True if ``value`` is, or holds, a not-yet-known preview value.

    During preview the engine passes inputs that depend on resources not yet
    created as the ``rpc.UNKNOWN`` sentinel string, possibly nested inside
    dicts and lists.
    """
    if isinstance(value, str):
        return value == UNKNOWN
    if isinstance(value, dict):
        return any(contains_unknown(v) for v in value.values())
    if isinstance(value, (list, tuple)):
        return any(contains_unknown(v) for v in value)
    return False


def diff_inputs(
    olds: dict,
    news: dict,
    keys: tuple[str, ...],
    replace_keys: tuple[str, ...] = (),
    optional_keys: tuple[str, ...] = (),
    configured: tuple[str, ...] | list[str] = (),
) -> tuple[list[str], list[str]]:
    """
    Compare old state and new inputs on ``keys``.

    Args:
        olds: Old state (outputs of the last create, update or read).
        news: New inputs.
        keys: Keys to compare.
        replace_keys: Keys whose change forces replacement.
        optional_keys: Keys the service fills in when left unset. An unset
            optional key is only a change if it was set before, i.e. listed
            in ``configured``.
        configured: Optional keys that were set in the previous inputs.

    Returns:
        (changed keys, changed keys that force replacement).
    """
    changed = []
    for key in keys:
        new = news.get(key)
        if key in optional_keys and new is None:
            if key in configured:
                changed.append(key)
            continue
        if olds.get(key) != new:
            changed.append(key)
    replaces = [key for key in changed if key in replace_keys]
    return changed, replaces


def replication_assume_role_policy() -> dict:
    """Trust policy letting S3 assume the replication role."""
    return {
        "Version": "2012-10-17",
        "Statement": [
            {
                "Effect": "Allow",
                "Principal": {"Service": "s3.amazonaws.com"},
                "Action": "sts:AssumeRole",
            }
        ],
    }


def replication_role_policy(
    source_bucket_arn: str,
    destination_bucket_arn: str,
) -> dict:
    """
    Permissions S3 needs to replicate objects between two buckets.

    Read configuration and object versions from the source; write replicas
    and delete markers into the destination.
    """
    return {
        "Version": "2012-10-17",
        "Statement": [
            {
                "Effect": "Allow",
                "Action": ["s3:GetReplicationConfiguration", "s3:ListBucket"],
                "Resource": [source_bucket_arn],
            },
            {
                "Effect": "Allow",
                "Action": [
                    "s3:GetObjectVersionForReplication",
                    "s3:GetObjectVersionAcl",
                    "s3:GetObjectVersionTagging",
                ],
                "Resource": [f"{source_bucket_arn}/*"],
            },
            {
                "Effect": "Allow",
                "Action": [
                    "s3:ReplicateObject",
                    "s3:ReplicateDelete",
                    "s3:ReplicateTags",
                ],
                "Resource": [f"{destination_bucket_arn}/*"],
            },
        ],
    }


def replicate_all_configuration(
    role_arn: str,
    destination_bucket_arn: str,
    storage_class: str | None = None,
) -> dict:
    """Declarative replication configuration copying every object."""
    destination = {"bucket": destination_bucket_arn}
    if storage_class:
        destination["storage_class"] = storage_class
    return {
        "role": role_arn,
        "rules": [
            {
                "id": "replicate-all",
                "status": "Enabled",
                "priority": 0,
                "filter": {"prefix": ""},
                "destination": destination,
            }
        ],
    }
