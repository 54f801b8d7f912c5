"""
S3 bucket replication: typed records and schema-to-wire mapping.

Pulumi hands dynamic providers plain nested dicts and lists. This module
parses that untyped tree into frozen records (validating shape and values at
the boundary), expands the records into the ``ReplicationConfiguration``
structure expected by ``s3.put_bucket_replication``, and flattens a
``get_bucket_replication`` response back into the declarative shape.

Nested blocks may be given either as a mapping or as a single-item list
(``destination=[{...}]``); both parse to the same record. Rules with a
``filter`` use the V2 rule schema (priority, delete marker replication);
rules without one use the legacy V1 top-level prefix.

Pure module: no boto3 or Pulumi calls.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Mapping

from components.errors import ReplicationConfigurationError

RULE_STATUSES: tuple[str, ...] = ("Enabled", "Disabled")

STORAGE_CLASSES: tuple[str, ...] = (
    "STANDARD",
    "REDUCED_REDUNDANCY",
    "STANDARD_IA",
    "ONEZONE_IA",
    "INTELLIGENT_TIERING",
    "GLACIER",
    "DEEP_ARCHIVE",
    "OUTPOSTS",
    "GLACIER_IR",
)

OWNER_OVERRIDES: tuple[str, ...] = ("Destination",)

MAX_RULE_ID_LENGTH: int = 255
MAX_PREFIX_LENGTH: int = 1024

_ARN_RE = re.compile(r"^arn:[\w-]+:[\w-]+:[^:]*:[^:]*:.+$")
_ACCOUNT_ID_RE = re.compile(r"^\d{12}$")


@dataclass(frozen=True)
class ReplicationDestination:
    bucket: str
    account_id: str | None = None
    storage_class: str | None = None
    replica_kms_key_id: str | None = None
    access_control_translation: str | None = None


@dataclass(frozen=True)
class ReplicationRuleFilter:
    prefix: str = ""
    tags: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class SourceSelectionCriteria:
    sse_kms_encrypted_objects: bool | None = None


@dataclass(frozen=True)
class ReplicationRule:
    """
    One replication rule.

    Attributes:
        destination: Where matching objects are replicated to.
        status: "Enabled" or "Disabled".
        id: Optional rule ID (up to 255 characters).
        prefix: Key prefix for V1 rules (ignored when ``filter`` is set).
        priority: Rule priority for V2 rules; sent as 0 when unset.
        filter: Prefix/tag filter; its presence selects the V2 schema.
        source_selection_criteria: Optional SSE-KMS source selection.
    """

    destination: ReplicationDestination
    status: str
    id: str = ""
    prefix: str = ""
    priority: int | None = None
    filter: ReplicationRuleFilter | None = None
    source_selection_criteria: SourceSelectionCriteria | None = None


@dataclass(frozen=True)
class ReplicationConfiguration:
    role: str
    rules: tuple[ReplicationRule, ...]


# ---------------------------------------------------------------------------
# Parsing: untyped declarative tree -> records
# ---------------------------------------------------------------------------


def _fail(path: str, reason: str) -> ReplicationConfigurationError:
    return ReplicationConfigurationError(path, reason)


def _block(raw: Any, path: str) -> Mapping[str, Any] | None:
    # Single nested block: a mapping, a 0/1-item list, or None.
    if raw is None:
        return None
    if isinstance(raw, (list, tuple)):
        if not raw:
            return None
        if len(raw) > 1:
            raise _fail(path, f"expected at most 1 item, got {len(raw)}")
        raw = raw[0]
        if raw is None:
            return None
    if not isinstance(raw, Mapping):
        raise _fail(path, f"expected a mapping, got {type(raw).__name__}")
    return raw


def _string(
    raw: Mapping[str, Any],
    key: str,
    path: str,
    required: bool = False,
    max_len: int | None = None,
    choices: tuple[str, ...] | None = None,
    pattern: re.Pattern | None = None,
) -> str | None:
    value = raw.get(key)
    if value is None or value == "":
        if required:
            raise _fail(f"{path}.{key}", "is required")
        return value
    if not isinstance(value, str):
        raise _fail(f"{path}.{key}", f"expected a string, got {type(value).__name__}")
    if max_len is not None and len(value) > max_len:
        raise _fail(f"{path}.{key}", f"length must be at most {max_len}")
    if choices is not None and value not in choices:
        raise _fail(f"{path}.{key}", f"expected one of {', '.join(choices)}, got {value!r}")
    if pattern is not None and not pattern.match(value):
        raise _fail(f"{path}.{key}", f"invalid value {value!r}")
    return value


def _parse_destination(raw: Any, path: str) -> ReplicationDestination:
    block = _block(raw, path)
    if block is None:
        raise _fail(path, "is required")

    acl = _block(block.get("access_control_translation"), f"{path}.access_control_translation")
    owner = None
    if acl is not None:
        owner = _string(
            acl,
            "owner",
            f"{path}.access_control_translation",
            required=True,
            choices=OWNER_OVERRIDES,
        )

    return ReplicationDestination(
        bucket=_string(block, "bucket", path, required=True, pattern=_ARN_RE),
        account_id=_string(block, "account_id", path, pattern=_ACCOUNT_ID_RE) or None,
        storage_class=_string(block, "storage_class", path, choices=STORAGE_CLASSES) or None,
        replica_kms_key_id=_string(block, "replica_kms_key_id", path) or None,
        access_control_translation=owner,
    )


def _parse_filter(raw: Any, path: str) -> ReplicationRuleFilter | None:
    block = _block(raw, path)
    if block is None:
        return None

    tags = block.get("tags") or {}
    if not isinstance(tags, Mapping):
        raise _fail(f"{path}.tags", f"expected a mapping, got {type(tags).__name__}")
    for key, value in tags.items():
        if not isinstance(key, str) or not isinstance(value, str):
            raise _fail(f"{path}.tags", "keys and values must be strings")

    return ReplicationRuleFilter(
        prefix=_string(block, "prefix", path, max_len=MAX_PREFIX_LENGTH) or "",
        tags=dict(tags),
    )


def _parse_source_selection_criteria(raw: Any, path: str) -> SourceSelectionCriteria | None:
    block = _block(raw, path)
    if block is None:
        return None

    sse_path = f"{path}.sse_kms_encrypted_objects"
    sse = _block(block.get("sse_kms_encrypted_objects"), sse_path)
    if sse is None:
        return SourceSelectionCriteria()

    enabled = sse.get("enabled")
    if not isinstance(enabled, bool):
        raise _fail(f"{sse_path}.enabled", "expected a boolean")
    return SourceSelectionCriteria(sse_kms_encrypted_objects=enabled)


def _parse_rule(raw: Any, path: str) -> ReplicationRule:
    if not isinstance(raw, Mapping):
        raise _fail(path, f"expected a mapping, got {type(raw).__name__}")

    priority = raw.get("priority")
    if priority is not None and (isinstance(priority, bool) or not isinstance(priority, int)):
        # Pulumi serializes numbers as floats.
        if isinstance(priority, float) and priority.is_integer():
            priority = int(priority)
        else:
            raise _fail(f"{path}.priority", "expected an integer")

    return ReplicationRule(
        destination=_parse_destination(raw.get("destination"), f"{path}.destination"),
        status=_string(raw, "status", path, required=True, choices=RULE_STATUSES),
        id=_string(raw, "id", path, max_len=MAX_RULE_ID_LENGTH) or "",
        prefix=_string(raw, "prefix", path, max_len=MAX_PREFIX_LENGTH) or "",
        priority=priority,
        filter=_parse_filter(raw.get("filter"), f"{path}.filter"),
        source_selection_criteria=_parse_source_selection_criteria(
            raw.get("source_selection_criteria"), f"{path}.source_selection_criteria"
        ),
    )


def parse_replication_configuration(
    raw: Any,
    path: str = "replication_configuration",
) -> ReplicationConfiguration:
    """
    Parse a declarative replication configuration.

    Args:
        raw: Mapping (or single-item list holding one) with ``role`` and
            ``rules``.
        path: Name used as the root of error paths.

    Raises:
        ReplicationConfigurationError: On a missing required field, a wrong
            type, or a value outside its allowed set.
    """
    block = _block(raw, path)
    if block is None:
        raise _fail(path, "is required")

    rules = block.get("rules")
    if not isinstance(rules, (list, tuple)) or not rules:
        raise _fail(f"{path}.rules", "at least one rule is required")

    return ReplicationConfiguration(
        role=_string(block, "role", path, required=True),
        rules=tuple(_parse_rule(rule, f"{path}.rules[{i}]") for i, rule in enumerate(rules)),
    )


# ---------------------------------------------------------------------------
# Expanding: records -> API request
# ---------------------------------------------------------------------------


def _expand_destination(destination: ReplicationDestination) -> dict[str, Any]:
    out: dict[str, Any] = {"Bucket": destination.bucket}

    if destination.storage_class:
        out["StorageClass"] = destination.storage_class
    if destination.replica_kms_key_id:
        out["EncryptionConfiguration"] = {"ReplicaKmsKeyID": destination.replica_kms_key_id}
    if destination.account_id:
        out["Account"] = destination.account_id
    if destination.access_control_translation:
        out["AccessControlTranslation"] = {"Owner": destination.access_control_translation}

    return out


def _expand_rule(rule: ReplicationRule) -> dict[str, Any]:
    out: dict[str, Any] = {
        "Status": rule.status,
        "Destination": _expand_destination(rule.destination),
    }
    if rule.id:
        out["ID"] = rule.id

    criteria = rule.source_selection_criteria
    if criteria is not None and criteria.sse_kms_encrypted_objects is not None:
        out["SourceSelectionCriteria"] = {
            "SseKmsEncryptedObjects": {
                "Status": "Enabled" if criteria.sse_kms_encrypted_objects else "Disabled",
            },
        }

    if rule.filter is not None:
        out["Priority"] = rule.priority or 0
        if rule.filter.tags:
            out["Filter"] = {
                "And": {
                    "Prefix": rule.filter.prefix,
                    "Tags": [{"Key": k, "Value": v} for k, v in sorted(rule.filter.tags.items())],
                },
            }
        else:
            out["Filter"] = {"Prefix": rule.filter.prefix}
        out["DeleteMarkerReplication"] = {"Status": "Disabled"}
    else:
        # V1 rules require a prefix, even an empty one.
        out["Prefix"] = rule.prefix

    return out


def expand_replication_configuration(config: ReplicationConfiguration) -> dict[str, Any]:
    """Build the ``ReplicationConfiguration`` argument of put_bucket_replication."""
    return {
        "Role": config.role,
        "Rules": [_expand_rule(rule) for rule in config.rules],
    }


# ---------------------------------------------------------------------------
# Flattening: API response -> declarative shape
# ---------------------------------------------------------------------------


def _flatten_tags(tags: list[dict[str, str]]) -> dict[str, str]:
    return {tag["Key"]: tag["Value"] for tag in tags}


def _flatten_destination(destination: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {"bucket": destination.get("Bucket")}

    if destination.get("StorageClass"):
        out["storage_class"] = destination["StorageClass"]
    if destination.get("EncryptionConfiguration", {}).get("ReplicaKmsKeyID"):
        out["replica_kms_key_id"] = destination["EncryptionConfiguration"]["ReplicaKmsKeyID"]
    if destination.get("Account"):
        out["account_id"] = destination["Account"]
    if destination.get("AccessControlTranslation", {}).get("Owner"):
        out["access_control_translation"] = {
            "owner": destination["AccessControlTranslation"]["Owner"],
        }

    return out


def _flatten_filter(api_filter: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}

    if "Prefix" in api_filter:
        out["prefix"] = api_filter["Prefix"]
    if "Tag" in api_filter:
        out["tags"] = _flatten_tags([api_filter["Tag"]])
    if "And" in api_filter:
        and_ = api_filter["And"]
        out["prefix"] = and_.get("Prefix", "")
        out["tags"] = _flatten_tags(and_.get("Tags", []))

    return out


def _flatten_rule(rule: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {
        "status": rule.get("Status"),
        "destination": _flatten_destination(rule.get("Destination", {})),
    }

    if rule.get("ID"):
        out["id"] = rule["ID"]
    if rule.get("Prefix"):
        out["prefix"] = rule["Prefix"]
    if "Priority" in rule:
        out["priority"] = rule["Priority"]
    if "Filter" in rule:
        out["filter"] = _flatten_filter(rule["Filter"])

    sse = rule.get("SourceSelectionCriteria", {}).get("SseKmsEncryptedObjects")
    if sse is not None:
        out["source_selection_criteria"] = {
            "sse_kms_encrypted_objects": {"enabled": sse.get("Status") == "Enabled"},
        }

    return out


def flatten_replication_configuration(api: dict[str, Any]) -> dict[str, Any]:
    """Convert a get_bucket_replication ``ReplicationConfiguration`` to state."""
    return {
        "role": api.get("Role", ""),
        "rules": [_flatten_rule(rule) for rule in api.get("Rules", [])],
    }
