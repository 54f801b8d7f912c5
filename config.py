"""
Stack configuration loaded from pulumi.Config().

Provides a typed, immutable view of stack settings. All settings are read from
Pulumi config (e.g. Pulumi.<stack>.yaml or pulumi config set). Every key is
required. Used by __main__.main() to name resources, configure the Amplify
app and its children, and toggle S3 replication.
"""

from dataclasses import dataclass
from typing import Any, Callable

import pulumi


def _require_bool(config: pulumi.Config, key: str) -> bool:
    raw = config.require(key)
    if isinstance(raw, bool):
        return raw
    return str(raw).strip().lower() in ("1", "true", "yes")


def _require_str(config: pulumi.Config, key: str) -> str:
    return config.require(key)


def _optional_str(config: pulumi.Config, key: str) -> str | None:
    # "none" or an empty value means unset.
    raw = config.require(key).strip()
    return None if raw.lower() in ("", "none") else raw


# (key, parser); parser receives (config, key) and returns value.
_CONFIG_SPEC: list[tuple[str, Callable[[pulumi.Config, str], Any]]] = [
    ("project_name", _require_str),
    ("environment", _require_str),
    ("region", _require_str),
    ("app_name", _require_str),
    ("backend_environment_name", _require_str),
    ("branch_name", _require_str),
    ("branch_stage", _require_str),
    ("enable_replication", _require_bool),
    ("source_bucket_name", _require_str),
    ("destination_bucket_name", _require_str),
    ("replication_storage_class", _optional_str),
]


@dataclass(frozen=True)
class StackConfig:
    """
    Stack configuration from Pulumi config.

    Attributes:
        project_name: Project name used in resource naming (required).
        environment: Environment label used in resource naming (required).
        region: AWS region for the boto3 clients of the dynamic resources
            (required; should match aws:region).
        app_name: Amplify app name (required).
        backend_environment_name: Amplify backend environment name (required).
        branch_name: Amplify branch name (required).
        branch_stage: Amplify branch stage, e.g. PRODUCTION (required).
        enable_replication: Whether to create replicated S3 buckets (required).
        source_bucket_name: Replication source bucket (required; globally unique).
        destination_bucket_name: Replication destination bucket (required;
            globally unique).
        replication_storage_class: Storage class for replicas; "none" keeps
            the source class (required).
    """

    project_name: str
    environment: str
    region: str
    app_name: str
    backend_environment_name: str
    branch_name: str
    branch_stage: str
    enable_replication: bool
    source_bucket_name: str
    destination_bucket_name: str
    replication_storage_class: str | None

    @classmethod
    def from_pulumi_config(cls, config: pulumi.Config) -> "StackConfig":
        """
        Build StackConfig from pulumi.Config(). All keys in _CONFIG_SPEC are required.
        """
        kwargs = {key: parser(config, key) for key, parser in _CONFIG_SPEC}
        return cls(**kwargs)
