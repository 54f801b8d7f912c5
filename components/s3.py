"""
S3 bucket replication configuration as a Pulumi dynamic resource.

The resource ID is the source bucket name. Writes always submit the whole
configuration (``put_bucket_replication`` has replace-only semantics), so
create and update share one code path. A bucket without a replication
configuration reads back without ``replication_configuration``; deleting
the configuration of a bucket that no longer exists succeeds.
"""

import logging
from typing import Any, Callable

import boto3
import pulumi
from botocore.exceptions import ClientError
from pulumi.dynamic import (
    CheckFailure,
    CheckResult,
    CreateResult,
    DiffResult,
    ReadResult,
    Resource,
    ResourceProvider,
    UpdateResult,
)

from components._helpers import contains_unknown, diff_inputs
from components.errors import (
    ReplicationConfigurationError,
    ResourceOperationError,
    is_error_code,
    status_code,
)
from components.replication import (
    expand_replication_configuration,
    flatten_replication_configuration,
    parse_replication_configuration,
)

logger = logging.getLogger(__name__)

KIND: str = "S3 Bucket Replication"

# Error codes S3 uses for a missing bucket or a bucket without replication.
NO_SUCH_BUCKET: str = "NoSuchBucket"
REPLICATION_NOT_FOUND: str = "ReplicationConfigurationNotFoundError"


def s3_client() -> Any:
    return boto3.client("s3")


class BucketReplicationProvider(ResourceProvider):
    def __init__(self, client_factory: Callable[[], Any] | None = None):
        self._client_factory = client_factory or s3_client

    def check(self, _olds: dict[str, Any], news: dict[str, Any]) -> CheckResult:
        failures = []
        if not news.get("bucket"):
            failures.append(CheckFailure("bucket", "is required"))

        # Unknown during preview until the role and destination bucket exist.
        raw = news.get("replication_configuration")
        if not contains_unknown(raw):
            try:
                parse_replication_configuration(raw)
            except ReplicationConfigurationError as e:
                failures.append(CheckFailure("replication_configuration", str(e)))
        return CheckResult(news, failures)

    def _put(self, bucket: str, props: dict[str, Any]) -> dict[str, Any]:
        config = parse_replication_configuration(props.get("replication_configuration"))
        request = {
            "Bucket": bucket,
            "ReplicationConfiguration": expand_replication_configuration(config),
        }
        logger.debug("S3 put bucket replication configuration: %s", request)

        try:
            self._client_factory().put_bucket_replication(**request)
        except ClientError as e:
            raise ResourceOperationError("putting", KIND, bucket, e) from e

        return {
            "bucket": bucket,
            "replication_configuration": flatten_replication_configuration(
                request["ReplicationConfiguration"]
            ),
        }

    def create(self, props: dict[str, Any]) -> CreateResult:
        bucket = props["bucket"]
        return CreateResult(bucket, self._put(bucket, props))

    def update(self, id_: str, olds: dict[str, Any], news: dict[str, Any]) -> UpdateResult:
        return UpdateResult(self._put(id_, news))

    def read(self, id_: str, props: dict[str, Any]) -> ReadResult:
        logger.debug("S3 bucket replication, reading for bucket: %s", id_)

        try:
            output = self._client_factory().get_bucket_replication(Bucket=id_)
        except ClientError as e:
            if status_code(e) == 404 or is_error_code(e, NO_SUCH_BUCKET, REPLICATION_NOT_FOUND):
                logger.debug("S3 bucket: %s, no replication configuration", id_)
                return ReadResult(id_, {"bucket": id_})
            raise ResourceOperationError("reading", KIND, id_, e) from e

        outs: dict[str, Any] = {"bucket": id_}
        if output.get("ReplicationConfiguration"):
            outs["replication_configuration"] = flatten_replication_configuration(
                output["ReplicationConfiguration"]
            )
        logger.debug("S3 bucket: %s, read replication configuration: %s", id_, outs)
        return ReadResult(id_, outs)

    def delete(self, id_: str, props: dict[str, Any]) -> None:
        bucket = props.get("bucket") or id_
        logger.info("S3 bucket: %s, delete replication configuration", bucket)

        try:
            self._client_factory().delete_bucket_replication(Bucket=bucket)
        except ClientError as e:
            if is_error_code(e, NO_SUCH_BUCKET):
                return
            raise ResourceOperationError("deleting", KIND, bucket, e) from e

    def diff(self, _id: str, olds: dict[str, Any], news: dict[str, Any]) -> DiffResult:
        if contains_unknown(news.get("bucket")):
            return DiffResult(changes=True, replaces=["bucket"])
        new_config = news.get("replication_configuration")
        if contains_unknown(new_config):
            replaces = ["bucket"] if olds.get("bucket") != news.get("bucket") else []
            return DiffResult(changes=True, replaces=replaces)

        # Compare in the normalized shape so list-wrapped blocks and plain
        # mappings describing the same configuration are equal.
        old_config = olds.get("replication_configuration")
        if old_config is not None:
            old_config = _normalize(old_config)
        new_config = _normalize(new_config)

        changed, replaces = diff_inputs(
            {"bucket": olds.get("bucket"), "replication_configuration": old_config},
            {"bucket": news.get("bucket"), "replication_configuration": new_config},
            ("bucket", "replication_configuration"),
            ("bucket",),
        )
        return DiffResult(changes=bool(changed), replaces=replaces)


def _normalize(raw: Any) -> dict[str, Any]:
    return flatten_replication_configuration(
        expand_replication_configuration(parse_replication_configuration(raw))
    )


class BucketReplication(Resource):
    """Replication configuration of an S3 bucket, replaced as a whole on change."""

    bucket: pulumi.Output[str]
    replication_configuration: pulumi.Output[dict]

    def __init__(
        self,
        name: str,
        bucket: pulumi.Input[str],
        replication_configuration: pulumi.Input[dict],
        client_factory: Callable[[], Any] | None = None,
        opts: pulumi.ResourceOptions | None = None,
    ):
        super().__init__(
            BucketReplicationProvider(client_factory),
            name,
            {
                "bucket": bucket,
                "replication_configuration": replication_configuration,
            },
            opts,
        )
