"""
Amplify app hosting with S3 replication - IaC entrypoint.

Wires one ComponentResource from Pulumi config:

- **Amplify**: app, backend environment, branch and a build webhook. The
  children are dynamic resources addressed by ``<app id>/<name>``.
- **S3**: optional versioned source and destination buckets with a
  replication role and a full-replace replication configuration.

Stack exports: amplify_app_id, amplify_default_domain, amplify_branch_arn,
amplify_webhook_url, replication_source_bucket, replication_destination_bucket.
"""

import logging

import pulumi

from components import AwsInfra
from config import StackConfig


def _component_name(project_name: str, environment: str, prefix: str) -> str:
    return f"{prefix}-{project_name}-{environment}"


def main():
    """
    Build the AWS component and export stack outputs.

    Reads config, instantiates AwsInfra and exports the Amplify identifiers and,
    when replication is enabled, the bucket names.
    """
    logging.basicConfig(level=logging.INFO)
    config = StackConfig.from_pulumi_config(pulumi.Config())

    aws = AwsInfra(
        name=_component_name(config.project_name, config.environment, "aws"),
        app_name=config.app_name,
        backend_environment_name=config.backend_environment_name,
        branch_name=config.branch_name,
        branch_stage=config.branch_stage,
        region=config.region,
        enable_replication=config.enable_replication,
        source_bucket_name=config.source_bucket_name,
        destination_bucket_name=config.destination_bucket_name,
        replication_storage_class=config.replication_storage_class,
    )

    outputs = [
        ("amplify_app_id", aws.app_id),
        ("amplify_default_domain", aws.default_domain),
        ("amplify_branch_arn", aws.branch_arn),
        ("amplify_webhook_url", aws.webhook_url),
    ]
    if config.enable_replication:
        outputs += [
            ("replication_source_bucket", aws.source_bucket),
            ("replication_destination_bucket", aws.destination_bucket),
        ]

    for output_name, value in outputs:
        pulumi.export(output_name, value)


if __name__ == "__main__":
    main()
