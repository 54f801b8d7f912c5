"""
AWS app hosting: Amplify app with a backend environment, a branch and a build
webhook, plus optional cross-bucket S3 replication.

The Amplify app itself is a ``pulumi_aws`` resource. Its children (backend
environment, branch, webhook) and the bucket replication configuration are
dynamic resources from ``components.amplify`` and ``components.s3``, which
call the AWS API through boto3 clients built for ``region``.

When replication is enabled, two versioned buckets are created (S3 only
replicates from and into versioned buckets), together with an IAM role that
S3 assumes to copy objects from the source into the destination. Outputs
(``app_id``, ``default_domain``, ``branch_arn``, ``webhook_url``,
``source_bucket``, ``destination_bucket``) are ``Output[str]``.
"""

import functools
import json

import boto3
import pulumi
import pulumi_aws as aws

from components._helpers import (
    replicate_all_configuration,
    replication_assume_role_policy,
    replication_role_policy,
)
from components.amplify import BackendEnvironment, Branch, Webhook
from components.s3 import BucketReplication

ID: str = "amplifyrepl:aws:AwsInfra"

VERSIONING_ENABLED: str = "Enabled"


class AwsInfra(pulumi.ComponentResource):
    """
    Amplify app (backend environment, branch, webhook) + optional S3 replication.

    Resources: amplify.App, BackendEnvironment, Branch, Webhook and, if
    replication is enabled, two Buckets with BucketVersioningV2, an IAM Role
    with its RolePolicy, and BucketReplication.
    """

    def __init__(
        self,
        name: str,
        app_name: str,
        backend_environment_name: str,
        branch_name: str,
        branch_stage: str,
        region: str | None = None,
        enable_replication: bool = True,
        source_bucket_name: str | None = None,
        destination_bucket_name: str | None = None,
        replication_storage_class: str | None = None,
    ):
        """
        Create the Amplify app, its children and the replication setup.

        Args:
            name: Pulumi resource name prefix for all child resources.
            app_name: Amplify app name.
            backend_environment_name: Name of the app's backend environment.
            branch_name: Name of the Amplify branch to create.
            branch_stage: Branch stage (PRODUCTION, BETA, DEVELOPMENT, ...).
            region: AWS region for the boto3 clients of the dynamic
                resources; None uses the ambient AWS configuration.
            enable_replication: If True (default), create source and
                destination buckets and replicate every object.
            source_bucket_name: Source bucket name (globally unique).
            destination_bucket_name: Destination bucket name (globally unique).
            replication_storage_class: Storage class of replicas; None keeps
                the source object's class.
        """
        super().__init__(
            ID,
            name,
        )

        child_opts = pulumi.ResourceOptions(parent=self)
        amplify_client = functools.partial(boto3.client, "amplify", region_name=region)
        s3_client = functools.partial(boto3.client, "s3", region_name=region)

        self.app = aws.amplify.App(
            resource_name=f"{name}-app",
            name=app_name,
            opts=child_opts,
        )

        self.backend_environment = BackendEnvironment(
            f"{name}-backend",
            app_id=self.app.id,
            environment_name=backend_environment_name,
            client_factory=amplify_client,
            opts=child_opts,
        )

        self.branch = Branch(
            f"{name}-branch",
            app_id=self.app.id,
            branch_name=branch_name,
            stage=branch_stage,
            client_factory=amplify_client,
            opts=child_opts,
        )

        # branch_name comes from the branch output so the webhook waits for it.
        self.webhook = Webhook(
            f"{name}-webhook",
            app_id=self.app.id,
            branch_name=self.branch.branch_name,
            description=f"Build trigger for {branch_name}",
            client_factory=amplify_client,
            opts=child_opts,
        )

        self.app_id: pulumi.Output[str] = self.app.id
        self.default_domain: pulumi.Output[str] = self.app.default_domain
        self.branch_arn: pulumi.Output[str] = self.branch.arn
        self.webhook_url: pulumi.Output[str] = self.webhook.url
        self.source_bucket: pulumi.Output[str] | None = None
        self.destination_bucket: pulumi.Output[str] | None = None

        if enable_replication:
            self._create_replication(
                name,
                source_bucket_name,
                destination_bucket_name,
                replication_storage_class,
                s3_client,
            )

        self.register_outputs(
            {
                "app_id": self.app_id,
                "default_domain": self.default_domain,
                "branch_arn": self.branch_arn,
                "webhook_url": self.webhook_url,
                "source_bucket": self.source_bucket,
                "destination_bucket": self.destination_bucket,
            }
        )

    def _versioned_bucket(
        self,
        resource_name: str,
        bucket_name: str | None,
    ) -> tuple[aws.s3.Bucket, aws.s3.BucketVersioningV2]:
        child_opts = pulumi.ResourceOptions(parent=self)
        bucket = aws.s3.Bucket(
            resource_name=resource_name,
            bucket=bucket_name,
            opts=child_opts,
        )
        versioning = aws.s3.BucketVersioningV2(
            resource_name=f"{resource_name}-versioning",
            bucket=bucket.id,
            versioning_configuration=aws.s3.BucketVersioningV2VersioningConfigurationArgs(
                status=VERSIONING_ENABLED,
            ),
            opts=child_opts,
        )
        return bucket, versioning

    def _create_replication(
        self,
        name: str,
        source_bucket_name: str | None,
        destination_bucket_name: str | None,
        storage_class: str | None,
        s3_client,
    ) -> None:
        child_opts = pulumi.ResourceOptions(parent=self)

        source, source_versioning = self._versioned_bucket(f"{name}-source", source_bucket_name)
        destination, destination_versioning = self._versioned_bucket(
            f"{name}-destination", destination_bucket_name
        )

        role = aws.iam.Role(
            resource_name=f"{name}-replication",
            assume_role_policy=json.dumps(replication_assume_role_policy()),
            opts=child_opts,
        )
        role_policy = aws.iam.RolePolicy(
            resource_name=f"{name}-replication",
            role=role.id,
            policy=pulumi.Output.all(source.arn, destination.arn).apply(
                lambda arns: json.dumps(replication_role_policy(*arns))
            ),
            opts=child_opts,
        )

        # S3 rejects replication onto unversioned buckets and validates the
        # role on put, so wait for versioning and the role policy.
        replication_opts = pulumi.ResourceOptions(
            parent=self,
            depends_on=[source_versioning, destination_versioning, role_policy],
        )
        BucketReplication(
            f"{name}-replication",
            bucket=source.id,
            replication_configuration=pulumi.Output.all(role.arn, destination.arn).apply(
                lambda args: replicate_all_configuration(args[0], args[1], storage_class)
            ),
            client_factory=s3_client,
            opts=replication_opts,
        )

        self.source_bucket = source.id
        self.destination_bucket = destination.id
