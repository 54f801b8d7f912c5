"""
Amplify and S3 replication infrastructure components.

Dynamic resources map declarative Pulumi inputs onto the AWS control-plane
API through boto3; the ComponentResource wires them into one stack:

- **AwsInfra**: Amplify app with backend environment, branch and webhook;
  optional source/destination buckets with replication.
- **BackendEnvironment**, **Branch**, **Webhook**: Amplify child resources
  addressed by ``<app id>/<name>`` (webhooks by webhook ID).
- **BucketReplication**: full-replace S3 bucket replication configuration.
"""

from components.amplify import BackendEnvironment, Branch, Webhook
from components.aws import AwsInfra
from components.s3 import BucketReplication

__all__ = ["AwsInfra", "BackendEnvironment", "Branch", "BucketReplication", "Webhook"]
