"""
Amplify child resources as Pulumi dynamic resources.

Backend environments and branches are addressed by ``<app id>/<name>``
(see ``components._helpers``); webhooks by the service-assigned webhook ID.
Each provider receives a client factory so tests can inject a fake Amplify
client; the default builds a boto3 client from the ambient AWS credentials.

Lifecycle rules shared by all three providers:

- ``read`` drops the resource from state (empty ``ReadResult``) when the
  service reports it missing, and raises on a malformed ID.
- ``delete`` treats ``NotFoundException`` as already deleted.
- Any other API failure is raised as ``ResourceOperationError`` naming the
  operation and the resource ID.
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

from components import finder
from components._helpers import (
    BACKEND_ENVIRONMENT_ID,
    BRANCH_ID,
    contains_unknown,
    diff_inputs,
)
from components.errors import NotFoundError, ResourceOperationError, is_error_code

logger = logging.getLogger(__name__)

ClientFactory = Callable[[], Any]

CONFIGURED_INPUTS: str = "configured_inputs"


def amplify_client() -> Any:
    return boto3.client("amplify")


def _drop_empty(values: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None}


class _AmplifyProvider(ResourceProvider):
    """
    Shared client handling, state bookkeeping and error wrapping.

    Optional inputs left unset are filled in by the service (stack names,
    empty descriptions, auto-build defaults), so state cannot tell a value the
    user chose from a service default. State records the optional keys the
    user set under ``configured_inputs``; an unset optional key only counts as
    a change when it was set before, and ``update`` then sends the key's
    empty value from ``clearable`` so the service drops it.
    """

    kind: str = "Amplify resource"
    input_keys: tuple[str, ...] = ()
    replace_keys: tuple[str, ...] = ()
    optional_keys: tuple[str, ...] = ()
    # input key -> (request key, value that clears it)
    clearable: dict[str, tuple[str, Any]] = {}

    def __init__(self, client_factory: ClientFactory | None = None):
        self._client_factory = client_factory or amplify_client

    def _conn(self) -> Any:
        return self._client_factory()

    def _state(self, outs: dict[str, Any], inputs: dict[str, Any]) -> dict[str, Any]:
        configured = [k for k in self.optional_keys if inputs.get(k) is not None]
        return {**outs, CONFIGURED_INPUTS: configured}

    def _refreshed(self, outs: dict[str, Any], props: dict[str, Any]) -> dict[str, Any]:
        # A read has no inputs to go by; keep what the last write recorded.
        return {**outs, CONFIGURED_INPUTS: props.get(CONFIGURED_INPUTS) or []}

    def _clear_unset(
        self,
        request: dict[str, Any],
        olds: dict[str, Any],
        news: dict[str, Any],
    ) -> dict[str, Any]:
        configured = olds.get(CONFIGURED_INPUTS) or []
        for key, (request_key, empty) in self.clearable.items():
            if news.get(key) is None and key in configured:
                request[request_key] = empty
        return request

    def _gone(self, id_: str) -> ReadResult:
        logger.warning("%s (%s) not found, removing from state", self.kind, id_)
        return ReadResult(None, {})

    def _delete(self, id_: str, operation: Callable[..., Any], **request: Any) -> None:
        logger.info("Deleting %s (%s)", self.kind, id_)
        try:
            operation(**request)
        except ClientError as e:
            if is_error_code(e, finder.NOT_FOUND_CODE):
                return
            raise ResourceOperationError("deleting", self.kind, id_, e) from e

    def diff(self, _id: str, olds: dict[str, Any], news: dict[str, Any]) -> DiffResult:
        changed, replaces = diff_inputs(
            olds,
            news,
            self.input_keys,
            self.replace_keys,
            self.optional_keys,
            olds.get(CONFIGURED_INPUTS) or [],
        )
        return DiffResult(
            changes=bool(changed),
            replaces=replaces,
            stables=[k for k in self.replace_keys if k not in replaces],
            delete_before_replace=True,
        )


# ---------------------------------------------------------------------------
# Backend environment
# ---------------------------------------------------------------------------


def _backend_environment_outputs(app_id: str, env: dict[str, Any]) -> dict[str, Any]:
    return {
        "app_id": app_id,
        "environment_name": env.get("environmentName"),
        "arn": env.get("backendEnvironmentArn"),
        "deployment_artifacts": env.get("deploymentArtifacts"),
        "stack_name": env.get("stackName"),
    }


class BackendEnvironmentProvider(_AmplifyProvider):
    """Backend environments cannot be updated in place; every change replaces."""

    kind = "Amplify Backend Environment"
    input_keys = ("app_id", "environment_name", "deployment_artifacts", "stack_name")
    replace_keys = input_keys
    optional_keys = ("deployment_artifacts", "stack_name")

    def create(self, props: dict[str, Any]) -> CreateResult:
        app_id = props["app_id"]
        environment_name = props["environment_name"]
        request = _drop_empty(
            {
                "appId": app_id,
                "environmentName": environment_name,
                "deploymentArtifacts": props.get("deployment_artifacts"),
                "stackName": props.get("stack_name"),
            }
        )
        id_ = BACKEND_ENVIRONMENT_ID.encode(app_id, environment_name)
        logger.debug("Creating %s: %s", self.kind, request)

        try:
            output = self._conn().create_backend_environment(**request)
        except ClientError as e:
            raise ResourceOperationError("creating", self.kind, id_, e) from e

        outs = _backend_environment_outputs(app_id, output["backendEnvironment"])
        return CreateResult(id_, self._state(outs, props))

    def read(self, id_: str, props: dict[str, Any]) -> ReadResult:
        app_id, environment_name = BACKEND_ENVIRONMENT_ID.decode(id_)

        try:
            env = finder.backend_environment_by_app_id_and_environment_name(
                self._conn(), app_id, environment_name
            )
        except NotFoundError:
            return self._gone(id_)
        except ClientError as e:
            raise ResourceOperationError("reading", self.kind, id_, e) from e

        outs = _backend_environment_outputs(app_id, env)
        return ReadResult(id_, self._refreshed(outs, props))

    def delete(self, id_: str, props: dict[str, Any]) -> None:
        app_id, environment_name = BACKEND_ENVIRONMENT_ID.decode(id_)
        self._delete(
            id_,
            self._conn().delete_backend_environment,
            appId=app_id,
            environmentName=environment_name,
        )


class BackendEnvironment(Resource):
    """Amplify backend environment of an app."""

    app_id: pulumi.Output[str]
    environment_name: pulumi.Output[str]
    arn: pulumi.Output[str]
    deployment_artifacts: pulumi.Output[str]
    stack_name: pulumi.Output[str]

    def __init__(
        self,
        name: str,
        app_id: pulumi.Input[str],
        environment_name: pulumi.Input[str],
        deployment_artifacts: pulumi.Input[str] | None = None,
        stack_name: pulumi.Input[str] | None = None,
        client_factory: ClientFactory | None = None,
        opts: pulumi.ResourceOptions | None = None,
    ):
        super().__init__(
            BackendEnvironmentProvider(client_factory),
            name,
            {
                "app_id": app_id,
                "environment_name": environment_name,
                "deployment_artifacts": deployment_artifacts,
                "stack_name": stack_name,
                "arn": None,
            },
            opts,
        )


# ---------------------------------------------------------------------------
# Branch
# ---------------------------------------------------------------------------

BRANCH_STAGES: tuple[str, ...] = (
    "PRODUCTION",
    "BETA",
    "DEVELOPMENT",
    "EXPERIMENTAL",
    "PULL_REQUEST",
)


def _branch_request(props: dict[str, Any]) -> dict[str, Any]:
    return _drop_empty(
        {
            "appId": props["app_id"],
            "branchName": props["branch_name"],
            "description": props.get("description"),
            "stage": props.get("stage"),
            "framework": props.get("framework"),
            "enableAutoBuild": props.get("enable_auto_build"),
            "environmentVariables": props.get("environment_variables"),
        }
    )


def _branch_outputs(app_id: str, branch: dict[str, Any]) -> dict[str, Any]:
    return {
        "app_id": app_id,
        "branch_name": branch.get("branchName"),
        "arn": branch.get("branchArn"),
        "description": branch.get("description"),
        "stage": branch.get("stage"),
        "framework": branch.get("framework"),
        "enable_auto_build": branch.get("enableAutoBuild"),
        "environment_variables": branch.get("environmentVariables") or {},
    }


class BranchProvider(_AmplifyProvider):
    kind = "Amplify Branch"
    input_keys = (
        "app_id",
        "branch_name",
        "description",
        "stage",
        "framework",
        "enable_auto_build",
        "environment_variables",
    )
    replace_keys = ("app_id", "branch_name")
    optional_keys = (
        "description",
        "stage",
        "framework",
        "enable_auto_build",
        "environment_variables",
    )
    clearable = {
        "description": ("description", ""),
        "framework": ("framework", ""),
        "environment_variables": ("environmentVariables", {}),
    }

    def check(self, _olds: dict[str, Any], news: dict[str, Any]) -> CheckResult:
        failures = []
        stage = news.get("stage")
        if stage and not contains_unknown(stage) and stage not in BRANCH_STAGES:
            failures.append(
                CheckFailure("stage", f"expected one of {', '.join(BRANCH_STAGES)}, got {stage!r}")
            )
        return CheckResult(news, failures)

    def create(self, props: dict[str, Any]) -> CreateResult:
        request = _branch_request(props)
        id_ = BRANCH_ID.encode(props["app_id"], props["branch_name"])
        logger.debug("Creating %s: %s", self.kind, request)

        try:
            output = self._conn().create_branch(**request)
        except ClientError as e:
            raise ResourceOperationError("creating", self.kind, id_, e) from e

        outs = _branch_outputs(props["app_id"], output["branch"])
        return CreateResult(id_, self._state(outs, props))

    def read(self, id_: str, props: dict[str, Any]) -> ReadResult:
        app_id, branch_name = BRANCH_ID.decode(id_)

        try:
            branch = finder.branch_by_app_id_and_branch_name(self._conn(), app_id, branch_name)
        except NotFoundError:
            return self._gone(id_)
        except ClientError as e:
            raise ResourceOperationError("reading", self.kind, id_, e) from e

        outs = _branch_outputs(app_id, branch)
        return ReadResult(id_, self._refreshed(outs, props))

    def update(self, id_: str, olds: dict[str, Any], news: dict[str, Any]) -> UpdateResult:
        app_id, branch_name = BRANCH_ID.decode(id_)
        request = self._clear_unset(
            _branch_request({**news, "app_id": app_id, "branch_name": branch_name}), olds, news
        )
        logger.debug("Updating %s: %s", self.kind, request)

        try:
            output = self._conn().update_branch(**request)
        except ClientError as e:
            raise ResourceOperationError("updating", self.kind, id_, e) from e

        return UpdateResult(self._state(_branch_outputs(app_id, output["branch"]), news))

    def delete(self, id_: str, props: dict[str, Any]) -> None:
        app_id, branch_name = BRANCH_ID.decode(id_)
        self._delete(id_, self._conn().delete_branch, appId=app_id, branchName=branch_name)


class Branch(Resource):
    """Amplify branch of an app."""

    app_id: pulumi.Output[str]
    branch_name: pulumi.Output[str]
    arn: pulumi.Output[str]

    def __init__(
        self,
        name: str,
        app_id: pulumi.Input[str],
        branch_name: pulumi.Input[str],
        description: pulumi.Input[str] | None = None,
        stage: pulumi.Input[str] | None = None,
        framework: pulumi.Input[str] | None = None,
        enable_auto_build: pulumi.Input[bool] | None = None,
        environment_variables: pulumi.Input[dict] | None = None,
        client_factory: ClientFactory | None = None,
        opts: pulumi.ResourceOptions | None = None,
    ):
        super().__init__(
            BranchProvider(client_factory),
            name,
            {
                "app_id": app_id,
                "branch_name": branch_name,
                "description": description,
                "stage": stage,
                "framework": framework,
                "enable_auto_build": enable_auto_build,
                "environment_variables": environment_variables,
                "arn": None,
            },
            opts,
        )


# ---------------------------------------------------------------------------
# Webhook
# ---------------------------------------------------------------------------


def _webhook_outputs(app_id: str, webhook: dict[str, Any]) -> dict[str, Any]:
    return {
        "app_id": app_id,
        "branch_name": webhook.get("branchName"),
        "description": webhook.get("description"),
        "arn": webhook.get("webhookArn"),
        "url": webhook.get("webhookUrl"),
    }


def app_id_from_webhook_arn(arn: str) -> str:
    """
    Extract the app ID from a webhook ARN.

    ``arn:aws:amplify:<region>:<account>:apps/<app id>/webhooks/<webhook id>``
    """
    resource = arn.split(":", 5)[-1]
    parts = resource.split("/")
    if len(parts) != 4 or parts[0] != "apps" or parts[2] != "webhooks":
        raise ValueError(f"unexpected format for webhook ARN ({arn})")
    return parts[1]


class WebhookProvider(_AmplifyProvider):
    kind = "Amplify Webhook"
    input_keys = ("app_id", "branch_name", "description")
    replace_keys = ("app_id",)
    optional_keys = ("description",)
    clearable = {"description": ("description", "")}

    def create(self, props: dict[str, Any]) -> CreateResult:
        request = _drop_empty(
            {
                "appId": props["app_id"],
                "branchName": props["branch_name"],
                "description": props.get("description"),
            }
        )
        logger.debug("Creating %s: %s", self.kind, request)

        try:
            output = self._conn().create_webhook(**request)
        except ClientError as e:
            raise ResourceOperationError("creating", self.kind, props["app_id"], e) from e

        webhook = output["webhook"]
        outs = _webhook_outputs(props["app_id"], webhook)
        return CreateResult(webhook["webhookId"], self._state(outs, props))

    def read(self, id_: str, props: dict[str, Any]) -> ReadResult:
        try:
            webhook = finder.webhook_by_id(self._conn(), id_)
        except NotFoundError:
            return self._gone(id_)
        except ClientError as e:
            raise ResourceOperationError("reading", self.kind, id_, e) from e

        # Imports carry no props; recover the app ID from the ARN.
        app_id = props.get("app_id") or app_id_from_webhook_arn(webhook["webhookArn"])
        outs = _webhook_outputs(app_id, webhook)
        return ReadResult(id_, self._refreshed(outs, props))

    def update(self, id_: str, olds: dict[str, Any], news: dict[str, Any]) -> UpdateResult:
        request = self._clear_unset(
            _drop_empty(
                {
                    "webhookId": id_,
                    "branchName": news.get("branch_name"),
                    "description": news.get("description"),
                }
            ),
            olds,
            news,
        )
        logger.debug("Updating %s: %s", self.kind, request)

        try:
            output = self._conn().update_webhook(**request)
        except ClientError as e:
            raise ResourceOperationError("updating", self.kind, id_, e) from e

        return UpdateResult(self._state(_webhook_outputs(news["app_id"], output["webhook"]), news))

    def delete(self, id_: str, props: dict[str, Any]) -> None:
        self._delete(id_, self._conn().delete_webhook, webhookId=id_)


class Webhook(Resource):
    """Incoming webhook that triggers a build of an Amplify branch."""

    app_id: pulumi.Output[str]
    branch_name: pulumi.Output[str]
    arn: pulumi.Output[str]
    url: pulumi.Output[str]

    def __init__(
        self,
        name: str,
        app_id: pulumi.Input[str],
        branch_name: pulumi.Input[str],
        description: pulumi.Input[str] | None = None,
        client_factory: ClientFactory | None = None,
        opts: pulumi.ResourceOptions | None = None,
    ):
        super().__init__(
            WebhookProvider(client_factory),
            name,
            {
                "app_id": app_id,
                "branch_name": branch_name,
                "description": description,
                "arn": None,
                "url": None,
            },
            opts,
        )
