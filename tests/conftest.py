"""Fake AWS clients shared by provider and finder tests."""

import pytest
from botocore.exceptions import ClientError


def make_client_error(code: str, operation: str = "Operation", status: int = 400) -> ClientError:
    return ClientError(
        {
            "Error": {"Code": code, "Message": f"{code} raised by fake"},
            "ResponseMetadata": {"HTTPStatusCode": status},
        },
        operation,
    )


class FakeClient:
    """
    Stand-in for a boto3 client.

    Every method call is recorded in ``calls`` as (name, kwargs). The result is
    taken from ``responses[name]``: an exception is raised, anything else is
    returned (default ``{}``).
    """

    def __init__(self, **responses):
        self.responses = responses
        self.calls = []

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)

        def call(**kwargs):
            self.calls.append((name, kwargs))
            result = self.responses.get(name, {})
            if isinstance(result, Exception):
                raise result
            return result

        return call


@pytest.fixture
def client_error():
    return make_client_error


@pytest.fixture
def fake_client():
    return FakeClient
