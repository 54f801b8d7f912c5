"""Tests for Amplify finders"""

import pytest
from botocore.exceptions import ClientError

from components import finder
from components.errors import NotFoundError


class TestAppById:
    def test_returns_app(self, fake_client):
        conn = fake_client(get_app={"app": {"appId": "d2abc", "name": "site"}})
        assert finder.app_by_id(conn, "d2abc") == {"appId": "d2abc", "name": "site"}
        assert conn.calls == [("get_app", {"appId": "d2abc"})]

    def test_not_found_code(self, fake_client, client_error):
        conn = fake_client(get_app=client_error("NotFoundException", "GetApp", 404))
        with pytest.raises(NotFoundError) as excinfo:
            finder.app_by_id(conn, "d2abc")
        assert excinfo.value.last_request == {"appId": "d2abc"}
        assert isinstance(excinfo.value.last_error, ClientError)

    def test_empty_payload(self, fake_client):
        conn = fake_client(get_app={})
        with pytest.raises(NotFoundError) as excinfo:
            finder.app_by_id(conn, "d2abc")
        assert excinfo.value.message == "Empty result"
        assert excinfo.value.last_error is None

    def test_other_error_propagates(self, fake_client, client_error):
        error = client_error("ThrottlingException", "GetApp")
        conn = fake_client(get_app=error)
        with pytest.raises(ClientError) as excinfo:
            finder.app_by_id(conn, "d2abc")
        assert excinfo.value is error


class TestBackendEnvironment:
    def test_returns_environment(self, fake_client):
        env = {"environmentName": "staging"}
        conn = fake_client(get_backend_environment={"backendEnvironment": env})
        assert finder.backend_environment_by_app_id_and_environment_name(conn, "d2abc", "staging") == env
        assert conn.calls == [
            ("get_backend_environment", {"appId": "d2abc", "environmentName": "staging"})
        ]

    def test_none_payload(self, fake_client):
        conn = fake_client(get_backend_environment={"backendEnvironment": None})
        with pytest.raises(NotFoundError):
            finder.backend_environment_by_app_id_and_environment_name(conn, "d2abc", "staging")


class TestBranch:
    def test_not_found_and_empty_are_same_kind(self, fake_client, client_error):
        missing = fake_client(get_branch=client_error("NotFoundException", "GetBranch", 404))
        empty = fake_client(get_branch={"branch": {}})
        for conn in (missing, empty):
            with pytest.raises(NotFoundError):
                finder.branch_by_app_id_and_branch_name(conn, "d2abc", "main")

    def test_single_request(self, fake_client):
        conn = fake_client(get_branch={"branch": {"branchName": "main"}})
        finder.branch_by_app_id_and_branch_name(conn, "d2abc", "main")
        assert len(conn.calls) == 1


class TestWebhook:
    def test_returns_webhook(self, fake_client):
        conn = fake_client(get_webhook={"webhook": {"webhookId": "wh-1"}})
        assert finder.webhook_by_id(conn, "wh-1") == {"webhookId": "wh-1"}

    def test_not_found(self, fake_client, client_error):
        conn = fake_client(get_webhook=client_error("NotFoundException", "GetWebhook", 404))
        with pytest.raises(NotFoundError, match="wh-1"):
            finder.webhook_by_id(conn, "wh-1")
