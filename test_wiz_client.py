"""
Tests for the Wiz GraphQL client, using a fake HTTP session
"""

import pytest
import requests

from exceptions import WizRequestError
from models import ReadSAMLGroupMappings
from wiz_client import WizClient

API_URL = "https://api.example.wiz.io/graphql"


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeSession:
    def __init__(self, *responses, error=None):
        self.responses = list(responses)
        self.error = error
        self.calls = []
        self.closed = False

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error:
            raise self.error
        return self.responses.pop(0)

    def close(self):
        self.closed = True


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("WIZ_API_URL", "WIZ_CLIENT_ID", "WIZ_CLIENT_SECRET", "WIZ_API_TOKEN",
                "WIZ_AUTH_URL", "WIZ_PROJECT_MATCH", "WIZ_REQUEST_TIMEOUT"):
        monkeypatch.delenv(var, raising=False)


def page_payload():
    return {
        "data": {
            "samlIdentityProviderGroupMappings": {
                "pageInfo": {"hasNextPage": False, "endCursor": None},
                "nodes": [{
                    "providerGroupId": "grp1",
                    "role": {"id": "Admin", "name": "Admin", "isProjectScoped": True, "scopes": None},
                    "projects": [{"id": "p1"}],
                }],
            }
        }
    }


def test_process_request_decodes_response_model():
    session = FakeSession(FakeResponse(payload=page_payload()))
    client = WizClient(api_url=API_URL, api_token="token", session=session)

    data = client.process_request({"id": "idp1", "first": 100}, ReadSAMLGroupMappings, "query {}", "saml_idp", "read")

    node = data.saml_group_mappings.nodes[0]
    assert node.provider_group_id == "grp1"
    assert node.role.is_project_scoped is True
    assert node.project_ids == ["p1"]

    url, kwargs = session.calls[0]
    assert url == API_URL
    assert kwargs["json"] == {"query": "query {}", "variables": {"id": "idp1", "first": 100}}
    assert kwargs["headers"]["Authorization"] == "Bearer token"


def test_process_request_without_model_returns_data():
    payload = {"data": {"modifySAMLIdentityProviderGroupMappings": {"_stub": None}}}
    client = WizClient(api_url=API_URL, api_token="token", session=FakeSession(FakeResponse(payload=payload)))

    data = client.process_request({}, None, "mutation {}", "saml_group_mapping", "delete")

    assert data == {"modifySAMLIdentityProviderGroupMappings": {"_stub": None}}


def test_graphql_errors_raise():
    payload = {"errors": [{"message": "not authorized"}, {"message": "bad input"}]}
    client = WizClient(api_url=API_URL, api_token="token", session=FakeSession(FakeResponse(payload=payload)))

    with pytest.raises(WizRequestError) as excinfo:
        client.process_request({}, None, "query {}", "saml_idp", "read")

    assert excinfo.value.errors == ["not authorized", "bad input"]
    assert excinfo.value.resource == "saml_idp"
    assert excinfo.value.operation == "read"


def test_error_status_raises():
    session = FakeSession(FakeResponse(status_code=500, text="internal error"))
    client = WizClient(api_url=API_URL, api_token="token", session=session)

    with pytest.raises(WizRequestError) as excinfo:
        client.process_request({}, None, "query {}", "saml_idp", "read")

    assert "500" in str(excinfo.value)


def test_invalid_json_raises():
    client = WizClient(api_url=API_URL, api_token="token", session=FakeSession(FakeResponse(payload=None)))

    with pytest.raises(WizRequestError):
        client.process_request({}, None, "query {}", "saml_idp", "read")


def test_unexpected_response_shape_raises():
    payload = {"data": {"samlIdentityProviderGroupMappings": {"nodes": [{"role": {}}]}}}
    client = WizClient(api_url=API_URL, api_token="token", session=FakeSession(FakeResponse(payload=payload)))

    with pytest.raises(WizRequestError):
        client.process_request({}, ReadSAMLGroupMappings, "query {}", "saml_idp", "read")


def test_network_failure_raises():
    session = FakeSession(error=requests.ConnectionError("connection refused"))
    client = WizClient(api_url=API_URL, api_token="token", session=session)

    with pytest.raises(WizRequestError) as excinfo:
        client.process_request({}, None, "query {}", "saml_idp", "read")

    assert "connection refused" in str(excinfo.value)


def test_connect_with_client_credentials():
    session = FakeSession(
        FakeResponse(payload={"access_token": "issued-token"}),
        FakeResponse(payload=page_payload()),
    )
    client = WizClient(
        api_url=API_URL,
        client_id="client",
        client_secret="secret",
        auth_url="https://auth.example/oauth/token",
        session=session,
    )

    client.process_request({"id": "idp1", "first": 100}, ReadSAMLGroupMappings, "query {}", "saml_idp", "read")

    auth_url, auth_kwargs = session.calls[0]
    assert auth_url == "https://auth.example/oauth/token"
    assert auth_kwargs["data"]["grant_type"] == "client_credentials"
    assert auth_kwargs["data"]["audience"] == "wiz-api"
    assert session.calls[1][1]["headers"]["Authorization"] == "Bearer issued-token"


def test_connect_with_static_token_skips_auth():
    session = FakeSession()
    client = WizClient(api_url=API_URL, api_token="token", session=session)

    client.connect()

    assert session.calls == []


def test_connect_requires_credentials():
    client = WizClient(api_url=API_URL, session=FakeSession())

    with pytest.raises(WizRequestError):
        client.connect()


def test_connect_rejected_credentials():
    session = FakeSession(FakeResponse(status_code=401, text="unauthorized"))
    client = WizClient(api_url=API_URL, client_id="client", client_secret="wrong", session=session)

    with pytest.raises(WizRequestError):
        client.connect()

    assert client.api_token == ""


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("WIZ_API_URL", API_URL)
    monkeypatch.setenv("WIZ_PROJECT_MATCH", "Unordered")
    monkeypatch.setenv("WIZ_REQUEST_TIMEOUT", "5")

    client = WizClient(session=FakeSession())

    assert client.api_url == API_URL
    assert client.project_match == "unordered"
    assert client.timeout == 5


def test_unknown_project_match_strategy():
    with pytest.raises(ValueError):
        WizClient(api_url=API_URL, project_match="sorted", session=FakeSession())


def test_close_closes_session():
    session = FakeSession()
    client = WizClient(api_url=API_URL, api_token="token", session=session)

    client.close()

    assert session.closed


def test_connect_with_non_json_token_response():
    session = FakeSession(FakeResponse(payload=None, text="<html>proxy login</html>"))
    client = WizClient(api_url=API_URL, client_id="client", client_secret="secret", session=session)

    with pytest.raises(WizRequestError) as excinfo:
        client.connect()

    assert excinfo.value.operation == "connect"


def test_connect_with_token_response_not_an_object():
    session = FakeSession(FakeResponse(payload=["access_token"]))
    client = WizClient(api_url=API_URL, client_id="client", client_secret="secret", session=session)

    with pytest.raises(WizRequestError):
        client.connect()


def test_response_not_an_object_raises():
    client = WizClient(api_url=API_URL, api_token="token", session=FakeSession(FakeResponse(payload=[{"data": {}}])))

    with pytest.raises(WizRequestError) as excinfo:
        client.process_request({}, None, "query {}", "saml_idp", "read")

    assert "list" in str(excinfo.value)


def test_expired_token_is_renewed_once():
    session = FakeSession(
        FakeResponse(payload={"access_token": "first-token"}),
        FakeResponse(status_code=401, text="token expired"),
        FakeResponse(payload={"access_token": "second-token"}),
        FakeResponse(payload=page_payload()),
    )
    client = WizClient(api_url=API_URL, client_id="client", client_secret="secret", session=session)

    data = client.process_request({"id": "idp1", "first": 100}, ReadSAMLGroupMappings, "query {}", "saml_idp", "read")

    assert data.saml_group_mappings.nodes[0].provider_group_id == "grp1"
    assert client.api_token == "second-token"
    assert len(session.calls) == 4
    assert session.calls[3][1]["headers"]["Authorization"] == "Bearer second-token"


def test_repeated_unauthorized_raises():
    session = FakeSession(
        FakeResponse(payload={"access_token": "first-token"}),
        FakeResponse(status_code=401, text="token expired"),
        FakeResponse(payload={"access_token": "second-token"}),
        FakeResponse(status_code=401, text="still unauthorized"),
    )
    client = WizClient(api_url=API_URL, client_id="client", client_secret="secret", session=session)

    with pytest.raises(WizRequestError) as excinfo:
        client.process_request({}, None, "query {}", "saml_idp", "read")

    assert "401" in str(excinfo.value)
    assert len(session.calls) == 4


def test_unauthorized_with_static_token_is_not_retried():
    session = FakeSession(FakeResponse(status_code=401, text="unauthorized"))
    client = WizClient(api_url=API_URL, api_token="token", session=session)

    with pytest.raises(WizRequestError):
        client.process_request({}, None, "query {}", "saml_idp", "read")

    assert len(session.calls) == 1
