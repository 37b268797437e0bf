import json
from unittest.mock import MagicMock, patch

import pytest
import requests

from contentful_ops.api.client import ContentfulManagementClient
from contentful_ops.api.errors import (
    AuthenticationError,
    ContentfulError,
    NotFoundError,
    RateLimitError,
    ValidationFailedError,
)


def fake_response(status, body=None, headers=None):
    response = MagicMock()
    response.status_code = status
    response.headers = headers or {}
    response.content = json.dumps(body).encode() if body is not None else b""
    response.text = response.content.decode()
    response.json.return_value = body if body is not None else {}
    return response


@pytest.fixture
def client():
    return ContentfulManagementClient("CFPAT-token", "space1", "master", timeout=12)


def test_get_entry_sends_auth_and_timeout(client):
    entry = {"sys": {"id": "abc", "version": 3}}
    with patch.object(requests.Session, "request", return_value=fake_response(200, entry)) as request:
        assert client.get_entry("abc") == entry

    args, kwargs = request.call_args
    assert args == ("GET", "https://api.contentful.com/spaces/space1/environments/master/entries/abc")
    assert kwargs["headers"]["Authorization"] == "Bearer CFPAT-token"
    assert kwargs["timeout"] == 12


def test_update_entry_sends_version_and_fields(client):
    entry = {"sys": {"id": "abc", "version": 7}, "fields": {"title": {"en-US": "Hi"}}}
    with patch.object(requests.Session, "request", return_value=fake_response(200, entry)) as request:
        client.update_entry(entry)

    args, kwargs = request.call_args
    assert args[0] == "PUT"
    assert kwargs["headers"]["X-Contentful-Version"] == "7"
    assert kwargs["json"] == {"fields": {"title": {"en-US": "Hi"}}}


def test_reverse_lookup_query(client):
    with patch.object(requests.Session, "request", return_value=fake_response(200, {"items": [], "total": 0})) as request:
        client.get_entries_linking_to_asset("img1", limit=10)

    assert request.call_args.kwargs["params"] == {"links_to_asset": "img1", "limit": 10}


@pytest.mark.parametrize("status,error_id,error_cls", [
    (404, "NotFound", NotFoundError),
    (422, "ValidationFailed", ValidationFailedError),
    (401, "AccessTokenInvalid", AuthenticationError),
    (500, "ServerError", ContentfulError),
])
def test_error_statuses_map_to_exceptions(client, status, error_id, error_cls):
    body = {"sys": {"type": "Error", "id": error_id}, "message": "nope", "details": {"errors": []}}
    with patch.object(requests.Session, "request", return_value=fake_response(status, body)):
        with pytest.raises(error_cls) as exc_info:
            client.get_entry("abc")

    assert exc_info.value.status == status
    assert exc_info.value.error_id == error_id


def test_422_keeps_sub_errors(client):
    body = {
        "sys": {"type": "Error", "id": "ValidationFailed"},
        "message": "Validation error",
        "details": {"errors": [{"name": "required", "path": ["fields", "title"]}]},
    }
    with patch.object(requests.Session, "request", return_value=fake_response(422, body)):
        with pytest.raises(ValidationFailedError) as exc_info:
            client.publish_entry({"sys": {"id": "abc", "version": 2}})

    assert exc_info.value.errors == [{"name": "required", "path": ["fields", "title"]}]


def test_429_reads_reset_header(client):
    response = fake_response(429, {"sys": {"id": "RateLimitExceeded"}}, headers={"X-Contentful-RateLimit-Reset": "2"})
    with patch.object(requests.Session, "request", return_value=response):
        with pytest.raises(RateLimitError) as exc_info:
            client.get_entries()

    assert exc_info.value.retry_after == 2.0


def test_connection_errors_are_wrapped(client):
    with patch.object(requests.Session, "request", side_effect=requests.ConnectionError("refused")):
        with pytest.raises(ContentfulError) as exc_info:
            client.connect()

    assert "refused" in str(exc_info.value)


def test_empty_body_returns_empty_dict(client):
    with patch.object(requests.Session, "request", return_value=fake_response(204)):
        assert client.delete_entry({"sys": {"id": "abc", "version": 1}}) == {}
