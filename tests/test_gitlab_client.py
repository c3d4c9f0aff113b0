import pytest
import requests

from explorer_app import services
from explorer_app.gitlab_client import GitLabClient, GitLabError


class StubResponse:
    def __init__(self, status_code=200, body=None, headers=None, text=""):
        self.status_code = status_code
        self._body = body
        self.headers = headers or {}
        self.text = text
        self.reason = "Error"

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body


@pytest.fixture
def recorded(monkeypatch):
    """Patch the client's session; queue responses in ``recorded.responses``."""

    class Recorder:
        requests = []
        responses = []

    client = GitLabClient("secret", "https://gitlab.example.com/", timeout=5)

    def request(method, url, **kwargs):
        Recorder.requests.append((method, url, kwargs))
        response = Recorder.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    monkeypatch.setattr(client.session, "request", request)
    Recorder.requests = []
    Recorder.responses = []
    Recorder.client = client
    return Recorder


def test_base_url_and_token_header():
    client = GitLabClient("secret", "https://gitlab.example.com/")

    assert client.base_url == "https://gitlab.example.com/api/v4"
    assert client.session.headers["PRIVATE-TOKEN"] == "secret"


def test_pagination_follows_next_page_header(recorded):
    recorded.responses = [
        StubResponse(body=[{"name": "main"}], headers={"X-Next-Page": "2"}),
        StubResponse(body=[{"name": "dev"}], headers={"X-Next-Page": ""}),
    ]

    branches = recorded.client.list_branches(10)

    assert [b["name"] for b in branches] == ["main", "dev"]
    method, url, kwargs = recorded.requests[1]
    assert url == "https://gitlab.example.com/api/v4/projects/10/repository/branches"
    assert kwargs["params"]["page"] == "2"
    assert kwargs["timeout"] == 5


def test_list_pipelines_asks_for_single_latest(recorded):
    recorded.responses = [StubResponse(body=[{"id": 100}], headers={"X-Next-Page": "2"})]

    assert recorded.client.list_pipelines(10, "main") == [{"id": 100}]
    _, url, kwargs = recorded.requests[0]
    assert url.endswith("/projects/10/pipelines")
    assert kwargs["params"] == {"ref": "main", "order_by": "id", "sort": "desc", "per_page": 1, "page": 1}
    assert len(recorded.requests) == 1


def test_error_status_raises_with_remote_message(recorded):
    recorded.responses = [StubResponse(404, body={"message": "404 Group Not Found"})]

    with pytest.raises(GitLabError) as excinfo:
        recorded.client.get_group(5)

    assert excinfo.value.status_code == 404
    assert "404 Group Not Found" in str(excinfo.value)


def test_error_without_json_body(recorded):
    recorded.responses = [StubResponse(502, text="Bad Gateway")]

    with pytest.raises(GitLabError, match="Bad Gateway"):
        recorded.client.retry_job(10, 3)


def test_transport_error_is_wrapped(recorded):
    recorded.responses = [requests.ConnectionError("refused")]

    with pytest.raises(GitLabError) as excinfo:
        recorded.client.cancel_job(10, 3)

    assert excinfo.value.status_code is None
    assert isinstance(excinfo.value.__cause__, requests.ConnectionError)


def test_job_actions_and_tags_use_expected_endpoints(recorded):
    recorded.responses = [
        StubResponse(body={"id": 3}),
        StubResponse(body={"name": "v1"}),
        StubResponse(204),
    ]

    recorded.client.play_job(10, 3)
    recorded.client.create_tag(10, "v1", "main")
    recorded.client.delete_tag(10, "release/1.0")

    assert [(m, u.split("/api/v4")[1]) for m, u, _ in recorded.requests] == [
        ("POST", "/projects/10/jobs/3/play"),
        ("POST", "/projects/10/repository/tags"),
        ("DELETE", "/projects/10/repository/tags/release%2F1.0"),
    ]
    assert recorded.requests[1][2]["params"] == {"tag_name": "v1", "ref": "main"}


def test_non_json_success_body_raises_gitlab_error(recorded):
    recorded.responses = [StubResponse(200, body=None, text="<html>sign in</html>")]

    with pytest.raises(GitLabError, match="invalid JSON response") as excinfo:
        recorded.client.list_branches(10)

    assert excinfo.value.status_code == 200


def test_non_json_listing_degrades_ref_catalog(recorded):
    recorded.responses = [
        StubResponse(200, body=None, text="<html>"),
        StubResponse(200, body=None, text="<html>"),
    ]

    assert services.build_refs(recorded.client, 10) == ([], [])


def test_client_closes_session_on_exit(monkeypatch):
    closed = []
    client = GitLabClient("secret", "https://gitlab.example.com")
    monkeypatch.setattr(client.session, "close", lambda: closed.append(True))

    with client as entered:
        assert entered is client

    assert closed == [True]
