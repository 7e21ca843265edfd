"""Unit tests for the GitHub API client.

Requests are served by an httpx.MockTransport so the tests can assert on
the exact method, path and payload the client sends.
"""

import asyncio
import base64
import json
from typing import Callable, List

import httpx
import pytest

from src.sitebot.github.client import GitHubAPIError, GitHubClient, RateLimitError
from src.sitebot.github.models import PRCreateRequest


def run_async(coro):
    return asyncio.run(coro)


def _make_client(handler: Callable[[httpx.Request], httpx.Response], max_retries: int = 2):
    return GitHubClient(
        token="ghp_test",
        max_retries=max_retries,
        base_delay=0.0,
        max_delay=0.0,
        transport=httpx.MockTransport(handler),
    )


class Recorder:
    """Records requests and answers them from a queue of responses."""

    def __init__(self, *responses: httpx.Response):
        self.responses: List[httpx.Response] = list(responses)
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses.pop(0)

    def body(self, index: int = -1):
        return json.loads(self.requests[index].content)


async def _call(client: GitHubClient, method: str, *args, **kwargs):
    async with client:
        return await getattr(client, method)(*args, **kwargs)


class TestHeaders:
    def test_sends_auth_and_api_version(self):
        recorder = Recorder(httpx.Response(201, json={"id": 1}))
        client = _make_client(recorder)

        run_async(_call(client, "create_comment", "acme", "site", 5, "hi"))

        headers = recorder.requests[0].headers
        assert headers["authorization"] == "Bearer ghp_test"
        assert headers["accept"] == "application/vnd.github+json"
        assert headers["x-github-api-version"] == "2022-11-28"


class TestIssues:
    def test_create_issue(self):
        recorder = Recorder(
            httpx.Response(
                201,
                json={"number": 12, "html_url": "https://github.com/acme/site/issues/12"},
            )
        )
        client = _make_client(recorder)

        result = run_async(
            _call(client, "create_issue", "acme", "site", "Title", "Body", labels=["site-bot"])
        )

        assert result.issue_number == 12
        assert result.issue_url == "https://github.com/acme/site/issues/12"
        request = recorder.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/repos/acme/site/issues"
        assert recorder.body() == {"title": "Title", "body": "Body", "labels": ["site-bot"]}

    def test_create_issue_without_labels_omits_field(self):
        recorder = Recorder(
            httpx.Response(201, json={"number": 1, "html_url": "https://x/1"})
        )
        client = _make_client(recorder)

        run_async(_call(client, "create_issue", "acme", "site", "T", "B"))

        assert "labels" not in recorder.body()

    def test_create_comment(self):
        recorder = Recorder(httpx.Response(201, json={"id": 99}))
        client = _make_client(recorder)

        result = run_async(_call(client, "create_comment", "acme", "site", 7, "hello"))

        assert result == {"id": 99}
        assert recorder.requests[0].url.path == "/repos/acme/site/issues/7/comments"
        assert recorder.body() == {"body": "hello"}


class TestBranches:
    def test_get_branch_sha(self):
        recorder = Recorder(httpx.Response(200, json={"object": {"sha": "abc123"}}))
        client = _make_client(recorder)

        sha = run_async(_call(client, "get_branch_sha", "acme", "site", "main"))

        assert sha == "abc123"
        assert recorder.requests[0].url.path == "/repos/acme/site/git/ref/heads/main"

    def test_create_branch(self):
        recorder = Recorder(httpx.Response(201, json={"ref": "refs/heads/x"}))
        client = _make_client(recorder)

        created = run_async(
            _call(client, "create_branch", "acme", "site", "site-bot/issue-3", "abc")
        )

        assert created is True
        assert recorder.requests[0].url.path == "/repos/acme/site/git/refs"
        assert recorder.body() == {"ref": "refs/heads/site-bot/issue-3", "sha": "abc"}

    def test_existing_branch_returns_false(self):
        recorder = Recorder(
            httpx.Response(422, json={"message": "Reference already exists"})
        )
        client = _make_client(recorder)

        created = run_async(_call(client, "create_branch", "acme", "site", "b", "abc"))

        assert created is False

    def test_other_branch_errors_propagate(self):
        recorder = Recorder(httpx.Response(404, json={"message": "Not Found"}))
        client = _make_client(recorder)

        with pytest.raises(GitHubAPIError) as exc_info:
            run_async(_call(client, "create_branch", "acme", "site", "b", "abc"))

        assert exc_info.value.status_code == 404

    def test_unexpected_ref_body_raises_api_error(self):
        recorder = Recorder(httpx.Response(200, json={"ref": "refs/heads/main"}))
        client = _make_client(recorder)

        with pytest.raises(GitHubAPIError) as exc_info:
            run_async(_call(client, "get_branch_sha", "acme", "site", "main"))

        assert exc_info.value.status_code == 200
        assert "KeyError" in exc_info.value.message


class TestContents:
    def test_get_file_decodes_content(self):
        encoded = base64.b64encode("héllo".encode("utf-8")).decode("ascii")
        recorder = Recorder(
            httpx.Response(
                200,
                json={"path": "dir/a.txt", "sha": "s1", "content": encoded},
            )
        )
        client = _make_client(recorder)

        file = run_async(_call(client, "get_file", "acme", "site", "dir/a.txt", ref="dev"))

        assert file.sha == "s1"
        assert file.content == "héllo"
        request = recorder.requests[0]
        assert request.url.path == "/repos/acme/site/contents/dir/a.txt"
        assert request.url.params["ref"] == "dev"

    def test_get_missing_file_returns_none(self):
        recorder = Recorder(httpx.Response(404, json={"message": "Not Found"}))
        client = _make_client(recorder)

        assert run_async(_call(client, "get_file", "acme", "site", "nope.txt")) is None

    def test_put_file_encodes_content(self):
        recorder = Recorder(httpx.Response(201, json={"content": {"sha": "new-sha"}}))
        client = _make_client(recorder)

        sha = run_async(
            _call(
                client,
                "put_file",
                "acme",
                "site",
                "sites/issue-1/index.html",
                "<h1>Hi</h1>",
                message="Add index",
                branch="site-bot/issue-1",
            )
        )

        assert sha == "new-sha"
        request = recorder.requests[0]
        assert request.method == "PUT"
        assert request.url.path == "/repos/acme/site/contents/sites/issue-1/index.html"
        body = recorder.body()
        assert base64.b64decode(body["content"]).decode("utf-8") == "<h1>Hi</h1>"
        assert body["branch"] == "site-bot/issue-1"
        assert "sha" not in body

    def test_put_file_update_sends_sha(self):
        recorder = Recorder(httpx.Response(200, json={"content": {"sha": "s2"}}))
        client = _make_client(recorder)

        run_async(
            _call(client, "put_file", "acme", "site", "a.txt", "x", message="m", sha="s1")
        )

        assert recorder.body()["sha"] == "s1"

    def test_undecodable_file_raises_api_error(self):
        encoded = base64.b64encode(b"\xff\xfe\x00binary").decode("ascii")
        recorder = Recorder(
            httpx.Response(200, json={"path": "logo.png", "sha": "s1", "content": encoded})
        )
        client = _make_client(recorder)

        with pytest.raises(GitHubAPIError) as exc_info:
            run_async(_call(client, "get_file", "acme", "site", "logo.png"))

        assert exc_info.value.status_code == 200
        assert "UnicodeDecodeError" in exc_info.value.message

    def test_non_json_file_body_raises_api_error(self):
        recorder = Recorder(httpx.Response(200, text="<html>oops</html>"))
        client = _make_client(recorder)

        with pytest.raises(GitHubAPIError):
            run_async(_call(client, "get_file", "acme", "site", "a.txt"))


class TestPullRequests:
    def test_create_pr(self):
        recorder = Recorder(
            httpx.Response(
                201,
                json={"number": 8, "html_url": "https://github.com/acme/site/pull/8"},
            )
        )
        client = _make_client(recorder)
        request = PRCreateRequest(
            title="Scaffold", body="Closes #3", head_branch="site-bot/issue-3"
        )

        result = run_async(_call(client, "create_pr", "acme", "site", request))

        assert result.pr_number == 8
        assert result.pr_url == "https://github.com/acme/site/pull/8"
        assert recorder.body() == {
            "title": "Scaffold",
            "body": "Closes #3",
            "head": "site-bot/issue-3",
            "base": "main",
        }

    def test_merge_pr(self):
        recorder = Recorder(
            httpx.Response(
                200,
                json={"merged": True, "sha": "m1", "message": "Pull Request successfully merged"},
            )
        )
        client = _make_client(recorder)

        result = run_async(_call(client, "merge_pr", "acme", "site", 8))

        assert result.merged is True
        assert result.sha == "m1"
        request = recorder.requests[0]
        assert request.method == "PUT"
        assert request.url.path == "/repos/acme/site/pulls/8/merge"
        assert recorder.body() == {"merge_method": "squash"}

    def test_unmergeable_pr_raises(self):
        recorder = Recorder(
            httpx.Response(405, json={"message": "Pull Request is not mergeable"})
        )
        client = _make_client(recorder)

        with pytest.raises(GitHubAPIError) as exc_info:
            run_async(_call(client, "merge_pr", "acme", "site", 8))

        assert exc_info.value.status_code == 405
        assert "not mergeable" in exc_info.value.response_body

    def test_find_open_pr(self):
        recorder = Recorder(
            httpx.Response(
                200,
                json=[{"number": 8, "html_url": "https://github.com/acme/site/pull/8"}],
            )
        )
        client = _make_client(recorder)

        result = run_async(_call(client, "find_open_pr", "acme", "site", "site-bot/issue-3"))

        assert result.pr_number == 8
        assert result.pr_url == "https://github.com/acme/site/pull/8"
        request = recorder.requests[0]
        assert request.method == "GET"
        assert request.url.path == "/repos/acme/site/pulls"
        assert request.url.params["head"] == "acme:site-bot/issue-3"
        assert request.url.params["state"] == "open"

    def test_find_open_pr_none_open(self):
        recorder = Recorder(httpx.Response(200, json=[]))
        client = _make_client(recorder)

        assert run_async(_call(client, "find_open_pr", "acme", "site", "b")) is None


class TestRetries:
    def test_retries_server_errors_then_succeeds(self):
        recorder = Recorder(
            httpx.Response(502),
            httpx.Response(503),
            httpx.Response(201, json={"id": 1}),
        )
        client = _make_client(recorder, max_retries=2)

        result = run_async(_call(client, "create_comment", "acme", "site", 1, "x"))

        assert result == {"id": 1}
        assert len(recorder.requests) == 3

    def test_gives_up_after_max_retries(self):
        recorder = Recorder(*[httpx.Response(500) for _ in range(3)])
        client = _make_client(recorder, max_retries=2)

        with pytest.raises(GitHubAPIError) as exc_info:
            run_async(_call(client, "create_comment", "acme", "site", 1, "x"))

        assert exc_info.value.status_code == 500
        assert len(recorder.requests) == 3

    def test_client_errors_are_not_retried(self):
        recorder = Recorder(httpx.Response(401, json={"message": "Bad credentials"}))
        client = _make_client(recorder, max_retries=3)

        with pytest.raises(GitHubAPIError):
            run_async(_call(client, "create_comment", "acme", "site", 1, "x"))

        assert len(recorder.requests) == 1

    def test_transport_errors_are_retried(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(201, json={"id": 2})

        client = _make_client(handler, max_retries=1)

        result = run_async(_call(client, "create_comment", "acme", "site", 1, "x"))

        assert result == {"id": 2}
        assert len(calls) == 2

    def test_transport_errors_exhaust_retries(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = _make_client(handler, max_retries=1)

        with pytest.raises(GitHubAPIError) as exc_info:
            run_async(_call(client, "create_comment", "acme", "site", 1, "x"))

        assert exc_info.value.status_code is None
        assert "connection refused" in exc_info.value.message


class TestRateLimit:
    def test_exhausted_rate_limit_raises(self):
        recorder = Recorder(
            httpx.Response(
                403,
                headers={"x-ratelimit-remaining": "0", "retry-after": "30"},
                json={"message": "API rate limit exceeded"},
            )
        )
        client = _make_client(recorder)

        with pytest.raises(RateLimitError) as exc_info:
            run_async(_call(client, "create_comment", "acme", "site", 1, "x"))

        assert exc_info.value.retry_after == 30
        assert len(recorder.requests) == 1

    def test_403_without_rate_limit_is_plain_error(self):
        recorder = Recorder(
            httpx.Response(
                403,
                headers={"x-ratelimit-remaining": "4999"},
                json={"message": "Resource not accessible by integration"},
            )
        )
        client = _make_client(recorder)

        with pytest.raises(GitHubAPIError) as exc_info:
            run_async(_call(client, "create_comment", "acme", "site", 1, "x"))

        assert not isinstance(exc_info.value, RateLimitError)
        assert exc_info.value.status_code == 403
