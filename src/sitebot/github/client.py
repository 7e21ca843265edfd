"""GitHub API client for the site bot.

This module provides an async wrapper around the GitHub REST API for:
- Creating issues and issue comments
- Resolving and creating branches
- Reading and writing repository files through the contents API
- Opening and merging pull requests

Includes rate limiting and retry logic for API resilience.
"""

import asyncio
import base64
import logging
import random
import time
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from src.sitebot.github.models import (
    FileContent,
    IssueCreateResult,
    MergeResult,
    PRCreateRequest,
    PRCreateResult,
)


logger = logging.getLogger(__name__)


class GitHubAPIError(Exception):
    """Raised when a GitHub API request fails.

    Attributes:
        message: Human-readable error description.
        status_code: HTTP status code from the response.
        response_body: Response body from GitHub API.
        request_url: The URL that was requested.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        request_url: Optional[str] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.response_body = response_body
        self.request_url = request_url
        super().__init__(message)


class RateLimitError(GitHubAPIError):
    """Raised when GitHub API rate limit is exceeded.

    Attributes:
        reset_at: Unix timestamp when the rate limit resets.
        retry_after: Seconds to wait before retrying.
    """

    def __init__(
        self,
        message: str,
        reset_at: Optional[int] = None,
        retry_after: Optional[int] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.reset_at = reset_at
        self.retry_after = retry_after


class GitHubClient:
    """Async GitHub API client with rate limiting and retry logic.

    - Automatic retry with exponential backoff for transient failures
    - Rate limit handling by respecting X-RateLimit-* headers
    - Support for both github.com and GitHub Enterprise Server

    Attributes:
        token: GitHub API token (PAT or GitHub App token).
        base_url: Base URL for GitHub API (default: https://api.github.com).
        max_retries: Maximum number of retry attempts for transient failures.
        base_delay: Base delay in seconds for exponential backoff.
        max_delay: Maximum delay in seconds between retries.
        timeout: Request timeout in seconds.

    Example:
        >>> async with GitHubClient(token="ghp_xxx") as client:
        ...     await client.create_comment("owner", "repo", 123, "Hello!")
    """

    # HTTP status codes that should trigger a retry
    RETRYABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504}

    def __init__(
        self,
        token: str,
        base_url: str = "https://api.github.com",
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the GitHub client.

        Args:
            token: GitHub API token for authentication.
            base_url: Base URL for GitHub API.
            max_retries: Maximum number of retry attempts.
            base_delay: Base delay in seconds for exponential backoff.
            max_delay: Maximum delay in seconds between retries.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport, used to stub the API in tests.
        """
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client, creating it if necessary."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._default_headers(),
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    def _default_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "SiteBot/1.0",
        }

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _calculate_backoff(self, attempt: int) -> float:
        """Calculate backoff delay with full jitter.

        Args:
            attempt: The current retry attempt (0-indexed).

        Returns:
            Delay in seconds before the next retry.
        """
        exponential_delay = self.base_delay * (2 ** attempt)
        capped_delay = min(exponential_delay, self.max_delay)
        return random.uniform(0, capped_delay)

    def _parse_int_header(self, headers: httpx.Headers, name: str) -> Optional[int]:
        value = headers.get(name)
        if value is not None:
            try:
                return int(value)
            except ValueError:
                pass
        return None

    async def _handle_rate_limit(self, response: httpx.Response) -> None:
        """Raise RateLimitError describing when the limit resets.

        Raises:
            RateLimitError: Always.
        """
        reset_at = self._parse_int_header(response.headers, "x-ratelimit-reset")

        retry_after = None
        if reset_at is not None:
            retry_after = max(0, reset_at - int(time.time()))

        retry_after_header = self._parse_int_header(response.headers, "retry-after")
        if retry_after_header is not None:
            retry_after = retry_after_header

        logger.warning(
            "GitHub API rate limit exceeded",
            extra={
                "reset_at": reset_at,
                "retry_after": retry_after,
                "limit": self._parse_int_header(response.headers, "x-ratelimit-limit"),
            },
        )

        raise RateLimitError(
            message="GitHub API rate limit exceeded",
            status_code=response.status_code,
            reset_at=reset_at,
            retry_after=retry_after,
        )

    async def _request(
        self,
        method: str,
        path: str,
        json_data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """Make an HTTP request with retry logic.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE, PATCH).
            path: API path (e.g., /repos/owner/repo/issues).
            json_data: Optional JSON body for the request.
            params: Optional query string parameters.

        Returns:
            The HTTP response from GitHub.

        Raises:
            GitHubAPIError: If the request fails after all retries.
            RateLimitError: If rate limit is exceeded.
        """
        last_exception: Optional[Exception] = None

        for attempt in range(self.max_retries + 1):
            try:
                response = await self.client.request(
                    method=method,
                    url=path,
                    json=json_data,
                    params=params,
                )

                if response.status_code == 403:
                    remaining = self._parse_int_header(
                        response.headers,
                        "x-ratelimit-remaining",
                    )
                    if remaining == 0:
                        await self._handle_rate_limit(response)

                if response.status_code == 429:
                    await self._handle_rate_limit(response)

                if response.status_code in self.RETRYABLE_STATUS_CODES:
                    if attempt < self.max_retries:
                        delay = self._calculate_backoff(attempt)
                        logger.warning(
                            "Retryable error from GitHub API",
                            extra={
                                "status_code": response.status_code,
                                "attempt": attempt + 1,
                                "max_retries": self.max_retries,
                                "delay": delay,
                                "path": path,
                            },
                        )
                        await asyncio.sleep(delay)
                        continue

                if response.status_code >= 400:
                    error_body = response.text
                    logger.error(
                        "GitHub API error",
                        extra={
                            "status_code": response.status_code,
                            "path": path,
                            "method": method,
                            "response_body": error_body[:500],
                        },
                    )
                    raise GitHubAPIError(
                        message=f"GitHub API error: {response.status_code}",
                        status_code=response.status_code,
                        response_body=error_body,
                        request_url=str(response.url),
                    )

                return response

            except GitHubAPIError:
                raise
            except httpx.RequestError as e:
                last_exception = e
                if attempt < self.max_retries:
                    delay = self._calculate_backoff(attempt)
                    logger.warning(
                        "Request error, retrying",
                        extra={
                            "error": str(e),
                            "attempt": attempt + 1,
                            "max_retries": self.max_retries,
                            "delay": delay,
                            "path": path,
                        },
                    )
                    await asyncio.sleep(delay)
                    continue

        logger.error(
            "GitHub API request failed after all retries",
            extra={
                "path": path,
                "method": method,
                "max_retries": self.max_retries,
                "last_error": str(last_exception),
            },
        )
        raise GitHubAPIError(
            message=f"Request failed after {self.max_retries} retries: {last_exception}",
            request_url=f"{self.base_url}{path}",
        )

    def _unexpected_response(self, response: httpx.Response, error: Exception) -> GitHubAPIError:
        """Build the error for a successful response whose body cannot be read."""
        logger.error(
            "Unexpected response body from GitHub API",
            extra={
                "status_code": response.status_code,
                "url": str(response.url),
                "error": repr(error),
            },
        )
        return GitHubAPIError(
            message=f"Unexpected response from GitHub: {type(error).__name__}: {error}",
            status_code=response.status_code,
            response_body=response.text[:500],
            request_url=str(response.url),
        )

    # ------------------------------------------------------------------
    # Issues
    # ------------------------------------------------------------------

    async def create_issue(
        self,
        owner: str,
        repo: str,
        title: str,
        body: str,
        labels: Optional[List[str]] = None,
    ) -> IssueCreateResult:
        """Create an issue.

        Args:
            owner: Repository owner (user or organization).
            repo: Repository name.
            title: Issue title.
            body: Issue body in markdown format.
            labels: Optional label names to attach.

        Returns:
            IssueCreateResult with the issue number and URL.

        Raises:
            GitHubAPIError: If the request fails.
        """
        path = f"/repos/{owner}/{repo}/issues"
        payload: Dict[str, Any] = {"title": title, "body": body}
        if labels:
            payload["labels"] = labels

        logger.info(
            "Creating issue",
            extra={"owner": owner, "repo": repo, "title": title},
        )

        response = await self._request(method="POST", path=path, json_data=payload)
        try:
            result = IssueCreateResult.from_github_response(response.json())
        except (ValueError, KeyError, TypeError) as e:
            raise self._unexpected_response(response, e) from e

        logger.info(
            "Issue created successfully",
            extra={
                "owner": owner,
                "repo": repo,
                "issue_number": result.issue_number,
            },
        )
        return result

    async def create_comment(
        self,
        owner: str,
        repo: str,
        issue_number: int,
        body: str,
    ) -> Dict[str, Any]:
        """Create a comment on an issue or pull request.

        Returns:
            The created comment data from GitHub API.

        Raises:
            GitHubAPIError: If the request fails.
        """
        path = f"/repos/{owner}/{repo}/issues/{issue_number}/comments"

        logger.info(
            "Creating comment on issue",
            extra={
                "owner": owner,
                "repo": repo,
                "issue_number": issue_number,
                "body_length": len(body),
            },
        )

        response = await self._request(
            method="POST",
            path=path,
            json_data={"body": body},
        )
        try:
            return response.json()
        except ValueError as e:
            raise self._unexpected_response(response, e) from e

    # ------------------------------------------------------------------
    # Branches
    # ------------------------------------------------------------------

    async def get_branch_sha(self, owner: str, repo: str, branch: str) -> str:
        """Return the commit SHA at the head of a branch.

        Raises:
            GitHubAPIError: If the branch does not exist or the request fails.
        """
        path = f"/repos/{owner}/{repo}/git/ref/heads/{quote(branch, safe='/')}"
        response = await self._request(method="GET", path=path)
        try:
            return response.json()["object"]["sha"]
        except (ValueError, KeyError, TypeError) as e:
            raise self._unexpected_response(response, e) from e

    async def create_branch(
        self,
        owner: str,
        repo: str,
        branch: str,
        sha: str,
    ) -> bool:
        """Create a branch pointing at a commit.

        Args:
            owner: Repository owner.
            repo: Repository name.
            branch: Name of the new branch (without refs/heads/).
            sha: Commit SHA the branch should point at.

        Returns:
            True if the branch was created, False if it already existed.

        Raises:
            GitHubAPIError: If the request fails for any other reason.
        """
        path = f"/repos/{owner}/{repo}/git/refs"

        logger.info(
            "Creating branch",
            extra={"owner": owner, "repo": repo, "branch": branch, "sha": sha},
        )

        try:
            await self._request(
                method="POST",
                path=path,
                json_data={"ref": f"refs/heads/{branch}", "sha": sha},
            )
        except GitHubAPIError as e:
            # 422 "Reference already exists"
            if e.status_code == 422:
                logger.info(
                    "Branch already exists, reusing it",
                    extra={"owner": owner, "repo": repo, "branch": branch},
                )
                return False
            raise
        return True

    # ------------------------------------------------------------------
    # Contents
    # ------------------------------------------------------------------

    async def get_file(
        self,
        owner: str,
        repo: str,
        file_path: str,
        ref: Optional[str] = None,
    ) -> Optional[FileContent]:
        """Read a file through the contents API.

        Returns:
            FileContent, or None if the file does not exist.

        Raises:
            GitHubAPIError: If the request fails with anything but 404.
        """
        path = f"/repos/{owner}/{repo}/contents/{quote(file_path)}"
        params = {"ref": ref} if ref else None

        try:
            response = await self._request(method="GET", path=path, params=params)
        except GitHubAPIError as e:
            if e.status_code == 404:
                return None
            raise

        try:
            data = response.json()
            encoded = data.get("content") or ""
            # binascii.Error and UnicodeDecodeError are both ValueErrors
            content = base64.b64decode(encoded).decode("utf-8") if encoded else ""
            return FileContent(path=data.get("path", file_path), sha=data["sha"], content=content)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise self._unexpected_response(response, e) from e

    async def put_file(
        self,
        owner: str,
        repo: str,
        file_path: str,
        content: str,
        message: str,
        branch: Optional[str] = None,
        sha: Optional[str] = None,
    ) -> str:
        """Create or update a file through the contents API.

        Args:
            owner: Repository owner.
            repo: Repository name.
            file_path: Repository path of the file.
            content: UTF-8 text to store.
            message: Commit message.
            branch: Branch to commit to (default branch if omitted).
            sha: Blob SHA of the file being replaced; required for updates.

        Returns:
            The blob SHA of the written file.

        Raises:
            GitHubAPIError: If the request fails.
        """
        path = f"/repos/{owner}/{repo}/contents/{quote(file_path)}"
        payload: Dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
        }
        if branch:
            payload["branch"] = branch
        if sha:
            payload["sha"] = sha

        logger.info(
            "Writing file",
            extra={
                "owner": owner,
                "repo": repo,
                "file_path": file_path,
                "branch": branch,
                "update": sha is not None,
            },
        )

        response = await self._request(method="PUT", path=path, json_data=payload)
        try:
            return response.json()["content"]["sha"]
        except (ValueError, KeyError, TypeError) as e:
            raise self._unexpected_response(response, e) from e

    # ------------------------------------------------------------------
    # Pull requests
    # ------------------------------------------------------------------

    async def create_pr(
        self,
        owner: str,
        repo: str,
        request: PRCreateRequest,
    ) -> PRCreateResult:
        """Create a pull request.

        Args:
            owner: Repository owner (user or organization).
            repo: Repository name.
            request: Pull request creation request with title, body, branches.

        Returns:
            PRCreateResult with the created PR number and URL.

        Raises:
            GitHubAPIError: If the request fails.
        """
        path = f"/repos/{owner}/{repo}/pulls"

        logger.info(
            "Creating pull request",
            extra={
                "owner": owner,
                "repo": repo,
                "title": request.title,
                "head": request.head_branch,
                "base": request.base_branch,
            },
        )

        response = await self._request(
            method="POST",
            path=path,
            json_data={
                "title": request.title,
                "body": request.body,
                "head": request.head_branch,
                "base": request.base_branch,
            },
        )

        try:
            result = PRCreateResult.from_github_response(response.json())
        except (ValueError, KeyError, TypeError) as e:
            raise self._unexpected_response(response, e) from e

        logger.info(
            "Pull request created successfully",
            extra={
                "owner": owner,
                "repo": repo,
                "pr_number": result.pr_number,
                "pr_url": result.pr_url,
            },
        )
        return result

    async def find_open_pr(
        self,
        owner: str,
        repo: str,
        head_branch: str,
    ) -> Optional[PRCreateResult]:
        """Find the open pull request whose head is the given branch.

        Returns:
            PRCreateResult for the first match, or None if there is none.

        Raises:
            GitHubAPIError: If the request fails.
        """
        path = f"/repos/{owner}/{repo}/pulls"
        response = await self._request(
            method="GET",
            path=path,
            params={"head": f"{owner}:{head_branch}", "state": "open"},
        )
        try:
            pulls = response.json()
            if not pulls:
                return None
            return PRCreateResult.from_github_response(pulls[0])
        except (ValueError, KeyError, TypeError) as e:
            raise self._unexpected_response(response, e) from e

    async def merge_pr(
        self,
        owner: str,
        repo: str,
        pr_number: int,
        merge_method: str = "squash",
    ) -> MergeResult:
        """Merge a pull request.

        Raises:
            GitHubAPIError: If GitHub refuses the merge (405 not mergeable,
                409 head changed) or the request fails.
        """
        path = f"/repos/{owner}/{repo}/pulls/{pr_number}/merge"

        logger.info(
            "Merging pull request",
            extra={
                "owner": owner,
                "repo": repo,
                "pr_number": pr_number,
                "merge_method": merge_method,
            },
        )

        response = await self._request(
            method="PUT",
            path=path,
            json_data={"merge_method": merge_method},
        )
        try:
            data = response.json()
            return MergeResult(
                merged=bool(data.get("merged")),
                sha=data.get("sha"),
                message=data.get("message") or "",
            )
        except (ValueError, TypeError, AttributeError) as e:
            raise self._unexpected_response(response, e) from e
