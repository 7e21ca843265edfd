"""Session state persistence.

This module provides the StateRepository protocol and two implementations:
- InMemoryStateRepository: Keeps the state for the life of the process
- GitHubStateRepository: Serializes the state to a JSON file in the
  target repository through the GitHub contents API

The GitHub-backed store remembers the blob SHA of the file it last read or
wrote, because the contents API rejects updates that do not name it.
"""

import logging
from typing import Optional, Protocol, runtime_checkable

from pydantic import ValidationError

from src.sitebot.github.client import GitHubAPIError, GitHubClient
from src.sitebot.state.models import SessionState


logger = logging.getLogger(__name__)


class StateStoreError(Exception):
    """Raised when the session state cannot be loaded or saved.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        original_error: Optional[Exception] = None,
    ):
        self.message = message
        self.original_error = original_error
        super().__init__(message)


@runtime_checkable
class StateRepository(Protocol):
    """Protocol for session state persistence."""

    async def load(self) -> SessionState:
        """Return the stored state, or a fresh one if nothing is stored."""
        ...

    async def save(self, state: SessionState) -> None:
        """Store the state, replacing whatever was stored before."""
        ...


class InMemoryStateRepository:
    """State repository that lives only as long as the process."""

    def __init__(self) -> None:
        self._state: Optional[SessionState] = None

    async def load(self) -> SessionState:
        if self._state is None:
            return SessionState()
        return self._state.model_copy(deep=True)

    async def save(self, state: SessionState) -> None:
        self._state = state.model_copy(deep=True)


class GitHubStateRepository:
    """State repository backed by a JSON file in a GitHub repository.

    Attributes:
        github_client: Client used for the contents API.
        owner: Repository owner.
        repo: Repository name.
        path: Repository path of the state file.
        branch: Branch the state file lives on.

    Example:
        >>> repo = GitHubStateRepository(client, "acme", "site", ".site-bot/state.json")
        >>> state = await repo.load()
        >>> state.pending_question = 2
        >>> await repo.save(state)
    """

    COMMIT_MESSAGE = "Update site bot state"

    def __init__(
        self,
        github_client: GitHubClient,
        owner: str,
        repo: str,
        path: str,
        branch: str = "main",
    ):
        self.github_client = github_client
        self.owner = owner
        self.repo = repo
        self.path = path
        self.branch = branch
        self._sha: Optional[str] = None

    async def load(self) -> SessionState:
        """Read the state file.

        A missing file yields a fresh state. A file that is not valid state
        JSON is logged and replaced by a fresh state on the next save.

        Raises:
            StateStoreError: If the GitHub request fails.
        """
        try:
            file = await self.github_client.get_file(
                self.owner, self.repo, self.path, ref=self.branch
            )
        except GitHubAPIError as e:
            raise StateStoreError(f"Failed to read state file: {e}", original_error=e) from e

        if file is None:
            logger.info("No state file found, starting fresh", extra={"state_path": self.path})
            self._sha = None
            return SessionState()

        self._sha = file.sha
        try:
            return SessionState.model_validate_json(file.content)
        except ValidationError:
            logger.warning(
                "State file is not valid, starting fresh",
                extra={"state_path": self.path, "sha": file.sha},
            )
            return SessionState()

    async def save(self, state: SessionState) -> None:
        """Write the state file, creating it if needed.

        Raises:
            StateStoreError: If the GitHub request fails.
        """
        content = state.model_dump_json(indent=2) + "\n"
        try:
            self._sha = await self._put(content)
        except GitHubAPIError as e:
            # 409/422: the file changed under us (or appeared); refresh the SHA once.
            if e.status_code not in (409, 422):
                raise StateStoreError(f"Failed to write state file: {e}", original_error=e) from e
            try:
                current = await self.github_client.get_file(
                    self.owner, self.repo, self.path, ref=self.branch
                )
                self._sha = current.sha if current else None
                self._sha = await self._put(content)
            except GitHubAPIError as retry_error:
                raise StateStoreError(
                    f"Failed to write state file: {retry_error}",
                    original_error=retry_error,
                ) from retry_error

        logger.info("State saved", extra={"state_path": self.path, "sha": self._sha})

    async def _put(self, content: str) -> str:
        return await self.github_client.put_file(
            self.owner,
            self.repo,
            self.path,
            content,
            message=self.COMMIT_MESSAGE,
            branch=self.branch,
            sha=self._sha,
        )
