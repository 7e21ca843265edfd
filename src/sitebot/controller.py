"""Bot controller connecting chat commands to GitHub work.

Receives one chat message at a time, parses it into a command, and drives
the matching flow: approve → (answer) → build → merge. Each flow is a
separate method that loads the session state, calls GitHub, saves the
state and returns the reply text.

Every load-change-save runs under one lock. A build holds it only when it
records the new pull request, so approve and answer still go through
while the scaffold is being committed.

Failures from GitHub or the state store are logged and turned into a chat
reply; they never propagate to the gateway.
"""

import asyncio
import json
import logging
import time
from typing import Dict, Optional

from src.sitebot.commands import CommandKind, ParsedCommand, parse_command
from src.sitebot.formatting import (
    ISSUE_LABEL,
    PONG_REPLY,
    format_answer_comment,
    format_approve_usage,
    format_help,
    format_issue_body,
    format_issue_title,
    format_pr_body,
    format_pr_comment,
    format_pr_title,
    format_status,
    format_unknown_option,
)
from src.sitebot.github.client import GitHubAPIError, GitHubClient
from src.sitebot.github.models import PRCreateRequest
from src.sitebot.metrics import BotMetrics, get_metrics
from src.sitebot.options import SiteOption, get_option
from src.sitebot.scaffold import build_scaffold_files
from src.sitebot.state.models import IssueRecord, PullRequestRecord, SessionState
from src.sitebot.state.repository import StateRepository, StateStoreError

logger = logging.getLogger(__name__)


BRANCH_PREFIX = "site-bot"


def branch_name(issue_number: int) -> str:
    """Head branch used for the scaffold of an issue."""
    return f"{BRANCH_PREFIX}/issue-{issue_number}"


class BotController:
    """Executes chat commands against GitHub and the session state.

    Attributes:
        github_client: GitHub API client.
        state_repository: Where the session state is loaded from and saved to.
        owner: Target repository owner.
        repo: Target repository name.
        base_branch: Branch scaffolds fork from and pull requests target.
        metrics: Prometheus metrics updated per command.
    """

    def __init__(
        self,
        github_client: GitHubClient,
        state_repository: StateRepository,
        owner: str,
        repo: str,
        base_branch: str = "main",
        metrics: Optional[BotMetrics] = None,
    ):
        self.github_client = github_client
        self.state_repository = state_repository
        self.owner = owner
        self.repo = repo
        self.base_branch = base_branch
        self.metrics = metrics or get_metrics()
        self._build_in_progress = False
        self._state_lock = asyncio.Lock()

    @property
    def build_in_progress(self) -> bool:
        return self._build_in_progress

    async def handle_message(self, text: Optional[str]) -> Optional[str]:
        """Handle one chat message.

        Args:
            text: Raw message content.

        Returns:
            Reply text, or None if the message needs no reply.
        """
        command = parse_command(text)
        if command.kind is CommandKind.IGNORED:
            return None

        logger.info(
            "Handling chat command",
            extra={"command": command.kind.value, "option": command.option},
        )
        self.metrics.record_command(command.kind.value)

        try:
            return await self._dispatch(command)
        except (GitHubAPIError, StateStoreError) as exc:
            logger.exception(
                "Command failed",
                extra={"command": command.kind.value},
            )
            self.metrics.record_failure(command.kind.value)
            return f"⚠️ `{command.kind.value}` failed: {exc}"

    async def _dispatch(self, command: ParsedCommand) -> Optional[str]:
        kind = command.kind
        if kind is CommandKind.PING:
            return PONG_REPLY
        if kind is CommandKind.HELP:
            return format_help()
        if kind is CommandKind.STATUS:
            return await self.status()
        if kind is CommandKind.APPROVE:
            return await self.approve(command.option)
        if kind is CommandKind.UNKNOWN:
            return format_approve_usage()
        if kind is CommandKind.BUILD:
            return await self.build()
        if kind is CommandKind.MERGE:
            return await self.merge()
        return await self.answer(command.text)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def status(self) -> str:
        state = await self.state_repository.load()
        return format_status(state, self._build_in_progress)

    async def approve(self, number: Optional[int]) -> str:
        """Open an issue for an option and make its question pending.

        Approving replaces any question that was still pending.
        """
        option = get_option(number) if number is not None else None
        if option is None:
            return format_unknown_option(number if number is not None else 0)

        async with self._state_lock:
            return await self._approve(option)

    async def _approve(self, option: SiteOption) -> str:
        state = await self.state_repository.load()

        issue = await self.github_client.create_issue(
            self.owner,
            self.repo,
            title=format_issue_title(option),
            body=format_issue_body(option),
            labels=[ISSUE_LABEL],
        )

        if state.pending_question is not None:
            logger.info(
                "Replacing pending question",
                extra={"previous": state.pending_question, "option": option.number},
            )

        state.last_issue = IssueRecord(
            number=issue.issue_number,
            url=issue.issue_url,
            option=option.number,
        )
        state.pending_question = option.number
        await self._save(state)

        logger.info(
            "Option approved",
            extra={"option": option.number, "issue_number": issue.issue_number},
        )

        return (
            f"Approved **{option.title}**. Opened issue #{issue.issue_number}: "
            f"{issue.issue_url}\n"
            f"{option.question}"
        )

    async def answer(self, text: str) -> Optional[str]:
        """Record free text as the answer to the pending question.

        Returns None when no question is pending, so ordinary chatter in
        the channel gets no reply.
        """
        async with self._state_lock:
            return await self._answer(text)

    async def _answer(self, text: str) -> Optional[str]:
        state = await self.state_repository.load()
        if state.pending_question is None or state.last_issue is None:
            return None

        option = get_option(state.last_issue.option)
        if option is None:
            logger.warning(
                "Pending question refers to an unknown option",
                extra={"option": state.last_issue.option},
            )
            state.pending_question = None
            await self._save(state)
            return None

        issue_number = state.last_issue.number
        await self.github_client.create_comment(
            self.owner,
            self.repo,
            issue_number,
            format_answer_comment(option, text),
        )

        state.last_issue.answer = text
        state.pending_question = None
        await self._save(state)

        logger.info("Answer recorded", extra={"issue_number": issue_number})

        return (
            f"Got it, recorded on issue #{issue_number}. "
            "Say `build now` when you're ready."
        )

    async def build(self) -> str:
        """Commit the scaffold on a branch and open a pull request.

        Only one build runs at a time. The flag is checked and set before
        the first await, which makes the check atomic on the event loop.
        """
        if self._build_in_progress:
            return "A build is already running. I'll post the pull request when it's done."

        self._build_in_progress = True
        self.metrics.set_build_in_progress(True)
        started = time.monotonic()
        try:
            return await self._run_build()
        finally:
            self._build_in_progress = False
            self.metrics.set_build_in_progress(False)
            self.metrics.record_build_duration(time.monotonic() - started)

    async def _run_build(self) -> str:
        state = await self.state_repository.load()

        issue = state.last_issue
        if issue is None:
            return "Nothing to build yet. Start with `approve N`."
        if state.pending_question is not None:
            option = get_option(state.pending_question)
            question = option.question if option else "the pending question"
            return f"Answer this first: {question}"

        option = get_option(issue.option)
        if option is None:
            return f"Issue #{issue.number} refers to unknown option {issue.option}."

        answer = issue.answer or ""
        head = branch_name(issue.number)

        logger.info(
            "Starting build",
            extra={"issue_number": issue.number, "branch": head},
        )

        base_sha = await self.github_client.get_branch_sha(
            self.owner, self.repo, self.base_branch
        )
        await self.github_client.create_branch(self.owner, self.repo, head, base_sha)

        files = build_scaffold_files(option, issue.number, answer)
        await self._commit_files(files, head, issue.number)

        reused = False
        try:
            pr = await self.github_client.create_pr(
                self.owner,
                self.repo,
                PRCreateRequest(
                    title=format_pr_title(option, issue.number),
                    body=format_pr_body(option, issue.number, answer, files),
                    head_branch=head,
                    base_branch=self.base_branch,
                ),
            )
        except GitHubAPIError as exc:
            # 422 when an open pull request already exists for the branch
            if exc.status_code != 422:
                raise
            existing = await self.github_client.find_open_pr(self.owner, self.repo, head)
            if existing is None:
                raise
            logger.info(
                "Reusing open pull request",
                extra={"branch": head, "pr_number": existing.pr_number},
            )
            pr = existing
            reused = True

        # Other commands may have saved while the build ran; only last_pr
        # belongs to the build.
        async with self._state_lock:
            state = await self.state_repository.load()
            state.last_pr = PullRequestRecord(
                number=pr.pr_number,
                url=pr.pr_url,
                branch=head,
            )
            await self._save(state)

        await self.github_client.create_comment(
            self.owner,
            self.repo,
            issue.number,
            format_pr_comment(pr.pr_number, pr.pr_url),
        )

        logger.info(
            "Build completed",
            extra={"issue_number": issue.number, "pr_number": pr.pr_number, "reused": reused},
        )

        verb = "Updated" if reused else "Opened"
        return f"{verb} pull request #{pr.pr_number}: {pr.pr_url}\nSay `merge` to merge it."

    async def merge(self) -> str:
        """Merge the last pull request."""
        async with self._state_lock:
            return await self._merge()

    async def _merge(self) -> str:
        state = await self.state_repository.load()

        pr = state.last_pr
        if pr is None:
            return "There is no pull request to merge. Say `build now` first."
        if pr.merged:
            return f"Pull request #{pr.number} is already merged."

        try:
            result = await self.github_client.merge_pr(self.owner, self.repo, pr.number)
        except GitHubAPIError as exc:
            if exc.status_code in (405, 409):
                logger.warning(
                    "Pull request not mergeable",
                    extra={"pr_number": pr.number, "status_code": exc.status_code},
                )
                return f"GitHub refused to merge #{pr.number}: {_api_message(exc)}"
            raise

        if not result.merged:
            return f"GitHub did not merge #{pr.number}: {result.message}"

        pr.merged = True
        await self._save(state)

        logger.info("Pull request merged", extra={"pr_number": pr.number, "sha": result.sha})

        return f"Merged pull request #{pr.number} 🎉"

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _commit_files(self, files: Dict[str, str], branch: str, issue_number: int) -> None:
        """Write each file on the branch, updating files that already exist."""
        for file_path, content in files.items():
            existing = await self.github_client.get_file(
                self.owner, self.repo, file_path, ref=branch
            )
            await self.github_client.put_file(
                self.owner,
                self.repo,
                file_path,
                content,
                message=f"Add {file_path} for #{issue_number}",
                branch=branch,
                sha=existing.sha if existing else None,
            )

    async def _save(self, state: SessionState) -> None:
        state.touch()
        await self.state_repository.save(state)


def _api_message(exc: GitHubAPIError) -> str:
    """Pull the "message" field out of a GitHub error body when there is one."""
    try:
        body = json.loads(exc.response_body or "")
    except ValueError:
        return exc.message
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return exc.message
