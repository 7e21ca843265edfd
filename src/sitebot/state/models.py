"""Session state models.

This module defines the flat records the bot holds between messages:
- IssueRecord: The last issue created by an approval
- PullRequestRecord: The last pull request opened by a build
- SessionState: The pending question plus the two records above

The state is serialized verbatim as JSON when persisted, so every field
here is part of the stored file format.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


class IssueRecord(BaseModel):
    """Reference to the last issue created by an approval.

    Attributes:
        number: Issue number within the repository.
        url: Browser URL of the issue.
        option: Number of the site option that was approved.
        answer: Free-text answer to the option's question, once given.
    """

    number: int = Field(..., gt=0)
    url: str = Field(..., min_length=1)
    option: int = Field(..., ge=1)
    answer: Optional[str] = None


class PullRequestRecord(BaseModel):
    """Reference to the last pull request opened by a build.

    Attributes:
        number: Pull request number within the repository.
        url: Browser URL of the pull request.
        branch: Head branch of the pull request.
        merged: Whether the bot has merged the pull request.
    """

    number: int = Field(..., gt=0)
    url: str = Field(..., min_length=1)
    branch: str = ""
    merged: bool = False


class SessionState(BaseModel):
    """Everything the bot remembers between messages.

    At most one question is pending at a time: approving an option
    replaces any question that was still open.

    Attributes:
        pending_question: Option number whose question awaits an answer.
        last_issue: Last issue created by an approval.
        last_pr: Last pull request opened by a build.
        updated_at: When the state was last changed (UTC).
    """

    pending_question: Optional[int] = Field(default=None, ge=1)
    last_issue: Optional[IssueRecord] = None
    last_pr: Optional[PullRequestRecord] = None
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    def touch(self) -> None:
        self.updated_at = datetime.now(timezone.utc)
