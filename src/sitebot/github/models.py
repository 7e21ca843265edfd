"""Request and result models for the GitHub client.

These models translate between the bot's records and the subset of the
GitHub REST payloads the bot reads back.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class IssueCreateResult(BaseModel):
    """An issue created through the GitHub API."""

    issue_number: int = Field(..., gt=0)
    issue_url: str = Field(..., min_length=1)

    @classmethod
    def from_github_response(cls, data: Dict[str, Any]) -> "IssueCreateResult":
        return cls(issue_number=data["number"], issue_url=data["html_url"])


class PRCreateRequest(BaseModel):
    """Pull request creation request.

    Attributes:
        title: Pull request title.
        body: Pull request description in markdown.
        head_branch: Branch containing the changes.
        base_branch: Branch the changes should be merged into.
    """

    title: str = Field(..., min_length=1)
    body: str = ""
    head_branch: str = Field(..., min_length=1)
    base_branch: str = Field(default="main", min_length=1)


class PRCreateResult(BaseModel):
    """A pull request created through the GitHub API."""

    pr_number: int = Field(..., gt=0)
    pr_url: str = Field(..., min_length=1)

    @classmethod
    def from_github_response(cls, data: Dict[str, Any]) -> "PRCreateResult":
        return cls(pr_number=data["number"], pr_url=data["html_url"])


class FileContent(BaseModel):
    """A file read through the contents API.

    Attributes:
        path: Repository path of the file.
        sha: Blob SHA, required by the API to update the file.
        content: Decoded UTF-8 text of the file.
    """

    path: str
    sha: str
    content: str = ""


class MergeResult(BaseModel):
    merged: bool
    sha: Optional[str] = None
    message: str = ""
