"""GitHub API client for issue, branch, file and pull request operations.

Includes rate limiting and retry logic for API resilience.
"""

from src.sitebot.github.client import (
    GitHubAPIError,
    GitHubClient,
    RateLimitError,
)
from src.sitebot.github.models import (
    FileContent,
    IssueCreateResult,
    MergeResult,
    PRCreateRequest,
    PRCreateResult,
)

__all__ = [
    "FileContent",
    "GitHubAPIError",
    "GitHubClient",
    "IssueCreateResult",
    "MergeResult",
    "PRCreateRequest",
    "PRCreateResult",
    "RateLimitError",
]
