"""Session state and its persistence.

State is a handful of flat records kept in memory or serialized to a JSON
file in the target repository.
"""

from src.sitebot.state.models import (
    IssueRecord,
    PullRequestRecord,
    SessionState,
)
from src.sitebot.state.repository import (
    GitHubStateRepository,
    InMemoryStateRepository,
    StateRepository,
    StateStoreError,
)

__all__ = [
    # Models
    "IssueRecord",
    "PullRequestRecord",
    "SessionState",
    # Repository
    "GitHubStateRepository",
    "InMemoryStateRepository",
    "StateRepository",
    "StateStoreError",
]
