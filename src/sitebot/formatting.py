"""Chat replies and GitHub text for the site bot.

Chat replies are plain Discord markdown; issue, comment and pull request
bodies are GitHub-flavored markdown.
"""

from typing import Iterable

from src.sitebot.options import SITE_OPTIONS, SiteOption
from src.sitebot.state.models import SessionState


ISSUE_LABEL = "site-bot"

PONG_REPLY = "pong ✅"


def format_options(options: Iterable[SiteOption]) -> str:
    """List options as "N. Title" lines."""
    return "\n".join(f"{option.number}. {option.title}" for option in options)


def format_help() -> str:
    """Format the command list shown by "help"."""
    return (
        "**Commands**\n"
        "- `approve N`: approve option N, open an issue and ask one question\n"
        "- *any text*: answers the pending question\n"
        "- `build now`: commit the scaffold on a branch and open a pull request\n"
        "- `merge`: merge the last pull request\n"
        "- `status`: show what I'm tracking\n"
        "- `help`: show this message\n"
        "\n"
        "**Options**\n"
        f"{format_options(SITE_OPTIONS.values())}"
    )


def format_unknown_option(number: int) -> str:
    valid = ", ".join(str(n) for n in SITE_OPTIONS)
    return (
        f"There is no option {number}. Choose one of {valid}:\n"
        f"{format_options(SITE_OPTIONS.values())}"
    )


def format_approve_usage() -> str:
    return "Usage: `approve N`, where N is an option number. Say `help` to list them."


def format_status(state: SessionState, build_in_progress: bool) -> str:
    """Summarize the session state for "status".

    Args:
        state: Current session state.
        build_in_progress: Whether a build is currently running.

    Returns:
        Multi-line status reply.
    """
    lines = ["**Status**"]

    if state.pending_question is not None:
        option = SITE_OPTIONS.get(state.pending_question)
        question = option.question if option else "unknown question"
        lines.append(f"- Waiting for an answer to option {state.pending_question}: {question}")
    else:
        lines.append("- No pending question")

    issue = state.last_issue
    if issue is not None:
        option = SITE_OPTIONS.get(issue.option)
        title = option.title if option else f"option {issue.option}"
        lines.append(f"- Last issue: #{issue.number} ({title}) {issue.url}")
        if issue.answer:
            lines.append(f"- Answer: {issue.answer}")
    else:
        lines.append("- No issue yet")

    pr = state.last_pr
    if pr is not None:
        merged = "merged" if pr.merged else "open"
        lines.append(f"- Last pull request: #{pr.number} ({merged}) {pr.url}")
    else:
        lines.append("- No pull request yet")

    lines.append(f"- Build running: {'yes' if build_in_progress else 'no'}")
    return "\n".join(lines)


def format_issue_title(option: SiteOption) -> str:
    return f"[{ISSUE_LABEL}] {option.title}"


def format_issue_body(option: SiteOption) -> str:
    """Format the body of the issue opened on approval."""
    return (
        f"## {option.title}\n"
        "\n"
        f"{option.description}\n"
        "\n"
        "### Open question\n"
        "\n"
        f"- [ ] {option.question}\n"
        "\n"
        "---\n"
        "\n"
        "*Opened from chat. The answer will be posted here as a comment.*\n"
    )


def format_answer_comment(option: SiteOption, answer: str) -> str:
    return f"**{option.question}**\n\n{_quote(answer)}\n"


def format_pr_title(option: SiteOption, issue_number: int) -> str:
    return f"Scaffold {option.title} (#{issue_number})"


def format_pr_body(option: SiteOption, issue_number: int, answer: str, files: Iterable[str]) -> str:
    """Format the body of the scaffold pull request."""
    files_list = "\n".join(f"- `{path}`" for path in files)
    return (
        f"Closes #{issue_number}\n"
        "\n"
        "## Summary\n"
        "\n"
        f"Static scaffold for the **{option.title}** option.\n"
        "\n"
        f"{option.question}\n"
        f"{_quote(answer)}\n"
        "\n"
        "## Files\n"
        "\n"
        f"{files_list}\n"
    )


def format_pr_comment(pr_number: int, pr_url: str) -> str:
    return f"Scaffold pull request opened: #{pr_number} {pr_url}"


def _quote(text: str) -> str:
    return "\n".join(f"> {line}" for line in text.splitlines() or [""])
