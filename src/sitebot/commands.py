"""Chat command parsing.

Messages are tested against an ordered list of patterns; the first match
wins. Text that matches no command is an answer candidate, which the
controller only acts on while a question is pending.
"""

import re
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel


class CommandKind(str, Enum):
    """Kinds of chat input the bot distinguishes.

    Attributes:
        PING: Liveness check, answered with "pong".
        HELP: Show the command list.
        STATUS: Show the session state.
        APPROVE: Approve a site option ("approve N").
        BUILD: Build the scaffold pull request ("build now").
        MERGE: Merge the last pull request.
        UNKNOWN: Looked like a command but was malformed ("approve x").
        ANSWER: Free text; an answer if a question is pending.
        IGNORED: Empty input.
    """

    PING = "ping"
    HELP = "help"
    STATUS = "status"
    APPROVE = "approve"
    BUILD = "build"
    MERGE = "merge"
    UNKNOWN = "unknown"
    ANSWER = "answer"
    IGNORED = "ignored"


class ParsedCommand(BaseModel):
    """A chat message mapped onto the command vocabulary.

    Attributes:
        kind: Which command the message is.
        option: Option number for APPROVE.
        text: The stripped original text (kept for ANSWER and UNKNOWN).
    """

    kind: CommandKind
    option: Optional[int] = None
    text: str = ""


# Order matters: the first matching pattern decides the command.
COMMAND_PATTERNS: List[Tuple[CommandKind, re.Pattern]] = [
    (CommandKind.PING, re.compile(r"^ping$", re.IGNORECASE)),
    (CommandKind.HELP, re.compile(r"^help$", re.IGNORECASE)),
    (CommandKind.STATUS, re.compile(r"^status$", re.IGNORECASE)),
    (CommandKind.APPROVE, re.compile(r"^approve\s+(?P<option>\d+)$", re.IGNORECASE)),
    (CommandKind.UNKNOWN, re.compile(r"^approve\b", re.IGNORECASE)),
    (CommandKind.BUILD, re.compile(r"^build\s+now$", re.IGNORECASE)),
    (CommandKind.MERGE, re.compile(r"^merge$", re.IGNORECASE)),
]


def parse_command(text: Optional[str]) -> ParsedCommand:
    """Map a chat message onto a command.

    Args:
        text: Raw message content.

    Returns:
        ParsedCommand describing the message. Never None.

    Example:
        >>> parse_command("  Approve 2 ").option
        2
        >>> parse_command("A bold headline").kind
        <CommandKind.ANSWER: 'answer'>
    """
    stripped = (text or "").strip()
    if not stripped:
        return ParsedCommand(kind=CommandKind.IGNORED)

    for kind, pattern in COMMAND_PATTERNS:
        match = pattern.match(stripped)
        if match is None:
            continue
        if kind is CommandKind.APPROVE:
            return ParsedCommand(
                kind=kind,
                option=int(match.group("option")),
                text=stripped,
            )
        return ParsedCommand(kind=kind, text=stripped)

    return ParsedCommand(kind=CommandKind.ANSWER, text=stripped)
