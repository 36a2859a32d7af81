import re
from typing import Optional

USER_MENTION_RE = re.compile(r"<@!?(\d+)>")
ROLE_MENTION_RE = re.compile(r"<@&(\d+)>")
CHANNEL_MENTION_RE = re.compile(r"<#(\d+)>")


def format_duration(seconds: int) -> str:
    """
    Convert a duration in seconds to a human-readable string.

    Args:
        seconds (int): Duration in seconds.

    Returns:
        str: Human-readable duration string.
    """
    if seconds < 60:
        return f"{seconds} second{'s' if seconds != 1 else ''}"
    elif seconds < 3600:
        mins = seconds // 60
        return f"{mins} minute{'s' if mins != 1 else ''}"
    elif seconds < 86400:
        hours = seconds // 3600
        return f"{hours} hour{'s' if hours != 1 else ''}"
    else:
        days = seconds // 86400
        return f"{days} day{'s' if days != 1 else ''}"


def first_user_mention(text: str) -> Optional[str]:
    """Return the id of the first ``<@id>`` / ``<@!id>`` mention in ``text``."""
    match = USER_MENTION_RE.search(text)
    return match.group(1) if match else None


def strip_mentions(text: str) -> str:
    """Remove user, role and channel mention tokens and collapse whitespace."""
    for pattern in (USER_MENTION_RE, ROLE_MENTION_RE, CHANNEL_MENTION_RE):
        text = pattern.sub("", text)
    return " ".join(text.split())
