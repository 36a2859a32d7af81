"""Canonical action catalog and the alias table used to correct generated ids."""

from __future__ import annotations

import re
from typing import Dict, Tuple

ACTION_SHAPE = re.compile(r"^[a-z]+\.[a-z]+$")
"""Shape of a well-formed identifier: lowercase category and verb joined by a dot."""

CANONICAL_ACTIONS: Tuple[str, ...] = (
    # Message operations
    "message.create",
    "message.edit",
    "message.delete",
    "message.react",
    "message.pin",
    "message.unpin",
    # Channel operations
    "channel.create",
    "channel.delete",
    "channel.purge",
    "channel.lock",
    "channel.unlock",
    # Member operations
    "member.timeout",
    "member.kick",
    "member.ban",
    "member.unban",
    "member.nickname",
    # Role operations
    "role.add",
    "role.remove",
)

ACTION_ALIASES: Dict[str, str] = {
    # Message
    "message.send": "message.create",
    "message.write": "message.create",
    "message.post": "message.create",
    "message.say": "message.create",
    "messages.create": "message.create",
    "messages.send": "message.create",
    "send.message": "message.create",
    "write.message": "message.create",
    "channel.send": "message.create",
    "message.update": "message.edit",
    "edit.message": "message.edit",
    "message.remove": "message.delete",
    "delete.message": "message.delete",
    "message.reaction": "message.react",
    "message.addreaction": "message.react",
    "react.message": "message.react",
    "pin.message": "message.pin",
    "unpin.message": "message.unpin",
    # Channel
    "channel.clean": "channel.purge",
    "channel.clear": "channel.purge",
    "channel.messages.purge": "channel.purge",
    "channel.bulkdelete": "channel.purge",
    "message.purge": "channel.purge",
    "message.clear": "channel.purge",
    "messages.purge": "channel.purge",
    "messages.clear": "channel.purge",
    "messages.delete": "channel.purge",
    "purge.messages": "channel.purge",
    "channels.create": "channel.create",
    "channel.add": "channel.create",
    "create.channel": "channel.create",
    "channels.delete": "channel.delete",
    "channel.remove": "channel.delete",
    "delete.channel": "channel.delete",
    "lock.channel": "channel.lock",
    "unlock.channel": "channel.unlock",
    # Member
    "member.mute": "member.timeout",
    "member.silence": "member.timeout",
    "members.timeout": "member.timeout",
    "user.timeout": "member.timeout",
    "timeout.member": "member.timeout",
    "mute.member": "member.timeout",
    "members.kick": "member.kick",
    "user.kick": "member.kick",
    "kick.member": "member.kick",
    "members.ban": "member.ban",
    "user.ban": "member.ban",
    "ban.member": "member.ban",
    "members.unban": "member.unban",
    "user.unban": "member.unban",
    "unban.member": "member.unban",
    "member.setnickname": "member.nickname",
    "member.edit": "member.nickname",
    "member.update": "member.nickname",
    "member.nick": "member.nickname",
    "member.rename": "member.nickname",
    "member.changenick": "member.nickname",
    "member.modifynickname": "member.nickname",
    "user.nickname": "member.nickname",
    # Role
    "role.give": "role.add",
    "role.assign": "role.add",
    "role.grant": "role.add",
    "roles.add": "role.add",
    "member.roles.add": "role.add",
    "member.role.add": "role.add",
    "member.addrole": "role.add",
    "add.role": "role.add",
    "role.revoke": "role.remove",
    "role.take": "role.remove",
    "roles.remove": "role.remove",
    "member.roles.remove": "role.remove",
    "member.role.remove": "role.remove",
    "member.removerole": "role.remove",
    "remove.role": "role.remove",
}


def category_of(action: str) -> str:
    """Return the part before the first dot (empty for dotless ids)."""
    head, sep, _ = action.partition(".")
    return head if sep else ""


def actions_in_category(category: str) -> Tuple[str, ...]:
    """Canonical actions of ``category`` in catalog order."""
    prefix = f"{category}."
    return tuple(action for action in CANONICAL_ACTIONS if action.startswith(prefix))
