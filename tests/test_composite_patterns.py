"""Tests for composite request patterns."""

from modflow.datatypes.action_datatypes import CompositeIntent
from modflow.resolution.composite_patterns import (
    CompositePattern,
    expand_name_length_timeout,
    expand_repeat_message,
    match_composite,
)
from modflow.workflow.executor import ExecutionContext, MentionedMember


def test_no_text_matches_nothing():
    assert match_composite(None) is None
    assert match_composite("") is None
    assert match_composite("ban everyone") is None


def test_name_length_options():
    intent = match_composite("timeout <@5> for as many hours as their nickname has how many letters without spaces")

    assert intent.pattern == CompositePattern.NAME_LENGTH_TIMEOUT.value
    assert intent.parameters == {"name_source": "nickname", "strip_spaces": True, "unit": "hours"}


def test_repeat_strips_leading_address():
    intent = match_composite("modflow good morning say 2 numbered", repeat_limit=10)

    assert intent.pattern == CompositePattern.REPEAT_MESSAGE.value
    assert intent.parameters["content"] == "good morning"
    assert intent.parameters["count"] == 2
    assert intent.parameters["numbered"] is True


def test_expand_name_length_with_nickname_and_spaces():
    intent = CompositeIntent(
        pattern="name_length_timeout",
        parameters={"name_source": "nickname", "strip_spaces": True, "unit": "minutes"},
    )
    context = ExecutionContext(
        requester_id="1",
        mentioned_members=[MentionedMember(user_id="5", username="bob", nickname="Big Bob")],
    )

    expansion = expand_name_length_timeout(intent, context)

    action, params = expansion.actions[0]
    assert action == "member.timeout"
    assert params["duration"] == 6 * 60
    assert expansion.details["letterCount"] == 6
    assert expansion.actions[1][0] == "message.create"


def test_expand_repeat_numbered_and_capped():
    intent = CompositeIntent(
        pattern="repeat_message",
        parameters={"content": "hi", "requested": 4, "count": 2, "limit": 2, "numbered": True},
    )

    expansion = expand_repeat_message(intent, ExecutionContext(requester_id="1"))

    assert [params["content"] for _, params in expansion.actions] == ["1. hi", "2. hi"]
    assert expansion.notices == ["⚠️ I can only repeat up to 2 times. Will repeat 2 times."]
