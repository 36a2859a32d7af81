"""Prompt shaping for JSON-only plan generation."""

from __future__ import annotations

from typing import Iterable

from modflow.datatypes.plan_datatypes import GenerationRequest

CAPABILITIES_PLACEHOLDER = "<|CAPABILITIES_INJECT|>"

JSON_USER_PREFIX = "[RESPOND ONLY WITH VALID JSON] "
JSON_USER_SUFFIX = "\n\nRemember to ONLY respond with VALID JSON."

JSON_INSTRUCTIONS = """IMPORTANT: Your response MUST be valid JSON. Follow these strict rules:
1. Use double quotes for all strings and property names
2. Include commas between all array elements and object properties
3. Properly close all brackets and braces
4. Ensure all property keys are quoted
5. DO NOT include any text outside the JSON structure
6. DO NOT use markdown code blocks or annotations

Example of VALID JSON structure:
{
  "steps": [
    {
      "id": "s1",
      "tool": "discord.request",
      "params": {
        "action": "message.create",
        "content": "Hello world"
      }
    }
  ],
  "meta": {"strategy": "sequential"}
}"""

DEFAULT_SYSTEM_PROMPT = """You turn Discord moderation requests into an execution plan.
Each step calls exactly one action from this list:
<|CAPABILITIES_INJECT|>

Set "meta.strategy" to "parallel" only when the steps are independent of each other.
Mark a step "critical": true when the remaining steps make no sense if it fails.
Set "requiresApproval": true for plans that ban, kick or delete channels."""


def build_system_prompt(template: str, capabilities: Iterable[str]) -> str:
    """Inject the capability list into ``template``.

    An empty template falls back to :data:`DEFAULT_SYSTEM_PROMPT`.
    """
    listing = "\n".join(f"- {name}" for name in capabilities)
    return (template or DEFAULT_SYSTEM_PROMPT).replace(CAPABILITIES_PLACEHOLDER, listing)


def wrap_system_prompt(system_prompt: str) -> str:
    return f"{JSON_INSTRUCTIONS}\n\n{system_prompt}"


def wrap_user_prompt(user_prompt: str) -> str:
    return f"{JSON_USER_PREFIX}{user_prompt}{JSON_USER_SUFFIX}"


def shape_request(system_prompt: str, user_prompt: str) -> GenerationRequest:
    """Return the JSON-only versions of both prompts as one request."""
    return GenerationRequest(
        system_prompt=wrap_system_prompt(system_prompt),
        user_prompt=wrap_user_prompt(user_prompt),
    )
