"""Resilient plan generation against an OpenAI-compatible chat completion API.

This module wraps the generation backend behind a single ``generate`` call:
- Shaping both prompts so the model answers with JSON only.
- Retrying failed or empty completions with exponential backoff.
- Running the self-healing JSON repair on whatever text comes back.
- Synthesizing a rule-based plan when every attempt failed.

Key Features:
- Uses AsyncOpenAI client for inference (compatible with vLLM, LM Studio, Ollama, etc.).
- The SDK's own retry loop is disabled so attempt counting and backoff stay here.
- The sleep function is injectable, which keeps retry tests instantaneous.
"""

from __future__ import annotations

import asyncio
import json
from typing import Awaitable, Callable, Optional

from openai import AsyncOpenAI

from modflow.ai import fallback_planner
from modflow.ai.json_repair import repair_json
from modflow.ai.prompt_builder import shape_request
from modflow.configuration.app_configuration import app_config
from modflow.configuration.generation_settings import GenerationSettings
from modflow.core.errors import GenerationError
from modflow.datatypes.plan_datatypes import GenerationRequest, GenerationResult
from modflow.util.logger import get_logger

logger = get_logger("response_generator")

SleepFunc = Callable[[float], Awaitable[None]]


class ResponseGenerator:
    """
    Produce plan JSON for a request, tolerating an unreliable backend.

    The generator owns the AsyncOpenAI client. ``generate`` never lets a
    backend failure escape while the fallback planner is enabled; it raises
    :class:`GenerationError` only when retries are exhausted and fallback is
    turned off.
    """

    def __init__(
        self,
        settings: Optional[GenerationSettings] = None,
        client: Optional[AsyncOpenAI] = None,
        sleep: SleepFunc = asyncio.sleep,
        fallback_repeat_limit: Optional[int] = None,
    ) -> None:
        self.settings = settings or app_config.generation_settings
        self._client = client or AsyncOpenAI(
            api_key=self.settings.api_key,
            base_url=self.settings.base_url,
            timeout=self.settings.timeout_seconds,
            max_retries=0,
        )
        self._sleep = sleep
        self._fallback_repeat_limit = (
            fallback_repeat_limit if fallback_repeat_limit is not None else app_config.fallback_repeat_limit
        )
        logger.info(
            "[GENERATOR] Initialized with base_url=%s, model=%s, attempts=%d",
            self.settings.base_url,
            self.settings.model_name,
            self.settings.retry_attempts,
        )

    def backoff_delay(self, retry_index: int) -> float:
        """Delay before retry number ``retry_index`` (0-based), doubling each time."""
        return self.settings.retry_base_delay * (2 ** retry_index)

    async def _complete(self, request: GenerationRequest) -> str:
        response = await self._client.chat.completions.create(
            model=self.settings.model_name,
            messages=[
                {"role": "system", "content": request.system_prompt},
                {"role": "user", "content": request.user_prompt},
            ],
            temperature=self.settings.temperature,
            max_tokens=self.settings.max_tokens,
            top_p=self.settings.top_p,
            response_format={"type": "json_object"},
        )
        if not response.choices:
            raise GenerationError("Generation backend returned no choices")
        content = response.choices[0].message.content or ""
        if not content.strip():
            raise GenerationError("Generation backend returned an empty completion")
        return content

    async def generate(self, system_prompt: str, user_prompt: str) -> GenerationResult:
        """Generate plan JSON for ``user_prompt``.

        Args:
            system_prompt: Instructions describing the plan format and capabilities.
            user_prompt: The raw request text.

        Returns:
            GenerationResult: Repaired backend output, or a synthesized plan
            with ``used_fallback`` set.

        Raises:
            GenerationError: If every attempt failed and fallback is disabled.
        """
        request = shape_request(system_prompt, user_prompt)
        max_attempts = self.settings.retry_attempts
        last_error: Optional[Exception] = None
        attempts = 0

        for attempt in range(1, max_attempts + 1):
            attempts = attempt
            try:
                content = await self._complete(request)
            except Exception as exc:
                last_error = exc
                logger.warning(
                    "[GENERATOR] Attempt %d/%d failed: %s", attempt, max_attempts, exc
                )
                if attempt < max_attempts:
                    delay = self.backoff_delay(attempt - 1)
                    logger.debug("[GENERATOR] Retrying in %.2fs", delay)
                    await self._sleep(delay)
                continue

            if not self.settings.repair_json:
                return GenerationResult(raw_text=content, attempts=attempts)

            outcome = repair_json(content)
            if outcome.repaired:
                logger.info("[GENERATOR] Response JSON was repaired on attempt %d", attempt)
            return GenerationResult(raw_text=outcome.text, repaired=outcome.repaired, attempts=attempts)

        if self.settings.use_fallback:
            logger.warning(
                "[GENERATOR] Backend unavailable after %d attempt(s); using fallback planner", attempts
            )
            plan = fallback_planner.synthesize_plan(user_prompt, self._fallback_repeat_limit)
            return GenerationResult(
                raw_text=json.dumps(plan, ensure_ascii=False),
                attempts=attempts,
                used_fallback=True,
            )

        raise GenerationError(
            f"Generation backend failed after {attempts} attempt(s): {last_error}", attempts=attempts
        )

    async def aclose(self) -> None:
        await self._client.close()
