"""
Adaptive mapping of generated action identifiers to executable capabilities.

Resolution order:

1. exact lookup in the canonical catalog,
2. alias lookup (case-insensitive),
3. shape check; malformed identifiers skip the catalog from here on,
4. fuzzy match against the same-category actions, or the whole catalog
   when the category is unknown,
5. composite patterns matched on the original request text,
6. unresolved.

``resolve`` never raises. Fuzzy ties go to the action listed first in the
catalog, so results are deterministic for a given catalog.
"""

from __future__ import annotations

from typing import Dict, Iterable, Mapping, Optional, Tuple

from modflow.datatypes.action_datatypes import ResolutionSource, ResolvedAction
from modflow.resolution.capabilities import (
    ACTION_ALIASES,
    ACTION_SHAPE,
    CANONICAL_ACTIONS,
    category_of,
)
from modflow.resolution.composite_patterns import DEFAULT_REPEAT_LIMIT, match_composite
from modflow.resolution.similarity import similarity
from modflow.util.logger import get_logger

logger = get_logger("action_resolver")

FUZZY_THRESHOLD = 0.6
DYNAMIC_CONFIDENCE = 0.5


class ActionResolver:
    """Resolve raw action identifiers against a capability catalog."""

    def __init__(
        self,
        canonical_actions: Iterable[str] = CANONICAL_ACTIONS,
        aliases: Mapping[str, str] = ACTION_ALIASES,
        threshold: float = FUZZY_THRESHOLD,
        composite_repeat_limit: int = DEFAULT_REPEAT_LIMIT,
    ) -> None:
        self._canonical: Tuple[str, ...] = tuple(canonical_actions)
        self._canonical_set = frozenset(self._canonical)
        self._aliases: Dict[str, str] = {key.lower(): value for key, value in aliases.items()}
        self.threshold = threshold
        self.composite_repeat_limit = composite_repeat_limit

    @property
    def capabilities(self) -> Tuple[str, ...]:
        return self._canonical

    def _same_category(self, action: str) -> Tuple[str, ...]:
        category = category_of(action)
        if not category:
            return ()
        prefix = f"{category}."
        return tuple(candidate for candidate in self._canonical if candidate.startswith(prefix))

    def _fuzzy(self, action: str) -> Optional[ResolvedAction]:
        same_category = self._same_category(action)
        pool = same_category or self._canonical

        best: Optional[str] = None
        best_score = 0.0
        for candidate in pool:
            score = similarity(action, candidate)
            if score > best_score:
                best, best_score = candidate, score

        if best is not None and best_score >= self.threshold:
            return ResolvedAction(canonical=best, source=ResolutionSource.FUZZY, confidence=best_score)
        if same_category:
            first = same_category[0]
            return ResolvedAction(
                canonical=first,
                source=ResolutionSource.FUZZY,
                confidence=similarity(action, first),
            )
        return None

    def resolve(self, raw_action: str, user_text: Optional[str] = None) -> ResolvedAction:
        """Map ``raw_action`` to a capability.

        Args:
            raw_action: Identifier as it appears in the generated plan.
            user_text: The original request; only consulted by composite
                patterns once every catalog lookup has failed.

        Returns:
            ResolvedAction: ``source`` is NONE when nothing matched.
        """
        candidate = (raw_action or "").strip()

        if candidate in self._canonical_set:
            return ResolvedAction(canonical=candidate, source=ResolutionSource.EXACT, confidence=1.0)

        alias_target = self._aliases.get(candidate.lower())
        if alias_target is not None:
            logger.info("[RESOLVER] Alias match: %s -> %s", candidate, alias_target)
            return ResolvedAction(canonical=alias_target, source=ResolutionSource.ALIAS, confidence=1.0)

        if ACTION_SHAPE.match(candidate):
            fuzzy = self._fuzzy(candidate)
            if fuzzy is not None:
                logger.info(
                    "[RESOLVER] Similarity match: %s -> %s (%.2f)", candidate, fuzzy.canonical, fuzzy.confidence
                )
                return fuzzy
        else:
            logger.debug("[RESOLVER] Identifier '%s' is malformed; skipping catalog lookups", candidate)

        intent = match_composite(user_text, self.composite_repeat_limit)
        if intent is not None:
            logger.info("[RESOLVER] Composite pattern '%s' serves action '%s'", intent.pattern, candidate)
            return ResolvedAction(
                canonical=f"composite.{intent.pattern}",
                source=ResolutionSource.DYNAMIC,
                confidence=DYNAMIC_CONFIDENCE,
                composite=intent,
            )

        logger.warning("[RESOLVER] No handler found for action '%s'", candidate)
        return ResolvedAction.unresolved()
