"""Best-effort follow-up actions requested by the core.

Operations never call out to external systems themselves. They return a list
of :class:`SideEffect` values and the caller decides which to execute. Each
effect runs independently; a failing handler is logged and reported back in
its :class:`EffectOutcome`, and never undoes the operation that asked for it.
"""

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

logger = logging.getLogger(__name__)


class EffectKind(StrEnum):
    SYNC_RATING = "sync-rating"
    REBUILD_STREAK = "rebuild-streak"


@dataclass(frozen=True)
class SideEffect:
    kind: EffectKind
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass
class EffectOutcome:
    effect: SideEffect
    ok: bool
    error: str | None = None


EffectHandler = Callable[[SideEffect], Awaitable[None]]


def sync_rating(book_id: int, rating: int | None) -> SideEffect:
    return SideEffect(EffectKind.SYNC_RATING, {"book_id": book_id, "rating": rating})


def rebuild_streak(book_id: int, reason: str) -> SideEffect:
    return SideEffect(EffectKind.REBUILD_STREAK, {"book_id": book_id, "reason": reason})


async def log_effect(effect: SideEffect) -> None:
    logger.info("Side effect %s requested: %s", effect.kind, effect.payload)


def default_handlers() -> dict[EffectKind, EffectHandler]:
    # No external catalog or streak service is wired in; record the request.
    return {kind: log_effect for kind in EffectKind}


async def run_effects(
    effects: list[SideEffect],
    handlers: Mapping[EffectKind, EffectHandler],
) -> list[EffectOutcome]:
    outcomes = []
    for effect in effects:
        handler = handlers.get(effect.kind)
        if handler is None:
            logger.debug("No handler for side effect %s, skipping", effect.kind)
            outcomes.append(EffectOutcome(effect, ok=False, error="no handler"))
            continue
        try:
            await handler(effect)
        except Exception as exc:
            logger.exception("Side effect %s failed for %s", effect.kind, effect.payload)
            outcomes.append(EffectOutcome(effect, ok=False, error=str(exc)))
        else:
            outcomes.append(EffectOutcome(effect, ok=True))
    return outcomes
