import asyncio
import logging

from pagetrail.services.effects import (
    EffectKind,
    default_handlers,
    rebuild_streak,
    run_effects,
    sync_rating,
)
from pagetrail.services.locks import BookLocks


async def test_effects_run_in_order():
    seen = []

    async def record(effect):
        seen.append(effect.kind)

    effects = [sync_rating(1, 4), rebuild_streak(1, "progress logged")]
    outcomes = await run_effects(effects, {kind: record for kind in EffectKind})

    assert seen == [EffectKind.SYNC_RATING, EffectKind.REBUILD_STREAK]
    assert all(o.ok for o in outcomes)


async def test_failing_effect_does_not_stop_others(caplog):
    seen = []

    async def broken(effect):
        raise ConnectionError("catalog unreachable")

    async def record(effect):
        seen.append(effect.kind)

    handlers = {EffectKind.SYNC_RATING: broken, EffectKind.REBUILD_STREAK: record}
    with caplog.at_level(logging.ERROR, logger="pagetrail.services.effects"):
        outcomes = await run_effects([sync_rating(1, 2), rebuild_streak(1, "x")], handlers)

    assert outcomes[0].ok is False
    assert outcomes[0].error == "catalog unreachable"
    assert outcomes[1].ok is True
    assert seen == [EffectKind.REBUILD_STREAK]
    assert "sync-rating failed" in caplog.text


async def test_missing_handler_is_skipped():
    outcomes = await run_effects([rebuild_streak(2, "x")], {})
    assert outcomes[0].ok is False
    assert outcomes[0].error == "no handler"


async def test_default_handlers_cover_every_kind():
    handlers = default_handlers()
    assert set(handlers) == set(EffectKind)
    outcomes = await run_effects([sync_rating(3, None)], handlers)
    assert outcomes[0].ok is True


async def test_book_locks_serialize_same_book():
    locks = BookLocks()
    order = []

    async def worker(name, delay):
        async with locks.hold(1):
            order.append(f"{name}-in")
            await asyncio.sleep(delay)
            order.append(f"{name}-out")

    await asyncio.gather(worker("a", 0.02), worker("b", 0))
    assert order == ["a-in", "a-out", "b-in", "b-out"]


async def test_book_locks_are_per_book():
    locks = BookLocks()
    async with locks.hold(1):
        # A different book is not blocked by the held lock
        await asyncio.wait_for(_enter(locks, 2), timeout=0.5)


async def _enter(locks, book_id):
    async with locks.hold(book_id):
        return True
