from collections.abc import Mapping

from fastapi import Request

from pagetrail.services.effects import EffectHandler, EffectKind
from pagetrail.services.locks import BookLocks


def get_book_locks(request: Request) -> BookLocks:
    return request.app.state.book_locks


def get_effect_handlers(request: Request) -> Mapping[EffectKind, EffectHandler]:
    return request.app.state.effect_handlers
