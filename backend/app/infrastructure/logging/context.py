from contextvars import ContextVar

_request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)
_actor_id_ctx: ContextVar[str | None] = ContextVar("actor_id", default=None)


def set_request_id(request_id: str | None) -> object:
    return _request_id_ctx.set(request_id)


def get_request_id() -> str | None:
    return _request_id_ctx.get()


def reset_request_id(token: object) -> None:
    _request_id_ctx.reset(token)


def set_actor_id(actor_id: str | None) -> object:
    return _actor_id_ctx.set(actor_id)


def get_actor_id() -> str | None:
    return _actor_id_ctx.get()


def reset_actor_id(token: object) -> None:
    _actor_id_ctx.reset(token)
