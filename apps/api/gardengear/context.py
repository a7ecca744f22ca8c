from __future__ import annotations

from contextvars import ContextVar, Token

correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)
caller_var: ContextVar[dict[str, str | None] | None] = ContextVar("caller", default=None)


def set_correlation_id(value: str | None) -> Token[str | None]:
    return correlation_id_var.set(value)


def reset_correlation_id(token: Token[str | None]) -> None:
    correlation_id_var.reset(token)


def get_correlation_id() -> str | None:
    return correlation_id_var.get()


def set_caller(user_id: str, organisation_id: str | None, role: str) -> Token[dict[str, str | None] | None]:
    return caller_var.set({"user_id": user_id, "organisation_id": organisation_id, "role": role})


def get_caller() -> dict[str, str | None] | None:
    return caller_var.get()


def get_log_context() -> dict[str, str | None]:
    context: dict[str, str | None] = {"correlation_id": get_correlation_id()}
    caller = get_caller()
    if caller is not None:
        context.update(caller)
    return context
