"""
Requester Context - who is acting.

Access control asks this provider for the current requester. The requester
can be set directly or supplied lazily through a callable. Both live in
context variables, so concurrent requests and threads each see their own.
"""

from contextvars import ContextVar
from typing import Any, Callable, Optional

current_requester: ContextVar[Any] = ContextVar('current_requester', default=None)
current_requester_provider: ContextVar[Optional[Callable[[], Any]]] = ContextVar(
    'current_requester_provider', default=None)


class RequesterContext:
    def set(self, requester: Any) -> None:
        current_requester.set(requester)
        current_requester_provider.set(None)

    def set_callable(self, fn: Callable[[], Any]) -> None:
        current_requester_provider.set(fn)
        current_requester.set(None)

    def get(self) -> Any:
        provider = current_requester_provider.get()
        if provider is not None:
            return provider()
        return current_requester.get()

    def clear(self) -> None:
        current_requester.set(None)
        current_requester_provider.set(None)


requester_context = RequesterContext()


def get_requester() -> Any:
    return requester_context.get()


__all__ = [
    'RequesterContext',
    'requester_context',
    'get_requester',
    'current_requester',
    'current_requester_provider',
]
