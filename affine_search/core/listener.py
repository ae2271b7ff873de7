"""
Single-shot completion listeners for query vector builders.

A builder completes its listener exactly once, with either a response or a
failure. FutureActionListener bridges that contract onto an asyncio future so
callers can await the result cooperatively.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional


class ActionListener(ABC):
    """Receives the single outcome of an asynchronous action."""

    @abstractmethod
    def on_response(self, response: Any) -> None:
        """Called once with the successful result."""
        pass

    @abstractmethod
    def on_failure(self, error: BaseException) -> None:
        """Called once with the failure."""
        pass

    @staticmethod
    def wrap(
        on_response: Callable[[Any], None],
        on_failure: Callable[[BaseException], None],
    ) -> "ActionListener":
        """Build a listener from two callables."""
        return _CallbackListener(on_response, on_failure)


class _CallbackListener(ActionListener):
    def __init__(self, on_response, on_failure):
        self._on_response = on_response
        self._on_failure = on_failure

    def on_response(self, response: Any) -> None:
        self._on_response(response)

    def on_failure(self, error: BaseException) -> None:
        self._on_failure(error)


class OnceActionListener(ActionListener):
    """Delegating listener that rejects a second completion."""

    def __init__(self, delegate: ActionListener):
        self._delegate = delegate
        self._completed = False

    @property
    def completed(self) -> bool:
        return self._completed

    def _complete(self) -> None:
        if self._completed:
            raise RuntimeError("listener already completed; a builder must call back exactly once")
        self._completed = True

    def on_response(self, response: Any) -> None:
        self._complete()
        self._delegate.on_response(response)

    def on_failure(self, error: BaseException) -> None:
        self._complete()
        self._delegate.on_failure(error)


class FutureActionListener(ActionListener):
    """Completes an asyncio future with the listener outcome."""

    def __init__(self, future: Optional[asyncio.Future] = None):
        self.future = future if future is not None else asyncio.get_running_loop().create_future()

    def on_response(self, response: Any) -> None:
        if self.future.done():
            raise RuntimeError("listener already completed; a builder must call back exactly once")
        self.future.set_result(response)

    def on_failure(self, error: BaseException) -> None:
        if self.future.done():
            raise RuntimeError("listener already completed; a builder must call back exactly once")
        self.future.set_exception(error)

    def __await__(self):
        return self.future.__await__()
