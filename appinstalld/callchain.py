"""Sequential execution of call items with conditional branching."""

from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from enum import IntFlag
from typing import Any

from .mainloop import MainLoop, get_default_loop

ChainData = dict[str, Any]
CompleteHandler = Callable[[ChainData], Any]
ResultCheck = Callable[[Any], bool]


class Signal:
    """A list of slots that are called in connection order on :meth:`emit`."""

    def __init__(self) -> None:
        self._slots: list[Callable[..., Any]] = []

    def connect(self, slot: Callable[..., Any]) -> Callable[..., Any]:
        """Add ``slot`` and return it."""
        self._slots.append(slot)
        return slot

    def disconnect_all(self) -> None:
        """Remove every connected slot."""
        self._slots.clear()

    def emit(self, *args: Any) -> None:
        """Call every connected slot with ``args``."""
        for slot in list(self._slots):
            slot(*args)

    def __len__(self) -> int:
        return len(self._slots)


class CallOption(IntFlag):
    """Options that change how a chain treats an item's result."""

    NONE = 0
    NONSTOP = 0x01


class CallItem(ABC):
    """One step of a :class:`CallChain`.

    An item reports completion through ``on_finished(result, error_text)``
    and failure to start through ``on_error(error_text)``.
    """

    def __init__(self) -> None:
        self.on_finished = Signal()
        self.on_error = Signal()
        self.error = ""
        self.option = CallOption.NONE
        self._chain_data: ChainData = {}

    @property
    def chain_data(self) -> ChainData:
        """A copy of the data handed along the chain."""
        return copy.deepcopy(self._chain_data)

    @chain_data.setter
    def chain_data(self, value: ChainData) -> None:
        self._chain_data = copy.deepcopy(value)

    @abstractmethod
    def call(self) -> bool:
        """Start the item; return False if it could not be started."""


class FunctionCallItem(CallItem):
    """A call item that runs a Python callable with stored parameters.

    ``result_check``, when given, turns the function's return value into
    the item's result; without it every completed call counts as success.
    """

    def __init__(
        self,
        func: Callable[..., Any],
        *params: Any,
        loop: MainLoop | None = None,
        result_check: ResultCheck | None = None,
    ) -> None:
        super().__init__()
        self.func = func
        self.params = list(params)
        self._loop = loop
        self._result_check = result_check

    def call(self) -> bool:
        if not self.on_before_call():
            self.on_error.emit("Cancelled")
            return False

        result = self.on_result(self.func(*self.params))
        loop = self._loop if self._loop is not None else get_default_loop()
        loop.call_soon(lambda: self.on_finished.emit(result, self.error))
        return True

    def on_before_call(self) -> bool:
        """Called just before the function runs; False cancels the item."""
        return True

    def on_result(self, result: Any) -> bool:
        """Called with the function's return value; gives the item's result."""
        if self._result_check is None:
            return True
        return bool(self._result_check(result))


def _make_result(return_value: bool, error_text: str) -> ChainData:
    result: ChainData = {"returnValue": return_value}
    if not return_value:
        result["errorText"] = error_text
    return result


@dataclass
class _CallCondition:
    condition_call: CallItem
    expected_result: bool
    target_call: CallItem


class CallChain:
    """Runs call items one after another, passing chain data between them.

    When the chain ends, ``handler`` receives the final chain data, which
    carries ``returnValue`` and, on failure, ``errorText``.
    """

    def __init__(self, handler: CompleteHandler | None = None) -> None:
        self._calls: deque[CallItem] = deque()
        self._conditions: list[_CallCondition] = []
        self._handler = handler

    def add(self, call: CallItem, push_front: bool = False) -> CallChain:
        """Append ``call`` (or put it first) and bind its signals to this chain."""
        call.on_finished.disconnect_all()
        call.on_error.disconnect_all()
        call.on_finished.connect(self._on_call_finished)
        call.on_error.connect(self._on_call_error)

        if push_front:
            self._calls.appendleft(call)
        else:
            self._calls.append(call)
        return self

    def add_if(self, condition_call: CallItem, expected_result: bool, target_call: CallItem) -> CallChain:
        """Run ``target_call`` next if ``condition_call`` finishes with ``expected_result``."""
        self._conditions.append(_CallCondition(condition_call, expected_result, target_call))
        return self

    def run(self, chain_data: ChainData | None = None) -> bool:
        """Start the chain; return False if the first item could not start."""
        return self._proceed(copy.deepcopy(chain_data) if chain_data is not None else {})

    def _proceed(self, chain_data: ChainData) -> bool:
        if not self._calls:
            chain_data["returnValue"] = True
            self._finish(chain_data)
            return True

        call = self._calls[0]
        call.chain_data = chain_data
        return call.call()

    def _finish(self, chain_data: ChainData) -> None:
        if self._handler is not None:
            self._handler(chain_data)

    def _fail_with(self, call: CallItem, error_text: str) -> None:
        chain_data = call.chain_data
        chain_data["returnValue"] = False
        chain_data["errorText"] = error_text
        self._finish(chain_data)

    def _on_call_error(self, error_text: str) -> None:
        if not self._calls:
            self._finish(_make_result(False, error_text))
            return
        self._fail_with(self._calls[0], error_text)

    def _on_call_finished(self, result: bool, error_text: str) -> None:
        if not self._calls:
            self._finish(_make_result(False, "Callchain broken"))
            return

        call = self._calls[0]
        if error_text:
            self._fail_with(call, error_text)
            return
        self._calls.popleft()

        process_next = result
        matching = [cond for cond in self._conditions if cond.condition_call is call]
        for cond in reversed(matching):
            if result == cond.expected_result:
                self.add(cond.target_call, push_front=True)
                process_next = True
        self._conditions = [cond for cond in self._conditions if cond.condition_call is not call]

        if not process_next and CallOption.NONSTOP in CallOption(call.option):
            process_next = True

        if process_next:
            self._proceed(call.chain_data)
        else:
            self._fail_with(call, error_text)