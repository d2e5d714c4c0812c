# glue_core/events.py
"""
@file events.py
@brief Event payloads, resolving actions and the event emitter.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol, Set

log = logging.getLogger(__name__)

REQUEST_ACCOUNTS = "requestaccounts"
SEND_TRANSACTION = "sendtransaction"
SIGN_MESSAGE = "signmessage"

EVENT_KINDS = (REQUEST_ACCOUNTS, SEND_TRANSACTION, SIGN_MESSAGE)

APPROVE = "approve"
REJECT = "reject"


@dataclass(frozen=True)
class RequestAccountsEvent:
    accounts: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {"accounts": list(self.accounts)}


@dataclass(frozen=True)
class SendTransactionEvent:
    from_: str
    to: str
    data: str
    value: str

    def to_dict(self) -> Dict[str, Any]:
        return {"from": self.from_, "to": self.to, "data": self.data, "value": self.value}


@dataclass(frozen=True)
class SignMessageEvent:
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message}


@dataclass(frozen=True)
class GlueEvent:
    """A published event, tagged with the correlation id that resolves it."""
    kind: str
    correlation_id: str
    payload: Any = None

    def to_dict(self) -> Dict[str, Any]:
        if self.payload is None:
            body: Dict[str, Any] = {}
        elif hasattr(self.payload, "to_dict"):
            body = self.payload.to_dict()
        else:
            body = dict(self.payload)
        return {"type": "event", "kind": self.kind, "id": self.correlation_id, **body}


# --- Resolving actions ---

@dataclass(frozen=True)
class RequestAccounts:
    id: str
    action: str


@dataclass(frozen=True)
class SignMessage:
    id: str
    action: str


@dataclass(frozen=True)
class SendTransaction:
    id: str
    action: str


@dataclass(frozen=True)
class SignTransaction:
    id: str
    action: str


@dataclass(frozen=True)
class SwitchEthereumChain:
    id: str
    action: str


@dataclass(frozen=True)
class ActivateChain:
    chain_id: str
    rpc_url: str


@dataclass(frozen=True)
class Report:
    format: str
    value: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class EventSink(Protocol):
    def emit(self, event: GlueEvent) -> None:
        ...


Listener = Callable[[GlueEvent], Any]


@dataclass
class EventEmitter:
    """
    Minimal publish/subscribe hub for published events.

    Listeners may be plain callables or coroutine functions; coroutine
    listeners are scheduled on the running loop. ``"*"`` receives every kind.
    """
    _listeners: Dict[str, List[Listener]] = field(default_factory=dict)
    _tasks: Set[asyncio.Task] = field(default_factory=set)

    def on(self, kind: str, listener: Listener) -> Callable[[], None]:
        self._listeners.setdefault(kind, []).append(listener)

        def _unsubscribe() -> None:
            subs = self._listeners.get(kind, [])
            if listener in subs:
                subs.remove(listener)

        return _unsubscribe

    def emit(self, event: GlueEvent) -> None:
        log.debug("emitting %s id=%s", event.kind, event.correlation_id)
        listeners = list(self._listeners.get(event.kind, [])) + list(self._listeners.get("*", []))
        for listener in listeners:
            result = listener(event)
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)

    def listener_count(self, kind: Optional[str] = None) -> int:
        if kind is None:
            return sum(len(v) for v in self._listeners.values())
        return len(self._listeners.get(kind, []))
