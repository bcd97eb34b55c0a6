# src/gatekeep/runtime/events.py
from __future__ import annotations

"""Notification records.

Apply functions append the JSON form of an event to state["events"]. Because
appliers run on a snapshot (see domain_apply.apply_tx_atomic), an event is
only ever visible once its triggering call has committed.

State shape:
state["events"] = [ {"event": "<Name>", "at_nonce": n, ...fields}, ... ]
"""

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, List, Type, Union

Json = Dict[str, Any]


@dataclass(frozen=True)
class Transfer:
    sender: str
    recipient: str
    amount: int


@dataclass(frozen=True)
class Approval:
    owner: str
    spender: str
    amount: int


@dataclass(frozen=True)
class BlacklistUpdated:
    account: str
    flag: bool


@dataclass(frozen=True)
class MaxAmountUpdated:
    new_amount: int


@dataclass(frozen=True)
class CodeHashBanned:
    code_hash: str


@dataclass(frozen=True)
class CodeHashUnbanned:
    code_hash: str


@dataclass(frozen=True)
class ContractDeployed:
    caller: str
    handle: str
    code_hash: str


@dataclass(frozen=True)
class Paused:
    account: str


@dataclass(frozen=True)
class Unpaused:
    account: str


Event = Union[
    Transfer,
    Approval,
    BlacklistUpdated,
    MaxAmountUpdated,
    CodeHashBanned,
    CodeHashUnbanned,
    ContractDeployed,
    Paused,
    Unpaused,
]

_EVENT_TYPES: Dict[str, Type[Any]] = {
    cls.__name__: cls
    for cls in (
        Transfer,
        Approval,
        BlacklistUpdated,
        MaxAmountUpdated,
        CodeHashBanned,
        CodeHashUnbanned,
        ContractDeployed,
        Paused,
        Unpaused,
    )
}


def event_to_json(ev: Event, *, at_nonce: int = 0) -> Json:
    out: Json = {"event": type(ev).__name__, "at_nonce": int(at_nonce)}
    out.update(asdict(ev))
    return out


def event_from_json(j: Json) -> Event:
    name = str(j.get("event") or "")
    cls = _EVENT_TYPES.get(name)
    if cls is None:
        raise ValueError(f"unknown event: {name!r}")
    return cls(**{f.name: j[f.name] for f in fields(cls)})


def emit(state: Json, ev: Event, *, at_nonce: int = 0) -> Json:
    """Append `ev` to the state's event log and return its JSON form."""
    log = state.get("events")
    if not isinstance(log, list):
        log = []
        state["events"] = log
    j = event_to_json(ev, at_nonce=at_nonce)
    log.append(j)
    return j


def events_from_state(state: Json) -> List[Event]:
    log = state.get("events")
    if not isinstance(log, list):
        return []
    return [event_from_json(j) for j in log if isinstance(j, dict)]


__all__ = [
    "Transfer",
    "Approval",
    "BlacklistUpdated",
    "MaxAmountUpdated",
    "CodeHashBanned",
    "CodeHashUnbanned",
    "ContractDeployed",
    "Paused",
    "Unpaused",
    "Event",
    "emit",
    "event_from_json",
    "event_to_json",
    "events_from_state",
]
