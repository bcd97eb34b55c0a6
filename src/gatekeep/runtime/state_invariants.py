from __future__ import annotations

"""State invariants / normalization helpers.

Component state is a nested JSON-like dict mutated only by apply_* modules.
This module is the single place that:

  - validates the state is dict-like
  - ensures the containers every component relies on exist
    (accounts, params, events)

Domain containers ("token", "deployment") stay the responsibility of the
corresponding apply module.
"""

from collections.abc import MutableMapping
from typing import Any, Dict

Json = Dict[str, Any]


def ensure_state(st: Any) -> Json:
    """Ensure `st` is a dict and contains core keys.

    Raises:
        TypeError: if st is not a MutableMapping
    """
    if not isinstance(st, MutableMapping):
        raise TypeError(f"state must be MutableMapping, got {type(st)}")

    for key in ("accounts", "params"):
        v = st.get(key)
        if v is None:
            st[key] = {}
        elif not isinstance(v, dict):
            raise TypeError(f"state[{key!r}] must be dict, got {type(v)}")

    events = st.get("events")
    if events is None:
        st["events"] = []
    elif not isinstance(events, list):
        raise TypeError(f"state['events'] must be list, got {type(events)}")

    return st  # type: ignore[return-value]


__all__ = ["ensure_state"]
