"""Chat adapter state machine.

The adapter's own position in a conversation is a single ``AdapterState``
value; every change goes through ``transition`` so flags such as "awaiting a
phone number" are derived from the state instead of tracked separately.
"""

from enum import StrEnum

from chat_bridge.core.exceptions import InvalidTransitionError
from chat_bridge.schemas.session_schema import AdapterState


class AdapterEvent(StrEnum):
    """Inputs that move a chat between adapter states."""

    START = "start"
    FIRST_INPUT = "first_input"
    IDENTIFIED_INPUT = "identified_input"
    PHONE_MATCHED = "phone_matched"
    PHONE_UNMATCHED = "phone_unmatched"
    ROUTE = "route"
    COMPLETE = "complete"
    END = "end"
    ENGINE_SESSION_LOST = "engine_session_lost"


_S = AdapterState
_E = AdapterEvent

_TRANSITIONS: dict[tuple[AdapterState, AdapterEvent], AdapterState] = {
    (_S.NEW, _E.START): _S.WELCOMED,
    (_S.WELCOMED, _E.FIRST_INPUT): _S.AWAITING_PHONE,
    # Phone already known after an engine restart: never ask twice.
    (_S.WELCOMED, _E.IDENTIFIED_INPUT): _S.ENGINE_ROUTED,
    (_S.AWAITING_PHONE, _E.PHONE_MATCHED): _S.RETURNING_CUSTOMER,
    (_S.AWAITING_PHONE, _E.PHONE_UNMATCHED): _S.NEW_CUSTOMER,
    (_S.RETURNING_CUSTOMER, _E.ROUTE): _S.ENGINE_ROUTED,
    (_S.NEW_CUSTOMER, _E.ROUTE): _S.ENGINE_ROUTED,
    (_S.ENGINE_ROUTED, _E.ROUTE): _S.ENGINE_ROUTED,
    # Demo ladder completes without ever reaching the engine.
    (_S.WELCOMED, _E.COMPLETE): _S.ENDED,
    (_S.RETURNING_CUSTOMER, _E.COMPLETE): _S.ENDED,
    (_S.NEW_CUSTOMER, _E.COMPLETE): _S.ENDED,
    (_S.ENGINE_ROUTED, _E.COMPLETE): _S.ENDED,
}

_LIVE_STATES = frozenset(state for state in AdapterState if state is not _S.ENDED)


def transition(state: AdapterState, event: AdapterEvent) -> AdapterState:
    """Return the state reached from ``state`` on ``event``.

    Raises:
        InvalidTransitionError: ``event`` is not valid in ``state``.
    """
    if state in _LIVE_STATES:
        if event is _E.END:
            return _S.ENDED
        if event is _E.ENGINE_SESSION_LOST:
            return _S.WELCOMED
    next_state = _TRANSITIONS.get((state, event))
    if next_state is None:
        raise InvalidTransitionError(state=state.value, event=event.value)
    return next_state


def can_transition(state: AdapterState, event: AdapterEvent) -> bool:
    try:
        transition(state, event)
    except InvalidTransitionError:
        return False
    return True
