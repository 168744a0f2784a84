"""Tests for the chat adapter state machine."""

import pytest

from chat_bridge.core.exceptions import InvalidTransitionError
from chat_bridge.schemas.session_schema import AdapterState
from chat_bridge.services.chat_state import AdapterEvent, can_transition, transition

S = AdapterState
E = AdapterEvent


class TestTransition:
    """Tests for defined transitions."""

    @pytest.mark.parametrize(
        ("state", "event", "expected"),
        [
            (S.NEW, E.START, S.WELCOMED),
            (S.WELCOMED, E.FIRST_INPUT, S.AWAITING_PHONE),
            (S.WELCOMED, E.IDENTIFIED_INPUT, S.ENGINE_ROUTED),
            (S.AWAITING_PHONE, E.PHONE_MATCHED, S.RETURNING_CUSTOMER),
            (S.AWAITING_PHONE, E.PHONE_UNMATCHED, S.NEW_CUSTOMER),
            (S.RETURNING_CUSTOMER, E.ROUTE, S.ENGINE_ROUTED),
            (S.NEW_CUSTOMER, E.ROUTE, S.ENGINE_ROUTED),
            (S.ENGINE_ROUTED, E.ROUTE, S.ENGINE_ROUTED),
            (S.ENGINE_ROUTED, E.COMPLETE, S.ENDED),
            (S.WELCOMED, E.COMPLETE, S.ENDED),
        ],
    )
    def test_defined_edges(
        self, state: AdapterState, event: AdapterEvent, expected: AdapterState
    ) -> None:
        assert transition(state, event) is expected

    @pytest.mark.parametrize("state", [s for s in AdapterState if s is not S.ENDED])
    def test_end_from_any_live_state(self, state: AdapterState) -> None:
        assert transition(state, E.END) is S.ENDED

    @pytest.mark.parametrize("state", [s for s in AdapterState if s is not S.ENDED])
    def test_engine_session_lost_returns_to_welcomed(
        self, state: AdapterState
    ) -> None:
        assert transition(state, E.ENGINE_SESSION_LOST) is S.WELCOMED


class TestInvalidTransition:
    """Tests for rejected transitions."""

    @pytest.mark.parametrize("event", list(AdapterEvent))
    def test_ended_is_terminal(self, event: AdapterEvent) -> None:
        with pytest.raises(InvalidTransitionError):
            transition(S.ENDED, event)

    def test_phone_match_requires_awaiting_phone(self) -> None:
        with pytest.raises(InvalidTransitionError) as exc_info:
            transition(S.WELCOMED, E.PHONE_MATCHED)
        assert exc_info.value.state == "welcomed"
        assert exc_info.value.event == "phone_matched"
        assert exc_info.value.status_code == 500

    def test_awaiting_phone_cannot_route(self) -> None:
        assert not can_transition(S.AWAITING_PHONE, E.ROUTE)
        assert can_transition(S.AWAITING_PHONE, E.PHONE_UNMATCHED)
