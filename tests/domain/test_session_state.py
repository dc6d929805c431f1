import pytest

from voice_subtitles.domain.state import (
    InvalidTransitionError,
    SessionState,
    validate_transition,
)


class TestSessionTransitions:
    def test_idle_to_connecting(self):
        validate_transition(SessionState.IDLE, SessionState.CONNECTING)

    def test_idle_to_closed(self):
        validate_transition(SessionState.IDLE, SessionState.CLOSED)

    def test_connecting_to_open(self):
        validate_transition(SessionState.CONNECTING, SessionState.OPEN)

    def test_connecting_to_failed(self):
        validate_transition(SessionState.CONNECTING, SessionState.FAILED)

    def test_connecting_to_closing(self):
        validate_transition(SessionState.CONNECTING, SessionState.CLOSING)

    def test_open_to_closing(self):
        validate_transition(SessionState.OPEN, SessionState.CLOSING)

    def test_closing_to_closed(self):
        validate_transition(SessionState.CLOSING, SessionState.CLOSED)

    def test_invalid_idle_to_open(self):
        with pytest.raises(InvalidTransitionError):
            validate_transition(SessionState.IDLE, SessionState.OPEN)

    def test_invalid_closed_to_connecting(self):
        with pytest.raises(InvalidTransitionError):
            validate_transition(SessionState.CLOSED, SessionState.CONNECTING)

    def test_invalid_failed_to_connecting(self):
        with pytest.raises(InvalidTransitionError):
            validate_transition(SessionState.FAILED, SessionState.CONNECTING)

    def test_invalid_open_to_failed(self):
        with pytest.raises(InvalidTransitionError):
            validate_transition(SessionState.OPEN, SessionState.FAILED)

    def test_terminal_states(self):
        assert SessionState.CLOSED.is_terminal
        assert SessionState.FAILED.is_terminal
        assert not SessionState.CLOSING.is_terminal
