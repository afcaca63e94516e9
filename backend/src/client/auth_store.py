"""Explicit authentication state for the API client."""
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any


@dataclass(frozen=True)
class AuthState:
    """Immutable snapshot handed to subscribers."""

    token: str | None = None
    user: dict[str, Any] | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None


AuthListener = Callable[[AuthState], None]


class AuthStore:
    """
    Holds the session token and current user for one client.

    Owned by the caller and passed to PromptLibraryClient, so several clients
    (e.g. for different accounts) never share state. Listeners are notified
    with a fresh AuthState after every change.
    """

    def __init__(self, token: str | None = None, user: dict[str, Any] | None = None) -> None:
        self._state = AuthState(token=token, user=user)
        self._listeners: list[AuthListener] = []

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def token(self) -> str | None:
        return self._state.token

    def set_token(self, token: str | None) -> None:
        """Store a new token (None signs out but keeps the cached user)."""
        self._set(replace(self._state, token=token))

    def set_user(self, user: dict[str, Any] | None) -> None:
        self._set(replace(self._state, user=user))

    def clear(self) -> None:
        """Forget both token and user."""
        self._set(AuthState())

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        """
        Register a listener.

        Returns:
            A callable that removes the listener. Calling it twice is harmless.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set(self, state: AuthState) -> None:
        if state == self._state:
            return
        self._state = state
        # Copy so listeners may unsubscribe while being notified
        for listener in list(self._listeners):
            listener(state)
