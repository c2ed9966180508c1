"""Mock Azure credential for offline testing.

Provides a mock TokenCredential standing in for both the interactive
browser credential and the service principal credential.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from azure.core.exceptions import ClientAuthenticationError

# Token validity duration
TOKEN_VALIDITY_HOURS = 1


@dataclass
class MockAccessToken:
    """Mock Azure access token.

    Mimics azure.core.credentials.AccessToken structure.
    """

    token: str
    expires_on: int

    def __post_init__(self) -> None:
        """Validate token format."""
        if not self.token:
            raise ValueError("Token cannot be empty")


class MockCredential:
    """Mock implementation of a TokenCredential.

    Returns fake tokens and remembers how it was constructed so tests can
    assert which authentication flow was selected.
    """

    def __init__(self, kind: str = "interactive", **init_kwargs: Any) -> None:
        """Initialize mock credential.

        Args:
            kind: Credential flow being simulated.
            **init_kwargs: Keyword arguments the real credential received.
        """
        self.kind = kind
        self.init_kwargs = init_kwargs
        self._get_token_calls: list[dict[str, Any]] = []
        self._token_counter = 0
        self._should_fail = False
        self._failure_message = "Authentication failed"
        self.closed = False

    @property
    def get_token_call_count(self) -> int:
        """Get the number of times get_token was called."""
        return len(self._get_token_calls)

    def set_failure(self, should_fail: bool, message: str = "Authentication failed") -> None:
        """Configure the credential to fail on get_token."""
        self._should_fail = should_fail
        self._failure_message = message

    def get_token(
        self,
        *scopes: str,
        claims: str | None = None,
        tenant_id: str | None = None,
        **kwargs: Any,
    ) -> MockAccessToken:
        """Get a mock access token.

        Raises:
            ClientAuthenticationError: If configured to fail.
        """
        self._get_token_calls.append({
            "scopes": scopes,
            "claims": claims,
            "tenant_id": tenant_id,
            "kwargs": kwargs,
        })

        if self._should_fail:
            raise ClientAuthenticationError(message=self._failure_message)

        self._token_counter += 1
        expires_on = datetime.now(UTC) + timedelta(hours=TOKEN_VALIDITY_HOURS)
        return MockAccessToken(
            token=f"mock-token-{self._token_counter}-{self.kind}",
            expires_on=int(expires_on.timestamp()),
        )

    def close(self) -> None:
        self.closed = True


def create_mock_credential(kind: str = "interactive", **init_kwargs: Any) -> MockCredential:
    """Factory function to create a mock credential."""
    return MockCredential(kind=kind, **init_kwargs)
