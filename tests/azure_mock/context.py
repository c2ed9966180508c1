"""Azure Mock Context for integration testing.

Provides a context manager that patches the Azure SDK constructors and the
certificate script with in-memory implementations.
"""

from __future__ import annotations

import subprocess
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any
from unittest import mock

from .credential import MockCredential, create_mock_credential
from .resources import (
    MockCloudState,
    MockResourceClient,
    MockSubscriptionClient,
    MockTrafficManagerClient,
    MockWebClient,
    mock_subscription,
)

DEFAULT_SUBSCRIPTION_ID = "00000000-0000-0000-0000-000000000001"

# Bytes written by the fake certificate script
FAKE_PFX_BYTES = b"0\x82\x05\x00mock-pfx"


class FakeCertificateScript:
    """Stand-in for subprocess.run when the certificate script is invoked.

    Writes a small PFX file to the path following ``-pfxFileName`` and
    returns the configured exit code.
    """

    def __init__(self, exit_code: int = 0, write_output: bool = True) -> None:
        self.exit_code = exit_code
        self.write_output = write_output
        self.invocations: list[dict[str, Any]] = []

    def __call__(self, cmd: list[str], **kwargs: Any) -> subprocess.CompletedProcess[str]:
        self.invocations.append({"cmd": list(cmd), **kwargs})
        if self.exit_code == 0 and self.write_output:
            pfx_path = Path(cmd[cmd.index("-pfxFileName") + 1])
            pfx_path.write_bytes(FAKE_PFX_BYTES)
        stderr = "" if self.exit_code == 0 else "script failed"
        return subprocess.CompletedProcess(cmd, self.exit_code, stdout="", stderr=stderr)


class MockAzureContext:
    """Context manager for Azure API mocking in integration tests.

    Patches:
    - tmdemo.clients: ResourceManagementClient, WebSiteManagementClient,
      TrafficManagerManagementClient -> mock clients sharing one state
    - tmdemo.credentials: InteractiveBrowserCredential, ClientSecretCredential
      -> MockCredential; SubscriptionClient -> MockSubscriptionClient
    - tmdemo.certificate: subprocess.run -> FakeCertificateScript

    Usage:
        with MockAzureContext() as ctx:
            workflow = TrafficManagerWorkflow(config, scenario, ctx.clients())
            await workflow.run()

            assert ctx.state.resource_count == 0
    """

    def __init__(
        self,
        *,
        subscription_id: str = DEFAULT_SUBSCRIPTION_ID,
        fail_auth: bool = False,
        cert_exit_code: int = 0,
        subscriptions: list[Any] | None = None,
    ) -> None:
        """Initialize mock context.

        Args:
            subscription_id: Subscription the mock clients operate on.
            fail_auth: Whether token acquisition should fail.
            cert_exit_code: Exit code of the fake certificate script.
            subscriptions: Subscriptions listed by SubscriptionClient.
        """
        self._subscription_id = subscription_id
        self._fail_auth = fail_auth
        self._subscriptions = (
            subscriptions if subscriptions is not None else [mock_subscription(subscription_id)]
        )
        self.cert_script = FakeCertificateScript(exit_code=cert_exit_code)
        self.credentials: list[MockCredential] = []

        self._state: MockCloudState | None = None
        self._patches: list[Any] = []

    @property
    def state(self) -> MockCloudState:
        """Get the mock cloud state.

        Raises:
            RuntimeError: If accessed outside of context.
        """
        if self._state is None:
            raise RuntimeError("MockAzureContext must be used as a context manager")
        return self._state

    @property
    def subscription_id(self) -> str:
        return self._subscription_id

    def clients(self) -> Any:
        """Build an AzureClients bundle through the patched constructors."""
        from tmdemo.clients import create_clients

        return create_clients(create_mock_credential(), self._subscription_id)

    def _credential_factory(self, kind: str) -> Any:
        def factory(*_args: Any, **kwargs: Any) -> MockCredential:
            credential = create_mock_credential(kind, **kwargs)
            if self._fail_auth:
                credential.set_failure(True, "Simulated authentication failure")
            self.credentials.append(credential)
            return credential

        return factory

    def __enter__(self) -> MockAzureContext:
        """Enter the mock context, applying patches."""
        self._state = MockCloudState(self._subscription_id)
        state = self._state

        def client_factory(client_cls: type) -> Any:
            def factory(credential: Any, subscription_id: str, **_kwargs: Any) -> Any:
                return client_cls(state, subscription_id)

            return factory

        self._patches = [
            mock.patch(
                "tmdemo.clients.ResourceManagementClient",
                side_effect=client_factory(MockResourceClient),
            ),
            mock.patch(
                "tmdemo.clients.WebSiteManagementClient",
                side_effect=client_factory(MockWebClient),
            ),
            mock.patch(
                "tmdemo.clients.TrafficManagerManagementClient",
                side_effect=client_factory(MockTrafficManagerClient),
            ),
            mock.patch(
                "tmdemo.credentials.InteractiveBrowserCredential",
                side_effect=self._credential_factory("interactive"),
            ),
            mock.patch(
                "tmdemo.credentials.ClientSecretCredential",
                side_effect=self._credential_factory("client-secret"),
            ),
            mock.patch(
                "tmdemo.credentials.SubscriptionClient",
                side_effect=lambda credential, *_a, **_k: MockSubscriptionClient(
                    credential, self._subscriptions
                ),
            ),
            mock.patch("tmdemo.certificate.subprocess.run", side_effect=self.cert_script),
        ]

        for patch in self._patches:
            patch.start()

        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit the mock context, removing patches."""
        for patch in reversed(self._patches):
            patch.stop()
        self._patches.clear()


@contextmanager
def mock_azure_context(
    *,
    subscription_id: str = DEFAULT_SUBSCRIPTION_ID,
    fail_auth: bool = False,
    cert_exit_code: int = 0,
) -> Generator[MockAzureContext, None, None]:
    """Convenience function for creating a mock Azure context."""
    ctx = MockAzureContext(
        subscription_id=subscription_id,
        fail_auth=fail_auth,
        cert_exit_code=cert_exit_code,
    )
    with ctx:
        yield ctx
