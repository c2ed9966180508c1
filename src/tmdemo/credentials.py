"""Credential selection for the Azure management clients.

Two flows are supported:
- interactive: a browser login (the default, required for domain purchases
  on most personal subscriptions)
- client-secret: a service principal built from CLIENT_ID, CLIENT_SECRET
  and TENANT_ID

The client secret is never logged.
"""

from __future__ import annotations

import logging

from azure.core.credentials import TokenCredential
from azure.identity import ClientSecretCredential, InteractiveBrowserCredential
from azure.mgmt.resource import SubscriptionClient

from .config import AuthMode, Config

logger = logging.getLogger(__name__)

ENABLED_SUBSCRIPTION_STATE = "Enabled"


class CredentialConfigurationError(Exception):
    """Raised when no usable credential or subscription can be resolved."""

    pass


def _mask(value: str) -> str:
    return value[:8] + "..." if len(value) > 8 else value


def get_credential(config: Config) -> TokenCredential:
    """Build the credential for the configured authentication flow.

    Args:
        config: Sample configuration.

    Returns:
        A token credential accepted by the management clients.

    Raises:
        CredentialConfigurationError: If client-secret mode lacks a value.
    """
    if config.auth_mode == AuthMode.CLIENT_SECRET:
        if not (config.client_id and config.client_secret and config.tenant_id):
            raise CredentialConfigurationError(
                "CLIENT_ID, CLIENT_SECRET and TENANT_ID are required for client-secret auth"
            )
        logger.info(
            "Using service principal credential",
            extra={"client_id": _mask(config.client_id), "tenant_id": config.tenant_id},
        )
        return ClientSecretCredential(
            tenant_id=config.tenant_id,
            client_id=config.client_id,
            client_secret=config.client_secret,
        )

    if config.client_id or config.client_secret:
        # Present in the environment but only honoured with AUTH_MODE=client-secret
        logger.debug("Service principal variables set but ignored in interactive mode")

    logger.info("Using interactive browser login")
    if config.tenant_id:
        return InteractiveBrowserCredential(tenant_id=config.tenant_id)
    return InteractiveBrowserCredential()


def resolve_subscription_id(credential: TokenCredential, config: Config) -> str:
    """Return the configured subscription, or the credential's default one.

    The default subscription is the first enabled subscription visible to
    the credential.

    Raises:
        CredentialConfigurationError: If no enabled subscription is visible.
    """
    if config.subscription_id:
        return config.subscription_id

    subscription_client = SubscriptionClient(credential)
    for subscription in subscription_client.subscriptions.list():
        if subscription.state == ENABLED_SUBSCRIPTION_STATE:
            logger.info(
                "Using default subscription",
                extra={
                    "subscription_id": subscription.subscription_id,
                    "display_name": subscription.display_name,
                },
            )
            return subscription.subscription_id

    raise CredentialConfigurationError(
        "No enabled subscription is visible to the credential; set SUBSCRIPTION_ID"
    )
