"""Azure management client bundle."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from azure.core.credentials import TokenCredential
from azure.mgmt.resource import ResourceManagementClient
from azure.mgmt.trafficmanager import TrafficManagerManagementClient
from azure.mgmt.web import WebSiteManagementClient


@dataclass
class AzureClients:
    """Management clients sharing one credential and subscription."""

    subscription_id: str
    resources: Any
    web: Any
    traffic_manager: Any

    def close(self) -> None:
        for client in (self.resources, self.web, self.traffic_manager):
            close = getattr(client, "close", None)
            if callable(close):
                close()


def create_clients(credential: TokenCredential, subscription_id: str) -> AzureClients:
    """Create the resource, App Service and Traffic Manager clients."""
    return AzureClients(
        subscription_id=subscription_id,
        resources=ResourceManagementClient(
            credential=credential, subscription_id=subscription_id
        ),
        web=WebSiteManagementClient(credential=credential, subscription_id=subscription_id),
        traffic_manager=TrafficManagerManagementClient(
            credential=credential, subscription_id=subscription_id
        ),
    )
