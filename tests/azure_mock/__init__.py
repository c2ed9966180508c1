"""Azure API Mock for Integration Testing.

This module provides an in-memory implementation of the Azure management
clients used by the sample, enabling the whole workflow to run without
Azure connectivity.

Key Features:
- One shared state for resource groups, App Service and Traffic Manager
- Cascading resource group deletion
- Error injection per operation for failure scenarios
- Call recording for ordering and count assertions
- Fake certificate script

Usage:
    from azure_mock import MockAzureContext

    with MockAzureContext() as ctx:
        ctx.state.fail_operation("web.domains.begin_create_or_update")
        workflow = TrafficManagerWorkflow(config, scenario, ctx.clients())
        ...
"""

from .context import DEFAULT_SUBSCRIPTION_ID, FAKE_PFX_BYTES, MockAzureContext, mock_azure_context
from .credential import MockCredential, create_mock_credential
from .resources import (
    ENDPOINT_TYPE,
    PLAN_TYPE,
    PROFILE_TYPE,
    SITE_TYPE,
    MockCloudState,
    MockResource,
    mock_subscription,
)

__all__ = [
    "DEFAULT_SUBSCRIPTION_ID",
    "ENDPOINT_TYPE",
    "FAKE_PFX_BYTES",
    "PLAN_TYPE",
    "PROFILE_TYPE",
    "SITE_TYPE",
    "MockAzureContext",
    "MockCloudState",
    "MockCredential",
    "MockResource",
    "create_mock_credential",
    "mock_azure_context",
    "mock_subscription",
]
