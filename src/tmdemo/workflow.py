"""Traffic Manager provisioning sequence using the Azure SDK for Python.

The workflow runs a fixed script against a fresh resource group:
1. Create the resource group
2. Purchase an App Service domain
3. Generate a self-signed certificate for the domain
4. Create one app service plan per region
5. Create one web app per plan, bound to the domain and the certificate
6. Create a Traffic Manager profile with one endpoint per web app
7. Disable, delete and re-enable endpoints; change the routing method;
   disable and re-enable the profile
8. Delete the Traffic Manager profile
9. Always delete the resource group, even when an earlier step failed

Every SDK call is issued sequentially and awaited to completion before the
next one starts. Blocking SDK calls run in the default executor and are
bounded by the configured operation timeout; a call that times out is
still waited for before cleanup sends the resource group deletion.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from azure.mgmt.resource.resources.models import ResourceGroup
from azure.mgmt.trafficmanager.models import DnsConfig, Endpoint, MonitorConfig, Profile
from azure.mgmt.web.models import (
    Address,
    AppServicePlan,
    Certificate,
    Contact,
    Domain,
    DomainPurchaseConsent,
    HostNameBinding,
    Site,
    SiteConfig,
    SiteSourceControl,
    SkuDescription,
)

from .certificate import create_certificate, read_pfx
from .clients import AzureClients
from .config import Config
from .describe import (
    describe_app_service_plan,
    describe_domain,
    describe_traffic_manager_profile,
    describe_web_app,
)
from .models import ContactSpec, ResourceNames, ScenarioSpec
from .naming import endpoint_name

logger = logging.getLogger(__name__)

# Endpoint type used for App Service targets
AZURE_ENDPOINT_TYPE = "AzureEndpoints"

# Domains and Traffic Manager profiles are global resources
GLOBAL_LOCATION = "global"

ENABLED = "Enabled"
DISABLED = "Disabled"

# Job titles of the four domain contacts, keyed by Domain attribute
DOMAIN_CONTACT_ROLES: dict[str, str] = {
    "contact_registrant": "Registrant",
    "contact_admin": "Admin",
    "contact_billing": "Billing",
    "contact_tech": "Tech",
}

DISABLED_ENDPOINT_NAME = endpoint_name(1)
REMOVED_ENDPOINT_NAME = endpoint_name(2)


@dataclass
class WorkflowResult:
    """Outcome of a workflow run."""

    names: ResourceNames
    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    end_time: datetime | None = None
    resource_group_created: bool = False
    domain_id: str | None = None
    certificate_path: str | None = None
    plan_ids: list[str] = field(default_factory=list)
    web_app_ids: list[str] = field(default_factory=list)
    endpoint_names: list[str] = field(default_factory=list)
    endpoint_status: str | None = None
    routing_method: str | None = None
    profile_status: str | None = None
    profile_deleted: bool = False
    resource_group_deleted: bool = False
    cleanup_error: str | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None and self.profile_deleted

    @property
    def duration_seconds(self) -> float:
        if self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time).total_seconds()


def build_contact(contact: ContactSpec, job_title: str) -> Contact:
    """Build one of the four contact records sent with a domain purchase."""
    address = contact.address
    return Contact(
        email=contact.email,
        name_first=contact.first_name,
        name_last=contact.last_name,
        phone=contact.phone,
        job_title=job_title,
        organization=contact.organization,
        address_mailing=Address(
            address1=address.address1,
            city=address.city,
            country=address.country,
            postal_code=address.postal_code,
            state=address.state,
        ),
    )


class TrafficManagerWorkflow:
    """Provision, mutate and tear down a Traffic Manager deployment."""

    def __init__(
        self,
        config: Config,
        scenario: ScenarioSpec,
        clients: AzureClients,
        *,
        names: ResourceNames | None = None,
    ) -> None:
        """Initialize the workflow.

        Args:
            config: Sample configuration.
            scenario: What to provision.
            clients: Management clients for the target subscription.
            names: Resource names to use; generated from the scenario if None.
        """
        self._config = config
        self._scenario = scenario
        self._clients = clients
        self._names = names or scenario.generate_names()
        self._resource_group_name: str | None = None
        self.result = WorkflowResult(names=self._names)

    @property
    def names(self) -> ResourceNames:
        return self._names

    async def run(self) -> WorkflowResult:
        """Run the full sequence.

        Returns:
            WorkflowResult describing what was done.

        Raises:
            Exception: Whatever a provisioning or update step raised; the
                resource group is deleted before the exception propagates.
        """
        start_time = time.monotonic()
        try:
            await self._provision_and_exercise()
        except Exception as e:
            self.result.error = f"{type(e).__name__}: {e}"
            logger.error(
                "Workflow failed",
                extra={"error": str(e), "error_type": type(e).__name__},
            )
            raise
        finally:
            await self._cleanup()
            self.result.end_time = datetime.now(UTC)
            logger.info(
                "Workflow finished",
                extra={
                    "success": self.result.success,
                    "duration_seconds": round(time.monotonic() - start_time, 1),
                },
            )
        return self.result

    async def _provision_and_exercise(self) -> None:
        await self._create_resource_group()
        domain = await self._purchase_domain()
        pfx_blob = await self._create_certificate()
        plans = await self._create_app_service_plans()
        web_apps = await self._create_web_apps(plans, domain, pfx_blob)
        await self._create_traffic_manager(web_apps)
        await self._update_endpoints()
        await self._update_profile()
        await self._delete_profile()

    # =========================================================================
    # Provisioning
    # =========================================================================

    async def _create_resource_group(self) -> None:
        name = self._names.resource_group
        location = self._config.resource_group_location
        logger.info("Creating resource group...", extra={"resource_group": name})

        resource_group = await self._call(
            "create resource group",
            lambda: self._clients.resources.resource_groups.create_or_update(
                name, ResourceGroup(location=location)
            ),
        )
        self._resource_group_name = resource_group.name
        self.result.resource_group_created = True
        logger.info(f"Created a resource group with name: {resource_group.name}")

    async def _purchase_domain(self) -> Any:
        spec = self._scenario.domain
        domain_name = self._names.domain
        logger.info(f"Purchasing a domain {domain_name}...")

        contacts = {
            attribute: build_contact(spec.contact, job_title)
            for attribute, job_title in DOMAIN_CONTACT_ROLES.items()
        }
        domain_data = Domain(
            location=GLOBAL_LOCATION,
            privacy=spec.privacy,
            auto_renew=spec.auto_renew,
            consent=DomainPurchaseConsent(
                agreement_keys=list(spec.consent.agreement_keys),
                agreed_by=spec.consent.agreed_by,
                agreed_at=datetime.now(UTC),
            ),
            **contacts,
        )

        domain = await self._begin(
            "purchase domain",
            lambda: self._clients.web.domains.begin_create_or_update(
                self._resource_group_name, domain_name, domain_data
            ),
        )
        self.result.domain_id = domain.id
        logger.info(f"Purchased domain {domain.name}")
        logger.info(describe_domain(domain))
        return domain

    async def _create_certificate(self) -> bytes:
        pfx_name = self._scenario.pfx_file_name
        logger.info(f"Creating a self-signed certificate {pfx_name}...")

        loop = asyncio.get_event_loop()
        pfx_path = await loop.run_in_executor(
            None,
            lambda: create_certificate(
                self._names.domain,
                self._config.work_dir / pfx_name,
                self._scenario.cert_password,
                script=self._config.cert_script_path,
                shell=self._config.cert_shell,
                work_dir=self._config.work_dir,
                timeout_seconds=self._config.cert_timeout_seconds,
            ),
        )
        self.result.certificate_path = str(pfx_path)
        logger.info(f"Created self-signed certificate {pfx_name}")
        return read_pfx(pfx_path)

    async def _create_app_service_plans(self) -> list[Any]:
        sku = self._scenario.plan.sku
        plans: list[Any] = []

        for index, region in enumerate(self._scenario.regions):
            plan_name = self._names.plan_name(index)
            logger.info(f"Creating an app service plan {plan_name} in region {region}...")

            plan_data = AppServicePlan(
                location=region,
                sku=SkuDescription(name=sku.name, tier=sku.tier, size=sku.size),
            )
            plan = await self._begin(
                f"create app service plan {plan_name}",
                lambda name=plan_name, data=plan_data: (
                    self._clients.web.app_service_plans.begin_create_or_update(
                        self._resource_group_name, name, data
                    )
                ),
            )
            logger.info(f"Created app service plan {plan_name}")
            logger.info(describe_app_service_plan(plan))
            plans.append(plan)
            self.result.plan_ids.append(plan.id)

        return plans

    async def _create_web_apps(self, plans: list[Any], domain: Any, pfx_blob: bytes) -> list[Any]:
        spec = self._scenario.web_app
        web_apps: list[Any] = []

        for index, plan in enumerate(plans):
            web_app_name = self._names.web_app_name(index)
            host_name = f"{web_app_name}.{domain.name}"
            logger.info(f"Creating a web app {web_app_name} using the plan {plan.name}...")

            site_data = Site(
                location=plan.location,
                server_farm_id=plan.id,
                site_config=SiteConfig(net_framework_version=spec.net_framework_version),
            )
            web_app = await self._begin(
                f"create web app {web_app_name}",
                lambda name=web_app_name, data=site_data: (
                    self._clients.web.web_apps.begin_create_or_update(
                        self._resource_group_name, name, data
                    )
                ),
            )

            await self._bind_host_name(web_app, host_name, domain)
            await self._upload_certificate(plan, host_name, pfx_blob)
            await self._attach_source_control(web_app)

            logger.info(f"Created web app {web_app_name}")
            logger.info(describe_web_app(web_app))
            web_apps.append(web_app)
            self.result.web_app_ids.append(web_app.id)

        return web_apps

    async def _bind_host_name(self, web_app: Any, host_name: str, domain: Any) -> None:
        binding = HostNameBinding(
            site_name=web_app.name,
            domain_id=domain.id,
            host_name_type="Managed",
            ssl_state="SniEnabled",
            custom_host_name_dns_record_type="CName",
        )
        await self._call(
            f"bind host name {host_name}",
            lambda: self._clients.web.web_apps.create_or_update_host_name_binding(
                self._resource_group_name, web_app.name, host_name, binding
            ),
        )

    async def _upload_certificate(self, plan: Any, host_name: str, pfx_blob: bytes) -> None:
        certificate = Certificate(
            location=plan.location,
            host_names=[host_name],
            password=self._scenario.cert_password,
            pfx_blob=pfx_blob,
        )
        await self._call(
            f"upload certificate for {host_name}",
            lambda: self._clients.web.certificates.create_or_update(
                self._resource_group_name, host_name, certificate
            ),
        )

    async def _attach_source_control(self, web_app: Any) -> None:
        spec = self._scenario.web_app.source_control
        source_control = SiteSourceControl(
            repo_url=spec.repo_url,
            branch=spec.branch,
            is_manual_integration=spec.is_manual_integration,
            is_mercurial=spec.is_mercurial,
        )
        await self._begin(
            f"attach source control to {web_app.name}",
            lambda: self._clients.web.web_apps.begin_create_or_update_source_control(
                self._resource_group_name, web_app.name, source_control
            ),
        )

    async def _create_traffic_manager(self, web_apps: list[Any]) -> None:
        spec = self._scenario.traffic_manager
        monitor = spec.monitor
        profile_name = self._names.profile
        logger.info(f"Creating a traffic manager profile {profile_name} for the web apps...")

        profile_data = Profile(
            location=GLOBAL_LOCATION,
            profile_status=ENABLED,
            traffic_routing_method=spec.routing_method,
            dns_config=DnsConfig(relative_name=profile_name),
            monitor_config=MonitorConfig(
                protocol=monitor.protocol,
                port=monitor.port,
                path=monitor.path,
                interval_in_seconds=monitor.interval_in_seconds,
                timeout_in_seconds=monitor.timeout_in_seconds,
                tolerated_number_of_failures=monitor.tolerated_number_of_failures,
            ),
        )
        profile = await self._call(
            "create traffic manager profile",
            lambda: self._clients.traffic_manager.profiles.create_or_update(
                self._resource_group_name, profile_name, profile_data
            ),
        )
        self.result.routing_method = profile.traffic_routing_method
        self.result.profile_status = profile.profile_status

        # Priorities start at 1 and follow the web app order
        for priority, web_app in enumerate(web_apps, start=1):
            name = endpoint_name(priority)
            endpoint = Endpoint(
                name=name,
                target_resource_id=web_app.id,
                priority=priority,
            )
            await self._call(
                f"create endpoint {name}",
                lambda name=name, endpoint=endpoint: (
                    self._clients.traffic_manager.endpoints.create_or_update(
                        self._resource_group_name,
                        profile_name,
                        AZURE_ENDPOINT_TYPE,
                        name,
                        endpoint,
                    )
                ),
            )
            self.result.endpoint_names.append(name)

        profile = await self._call(
            "get traffic manager profile",
            lambda: self._clients.traffic_manager.profiles.get(
                self._resource_group_name, profile_name
            ),
        )
        logger.info(f"Created traffic manager {profile.name}")
        logger.info(describe_traffic_manager_profile(profile))

    # =========================================================================
    # State transitions
    # =========================================================================

    async def _update_endpoints(self) -> None:
        logger.info("Disabling and removing endpoint...")
        await self._set_endpoint_status(DISABLED_ENDPOINT_NAME, DISABLED)

        if REMOVED_ENDPOINT_NAME in self.result.endpoint_names:
            await self._call(
                f"delete endpoint {REMOVED_ENDPOINT_NAME}",
                lambda: self._clients.traffic_manager.endpoints.delete(
                    self._resource_group_name,
                    self._names.profile,
                    AZURE_ENDPOINT_TYPE,
                    REMOVED_ENDPOINT_NAME,
                ),
            )
            self.result.endpoint_names.remove(REMOVED_ENDPOINT_NAME)
        else:
            logger.warning(
                f"Endpoint {REMOVED_ENDPOINT_NAME} does not exist, skipping removal",
                extra={"endpoints": list(self.result.endpoint_names)},
            )
        logger.info("Endpoints updated")

        logger.info("Enabling endpoint...")
        endpoint = await self._set_endpoint_status(DISABLED_ENDPOINT_NAME, ENABLED)
        logger.info("Endpoint updated")
        logger.info(f"The current endpoint status is: {endpoint.endpoint_status}")
        self.result.endpoint_status = endpoint.endpoint_status

    async def _set_endpoint_status(self, name: str, status: str) -> Any:
        current = await self._call(
            f"get endpoint {name}",
            lambda: self._clients.traffic_manager.endpoints.get(
                self._resource_group_name, self._names.profile, AZURE_ENDPOINT_TYPE, name
            ),
        )
        logger.info(
            f"Endpoint {name} is {current.endpoint_status}, setting it to {status}",
            extra={"endpoint": name, "priority": current.priority},
        )
        return await self._call(
            f"set endpoint {name} {status.lower()}",
            lambda: self._clients.traffic_manager.endpoints.update(
                self._resource_group_name,
                self._names.profile,
                AZURE_ENDPOINT_TYPE,
                name,
                Endpoint(endpoint_status=status),
            ),
        )

    async def _update_profile(self) -> None:
        routing_method = self._scenario.traffic_manager.updated_routing_method

        logger.info("Changing traffic manager profile routing method...")
        profile = await self._patch_profile(
            "change routing method", Profile(traffic_routing_method=routing_method)
        )
        logger.info("Changed traffic manager profile routing method")

        logger.info("Disabling traffic manager profile...")
        profile = await self._patch_profile("disable profile", Profile(profile_status=DISABLED))
        logger.info("Traffic manager profile disabled")

        logger.info("Enabling traffic manager profile...")
        profile = await self._patch_profile("enable profile", Profile(profile_status=ENABLED))
        logger.info("Traffic manager profile enabled")

        self.result.routing_method = profile.traffic_routing_method
        self.result.profile_status = profile.profile_status

    async def _patch_profile(self, operation_name: str, patch: Profile) -> Any:
        return await self._call(
            operation_name,
            lambda: self._clients.traffic_manager.profiles.update(
                self._resource_group_name, self._names.profile, patch
            ),
        )

    async def _delete_profile(self) -> None:
        logger.info("Deleting the traffic manager profile...")
        await self._call(
            "delete traffic manager profile",
            lambda: self._clients.traffic_manager.profiles.delete(
                self._resource_group_name, self._names.profile
            ),
        )
        self.result.profile_deleted = True
        logger.info("Traffic manager profile deleted")

    # =========================================================================
    # Cleanup
    # =========================================================================

    async def _cleanup(self) -> None:
        """Delete the resource group; failures are logged, never raised."""
        if self._resource_group_name is None:
            return

        name = self._resource_group_name
        try:
            await remove_resource_group(
                self._clients, name, self._config.operation_timeout_seconds
            )
            self.result.resource_group_deleted = True
        except Exception as e:
            self.result.cleanup_error = str(e)
            logger.exception(
                "Failed to delete resource group",
                extra={"resource_group": name, "error": str(e)},
            )

    # =========================================================================
    # SDK call helpers
    # =========================================================================

    async def _call(self, operation_name: str, operation: Callable[[], Any]) -> Any:
        return await run_blocking(
            operation_name, operation, self._config.operation_timeout_seconds
        )

    async def _begin(self, operation_name: str, begin_operation: Callable[[], Any]) -> Any:
        return await run_long_running(
            operation_name, begin_operation, self._config.operation_timeout_seconds
        )


async def run_blocking(
    operation_name: str, operation: Callable[[], Any], timeout_seconds: float
) -> Any:
    """Run a blocking SDK call in the default executor with a timeout.

    A worker thread cannot be cancelled. On timeout the call is waited for
    until it returns, so that no other request is sent while it is still in
    flight, and TimeoutError is raised afterwards.
    """
    loop = asyncio.get_event_loop()
    future = loop.run_in_executor(None, operation)
    try:
        return await asyncio.wait_for(asyncio.shield(future), timeout=timeout_seconds)
    except TimeoutError:
        logger.error(
            f"{operation_name} timed out, waiting for the pending request to return",
            extra={"timeout_seconds": timeout_seconds},
        )
        await asyncio.wait([future])
        if not future.cancelled() and future.exception() is not None:
            logger.warning(f"{operation_name} failed after timing out: {future.exception()}")
        raise


async def run_long_running(
    operation_name: str, begin_operation: Callable[[], Any], timeout_seconds: float
) -> Any:
    """Start a long-running operation and wait for its result."""
    poller = await run_blocking(operation_name, begin_operation, timeout_seconds)
    return await run_blocking(operation_name, poller.result, timeout_seconds)


async def remove_resource_group(clients: AzureClients, name: str, timeout_seconds: float) -> None:
    """Delete a resource group and wait for the deletion to finish.

    Raises:
        AzureError: If the deletion fails.
        TimeoutError: If a step exceeds timeout_seconds.
    """
    logger.info("Deleting Resource Group...", extra={"resource_group": name})
    await run_long_running(
        "delete resource group",
        lambda: clients.resources.resource_groups.begin_delete(name),
        timeout_seconds,
    )
    logger.info(f"Deleted Resource Group: {name}")


async def delete_resource_group(
    clients: AzureClients, name: str, timeout_seconds: float
) -> bool:
    """Best-effort deletion of a leftover resource group.

    Returns:
        True if the group was deleted, False if deletion failed.
    """
    try:
        await remove_resource_group(clients, name, timeout_seconds)
    except Exception as e:
        logger.exception(
            "Failed to delete resource group",
            extra={"resource_group": name, "error": str(e)},
        )
        return False
    return True
