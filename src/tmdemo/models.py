"""Pydantic models describing the provisioning scenario.

These models provide:
1. Type-safe YAML parsing of an optional scenario file
2. Validation at the boundary (fail fast, before anything is purchased)
3. Defaults that reproduce the stock sample when no file is given
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Annotated

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from .config import MAX_RESOURCE_GROUP_NAME_LENGTH
from .naming import RANDOM_SUFFIX_LIMIT, create_random_name

# The regions in which web apps are created, one app service plan each
DEFAULT_REGIONS: tuple[str, ...] = (
    "westus",
    "eastus2",
    "eastasia",
    "japaneast",
    "northcentralus",
)

MAX_REGIONS = 10

# Phone numbers must use the registrar format: +<country code>.<number>
VALID_PHONE_PATTERN = r"^\+\d{1,3}\.\d{4,14}$"
VALID_REGION_PATTERN = r"^[a-z]{2,}[a-z0-9]*$"

VALID_ROUTING_METHODS = {
    "Performance",
    "Priority",
    "Weighted",
    "Geographic",
    "MultiValue",
    "Subnet",
}
VALID_MONITOR_PROTOCOLS = {"HTTP", "HTTPS", "TCP"}


# =============================================================================
# Domain Purchase
# =============================================================================


class AddressSpec(BaseModel):
    """Mailing address attached to every domain contact."""

    model_config = {"extra": "ignore", "populate_by_name": True}

    address1: str = "123 4th Ave"
    city: str = "Redmond"
    state: str = "WA"
    country: Annotated[str, Field(min_length=2, max_length=2)] = "US"
    postal_code: str = Field("98052", alias="postalCode")


class ContactSpec(BaseModel):
    """Registrant contact details reused for all four domain contacts."""

    model_config = {"extra": "ignore", "populate_by_name": True}

    email: str = "jondoe@contoso.com"
    first_name: Annotated[str, Field(min_length=1, alias="firstName")] = "Jon"
    last_name: Annotated[str, Field(min_length=1, alias="lastName")] = "Doe"
    phone: str = "+1.12455342242"
    organization: str = "Microsoft Inc."
    address: AddressSpec = Field(default_factory=AddressSpec)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        if "@" not in v or v.startswith("@") or v.endswith("@"):
            raise ValueError(f"email is not a valid address: {v}")
        return v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        if not re.match(VALID_PHONE_PATTERN, v):
            raise ValueError(f"phone must use the +<cc>.<number> format: {v}")
        return v


class DomainConsentSpec(BaseModel):
    """Legal agreement consent sent with the purchase request."""

    model_config = {"extra": "ignore", "populate_by_name": True}

    agreed_by: str = Field("100.64.152.221", alias="agreedBy")
    agreement_keys: list[str] = Field(
        default_factory=lambda: ["agreementKey1"], alias="agreementKeys"
    )


class DomainSpec(BaseModel):
    """App Service domain purchased for the web apps."""

    model_config = {"extra": "ignore", "populate_by_name": True}

    name_prefix: Annotated[str, Field(min_length=1, alias="namePrefix")] = "jsdkdemo-"
    tld: str = "com"
    contact: ContactSpec = Field(default_factory=ContactSpec)
    privacy: bool = True
    auto_renew: bool = Field(False, alias="autoRenew")
    consent: DomainConsentSpec = Field(default_factory=DomainConsentSpec)


# =============================================================================
# App Service
# =============================================================================


class SkuSpec(BaseModel):
    """App service plan pricing tier."""

    model_config = {"extra": "ignore"}

    name: str = "B1"
    tier: str = "Basic"
    size: str = "B1"


class PlanSpec(BaseModel):
    """App service plans, one per region."""

    model_config = {"extra": "ignore", "populate_by_name": True}

    name_prefix: Annotated[str, Field(min_length=1, alias="namePrefix")] = "jplan1_"
    sku: SkuSpec = Field(default_factory=SkuSpec)


class SourceControlSpec(BaseModel):
    """Repository attached to every web app."""

    model_config = {"extra": "ignore", "populate_by_name": True}

    repo_url: str = Field("https://github.com/jianghaolu/azure-site-test", alias="repoUrl")
    branch: str = "master"
    is_manual_integration: bool = Field(True, alias="isManualIntegration")
    is_mercurial: bool = Field(False, alias="isMercurial")

    @field_validator("repo_url")
    @classmethod
    def validate_repo_url(cls, v: str) -> str:
        if not v.startswith("https://"):
            raise ValueError(f"repoUrl must be an https URL: {v}")
        return v


class WebAppSpec(BaseModel):
    """Web apps, one per plan."""

    model_config = {"extra": "ignore", "populate_by_name": True}

    name_prefix: Annotated[str, Field(min_length=1, alias="namePrefix")] = "webapp1-"
    net_framework_version: str = Field("v4.6", alias="netFrameworkVersion")
    source_control: SourceControlSpec = Field(
        default_factory=SourceControlSpec, alias="sourceControl"
    )


# =============================================================================
# Traffic Manager
# =============================================================================


class MonitorSpec(BaseModel):
    """Endpoint health probing configuration."""

    model_config = {"extra": "ignore", "populate_by_name": True}

    protocol: str = "HTTP"
    port: Annotated[int, Field(ge=1, le=65535)] = 80
    path: str = "/testpath.aspx"
    interval_in_seconds: int = Field(10, alias="intervalInSeconds")
    timeout_in_seconds: Annotated[int, Field(ge=5, le=10, alias="timeoutInSeconds")] = 5
    tolerated_number_of_failures: Annotated[
        int, Field(ge=0, le=9, alias="toleratedNumberOfFailures")
    ] = 2

    @field_validator("protocol")
    @classmethod
    def validate_protocol(cls, v: str) -> str:
        upper = v.upper()
        if upper not in VALID_MONITOR_PROTOCOLS:
            raise ValueError(f"protocol must be one of {VALID_MONITOR_PROTOCOLS}")
        return upper

    @field_validator("interval_in_seconds")
    @classmethod
    def validate_interval(cls, v: int) -> int:
        # Traffic Manager only supports fast (10s) and normal (30s) probing
        if v not in (10, 30):
            raise ValueError("intervalInSeconds must be 10 or 30")
        return v

    @field_validator("timeout_in_seconds")
    @classmethod
    def validate_timeout_below_interval(cls, v: int, info: ValidationInfo) -> int:
        interval = info.data.get("interval_in_seconds")
        if interval is not None and v >= interval:
            raise ValueError("timeoutInSeconds must be lower than intervalInSeconds")
        return v


class TrafficManagerSpec(BaseModel):
    """Traffic Manager profile and the routing changes applied to it."""

    model_config = {"extra": "ignore", "populate_by_name": True}

    name_prefix: Annotated[str, Field(min_length=1, alias="namePrefix")] = "jsdktm-"
    routing_method: str = Field("Priority", alias="routingMethod")
    updated_routing_method: str = Field("Performance", alias="updatedRoutingMethod")
    monitor: MonitorSpec = Field(default_factory=MonitorSpec)

    @field_validator("routing_method", "updated_routing_method")
    @classmethod
    def validate_routing_method(cls, v: str) -> str:
        if v not in VALID_ROUTING_METHODS:
            raise ValueError(f"routing method must be one of {VALID_ROUTING_METHODS}")
        return v


# =============================================================================
# Scenario
# =============================================================================


@dataclass(frozen=True)
class ResourceNames:
    """Names generated for one run of the scenario."""

    resource_group: str
    domain: str
    plan_prefix: str
    web_app_prefix: str
    profile: str

    def plan_name(self, index: int) -> str:
        return f"{self.plan_prefix}{index}"

    def web_app_name(self, index: int) -> str:
        return f"{self.web_app_prefix}{index}"


class ScenarioSpec(BaseModel):
    """Complete description of what a run provisions."""

    model_config = {"extra": "ignore", "populate_by_name": True}

    resource_group_prefix: Annotated[str, Field(min_length=1, alias="resourceGroupPrefix")] = (
        "rgNEMV_"
    )
    regions: list[str] = Field(default_factory=lambda: list(DEFAULT_REGIONS))
    domain: DomainSpec = Field(default_factory=DomainSpec)
    plan: PlanSpec = Field(default_factory=PlanSpec)
    web_app: WebAppSpec = Field(default_factory=WebAppSpec, alias="webApp")
    traffic_manager: TrafficManagerSpec = Field(
        default_factory=TrafficManagerSpec, alias="trafficManager"
    )
    cert_password: Annotated[str, Field(min_length=8, alias="certPassword")] = "azure12345QWE!"
    pfx_file_name: str = Field("webapp_managetrafficmanager.pfx", alias="pfxFileName")

    @field_validator("resource_group_prefix")
    @classmethod
    def validate_resource_group_prefix(cls, v: str) -> str:
        # Room for the random suffix appended by create_random_name
        if len(v) + len(str(RANDOM_SUFFIX_LIMIT)) > MAX_RESOURCE_GROUP_NAME_LENGTH:
            raise ValueError(
                "resourceGroupPrefix leaves no room for the name suffix "
                f"(max {MAX_RESOURCE_GROUP_NAME_LENGTH} characters)"
            )
        return v

    @field_validator("regions")
    @classmethod
    def validate_regions(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("at least one region is required")
        if len(v) > MAX_REGIONS:
            raise ValueError(f"at most {MAX_REGIONS} regions are supported")
        normalized = [region.lower() for region in v]
        if len(set(normalized)) != len(normalized):
            raise ValueError("regions must be unique")
        for region in normalized:
            if not re.match(VALID_REGION_PATTERN, region):
                raise ValueError(f"invalid Azure region: {region}")
        return normalized

    @field_validator("pfx_file_name")
    @classmethod
    def validate_pfx_file_name(cls, v: str) -> str:
        if "/" in v or "\\" in v or not v.endswith(".pfx"):
            raise ValueError("pfxFileName must be a bare file name ending in .pfx")
        return v

    def generate_names(self) -> ResourceNames:
        """Generate fresh random names for a run."""
        return ResourceNames(
            resource_group=create_random_name(self.resource_group_prefix),
            domain=f"{create_random_name(self.domain.name_prefix)}.{self.domain.tld}",
            plan_prefix=create_random_name(self.plan.name_prefix),
            web_app_prefix=create_random_name(self.web_app.name_prefix) + "-",
            profile=create_random_name(self.traffic_manager.name_prefix),
        )
