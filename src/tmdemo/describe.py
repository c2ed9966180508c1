"""Human-readable summaries of provisioned resources."""

from __future__ import annotations

from typing import Any


def resource_group_from_id(resource_id: str | None) -> str:
    """Extract the resource group name from an ARM resource ID.

    Resource IDs follow the pattern:
    /subscriptions/{sub}/resourceGroups/{rg}/providers/{namespace}/{type}/{name}
    """
    if not resource_id:
        return "unknown"

    segments = resource_id.strip("/").split("/")
    for index, segment in enumerate(segments[:-1]):
        if segment.lower() == "resourcegroups":
            return segments[index + 1]
    return "unknown"


def _format(kind: str, resource: Any, *extra: tuple[str, Any]) -> str:
    lines = [
        f"{kind}: {resource.id}",
        f"\tName: {resource.name}",
        f"\tResource group: {resource_group_from_id(resource.id)}",
        f"\tRegion: {resource.location}",
    ]
    lines.extend(f"\t{label}: {value}" for label, value in extra)
    return "\n".join(lines)


def describe_domain(domain: Any) -> str:
    return _format("Domain", domain)


def describe_app_service_plan(plan: Any) -> str:
    sku = plan.sku
    return _format(
        "App service plan",
        plan,
        ("Sku", sku.name if sku else None),
        ("Tier", sku.tier if sku else None),
        ("Size", sku.size if sku else None),
    )


def describe_web_app(web_app: Any) -> str:
    return _format(
        "Web app",
        web_app,
        ("AppServicePlanId", web_app.server_farm_id),
    )


def describe_traffic_manager_profile(profile: Any) -> str:
    endpoints = profile.endpoints or []
    return _format(
        "Traffic manager",
        profile,
        ("TrafficRoutingMethod", profile.traffic_routing_method),
        ("ProfileStatus", profile.profile_status),
        ("Endpoints", ", ".join(endpoint.name for endpoint in endpoints) or "none"),
    )
