"""
Normalization of auth mount tuning settings.

The `tune` property of an auth backend is a list holding at most one mapping. These
helpers translate that shape to and from the request/response pair used by the Vault
`sys/auth/<path>/tune` endpoint. Requests carry TTLs as duration strings while
responses report them as integer seconds, so the two directions are not strict
inverses.
"""

from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel

from ol_vault_provider.lib.durations import format_duration, parse_duration

TUNE_LIST_FIELDS = (
    "audit_non_hmac_request_keys",
    "audit_non_hmac_response_keys",
    "passthrough_request_headers",
)
TUNE_TTL_FIELDS = ("default_lease_ttl", "max_lease_ttl")
LISTING_VISIBILITY_VALUES = ("", "unauth", "hidden")


def ttl_as_duration(value: str | float) -> str:
    """Tune TTLs are sent as duration strings, so bare seconds are formatted."""
    if isinstance(value, str):
        return value
    return format_duration(parse_duration(value))


class MountConfigInput(BaseModel):
    """Tuning parameters as they are sent to Vault."""

    default_lease_ttl: str = ""
    max_lease_ttl: str = ""
    audit_non_hmac_request_keys: list[str] | None = None
    audit_non_hmac_response_keys: list[str] | None = None
    listing_visibility: str = ""
    passthrough_request_headers: list[str] | None = None

    def to_request_params(self) -> dict[str, Any]:
        """Keyword arguments for `hvac.api.SystemBackend.tune_auth_method`.

        Unset values are left out so that Vault keeps its current setting for them.
        """
        params: dict[str, Any] = {}
        for field_name, field_value in self.model_dump().items():
            if field_value is None or field_value == "":
                continue
            params[field_name] = field_value
        return params


class MountConfigOutput(BaseModel):
    """Tuning parameters as they are reported by Vault."""

    default_lease_ttl: int = 0
    max_lease_ttl: int = 0
    audit_non_hmac_request_keys: list[str] | None = None
    audit_non_hmac_response_keys: list[str] | None = None
    listing_visibility: str = ""
    passthrough_request_headers: list[str] | None = None


def expand_auth_method_tune(
    flattened: Sequence[Mapping[str, Any]],
) -> MountConfigInput:
    """Build a tune request from the list-of-one-mapping property shape.

    Only keys present in the mapping are set on the request, everything else keeps
    its zero value. An empty list produces an empty request.
    """
    if not flattened:
        return MountConfigInput()
    raw = flattened[0]
    data: dict[str, Any] = {}
    for ttl_field in TUNE_TTL_FIELDS:
        if ttl_field in raw:
            data[ttl_field] = ttl_as_duration(raw[ttl_field])
    for list_field in TUNE_LIST_FIELDS:
        if list_field in raw:
            data[list_field] = [str(element) for element in raw[list_field]]
    if "listing_visibility" in raw:
        data["listing_visibility"] = raw["listing_visibility"]
    return MountConfigInput(**data)


def flatten_auth_method_tune(response: MountConfigOutput) -> dict[str, Any]:
    """Convert a tune response into the mapping stored in resource state.

    `listing_visibility` is always present, even when empty, so that an explicit
    "not set" is visible to the engine.
    """
    flattened: dict[str, Any] = {}
    for ttl_field in TUNE_TTL_FIELDS:
        ttl_seconds = getattr(response, ttl_field)
        if ttl_seconds:
            flattened[ttl_field] = format_duration(ttl_seconds)
    for list_field in TUNE_LIST_FIELDS:
        list_value = getattr(response, list_field)
        if list_value:
            flattened[list_field] = list(list_value)
    flattened["listing_visibility"] = response.listing_visibility
    return flattened


def normalize_tune(tune: Mapping[str, Any]) -> dict[str, Any]:
    """Reduce a single tune mapping to a form where equivalent settings compare equal.

    TTLs become seconds, so "60m" and "1h" are the same, and empty lists are dropped.
    """
    normalized: dict[str, Any] = {}
    for ttl_field in TUNE_TTL_FIELDS:
        ttl_seconds = parse_duration(tune.get(ttl_field) or "")
        if ttl_seconds:
            normalized[ttl_field] = ttl_seconds
    for list_field in TUNE_LIST_FIELDS:
        if tune.get(list_field):
            normalized[list_field] = list(tune[list_field])
    normalized["listing_visibility"] = tune.get("listing_visibility") or ""
    return normalized
