"""Vault auth backend Pulumi dynamic provider.

Enables an auth method at a path and keeps its mount tuning in sync. The `tune`
property is a list with at most one mapping of tuning options, which is translated
through `ol_vault_provider.lib.mount_tune`.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import hvac
import pulumi
from pulumi import dynamic

from ol_vault_provider.lib.durations import parse_duration
from ol_vault_provider.lib.mount_tune import (
    LISTING_VISIBILITY_VALUES,
    TUNE_LIST_FIELDS,
    TUNE_TTL_FIELDS,
    MountConfigOutput,
    expand_auth_method_tune,
    flatten_auth_method_tune,
    normalize_tune,
    ttl_as_duration,
)
from ol_vault_provider.lib.property_checks import (
    check_bool,
    check_required_string,
    is_unknown,
)
from ol_vault_provider.lib.vault_client import (
    CONNECTION_KEYS,
    VAULT_REQUEST_ERRORS,
    VaultConnection,
    is_not_found,
    vault_client_from_props,
)

REPLACE_FIELDS = ("type", "path", "local")


def _check_tune(tune: Any, failures: list[dynamic.CheckFailure]) -> Any:
    """Validate the tune block and return it with numeric TTLs as duration strings."""
    if is_unknown(tune):
        return tune
    if not isinstance(tune, list | tuple) or len(tune) > 1:
        failures.append(
            dynamic.CheckFailure("tune", "tune must be a list with at most one entry")
        )
        return tune
    if not tune or is_unknown(tune[0]):
        return tune
    if not isinstance(tune[0], dict):
        failures.append(dynamic.CheckFailure("tune", "tune entries must be maps"))
        return tune
    options = dict(tune[0])
    for ttl_field in TUNE_TTL_FIELDS:
        if ttl_field in options and not is_unknown(options[ttl_field]):
            try:
                parse_duration(options[ttl_field])
                options[ttl_field] = ttl_as_duration(options[ttl_field])
            except ValueError:
                failures.append(
                    dynamic.CheckFailure(
                        "tune", f"{ttl_field} must be a duration such as 10m or 1h"
                    )
                )
    for list_field in TUNE_LIST_FIELDS:
        value = options.get(list_field)
        if value is None or is_unknown(value):
            continue
        if not isinstance(value, list | tuple) or not all(
            isinstance(element, str) for element in value
        ):
            failures.append(
                dynamic.CheckFailure("tune", f"{list_field} must be a list of strings")
            )
    visibility = options.get("listing_visibility", "")
    if not is_unknown(visibility) and visibility not in LISTING_VISIBILITY_VALUES:
        failures.append(
            dynamic.CheckFailure(
                "tune", "listing_visibility must be one of 'unauth' or 'hidden'"
            )
        )
    return [options]


def _tune_changed(
    old_tune: Sequence[dict[str, Any]] | None, new_tune: Sequence[dict[str, Any]]
) -> bool:
    """Compare only the tuning options that are set on the new inputs.

    Vault reports every tuning value, including the system defaults, so options that
    are not managed here are ignored.
    """
    if not new_tune:
        return False
    desired = normalize_tune(new_tune[0])
    current = normalize_tune(old_tune[0]) if old_tune else {}
    return any(desired.get(key) != current.get(key) for key in new_tune[0])


class OLVaultAuthBackendProvider(dynamic.ResourceProvider):
    """Pulumi Dynamic Resource Provider for Vault auth backends."""

    def check(
        self, _olds: dict[str, Any], news: dict[str, Any]
    ) -> dynamic.CheckResult:
        inputs = dict(news)
        failures: list[dynamic.CheckFailure] = []
        check_required_string(inputs, "type", failures)
        if not inputs.get("path"):
            inputs["path"] = inputs.get("type")
        check_required_string(inputs, "path", failures)
        if isinstance(inputs.get("path"), str) and not is_unknown(inputs["path"]):
            inputs["path"] = inputs["path"].strip("/")
        if inputs.get("description") is None:
            inputs["description"] = ""
        if inputs.get("local") is None:
            inputs["local"] = False
        check_bool(inputs, "local", failures)
        if inputs.get("tune") is None:
            inputs["tune"] = []
        inputs["tune"] = _check_tune(inputs["tune"], failures)
        return dynamic.CheckResult(inputs=inputs, failures=failures)

    def diff(
        self, _id: str, olds: dict[str, Any], news: dict[str, Any]
    ) -> dynamic.DiffResult:
        """Type, path and locality replace the backend. Description and tune update."""
        replaces = [key for key in REPLACE_FIELDS if olds.get(key) != news.get(key)]
        changed = [
            key
            for key in ("description", *CONNECTION_KEYS)
            if olds.get(key) != news.get(key)
        ]
        if _tune_changed(olds.get("tune"), news.get("tune") or []):
            changed.append("tune")
        return dynamic.DiffResult(
            changes=bool(replaces or changed),
            replaces=replaces,
            delete_before_replace=True,
        )

    def create(self, props: dict[str, Any]) -> dynamic.CreateResult:
        """Enable the auth method, then apply any tuning options."""
        connection, client = vault_client_from_props(props)
        path = (props.get("path") or props["type"]).strip("/")

        pulumi.log.debug(f"Writing auth {path} to Vault")
        try:
            client.sys.enable_auth_method(
                method_type=props["type"],
                description=props.get("description") or "",
                local=bool(props.get("local", False)),
                path=path,
            )
        except VAULT_REQUEST_ERRORS as exc:
            msg = f"error writing auth {path!r} to Vault: {exc}"
            raise RuntimeError(msg) from exc

        if props.get("tune"):
            self._tune(client, path, props["tune"])

        outs = self._read_backend(client, path, connection)
        if outs is None:
            msg = f"auth backend {path!r} was not found after enabling it"
            raise RuntimeError(msg)
        return dynamic.CreateResult(id_=path, outs=outs)

    def read(self, id_: str, props: dict[str, Any]) -> dynamic.ReadResult:
        connection, client = vault_client_from_props(props)
        outs = self._read_backend(client, id_, connection)
        if outs is None:
            pulumi.log.warn(f"Auth backend {id_} not found, removing from state")
            return dynamic.ReadResult(id_="", outs={})
        return dynamic.ReadResult(id_=id_, outs=outs)

    def update(
        self, id_: str, olds: dict[str, Any], news: dict[str, Any]
    ) -> dynamic.UpdateResult:
        """Push the description and the tuning options to the existing mount."""
        connection, client = vault_client_from_props(news)
        if olds.get("description") != news.get("description"):
            pulumi.log.debug(f"Updating description of auth {id_}")
            try:
                client.sys.tune_auth_method(
                    path=id_, description=news.get("description") or ""
                )
            except VAULT_REQUEST_ERRORS as exc:
                msg = f"error updating auth {id_!r} description: {exc}"
                raise RuntimeError(msg) from exc
        if news.get("tune"):
            self._tune(client, id_, news["tune"])

        outs = self._read_backend(client, id_, connection)
        if outs is None:
            msg = f"auth backend {id_!r} was not found after updating it"
            raise RuntimeError(msg)
        return dynamic.UpdateResult(outs=outs)

    def delete(self, id_: str, props: dict[str, Any]) -> None:
        _, client = vault_client_from_props(props)
        pulumi.log.debug(f"Deleting auth {id_} from Vault")
        try:
            client.sys.disable_auth_method(path=id_)
        except VAULT_REQUEST_ERRORS as exc:
            if not is_not_found(exc):
                msg = f"error disabling auth {id_!r} in Vault: {exc}"
                raise RuntimeError(msg) from exc
            pulumi.log.debug(f"Auth backend {id_} not found, removing from state")

    def _tune(
        self, client: hvac.Client, path: str, tune: Sequence[dict[str, Any]]
    ) -> None:
        params = expand_auth_method_tune(tune).to_request_params()
        if not params:
            return
        pulumi.log.debug(f"Tuning auth {path} with {sorted(params)}")
        try:
            client.sys.tune_auth_method(path=path, **params)
        except VAULT_REQUEST_ERRORS as exc:
            msg = f"error tuning auth {path!r} in Vault: {exc}"
            raise RuntimeError(msg) from exc

    def _read_backend(
        self, client: hvac.Client, path: str, connection: VaultConnection
    ) -> dict[str, Any] | None:
        pulumi.log.debug(f"Reading auth {path} from Vault")
        try:
            response = client.sys.list_auth_methods()
        except VAULT_REQUEST_ERRORS as exc:
            msg = f"error reading auth {path!r} from Vault: {exc}"
            raise RuntimeError(msg) from exc

        auth_methods = response.get("data", response)
        auth_method = auth_methods.get(path.strip("/") + "/")
        if auth_method is None:
            return None

        try:
            tuning = client.sys.read_auth_method_tuning(path=path)
        except VAULT_REQUEST_ERRORS as exc:
            msg = f"error reading tune information for auth {path!r}: {exc}"
            raise RuntimeError(msg) from exc
        tune_output = MountConfigOutput(**tuning.get("data", tuning))

        return {
            **connection.as_props(),
            "path": path,
            "type": auth_method.get("type"),
            "description": auth_method.get("description") or "",
            "local": bool(auth_method.get("local", False)),
            "accessor": auth_method.get("accessor"),
            "tune": [flatten_auth_method_tune(tune_output)],
        }


@dataclass
class OLVaultAuthBackendInputs:
    type: pulumi.Input[str]
    path: pulumi.Input[str] | None = None
    description: pulumi.Input[str] = ""
    local: pulumi.Input[bool] = False
    tune: pulumi.Input[list[dict[str, Any]]] = field(default_factory=list)
    connection: VaultConnection = field(default_factory=VaultConnection)


class OLVaultAuthBackend(dynamic.Resource):
    """An auth method enabled in Vault, identified by its mount path."""

    type: pulumi.Output[str]
    path: pulumi.Output[str]
    description: pulumi.Output[str]
    local: pulumi.Output[bool]
    accessor: pulumi.Output[str]
    tune: pulumi.Output[list[dict[str, Any]]]

    def __init__(
        self,
        name: str,
        backend_config: OLVaultAuthBackendInputs,
        opts: pulumi.ResourceOptions | None = None,
    ) -> None:
        resource_options = pulumi.ResourceOptions.merge(
            pulumi.ResourceOptions(additional_secret_outputs=["vault_token"]), opts
        )
        super().__init__(
            OLVaultAuthBackendProvider(),
            name,
            {
                "type": backend_config.type,
                "path": backend_config.path,
                "description": backend_config.description,
                "local": backend_config.local,
                "accessor": None,
                "tune": backend_config.tune,
                **backend_config.connection.as_props(),
            },
            resource_options,
        )
