"""Vault audit device Pulumi dynamic provider."""

from dataclasses import dataclass, field
from typing import Any

import pulumi
from pulumi import dynamic

from ol_vault_provider.lib.property_checks import (
    check_bool,
    check_required_string,
    check_string_map,
)
from ol_vault_provider.lib.vault_client import (
    VAULT_REQUEST_ERRORS,
    VaultConnection,
    is_not_found,
    vault_client_from_props,
)

# Every audit device setting is fixed when the device is enabled
AUDIT_FIELDS = ("path", "type", "description", "options", "local")


class OLVaultAuditProvider(dynamic.ResourceProvider):
    """Pulumi Dynamic Resource Provider for Vault audit devices."""

    def check(
        self, _olds: dict[str, Any], news: dict[str, Any]
    ) -> dynamic.CheckResult:
        inputs = dict(news)
        failures: list[dynamic.CheckFailure] = []
        if inputs.get("description") is None:
            inputs["description"] = ""
        if inputs.get("local") is None:
            inputs["local"] = False
        if inputs.get("options") is None:
            inputs["options"] = {}
        check_required_string(inputs, "path", failures)
        check_required_string(inputs, "type", failures)
        check_bool(inputs, "local", failures)
        check_string_map(inputs, "options", failures)
        return dynamic.CheckResult(inputs=inputs, failures=failures)

    def diff(
        self, _id: str, olds: dict[str, Any], news: dict[str, Any]
    ) -> dynamic.DiffResult:
        """Any change to an audit device replaces it."""
        replaces = [key for key in AUDIT_FIELDS if olds.get(key) != news.get(key)]
        return dynamic.DiffResult(
            changes=bool(replaces),
            replaces=replaces,
            delete_before_replace=True,
        )

    def create(self, props: dict[str, Any]) -> dynamic.CreateResult:
        """Enable the audit device at the configured path."""
        connection, client = vault_client_from_props(props)
        path = props["path"]

        pulumi.log.debug(f"Creating audit {path} in Vault")
        try:
            client.sys.enable_audit_device(
                device_type=props["type"],
                description=props.get("description") or "",
                options=dict(props.get("options") or {}),
                path=path,
                local=bool(props.get("local", False)),
            )
        except VAULT_REQUEST_ERRORS as exc:
            msg = f"error writing audit {path!r} to Vault: {exc}"
            raise RuntimeError(msg) from exc

        return dynamic.CreateResult(
            id_=path,
            outs={
                **connection.as_props(),
                "path": path,
                "type": props["type"],
                "description": props.get("description") or "",
                "options": dict(props.get("options") or {}),
                "local": bool(props.get("local", False)),
            },
        )

    def read(self, id_: str, props: dict[str, Any]) -> dynamic.ReadResult:
        """Look the device up in the list of enabled audit devices."""
        connection, client = vault_client_from_props(props)
        path = id_

        pulumi.log.debug(f"Reading audit {path} from Vault")
        try:
            response = client.sys.list_enabled_audit_devices()
        except VAULT_REQUEST_ERRORS as exc:
            msg = f"error reading audit {path!r} from Vault: {exc}"
            raise RuntimeError(msg) from exc

        audits = response.get("data", response)
        # Vault always reports the path with a single trailing slash
        audit = audits.get(path.strip("/") + "/")
        if audit is None:
            pulumi.log.warn(f"Audit {path} not found, removing from state.")
            return dynamic.ReadResult(id_="", outs={})

        outs = {
            **connection.as_props(),
            "path": path,
            "type": audit.get("type"),
            "description": audit.get("description") or "",
            "local": bool(audit.get("local", False)),
            "options": props.get("options") or {},
        }
        if audit.get("options") is not None:
            outs["options"] = audit["options"]
        return dynamic.ReadResult(id_=path, outs=outs)

    def delete(self, id_: str, props: dict[str, Any]) -> None:
        """Disable the audit device, treating one that is already gone as deleted."""
        _, client = vault_client_from_props(props)
        pulumi.log.debug(f"Removing audit {id_} from Vault")
        try:
            client.sys.disable_audit_device(path=id_)
        except VAULT_REQUEST_ERRORS as exc:
            if not is_not_found(exc):
                msg = f"error deleting audit {id_!r} from Vault: {exc}"
                raise RuntimeError(msg) from exc
            pulumi.log.debug(f"Audit {id_} not found, removing from state")


@dataclass
class OLVaultAuditInputs:
    path: pulumi.Input[str]
    type: pulumi.Input[str]
    description: pulumi.Input[str] = ""
    options: pulumi.Input[dict[str, str]] = field(default_factory=dict)
    local: pulumi.Input[bool] = False
    connection: VaultConnection = field(default_factory=VaultConnection)


class OLVaultAudit(dynamic.Resource):
    """An audit device registered with Vault, identified by its path."""

    path: pulumi.Output[str]
    type: pulumi.Output[str]
    description: pulumi.Output[str]
    options: pulumi.Output[dict[str, str]]
    local: pulumi.Output[bool]

    def __init__(
        self,
        name: str,
        audit_config: OLVaultAuditInputs,
        opts: pulumi.ResourceOptions | None = None,
    ) -> None:
        resource_options = pulumi.ResourceOptions.merge(
            pulumi.ResourceOptions(additional_secret_outputs=["vault_token"]), opts
        )
        super().__init__(
            OLVaultAuditProvider(),
            name,
            {
                "path": audit_config.path,
                "type": audit_config.type,
                "description": audit_config.description,
                "options": audit_config.options,
                "local": audit_config.local,
                **audit_config.connection.as_props(),
            },
            resource_options,
        )
