"""AppRole auth backend role Pulumi dynamic provider."""

import re
from dataclasses import dataclass, field
from typing import Any, NoReturn

import hvac
import pulumi
from pulumi import dynamic

from ol_vault_provider.lib.property_checks import (
    check_bool,
    check_non_negative_int,
    check_required_string,
    check_string_list,
    is_unknown,
)
from ol_vault_provider.lib.vault_client import (
    CONNECTION_KEYS,
    VAULT_REQUEST_ERRORS,
    VaultConnection,
    coerce_int,
    is_not_found,
    vault_client_from_props,
)

DEFAULT_BACKEND = "approle"
INT_FIELDS = (
    "secret_id_num_uses",
    "secret_id_ttl",
    "token_num_uses",
    "token_ttl",
    "token_max_ttl",
    "period",
)
SET_FIELDS = ("policies", "bound_cidr_list")
REPLACE_FIELDS = ("role_name", "backend")
UPDATE_FIELDS = ("bind_secret_id", *SET_FIELDS, *INT_FIELDS)

approle_auth_backend_role_backend_from_path_regex = re.compile(
    r"^auth/(.+)/role/.+$"
)
approle_auth_backend_role_name_from_path_regex = re.compile(r"^auth/.+/role/(.+)$")


def approle_auth_backend_role_path(backend: str, role: str) -> str:
    return f"auth/{backend.strip('/')}/role/{role.strip('/')}"


def approle_auth_backend_role_backend_from_path(path: str) -> str:
    match = approle_auth_backend_role_backend_from_path_regex.match(path)
    if not match:
        msg = "no backend found"
        raise ValueError(msg)
    return match.group(1)


def approle_auth_backend_role_name_from_path(path: str) -> str:
    match = approle_auth_backend_role_name_from_path_regex.match(path)
    if not match:
        msg = "no role found"
        raise ValueError(msg)
    return match.group(1)


def _raise_missing_role(path: str) -> NoReturn:
    msg = f"AppRole auth backend role {path!r} was not found after writing it"
    raise RuntimeError(msg)


def _decode_cidrs(value: Any) -> list[str]:
    # Vault before 0.10.0 returned a comma separated string
    if isinstance(value, str):
        return value.split(",") if value else []
    return [str(cidr) for cidr in value or []]


class OLVaultAppRoleAuthBackendRoleProvider(dynamic.ResourceProvider):
    """Pulumi Dynamic Resource Provider for roles on an AppRole auth backend."""

    def check(
        self, _olds: dict[str, Any], news: dict[str, Any]
    ) -> dynamic.CheckResult:
        """Apply defaults and validate the role properties."""
        inputs = dict(news)
        failures: list[dynamic.CheckFailure] = []

        if inputs.get("backend") is None:
            inputs["backend"] = DEFAULT_BACKEND
        if inputs.get("bind_secret_id") is None:
            inputs["bind_secret_id"] = True
        check_required_string(inputs, "role_name", failures)
        check_required_string(inputs, "backend", failures)
        check_bool(inputs, "bind_secret_id", failures)
        if isinstance(inputs["backend"], str) and not is_unknown(inputs["backend"]):
            inputs["backend"] = inputs["backend"].strip("/")

        for int_field in INT_FIELDS:
            if inputs.get(int_field) is None:
                inputs[int_field] = 0
            failure_count = len(failures)
            check_non_negative_int(inputs, int_field, failures)
            if len(failures) == failure_count and not is_unknown(inputs[int_field]):
                inputs[int_field] = int(inputs[int_field])

        for set_field in SET_FIELDS:
            if inputs.get(set_field) is None:
                inputs[set_field] = []
            failure_count = len(failures)
            check_string_list(inputs, set_field, failures)
            if len(failures) == failure_count and not is_unknown(inputs[set_field]):
                inputs[set_field] = sorted(set(inputs[set_field]))

        return dynamic.CheckResult(inputs=inputs, failures=failures)

    def diff(
        self, _id: str, olds: dict[str, Any], news: dict[str, Any]
    ) -> dynamic.DiffResult:
        """Role name and backend changes replace the role, the rest update it."""
        replaces = [key for key in REPLACE_FIELDS if olds.get(key) != news.get(key)]
        changed = [
            key
            for key in (*UPDATE_FIELDS, *CONNECTION_KEYS)
            if olds.get(key) != news.get(key)
        ]
        # role_id is computed by Vault unless it is set explicitly
        if news.get("role_id") and news["role_id"] != olds.get("role_id"):
            changed.append("role_id")
        return dynamic.DiffResult(
            changes=bool(replaces or changed),
            replaces=replaces,
            delete_before_replace=True,
        )

    def create(self, props: dict[str, Any]) -> dynamic.CreateResult:
        """Write the role and, when one is given, its RoleID."""
        connection, client = vault_client_from_props(props)
        backend = (props.get("backend") or DEFAULT_BACKEND).strip("/")
        path = approle_auth_backend_role_path(backend, props["role_name"])

        pulumi.log.debug(f"Writing AppRole auth backend role {path}")
        try:
            client.write_data(path, data=self._create_payload(props))
        except VAULT_REQUEST_ERRORS as exc:
            msg = f"error writing AppRole auth backend role {path!r}: {exc}"
            raise RuntimeError(msg) from exc
        pulumi.log.debug(f"Wrote AppRole auth backend role {path}")

        if props.get("role_id"):
            self._write_role_id(client, path, props["role_id"])

        outs = self._read_role(client, path, connection)
        if outs is None:
            _raise_missing_role(path)
        return dynamic.CreateResult(id_=path, outs=outs)

    def read(self, id_: str, props: dict[str, Any]) -> dynamic.ReadResult:
        """Refresh the role from Vault. An empty ID drops a deleted role from state."""
        connection, client = vault_client_from_props(props)
        outs = self._read_role(client, id_, connection)
        if outs is None:
            pulumi.log.warn(
                f"AppRole auth backend role {id_} not found, removing from state"
            )
            return dynamic.ReadResult(id_="", outs={})
        return dynamic.ReadResult(id_=id_, outs=outs)

    def update(
        self, id_: str, olds: dict[str, Any], news: dict[str, Any]
    ) -> dynamic.UpdateResult:
        """Rewrite every role setting, including the ones reset to their defaults."""
        connection, client = vault_client_from_props(news)
        path = id_

        pulumi.log.debug(f"Updating AppRole auth backend role {path}")
        data = {
            "policies": sorted(news.get("policies") or []),
            "bound_cidr_list": ",".join(sorted(news.get("bound_cidr_list") or [])),
            "bind_secret_id": bool(news.get("bind_secret_id", True)),
            **{key: int(news.get(key) or 0) for key in INT_FIELDS},
        }
        try:
            client.write_data(path, data=data)
        except VAULT_REQUEST_ERRORS as exc:
            msg = f"error updating AppRole auth backend role {path!r}: {exc}"
            raise RuntimeError(msg) from exc
        pulumi.log.debug(f"Updated AppRole auth backend role {path}")

        if news.get("role_id") and news["role_id"] != olds.get("role_id"):
            self._write_role_id(client, path, news["role_id"])

        outs = self._read_role(client, path, connection)
        if outs is None:
            _raise_missing_role(path)
        return dynamic.UpdateResult(outs=outs)

    def delete(self, id_: str, props: dict[str, Any]) -> None:
        """Delete the role, treating one that is already gone as deleted."""
        _, client = vault_client_from_props(props)
        pulumi.log.debug(f"Deleting AppRole auth backend role {id_}")
        try:
            client.delete(id_)
        except VAULT_REQUEST_ERRORS as exc:
            if not is_not_found(exc):
                msg = f"error deleting AppRole auth backend role {id_!r}: {exc}"
                raise RuntimeError(msg) from exc
            pulumi.log.debug(
                f"AppRole auth backend role {id_} not found, removing from state"
            )
            return
        pulumi.log.debug(f"Deleted AppRole auth backend role {id_}")

    def exists(self, id_: str, props: dict[str, Any]) -> bool:
        """Check whether the role is present in Vault."""
        _, client = vault_client_from_props(props)
        pulumi.log.debug(f"Checking if AppRole auth backend role {id_} exists")
        try:
            response = client.read(id_)
        except VAULT_REQUEST_ERRORS as exc:
            msg = f"error checking if AppRole auth backend role {id_!r} exists: {exc}"
            raise RuntimeError(msg) from exc
        pulumi.log.debug(f"Checked if AppRole auth backend role {id_} exists")
        return response is not None

    def _create_payload(self, props: dict[str, Any]) -> dict[str, Any]:
        """Only send the settings that have been given a value."""
        data: dict[str, Any] = {}
        if props.get("period"):
            data["period"] = int(props["period"])
        if props.get("policies"):
            data["policies"] = sorted(props["policies"])
        if props.get("bound_cidr_list"):
            data["bound_cidr_list"] = ",".join(sorted(props["bound_cidr_list"]))
        if props.get("bind_secret_id") is not None:
            data["bind_secret_id"] = bool(props["bind_secret_id"])
        for key in INT_FIELDS:
            if key != "period" and props.get(key):
                data[key] = int(props[key])
        return data

    def _write_role_id(self, client: hvac.Client, path: str, role_id: str) -> None:
        pulumi.log.debug(f"Writing AppRole auth backend role {path} RoleID")
        try:
            client.write_data(f"{path}/role-id", data={"role_id": role_id})
        except VAULT_REQUEST_ERRORS as exc:
            msg = f"error writing AppRole auth backend role {path!r}'s RoleID: {exc}"
            raise RuntimeError(msg) from exc
        pulumi.log.debug(f"Wrote AppRole auth backend role {path} RoleID")

    def _read_role(
        self, client: hvac.Client, path: str, connection: VaultConnection
    ) -> dict[str, Any] | None:
        """Fetch the role and its RoleID, returning None when the role is absent."""
        try:
            backend = approle_auth_backend_role_backend_from_path(path)
            role_name = approle_auth_backend_role_name_from_path(path)
        except ValueError as exc:
            msg = f"invalid path {path!r} for AppRole auth backend role: {exc}"
            raise ValueError(msg) from exc

        pulumi.log.debug(f"Reading AppRole auth backend role {path}")
        try:
            response = client.read(path)
        except VAULT_REQUEST_ERRORS as exc:
            msg = f"error reading AppRole auth backend role {path!r}: {exc}"
            raise RuntimeError(msg) from exc
        pulumi.log.debug(f"Read AppRole auth backend role {path}")
        if response is None:
            return None

        data = response.get("data") or {}
        policies = data.get("policies", data.get("token_policies")) or []
        outs: dict[str, Any] = {
            **connection.as_props(),
            "backend": backend,
            "role_name": role_name,
            "policies": sorted(str(policy) for policy in policies),
            "bound_cidr_list": sorted(_decode_cidrs(data.get("bound_cidr_list"))),
            "bind_secret_id": data.get("bind_secret_id"),
            "role_id": None,
        }
        for key in INT_FIELDS:
            outs[key] = coerce_int(data, key)

        pulumi.log.debug(f"Reading AppRole auth backend role {path} RoleID")
        try:
            role_id_response = client.read(f"{path}/role-id")
        except VAULT_REQUEST_ERRORS as exc:
            msg = f"error reading AppRole auth backend role {path!r} RoleID: {exc}"
            raise RuntimeError(msg) from exc
        pulumi.log.debug(f"Read AppRole auth backend role {path} RoleID")
        if role_id_response is not None:
            outs["role_id"] = (role_id_response.get("data") or {}).get("role_id")
        return outs


@dataclass
class OLVaultAppRoleAuthBackendRoleInputs:
    role_name: pulumi.Input[str]
    backend: pulumi.Input[str] = DEFAULT_BACKEND
    role_id: pulumi.Input[str] | None = None
    bind_secret_id: pulumi.Input[bool] = True
    bound_cidr_list: pulumi.Input[list[str]] = field(default_factory=list)
    policies: pulumi.Input[list[str]] = field(default_factory=list)
    secret_id_num_uses: pulumi.Input[int] = 0
    secret_id_ttl: pulumi.Input[int] = 0
    token_num_uses: pulumi.Input[int] = 0
    token_ttl: pulumi.Input[int] = 0
    token_max_ttl: pulumi.Input[int] = 0
    period: pulumi.Input[int] = 0
    connection: VaultConnection = field(default_factory=VaultConnection)


class OLVaultAppRoleAuthBackendRole(dynamic.Resource):
    """A role on an AppRole auth backend, identified by its `auth/.../role/...` path.

    Existing roles can be adopted with `pulumi.ResourceOptions(import_=<path>)`.
    """

    role_name: pulumi.Output[str]
    backend: pulumi.Output[str]
    role_id: pulumi.Output[str]
    bind_secret_id: pulumi.Output[bool]
    bound_cidr_list: pulumi.Output[list[str]]
    policies: pulumi.Output[list[str]]
    secret_id_num_uses: pulumi.Output[int]
    secret_id_ttl: pulumi.Output[int]
    token_num_uses: pulumi.Output[int]
    token_ttl: pulumi.Output[int]
    token_max_ttl: pulumi.Output[int]
    period: pulumi.Output[int]

    def __init__(
        self,
        name: str,
        role_config: OLVaultAppRoleAuthBackendRoleInputs,
        opts: pulumi.ResourceOptions | None = None,
    ) -> None:
        resource_options = pulumi.ResourceOptions.merge(
            pulumi.ResourceOptions(additional_secret_outputs=["vault_token"]), opts
        )
        super().__init__(
            OLVaultAppRoleAuthBackendRoleProvider(),
            name,
            {
                "role_name": role_config.role_name,
                "backend": role_config.backend,
                "role_id": role_config.role_id,
                "bind_secret_id": role_config.bind_secret_id,
                "bound_cidr_list": role_config.bound_cidr_list,
                "policies": role_config.policies,
                "secret_id_num_uses": role_config.secret_id_num_uses,
                "secret_id_ttl": role_config.secret_id_ttl,
                "token_num_uses": role_config.token_num_uses,
                "token_ttl": role_config.token_ttl,
                "token_max_ttl": role_config.token_max_ttl,
                "period": role_config.period,
                **role_config.connection.as_props(),
            },
            resource_options,
        )
