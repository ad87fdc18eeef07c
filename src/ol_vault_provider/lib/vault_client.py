"""
Connection handling shared by the Vault dynamic providers.

The Vault address and token can be passed explicitly to a resource, set as Pulumi
stack config, or provided through the environment.

Vault Address:
  As pulumi config: vault:address
  As environment variable: VAULT_ADDR

Vault Token:
  As pulumi config: vault:token
  As environment variable: VAULT_TOKEN

Vault Namespace (optional):
  As pulumi config: vault:namespace
  As environment variable: VAULT_NAMESPACE
"""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import hvac
import requests
from pulumi import Config

logger = logging.getLogger(__name__)

CONNECTION_KEYS = ("vault_address", "vault_token", "vault_namespace")
# Anything the hvac client raises when a request to Vault does not succeed
VAULT_REQUEST_ERRORS = (hvac.exceptions.VaultError, requests.RequestException)

env_map = {
    "vault_address": ["address", "VAULT_ADDR"],
    "vault_token": ["token", "VAULT_TOKEN"],
    "vault_namespace": ["namespace", "VAULT_NAMESPACE"],
}
required_settings = {"vault_address", "vault_token"}


@dataclass
class VaultConnection:
    vault_address: str | None = None
    vault_token: str | None = None
    vault_namespace: str | None = None

    def __post_init__(self) -> None:
        vault_config = Config("vault")
        for attr, lookups in env_map.items():
            if getattr(self, attr):
                continue
            setattr(
                self,
                attr,
                vault_config.get(lookups[0]) or os.environ.get(lookups[1]),
            )
            if attr in required_settings and not getattr(self, attr):
                msg = (
                    "The Vault provider is missing a required parameter. "
                    f"Please set the Pulumi config vault:{lookups[0]} or set the "
                    f"environment variable {lookups[1]}"
                )
                raise ValueError(msg)

    @classmethod
    def from_props(cls, props: Mapping[str, Any]) -> "VaultConnection":
        """Rebuild the connection from a resource property bag.

        Imported resources arrive without any properties, in which case the
        config/environment lookups fill in the gaps.
        """
        return cls(**{key: props.get(key) for key in CONNECTION_KEYS})

    def as_props(self) -> dict[str, str | None]:
        """Connection settings to persist in outputs so later calls can reach Vault."""
        return {key: getattr(self, key) for key in CONNECTION_KEYS}


def get_vault_client(connection: VaultConnection) -> hvac.Client:
    logger.debug("Creating Vault client for %s", connection.vault_address)
    return hvac.Client(
        url=connection.vault_address,
        token=connection.vault_token,
        namespace=connection.vault_namespace,
    )


def vault_client_from_props(
    props: Mapping[str, Any],
) -> tuple[VaultConnection, hvac.Client]:
    connection = VaultConnection.from_props(props)
    return connection, get_vault_client(connection)


def is_not_found(exc: Exception) -> bool:
    """Whether an error from Vault means the target path does not exist."""
    return isinstance(exc, hvac.exceptions.InvalidPath)


def coerce_int(data: Mapping[str, Any], key: str) -> int:
    """Decode a numeric field from a Vault response.

    :param data: The `data` block of a Vault response.
    :type data: Mapping[str, Any]

    :param key: The field to decode. A missing field decodes to 0.
    :type key: str

    :returns: The field as an integer.

    :rtype: int
    """
    value = data.get(key)
    if value is None:
        return 0
    if isinstance(value, bool):
        msg = f"expected {key} {value!r} to be a number, isn't"
        raise ValueError(msg)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    try:
        return int(str(value))
    except ValueError as exc:
        msg = f"expected {key} {value!r} to be a number, isn't"
        raise ValueError(msg) from exc
