"""Shared pytest fixtures for the Vault dynamic provider tests.

The providers talk to Vault through an hvac client built from the resource
properties. Tests swap that client for a MagicMock so that no request leaves the
process.
"""

from unittest import mock

import pytest

from ol_vault_provider.lib.vault_client import VaultConnection

VAULT_ADDRESS = "https://vault.example.com:8200"
VAULT_TOKEN = "s.test-token"  # noqa: S105
VAULT_NAMESPACE = "admin"


@pytest.fixture
def vault_connection() -> VaultConnection:
    """Connection settings that never fall back to config or the environment."""
    return VaultConnection(
        vault_address=VAULT_ADDRESS,
        vault_token=VAULT_TOKEN,
        vault_namespace=VAULT_NAMESPACE,
    )


@pytest.fixture
def connection_props(vault_connection) -> dict[str, str | None]:
    """Connection keys as they appear in a resource property bag."""
    return vault_connection.as_props()


@pytest.fixture
def mock_vault_client() -> mock.MagicMock:
    """Stand-in for `hvac.Client`."""
    return mock.MagicMock(name="hvac.Client")


@pytest.fixture
def patch_vault_client(mock_vault_client):
    """Make every provider build `mock_vault_client` instead of a real client."""
    with mock.patch(
        "ol_vault_provider.lib.vault_client.get_vault_client",
        return_value=mock_vault_client,
    ) as patched:
        yield patched
