"""Vault auth backend provider for Pulumi infrastructure."""

from .auth_backend_provider import (
    OLVaultAuthBackend,
    OLVaultAuthBackendInputs,
    OLVaultAuthBackendProvider,
)

__all__ = [
    "OLVaultAuthBackend",
    "OLVaultAuthBackendInputs",
    "OLVaultAuthBackendProvider",
]
