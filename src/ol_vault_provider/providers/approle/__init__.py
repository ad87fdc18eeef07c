"""AppRole auth backend role provider for Pulumi infrastructure."""

from .role_provider import (
    OLVaultAppRoleAuthBackendRole,
    OLVaultAppRoleAuthBackendRoleInputs,
    OLVaultAppRoleAuthBackendRoleProvider,
    approle_auth_backend_role_backend_from_path,
    approle_auth_backend_role_name_from_path,
    approle_auth_backend_role_path,
)

__all__ = [
    "OLVaultAppRoleAuthBackendRole",
    "OLVaultAppRoleAuthBackendRoleInputs",
    "OLVaultAppRoleAuthBackendRoleProvider",
    "approle_auth_backend_role_backend_from_path",
    "approle_auth_backend_role_name_from_path",
    "approle_auth_backend_role_path",
]
