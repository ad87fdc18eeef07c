"""Vault audit device provider for Pulumi infrastructure."""

from .audit_provider import OLVaultAudit, OLVaultAuditInputs, OLVaultAuditProvider

__all__ = ["OLVaultAudit", "OLVaultAuditInputs", "OLVaultAuditProvider"]
