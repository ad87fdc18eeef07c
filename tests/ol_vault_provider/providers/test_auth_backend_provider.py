"""Unit tests for the Vault auth backend dynamic provider and its tune handling."""

import hvac
import pytest

from ol_vault_provider.providers.auth_backend import OLVaultAuthBackendProvider

AUTH_METHODS = {
    "token/": {"type": "token", "description": "token based credentials"},
    "approle/": {
        "type": "approle",
        "description": "appRole backend for QA",
        "local": False,
        "accessor": "auth_approle_5e4c2ee1",
    },
}
APPROLE_TUNING = {
    "default_lease_ttl": 600,
    "max_lease_ttl": 1200,
    "force_no_cache": False,
    "token_type": "default-service",
    "audit_non_hmac_request_keys": ["role_id"],
    "listing_visibility": "",
}


@pytest.fixture
def provider():
    return OLVaultAuthBackendProvider()


@pytest.fixture
def approle_in_vault(mock_vault_client):
    mock_vault_client.sys.list_auth_methods.return_value = {"data": AUTH_METHODS}
    mock_vault_client.sys.read_auth_method_tuning.return_value = {
        "data": APPROLE_TUNING
    }
    return mock_vault_client


class TestCheck:
    def test_path_defaults_to_type(self, provider):
        result = provider.check({}, {"type": "approle"})

        assert result.failures == []
        assert result.inputs["path"] == "approle"
        assert result.inputs["tune"] == []
        assert result.inputs["local"] is False

    def test_path_is_trimmed(self, provider):
        result = provider.check({}, {"type": "approle", "path": "/ci/approle/"})

        assert result.inputs["path"] == "ci/approle"

    def test_tune_with_more_than_one_entry(self, provider):
        result = provider.check({}, {"type": "approle", "tune": [{}, {}]})

        assert [failure.property for failure in result.failures] == ["tune"]

    def test_invalid_tune_values(self, provider):
        result = provider.check(
            {},
            {
                "type": "approle",
                "tune": [
                    {
                        "default_lease_ttl": "ten minutes",
                        "listing_visibility": "public",
                        "passthrough_request_headers": "X-Custom",
                    }
                ],
            },
        )

        reasons = sorted(failure.reason for failure in result.failures)
        assert reasons == [
            "default_lease_ttl must be a duration such as 10m or 1h",
            "listing_visibility must be one of 'unauth' or 'hidden'",
            "passthrough_request_headers must be a list of strings",
        ]

    @pytest.mark.parametrize(
        ("ttl", "expected"),
        [(600, "10m"), (600.0, "10m"), ("600", "600"), ("10m", "10m")],
    )
    def test_numeric_ttls_become_durations(self, provider, ttl, expected):
        news = {"type": "approle", "tune": [{"default_lease_ttl": ttl}]}

        result = provider.check({}, news)

        assert result.failures == []
        assert result.inputs["tune"] == [{"default_lease_ttl": expected}]
        assert news["tune"] == [{"default_lease_ttl": ttl}]

    @pytest.mark.parametrize("ttl", [1.5, -60])
    def test_fractional_or_negative_ttl(self, provider, ttl):
        result = provider.check(
            {}, {"type": "approle", "tune": [{"max_lease_ttl": ttl}]}
        )

        assert [failure.reason for failure in result.failures] == [
            "max_lease_ttl must be a duration such as 10m or 1h"
        ]


class TestDiff:
    def test_equivalent_durations_are_not_a_change(self, provider):
        olds = {
            "type": "approle",
            "path": "approle",
            "tune": [
                {
                    "default_lease_ttl": "1h",
                    "max_lease_ttl": "768h",
                    "listing_visibility": "",
                }
            ],
        }
        news = {
            "type": "approle",
            "path": "approle",
            "tune": [{"default_lease_ttl": "60m"}],
        }

        assert provider.diff("approle", olds, news).changes is False

    def test_tune_change_updates(self, provider):
        olds = {
            "type": "approle",
            "path": "approle",
            "tune": [{"default_lease_ttl": "10m", "listing_visibility": ""}],
        }
        news = {
            "type": "approle",
            "path": "approle",
            "tune": [{"default_lease_ttl": "10m", "listing_visibility": "unauth"}],
        }

        result = provider.diff("approle", olds, news)

        assert result.changes is True
        assert result.replaces == []

    def test_numeric_ttl_in_state_matches_duration(self, provider):
        olds = {
            "type": "approle",
            "path": "approle",
            "tune": [{"default_lease_ttl": 600.0}],
        }
        news = {
            "type": "approle",
            "path": "approle",
            "tune": [{"default_lease_ttl": "10m"}],
        }

        assert provider.diff("approle", olds, news).changes is False

    def test_unmanaged_tune_is_ignored(self, provider):
        olds = {"type": "approle", "path": "approle", "tune": [{"max_lease_ttl": "1h"}]}
        news = {"type": "approle", "path": "approle", "tune": []}

        assert provider.diff("approle", olds, news).changes is False

    def test_path_change_replaces(self, provider):
        olds = {"type": "approle", "path": "approle"}
        news = {"type": "approle", "path": "ci-approle"}

        assert provider.diff("approle", olds, news).replaces == ["path"]


@pytest.mark.usefixtures("patch_vault_client")
class TestLifecycle:
    def test_create_enables_and_tunes(
        self, provider, approle_in_vault, connection_props
    ):
        result = provider.create(
            {
                "type": "approle",
                "path": "approle",
                "description": "appRole backend for QA",
                "local": False,
                "tune": [
                    {
                        "default_lease_ttl": "10m",
                        "max_lease_ttl": "20m",
                        "audit_non_hmac_request_keys": ["role_id"],
                    }
                ],
                **connection_props,
            }
        )

        approle_in_vault.sys.enable_auth_method.assert_called_once_with(
            method_type="approle",
            description="appRole backend for QA",
            local=False,
            path="approle",
        )
        approle_in_vault.sys.tune_auth_method.assert_called_once_with(
            path="approle",
            default_lease_ttl="10m",
            max_lease_ttl="20m",
            audit_non_hmac_request_keys=["role_id"],
        )
        assert result.id == "approle"
        assert result.outs["accessor"] == "auth_approle_5e4c2ee1"
        assert result.outs["tune"] == [
            {
                "default_lease_ttl": "10m",
                "max_lease_ttl": "20m",
                "audit_non_hmac_request_keys": ["role_id"],
                "listing_visibility": "",
            }
        ]

    def test_create_without_tune_skips_tuning(
        self, provider, approle_in_vault, connection_props
    ):
        provider.create({"type": "approle", "tune": [], **connection_props})

        approle_in_vault.sys.tune_auth_method.assert_not_called()

    def test_create_with_checked_numeric_tune(
        self, provider, approle_in_vault, connection_props
    ):
        checked = provider.check(
            {},
            {
                "type": "approle",
                "tune": [{"default_lease_ttl": 600.0, "max_lease_ttl": 1200}],
                **connection_props,
            },
        )

        provider.create(checked.inputs)

        approle_in_vault.sys.tune_auth_method.assert_called_once_with(
            path="approle", default_lease_ttl="10m", max_lease_ttl="20m"
        )

    def test_read_missing_backend(self, provider, approle_in_vault, connection_props):
        result = provider.read("userpass", connection_props)

        assert result.id == ""
        approle_in_vault.sys.read_auth_method_tuning.assert_not_called()

    def test_import_uses_environment_connection(
        self, provider, approle_in_vault, monkeypatch
    ):
        monkeypatch.setenv("VAULT_ADDR", "https://vault.env.example.com")
        monkeypatch.setenv("VAULT_TOKEN", "s.env-token")

        result = provider.read("approle", {})

        assert result.id == "approle"
        assert result.outs["type"] == "approle"
        assert result.outs["tune"][0]["default_lease_ttl"] == "10m"
        assert result.outs["vault_address"] == "https://vault.env.example.com"
        approle_in_vault.sys.read_auth_method_tuning.assert_called_once_with(
            path="approle"
        )

    def test_update_description_and_tune(
        self, provider, approle_in_vault, connection_props
    ):
        provider.update(
            "approle",
            {"description": "old"},
            {
                "type": "approle",
                "description": "new",
                "tune": [{"listing_visibility": "unauth"}],
                **connection_props,
            },
        )

        approle_in_vault.sys.tune_auth_method.assert_any_call(
            path="approle", description="new"
        )
        approle_in_vault.sys.tune_auth_method.assert_any_call(
            path="approle", listing_visibility="unauth"
        )

    def test_tune_failure(self, provider, approle_in_vault, connection_props):
        approle_in_vault.sys.tune_auth_method.side_effect = (
            hvac.exceptions.InvalidRequest("invalid listing_visibility")
        )

        with pytest.raises(RuntimeError, match="error tuning auth 'approle'"):
            provider.update(
                "approle",
                {"description": ""},
                {
                    "type": "approle",
                    "description": "",
                    "tune": [{"listing_visibility": "unauth"}],
                    **connection_props,
                },
            )

    def test_delete_missing_backend(
        self, provider, mock_vault_client, connection_props
    ):
        mock_vault_client.sys.disable_auth_method.side_effect = (
            hvac.exceptions.InvalidPath()
        )

        provider.delete("approle", connection_props)

        mock_vault_client.sys.disable_auth_method.assert_called_once_with(
            path="approle"
        )
