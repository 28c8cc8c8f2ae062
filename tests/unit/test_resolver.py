# Copyright (c) 2026 HubPortal Contributors. All Rights Reserved.
"""Unit tests for TenantResolver."""

import json

import pytest

from hub_portal.core.errors import TenantNotFound
from hub_portal.core.hub import DEFAULT_HUB_SETTINGS
from hub_portal.services.resolver import TenantResolver
from hub_portal.storage.hub_store import HubStore


@pytest.fixture
def resolver(directory_client, hubs_dir):
    return TenantResolver(directory_client, HubStore(hubs_dir), default_slug="default")


class TestResolveSelector:
    @pytest.mark.asyncio
    async def test_directory_entry(self, resolver, test_wif):
        hub = await resolver.resolve("hive-138395")
        assert hub.tenant_id == "hive-138395"
        assert hub.community_id == "hive-138395"
        assert hub.admin_account == "taxi.admin"
        assert hub.display_name == "Test City"
        assert hub.settings == DEFAULT_HUB_SETTINGS
        # local default.json declares the same community and admin
        assert hub.signing_key_ref == test_wif

    @pytest.mark.asyncio
    async def test_no_key_ref_without_matching_local_hub(self, resolver):
        hub = await resolver.resolve("hive-100001")
        assert hub.admin_account == "airport.admin"
        assert hub.signing_key_ref is None

    @pytest.mark.asyncio
    async def test_idempotent_and_cached(self, resolver, fake_directory):
        first = await resolver.resolve("hive-138395")
        second = await resolver.resolve("hive-138395")
        assert first == second
        assert fake_directory.list_calls == 1

    @pytest.mark.asyncio
    async def test_unknown_selector(self, resolver):
        with pytest.raises(TenantNotFound) as exc:
            await resolver.resolve("hive-000000")
        assert exc.value.selector == "hive-000000"

    @pytest.mark.asyncio
    async def test_inactive_entry_is_not_found(self, resolver):
        with pytest.raises(TenantNotFound):
            await resolver.resolve("hive-999999")


class TestResolveDefault:
    @pytest.mark.asyncio
    async def test_no_selector_uses_default_hub(self, resolver, fake_directory):
        hub = await resolver.resolve(None)
        assert hub.tenant_id == "default"
        assert hub.community_id == "hive-138395"
        assert fake_directory.list_calls == 0

    @pytest.mark.asyncio
    async def test_blank_selector_uses_default_hub(self, resolver):
        hub = await resolver.resolve("  ")
        assert hub.tenant_id == "default"

    @pytest.mark.asyncio
    async def test_missing_default(self, directory_client, tmp_path):
        resolver = TenantResolver(directory_client, HubStore(tmp_path), default_slug="default")
        with pytest.raises(TenantNotFound):
            await resolver.resolve()

    @pytest.mark.asyncio
    async def test_incomplete_default(self, directory_client, tmp_path):
        (tmp_path / "default.json").write_text(json.dumps({
            "slug": "default", "community": "hive-138395", "adminAccount": "",
        }))
        resolver = TenantResolver(directory_client, HubStore(tmp_path), default_slug="default")
        with pytest.raises(TenantNotFound):
            await resolver.resolve()
