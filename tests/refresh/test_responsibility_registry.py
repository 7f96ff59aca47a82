"""Tests for the responsibility registry and request paths."""

import pytest

from wmsync.activity.models import ApiType
from wmsync.errors import InvalidResponsibilityError
from wmsync.refresh.registry import ApiConfig, ResponsibilityRegistry


@pytest.fixture
def registry() -> ResponsibilityRegistry:
    return ResponsibilityRegistry()


class TestLookup:
    """Tests for registry lookups."""

    def test_defaults_cover_every_api_type(self, registry):
        types = {registry.api_type(name) for name in registry.names()}
        assert types == {ApiType.master, ApiType.config, ApiType.transactional}

    def test_api_type_of_unknown_is_unknown(self, registry):
        assert registry.api_type("NOPE") == ApiType.unknown

    def test_get_unknown_raises(self, registry):
        with pytest.raises(InvalidResponsibilityError) as exc_info:
            registry.get("NOPE")
        assert exc_info.value.code == "E-3001"
        assert exc_info.value.responsibility == "NOPE"

    def test_known_keeps_order(self, registry):
        assert registry.known(["SHIP_CONFIRM", "NOPE", "ITEM"]) == ["SHIP_CONFIRM", "ITEM"]

    def test_register_overrides(self, registry):
        count = len(registry)
        registry.register(
            "ITEM", ApiConfig(api_name="Items v2", url="EBS/24A/getItems", type=ApiType.master)
        )
        assert len(registry) == count
        assert registry.get("ITEM").url == "EBS/24A/getItems"

    def test_custom_registry(self):
        registry = ResponsibilityRegistry(
            {"PICK": ApiConfig(api_name="Picks", url="EBS/23B/getPicks", type=ApiType.transactional)}
        )
        assert registry.names() == ["PICK"]
        assert "ITEM" not in registry


class TestBuildPath:
    """Tests for URL segment building."""

    def test_plain_config_api(self, registry):
        assert registry.build_path("REASON") == "EBS/20D/getReasons"

    def test_org_id_and_sync_segments(self, registry):
        path = registry.build_path("ITEM", org_id="204")
        assert path == "EBS/20D/getItemsTable/204/''"

    def test_last_sync_time_value(self, registry):
        path = registry.build_path("ITEM", org_id="204", last_sync_time="2026-03-01")
        assert path.endswith("/204/2026-03-01")

    def test_full_refresh_segment(self, registry):
        path = registry.build_path("SUB_INV", org_id="204")
        assert path == "EBS/20D/getSubinventories/204/''/Y"

    def test_default_org_before_org(self, registry):
        path = registry.build_path("INVENTORY_PERIODS", org_id="204", default_org_id="1")
        assert path == "EBS/20D/getInventoryPeriods/1/204"

    def test_missing_org_id(self, registry):
        with pytest.raises(ValueError, match="requires orgId"):
            registry.build_path("ITEM")

    def test_missing_default_org_id(self, registry):
        with pytest.raises(ValueError, match="requires defaultOrgId"):
            registry.build_path("ACCOUNT")

    def test_metadata_path(self, registry):
        assert registry.metadata_path("REASON") == "EBS/20D/getReasons/metadata"
