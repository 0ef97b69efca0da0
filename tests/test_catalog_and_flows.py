import json
import logging

import pytest

from shadebot.logging_config import JSONFormatter, conversation_logger, mask_user_id
from shadebot.services.catalog_service import CatalogData, CatalogSize, StaticCatalogSource
from shadebot.services.flows import CampaignFlow, FlowRegistry, default_registry


class TestStaticCatalog:
    def test_sizes_sorted_by_area(self, catalog):
        areas = [s.area for s in catalog.get_sizes()]
        assert areas == sorted(areas)
        assert catalog.largest_size().size_str == "7x10"

    def test_find_size_either_orientation(self, catalog):
        assert catalog.find_size(6, 4).price == 950
        assert catalog.find_size(9, 9) is None

    def test_find_family_by_alias(self, catalog):
        assert catalog.find_family("¿tienen anti maleza?").key == "antimaleza"
        assert catalog.find_family("hola") is None

    def test_search_product_by_keywords(self, catalog):
        assert catalog.search_product("rollo de 100 metros").name == "Rollo de malla sombra"
        assert catalog.search_product("bicicleta") is None

    def test_rolls_and_colors(self, catalog):
        assert [r.width for r in catalog.get_rolls()] == [4.2, 2.1]
        assert "beige" in catalog.get_colors()

    def test_custom_catalog(self):
        source = StaticCatalogSource(CatalogData(sizes=[CatalogSize(width=5, height=5, price=900), CatalogSize(width=2, height=2, price=300)]))
        assert [s.size_str for s in source.get_sizes()] == ["2x2", "5x5"]


class _NoRefFlow(CampaignFlow):
    def handle(self, ctx):
        return None


class TestFlowRegistry:
    def test_default_flows(self):
        assert default_registry().refs() == ["confeccionada_general", "malla_beige"]

    def test_unknown_ref(self):
        registry = default_registry()
        assert registry.get("black_friday") is None
        assert registry.get(None) is None

    def test_flow_without_ref_rejected(self):
        with pytest.raises(ValueError):
            FlowRegistry([_NoRefFlow()])


class TestLogging:
    def test_json_formatter_masks_user_and_keeps_context(self):
        record = logging.LogRecord("shadebot.test", logging.INFO, __file__, 1, "Message dispatched", None, None)
        record.context = {"user_id": "5215550001111", "handler": "size_request"}
        data = json.loads(JSONFormatter().format(record))
        assert data["message"] == "Message dispatched"
        assert data["context"] == {"handler": "size_request"}
        assert data["user_id"] == "521******1111"

    def test_short_ids_are_not_masked(self):
        assert mask_user_id("web-42") == "web-42"

    def test_conversation_logger_stamps_user(self, caplog):
        log = conversation_logger("dispatch", "5215550001111")
        with caplog.at_level(logging.INFO, logger="shadebot.dispatch"):
            log.info("Conversation escalated", context={"reason": "frustrated"})
        assert caplog.records[-1].context == {"user_id": "5215550001111", "reason": "frustrated"}
