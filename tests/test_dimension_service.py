from shadebot.services.dimension_service import (
    MatchKind,
    build_multi_size_response,
    build_size_response,
    find_containing,
    format_price,
    resolve_dimensions,
)
from shadebot.services.extraction import Dimensions, parse_dimensions


class TestResolveDimensions:
    def test_exact(self, catalog):
        verdict = resolve_dimensions(Dimensions(3, 4), catalog.get_sizes())
        assert verdict.kind == MatchKind.EXACT
        assert verdict.match.price == 550

    def test_exact_rotated(self, catalog):
        verdict = resolve_dimensions(Dimensions(4, 3), catalog.get_sizes())
        assert verdict.kind == MatchKind.EXACT
        assert verdict.match.size_str == "3x4"

    def test_exact_within_tolerance(self, catalog):
        verdict = resolve_dimensions(Dimensions(3.1, 4), catalog.get_sizes(), tolerance=0.2)
        assert verdict.kind == MatchKind.EXACT

    def test_containing(self, catalog):
        verdict = resolve_dimensions(Dimensions(4, 7), catalog.get_sizes())
        assert verdict.kind == MatchKind.CONTAINING
        assert verdict.match.size_str == "4x8"

    def test_fractional_offers_whole_meter_options(self, catalog):
        verdict = resolve_dimensions(Dimensions(4.5, 5.5), catalog.get_sizes())
        assert verdict.kind == MatchKind.FRACTIONAL
        assert [s.size_str for s in verdict.alternatives] == ["4x5", "4x6", "5x5"]

    def test_oversized(self, catalog):
        verdict = resolve_dimensions(Dimensions(10, 27), catalog.get_sizes())
        assert verdict.kind == MatchKind.OVERSIZED
        assert verdict.match is None
        assert verdict.largest.size_str == "7x10"

    def test_square_larger_than_any_side(self, catalog):
        assert resolve_dimensions(Dimensions(8, 8), catalog.get_sizes()).kind == MatchKind.OVERSIZED

    def test_containing_prefers_smallest_area(self, catalog):
        assert find_containing(Dimensions(2, 3.5), catalog.get_sizes()).size_str == "2x4"


class TestSizeResponses:
    def test_exact_response_has_price(self, catalog):
        text = build_size_response(resolve_dimensions(Dimensions(3, 4), catalog.get_sizes()))
        assert "3x4" in text
        assert "$550" in text

    def test_oversized_offers_custom_fabrication(self, catalog):
        text = build_size_response(resolve_dimensions(Dimensions(10, 27), catalog.get_sizes()))
        assert "fabricar sobre medida" in text
        assert "7x10" in text
        assert "rollo" not in text

    def test_oversized_mentions_rolls_in_roll_context(self, catalog):
        verdict = resolve_dimensions(Dimensions(10, 27), catalog.get_sizes())
        assert "rollo" in build_size_response(verdict, roll_context=True)

    def test_fractional_lists_options(self, catalog):
        text = build_size_response(resolve_dimensions(Dimensions(4.5, 5.5), catalog.get_sizes()))
        assert "metros enteros" in text
        assert "• 4x5 m → $790" in text

    def test_reference_estimate_is_explained(self, catalog):
        dims = parse_dimensions("es para mi cochera")
        text = build_size_response(resolve_dimensions(dims, catalog.get_sizes()))
        assert text.startswith("Para una cochera calculamos aproximadamente 3x6 m.")

    def test_multi_size_response(self, catalog):
        sizes = catalog.get_sizes()
        verdicts = [resolve_dimensions(Dimensions(3, 4), sizes), resolve_dimensions(Dimensions(10, 27), sizes)]
        text = build_multi_size_response(verdicts)
        assert "• 3x4 m → $550" in text
        assert "• 10x27 m → requiere fabricación sobre medida" in text

    def test_format_price(self):
        assert format_price(1350) == "$1,350"
        assert format_price(99.5) == "$99.50"
