from shadebot.services.extraction.color import extract_color
from shadebot.services.extraction.customer import extract_customer_name
from shadebot.services.extraction.dimensions import (
    Dimensions,
    extract_all_dimensions,
    format_meters,
    has_dimension_pattern,
    parse_dimensions,
    parse_roll_width,
)
from shadebot.services.extraction.numbers import convert_number_words
from shadebot.services.extraction.percentage import extract_percentage
from shadebot.services.extraction.product_type import extract_product_type
from shadebot.services.extraction.quantity import extract_quantity
from shadebot.services.extraction.references import estimate_from_reference

__all__ = [
    "Dimensions",
    "convert_number_words",
    "estimate_from_reference",
    "extract_all_dimensions",
    "extract_color",
    "extract_customer_name",
    "extract_percentage",
    "extract_product_type",
    "extract_quantity",
    "format_meters",
    "has_dimension_pattern",
    "parse_dimensions",
    "parse_roll_width",
]
