from fallback import build_fallback
from models import FallbackPairing


def test_restaurant_template():
    pairing = build_fallback("XYZ Random Diner", ["restaurant"])
    assert isinstance(pairing, FallbackPairing)
    assert pairing.action == "Share plates at XYZ Random Diner and each declare an over-the-top 'dish of the night'"
    assert pairing.photo == "Snap a foodie glam shot with your favorite plate front and center"


def test_first_matching_template_wins():
    pairing = build_fallback("Kelly's", ["restaurant", "bar"])
    assert pairing.action.startswith("Grab a cozy corner at Kelly's")


def test_categories_are_case_insensitive():
    assert "high scores" in build_fallback("Pixel", ["Barcade"]).action


def test_cafe_like():
    assert build_fallback("Moti", ["dessert_shop"]).action.startswith("Pick two treats at Moti")


def test_unmatched_category_gets_generic_template():
    pairing = build_fallback("Rose Garden", None)
    assert pairing.action.startswith("Explore Rose Garden together")
    assert pairing.photo == "Take a candid walking shot outside the venue sign"
