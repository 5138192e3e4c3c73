"""Tests for the command router, pricing and catalog lookups."""

import pytest

from voicecart.models import (
    AddToCart, Browse, CartLine, Checkout, DiscountOffer, EmotionState,
    QueryCart, RemoveFromCart, RequestDiscount, Unrecognized,
)
from voicecart.pricing import apply_discount, compute_discount
from voicecart.router import CommandRouter, RoutingError, cart_summary, cart_total


@pytest.fixture
def router(catalog):
    return CommandRouter(catalog)


@pytest.fixture
def earbuds_cart():
    return (CartLine(product_id=1, name="Wireless Earbuds", unit_price=49.99, quantity=1),)


class TestPricing:
    """Tests for the emotion discount table."""

    @pytest.mark.parametrize("emotion,percentage", [
        (EmotionState.FRUSTRATED, 15),
        (EmotionState.CONFUSED, 10),
        (EmotionState.HAPPY, 5),
        (EmotionState.NEUTRAL, 0),
    ])
    def test_compute_discount(self, emotion, percentage):
        offer = compute_discount(emotion)
        assert offer == DiscountOffer(percentage=percentage, reason=emotion)

    def test_apply_discount_rounds_to_cents(self):
        offer = DiscountOffer(percentage=15, reason=EmotionState.FRUSTRATED)
        assert apply_discount(49.99, offer) == 42.49

    def test_zero_discount_keeps_amount(self):
        offer = DiscountOffer(percentage=0, reason=EmotionState.NEUTRAL)
        assert apply_discount(19.99, offer) == 19.99


class TestCatalog:
    """Tests for catalog lookups."""

    @pytest.mark.parametrize("query,product_id", [
        ("wireless earbuds", 1),
        ("earbuds", 1),
        ("coffee makers", 2),
        ("shoe", 3),
        ("lamps", 4),
        ("the water bottle please", 5),
    ])
    def test_find_product(self, catalog, query, product_id):
        assert catalog.find_product(query).id == product_id

    @pytest.mark.parametrize("query", ["laptop", "", "a"])
    def test_find_product_no_match(self, catalog, query):
        assert catalog.find_product(query) is None

    def test_categories_in_catalog_order(self, catalog):
        assert catalog.categories == ["electronics", "home", "sports"]

    def test_find_category(self, catalog):
        assert catalog.find_category("Show me SPORTS gear") == "sports"
        assert catalog.find_category("hello") is None

    def test_by_category(self, catalog):
        assert [p.id for p in catalog.by_category("home")] == [2, 4]
        assert len(catalog.by_category(None)) == 5


class TestCommandRouter:
    """Tests for CommandRouter.route."""

    def test_add_to_empty_cart(self, router):
        result = router.route(AddToCart("earbuds"), EmotionState.NEUTRAL, ())

        assert result.cart == (
            CartLine(product_id=1, name="Wireless Earbuds", unit_price=49.99, quantity=1),
        )
        assert result.mutated is True
        assert "Wireless Earbuds" in result.response
        assert "$49.99" in result.response

    def test_add_same_product_increments_quantity(self, router, earbuds_cart):
        result = router.route(AddToCart("earbuds", quantity=2), EmotionState.NEUTRAL, earbuds_cart)

        assert len(result.cart) == 1
        assert result.cart[0].quantity == 3
        assert "$149.97" in result.response

    def test_add_does_not_touch_input_cart(self, router, earbuds_cart):
        router.route(AddToCart("lamp"), EmotionState.NEUTRAL, earbuds_cart)
        assert len(earbuds_cart) == 1

    def test_add_tone_follows_emotion(self, router):
        result = router.route(AddToCart("lamp"), EmotionState.HAPPY, ())
        assert result.response.startswith("Great choice!")

    def test_add_unknown_product(self, router, earbuds_cart):
        result = router.route(AddToCart("laptop"), EmotionState.NEUTRAL, earbuds_cart)

        assert result.cart == earbuds_cart
        assert result.mutated is False
        assert "laptop" in result.response

    def test_add_invalid_quantity_raises(self, router):
        with pytest.raises(RoutingError):
            router.route(AddToCart("earbuds", quantity=0), EmotionState.NEUTRAL, ())

    def test_remove_present_item(self, router, earbuds_cart):
        result = router.route(RemoveFromCart("earbuds"), EmotionState.NEUTRAL, earbuds_cart)

        assert result.cart == ()
        assert result.mutated is True

    def test_remove_absent_item(self, router, earbuds_cart):
        result = router.route(RemoveFromCart("lamp"), EmotionState.NEUTRAL, earbuds_cart)

        assert result.cart == earbuds_cart
        assert result.response == "That item isn't in your cart."

    def test_query_empty_cart(self, router):
        result = router.route(QueryCart(), EmotionState.NEUTRAL, ())
        assert result.response == "Your cart is empty."

    def test_query_cart_lists_items(self, router, earbuds_cart):
        result = router.route(QueryCart(), EmotionState.NEUTRAL, earbuds_cart)

        assert "1 item" in result.response
        assert "Wireless Earbuds x1" in result.response
        assert "$49.99" in result.response

    def test_frustrated_discount(self, router, earbuds_cart):
        result = router.route(RequestDiscount(), EmotionState.FRUSTRATED, earbuds_cart)

        assert result.discount == DiscountOffer(percentage=15, reason=EmotionState.FRUSTRATED)
        assert "15% off" in result.response
        assert "$42.49" in result.response
        assert result.cart == earbuds_cart

    def test_neutral_discount_offers_nothing(self, router, earbuds_cart):
        result = router.route(RequestDiscount(), EmotionState.NEUTRAL, earbuds_cart)

        assert result.discount is None
        assert "%" not in result.response

    def test_checkout_empty_cart(self, router):
        result = router.route(Checkout(), EmotionState.NEUTRAL, ())

        assert result.checkout is None
        assert "nothing to check out" in result.response

    def test_checkout_applies_discount(self, router, earbuds_cart):
        result = router.route(Checkout(), EmotionState.FRUSTRATED, earbuds_cart)

        assert result.checkout.amount == 42.49
        assert result.checkout.subtotal == 49.99
        assert result.checkout.summary == "Wireless Earbuds x1"
        assert result.discount.percentage == 15
        # The router only requests the charge; the cart is cleared after payment
        assert result.cart == earbuds_cart

    def test_checkout_without_discount(self, router, earbuds_cart):
        result = router.route(Checkout(), EmotionState.NEUTRAL, earbuds_cart)

        assert result.checkout.amount == 49.99
        assert result.discount is None

    def test_browse_category(self, router):
        result = router.route(Browse("sports"), EmotionState.NEUTRAL, ())

        assert [p.name for p in result.items] == ["Running Shoes", "Water Bottle"]
        assert "Running Shoes for $89.99" in result.response

    def test_browse_everything(self, router):
        result = router.route(Browse(), EmotionState.NEUTRAL, ())
        assert "electronics, home, sports" in result.response

    def test_browse_unknown_category(self, router):
        result = router.route(Browse("garden"), EmotionState.NEUTRAL, ())
        assert result.items == []
        assert "garden" in result.response

    @pytest.mark.parametrize("emotion,fragment", [
        (EmotionState.NEUTRAL, "didn't understand"),
        (EmotionState.FRUSTRATED, "discount"),
        (EmotionState.CONFUSED, "I'm here to help"),
        (EmotionState.HAPPY, "Glad to hear it"),
    ])
    def test_unrecognized_reply_follows_emotion(self, router, emotion, fragment):
        result = router.route(Unrecognized("hmm"), emotion, ())
        assert fragment in result.response

    def test_unknown_intent_raises(self, router):
        with pytest.raises(RoutingError) as exc_info:
            router.route(object(), EmotionState.NEUTRAL, ())
        assert exc_info.value.intent is not None


class TestCartHelpers:
    """Tests for cart totals and summaries."""

    def test_cart_total(self):
        cart = (
            CartLine(product_id=1, name="Wireless Earbuds", unit_price=49.99, quantity=2),
            CartLine(product_id=5, name="Water Bottle", unit_price=19.99, quantity=1),
        )
        assert cart_total(cart) == 119.97
        assert cart_summary(cart) == "Wireless Earbuds x2, Water Bottle x1"

    def test_empty_cart_total(self):
        assert cart_total(()) == 0
