"""
Command router for VoiceCart.

Turns an intent, the current emotional state and the cart into a new
cart, a reply and an optional discount or checkout request. Routing is
a pure function of its inputs: payment and speech happen elsewhere.
"""

from typing import Optional

from .catalog import Catalog
from .models import (
    AddToCart, Browse, CartLine, Checkout, CheckoutRequest, EmotionState,
    Intent, Product, QueryCart, RemoveFromCart, RequestDiscount, RouteResult,
    Unrecognized,
)
from .pricing import apply_discount, compute_discount

HELP_TEXT = (
    "You can say things like 'show me electronics', 'add earbuds to my cart', "
    "'what's in my cart', 'give me a discount' or 'checkout'."
)

# Openers that adapt the reply tone to the user's emotional state
TONE_PREFIX = {
    EmotionState.NEUTRAL: "",
    EmotionState.HAPPY: "Great choice! ",
    EmotionState.FRUSTRATED: "Got it. ",
    EmotionState.CONFUSED: "No problem. ",
}


class RoutingError(Exception):
    """Exception raised when an intent has an unexpected shape."""

    def __init__(self, message: str, intent: Optional[object] = None):
        self.intent = intent
        super().__init__(message)


def cart_total(cart: tuple) -> float:
    """Sum of line totals, rounded to cents."""
    return round(sum(line.line_total for line in cart), 2)


def cart_summary(cart: tuple) -> str:
    """Human readable one-line cart listing."""
    return ", ".join(f"{line.name} x{line.quantity}" for line in cart)


def add_to_cart(cart: tuple, product: Product, quantity: int = 1) -> tuple:
    """Return a new cart with quantity of product added."""
    lines = list(cart)
    for i, line in enumerate(lines):
        if line.product_id == product.id:
            lines[i] = CartLine(
                product_id=line.product_id,
                name=line.name,
                unit_price=line.unit_price,
                quantity=line.quantity + quantity
            )
            return tuple(lines)
    lines.append(CartLine(
        product_id=product.id,
        name=product.name,
        unit_price=product.price,
        quantity=quantity
    ))
    return tuple(lines)


def remove_from_cart(cart: tuple, product_id: int) -> tuple:
    """Return a new cart without the given product."""
    return tuple(line for line in cart if line.product_id != product_id)


def _money(amount: float) -> str:
    return f"${amount:.2f}"


class CommandRouter:
    """
    Pure intent router.

    Holds only the read-only catalog; every call returns a fresh
    RouteResult and leaves its inputs untouched.
    """

    def __init__(self, catalog: Optional[Catalog] = None):
        self.catalog = catalog or Catalog()

    def route(self, intent: Intent, emotion: EmotionState, cart: tuple) -> RouteResult:
        """
        Route an intent.

        Args:
            intent: Parsed intent
            emotion: Current emotional state of the session
            cart: Current cart (tuple of CartLine)

        Returns:
            RouteResult with the new cart and the reply text

        Raises:
            RoutingError: If the intent is not a known variant
        """
        if isinstance(intent, Browse):
            return self._browse(intent, cart)
        if isinstance(intent, AddToCart):
            return self._add(intent, emotion, cart)
        if isinstance(intent, RemoveFromCart):
            return self._remove(intent, cart)
        if isinstance(intent, QueryCart):
            return self._query_cart(cart)
        if isinstance(intent, RequestDiscount):
            return self._discount(emotion, cart)
        if isinstance(intent, Checkout):
            return self._checkout(emotion, cart)
        if isinstance(intent, Unrecognized):
            return self._unrecognized(emotion, cart)
        raise RoutingError(f"Unexpected intent: {intent!r}", intent=intent)

    def _browse(self, intent: Browse, cart: tuple) -> RouteResult:
        products = self.catalog.by_category(intent.category)
        if intent.category is None:
            categories = ", ".join(self.catalog.categories)
            response = f"We have products in {categories}. Which would you like to see?"
        elif not products:
            response = f"We don't have anything in {intent.category} right now."
        else:
            listing = ", ".join(f"{p.name} for {_money(p.price)}" for p in products)
            response = f"In {intent.category} we have {listing}."
        return RouteResult(cart=cart, response=response, items=products)

    def _add(self, intent: AddToCart, emotion: EmotionState, cart: tuple) -> RouteResult:
        if intent.quantity < 1:
            raise RoutingError(f"Invalid quantity {intent.quantity}", intent=intent)

        product = self.catalog.find_product(intent.product_query)
        if product is None:
            if intent.product_query:
                response = f"Sorry, I couldn't find {intent.product_query} in our catalog."
            else:
                response = "Sorry, I didn't catch which product you'd like to add."
            return RouteResult(cart=cart, response=response)

        new_cart = add_to_cart(cart, product, intent.quantity)
        item = product.name if intent.quantity == 1 else f"{intent.quantity} x {product.name}"
        response = (
            f"{TONE_PREFIX[emotion]}Added {item} to your cart. "
            f"Your total is {_money(cart_total(new_cart))}."
        )
        return RouteResult(cart=new_cart, response=response, mutated=True, items=[product])

    def _remove(self, intent: RemoveFromCart, cart: tuple) -> RouteResult:
        product = self.catalog.find_product(intent.product_query)
        if product is None or all(line.product_id != product.id for line in cart):
            return RouteResult(cart=cart, response="That item isn't in your cart.")

        new_cart = remove_from_cart(cart, product.id)
        response = f"Removed {product.name} from your cart."
        return RouteResult(cart=new_cart, response=response, mutated=True, items=[product])

    def _query_cart(self, cart: tuple) -> RouteResult:
        if not cart:
            return RouteResult(cart=cart, response="Your cart is empty.")

        count = sum(line.quantity for line in cart)
        noun = "item" if count == 1 else "items"
        response = (
            f"You have {count} {noun} in your cart: {cart_summary(cart)}. "
            f"Total: {_money(cart_total(cart))}."
        )
        return RouteResult(cart=cart, response=response)

    def _discount(self, emotion: EmotionState, cart: tuple) -> RouteResult:
        offer = compute_discount(emotion)
        if offer.percentage == 0:
            return RouteResult(
                cart=cart,
                response="I don't have a discount available right now, but prices are already our best."
            )

        if emotion == EmotionState.FRUSTRATED:
            response = f"I understand. I can give you {offer.percentage}% off your order."
        elif emotion == EmotionState.CONFUSED:
            response = f"Let me make this easier: here's {offer.percentage}% off your order."
        else:
            response = f"Thanks for shopping with us! Here's {offer.percentage}% off as a thank-you."

        if cart:
            total = cart_total(cart)
            response += (
                f" That brings your total from {_money(total)} to "
                f"{_money(apply_discount(total, offer))}."
            )
        return RouteResult(cart=cart, response=response, discount=offer)

    def _checkout(self, emotion: EmotionState, cart: tuple) -> RouteResult:
        if not cart:
            return RouteResult(
                cart=cart,
                response="Your cart is empty, so there's nothing to check out yet."
            )

        offer = compute_discount(emotion)
        subtotal = cart_total(cart)
        amount = apply_discount(subtotal, offer)
        request = CheckoutRequest(
            amount=amount,
            subtotal=subtotal,
            summary=cart_summary(cart),
            discount=offer
        )
        if offer.percentage:
            response = (
                f"Checking out with {offer.percentage}% off. "
                f"Charging {_money(amount)}."
            )
        else:
            response = f"Checking out. Charging {_money(amount)}."
        return RouteResult(
            cart=cart,
            response=response,
            discount=offer if offer.percentage else None,
            checkout=request
        )

    def _unrecognized(self, emotion: EmotionState, cart: tuple) -> RouteResult:
        if emotion == EmotionState.FRUSTRATED:
            response = (
                "I hear you. If the price is a concern, ask me for a discount "
                "and I'll see what I can do."
            )
        elif emotion == EmotionState.CONFUSED:
            response = f"I'm here to help. {HELP_TEXT}"
        elif emotion == EmotionState.HAPPY:
            response = f"Glad to hear it! {HELP_TEXT}"
        else:
            response = f"Sorry, I didn't understand that. {HELP_TEXT}"
        return RouteResult(cart=cart, response=response)
