"""
Intent parsing for VoiceCart.

Maps a transcript to a shopping intent with keyword rules. Parsing
never raises: anything that matches no rule is Unrecognized.
"""

import re
import logging
from typing import Optional

from ..catalog import Catalog
from ..models import (
    Intent, Browse, AddToCart, RemoveFromCart, QueryCart,
    RequestDiscount, Checkout, Unrecognized,
)

logger = logging.getLogger(__name__)

CHECKOUT_KEYWORDS = [
    "checkout", "check out", "pay now", "place my order", "place the order",
    "place order", "complete my purchase", "complete the purchase", "buy it all",
]

DISCOUNT_KEYWORDS = [
    "discount", "deal", "coupon", "promo", "cheaper", "lower price", "better price",
]

REMOVE_KEYWORDS = ["remove", "delete", "take out", "take off", "drop"]

ADD_KEYWORDS = ["add", "put", "buy", "i'll take", "i will take", "i want", "i'd like", "get me"]

CART_QUERY_KEYWORDS = [
    "my cart", "the cart", "in cart", "cart contents", "what's in", "what is in",
    "show cart", "view cart", "basket",
]

BROWSE_KEYWORDS = [
    "show", "browse", "looking for", "what do you have", "what have you got",
    "list", "see", "products", "catalog",
]

NUMBER_WORDS = {
    "a": 1, "an": 1, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
}

# Filler stripped from add/remove commands to leave the product reference
_FILLER_PATTERN = re.compile(
    r"\b(to|into|in|from|out of|off|my|the|cart|basket|please|some|of)\b"
)


def _contains_any(text: str, keywords: list) -> Optional[str]:
    """Return the first keyword present as a whole word/phrase in text."""
    for keyword in keywords:
        if re.search(rf"(?<![a-z']){re.escape(keyword)}(?![a-z'])", text):
            return keyword
    return None


class IntentParser:
    """
    Keyword-driven intent parser.

    Rule order: checkout, discount, remove, add, cart query, browse.
    Category mentions alone also count as browsing.
    """

    def __init__(self, catalog: Optional[Catalog] = None):
        self.catalog = catalog or Catalog()

    def parse(self, transcript: str) -> Intent:
        """
        Parse a transcript into an intent.

        Args:
            transcript: Final transcript text.

        Returns:
            One of the Intent variants.
        """
        text = " ".join(transcript.lower().split())
        if not text:
            return Unrecognized(raw_text=transcript)

        if _contains_any(text, CHECKOUT_KEYWORDS):
            return Checkout()

        if _contains_any(text, DISCOUNT_KEYWORDS):
            return RequestDiscount()

        keyword = _contains_any(text, REMOVE_KEYWORDS)
        if keyword:
            return RemoveFromCart(product_query=self._product_query(text, keyword))

        keyword = _contains_any(text, ADD_KEYWORDS)
        if keyword:
            query = self._product_query(text, keyword)
            quantity, query = self._split_quantity(query)
            return AddToCart(product_query=query, quantity=quantity)

        if _contains_any(text, CART_QUERY_KEYWORDS) or re.search(r"\bcart\b", text):
            return QueryCart()

        category = self.catalog.find_category(text)
        if category or _contains_any(text, BROWSE_KEYWORDS):
            return Browse(category=category)

        logger.debug(f"No intent matched: {transcript!r}")
        return Unrecognized(raw_text=transcript)

    def _product_query(self, text: str, keyword: str) -> str:
        """Text after the command keyword with filler words removed."""
        _, _, tail = text.partition(keyword)
        tail = _FILLER_PATTERN.sub(" ", tail)
        tail = re.sub(r"[^a-z0-9' ]", " ", tail)
        return " ".join(tail.split())

    def _split_quantity(self, query: str) -> tuple[int, str]:
        """Pull a leading quantity ("two", "3", "a") off a product query."""
        words = query.split()
        if not words:
            return 1, query
        first = words[0]
        if first.isdigit() and int(first) > 0:
            return int(first), " ".join(words[1:])
        if first in NUMBER_WORDS:
            return NUMBER_WORDS[first], " ".join(words[1:])
        return 1, query
