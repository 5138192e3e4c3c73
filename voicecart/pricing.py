"""
Emotion-conditioned pricing.

The discount depends only on the emotional state of the request. It is
recomputed per discount or checkout request and never accumulates.
"""

from .models import DiscountOffer, EmotionState

# Larger discounts de-escalate negative affect
DISCOUNT_TABLE = {
    EmotionState.FRUSTRATED: 15,
    EmotionState.CONFUSED: 10,
    EmotionState.HAPPY: 5,
    EmotionState.NEUTRAL: 0,
}


def compute_discount(emotion: EmotionState) -> DiscountOffer:
    """Return the discount offer for an emotional state."""
    return DiscountOffer(percentage=DISCOUNT_TABLE[emotion], reason=emotion)


def apply_discount(amount: float, offer: DiscountOffer) -> float:
    """Apply an offer to an amount, rounded to cents."""
    return round(amount * (100 - offer.percentage) / 100.0, 2)
