"""
Core data types for VoiceCart.

Plain dataclasses and enums shared by the capture, NLP, routing and
orchestration layers.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Union

import numpy as np


class EmotionState(Enum):
    """Closed vocabulary of inferred emotional states."""

    NEUTRAL = "neutral"
    HAPPY = "happy"
    FRUSTRATED = "frustrated"
    CONFUSED = "confused"


class ConnectivityState(Enum):
    """Process-wide network state."""

    ONLINE = "online"
    OFFLINE = "offline"


@dataclass(frozen=True)
class ConsentState:
    """User decision about biometric (voice tone) analysis."""

    granted: bool = False
    granted_at: Optional[datetime] = None
    version: str = "1.0"

    def to_dict(self) -> dict:
        """Convert to the persisted JSON shape."""
        return {
            "granted": self.granted,
            "timestamp": self.granted_at.isoformat() if self.granted_at else None,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ConsentState":
        """Build from the persisted JSON shape."""
        timestamp = data.get("timestamp")
        return cls(
            granted=bool(data["granted"]),
            granted_at=datetime.fromisoformat(timestamp) if timestamp else None,
            version=str(data.get("version", "1.0")),
        )


@dataclass(frozen=True)
class CaptureEvent:
    """One recognized speech segment."""

    text: str
    is_final: bool
    sequence: int


@dataclass
class AudioSample:
    """Audio correlated with a final capture event (consent only)."""

    samples: np.ndarray
    sample_rate: int
    session_id: str

    @property
    def duration_s(self) -> float:
        return len(self.samples) / float(self.sample_rate)


@dataclass(frozen=True)
class Product:
    """Catalog entry. Immutable."""

    id: int
    name: str
    price: float
    category: str


@dataclass(frozen=True)
class CartLine:
    """A product in the cart with its price snapshot at add time."""

    product_id: int
    name: str
    unit_price: float
    quantity: int = 1

    @property
    def line_total(self) -> float:
        return round(self.unit_price * self.quantity, 2)


@dataclass(frozen=True)
class DiscountOffer:
    """Emotion-conditioned discount. Derived per request, never stored."""

    percentage: int
    reason: EmotionState


# Intent variants

@dataclass(frozen=True)
class Browse:
    category: Optional[str] = None


@dataclass(frozen=True)
class AddToCart:
    product_query: str
    quantity: int = 1


@dataclass(frozen=True)
class RemoveFromCart:
    product_query: str


@dataclass(frozen=True)
class QueryCart:
    pass


@dataclass(frozen=True)
class RequestDiscount:
    pass


@dataclass(frozen=True)
class Checkout:
    pass


@dataclass(frozen=True)
class Unrecognized:
    raw_text: str


Intent = Union[
    Browse, AddToCart, RemoveFromCart, QueryCart, RequestDiscount, Checkout, Unrecognized
]


@dataclass(frozen=True)
class CheckoutRequest:
    """Charge the Orchestrator should perform for a checkout intent."""

    amount: float
    subtotal: float
    summary: str
    discount: DiscountOffer


@dataclass
class RouteResult:
    """Output of the command router for one intent."""

    cart: tuple
    response: str
    discount: Optional[DiscountOffer] = None
    checkout: Optional[CheckoutRequest] = None
    mutated: bool = False
    items: list = field(default_factory=list)
