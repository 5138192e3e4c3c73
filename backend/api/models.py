"""Pydantic models for API request/response validation."""

from typing import Optional
from pydantic import BaseModel, Field


class UtteranceRequest(BaseModel):
    """Request model for one final transcript."""
    text: str = Field(..., min_length=1, description="Final transcript text")


class CartLineModel(BaseModel):
    """A cart line."""
    product_id: int = Field(..., description="Catalog product ID")
    name: str = Field(..., description="Product name")
    unit_price: float = Field(..., description="Price when added")
    quantity: int = Field(..., description="Quantity")


class DiscountModel(BaseModel):
    """An emotion-conditioned discount offer."""
    percentage: int = Field(..., description="Discount percentage")
    reason: str = Field(..., description="Emotional state the offer is based on")


class UtteranceResponse(BaseModel):
    """Response model for a processed utterance."""
    response: str = Field(..., description="Assistant's reply")
    emotion: str = Field(..., description="Emotion classified for this utterance")
    intent: Optional[str] = Field(None, description="Parsed intent name")
    discount: Optional[DiscountModel] = Field(None, description="Discount offered, if any")
    cart: list[CartLineModel] = Field(default_factory=list, description="Cart after the utterance")
    payment_reference: Optional[str] = Field(None, description="Payment reference after checkout")
    error: Optional[str] = Field(None, description="Recoverable error code, if any")
    latency_ms: float = Field(0.0, description="Processing latency in milliseconds")


class CartResponse(BaseModel):
    """Response model for the current cart."""
    items: list[CartLineModel] = Field(default_factory=list, description="Cart lines")
    total: float = Field(0.0, description="Cart total")


class ConsentRequest(BaseModel):
    """Request model for a consent decision."""
    granted: bool = Field(..., description="Allow voice tone analysis")


class ConsentResponse(BaseModel):
    """Response model for the consent state."""
    granted: bool = Field(..., description="Whether voice tone analysis is allowed")
    granted_at: Optional[str] = Field(None, description="When consent was granted")
    version: str = Field(..., description="Consent text version")
    message: Optional[str] = Field(None, description="Spoken acknowledgement")


class ConnectivityRequest(BaseModel):
    """Request model for a connectivity signal."""
    online: bool = Field(..., description="Whether the network is reachable")


class ConnectivityResponse(BaseModel):
    """Response model for the connectivity state."""
    state: str = Field(..., description="online or offline")
    changed: bool = Field(False, description="Whether the state changed")


class ProductModel(BaseModel):
    """A catalog product."""
    id: int
    name: str
    price: float
    category: str


class HealthResponse(BaseModel):
    """Response model for health check."""
    status: str = Field(..., description="Service status")
    services: dict = Field(..., description="Status of individual services")
