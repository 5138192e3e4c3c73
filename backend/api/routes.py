"""FastAPI routes for VoiceCart API."""

import logging
from fastapi import APIRouter, HTTPException

from voicecart.router import cart_total
from .models import (
    UtteranceRequest,
    UtteranceResponse,
    CartLineModel,
    CartResponse,
    DiscountModel,
    ConsentRequest,
    ConsentResponse,
    ConnectivityRequest,
    ConnectivityResponse,
    ProductModel,
    HealthResponse
)
from ..services.orchestrator_service import orchestrator_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["api"])


def _cart_lines(cart: tuple) -> list[CartLineModel]:
    return [
        CartLineModel(
            product_id=line.product_id,
            name=line.name,
            unit_price=line.unit_price,
            quantity=line.quantity
        )
        for line in cart
    ]


def _consent_response(state, message=None) -> ConsentResponse:
    return ConsentResponse(
        granted=state.granted,
        granted_at=state.granted_at.isoformat() if state.granted_at else None,
        version=state.version,
        message=message
    )


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Health check endpoint.

    Returns the status of all services.
    """
    try:
        services = await orchestrator_service.get_health_status()
        return HealthResponse(status="healthy", services=services)
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/utterance", response_model=UtteranceResponse)
async def process_utterance(request: UtteranceRequest):
    """
    Process one final transcript through the assistant pipeline.

    Utterances are applied in arrival order. Recoverable problems
    (offline checkout, declined payment) come back as a normal reply
    with `error` set.
    """
    result = await orchestrator_service.process_utterance(request.text)
    discount = None
    if result.discount:
        discount = DiscountModel(
            percentage=result.discount.percentage,
            reason=result.discount.reason.value
        )
    return UtteranceResponse(
        response=result.assistant_response,
        emotion=result.emotion.value,
        intent=type(result.intent).__name__ if result.intent else None,
        discount=discount,
        cart=_cart_lines(result.cart),
        payment_reference=result.payment_reference,
        error=result.error,
        latency_ms=result.latency_ms
    )


@router.get("/cart", response_model=CartResponse)
async def get_cart():
    """Return the current cart."""
    cart = orchestrator_service.orchestrator.cart
    return CartResponse(items=_cart_lines(cart), total=cart_total(cart))


@router.get("/consent", response_model=ConsentResponse)
async def get_consent():
    """Return the current voice-analysis consent."""
    return _consent_response(orchestrator_service.get_consent())


@router.put("/consent", response_model=ConsentResponse)
async def set_consent(request: ConsentRequest):
    """
    Grant or revoke voice-analysis consent.

    Revocation is always available through this endpoint.
    """
    state, message = orchestrator_service.set_consent(request.granted)
    return _consent_response(state, message)


@router.put("/connectivity", response_model=ConnectivityResponse)
async def set_connectivity(request: ConnectivityRequest):
    """Receive an online/offline signal from the host."""
    changed = orchestrator_service.set_online(request.online)
    state = orchestrator_service.orchestrator.connectivity.state
    return ConnectivityResponse(state=state.value, changed=changed)


@router.get("/catalog", response_model=list[ProductModel])
async def get_catalog():
    """List catalog products."""
    return [
        ProductModel(id=p.id, name=p.name, price=p.price, category=p.category)
        for p in orchestrator_service.orchestrator.catalog.products
    ]
