"""
Payment collaborators for VoiceCart.

The orchestrator only calls `charge(amount, cart_summary)`; failures are
reported as PaymentError with a reason code the user can hear.
"""

import os
import uuid
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import requests

logger = logging.getLogger(__name__)


class PaymentError(Exception):
    """Exception raised when a charge is declined or cannot be made."""

    def __init__(self, message: str, reason_code: str = "payment_failed"):
        self.reason_code = reason_code
        super().__init__(message)


@dataclass
class PaymentResult:
    """Outcome of a successful charge."""
    success: bool
    reference: str


class PaymentProcessor(Protocol):
    """Payment collaborator interface."""

    def charge(self, amount: float, cart_summary: str) -> PaymentResult: ...


class HttpPaymentClient:
    """
    Client for an HTTP payment service.

    POSTs `{amount, currency, description}` to `{base_url}/charges` and
    expects `{success, reference}` or an error body with `code`/`detail`.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        currency: str = "usd",
        timeout: float = 10.0
    ):
        """
        Initialize payment client.

        Args:
            base_url: Payment API base URL (defaults to PAYMENT_API_URL env var)
            api_key: Bearer token (defaults to PAYMENT_API_KEY env var)
            currency: ISO currency code sent with each charge
            timeout: Request timeout in seconds
        """
        self.base_url = (base_url or os.getenv("PAYMENT_API_URL", "")).rstrip("/")
        if not self.base_url:
            raise ValueError(
                "Payment API URL not provided. "
                "Set PAYMENT_API_URL environment variable or pass base_url parameter."
            )
        self.api_key = api_key or os.getenv("PAYMENT_API_KEY")
        self.currency = currency
        self.timeout = timeout

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def charge(self, amount: float, cart_summary: str) -> PaymentResult:
        """
        Charge the customer.

        Args:
            amount: Amount in currency units
            cart_summary: Order description

        Returns:
            PaymentResult with the processor reference

        Raises:
            PaymentError: If the charge is declined or the service fails
        """
        payload = {
            "amount": round(amount, 2),
            "currency": self.currency,
            "description": cart_summary,
            "idempotency_key": uuid.uuid4().hex,
        }
        try:
            response = requests.post(
                f"{self.base_url}/charges",
                json=payload,
                headers=self._headers(),
                timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.error(f"Payment request failed: {e}")
            raise PaymentError("The payment service could not be reached.", reason_code="unreachable")

        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = None
            if not isinstance(body, dict):
                body = {}
            code = body.get("code", f"http_{response.status_code}")
            detail = body.get("detail", "The payment was declined.")
            raise PaymentError(detail, reason_code=code)

        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            logger.error(f"Unreadable payment response: {response.text[:200]!r}")
            raise PaymentError("The payment service sent an unreadable reply.", reason_code="bad_response")

        if not data.get("success"):
            raise PaymentError(data.get("detail", "The payment was declined."),
                               reason_code=data.get("code", "declined"))
        if not data.get("reference"):
            logger.error(f"Payment response without reference: {data}")
            raise PaymentError("The payment service did not confirm the charge.", reason_code="bad_response")
        return PaymentResult(success=True, reference=str(data["reference"]))


class SandboxPaymentProcessor:
    """Always-approving processor for demos and local runs."""

    def charge(self, amount: float, cart_summary: str) -> PaymentResult:
        reference = f"sandbox-{uuid.uuid4().hex[:8]}"
        logger.info(f"Sandbox charge {amount:.2f} for [{cart_summary}] -> {reference}")
        return PaymentResult(success=True, reference=reference)
