"""Payment domain values passed between the service and gateway adapters."""
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class PaymentRequest:
    """What a gateway needs to start a payment attempt. ``amount`` is paisa."""
    order_id: str
    amount: int
    customer_name: str
    customer_email: str
    customer_phone: str


@dataclass(frozen=True)
class PaymentInstruction:
    """How the storefront continues the payment.

    FORM: POST ``params`` to ``url`` from the browser (eSewa).
    REDIRECT: send the browser to ``url`` (Khalti ``payment_url``).
    """
    method: str
    kind: str  # FORM / REDIRECT
    url: str
    params: dict[str, Any] = field(default_factory=dict)
    reference: str | None = None  # gateway session id (Khalti pidx)


@dataclass(frozen=True)
class VerificationResult:
    order_id: str | None
    verified: bool
    amount: int | None = None  # paisa, as reported by the gateway
