from typing import Any, Literal

from pydantic import BaseModel

from src.sf_payment.domain.models import PaymentInstruction


class PreparePaymentRequest(BaseModel):
    method: Literal["ESEWA", "KHALTI"]


class PreparePaymentResponse(BaseModel):
    """FORM: POST ``params`` to ``url``. REDIRECT: navigate to ``url``."""
    order_id: str
    method: str
    kind: str
    url: str
    params: dict[str, Any] = {}
    reference: str | None = None

    @classmethod
    def from_instruction(cls, order_id: str, instruction: PaymentInstruction) -> "PreparePaymentResponse":
        return cls(
            order_id=order_id,
            method=instruction.method,
            kind=instruction.kind,
            url=instruction.url,
            params=instruction.params,
            reference=instruction.reference,
        )
