"""PaymentGateway protocol: the seam every gateway variant implements."""
from collections.abc import Mapping
from typing import Protocol

from src.sf_payment.domain.models import PaymentInstruction, PaymentRequest, VerificationResult
from src.sf_settings.domain.models import StoreSettings


class PaymentGateway(Protocol):
    tag: str  # PaymentMethod value, e.g. "ESEWA"

    async def prepare(
        self, request: PaymentRequest, store: StoreSettings
    ) -> PaymentInstruction: ...

    async def verify(
        self, params: Mapping[str, str], store: StoreSettings
    ) -> VerificationResult: ...
