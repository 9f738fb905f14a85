"""GatewayRegistry: payment gateway variants keyed by method tag."""
from config.settings import settings
from src.sf_common.errors import PaymentMethodUnavailableError
from src.sf_payment.domain.gateway import PaymentGateway
from src.sf_payment.infrastructure.esewa import FormRedirectGateway
from src.sf_payment.infrastructure.khalti import TokenRedirectGateway

CALLBACK_PATH = "/api/v1/payments/callback"


class GatewayRegistry:
    def __init__(self, gateways: list[PaymentGateway] | None = None) -> None:
        self._gateways: dict[str, PaymentGateway] = {}
        for gateway in gateways or []:
            self.register(gateway)

    def register(self, gateway: PaymentGateway) -> None:
        self._gateways[gateway.tag.upper()] = gateway

    def get(self, tag: str) -> PaymentGateway:
        gateway = self._gateways.get(tag.upper())
        if gateway is None:
            raise PaymentMethodUnavailableError(tag)
        return gateway

    def __contains__(self, tag: str) -> bool:
        return tag.upper() in self._gateways


def build_default_registry() -> GatewayRegistry:
    callback_url = f"{settings.APP_URL.rstrip('/')}{CALLBACK_PATH}"
    return GatewayRegistry([
        FormRedirectGateway(callback_url),
        TokenRedirectGateway(
            callback_url,
            website_url=settings.STOREFRONT_URL,
            timeout=settings.PROVIDER_TIMEOUT_SECONDS,
        ),
    ])
