"""Store settings: the single ``default`` row admins edit in the back office.

Payment and delivery adapters read this record on every call; it is never
cached, so toggling sandbox mode or rotating a key takes effect immediately.
"""
from dataclasses import dataclass

from src.sf_common.enums import MarkupType


@dataclass
class StoreSettings:
    store_name: str = "Our Store"
    # Logistics (paisa)
    shipping_charge: int = 15_000
    shipping_markup: int = 0
    shipping_markup_type: str = MarkupType.FLAT.value
    free_shipping_threshold: int | None = None
    # Payments
    enable_cod: bool = True
    enable_esewa: bool = False
    esewa_sandbox: bool = True
    esewa_merchant_code: str | None = None
    esewa_secret: str | None = None
    enable_khalti: bool = False
    khalti_sandbox: bool = True
    khalti_secret: str | None = None

    def is_method_enabled(self, method: str) -> bool:
        return {
            "COD": self.enable_cod,
            "ESEWA": self.enable_esewa,
            "KHALTI": self.enable_khalti,
        }.get(method, False)

    def flat_shipping_for(self, sub_total: int) -> int:
        """Flat-rate shipping, waived at or above the free-shipping threshold."""
        if self.free_shipping_threshold is not None and sub_total >= self.free_shipping_threshold:
            return 0
        return self.shipping_charge
