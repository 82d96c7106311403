"""Payment gateway factory.

Gateways are built from settings and handed to the application explicitly;
there is no process-wide "current gateway".
"""

from payments.gateway.port import GatewayNotification, PaymentGateway
from payments.gateway.vnpay_adapter import VNPayGateway
from shared.config import GatewaySettings

__all__ = ["GatewayNotification", "PaymentGateway", "VNPayGateway", "build_gateway"]


def build_gateway(settings: GatewaySettings) -> PaymentGateway:
    """Return the gateway adapter configured by ``settings``."""
    return VNPayGateway(settings)
