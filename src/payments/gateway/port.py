"""Payment gateway port (abstract interface).

Defines what the payments context needs from a hosted-checkout gateway:
signing outbound redirects, authenticating inbound callbacks and reading the
fields the reconciler cares about out of a callback payload.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal


@dataclass(frozen=True)
class GatewayNotification:
    """Fields of a gateway callback, as transmitted (not yet trusted)."""

    order_ref: str | None
    result_code: str | None
    raw_amount: str | None
    transaction_ref: str | None
    params: Mapping[str, str] = field(default_factory=dict, repr=False)


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    name: str

    @abstractmethod
    def build_payment_url(
        self,
        order_ref: str,
        amount: Decimal,
        order_info: str,
        client_ip: str,
        now: datetime,
        bank_code: str | None = None,
    ) -> str:
        """Return the signed URL the customer is redirected to for payment."""
        ...

    @abstractmethod
    def verify_signature(self, params: Mapping[str, str]) -> bool:
        """Check that a callback payload was signed with the merchant secret."""
        ...

    @abstractmethod
    def parse_notification(self, params: Mapping[str, str]) -> GatewayNotification:
        """Extract reconciliation fields from a callback payload."""
        ...

    @abstractmethod
    def normalize_amount(self, raw_amount: str) -> Decimal:
        """Convert a transmitted amount to the store's currency units."""
        ...

    @abstractmethod
    def is_success(self, result_code: str | None) -> bool:
        """Whether ``result_code`` reports a completed payment."""
        ...
