"""Error taxonomy for order commitment and payment reconciliation.

Built on Protean's exception vocabulary so callers can keep catching
``ValidationError`` / ``ObjectNotFoundError`` / ``InvalidOperationError``
exactly as they do elsewhere in the platform:

    Validation  -> protean.exceptions.ValidationError
    NotFound    -> protean.exceptions.ObjectNotFoundError
    Conflict    -> protean.exceptions.InvalidOperationError
    Integrity   -> IntegrityViolation   (hostile input, never retried)
    Storage     -> StorageFailure       (the only retryable category)

Every concrete error carries a stable ``code`` and a ``messages`` dict that is
safe to show to the caller.
"""

from protean.exceptions import (
    InvalidOperationError,
    ObjectNotFoundError,
    ProteanException,
    ValidationError,
)

__all__ = [
    "AmountMismatch",
    "IntegrityViolation",
    "InvalidOperationError",
    "ItemNotFound",
    "ObjectNotFoundError",
    "OrderNotFound",
    "OrderNotPayable",
    "SignatureInvalid",
    "StorageFailure",
    "ValidationError",
    "VoucherCategoryMismatch",
    "VoucherExhausted",
    "VoucherExpired",
    "VoucherMinAmountNotMet",
    "VoucherMinQuantityNotMet",
    "VoucherNotFound",
    "VoucherRejected",
    "error_code",
]


def error_code(exc: Exception) -> str:
    """Return the machine-readable code of a domain error."""
    return getattr(exc, "code", None) or type(exc).__name__


# ---------------------------------------------------------------------------
# NotFound
# ---------------------------------------------------------------------------
class ItemNotFound(ObjectNotFoundError):
    code = "ITEM_NOT_FOUND"

    def __init__(self, item_ids):
        self.item_ids = sorted(item_ids)
        listed = ", ".join(str(i) for i in self.item_ids)
        super().__init__({"items": [f"Catalog item(s) not found: {listed}"]})


class VoucherNotFound(ObjectNotFoundError):
    code = "VOUCHER_NOT_FOUND"

    def __init__(self, voucher_code):
        self.voucher_code = voucher_code
        super().__init__({"voucher_code": ["Voucher does not exist or is inactive"]})


class OrderNotFound(ObjectNotFoundError):
    code = "ORDER_NOT_FOUND"

    def __init__(self, order_ref):
        self.order_ref = order_ref
        super().__init__({"order": [f"Order {order_ref} not found"]})


# ---------------------------------------------------------------------------
# Conflict / business-rule rejections
# ---------------------------------------------------------------------------
class VoucherRejected(InvalidOperationError):
    """The voucher exists but cannot be applied to this order."""

    code = "VOUCHER_REJECTED"

    def __init__(self, message):
        super().__init__({"voucher_code": [message]})


class VoucherExpired(VoucherRejected):
    code = "VOUCHER_EXPIRED"

    def __init__(self):
        super().__init__("Voucher has expired or is not yet valid")


class VoucherMinAmountNotMet(VoucherRejected):
    code = "VOUCHER_MIN_AMOUNT_NOT_MET"

    def __init__(self, min_order_amount):
        self.min_order_amount = min_order_amount
        super().__init__(f"Order must total at least {min_order_amount} to use this voucher")


class VoucherMinQuantityNotMet(VoucherRejected):
    code = "VOUCHER_MIN_QUANTITY_NOT_MET"

    def __init__(self, min_quantity):
        self.min_quantity = min_quantity
        super().__init__(f"Order must contain at least {min_quantity} items to use this voucher")


class VoucherCategoryMismatch(VoucherRejected):
    code = "VOUCHER_CATEGORY_MISMATCH"

    def __init__(self, categories):
        self.categories = list(categories)
        super().__init__(f"Voucher only applies to categories: {', '.join(self.categories)}")


class VoucherExhausted(InvalidOperationError):
    code = "VOUCHER_EXHAUSTED"

    def __init__(self, voucher_code):
        self.voucher_code = voucher_code
        super().__init__({"voucher_code": ["Voucher usage limit has been reached"]})


class OrderNotPayable(InvalidOperationError):
    code = "ORDER_NOT_PAYABLE"

    def __init__(self, message):
        super().__init__({"order": [message]})


# ---------------------------------------------------------------------------
# Integrity (untrusted input)
# ---------------------------------------------------------------------------
class IntegrityViolation(ProteanException):
    """Input that failed an authenticity or consistency check."""

    code = "INTEGRITY_VIOLATION"


class SignatureInvalid(IntegrityViolation):
    code = "SIGNATURE_INVALID"

    def __init__(self):
        super().__init__({"signature": ["Signature verification failed"]})


class AmountMismatch(IntegrityViolation):
    code = "AMOUNT_MISMATCH"

    def __init__(self, expected, received):
        self.expected = expected
        self.received = received
        super().__init__({"amount": ["Amount does not match the order total"]})


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------
class StorageFailure(ProteanException):
    """A transaction could not be completed. Safe to retry."""

    code = "STORAGE_FAILURE"

    def __init__(self, operation):
        self.operation = operation
        super().__init__({"_storage": ["The request could not be completed, please retry"]})
