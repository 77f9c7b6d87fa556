# pos/exceptions.py
"""
Error taxonomy for the POS core.

Every error carries a machine-readable ``code``. The HTTP layer maps the
families to status codes:

    PosError
    +-- ValidationError        -> 400, rejected before any write
    +-- NotFoundError          -> 404
    +-- ConflictError          -> 409
        +-- CustomerHasOpenCreditError
        +-- LedgerIntegrityError
"""


class PosError(Exception):
    code = "pos_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# ---- Validation ----

class ValidationError(PosError):
    code = "validation_error"


class InvalidAmountError(ValidationError):
    code = "invalid_amount"

    def __init__(self, amount):
        self.amount = amount
        super().__init__(f"Amount must be greater than zero, got {amount}")


class NoCreditNotesSelectedError(ValidationError):
    code = "no_credit_notes_selected"

    def __init__(self, customer_id: int):
        self.customer_id = customer_id
        super().__init__(f"Customer {customer_id} has no credit notes to apply a payment to")


class IneligibleCreditNoteError(ValidationError):
    code = "ineligible_credit_note"

    def __init__(self, credit_id: int, customer_id: int):
        self.credit_id = credit_id
        self.customer_id = customer_id
        super().__init__(
            f"Credit note {credit_id} is not an open or overdue note of customer {customer_id}"
        )


class PaymentExceedsOutstandingError(ValidationError):
    code = "payment_exceeds_outstanding"

    def __init__(self, amount, outstanding):
        self.amount = amount
        self.outstanding = outstanding
        super().__init__(
            f"Payment of {amount} exceeds the selected outstanding balance of {outstanding}"
        )


class InvalidPaymentMethodError(ValidationError):
    code = "invalid_payment_method"

    def __init__(self, method: str):
        self.method = method
        super().__init__(f"Unsupported payment method {method!r}")


class CreditCustomerRequiredError(ValidationError):
    code = "credit_customer_required"

    def __init__(self):
        super().__init__("A customer must be selected for credit sales")


class EmptyCartError(ValidationError):
    code = "empty_cart"

    def __init__(self):
        super().__init__("The cart is empty")


class InsufficientStockError(ValidationError):
    code = "insufficient_stock"

    def __init__(self, product_id: int, requested, available):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Product {product_id} has {available} in stock, {requested} requested"
        )


# ---- Lookups ----

class NotFoundError(PosError):
    code = "not_found"
    entity = "Record"

    def __init__(self, entity_id):
        self.entity_id = entity_id
        super().__init__(f"{self.entity} {entity_id} not found")


class CustomerNotFoundError(NotFoundError):
    code = "customer_not_found"
    entity = "Customer"


class ProductNotFoundError(NotFoundError):
    code = "product_not_found"
    entity = "Product"


class CreditNoteNotFoundError(NotFoundError):
    code = "credit_note_not_found"
    entity = "Credit note"


# ---- Conflicts ----

class ConflictError(PosError):
    code = "conflict"


class CustomerHasOpenCreditError(ConflictError):
    code = "customer_has_open_credit"

    def __init__(self, customer_id: int):
        self.customer_id = customer_id
        super().__init__(f"Customer {customer_id} still has open or overdue credit notes")


class LedgerIntegrityError(ConflictError):
    code = "ledger_integrity"

    def __init__(self, credit_id: int):
        self.credit_id = credit_id
        super().__init__(
            f"Credit note {credit_id} has no outstanding amount recorded; "
            "run scripts/backfill_credits.py"
        )
