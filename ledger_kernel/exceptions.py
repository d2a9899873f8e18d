"""
Typed Exception Hierarchy for the Ledger Kernel.

===============================================================================
ERROR KINDS
===============================================================================

Every failure the kernel reports falls into exactly one of three kinds.  The
API layer maps the kind to a response; the kernel never does.

    LedgerKernelError (base)
    |
    +-- ValidationError            kind = "validation"
    |   +-- InvalidFieldError
    |   +-- InvalidPaginationError
    |   +-- InvalidAmountError
    |   +-- EmptyEntryError
    |   +-- InvalidLineError
    |   +-- UnbalancedEntryError
    |   +-- InvalidAccountError
    |   +-- InvalidParentError
    |   +-- PaymentMethodInactiveError
    |   +-- EmptyNoteError
    |   +-- InvalidNoteItemError
    |
    +-- NotFoundError              kind = "not_found"
    |   +-- AccountNotFoundError
    |   +-- ParentAccountNotFoundError
    |   +-- JournalEntryNotFoundError
    |   +-- InvoiceNotFoundError
    |   +-- PaymentMethodNotFoundError
    |   +-- CustomerNotFoundError
    |   +-- ProductNotFoundError
    |
    +-- ConflictError              kind = "conflict"
        +-- DuplicateAccountCodeError
        +-- AccountReferencedError
        +-- AccountHasChildrenError
        +-- EntryAlreadyPostedError
        +-- PaymentExceedsBalanceError
        +-- DuplicatePaymentMethodError
        +-- ConcurrentModificationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Kind        | Code                        | When Raised
------------|-----------------------------|---------------------------------------
Validation  | INVALID_FIELD               | Required field blank / bad enum value
            | INVALID_PAGINATION          | page < 1 or limit outside bounds
            | INVALID_AMOUNT              | Non-positive or sub-unit amount
            | EMPTY_ENTRY                 | Journal entry without lines
            | INVALID_LINE                | Negative, zero or two-sided line
            | UNBALANCED_ENTRY            | Total debit != total credit
            | INVALID_ACCOUNT             | Line account missing or inactive
            | INVALID_PARENT              | Parent is self or a descendant
            | PAYMENT_METHOD_INACTIVE     | Payment via deactivated method
            | EMPTY_NOTE                  | Credit/debit note without items
            | INVALID_NOTE_ITEM           | Non-positive quantity or unit price
------------|-----------------------------|---------------------------------------
NotFound    | ACCOUNT_NOT_FOUND           | Account id unknown in tenant
            | PARENT_ACCOUNT_NOT_FOUND    | parent_id unknown in tenant
            | JOURNAL_ENTRY_NOT_FOUND     | Entry id unknown in tenant
            | INVOICE_NOT_FOUND           | Invoicing has no such invoice
            | PAYMENT_METHOD_NOT_FOUND    | Payment method id unknown in tenant
            | CUSTOMER_NOT_FOUND          | Customer catalog has no such customer
            | PRODUCT_NOT_FOUND           | Product catalog has no such product
------------|-----------------------------|---------------------------------------
Conflict    | DUPLICATE_ACCOUNT_CODE      | Account code already used in tenant
            | ACCOUNT_REFERENCED          | Account has journal lines
            | ACCOUNT_HAS_CHILDREN        | Account is a parent of other accounts
            | ENTRY_ALREADY_POSTED        | Posting an entry twice
            | PAYMENT_EXCEEDS_BALANCE     | amount > invoice remaining balance
            | DUPLICATE_PAYMENT_METHOD    | Payment method name already used
            | CONCURRENT_MODIFICATION     | Database reported a lock conflict

===============================================================================
HANDLING PATTERNS
===============================================================================

1. CATCH BY KIND at the outer edge:

    try:
        kernel.create_payment(...)
    except NotFoundError as e:
        return 404, {"code": e.code}
    except ConflictError as e:
        return 409, {"code": e.code}

2. USE STRUCTURED DATA (not message parsing):

    except PaymentExceedsBalanceError as e:
        return {"remaining": e.remaining, "requested": e.amount}

3. NEVER AUTO-RETRY financial mutations.  A ConcurrentModificationError is
   reported to the caller, who resubmits deliberately.
"""

from decimal import Decimal


class LedgerKernelError(Exception):
    """
    Base exception for all ledger kernel errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    identification and a ``kind`` naming the error category.
    """

    code: str = "LEDGER_KERNEL_ERROR"
    kind: str = "internal"


class ValidationError(LedgerKernelError):
    """Malformed input or a violated input invariant."""

    code: str = "VALIDATION_ERROR"
    kind: str = "validation"


class NotFoundError(LedgerKernelError):
    """A referenced record does not exist within the tenant."""

    code: str = "NOT_FOUND"
    kind: str = "not_found"


class ConflictError(LedgerKernelError):
    """The request conflicts with current persisted state."""

    code: str = "CONFLICT"
    kind: str = "conflict"


# Validation


class InvalidFieldError(ValidationError):
    """A field is missing, blank or carries an unsupported value."""

    code: str = "INVALID_FIELD"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid value for '{field}': {reason}")


class InvalidPaginationError(ValidationError):
    """Page or limit outside the accepted range."""

    code: str = "INVALID_PAGINATION"

    def __init__(self, page: int, limit: int, max_limit: int):
        self.page = page
        self.limit = limit
        self.max_limit = max_limit
        super().__init__(
            f"Invalid pagination page={page} limit={limit} "
            f"(page >= 1, 1 <= limit <= {max_limit})"
        )


class InvalidAmountError(ValidationError):
    """Monetary amount is negative, zero where positive is required, or too precise."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, field: str, amount: str, reason: str):
        self.field = field
        self.amount = amount
        self.reason = reason
        super().__init__(f"Invalid amount for '{field}' ({amount}): {reason}")


class EmptyEntryError(ValidationError):
    """Journal entry submitted without lines."""

    code: str = "EMPTY_ENTRY"

    def __init__(self):
        super().__init__("Journal entry must contain at least one line")


class InvalidLineError(ValidationError):
    """A journal line is malformed."""

    code: str = "INVALID_LINE"

    def __init__(self, line_index: int, reason: str):
        self.line_index = line_index
        self.reason = reason
        super().__init__(f"Invalid journal line {line_index}: {reason}")


class UnbalancedEntryError(ValidationError):
    """Journal entry debits do not equal credits."""

    code: str = "UNBALANCED_ENTRY"

    def __init__(self, total_debit: Decimal, total_credit: Decimal):
        self.total_debit = total_debit
        self.total_credit = total_credit
        super().__init__(
            f"Unbalanced entry: total_debit={total_debit}, total_credit={total_credit}"
        )


class InvalidAccountError(ValidationError):
    """One or more line accounts are missing or inactive."""

    code: str = "INVALID_ACCOUNT"

    def __init__(self, account_ids: list[str], reason: str):
        self.account_ids = account_ids
        self.reason = reason
        super().__init__(
            f"Accounts cannot be posted to ({reason}): {', '.join(account_ids)}"
        )


class InvalidParentError(ValidationError):
    """Parent assignment would make the account tree cyclic."""

    code: str = "INVALID_PARENT"

    def __init__(self, account_id: str, parent_id: str):
        self.account_id = account_id
        self.parent_id = parent_id
        super().__init__(
            f"Account {parent_id} cannot be the parent of {account_id}: "
            f"it is the account itself or one of its descendants"
        )


class PaymentMethodInactiveError(ValidationError):
    """Payment method exists but is deactivated."""

    code: str = "PAYMENT_METHOD_INACTIVE"

    def __init__(self, payment_method_id: str):
        self.payment_method_id = payment_method_id
        super().__init__(f"Payment method is inactive: {payment_method_id}")


class EmptyNoteError(ValidationError):
    """Credit or debit note submitted without items."""

    code: str = "EMPTY_NOTE"

    def __init__(self, note_kind: str):
        self.note_kind = note_kind
        super().__init__(f"{note_kind} must contain at least one item")


class InvalidNoteItemError(ValidationError):
    """A credit/debit note item is malformed."""

    code: str = "INVALID_NOTE_ITEM"

    def __init__(self, item_index: int, reason: str):
        self.item_index = item_index
        self.reason = reason
        super().__init__(f"Invalid note item {item_index}: {reason}")


# Not found


class AccountNotFoundError(NotFoundError):
    """Account with given ID was not found in the tenant."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Account not found: {account_id}")


class ParentAccountNotFoundError(NotFoundError):
    """Requested parent account was not found in the tenant."""

    code: str = "PARENT_ACCOUNT_NOT_FOUND"

    def __init__(self, parent_id: str):
        self.parent_id = parent_id
        super().__init__(f"Parent account not found: {parent_id}")


class JournalEntryNotFoundError(NotFoundError):
    """Journal entry with given ID was not found in the tenant."""

    code: str = "JOURNAL_ENTRY_NOT_FOUND"

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Journal entry not found: {entry_id}")


class InvoiceNotFoundError(NotFoundError):
    """Invoicing collaborator has no such invoice for the tenant."""

    code: str = "INVOICE_NOT_FOUND"

    def __init__(self, invoice_id: str):
        self.invoice_id = invoice_id
        super().__init__(f"Invoice not found: {invoice_id}")


class PaymentMethodNotFoundError(NotFoundError):
    """Payment method with given ID was not found in the tenant."""

    code: str = "PAYMENT_METHOD_NOT_FOUND"

    def __init__(self, payment_method_id: str):
        self.payment_method_id = payment_method_id
        super().__init__(f"Payment method not found: {payment_method_id}")


class CustomerNotFoundError(NotFoundError):
    """Customer catalog has no such customer for the tenant."""

    code: str = "CUSTOMER_NOT_FOUND"

    def __init__(self, customer_id: str):
        self.customer_id = customer_id
        super().__init__(f"Customer not found: {customer_id}")


class ProductNotFoundError(NotFoundError):
    """Product catalog has no such product for the tenant."""

    code: str = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")


# Conflict


class DuplicateAccountCodeError(ConflictError):
    """Account code is already used within the tenant."""

    code: str = "DUPLICATE_ACCOUNT_CODE"

    def __init__(self, account_code: str):
        self.account_code = account_code
        super().__init__(f"An account with code '{account_code}' already exists")


class AccountReferencedError(ConflictError):
    """Account is referenced by journal lines."""

    code: str = "ACCOUNT_REFERENCED"

    def __init__(self, account_id: str, line_count: int, operation: str = "delete"):
        self.account_id = account_id
        self.line_count = line_count
        self.operation = operation
        super().__init__(
            f"Cannot {operation} account {account_id}: "
            f"referenced by {line_count} journal line(s)"
        )


class AccountHasChildrenError(ConflictError):
    """Account is the parent of other accounts."""

    code: str = "ACCOUNT_HAS_CHILDREN"

    def __init__(self, account_id: str, child_count: int):
        self.account_id = account_id
        self.child_count = child_count
        super().__init__(
            f"Cannot delete account {account_id}: it has {child_count} child account(s)"
        )


class EntryAlreadyPostedError(ConflictError):
    """Journal entry has already been posted."""

    code: str = "ENTRY_ALREADY_POSTED"

    def __init__(self, entry_id: str, entry_number: str):
        self.entry_id = entry_id
        self.entry_number = entry_number
        super().__init__(f"Journal entry {entry_number} is already posted")


class PaymentExceedsBalanceError(ConflictError):
    """Payment amount is greater than the invoice's remaining balance."""

    code: str = "PAYMENT_EXCEEDS_BALANCE"

    def __init__(self, invoice_id: str, amount: Decimal, remaining: Decimal):
        self.invoice_id = invoice_id
        self.amount = amount
        self.remaining = remaining
        super().__init__(
            f"Payment of {amount} exceeds remaining balance {remaining} "
            f"on invoice {invoice_id}"
        )


class DuplicatePaymentMethodError(ConflictError):
    """Payment method name is already used within the tenant."""

    code: str = "DUPLICATE_PAYMENT_METHOD"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"A payment method named '{name}' already exists")


class ConcurrentModificationError(ConflictError):
    """The database aborted the transaction because of a concurrent writer."""

    code: str = "CONCURRENT_MODIFICATION"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(
            f"Concurrent modification detected during {operation}: {detail}"
        )
