class LedgerError(Exception):
    pass


class UnauthorizedError(LedgerError):
    pass


class NotFoundError(LedgerError):
    pass


class PurchaseNotFoundError(NotFoundError):
    pass


class CodeNotFoundError(NotFoundError):
    pass


class ConflictError(LedgerError):
    """Double submission. Retrying the same request yields the same error."""


class PurchaseAlreadyValidatedError(ConflictError):
    pass


class CodeAlreadyRedeemedError(ConflictError):
    pass


class PurchaseExistsError(ConflictError):
    pass


class LedgerValidationError(LedgerError):
    pass


class EmptyReasonError(LedgerValidationError):
    pass


class InvalidAmountError(LedgerValidationError):
    pass


class InvalidEmailError(LedgerValidationError):
    pass


class InvalidPaymentRefError(LedgerValidationError):
    pass


class InvalidRedeemerError(LedgerValidationError):
    pass


class TransientStoreError(LedgerError):
    """Store unreachable or timed out; safe to retry with backoff."""


class CodeMintError(TransientStoreError):
    pass
