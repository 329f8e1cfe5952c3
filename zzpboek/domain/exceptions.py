"""
Domain exceptions. Mapped to HTTP responses in `zzpboek.main`.
"""


class BookkeepingError(ValueError):
    """Business rule violation (HTTP 400)."""


class UnbalancedEntryError(BookkeepingError):
    def __init__(self, total_debit, total_credit):
        self.total_debit = total_debit
        self.total_credit = total_credit
        super().__init__(
            f"Boeking niet in balans: debet {total_debit} != credit {total_credit}"
        )


class EntryLockedError(BookkeepingError):
    """Final entries cannot be changed or deleted."""


class NotFoundError(LookupError):
    """Entity does not exist (HTTP 404)."""

    def __init__(self, entity: str, key):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} niet gevonden: {key}")


class DuplicateError(BookkeepingError):
    """Unique business key already used (HTTP 409)."""


class ExternalServiceError(RuntimeError):
    """Upstream service (AI extraction) failed (HTTP 502)."""


class BankFileError(BookkeepingError):
    """Bank statement could not be parsed."""
