"""Domain layer - Pure Python business logic."""

from zzpboek.domain.entities import JournalEntry, JournalLine
from zzpboek.domain.exceptions import (
    BookkeepingError,
    DuplicateError,
    EntryLockedError,
    ExternalServiceError,
    NotFoundError,
    UnbalancedEntryError,
)
from zzpboek.domain.services import (
    AccountTotal,
    CategoryGroup,
    IncomeTaxCalculator,
    build_tax_balance_sheet,
    calculate_invoice_vat,
    group_by_category,
    signed_balance,
)
from zzpboek.domain.tax_categories import infer_tax_category, infer_tax_category_with_confidence
from zzpboek.domain.value_objects import (
    AccountCode,
    AccountType,
    EntryStatus,
    LineItem,
    MemoriaalType,
    Money,
)
