"""
Domain Entities - journaalpost en journaalregels.
Dubbel boekhouden: totaal debet = totaal credit.
"""

import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal

from .exceptions import BookkeepingError, EntryLockedError, UnbalancedEntryError
from .value_objects import (
    BALANCE_TOLERANCE,
    ZERO,
    AccountCode,
    EntryStatus,
    MemoriaalType,
    Money,
    round_cents,
    to_decimal,
)


@dataclass(frozen=True, slots=True)
class JournalLine:
    """Een boeking op een grootboekrekening, debet of credit; bedragen in hele centen."""
    account_id: uuid.UUID
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    description: str | None = None
    account_code: AccountCode | None = None

    def __post_init__(self) -> None:
        debit = to_decimal(self.debit)
        credit = to_decimal(self.credit)
        if debit < 0 or credit < 0:
            raise BookkeepingError("Debet en credit mogen niet negatief zijn")
        if debit > 0 and credit > 0:
            raise BookkeepingError("Een regel kan niet zowel debet als credit hebben")
        object.__setattr__(self, "debit", round_cents(debit))
        object.__setattr__(self, "credit", round_cents(credit))

    @property
    def is_zero(self) -> bool:
        return self.debit == 0 and self.credit == 0


@dataclass
class JournalEntry:
    """
    Entity - journaalpost (memoriaal, bank, inkoop, verkoop).
    Concept-posten mogen uit balans zijn; definitieve posten nooit.
    """
    entry_date: date
    description: str
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    reference: str | None = None
    status: EntryStatus = EntryStatus.DRAFT
    memoriaal_type: MemoriaalType = MemoriaalType.MEMORIAAL
    contact_id: uuid.UUID | None = None
    lines: list[JournalLine] = field(default_factory=list)
    finalized_at: datetime | None = None

    @property
    def total_debit(self) -> Money:
        return Money(sum((line.debit for line in self.lines), ZERO))

    @property
    def total_credit(self) -> Money:
        return Money(sum((line.credit for line in self.lines), ZERO))

    @property
    def difference(self) -> Money:
        return self.total_debit - self.total_credit

    def is_balanced(self) -> bool:
        return abs(self.difference.amount) < BALANCE_TOLERANCE

    def has_amounts(self) -> bool:
        return any(not line.is_zero for line in self.lines)

    @property
    def is_final(self) -> bool:
        return self.status == EntryStatus.FINAL

    def validate_final(self) -> None:
        if not self.has_amounts():
            raise BookkeepingError("Een definitieve boeking heeft minimaal één regel met een bedrag nodig")
        if not self.is_balanced():
            raise UnbalancedEntryError(self.total_debit.amount, self.total_credit.amount)

    def finalize(self) -> "JournalEntry":
        if self.is_final:
            raise EntryLockedError("Boeking is al definitief")
        self.validate_final()
        return replace(self, status=EntryStatus.FINAL, finalized_at=datetime.utcnow())

    def with_lines(self, lines: list[JournalLine]) -> "JournalEntry":
        if self.is_final:
            raise EntryLockedError("Een definitieve boeking kan niet worden gewijzigd")
        return replace(self, lines=list(lines))

    def reversal(self, entry_date: date | None = None) -> "JournalEntry":
        """Tegenboeking: debet en credit omgedraaid, direct definitief."""
        if not self.is_final:
            raise BookkeepingError("Alleen definitieve boekingen kunnen worden teruggedraaid")
        lines = [
            JournalLine(
                account_id=line.account_id,
                debit=line.credit,
                credit=line.debit,
                description=line.description,
                account_code=line.account_code,
            )
            for line in self.lines
        ]
        return JournalEntry(
            entry_date=entry_date or self.entry_date,
            description=f"Correctie: {self.description}",
            reference=self.reference,
            status=EntryStatus.FINAL,
            memoriaal_type=MemoriaalType.CORRECTIE,
            contact_id=self.contact_id,
            lines=lines,
            finalized_at=datetime.utcnow(),
        )
