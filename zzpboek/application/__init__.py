"""Application layer - Use cases and DTOs."""

from zzpboek.application.dto.ledger_dto import (
    AccountResponseDTO,
    BalanceCheckResultDTO,
    ContactResponseDTO,
    JournalEntryCreateDTO,
    JournalEntryResponseDTO,
)
from zzpboek.application.dto.report_dto import (
    AuditLogResponseDTO,
    BalanceSheetDTO,
    ProfitAndLossDTO,
    TrialBalanceDTO,
    VatReturnDTO,
)
