"""
Purchase invoice DTOs - document inbox en inkoopfacturen.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class DocumentInboxResponseDTO(BaseModel):
    """DTO - Document in de inbox."""
    id: UUID
    file_name: str
    mime_type: str
    status: str
    extracted_data: dict | None
    error_message: str | None
    purchase_invoice_id: UUID | None
    uploaded_at: datetime
    processed_at: datetime | None

    model_config = ConfigDict(from_attributes=True)


class PurchaseInvoiceBookDTO(BaseModel):
    """DTO - Inkoopfactuur boeken (uit de inbox of handmatig)."""
    inbox_id: UUID | None = Field(None, description="Document in de inbox")
    contact_id: UUID | None = Field(None, description="Leverancier; leeg = nieuwe leverancier")
    supplier_name: str | None = None
    invoice_number: str = Field(..., min_length=1)
    invoice_date: date
    due_date: date | None = None
    total_amount: Decimal = Field(..., description="Totaal incl. BTW")
    vat_amount: Decimal = Field(Decimal("0"), ge=0)
    net_amount: Decimal | None = Field(None, description="Excl. BTW; standaard totaal - BTW")
    expense_account_id: UUID
    description: str | None = None


class PurchaseInvoiceResponseDTO(BaseModel):
    """DTO - Inkoopfactuur."""
    id: UUID
    contact_id: UUID
    invoice_number: str
    invoice_date: date
    due_date: date | None
    total_amount: Decimal
    vat_amount: Decimal
    net_amount: Decimal
    vat_percentage: Decimal
    expense_account_id: UUID
    description: str | None
    status: str
    journal_entry_id: UUID | None
    paid_at: date | None

    model_config = ConfigDict(from_attributes=True)
