"""
Sales DTOs - verkoopfacturen, offertes en notificaties.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class LineItemDTO(BaseModel):
    """DTO - Factuur- of offerteregel."""
    description: str = Field(..., min_length=1)
    quantity: Decimal = Field(..., gt=0)
    price: Decimal = Field(..., gt=0)
    vat_percentage: Decimal = Field(Decimal("21"), ge=0, le=100)


class SalesInvoiceCreateDTO(BaseModel):
    """DTO - Nieuwe verkoopfactuur."""
    contact_id: UUID
    invoice_date: date
    due_date: date | None = Field(None, description="Standaard factuurdatum + betaaltermijn")
    items: list[LineItemDTO] = Field(..., min_length=1)
    notes: str | None = None
    book: bool = Field(True, description="Direct boeken in het grootboek")


class SalesInvoiceResponseDTO(BaseModel):
    """DTO - Verkoopfactuur."""
    id: UUID
    contact_id: UUID
    invoice_number: str
    invoice_date: date
    due_date: date | None
    status: str
    items: list[dict]
    subtotal: Decimal
    vat_amount: Decimal
    total_amount: Decimal
    notes: str | None
    quotation_id: UUID | None
    journal_entry_id: UUID | None
    sent_at: datetime | None
    paid_at: date | None

    model_config = ConfigDict(from_attributes=True)


class QuotationCreateDTO(BaseModel):
    """DTO - Nieuwe offerte."""
    contact_id: UUID
    quote_date: date
    valid_until: date | None = Field(None, description="Standaard offertedatum + geldigheid")
    items: list[LineItemDTO] = Field(..., min_length=1)
    notes: str | None = None
    terms: str | None = None


class QuotationUpdateDTO(BaseModel):
    contact_id: UUID | None = None
    quote_date: date | None = None
    valid_until: date | None = None
    items: list[LineItemDTO] | None = Field(None, min_length=1)
    notes: str | None = None
    terms: str | None = None


class QuotationResponseDTO(BaseModel):
    """DTO - Offerte."""
    id: UUID
    contact_id: UUID
    quote_number: str
    quote_date: date
    valid_until: date
    status: str
    items: list[dict]
    subtotal: Decimal
    vat_amount: Decimal
    total_amount: Decimal
    notes: str | None
    terms: str | None
    public_token: UUID
    accepted_at: datetime | None
    sent_at: datetime | None
    converted_invoice_id: UUID | None

    model_config = ConfigDict(from_attributes=True)


class PublicQuotationDTO(BaseModel):
    """DTO - Offerte zoals de klant hem ziet."""
    quote_number: str
    quote_date: date
    valid_until: date
    status: str
    company_name: str
    customer_name: str
    items: list[dict]
    subtotal: Decimal
    vat_amount: Decimal
    total_amount: Decimal
    notes: str | None
    terms: str | None
    is_expired: bool


class NotificationResponseDTO(BaseModel):
    id: UUID
    type: str
    title: str
    message: str
    reference_id: UUID | None
    reference_type: str | None
    is_read: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
