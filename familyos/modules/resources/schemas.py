from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Literal
import datetime as dt
from decimal import Decimal

from familyos.core.envelope import ResourceKind
from familyos.core.roles import EditMode


class EnvelopeCreate(BaseModel):
    # Ignored unless it names the caller; attributing a resource to someone else is rejected
    created_by: Optional[str] = None
    edit_mode: Optional[EditMode] = None


class EnvelopeUpdate(BaseModel):
    edit_mode: Optional[EditMode] = None


class EnvelopeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: str
    group_id: str
    created_by: Optional[str] = None
    edit_mode: Optional[EditMode] = None
    updated_by: Optional[str] = None
    updated_at: Optional[dt.datetime] = None
    created_at: Optional[dt.datetime] = None


# Cards

class CardCreate(EnvelopeCreate):
    name: str
    brand: Optional[str] = None
    card_number: Optional[str] = None
    barcode: Optional[str] = None
    points_balance: Optional[str] = None
    expiry_date: Optional[dt.date] = None
    notes: Optional[str] = None


class CardUpdate(EnvelopeUpdate):
    name: Optional[str] = None
    brand: Optional[str] = None
    card_number: Optional[str] = None
    barcode: Optional[str] = None
    points_balance: Optional[str] = None
    expiry_date: Optional[dt.date] = None
    notes: Optional[str] = None


class CardResponse(EnvelopeResponse):
    name: str
    brand: Optional[str] = None
    card_number: Optional[str] = None
    barcode: Optional[str] = None
    points_balance: Optional[str] = None
    expiry_date: Optional[dt.date] = None
    notes: Optional[str] = None


# Documents

MAX_DOCUMENT_SIZE = 5 * 1024 * 1024


class DocumentCreate(EnvelopeCreate):
    name: str
    url: Optional[str] = None
    file_size: Optional[int] = Field(default=None, ge=0, le=MAX_DOCUMENT_SIZE)
    mime_type: Optional[str] = None
    file_extension: Optional[str] = None


class DocumentUpdate(EnvelopeUpdate):
    name: Optional[str] = None
    url: Optional[str] = None


class DocumentResponse(EnvelopeResponse):
    name: str
    url: Optional[str] = None
    file_size: Optional[int] = None
    mime_type: Optional[str] = None
    file_extension: Optional[str] = None
    uploaded_by: Optional[str] = None


# Events

EventType = Literal["single", "recurring", "range"]
RecurrencePattern = Literal["daily", "weekly", "monthly", "yearly"]


class EventCreate(EnvelopeCreate):
    title: str
    date: dt.date
    start_datetime: Optional[dt.datetime] = None
    end_datetime: Optional[dt.datetime] = None
    event_type: EventType = "single"
    recurrence_pattern: Optional[RecurrencePattern] = None
    recurrence_interval: int = Field(default=1, ge=1)
    recurrence_end_date: Optional[dt.date] = None
    description: Optional[str] = None


class EventUpdate(EnvelopeUpdate):
    title: Optional[str] = None
    date: Optional[dt.date] = None
    start_datetime: Optional[dt.datetime] = None
    end_datetime: Optional[dt.datetime] = None
    event_type: Optional[EventType] = None
    recurrence_pattern: Optional[RecurrencePattern] = None
    recurrence_interval: Optional[int] = Field(default=None, ge=1)
    recurrence_end_date: Optional[dt.date] = None
    description: Optional[str] = None


class EventResponse(EnvelopeResponse):
    title: str
    date: dt.date
    start_datetime: Optional[dt.datetime] = None
    end_datetime: Optional[dt.datetime] = None
    event_type: Optional[str] = None
    recurrence_pattern: Optional[str] = None
    recurrence_interval: Optional[int] = None
    recurrence_end_date: Optional[dt.date] = None
    description: Optional[str] = None


# Lists

class ListCreate(EnvelopeCreate):
    title: str
    items: List[dict] = []


class ListUpdate(EnvelopeUpdate):
    title: Optional[str] = None
    items: Optional[List[dict]] = None


class ListResponse(EnvelopeResponse):
    title: str
    items: List[dict] = []


# Subscriptions

BillingCycle = Literal["weekly", "monthly", "quarterly", "yearly"]
SubscriptionCategory = Literal[
    "streaming", "utilities", "insurance", "software", "fitness", "food",
    "transport", "gaming", "news", "cloud", "other"
]


class SubscriptionCreate(EnvelopeCreate):
    title: str
    provider: Optional[str] = None
    cost: Decimal = Field(ge=0)
    currency: str = "USD"
    billing_cycle: BillingCycle
    billing_day: Optional[int] = Field(default=None, ge=1, le=31)
    payer_id: Optional[str] = None
    category: Optional[SubscriptionCategory] = None
    payment_method: Optional[str] = None
    next_payment_date: dt.date
    start_date: dt.date
    end_date: Optional[dt.date] = None


class SubscriptionUpdate(EnvelopeUpdate):
    title: Optional[str] = None
    provider: Optional[str] = None
    cost: Optional[Decimal] = Field(default=None, ge=0)
    currency: Optional[str] = None
    billing_cycle: Optional[BillingCycle] = None
    billing_day: Optional[int] = Field(default=None, ge=1, le=31)
    payer_id: Optional[str] = None
    category: Optional[SubscriptionCategory] = None
    payment_method: Optional[str] = None
    next_payment_date: Optional[dt.date] = None
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None


class SubscriptionResponse(EnvelopeResponse):
    title: str
    provider: Optional[str] = None
    cost: Decimal
    currency: Optional[str] = None
    billing_cycle: str
    billing_day: Optional[int] = None
    payer_id: Optional[str] = None
    category: Optional[str] = None
    payment_method: Optional[str] = None
    next_payment_date: dt.date
    start_date: dt.date
    end_date: Optional[dt.date] = None


# Notes

class NoteCreate(EnvelopeCreate):
    title: str
    content: str
    is_important: bool = False


class NoteUpdate(EnvelopeUpdate):
    title: Optional[str] = None
    content: Optional[str] = None
    is_important: Optional[bool] = None


class NoteResponse(EnvelopeResponse):
    title: str
    content: str
    is_important: bool = False


RESOURCE_SCHEMAS = {
    ResourceKind.CARD: (CardCreate, CardUpdate, CardResponse),
    ResourceKind.DOCUMENT: (DocumentCreate, DocumentUpdate, DocumentResponse),
    ResourceKind.EVENT: (EventCreate, EventUpdate, EventResponse),
    ResourceKind.LIST: (ListCreate, ListUpdate, ListResponse),
    ResourceKind.SUBSCRIPTION: (SubscriptionCreate, SubscriptionUpdate, SubscriptionResponse),
    ResourceKind.NOTE: (NoteCreate, NoteUpdate, NoteResponse),
}
