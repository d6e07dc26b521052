from pydantic import BaseModel, ConfigDict, Field, AliasChoices, ValidationError, field_validator
from datetime import date as date_type, datetime
from enum import Enum
from typing import Any, Dict, List, Optional
import math
import re
import secrets
import time


class InvoiceStatus(str, Enum):
    PAID = "paid"
    PENDING = "pending"
    OVERDUE = "overdue"


STATUS_LABELS = {
    InvoiceStatus.PAID: "Paid",
    InvoiceStatus.PENDING: "Pending",
    InvoiceStatus.OVERDUE: "Overdue",
}

# Status values written by the first (Spanish) release of the tracker
LEGACY_STATUS_ALIASES = {
    "pagado": InvoiceStatus.PAID,
    "pendiente": InvoiceStatus.PENDING,
    "vencida": InvoiceStatus.OVERDUE,
}

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_WHOLE_NUMBER = re.compile(r"^\d+$")


def _to_base36(value: int) -> str:
    digits = []
    while True:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
        if value == 0:
            break
    return "".join(reversed(digits))


def new_invoice_id() -> str:
    """Millisecond timestamp plus a random suffix, both base-36."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(10))
    return _to_base36(int(time.time() * 1000)) + suffix


def coerce_amount(value: Any) -> int:
    """
    Reads an amount the way stored data is interpreted: leading integer
    digits win, anything unreadable or negative becomes 0.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(value, 0)
    if isinstance(value, float):
        if not math.isfinite(value):
            return 0
        return max(int(value), 0)
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        if match:
            return max(int(match.group(1)), 0)
    return 0


class Invoice(BaseModel):
    """A stored invoice record. Accepts the legacy Spanish field names on input."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = Field(default_factory=new_invoice_id)
    number: str = Field("", validation_alias=AliasChoices("number", "numero"))
    date: date_type = Field(validation_alias=AliasChoices("date", "fecha"))
    client: str = Field("", validation_alias=AliasChoices("client", "cliente"))
    amount: int = Field(0, validation_alias=AliasChoices("amount", "monto"))
    status: InvoiceStatus = Field(InvoiceStatus.PENDING, validation_alias=AliasChoices("status", "estado"))
    notes: str = Field("", validation_alias=AliasChoices("notes", "notas"))

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, v):
        if v is None or v == "":
            return new_invoice_id()
        return str(v)

    @field_validator("number", "client", "notes", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return "" if v is None else str(v)

    @field_validator("amount", mode="before")
    @classmethod
    def coerce_stored_amount(cls, v):
        return coerce_amount(v)

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        if isinstance(v, InvoiceStatus):
            return v
        if isinstance(v, str):
            key = v.strip().lower()
            if key in LEGACY_STATUS_ALIASES:
                return LEGACY_STATUS_ALIASES[key]
            for status in InvoiceStatus:
                if status.value == key:
                    return status
        return InvoiceStatus.PENDING

    @property
    def status_label(self) -> str:
        return STATUS_LABELS[self.status]


class InvoiceForm(BaseModel):
    """
    User-submitted invoice fields. Every rule here blocks the save; nothing
    that fails validation reaches the store.
    """

    number: str = Field("", validate_default=True)
    date: Optional[date_type] = None
    client: str = Field("", validate_default=True)
    amount: int = Field(None, validate_default=True)
    status: InvoiceStatus = InvoiceStatus.PENDING
    notes: str = ""

    @field_validator("number", mode="before")
    @classmethod
    def require_number(cls, v):
        if v is None or not str(v).strip():
            raise ValueError("Invoice number is required")
        return str(v).strip()

    @field_validator("client", mode="before")
    @classmethod
    def require_client(cls, v):
        if v is None or not str(v).strip():
            raise ValueError("Client is required")
        return str(v).strip()

    @field_validator("date", mode="before")
    @classmethod
    def validate_date_format(cls, v):
        if isinstance(v, str):
            if not v.strip():
                raise ValueError("Date is required")
            try:
                datetime.strptime(v.strip(), "%Y-%m-%d")
            except ValueError:
                raise ValueError("Date must be in YYYY-MM-DD format")
            return v.strip()
        return v

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, v):
        message = "Amount must be a whole number greater than 0"
        if v is None or (isinstance(v, str) and not v.strip()):
            raise ValueError("Amount is required")
        if isinstance(v, bool):
            raise ValueError(message)
        if isinstance(v, str):
            if not _WHOLE_NUMBER.match(v.strip()):
                raise ValueError(message)
            v = int(v.strip())
        elif isinstance(v, float):
            if not math.isfinite(v) or not v.is_integer():
                raise ValueError(message)
            v = int(v)
        elif not isinstance(v, int):
            raise ValueError(message)
        if v <= 0:
            raise ValueError(message)
        return v

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v):
        if v is None or v == "":
            return InvoiceStatus.PENDING
        allowed = [s.value for s in InvoiceStatus]
        if isinstance(v, str) and v.strip().lower() in allowed:
            return v.strip().lower()
        if isinstance(v, InvoiceStatus):
            return v
        raise ValueError(f"Status must be one of: {', '.join(allowed)}")

    @field_validator("notes", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return "" if v is None else str(v)

    def to_fields(self) -> Dict[str, Any]:
        return self.model_dump()


def form_errors(exc: ValidationError) -> Dict[str, str]:
    """Flattens a pydantic error into one message per form field."""
    errors: Dict[str, str] = {}
    for err in exc.errors():
        field = str(err["loc"][0]) if err.get("loc") else "form"
        message = err.get("msg", "Invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.setdefault(field, message)
    return errors


class InvoiceListResponse(BaseModel):
    invoices: List[Invoice] = []
    count: int = 0
    total_count: int = 0
    total_amount: int = 0


class InvoiceMutationResponse(BaseModel):
    invoice: Invoice
    persisted: bool = True
