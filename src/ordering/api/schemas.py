"""Pydantic request/response schemas for the ordering API.

These are external contracts, kept separate from the internal Protean
commands. ``status`` is accepted as a plain string so an unknown literal
reaches the state machine and is rejected with its message.
"""

from datetime import date

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------
class UpdateStatusRequest(BaseModel):
    status: str = Field(min_length=1, max_length=50)
    note: str | None = Field(default=None, max_length=2000)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"status": "confirmed", "note": None},
                {"status": "out_for_delivery", "note": "Van left at 9am"},
            ]
        }
    }


class AddNoteRequest(BaseModel):
    note: str = Field(min_length=1, max_length=2000)


class ChangeFarmStatusRequest(BaseModel):
    status: str


class ChangeUserRoleRequest(BaseModel):
    role: str = Field(min_length=1, max_length=20)


class OrderLineSchema(BaseModel):
    product_id: str | None = None
    name: str = Field(min_length=1, max_length=255)
    price: int = Field(ge=0, description="Unit price in pence")
    unit: str | None = None
    weight: str | None = None
    quantity: int = Field(ge=1)


class PlaceOrderRequest(BaseModel):
    farm_id: str
    items: list[OrderLineSchema] = Field(min_length=1)
    delivery_address: str = Field(min_length=1)
    delivery_address_json: dict | None = None
    delivery_notes: str | None = None
    requested_delivery_date: date | None = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------
class OrderStatusSchema(BaseModel):
    id: str
    status: str
    previous_status: str | None


class SecondaryFailureSchema(BaseModel):
    step: str
    error: str


class StatusChangeResponse(BaseModel):
    success: bool = True
    order: OrderStatusSchema
    event_id: str | None = None
    secondary_failures: list[SecondaryFailureSchema] = []


class PlaceOrderResponse(BaseModel):
    order_id: str
    order_number: str
    status: str


class NoteIdResponse(BaseModel):
    note_id: str


class UserRoleResponse(BaseModel):
    user_id: str
    role: str


class SyncRoleResponse(BaseModel):
    role: str
    redirect_path: str


class OutboxFlushResponse(BaseModel):
    attempted: int
    sent: int
    failed: int


class StatusResponse(BaseModel):
    status: str = "ok"
