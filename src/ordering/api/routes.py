"""FastAPI routes for the ordering domain.

Status changes are exposed under two scopes with the same contract:
``/farm/orders`` for farm owners and ``/admin/orders`` for admins.

Routes that can send email are plain ``def`` so the blocking provider call
runs in the threadpool instead of on the event loop.
"""

from fastapi import APIRouter, Depends, HTTPException
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from ordering.access.authorization import AccessDenied, Actor, AuthorizationGate, DenialReason
from ordering.access.farm import ChangeFarmStatus
from ordering.access.profile import ChangeUserRole, RoleChangeForbidden
from ordering.access.roles import RoleResolver, SessionUser, home_path_for
from ordering.api.dependencies import (
    admin_actor,
    farm_actor,
    get_lifecycle,
    get_role_resolver,
    get_session_user,
)
from ordering.api.schemas import (
    AddNoteRequest,
    ChangeFarmStatusRequest,
    ChangeUserRoleRequest,
    NoteIdResponse,
    OrderStatusSchema,
    OutboxFlushResponse,
    PlaceOrderRequest,
    PlaceOrderResponse,
    StatusChangeResponse,
    StatusResponse,
    SyncRoleResponse,
    UpdateStatusRequest,
    UserRoleResponse,
)
from ordering.audit.logger import AuditLog
from ordering.notification.dispatcher import flush_outbox
from ordering.notification.outbox import EmailOutbox, OutboxStatus
from ordering.order.lifecycle import OrderLifecycle, TransitionOutcome
from ordering.order.notes import AddInternalNote, InternalNote
from ordering.order.order import Order
from ordering.order.transitions import TransitionRejected
from ordering.utils.logging import get_logger

logger = get_logger(__name__)

_DENIAL_STATUS_CODES = {
    DenialReason.NOT_FOUND: 404,
    DenialReason.FORBIDDEN: 403,
}


def _first_message(exc: ValidationError) -> str:
    for messages in exc.messages.values():
        if messages:
            return messages[0]
    return "Invalid request"


def _change_status(lifecycle: OrderLifecycle, actor: Actor, order_id: str, body: UpdateStatusRequest) -> StatusChangeResponse:
    try:
        outcome = lifecycle.change_status(actor, order_id, body.status, body.note)
    except AccessDenied as exc:
        raise HTTPException(status_code=_DENIAL_STATUS_CODES[exc.reason], detail=exc.message) from exc
    except TransitionRejected as exc:
        raise HTTPException(status_code=400, detail=exc.message) from exc
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=_first_message(exc)) from exc
    except Exception as exc:
        logger.exception("Failed to update order status", order_id=order_id)
        raise HTTPException(status_code=500, detail="Failed to update order status") from exc

    return _status_response(outcome)


def _status_response(outcome: TransitionOutcome) -> StatusChangeResponse:
    return StatusChangeResponse(
        order=OrderStatusSchema(
            id=outcome.order_id,
            status=outcome.status,
            previous_status=outcome.previous_status,
        ),
        event_id=outcome.event_id,
        secondary_failures=[{"step": f.step, "error": f.error} for f in outcome.secondary_failures],
    )


def _authorized_order(actor: Actor, order_id: str) -> Order:
    try:
        return AuthorizationGate().check(actor, order_id)
    except AccessDenied as exc:
        raise HTTPException(status_code=_DENIAL_STATUS_CODES[exc.reason], detail=exc.message) from exc


def _order_detail(order: Order) -> dict:
    events = AuditLog().history(str(order.id))
    return {
        "id": str(order.id),
        "order_number": order.order_number,
        "farm_id": str(order.farm_id),
        "customer_user_id": str(order.customer_user_id),
        "status": order.status,
        "payment_status": order.payment_status,
        "subtotal": order.subtotal,
        "delivery_fee": order.delivery_fee,
        "total": order.total,
        "delivery_address": order.delivery_address,
        "delivery_notes": order.delivery_notes,
        "requested_delivery_date": (
            order.requested_delivery_date.isoformat() if order.requested_delivery_date else None
        ),
        "created_at": order.created_at.isoformat() if order.created_at else None,
        "items": [
            {
                "product_id": str(item.product_id) if item.product_id else None,
                "name": item.name_snapshot,
                "price": item.price_snapshot,
                "unit": item.unit_snapshot,
                "weight": item.weight_snapshot,
                "quantity": item.quantity,
                "line_total": item.line_total,
            }
            for item in order.items
        ],
        "events": [event.to_dict() for event in events],
    }


# ---------------------------------------------------------------------------
# Farm scope
# ---------------------------------------------------------------------------
farm_router = APIRouter(prefix="/farm/orders", tags=["farm-orders"])


@farm_router.post("/{order_id}/status", response_model=StatusChangeResponse)
def farm_update_status(
    order_id: str,
    body: UpdateStatusRequest,
    actor: Actor = Depends(farm_actor),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
) -> StatusChangeResponse:
    return _change_status(lifecycle, actor, order_id, body)


@farm_router.get("/{order_id}")
async def farm_order_detail(order_id: str, actor: Actor = Depends(farm_actor)) -> dict:
    return _order_detail(_authorized_order(actor, order_id))


# ---------------------------------------------------------------------------
# Admin scope
# ---------------------------------------------------------------------------
admin_router = APIRouter(prefix="/admin", tags=["admin"])


@admin_router.post("/orders/{order_id}/status", response_model=StatusChangeResponse)
def admin_update_status(
    order_id: str,
    body: UpdateStatusRequest,
    actor: Actor = Depends(admin_actor),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
) -> StatusChangeResponse:
    return _change_status(lifecycle, actor, order_id, body)


@admin_router.get("/orders/{order_id}")
async def admin_order_detail(order_id: str, actor: Actor = Depends(admin_actor)) -> dict:
    order = _authorized_order(actor, order_id)
    detail = _order_detail(order)
    notes = current_domain.repository_for(InternalNote).for_order(str(order.id))
    detail["internal_notes"] = [note.to_dict() for note in notes]
    return detail


@admin_router.post("/orders/{order_id}/notes", status_code=201, response_model=NoteIdResponse)
async def add_internal_note(
    order_id: str,
    body: AddNoteRequest,
    actor: Actor = Depends(admin_actor),
) -> NoteIdResponse:
    command = AddInternalNote(order_id=order_id, author_user_id=actor.user_id, note=body.note)
    try:
        note_id = current_domain.process(command, asynchronous=False)
    except ObjectNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Order not found") from exc
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=_first_message(exc)) from exc
    return NoteIdResponse(note_id=note_id)


@admin_router.post("/farms/{farm_id}/status", response_model=StatusResponse)
async def change_farm_status(
    farm_id: str,
    body: ChangeFarmStatusRequest,
    actor: Actor = Depends(admin_actor),
) -> StatusResponse:
    try:
        status = current_domain.process(ChangeFarmStatus(farm_id=farm_id, status=body.status), asynchronous=False)
    except ObjectNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Farm not found") from exc
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=_first_message(exc)) from exc
    logger.info("Farm status changed", farm_id=farm_id, status=status, actor_user_id=actor.user_id)
    return StatusResponse(status=status)


@admin_router.put("/users/{user_id}/role", response_model=UserRoleResponse)
async def change_user_role(
    user_id: str,
    body: ChangeUserRoleRequest,
    actor: Actor = Depends(admin_actor),
) -> UserRoleResponse:
    command = ChangeUserRole(user_id=user_id, role=body.role, changed_by=actor.user_id)
    try:
        role = current_domain.process(command, asynchronous=False)
    except ObjectNotFoundError as exc:
        raise HTTPException(status_code=404, detail="User not found") from exc
    except RoleChangeForbidden as exc:
        raise HTTPException(status_code=403, detail=exc.message) from exc
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=_first_message(exc)) from exc
    return UserRoleResponse(user_id=user_id, role=role)


@admin_router.get("/emails", dependencies=[Depends(admin_actor)])
async def list_outbox(status: OutboxStatus | None = None, limit: int = 100) -> list[dict]:
    records = current_domain.repository_for(EmailOutbox).recent(status.value if status else None, limit=limit)
    return [record.to_dict() for record in records]


@admin_router.post("/emails/retry", response_model=OutboxFlushResponse, dependencies=[Depends(admin_actor)])
def retry_outbox(limit: int = 50) -> OutboxFlushResponse:
    return OutboxFlushResponse(**flush_outbox(limit=limit))


# ---------------------------------------------------------------------------
# Customer orders
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=PlaceOrderResponse)
def place_order(
    body: PlaceOrderRequest,
    user: SessionUser = Depends(get_session_user),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
) -> PlaceOrderResponse:
    try:
        outcome = lifecycle.place_order(
            customer_user_id=user.user_id,
            farm_id=body.farm_id,
            items=[item.model_dump() for item in body.items],
            delivery_address=body.delivery_address,
            customer_email=user.email,
            delivery_address_json=body.delivery_address_json,
            delivery_notes=body.delivery_notes,
            requested_delivery_date=body.requested_delivery_date,
        )
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=_first_message(exc)) from exc

    order = current_domain.repository_for(Order).get(outcome.order_id)
    return PlaceOrderResponse(order_id=outcome.order_id, order_number=order.order_number, status=order.status)


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------
auth_router = APIRouter(prefix="/auth", tags=["auth"])


@auth_router.post("/sync-role", response_model=SyncRoleResponse)
async def sync_role(
    user: SessionUser = Depends(get_session_user),
    resolver: RoleResolver = Depends(get_role_resolver),
) -> SyncRoleResponse:
    role = resolver.resolve_and_sync(user)
    return SyncRoleResponse(role=role.value, redirect_path=home_path_for(role))
