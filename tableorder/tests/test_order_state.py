import pytest

from tableorder.app.domain import Actor, OrderStatus, Role, can_transition
from tableorder.app.domain.errors import (
    AuthorizationError,
    ConflictError,
    InvariantViolation,
)
from tableorder.app.models_tenant import Order
from tableorder.app.services.order_state import check_transition

STAFF = Actor("staff-1", Role.STAFF)
OTHER = Actor("staff-2", Role.STAFF)
OWNER = Actor("owner-1", Role.OWNER)


def _order(status="pending", *, paid=False, claimed_by=None):
    return Order(
        id="o-1",
        status=status,
        is_paid=paid,
        kitchen_staff_id=claimed_by,
        payment_method="cash",
        table_id="table-1",
        restaurant_id="rest-1",
    )


def test_forward_steps_allowed():
    chain = ["pending", "preparing", "ready", "served", "completed"]
    for src, dst in zip(chain, chain[1:]):
        assert can_transition(OrderStatus(src), OrderStatus(dst))


def test_skipping_a_step_is_out_of_order():
    with pytest.raises(InvariantViolation) as exc:
        check_transition(_order("pending"), OrderStatus.SERVED, STAFF)
    assert exc.value.code == "OUT_OF_ORDER"


@pytest.mark.parametrize("status", ["pending", "preparing", "ready", "served"])
def test_cancel_allowed_from_any_active_state(status):
    check_transition(_order(status), OrderStatus.CANCELLED, STAFF)


def test_same_status_rejected():
    with pytest.raises(ConflictError) as exc:
        check_transition(_order("ready"), OrderStatus.READY, STAFF)
    assert exc.value.code == "SAME_STATUS"


@pytest.mark.parametrize("status", ["completed", "cancelled"])
def test_terminal_orders_are_immutable(status):
    with pytest.raises(InvariantViolation) as exc:
        check_transition(_order(status, paid=True), OrderStatus.PREPARING, OWNER)
    assert exc.value.code == "IMMUTABLE"


def test_only_claiming_staff_may_advance():
    order = _order("preparing", claimed_by=STAFF.user_id)
    with pytest.raises(AuthorizationError) as exc:
        check_transition(order, OrderStatus.READY, OTHER)
    assert exc.value.code == "FORBIDDEN"
    check_transition(order, OrderStatus.READY, STAFF)


def test_owner_is_exempt_from_claim():
    check_transition(_order("preparing", claimed_by=STAFF.user_id), OrderStatus.READY, OWNER)


def test_completion_requires_served():
    with pytest.raises(InvariantViolation) as exc:
        check_transition(_order("ready", paid=True), OrderStatus.COMPLETED, STAFF)
    assert exc.value.code == "OUT_OF_ORDER"


def test_completion_requires_payment():
    with pytest.raises(InvariantViolation) as exc:
        check_transition(_order("served", paid=False), OrderStatus.COMPLETED, STAFF)
    assert exc.value.code == "UNPAID"
