"""Shared BDD fixtures and step definitions for the order lifecycle."""

import pytest
from ordering.audit.order_event import OrderEvent
from ordering.order.order import Order
from protean import current_domain
from pytest_bdd import given, parsers, then


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def error():
    """Container for captured rejections."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("an approved farm", target_fixture="approved_farm")
def approved_farm(farm, fake_email):
    return farm


@given(parsers.cfparse('an order for the farm in "{status}"'), target_fixture="current_order")
def order_for_farm(approved_farm, make_order, status):
    return make_order(approved_farm, status=status)


@given(parsers.cfparse('the order is in "{status}"'))
def order_is_in(current_order, status):
    repo = current_domain.repository_for(Order)
    order = repo.get(current_order.id)
    order.status = status
    repo.add(order)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def order_status_is(current_order, status):
    assert current_domain.repository_for(Order).get(current_order.id).status == status


@then(parsers.cfparse('the change is rejected with "{message}"'))
def change_rejected_with(error, message):
    assert error["exc"] is not None
    assert error["exc"].message == message


@then("the change is rejected")
def change_rejected(error):
    assert error["exc"] is not None


@then(parsers.cfparse('the timeline has {count:d} events recorded by "{role}"'))
def timeline_has_events(current_order, count, role):
    events = current_domain.repository_for(OrderEvent).for_order(str(current_order.id))
    assert len(events) == count
    assert all(event.actor_role == role for event in events)
