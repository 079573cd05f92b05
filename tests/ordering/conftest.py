import os

import pytest


@pytest.fixture(scope="session")
def _ordering_domain(request):
    """Initialize the ordering domain once per session."""
    os.environ["PROTEAN_ENV"] = request.config.option.env

    from ordering.domain import ordering

    ordering.init()
    return ordering


@pytest.fixture(scope="session", autouse=True)
def setup_db(_ordering_domain):
    from ordering.utils.db import drop_db, setup_db

    setup_db(_ordering_domain)

    yield

    drop_db(_ordering_domain)


@pytest.fixture(autouse=True)
def run_around_tests(_ordering_domain):
    """Push domain context before each test, cleanup after."""
    from ordering.notification.channel import reset_email_channel
    from ordering.settings import Settings, set_settings

    set_settings(Settings(admin_emails=frozenset({"ops@farmlink.uk"}), admin_notification_email="alerts@farmlink.uk"))
    reset_email_channel()

    ctx = _ordering_domain.domain_context()
    ctx.push()

    yield

    from protean import current_domain

    for _, provider in current_domain.providers.items():
        provider._data_reset()

    for _, broker in current_domain.brokers.items():
        broker._data_reset()

    current_domain.event_store.store._data_reset()
    ctx.pop()

    from ordering.settings import reset_settings

    reset_settings()
    reset_email_channel()


@pytest.fixture()
def fake_email():
    """Route email through an in-memory adapter."""
    from ordering.notification.channel import set_email_channel
    from ordering.notification.channel.fake_email import FakeEmailAdapter

    adapter = FakeEmailAdapter()
    set_email_channel(adapter)
    return adapter


@pytest.fixture()
def outbox_only():
    """No email provider: every email is queued in the outbox."""
    from ordering.notification.channel import set_email_channel

    set_email_channel(None)


@pytest.fixture()
def farm_owner_id():
    return "user-farm-owner"


@pytest.fixture()
def farm(farm_owner_id):
    from ordering.access.farm import Farm, FarmStatus
    from protean import current_domain

    farm = Farm(
        owner_user_id=farm_owner_id,
        name="Hillside Farm",
        slug="hillside-farm",
        status=FarmStatus.APPROVED.value,
        contact_email="orders@hillside.example",
        delivery_fee=495,
        min_order_value=1000,
    )
    current_domain.repository_for(Farm).add(farm)
    return farm


@pytest.fixture()
def other_farm():
    from ordering.access.farm import Farm, FarmStatus
    from protean import current_domain

    farm = Farm(
        owner_user_id="user-other-owner",
        name="Valley Farm",
        status=FarmStatus.APPROVED.value,
        contact_email="valley@example.com",
    )
    current_domain.repository_for(Farm).add(farm)
    return farm


def _make_order(farm, status="processing", customer_email="customer@example.com"):
    """Store an order for ``farm`` directly in the given status."""
    from ordering.order.order import Order, generate_order_number
    from protean import current_domain

    order = Order.place(
        order_number=generate_order_number(),
        farm_id=farm.id,
        customer_user_id="user-customer",
        customer_email=customer_email,
        items_data=[
            {"product_id": "prod-1", "name": "Ribeye Steak", "price": 1250, "unit": "each", "quantity": 2},
            {"product_id": "prod-2", "name": "Pork Sausages", "price": 600, "unit": "pack", "quantity": 1},
        ],
        delivery_fee=farm.delivery_fee,
        delivery_address="1 Market Street\nYork\nYO1 7HH",
    )
    order.status = status
    current_domain.repository_for(Order).add(order)
    return order


@pytest.fixture()
def make_order():
    return _make_order


@pytest.fixture()
def order(farm):
    return _make_order(farm)
