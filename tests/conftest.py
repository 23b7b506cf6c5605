from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from modules.carts.dtos import AddCartItemDTO
from modules.carts.repositories import CartDjangoRepository
from modules.carts.services import CartService
from modules.core.conf import CommerceConfig
from modules.notifications.senders import InMemoryEmailSender, reset_sender, set_sender
from modules.orders.dtos import CheckoutDTO
from modules.orders.repositories import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.payments.gateway import reset_gateway, set_gateway
from modules.payments.gateway.fake_adapter import FakeGateway
from modules.payments.services import PaymentService
from modules.products.models import InventoryRecord, Product
from modules.products.repositories import ProductDjangoRepository
from modules.products.storage import InMemoryStorage, reset_storage, set_storage

User = get_user_model()

ADDRESS = {
    "full_name": "Asha Rao",
    "phone": "9876543210",
    "address_line1": "12 MG Road",
    "address_line2": "Flat 4B",
    "city": "Bengaluru",
    "state": "Karnataka",
    "pincode": "560001",
}


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _collaborators(settings):
    """In-memory gateway, storage and e-mail; synchronous notifications."""
    settings.PAYMENT_GATEWAY = "fake"
    settings.OBJECT_STORAGE_KIND = "memory"
    settings.EMAIL_BACKEND_KIND = "memory"
    settings.NOTIFICATIONS_ASYNC = False
    settings.RAZORPAY_KEY_ID = "rzp_test_key"
    settings.RAZORPAY_KEY_SECRET = "test-key-secret"
    settings.RAZORPAY_WEBHOOK_SECRET = "test-webhook-secret"
    settings.PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]
    cache.clear()

    sender, storage, gateway = InMemoryEmailSender(), InMemoryStorage(), FakeGateway()
    set_sender(sender)
    set_storage(storage)
    set_gateway(gateway)
    yield {"sender": sender, "storage": storage, "gateway": gateway}
    reset_sender()
    reset_storage()
    reset_gateway()


@pytest.fixture()
def email_sender(_collaborators):
    return _collaborators["sender"]


@pytest.fixture()
def object_storage(_collaborators):
    return _collaborators["storage"]


@pytest.fixture()
def gateway(_collaborators):
    return _collaborators["gateway"]


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


def _make_user(email, **extra):
    return User.objects.create_user(
        username=email, email=email, password="Str0ng-Passw0rd!", **extra
    )


@pytest.fixture()
def user():
    return _make_user("asha@example.com", first_name="Asha", last_name="Rao")


@pytest.fixture()
def other_user():
    return _make_user("ravi@example.com", first_name="Ravi")


@pytest.fixture()
def admin_user():
    return _make_user("admin@example.com", is_staff=True)


@pytest.fixture()
def auth_client(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture()
def admin_client(admin_user):
    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_product():
    counter = {"n": 0}

    def _make(stock=10, price="899.00", colors=("Rainbow", "Blue"), sizes=("M", "L"), **fields):
        counter["n"] += 1
        n = counter["n"]
        defaults = {
            "name": f"Spiral Tie-Dye Tee {n}",
            "slug": f"spiral-tie-dye-tee-{n}",
            "category": "t-shirts",
            "price": Decimal(price),
            "colors": list(colors),
            "sizes": list(sizes),
            "images": [f"https://cdn.example.com/products/tee-{n}.jpg"],
        }
        defaults.update(fields)
        product = Product.objects.create(**defaults)
        for color in colors:
            for size in sizes:
                InventoryRecord.objects.create(
                    product=product,
                    color=color,
                    size=size,
                    stock=stock,
                    sku=f"TEE{n}-{color}-{size}",
                )
        return product

    return _make


@pytest.fixture()
def product(make_product):
    return make_product()


@pytest.fixture()
def stock_of():
    def _stock(product, color="Rainbow", size="M"):
        return InventoryRecord.objects.get(product=product, color=color, size=size).stock

    return _stock


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


@pytest.fixture()
def config():
    return CommerceConfig.from_settings()


@pytest.fixture()
def cart_service(config):
    return CartService(CartDjangoRepository(), ProductDjangoRepository(), config)


@pytest.fixture()
def order_service(config):
    return OrderService(
        OrderDjangoRepository(), CartDjangoRepository(), ProductDjangoRepository(), config
    )


@pytest.fixture()
def payment_service(order_service, config, gateway):
    return PaymentService(OrderDjangoRepository(), order_service, config, gateway=gateway)


@pytest.fixture()
def address():
    return dict(ADDRESS)


@pytest.fixture()
def fill_cart(cart_service):
    def _fill(owner, product, quantity=1, color="Rainbow", size="M"):
        return cart_service.add_item(
            owner,
            AddCartItemDTO(product_id=product.id, color=color, size=size, quantity=quantity),
        )

    return _fill


@pytest.fixture()
def place_order(fill_cart, order_service):
    """Fill the owner's cart with ``quantity`` of ``product`` and check out."""

    def _place(owner, product, quantity=1, color="Rainbow", size="M"):
        fill_cart(owner, product, quantity=quantity, color=color, size=size)
        return order_service.create_order(
            owner, CheckoutDTO(shipping_address=dict(ADDRESS))
        )

    return _place
