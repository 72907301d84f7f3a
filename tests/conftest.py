from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from modules.carts.models import CartItem
from modules.products.models import Product

User = get_user_model()

SHIPPING_ADDRESS = {
    "cep": "74000-000",
    "logradouro": "Avenida Goiás",
    "numero": "100",
    "bairro": "Setor Central",
    "localidade": "Goiânia",
    "uf": "go",
    "estado": "Goiás",
    "ddd": "62",
}


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


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


@pytest.fixture()
def user():
    return User.objects.create_user(username="ana", password="testpass123")


@pytest.fixture()
def other_user():
    return User.objects.create_user(username="bruno", password="testpass123")


@pytest.fixture()
def staff_user():
    return User.objects.create_user(
        username="manager", password="testpass123", is_staff=True
    )


@pytest.fixture()
def auth_client(user):
    """APIClient force-authenticated as ``user``."""
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture()
def staff_client(staff_user):
    client = APIClient()
    client.force_authenticate(user=staff_user)
    return client


@pytest.fixture()
def make_product():
    def _make(sku="ANL-001", price="100.00", stock=10, **extra):
        defaults = {
            "name": f"Produto {sku}",
            "gold_purity": "18K",
            "weight": Decimal("2.000"),
        }
        defaults.update(extra)
        return Product.objects.create(
            sku=sku,
            price=Decimal(price),
            stock_quantity=stock,
            **defaults,
        )

    return _make


@pytest.fixture()
def ring(make_product):
    return make_product(sku="ANL-001", name="Anel Solitário", price="100.00", stock=10)


@pytest.fixture()
def chain(make_product):
    return make_product(sku="COR-001", name="Corrente Cartier", price="50.00", stock=5)


@pytest.fixture()
def fill_cart():
    def _fill(user, *lines):
        for product, quantity in lines:
            CartItem.objects.create(user=user, product=product, quantity=quantity)

    return _fill


@pytest.fixture()
def shipping_address():
    return dict(SHIPPING_ADDRESS)
