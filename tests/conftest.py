"""Shared fixtures: SQLite database, fake payment gateway, users and products."""
import itertools

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from storefront.database import Base, enable_sqlite_foreign_keys, get_db
from storefront.errors import ValidationError
from storefront.main import app
import storefront.models  # noqa: F401
from storefront.models.product import Product, ProductCategory, ProductVariant
from storefront.models.users import User
from storefront.utils.hashing import get_password_hash
from storefront.utils.stripe_client import PaymentIntentInfo, get_payment_gateway
from storefront.utils.tokenJWT import Principal, create_access_token


@pytest.fixture()
def engine(tmp_path):
    # File database so the test session and request sessions use separate connections
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def db(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    yield session
    session.close()


class FakeGateway:
    """In-memory stand-in for StripeGateway recording every call."""

    def __init__(self):
        self.intents = {}
        self.customers = []
        self.attached = []
        self.calls = []
        self._ids = itertools.count(1)

    def create_customer(self, email, name, user_id):
        self.calls.append("create_customer")
        customer_id = f"cus_{next(self._ids)}"
        self.customers.append(customer_id)
        return customer_id

    def retrieve_customer(self, customer_id):
        self.calls.append("retrieve_customer")
        return customer_id

    def create_payment_intent(self, *, amount, currency, customer, metadata, shipping=None):
        self.calls.append("create_payment_intent")
        intent_id = f"pi_{next(self._ids)}"
        intent = PaymentIntentInfo(
            id=intent_id,
            status="requires_payment_method",
            amount=amount,
            currency=currency,
            client_secret=f"{intent_id}_secret",
            customer=customer,
            metadata=dict(metadata),
        )
        self.intents[intent_id] = intent
        return intent

    def retrieve_payment_intent(self, intent_id):
        self.calls.append("retrieve_payment_intent")
        return self.intents[intent_id]

    def succeed(self, intent_id, receipt_url="https://pay.example.com/receipt"):
        intent = self.intents[intent_id]
        intent.status = "succeeded"
        intent.receipt_url = receipt_url
        return intent

    def list_card_payment_methods(self, customer):
        return [{"id": "pm_1", "brand": "visa", "last4": "4242", "exp_month": 12, "exp_year": 2030}]

    def attach_payment_method(self, payment_method_id, customer):
        self.attached.append((payment_method_id, customer))

    def construct_event(self, payload, signature):
        if signature != "valid":
            raise ValidationError("Webhook Error: No signatures found matching the expected signature")
        return {"type": "payment_intent.succeeded", "object": {"id": "pi_webhook"}}


@pytest.fixture()
def gateway():
    return FakeGateway()


@pytest.fixture()
def client(engine, gateway):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    yield TestClient(app)
    app.dependency_overrides.clear()


def _make_user(db, email, role="user", name="Test User", password="secret123"):
    user = User(name=name, email=email, password_hash=get_password_hash(password), role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture()
def user(db):
    return _make_user(db, "customer@example.com")


@pytest.fixture()
def other_user(db):
    return _make_user(db, "other@example.com", name="Other User")


@pytest.fixture()
def admin(db):
    return _make_user(db, "admin@example.com", role="admin", name="Admin User")


@pytest.fixture()
def principal(user):
    return Principal.from_user(user)


@pytest.fixture()
def admin_principal(admin):
    return Principal.from_user(admin)


def auth_headers(user):
    token = create_access_token({"sub": str(user.id), "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def user_headers(user):
    return auth_headers(user)


@pytest.fixture()
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture()
def make_product(db):
    counter = itertools.count(1)

    def _make(price=25.0, stock=5, category=ProductCategory.MERCH, variants=None, **extra):
        n = next(counter)
        product = Product(
            name=extra.pop("name", f"Product {n}"),
            slug=f"product-{n}",
            description="Test product",
            price=price,
            category=category,
            stock=stock,
            sold=0,
            is_active=extra.pop("is_active", True),
            **extra,
        )
        product.variants = [
            ProductVariant(name=name, value=value, price=v_price, stock=v_stock)
            for name, value, v_price, v_stock in (variants or [])
        ]
        db.add(product)
        db.commit()
        db.refresh(product)
        return product

    return _make


@pytest.fixture()
def headers_for():
    return auth_headers


@pytest.fixture()
def make_user(db):
    def _make(email, role="user", name="Test User", password="secret123"):
        return _make_user(db, email, role=role, name=name, password=password)
    return _make
