"""Pytest configuration and fixtures."""

import pytest
from decimal import Decimal
from typing import Generator

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from tabpos.core.rbac import UserRole
from tabpos.core.security import get_password_hash, create_access_token
from tabpos.db.base import Base
from tabpos.db.session import get_db
from tabpos.main import app
# Import all models to ensure they're registered with Base.metadata
from tabpos.models import *
from tabpos.models.menu import Category, Product, ProductOption
from tabpos.models.tenant import Tenant
from tabpos.models.user import User
from tabpos.services.order_service import OrderService

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    # Disable rate limiting during tests to avoid flaky failures
    from tabpos.core.rate_limit import limiter as global_limiter
    global_limiter.enabled = False
    # Don't raise server exceptions so we can test error status codes
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    global_limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture
def tenant(db_session: Session) -> Tenant:
    """The default business (resolved for the test client's host)."""
    tenant = Tenant(slug="juburger", name="Ju Burger", is_active=True)
    db_session.add(tenant)
    db_session.commit()
    db_session.refresh(tenant)
    return tenant


@pytest.fixture
def other_tenant(db_session: Session) -> Tenant:
    tenant = Tenant(slug="kebapci", name="Kebapci", is_active=True)
    db_session.add(tenant)
    db_session.commit()
    db_session.refresh(tenant)
    return tenant


def _make_user(db_session: Session, tenant: Tenant, username: str, role: UserRole, name: str) -> User:
    user = User(
        tenant_id=tenant.id,
        username=username,
        password_hash=get_password_hash("testpass123"),
        role=role,
        name=name,
        is_active=True,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


def token_for(user: User) -> str:
    return create_access_token(data={
        "sub": str(user.id),
        "username": user.username,
        "role": user.role.value,
        "tenant_id": user.tenant_id,
        "name": user.name,
    })


@pytest.fixture
def issue_token():
    """``issue_token(user)`` -> signed access token for that login."""
    return token_for


@pytest.fixture
def make_user(db_session: Session):
    """``make_user(tenant, username, role, name)`` -> committed User."""
    def _make(tenant: Tenant, username: str, role: UserRole, name: str) -> User:
        return _make_user(db_session, tenant, username, role, name)

    return _make


@pytest.fixture
def admin_user(db_session: Session, tenant: Tenant) -> User:
    return _make_user(db_session, tenant, "admin", UserRole.ADMIN, "Admin")


@pytest.fixture
def staff_user(db_session: Session, tenant: Tenant) -> User:
    return _make_user(db_session, tenant, "ayse", UserRole.STAFF, "Ayse")


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return {"Authorization": f"Bearer {token_for(admin_user)}"}


@pytest.fixture
def staff_headers(staff_user: User) -> dict:
    return {"Authorization": f"Bearer {token_for(staff_user)}"}


@pytest.fixture
def guest_headers(tenant: Tenant) -> dict:
    token = create_access_token(data={
        "sub": "guest-0123456789abcdef",
        "username": "Deniz",
        "role": "guest",
        "tenant_id": tenant.id,
        "name": "Deniz",
    })
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def menu(db_session: Session, tenant: Tenant) -> dict:
    """A small menu: burger (with extra cheese), fries, cola."""
    category = Category(tenant_id=tenant.id, name="Mains", sort_order=1)
    db_session.add(category)
    db_session.flush()
    burger = Product(tenant_id=tenant.id, category_id=category.id, name="Burger",
                     price=Decimal("120.00"), is_available=True)
    fries = Product(tenant_id=tenant.id, category_id=category.id, name="Fries",
                    price=Decimal("45.50"), is_available=True)
    cola = Product(tenant_id=tenant.id, category_id=category.id, name="Cola",
                   price=Decimal("35.00"), is_available=True)
    db_session.add_all([burger, fries, cola])
    db_session.flush()
    cheese = ProductOption(tenant_id=tenant.id, product_id=burger.id, name="Extra cheese",
                           extra_price=Decimal("15.00"))
    db_session.add(cheese)
    db_session.commit()
    return {"category": category, "burger": burger, "fries": fries, "cola": cola, "cheese": cheese}


@pytest.fixture
def place_order(db_session: Session, tenant: Tenant, menu: dict):
    """Factory submitting a staff order: ``place_order(5, [("cola", 2)])``."""
    def _place(table_num: int, lines, user_name: str = "Ayse", payment_type: str = "cash"):
        payload = [
            {"product_id": menu[key].id, "qty": qty, "note": "", "option_ids": []}
            for key, qty in lines
        ]
        result = OrderService(db_session, tenant.id).submit_staff_order(
            table_num=table_num,
            user_id="1",
            user_name=user_name,
            lines=payload,
            payment_type=payment_type,
        )
        return result["order"]

    return _place
