"""Test configuration."""
import os
from collections.abc import AsyncIterator, Callable, Iterator
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from pathlib import Path
from typing import Any
from uuid import uuid4

from alembic import command
from alembic.config import Config
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

# --- Default test environment
os.environ.setdefault("DATABASE_URL", "sqlite:///./marketplace_test.db")
os.environ.setdefault("API_KEY", "test-secret-key")
os.environ.setdefault("MKT_ENV", "test")
os.environ.setdefault("RAZORPAY_KEY_ID", "rzp_test_key")
os.environ.setdefault("RAZORPAY_KEY_SECRET", "test-razorpay-secret")
os.environ.setdefault("RAZORPAY_ACCOUNT_NUMBER", "7878780080316316")

from app.main import app  # noqa: E402
from app.db import get_db  # noqa: E402
from app.models import (  # noqa: E402
    Bill,
    BillStatus,
    Service,
    ServiceRequest,
    ServiceRequestStatus,
    User,
    UserRole,
)
from app.models.api_key import ApiKey, ApiScope  # noqa: E402
from app.services.psp_razorpay import get_payment_gateway  # noqa: E402
from app.utils.apikey import hash_key  # noqa: E402
from app.utils.errors import UpstreamGatewayError  # noqa: E402

DB_PATH = Path("./marketplace_test.db")


def _run_migrations() -> None:
    cfg = Config(str(Path(__file__).resolve().parents[1] / "alembic.ini"))
    cfg.set_main_option("script_location", str(Path(__file__).resolve().parents[1] / "alembic"))
    cfg.set_main_option("sqlalchemy.url", os.environ["DATABASE_URL"])
    command.upgrade(cfg, "head")


# --- (1) Fresh DB file for the session
if DB_PATH.exists():
    DB_PATH.unlink()

engine = create_engine(
    os.environ["DATABASE_URL"],
    connect_args={"check_same_thread": False},
    future=True,
)


# pysqlite only handles SAVEPOINT correctly when SQLAlchemy emits BEGIN itself.
@event.listens_for(engine, "connect")
def _sqlite_autocommit_driver(dbapi_connection, connection_record) -> None:
    dbapi_connection.isolation_level = None


@event.listens_for(engine, "begin")
def _sqlite_begin(conn) -> None:
    conn.exec_driver_sql("BEGIN")


TestingSessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    future=True,
    expire_on_commit=False,
    join_transaction_mode="create_savepoint",
)

# --- (2) Schema comes from Alembic only
_run_migrations()


@pytest.fixture
def db_session() -> Iterator[Session]:
    connection = engine.connect()
    transaction = connection.begin()
    session = TestingSessionLocal(bind=connection)
    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


@pytest.fixture(autouse=True)
def override_db_dependency(db_session: Session) -> Iterator[None]:
    def _get_db() -> Iterator[Session]:
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    yield
    app.dependency_overrides.pop(get_db, None)


class FakeGateway:
    """In-memory stand-in for the Razorpay client."""

    def __init__(self) -> None:
        self.orders: dict[str, dict[str, Any]] = {}
        self.created_orders: list[dict[str, Any]] = []
        self.payouts: list[dict[str, Any]] = []
        self.fail_fetch: Exception | None = None
        self.fail_payout: Exception | None = None

    def add_order(
        self,
        order_id: str,
        amount_minor: int,
        currency: str = "INR",
        method: str = "upi",
        notes: dict[str, str] | None = None,
    ) -> None:
        self.orders[order_id] = {
            "id": order_id,
            "amount": amount_minor,
            "currency": currency,
            "status": "paid",
            "method": method,
            "notes": notes or [],
        }

    def fetch_order(self, order_id: str) -> dict[str, Any]:
        if self.fail_fetch is not None:
            raise self.fail_fetch
        return self.orders[order_id]

    def create_order(self, *, amount_minor: int, currency: str, receipt: str, notes: dict[str, str]) -> dict[str, Any]:
        order_id = f"order_{uuid4().hex[:14]}"
        self.created_orders.append({"amount": amount_minor, "currency": currency, "receipt": receipt, "notes": notes})
        self.add_order(order_id, amount_minor, currency, notes=notes)
        return {"id": order_id, "amount": amount_minor, "currency": currency, "status": "created"}

    def create_payout(
        self,
        *,
        fund_account_id: str,
        amount_minor: int,
        currency: str,
        mode: str,
        notes: dict[str, str],
        idempotency_key: str,
    ) -> dict[str, Any]:
        self.payouts.append(
            {
                "fund_account_id": fund_account_id,
                "amount": amount_minor,
                "currency": currency,
                "mode": mode,
                "notes": notes,
                "idempotency_key": idempotency_key,
            }
        )
        if self.fail_payout is not None:
            raise self.fail_payout
        return {"id": f"pout_{uuid4().hex[:14]}", "status": "processing", "amount": amount_minor}


@pytest.fixture
def fake_gateway() -> Iterator[FakeGateway]:
    gateway = FakeGateway()
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    yield gateway
    app.dependency_overrides.pop(get_payment_gateway, None)


@pytest.fixture
def gateway_unavailable() -> UpstreamGatewayError:
    return UpstreamGatewayError("Payment gateway is unavailable.", retryable=True)


@pytest.fixture
async def client() -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as async_client:
        yield async_client


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {os.environ['API_KEY']}"}


@pytest.fixture
def make_api_key(db_session: Session) -> Callable[..., ApiKey]:
    def _factory(
        name: str,
        key: str,
        scope: ApiScope = ApiScope.customer,
        is_active: bool = True,
        user_id: int | None = None,
    ) -> ApiKey:
        api_key = ApiKey(
            name=name,
            prefix="test_" + scope.value,
            key_hash=hash_key(key),
            scope=scope,
            user_id=user_id,
            is_active=is_active,
        )
        db_session.add(api_key)
        db_session.commit()
        db_session.refresh(api_key)
        return api_key

    return _factory


@pytest.fixture
def make_user(db_session: Session) -> Callable[..., User]:
    def _factory(role: UserRole, *, name: str | None = None) -> User:
        label = name or role.value
        user = User(
            username=f"{label}-{uuid4().hex[:8]}",
            email=f"{label}-{uuid4().hex[:8]}@example.com",
            phone_number="+919800000000",
            role=role,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _factory


@pytest.fixture
def headers_for(make_api_key: Callable[..., ApiKey]) -> Callable[[User], dict[str, str]]:
    """Issue an API key bound to ``user`` and return its auth headers."""

    def _factory(user: User) -> dict[str, str]:
        token = f"{user.role.value}-{uuid4().hex}"
        make_api_key(
            name=f"{user.role.value}-{uuid4().hex}",
            key=token,
            scope=ApiScope(user.role.value),
            user_id=user.id,
        )
        return {"Authorization": f"Bearer {token}"}

    return _factory


@pytest.fixture
def customer(make_user: Callable[..., User]) -> User:
    return make_user(UserRole.CUSTOMER)


@pytest.fixture
def provider(make_user: Callable[..., User]) -> User:
    return make_user(UserRole.PROVIDER)


@pytest.fixture
def customer_headers(customer: User, headers_for) -> dict[str, str]:
    return headers_for(customer)


@pytest.fixture
def provider_headers(provider: User, headers_for) -> dict[str, str]:
    return headers_for(provider)


@pytest.fixture
def admin_headers(make_api_key: Callable[..., ApiKey]) -> dict[str, str]:
    token = f"admin-{uuid4().hex}"
    make_api_key(name=f"admin-{uuid4().hex}", key=token, scope=ApiScope.admin)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def support_headers(make_api_key: Callable[..., ApiKey]) -> dict[str, str]:
    token = f"support-{uuid4().hex}"
    make_api_key(name=f"support-{uuid4().hex}", key=token, scope=ApiScope.support)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_billed_request(db_session: Session, customer: User, provider: User) -> Callable[..., tuple[ServiceRequest, Bill]]:
    """Factory creating an accepted request of ``customer`` with an unpaid bill."""

    def _factory(amount: str = "500.00", *, price: str = "500.00") -> tuple[ServiceRequest, Bill]:
        service = Service(provider_id=provider.id, name=f"plumbing-{uuid4().hex[:6]}", price=Decimal(price))
        db_session.add(service)
        db_session.flush()

        service_request = ServiceRequest(
            service_id=service.id,
            customer_id=customer.id,
            time_slot=datetime.now(tz=UTC) + timedelta(days=1),
            status=ServiceRequestStatus.ACCEPTED,
        )
        db_session.add(service_request)
        db_session.flush()

        bill = Bill(request_id=service_request.id, amount=Decimal(amount), status=BillStatus.UNPAID)
        db_session.add(bill)
        db_session.commit()
        db_session.refresh(bill)
        return service_request, bill

    return _factory
