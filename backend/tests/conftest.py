"""
Pytest 配置和共享 fixtures
"""
import os

# 应用级引擎只在 lifespan 中建表，测试使用下面的独立内存库
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from datetime import date, timedelta
from decimal import Decimal
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from gouraan_core.engine import event_bus
from gouraan_core.notification.channel import NotificationChannelRegistry
from gouraan.database import Base, get_db
from gouraan.models import entities  # noqa: F401
from gouraan.models.entities import (
    User, UserRole, UserStatus, Hotel, Room, RoomType, TravelPackage, PackageType,
)
from gouraan.notification import register_notification_channels
from gouraan.security.auth import get_password_hash, create_access_token
from gouraan.security.permissions import register_travel_permissions
from gouraan.services.event_handlers import event_handlers
from gouraan.services.payment_gateways import register_payment_gateways
from gouraan.main import app

DEFAULT_PASSWORD = "Password123"


@pytest.fixture(scope="function")
def db_engine():
    """创建内存数据库引擎"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db_session(session_factory):
    """创建数据库会话"""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def app_registries(session_factory):
    """权限表、通知渠道、支付网关、事件处理器（服务层测试同样需要）"""
    register_travel_permissions()
    register_notification_channels()
    register_payment_gateways("sandbox")
    event_bus.clear_history()
    event_handlers.set_session_factory(session_factory)
    event_handlers.unregister_handlers()
    event_handlers.register_handlers()
    yield
    event_handlers.unregister_handlers()


@pytest.fixture(scope="function")
def client(db_session, session_factory):
    """创建测试客户端"""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        # lifespan 会重新注册渠道与处理器
        event_handlers.set_session_factory(session_factory)
        event_handlers.unregister_handlers()
        event_handlers.register_handlers()
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def outbox():
    """模拟渠道的发件箱：outbox("email") -> SimulatedChannel"""
    def get(channel_type: str = "email"):
        return NotificationChannelRegistry().get_channel(channel_type)
    return get


# ============== 认证相关 Fixtures ==============

@pytest.fixture
def create_user(db_session):
    """创建用户的工厂"""
    counter = {"n": 0}

    def factory(role: UserRole = UserRole.CUSTOMER, email: str = None,
                status: UserStatus = UserStatus.ACTIVE, password: str = DEFAULT_PASSWORD,
                **kwargs) -> User:
        counter["n"] += 1
        kwargs.setdefault("first_name", role.value.split("_")[0].capitalize())
        kwargs.setdefault("last_name", f"User{counter['n']}")
        user = User(
            email=email or f"{role.value}{counter['n']}@example.com",
            password_hash=get_password_hash(password),
            role=role,
            status=status,
            email_verified=status == UserStatus.ACTIVE,
            **kwargs
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return factory


def bearer(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}


@pytest.fixture
def headers_for():
    """返回某个用户的认证请求头"""
    return bearer


@pytest.fixture
def customer(create_user):
    return create_user(UserRole.CUSTOMER, email="customer@example.com", phone="+966500000001")


@pytest.fixture
def other_customer(create_user):
    return create_user(UserRole.CUSTOMER, email="other@example.com")


@pytest.fixture
def admin(create_user):
    return create_user(UserRole.ADMIN, email="admin@example.com")


@pytest.fixture
def support_user(create_user):
    return create_user(UserRole.SUPPORT_STAFF, email="support@example.com")


@pytest.fixture
def finance_user(create_user):
    return create_user(UserRole.FINANCE_STAFF, email="finance@example.com")


@pytest.fixture
def operations_user(create_user):
    return create_user(UserRole.OPERATIONS_STAFF, email="ops@example.com")


@pytest.fixture
def customer_headers(customer):
    return bearer(customer)


@pytest.fixture
def other_customer_headers(other_customer):
    return bearer(other_customer)


@pytest.fixture
def admin_headers(admin):
    return bearer(admin)


@pytest.fixture
def support_headers(support_user):
    return bearer(support_user)


@pytest.fixture
def finance_headers(finance_user):
    return bearer(finance_user)


@pytest.fixture
def operations_headers(operations_user):
    return bearer(operations_user)


# ============== 实体相关 Fixtures ==============

@pytest.fixture
def sample_hotel(db_session):
    """创建测试酒店"""
    hotel = Hotel(
        name="Makkah Towers",
        description="Steps from the Haram",
        city="Makkah",
        country_code="SA",
        star_rating=5,
        amenities=["wifi", "pool"],
        is_active=True,
    )
    db_session.add(hotel)
    db_session.commit()
    db_session.refresh(hotel)
    return hotel


@pytest.fixture
def sample_room(db_session, sample_hotel):
    """创建测试房间"""
    room = Room(
        hotel_id=sample_hotel.id,
        room_number="101",
        room_type=RoomType.DOUBLE,
        base_price=Decimal("450.00"),
        currency="SAR",
        max_adults=2,
    )
    db_session.add(room)
    db_session.commit()
    db_session.refresh(room)
    return room


@pytest.fixture
def sample_package(db_session):
    """创建副朝套餐"""
    departure = date.today() + timedelta(days=60)
    package = TravelPackage(
        name="Umrah Economy 10 Days",
        package_type=PackageType.UMRAH,
        duration_days=10,
        price=Decimal("5200.00"),
        currency="SAR",
        departure_date=departure,
        return_date=departure + timedelta(days=10),
        total_slots=2,
        available_slots=2,
        inclusions=["visa", "hotel", "transport"],
        is_active=True,
    )
    db_session.add(package)
    db_session.commit()
    db_session.refresh(package)
    return package


@pytest.fixture
def stay_dates():
    check_in = date.today() + timedelta(days=10)
    return check_in, check_in + timedelta(days=3)
