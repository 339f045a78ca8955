"""
业务实体定义
账户、酒店/房间、旅行套餐、预订、机票、航班目录、支付、通知、工单、聊天、评价、文件
"""
from datetime import datetime
from enum import Enum
from sqlalchemy import (
    Column, Integer, String, Float, DateTime, Date, JSON,
    ForeignKey, Text, Enum as SQLEnum, Boolean, Numeric, UniqueConstraint
)
from sqlalchemy.orm import relationship
from gouraan.database import Base


# ============== 枚举定义 ==============

class UserRole(str, Enum):
    """用户角色（从低到高）"""
    CUSTOMER = "customer"                  # 普通客户
    TRAVEL_AGENT = "travel_agent"          # 旅行代理
    FINANCE_STAFF = "finance_staff"        # 财务
    SUPPORT_STAFF = "support_staff"        # 客服
    OPERATIONS_STAFF = "operations_staff"  # 运营
    ADMIN = "admin"                        # 管理员


class UserStatus(str, Enum):
    """账户状态"""
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    PENDING_VERIFICATION = "pending_verification"


class BookingType(str, Enum):
    """预订类型"""
    FLIGHT = "flight"
    HOTEL = "hotel"
    PACKAGE = "package"
    HAJJ = "hajj"
    UMRAH = "umrah"


class BookingStatus(str, Enum):
    """预订状态"""
    PENDING = "pending"        # 待确认
    CONFIRMED = "confirmed"    # 已确认
    CANCELLED = "cancelled"    # 已取消
    COMPLETED = "completed"    # 已完成
    REFUNDED = "refunded"      # 已退款


class PaymentStatus(str, Enum):
    """支付状态"""
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentGatewayName(str, Enum):
    """支付渠道（含线下）"""
    STRIPE = "stripe"
    PAYPAL = "paypal"
    SSLCOMMERZ = "sslcommerz"
    HYPERPAY = "hyperpay"
    BANK_TRANSFER = "bank_transfer"
    CASH = "cash"


class RoomType(str, Enum):
    """房型"""
    SINGLE = "single"
    DOUBLE = "double"
    TWIN = "twin"
    SUITE = "suite"
    FAMILY = "family"
    DELUXE = "deluxe"


class RoomStatus(str, Enum):
    """房间状态"""
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    MAINTENANCE = "maintenance"
    OUT_OF_SERVICE = "out_of_service"


class PackageType(str, Enum):
    """套餐类型"""
    HAJJ = "hajj"
    UMRAH = "umrah"
    HOLIDAY = "holiday"


class FlightBookingStatus(str, Enum):
    """机票预订状态"""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    TICKETED = "ticketed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class PassengerType(str, Enum):
    ADULT = "adult"
    CHILD = "child"
    INFANT = "infant"


class FlightTicketStatus(str, Enum):
    ISSUED = "issued"
    CANCELLED = "cancelled"


class AirportType(str, Enum):
    INTERNATIONAL = "international"
    DOMESTIC = "domestic"
    MILITARY = "military"
    PRIVATE = "private"


class CabinClass(str, Enum):
    """舱位等级（航班与座位共用）"""
    ECONOMY = "economy"
    PREMIUM_ECONOMY = "premium_economy"
    BUSINESS = "business"
    FIRST = "first"


class FlightStatus(str, Enum):
    """航班状态"""
    SCHEDULED = "scheduled"
    ON_TIME = "on_time"
    DELAYED = "delayed"
    DEPARTED = "departed"
    ARRIVED = "arrived"
    CANCELLED = "cancelled"


class SeatType(str, Enum):
    WINDOW = "window"
    AISLE = "aisle"
    MIDDLE = "middle"
    EXIT = "exit"


class SeatStatus(str, Enum):
    AVAILABLE = "available"
    BOOKED = "booked"
    RESERVED = "reserved"    # 临时锁座
    BLOCKED = "blocked"


class NotificationType(str, Enum):
    """通知类型"""
    BOOKING_CONFIRMATION = "booking_confirmation"
    BOOKING_CANCELLED = "booking_cancelled"
    PAYMENT_SUCCESS = "payment_success"
    PAYMENT_FAILED = "payment_failed"
    FLIGHT_REMINDER = "flight_reminder"
    PROMOTIONAL = "promotional"
    SYSTEM_ALERT = "system_alert"
    SUPPORT_TICKET = "support_ticket"


class NotificationChannelType(str, Enum):
    EMAIL = "email"
    SMS = "sms"
    PUSH = "push"
    WHATSAPP = "whatsapp"


class NotificationPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class NotificationStatus(str, Enum):
    """通知投递状态"""
    PENDING = "pending"        # 待发送
    SCHEDULED = "scheduled"    # 定时
    SENDING = "sending"        # 发送中
    SENT = "sent"              # 全部渠道成功
    PARTIAL = "partial"        # 部分渠道成功
    FAILED = "failed"          # 全部失败
    SKIPPED = "skipped"        # 用户偏好全部关闭


class SupportTicketStatus(str, Enum):
    """工单状态"""
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    WAITING_CUSTOMER_RESPONSE = "waiting_customer_response"
    WAITING_SUPPORT_RESPONSE = "waiting_support_response"
    RESOLVED = "resolved"
    CLOSED = "closed"


class SupportTicketCategory(str, Enum):
    GENERAL = "general"
    BOOKING = "booking"
    PAYMENT = "payment"
    REFUND = "refund"
    TECHNICAL = "technical"
    COMPLAINT = "complaint"


class ReviewType(str, Enum):
    HOTEL = "hotel"
    PACKAGE = "package"
    FLIGHT = "flight"


# ============== 账户 ==============

class User(Base):
    """用户（客户、代理、员工共用）"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    phone = Column(String(30), unique=True, nullable=True)
    role = Column(SQLEnum(UserRole), default=UserRole.CUSTOMER, nullable=False)
    status = Column(SQLEnum(UserStatus), default=UserStatus.PENDING_VERIFICATION, nullable=False)
    email_verified = Column(Boolean, default=False)
    email_verification_token = Column(String(100), nullable=True, index=True)
    password_reset_token = Column(String(128), nullable=True)     # sha256 摘要
    password_reset_expires = Column(DateTime, nullable=True)
    loyalty_points = Column(Integer, default=0)
    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    preferences = relationship("UserPreferences", back_populates="user", uselist=False,
                               cascade="all, delete-orphan")
    sessions = relationship("UserSession", back_populates="user", cascade="all, delete-orphan")
    devices = relationship("UserDevice", back_populates="user", cascade="all, delete-orphan")
    bookings = relationship("Booking", back_populates="user")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class UserPreferences(Base):
    """通知与显示偏好"""
    __tablename__ = "user_preferences"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    email_notifications = Column(Boolean, default=True)
    sms_notifications = Column(Boolean, default=True)
    push_notifications = Column(Boolean, default=True)
    whatsapp_notifications = Column(Boolean, default=False)
    language = Column(String(5), default="en")
    currency = Column(String(3), default="SAR")
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="preferences")


class UserSession(Base):
    """刷新令牌会话"""
    __tablename__ = "user_sessions"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    refresh_token = Column(Text, nullable=False)
    is_active = Column(Boolean, default=True)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="sessions")


class UserDevice(Base):
    """推送设备"""
    __tablename__ = "user_devices"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    push_token = Column(String(255), nullable=False)
    platform = Column(String(20), default="android")
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="devices")


class LoyaltyTransaction(Base):
    """积分流水"""
    __tablename__ = "loyalty_transactions"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True)
    points = Column(Integer, nullable=False)
    transaction_type = Column(String(20), default="earned")  # earned / redeemed
    description = Column(String(255))
    created_at = Column(DateTime, default=datetime.utcnow)


# ============== 酒店与房间 ==============

class Hotel(Base):
    """酒店"""
    __tablename__ = "hotels"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), unique=True, nullable=False)
    description = Column(Text)
    address = Column(String(255))
    city = Column(String(100), index=True)
    country_code = Column(String(2))
    star_rating = Column(Integer, default=3)
    amenities = Column(JSON, default=list)
    images = Column(JSON, default=list)
    contact_email = Column(String(255))
    contact_phone = Column(String(30))
    average_rating = Column(Float, default=0)
    review_count = Column(Integer, default=0)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    rooms = relationship("Room", back_populates="hotel")

    @property
    def room_count(self) -> int:
        return len(self.rooms)


class Room(Base):
    """房间"""
    __tablename__ = "rooms"
    __table_args__ = (UniqueConstraint("hotel_id", "room_number", name="uq_room_hotel_number"),)

    id = Column(Integer, primary_key=True, index=True)
    hotel_id = Column(Integer, ForeignKey("hotels.id"), nullable=False, index=True)
    room_number = Column(String(20), nullable=False)
    room_type = Column(SQLEnum(RoomType), default=RoomType.DOUBLE)
    description = Column(Text)
    base_price = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), default="SAR")
    max_adults = Column(Integer, default=2)
    max_children = Column(Integer, default=0)
    amenities = Column(JSON, default=list)
    status = Column(SQLEnum(RoomStatus), default=RoomStatus.AVAILABLE)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    hotel = relationship("Hotel", back_populates="rooms")
    bookings = relationship("Booking", back_populates="room")

    @property
    def hotel_name(self):
        return self.hotel.name if self.hotel else None


# ============== 旅行套餐 ==============

class TravelPackage(Base):
    """朝觐 / 副朝 / 度假套餐"""
    __tablename__ = "travel_packages"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    package_type = Column(SQLEnum(PackageType), nullable=False)
    description = Column(Text)
    duration_days = Column(Integer, nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), default="SAR")
    departure_date = Column(Date, nullable=True)
    return_date = Column(Date, nullable=True)
    total_slots = Column(Integer, default=0)
    available_slots = Column(Integer, default=0)
    inclusions = Column(JSON, default=list)
    images = Column(JSON, default=list)
    average_rating = Column(Float, default=0)
    review_count = Column(Integer, default=0)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    bookings = relationship("Booking", back_populates="package")


# ============== 预订 ==============

class Booking(Base):
    """预订（所有类型的聚合根）"""
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    reference = Column(String(20), unique=True, nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    booking_type = Column(SQLEnum(BookingType), nullable=False)
    status = Column(SQLEnum(BookingStatus), default=BookingStatus.PENDING, index=True)
    payment_status = Column(SQLEnum(PaymentStatus), default=PaymentStatus.PENDING)
    total_amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), default="SAR")
    booking_data = Column(JSON, default=dict)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=True)
    check_in_date = Column(Date, nullable=True)
    check_out_date = Column(Date, nullable=True)
    package_id = Column(Integer, ForeignKey("travel_packages.id"), nullable=True)
    expires_at = Column(DateTime, nullable=True)
    confirmed_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    cancellation_reason = Column(String(500))
    notes = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="bookings")
    room = relationship("Room", back_populates="bookings")
    package = relationship("TravelPackage", back_populates="bookings")
    payments = relationship("Payment", back_populates="booking")


# ============== 支付 ==============

class Payment(Base):
    """支付记录"""
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), default="SAR")
    gateway = Column(SQLEnum(PaymentGatewayName), nullable=False)
    method = Column(String(30), default="card")
    status = Column(SQLEnum(PaymentStatus), default=PaymentStatus.PENDING)
    transaction_id = Column(String(100), nullable=True)
    gateway_response = Column(JSON, nullable=True)
    failure_reason = Column(String(500))
    paid_at = Column(DateTime, nullable=True)
    refund_amount = Column(Numeric(12, 2), nullable=True)
    refund_reason = Column(String(500))
    refunded_at = Column(DateTime, nullable=True)
    # 线下支付
    reference_number = Column(String(100))
    bank_details = Column(JSON, nullable=True)
    verified_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    booking = relationship("Booking", back_populates="payments")
    receipts = relationship("UploadedFile", back_populates="payment")


# ============== 机票 ==============

class FlightBooking(Base):
    """机票预订"""
    __tablename__ = "flight_bookings"

    id = Column(Integer, primary_key=True, index=True)
    booking_reference = Column(String(20), unique=True, nullable=False, index=True)
    pnr = Column(String(10), unique=True, nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    status = Column(SQLEnum(FlightBookingStatus), default=FlightBookingStatus.PENDING)
    booking_date = Column(DateTime, default=datetime.utcnow)
    base_fare = Column(Numeric(12, 2), default=0)
    taxes = Column(Numeric(12, 2), default=0)
    total_fare = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), default="SAR")
    cabin_class = Column(String(20), default="economy")
    contact_email = Column(String(255))
    contact_phone = Column(String(30))
    documents = Column(JSON, default=list)
    cancellation_reason = Column(String(500))
    cancelled_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    segments = relationship("FlightSegment", back_populates="flight_booking",
                            cascade="all, delete-orphan")
    passengers = relationship("FlightPassenger", back_populates="flight_booking",
                              cascade="all, delete-orphan")
    tickets = relationship("Ticket", back_populates="flight_booking")


class FlightSegment(Base):
    """航段（去程 / 回程）"""
    __tablename__ = "flight_segments"

    id = Column(Integer, primary_key=True)
    flight_booking_id = Column(Integer, ForeignKey("flight_bookings.id"), nullable=False, index=True)
    is_return = Column(Boolean, default=False)
    airline_code = Column(String(3), nullable=False)
    flight_number = Column(String(10), nullable=False)
    departure_airport = Column(String(3), nullable=False)
    arrival_airport = Column(String(3), nullable=False)
    departure_time = Column(DateTime, nullable=False)
    arrival_time = Column(DateTime, nullable=False)
    cabin_class = Column(String(20), default="economy")
    aircraft = Column(String(50))

    flight_booking = relationship("FlightBooking", back_populates="segments")


class FlightPassenger(Base):
    """乘客"""
    __tablename__ = "flight_passengers"

    id = Column(Integer, primary_key=True)
    flight_booking_id = Column(Integer, ForeignKey("flight_bookings.id"), nullable=False, index=True)
    passenger_type = Column(SQLEnum(PassengerType), default=PassengerType.ADULT)
    title = Column(String(10))
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    date_of_birth = Column(Date, nullable=True)
    nationality = Column(String(2))
    passport_number = Column(String(30))
    passport_expiry = Column(Date, nullable=True)

    flight_booking = relationship("FlightBooking", back_populates="passengers")
    ticket = relationship("Ticket", back_populates="passenger", uselist=False)


class Ticket(Base):
    """电子客票，每位乘客一张"""
    __tablename__ = "tickets"

    id = Column(Integer, primary_key=True)
    flight_booking_id = Column(Integer, ForeignKey("flight_bookings.id"), nullable=False, index=True)
    passenger_id = Column(Integer, ForeignKey("flight_passengers.id"), unique=True, nullable=False)
    ticket_number = Column(String(20), unique=True, nullable=False)
    status = Column(SQLEnum(FlightTicketStatus), default=FlightTicketStatus.ISSUED)
    issued_at = Column(DateTime, default=datetime.utcnow)

    flight_booking = relationship("FlightBooking", back_populates="tickets")
    passenger = relationship("FlightPassenger", back_populates="ticket")


# ============== 航班目录 ==============

class Airline(Base):
    """航空公司"""
    __tablename__ = "airlines"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    iata_code = Column(String(3), unique=True, nullable=True)
    icao_code = Column(String(3), unique=True, nullable=True)
    country = Column(String(100))
    logo_url = Column(String(255))
    website = Column(String(255))
    contact_phone = Column(String(30))
    description = Column(Text)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    flights = relationship("Flight", back_populates="airline")


class Airport(Base):
    """机场"""
    __tablename__ = "airports"

    id = Column(Integer, primary_key=True, index=True)
    iata_code = Column(String(3), unique=True, nullable=False, index=True)
    icao_code = Column(String(4), unique=True, nullable=True)
    name = Column(String(100), nullable=False)
    city = Column(String(100), nullable=False, index=True)
    country = Column(String(100), nullable=False)
    latitude = Column(Float)
    longitude = Column(Float)
    timezone = Column(String(50))
    airport_type = Column(SQLEnum(AirportType), default=AirportType.INTERNATIONAL)
    is_hub = Column(Boolean, default=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Flight(Base):
    """航班"""
    __tablename__ = "flights"

    id = Column(Integer, primary_key=True, index=True)
    flight_number = Column(String(10), nullable=False, index=True)
    airline_id = Column(Integer, ForeignKey("airlines.id"), nullable=False, index=True)
    departure_airport_id = Column(Integer, ForeignKey("airports.id"), nullable=False, index=True)
    arrival_airport_id = Column(Integer, ForeignKey("airports.id"), nullable=False, index=True)
    departure_time = Column(DateTime, nullable=False, index=True)
    arrival_time = Column(DateTime, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    cabin_class = Column(SQLEnum(CabinClass), default=CabinClass.ECONOMY)
    aircraft_type = Column(String(20))
    total_seats = Column(Integer, nullable=False)
    available_seats = Column(Integer, nullable=False)
    base_price = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), default="SAR")
    status = Column(SQLEnum(FlightStatus), default=FlightStatus.SCHEDULED)
    amenities = Column(JSON, default=list)
    baggage_allowance = Column(JSON, nullable=True)  # {"cabin": kg, "check_in": kg}
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    airline = relationship("Airline", back_populates="flights")
    departure_airport = relationship("Airport", foreign_keys=[departure_airport_id])
    arrival_airport = relationship("Airport", foreign_keys=[arrival_airport_id])
    seats = relationship("FlightSeat", back_populates="flight", cascade="all, delete-orphan",
                         order_by="FlightSeat.id")


class FlightSeat(Base):
    """航班座位"""
    __tablename__ = "flight_seats"
    __table_args__ = (UniqueConstraint("flight_id", "seat_number", name="uq_seat_flight_number"),)

    id = Column(Integer, primary_key=True)
    flight_id = Column(Integer, ForeignKey("flights.id"), nullable=False, index=True)
    seat_number = Column(String(5), nullable=False)
    seat_class = Column(SQLEnum(CabinClass), nullable=False)
    seat_type = Column(SQLEnum(SeatType), nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    is_window_seat = Column(Boolean, default=False)
    is_exit_row = Column(Boolean, default=False)
    has_extra_legroom = Column(Boolean, default=False)
    status = Column(SQLEnum(SeatStatus), default=SeatStatus.AVAILABLE)
    held_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    held_at = Column(DateTime, nullable=True)
    hold_until = Column(DateTime, nullable=True)
    features = Column(JSON, default=list)

    flight = relationship("Flight", back_populates="seats")


# ============== 通知 ==============

class Notification(Base):
    """通知记录"""
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    notification_type = Column(SQLEnum(NotificationType), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    channels = Column(JSON, default=list)
    priority = Column(SQLEnum(NotificationPriority), default=NotificationPriority.MEDIUM)
    status = Column(SQLEnum(NotificationStatus), default=NotificationStatus.PENDING, index=True)
    template_data = Column(JSON, nullable=True)
    delivery_status = Column(JSON, nullable=True)   # {channel: {"success": bool, "error": str}}
    failure_reason = Column(String(500))
    scheduled_at = Column(DateTime, nullable=True)
    sent_at = Column(DateTime, nullable=True)
    is_read = Column(Boolean, default=False)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User")


# ============== 工单与聊天 ==============

class SupportTicket(Base):
    """客服工单"""
    __tablename__ = "support_tickets"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    assigned_to_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    priority = Column(Integer, default=3)   # 1(低) - 5(紧急)
    category = Column(SQLEnum(SupportTicketCategory), default=SupportTicketCategory.GENERAL)
    status = Column(SQLEnum(SupportTicketStatus), default=SupportTicketStatus.OPEN, index=True)
    extra_data = Column("metadata", JSON, nullable=True)
    closed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", foreign_keys=[user_id])
    assigned_to = relationship("User", foreign_keys=[assigned_to_id])
    messages = relationship("SupportTicketMessage", back_populates="ticket",
                            order_by="SupportTicketMessage.id", cascade="all, delete-orphan")


class SupportTicketMessage(Base):
    """工单回复（含内部备注）"""
    __tablename__ = "support_ticket_messages"

    id = Column(Integer, primary_key=True)
    ticket_id = Column(Integer, ForeignKey("support_tickets.id"), nullable=False, index=True)
    sender_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)
    is_internal = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    ticket = relationship("SupportTicket", back_populates="messages")
    sender = relationship("User")


class ChatMessage(Base):
    """实时聊天消息（工单房间或点对点）"""
    __tablename__ = "chat_messages"

    id = Column(Integer, primary_key=True, index=True)
    sender_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    recipient_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    ticket_id = Column(Integer, ForeignKey("support_tickets.id"), nullable=True, index=True)
    content = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    sender = relationship("User", foreign_keys=[sender_id])


# ============== 评价与文件 ==============

class Review(Base):
    """评价（酒店 / 套餐 / 航班）"""
    __tablename__ = "reviews"
    __table_args__ = (UniqueConstraint("user_id", "review_type", "item_id", name="uq_review_user_item"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    review_type = Column(SQLEnum(ReviewType), nullable=False)
    item_id = Column(Integer, nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    title = Column(String(200))
    comment = Column(Text)
    is_approved = Column(Boolean, default=False)
    approved_at = Column(DateTime, nullable=True)
    approved_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", foreign_keys=[user_id])


class UploadedFile(Base):
    """上传文件"""
    __tablename__ = "uploaded_files"

    id = Column(Integer, primary_key=True, index=True)
    original_name = Column(String(255), nullable=False)
    stored_name = Column(String(255), unique=True, nullable=False)
    content_type = Column(String(100), nullable=False)
    size = Column(Integer, nullable=False)
    path = Column(String(500), nullable=False)
    uploaded_by_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    payment_id = Column(Integer, ForeignKey("payments.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    payment = relationship("Payment", back_populates="receipts")
