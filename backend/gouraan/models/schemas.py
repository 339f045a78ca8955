"""
Pydantic 模式定义
用于 API 请求/响应验证
"""
from datetime import datetime, date
from decimal import Decimal
from typing import Optional, List, Dict, Any, Generic, TypeVar
from pydantic import BaseModel, EmailStr, Field, field_validator, ConfigDict
from gouraan.models.entities import (
    UserRole, UserStatus, BookingType, BookingStatus, PaymentStatus,
    PaymentGatewayName, RoomType, RoomStatus, PackageType,
    FlightBookingStatus, PassengerType, FlightTicketStatus,
    NotificationType, NotificationChannelType, NotificationPriority, NotificationStatus,
    SupportTicketStatus, SupportTicketCategory, ReviewType,
    AirportType, CabinClass, FlightStatus, SeatType, SeatStatus,
)

T = TypeVar("T")


# ============== 分页 Schemas ==============

class PageMeta(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool


class Paginated(BaseModel, Generic[T]):
    """分页响应：{data, meta}"""
    data: List[T]
    meta: PageMeta


# ============== 认证 Schemas ==============

class EmailRequest(BaseModel):
    """邮箱去空格后校验，统一小写存储"""
    email: EmailStr

    @field_validator("email", mode="before")
    @classmethod
    def strip_email(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email")
    @classmethod
    def lower_email(cls, v):
        return v.lower()


class RegisterRequest(EmailRequest):
    password: str = Field(..., min_length=8)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    role: UserRole = UserRole.CUSTOMER


class LoginRequest(EmailRequest):
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class ForgotPasswordRequest(EmailRequest):
    pass


class ResetPasswordRequest(BaseModel):
    token: str
    new_password: str = Field(..., min_length=8)


class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8)


class VerifyEmailRequest(BaseModel):
    token: str


class UserResponse(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    role: UserRole
    status: UserStatus
    email_verified: bool
    loyalty_points: int
    last_login_at: Optional[datetime] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class MeResponse(UserResponse):
    permissions: List[str] = []


class AuthResponse(BaseModel):
    user: UserResponse
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


# ============== 用户 Schemas ==============

class UserProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)


class PreferencesResponse(BaseModel):
    email_notifications: bool
    sms_notifications: bool
    push_notifications: bool
    whatsapp_notifications: bool
    language: str
    currency: str
    model_config = ConfigDict(from_attributes=True)


class PreferencesUpdate(BaseModel):
    email_notifications: Optional[bool] = None
    sms_notifications: Optional[bool] = None
    push_notifications: Optional[bool] = None
    whatsapp_notifications: Optional[bool] = None
    language: Optional[str] = Field(None, pattern="^(en|ar|bn)$")
    currency: Optional[str] = Field(None, min_length=3, max_length=3)


class UserStatusUpdate(BaseModel):
    status: UserStatus


class UserRoleUpdate(BaseModel):
    role: UserRole


class DeviceRegister(BaseModel):
    push_token: str = Field(..., min_length=1, max_length=255)
    platform: str = Field(default="android", max_length=20)


class DeviceResponse(BaseModel):
    id: int
    push_token: str
    platform: str
    is_active: bool
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class LoyaltyTransactionResponse(BaseModel):
    id: int
    booking_id: Optional[int] = None
    points: int
    transaction_type: str
    description: Optional[str] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


# ============== 酒店 Schemas ==============

class HotelBase(BaseModel):
    name: str = Field(..., max_length=200)
    description: Optional[str] = None
    address: Optional[str] = None
    city: str = Field(..., max_length=100)
    country_code: str = Field(..., min_length=2, max_length=2)
    star_rating: int = Field(default=3, ge=1, le=5)
    amenities: List[str] = []
    images: List[str] = []
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None

    @field_validator("country_code")
    @classmethod
    def upper_country(cls, v):
        return v.upper()


class HotelCreate(HotelBase):
    pass


class HotelUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = Field(None, max_length=100)
    country_code: Optional[str] = Field(None, min_length=2, max_length=2)
    star_rating: Optional[int] = Field(None, ge=1, le=5)
    amenities: Optional[List[str]] = None
    images: Optional[List[str]] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None

    @field_validator("country_code")
    @classmethod
    def upper_country(cls, v):
        return v.upper() if v else v


class HotelResponse(HotelBase):
    id: int
    average_rating: float
    review_count: int
    is_active: bool
    created_at: datetime
    room_count: int = 0
    model_config = ConfigDict(from_attributes=True)


# ============== 房间 Schemas ==============

class RoomBase(BaseModel):
    room_number: str = Field(..., max_length=20)
    room_type: RoomType = RoomType.DOUBLE
    description: Optional[str] = None
    base_price: Decimal = Field(..., ge=0)
    currency: str = Field(default="SAR", min_length=3, max_length=3)
    max_adults: int = Field(default=2, ge=1)
    max_children: int = Field(default=0, ge=0)
    amenities: List[str] = []


class RoomCreate(RoomBase):
    hotel_id: int


class RoomUpdate(BaseModel):
    room_number: Optional[str] = Field(None, max_length=20)
    room_type: Optional[RoomType] = None
    description: Optional[str] = None
    base_price: Optional[Decimal] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    max_adults: Optional[int] = Field(None, ge=1)
    max_children: Optional[int] = Field(None, ge=0)
    amenities: Optional[List[str]] = None


class RoomResponse(RoomBase):
    id: int
    hotel_id: int
    status: RoomStatus
    created_at: datetime
    hotel_name: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class RoomStatusUpdate(BaseModel):
    status: RoomStatus


class AvailabilityResponse(BaseModel):
    room_id: int
    check_in_date: date
    check_out_date: date
    available: bool
    reason: Optional[str] = None


# ============== 套餐 Schemas ==============

class PackageBase(BaseModel):
    name: str = Field(..., max_length=200)
    package_type: PackageType
    description: Optional[str] = None
    duration_days: int = Field(..., ge=1)
    price: Decimal = Field(..., ge=0)
    currency: str = Field(default="SAR", min_length=3, max_length=3)
    departure_date: Optional[date] = None
    return_date: Optional[date] = None
    total_slots: int = Field(default=0, ge=0)
    inclusions: List[str] = []
    images: List[str] = []


class PackageCreate(PackageBase):
    available_slots: Optional[int] = Field(None, ge=0)


class PackageUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    duration_days: Optional[int] = Field(None, ge=1)
    price: Optional[Decimal] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    departure_date: Optional[date] = None
    return_date: Optional[date] = None
    total_slots: Optional[int] = Field(None, ge=0)
    available_slots: Optional[int] = Field(None, ge=0)
    inclusions: Optional[List[str]] = None
    images: Optional[List[str]] = None
    is_active: Optional[bool] = None


class PackageResponse(PackageBase):
    id: int
    available_slots: int
    average_rating: float
    review_count: int
    is_active: bool
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


# ============== 预订 Schemas ==============

class BookingCreate(BaseModel):
    booking_type: BookingType
    total_amount: Decimal = Field(..., gt=0)
    currency: str = Field(default="SAR", min_length=3, max_length=3)
    booking_data: Dict[str, Any] = {}
    room_id: Optional[int] = None
    check_in_date: Optional[date] = None
    check_out_date: Optional[date] = None
    package_id: Optional[int] = None
    notes: Optional[str] = None


class BookingUpdate(BaseModel):
    booking_data: Optional[Dict[str, Any]] = None
    notes: Optional[str] = None
    total_amount: Optional[Decimal] = Field(None, gt=0)


class BookingCancel(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class BookingResponse(BaseModel):
    id: int
    reference: str
    user_id: int
    booking_type: BookingType
    status: BookingStatus
    payment_status: PaymentStatus
    total_amount: Decimal
    currency: str
    booking_data: Optional[Dict[str, Any]] = None
    room_id: Optional[int] = None
    check_in_date: Optional[date] = None
    check_out_date: Optional[date] = None
    package_id: Optional[int] = None
    expires_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


# ============== 机票 Schemas ==============

class FlightSegmentCreate(BaseModel):
    airline_code: str = Field(..., min_length=2, max_length=3)
    flight_number: str = Field(..., max_length=10)
    departure_airport: str = Field(..., min_length=3, max_length=3)
    arrival_airport: str = Field(..., min_length=3, max_length=3)
    departure_time: datetime
    arrival_time: datetime
    cabin_class: str = "economy"
    aircraft: Optional[str] = None

    @field_validator("departure_airport", "arrival_airport", "airline_code")
    @classmethod
    def upper_codes(cls, v):
        return v.upper()


class FlightSegmentResponse(FlightSegmentCreate):
    id: int
    is_return: bool
    model_config = ConfigDict(from_attributes=True)


class PassengerCreate(BaseModel):
    passenger_type: PassengerType = PassengerType.ADULT
    title: Optional[str] = None
    first_name: str = Field(..., max_length=100)
    last_name: str = Field(..., max_length=100)
    date_of_birth: Optional[date] = None
    nationality: Optional[str] = Field(None, min_length=2, max_length=2)
    passport_number: Optional[str] = None
    passport_expiry: Optional[date] = None


class PassengerResponse(PassengerCreate):
    id: int
    model_config = ConfigDict(from_attributes=True)


class TicketCreate(BaseModel):
    passenger_id: int
    ticket_number: str = Field(..., min_length=6, max_length=20)


class TicketResponse(BaseModel):
    id: int
    passenger_id: int
    ticket_number: str
    status: FlightTicketStatus
    issued_at: datetime
    model_config = ConfigDict(from_attributes=True)


class FlightBookingCreate(BaseModel):
    pnr: str = Field(..., min_length=5, max_length=10)
    booking_reference: Optional[str] = Field(None, max_length=20)
    base_fare: Decimal = Field(default=Decimal("0"), ge=0)
    taxes: Decimal = Field(default=Decimal("0"), ge=0)
    total_fare: Decimal = Field(..., ge=0)
    currency: str = Field(default="SAR", min_length=3, max_length=3)
    cabin_class: str = "economy"
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    segments: List[FlightSegmentCreate] = Field(..., min_length=1)
    return_segments: List[FlightSegmentCreate] = []
    passengers: List[PassengerCreate] = Field(..., min_length=1)

    @field_validator("pnr")
    @classmethod
    def upper_pnr(cls, v):
        return v.upper()


class FlightBookingUpdate(BaseModel):
    status: Optional[FlightBookingStatus] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    cabin_class: Optional[str] = None
    total_fare: Optional[Decimal] = Field(None, ge=0)
    documents: Optional[List[str]] = None
    # 以下字段不可修改，传入会被忽略
    booking_reference: Optional[str] = None
    pnr: Optional[str] = None


class FlightCancel(BaseModel):
    reason: str = "Cancelled by user"


class FlightBookingResponse(BaseModel):
    id: int
    booking_reference: str
    pnr: str
    user_id: Optional[int] = None
    status: FlightBookingStatus
    booking_date: datetime
    base_fare: Decimal
    taxes: Decimal
    total_fare: Decimal
    currency: str
    cabin_class: str
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    documents: List[str] = []
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    segments: List[FlightSegmentResponse] = []
    return_segments: List[FlightSegmentResponse] = []
    passengers: List[PassengerResponse] = []
    tickets: List[TicketResponse] = []
    is_round_trip: bool = False
    total_travel_time: int = 0
    number_of_stops: int = 0
    is_direct: bool = True


# ============== 航班目录 Schemas ==============

def _upper(v):
    return v.strip().upper() if isinstance(v, str) else v


class AirlineBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    iata_code: Optional[str] = Field(None, min_length=2, max_length=3)
    icao_code: Optional[str] = Field(None, min_length=3, max_length=3)
    country: Optional[str] = Field(None, max_length=100)
    logo_url: Optional[str] = None
    website: Optional[str] = None
    contact_phone: Optional[str] = Field(None, max_length=30)
    description: Optional[str] = None

    @field_validator("iata_code", "icao_code")
    @classmethod
    def upper_codes(cls, v):
        return _upper(v)


class AirlineCreate(AirlineBase):
    pass


class AirlineUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    iata_code: Optional[str] = Field(None, min_length=2, max_length=3)
    icao_code: Optional[str] = Field(None, min_length=3, max_length=3)
    country: Optional[str] = Field(None, max_length=100)
    logo_url: Optional[str] = None
    website: Optional[str] = None
    contact_phone: Optional[str] = Field(None, max_length=30)
    description: Optional[str] = None

    @field_validator("iata_code", "icao_code")
    @classmethod
    def upper_codes(cls, v):
        return _upper(v)


class AirlineResponse(AirlineBase):
    id: int
    is_active: bool
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class AirportBase(BaseModel):
    iata_code: str = Field(..., min_length=3, max_length=3)
    icao_code: Optional[str] = Field(None, min_length=4, max_length=4)
    name: str = Field(..., min_length=1, max_length=100)
    city: str = Field(..., min_length=1, max_length=100)
    country: str = Field(..., min_length=1, max_length=100)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    timezone: Optional[str] = Field(None, max_length=50)
    airport_type: AirportType = AirportType.INTERNATIONAL
    is_hub: bool = False

    @field_validator("iata_code", "icao_code")
    @classmethod
    def upper_codes(cls, v):
        return _upper(v)


class AirportCreate(AirportBase):
    pass


class AirportUpdate(BaseModel):
    iata_code: Optional[str] = Field(None, min_length=3, max_length=3)
    icao_code: Optional[str] = Field(None, min_length=4, max_length=4)
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    country: Optional[str] = Field(None, min_length=1, max_length=100)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    timezone: Optional[str] = Field(None, max_length=50)
    airport_type: Optional[AirportType] = None
    is_hub: Optional[bool] = None

    @field_validator("iata_code", "icao_code")
    @classmethod
    def upper_codes(cls, v):
        return _upper(v)


class AirportResponse(AirportBase):
    id: int
    is_active: bool
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class FlightCreate(BaseModel):
    flight_number: str = Field(..., min_length=2, max_length=10)
    airline_id: int
    departure_airport_id: int
    arrival_airport_id: int
    departure_time: datetime
    arrival_time: datetime
    cabin_class: CabinClass = CabinClass.ECONOMY
    aircraft_type: Optional[str] = Field(None, max_length=20)
    total_seats: int = Field(..., ge=1)
    available_seats: Optional[int] = Field(None, ge=0)
    base_price: Decimal = Field(..., ge=0)
    currency: str = Field(default="SAR", min_length=3, max_length=3)
    status: FlightStatus = FlightStatus.SCHEDULED
    amenities: List[str] = []
    baggage_allowance: Optional[Dict[str, int]] = None

    @field_validator("flight_number")
    @classmethod
    def upper_number(cls, v):
        return _upper(v)


class FlightUpdate(BaseModel):
    flight_number: Optional[str] = Field(None, min_length=2, max_length=10)
    airline_id: Optional[int] = None
    departure_airport_id: Optional[int] = None
    arrival_airport_id: Optional[int] = None
    departure_time: Optional[datetime] = None
    arrival_time: Optional[datetime] = None
    cabin_class: Optional[CabinClass] = None
    aircraft_type: Optional[str] = Field(None, max_length=20)
    total_seats: Optional[int] = Field(None, ge=1)
    available_seats: Optional[int] = Field(None, ge=0)
    base_price: Optional[Decimal] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    status: Optional[FlightStatus] = None
    amenities: Optional[List[str]] = None
    baggage_allowance: Optional[Dict[str, int]] = None

    @field_validator("flight_number")
    @classmethod
    def upper_number(cls, v):
        return _upper(v)


class FlightResponse(BaseModel):
    id: int
    flight_number: str
    airline: AirlineResponse
    departure_airport: AirportResponse
    arrival_airport: AirportResponse
    departure_time: datetime
    arrival_time: datetime
    duration_minutes: int
    cabin_class: CabinClass
    aircraft_type: Optional[str] = None
    total_seats: int
    available_seats: int
    base_price: Decimal
    currency: str
    status: FlightStatus
    amenities: List[str] = []
    baggage_allowance: Optional[Dict[str, int]] = None
    is_active: bool
    model_config = ConfigDict(from_attributes=True)


class FlightSeatResponse(BaseModel):
    id: int
    flight_id: int
    seat_number: str
    seat_class: CabinClass
    seat_type: SeatType
    price: Decimal
    is_window_seat: bool
    is_exit_row: bool
    has_extra_legroom: bool
    status: SeatStatus
    hold_until: Optional[datetime] = None
    features: List[str] = []
    model_config = ConfigDict(from_attributes=True)


# ============== 支付 Schemas ==============

class PaymentCreate(BaseModel):
    booking_id: int
    gateway: PaymentGatewayName
    method: str = "card"
    amount: Optional[Decimal] = Field(None, gt=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)


class PaymentProcess(BaseModel):
    payload: Dict[str, Any] = {}


class RefundRequest(BaseModel):
    amount: Optional[Decimal] = Field(None, gt=0)
    reason: Optional[str] = Field(None, max_length=500)


class BankTransferCreate(BaseModel):
    booking_id: int
    reference_number: str = Field(..., min_length=3, max_length=100)
    bank_name: str
    account_name: Optional[str] = None
    transfer_date: Optional[date] = None
    amount: Optional[Decimal] = Field(None, gt=0)


class BankTransferVerify(BaseModel):
    approved: bool
    notes: Optional[str] = None


class CashPaymentCreate(BaseModel):
    booking_id: int
    amount: Optional[Decimal] = Field(None, gt=0)
    received_by: Optional[str] = None


class PaymentResponse(BaseModel):
    id: int
    booking_id: int
    user_id: int
    amount: Decimal
    currency: str
    gateway: PaymentGatewayName
    method: str
    status: PaymentStatus
    transaction_id: Optional[str] = None
    failure_reason: Optional[str] = None
    paid_at: Optional[datetime] = None
    refund_amount: Optional[Decimal] = None
    refund_reason: Optional[str] = None
    refunded_at: Optional[datetime] = None
    reference_number: Optional[str] = None
    bank_details: Optional[Dict[str, Any]] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


# ============== 通知 Schemas ==============

class NotificationCreate(BaseModel):
    user_id: int
    notification_type: NotificationType
    title: str = Field(..., max_length=255)
    message: str
    channels: List[NotificationChannelType] = [NotificationChannelType.EMAIL]
    template_data: Optional[Dict[str, Any]] = None
    priority: NotificationPriority = NotificationPriority.MEDIUM
    scheduled_at: Optional[datetime] = None


class BulkNotificationCreate(BaseModel):
    user_ids: List[int] = Field(..., min_length=1)
    notification_type: NotificationType
    title: str = Field(..., max_length=255)
    message: str
    channels: List[NotificationChannelType] = [NotificationChannelType.EMAIL]
    priority: NotificationPriority = NotificationPriority.MEDIUM


class SegmentNotificationCreate(BaseModel):
    segment: str = Field(..., pattern="^(ALL_USERS|PREMIUM_USERS|HAJJ_CUSTOMERS|INACTIVE_USERS)$")
    notification_type: NotificationType = NotificationType.PROMOTIONAL
    title: str = Field(..., max_length=255)
    message: str
    channels: List[NotificationChannelType] = [NotificationChannelType.EMAIL]
    priority: NotificationPriority = NotificationPriority.MEDIUM


class NotificationResponse(BaseModel):
    id: int
    user_id: int
    notification_type: NotificationType
    title: str
    message: str
    channels: List[str] = []
    priority: NotificationPriority
    status: NotificationStatus
    delivery_status: Optional[Dict[str, Any]] = None
    failure_reason: Optional[str] = None
    scheduled_at: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


# ============== 工单 Schemas ==============

class SupportTicketCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=255)
    description: str = Field(..., min_length=1)
    priority: int = Field(default=3, ge=1, le=5)
    category: SupportTicketCategory = SupportTicketCategory.GENERAL
    booking_id: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None


class SupportMessageCreate(BaseModel):
    content: str = Field(..., min_length=1)
    is_internal: bool = False


class SupportMessageResponse(BaseModel):
    id: int
    ticket_id: int
    sender_id: int
    content: str
    is_internal: bool
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class TicketAssign(BaseModel):
    assignee_id: int


class TicketStatusUpdate(BaseModel):
    status: SupportTicketStatus


class SupportTicketResponse(BaseModel):
    id: int
    user_id: int
    assigned_to_id: Optional[int] = None
    booking_id: Optional[int] = None
    title: str
    description: str
    priority: int
    category: SupportTicketCategory
    status: SupportTicketStatus
    metadata: Optional[Dict[str, Any]] = Field(None, validation_alias="extra_data")
    closed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class SupportTicketDetail(SupportTicketResponse):
    messages: List[SupportMessageResponse] = []


# ============== 聊天 Schemas ==============

class ChatMessageResponse(BaseModel):
    id: int
    sender_id: int
    recipient_id: Optional[int] = None
    ticket_id: Optional[int] = None
    content: str
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


# WebSocket 客户端事件的 data 部分
class SendMessageEvent(BaseModel):
    content: str
    ticket_id: Optional[int] = None
    recipient_id: Optional[int] = None


class JoinTicketEvent(BaseModel):
    ticket_id: int


class TypingEvent(BaseModel):
    is_typing: bool = True
    ticket_id: Optional[int] = None
    recipient_id: Optional[int] = None


class MarkAsReadEvent(BaseModel):
    message_ids: List[int] = []


# ============== 评价 Schemas ==============

class ReviewCreate(BaseModel):
    review_type: ReviewType
    item_id: int
    rating: int = Field(..., ge=1, le=5)
    title: Optional[str] = Field(None, max_length=200)
    comment: Optional[str] = None


class ReviewUpdate(BaseModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    title: Optional[str] = Field(None, max_length=200)
    comment: Optional[str] = None


class ReviewResponse(BaseModel):
    id: int
    user_id: int
    review_type: ReviewType
    item_id: int
    rating: int
    title: Optional[str] = None
    comment: Optional[str] = None
    is_approved: bool
    approved_at: Optional[datetime] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


# ============== 文件 Schemas ==============

class UploadedFileResponse(BaseModel):
    id: int
    original_name: str
    content_type: str
    size: int
    uploaded_by_id: int
    payment_id: Optional[int] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)
