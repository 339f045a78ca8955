"""
航班目录服务 - 航空公司、机场、航班与座位
"""
import logging
from dataclasses import dataclass
from datetime import datetime, date, time, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional
from sqlalchemy import or_
from sqlalchemy.orm import Session, aliased

from gouraan.config import settings
from gouraan.exceptions import NotFoundError, ConflictError, BusinessRuleError, PermissionDeniedError
from gouraan.models.entities import (
    Airline, Airport, AirportType, Flight, FlightSeat, FlightStatus, CabinClass,
    SeatType, SeatStatus, User,
)
from gouraan.models.schemas import (
    AirlineCreate, AirlineUpdate, AirportCreate, AirportUpdate, FlightCreate, FlightUpdate,
)
from gouraan.repositories import BaseRepository, Page
from gouraan.security.permissions import is_staff

logger = logging.getLogger(__name__)


# ============== 座位图 ==============

@dataclass(frozen=True)
class SeatLayout:
    rows: int
    seats_per_row: int
    aisle_after: tuple        # 过道位于第 n 个座位之后
    first_rows: int = 0
    business_rows: int = 0
    premium_economy_rows: int = 0


SEAT_LAYOUTS: Dict[str, SeatLayout] = {
    "A320": SeatLayout(rows=30, seats_per_row=6, aisle_after=(3,)),
    "B777": SeatLayout(rows=40, seats_per_row=9, aisle_after=(3, 6),
                       first_rows=4, business_rows=8, premium_economy_rows=10),
}
DEFAULT_LAYOUT = SeatLayout(rows=25, seats_per_row=6, aisle_after=(3,))

SEAT_LETTERS = "ABCDEFGHJK"
EXIT_ROWS = {5, 15, 25}

CLASS_MULTIPLIERS = {
    CabinClass.FIRST: Decimal("3.5"),
    CabinClass.BUSINESS: Decimal("2.5"),
    CabinClass.PREMIUM_ECONOMY: Decimal("1.5"),
    CabinClass.ECONOMY: Decimal("1"),
}


def _row_class(layout: SeatLayout, row: int) -> CabinClass:
    if row <= layout.first_rows:
        return CabinClass.FIRST
    if row <= layout.first_rows + layout.business_rows:
        return CabinClass.BUSINESS
    if row <= layout.first_rows + layout.business_rows + layout.premium_economy_rows:
        return CabinClass.PREMIUM_ECONOMY
    return CabinClass.ECONOMY


def _seat_type(layout: SeatLayout, col: int) -> SeatType:
    if col == 0 or col == layout.seats_per_row - 1:
        return SeatType.WINDOW
    for a in layout.aisle_after:
        if col in (a - 1, a):
            return SeatType.AISLE
    return SeatType.MIDDLE


def generate_seats(flight: Flight) -> List[FlightSeat]:
    """
    按机型生成座位图

    舱位由排号决定（头等 → 公务 → 超经 → 经济），
    出口排整排为 exit 座位并带额外腿部空间；
    价格 = 基础票价 × 舱位系数，靠窗与出口座位再 × 1.1。
    """
    layout = SEAT_LAYOUTS.get((flight.aircraft_type or "").upper(), DEFAULT_LAYOUT)
    base_price = Decimal(flight.base_price)
    seats = []
    for row in range(1, layout.rows + 1):
        seat_class = _row_class(layout, row)
        is_exit_row = row in EXIT_ROWS
        for col in range(layout.seats_per_row):
            seat_type = SeatType.EXIT if is_exit_row else _seat_type(layout, col)
            is_window = col == 0 or col == layout.seats_per_row - 1
            price = base_price * CLASS_MULTIPLIERS[seat_class]
            if is_exit_row or is_window:
                price = price * Decimal("1.1")
            seats.append(FlightSeat(
                seat_number=f"{row}{SEAT_LETTERS[col]}",
                seat_class=seat_class,
                seat_type=seat_type,
                price=price.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP),
                is_window_seat=is_window,
                is_exit_row=is_exit_row,
                has_extra_legroom=is_exit_row,
                status=SeatStatus.AVAILABLE,
                features=["extra_legroom"] if is_exit_row else [],
            ))
    return seats


def to_utc_naive(value: datetime) -> datetime:
    """带时区的时间统一转为 UTC 无时区时间存储"""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _check_unique(repo: BaseRepository, label: str, current=None, **fields) -> None:
    for field, value in fields.items():
        if not value or (current is not None and getattr(current, field) == value):
            continue
        if repo.exists(**{field: value}):
            raise ConflictError(f"{label} {value} 已存在")


# ============== 航空公司 ==============

class AirlineService:
    """航空公司"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BaseRepository(db, Airline)

    def get_airline(self, airline_id: int) -> Airline:
        airline = self.repo.find_one(id=airline_id, is_active=True)
        if not airline:
            raise NotFoundError("航空公司不存在")
        return airline

    def list_airlines(self, search: Optional[str] = None, page: int = 1, limit: int = 10) -> Page:
        query = self.db.query(Airline).filter(Airline.is_active == True)  # noqa: E712
        if search:
            term = f"%{search}%"
            query = query.filter(or_(
                Airline.name.ilike(term),
                Airline.iata_code.ilike(term),
                Airline.icao_code.ilike(term),
                Airline.country.ilike(term),
            ))
        return self.repo.paginate(query, page, limit, order_by=Airline.name.asc())

    def search_airlines(self, q: str, limit: int = 20) -> List[Airline]:
        """按名称或代码快速检索（至少两个字符）"""
        if not q or len(q.strip()) < 2:
            return []
        term = f"%{q.strip()}%"
        return self.db.query(Airline).filter(
            Airline.is_active == True,  # noqa: E712
            or_(Airline.name.ilike(term), Airline.iata_code.ilike(term), Airline.icao_code.ilike(term)),
        ).order_by(Airline.name.asc()).limit(limit).all()

    def create_airline(self, data: AirlineCreate) -> Airline:
        _check_unique(self.repo, "航空公司", name=data.name,
                      iata_code=data.iata_code, icao_code=data.icao_code)
        airline = self.repo.create(Airline(**data.model_dump()))
        self.db.commit()
        self.db.refresh(airline)
        logger.info(f"Airline created: {airline.name} ({airline.iata_code})")
        return airline

    def update_airline(self, airline_id: int, data: AirlineUpdate) -> Airline:
        airline = self.get_airline(airline_id)
        update_data = data.model_dump(exclude_unset=True)
        _check_unique(self.repo, "航空公司", current=airline, name=update_data.get("name"),
                      iata_code=update_data.get("iata_code"), icao_code=update_data.get("icao_code"))
        self.repo.update(airline, update_data)
        self.db.commit()
        self.db.refresh(airline)
        return airline

    def deactivate_airline(self, airline_id: int) -> None:
        airline = self.get_airline(airline_id)
        airline.is_active = False
        self.db.commit()
        logger.info(f"Airline deactivated: {airline_id}")


# ============== 机场 ==============

class AirportService:
    """机场"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BaseRepository(db, Airport)

    def get_airport(self, airport_id: int) -> Airport:
        airport = self.repo.find_one(id=airport_id, is_active=True)
        if not airport:
            raise NotFoundError("机场不存在")
        return airport

    def get_by_iata(self, code: str) -> Airport:
        airport = self.repo.find_one(iata_code=code.upper(), is_active=True)
        if not airport:
            raise NotFoundError(f"机场 {code.upper()} 不存在")
        return airport

    def get_by_icao(self, code: str) -> Airport:
        airport = self.repo.find_one(icao_code=code.upper(), is_active=True)
        if not airport:
            raise NotFoundError(f"机场 {code.upper()} 不存在")
        return airport

    def _search_filter(self, term: str):
        return or_(
            Airport.name.ilike(term),
            Airport.city.ilike(term),
            Airport.iata_code.ilike(term),
            Airport.icao_code.ilike(term),
        )

    def list_airports(self, search: Optional[str] = None, airport_type: Optional[AirportType] = None,
                      country: Optional[str] = None, page: int = 1, limit: int = 10) -> Page:
        query = self.db.query(Airport).filter(Airport.is_active == True)  # noqa: E712
        if search:
            query = query.filter(self._search_filter(f"%{search}%"))
        if airport_type:
            query = query.filter(Airport.airport_type == airport_type)
        if country:
            query = query.filter(Airport.country.ilike(f"%{country}%"))
        return self.repo.paginate(query, page, limit, order_by=Airport.name.asc())

    def search_airports(self, q: str, limit: int = 10) -> List[Airport]:
        if not q or len(q.strip()) < 2:
            return []
        return self.db.query(Airport).filter(
            Airport.is_active == True,  # noqa: E712
            self._search_filter(f"%{q.strip()}%"),
        ).order_by(Airport.name.asc()).limit(limit).all()

    def list_hubs(self) -> List[Airport]:
        return self.db.query(Airport).filter(
            Airport.is_hub == True, Airport.is_active == True  # noqa: E712
        ).order_by(Airport.name.asc()).all()

    def create_airport(self, data: AirportCreate) -> Airport:
        _check_unique(self.repo, "机场", iata_code=data.iata_code, icao_code=data.icao_code)
        airport = self.repo.create(Airport(**data.model_dump()))
        self.db.commit()
        self.db.refresh(airport)
        logger.info(f"Airport created: {airport.iata_code}")
        return airport

    def update_airport(self, airport_id: int, data: AirportUpdate) -> Airport:
        airport = self.get_airport(airport_id)
        update_data = data.model_dump(exclude_unset=True)
        _check_unique(self.repo, "机场", current=airport,
                      iata_code=update_data.get("iata_code"), icao_code=update_data.get("icao_code"))
        self.repo.update(airport, update_data)
        self.db.commit()
        self.db.refresh(airport)
        return airport

    def deactivate_airport(self, airport_id: int) -> None:
        airport = self.get_airport(airport_id)
        airport.is_active = False
        self.db.commit()
        logger.info(f"Airport deactivated: {airport_id}")


# ============== 航班 ==============

FLIGHT_SORTS = {
    "price_asc": Flight.base_price.asc(),
    "price_desc": Flight.base_price.desc(),
    "departure_asc": Flight.departure_time.asc(),
    "departure_desc": Flight.departure_time.desc(),
    "arrival_asc": Flight.arrival_time.asc(),
    "arrival_desc": Flight.arrival_time.desc(),
    "duration_asc": Flight.duration_minutes.asc(),
    "duration_desc": Flight.duration_minutes.desc(),
}


class FlightService:
    """航班 CRUD、搜索与锁座"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BaseRepository(db, Flight)
        self.seat_repo = BaseRepository(db, FlightSeat)

    def get_flight(self, flight_id: int) -> Flight:
        flight = self.repo.find_one(id=flight_id, is_active=True)
        if not flight:
            raise NotFoundError("航班不存在")
        return flight

    def _validate_route(self, airline_id: int, departure_airport_id: int, arrival_airport_id: int) -> None:
        AirlineService(self.db).get_airline(airline_id)
        airports = AirportService(self.db)
        airports.get_airport(departure_airport_id)
        airports.get_airport(arrival_airport_id)
        if departure_airport_id == arrival_airport_id:
            raise BusinessRuleError("出发与到达机场不能相同")

    @staticmethod
    def _validate_times(departure: datetime, arrival: datetime, check_future: bool = True) -> None:
        if check_future and departure <= datetime.utcnow():
            raise BusinessRuleError("起飞时间必须晚于当前时间")
        if arrival <= departure:
            raise BusinessRuleError("到达时间必须晚于起飞时间")

    @staticmethod
    def _duration(departure: datetime, arrival: datetime) -> int:
        return int((arrival - departure).total_seconds() // 60)

    def create_flight(self, data: FlightCreate) -> Flight:
        """创建航班并生成座位图"""
        self._validate_route(data.airline_id, data.departure_airport_id, data.arrival_airport_id)
        departure = to_utc_naive(data.departure_time)
        arrival = to_utc_naive(data.arrival_time)
        self._validate_times(departure, arrival)

        available = data.total_seats if data.available_seats is None else data.available_seats
        if available > data.total_seats:
            raise BusinessRuleError("可售座位数不能超过总座位数")

        values = data.model_dump(exclude={"departure_time", "arrival_time", "available_seats"})
        flight = Flight(
            **values,
            departure_time=departure,
            arrival_time=arrival,
            duration_minutes=self._duration(departure, arrival),
            available_seats=available,
        )
        flight.seats = generate_seats(flight)
        self.repo.create(flight)
        self.db.commit()
        self.db.refresh(flight)
        logger.info(f"Flight created: {flight.flight_number} with {len(flight.seats)} seats")
        return flight

    def update_flight(self, flight_id: int, data: FlightUpdate) -> Flight:
        flight = self.get_flight(flight_id)
        update_data = data.model_dump(exclude_unset=True)

        if {"airline_id", "departure_airport_id", "arrival_airport_id"} & update_data.keys():
            self._validate_route(
                update_data.get("airline_id", flight.airline_id),
                update_data.get("departure_airport_id", flight.departure_airport_id),
                update_data.get("arrival_airport_id", flight.arrival_airport_id),
            )

        if "departure_time" in update_data or "arrival_time" in update_data:
            departure = to_utc_naive(update_data.pop("departure_time", None) or flight.departure_time)
            arrival = to_utc_naive(update_data.pop("arrival_time", None) or flight.arrival_time)
            self._validate_times(departure, arrival, check_future=departure != flight.departure_time)
            update_data.update(
                departure_time=departure,
                arrival_time=arrival,
                duration_minutes=self._duration(departure, arrival),
            )

        # 调整总座位数时保留已售出的数量
        if "total_seats" in update_data and "available_seats" not in update_data:
            sold = flight.total_seats - flight.available_seats
            update_data["available_seats"] = max(0, update_data["total_seats"] - sold)
        total = update_data.get("total_seats", flight.total_seats)
        if update_data.get("available_seats", flight.available_seats) > total:
            raise BusinessRuleError("可售座位数不能超过总座位数")

        self.repo.update(flight, update_data)
        self.db.commit()
        self.db.refresh(flight)
        return flight

    def deactivate_flight(self, flight_id: int) -> None:
        flight = self.get_flight(flight_id)
        flight.is_active = False
        self.db.commit()
        logger.info(f"Flight deactivated: {flight_id}")

    def search_flights(self, origin: Optional[str] = None, destination: Optional[str] = None,
                       departure_airport_id: Optional[int] = None,
                       arrival_airport_id: Optional[int] = None,
                       departure_date: Optional[date] = None,
                       cabin_classes: Optional[List[CabinClass]] = None,
                       min_price: Optional[Decimal] = None, max_price: Optional[Decimal] = None,
                       airline_ids: Optional[List[int]] = None,
                       adults: int = 1, children: int = 0,
                       max_duration: Optional[int] = None,
                       sort_by: str = "price_asc", page: int = 1, limit: int = 10) -> Page:
        """
        航班搜索

        origin / destination 匹配机场 IATA 代码、城市或名称；
        需要的座位数为成人 + 儿童（婴儿不占座）。已取消与停用的航班不返回。
        """
        departure_airport = aliased(Airport)
        arrival_airport = aliased(Airport)
        query = self.db.query(Flight) \
            .join(departure_airport, Flight.departure_airport_id == departure_airport.id) \
            .join(arrival_airport, Flight.arrival_airport_id == arrival_airport.id) \
            .filter(
                Flight.is_active == True,  # noqa: E712
                Flight.status != FlightStatus.CANCELLED,
                Flight.available_seats >= adults + children,
            )

        if origin:
            term = f"%{origin}%"
            query = query.filter(or_(departure_airport.iata_code.ilike(term),
                                     departure_airport.city.ilike(term),
                                     departure_airport.name.ilike(term)))
        if destination:
            term = f"%{destination}%"
            query = query.filter(or_(arrival_airport.iata_code.ilike(term),
                                     arrival_airport.city.ilike(term),
                                     arrival_airport.name.ilike(term)))
        if departure_airport_id:
            query = query.filter(Flight.departure_airport_id == departure_airport_id)
        if arrival_airport_id:
            query = query.filter(Flight.arrival_airport_id == arrival_airport_id)
        if departure_date:
            query = query.filter(
                Flight.departure_time >= datetime.combine(departure_date, time.min),
                Flight.departure_time <= datetime.combine(departure_date, time.max),
            )
        if cabin_classes:
            query = query.filter(Flight.cabin_class.in_(cabin_classes))
        if min_price is not None:
            query = query.filter(Flight.base_price >= min_price)
        if max_price is not None:
            query = query.filter(Flight.base_price <= max_price)
        if airline_ids:
            query = query.filter(Flight.airline_id.in_(airline_ids))
        if max_duration:
            query = query.filter(Flight.duration_minutes <= max_duration)

        order = FLIGHT_SORTS.get(sort_by, Flight.departure_time.asc())
        return self.repo.paginate(query, page, limit, order_by=[order, Flight.id.asc()])

    # ---------- 座位 ----------

    def _get_seat(self, flight_id: int, seat_id: int) -> FlightSeat:
        self.get_flight(flight_id)
        seat = self.seat_repo.find_one(id=seat_id, flight_id=flight_id)
        if not seat:
            raise NotFoundError("座位不存在")
        return seat

    @staticmethod
    def _hold_expired(seat: FlightSeat, now: datetime) -> bool:
        return seat.status == SeatStatus.RESERVED and seat.hold_until is not None and seat.hold_until <= now

    def available_seats(self, flight_id: int) -> List[FlightSeat]:
        """可选座位（锁座过期的视为可选），按价格排序"""
        self.get_flight(flight_id)
        now = datetime.utcnow()
        return self.db.query(FlightSeat).filter(
            FlightSeat.flight_id == flight_id,
            or_(
                FlightSeat.status == SeatStatus.AVAILABLE,
                (FlightSeat.status == SeatStatus.RESERVED) & (FlightSeat.hold_until <= now),
            ),
        ).order_by(FlightSeat.price.asc(), FlightSeat.id.asc()).all()

    def hold_seat(self, flight_id: int, seat_id: int, user: User) -> FlightSeat:
        """锁座；本人重复锁座会延长保留时间"""
        seat = self._get_seat(flight_id, seat_id)
        now = datetime.utcnow()
        held_by_other = seat.status == SeatStatus.RESERVED and seat.held_by_id != user.id
        if seat.status in (SeatStatus.BOOKED, SeatStatus.BLOCKED) or (
                held_by_other and not self._hold_expired(seat, now)):
            raise ConflictError(f"座位 {seat.seat_number} 不可选")

        seat.status = SeatStatus.RESERVED
        seat.held_by_id = user.id
        seat.held_at = now
        seat.hold_until = now + timedelta(minutes=settings.SEAT_HOLD_MINUTES)
        self.db.commit()
        self.db.refresh(seat)
        logger.info(f"Seat {seat.seat_number} on flight {flight_id} held by {user.id}")
        return seat

    def release_seat(self, flight_id: int, seat_id: int, user: User) -> FlightSeat:
        """释放锁座：锁座人或员工"""
        seat = self._get_seat(flight_id, seat_id)
        if seat.status != SeatStatus.RESERVED:
            raise BusinessRuleError(f"座位 {seat.seat_number} 未被锁定")
        if seat.held_by_id != user.id and not is_staff(user):
            raise PermissionDeniedError("只能释放自己锁定的座位")

        seat.status = SeatStatus.AVAILABLE
        seat.held_by_id = None
        seat.held_at = None
        seat.hold_until = None
        self.db.commit()
        self.db.refresh(seat)
        return seat
