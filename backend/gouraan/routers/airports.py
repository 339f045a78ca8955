"""
机场路由
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from gouraan.database import get_db
from gouraan.models.entities import User, AirportType
from gouraan.models.schemas import AirportCreate, AirportUpdate, AirportResponse, Paginated
from gouraan.services.flight_service import AirportService
from gouraan.security.auth import require_permission
from gouraan.security.permissions import P

router = APIRouter(prefix="/airports", tags=["机场"])


@router.get("", response_model=Paginated[AirportResponse])
def list_airports(
    search: Optional[str] = None,
    airport_type: Optional[AirportType] = None,
    country: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """机场列表（公开）"""
    return AirportService(db).list_airports(
        search, airport_type, country, page, limit
    ).to_response(AirportResponse)


@router.get("/search", response_model=List[AirportResponse])
def search_airports(
    q: str = "",
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db)
):
    """出发地 / 目的地联想"""
    return AirportService(db).search_airports(q, limit)


@router.get("/hubs", response_model=List[AirportResponse])
def list_hubs(db: Session = Depends(get_db)):
    return AirportService(db).list_hubs()


@router.get("/by-iata/{code}", response_model=AirportResponse)
def get_by_iata(code: str, db: Session = Depends(get_db)):
    return AirportService(db).get_by_iata(code)


@router.get("/by-icao/{code}", response_model=AirportResponse)
def get_by_icao(code: str, db: Session = Depends(get_db)):
    return AirportService(db).get_by_icao(code)


@router.get("/{airport_id}", response_model=AirportResponse)
def get_airport(airport_id: int, db: Session = Depends(get_db)):
    return AirportService(db).get_airport(airport_id)


@router.post("", response_model=AirportResponse, status_code=status.HTTP_201_CREATED)
def create_airport(
    data: AirportCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(P.MANAGE_FLIGHTS))
):
    return AirportService(db).create_airport(data)


@router.put("/{airport_id}", response_model=AirportResponse)
def update_airport(
    airport_id: int,
    data: AirportUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(P.MANAGE_FLIGHTS))
):
    return AirportService(db).update_airport(airport_id, data)


@router.delete("/{airport_id}")
def delete_airport(
    airport_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(P.MANAGE_FLIGHTS))
):
    AirportService(db).deactivate_airport(airport_id)
    return {"message": "机场已停用"}
