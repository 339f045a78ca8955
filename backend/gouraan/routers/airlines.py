"""
航空公司路由
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from gouraan.database import get_db
from gouraan.models.entities import User
from gouraan.models.schemas import AirlineCreate, AirlineUpdate, AirlineResponse, Paginated
from gouraan.services.flight_service import AirlineService
from gouraan.security.auth import require_permission
from gouraan.security.permissions import P

router = APIRouter(prefix="/airlines", tags=["航空公司"])


@router.get("", response_model=Paginated[AirlineResponse])
def list_airlines(
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db)
):
    return AirlineService(db).list_airlines(search, page, limit).to_response(AirlineResponse)


@router.get("/search", response_model=List[AirlineResponse])
def search_airlines(q: str = "", db: Session = Depends(get_db)):
    """按名称或 IATA/ICAO 代码检索"""
    return AirlineService(db).search_airlines(q)


@router.get("/{airline_id}", response_model=AirlineResponse)
def get_airline(airline_id: int, db: Session = Depends(get_db)):
    return AirlineService(db).get_airline(airline_id)


@router.post("", response_model=AirlineResponse, status_code=status.HTTP_201_CREATED)
def create_airline(
    data: AirlineCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(P.MANAGE_FLIGHTS))
):
    return AirlineService(db).create_airline(data)


@router.put("/{airline_id}", response_model=AirlineResponse)
def update_airline(
    airline_id: int,
    data: AirlineUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(P.MANAGE_FLIGHTS))
):
    return AirlineService(db).update_airline(airline_id, data)


@router.delete("/{airline_id}")
def delete_airline(
    airline_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(P.MANAGE_FLIGHTS))
):
    """停用航空公司"""
    AirlineService(db).deactivate_airline(airline_id)
    return {"message": "航空公司已停用"}
