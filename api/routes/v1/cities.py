"""
api/routes/v1/cities.py -- City REST endpoints.

Routes (in registration order to avoid FastAPI path capture conflicts):
  GET    /cities          -- paged list: ?page=&pageSize=&search=&sortBy=&sortDescending=
  GET    /cities/all      -- full list
  GET    /cities/{id}     -- single city
  POST   /cities          -- create (requires auth)
  PUT    /cities/{id}     -- update (requires auth)
  DELETE /cities/{id}     -- delete (requires auth)

Paging parameters are accepted as-is and clamped by the service; an
out-of-range page or pageSize never produces a 422.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from api.envelope import result_response
from api.models import CityBody, ResultEnvelope
from auth.dependencies import get_current_user
from cities.models import CityInput
from cities.service import CityService
from core.paging import DEFAULT_PAGE_SIZE, PagingRequest

router = APIRouter()


def _service(request: Request) -> CityService:
    return request.app.state.city_service


@router.get("/cities", response_model=ResultEnvelope)
def list_cities_paged(
    request: Request,
    page: int = Query(default=1),
    page_size: int = Query(default=DEFAULT_PAGE_SIZE, alias="pageSize"),
    search: Optional[str] = Query(default=None, max_length=100),
    sort_by: str = Query(default="name", alias="sortBy", max_length=30),
    sort_descending: bool = Query(default=False, alias="sortDescending"),
) -> JSONResponse:
    """Return one page of cities with pagination metadata."""
    paging = PagingRequest(
        page=page,
        page_size=page_size,
        search=search,
        sort_by=sort_by,
        sort_descending=sort_descending,
    )
    return result_response(_service(request).get_paged(paging))


@router.get("/cities/all", response_model=ResultEnvelope)
def list_all_cities(request: Request) -> JSONResponse:
    return result_response(_service(request).get_all())


@router.get("/cities/{city_id}", response_model=ResultEnvelope)
def get_city(request: Request, city_id: int) -> JSONResponse:
    return result_response(_service(request).get_by_id(city_id))


@router.post("/cities", response_model=ResultEnvelope, status_code=201, dependencies=[Depends(get_current_user)])
def create_city(request: Request, body: CityBody) -> JSONResponse:
    result = _service(request).create(CityInput(name=body.name, population=body.population))
    return result_response(result, success_status=201)


@router.put("/cities/{city_id}", response_model=ResultEnvelope, dependencies=[Depends(get_current_user)])
def update_city(request: Request, city_id: int, body: CityBody) -> JSONResponse:
    result = _service(request).update(city_id, CityInput(name=body.name, population=body.population))
    return result_response(result)


@router.delete("/cities/{city_id}", response_model=ResultEnvelope, dependencies=[Depends(get_current_user)])
def delete_city(request: Request, city_id: int) -> JSONResponse:
    return result_response(_service(request).delete(city_id))
