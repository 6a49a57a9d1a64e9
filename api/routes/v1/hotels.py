"""
api/routes/v1/hotels.py -- Hotel REST endpoints.

Routes:
  GET    /hotels                  -- full list
  GET    /hotels/{id}             -- single hotel
  GET    /cities/{city_id}/hotels -- hotels of one city
  POST   /hotels                  -- create (requires auth)
  PUT    /hotels/{id}             -- update (requires auth)
  DELETE /hotels/{id}             -- delete (requires auth)
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.envelope import result_response
from api.models import HotelBody, ResultEnvelope
from auth.dependencies import get_current_user
from hotels.models import HotelInput
from hotels.service import HotelService

router = APIRouter()


def _service(request: Request) -> HotelService:
    return request.app.state.hotel_service


def _payload(body: HotelBody) -> HotelInput:
    return HotelInput(name=body.name, stars=body.stars, city_id=body.city_id)


@router.get("/hotels", response_model=ResultEnvelope)
def list_hotels(request: Request) -> JSONResponse:
    return result_response(_service(request).get_all())


@router.get("/hotels/{hotel_id}", response_model=ResultEnvelope)
def get_hotel(request: Request, hotel_id: int) -> JSONResponse:
    return result_response(_service(request).get_by_id(hotel_id))


@router.get("/cities/{city_id}/hotels", response_model=ResultEnvelope)
def list_city_hotels(request: Request, city_id: int) -> JSONResponse:
    return result_response(_service(request).get_by_city(city_id))


@router.post("/hotels", response_model=ResultEnvelope, status_code=201, dependencies=[Depends(get_current_user)])
def create_hotel(request: Request, body: HotelBody) -> JSONResponse:
    return result_response(_service(request).create(_payload(body)), success_status=201)


@router.put("/hotels/{hotel_id}", response_model=ResultEnvelope, dependencies=[Depends(get_current_user)])
def update_hotel(request: Request, hotel_id: int, body: HotelBody) -> JSONResponse:
    return result_response(_service(request).update(hotel_id, _payload(body)))


@router.delete("/hotels/{hotel_id}", response_model=ResultEnvelope, dependencies=[Depends(get_current_user)])
def delete_hotel(request: Request, hotel_id: int) -> JSONResponse:
    return result_response(_service(request).delete(hotel_id))
