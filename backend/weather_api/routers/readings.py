"""
Weather Readings API Router
===========================

ENDPOINTS:
---------
GET    /weather-reading                      - All readings (?page&limit)
GET    /weather-reading/by-device            - One device, newest first (?deviceName&page&limit)
GET    /weather-reading/max-precipitation    - Max precipitation, last 5 months (?deviceName)
GET    /weather-reading/weather-data         - One device, one hour (?deviceName&dateTime&page&limit)
GET    /weather-reading/max-temperature      - Max temperature per device (?startDate&endDate)
GET    /weather-reading/{id}                 - One reading
POST   /weather-reading                      - Add a reading          (station, teacher)
POST   /weather-reading/insert-readings      - Add many readings      (station, teacher)
PATCH  /weather-reading/update-precipitation - Fix a precipitation value (station, teacher)
DELETE /weather-reading/delete               - Delete a reading       (teacher)

Read endpoints are open to everyone. When a student's token is present,
their last access time is recorded on the way through.

PAGINATION:
----------
page and limit default to 1 and 10 when missing, unparsable or 0.
total_pages = ceil(total / limit), except on /weather-data, where it is
round(total / limit).
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from weather_api.models.reading import DeleteReadingRequest, PrecipitationUpdateRequest, WeatherReading
from weather_api.models.user import Role
from weather_api.routers.access import get_reading_catalog, record_student_access, require_roles
from weather_api.services import ReadingCatalog
from weather_api.utils.responses import envelope, server_errors
from weather_api.utils.serialization import to_jsonable, write_result
from weather_api.utils.validation import (
    parse_datetime,
    parse_int_or_default,
    validate_device_name,
    validate_object_id,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/weather-reading", tags=["weather readings"])

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10

# Dependencies per kind of endpoint
RECORD_ACCESS = [Depends(record_student_access)]
STATIONS_AND_TEACHERS = [Depends(require_roles(Role.STATION, Role.TEACHER))]
TEACHERS_ONLY = [Depends(require_roles(Role.TEACHER))]


def _pagination(page: Optional[str], limit: Optional[str]) -> tuple[int, int]:
    return (
        parse_int_or_default(page, DEFAULT_PAGE),
        parse_int_or_default(limit, DEFAULT_LIMIT),
    )


def _parse_date_param(value: str) -> datetime:
    try:
        return parse_datetime(value)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


# =============================================================================
# LISTING
# =============================================================================

@router.get("", dependencies=RECORD_ACCESS)
async def get_all_readings(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    catalog: ReadingCatalog = Depends(get_reading_catalog),
):
    """All readings, one page at a time."""
    page_number, limit_number = _pagination(page, limit)

    with server_errors("Failed to get all weather data readings."):
        result = await catalog.list_readings(page_number, limit_number)

    return envelope(
        200,
        "Got list of all weather data readings",
        total_pages=result.total_pages,
        data=result.items,
    )


@router.get("/by-device", dependencies=RECORD_ACCESS)
async def get_readings_by_device_name(
    device_name: Optional[str] = Query(None, alias="deviceName"),
    page: Optional[str] = None,
    limit: Optional[str] = None,
    catalog: ReadingCatalog = Depends(get_reading_catalog),
):
    """One device's readings, newest first. An empty page is a 404."""
    if not validate_device_name(device_name):
        raise HTTPException(status_code=400, detail="Device Name is required. Please provide a device name.")

    page_number, limit_number = _pagination(page, limit)

    with server_errors("Failed to retrieve weather data."):
        result = await catalog.list_by_device(device_name, page_number, limit_number)

    if not result.items:
        raise HTTPException(
            status_code=404,
            detail=f"No weather data found for device name '{device_name}'.",
        )

    return envelope(
        200,
        f"Successfully fetched weather data for {device_name}.",
        total_pages=result.total_pages,
        data=result.items,
    )


# =============================================================================
# AGGREGATIONS
# =============================================================================

@router.get("/max-precipitation", dependencies=RECORD_ACCESS)
async def get_max_precipitation(
    device_name: Optional[str] = Query(None, alias="deviceName"),
    catalog: ReadingCatalog = Depends(get_reading_catalog),
):
    """
    Maximum precipitation for a device over the last 5 months.

    The reported time/id belong to the last reading in the window.
    """
    if not validate_device_name(device_name):
        raise HTTPException(status_code=400, detail="Device name is required.")

    with server_errors("Failed to retrieve maximum precipitation data."):
        data = await catalog.max_precipitation(device_name)
        if not data:
            last_recorded = await catalog.last_recorded_date(device_name)
            last_text = to_jsonable(last_recorded) if last_recorded else "Unknown"
            raise HTTPException(
                status_code=404,
                detail=(
                    f"No data recorded in the last {catalog.PRECIPITATION_WINDOW_MONTHS} months "
                    f"for device: {device_name}. Last recorded date: {last_text}"
                ),
            )

    return envelope(
        200,
        f"Maximum precipitation recorded in the last {catalog.PRECIPITATION_WINDOW_MONTHS} "
        f"months for device: {device_name}",
        data=data,
    )


@router.get("/weather-data", dependencies=RECORD_ACCESS)
async def get_readings_by_device_and_time(
    device_name: Optional[str] = Query(None, alias="deviceName"),
    date_time: Optional[str] = Query(None, alias="dateTime"),
    page: Optional[str] = None,
    limit: Optional[str] = None,
    catalog: ReadingCatalog = Depends(get_reading_catalog),
):
    """
    Readings of one device during the hour of dateTime (UTC), oldest first.

    Only device name, time, temperature, atmospheric pressure, solar
    radiation and precipitation are returned.
    """
    if not validate_device_name(device_name) or not date_time:
        raise HTTPException(status_code=400, detail="Device name and date/time are required.")

    moment = _parse_date_param(date_time)
    page_number, limit_number = _pagination(page, limit)

    with server_errors("Failed to retrieve weather data."):
        result = await catalog.readings_at(device_name, moment, page_number, limit_number)

    if result.total == 0:
        raise HTTPException(
            status_code=404,
            detail="Weather data could not be found. Data may not be recorded at that station or date/time.",
        )

    return envelope(
        200,
        f"Weather data found for the specified station '{device_name}' at {date_time}.",
        total_pages=result.total_pages,
        data=result.items,
    )


@router.get("/max-temperature", dependencies=RECORD_ACCESS)
async def get_max_temperature(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    catalog: ReadingCatalog = Depends(get_reading_catalog),
):
    """
    Maximum temperature per device from the start of startDate to the end of
    endDate (server-local days).

    The reported time is the first reading of each device in the range.
    """
    if not start_date or not end_date:
        raise HTTPException(status_code=400, detail="Start date and end date are required.")

    start = _parse_date_param(start_date)
    end = _parse_date_param(end_date)

    with server_errors("Failed to retrieve maximum temperatures."):
        data = await catalog.max_temperature(start, end)

    if not data:
        raise HTTPException(status_code=404, detail="No data found for the specified date/time range.")

    return envelope(200, "Maximum temperatures found for the specified date/time range.", data=data)


@router.get("/{reading_id}", dependencies=RECORD_ACCESS)
async def get_reading_by_id(
    reading_id: str,
    catalog: ReadingCatalog = Depends(get_reading_catalog),
):
    """Get one reading by id."""
    if not validate_object_id(reading_id):
        raise HTTPException(status_code=400, detail="Please provide a valid reading ID (insert in ObjectId format)")

    with server_errors("Error retrieving the Weather Reading."):
        reading = await catalog.get_reading(reading_id)

    if not reading:
        raise HTTPException(status_code=404, detail="The requested reading does not exist.")

    return envelope(200, f"Weather Reading found for id: {reading_id}", data=reading)


# =============================================================================
# WRITES
# =============================================================================

@router.post("", dependencies=STATIONS_AND_TEACHERS)
async def insert_reading(
    reading: WeatherReading,
    catalog: ReadingCatalog = Depends(get_reading_catalog),
):
    """Add one reading. Numeric fields are stored as floats."""
    with server_errors("Failed to add the new reading to the database."):
        result = await catalog.insert_reading(reading)

    return envelope(200, "Added a new weather data reading.", reading=write_result(result))


@router.post("/insert-readings", dependencies=STATIONS_AND_TEACHERS)
async def insert_multiple_readings(
    readings: list[WeatherReading],
    catalog: ReadingCatalog = Depends(get_reading_catalog),
):
    """
    Add many readings at once. One invalid item rejects the whole batch
    (nothing is written).
    """
    if not readings:
        raise HTTPException(status_code=400, detail="Please provide at least one weather data reading.")

    with server_errors("Failed to add multiple readings to the database."):
        result = await catalog.insert_readings(readings)

    return envelope(
        200,
        "Added multiple weather data readings.",
        count=len(readings),
        readings=write_result(result),
    )


@router.patch("/update-precipitation", dependencies=STATIONS_AND_TEACHERS)
async def update_precipitation(
    request: PrecipitationUpdateRequest,
    catalog: ReadingCatalog = Depends(get_reading_catalog),
):
    """Replace the precipitation value of one reading."""
    if not request.id or request.new_precipitation is None:
        raise HTTPException(status_code=400, detail="ID and new precipitation value are required.")
    if not validate_object_id(request.id):
        raise HTTPException(status_code=400, detail="Please provide a valid reading ID (insert in ObjectId format)")

    with server_errors("Failed to update precipitation value."):
        outcome = await catalog.update_precipitation(request.id, request.new_precipitation)

    if outcome is None:
        raise HTTPException(status_code=404, detail="Weather data entry not found.")

    return envelope(
        200,
        "Precipitation value updated successfully.",
        data={
            "previous_value": outcome["previous_value"],
            "updated_value": outcome["updated_value"],
            "result": write_result(outcome["result"]),
        },
    )


@router.delete("/delete", dependencies=TEACHERS_ONLY)
async def delete_weather_data(
    request: DeleteReadingRequest,
    catalog: ReadingCatalog = Depends(get_reading_catalog),
):
    """Delete one reading (copied to the log collection first if auditing is on)."""
    if not validate_object_id(request.weather_data_id):
        raise HTTPException(status_code=400, detail="Invalid weatherDataId format.")

    with server_errors("Failed to delete weather data."):
        outcome = await catalog.delete_reading(request.weather_data_id)

    if outcome is None:
        raise HTTPException(
            status_code=404,
            detail=f"No weather data found with id {request.weather_data_id}",
        )

    message = "Weather data deleted and logged successfully." if outcome["logged"] else "Weather data deleted successfully."
    return envelope(200, message, deleted_count=outcome["result"].deleted_count)
