"""
Weather Reading Models
======================
Pydantic models for weather station readings.

Every reading comes from one station (identified by its device name) and
carries a fixed set of measurements. Whatever the station sends, the
measurements are stored as floats:

    POST /weather-reading
    {
        "deviceName": "Woodford_Sensor",
        "time": "2024-03-14T10:30:00Z",
        "latitude": "152.77891",
        "longitude": "-26.95064",
        "precipitation": "3.5",        <- stored as 3.5
        "temperature": 22.74,
        ...
    }

Units:
    precipitation         mm/h
    temperature           °C
    atmospheric_pressure  kPa
    max_wind_speed        m/s
    solar_radiation       W/m²
    vapor_pressure        kPa
    humidity              %
    wind_direction        °
"""

from datetime import datetime
from typing import Any, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from weather_api.utils.validation import ObjectIdField, parse_datetime


# Fields kept by the point-in-time lookup
SNAPSHOT_FIELDS = (
    "device_name",
    "time",
    "temperature",
    "atmospheric_pressure",
    "solar_radiation",
    "precipitation",
)


class WeatherReading(BaseModel):
    """
    A single weather reading, validated at construction.

    - `id`: optional on input. A supplied value must be a well-formed
      ObjectId string, otherwise construction fails. Missing means a new id.
    - numeric fields: coerced to float ("3.5" -> 3.5). Non-numeric fails.
    - `time`: ISO-8601 string or datetime, stored as naive UTC.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    id: ObjectIdField = Field(default_factory=ObjectId, alias="_id")
    device_name: str = Field(..., min_length=1, description="Station that recorded the reading")
    time: datetime = Field(..., description="When the reading was taken")
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    precipitation: Optional[float] = Field(None, description="mm/h")
    temperature: Optional[float] = Field(None, description="°C")
    atmospheric_pressure: Optional[float] = Field(None, description="kPa")
    max_wind_speed: Optional[float] = Field(None, description="m/s")
    solar_radiation: Optional[float] = Field(None, description="W/m²")
    vapor_pressure: Optional[float] = Field(None, description="kPa")
    humidity: Optional[float] = Field(None, description="%")
    wind_direction: Optional[float] = Field(None, description="°")

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_object_id(cls, value: Any) -> ObjectId:
        if value is None or value == "":
            return ObjectId()
        if isinstance(value, ObjectId):
            return value
        if isinstance(value, str) and ObjectId.is_valid(value):
            return ObjectId(value)
        raise ValueError(f"'{value}' is not a valid ObjectId (24 hex characters)")

    @field_validator("time", mode="before")
    @classmethod
    def _coerce_time(cls, value: Any) -> datetime:
        return parse_datetime(value)

    def to_document(self) -> dict:
        """Convert to the shape stored in the readings collection."""
        document = self.model_dump(exclude={"id"})
        document["_id"] = self.id
        return document


class PrecipitationUpdateRequest(BaseModel):
    """
    Body for PATCH /weather-reading/update-precipitation.

    Only the precipitation value can be changed. Both keys are optional
    here so the route can answer a missing value with its own 400.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(None, alias="_id")
    new_precipitation: Optional[float] = Field(None, alias="newPrecipitation")


class DeleteReadingRequest(BaseModel):
    """Body for DELETE /weather-reading/delete."""
    model_config = ConfigDict(populate_by_name=True)

    weather_data_id: Optional[str] = Field(None, alias="weatherDataId")
