from datetime import datetime

import pytest
from bson import ObjectId
from pydantic import ValidationError

from weather_api.models import User, WeatherReading


def test_reading_coerces_measurements_to_float():
    reading = WeatherReading.model_validate({
        "deviceName": "Woodford_Sensor",
        "time": "2024-03-14T10:30:00Z",
        "latitude": "152.77891",
        "precipitation": "3.5",
        "temperature": 22,
        "windDirection": "155",
    })

    assert reading.precipitation == 3.5
    assert isinstance(reading.temperature, float)
    assert reading.wind_direction == 155.0
    assert reading.latitude == 152.77891
    assert reading.time == datetime(2024, 3, 14, 10, 30)
    assert isinstance(reading.id, ObjectId)


def test_reading_keeps_a_supplied_id():
    reading = WeatherReading.model_validate({
        "_id": "65f2c1e4a1b2c3d4e5f60718",
        "deviceName": "Yandina_Sensor",
        "time": "2024-03-14T10:30:00Z",
    })
    assert reading.id == ObjectId("65f2c1e4a1b2c3d4e5f60718")
    assert reading.to_document()["_id"] == ObjectId("65f2c1e4a1b2c3d4e5f60718")


def test_reading_rejects_malformed_id():
    with pytest.raises(ValidationError):
        WeatherReading.model_validate({
            "_id": "not-an-object-id",
            "deviceName": "Yandina_Sensor",
            "time": "2024-03-14T10:30:00Z",
        })


def test_reading_rejects_non_numeric_measurement():
    with pytest.raises(ValidationError):
        WeatherReading.model_validate({
            "deviceName": "Yandina_Sensor",
            "time": "2024-03-14T10:30:00Z",
            "temperature": "warm",
        })


def test_reading_document_round_trip():
    reading = WeatherReading(device_name="Noosa_Sensor", time=datetime(2024, 1, 1), humidity="55.5")
    document = reading.to_document()

    assert document["device_name"] == "Noosa_Sensor"
    assert document["humidity"] == 55.5
    assert WeatherReading.model_validate(document) == reading


def test_user_from_document_treats_false_token_as_logged_out():
    user = User.from_document({
        "_id": ObjectId(),
        "username": "old",
        "email": "old@example.com",
        "role": "student",
        "auth_token": False,
        "lastSeenBy": "ignored",
    })
    assert user.auth_token is None


def test_user_public_hides_secrets():
    user = User(email="a@example.com", password="hash", auth_token="token", role="teacher")
    public = user.public()
    assert "password" not in public
    assert "auth_token" not in public
    assert public["email"] == "a@example.com"


def test_every_measurement_accepts_numeric_strings():
    fields = ("precipitation", "temperature", "atmospheric_pressure", "max_wind_speed",
              "solar_radiation", "vapor_pressure", "humidity", "wind_direction")
    values = {field: "1.25" for field in fields}
    reading = WeatherReading(device_name="Noosa_Sensor", time="2024-03-14T10:30:00Z", **values)
    document = reading.to_document()
    assert all(document[field] == 1.25 for field in fields)


def test_user_from_document_drops_malformed_fields():
    user = User.from_document({
        "_id": ObjectId(),
        "email": "odd@example.com",
        "role": 5,
        "created_at": "yesterday",
        "last_login": datetime(2024, 3, 14, 10, 0),
    })
    assert user.role is None
    assert user.created_at is None
    assert user.email == "odd@example.com"
    assert user.last_login == datetime(2024, 3, 14, 10, 0)
