from datetime import datetime

import pytest

from weather_api.models import WeatherReading
from weather_api.services.reading_catalog import page_window


def reading(device_name="Woodford_Sensor", **fields):
    return WeatherReading(device_name=device_name, **fields)


def test_page_window():
    assert page_window(1, 10) == (0, 10)
    assert page_window(3, 5) == (10, 5)
    with pytest.raises(ValueError, match="skip must be >= 0"):
        page_window(-1, 10)


@pytest.mark.asyncio
async def test_negative_page_is_an_error(catalog):
    with pytest.raises(ValueError):
        await catalog.list_readings(-2, 10)


@pytest.mark.asyncio
async def test_insert_many_requires_items(catalog):
    with pytest.raises(ValueError):
        await catalog.insert_readings([])


@pytest.mark.asyncio
async def test_max_precipitation_uses_last_time_in_window(catalog):
    now = datetime(2024, 8, 20, 12, 0)
    await catalog.insert_readings([
        reading(time=datetime(2024, 3, 19, 12, 0), precipitation=99.0),  # just outside
        reading(time=datetime(2024, 4, 1, 9, 0), precipitation=12.0),
        reading(time=datetime(2024, 8, 1, 9, 0), precipitation=1.0),
        reading(device_name="Noosa_Sensor", time=datetime(2024, 8, 2, 9, 0), precipitation=40.0),
    ])

    result = await catalog.max_precipitation("Woodford_Sensor", now=now)

    assert len(result) == 1
    assert result[0]["max_precipitation"] == 12.0
    assert result[0]["reading_date_time"] == datetime(2024, 8, 1, 9, 0)
    assert result[0]["device_name"] == "Woodford_Sensor"


@pytest.mark.asyncio
async def test_max_precipitation_window_is_inclusive(catalog):
    now = datetime(2024, 8, 20, 12, 0)
    await catalog.insert_reading(reading(time=datetime(2024, 3, 20, 12, 0), precipitation=5.0))

    result = await catalog.max_precipitation("Woodford_Sensor", now=now)
    assert result[0]["max_precipitation"] == 5.0


@pytest.mark.asyncio
async def test_last_recorded_date(catalog):
    assert await catalog.last_recorded_date("Woodford_Sensor") is None

    await catalog.insert_readings([
        reading(time=datetime(2023, 5, 1)),
        reading(time=datetime(2023, 7, 1)),
        reading(time=datetime(2023, 6, 1)),
    ])
    assert await catalog.last_recorded_date("Woodford_Sensor") == datetime(2023, 7, 1)


@pytest.mark.asyncio
async def test_max_temperature_reports_first_time(catalog):
    await catalog.insert_readings([
        reading(time=datetime(2024, 1, 10, 12, 0), temperature=18.0),
        reading(time=datetime(2024, 1, 11, 12, 0), temperature=31.0),
    ])

    result = await catalog.max_temperature(datetime(2024, 1, 10, 12, 0), datetime(2024, 1, 11, 12, 0))

    assert result == [{
        "device_name": "Woodford_Sensor",
        "max_temperature": 31.0,
        "reading_date_time": datetime(2024, 1, 10, 12, 0),
    }]


@pytest.mark.asyncio
async def test_readings_at_counts_pages_with_round(catalog):
    await catalog.insert_readings([
        reading(time=datetime(2024, 3, 14, 10, minute)) for minute in range(0, 50, 10)
    ])

    # 5 readings, limit 2: 2.5 rounds up to 3
    page = await catalog.readings_at("Woodford_Sensor", datetime(2024, 3, 14, 10, 15), 1, 2)
    assert page.total == 5
    assert page.total_pages == 3

    # 5 readings, limit 4: 1.25 rounds down to 1 even though a second page exists
    page = await catalog.readings_at("Woodford_Sensor", datetime(2024, 3, 14, 10, 15), 2, 4)
    assert page.total_pages == 1
    assert [row["time"] for row in page.items] == [datetime(2024, 3, 14, 10, 40)]


@pytest.mark.asyncio
async def test_list_readings_counts_pages_with_ceil(catalog):
    await catalog.insert_readings([
        reading(time=datetime(2024, 3, 14, 10, minute)) for minute in range(5)
    ])
    page = await catalog.list_readings(1, 4)
    assert page.total == 5
    assert page.total_pages == 2
    assert len(page.items) == 4


@pytest.mark.asyncio
async def test_update_and_delete_missing_reading(catalog):
    missing = "65f2c1e4a1b2c3d4e5f60718"
    assert await catalog.update_precipitation(missing, 1.0) is None
    assert await catalog.delete_reading(missing) is None


@pytest.mark.asyncio
async def test_update_precipitation_returns_both_values(catalog):
    item = reading(time=datetime(2024, 3, 14, 10, 0), precipitation=2.0)
    await catalog.insert_reading(item)

    outcome = await catalog.update_precipitation(item.id, 4)

    assert outcome["previous_value"] == 2.0
    assert outcome["updated_value"] == 4.0
    assert (await catalog.get_reading(item.id))["precipitation"] == 4.0


@pytest.mark.asyncio
async def test_readings_are_stored_with_snake_case_keys(catalog, store):
    item = reading(time=datetime(2024, 3, 14, 10, 0), precipitation=1.5, atmospheric_pressure=101.2)
    await catalog.insert_reading(item)

    document = await store.db["WeatherData"].find_one({"_id": item.id})
    assert document["device_name"] == "Woodford_Sensor"
    assert document["precipitation"] == 1.5
    assert document["atmospheric_pressure"] == 101.2
    assert "Device Name" not in document
