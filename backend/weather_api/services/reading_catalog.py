"""
Reading Catalog
===============

Queries and writes over weather readings.

WHAT IT DOES:
------------
1. Paginated listing (all readings, or one device newest-first)
2. Single and bulk inserts
3. Aggregations:
   - max precipitation for a device over the last 5 months
   - max temperature per device over a day range
4. Point-in-time lookup: one device, one hour bucket
5. Precipitation patch and delete (with optional audit copy)

AGGREGATION QUIRKS (kept on purpose, clients rely on them):
----------------------------------------------------------
- max precipitation reports the time and id of the LAST reading in the
  window, not the reading that holds the maximum.
- max temperature reports the time of the FIRST reading in the range,
  not the reading that holds the maximum.
- the point-in-time lookup counts pages with round(), not ceil(), so a
  trailing partial page under half full isn't counted.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Union

from bson import ObjectId

from weather_api.models.reading import SNAPSHOT_FIELDS, WeatherReading
from weather_api.models.user import utc_now
from weather_api.services.store import WeatherStore
from weather_api.utils.time_windows import (
    hour_bucket,
    local_day_range,
    round_half_up,
    trailing_months_window,
)
from weather_api.utils.validation import parse_object_id

logger = logging.getLogger(__name__)


@dataclass
class Page:
    """One page of results plus the page count for the whole set."""
    items: list[dict] = field(default_factory=list)
    total: int = 0
    total_pages: int = 0


def page_window(page: int, limit: int) -> tuple[int, int]:
    """
    Turn (page, limit) into (skip, limit).

    Raises:
        ValueError: If the page number gives a negative skip
    """
    skip = (page - 1) * limit
    # MongoDB rejects a negative skip
    if skip < 0:
        raise ValueError("skip must be >= 0")
    return skip, limit


class ReadingCatalog:
    """
    Read/write access to the weather readings collection.
    """

    # Trailing window for the max precipitation query
    PRECIPITATION_WINDOW_MONTHS = 5

    def __init__(self, store: WeatherStore, audit_deletes: bool = False):
        """
        Args:
            store: The connected weather store
            audit_deletes: Copy each deleted reading into the log collection
        """
        self.store = store
        self.audit_deletes = audit_deletes

    @property
    def collection(self):
        return self.store.readings

    # =========================================================================
    # LISTING
    # =========================================================================

    async def list_readings(self, page: int, limit: int) -> Page:
        """All readings, in storage order, one page at a time."""
        skip, limit = page_window(page, limit)
        total = await self.collection.count_documents({})
        # MongoDB reads a negative limit as its absolute value (single batch)
        items = await self.collection.find({}, skip=skip, limit=abs(limit)).to_list(length=None)
        return Page(items=items, total=total, total_pages=math.ceil(total / limit))

    async def list_by_device(self, device_name: str, page: int, limit: int) -> Page:
        """One device's readings, newest first."""
        skip, limit = page_window(page, limit)
        query = {"device_name": device_name}
        total = await self.collection.count_documents(query)
        items = await self.collection.find(
            query,
            sort=[("time", -1)],
            skip=skip,
            limit=abs(limit),
        ).to_list(length=None)
        return Page(items=items, total=total, total_pages=math.ceil(total / limit))

    async def get_reading(self, reading_id: Union[str, ObjectId]) -> Optional[dict]:
        """
        Raises:
            ValueError: If reading_id isn't a valid ObjectId
        """
        object_id = reading_id if isinstance(reading_id, ObjectId) else parse_object_id(reading_id)
        return await self.collection.find_one({"_id": object_id})

    # =========================================================================
    # INSERTS
    # =========================================================================

    async def insert_reading(self, reading: WeatherReading):
        result = await self.collection.insert_one(reading.to_document())
        logger.info(f"[Readings] Inserted reading {reading.id} from {reading.device_name}")
        return result

    async def insert_readings(self, readings: list[WeatherReading]):
        """
        Insert a batch. Every item is already validated, so either the whole
        batch is handed to MongoDB or nothing is.
        """
        if not readings:
            raise ValueError("At least one reading is required")
        result = await self.collection.insert_many([reading.to_document() for reading in readings])
        logger.info(f"[Readings] Inserted {len(readings)} readings")
        return result

    # =========================================================================
    # AGGREGATIONS
    # =========================================================================

    async def max_precipitation(self, device_name: str, now: Optional[datetime] = None) -> list[dict]:
        """
        Highest precipitation for a device over the trailing window.

        Returns one entry per device (so zero or one here):
            {"id", "device_name", "max_precipitation", "reading_date_time"}
        where id/reading_date_time belong to the last reading in the window.
        """
        start, end = trailing_months_window(now or utc_now(), self.PRECIPITATION_WINDOW_MONTHS)
        pipeline = [
            {"$match": {
                "device_name": device_name,
                "time": {"$gte": start, "$lte": end},
            }},
            {"$group": {
                "_id": "$device_name",
                "max_precipitation": {"$max": "$precipitation"},
                "reading_date_time": {"$last": "$time"},
                "document_id": {"$last": "$_id"},
            }},
            {"$project": {
                "_id": 0,
                "id": "$document_id",
                "device_name": "$_id",
                "reading_date_time": 1,
                "max_precipitation": 1,
            }},
        ]
        return await self.collection.aggregate(pipeline).to_list(length=None)

    async def last_recorded_date(self, device_name: str) -> Optional[datetime]:
        """Most recent reading time for a device, ignoring any window."""
        pipeline = [
            {"$match": {"device_name": device_name}},
            {"$group": {"_id": None, "last_recorded_date": {"$max": "$time"}}},
            {"$project": {"_id": 0, "last_recorded_date": 1}},
        ]
        result = await self.collection.aggregate(pipeline).to_list(length=None)
        if not result:
            return None
        return result[0].get("last_recorded_date")

    async def max_temperature(self, start: datetime, end: datetime) -> list[dict]:
        """
        Highest temperature per device between two days (local day bounds).

        Returns:
            [{"device_name", "max_temperature", "reading_date_time"}, ...]
            where reading_date_time is the first reading of each device.
        """
        range_start, range_end = local_day_range(start, end)
        pipeline = [
            {"$match": {"time": {"$gte": range_start, "$lte": range_end}}},
            {"$group": {
                "_id": "$device_name",
                "max_temperature": {"$max": "$temperature"},
                "reading_date_time": {"$first": "$time"},
            }},
            {"$project": {
                "_id": 0,
                "device_name": "$_id",
                "reading_date_time": 1,
                "max_temperature": 1,
            }},
            {"$sort": {"device_name": 1}},
        ]
        return await self.collection.aggregate(pipeline).to_list(length=None)

    async def readings_at(self, device_name: str, moment: datetime, page: int, limit: int) -> Page:
        """
        Readings of one device within the hour of `moment` (UTC), oldest
        first, trimmed to the snapshot fields.

        The whole hour is fetched and then sliced in memory.
        """
        start, end = hour_bucket(moment)
        projection = {name: 1 for name in SNAPSHOT_FIELDS}
        projection["_id"] = 0
        rows = await self.collection.find(
            {"device_name": device_name, "time": {"$gte": start, "$lte": end}},
            projection,
            sort=[("time", 1)],
        ).to_list(length=None)

        total = len(rows)
        first = (page - 1) * limit
        return Page(
            items=rows[first:page * limit],
            total=total,
            total_pages=round_half_up(total / limit),
        )

    # =========================================================================
    # UPDATE / DELETE
    # =========================================================================

    async def update_precipitation(
        self,
        reading_id: Union[str, ObjectId],
        precipitation: float,
    ) -> Optional[dict[str, Any]]:
        """
        Overwrite a reading's precipitation value.

        Read and write are separate round-trips.

        Returns:
            None if the reading doesn't exist, otherwise
            {"previous_value", "updated_value", "result"}
        """
        object_id = reading_id if isinstance(reading_id, ObjectId) else parse_object_id(reading_id)
        existing = await self.collection.find_one({"_id": object_id})
        if not existing:
            return None

        new_value = float(precipitation)
        result = await self.collection.update_one(
            {"_id": object_id},
            {"$set": {"precipitation": new_value}},
        )
        logger.info(
            f"[Readings] Precipitation of {object_id}: {existing.get('precipitation')} -> {new_value}"
        )
        return {
            "previous_value": existing.get("precipitation"),
            "updated_value": new_value,
            "result": result,
        }

    async def delete_reading(self, reading_id: Union[str, ObjectId]) -> Optional[dict[str, Any]]:
        """
        Delete one reading, copying it into the log collection first when
        auditing is on.

        Returns:
            None if the reading doesn't exist, otherwise
            {"result", "logged"}
        """
        object_id = reading_id if isinstance(reading_id, ObjectId) else parse_object_id(reading_id)
        existing = await self.collection.find_one({"_id": object_id})
        if not existing:
            return None

        logged = False
        if self.audit_deletes:
            await self.store.log.insert_one({**existing, "deleted_date": utc_now()})
            logged = True

        result = await self.collection.delete_one({"_id": object_id})
        logger.info(f"[Readings] Deleted reading {object_id} (logged={logged})")
        return {"result": result, "logged": logged}
