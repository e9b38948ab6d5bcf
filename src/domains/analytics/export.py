# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Export spooling.

An export is created in one request and downloaded in another:

1. create_export() validates the request, runs the export query, and stores
   an ExportRecord in Redis under a fresh opaque id with a short TTL.
2. download_export() reads the record back and renders it as JSON or CSV.
   Records are never deleted; they expire. An id that does not resolve is
   ExportNotFoundError, whether it expired or never existed.

Rendering is deterministic, so repeated downloads of one export within its
TTL are byte-identical.

Example:
    spooler = ExportSpooler(redis, data_source, settings.analytics)
    record = await spooler.create_export(ExportRequest(type="courses", format="csv"))
    download = await spooler.download_export(record.export_id)
"""

import asyncio
import csv
import io
import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Mapping
from uuid import uuid4

from src.core.context import SYSTEM_USER
from src.domains.analytics.datasource import AnalyticsDataSource
from src.domains.analytics.exceptions import AnalyticsValidationError, ExportNotFoundError
from src.domains.analytics.export_queries import (
    DASHBOARD_METRICS,
    EXPORT_FORMATS,
    EXPORT_TYPES,
    export_query,
)
from src.domains.analytics.numeric import normalize
from src.domains.analytics.periods import ResolvedPeriod, resolve_period
from src.domains.analytics.reports.dashboard import platform_totals
from src.utils.datetime import format_iso, utc_now

if TYPE_CHECKING:
    from src.core.config.settings import AnalyticsSettings
    from src.infrastructure.cache import RedisClient

logger = logging.getLogger(__name__)

LIST_SEPARATOR = "; "

MEDIA_TYPES = {
    "json": "application/json",
    "csv": "text/csv",
}


@dataclass
class ExportRequest:
    """Parameters of an export.

    Attributes:
        type: Export type, one of EXPORT_TYPES.
        period: Period token; unknown tokens resolve to 30d.
        format: Preferred download format, json or csv.
        include_details: Selects the detailed projection.
        category_id: Restricts course exports to one category.
        instructor_id: Restricts course exports to one instructor.
    """

    type: str = "dashboard"
    period: str | None = None
    format: str = "json"
    include_details: bool = False
    category_id: str | None = None
    instructor_id: str | None = None

    def validate(self) -> None:
        """Reject unknown types and formats before any query runs.

        Raises:
            AnalyticsValidationError: INVALID_EXPORT_TYPE or INVALID_FORMAT.
        """
        if self.type not in EXPORT_TYPES:
            raise AnalyticsValidationError("Invalid export type", code="INVALID_EXPORT_TYPE")
        if self.format not in EXPORT_FORMATS:
            raise AnalyticsValidationError(
                "Invalid format. Supported formats: json, csv",
                code="INVALID_FORMAT",
            )

    @property
    def filters(self) -> dict[str, str | None]:
        return {"categoryId": self.category_id, "instructorId": self.instructor_id}


@dataclass
class ExportRecord:
    """A spooled export as stored in Redis."""

    export_id: str
    type: str
    period: str
    format: str
    include_details: bool
    filters: dict[str, Any]
    record_count: int
    generated_at: str
    generated_by: str
    data: Any = field(default_factory=list)

    def metadata(self) -> dict[str, Any]:
        """Record fields without the data."""
        return {
            "exportId": self.export_id,
            "type": self.type,
            "period": self.period,
            "format": self.format,
            "includeDetails": self.include_details,
            "filters": self.filters,
            "recordCount": self.record_count,
            "generatedAt": self.generated_at,
            "generatedBy": self.generated_by,
        }

    def to_dict(self) -> dict[str, Any]:
        """Convert to the stored JSON document."""
        return {**self.metadata(), "data": self.data}

    @classmethod
    def from_dict(cls, document: Mapping[str, Any]) -> "ExportRecord":
        return cls(
            export_id=document["exportId"],
            type=document["type"],
            period=document["period"],
            format=document.get("format", "json"),
            include_details=bool(document.get("includeDetails", False)),
            filters=dict(document.get("filters") or {}),
            record_count=document.get("recordCount", 0),
            generated_at=document.get("generatedAt", ""),
            generated_by=document.get("generatedBy", SYSTEM_USER),
            data=document.get("data", []),
        )


@dataclass
class ExportDownload:
    """Rendered export file."""

    filename: str
    media_type: str
    body: str


# ========== Row shaping ==========


def unflatten(row: Mapping[str, Any]) -> dict[str, Any]:
    """Turn dotted keys into nested objects.

    Example:
        >>> unflatten({"id": 1, "category.name": "Data"})
        {'id': 1, 'category': {'name': 'Data'}}
    """
    result: dict[str, Any] = {}
    for key, value in row.items():
        *parents, leaf = key.split(".")
        target = result
        for parent in parents:
            target = target.setdefault(parent, {})
        target[leaf] = value
    return result


def flatten(item: Mapping[str, Any], prefix: str = "") -> dict[str, Any]:
    """Flatten nested objects into dot-separated keys.

    Lists are joined with "; " into one value.
    """
    flat: dict[str, Any] = {}
    for key, value in item.items():
        name = f"{prefix}{key}"
        if isinstance(value, Mapping):
            flat.update(flatten(value, f"{name}."))
        elif isinstance(value, (list, tuple)):
            flat[name] = LIST_SEPARATOR.join(_csv_text(element) for element in value)
        else:
            flat[name] = value
    return flat


def _csv_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def to_csv(data: Any) -> str:
    """Render export data as CSV.

    One row per record, or a single row when data is one object. Headers are
    the union of the flattened keys in first-seen order. Fields containing a
    comma, double quote or line break are quoted with inner quotes doubled.
    Empty data renders as an empty string.
    """
    if isinstance(data, Mapping):
        records = [data] if data else []
    elif isinstance(data, (list, tuple)):
        records = [item for item in data if isinstance(item, Mapping)]
    else:
        records = []
    if not records:
        return ""

    rows = [flatten(record) for record in records]
    headers: dict[str, None] = {}
    for row in rows:
        for key in row:
            headers.setdefault(key, None)

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(headers)
    for row in rows:
        writer.writerow(_csv_text(row.get(header)) for header in headers)
    # No trailing line break after the last record
    return buffer.getvalue()[:-1]


def export_filename(record: ExportRecord, file_format: str) -> str:
    """educademy_analytics_{type}_{period}_{exportId}.{ext}"""
    return (
        f"educademy_analytics_{record.type}_{record.period}_{record.export_id}.{file_format}"
    )


def new_export_id() -> str:
    return f"analytics_{uuid4().hex}"


# ========== Spooler ==========


class ExportSpooler:
    """Creates and serves spooled exports.

    Attributes:
        store: Redis client holding export records.
        data_source: Source the export queries run on.
        settings: Analytics settings (key prefix, export TTL, row limit).
        clock: Returns "now" for period resolution and generatedAt.
    """

    def __init__(
        self,
        store: "RedisClient",
        data_source: AnalyticsDataSource,
        settings: "AnalyticsSettings",
        clock: Callable = utc_now,
    ) -> None:
        self.store = store
        self.data_source = data_source
        self.settings = settings
        self.clock = clock

    def key_for(self, export_id: str) -> str:
        return f"{self.settings.cache_key_prefix}:export:{export_id}"

    async def create_export(
        self,
        request: ExportRequest,
        generated_by: str | None = None,
    ) -> ExportRecord:
        """Run an export and spool the result.

        Args:
            request: Export parameters.
            generated_by: Requesting user id; "system" when absent.

        Returns:
            The stored ExportRecord.

        Raises:
            AnalyticsValidationError: If type or format is not supported.
        """
        request.validate()

        now = self.clock()
        period = resolve_period(request.period, now=now)
        data = await self._collect(request, period, format_iso(now))

        record = ExportRecord(
            export_id=new_export_id(),
            type=request.type,
            period=period.token,
            format=request.format,
            include_details=request.include_details,
            filters=request.filters,
            record_count=len(data) if isinstance(data, list) else 1,
            generated_at=format_iso(now),
            generated_by=generated_by or SYSTEM_USER,
            data=data,
        )
        await self.store.set_json(
            self.key_for(record.export_id),
            record.to_dict(),
            self.settings.export_ttl,
        )

        logger.info(
            "Spooled %s export %s (%d records, by %s)",
            record.type,
            record.export_id,
            record.record_count,
            record.generated_by,
        )
        return record

    async def get_export(self, export_id: str) -> ExportRecord:
        """Load a stored export.

        Raises:
            ExportNotFoundError: If the id does not resolve.
        """
        document = await self.store.get_json(self.key_for(export_id))
        if not isinstance(document, dict) or "exportId" not in document:
            raise ExportNotFoundError(export_id)
        return ExportRecord.from_dict(document)

    async def download_export(
        self,
        export_id: str,
        file_format: str | None = None,
    ) -> ExportDownload:
        """Render a stored export as a file.

        Args:
            export_id: Id returned by create_export.
            file_format: json or csv; defaults to the format stored with
                the export.

        Raises:
            AnalyticsValidationError: If file_format is not supported.
            ExportNotFoundError: If the id does not resolve.
        """
        if file_format is not None and file_format not in EXPORT_FORMATS:
            raise AnalyticsValidationError(
                "Invalid format. Supported formats: json, csv",
                code="INVALID_FORMAT",
            )

        record = await self.get_export(export_id)
        resolved = file_format or record.format
        if resolved not in EXPORT_FORMATS:
            resolved = "json"

        if resolved == "csv":
            body = to_csv(record.data)
        else:
            body = json.dumps(
                {
                    "exportInfo": {
                        "exportId": record.export_id,
                        "type": record.type,
                        "period": record.period,
                        "recordCount": record.record_count,
                        "generatedAt": record.generated_at,
                        "format": resolved,
                    },
                    "data": record.data,
                },
                separators=(",", ":"),
            )

        return ExportDownload(
            filename=export_filename(record, resolved),
            media_type=MEDIA_TYPES[resolved],
            body=body,
        )

    async def _collect(
        self,
        request: ExportRequest,
        period: ResolvedPeriod,
        generated_at: str,
    ) -> list[dict[str, Any]]:
        if request.type == "dashboard":
            queries = platform_totals(period)
            results = await asyncio.gather(*(self.data_source.run(query) for query in queries))
            values = {query.name: normalize(result) for query, result in zip(queries, results)}
            return [
                {
                    "metric": label,
                    "value": values[name],
                    "type": kind,
                    "period": period.token,
                    "generatedAt": generated_at,
                }
                for label, name, kind in DASHBOARD_METRICS
            ]

        query = export_query(
            request.type,
            period,
            request.include_details,
            request.filters,
            self.settings.export_row_limit,
        )
        rows = await self.data_source.run(query)
        return [unflatten(row) for row in rows]
