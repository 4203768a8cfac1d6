"""Content entity field values -> flat CRM API params.

The CRM API wants one key per field: a bare scalar for single-valued fields,
a delta-ordered list otherwise. Date/time values are stored in UTC on the
content side but the CRM reads them in the display timezone, so they are
converted and formatted ``YYYY-MM-DD HH:MM:SS``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

import structlog

from src.civicrm_entity.entity import CivicrmEntity, FieldItemList

logger = structlog.get_logger(__name__)

NormalizedParams = dict[str, Any]

CRM_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


class ValueNormalizer:
    """Builds CRM API params from an entity's current field values.

    Args:
        display_timezone: Timezone the CRM expects date/time params in.
        storage_timezone: Timezone content-side date/time values are stored in.
    """

    def __init__(self, display_timezone: str = "UTC", storage_timezone: str = "UTC") -> None:
        self._display_tz = ZoneInfo(display_timezone)
        self._storage_tz = ZoneInfo(storage_timezone)

    def normalize(self, entity: CivicrmEntity) -> NormalizedParams:
        """Return params for every non-empty base field of ``entity``.

        Skipped: fields with no non-empty items, fields that are not base
        fields of the schema (configurable fields are unknown to the CRM),
        and computed fields. A field whose value cannot be converted (such as
        an unparseable date/time) is logged and left out; the other fields
        are still normalized. The entity is not modified.
        """
        params: NormalizedParams = {}

        for field_name, items in entity.get_fields().items():
            non_empty = items.non_empty_items()
            if not non_empty:
                continue

            definition = items.definition
            if not definition.base_field or field_name not in entity.schema:
                continue
            if definition.computed:
                continue

            try:
                values = [self._item_value(items, item) for item in non_empty]
            except (TypeError, ValueError) as exc:
                logger.warning(
                    "normalizer.field_skipped",
                    entity_type_id=entity.entity_type_id,
                    field_name=field_name,
                    error=str(exc),
                )
                continue

            value: Any = values[0] if definition.cardinality == 1 else values
            if not _is_empty(value):
                params[field_name] = value

        logger.debug(
            "normalizer.params_built",
            entity_type_id=entity.entity_type_id,
            fields=sorted(params),
        )
        return params

    def _item_value(self, items: FieldItemList, item: dict[str, Any]) -> Any:
        value = item.get(items.definition.main_property)
        if items.definition.is_datetime and not isinstance(value, (list, tuple, dict)):
            return self.to_display_datetime(value)
        return value

    def to_display_datetime(self, value: datetime | str) -> str:
        """Convert a stored date/time to the display timezone, CRM formatted.

        Naive values are taken to be in the storage timezone.
        """
        moment = value if isinstance(value, datetime) else datetime.fromisoformat(str(value))
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=self._storage_tz)
        return moment.astimezone(self._display_tz).strftime(CRM_DATETIME_FORMAT)
