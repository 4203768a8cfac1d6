"""Cross-system validation: local field checks plus the CRM validate endpoint.

CRM violation messages name fields by machine name ("email is invalid"); the
validator rewrites them with the content-side label ("Email Address is
invalid") so they read correctly next to the form widget they belong to.
"""

from __future__ import annotations

from typing import Any

import structlog

from src.civicrm_entity.api import CrmApi
from src.civicrm_entity.entity import CivicrmEntity
from src.civicrm_entity.normalizer import ValueNormalizer
from src.civicrm_entity.schemas import FieldViolation, ViolationOrigin

logger = structlog.get_logger(__name__)


class CrossSystemValidator:
    """Validates a CivicrmEntity on both sides of the bridge.

    Args:
        api: CRM API providing the validate endpoint.
        normalizer: Builds the params sent to the validate endpoint.
    """

    def __init__(self, api: CrmApi, normalizer: ValueNormalizer) -> None:
        self._api = api
        self._normalizer = normalizer

    def validate(self, entity: CivicrmEntity) -> list[FieldViolation]:
        """Return local violations followed by CRM-side violations.

        An empty list means the entity is valid. The entity is not modified.

        Raises:
            ApiTransportError: The validate call failed.
        """
        violations = entity.validate_local()

        params = self._normalizer.normalize(entity)
        civicrm_violations = self._api.validate(entity.civicrm_entity, params)
        if not civicrm_violations:
            return violations

        for field_name, details in civicrm_violations.items():
            label = entity.schema.label_for(field_name)
            entries = details if isinstance(details, list) else [details]
            for entry in entries:
                violations.append(
                    FieldViolation(
                        field_name=field_name,
                        message=_substitute_label(_message(entry), field_name, label),
                        invalid_value=params.get(field_name),
                        origin=ViolationOrigin.CIVICRM,
                    )
                )

        logger.info(
            "validator.civicrm_violations",
            entity_type_id=entity.entity_type_id,
            entity_id=entity.id,
            fields=list(civicrm_violations),
        )
        return violations


def _message(entry: Any) -> str:
    if isinstance(entry, dict):
        return str(entry.get("message", ""))
    return str(entry)


def _substitute_label(message: str, field_name: str, label: str) -> str:
    return message.replace(field_name, label)
