"""CRM API interface and the APIv3 adapter.

CrmApi is the narrow contract the schema builder and validator consume.
CiviCrmApi3 implements it on top of an injected APIv3-style transport
callable ``(entity, action, params) -> dict``; the transport itself (HTTP,
in-process bindings, authentication) lives outside this package.

Transport failures and ``is_error`` responses surface as ApiTransportError.
Nothing here retries: the operation that hit the error fails.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Any, Callable

import structlog

logger = structlog.get_logger(__name__)

Transport = Callable[[str, str, dict[str, Any]], dict[str, Any]]

_CUSTOM_FIELD_RE = re.compile(r"^custom_(\d+)$")


class ApiTransportError(Exception):
    """A CRM API call failed (network, authentication or remote error)."""

    def __init__(self, entity: str, action: str, message: str) -> None:
        super().__init__(f"CiviCRM API {entity}.{action} failed: {message}")
        self.entity = entity
        self.action = action


class CrmApi(ABC):
    """Abstract interface for the CRM API calls the bridge needs.

    Methods:
        get_fields: Field descriptors of a CRM entity for an action, in API order.
        get_custom_field_metadata: Metadata of a custom field, empty for core fields.
        validate: Field violations the CRM reports for a set of params.
    """

    @abstractmethod
    def get_fields(self, entity_type: str, action: str = "create") -> list[dict[str, Any]]:
        """Return raw field descriptors for ``entity_type`` and ``action``."""
        ...

    @abstractmethod
    def get_custom_field_metadata(self, field_name: str) -> dict[str, Any]:
        """Return custom field metadata, or an empty dict."""
        ...

    @abstractmethod
    def validate(self, entity_type: str, params: dict[str, Any]) -> dict[str, list[dict[str, Any]]]:
        """Return ``field -> [{"message": ..., ...}]``, empty when valid."""
        ...


class CiviCrmApi3(CrmApi):
    """CrmApi over a CiviCRM APIv3 transport.

    Args:
        transport: Callable performing one APIv3 call and returning its
            decoded result (``{"is_error": 0, "values": ...}``).
    """

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    def _call(self, entity: str, action: str, params: dict[str, Any]) -> dict[str, Any]:
        try:
            result = self._transport(entity, action, params)
        except ApiTransportError:
            raise
        except Exception as exc:
            logger.error(
                "civicrm_api.transport_error",
                entity=entity,
                action=action,
                error=str(exc),
            )
            raise ApiTransportError(entity, action, str(exc)) from exc

        if result.get("is_error"):
            message = result.get("error_message", "unknown error")
            logger.error(
                "civicrm_api.remote_error",
                entity=entity,
                action=action,
                error=message,
            )
            raise ApiTransportError(entity, action, message)

        return result

    def get_fields(self, entity_type: str, action: str = "create") -> list[dict[str, Any]]:
        result = self._call(entity_type, "getfields", {"action": action})
        values = result.get("values") or {}
        if isinstance(values, dict):
            fields = []
            for key, field in values.items():
                # getfields keys by field name; some entries omit "name"
                fields.append({"name": key, **field})
            return fields
        return list(values)

    def get_custom_field_metadata(self, field_name: str) -> dict[str, Any]:
        match = _CUSTOM_FIELD_RE.match(field_name)
        if match is None:
            return {}

        result = self._call("CustomField", "getsingle", {"id": int(match.group(1))})
        return {k: v for k, v in result.items() if k != "is_error"}

    def validate(self, entity_type: str, params: dict[str, Any]) -> dict[str, list[dict[str, Any]]]:
        result = self._call(entity_type, "validate", {**params, "action": "create"})
        values = result.get("values")
        if not values:
            return {}

        # Violations for the record come back as the first element of values
        first = values[0] if isinstance(values, list) else next(iter(values.values()))
        if not first:
            return {}

        violations: dict[str, list[dict[str, Any]]] = {}
        for field_name, detail in first.items():
            entries = detail if isinstance(detail, list) else [detail]
            violations[field_name] = [
                entry if isinstance(entry, dict) else {"message": str(entry)}
                for entry in entries
            ]
        return violations
