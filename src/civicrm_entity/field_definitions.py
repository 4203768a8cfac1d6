"""CRM field descriptor -> content-entity field definition translation.

Defines:
- CRM_TYPE_*: CiviCRM CRM_Utils_Type codes as reported by getfields.
- FieldDefinitionProvider: Translates one CrmFieldDescriptor into an
  EntityFieldDefinition (type, settings, cardinality, display metadata).

SchemaTranslationError (raised for type codes with no content-side mapping)
lives in schemas so that descriptor parsing can raise it too; it is re-exported
here. The provider is stateless; the schema builder decides whether an
untranslatable field is skipped or aborts the build.
"""

from __future__ import annotations

from typing import Any

from src.civicrm_entity.metadata import civicrm_entity_type_id
from src.civicrm_entity.schemas import (
    CrmFieldDescriptor,
    EntityFieldDefinition,
    FieldType,
    SchemaTranslationError,
)


# ── CiviCRM Type Codes ─────────────────────────────────────────────────────

CRM_TYPE_INT = 1
CRM_TYPE_STRING = 2
CRM_TYPE_DATE = 4
CRM_TYPE_TIME = 8
CRM_TYPE_DATETIME = CRM_TYPE_DATE + CRM_TYPE_TIME
CRM_TYPE_BOOLEAN = 16
CRM_TYPE_TEXT = 32
CRM_TYPE_MEDIUMBLOB = 33
CRM_TYPE_BLOB = 64
CRM_TYPE_TIMESTAMP = 256
CRM_TYPE_FLOAT = 512
CRM_TYPE_MONEY = 1024
CRM_TYPE_EMAIL = 2048
CRM_TYPE_URL = 4096
CRM_TYPE_CCNUM = 8192

# Types whose translation does not depend on the rest of the descriptor.
_SIMPLE_TYPES: dict[int, FieldType] = {
    CRM_TYPE_BOOLEAN: FieldType.BOOLEAN,
    CRM_TYPE_TEXT: FieldType.TEXT_LONG,
    CRM_TYPE_MEDIUMBLOB: FieldType.STRING_LONG,
    CRM_TYPE_BLOB: FieldType.STRING_LONG,
    CRM_TYPE_TIMESTAMP: FieldType.TIMESTAMP,
    CRM_TYPE_FLOAT: FieldType.FLOAT,
    CRM_TYPE_MONEY: FieldType.DECIMAL,
    CRM_TYPE_EMAIL: FieldType.EMAIL,
    CRM_TYPE_URL: FieldType.URI,
}

# Default view/form widgets per field type.
_DISPLAY_TYPES: dict[FieldType, tuple[str, str]] = {
    FieldType.INTEGER: ("number_integer", "number"),
    FieldType.BOOLEAN: ("boolean", "boolean_checkbox"),
    FieldType.DECIMAL: ("number_decimal", "number"),
    FieldType.FLOAT: ("number_decimal", "number"),
    FieldType.STRING: ("string", "string_textfield"),
    FieldType.STRING_LONG: ("basic_string", "string_textarea"),
    FieldType.TEXT_LONG: ("text_default", "text_textarea"),
    FieldType.EMAIL: ("basic_string", "email_default"),
    FieldType.URI: ("uri_link", "uri"),
    FieldType.DATETIME: ("datetime_default", "datetime_default"),
    FieldType.TIMESTAMP: ("timestamp", "datetime_timestamp"),
    FieldType.LIST_STRING: ("list_default", "options_select"),
    FieldType.LIST_INTEGER: ("list_default", "options_select"),
    FieldType.ENTITY_REFERENCE: ("entity_reference_label", "entity_reference_autocomplete"),
}


class FieldDefinitionProvider:
    """Translates CRM field descriptors into content-entity field definitions."""

    def translate(self, descriptor: CrmFieldDescriptor) -> EntityFieldDefinition:
        """Translate one descriptor.

        Raises:
            SchemaTranslationError: ``descriptor.api_type`` is not a known code.
        """
        if descriptor.name == "id":
            return self._build(
                descriptor,
                FieldType.INTEGER,
                settings={"unsigned": True},
                read_only=True,
                cardinality=1,
            )

        api_type = descriptor.api_type
        if api_type is None:
            return self._build(descriptor, FieldType.STRING, settings={"max_length": 255})

        if api_type == CRM_TYPE_INT:
            if descriptor.fk_entity:
                return self._build(
                    descriptor,
                    FieldType.ENTITY_REFERENCE,
                    settings={"target_type": civicrm_entity_type_id(descriptor.fk_entity)},
                    main_property="target_id",
                )
            if descriptor.options:
                return self._build(
                    descriptor,
                    FieldType.LIST_INTEGER,
                    settings={"allowed_values": _integer_options(descriptor.options)},
                )
            return self._build(descriptor, FieldType.INTEGER)

        if api_type in (CRM_TYPE_STRING, CRM_TYPE_CCNUM):
            if descriptor.options:
                return self._build(
                    descriptor,
                    FieldType.LIST_STRING,
                    settings={"allowed_values": dict(descriptor.options)},
                )
            return self._build(
                descriptor,
                FieldType.STRING,
                settings={"max_length": descriptor.max_length or 255},
            )

        if api_type == CRM_TYPE_TIME:
            return self._build(descriptor, FieldType.STRING, settings={"max_length": 8})

        if api_type == CRM_TYPE_DATE:
            return self._build(descriptor, FieldType.DATETIME, settings={"datetime_type": "date"})

        if api_type == CRM_TYPE_DATETIME:
            return self._build(
                descriptor, FieldType.DATETIME, settings={"datetime_type": "datetime"}
            )

        if api_type == CRM_TYPE_MONEY:
            return self._build(
                descriptor, FieldType.DECIMAL, settings={"precision": 20, "scale": 2}
            )

        if api_type in _SIMPLE_TYPES:
            return self._build(descriptor, _SIMPLE_TYPES[api_type])

        raise SchemaTranslationError(descriptor.name, api_type)

    def _build(
        self,
        descriptor: CrmFieldDescriptor,
        field_type: FieldType,
        settings: dict[str, Any] | None = None,
        main_property: str = "value",
        read_only: bool = False,
        cardinality: int | None = None,
    ) -> EntityFieldDefinition:
        formatter, widget = _DISPLAY_TYPES[field_type]
        display_options: dict[str, dict[str, Any]] = {
            "view": {"type": formatter, "label": "above", "weight": 0},
        }
        if not read_only:
            display_options["form"] = {"type": widget, "weight": 0}

        return EntityFieldDefinition(
            name=descriptor.name,
            type=field_type,
            label=descriptor.title or descriptor.name,
            description=descriptor.description or "",
            settings=settings or {},
            required=descriptor.required,
            read_only=read_only,
            cardinality=descriptor.cardinality if cardinality is None else cardinality,
            main_property=main_property,
            display_options=display_options,
            display_configurable={"view": True, "form": not read_only},
        )


def _integer_options(options: dict[str, str]) -> dict[Any, str]:
    """Option keys as ints where they are numeric, as CRM option values usually are."""
    converted: dict[Any, str] = {}
    for key, label in options.items():
        converted[int(key) if key.lstrip("-").isdigit() else key] = label
    return converted
