"""Pydantic schemas shared by the CiviCRM entity bridge.

Defines all structured types that cross component boundaries:
- Enums: FieldType, ViolationOrigin
- CRM side: CrmFieldDescriptor (one getfields entry)
- Content side: EntityFieldDefinition, EntityTypeSchema
- Validation: FieldViolation
- Errors: SchemaTranslationError

Definitions and schemas are frozen: once the schema builder publishes an
EntityTypeSchema it is read-only, and build steps produce copies via
model_copy().
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# ── Enums ───────────────────────────────────────────────────────────────────


class FieldType(str, Enum):
    """Content-entity field types a CRM field can be translated to."""

    INTEGER = "integer"
    BOOLEAN = "boolean"
    DECIMAL = "decimal"
    FLOAT = "float"
    STRING = "string"
    STRING_LONG = "string_long"
    TEXT_LONG = "text_long"
    EMAIL = "email"
    URI = "uri"
    DATETIME = "datetime"
    TIMESTAMP = "timestamp"
    LIST_STRING = "list_string"
    LIST_INTEGER = "list_integer"
    ENTITY_REFERENCE = "entity_reference"


class ViolationOrigin(str, Enum):
    """Which side of the bridge reported a violation."""

    LOCAL = "local"
    CIVICRM = "civicrm"


CARDINALITY_UNLIMITED = -1


class SchemaTranslationError(ValueError):
    """A CRM field descriptor has no content-entity field definition."""

    def __init__(self, field_name: str, api_type: Any, reason: str | None = None) -> None:
        message = f"Unmapped CiviCRM type {api_type!r} for field {field_name!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.field_name = field_name
        self.api_type = api_type


# ── CRM Field Descriptors ───────────────────────────────────────────────────


class CrmFieldDescriptor(BaseModel):
    """One field as described by the CRM getfields API."""

    model_config = ConfigDict(frozen=True)

    name: str
    api_type: int | None = None
    title: str | None = None
    description: str | None = None
    cardinality: int = 1
    options: dict[str, str] | None = None
    required: bool = False
    fk_entity: str | None = None
    max_length: int | None = None

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> CrmFieldDescriptor:
        """Build a descriptor from a raw getfields entry (overrides already merged).

        Accepts the CRM key names (``type``, ``FKApiName``, ``maxlength``,
        ``api.required``, ``serialize``) as well as the descriptor's own names.
        A serialized field is multi-valued unless ``cardinality`` says otherwise.

        Raises:
            SchemaTranslationError: The entry is malformed (non-numeric type
                code, option without a key, bad cardinality or max length).
        """
        name = raw["name"]
        try:
            return cls._parse(name, raw)
        except (KeyError, TypeError, ValueError) as exc:
            raise SchemaTranslationError(
                name, raw.get("api_type", raw.get("type")), str(exc)
            ) from exc

    @classmethod
    def _parse(cls, name: str, raw: dict[str, Any]) -> CrmFieldDescriptor:
        if "cardinality" in raw:
            cardinality = int(raw["cardinality"])
        elif raw.get("serialize"):
            cardinality = CARDINALITY_UNLIMITED
        else:
            cardinality = 1

        api_type = raw.get("api_type", raw.get("type"))
        options = raw.get("options")
        if isinstance(options, list):
            # [{"key": ..., "label": ...}] form from getfields with options
            options = {str(o["key"]): str(o.get("label", o["key"])) for o in options}
        elif isinstance(options, dict):
            options = {str(k): str(v) for k, v in options.items()}
        else:
            options = None

        max_length = raw.get("max_length", raw.get("maxlength"))

        return cls(
            name=name,
            api_type=int(api_type) if api_type not in (None, "") else None,
            title=raw.get("title"),
            description=raw.get("description"),
            cardinality=cardinality,
            options=options or None,
            required=bool(raw.get("required") or raw.get("api.required")),
            fk_entity=raw.get("fk_entity", raw.get("FKApiName")),
            max_length=int(max_length) if max_length else None,
        )


# ── Content Entity Field Definitions ────────────────────────────────────────


class EntityFieldDefinition(BaseModel):
    """Statically declared content-entity field built from a CRM descriptor."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: FieldType
    label: str
    description: str = ""
    settings: dict[str, Any] = Field(default_factory=dict)
    required: bool = False
    computed: bool = False
    read_only: bool = False
    base_field: bool = True
    cardinality: int = 1
    main_property: str = "value"
    display_options: dict[str, dict[str, Any]] = Field(default_factory=dict)
    display_configurable: dict[str, bool] = Field(default_factory=dict)

    @property
    def is_multiple(self) -> bool:
        return self.cardinality != 1

    @property
    def is_datetime(self) -> bool:
        return self.type == FieldType.DATETIME

    def with_setting(self, key: str, value: Any) -> EntityFieldDefinition:
        """Return a copy with one setting added or replaced."""
        return self.model_copy(update={"settings": {**self.settings, key: value}})


class EntityTypeSchema(BaseModel):
    """Ordered field schema of one exposed CRM entity type."""

    model_config = ConfigDict(frozen=True)

    entity_type_id: str
    civicrm_entity: str
    label: str
    fields: dict[str, EntityFieldDefinition] = Field(default_factory=dict)

    def __contains__(self, field_name: object) -> bool:
        return field_name in self.fields

    def get(self, field_name: str) -> EntityFieldDefinition | None:
        return self.fields.get(field_name)

    def label_for(self, field_name: str) -> str:
        """Human-readable label of a field, the machine name if unknown."""
        definition = self.fields.get(field_name)
        return definition.label if definition is not None else field_name


# ── Validation ──────────────────────────────────────────────────────────────


class FieldViolation(BaseModel):
    """A field-level validation failure from either side of the bridge."""

    model_config = ConfigDict(frozen=True)

    field_name: str
    message: str
    invalid_value: Any = None
    origin: ViolationOrigin = ViolationOrigin.LOCAL
