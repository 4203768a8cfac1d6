"""Generic CiviCRM content entity and its loop-guarded lifecycle.

One CivicrmEntity class serves every exposed CRM entity type: the type is the
EntityTypeSchema the instance is constructed with, not a subclass.

Loop prevention: CRM hooks fire for every CRM-side write, including the ones
the content side itself triggered through save()/delete(). While such a call
is in progress ``drupal_crud`` is True, so CRM-triggered hooks can tell the
two apart and skip re-saving (see hooks.CivicrmPostHook). The flag is owned by
crud_guard(); it is False before and after every save()/delete(), whether the
storage call returns or raises.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog

from src.civicrm_entity.schemas import (
    CARDINALITY_UNLIMITED,
    EntityFieldDefinition,
    EntityTypeSchema,
    FieldType,
    FieldViolation,
    ViolationOrigin,
)

logger = structlog.get_logger(__name__)

_LIST_TYPES = (FieldType.LIST_STRING, FieldType.LIST_INTEGER)


class LifecycleInvariantViolation(RuntimeError):
    """save()/delete() entered while a content-side CRUD call is already running."""


class EntityStorage(ABC):
    """Content-entity persistence engine (storage, revisions, access)."""

    @abstractmethod
    def save(self, entity: CivicrmEntity) -> Any:
        """Persist the entity; the return value is passed through save()."""
        ...

    @abstractmethod
    def delete(self, entity: CivicrmEntity) -> None:
        """Delete the entity."""
        ...


# ── Field Items ────────────────────────────────────────────────────────────


class FieldItemList:
    """Items of one field, each a dict of properties keyed by property name.

    Args:
        definition: The field's definition.
        items: Initial items. Scalars are wrapped as the main property.
    """

    def __init__(self, definition: EntityFieldDefinition, items: list[Any] | None = None) -> None:
        self.definition = definition
        self._items: list[dict[str, Any]] = [self._wrap(item) for item in items or []]

    def _wrap(self, item: Any) -> dict[str, Any]:
        if isinstance(item, dict):
            return dict(item)
        return {self.definition.main_property: item}

    def __iter__(self) -> Iterator[dict[str, Any]]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def is_item_empty(self, item: dict[str, Any]) -> bool:
        value = item.get(self.definition.main_property)
        return value is None or value == "" or value == [] or value == {}

    def non_empty_items(self) -> list[dict[str, Any]]:
        """Non-empty items, re-indexed from delta 0. The list is not modified."""
        return [dict(item) for item in self._items if not self.is_item_empty(item)]

    def is_empty(self) -> bool:
        return not self.non_empty_items()

    def main_values(self) -> list[Any]:
        """Main property value of every non-empty item, in delta order."""
        return [item[self.definition.main_property] for item in self.non_empty_items()]


# ── Entity ─────────────────────────────────────────────────────────────────


class CivicrmEntity:
    """A CRM record presented as a content entity.

    Args:
        schema: Field schema of the entity type.
        storage: Persistence engine save()/delete() delegate to.
        values: Initial field values, field name -> scalar, item dict, or list.
    """

    def __init__(
        self,
        schema: EntityTypeSchema,
        storage: EntityStorage,
        values: dict[str, Any] | None = None,
    ) -> None:
        # True only while a content-side save()/delete() is running.
        self.drupal_crud = False
        self._schema = schema
        self._storage = storage
        self._fields: dict[str, FieldItemList] = {
            name: FieldItemList(definition) for name, definition in schema.fields.items()
        }
        for name, value in (values or {}).items():
            self.set(name, value)

    @property
    def schema(self) -> EntityTypeSchema:
        return self._schema

    @property
    def entity_type_id(self) -> str:
        return self._schema.entity_type_id

    @property
    def civicrm_entity(self) -> str:
        return self._schema.civicrm_entity

    @property
    def id(self) -> Any:
        items = self._fields.get("id")
        if items is None:
            return None
        values = items.main_values()
        return values[0] if values else None

    def is_new(self) -> bool:
        return self.id is None

    # ── Field access ──

    def get(self, field_name: str) -> FieldItemList:
        try:
            return self._fields[field_name]
        except KeyError:
            raise KeyError(f"{self.entity_type_id} has no field {field_name!r}") from None

    def set(self, field_name: str, value: Any) -> None:
        """Replace a field's items. Lists set one item per element."""
        definition = self.get(field_name).definition
        if value is None:
            items: list[Any] = []
        elif isinstance(value, (list, tuple)):
            items = list(value)
        else:
            items = [value]
        self._fields[field_name] = FieldItemList(definition, items)

    def get_fields(self) -> dict[str, FieldItemList]:
        """All fields, base fields first in schema order, then attached fields."""
        return dict(self._fields)

    def get_field_definition(self, field_name: str) -> EntityFieldDefinition | None:
        items = self._fields.get(field_name)
        return items.definition if items is not None else None

    def attach_field(self, definition: EntityFieldDefinition, value: Any = None) -> None:
        """Add a configurable (non-base) field to this instance."""
        definition = definition.model_copy(update={"base_field": False})
        self._fields[definition.name] = FieldItemList(definition)
        if value is not None:
            self.set(definition.name, value)

    # ── Local validation ──

    def validate_local(self) -> list[FieldViolation]:
        """Structural validation: required, cardinality and allowed values."""
        violations: list[FieldViolation] = []

        for field_name, items in self._fields.items():
            definition = items.definition
            if definition.computed:
                continue

            values = items.main_values()

            if definition.required and not values:
                violations.append(
                    FieldViolation(
                        field_name=field_name,
                        message=f"{definition.label} field is required.",
                        origin=ViolationOrigin.LOCAL,
                    )
                )
                continue

            limit = definition.cardinality
            if limit != CARDINALITY_UNLIMITED and len(values) > limit:
                violations.append(
                    FieldViolation(
                        field_name=field_name,
                        message=(
                            f"{definition.label}: this field cannot hold more than "
                            f"{limit} values."
                        ),
                        invalid_value=values,
                        origin=ViolationOrigin.LOCAL,
                    )
                )

            if definition.type in _LIST_TYPES:
                allowed = {str(key) for key in definition.settings.get("allowed_values", {})}
                for value in values:
                    if str(value) not in allowed:
                        violations.append(
                            FieldViolation(
                                field_name=field_name,
                                message="The value you selected is not a valid choice.",
                                invalid_value=value,
                                origin=ViolationOrigin.LOCAL,
                            )
                        )

        return violations

    # ── Lifecycle ──

    @contextmanager
    def crud_guard(self) -> Iterator[None]:
        """Mark the enclosed block as a content-side CRUD operation.

        Raises:
            LifecycleInvariantViolation: The flag is already set (reentrant
                save/delete on the same instance).
        """
        if self.drupal_crud:
            raise LifecycleInvariantViolation(
                f"{self.entity_type_id} {self.id!r} re-entered save/delete "
                "while a content-side CRUD call is in progress"
            )
        self.drupal_crud = True
        try:
            yield
        finally:
            self.drupal_crud = False

    def save(self) -> Any:
        """Persist through the storage engine as a content-side write."""
        with self.crud_guard():
            logger.debug(
                "lifecycle.save_started",
                entity_type_id=self.entity_type_id,
                entity_id=self.id,
            )
            return self._storage.save(self)

    def delete(self) -> None:
        """Delete through the storage engine as a content-side write."""
        with self.crud_guard():
            logger.debug(
                "lifecycle.delete_started",
                entity_type_id=self.entity_type_id,
                entity_id=self.id,
            )
            self._storage.delete(self)
