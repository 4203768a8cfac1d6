"""Supported CRM entity types and the module-supplied field metadata.

Defines:
- SUPPORTED_ENTITIES: Which CRM entity types are exposed as content entities,
  with their required fields and per-field descriptor overrides.
- FieldMetadataStore: Interface the schema builder reads overrides and
  required-field sets through.
- SupportedEntitiesStore: FieldMetadataStore backed by a registry dict.
- civicrm_entity_type_id(): CRM API entity name -> content entity type id.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class UnknownEntityTypeError(KeyError):
    """The entity type id is not in the supported entities registry."""


class CivicrmEntityInfo(BaseModel):
    """Registry entry for one exposed CRM entity type."""

    model_config = ConfigDict(frozen=True)

    civicrm_entity: str
    label: str
    label_property: str | None = None
    required: frozenset[str] = Field(default_factory=frozenset)
    fields: dict[str, dict[str, Any]] = Field(default_factory=dict)


# ── Registry ───────────────────────────────────────────────────────────────
# Overrides use getfields key names and are merged over the API descriptor.

SUPPORTED_ENTITIES: dict[str, CivicrmEntityInfo] = {
    "civicrm_activity": CivicrmEntityInfo(
        civicrm_entity="Activity",
        label="Activity",
        label_property="subject",
        required=frozenset({"activity_type_id", "source_contact_id"}),
        fields={
            "source_contact_id": {
                "title": "Source Contact",
                "type": 1,
                "FKApiName": "Contact",
            },
        },
    ),
    "civicrm_address": CivicrmEntityInfo(
        civicrm_entity="Address",
        label="Address",
        label_property="street_address",
        required=frozenset({"contact_id", "location_type_id"}),
    ),
    "civicrm_campaign": CivicrmEntityInfo(
        civicrm_entity="Campaign",
        label="Campaign",
        label_property="title",
        required=frozenset({"title"}),
    ),
    "civicrm_contact": CivicrmEntityInfo(
        civicrm_entity="Contact",
        label="Contact",
        label_property="display_name",
        required=frozenset({"contact_type"}),
    ),
    "civicrm_contribution": CivicrmEntityInfo(
        civicrm_entity="Contribution",
        label="Contribution",
        label_property="source",
        required=frozenset({"contact_id", "financial_type_id", "total_amount"}),
    ),
    "civicrm_email": CivicrmEntityInfo(
        civicrm_entity="Email",
        label="Email",
        label_property="email",
        required=frozenset({"contact_id", "email"}),
    ),
    "civicrm_event": CivicrmEntityInfo(
        civicrm_entity="Event",
        label="Event",
        label_property="title",
        required=frozenset({"event_type_id", "start_date", "title"}),
    ),
    "civicrm_group": CivicrmEntityInfo(
        civicrm_entity="Group",
        label="Group",
        label_property="title",
        required=frozenset({"title"}),
    ),
    "civicrm_membership": CivicrmEntityInfo(
        civicrm_entity="Membership",
        label="Membership",
        required=frozenset({"contact_id", "membership_type_id"}),
    ),
    "civicrm_participant": CivicrmEntityInfo(
        civicrm_entity="Participant",
        label="Participant",
        required=frozenset({"contact_id", "event_id"}),
    ),
    "civicrm_phone": CivicrmEntityInfo(
        civicrm_entity="Phone",
        label="Phone",
        label_property="phone",
        required=frozenset({"contact_id", "phone"}),
    ),
    "civicrm_relationship": CivicrmEntityInfo(
        civicrm_entity="Relationship",
        label="Relationship",
        required=frozenset({"contact_id_a", "contact_id_b", "relationship_type_id"}),
    ),
    "civicrm_tag": CivicrmEntityInfo(
        civicrm_entity="Tag",
        label="Tag",
        label_property="name",
        required=frozenset({"name"}),
    ),
}


def civicrm_entity_type_id(api_name: str) -> str:
    """Map a CRM API entity name to its content entity type id.

    ``Contact`` -> ``civicrm_contact``, ``ContributionPage`` ->
    ``civicrm_contribution_page``.
    """
    snake = re.sub(r"(?<!^)(?=[A-Z])", "_", api_name).lower()
    return f"civicrm_{snake}"


# ── Metadata Store ─────────────────────────────────────────────────────────


class FieldMetadataStore(ABC):
    """Module-supplied field metadata for exposed entity types."""

    @abstractmethod
    def get_civicrm_entity(self, entity_type_id: str) -> str:
        """CRM API entity name of an exposed entity type."""
        ...

    @abstractmethod
    def get_label(self, entity_type_id: str) -> str:
        """Human-readable label of an exposed entity type."""
        ...

    @abstractmethod
    def get_overrides(self, entity_type_id: str) -> dict[str, dict[str, Any]]:
        """Partial field descriptors keyed by field name."""
        ...

    @abstractmethod
    def get_required_fields(self, entity_type_id: str) -> set[str]:
        """Names of fields that must be required on the content side."""
        ...

    @abstractmethod
    def entity_type_ids(self) -> list[str]:
        """All exposed entity type ids."""
        ...


class SupportedEntitiesStore(FieldMetadataStore):
    """FieldMetadataStore backed by a registry of CivicrmEntityInfo.

    Args:
        registry: Entity type id -> info. Defaults to SUPPORTED_ENTITIES.
    """

    def __init__(self, registry: dict[str, CivicrmEntityInfo] | None = None) -> None:
        self._registry = registry if registry is not None else SUPPORTED_ENTITIES

    def get_info(self, entity_type_id: str) -> CivicrmEntityInfo:
        try:
            return self._registry[entity_type_id]
        except KeyError:
            raise UnknownEntityTypeError(entity_type_id) from None

    def get_civicrm_entity(self, entity_type_id: str) -> str:
        return self.get_info(entity_type_id).civicrm_entity

    def get_label(self, entity_type_id: str) -> str:
        return self.get_info(entity_type_id).label

    def get_overrides(self, entity_type_id: str) -> dict[str, dict[str, Any]]:
        return {name: dict(values) for name, values in self.get_info(entity_type_id).fields.items()}

    def get_required_fields(self, entity_type_id: str) -> set[str]:
        return set(self.get_info(entity_type_id).required)

    def entity_type_ids(self) -> list[str]:
        return list(self._registry)

    def entity_type_for(self, civicrm_entity: str) -> str | None:
        """Reverse lookup: CRM API entity name -> exposed entity type id."""
        for entity_type_id, info in self._registry.items():
            if info.civicrm_entity.lower() == civicrm_entity.lower():
                return entity_type_id
        return None
