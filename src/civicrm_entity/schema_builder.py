"""Entity schema builder -- CRM getfields output -> EntityTypeSchema.

For each exposed entity type:
1. Fetch creatable field descriptors from the CRM API (API order is kept).
2. Merge module-supplied overrides over each descriptor (override wins).
3. Translate via FieldDefinitionProvider; untranslatable fields are logged
   and skipped unless the builder is told to abort.
4. Mark required fields from the module's required set.
5. Attach custom field metadata as the opaque
   ``civicrm_entity_field_metadata`` setting.
6. Append the computed ``activity_end_datetime`` field for activities.
"""

from __future__ import annotations

from typing import Callable

import structlog

from src.civicrm_entity.api import CrmApi
from src.civicrm_entity.field_definitions import (
    FieldDefinitionProvider,
    SchemaTranslationError,
)
from src.civicrm_entity.metadata import FieldMetadataStore
from src.civicrm_entity.schemas import (
    CrmFieldDescriptor,
    EntityFieldDefinition,
    EntityTypeSchema,
    FieldType,
)

logger = structlog.get_logger(__name__)

ACTIVITY_ENTITY_TYPE_ID = "civicrm_activity"
ACTIVITY_END_FIELD = "activity_end_datetime"
CUSTOM_FIELD_METADATA_SETTING = "civicrm_entity_field_metadata"


def activity_end_datetime_definition() -> EntityFieldDefinition:
    """Computed end date/time of an activity (start + duration).

    The value is supplied by an external field-computation collaborator; the
    field only declares its shape and display.
    """
    return EntityFieldDefinition(
        name=ACTIVITY_END_FIELD,
        type=FieldType.DATETIME,
        label="Activity End Date",
        settings={"datetime_type": "datetime"},
        computed=True,
        read_only=True,
        display_options={"view": {"type": "datetime_default", "weight": 0}},
        display_configurable={"form": False},
    )


class EntitySchemaBuilder:
    """Builds EntityTypeSchema values from the CRM API and module metadata.

    Args:
        api: CRM API used to fetch field descriptors and custom field metadata.
        metadata_store: Module-supplied overrides and required-field sets.
        field_definition_provider: Descriptor -> definition translator.
        skip_untranslatable: Skip unknown or malformed fields with a warning
            (default) instead of propagating SchemaTranslationError.
    """

    def __init__(
        self,
        api: CrmApi,
        metadata_store: FieldMetadataStore,
        field_definition_provider: FieldDefinitionProvider | None = None,
        skip_untranslatable: bool = True,
    ) -> None:
        self._api = api
        self._metadata = metadata_store
        self._provider = field_definition_provider or FieldDefinitionProvider()
        self._skip_untranslatable = skip_untranslatable

    def build_schema(self, entity_type_id: str) -> EntityTypeSchema:
        """Build the field schema of one exposed entity type.

        Raises:
            ApiTransportError: A CRM API call failed.
            SchemaTranslationError: Unknown or malformed field and skipping is
                disabled.
        """
        civicrm_entity = self._metadata.get_civicrm_entity(entity_type_id)
        required_fields = self._metadata.get_required_fields(entity_type_id)
        overrides = self._metadata.get_overrides(entity_type_id)

        fields: dict[str, EntityFieldDefinition] = {}
        for raw in self._api.get_fields(civicrm_entity, "create"):
            name = raw["name"]
            if name in overrides:
                raw = {**raw, **overrides[name]}

            try:
                definition = self._provider.translate(CrmFieldDescriptor.from_api(raw))
            except SchemaTranslationError as exc:
                if not self._skip_untranslatable:
                    raise
                logger.warning(
                    "schema.field_skipped",
                    entity_type_id=entity_type_id,
                    field_name=name,
                    api_type=exc.api_type,
                    error=str(exc),
                )
                continue

            definition = definition.model_copy(update={"required": name in required_fields})

            custom_metadata = self._api.get_custom_field_metadata(name)
            if custom_metadata:
                definition = definition.with_setting(CUSTOM_FIELD_METADATA_SETTING, custom_metadata)

            fields[name] = definition

        if entity_type_id == ACTIVITY_ENTITY_TYPE_ID:
            fields[ACTIVITY_END_FIELD] = activity_end_datetime_definition()

        logger.debug(
            "schema.built",
            entity_type_id=entity_type_id,
            civicrm_entity=civicrm_entity,
            field_count=len(fields),
        )

        return EntityTypeSchema(
            entity_type_id=entity_type_id,
            civicrm_entity=civicrm_entity,
            label=self._metadata.get_label(entity_type_id),
            fields=fields,
        )

    def build_all(
        self,
        register: Callable[[EntityTypeSchema], None] | None = None,
        entity_type_ids: list[str] | None = None,
    ) -> dict[str, EntityTypeSchema]:
        """Build every exposed entity type, handing each schema to ``register``.

        Args:
            register: Entity-type registration callback, called once per schema
                in build order.
            entity_type_ids: Restrict the build to these types. Defaults to all
                types the metadata store exposes.

        Returns:
            Dict of entity type id -> schema.
        """
        schemas: dict[str, EntityTypeSchema] = {}
        for entity_type_id in entity_type_ids or self._metadata.entity_type_ids():
            schema = self.build_schema(entity_type_id)
            schemas[entity_type_id] = schema
            if register is not None:
                register(schema)

        logger.info("schema.build_all_complete", entity_types=len(schemas))
        return schemas
