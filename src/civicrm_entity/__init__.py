"""CiviCRM entity bridge -- CRM records exposed as content entities.

Provides:
- EntitySchemaBuilder / FieldDefinitionProvider: CRM getfields -> field schema
- ValueNormalizer: entity field values -> CRM API params
- CrossSystemValidator: local + CRM validation with label-mapped messages
- CivicrmEntity: generic entity with loop-guarded save/delete
- CivicrmPostHook: CRM post events -> content-side CRUD hooks
- CiviCrmApi3: CrmApi over an APIv3 transport

Architecture: the CRM API transport and the content persistence engine are
injected collaborators (Transport, EntityStorage); nothing here looks up
services globally.
"""

from src.civicrm_entity.api import ApiTransportError, CiviCrmApi3, CrmApi
from src.civicrm_entity.entity import (
    CivicrmEntity,
    EntityStorage,
    FieldItemList,
    LifecycleInvariantViolation,
)
from src.civicrm_entity.field_definitions import (
    FieldDefinitionProvider,
    SchemaTranslationError,
)
from src.civicrm_entity.hooks import CivicrmPostHook, HookResult
from src.civicrm_entity.metadata import (
    SUPPORTED_ENTITIES,
    FieldMetadataStore,
    SupportedEntitiesStore,
)
from src.civicrm_entity.normalizer import ValueNormalizer
from src.civicrm_entity.schema_builder import EntitySchemaBuilder
from src.civicrm_entity.validator import CrossSystemValidator

__all__ = [
    "ApiTransportError",
    "CiviCrmApi3",
    "CrmApi",
    "CivicrmEntity",
    "EntityStorage",
    "FieldItemList",
    "LifecycleInvariantViolation",
    "FieldDefinitionProvider",
    "SchemaTranslationError",
    "CivicrmPostHook",
    "HookResult",
    "SUPPORTED_ENTITIES",
    "FieldMetadataStore",
    "SupportedEntitiesStore",
    "ValueNormalizer",
    "EntitySchemaBuilder",
    "CrossSystemValidator",
]
