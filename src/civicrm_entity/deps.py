"""Wiring helpers that build bridge components from Settings.

Components take their collaborators explicitly; these helpers only fill in
configured defaults for callers that do not need to choose them.
"""

from __future__ import annotations

from src.civicrm_entity.api import CrmApi
from src.civicrm_entity.config import Settings, get_settings
from src.civicrm_entity.metadata import FieldMetadataStore, SupportedEntitiesStore
from src.civicrm_entity.normalizer import ValueNormalizer
from src.civicrm_entity.schema_builder import EntitySchemaBuilder
from src.civicrm_entity.validator import CrossSystemValidator


def get_normalizer(settings: Settings | None = None) -> ValueNormalizer:
    """Normalizer converting between the configured storage and display timezones."""
    settings = settings or get_settings()
    return ValueNormalizer(
        display_timezone=settings.DISPLAY_TIMEZONE,
        storage_timezone=settings.STORAGE_TIMEZONE,
    )


def get_schema_builder(
    api: CrmApi,
    metadata_store: FieldMetadataStore | None = None,
    settings: Settings | None = None,
) -> EntitySchemaBuilder:
    """Schema builder over the supported entities registry by default."""
    settings = settings or get_settings()
    return EntitySchemaBuilder(
        api=api,
        metadata_store=metadata_store or SupportedEntitiesStore(),
        skip_untranslatable=settings.SKIP_UNTRANSLATABLE_FIELDS,
    )


def get_validator(api: CrmApi, settings: Settings | None = None) -> CrossSystemValidator:
    """Validator using the configured normalizer."""
    return CrossSystemValidator(api=api, normalizer=get_normalizer(settings))
