"""Shared fixtures for the CiviCRM entity bridge tests.

Provides:
- A mock CrmApi answering getfields for Contact and Activity with realistic
  CiviCRM APIv3 descriptors
- Schema builder over the supported entities registry
- Built contact/activity schemas
- A mock EntityStorage
"""

from __future__ import annotations

import copy
from unittest.mock import MagicMock

import pytest

from src.civicrm_entity.api import CrmApi
from src.civicrm_entity.entity import CivicrmEntity, EntityStorage
from src.civicrm_entity.metadata import SupportedEntitiesStore
from src.civicrm_entity.schema_builder import EntitySchemaBuilder


CONTACT_FIELDS = [
    {"name": "id", "type": 1, "title": "Contact ID", "required": True},
    {
        "name": "contact_type",
        "type": 2,
        "title": "Contact Type",
        "options": {
            "Individual": "Individual",
            "Organization": "Organization",
            "Household": "Household",
        },
    },
    {"name": "organization_name", "type": 2, "title": "Organization Name", "maxlength": 128},
    {"name": "email", "type": 2, "title": "Email Address"},
    {"name": "birth_date", "type": 4, "title": "Birth Date"},
    {"name": "is_deleted", "type": 16, "title": "Contact is in Trash"},
    {"name": "employer_id", "type": 1, "title": "Current Employer", "FKApiName": "Contact"},
    {
        "name": "preferred_communication_method",
        "type": 2,
        "title": "Preferred Communication Method",
        "serialize": 1,
        "options": {"1": "Phone", "2": "Email", "3": "Postal Mail"},
    },
    {"name": "custom_7", "type": 2, "title": "Favourite Colour"},
]

ACTIVITY_FIELDS = [
    {"name": "id", "type": 1, "title": "Activity ID"},
    {
        "name": "activity_type_id",
        "type": 1,
        "title": "Activity Type",
        "options": {"1": "Meeting", "2": "Phone Call"},
    },
    {"name": "subject", "type": 2, "title": "Subject"},
    {"name": "activity_date_time", "type": 12, "title": "Activity Date"},
    {"name": "duration", "type": 1, "title": "Duration"},
    {"name": "source_contact_id", "title": "Activity Source Contact"},
    {"name": "details", "type": 32, "title": "Details"},
]

CUSTOM_7_METADATA = {"id": 7, "custom_group_id": 3, "html_type": "Text", "is_searchable": 1}

GET_FIELDS = {"Contact": CONTACT_FIELDS, "Activity": ACTIVITY_FIELDS}


@pytest.fixture
def mock_api():
    """Mock CrmApi with Contact/Activity getfields and no CRM violations."""
    api = MagicMock(spec=CrmApi)
    api.get_fields.side_effect = lambda entity, action="create": copy.deepcopy(GET_FIELDS[entity])
    api.get_custom_field_metadata.side_effect = (
        lambda name: dict(CUSTOM_7_METADATA) if name == "custom_7" else {}
    )
    api.validate.return_value = {}
    return api


@pytest.fixture
def metadata_store():
    return SupportedEntitiesStore()


@pytest.fixture
def builder(mock_api, metadata_store):
    return EntitySchemaBuilder(mock_api, metadata_store)


@pytest.fixture
def contact_schema(builder):
    return builder.build_schema("civicrm_contact")


@pytest.fixture
def activity_schema(builder):
    return builder.build_schema("civicrm_activity")


@pytest.fixture
def mock_storage():
    """Mock content-entity storage engine."""
    return MagicMock(spec=EntityStorage)


@pytest.fixture
def make_contact(contact_schema, mock_storage):
    """Factory for contact entities over the mock storage."""

    def _make(**values) -> CivicrmEntity:
        return CivicrmEntity(contact_schema, mock_storage, values)

    return _make


@pytest.fixture
def make_activity(activity_schema, mock_storage):
    """Factory for activity entities over the mock storage."""

    def _make(**values) -> CivicrmEntity:
        return CivicrmEntity(activity_schema, mock_storage, values)

    return _make


@pytest.fixture
def contact_fields():
    """Contact getfields descriptors as the mock API returns them."""
    return copy.deepcopy(CONTACT_FIELDS)


@pytest.fixture
def activity_fields():
    """Activity getfields descriptors as the mock API returns them."""
    return copy.deepcopy(ACTIVITY_FIELDS)


@pytest.fixture
def custom_7_metadata():
    return dict(CUSTOM_7_METADATA)
