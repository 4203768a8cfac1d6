"""Unit tests for CRM descriptor parsing and FieldDefinitionProvider translation."""

from __future__ import annotations

import pytest

from src.civicrm_entity.field_definitions import (
    CRM_TYPE_BLOB,
    CRM_TYPE_BOOLEAN,
    CRM_TYPE_CCNUM,
    CRM_TYPE_DATE,
    CRM_TYPE_DATETIME,
    CRM_TYPE_EMAIL,
    CRM_TYPE_FLOAT,
    CRM_TYPE_INT,
    CRM_TYPE_MEDIUMBLOB,
    CRM_TYPE_MONEY,
    CRM_TYPE_STRING,
    CRM_TYPE_TEXT,
    CRM_TYPE_TIME,
    CRM_TYPE_TIMESTAMP,
    CRM_TYPE_URL,
    FieldDefinitionProvider,
    SchemaTranslationError,
)
from src.civicrm_entity.schemas import CARDINALITY_UNLIMITED, CrmFieldDescriptor, FieldType


# ── Helpers ────────────────────────────────────────────────────────────────


def _make_descriptor(**overrides) -> CrmFieldDescriptor:
    defaults = {"name": "subject", "api_type": CRM_TYPE_STRING, "title": "Subject"}
    defaults.update(overrides)
    return CrmFieldDescriptor(**defaults)


@pytest.fixture
def provider():
    return FieldDefinitionProvider()


# ── CrmFieldDescriptor.from_api ────────────────────────────────────────────


class TestDescriptorFromApi:
    """getfields entries are read into descriptors."""

    def test_reads_crm_key_names(self):
        descriptor = CrmFieldDescriptor.from_api(
            {
                "name": "employer_id",
                "type": "1",
                "title": "Current Employer",
                "FKApiName": "Contact",
                "api.required": 1,
                "maxlength": "64",
            }
        )

        assert descriptor.api_type == 1
        assert descriptor.fk_entity == "Contact"
        assert descriptor.required is True
        assert descriptor.max_length == 64
        assert descriptor.cardinality == 1

    def test_serialize_means_unlimited(self):
        descriptor = CrmFieldDescriptor.from_api({"name": "tags", "type": 2, "serialize": 1})
        assert descriptor.cardinality == CARDINALITY_UNLIMITED

    def test_explicit_cardinality_wins_over_serialize(self):
        descriptor = CrmFieldDescriptor.from_api(
            {"name": "tags", "type": 2, "serialize": 1, "cardinality": 3}
        )
        assert descriptor.cardinality == 3

    def test_options_list_form(self):
        descriptor = CrmFieldDescriptor.from_api(
            {
                "name": "gender_id",
                "type": 1,
                "options": [{"key": 1, "label": "Female"}, {"key": 2, "label": "Male"}],
            }
        )
        assert descriptor.options == {"1": "Female", "2": "Male"}

    def test_missing_type(self):
        descriptor = CrmFieldDescriptor.from_api({"name": "source_contact_id"})
        assert descriptor.api_type is None
        assert descriptor.options is None

    @pytest.mark.parametrize(
        "raw",
        [
            {"name": "weird", "type": "Blob"},
            {"name": "weird", "type": 2, "options": [{"label": "No key"}]},
            {"name": "weird", "type": 2, "cardinality": "many"},
            {"name": "weird", "type": 2, "maxlength": "wide"},
        ],
    )
    def test_malformed_entry_raises_translation_error(self, raw):
        with pytest.raises(SchemaTranslationError) as exc_info:
            CrmFieldDescriptor.from_api(raw)

        assert exc_info.value.field_name == "weird"
        assert exc_info.value.api_type == raw["type"]


# ── Translation ────────────────────────────────────────────────────────────


class TestFieldDefinitionProvider:
    """CRM type codes map onto content-entity field types."""

    @pytest.mark.parametrize(
        ("api_type", "expected"),
        [
            (CRM_TYPE_INT, FieldType.INTEGER),
            (CRM_TYPE_STRING, FieldType.STRING),
            (CRM_TYPE_CCNUM, FieldType.STRING),
            (CRM_TYPE_TIME, FieldType.STRING),
            (CRM_TYPE_DATE, FieldType.DATETIME),
            (CRM_TYPE_DATETIME, FieldType.DATETIME),
            (CRM_TYPE_BOOLEAN, FieldType.BOOLEAN),
            (CRM_TYPE_TEXT, FieldType.TEXT_LONG),
            (CRM_TYPE_MEDIUMBLOB, FieldType.STRING_LONG),
            (CRM_TYPE_BLOB, FieldType.STRING_LONG),
            (CRM_TYPE_TIMESTAMP, FieldType.TIMESTAMP),
            (CRM_TYPE_FLOAT, FieldType.FLOAT),
            (CRM_TYPE_MONEY, FieldType.DECIMAL),
            (CRM_TYPE_EMAIL, FieldType.EMAIL),
            (CRM_TYPE_URL, FieldType.URI),
        ],
    )
    def test_type_mapping(self, provider, api_type, expected):
        definition = provider.translate(_make_descriptor(api_type=api_type))
        assert definition.type == expected

    @pytest.mark.parametrize("cardinality", [1, 3, CARDINALITY_UNLIMITED])
    @pytest.mark.parametrize(
        "api_type", [CRM_TYPE_INT, CRM_TYPE_STRING, CRM_TYPE_DATETIME, CRM_TYPE_MONEY]
    )
    def test_cardinality_preserved(self, provider, api_type, cardinality):
        definition = provider.translate(
            _make_descriptor(api_type=api_type, cardinality=cardinality)
        )
        assert definition.cardinality == cardinality

    def test_id_is_read_only_integer(self, provider):
        definition = provider.translate(_make_descriptor(name="id", api_type=CRM_TYPE_INT))

        assert definition.type == FieldType.INTEGER
        assert definition.read_only is True
        assert "form" not in definition.display_options
        assert definition.display_configurable["form"] is False

    def test_foreign_key_becomes_entity_reference(self, provider):
        definition = provider.translate(
            _make_descriptor(name="employer_id", api_type=CRM_TYPE_INT, fk_entity="Contact")
        )

        assert definition.type == FieldType.ENTITY_REFERENCE
        assert definition.settings["target_type"] == "civicrm_contact"
        assert definition.main_property == "target_id"

    def test_string_options_become_list_string(self, provider):
        definition = provider.translate(
            _make_descriptor(options={"Individual": "Individual", "Household": "Household"})
        )

        assert definition.type == FieldType.LIST_STRING
        assert definition.settings["allowed_values"] == {
            "Individual": "Individual",
            "Household": "Household",
        }

    def test_integer_options_become_list_integer(self, provider):
        definition = provider.translate(
            _make_descriptor(api_type=CRM_TYPE_INT, options={"1": "Meeting", "2": "Phone Call"})
        )

        assert definition.type == FieldType.LIST_INTEGER
        assert definition.settings["allowed_values"] == {1: "Meeting", 2: "Phone Call"}

    def test_date_and_datetime_settings(self, provider):
        date = provider.translate(_make_descriptor(api_type=CRM_TYPE_DATE))
        datetime_ = provider.translate(_make_descriptor(api_type=CRM_TYPE_DATETIME))

        assert date.settings["datetime_type"] == "date"
        assert datetime_.settings["datetime_type"] == "datetime"
        assert datetime_.is_datetime is True

    def test_money_precision(self, provider):
        definition = provider.translate(_make_descriptor(api_type=CRM_TYPE_MONEY))
        assert definition.settings == {"precision": 20, "scale": 2}

    def test_string_max_length(self, provider):
        assert provider.translate(_make_descriptor()).settings["max_length"] == 255
        assert provider.translate(_make_descriptor(max_length=64)).settings["max_length"] == 64

    def test_missing_type_falls_back_to_string(self, provider):
        definition = provider.translate(_make_descriptor(api_type=None))
        assert definition.type == FieldType.STRING

    def test_required_passed_through(self, provider):
        definition = provider.translate(
            _make_descriptor(api_type=CRM_TYPE_BOOLEAN, required=True)
        )
        assert definition.required is True

    def test_label_and_description(self, provider):
        definition = provider.translate(
            _make_descriptor(title=None, description="What the activity is about")
        )

        assert definition.label == "subject"
        assert definition.description == "What the activity is about"

    def test_unknown_type_raises(self, provider):
        with pytest.raises(SchemaTranslationError) as exc_info:
            provider.translate(_make_descriptor(name="mystery", api_type=99999))

        assert exc_info.value.field_name == "mystery"
        assert exc_info.value.api_type == 99999
        assert "mystery" in str(exc_info.value)
