from __future__ import annotations

from record_migrator.models.migration import LookupStrategy, Operation
from record_migrator.models.schema import EntityField
from record_migrator.services.mapping_builder import build_default_config


def _fields():
    return [
        EntityField("accountid", "UniqueidentifierType", "Account", is_primary_id=True),
        EntityField("name", "StringType", "Account Name", is_primary_name=True),
        EntityField("ownerid", "OwnerType", "Owner", targets=["systemuser", "team"]),
        EntityField("parentaccountid", "LookupType", "Parent Account"),
    ]


def test_primary_id_is_disabled():
    config = build_default_config("account", _fields())
    enabled = [m.source_field for m in config.enabled_field_mappings]
    assert enabled == ["name", "ownerid", "parentaccountid"]


def test_lookups_default_to_first_target():
    config = build_default_config("account", _fields())

    owner = config.get_lookup_mapping("ownerid")
    assert owner.target_entity == "systemuser"
    assert owner.strategy == LookupStrategy.AUTO
    assert owner.field_display_name == "Owner"


def test_lookup_without_targets_has_empty_target_entity():
    config = build_default_config("account", _fields())
    assert config.get_lookup_mapping("parentaccountid").target_entity == ""


def test_defaults_and_overrides():
    config = build_default_config("account", _fields())
    assert config.entity_display_name == "account"
    assert config.operations == [Operation.CREATE]

    config = build_default_config(
        "account", _fields(), entity_display_name="Account",
        operations=[Operation.CREATE, Operation.UPDATE], batch_size=25,
    )
    assert config.entity_display_name == "Account"
    assert config.operations == [Operation.CREATE, Operation.UPDATE]
    assert config.batch_size == 25
    config.validate()
