"""
Tests for configuration-driven mapping creation.
"""

import logging

import pytest

from morph.mapping import (
    CompiledMapping,
    DEFAULT_MAPPING_LIMITS,
    LimitExceededError,
    MappingConfig,
    MappingLimits,
    ParseError,
    create_mapping,
    load_mapping_config,
)

CONFIG_LOGGER = "morph.mapping.config"


def warnings_for(caplog, message: str) -> list[str]:
    """Helper returning the `field` of every matching warning record."""
    return [
        record.field
        for record in caplog.records
        if record.levelno == logging.WARNING and record.getMessage() == message
    ]


class TestCreateMapping:
    """Tests for create_mapping() with dicts and models."""

    def test_from_dict(self):
        compiled = create_mapping({"mapping": "rename .a -> .b"})
        assert isinstance(compiled, CompiledMapping)
        assert compiled.apply({"a": 1}) == {"b": 1}
        assert compiled.limits == DEFAULT_MAPPING_LIMITS

    def test_from_model(self):
        config = MappingConfig(mapping="drop .a", name="dropper")
        assert create_mapping(config).apply({"a": 1, "b": 2}) == {"b": 2}

    def test_with_functions(self):
        compiled = create_mapping(
            {"mapping": "set .x = twice(2)"},
            functions={"twice": lambda args, ctx: args[0] * 2},
        )
        assert compiled.apply({}) == {"x": 4}

    def test_camel_case_limits(self):
        compiled = create_mapping(
            {"mapping": "drop .a", "limits": {"maxAstDepth": 8, "maxStatements": 3}}
        )
        assert compiled.limits.max_ast_depth == 8
        assert compiled.limits.max_statements == 3
        assert compiled.limits.max_ast_nodes == DEFAULT_MAPPING_LIMITS.max_ast_nodes

    def test_snake_case_limits(self):
        compiled = create_mapping(
            {"mapping": "drop .a", "limits": {"max_function_args": 4}}
        )
        assert compiled.limits.max_function_args == 4

    def test_limits_instance(self):
        limits = MappingLimits(max_statements=10)
        compiled = create_mapping({"mapping": "drop .a", "limits": limits})
        assert compiled.limits is limits

    def test_limits_are_enforced(self):
        with pytest.raises(LimitExceededError, match="max_statements"):
            create_mapping({"mapping": "drop .a\ndrop .b", "limits": {"maxStatements": 1}})

    def test_mapping_errors_propagate(self):
        with pytest.raises(ParseError):
            create_mapping({"mapping": "rename .a"})

    def test_logs_creation(self, caplog):
        caplog.set_level(logging.DEBUG, logger=CONFIG_LOGGER)
        create_mapping({"mapping": "drop .a", "name": "cleanup"})

        records = [r for r in caplog.records if r.getMessage() == "mapping_created"]
        assert len(records) == 1
        assert records[0].mapping_name == "cleanup"
        assert records[0].statement_count == 1


class TestValidation:
    """Tests for invalid configurations."""

    def test_none_is_rejected(self):
        with pytest.raises(ValueError, match="requires a configuration"):
            create_mapping(None)

    @pytest.mark.parametrize("mapping", [None, "", "   \n"])
    def test_mapping_is_required(self, mapping):
        with pytest.raises(ValueError, match="requires a non-empty mapping"):
            create_mapping({"mapping": mapping})

    def test_name_must_be_string(self):
        with pytest.raises(ValueError, match="name must be a string"):
            create_mapping({"mapping": "drop .a", "name": 3})

    def test_warn_flag_must_be_boolean(self):
        with pytest.raises(ValueError, match="warnOnUnknownFields must be a boolean"):
            create_mapping({"mapping": "drop .a", "warnOnUnknownFields": "yes"})

    def test_limits_must_be_object(self):
        with pytest.raises(ValueError, match="limits must be an object"):
            create_mapping({"mapping": "drop .a", "limits": [1, 2]})

    @pytest.mark.parametrize("value", [0, -1, "10", True, 1.5])
    def test_limit_values_must_be_positive_integers(self, value):
        with pytest.raises(ValueError, match="maxAstDepth must be a positive integer"):
            create_mapping({"mapping": "drop .a", "limits": {"max_ast_depth": value}})


class TestUnknownFields:
    """Tests for unknown field warnings."""

    def test_unknown_config_field_warns(self, caplog):
        caplog.set_level(logging.WARNING, logger=CONFIG_LOGGER)
        create_mapping({"mapping": "drop .a", "mappings": "oops"})
        assert warnings_for(caplog, "unknown_mapping_config_field") == ["mappings"]

    def test_unknown_limit_field_warns(self, caplog):
        caplog.set_level(logging.WARNING, logger=CONFIG_LOGGER)
        create_mapping({"mapping": "drop .a", "limits": {"maxDepth": 3}})
        assert warnings_for(caplog, "unknown_mapping_limit_field") == ["maxDepth"]

    def test_warnings_can_be_disabled(self, caplog):
        caplog.set_level(logging.WARNING, logger=CONFIG_LOGGER)
        create_mapping(
            {
                "mapping": "drop .a",
                "warn_on_unknown_fields": False,
                "extra": 1,
                "limits": {"bogus": 1},
            }
        )
        assert warnings_for(caplog, "unknown_mapping_config_field") == []
        assert warnings_for(caplog, "unknown_mapping_limit_field") == []

    def test_model_extras_are_reported(self, caplog):
        caplog.set_level(logging.WARNING, logger=CONFIG_LOGGER)
        create_mapping(MappingConfig(mapping="drop .a", colour="blue"))
        assert warnings_for(caplog, "unknown_mapping_config_field") == ["colour"]


class TestYamlConfig:
    """Tests for YAML configuration text."""

    def test_load_mapping_config(self):
        config = load_mapping_config(
            "name: people\n"
            "warnOnUnknownFields: false\n"
            "mapping: |\n"
            "  rename .name -> .username\n"
            "  where .age > 18\n"
            "limits:\n"
            "  maxAstDepth: 16\n"
        )
        assert config.name == "people"
        assert config.warn_on_unknown_fields is False
        assert config.limits == {"maxAstDepth": 16}
        assert "where .age > 18" in config.mapping

    def test_create_mapping_from_yaml(self):
        compiled = create_mapping(
            "mapping: |\n  rename .name -> .username\n  where .age > 18\n"
        )
        people = [{"name": "a", "age": 20}, {"name": "b", "age": 5}]
        assert compiled.apply(people) == [{"username": "a", "age": 20}]

    def test_json_is_accepted(self):
        compiled = create_mapping('{"mapping": "drop .a"}')
        assert compiled.apply({"a": 1}) == {}

    def test_empty_text_is_rejected(self):
        with pytest.raises(ValueError, match="mapping configuration is empty"):
            load_mapping_config("")

    def test_non_object_is_rejected(self):
        with pytest.raises(ValueError, match="must be an object"):
            load_mapping_config("- drop .a\n")
