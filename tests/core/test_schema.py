"""Tests for the JSON Schema backed validator."""

import copy

import pytest
from jsonschema.exceptions import SchemaError

from faceex.core.config_loader import load_config
from faceex.core.schema import (
    SchemaValidator, ValidationMessage, config_validator, format_path, keyframe_validator,
)


@pytest.fixture
def document():
    return copy.deepcopy(load_config("default_config.json"))


def test_default_config_is_valid(document):
    validator = config_validator()
    assert validator.validate(document)
    assert validator.errors() == []


def test_description_with_digits_rejected(document):
    document["actionUnits"][0]["description"] = "Brow 2"
    validator = config_validator()
    assert not validator.validate(document)
    paths = [e.path for e in validator.errors()]
    assert "actionUnits.0.description" in paths


def test_missing_action_units_reported_at_root():
    validator = config_validator()
    assert not validator.validate({"expressions": []})
    errors = validator.errors()
    assert errors[0].path == "<root>"
    assert "actionUnits" in errors[0].message


def test_strength_out_of_range(document):
    document["actionUnits"][0]["blendshapes"][0]["browInnerUp"][0] = 2.5
    validator = config_validator()
    assert not validator.validate(document)
    assert [e.path for e in validator.errors()] == ["actionUnits.0.blendshapes.0.browInnerUp.0"]


def test_strength_curve_needs_five_values(document):
    document["actionUnits"][0]["blendshapes"][0]["browInnerUp"] = [0.5, 1.0]
    validator = config_validator()
    assert not validator.validate(document)


def test_every_error_is_listed(document):
    document["actionUnits"][0]["number"] = "1234"
    document["actionUnits"][1]["prefix"] = "AUX"
    validator = config_validator()
    assert not validator.validate(document)
    paths = {e.path for e in validator.errors()}
    assert paths == {"actionUnits.0.number", "actionUnits.1.prefix"}


def test_errors_refer_to_latest_validation(document):
    validator = config_validator()
    assert not validator.validate({})
    assert validator.errors()
    assert validator.validate(document)
    assert validator.errors() == []


def test_errors_with_document_revalidates():
    validator = config_validator()
    errors = validator.errors({"actionUnits": []})
    assert len(errors) == 1
    assert errors[0].path == "actionUnits"


def test_subschema_validates_single_item():
    validator = config_validator().subschema("properties", "actionUnits", "items")
    assert validator.validate({"number": "12", "blendshapes": [{"mouthSmile_L": [0.2, 0.4, 0.6, 0.8, 1]}]})
    assert not validator.validate({"number": "12"})


def test_keyframe_schema():
    validator = keyframe_validator()
    record = {"position": 0, "duration": 0, "influences": [0.0] * 52, "thumbnail": "AAAA"}
    assert validator.validate(record)
    record["influences"] = [0.0] * 51
    assert not validator.validate(record)
    assert validator.errors()[0].path == "influences"


def test_keyframe_duration_bounds():
    validator = keyframe_validator()
    record = {"position": 1, "duration": 100001, "influences": [0.0] * 52, "thumbnail": "AAAA"}
    assert not validator.validate(record)
    record["duration"] = 100000
    assert validator.validate(record)


def test_generic_over_schema():
    validator = SchemaValidator({"type": "object", "required": ["a"]})
    assert validator.validate({"a": 1})
    assert not validator.validate({"b": 1})


def test_broken_schema_rejected():
    with pytest.raises(SchemaError):
        SchemaValidator({"type": 5})


def test_message_formatting():
    assert format_path([]) == "<root>"
    assert format_path(["actionUnits", 3, "number"]) == "actionUnits.3.number"
    assert str(ValidationMessage("a.b", "is wrong")) == "a.b: is wrong"
