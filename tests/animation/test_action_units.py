"""Tests for Action Unit and Expression value types."""

import pytest

from faceex.animation.action_units import ActionUnit, Expression, au_number


def _smile():
    return ActionUnit.with_default_strengths("AU", "12", "Lip Corner Puller", ["mouthSmile_L", "mouthSmile_R"])


def test_au_number():
    assert au_number("AU12") == 12
    assert au_number("12A") == 12
    assert au_number("012") == 12
    assert au_number("smile") is None


def test_default_strengths_per_channel():
    au = _smile()
    assert au.key == "AU12"
    assert au.channels == {
        "mouthSmile_L": [0.2, 0.4, 0.6, 0.8, 1.0],
        "mouthSmile_R": [0.2, 0.4, 0.6, 0.8, 1.0],
    }


def test_curves_are_independent_copies():
    au = _smile()
    au.set_strengths("mouthSmile_L", [0.1, 0.2, 0.3, 0.4, 0.5])
    assert au.channels["mouthSmile_R"] == [0.2, 0.4, 0.6, 0.8, 1.0]


def test_matches_by_number():
    au = _smile()
    assert au.matches("AU12")
    assert au.matches("12")
    assert au.matches("X12")
    assert not au.matches("AU1")


def test_values_at_level():
    au = _smile()
    assert au.values_at_level(0) == {"mouthSmile_L": 0.0, "mouthSmile_R": 0.0}
    assert au.values_at_level(1)["mouthSmile_L"] == 0.2
    assert au.values_at_level(5)["mouthSmile_R"] == 1.0
    with pytest.raises(ValueError):
        au.values_at_level(6)


def test_peak_values():
    au = ActionUnit("AU", "6", "", [{"cheekSquint_L": [0.15, 0.3, 0.45, 0.6, 0.75]}])
    assert au.peak_values() == {"cheekSquint_L": 0.75}


def test_set_strengths_unknown_channel():
    assert not _smile().set_strengths("jawOpen", [0, 0, 0, 0, 0])


def test_dict_layout_preserved():
    d = {
        "prefix": "AU",
        "number": "4",
        "description": "Brow Lowerer",
        "blendshapes": [{"browDown_L": [0.2, 0.4, 0.6, 0.8, 1]}, {"browDown_R": [0.1, 0.2, 0.3, 0.4, 0.5]}],
    }
    au = ActionUnit.from_dict(d)
    assert au.to_dict() == d
    assert set(au.channels) == {"browDown_L", "browDown_R"}


def test_from_dict_defaults():
    au = ActionUnit.from_dict({"number": 7, "blendshapes": [{"eyeSquint_L": [0, 0, 0, 0, 1]}]})
    assert au.prefix == ""
    assert au.number == "7"
    assert au.description == ""


def test_expression_dict():
    expr = Expression.from_dict({"identifier": "Happiness", "actionUnits": ["AU6", "AU12"]})
    assert expr.action_units == ["AU6", "AU12"]
    assert expr.to_dict() == {"identifier": "Happiness", "actionUnits": ["AU6", "AU12"]}
