import json
import logging
import os
import tempfile

import pytest

from skiff.skiff_dialect import (
    EXTENDED,
    PRESETS,
    STANDARD,
    Dialect,
    DialectConfigError,
    Feature,
    Visibility,
)


def test_standard_preset() -> None:
    assert STANDARD.permits_def()
    assert STANDARD.permits_lambda()
    assert STANDARD.permits_load()
    assert not STANDARD.permits_keyword_only_arguments()
    assert not STANDARD.permits_types()
    assert STANDARD.load_visibility() is Visibility.PRIVATE


def test_extended_preset() -> None:
    assert EXTENDED.permits_keyword_only_arguments()
    assert EXTENDED.permits_types()
    assert EXTENDED.load_visibility() is Visibility.PUBLIC
    assert all(EXTENDED.to_dict().values())


def test_named_presets_are_case_insensitive() -> None:
    assert Dialect.named("standard") is STANDARD
    assert Dialect.named("EXTENDED") is EXTENDED
    assert set(PRESETS) == {"standard", "extended"}


def test_unknown_preset_raises() -> None:
    with pytest.raises(DialectConfigError, match="Unknown dialect preset") as e:
        Dialect.named("python")
    assert e.value.problems == ["extended", "standard"]


def test_dialect_is_frozen() -> None:
    with pytest.raises(AttributeError):
        STANDARD.enable_def = False  # type: ignore[misc]


def test_feature_descriptions() -> None:
    assert Feature.LAMBDA.description == "Lambda expressions"
    assert Feature.TYPES.description == "Type annotations"
    assert all(feature.description for feature in Feature)


def test_from_dict_overrides_standard() -> None:
    dialect = Dialect.from_dict({"enable_lambda": False, "enable_types": True})
    assert not dialect.permits_lambda()
    assert dialect.permits_types()
    assert dialect.permits_def()


def test_from_dict_with_preset_and_base() -> None:
    dialect = Dialect.from_dict({"preset": "extended", "enable_load": False})
    assert not dialect.permits_load()
    assert dialect.permits_types()

    dialect = Dialect.from_dict({"enable_def": False}, base=EXTENDED)
    assert not dialect.permits_def()
    assert dialect.load_visibility() is Visibility.PUBLIC


def test_from_dict_collects_all_problems() -> None:
    with pytest.raises(DialectConfigError) as e:
        Dialect.from_dict({"enable_goto": True, "enable_def": "yes"})
    assert len(e.value.problems) == 2
    assert "'enable_goto' is not a dialect flag" in e.value.problems
    assert any("enable_def" in problem for problem in e.value.problems)


def test_from_dict_requires_mapping() -> None:
    with pytest.raises(DialectConfigError, match="must be a dict"):
        Dialect.from_dict(["enable_def"])  # type: ignore[arg-type]


def test_to_dict_round_trips_through_from_dict() -> None:
    assert Dialect.from_dict(EXTENDED.to_dict()) == EXTENDED


def test_load_from_json(caplog: pytest.LogCaptureFixture) -> None:
    with tempfile.NamedTemporaryFile("w+", suffix=".json", delete=False) as tf:
        json.dump({"preset": "standard", "enable_types": True}, tf)
        tf.flush()
        path = tf.name
    try:
        with caplog.at_level(logging.DEBUG, logger="skiff.skiff_dialect"):
            dialect = Dialect.load_from_json(path)
        assert dialect.permits_types()
        assert not dialect.permits_keyword_only_arguments()
        assert "Loaded dialect" in caplog.text
    finally:
        os.remove(path)


def test_load_from_json_invalid_file() -> None:
    with tempfile.NamedTemporaryFile("w+", suffix=".json", delete=False) as tf:
        tf.write("{ not json")
        path = tf.name
    try:
        with pytest.raises(DialectConfigError, match="Failed to load dialect file"):
            Dialect.load_from_json(path)
    finally:
        os.remove(path)


def test_load_from_json_missing_file() -> None:
    with pytest.raises(DialectConfigError):
        Dialect.load_from_json("/nonexistent/dialect.json")
