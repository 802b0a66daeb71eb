import pytest

from enhancer.models.errors import ValidationError
from enhancer.models.filter_state import (
    ApplyPreset,
    FilterState,
    OutputFormat,
    ResetFilters,
    SetCustomDimensions,
    SetFilter,
    SetOutput,
)
from enhancer.services.filter_service import apply


def test_defaults():
    state = FilterState()
    assert (state.scale, state.brightness, state.contrast, state.saturation, state.sharpness) == (1, 1, 1, 1, 0)
    assert state.quality == 0.85
    assert state.format is OutputFormat.JPEG
    assert not state.has_custom_dimensions


def test_set_filter_returns_new_state():
    state = FilterState()
    new = apply(state, SetFilter("brightness", 1.4))
    assert new.brightness == 1.4
    assert state.brightness == 1.0


@pytest.mark.parametrize(
    "key,value",
    [
        ("scale", 0),
        ("scale", -1),
        ("brightness", -0.1),
        ("contrast", -2),
        ("saturation", -0.5),
        ("sharpness", 1.01),
        ("sharpness", -0.01),
        ("quality", 0),
        ("quality", 1.2),
        ("brightness", "bright"),
        ("brightness", float("nan")),
        ("hue", 1.0),
    ],
)
def test_invalid_filter_values_rejected(key, value):
    state = FilterState()
    with pytest.raises(ValidationError):
        apply(state, SetFilter(key, value))


def test_numeric_strings_are_accepted():
    assert apply(FilterState(), SetFilter("scale", "0.5")).scale == 0.5


def test_custom_dimensions():
    state = apply(FilterState(), SetCustomDimensions(200, None))
    assert (state.custom_width, state.custom_height) == (200, None)
    cleared = apply(state, SetCustomDimensions())
    assert not cleared.has_custom_dimensions


def test_small_custom_dimension_rejected_without_mutation():
    state = apply(FilterState(), SetCustomDimensions(200, 150))
    with pytest.raises(ValidationError):
        apply(state, SetCustomDimensions(200, 9))
    assert (state.custom_width, state.custom_height) == (200, 150)


def test_reset_keeps_output_and_dimensions():
    state = FilterState(scale=2, brightness=0.3, sharpness=0.9, quality=0.4,
                        format=OutputFormat.WEBP, custom_width=100, tone="sepia")
    reset = apply(state, ResetFilters())
    assert reset == FilterState(quality=0.4, format=OutputFormat.WEBP, custom_width=100)


def test_set_output_parses_aliases():
    state = apply(FilterState(), SetOutput(format="JPG", quality=0.5))
    assert state.format is OutputFormat.JPEG
    assert state.quality == 0.5
    with pytest.raises(ValidationError):
        apply(state, SetOutput(format="tiff"))


def test_apply_preset_command():
    state = apply(FilterState(sharpness=0.4), ApplyPreset("vibrant"))
    assert (state.brightness, state.contrast, state.saturation) == (1.1, 1.3, 1.4)
    assert state.sharpness == 0.4


def test_unknown_command():
    with pytest.raises(TypeError):
        apply(FilterState(), object())
