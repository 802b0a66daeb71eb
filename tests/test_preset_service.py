import pytest

from enhancer.models.errors import ValidationError
from enhancer.models.filter_state import FilterState, OutputFormat
from enhancer.services.preset_service import PRESETS, apply_preset, get_preset, preset_names


@pytest.fixture
def edited():
    return FilterState(
        scale=0.5,
        brightness=1.7,
        contrast=0.4,
        saturation=1.9,
        sharpness=0.6,
        quality=0.5,
        format=OutputFormat.PNG,
        custom_width=320,
        custom_height=None,
        tone="sepia",
    )


def test_table_has_all_presets():
    assert preset_names() == ("none", "vintage", "blackwhite", "sepia", "vibrant")


def test_none_resets_to_defaults_keeping_output_settings(edited):
    state = apply_preset(edited, "none")
    assert (state.brightness, state.contrast, state.saturation) == (1, 1, 1)
    assert state.sharpness == 0
    assert state.scale == 1
    assert state.tone is None
    assert state.format is OutputFormat.PNG
    assert state.quality == 0.5
    assert (state.custom_width, state.custom_height) == (320, None)


@pytest.mark.parametrize(
    "name,expected",
    [
        ("vintage", (1.1, 1.2, 0.8, None)),
        ("sepia", (1.1, 1.1, 0.6, "sepia")),
        ("vibrant", (1.1, 1.3, 1.4, None)),
    ],
)
def test_color_presets_overwrite_color_fields(edited, name, expected):
    state = apply_preset(edited, name)
    assert (state.brightness, state.contrast, state.saturation, state.tone) == expected
    # scale, sharpness and custom dimensions are untouched
    assert state.scale == 0.5
    assert state.sharpness == 0.6
    assert state.custom_width == 320


def test_blackwhite_keeps_brightness(edited):
    state = apply_preset(edited, "blackwhite")
    assert state.brightness == 1.7
    assert state.contrast == 1.2
    assert state.saturation == 0
    assert state.tone is None


def test_presets_are_deterministic(edited):
    assert apply_preset(edited, "vintage") == apply_preset(edited, "vintage")


def test_unknown_preset_rejected(edited):
    with pytest.raises(ValidationError):
        apply_preset(edited, "lomo")
    with pytest.raises(ValidationError):
        get_preset("")


def test_every_preset_has_a_title():
    assert all(p.title for p in PRESETS.values())
