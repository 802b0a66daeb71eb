import numpy as np
import pytest

from enhancer.models.errors import ValidationError
from enhancer.models.filter_state import EnhancementJob, FilterState
from enhancer.services.process_service import ProcessService


@pytest.fixture
def service():
    return ProcessService()


def _solid(value, alpha=255, shape=(4, 5)):
    arr = np.zeros(shape + (4,), dtype=np.uint8)
    arr[:, :, :3] = value
    arr[:, :, 3] = alpha
    return arr


def _naive_sharpen(arr, s):
    """Reference: explicit loops over interior pixels, reading only from the input."""
    k = [[0, -s, 0], [-s, 1 + 4 * s, -s], [0, -s, 0]]
    h, w = arr.shape[:2]
    out = arr.copy()
    for y in range(1, h - 1):
        for x in range(1, w - 1):
            for c in range(3):
                total = 0.0
                for j in range(3):
                    for i in range(3):
                        total += k[j][i] * float(arr[y + j - 1, x + i - 1, c])
                out[y, x, c] = min(255, max(0, int(np.rint(total))))
    return out


# ---------- Color adjustment ----------
def test_identity_adjustment_keeps_pixels(service, random_rgba):
    adj = service.build_adjustment(1.0, 1.0, 1.0)
    assert adj.is_identity
    assert np.array_equal(service.apply_adjustment(random_rgba, adj), random_rgba)


def test_zero_brightness_is_black_alpha_untouched(service, random_rgba):
    out = service.apply_adjustment(random_rgba, service.build_adjustment(0.0, 1.0, 1.0))
    assert not out[:, :, :3].any()
    assert np.array_equal(out[:, :, 3], random_rgba[:, :, 3])


def test_zero_contrast_collapses_to_midpoint(service, random_rgba):
    out = service.apply_adjustment(random_rgba, service.build_adjustment(1.0, 0.0, 1.0))
    assert np.all(out[:, :, :3] == 128)


def test_zero_saturation_is_grayscale(service, random_rgba):
    out = service.apply_adjustment(random_rgba, service.build_adjustment(1.0, 1.0, 0.0)).astype(int)
    assert np.all(np.abs(out[:, :, 0] - out[:, :, 1]) <= 1)
    assert np.all(np.abs(out[:, :, 1] - out[:, :, 2]) <= 1)


def test_brightness_is_applied_before_contrast(service):
    out = service.apply_adjustment(_solid(200), service.build_adjustment(0.5, 2.0, 1.0))
    # 200 * 0.5 = 100, then (100 - 128) * 2 + 128 = 72
    assert np.all(out[:, :, :3] == 72)


def test_values_are_clipped_between_stages(service):
    out = service.apply_adjustment(_solid(200), service.build_adjustment(2.0, 0.5, 1.0))
    # 400 clips to 255, then (255 - 128) * 0.5 + 128 = 191.5 -> 192
    assert np.all(out[:, :, :3] == 192)


def test_negative_adjustment_rejected(service):
    with pytest.raises(ValidationError):
        service.build_adjustment(-0.1, 1.0, 1.0)


def test_describe_lists_filters_in_order(service):
    assert service.build_adjustment(1.1, 1.2, 0.8).describe() == "brightness(1.1) contrast(1.2) saturate(0.8)"


def test_composite_resizes_to_target(service, gradient):
    arr = service.composite(gradient, (32, 24), service.build_adjustment(1.0, 1.0, 1.0))
    assert arr.shape == (24, 32, 4)
    assert arr.dtype == np.uint8


# ---------- Sharpening ----------
def test_kernel_for_full_strength(service):
    kernel = service.sharpen_kernel(1.0)
    assert kernel[1, 1] == 5
    assert kernel[0, 1] == kernel[1, 0] == kernel[1, 2] == kernel[2, 1] == -1
    assert kernel[0, 0] == kernel[0, 2] == kernel[2, 0] == kernel[2, 2] == 0


def test_zero_strength_is_identity(service, random_rgba):
    assert np.array_equal(service.sharpen(random_rgba, 0.0), random_rgba)


@pytest.mark.parametrize("strength", [0.25, 0.5, 1.0])
def test_border_and_alpha_unchanged(service, random_rgba, strength):
    out = service.sharpen(random_rgba, strength)
    assert np.array_equal(out[0], random_rgba[0])
    assert np.array_equal(out[-1], random_rgba[-1])
    assert np.array_equal(out[:, 0], random_rgba[:, 0])
    assert np.array_equal(out[:, -1], random_rgba[:, -1])
    assert np.array_equal(out[:, :, 3], random_rgba[:, :, 3])


@pytest.mark.parametrize("strength", [0.3, 1.0])
def test_matches_reference_convolution(service, random_rgba, strength):
    assert np.array_equal(service.sharpen(random_rgba, strength), _naive_sharpen(random_rgba, strength))


def test_sharpen_does_not_modify_input(service, random_rgba):
    before = random_rgba.copy()
    service.sharpen(random_rgba, 1.0)
    assert np.array_equal(random_rgba, before)


def test_flat_image_is_unchanged_by_sharpening(service):
    flat = _solid(90, shape=(6, 6))
    assert np.array_equal(service.sharpen(flat, 1.0), flat)


def test_tiny_buffers_pass_through(service):
    tiny = _solid(10, shape=(2, 7))
    assert np.array_equal(service.sharpen(tiny, 1.0), tiny)


def test_strength_out_of_range(service, random_rgba):
    with pytest.raises(ValidationError):
        service.sharpen(random_rgba, 1.5)


# ---------- Sepia ----------
def test_sepia_stays_in_range(service, random_rgba):
    out = service.apply_sepia(random_rgba)
    assert out.dtype == np.uint8
    assert np.array_equal(out[:, :, 3], random_rgba[:, :, 3])


def test_sepia_of_white(service):
    out = service.apply_sepia(_solid(255, alpha=77))
    assert tuple(out[0, 0]) == (255, 255, 239, 77)


def test_sepia_of_known_color(service):
    px = np.array([[[100, 50, 20, 255]]], dtype=np.uint8)
    out = service.apply_sepia(px)
    # 39.3 + 38.45 + 3.78 = 81.53; 34.9 + 34.3 + 3.36 = 72.56; 27.2 + 26.7 + 2.62 = 56.52
    assert tuple(out[0, 0]) == (82, 73, 57, 255)


# ---------- Passes ----------
def test_render_produces_surface_of_job_size(service, source_800x600):
    job = EnhancementJob(state=FilterState(scale=0.5), width=400, height=300, generation=7)
    surface = service.render(source_800x600, job)
    assert surface.size == (400, 300)
    assert surface.generation == 7


def test_render_applies_sepia_tone(service, source_800x600):
    plain = EnhancementJob(state=FilterState(), width=80, height=60, generation=1)
    toned = EnhancementJob(state=FilterState(tone="sepia"), width=80, height=60, generation=2)
    expected = service.apply_sepia(service.render(source_800x600, plain).to_array())
    assert np.array_equal(service.render(source_800x600, toned).to_array(), expected)


def test_enhance_keeps_generation(service, source_800x600):
    job = EnhancementJob(state=FilterState(sharpness=1.0), width=80, height=60, generation=3)
    surface = service.render(source_800x600, job)
    sharpened = service.enhance(surface, 1.0)
    assert sharpened.generation == 3
    assert sharpened.size == surface.size
    assert service.enhance(surface, 0.0) is surface
