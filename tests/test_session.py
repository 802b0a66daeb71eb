import io

import numpy as np
import pytest
from PIL import Image

from conftest import make_gradient
from enhancer.controllers.session import EnhancerSession
from enhancer.models.errors import EncodeError, NoImageError, ValidationError
from enhancer.models.filter_state import OutputFormat
from enhancer.models.image_model import SourceHandle, SourceImage
from enhancer.services.encode_service import EncodeService
from enhancer.services.render_scheduler import SchedulerState


def _source(width=800, height=600, handle=None):
    return SourceImage.from_pil(make_gradient(width, height), origin=f"memory://{width}x{height}", handle=handle)


def _noisy_source(width=80, height=60):
    rng = np.random.default_rng(7)
    pixels = rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)
    return SourceImage.from_pil(Image.fromarray(pixels), origin="memory://noise")


@pytest.fixture
def rendered():
    return []


@pytest.fixture
def session(clock, rendered):
    s = EnhancerSession(clock=clock, on_render=rendered.append)
    yield s
    s.close()


def test_operations_require_an_image():
    session = EnhancerSession()
    with pytest.raises(NoImageError):
        session.target_size()
    with pytest.raises(NoImageError):
        session.render()
    with pytest.raises(NoImageError) as info:
        session.encode()
    assert info.value.error_code == "NO_IMAGE"


def test_filters_can_be_set_before_loading():
    session = EnhancerSession()
    session.set_filter("brightness", 1.3)
    session.load(_source())
    assert session.state.brightness == 1.3


def test_scale_and_custom_dimensions():
    session = EnhancerSession()
    session.load(_source())
    session.set_filter("scale", 0.5)
    assert session.render().size == (400, 300)
    session.set_custom_dimensions(width=200)
    assert session.render().size == (200, 150)
    session.set_custom_dimensions()
    assert session.render().size == (400, 300)


def test_invalid_input_leaves_state_unchanged():
    session = EnhancerSession()
    session.set_filter("contrast", 1.5)
    before = session.state
    with pytest.raises(ValidationError):
        session.set_filter("contrast", -1)
    with pytest.raises(ValidationError):
        session.set_custom_dimensions(width=5)
    with pytest.raises(ValidationError):
        session.apply_preset("unknown")
    assert session.state == before


def test_load_renders_on_next_frame(session, clock, rendered):
    session.load(_source())
    assert rendered == []
    clock.advance(16)
    assert len(rendered) == 1
    assert rendered[0].size == (800, 600)


def test_slider_burst_renders_once_with_final_value(session, clock, rendered):
    session.load(_source())
    clock.advance(16)
    rendered.clear()
    for value in (0.9, 0.8, 0.7, 0.6, 0.5):
        session.set_filter("scale", value)
        clock.advance(30)
    clock.advance(200)
    assert len(rendered) == 1
    assert rendered[0].size == (400, 300)
    assert session.current_job.state.scale == 0.5


def test_quality_change_does_not_render(session, clock, rendered):
    session.load(_source())
    clock.advance(16)
    session.set_filter("quality", 0.5)
    clock.advance(500)
    assert len(rendered) == 1
    assert session.state.quality == 0.5


def test_preset_renders_immediately(session, clock, rendered):
    session.load(_source())
    clock.advance(16)
    session.apply_preset("vintage")
    clock.advance(16)
    assert len(rendered) == 2
    assert session.current_job.state.contrast == 1.2


def test_sharpening_pass_runs_when_idle(session, clock, rendered):
    session.load(_noisy_source())
    session.set_filter("sharpness", 1.0)
    clock.advance(116)
    base = rendered[-1]
    clock.run_idle()
    sharpened = rendered[-1]
    assert sharpened is not base
    assert sharpened.generation == base.generation
    assert not np.array_equal(sharpened.to_array(), base.to_array())
    # applied once per render
    assert session.enhance() is None


def test_loading_new_image_releases_previous_and_cancels_work(session, clock):
    released = []
    handle = SourceHandle()
    handle.add_finalizer(lambda: released.append("first"))
    session.load(_source(handle=handle))
    session.set_filter("brightness", 1.2)
    assert clock.pending

    session.load(_source(320, 240))
    assert released == ["first"]
    assert handle.released
    clock.advance(16)
    assert session.surface.size == (320, 240)


def test_load_clears_custom_dimensions(session):
    session.load(_source())
    session.set_custom_dimensions(width=100)
    session.load(_source(400, 400))
    assert not session.state.has_custom_dimensions
    assert session.target_size() == (400, 400)


def test_failed_load_keeps_previous_image(session, tmp_path):
    first = session.load(_source())
    with pytest.raises(ValidationError):
        session.load(tmp_path / "missing.png")
    assert session.source is first


def test_encode_flushes_pending_render(session, clock):
    session.load(_source())
    session.set_filter("scale", 0.25)
    out = session.encode(OutputFormat.PNG)
    assert session.surface.size == (200, 150)
    assert out.format == "png"
    assert session.scheduler.state is SchedulerState.IDLE
    assert clock.pending == []


def test_encode_uses_state_format_and_quality(session):
    session.load(_source(40, 30))
    session.set_output("webp", 0.6)
    out = session.encode()
    assert out.mime_type == "image/webp"


def test_encode_failure_keeps_state(clock, monkeypatch):
    encoder = EncodeService()
    session = EnhancerSession(clock=clock, encode_service=encoder)
    session.load(_source(40, 30))
    session.set_filter("saturation", 0.5)
    session.flush()
    state, surface = session.state, session.surface

    def broken(*args, **kwargs):
        raise OSError("no space left")

    monkeypatch.setattr(encoder, "_encode_raster", broken)
    with pytest.raises(EncodeError):
        session.encode("jpeg")
    assert session.state is state
    assert session.surface is surface

    monkeypatch.undo()
    assert session.encode("png").data
    session.close()


def test_scheduled_errors_go_to_on_error(clock):
    errors = []
    session = EnhancerSession(clock=clock, on_error=errors.append)
    session.load(_source(40, 30))

    def failing_render(source, job):
        raise ValidationError("boom")

    session._process.render = failing_render
    clock.advance(16)
    assert len(errors) == 1
    assert errors[0].message == "boom"


def test_close_releases_source(session):
    handle = SourceHandle()
    session.load(_source(handle=handle))
    session.close()
    assert handle.released
    assert session.source is None


def test_encode_without_clock_uses_current_parameters():
    session = EnhancerSession()
    session.load(_source())
    session.render()
    session.set_filter("scale", 0.5)
    out = session.encode(OutputFormat.PNG)
    assert session.surface.size == (400, 300)
    assert session.current_job.state.scale == 0.5
    with Image.open(io.BytesIO(out.data)) as img:
        assert img.size == (400, 300)


def test_flush_without_clock_picks_up_preset():
    session = EnhancerSession()
    session.load(_source(40, 30))
    session.render()
    session.apply_preset("sepia")
    session.flush()
    assert session.current_job.state.tone == "sepia"
    assert session.current_job.state.contrast == 1.1


def test_flush_keeps_current_surface():
    session = EnhancerSession()
    session.load(_source(40, 30))
    surface = session.render()
    session.set_output("png", 0.4)
    assert session.flush() is surface


def test_flush_recovers_after_failed_scheduled_render(clock):
    errors = []
    session = EnhancerSession(clock=clock, on_error=errors.append)
    session.load(_source(40, 30))
    clock.advance(16)
    real_render = session._process.render

    def failing_render(source, job):
        raise ValidationError("boom")

    session._process.render = failing_render
    session.set_custom_dimensions(width=20)
    clock.advance(16)
    assert errors
    session._process.render = real_render
    session.flush()
    assert session.surface.size == (20, 15)
