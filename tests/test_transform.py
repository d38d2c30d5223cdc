import pytest

from manga_redraw.editor.transform import (DisplayGeometry, ViewportTransform,
                                           image_to_screen, screen_to_image)

VIEWPORTS = [
    ViewportTransform(),
    ViewportTransform(scale=2.0, tx=10.0, ty=20.0),
    ViewportTransform(scale=0.35, tx=-120.5, ty=33.25),
    ViewportTransform(scale=7.5, tx=0.0, ty=-400.0),
]

GEOMETRIES = [
    DisplayGeometry.unscaled(200, 100),
    DisplayGeometry(200, 100, 100.0, 50.0, origin_x=5.0, origin_y=5.0),
    DisplayGeometry(1200, 1700, 613.0, 868.5, origin_x=-12.0, origin_y=88.0),
]

POINTS = [(0.0, 0.0), (10.0, 10.0), (199.5, 99.5), (-30.0, 250.25), (63.7, 0.001)]


@pytest.mark.parametrize("viewport", VIEWPORTS)
@pytest.mark.parametrize("geometry", GEOMETRIES)
def test_round_trip(viewport, geometry):
    for point in POINTS:
        x, y = screen_to_image(image_to_screen(point, viewport, geometry), viewport, geometry)
        assert x == pytest.approx(point[0], abs=1e-9)
        assert y == pytest.approx(point[1], abs=1e-9)


def test_screen_to_image_applies_pan_zoom_then_buffer_ratio():
    viewport = ViewportTransform(scale=2.0, tx=10.0, ty=20.0)
    geometry = DisplayGeometry(200, 100, 100.0, 50.0, origin_x=5.0, origin_y=5.0)

    assert screen_to_image((115.0, 125.0), viewport, geometry) == (100.0, 100.0)


def test_identity_transform():
    geometry = DisplayGeometry.unscaled(50, 50)
    assert screen_to_image((12.0, 7.0), ViewportTransform(), geometry) == (12.0, 7.0)


def test_zoom_at_keeps_anchor_fixed():
    viewport = ViewportTransform(scale=1.5, tx=4.0, ty=-3.0)
    geometry = DisplayGeometry(300, 200, 150.0, 100.0, origin_x=20.0, origin_y=10.0)
    anchor = (90.0, 60.0)
    before = screen_to_image(anchor, viewport, geometry)

    viewport.zoom_at(1.25, anchor, (geometry.origin_x, geometry.origin_y))

    after = screen_to_image(anchor, viewport, geometry)
    assert viewport.scale == pytest.approx(1.875)
    assert after[0] == pytest.approx(before[0])
    assert after[1] == pytest.approx(before[1])


def test_zoom_is_clamped():
    viewport = ViewportTransform(min_scale=0.5, max_scale=4.0)
    viewport.zoom_at(100.0, (0.0, 0.0))
    assert viewport.scale == 4.0
    viewport.zoom_at(0.001, (0.0, 0.0))
    assert viewport.scale == 0.5


def test_pan_and_reset():
    viewport = ViewportTransform()
    viewport.pan(5.0, -2.0)
    viewport.pan(1.0, 1.0)
    assert (viewport.tx, viewport.ty) == (6.0, -1.0)
    viewport.reset()
    assert (viewport.scale, viewport.tx, viewport.ty) == (1.0, 0.0, 0.0)


def test_invalid_values_are_rejected():
    with pytest.raises(ValueError):
        ViewportTransform(scale=0)
    with pytest.raises(ValueError):
        DisplayGeometry(100, 100, 0.0, 10.0)
    with pytest.raises(ValueError):
        ViewportTransform().zoom_at(-1.0, (0.0, 0.0))
