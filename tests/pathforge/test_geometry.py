"""Tests for layer position, snapping, resize and placement math."""

import pytest

from pathforge.geometry import (
    Padding,
    Rect,
    ResizeHandle,
    SnapTarget,
    ViewportInfo,
    calculate_layer_image_dimensions,
    calculate_layer_position,
    calculate_optimal_layer_positioning,
    calculate_visible_image_area,
    convert_display_to_layer_position,
    convert_preview_to_output_coordinates,
    resize_rect,
    resolve_axis,
    rotate_padding,
    snap_axis,
    snap_edge,
    snap_rect,
)
from pathforge.models import CENTER, Absolute, Dimensions, Edge, EdgeAligned


class TestPositionResolution:
    """Tests for resolving layer positions to canvas pixels."""

    def test_negative_offset_from_far_edge(self):
        """x=-200 with a 200px layer on 1000px resolves to 600px."""
        assert resolve_axis(Absolute(-200), 200, 1000, Edge.LEFT, Edge.RIGHT) == 600

    def test_keywords(self):
        """Keywords resolve against canvas and layer size."""
        assert resolve_axis(EdgeAligned(Edge.LEFT), 200, 1000, Edge.LEFT, Edge.RIGHT) == 0
        assert resolve_axis(EdgeAligned(Edge.RIGHT), 200, 1000, Edge.LEFT, Edge.RIGHT) == 800
        assert resolve_axis(CENTER, 200, 1000, Edge.LEFT, Edge.RIGHT) == 400

    def test_outside_offsets(self):
        """left-N / right-N place the layer N px outside the edge."""
        assert resolve_axis(EdgeAligned(Edge.LEFT, 20), 200, 1000, Edge.LEFT, Edge.RIGHT) == -20
        assert resolve_axis(EdgeAligned(Edge.RIGHT, 20), 200, 1000, Edge.LEFT, Edge.RIGHT) == 820

    def test_foreign_keyword_falls_back(self):
        """A y keyword on the x axis uses the fallback."""
        assert resolve_axis(EdgeAligned(Edge.TOP), 200, 1000, Edge.LEFT, Edge.RIGHT, fallback=15) == 15
        assert resolve_axis(None, 200, 1000, Edge.LEFT, Edge.RIGHT, fallback=7) == 7

    def test_layer_position_percentages(self):
        """Placement is reported in pixels and percent of the canvas."""
        placement = calculate_layer_position(Absolute(-200), CENTER, 200, 100, 1000, 500)
        assert placement.left_px == 600
        assert placement.left_percent == pytest.approx(60)
        assert placement.top_px == 200
        assert placement.top_percent == pytest.approx(40)

    def test_right_keyword_differs_from_negative_offset(self):
        """The right keyword resolves flush, not at the numeric offset."""
        placement = calculate_layer_position(EdgeAligned(Edge.RIGHT), CENTER, 200, 100, 1000, 500)
        assert placement.left_percent == pytest.approx(80)


class TestPadding:
    """Tests for rotation-aware padding."""

    def test_rotate_90(self):
        """At 90 degrees top->left, right->top, bottom->right, left->bottom."""
        assert rotate_padding(1, 2, 3, 4, 90) == Padding(left=3, top=2, right=4, bottom=1)

    def test_rotate_180(self):
        """At 180 degrees opposite sides swap."""
        assert rotate_padding(1, 2, 3, 4, 180) == Padding(left=2, top=4, right=1, bottom=3)

    def test_rotate_270(self):
        """270 degrees is the inverse of 90."""
        assert rotate_padding(1, 2, 3, 4, 270) == Padding(left=4, top=1, right=3, bottom=2)

    def test_no_rotation(self):
        """Without rotation padding is unchanged."""
        assert rotate_padding(1, 2, 3, 4, None) == Padding(left=1, top=3, right=2, bottom=4)

    def test_image_dimensions_subtract_padding(self):
        """Padding is only removed when a fill color is set."""
        assert calculate_layer_image_dimensions(220, 120, 10, 10, 10, 10, None, 'white') == (200, 100)
        assert calculate_layer_image_dimensions(220, 120, 10, 10, 10, 10, None) == (220, 120)

    def test_image_dimensions_rotated(self):
        """Rotation by 90 swaps the recovered size back."""
        assert calculate_layer_image_dimensions(120, 220, 10, 10, 10, 10, 90, 'white') == (200, 100)


class TestDisplayConversion:
    """Tests for convert_display_to_layer_position."""

    CANVAS = Dimensions(width=1000, height=500)

    def _convert(self, display, current_x, current_y, **kwargs):
        return convert_display_to_layer_position(
            display, 500, 250, self.CANVAS, kwargs.pop('padding', Padding()), kwargs.pop('rotation', None),
            current_x, current_y, **kwargs
        )

    def test_inside_canvas(self):
        """Display pixels scale to canvas pixels."""
        update = self._convert(Rect(50, 25, 100, 50), Absolute(0), Absolute(0))
        assert update.width == 200
        assert update.height == 100
        assert update.x == Absolute(100)
        assert update.y == Absolute(50)

    def test_near_edge_outside(self):
        """Dragging past the left edge stores an outside offset."""
        update = self._convert(Rect(-10, 0, 100, 50), Absolute(0), Absolute(0))
        assert update.x == EdgeAligned(Edge.LEFT, 20)
        assert update.y == Absolute(0)

    def test_far_edge_inside(self):
        """Far-anchored layers keep a negative offset inside the canvas."""
        update = self._convert(Rect(200, 0, 100, 50), Absolute(-50), Absolute(0))
        assert update.x == Absolute(-400)

    def test_far_edge_flush_and_outside(self):
        """Flush becomes the bare keyword, beyond becomes right-N."""
        update = self._convert(Rect(400, 0, 100, 50), EdgeAligned(Edge.RIGHT), Absolute(0))
        assert update.x == EdgeAligned(Edge.RIGHT)
        update = self._convert(Rect(450, 0, 100, 50), EdgeAligned(Edge.RIGHT), Absolute(0))
        assert update.x == EdgeAligned(Edge.RIGHT, 100)

    def test_centered_axis_not_moved(self):
        """Centered axes keep their keyword."""
        update = self._convert(Rect(50, 25, 100, 50), CENTER, Absolute(0))
        assert update.x is None
        assert update.y == Absolute(50)

    def test_padding_removed_from_size(self):
        """The layer's own padding is subtracted from the transform size."""
        update = self._convert(
            Rect(0, 0, 110, 60), Absolute(0), Absolute(0),
            padding=Padding(left=10, top=10, right=10, bottom=10), fill_color='white',
        )
        assert (update.width, update.height) == (200, 100)

    def test_to_layer_updates(self):
        """Updates map to update_layer keyword data."""
        update = self._convert(Rect(50, 25, 100, 50), Absolute(0), CENTER)
        assert update.to_layer_updates() == {
            'x': Absolute(100),
            'transforms': {'width': 200, 'height': 100},
        }


class TestSnapping:
    """Tests for edge and center snapping."""

    def test_edge_snap_threshold_is_strict(self):
        """7px snaps to the edge, 8px does not."""
        assert snap_axis(7, 100, 1000, 8, 2) == (0, SnapTarget.START)
        assert snap_axis(8, 100, 1000, 8, 2) == (8, None)

    def test_far_edge_snap(self):
        """The far edge snaps the layer flush to the canvas end."""
        assert snap_axis(893, 100, 1000, 8, 2) == (900, SnapTarget.END)

    def test_center_snap(self):
        """Centers within the percentage snap to the midpoint."""
        assert snap_axis(445, 100, 1000, 8, 2) == (450, SnapTarget.CENTER)
        assert snap_axis(300, 100, 1000, 8, 2) == (300, None)

    def test_edge_beats_center(self):
        """Edge snapping wins when both apply."""
        assert snap_axis(3, 94, 100, 8, 10) == (0, SnapTarget.START)

    def test_default_thresholds(self):
        """Thresholds default to the settings."""
        assert snap_axis(5, 100, 1000) == (0, SnapTarget.START)

    def test_snap_rect(self):
        """Axes snap independently."""
        result = snap_rect(Rect(4, 300, 100, 100), 1000, 1000, 8, 2)
        assert result.x == 0
        assert result.snapped_x == SnapTarget.START
        assert result.y == 300
        assert result.snapped_y is None

    def test_snap_edge(self):
        """A moving edge snaps to either canvas bound."""
        assert snap_edge(5, 1000, 8) == (0, True)
        assert snap_edge(996, 1000, 8) == (1000, True)
        assert snap_edge(500, 1000, 8) == (500, False)


class TestResize:
    """Tests for handle-driven resize."""

    START = Rect(100, 100, 200, 100)

    def test_free_resize_east(self):
        """The east handle only changes the width."""
        assert resize_rect(ResizeHandle.E, self.START, 50, 0) == Rect(100, 100, 250, 100)

    def test_aspect_locked_east(self):
        """With aspect lock the width drives the height."""
        assert resize_rect('e', self.START, 50, 0, aspect_ratio=2.0) == Rect(100, 100, 250, 125)

    def test_north_west_anchors_bottom_right(self):
        """Corner handles keep the opposite corner fixed."""
        assert resize_rect(ResizeHandle.NW, self.START, -20, -10) == Rect(80, 90, 220, 110)

    def test_aspect_locked_north_keeps_bottom_right(self):
        """The north handle under aspect lock keeps the bottom-right corner."""
        assert resize_rect(ResizeHandle.N, self.START, 0, -20, aspect_ratio=2.0) == Rect(60, 80, 240, 120)

    def test_aspect_locked_south_keeps_top_left(self):
        """The south handle under aspect lock keeps the top-left corner."""
        assert resize_rect(ResizeHandle.S, self.START, 0, 20, aspect_ratio=2.0) == Rect(100, 100, 240, 120)

    def test_aspect_locked_west_keeps_bottom_right(self):
        """The west handle under aspect lock keeps the bottom-right corner."""
        assert resize_rect(ResizeHandle.W, self.START, -40, 0, aspect_ratio=2.0) == Rect(60, 80, 240, 120)

    def test_minimum_size(self):
        """Sizes never drop below the minimum."""
        result = resize_rect(ResizeHandle.E, self.START, -190, 0, min_size=20)
        assert result.width == 20
        assert result.x == 100

    def test_snap_to_canvas_edge(self):
        """A moving edge near the canvas bound snaps to it."""
        result = resize_rect(ResizeHandle.E, self.START, 95, 0, canvas_width=400, snap_threshold=8)
        assert result.width == 300

    def test_snap_reapplies_aspect(self):
        """A snapped width drives the locked height."""
        result = resize_rect(ResizeHandle.E, self.START, 95, 0, aspect_ratio=2.0,
                             canvas_width=400, snap_threshold=8)
        assert result.width == 300
        assert result.height == 150


class TestPlacement:
    """Tests for initial layer placement."""

    def test_small_layer_not_upscaled(self):
        """Layers smaller than the area keep their size."""
        rect = calculate_optimal_layer_positioning(Dimensions(width=800, height=600),
                                                   Dimensions(width=1920, height=1080))
        assert rect == Rect(0, 0, 800, 600)

    def test_center_positioning(self):
        """Centered placement is relative to the area."""
        rect = calculate_optimal_layer_positioning(Dimensions(width=800, height=600),
                                                   Dimensions(width=1920, height=1080),
                                                   positioning='center')
        assert (rect.x, rect.y) == (560, 240)

    def test_large_layer_scaled(self):
        """Large layers fit 90% of the area."""
        rect = calculate_optimal_layer_positioning(Dimensions(width=4000, height=2000),
                                                   Dimensions(width=1920, height=1080))
        assert (rect.width, rect.height) == (1728, 864)

    def test_visible_area(self):
        """The visible area is clipped to the preview image."""
        viewport = ViewportInfo(scroll_left=500, scroll_top=250, client_width=600, client_height=300,
                                image_dimensions=Dimensions(width=1000, height=500))
        assert calculate_visible_image_area(viewport) == Rect(0, 0, 600, 300)

    def test_preview_to_output(self):
        """Preview rectangles scale to output pixels."""
        result = convert_preview_to_output_coordinates(
            Rect(10, 20, 30, 40), Dimensions(width=500, height=250), Dimensions(width=1000, height=500)
        )
        assert result == Rect(20, 40, 60, 80)

    def test_viewport_placement_in_output_pixels(self):
        """With a viewport the result is converted back to output pixels."""
        viewport = ViewportInfo(scroll_left=500, scroll_top=250, client_width=1000, client_height=500,
                                image_dimensions=Dimensions(width=1000, height=500))
        rect = calculate_optimal_layer_positioning(Dimensions(width=100, height=50),
                                                   Dimensions(width=2000, height=1000), viewport)
        assert rect == Rect(0, 0, 200, 100)
