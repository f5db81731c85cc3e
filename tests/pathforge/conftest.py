"""Test fixtures for PathForge.

Editor tests run on a ManualScheduler, so debounce windows only elapse when
a test advances the virtual clock. Preview URL generation uses a recording
fake instead of a network client.
"""

import asyncio
from typing import Optional

import pytest

from pathforge.config import Settings
from pathforge.editor import EditorCallbacks, EditorConfig, ImageEditor, ManualScheduler
from pathforge.models import Dimensions, ImageLayer


class FakeUrlGenerator:
    """Records calls and returns ``https://imagor.test/unsafe/<path>``."""

    def __init__(self):
        self.calls: list[tuple[str, str]] = []
        self.error: Optional[Exception] = None
        # When set, generate_url blocks until the event is set
        self.gate: Optional[asyncio.Event] = None

    async def generate_url(self, image_path: str, imagor_path: str) -> str:
        self.calls.append((image_path, imagor_path))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return f"https://imagor.test/unsafe/{imagor_path}"

    @property
    def paths(self) -> list[str]:
        return [path for _, path in self.calls]


class RecordingCallbacks(EditorCallbacks):
    """EditorCallbacks that keep every notification."""

    def __init__(self):
        self.previews: list[str] = []
        self.errors: list[Exception] = []
        self.states: list = []
        self.loading: list[bool] = []
        self.history_changes = 0
        super().__init__(
            on_preview_update=self.previews.append,
            on_error=self.errors.append,
            on_state_change=self.states.append,
            on_loading_change=self.loading.append,
            on_history_change=self._count_history,
        )

    def _count_history(self):
        self.history_changes += 1


@pytest.fixture
def test_settings() -> Settings:
    """Settings with the default timings."""
    return Settings()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def url_generator() -> FakeUrlGenerator:
    return FakeUrlGenerator()


@pytest.fixture
def callbacks() -> RecordingCallbacks:
    return RecordingCallbacks()


@pytest.fixture
def editor(scheduler, url_generator, callbacks, test_settings) -> ImageEditor:
    """Initialized editor on a 1920x1080 base image."""
    editor = ImageEditor(
        EditorConfig(image_path='test-image.jpg', original_dimensions=Dimensions(width=1920, height=1080)),
        scheduler=scheduler,
        url_generator=url_generator,
        settings=test_settings,
    )
    editor.initialize(callbacks)
    return editor


def _make_layer(layer_id: str = 'layer-1', **kwargs) -> ImageLayer:
    data = {
        'id': layer_id,
        'imagePath': 'overlay.jpg',
        'originalDimensions': {'width': 800, 'height': 600},
        'x': 0,
        'y': 0,
        'name': 'Test Layer',
    }
    data.update(kwargs)
    return ImageLayer.from_api_dict(data)


@pytest.fixture
def make_layer():
    """Factory for 800x600 overlay layers: make_layer('id', x=100, ...)."""
    return _make_layer
