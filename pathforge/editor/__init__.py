"""
Editing session: state tree, editing context, history and previews.
"""

from .context import ROOT, EditingContext, LayerContext, RootContext
from .history import HistoryManager
from .image_editor import DownloadResult, EditorCallbacks, EditorConfig, ImageEditor
from .preview import PreviewOrchestrator
from .scheduler import AsyncioScheduler, Debouncer, ManualScheduler, Scheduler, TimerHandle

__all__ = [
    'ROOT',
    'EditingContext',
    'LayerContext',
    'RootContext',
    'HistoryManager',
    'DownloadResult',
    'EditorCallbacks',
    'EditorConfig',
    'ImageEditor',
    'PreviewOrchestrator',
    'AsyncioScheduler',
    'Debouncer',
    'ManualScheduler',
    'Scheduler',
    'TimerHandle',
]
