"""Headless canvas: command layer and pointer interaction."""

from .editor import GraphEditor
from .interaction import (
    InteractionController,
    InteractionState,
    HitKind,
    HitTarget,
    PointerEvent,
    ResizeCorner,
    PendingConnection,
)

__all__ = [
    'GraphEditor',
    'InteractionController',
    'InteractionState',
    'HitKind',
    'HitTarget',
    'PointerEvent',
    'ResizeCorner',
    'PendingConnection',
]
