from .entity_store import CanvasState, EditorMode, EntityStore

__all__ = ["CanvasState", "EditorMode", "EntityStore"]
