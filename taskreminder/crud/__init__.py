from .task import task

__all__ = ["task"]
