"""Declarative base re-export and model registration."""

from exam_scheduler.models.base.base_model import Base


def import_models() -> None:
    """Import every model module so its table is registered on Base.metadata."""
    import exam_scheduler.models  # noqa: F401


__all__ = ["Base", "import_models"]
