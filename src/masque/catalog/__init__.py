"""Browser identity template catalog."""

from masque.catalog.store import TemplateStore

__all__ = ["TemplateStore"]
