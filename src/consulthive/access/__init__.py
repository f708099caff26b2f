"""Access guard: one decision function for every entry point."""

from consulthive.access.guard import AccessClass, decide

__all__ = ["AccessClass", "decide"]
