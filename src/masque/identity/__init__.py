"""Synthetic identity generation."""

from masque.identity.composer import SyntheticIdentityComposer

__all__ = ["SyntheticIdentityComposer"]
