"""Partial-update support."""

from .json_patch import PatchError, PatchOperation, PatchResult, apply_patch

__all__ = ["PatchError", "PatchOperation", "PatchResult", "apply_patch"]
