"""Signature merging and manual parameter entries."""

from cmdprobe.signatures.manual_store import ManualEntryStore
from cmdprobe.signatures.merger import merge, merge_all, merge_signature

__all__ = ["ManualEntryStore", "merge", "merge_all", "merge_signature"]
