from cmdprobe.storage.json_store import JsonDocumentStore

__all__ = ["JsonDocumentStore"]
