from storage.gateway import Storage

__all__ = ["Storage"]
