from .object_storage_port import ObjectStoragePort

__all__ = ["ObjectStoragePort"]
