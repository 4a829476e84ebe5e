from fanview.lib.storage.base import StagedUpload, UploadStore
from fanview.lib.storage.local import LocalUploadStore, extension_for

__all__ = ["LocalUploadStore", "StagedUpload", "UploadStore", "extension_for"]
