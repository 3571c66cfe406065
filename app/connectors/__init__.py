"""
app/connectors package marker.
"""

from app.connectors.base import BaseSubmitter, ProgressReader, RemoteServiceNotConfiguredError
from app.connectors.folder_store_submitter import FolderImageSubmitter
from app.connectors.user_directory_submitter import UserDirectorySubmitter

__all__ = [
    "BaseSubmitter",
    "FolderImageSubmitter",
    "ProgressReader",
    "RemoteServiceNotConfiguredError",
    "UserDirectorySubmitter",
]
