from typing import BinaryIO

from azure.storage.blob import BlobServiceClient, ContentSettings

from ..config import settings
from .provider import StorageProvider


class BlobStorageProvider(StorageProvider):
    def __init__(self) -> None:
        if not settings.azure_blob_connection or not settings.azure_blob_container:
            raise RuntimeError("AZURE_BLOB_CONNECTION and AZURE_BLOB_CONTAINER must be set")
        self._service = BlobServiceClient.from_connection_string(settings.azure_blob_connection)
        self._container = settings.azure_blob_container

    def upload(self, key: str, data: bytes | BinaryIO, content_type: str) -> None:
        client = self._service.get_blob_client(self._container, key.lstrip("/"))
        client.upload_blob(data, overwrite=True, content_settings=ContentSettings(content_type=content_type))

    def public_url(self, key: str) -> str:
        # Container is expected to allow anonymous blob reads, checklist photos are linked directly
        return self._service.get_blob_client(self._container, key.lstrip("/")).url
