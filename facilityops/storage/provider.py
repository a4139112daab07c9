from typing import BinaryIO


class StorageProvider:
    def upload(self, key: str, data: bytes | BinaryIO, content_type: str) -> None:
        raise NotImplementedError

    def public_url(self, key: str) -> str:
        raise NotImplementedError
