"""
Image storage backends.

Processed images are stored through a single interface, ImageStorage, with
two interchangeable implementations:

  - LocalImageStorage: files in a local directory, served by the app as
    static files under UPLOAD_URL_PREFIX (e.g. /uploads/<filename>)
  - AzureBlobImageStorage: blobs in an Azure Storage container with public
    blob read access

The backend is chosen once at process start by build_storage() from the
settings. Route handlers depend on get_storage() and never check which
backend they got.

Only the key (the generated filename) is persisted on the card row. URLs are
derived from the key with url_for() whenever a card is read.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from azure.core.exceptions import ResourceExistsError
from azure.storage.blob import BlobServiceClient, ContentSettings
from fastapi.concurrency import run_in_threadpool

from cardsets.config import Settings, settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredImage:
    key: str
    url: str


class ImageStorage(ABC):
    """A place to put processed image bytes and address them afterwards."""

    @abstractmethod
    async def store(self, data: bytes, filename: str) -> StoredImage:
        ...

    @abstractmethod
    def url_for(self, key: str) -> str:
        ...


class LocalImageStorage(ImageStorage):
    def __init__(self, directory: str | Path, url_prefix: str = "/uploads"):
        self.directory = Path(directory)
        self.url_prefix = url_prefix.rstrip("/")
        self.directory.mkdir(parents=True, exist_ok=True)

    def _write(self, data: bytes, filename: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        (self.directory / filename).write_bytes(data)

    async def store(self, data: bytes, filename: str) -> StoredImage:
        await run_in_threadpool(self._write, data, filename)
        logger.info("Stored %s (%d bytes) in %s", filename, len(data), self.directory)
        return StoredImage(key=filename, url=self.url_for(filename))

    def url_for(self, key: str) -> str:
        return f"{self.url_prefix}/{key}"


class AzureBlobImageStorage(ImageStorage):
    def __init__(self, connection_string: str, container_name: str = "uploads"):
        # Raises ValueError for a malformed connection string
        service = BlobServiceClient.from_connection_string(connection_string)
        self.container = service.get_container_client(container_name)
        self._container_ready = False

    def _ensure_container(self) -> None:
        if self._container_ready:
            return
        try:
            self.container.create_container(public_access="blob")
            logger.info("Created blob container %s", self.container.container_name)
        except ResourceExistsError:
            pass
        self._container_ready = True

    def _upload(self, data: bytes, filename: str) -> None:
        self._ensure_container()
        self.container.upload_blob(
            name=filename,
            data=data,
            overwrite=True,
            content_settings=ContentSettings(content_type="image/jpeg"),
        )

    async def store(self, data: bytes, filename: str) -> StoredImage:
        await run_in_threadpool(self._upload, data, filename)
        logger.info("Uploaded %s (%d bytes) to container %s",
                    filename, len(data), self.container.container_name)
        return StoredImage(key=filename, url=self.url_for(filename))

    def url_for(self, key: str) -> str:
        return self.container.get_blob_client(key).url


def build_storage(config: Settings) -> ImageStorage | None:
    """
    Select the storage backend from configuration.

    Returns None when a connection string is configured but unusable: reads
    then report null image URLs and uploads fail with an internal error.
    """
    if config.AZURE_STORAGE_CONNECTION_STRING:
        try:
            storage = AzureBlobImageStorage(
                config.AZURE_STORAGE_CONNECTION_STRING,
                config.AZURE_CONTAINER_NAME,
            )
        except ValueError:
            logger.error("AZURE_STORAGE_CONNECTION_STRING is invalid; image storage disabled")
            return None
        logger.info("Image storage: Azure container %s", config.AZURE_CONTAINER_NAME)
        return storage

    logger.info("Image storage: local directory %s", config.UPLOAD_DIR)
    return LocalImageStorage(config.UPLOAD_DIR, config.UPLOAD_URL_PREFIX)


@lru_cache
def get_storage() -> ImageStorage | None:
    """FastAPI dependency: the process-wide storage backend."""
    return build_storage(settings)


def resolve_image(storage: ImageStorage | None, filename: str | None) -> dict | None:
    """Display object for a stored image filename; url is None without a backend."""
    if not filename:
        return None
    url = storage.url_for(filename) if storage is not None else None
    return {"filename": filename, "url": url}
