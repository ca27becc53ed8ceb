# src/logship/shipping/stores/azure_blob.py
"""Azure Blob Storage RemoteObjectStore.

Each actor's log is one block blob in the configured container. Appending
is a full download followed by a full upload. The upload is conditional on
the ETag seen at download time (or on the blob still not existing), so a
concurrent writer from another process surfaces as RemoteWriteConflict
instead of silently losing lines.

Azure Blob SDK calls are EXTERNAL SYSTEM calls: every SDK error is wrapped
into the logship error taxonomy. SDK exceptions are matched by class name so
the SDK is imported only when a client is created.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Self, cast

from pydantic import BaseModel, ValidationError, field_validator, model_validator

from logship.contracts.errors import (
    ObjectNotFound,
    ObjectTooLarge,
    RemoteWriteConflict,
    StoreConfigurationError,
    TransientNetworkFailure,
)

if TYPE_CHECKING:
    from azure.storage.blob import BlobServiceClient, ContainerClient


class AzureBlobStoreOptions(BaseModel):
    """Options for the azure_blob object store.

    Supports three authentication methods (mutually exclusive):
    1. connection_string
    2. sas_token + account_url
    3. use_managed_identity + account_url

    Example configuration:

        object_store:
          name: azure_blob
          options:
            container: app-logs
            connection_string: "${AZURE_STORAGE_CONNECTION_STRING}"
    """

    model_config = {"extra": "forbid", "frozen": True}

    container: str
    connection_string: str | None = None
    sas_token: str | None = None
    use_managed_identity: bool = False
    account_url: str | None = None

    @field_validator("container")
    @classmethod
    def validate_container(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("container cannot be empty")
        return v

    @model_validator(mode="after")
    def validate_auth_method(self) -> Self:
        """Ensure exactly one auth method is configured."""
        has_account_url = _is_set(self.account_url)
        methods = {
            "connection_string": _is_set(self.connection_string),
            "sas_token": _is_set(self.sas_token),
            "managed_identity": self.use_managed_identity,
        }
        active = [name for name, enabled in methods.items() if enabled]

        if not active:
            raise ValueError(
                "No authentication method configured. Provide one of: "
                "connection_string, sas_token + account_url, or use_managed_identity + account_url"
            )
        if len(active) > 1:
            raise ValueError(f"Multiple authentication methods configured: {', '.join(active)}")
        if active[0] != "connection_string" and not has_account_url:
            raise ValueError(f"{active[0]} auth requires account_url, e.g. https://myaccount.blob.core.windows.net")
        return self

    @property
    def auth_method(self) -> str:
        if _is_set(self.connection_string):
            return "connection_string"
        if _is_set(self.sas_token):
            return "sas_token"
        return "managed_identity"

    def create_blob_service_client(self) -> BlobServiceClient:
        """Create a BlobServiceClient using the configured auth method."""
        from azure.storage.blob import BlobServiceClient

        if self.auth_method == "connection_string":
            return BlobServiceClient.from_connection_string(cast(str, self.connection_string))

        account_url = cast(str, self.account_url).rstrip("/")
        if self.auth_method == "sas_token":
            sas_token = cast(str, self.sas_token)
            sas = sas_token if sas_token.startswith("?") else f"?{sas_token}"
            return BlobServiceClient(f"{account_url}{sas}")

        from azure.identity import DefaultAzureCredential

        return BlobServiceClient(account_url, credential=DefaultAzureCredential())


def _is_set(value: str | None) -> bool:
    """Whitespace-only strings count as unset."""
    return value is not None and bool(value.strip())


class AzureBlobObjectStore:
    """RemoteObjectStore backed by an Azure Blob Storage container."""

    _name = "azure_blob"

    def __init__(self) -> None:
        self._options: AzureBlobStoreOptions | None = None
        self._service_client: BlobServiceClient | None = None
        self._container_client: ContainerClient | None = None
        # ETag observed by the last read of each key; None means "did not exist"
        self._etags: dict[str, str | None] = {}
        self._etag_lock = threading.Lock()

    @property
    def name(self) -> str:
        return self._name

    def configure(self, options: dict[str, Any]) -> None:
        try:
            self._options = AzureBlobStoreOptions(**options)
        except ValidationError as e:
            raise StoreConfigurationError(self._name, str(e)) from e

    def _get_container_client(self) -> ContainerClient:
        if self._options is None:
            raise RuntimeError("AzureBlobObjectStore used before configure()")
        if self._container_client is None:
            self._service_client = self._options.create_blob_service_client()
            self._container_client = self._service_client.get_container_client(self._options.container)
        return self._container_client

    def read(self, key: str, *, max_bytes: int, timeout: float) -> bytes:
        try:
            blob_client = self._get_container_client().get_blob_client(key)
            properties = blob_client.get_blob_properties(timeout=timeout)
            if properties.size > max_bytes:
                raise ObjectTooLarge(key, properties.size, max_bytes)
            downloader = blob_client.download_blob(timeout=timeout, etag=properties.etag, match_condition=_if_not_modified())
            data = downloader.readall()
        except ObjectTooLarge:
            raise
        except Exception as e:
            if type(e).__name__ == "ResourceNotFoundError":
                self._remember_etag(key, None)
                raise ObjectNotFound(key) from e
            if type(e).__name__ == "ResourceModifiedError":
                raise RemoteWriteConflict(key) from e
            raise TransientNetworkFailure("read", key, str(e)) from e

        self._remember_etag(key, properties.etag)
        return bytes(data)

    def write(self, key: str, data: bytes, metadata: Mapping[str, str], *, timeout: float) -> None:
        from azure.storage.blob import ContentSettings

        blob_metadata = {k: v for k, v in metadata.items() if k != "content_type"}
        content_settings = ContentSettings(content_type=metadata.get("content_type", "text/plain"))

        with self._etag_lock:
            known = key in self._etags
            etag = self._etags.get(key)

        kwargs: dict[str, Any] = {}
        if known and etag is not None:
            kwargs["etag"] = etag
            kwargs["match_condition"] = _if_not_modified()
            overwrite = True
        else:
            # Observed as absent: must not clobber a blob created meanwhile.
            # Never read: unconditional write.
            overwrite = not known

        try:
            blob_client = self._get_container_client().get_blob_client(key)
            result = blob_client.upload_blob(
                data,
                overwrite=overwrite,
                metadata=blob_metadata,
                content_settings=content_settings,
                timeout=timeout,
                **kwargs,
            )
        except Exception as e:
            if type(e).__name__ in ("ResourceModifiedError", "ResourceExistsError"):
                self._forget_etag(key)
                raise RemoteWriteConflict(key) from e
            raise TransientNetworkFailure("write", key, str(e)) from e

        new_etag = result.get("etag") if isinstance(result, Mapping) else None
        if new_etag is not None:
            self._remember_etag(key, new_etag)
        else:
            self._forget_etag(key)

    def _remember_etag(self, key: str, etag: str | None) -> None:
        with self._etag_lock:
            self._etags[key] = etag

    def _forget_etag(self, key: str) -> None:
        with self._etag_lock:
            self._etags.pop(key, None)

    def close(self) -> None:
        if self._service_client is not None:
            self._service_client.close()
        self._service_client = None
        self._container_client = None


def _if_not_modified() -> Any:
    from azure.core import MatchConditions

    return MatchConditions.IfNotModified
