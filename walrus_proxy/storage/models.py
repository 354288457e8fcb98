"""Pydantic models for Walrus publisher responses (``PUT /v1/blobs``)."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class _WalrusModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class StorageInfo(_WalrusModel):
    id: str
    start_epoch: int = Field(alias="startEpoch")
    end_epoch: int = Field(alias="endEpoch")
    storage_size: int = Field(alias="storageSize")


class BlobObject(_WalrusModel):
    id: str
    blob_id: str = Field(alias="blobId")
    registered_epoch: int | None = Field(default=None, alias="registeredEpoch")
    certified_epoch: int | None = Field(default=None, alias="certifiedEpoch")
    size: int = 0
    encoding_type: str | None = Field(default=None, alias="encodingType")
    storage: StorageInfo | None = None
    deletable: bool = False


class NewlyCreated(_WalrusModel):
    blob_object: BlobObject = Field(alias="blobObject")
    cost: int = 0


class EventRef(_WalrusModel):
    tx_digest: str = Field(alias="txDigest")
    event_seq: str = Field(alias="eventSeq")


class AlreadyCertified(_WalrusModel):
    blob_id: str = Field(alias="blobId")
    end_epoch: int | None = Field(default=None, alias="endEpoch")
    event: EventRef | None = None


class BlobStoreResponse(_WalrusModel):
    """Exactly one of the two branches is set by a well-behaved publisher."""

    newly_created: NewlyCreated | None = Field(default=None, alias="newlyCreated")
    already_certified: AlreadyCertified | None = Field(default=None, alias="alreadyCertified")

    @property
    def blob_id(self) -> str | None:
        if self.newly_created is not None:
            return self.newly_created.blob_object.blob_id
        if self.already_certified is not None:
            return self.already_certified.blob_id
        return None


class BlobInfo(BaseModel):
    blob_id: str
    gateway_url: str
    browser_url: str
