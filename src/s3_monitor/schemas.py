# In src/s3_monitor/schemas.py

from typing import Any, TypedDict

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from .exceptions import InvalidS3EventError

# --- Static Type Hinting (for mypy and IDEs) ---


class S3BucketDict(TypedDict):
    name: str


class S3ObjectDict(TypedDict, total=False):
    key: str
    size: int
    eTag: str
    versionId: str
    sequencer: str


class S3DataDict(TypedDict):
    bucket: S3BucketDict
    object: S3ObjectDict


class S3EventRecord(TypedDict, total=False):
    """
    A TypedDict representing the structure of a single S3 event record.
    Used for static type analysis throughout the application.
    """

    eventVersion: str
    eventSource: str
    awsRegion: str
    eventTime: str
    eventName: str
    s3: S3DataDict


# --- Runtime Validation (using Pydantic) ---


class S3BucketModel(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str = Field(..., min_length=1)


class S3ObjectModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    key: str = Field(..., min_length=1)
    # Delete notifications carry no size.
    size: int | None = None
    version_id: str | None = Field(None, alias="versionId")
    sequencer: str | None = None


class S3DataModel(BaseModel):
    model_config = ConfigDict(extra="allow")

    bucket: S3BucketModel
    object: S3ObjectModel


class S3EventNotificationRecord(BaseModel):
    """
    Pydantic model for runtime parsing and validation of an S3 event record.
    Only the fields needed for logging are declared; the raw record is what
    gets emitted.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    event_source: str | None = Field(None, alias="eventSource")
    event_name: str = Field(..., alias="eventName", min_length=1)
    aws_region: str | None = Field(None, alias="awsRegion")
    s3: S3DataModel


def parse_s3_event(event: dict[str, Any]) -> list[S3EventRecord]:
    """
    Validates every record of an S3 notification event and returns the raw
    records unchanged, in order.

    Raises InvalidS3EventError when the event has no ``Records`` list or any
    record fails validation; a partially valid batch is never emitted.
    """
    records = event.get("Records")
    if records is None or not isinstance(records, list):
        raise InvalidS3EventError(
            "Event does not contain a 'Records' list",
            context={"event_keys": sorted(event.keys())},
        )

    for index, record in enumerate(records):
        try:
            S3EventNotificationRecord.model_validate(record)
        except pydantic.ValidationError as e:
            raise InvalidS3EventError(
                f"S3 record at index {index} failed validation",
                context={
                    "record_index": index,
                    "validation_errors": e.errors(include_url=False),
                },
            ) from e

    return records
