# src/s3_monitor/endpoint.py

"""
Resolves the collector URL for this function.

There is no configuration store available at deployment time, so the
function's description field doubles as storage for the collector URL.
"""

import logging
from functools import lru_cache
from typing import Optional

import boto3
import pydantic
from pydantic import HttpUrl, TypeAdapter

from .clients import LambdaMetadataClient
from .exceptions import InvalidCollectorUrlError

logger = logging.getLogger(__name__)

_HTTP_URL = TypeAdapter(HttpUrl)


@lru_cache(maxsize=8)
def get_metadata_client(region: str) -> LambdaMetadataClient:
    """Returns a cached metadata client for *region* (reused across warm invocations)."""
    return LambdaMetadataClient(boto3.client("lambda", region_name=region), region)


def validate_collector_url(url: Optional[str], function_name: str = "") -> str:
    """
    Returns *url* stripped of surrounding whitespace if it is an absolute
    http(s) URL, otherwise raises InvalidCollectorUrlError.
    """
    if url is None or not url.strip():
        raise InvalidCollectorUrlError(
            function_name, url, "function description is empty"
        )

    candidate = url.strip()
    try:
        _HTTP_URL.validate_python(candidate)
    except pydantic.ValidationError as e:
        raise InvalidCollectorUrlError(
            function_name, candidate, e.errors()[0]["msg"]
        ) from e
    return candidate


def resolve_collector_url(
    region: str,
    function_name: str,
    client: Optional[LambdaMetadataClient] = None,
) -> str:
    """
    Reads the description of *function_name* in *region* and returns it as a
    validated collector URL.
    """
    metadata_client = client or get_metadata_client(region)
    description = metadata_client.get_function_description(function_name)
    collector_url = validate_collector_url(description, function_name)

    logger.info(
        "Resolved collector URL from function description",
        extra={
            "function_name": function_name,
            "region": region,
            "collector_url": collector_url,
        },
    )
    return collector_url
