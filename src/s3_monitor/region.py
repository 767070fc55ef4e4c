# src/s3_monitor/region.py

"""Extracts the AWS region from an execution-identity string (an ARN)."""

from typing import Optional

from .exceptions import InvalidArgumentError

_REGION_FIELD = 3


def get_region(arn: Optional[str]) -> str:
    """
    Returns the region field of an ARN such as
    ``arn:aws:lambda:us-east-1:123456789012:function:my-function``.

    Raises InvalidArgumentError for a missing or blank ARN, one with fewer
    than four colon-delimited fields, or one whose region field is empty.
    """
    if arn is None or not arn.strip():
        raise InvalidArgumentError("Cannot extract region from empty ARN")

    fields = arn.split(":")
    if len(fields) <= _REGION_FIELD:
        raise InvalidArgumentError(
            f"Couldn't get region from ARN '{arn}'",
            context={"arn": arn, "field_count": len(fields)},
        )

    region = fields[_REGION_FIELD].strip()
    if not region:
        raise InvalidArgumentError(
            f"ARN '{arn}' has an empty region field", context={"arn": arn}
        )
    return region
