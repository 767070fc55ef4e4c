# src/s3_monitor/clients.py

"""
Client wrapper for reading Lambda function metadata.

The collector URL is stored in the function's own description field, so the
only AWS call this service makes is a read of its own configuration. The
wrapper keeps the boto3 details (and error-code mapping) out of the
resolution logic, making it easy to test with a MagicMock.
"""

import logging
from typing import TYPE_CHECKING, Optional

from botocore.exceptions import ClientError, EndpointConnectionError, ReadTimeoutError

from .exceptions import FunctionMetadataError, FunctionMetadataThrottlingError

if TYPE_CHECKING:
    from mypy_boto3_lambda.client import LambdaClient as LambdaClientType

logger = logging.getLogger(__name__)

_THROTTLING_CODES = {
    "Throttling",
    "ThrottlingException",
    "TooManyRequestsException",
    "RequestLimitExceeded",
    "ServiceException",
}


class LambdaMetadataClient:
    """
    A wrapper for the read-only Lambda configuration API.
    """

    def __init__(self, lambda_client: "LambdaClientType", region: str):
        """
        Initializes the LambdaMetadataClient.

        Args:
            lambda_client: A typed boto3 Lambda client bound to ``region``.
            region: The region the client talks to, used for error context.
        """
        self._client = lambda_client
        self._region = region

    @property
    def region(self) -> str:
        return self._region

    def get_function_description(self, function_name: str) -> Optional[str]:
        """
        Returns the free-text description of *function_name*, or None if unset.
        Raises specific metadata exceptions based on the error type.
        """
        try:
            response = self._client.get_function_configuration(
                FunctionName=function_name
            )
        except ClientError as e:
            error_code = e.response["Error"]["Code"]
            error_message = e.response["Error"]["Message"]
            aws_context = {
                "aws_error_code": error_code,
                "aws_error_message": error_message,
            }

            if error_code in _THROTTLING_CODES:
                raise FunctionMetadataThrottlingError(
                    function_name, self._region, error_message, context=aws_context
                ) from e
            elif error_code == "ResourceNotFoundException":
                raise FunctionMetadataError(
                    function_name,
                    self._region,
                    error_message,
                    error_code="FUNCTION_NOT_FOUND",
                    context=aws_context,
                ) from e
            elif error_code in ("AccessDeniedException", "AccessDenied"):
                raise FunctionMetadataError(
                    function_name,
                    self._region,
                    error_message,
                    error_code="FUNCTION_METADATA_ACCESS_DENIED",
                    context=aws_context,
                ) from e
            else:
                raise FunctionMetadataError(
                    function_name, self._region, error_message, context=aws_context
                ) from e
        except ReadTimeoutError as e:
            raise FunctionMetadataThrottlingError(
                function_name,
                self._region,
                "read timeout",
                error_code="FUNCTION_METADATA_READ_TIMEOUT",
                context={"timeout_error": str(e)},
            ) from e
        except EndpointConnectionError as e:
            raise FunctionMetadataThrottlingError(
                function_name,
                self._region,
                "endpoint connection error",
                error_code="FUNCTION_METADATA_CONNECTION_ERROR",
                context={"connection_error": str(e)},
            ) from e

        description = response.get("Description")
        logger.debug(
            "Fetched function configuration",
            extra={
                "function_name": function_name,
                "region": self._region,
                "has_description": bool(description),
            },
        )
        return description
