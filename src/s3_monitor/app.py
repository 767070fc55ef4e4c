"""
The Lambda Adapter & Orchestrator for the S3 Monitor service.

This module is the main entry point for the AWS Lambda function. It is
responsible for:
1.  Initializing and configuring AWS Lambda Powertools (Logger, Tracer and
    Metrics).
2.  Parsing and validating the incoming S3 event notification.
3.  Wrapping every S3 record in a self-describing event envelope.
4.  Resolving the collector URL from this function's own description.
5.  Invoking the core emission logic (`emit_batch`), which only returns once
    every event has been confirmed or reported failed.
6.  Surfacing every error so Lambda marks the invocation failed and its own
    retry policy can apply.
"""

from functools import partial
from typing import Any

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.metrics import MetricUnit
from aws_lambda_powertools.utilities.typing import LambdaContext

from .config import get_config
from .core import emit_batch
from .emitter import CollectorEmitter
from .endpoint import resolve_collector_url
from .events import map_records
from .exceptions import (
    InsufficientTimeError,
    S3MonitorError,
    TransportFailureError,
    get_error_context,
    is_retryable_error,
)
from .region import get_region
from .schemas import parse_s3_event

# --- Global & Reusable Components ---
CONFIG = get_config()

logger = Logger(service=CONFIG.service_name, level=CONFIG.log_level)
tracer = Tracer(service=CONFIG.service_name)
metrics = Metrics(
    namespace="S3Monitor",
    service=CONFIG.service_name,
)

emitter_factory = partial(
    CollectorEmitter,
    app_id=CONFIG.app_id,
    timeout_seconds=CONFIG.collector_timeout_seconds,
    buffer_size=CONFIG.emitter_buffer_size,
    max_workers=CONFIG.emitter_max_workers,
    base64_encode=CONFIG.base64_encode,
)


def _emission_timeout_seconds(context: LambdaContext) -> float:
    """
    Time the coordinator may wait for the collector: what is left of this
    invocation minus the guard threshold.
    """
    remaining_ms = context.get_remaining_time_in_millis()
    budget_ms = remaining_ms - CONFIG.timeout_guard_threshold_ms
    if budget_ms <= 0:
        raise InsufficientTimeError(remaining_ms, CONFIG.timeout_guard_threshold_ms)
    return budget_ms / 1000


@tracer.capture_method
def _emit(records: list[Any], context: LambdaContext) -> dict[str, Any]:
    envelopes = map_records(CONFIG.event_schema, records)

    timeout_seconds = _emission_timeout_seconds(context)
    region = get_region(context.invoked_function_arn)
    collector_url = resolve_collector_url(region, context.function_name)

    outcome = emit_batch(
        envelopes,
        collector_url,
        CONFIG.tracker_namespace,
        emitter_factory,
        timeout_seconds=timeout_seconds,
    )
    metrics.add_metric(
        name="EventsEmitted", unit=MetricUnit.Count, value=outcome.success_count
    )
    return {"emitted": outcome.success_count, "collector_url": collector_url}


@logger.inject_lambda_context()
@tracer.capture_lambda_handler
@metrics.log_metrics(capture_cold_start_metric=True)
def handler(event: dict, context: LambdaContext) -> dict[str, Any]:
    """Main Lambda handler for S3 event notifications."""
    metrics.add_dimension("environment", CONFIG.environment)

    try:
        records = parse_s3_event(event)
        metrics.add_metric(
            name="EventsReceived", unit=MetricUnit.Count, value=len(records)
        )
        if not records:
            logger.warning("Event did not contain any S3 records. Exiting gracefully.")
            return {"emitted": 0, "collector_url": None}

        logger.info(
            "Emitting S3 notifications",
            extra={
                "records": len(records),
                "schema": CONFIG.event_schema,
                "namespace": CONFIG.tracker_namespace,
            },
        )
        result = _emit(records, context)

    except TransportFailureError as e:
        metrics.add_metric(
            name="EventsFailed", unit=MetricUnit.Count, value=e.failure_count
        )
        metrics.add_metric(name="EmissionErrors", unit=MetricUnit.Count, value=1)
        logger.error(
            f"Events were not delivered: {e}", extra={"error": get_error_context(e)}
        )
        raise

    except S3MonitorError as e:
        metrics.add_metric(name="EmissionErrors", unit=MetricUnit.Count, value=1)
        log_level = logger.warning if is_retryable_error(e) else logger.error
        log_level(f"Emission aborted: {e}", extra={"error": get_error_context(e)})
        raise

    logger.info("S3 notifications emitted", extra=result)
    return result
