"""
Shared fixtures for unit tests.
"""

from __future__ import annotations

import os
import threading
import uuid
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

# app.py loads its configuration at import time, so the environment must be
# in place before any test module imports it.
os.environ.setdefault("SERVICE_NAME", "s3-monitor-test")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("POWERTOOLS_SERVICE_NAME", "s3-monitor-test")
os.environ.setdefault("POWERTOOLS_TRACE_DISABLED", "true")
os.environ.setdefault("POWERTOOLS_METRICS_NAMESPACE", "S3Monitor")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture(scope="session", autouse=True)
def _env_vars():
    """
    Ensures a deterministic environment for every test run.
    Overwrite *only* the variables needed by the handler.
    """
    original = os.environ.copy()
    os.environ.setdefault("POWERTOOLS_LOG_LEVEL", "INFO")
    yield
    os.environ.clear()
    os.environ.update(original)


# ---------- Minimal, realistic dummy events ---------- #
def make_s3_record(key: str = "input/file1.json", size: int = 123) -> dict:
    return {
        "eventVersion": "2.1",
        "eventSource": "aws:s3",
        "awsRegion": "us-east-1",
        "eventTime": datetime.now(timezone.utc).isoformat(),
        "eventName": "ObjectCreated:Put",
        "s3": {
            "s3SchemaVersion": "1.0",
            "bucket": {"name": "source-bucket", "arn": "arn:aws:s3:::source-bucket"},
            "object": {
                "key": key,
                "size": size,
                "eTag": "d41d8cd98f00b204e9800998ecf8427e",
                "sequencer": "0055AED6DCD90281E5",
            },
        },
    }


@pytest.fixture
def s3_event() -> dict:
    """An S3 notification event carrying two PUT records."""
    return {
        "Records": [
            make_s3_record("input/file1.json", 123),
            make_s3_record("input/file2.json", 456),
        ]
    }


@pytest.fixture
def lambda_context():
    """A *very* small stand-in for the LambdaContext object."""
    context = MagicMock()
    context.aws_request_id = "req-" + uuid.uuid4().hex
    context.function_name = "s3-monitor"
    context.function_version = "$LATEST"
    context.memory_limit_in_mb = 128
    context.invoked_function_arn = (
        "arn:aws:lambda:us-east-1:123456789012:function:s3-monitor"
    )
    context.get_remaining_time_in_millis.return_value = 30_000
    return context


class ScriptedTransport:
    """
    Fake transport that replays a script of callback invocations.

    Each step is ``("success", n)`` or ``("failure", successes, failures)``.
    Steps run on a background thread unless ``synchronous`` is set, in which
    case they all fire inside ``submit`` before the caller starts waiting.
    """

    def __init__(self, script, synchronous=False):
        self.script = list(script)
        self.synchronous = synchronous
        self.submitted: list = []
        self.shutdown_calls: list[dict] = []
        self.on_success = None
        self.on_failure = None
        self.endpoint = None
        self.namespace = None
        self._thread: threading.Thread | None = None

    def factory(self, endpoint, *, namespace, on_success, on_failure):
        self.endpoint = endpoint
        self.namespace = namespace
        self.on_success = on_success
        self.on_failure = on_failure
        return self

    def submit(self, batch):
        self.submitted.append(list(batch))
        if self.synchronous:
            self._replay(batch)
        else:
            self._thread = threading.Thread(target=self._replay, args=(batch,))
            self._thread.start()

    def shutdown(self, wait=True, cancel_pending=False):
        self.shutdown_calls.append({"wait": wait, "cancel_pending": cancel_pending})

    def join(self):
        if self._thread is not None:
            self._thread.join(timeout=5)

    def _replay(self, batch):
        for step in self.script:
            if step[0] == "success":
                self.on_success(step[1])
            else:
                _, successes, failures = step
                failed = [batch[i % len(batch)] for i in range(failures)]
                self.on_failure(successes, failed)


@pytest.fixture
def scripted_transport():
    """Factory fixture building ScriptedTransport instances."""
    created: list[ScriptedTransport] = []

    def _make(script, synchronous=False):
        transport = ScriptedTransport(script, synchronous=synchronous)
        created.append(transport)
        return transport

    yield _make
    for transport in created:
        transport.join()
