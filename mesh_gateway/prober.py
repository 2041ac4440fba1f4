# /*
# Copyright 2026 The Grove Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""Bounded readiness polling for schemas, workloads, endpoints and admission."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from tenacity import RetryCallState, Retrying, retry_if_result, stop_after_attempt, stop_any, wait_fixed

from mesh_gateway import logger
from mesh_gateway.config import ProbeConfig
from mesh_gateway.kube import KubeCluster


class ProbeKind(str, Enum):
    """What a readiness query observes."""

    SCHEMA = "schema"
    WORKLOAD = "workload"
    ENDPOINTS = "endpoints"
    ADMISSION = "admission"


class ProbeStatus(str, Enum):
    READY = "ready"
    TIMED_OUT = "timed-out"


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of a bounded poll.

    Attributes:
        status: READY or TIMED_OUT.
        attempts: Number of times the condition was evaluated.
        elapsed: Seconds between the first check and the final outcome.
        last_error: Message from the last failed check, if any.
    """

    status: ProbeStatus
    attempts: int
    elapsed: float
    last_error: str = ""

    @property
    def ready(self) -> bool:
        return self.status is ProbeStatus.READY


@dataclass(frozen=True)
class ReadinessQuery:
    """A single readiness gate and its polling bounds.

    Attributes:
        kind: What to observe.
        target: CRD name, service name, or a label for workload/admission queries.
        namespace: Namespace for namespaced targets.
        selector: Label selector for WORKLOAD queries.
        document: Manifest submitted as a server-side dry-run for ADMISSION queries.
        interval: Seconds between checks.
        max_attempts: Maximum number of checks.
        timeout: Deadline in seconds.
    """

    kind: ProbeKind
    target: str
    namespace: str | None = None
    selector: str | None = None
    document: dict | None = field(default=None, compare=False, hash=False)
    interval: float = 2.0
    max_attempts: int = 60
    timeout: float = 300.0

    def describe(self) -> str:
        where = f" in {self.namespace}" if self.namespace else ""
        return f"{self.kind.value} '{self.target}'{where}"


class _NotReady(Exception):
    """Raised by a condition to carry a reason for not being ready."""


def _deadline_stop(
    clock: Callable[[], float], start: float, timeout: float, interval: float,
) -> Callable[[RetryCallState], bool]:
    # Stop when the next check would start after the deadline.
    def _stop(_: RetryCallState) -> bool:
        return clock() - start + interval > timeout
    return _stop


def poll(
    condition: Callable[[], bool],
    *,
    interval: float,
    max_attempts: int,
    timeout: float,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> ProbeResult:
    """Evaluate *condition* until it is true, attempts run out, or the deadline passes.

    A condition that raises counts as "not ready yet"; its message is kept
    as ``last_error``.

    Args:
        condition: Zero-argument callable returning True once ready.
        interval: Seconds to sleep between checks.
        max_attempts: Maximum number of checks.
        timeout: Deadline in seconds, measured with *clock*.
        clock: Monotonic clock; injectable for tests.
        sleep: Sleep function; injectable for tests.

    Returns:
        ProbeResult with READY or TIMED_OUT.
    """
    start = clock()
    attempts = 0
    last_error = ""

    def _check() -> bool:
        nonlocal attempts, last_error
        attempts += 1
        try:
            return bool(condition())
        except Exception as exc:
            last_error = str(exc)
            logger.debug("Readiness check %d failed: %s", attempts, exc)
            return False

    retrying = Retrying(
        stop=stop_any(stop_after_attempt(max_attempts), _deadline_stop(clock, start, timeout, interval)),
        wait=wait_fixed(interval),
        retry=retry_if_result(lambda ready: not ready),
        sleep=sleep,
        retry_error_callback=lambda _: False,
    )
    ready = retrying(_check)
    status = ProbeStatus.READY if ready else ProbeStatus.TIMED_OUT
    return ProbeResult(status, attempts, clock() - start, last_error)


# ============================================================================
# Query builders
# ============================================================================

def schema_query(crd: str, probe_cfg: ProbeConfig) -> ReadinessQuery:
    """Build a CRD existence query."""
    return ReadinessQuery(
        ProbeKind.SCHEMA, crd,
        interval=probe_cfg.poll_interval,
        max_attempts=probe_cfg.max_attempts,
        timeout=probe_cfg.schema_timeout,
    )


def workload_query(namespace: str, probe_cfg: ProbeConfig, selector: str | None = None) -> ReadinessQuery:
    """Build a deployment availability query."""
    return ReadinessQuery(
        ProbeKind.WORKLOAD, selector or "all deployments",
        namespace=namespace,
        selector=selector,
        interval=probe_cfg.poll_interval,
        max_attempts=probe_cfg.max_attempts,
        timeout=probe_cfg.workload_timeout,
    )


def endpoints_query(service: str, namespace: str, probe_cfg: ProbeConfig) -> ReadinessQuery:
    """Build a service endpoint presence query."""
    return ReadinessQuery(
        ProbeKind.ENDPOINTS, service,
        namespace=namespace,
        interval=probe_cfg.poll_interval,
        max_attempts=probe_cfg.max_attempts,
        timeout=probe_cfg.workload_timeout,
    )


def admission_query(document: dict, probe_cfg: ProbeConfig) -> ReadinessQuery:
    """Build an admission gate query around a dry-run document."""
    return ReadinessQuery(
        ProbeKind.ADMISSION, document["metadata"]["name"],
        namespace=document["metadata"].get("namespace"),
        document=document,
        interval=probe_cfg.poll_interval,
        max_attempts=probe_cfg.max_attempts,
        timeout=probe_cfg.workload_timeout,
    )


# ============================================================================
# Prober
# ============================================================================

class ReadinessProber:
    """Resolves readiness queries against the cluster.

    Side-effect free apart from ADMISSION dry-runs, which are never persisted.
    """

    def __init__(
        self,
        cluster: KubeCluster,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._cluster = cluster
        self._clock = clock
        self._sleep = sleep

    def _condition(self, query: ReadinessQuery) -> Callable[[], bool]:
        cluster = self._cluster
        if query.kind is ProbeKind.SCHEMA:
            return lambda: cluster.exists("crd", query.target)
        if query.kind is ProbeKind.WORKLOAD:
            return lambda: cluster.workloads_available(query.namespace, query.selector)
        if query.kind is ProbeKind.ENDPOINTS:
            return lambda: cluster.has_endpoints(query.target, query.namespace)
        if query.kind is ProbeKind.ADMISSION:
            if query.document is None:
                raise ValueError("admission query requires a dry-run document")

            def _admitted() -> bool:
                ok, stderr = cluster.dry_run_create(query.document)
                if not ok:
                    raise _NotReady(stderr.strip()[:200] or "dry-run rejected")
                return True
            return _admitted
        raise ValueError(f"Unsupported probe kind: {query.kind}")

    def wait_for(self, query: ReadinessQuery) -> ProbeResult:
        """Poll until *query* holds or its bounds are exhausted.

        Args:
            query: The readiness gate to resolve.

        Returns:
            ProbeResult; TIMED_OUT is a normal outcome, not an exception.
        """
        logger.info("Waiting for %s (every %ss, up to %d checks / %ss)",
                    query.describe(), query.interval, query.max_attempts, query.timeout)
        result = poll(
            self._condition(query),
            interval=query.interval,
            max_attempts=query.max_attempts,
            timeout=query.timeout,
            clock=self._clock,
            sleep=self._sleep,
        )
        logger.info("%s: %s after %d check(s)", query.describe(), result.status.value, result.attempts)
        return result
