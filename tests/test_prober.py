"""
Tests for the readiness prober: pure poll() with a fake clock, and
query dispatch against the in-memory cluster.

No subprocess, no real sleeping.
"""

from __future__ import annotations

import pytest

from mesh_gateway.config import ProbeConfig
from mesh_gateway.manifests import admission_probe_document
from mesh_gateway.prober import (
    ProbeKind,
    ProbeStatus,
    ReadinessProber,
    ReadinessQuery,
    admission_query,
    endpoints_query,
    poll,
    schema_query,
    workload_query,
)


def _countdown(ready_on: int):
    calls = {"n": 0}

    def _condition() -> bool:
        calls["n"] += 1
        return calls["n"] >= ready_on

    return _condition


# ═══════════════════════════════════════════════════════════════════
#  poll, bounded attempts and deadlines
# ═══════════════════════════════════════════════════════════════════


class TestPoll:
    def test_ready_immediately(self, clock):
        result = poll(lambda: True, interval=2, max_attempts=60, timeout=120, clock=clock, sleep=clock.sleep)
        assert result.status is ProbeStatus.READY
        assert result.attempts == 1
        assert clock.sleeps == []

    def test_ready_after_retries(self, clock):
        result = poll(_countdown(3), interval=2, max_attempts=60, timeout=120, clock=clock, sleep=clock.sleep)
        assert result.ready
        assert result.attempts == 3
        assert clock.sleeps == [2, 2]
        assert result.elapsed == 4

    def test_attempt_bound(self, clock):
        result = poll(lambda: False, interval=2, max_attempts=3, timeout=1000, clock=clock, sleep=clock.sleep)
        assert result.status is ProbeStatus.TIMED_OUT
        assert result.attempts == 3
        assert result.elapsed == 4

    def test_deadline_bound(self, clock):
        result = poll(lambda: False, interval=2, max_attempts=100, timeout=5, clock=clock, sleep=clock.sleep)
        assert result.status is ProbeStatus.TIMED_OUT
        assert result.attempts == 3
        assert result.elapsed == 4
        assert clock.sleeps == [2, 2]

    def test_never_sleeps_past_deadline(self, clock):
        result = poll(lambda: False, interval=4, max_attempts=100, timeout=10, clock=clock, sleep=clock.sleep)
        assert result.elapsed <= 10
        assert result.attempts == 3

    def test_check_exactly_at_deadline(self, clock):
        result = poll(_countdown(3), interval=3, max_attempts=100, timeout=6, clock=clock, sleep=clock.sleep)
        assert result.ready
        assert result.elapsed == 6

    def test_raising_condition_counts_as_not_ready(self, clock):
        def _boom() -> bool:
            raise RuntimeError("connection refused")

        result = poll(_boom, interval=1, max_attempts=2, timeout=60, clock=clock, sleep=clock.sleep)
        assert result.status is ProbeStatus.TIMED_OUT
        assert result.last_error == "connection refused"

    def test_timed_out_is_returned_not_raised(self, clock):
        result = poll(lambda: False, interval=1, max_attempts=1, timeout=1, clock=clock, sleep=clock.sleep)
        assert result.ready is False


# ═══════════════════════════════════════════════════════════════════
#  Query builders
# ═══════════════════════════════════════════════════════════════════


class TestQueryBuilders:
    def test_defaults_follow_probe_config(self):
        cfg = ProbeConfig()
        schema = schema_query("meshes.kuma.io", cfg)
        workload = workload_query("kuma-system", cfg)
        assert (schema.interval, schema.max_attempts, schema.timeout) == (2.0, 60, 120.0)
        assert workload.timeout == 300.0
        assert workload.selector is None

    def test_admission_query_carries_document(self):
        query = admission_query(admission_probe_document(), ProbeConfig())
        assert query.kind is ProbeKind.ADMISSION
        assert query.target == "mesh-gateway-admission-probe"
        assert query.document["kind"] == "Mesh"

    def test_describe(self):
        query = endpoints_query("kuma-control-plane", "kuma-system", ProbeConfig())
        assert query.describe() == "endpoints 'kuma-control-plane' in kuma-system"


# ═══════════════════════════════════════════════════════════════════
#  ReadinessProber, dispatch per kind
# ═══════════════════════════════════════════════════════════════════


class TestReadinessProber:
    @pytest.fixture
    def prober(self, cluster, clock):
        return ReadinessProber(cluster, clock=clock, sleep=clock.sleep)

    @pytest.fixture
    def fast(self):
        return ProbeConfig(poll_interval=1, max_attempts=3, schema_timeout=10, workload_timeout=10)

    def test_schema(self, prober, cluster, fast):
        query = schema_query("meshes.kuma.io", fast)
        assert prober.wait_for(query).status is ProbeStatus.TIMED_OUT
        cluster.crds.add("meshes.kuma.io")
        assert prober.wait_for(query).ready

    def test_workload(self, prober, cluster, fast):
        query = workload_query("kuma-system", fast, selector="app=kuma-control-plane")
        assert not prober.wait_for(query).ready
        cluster.ready_namespaces.add("kuma-system")
        assert prober.wait_for(query).ready

    def test_endpoints(self, prober, cluster, fast):
        query = endpoints_query("kuma-control-plane", "kuma-system", fast)
        assert not prober.wait_for(query).ready
        cluster.endpoints.add(("kuma-control-plane", "kuma-system"))
        assert prober.wait_for(query).ready

    def test_admission_rejection_reason_is_kept(self, prober, cluster, fast):
        cluster.admission_open = False
        result = prober.wait_for(admission_query(admission_probe_document(), fast))
        assert not result.ready
        assert "failed calling webhook" in result.last_error
        assert len(cluster.dry_runs) == 3

    def test_admission_without_document(self, prober, fast):
        query = ReadinessQuery(ProbeKind.ADMISSION, "probe")
        with pytest.raises(ValueError):
            prober.wait_for(query)
