"""
Shared test fixtures: an in-memory cluster, a fake Helm, and a fake clock.

The fakes implement the same methods as KubeCluster and HelmReleases so the
orchestrators run end to end without kubectl, helm or real sleeping.
"""

from __future__ import annotations

import copy

import pytest

from mesh_gateway.config import InstallOptions, ProbeConfig, StackConfig
from mesh_gateway.constants import (
    HELM_RELEASE_KONG,
    HELM_RELEASE_KUMA,
    INGRESS_NGINX_DEPLOYMENT,
    KONG_PROXY_SERVICE,
    KUMA_CONTROL_PLANE_SERVICE,
    KUMA_MESH_CRD,
    KUMA_PERMISSION_CRD,
    NS_INGRESS_NGINX,
    NS_KUMA_SYSTEM,
)
from mesh_gateway.helm import UninstallOutcome
from mesh_gateway.kube import Presence, ScaleOutcome
from mesh_gateway.orchestrator import InstallOrchestrator, RollbackOrchestrator
from mesh_gateway.prober import ReadinessProber

GATEWAY_API_CRDS = (
    "gateways.gateway.networking.k8s.io",
    "gatewayclasses.gateway.networking.k8s.io",
    "httproutes.gateway.networking.k8s.io",
)


class FakeClock:
    """Monotonic clock whose sleep advances time instantly."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeCluster:
    """In-memory resource store keyed by (kind, name, namespace)."""

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str, str | None], dict] = {}
        self.crds: set[str] = set()
        self.ready_namespaces: set[str] = set()
        self.endpoints: set[tuple[str, str]] = set()
        self.deployments: dict[tuple[str, str], int] = {}
        self.node_ports: dict[tuple[str, str], int] = {}
        self.node_ip: str | None = "172.18.0.2"
        self.admission_open = True
        self.permission_kind_supported = True
        self.control_plane_never_ready = False
        self.fail_apply: set[str] = set()
        self.fail_scale = False
        self.lookup_errors: set[str] = set()
        self.dry_runs: list[dict] = []
        self.applied: list[dict] = []

    def snapshot(self) -> dict:
        return copy.deepcopy({
            "objects": self.objects,
            "crds": sorted(self.crds),
            "deployments": self.deployments,
            "node_ports": self.node_ports,
        })

    def apply(self, manifest: dict) -> tuple[bool, str]:
        meta = manifest["metadata"]
        if meta["name"] in self.fail_apply:
            return False, f'admission webhook denied the request for "{meta["name"]}"'
        self.applied.append(manifest)
        key = (manifest["kind"].lower(), meta["name"], meta.get("namespace"))
        previous = self.objects.get(key, {})
        merged = copy.deepcopy(manifest)
        # kubectl apply keeps labels set out of band (e.g. kubectl label).
        labels = {**previous.get("metadata", {}).get("labels", {}), **meta.get("labels", {})}
        merged["metadata"]["labels"] = labels
        self.objects[key] = merged
        return True, ""

    def apply_url(self, url: str) -> tuple[bool, str]:
        self.crds.update(GATEWAY_API_CRDS)
        return True, ""

    def lookup(self, kind: str, name: str, namespace: str | None = None) -> tuple[Presence, str]:
        if name in self.lookup_errors:
            return Presence.ERROR, "Unable to connect to the server: dial tcp 127.0.0.1:6443: i/o timeout"
        if kind == "crd":
            found = name in self.crds
        else:
            found = (kind.lower(), name, namespace) in self.objects
        if found:
            return Presence.PRESENT, ""
        return Presence.ABSENT, f'Error from server (NotFound): {kind} "{name}" not found'

    def exists(self, kind: str, name: str, namespace: str | None = None) -> bool:
        return self.lookup(kind, name, namespace)[0] is Presence.PRESENT

    def dry_run_create(self, manifest: dict) -> tuple[bool, str]:
        self.dry_runs.append(manifest)
        if self.admission_open:
            return True, ""
        return False, 'Internal error occurred: failed calling webhook "mesh.validator.kuma-admission.kuma.io"'

    def workloads_available(self, namespace: str, selector: str | None = None) -> bool:
        return namespace in self.ready_namespaces

    def has_endpoints(self, service: str, namespace: str) -> bool:
        return (service, namespace) in self.endpoints

    def scale(self, deployment: str, namespace: str, replicas: int) -> tuple[ScaleOutcome, str]:
        if self.fail_scale:
            return ScaleOutcome.FAILED, "Error from server (Forbidden): forbidden"
        key = (namespace, deployment)
        if key not in self.deployments:
            return ScaleOutcome.NOT_FOUND, f'Error from server (NotFound): deployments.apps "{deployment}" not found'
        self.deployments[key] = replicas
        return ScaleOutcome.SCALED, ""

    def label(self, kind: str, name: str, labels: dict[str, str]) -> tuple[bool, str]:
        key = (kind, name, None)
        if key not in self.objects:
            return False, f'Error from server (NotFound): namespaces "{name}" not found'
        self.objects[key]["metadata"].setdefault("labels", {}).update(labels)
        return True, ""

    def node_address(self) -> str | None:
        return self.node_ip

    def node_port(self, service: str, namespace: str, port_name: str) -> int | None:
        return self.node_ports.get((service, namespace))


class FakeHelm:
    """Release store that simulates what the Kuma and Kong charts create."""

    def __init__(self, cluster: FakeCluster) -> None:
        self.cluster = cluster
        self.releases: dict[tuple[str, str], dict] = {}
        self.installs: list[tuple[str, str, str]] = []
        self.fail_install: set[str] = set()
        self.fail_uninstall = False

    def add_repo(self, name: str, url: str) -> tuple[bool, str]:
        return True, ""

    def install_or_upgrade(self, release, chart, namespace, values=None, version="", set_values=None):
        self.installs.append((release, chart, namespace))
        if release in self.fail_install:
            return False, f"Error: INSTALLATION FAILED: {release}"
        self.releases[(release, namespace)] = {
            "chart": chart, "version": version, "values": values, "set": set_values,
        }
        if release == HELM_RELEASE_KUMA:
            self.cluster.crds.add(KUMA_MESH_CRD)
            if self.cluster.permission_kind_supported:
                self.cluster.crds.add(KUMA_PERMISSION_CRD)
            if not self.cluster.control_plane_never_ready:
                self.cluster.ready_namespaces.add(NS_KUMA_SYSTEM)
                self.cluster.endpoints.add((KUMA_CONTROL_PLANE_SERVICE, NS_KUMA_SYSTEM))
        if release == HELM_RELEASE_KONG:
            self.cluster.node_ports[(KONG_PROXY_SERVICE, namespace)] = 32080
        return True, ""

    def uninstall(self, release: str, namespace: str) -> tuple[UninstallOutcome, str]:
        if self.fail_uninstall:
            return UninstallOutcome.FAILED, "Error: timed out waiting for the condition"
        if self.releases.pop((release, namespace), None) is None:
            return UninstallOutcome.NOT_FOUND, f"Error: uninstall: Release not loaded: {release}: release: not found"
        if release == HELM_RELEASE_KONG:
            self.cluster.node_ports.pop((KONG_PROXY_SERVICE, namespace), None)
        return UninstallOutcome.REMOVED, ""


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cluster() -> FakeCluster:
    return FakeCluster()


@pytest.fixture
def helm(cluster: FakeCluster) -> FakeHelm:
    return FakeHelm(cluster)


@pytest.fixture
def ingress_nginx(cluster: FakeCluster) -> tuple[str, str]:
    """Register a running ingress-nginx controller in the fake cluster."""
    key = (NS_INGRESS_NGINX, INGRESS_NGINX_DEPLOYMENT)
    cluster.deployments[key] = 1
    return key


@pytest.fixture
def stack_cfg() -> StackConfig:
    return StackConfig(
        namespace="the-store",
        gateway_namespace="gateway",
        mesh_name="the-store",
        services=("catalog", "carts", "orders", "checkout"),
    )


@pytest.fixture
def probe_cfg() -> ProbeConfig:
    return ProbeConfig(poll_interval=2, max_attempts=5, schema_timeout=10, workload_timeout=10)


@pytest.fixture
def options() -> InstallOptions:
    return InstallOptions(kuma_version="", kong_version="", platform="Linux")


@pytest.fixture
def make_installer(stack_cfg, probe_cfg, options, cluster, helm, clock):
    """Factory for an InstallOrchestrator wired to the fakes."""

    def _make(install_options: InstallOptions | None = None) -> InstallOrchestrator:
        prober = ReadinessProber(cluster, clock=clock, sleep=clock.sleep)
        return InstallOrchestrator(stack_cfg, probe_cfg, install_options or options, cluster, helm, prober)

    return _make


@pytest.fixture
def make_rollback(stack_cfg, options, cluster, helm):
    """Factory for a RollbackOrchestrator wired to the fakes."""

    def _make(install_options: InstallOptions | None = None) -> RollbackOrchestrator:
        return RollbackOrchestrator(stack_cfg, install_options or options, cluster, helm)

    return _make
