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

"""Install stages: Kuma control plane, Kong gateway, mesh and permissions."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from functools import partial

from mesh_gateway import console, logger
from mesh_gateway.access import AccessEndpoint, compute_access_endpoints, print_access_summary
from mesh_gateway.config import InstallOptions, ProbeConfig, StackConfig
from mesh_gateway.constants import (
    HELM_KEY_KUMA_MODE,
    HELM_RELEASE_KONG,
    HELM_RELEASE_KUMA,
    KUMA_CONTROL_PLANE_SELECTOR,
    KUMA_CONTROL_PLANE_SERVICE,
    KUMA_MESH_CRD,
    KUMA_PERMISSION_CRD,
    NS_KUMA_SYSTEM,
    STAGE_ACCESS_SUMMARY,
    STAGE_ADMISSION_GATE,
    STAGE_CONTROL_PLANE,
    STAGE_CONTROL_PLANE_READY,
    STAGE_GATEWAY,
    STAGE_GATEWAY_API_CRDS,
    STAGE_MESH,
    STAGE_MIGRATION_ASSIST,
    STAGE_NAMESPACE_LABELS,
    STAGE_NAMESPACES,
    STAGE_TRAFFIC_PERMISSIONS,
    dep_value,
)
from mesh_gateway.errors import StageFailure
from mesh_gateway.helm import HelmReleases
from mesh_gateway.kube import KubeCluster, Presence
from mesh_gateway.manifests import (
    admission_probe_document,
    gateway_api_url,
    kong_config_definition,
    kong_values,
    mesh_definition,
    mesh_membership_labels,
)
from mesh_gateway.migration import MigrationOutcome, scale_competing_ingress
from mesh_gateway.policy import generate_permissions
from mesh_gateway.prober import (
    ReadinessQuery,
    admission_query,
    endpoints_query,
    schema_query,
    workload_query,
)
from mesh_gateway.resources import ApplyResult, ResourceApplier


class FailurePolicy(str, Enum):
    """How a stage failure affects the run."""

    FATAL = "fatal"
    WARN_AND_CONTINUE = "warn-and-continue"


@dataclass
class StageOutcome:
    """What a stage body produced.

    Attributes:
        results: Per-resource apply results.
        warnings: Soft failures to report.
        skipped: Informational skips (e.g. unsupported policy kind).
        endpoints: Access endpoints, set by the summary stage.
        migration: Migration-assist outcome, set by that stage only.
    """

    results: list[ApplyResult] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    endpoints: list[AccessEndpoint] = field(default_factory=list)
    migration: MigrationOutcome | None = None


@dataclass(frozen=True)
class Stage:
    """One install step.

    Attributes:
        name: Stable identifier.
        ordinal: Execution position, starting at 1.
        title: Console heading.
        policy: FATAL aborts the run on failure; WARN_AND_CONTINUE reports and moves on.
        body: Work to do, or None for pure readiness stages.
        requires: Readiness gates checked before the body.
        confirms: Readiness gates checked after the body.
    """

    name: str
    ordinal: int
    title: str
    policy: FailurePolicy
    body: Callable[[], StageOutcome] | None = None
    requires: tuple[ReadinessQuery, ...] = ()
    confirms: tuple[ReadinessQuery, ...] = ()


@dataclass(frozen=True)
class StageEnv:
    """Collaborators shared by the stage bodies of one run."""

    stack_cfg: StackConfig
    probe_cfg: ProbeConfig
    options: InstallOptions
    cluster: KubeCluster
    helm: HelmReleases
    applier: ResourceApplier


# ============================================================================
# Stage bodies
# ============================================================================

def _install_release(
    env: StageEnv, repo: str, release: str, namespace: str,
    values: dict | None = None, version: str = "", set_values: list[str] | None = None,
) -> None:
    ok, err = env.helm.add_repo(dep_value(repo, "repo_name"), dep_value(repo, "repo_url"))
    if not ok:
        raise StageFailure(f"helm repo add {repo} failed: {err[:200]}")
    ok, err = env.helm.install_or_upgrade(
        release, dep_value(repo, "chart"), namespace,
        values=values, version=version, set_values=set_values,
    )
    if not ok:
        raise StageFailure(f"helm upgrade --install {release} failed: {err[:200]}")
    console.print(f"[green]✅ Release '{release}' installed in {namespace}[/green]")


def install_control_plane(env: StageEnv) -> StageOutcome:
    """Install or upgrade the Kuma control plane release."""
    if env.options.kuma_version:
        console.print(f"[yellow]Version: {env.options.kuma_version}[/yellow]")
    _install_release(
        env, "kuma", HELM_RELEASE_KUMA, NS_KUMA_SYSTEM,
        version=env.options.kuma_version, set_values=[HELM_KEY_KUMA_MODE],
    )
    return StageOutcome()


def install_gateway_api_crds(env: StageEnv) -> StageOutcome:
    """Apply the Gateway API standard CRD bundle."""
    version = dep_value("gateway_api", "version")
    ok, stderr = env.cluster.apply_url(gateway_api_url(version))
    if not ok:
        raise StageFailure(f"Gateway API {version} CRDs could not be applied: {stderr.strip()[:200]}")
    console.print(f"[green]✅ Gateway API {version} CRDs applied[/green]")
    return StageOutcome()


def _require(results: list[ApplyResult], what: str) -> StageOutcome:
    failed = [r for r in results if not r.succeeded]
    if failed:
        details = "; ".join(f"{r.identity}: {r.warning}" for r in failed)
        raise StageFailure(f"{what} failed: {details}")
    return StageOutcome(results=results)


def ensure_namespaces(env: StageEnv) -> StageOutcome:
    """Create the application and gateway namespaces if missing."""
    names = dict.fromkeys([env.stack_cfg.namespace, env.stack_cfg.gateway_namespace])
    outcome = _require([env.applier.ensure_namespace(name) for name in names], "Namespace creation")
    console.print(f"[green]✅ Namespaces ready: {', '.join(names)}[/green]")
    return outcome


def label_namespaces(env: StageEnv) -> StageOutcome:
    """Enroll both namespaces in the mesh with sidecar injection."""
    labels = mesh_membership_labels(env.stack_cfg)
    names = dict.fromkeys([env.stack_cfg.namespace, env.stack_cfg.gateway_namespace])
    outcome = _require([env.applier.label_namespace(name, labels) for name in names], "Namespace labeling")
    console.print(f"[green]✅ Namespaces joined mesh '{env.stack_cfg.mesh_name}'[/green]")
    return outcome


def install_gateway(env: StageEnv) -> StageOutcome:
    """Apply the DB-less route document and install the Kong release."""
    result = env.applier.apply(kong_config_definition(env.stack_cfg))
    if not result.succeeded:
        raise StageFailure(f"{result.identity}: {result.warning}")
    _install_release(
        env, "kong", HELM_RELEASE_KONG, env.stack_cfg.gateway_namespace,
        values=kong_values(), version=env.options.kong_version,
    )
    return StageOutcome(results=[result])


def ensure_mesh(env: StageEnv) -> StageOutcome:
    """Create the mesh only when absent; an existing mesh is never re-applied."""
    result = env.applier.ensure(mesh_definition(env.stack_cfg.mesh_name))
    if not result.succeeded:
        raise StageFailure(f"{result.identity}: {result.warning}")
    if result.warning:
        console.print(f"[yellow]ℹ️  Mesh '{env.stack_cfg.mesh_name}' {result.warning}, left untouched[/yellow]")
    else:
        console.print(f"[green]✅ Mesh '{env.stack_cfg.mesh_name}' created[/green]")
    return StageOutcome(results=[result])


def apply_traffic_permissions(env: StageEnv) -> StageOutcome:
    """Apply one MeshTrafficPermission per roster service.

    Each permission is applied and reported on its own. When the cluster
    lacks the permission kind every service is skipped with a notice. A
    failed lookup of the kind raises StageFailure instead.
    """
    cfg = env.stack_cfg
    presence, stderr = env.cluster.lookup("crd", KUMA_PERMISSION_CRD)
    if presence is Presence.ERROR:
        raise StageFailure(f"could not look up {KUMA_PERMISSION_CRD}: {stderr.strip()[:200]}")
    supported = presence is Presence.PRESENT
    permissions = generate_permissions(
        cfg.services, cfg.gateway_namespace, cfg.namespace, cfg.mesh_name, supported=supported,
    )
    outcome = StageOutcome()
    if not permissions.supported:
        for service in permissions.roster:
            logger.info("Skipping permission for %s: %s not available", service, KUMA_PERMISSION_CRD)
            outcome.skipped.append(service)
        console.print(f"[yellow]ℹ️  {KUMA_PERMISSION_CRD} not available, skipped "
                      f"{len(outcome.skipped)} permission(s)[/yellow]")
        return outcome

    outcome.results = env.applier.apply_all(permissions)
    for result in outcome.results:
        if result.succeeded:
            console.print(f"[green]  ✓ {result.identity}[/green]")
        else:
            console.print(f"[yellow]  ⚠️  {result.identity}: {result.warning}[/yellow]")
            outcome.warnings.append(f"{result.identity}: {result.warning}")
    return outcome


def run_migration_assist(env: StageEnv) -> StageOutcome:
    """Scale the competing ingress controller down to zero."""
    migration = scale_competing_ingress(
        env.cluster, env.options.ingress_namespace, env.options.ingress_deployment, 0,
    )
    return StageOutcome(migration=migration)


def summarize_access(env: StageEnv) -> StageOutcome:
    """Compute and print the gateway access endpoints."""
    endpoints = compute_access_endpoints(env.cluster, env.stack_cfg, env.options)
    print_access_summary(endpoints)
    return StageOutcome(endpoints=endpoints)


# ============================================================================
# Graph
# ============================================================================

def build_stage_graph(env: StageEnv) -> list[Stage]:
    """Build the ordered install stages for one run.

    Args:
        env: Configuration and collaborators for this run.

    Returns:
        Stages in execution order with ordinals assigned from 1.
    """
    cfg, probe_cfg, options = env.stack_cfg, env.probe_cfg, env.options
    fatal, warn = FailurePolicy.FATAL, FailurePolicy.WARN_AND_CONTINUE

    specs: list[dict] = [
        dict(name=STAGE_CONTROL_PLANE, title="Installing Kuma control plane", policy=fatal,
             body=partial(install_control_plane, env),
             confirms=(schema_query(KUMA_MESH_CRD, probe_cfg),)),
        dict(name=STAGE_CONTROL_PLANE_READY, title="Waiting for Kuma control plane", policy=warn,
             confirms=(workload_query(NS_KUMA_SYSTEM, probe_cfg),
                       endpoints_query(KUMA_CONTROL_PLANE_SERVICE, NS_KUMA_SYSTEM, probe_cfg))),
        dict(name=STAGE_ADMISSION_GATE, title="Probing admission webhook", policy=fatal,
             confirms=(admission_query(admission_probe_document(), probe_cfg),)),
    ]
    if options.gateway_api_crds:
        crds = dep_value("gateway_api", "crds", default=[])
        specs.append(dict(
            name=STAGE_GATEWAY_API_CRDS, title="Installing Gateway API CRDs", policy=warn,
            body=partial(install_gateway_api_crds, env),
            confirms=tuple(schema_query(crd, probe_cfg) for crd in crds)))
    specs += [
        dict(name=STAGE_NAMESPACES, title="Ensuring namespaces", policy=fatal,
             body=partial(ensure_namespaces, env)),
        dict(name=STAGE_NAMESPACE_LABELS, title="Labeling namespaces for the mesh", policy=fatal,
             body=partial(label_namespaces, env)),
        dict(name=STAGE_GATEWAY, title="Installing Kong gateway", policy=fatal,
             body=partial(install_gateway, env)),
        dict(name=STAGE_MESH, title=f"Ensuring mesh '{cfg.mesh_name}'", policy=fatal,
             body=partial(ensure_mesh, env)),
        # The gateway install may have taken arbitrarily long; re-check the control plane.
        dict(name=STAGE_TRAFFIC_PERMISSIONS, title="Applying MeshTrafficPermissions", policy=warn,
             body=partial(apply_traffic_permissions, env),
             requires=(workload_query(NS_KUMA_SYSTEM, probe_cfg, selector=KUMA_CONTROL_PLANE_SELECTOR),)),
    ]
    if options.migration_assist:
        specs.append(dict(name=STAGE_MIGRATION_ASSIST, title="Scaling down competing ingress", policy=warn,
                          body=partial(run_migration_assist, env)))
    specs.append(dict(name=STAGE_ACCESS_SUMMARY, title="Gateway access", policy=warn,
                      body=partial(summarize_access, env)))

    return [Stage(ordinal=i, **spec) for i, spec in enumerate(specs, start=1)]
