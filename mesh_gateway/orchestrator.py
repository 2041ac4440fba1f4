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

"""Install and rollback drivers that walk the stage graph."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from rich.panel import Panel

from mesh_gateway import console, logger
from mesh_gateway.access import AccessEndpoint
from mesh_gateway.config import InstallOptions, ProbeConfig, StackConfig
from mesh_gateway.constants import HELM_RELEASE_KONG
from mesh_gateway.errors import HardPreconditionError, StageFailure
from mesh_gateway.helm import HelmReleases, UninstallOutcome
from mesh_gateway.kube import KubeCluster
from mesh_gateway.migration import MigrationOutcome, scale_competing_ingress
from mesh_gateway.prober import ReadinessProber, ReadinessQuery
from mesh_gateway.resources import ApplyResult, ResourceApplier
from mesh_gateway.stages import FailurePolicy, Stage, StageEnv, StageOutcome, build_stage_graph


class RunState(str, Enum):
    NOT_STARTED = "not-started"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass
class StageRecord:
    """Outcome of one executed stage."""

    name: str
    ordinal: int
    policy: FailurePolicy
    completed: bool = False
    results: list[ApplyResult] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


@dataclass
class InstallReport:
    """Final state of an install run.

    Attributes:
        state: Run state; ABORTED means a fatal stage failed.
        current: Name of the stage that was running last.
        stages: Records for every stage that started.
        abort: The fatal error, when aborted.
        endpoints: Access endpoints computed at the end of a completed run.
        migration: Migration-assist outcome, kept apart from stage failures.
    """

    state: RunState = RunState.NOT_STARTED
    current: str | None = None
    stages: list[StageRecord] = field(default_factory=list)
    abort: HardPreconditionError | None = None
    endpoints: list[AccessEndpoint] = field(default_factory=list)
    migration: MigrationOutcome | None = None

    @property
    def succeeded(self) -> bool:
        return self.state is RunState.COMPLETED

    @property
    def warnings(self) -> list[str]:
        return [f"{record.name}: {w}" for record in self.stages for w in record.warnings]

    def record(self, name: str) -> StageRecord | None:
        return next((r for r in self.stages if r.name == name), None)


class InstallOrchestrator:
    """Drives the install stages from first to last.

    A FATAL stage failure moves the run to ABORTED and no later stage runs;
    WARN_AND_CONTINUE failures are recorded as warnings.
    """

    def __init__(
        self,
        stack_cfg: StackConfig,
        probe_cfg: ProbeConfig,
        options: InstallOptions,
        cluster: KubeCluster,
        helm: HelmReleases,
        prober: ReadinessProber,
    ) -> None:
        self._env = StageEnv(stack_cfg, probe_cfg, options, cluster, helm, ResourceApplier(cluster))
        self._prober = prober

    def _check(self, stage: Stage, queries: tuple[ReadinessQuery, ...], record: StageRecord) -> None:
        for query in queries:
            result = self._prober.wait_for(query)
            if result.ready:
                console.print(f"[green]✅ {query.describe()} is ready[/green]")
                continue
            message = f"{query.describe()} not ready after {result.attempts} check(s) ({result.elapsed:.0f}s)"
            if result.last_error:
                message += f": {result.last_error}"
            if stage.policy is FailurePolicy.FATAL:
                raise StageFailure(message)
            console.print(f"[yellow]⚠️  {message}[/yellow]")
            record.warnings.append(message)

    def _run_stage(self, stage: Stage, record: StageRecord) -> StageOutcome:
        console.print(Panel.fit(f"[{stage.ordinal}] {stage.title}", style="bold blue"))
        outcome = StageOutcome()
        try:
            self._check(stage, stage.requires, record)
            if stage.body is not None:
                outcome = stage.body()
            self._check(stage, stage.confirms, record)
        except StageFailure as err:
            if stage.policy is FailurePolicy.FATAL:
                raise HardPreconditionError(stage.name, str(err)) from err
            logger.warning("Stage %s degraded: %s", stage.name, err)
            console.print(f"[yellow]⚠️  {err}[/yellow]")
            record.warnings.append(str(err))
        record.results.extend(outcome.results)
        record.warnings.extend(outcome.warnings)
        record.skipped.extend(outcome.skipped)
        record.completed = True
        return outcome

    def run(self) -> InstallReport:
        """Execute every stage in order.

        Returns:
            InstallReport; check ``succeeded`` or ``state`` for the result.
        """
        report = InstallReport(state=RunState.RUNNING)
        for stage in build_stage_graph(self._env):
            report.current = stage.name
            record = StageRecord(stage.name, stage.ordinal, stage.policy)
            report.stages.append(record)
            try:
                outcome = self._run_stage(stage, record)
            except HardPreconditionError as err:
                logger.error("Install aborted at stage %s: %s", err.stage, err.cause)
                console.print(f"[red]❌ {err}[/red]")
                report.state = RunState.ABORTED
                report.abort = err
                return report
            if outcome.endpoints:
                report.endpoints = outcome.endpoints
            if outcome.migration is not None:
                report.migration = outcome.migration

        report.state = RunState.COMPLETED
        console.print("[green]✅ Kuma + Kong installed[/green]")
        for warning in report.warnings:
            console.print(f"[yellow]   ⚠️  {warning}[/yellow]")
        return report


# ============================================================================
# Rollback
# ============================================================================

@dataclass
class RollbackReport:
    """Outcome of a rollback; never fatal."""

    release: UninstallOutcome | None = None
    migration: MigrationOutcome | None = None
    warnings: list[str] = field(default_factory=list)


class RollbackOrchestrator:
    """Removes the Kong release and restores the competing ingress path.

    The control plane, namespaces, mesh and permissions are left in place.
    """

    def __init__(
        self,
        stack_cfg: StackConfig,
        options: InstallOptions,
        cluster: KubeCluster,
        helm: HelmReleases,
    ) -> None:
        self._stack_cfg = stack_cfg
        self._options = options
        self._cluster = cluster
        self._helm = helm

    def _uninstall_gateway(self, report: RollbackReport) -> None:
        namespace = self._stack_cfg.gateway_namespace
        outcome, message = self._helm.uninstall(HELM_RELEASE_KONG, namespace)
        report.release = outcome
        if outcome is UninstallOutcome.REMOVED:
            console.print(f"[green]✅ Release '{HELM_RELEASE_KONG}' removed from {namespace}[/green]")
        elif outcome is UninstallOutcome.NOT_FOUND:
            console.print(f"[yellow]ℹ️  Release '{HELM_RELEASE_KONG}' not found in {namespace}[/yellow]")
        else:
            logger.warning("helm uninstall %s failed: %s", HELM_RELEASE_KONG, message)
            console.print(f"[yellow]⚠️  Could not uninstall '{HELM_RELEASE_KONG}': {message[:200]}[/yellow]")
            report.warnings.append(f"helm uninstall {HELM_RELEASE_KONG}: {message[:200]}")

    def run(self) -> RollbackReport:
        """Roll the data-plane layer back, tolerating anything already absent."""
        report = RollbackReport()
        console.print(Panel.fit("Rolling back Kong gateway", style="bold blue"))
        self._uninstall_gateway(report)
        if self._options.migration_assist:
            report.migration = scale_competing_ingress(
                self._cluster, self._options.ingress_namespace, self._options.ingress_deployment, 1,
            )
            if not report.migration.ok:
                report.warnings.append(f"scale {report.migration.target}: {report.migration.detail}")
        console.print("[green]✅ Rollback complete[/green]")
        return report
