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

"""Install subcommand (Kuma + Kong + mesh policies)."""

from __future__ import annotations

import typer

from mesh_gateway.commands import check_prerequisites, make_clients
from mesh_gateway.config import InstallOptions, ProbeConfig, StackConfig
from mesh_gateway.constants import DEFAULT_PORT_FORWARD_PORT
from mesh_gateway.orchestrator import InstallOrchestrator, InstallReport
from mesh_gateway.prober import ReadinessProber


def run_install(
    *,
    skip_migration_assist: bool = False,
    gateway_api_crds: bool = False,
    kuma_version: str | None = None,
    kong_version: str | None = None,
    port_forward_port: int = DEFAULT_PORT_FORWARD_PORT,
) -> InstallReport:
    """Install the stack and exit non-zero if a fatal stage aborts.

    Args:
        skip_migration_assist: Whether to leave the competing ingress controller alone.
        gateway_api_crds: Whether to install the Gateway API CRDs.
        kuma_version: Kuma chart version override, or None.
        kong_version: Kong chart version override, or None.
        port_forward_port: Local port shown in the port-forward hint.

    Returns:
        The completed InstallReport.

    Raises:
        typer.Exit: With code 1 when the run aborted.
    """
    check_prerequisites()
    stack_cfg = StackConfig()
    probe_cfg = ProbeConfig()
    overrides: dict = {
        "migration_assist": not skip_migration_assist,
        "gateway_api_crds": gateway_api_crds,
        "port_forward_port": port_forward_port,
    }
    if kuma_version is not None:
        overrides["kuma_version"] = kuma_version
    if kong_version is not None:
        overrides["kong_version"] = kong_version
    options = InstallOptions(**overrides)

    cluster, helm = make_clients()
    report = InstallOrchestrator(
        stack_cfg, probe_cfg, options, cluster, helm, ReadinessProber(cluster),
    ).run()
    if not report.succeeded:
        raise typer.Exit(code=1)
    return report


def install(
    skip_migration_assist: bool = typer.Option(
        False, "--skip-migration-assist", help="Do not scale down ingress-nginx"),
    gateway_api_crds: bool = typer.Option(
        False, "--gateway-api-crds", help="Also install the Gateway API CRDs"),
    kuma_version: str | None = typer.Option(
        None, "--kuma-version", help="Kuma Helm chart version"),
    kong_version: str | None = typer.Option(
        None, "--kong-version", help="Kong Helm chart version"),
    port_forward_port: int = typer.Option(
        DEFAULT_PORT_FORWARD_PORT, "--port-forward-port", help="Local port for the port-forward hint"),
) -> None:
    """Install Kuma, Kong and the mesh traffic permissions (idempotent)."""
    run_install(
        skip_migration_assist=skip_migration_assist,
        gateway_api_crds=gateway_api_crds,
        kuma_version=kuma_version,
        kong_version=kong_version,
        port_forward_port=port_forward_port,
    )
