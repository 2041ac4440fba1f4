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

"""Best-effort scaling of a competing ingress controller.

Outcomes here are reported on their own and never change the state of an
install or rollback run.
"""

from __future__ import annotations

from dataclasses import dataclass

from mesh_gateway import console, logger
from mesh_gateway.kube import KubeCluster, ScaleOutcome


@dataclass(frozen=True)
class MigrationOutcome:
    """Result of scaling the competing ingress controller.

    Attributes:
        target: ``namespace/deployment`` that was scaled.
        replicas: Requested replica count.
        result: SCALED, NOT_FOUND or FAILED.
        detail: kubectl error text, if any.
    """

    target: str
    replicas: int
    result: ScaleOutcome
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.result is not ScaleOutcome.FAILED


def scale_competing_ingress(cluster: KubeCluster, namespace: str, deployment: str, replicas: int) -> MigrationOutcome:
    """Scale the competing ingress controller, tolerating its absence.

    Args:
        cluster: Cluster access.
        namespace: Namespace of the ingress controller.
        deployment: Deployment name of the ingress controller.
        replicas: Desired replica count (0 on install, 1 on rollback).

    Returns:
        MigrationOutcome; never raises.
    """
    target = f"{namespace}/{deployment}"
    result, stderr = cluster.scale(deployment, namespace, replicas)
    if result is ScaleOutcome.SCALED:
        console.print(f"[green]✅ Scaled {target} to {replicas} replica(s)[/green]")
    elif result is ScaleOutcome.NOT_FOUND:
        console.print(f"[yellow]ℹ️  {target} not found, nothing to scale[/yellow]")
    else:
        logger.warning("Scaling %s failed: %s", target, stderr.strip()[:200])
        console.print(f"[yellow]⚠️  Could not scale {target}: {stderr.strip()[:200]}[/yellow]")
    return MigrationOutcome(target, replicas, result, stderr.strip()[:200])
