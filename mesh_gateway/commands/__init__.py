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

"""CLI subcommands and the helpers they share."""

from __future__ import annotations

from rich.panel import Panel

from mesh_gateway import console
from mesh_gateway.helm import HelmReleases
from mesh_gateway.kube import KubeCluster
from mesh_gateway.utils import require_command

PREREQUISITES = ("kubectl", "helm")


def check_prerequisites() -> None:
    """Fail fast when kubectl or helm is missing."""
    console.print(Panel.fit("Checking prerequisites", style="bold blue"))
    for cmd in PREREQUISITES:
        require_command(cmd)
    console.print("[green]✅ All required tools are available[/green]")


def make_clients() -> tuple[KubeCluster, HelmReleases]:
    """Build the cluster and release clients for one run."""
    return KubeCluster(), HelmReleases()
