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

"""Gateway access endpoint discovery and summary output."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from rich.table import Table

from mesh_gateway import console
from mesh_gateway.config import InstallOptions, StackConfig
from mesh_gateway.constants import KONG_PROXY_PORT_NAME, KONG_PROXY_SERVICE
from mesh_gateway.kube import KubeCluster
from mesh_gateway.utils import port_forward_host


class AccessMethod(str, Enum):
    PORT_FORWARD = "port-forward"
    NODE_PORT = "node-port"


@dataclass(frozen=True)
class AccessEndpoint:
    """One way to reach the gateway from outside the cluster."""

    scheme: str
    host: str
    port: int
    method: AccessMethod
    hint: str = ""

    @property
    def url(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}"


def compute_access_endpoints(
    cluster: KubeCluster, stack_cfg: StackConfig, options: InstallOptions
) -> list[AccessEndpoint]:
    """Derive access endpoints from addresses observed in the cluster.

    The port-forward endpoint is always listed; the NodePort endpoint only
    when both a node address and a node port are observable.

    Args:
        cluster: Cluster access.
        stack_cfg: Stack configuration with the gateway namespace.
        options: Install options with the local port and host platform.

    Returns:
        Endpoints in display order.
    """
    hint = (
        f"kubectl -n {stack_cfg.gateway_namespace} port-forward "
        f"svc/{KONG_PROXY_SERVICE} {options.port_forward_port}:80"
    )
    endpoints = [
        AccessEndpoint(
            "http", port_forward_host(options.platform), options.port_forward_port,
            AccessMethod.PORT_FORWARD, hint,
        )
    ]
    node_ip = cluster.node_address()
    node_port = cluster.node_port(KONG_PROXY_SERVICE, stack_cfg.gateway_namespace, KONG_PROXY_PORT_NAME)
    if node_ip and node_port:
        endpoints.append(AccessEndpoint("http", node_ip, node_port, AccessMethod.NODE_PORT))
    return endpoints


def print_access_summary(endpoints: list[AccessEndpoint]) -> None:
    """Render the endpoints as a table on the console."""
    table = Table(title="Kong endpoints", title_style="bold")
    table.add_column("Method", style="cyan")
    table.add_column("URL", style="green")
    table.add_column("How")
    for endpoint in endpoints:
        table.add_row(endpoint.method.value, endpoint.url, endpoint.hint)
    console.print(table)
    if any(e.method is AccessMethod.PORT_FORWARD for e in endpoints):
        console.print("[dim]Linux containers: use --network host when running E2E tests[/dim]")
