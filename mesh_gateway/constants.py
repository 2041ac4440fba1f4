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

"""Constants, dependency loading, and dep_value helper."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml


def load_dependencies() -> dict:
    """Load chart repositories and versions from dependencies.yaml.

    Returns:
        Parsed YAML content as a nested dictionary.
    """
    deps_file = Path(__file__).resolve().parent / "dependencies.yaml"
    with open(deps_file) as f:
        return yaml.safe_load(f)


DEPENDENCIES = load_dependencies()


def dep_value(*keys: str, default: Any = None) -> Any:
    """Safely traverse the DEPENDENCIES dict by key path.

    Args:
        *keys: Sequence of dictionary keys to traverse.
        default: Value to return if any key is missing.

    Returns:
        The value at the nested key path, or *default* if not found.
    """
    node = DEPENDENCIES
    for key in keys:
        if not isinstance(node, dict):
            return default
        node = node.get(key)
        if node is None:
            return default
    return node


# -- Stack defaults --
DEFAULT_NAMESPACE = "the-store"
DEFAULT_GATEWAY_NAMESPACE = "gateway"
DEFAULT_SERVICES = ("catalog", "carts", "orders", "checkout")

# -- Readiness polling defaults (seconds) --
DEFAULT_POLL_INTERVAL_SECONDS = 2.0
DEFAULT_POLL_MAX_ATTEMPTS = 60
DEFAULT_SCHEMA_TIMEOUT_SECONDS = 120.0
DEFAULT_WORKLOAD_TIMEOUT_SECONDS = 300.0

KUBECTL_TIMEOUT_SECONDS = 60
HELM_TIMEOUT_SECONDS = 600
HELM_REPO_TIMEOUT_SECONDS = 120

# -- Namespaces --
NS_KUMA_SYSTEM = "kuma-system"
NS_INGRESS_NGINX = "ingress-nginx"

# -- Helm releases --
HELM_RELEASE_KUMA = "kuma"
HELM_RELEASE_KONG = "kong-gw"

# -- Control plane --
KUMA_MESH_CRD = "meshes.kuma.io"
KUMA_PERMISSION_CRD = "meshtrafficpermissions.kuma.io"
KUMA_API_VERSION = "kuma.io/v1alpha1"
KUMA_CONTROL_PLANE_SERVICE = "kuma-control-plane"
KUMA_CONTROL_PLANE_SELECTOR = "app=kuma-control-plane"
HELM_KEY_KUMA_MODE = "controlPlane.mode=standalone"

# -- Admission probe --
ADMISSION_PROBE_NAME = "mesh-gateway-admission-probe"

# -- Gateway --
KONG_CONFIG_MAP = "kong-dbless-config"
KONG_CONFIG_KEY = "kong.yml"
KONG_PROXY_SERVICE = f"{HELM_RELEASE_KONG}-kong-proxy"
KONG_PROXY_PORT_NAME = "kong-proxy"
KONG_UPSTREAM_SERVICE = "ui"
KONG_APP_NAME = "kong"
GATEWAY_API_BASE_URL = "https://github.com/kubernetes-sigs/gateway-api/releases/download"
DEFAULT_PORT_FORWARD_PORT = 8080

# -- Competing ingress path --
INGRESS_NGINX_DEPLOYMENT = "ingress-nginx-controller"

# -- Labels --
LABEL_SIDECAR_INJECTION = "kuma.io/sidecar-injection"
LABEL_MESH = "kuma.io/mesh"
LABEL_K8S_NAMESPACE_TAG = "k8s.kuma.io/namespace"
LABEL_APP_NAME = "app.kubernetes.io/name"
LABEL_MANAGED_BY = "app.kubernetes.io/managed-by"
MANAGED_BY = "mesh-gateway"

# -- Stage names --
STAGE_CONTROL_PLANE = "control-plane"
STAGE_CONTROL_PLANE_READY = "control-plane-ready"
STAGE_ADMISSION_GATE = "admission-gate"
STAGE_GATEWAY_API_CRDS = "gateway-api-crds"
STAGE_NAMESPACES = "namespaces"
STAGE_NAMESPACE_LABELS = "namespace-labels"
STAGE_GATEWAY = "gateway"
STAGE_MESH = "mesh"
STAGE_TRAFFIC_PERMISSIONS = "traffic-permissions"
STAGE_MIGRATION_ASSIST = "migration-assist"
STAGE_ACCESS_SUMMARY = "access-summary"
