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

"""Mesh, gateway configuration and Helm values documents."""

from __future__ import annotations

import yaml

from mesh_gateway.config import StackConfig
from mesh_gateway.constants import (
    ADMISSION_PROBE_NAME,
    GATEWAY_API_BASE_URL,
    KONG_CONFIG_KEY,
    KONG_CONFIG_MAP,
    KONG_UPSTREAM_SERVICE,
    KUMA_API_VERSION,
    LABEL_MESH,
    LABEL_SIDECAR_INJECTION,
)
from mesh_gateway.resources import ResourceDefinition


def mesh_definition(mesh_name: str) -> ResourceDefinition:
    """Build the baseline Mesh resource.

    Args:
        mesh_name: Name of the Kuma mesh.

    Returns:
        Cluster-scoped Mesh definition with an empty spec.
    """
    return ResourceDefinition(KUMA_API_VERSION, "Mesh", mesh_name, body={"spec": {}})


def admission_probe_document() -> dict:
    """Build the synthetic Mesh submitted as a server-side dry-run.

    The name is reserved for probing and never persisted.
    """
    return {
        "apiVersion": KUMA_API_VERSION,
        "kind": "Mesh",
        "metadata": {"name": ADMISSION_PROBE_NAME},
        "spec": {},
    }


def mesh_membership_labels(stack_cfg: StackConfig) -> dict[str, str]:
    """Labels that enroll a namespace in the mesh with sidecar injection."""
    return {
        LABEL_SIDECAR_INJECTION: "enabled",
        LABEL_MESH: stack_cfg.mesh_name,
    }


def kong_declarative_config(stack_cfg: StackConfig) -> dict:
    """Build the DB-less Kong route document.

    Args:
        stack_cfg: Stack configuration with the application namespace.

    Returns:
        Kong declarative configuration routing ``/`` to the UI service.
    """
    return {
        "_format_version": "3.0",
        "services": [
            {
                "name": f"{KONG_UPSTREAM_SERVICE}-svc",
                "url": f"http://{KONG_UPSTREAM_SERVICE}.{stack_cfg.namespace}.svc.cluster.local:80",
                "routes": [
                    {
                        "name": f"{KONG_UPSTREAM_SERVICE}-root",
                        "paths": ["/"],
                        "strip_path": False,
                        "protocols": ["http"],
                    }
                ],
            }
        ],
    }


def kong_config_definition(stack_cfg: StackConfig) -> ResourceDefinition:
    """Wrap the Kong declarative configuration in a ConfigMap."""
    document = yaml.safe_dump(kong_declarative_config(stack_cfg), sort_keys=False)
    return ResourceDefinition(
        "v1", "ConfigMap", KONG_CONFIG_MAP,
        namespace=stack_cfg.gateway_namespace,
        body={"data": {KONG_CONFIG_KEY: document}},
    )


def kong_values() -> dict:
    """Helm values for a DB-less Kong proxy exposed as a NodePort."""
    return {
        "ingressController": {"enabled": False},
        "env": {"database": "off"},
        "proxy": {"type": "NodePort"},
        "dblessConfig": {"configMap": KONG_CONFIG_MAP, "configMapKey": KONG_CONFIG_KEY},
    }


def gateway_api_url(version: str) -> str:
    """Release URL of the Gateway API standard CRD bundle."""
    return f"{GATEWAY_API_BASE_URL}/{version}/standard-install.yaml"
