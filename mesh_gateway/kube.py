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

"""kubectl-backed access to the cluster resource store."""

from __future__ import annotations

import json
from enum import Enum

import yaml

from mesh_gateway import logger
from mesh_gateway.utils import is_not_found, run_kubectl


class Presence(str, Enum):
    """Result of looking up a single resource."""

    PRESENT = "present"
    ABSENT = "absent"
    ERROR = "error"


class ScaleOutcome(str, Enum):
    """Result of scaling a deployment."""

    SCALED = "scaled"
    NOT_FOUND = "not-found"
    FAILED = "failed"


def _ns_args(namespace: str | None) -> list[str]:
    return ["-n", namespace] if namespace else []


def _get_json(args: list[str]) -> dict | None:
    ok, stdout, stderr = run_kubectl(["get", *args, "-o", "json"])
    if not ok:
        logger.debug("kubectl get %s failed: %s", " ".join(args), stderr.strip()[:200])
        return None
    try:
        return json.loads(stdout)
    except json.JSONDecodeError:
        logger.debug("kubectl get %s returned non-JSON output", " ".join(args))
        return None


class KubeCluster:
    """Declarative apply / get / scale operations over kubectl.

    Every method reports failures through its return value; none of them
    raise for "already exists" or "not found".
    """

    def apply(self, manifest: dict) -> tuple[bool, str]:
        """Apply a manifest with ``kubectl apply -f -`` (create or update in place).

        Args:
            manifest: Kubernetes resource as a dictionary.

        Returns:
            Tuple of (success, stderr).
        """
        ok, _, stderr = run_kubectl(["apply", "-f", "-"], stdin=yaml.safe_dump(manifest, sort_keys=False))
        return ok, stderr

    def apply_url(self, url: str) -> tuple[bool, str]:
        """Apply a remote manifest bundle.

        Args:
            url: HTTPS URL of the manifest file.

        Returns:
            Tuple of (success, stderr).
        """
        ok, _, stderr = run_kubectl(["apply", "-f", url], timeout=120)
        return ok, stderr

    def lookup(self, kind: str, name: str, namespace: str | None = None) -> tuple[Presence, str]:
        """Look up a resource, telling "not found" apart from a failed query.

        Args:
            kind: Resource kind or plural (e.g. ``crd``, ``mesh``).
            name: Resource name.
            namespace: Namespace for namespaced kinds, None for cluster-scoped.

        Returns:
            Tuple of (presence, stderr). ERROR covers connection failures,
            RBAC denials and server errors.
        """
        ok, _, stderr = run_kubectl(["get", kind, name, *_ns_args(namespace), "-o", "name"])
        if ok:
            return Presence.PRESENT, ""
        if is_not_found(stderr):
            return Presence.ABSENT, stderr
        return Presence.ERROR, stderr

    def exists(self, kind: str, name: str, namespace: str | None = None) -> bool:
        """Whether a resource was positively observed; a failed query counts as False."""
        return self.lookup(kind, name, namespace)[0] is Presence.PRESENT

    def dry_run_create(self, manifest: dict) -> tuple[bool, str]:
        """Submit a manifest with ``--dry-run=server`` so admission webhooks see it.

        Args:
            manifest: Kubernetes resource as a dictionary.

        Returns:
            Tuple of (accepted, stderr).
        """
        ok, _, stderr = run_kubectl(
            ["create", "-f", "-", "--dry-run=server"],
            stdin=yaml.safe_dump(manifest, sort_keys=False),
        )
        return ok, stderr

    def workloads_available(self, namespace: str, selector: str | None = None) -> bool:
        """Whether every matching deployment has all desired replicas available.

        Args:
            namespace: Namespace to inspect.
            selector: Optional label selector; all deployments when None.

        Returns:
            True if at least one deployment matched and all are fully available.
        """
        args = ["deployments", "-n", namespace]
        if selector:
            args += ["-l", selector]
        data = _get_json(args)
        items = (data or {}).get("items", [])
        if not items:
            return False
        for item in items:
            desired = item.get("spec", {}).get("replicas", 1)
            available = item.get("status", {}).get("availableReplicas", 0) or 0
            if available < desired:
                return False
        return True

    def has_endpoints(self, service: str, namespace: str) -> bool:
        """Whether a service has at least one ready endpoint address.

        Args:
            service: Service name.
            namespace: Namespace of the service.

        Returns:
            True if any endpoint subset lists a ready address.
        """
        data = _get_json(["endpoints", service, "-n", namespace])
        for subset in (data or {}).get("subsets") or []:
            if subset.get("addresses"):
                return True
        return False

    def scale(self, deployment: str, namespace: str, replicas: int) -> tuple[ScaleOutcome, str]:
        """Scale a deployment.

        Args:
            deployment: Deployment name.
            namespace: Namespace of the deployment.
            replicas: Desired replica count.

        Returns:
            Tuple of (outcome, stderr).
        """
        ok, _, stderr = run_kubectl(
            ["scale", f"deployment/{deployment}", "-n", namespace, f"--replicas={replicas}"]
        )
        if ok:
            return ScaleOutcome.SCALED, ""
        if is_not_found(stderr):
            return ScaleOutcome.NOT_FOUND, stderr
        return ScaleOutcome.FAILED, stderr

    def label(self, kind: str, name: str, labels: dict[str, str]) -> tuple[bool, str]:
        """Force labels onto a resource with ``--overwrite``.

        Args:
            kind: Resource kind (e.g. ``namespace``).
            name: Resource name.
            labels: Label key-value pairs to set.

        Returns:
            Tuple of (success, stderr).
        """
        pairs = [f"{key}={value}" for key, value in labels.items()]
        ok, _, stderr = run_kubectl(["label", kind, name, *pairs, "--overwrite"])
        return ok, stderr

    def node_address(self) -> str | None:
        """Return the InternalIP of the first node, or None if unavailable."""
        data = _get_json(["nodes"])
        items = (data or {}).get("items", [])
        if not items:
            return None
        addresses = items[0].get("status", {}).get("addresses", [])
        for address in addresses:
            if address.get("type") == "InternalIP":
                return address.get("address")
        return addresses[0].get("address") if addresses else None

    def node_port(self, service: str, namespace: str, port_name: str) -> int | None:
        """Return the nodePort of a service port.

        Args:
            service: Service name.
            namespace: Namespace of the service.
            port_name: Preferred port name; the first port with a nodePort is
                used when no port has this name.

        Returns:
            The node port number, or None if the service has none.
        """
        data = _get_json(["service", service, "-n", namespace])
        ports = [p for p in (data or {}).get("spec", {}).get("ports", []) if p.get("nodePort")]
        for port in ports:
            if port.get("name") == port_name:
                return int(port["nodePort"])
        return int(ports[0]["nodePort"]) if ports else None
