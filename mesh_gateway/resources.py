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

"""Declarative resource definitions and the idempotent applier."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from mesh_gateway import logger
from mesh_gateway.constants import LABEL_MANAGED_BY, MANAGED_BY
from mesh_gateway.kube import KubeCluster, Presence


@dataclass(frozen=True)
class ResourceDefinition:
    """A named, typed declarative document addressed by (kind, name, namespace).

    Attributes:
        api_version: Kubernetes apiVersion.
        kind: Kubernetes kind.
        name: metadata.name.
        namespace: metadata.namespace, or None for cluster-scoped kinds.
        labels: metadata.labels, in addition to the managed-by label.
        body: Top-level fields other than apiVersion/kind/metadata (``spec``, ``data``...).
    """

    api_version: str
    kind: str
    name: str
    namespace: str | None = None
    labels: dict[str, str] = field(default_factory=dict, compare=False, hash=False)
    body: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def identity(self) -> str:
        """Stable ``Kind/namespace/name`` identifier."""
        if self.namespace:
            return f"{self.kind}/{self.namespace}/{self.name}"
        return f"{self.kind}/{self.name}"

    def to_manifest(self) -> dict:
        """Render the definition as a Kubernetes manifest."""
        metadata: dict[str, Any] = {
            "name": self.name,
            "labels": {LABEL_MANAGED_BY: MANAGED_BY, **self.labels},
        }
        if self.namespace:
            metadata["namespace"] = self.namespace
        return {"apiVersion": self.api_version, "kind": self.kind, "metadata": metadata, **self.body}


@dataclass(frozen=True)
class ApplyResult:
    """Per-resource outcome; "already exists" is a success, never an error.

    Attributes:
        succeeded: Whether the resource is now in the desired state.
        identity: ``ResourceDefinition.identity`` of the applied resource.
        warning: Diagnostic text for failures or notable successes.
    """

    succeeded: bool
    identity: str
    warning: str = ""


class ResourceApplier:
    """Submits resource definitions to the cluster, one independent call each.

    The store treats an existing (kind, name, namespace) as update-in-place,
    so repeating an apply is safe. Nothing is retried here.
    """

    def __init__(self, cluster: KubeCluster) -> None:
        self._cluster = cluster

    def apply(self, definition: ResourceDefinition) -> ApplyResult:
        """Create or update a resource.

        Args:
            definition: Resource to apply.

        Returns:
            ApplyResult describing the outcome.
        """
        ok, stderr = self._cluster.apply(definition.to_manifest())
        if ok:
            logger.debug("Applied %s", definition.identity)
            return ApplyResult(True, definition.identity)
        logger.warning("Failed to apply %s: %s", definition.identity, stderr.strip()[:200])
        return ApplyResult(False, definition.identity, stderr.strip()[:200] or "kubectl apply failed")

    def apply_all(self, definitions: Iterable[ResourceDefinition]) -> list[ApplyResult]:
        """Apply definitions in iteration order; a failure never skips a sibling.

        Args:
            definitions: Resources to apply.

        Returns:
            One ApplyResult per definition, in the same order.
        """
        return [self.apply(definition) for definition in definitions]

    def ensure(self, definition: ResourceDefinition) -> ApplyResult:
        """Create a resource only if it does not exist yet.

        Args:
            definition: Resource to create.

        Returns:
            ApplyResult; an existing resource is left untouched and reported as
            a success with an "already present" warning. A failed lookup is
            reported as a failure and nothing is applied.
        """
        presence, stderr = self._cluster.lookup(definition.kind.lower(), definition.name, definition.namespace)
        if presence is Presence.ERROR:
            logger.warning("Could not look up %s: %s", definition.identity, stderr.strip()[:200])
            return ApplyResult(False, definition.identity, f"lookup failed: {stderr.strip()[:200]}")
        if presence is Presence.PRESENT:
            logger.debug("%s already present, leaving it untouched", definition.identity)
            return ApplyResult(True, definition.identity, "already present")
        return self.apply(definition)

    def ensure_namespace(self, name: str) -> ApplyResult:
        """Idempotently create a namespace.

        Args:
            name: Namespace name.

        Returns:
            ApplyResult for the namespace.
        """
        return self.apply(ResourceDefinition("v1", "Namespace", name))

    def label_namespace(self, name: str, labels: dict[str, str]) -> ApplyResult:
        """Force labels onto a namespace, overwriting any previous values.

        Args:
            name: Namespace name.
            labels: Label key-value pairs.

        Returns:
            ApplyResult for the namespace.
        """
        identity = f"Namespace/{name}"
        ok, stderr = self._cluster.label("namespace", name, labels)
        if ok:
            return ApplyResult(True, identity)
        return ApplyResult(False, identity, stderr.strip()[:200] or "kubectl label failed")
