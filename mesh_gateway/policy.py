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

"""MeshTrafficPermission generation from the service roster."""

from __future__ import annotations

from collections.abc import Iterator, Sequence

from mesh_gateway.constants import (
    KONG_APP_NAME,
    KUMA_API_VERSION,
    LABEL_APP_NAME,
    LABEL_K8S_NAMESPACE_TAG,
    LABEL_MESH,
)
from mesh_gateway.resources import ResourceDefinition


def permission_name(service: str) -> str:
    return f"{KONG_APP_NAME}-to-{service}"


def permission_definition(
    service: str, source_namespace: str, dest_namespace: str, mesh: str
) -> ResourceDefinition:
    """Build one targetRef-based MeshTrafficPermission.

    Allows the Kong proxy in *source_namespace* to reach *service* in
    *dest_namespace*.

    Args:
        service: Destination MeshService name.
        source_namespace: Namespace of the Kong proxy; also holds the policy.
        dest_namespace: Namespace of the destination service.
        mesh: Mesh the policy belongs to.

    Returns:
        The permission as a ResourceDefinition.
    """
    return ResourceDefinition(
        KUMA_API_VERSION, "MeshTrafficPermission", permission_name(service),
        namespace=source_namespace,
        labels={LABEL_MESH: mesh},
        body={
            "spec": {
                "targetRef": {"kind": "MeshService", "name": service, "namespace": dest_namespace},
                "from": [
                    {
                        "targetRef": {
                            "kind": "MeshSubset",
                            "tags": {
                                LABEL_K8S_NAMESPACE_TAG: source_namespace,
                                LABEL_APP_NAME: KONG_APP_NAME,
                            },
                        },
                        "default": {"action": "Allow"},
                    }
                ],
            }
        },
    )


class PermissionSet:
    """Lazy, restartable sequence of permission definitions.

    Each iteration starts a fresh generator over the roster, so iterating
    twice yields identical definitions.
    """

    def __init__(
        self,
        roster: Sequence[str],
        source_namespace: str,
        dest_namespace: str,
        mesh: str,
        supported: bool = True,
    ) -> None:
        self._roster = tuple(roster)
        self._source_namespace = source_namespace
        self._dest_namespace = dest_namespace
        self._mesh = mesh
        self.supported = supported

    def __iter__(self) -> Iterator[ResourceDefinition]:
        if not self.supported:
            return
        for service in self._roster:
            yield permission_definition(service, self._source_namespace, self._dest_namespace, self._mesh)

    def __len__(self) -> int:
        return len(self._roster) if self.supported else 0

    @property
    def roster(self) -> tuple[str, ...]:
        return self._roster


def generate_permissions(
    roster: Sequence[str],
    source_namespace: str,
    dest_namespace: str,
    mesh: str,
    supported: bool = True,
) -> PermissionSet:
    """Derive traffic permissions for every service in the roster.

    Args:
        roster: Ordered destination service names.
        source_namespace: Gateway namespace (traffic source, policy namespace).
        dest_namespace: Application namespace.
        mesh: Mesh the policies belong to.
        supported: False when the cluster lacks the MeshTrafficPermission
            kind; the set is then empty.

    Returns:
        A PermissionSet.
    """
    return PermissionSet(roster, source_namespace, dest_namespace, mesh, supported)
