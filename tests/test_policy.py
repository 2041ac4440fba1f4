"""Tests for MeshTrafficPermission generation."""

from __future__ import annotations

from mesh_gateway.policy import generate_permissions, permission_definition

ROSTER = ("catalog", "carts", "orders", "checkout")


class TestGeneratePermissions:
    def test_store_example(self):
        """Four services → four kong-to-<svc> permissions in the gateway namespace."""
        permissions = list(generate_permissions(ROSTER, "gateway", "the-store", "the-store"))
        assert [p.name for p in permissions] == [f"kong-to-{svc}" for svc in ROSTER]
        assert {p.namespace for p in permissions} == {"gateway"}
        assert {p.kind for p in permissions} == {"MeshTrafficPermission"}
        for svc, permission in zip(ROSTER, permissions):
            target = permission.body["spec"]["targetRef"]
            assert target == {"kind": "MeshService", "name": svc, "namespace": "the-store"}

    def test_restartable(self):
        permissions = generate_permissions(ROSTER, "gateway", "the-store", "the-store")
        first = [p.to_manifest() for p in permissions]
        second = [p.to_manifest() for p in permissions]
        assert first == second
        assert len(first) == len(permissions) == 4

    def test_is_lazy(self):
        permissions = generate_permissions(ROSTER, "gateway", "the-store", "the-store")
        iterator = iter(permissions)
        assert next(iterator).name == "kong-to-catalog"

    def test_unsupported_kind_yields_nothing(self):
        permissions = generate_permissions(ROSTER, "gateway", "the-store", "the-store", supported=False)
        assert list(permissions) == []
        assert len(permissions) == 0
        assert permissions.roster == ROSTER

    def test_empty_roster(self):
        assert list(generate_permissions((), "gateway", "the-store", "the-store")) == []


class TestPermissionDefinition:
    def test_source_selector_and_mesh_label(self):
        manifest = permission_definition("carts", "gateway", "the-store", "shop-mesh").to_manifest()
        assert manifest["apiVersion"] == "kuma.io/v1alpha1"
        assert manifest["metadata"]["labels"]["kuma.io/mesh"] == "shop-mesh"
        source = manifest["spec"]["from"][0]
        assert source["targetRef"]["kind"] == "MeshSubset"
        assert source["targetRef"]["tags"] == {
            "k8s.kuma.io/namespace": "gateway",
            "app.kubernetes.io/name": "kong",
        }
        assert source["default"] == {"action": "Allow"}

    def test_identity(self):
        definition = permission_definition("orders", "gateway", "the-store", "the-store")
        assert definition.identity == "MeshTrafficPermission/gateway/kong-to-orders"
