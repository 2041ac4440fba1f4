"""Tests for environment-driven configuration models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from mesh_gateway.config import InstallOptions, ProbeConfig, StackConfig

_ENV_VARS = (
    "NAMESPACE", "GATEWAY_NS", "MESH_NAME", "SERVICES",
    "MESH_GW_POLL_INTERVAL", "MESH_GW_MAX_ATTEMPTS",
    "MESH_GW_SCHEMA_TIMEOUT", "MESH_GW_WORKLOAD_TIMEOUT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)


class TestStackConfig:
    def test_defaults(self):
        cfg = StackConfig()
        assert cfg.namespace == "the-store"
        assert cfg.gateway_namespace == "gateway"
        assert cfg.mesh_name == "the-store"
        assert cfg.services == ("catalog", "carts", "orders", "checkout")

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("NAMESPACE", "shop")
        monkeypatch.setenv("GATEWAY_NS", "edge")
        monkeypatch.setenv("MESH_NAME", "default")
        monkeypatch.setenv("SERVICES", "ui, catalog,orders")
        cfg = StackConfig()
        assert (cfg.namespace, cfg.gateway_namespace, cfg.mesh_name) == ("shop", "edge", "default")
        assert cfg.services == ("ui", "catalog", "orders")

    def test_mesh_defaults_to_namespace(self, monkeypatch):
        monkeypatch.setenv("NAMESPACE", "shop")
        monkeypatch.setenv("MESH_NAME", "")
        assert StackConfig().mesh_name == "shop"

    def test_services_deduplicated_in_order(self):
        cfg = StackConfig(services=["carts", "catalog", "carts"])
        assert cfg.services == ("carts", "catalog")

    @pytest.mark.parametrize("bad", ["", "Upper", "-leading", "has_underscore"])
    def test_invalid_namespace(self, bad):
        with pytest.raises(ValidationError):
            StackConfig(namespace=bad)

    @pytest.mark.parametrize("bad", ["Bad Name", "UPPER", "mesh_1", "trailing-", "x" * 64])
    def test_invalid_mesh_name(self, monkeypatch, bad):
        monkeypatch.setenv("MESH_NAME", bad)
        with pytest.raises(ValidationError, match="mesh name"):
            StackConfig()

    def test_invalid_service_entry(self, monkeypatch):
        monkeypatch.setenv("SERVICES", "catalog,Carts_v2")
        with pytest.raises(ValidationError, match="Carts_v2"):
            StackConfig()

    def test_empty_gateway_namespace(self, monkeypatch):
        monkeypatch.setenv("GATEWAY_NS", "")
        with pytest.raises(ValidationError):
            StackConfig()

    def test_frozen(self):
        cfg = StackConfig()
        with pytest.raises(ValidationError):
            cfg.namespace = "other"


class TestProbeConfig:
    def test_defaults(self):
        cfg = ProbeConfig()
        assert (cfg.poll_interval, cfg.max_attempts) == (2.0, 60)
        assert (cfg.schema_timeout, cfg.workload_timeout) == (120.0, 300.0)

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("MESH_GW_MAX_ATTEMPTS", "5")
        monkeypatch.setenv("MESH_GW_POLL_INTERVAL", "0.5")
        cfg = ProbeConfig()
        assert cfg.max_attempts == 5
        assert cfg.poll_interval == 0.5

    def test_rejects_zero_attempts(self):
        with pytest.raises(ValidationError):
            ProbeConfig(max_attempts=0)


class TestInstallOptions:
    def test_defaults(self):
        options = InstallOptions(platform="Linux")
        assert options.migration_assist is True
        assert options.gateway_api_crds is False
        assert options.ingress_namespace == "ingress-nginx"
        assert options.ingress_deployment == "ingress-nginx-controller"
        assert options.port_forward_port == 8080
        assert options.kuma_version == ""
