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

"""Configuration classes and config models."""

from __future__ import annotations

import platform
import re
from dataclasses import dataclass, field
from typing import Annotated

from pydantic import AliasChoices, Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from mesh_gateway.constants import (
    DEFAULT_GATEWAY_NAMESPACE,
    DEFAULT_NAMESPACE,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_POLL_MAX_ATTEMPTS,
    DEFAULT_PORT_FORWARD_PORT,
    DEFAULT_SCHEMA_TIMEOUT_SECONDS,
    DEFAULT_SERVICES,
    DEFAULT_WORKLOAD_TIMEOUT_SECONDS,
    INGRESS_NGINX_DEPLOYMENT,
    NS_INGRESS_NGINX,
    dep_value,
)

DNS_LABEL_PATTERN = r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$"
_DNS_LABEL_RE = re.compile(DNS_LABEL_PATTERN)


def _require_dns_label(value: str, what: str) -> str:
    if len(value) > 63 or not _DNS_LABEL_RE.match(value):
        raise ValueError(f"{what} '{value}' is not a valid DNS-1123 label")
    return value


# ============================================================================
# Configuration classes
# ============================================================================

class StackConfig(BaseSettings):
    """Stack identity, auto-loaded from NAMESPACE / GATEWAY_NS / MESH_NAME / SERVICES.

    Loaded once at process start and passed to every component; nothing
    downstream reads the environment.

    Attributes:
        namespace: Namespace the application services run in.
        gateway_namespace: Namespace the Kong gateway is installed into.
        mesh_name: Kuma mesh the namespaces join. Falls back to *namespace*.
        services: Ordered service roster that receives traffic permissions.
    """

    model_config = SettingsConfigDict(frozen=True, extra="ignore")

    namespace: str = Field(
        default=DEFAULT_NAMESPACE,
        validation_alias=AliasChoices("NAMESPACE", "namespace"),
        min_length=1, max_length=63, pattern=DNS_LABEL_PATTERN,
    )
    gateway_namespace: str = Field(
        default=DEFAULT_GATEWAY_NAMESPACE,
        validation_alias=AliasChoices("GATEWAY_NS", "gateway_namespace"),
        min_length=1, max_length=63, pattern=DNS_LABEL_PATTERN,
    )
    mesh_name: str = Field(
        default="",
        validation_alias=AliasChoices("MESH_NAME", "mesh_name"),
        validate_default=True,
    )
    services: Annotated[tuple[str, ...], NoDecode] = Field(
        default=DEFAULT_SERVICES,
        validation_alias=AliasChoices("SERVICES", "services"),
    )

    @field_validator("mesh_name")
    @classmethod
    def _default_mesh_name(cls, value: str, info: ValidationInfo) -> str:
        return _require_dns_label(value.strip() or info.data.get("namespace", DEFAULT_NAMESPACE), "mesh name")

    @field_validator("services", mode="before")
    @classmethod
    def _split_services(cls, value: object) -> object:
        if isinstance(value, str):
            value = [item for item in value.replace(",", " ").split()]
        if isinstance(value, (list, tuple)):
            # Order-preserving de-duplication.
            return tuple(dict.fromkeys(str(item).strip() for item in value if str(item).strip()))
        return value

    @field_validator("services")
    @classmethod
    def _check_services(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        for service in value:
            _require_dns_label(service, "service")
        return value


class ProbeConfig(BaseSettings):
    """Readiness polling bounds, auto-loaded from MESH_GW_* env vars.

    Attributes:
        poll_interval: Seconds between two readiness checks.
        max_attempts: Maximum readiness checks per query.
        schema_timeout: Deadline in seconds for CRD existence waits.
        workload_timeout: Deadline in seconds for workload, endpoint and admission waits.
    """

    model_config = SettingsConfigDict(env_prefix="MESH_GW_", frozen=True, extra="ignore")

    poll_interval: float = Field(default=DEFAULT_POLL_INTERVAL_SECONDS, gt=0)
    max_attempts: int = Field(default=DEFAULT_POLL_MAX_ATTEMPTS, ge=1)
    schema_timeout: float = Field(default=DEFAULT_SCHEMA_TIMEOUT_SECONDS, gt=0)
    workload_timeout: float = Field(default=DEFAULT_WORKLOAD_TIMEOUT_SECONDS, gt=0)


# ============================================================================
# Install options
# ============================================================================

@dataclass(frozen=True)
class InstallOptions:
    """Options for a single install or rollback run.

    Attributes:
        kuma_version: Kuma Helm chart version, or empty string for latest.
        kong_version: Kong Helm chart version, or empty string for latest.
        migration_assist: Whether to scale the competing ingress controller down.
        gateway_api_crds: Whether to install the Gateway API CRDs.
        ingress_namespace: Namespace of the competing ingress controller.
        ingress_deployment: Deployment name of the competing ingress controller.
        port_forward_port: Local port shown in the port-forward access hint.
        platform: Host OS name used to pick the port-forward host.
    """

    kuma_version: str = field(default_factory=lambda: dep_value("kuma", "version", default=""))
    kong_version: str = field(default_factory=lambda: dep_value("kong", "version", default=""))
    migration_assist: bool = True
    gateway_api_crds: bool = False
    ingress_namespace: str = NS_INGRESS_NGINX
    ingress_deployment: str = INGRESS_NGINX_DEPLOYMENT
    port_forward_port: int = DEFAULT_PORT_FORWARD_PORT
    platform: str = field(default_factory=platform.system)
