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

"""Rollback subcommand (remove Kong, restore ingress-nginx)."""

from __future__ import annotations

import typer

from mesh_gateway.commands import check_prerequisites, make_clients
from mesh_gateway.config import InstallOptions, StackConfig
from mesh_gateway.orchestrator import RollbackOrchestrator


def rollback(
    skip_migration_assist: bool = typer.Option(
        False, "--skip-migration-assist", help="Do not scale ingress-nginx back up"),
) -> None:
    """Uninstall the Kong release and restore ingress-nginx to one replica."""
    check_prerequisites()
    stack_cfg = StackConfig()
    options = InstallOptions(migration_assist=not skip_migration_assist)
    cluster, helm = make_clients()
    RollbackOrchestrator(stack_cfg, options, cluster, helm).run()
