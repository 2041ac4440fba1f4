#!/usr/bin/env python3
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

"""
cli.py - Provision the Kuma + Kong mesh gateway stack.

Subcommands:
    install    Install Kuma, Kong and the mesh traffic permissions (default)
    rollback   Uninstall Kong and restore ingress-nginx

Environment Variables:
    NAMESPACE          Application namespace (default: the-store)
    GATEWAY_NS         Gateway namespace (default: gateway)
    MESH_NAME          Kuma mesh name (default: same as NAMESPACE)
    SERVICES           Comma-separated service roster (default: catalog,carts,orders,checkout)
    MESH_GW_POLL_INTERVAL, MESH_GW_MAX_ATTEMPTS,
    MESH_GW_SCHEMA_TIMEOUT, MESH_GW_WORKLOAD_TIMEOUT
                       Readiness polling bounds

Examples:
    # Install (same as "install")
    mesh-gateway

    # Re-run safely; existing resources are updated in place
    mesh-gateway install --skip-migration-assist

    # Remove the gateway and bring ingress-nginx back
    mesh-gateway rollback
"""

from __future__ import annotations

import logging
import sys

import typer

from mesh_gateway import console
from mesh_gateway.commands import install_cmd, rollback_cmd

app = typer.Typer(
    help="Provision the Kuma + Kong mesh gateway stack.",
    invoke_without_command=True,
)


@app.callback()
def _main_callback(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Initialize logging; run ``install`` when no subcommand is given."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )
    if ctx.invoked_subcommand is None:
        install_cmd.run_install()


app.command("install")(install_cmd.install)
app.command("rollback")(rollback_cmd.rollback)


def main() -> None:
    try:
        app()
    except Exception as e:
        console.print(f"[red]❌ {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
