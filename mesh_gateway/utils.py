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

"""Utility functions for kubectl, command checks, and host detection."""

from __future__ import annotations

import subprocess

import sh

from mesh_gateway.constants import KUBECTL_TIMEOUT_SECONDS

# Hosts where containers reach the host loopback through Docker's gateway name.
_DOCKER_DESKTOP_PLATFORMS = ("Darwin", "CYGWIN", "MINGW", "MSYS", "Windows")


def require_command(cmd: str) -> None:
    """Check if a command exists on the system PATH.

    Args:
        cmd: Name of the CLI command to check.

    Raises:
        RuntimeError: If the command is not found.
    """
    try:
        sh.which(cmd)
    except sh.ErrorReturnCode as err:
        raise RuntimeError(f"Required command '{cmd}' not found. Please install it first.") from err


def run_kubectl(
    args: list[str],
    timeout: int = KUBECTL_TIMEOUT_SECONDS,
    stdin: str | None = None,
) -> tuple[bool, str, str]:
    """Run a kubectl command via subprocess and return (success, stdout, stderr).

    Uses subprocess instead of sh because callers inspect stderr separately
    (NotFound / AlreadyExists detection) and feed manifests on stdin.

    Args:
        args: kubectl arguments (e.g. ``["get", "pods", "-n", "default"]``).
        timeout: Maximum seconds to wait for the command to complete.
        stdin: Optional text piped to kubectl, e.g. a manifest for ``apply -f -``.

    Returns:
        Tuple of (success, stdout, stderr).
    """
    try:
        result = subprocess.run(
            ["kubectl", *args],
            capture_output=True,
            text=True,
            timeout=timeout,
            input=stdin,
        )
        return result.returncode == 0, result.stdout, result.stderr
    except (subprocess.SubprocessError, OSError) as exc:
        return False, "", str(exc)


def is_not_found(stderr: str) -> bool:
    """Whether a kubectl or helm error message reports a missing object."""
    lowered = stderr.lower()
    return "notfound" in lowered or "not found" in lowered


def port_forward_host(system: str) -> str:
    """Pick the host that E2E containers use to reach a local port-forward.

    Args:
        system: Host OS name as reported by ``platform.system()``.

    Returns:
        ``host.docker.internal`` on Docker Desktop platforms, loopback otherwise.
    """
    if system.startswith(_DOCKER_DESKTOP_PLATFORMS):
        return "host.docker.internal"
    return "127.0.0.1"
