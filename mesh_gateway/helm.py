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

"""Helm release management (install/upgrade and uninstall)."""

from __future__ import annotations

from enum import Enum

import sh
import yaml

from mesh_gateway import logger
from mesh_gateway.constants import HELM_REPO_TIMEOUT_SECONDS, HELM_TIMEOUT_SECONDS
from mesh_gateway.utils import is_not_found


class UninstallOutcome(str, Enum):
    """Result of uninstalling a release."""

    REMOVED = "removed"
    NOT_FOUND = "not-found"
    FAILED = "failed"


def _helm(*args: str, **kwargs):
    """Invoke the helm binary through sh."""
    return sh.helm(*args, **kwargs)


def _error_text(err: sh.ErrorReturnCode) -> str:
    stderr = err.stderr.decode(errors="replace") if isinstance(err.stderr, bytes) else str(err.stderr)
    return stderr.strip()


class HelmReleases:
    """Idempotent Helm operations; ``upgrade --install`` never conflicts on re-run."""

    def add_repo(self, name: str, url: str) -> tuple[bool, str]:
        """Add (or refresh) a chart repository.

        Args:
            name: Local repository alias.
            url: Repository URL.

        Returns:
            Tuple of (success, error message).
        """
        try:
            _helm("repo", "add", name, url, "--force-update", _timeout=HELM_REPO_TIMEOUT_SECONDS)
            _helm("repo", "update", name, _timeout=HELM_REPO_TIMEOUT_SECONDS)
        except sh.ErrorReturnCode as err:
            return False, _error_text(err)
        except sh.TimeoutException:
            return False, f"helm repo {name} timed out after {HELM_REPO_TIMEOUT_SECONDS}s"
        return True, ""

    def install_or_upgrade(
        self,
        release: str,
        chart: str,
        namespace: str,
        values: dict | None = None,
        version: str = "",
        set_values: list[str] | None = None,
    ) -> tuple[bool, str]:
        """Run ``helm upgrade --install`` with values streamed on stdin.

        Args:
            release: Helm release name.
            chart: Chart reference (e.g. ``kong/kong``).
            namespace: Namespace of the release; created when missing.
            values: Values document, or None for chart defaults.
            version: Chart version, or empty string for the latest.
            set_values: Extra ``key=value`` strings for ``--set``.

        Returns:
            Tuple of (success, error message).
        """
        args = ["upgrade", "--install", release, chart, "-n", namespace, "--create-namespace"]
        if version:
            args += ["--version", version]
        for item in set_values or []:
            args += ["--set", item]
        kwargs: dict = {"_timeout": HELM_TIMEOUT_SECONDS}
        if values:
            args += ["-f", "-"]
            kwargs["_in"] = yaml.safe_dump(values, sort_keys=False)
        logger.debug("helm %s", " ".join(args))
        try:
            _helm(*args, **kwargs)
        except sh.ErrorReturnCode as err:
            return False, _error_text(err)
        except sh.TimeoutException:
            return False, f"helm upgrade timed out after {HELM_TIMEOUT_SECONDS}s"
        return True, ""

    def uninstall(self, release: str, namespace: str) -> tuple[UninstallOutcome, str]:
        """Uninstall a release, reporting an absent release as NOT_FOUND.

        Args:
            release: Helm release name.
            namespace: Namespace of the release.

        Returns:
            Tuple of (outcome, error message).
        """
        try:
            _helm("uninstall", release, "-n", namespace, _timeout=HELM_TIMEOUT_SECONDS)
        except sh.ErrorReturnCode as err:
            message = _error_text(err)
            if is_not_found(message):
                return UninstallOutcome.NOT_FOUND, message
            return UninstallOutcome.FAILED, message
        except sh.TimeoutException:
            return UninstallOutcome.FAILED, f"helm uninstall timed out after {HELM_TIMEOUT_SECONDS}s"
        return UninstallOutcome.REMOVED, ""
