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

"""Exception types raised while provisioning the stack."""

from __future__ import annotations


class ProvisioningError(RuntimeError):
    """Base class for provisioning failures."""


class StageFailure(ProvisioningError):
    """A stage body or readiness check failed.

    Converted at the stage boundary into a warning or a
    :class:`HardPreconditionError`, depending on the stage's failure policy.
    """


class HardPreconditionError(ProvisioningError):
    """A fatal stage could not complete; the run stops here.

    Attributes:
        stage: Name of the stage that aborted the run.
        cause: Human-readable reason.
    """

    def __init__(self, stage: str, cause: str) -> None:
        super().__init__(f"Stage '{stage}' failed: {cause}")
        self.stage = stage
        self.cause = cause
