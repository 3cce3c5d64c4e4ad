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

"""Exception hierarchy for the harness."""

from __future__ import annotations


class HarnessError(Exception):
    """Base exception for all harness errors."""

    def __init__(self, message: str, details: str | None = None) -> None:
        """Initialize the exception.

        Args:
            message: Main error message.
            details: Additional context such as captured stderr.
        """
        self.message = message
        self.details = details
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format the complete error message.

        Returns:
            The message, followed by details when present.
        """
        if self.details:
            return f"{self.message}\n\nDetails: {self.details}"
        return self.message


class StartupTimeoutError(HarnessError):
    """The cluster did not report readiness within its startup budget."""


class NotReadyError(HarnessError):
    """An operation was attempted against a handle that is not Ready."""


class ExecutionChannelError(HarnessError):
    """The execution channel into the cluster is unreachable or timed out."""


class MalformedStateError(HarnessError):
    """A query result could not be parsed into the expected shape."""


class ProvisionError(HarnessError):
    """Pull-secret creation failed despite complete credentials."""

    def __init__(self, message: str, stderr: str = "") -> None:
        self.stderr = stderr
        super().__init__(message, stderr.strip() or None)


class ConvergenceError(HarnessError):
    """Raised by strict callers that unwrap a non-converged poll outcome."""
