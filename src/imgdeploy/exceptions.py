# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
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

"""
Error types raised by the deployer.
"""


class DeployerError(Exception):
    """Base class for every error the deployer reports."""


class ConfigurationError(DeployerError):
    """
    The instance descriptor or its custom properties cannot be turned into
    a valid launch specification. Never retried.
    """


class EngineError(DeployerError):
    """A container engine call failed."""


class NotFoundError(EngineError):
    """The referenced container, network or image does not exist."""


class ImageNotFoundError(NotFoundError):
    """The image is not present locally."""


class ConflictError(EngineError):
    """An object with the same name already exists or is still in use."""


class ReadinessTimeoutError(DeployerError):
    """The workload did not answer the readiness probe within its budget."""

    def __init__(self, url: str, timeout: float, attempts: int):
        self.url = url
        self.timeout = timeout
        self.attempts = attempts
        super().__init__(
            f"Readiness check timeout reached for {url} "
            f"after {attempts} attempts ({timeout}s)"
        )


class LogForwarderError(DeployerError):
    """The log forwarder could not be started or stopped."""


class CopyError(DeployerError):
    """Copying one archive entry into a bind directory failed."""

    def __init__(self, source: str, dest: str, reason: str):
        self.source = source
        self.dest = dest
        self.reason = reason
        super().__init__(f"Failed to copy {source} -> {dest}: {reason}")
