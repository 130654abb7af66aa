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
Readiness probing for a started workload: polls an HTTP(S) endpoint until
it answers with a status below 300 or the time budget runs out.
"""
import http.client
import logging
import ssl
import time
from typing import Callable, Optional
from urllib.error import HTTPError, URLError
from urllib.request import HTTPSHandler, OpenerDirector, ProxyHandler, build_opener

from tenacity import RetryError, Retrying, retry_if_result, stop_after_delay, wait_fixed

from ..exceptions import ReadinessTimeoutError
from ..MODELS.instance_descriptor import InstanceDescriptor
from ..MODELS.launch_spec import ReadinessCheck

logger = logging.getLogger(__name__)

RETRY_INTERVAL = 0.5


def _loopback_opener() -> OpenerDirector:
    # loopback probe: no proxies, workload certificates are not verified
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return build_opener(ProxyHandler({}), HTTPSHandler(context=ctx))


def readiness_url(descriptor: InstanceDescriptor, check: ReadinessCheck) -> Optional[str]:
    """
    Returns the probe URL for the first HTTP-typed allocated port, or None
    when the workload has no HTTP port.
    """
    for port in descriptor.process.ports.allocated:
        if port.is_http:
            return check.url_for_port(port.port)
    return None


class ReadinessProber:
    """
    Fixed-interval HTTP readiness poller.
    """

    def __init__(
        self,
        interval: float = RETRY_INTERVAL,
        request_timeout: float = 5.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initializes the prober.

        :param interval: Seconds to sleep between failed attempts.
        :param request_timeout: Socket timeout of a single attempt.
        :param sleep: Sleep function, replaceable in tests.
        """
        self.interval = interval
        self.request_timeout = request_timeout
        self.sleep = sleep
        self._opener = _loopback_opener()

    def probe(self, url: str) -> Optional[int]:
        """
        Issues one GET.

        Returns:
            The HTTP status code, or None on a transport error.
        """
        try:
            with self._opener.open(url, timeout=self.request_timeout) as response:
                return response.status
        except HTTPError as e:
            return e.code
        except (URLError, OSError, http.client.HTTPException) as e:
            logger.info("Readiness probe error: %s", e)
            return None

    def await_ready(self, url: str, timeout: float) -> int:
        """
        Polls url until it answers with a status < 300.

        Args:
            url: Endpoint to probe.
            timeout: Time budget in seconds.

        Returns:
            Number of attempts made.

        Raises:
            ReadinessTimeoutError: If no successful answer arrived in time.
        """
        attempts = 0

        def attempt() -> bool:
            nonlocal attempts
            attempts += 1
            logger.info("Readiness check try #%d", attempts)
            status = self.probe(url)
            if status is None:
                return False
            if status >= 300:
                logger.info("HTTP Response Status Code: %d", status)
                return False
            logger.info("Readiness check PASSED. HTTP Response Status Code: %d", status)
            return True

        retrying = Retrying(
            stop=stop_after_delay(timeout),
            wait=wait_fixed(self.interval),
            retry=retry_if_result(lambda ready: not ready),
            sleep=self.sleep,
        )
        try:
            retrying(attempt)
        except RetryError as e:
            raise ReadinessTimeoutError(url, timeout, attempts) from e
        return attempts
