"""Best-effort identity notification to the local sidecar."""

from typing import Optional
from urllib.parse import urlparse

import requests

from hostspecializer.constants import METRIC_SIDECAR_INIT, SIDECAR_SPECIALIZATION_PATH


class SidecarNotifier:
    """Posts the identity context to the sidecar. Failures come back as messages."""

    def __init__(self, logger, metrics, requests_module=requests, timeout: float = 30.0):
        self.logger = logger
        self.metrics = metrics
        self.requests = requests_module
        self.timeout = timeout

    def notify(self, context) -> Optional[str]:
        endpoint = context.identity_endpoint()
        self.logger.info("Identity delegation enabled: %s", endpoint is not None)
        if endpoint is None:
            return None

        with self.metrics.latency_event(METRIC_SIDECAR_INIT):
            try:
                parsed = urlparse(endpoint)
                hostname = parsed.hostname
                port = parsed.port or (443 if parsed.scheme.lower() == "https" else 80)
            except ValueError as exc:
                message = f"Invalid sidecar endpoint '{endpoint}': {exc}"
                self.logger.error(message)
                return message

            if not hostname:
                message = f"Invalid sidecar endpoint '{endpoint}': missing host"
                self.logger.error(message)
                return message

            address = f"http://{hostname}:{port}{SIDECAR_SPECIALIZATION_PATH}"

            self.logger.debug("Specializing sidecar at %s", address)
            try:
                response = self.requests.post(address, json=context.identity.to_payload(), timeout=self.timeout)
            except self.requests.RequestException as exc:
                message = f"Specialize MSI sidecar call failed: {exc}"
                self.logger.error(message)
                return message

            self.logger.info("Specialize MSI sidecar returned %s", response.status_code)
            if not 200 <= response.status_code < 300:
                message = f"Specialize MSI sidecar call failed. StatusCode={response.status_code}"
                self.logger.error(message)
                return message

        return None
