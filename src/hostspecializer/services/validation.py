"""URL helpers and pre-flight validation of assignment contexts."""

from typing import Optional
from urllib.parse import urlparse

import requests

from hostspecializer.constants import METRIC_PACKAGE_HEAD
from hostspecializer.errors import SpecializationError
from hostspecializer.services.retry import invoke_with_retries


def is_url(location: Optional[str]) -> bool:
    if not location:
        return False
    scheme = urlparse(location).scheme.lower()
    return scheme in {"http", "https"}


def clean_url(url: str) -> str:
    """Drop credentials and the query string (SAS tokens) so the URL is safe to log."""
    try:
        parsed = urlparse(url)
        hostname = parsed.hostname
        port = parsed.port
    except ValueError as exc:
        raise SpecializationError("Invalid url for the package") from exc

    if not is_url(url) or not hostname:
        raise SpecializationError("Invalid url for the package")

    netloc = f"{hostname}:{port}" if port else hostname
    return f"{parsed.scheme.lower()}://{netloc}{parsed.path}"


class ContextValidator:
    """Checks that the package referenced by a context is reachable."""

    def __init__(
        self,
        logger,
        metrics,
        requests_module=requests,
        max_retries: int = 2,
        retry_interval: float = 0.3,
        timeout: float = 0.3,
    ):
        self.logger = logger
        self.metrics = metrics
        self.requests = requests_module
        self.max_retries = max_retries
        self.retry_interval = retry_interval
        self.timeout = timeout

    def validate(self, context) -> Optional[str]:
        package_url = context.package_url
        if not package_url:
            return None

        last_status = {"code": None}

        def probe():
            with self.metrics.latency_event(METRIC_PACKAGE_HEAD):
                try:
                    response = self.requests.head(package_url, allow_redirects=True, timeout=self.timeout)
                    last_status["code"] = response.status_code
                    response.raise_for_status()
                except self.requests.RequestException as exc:
                    self.logger.error("%s failed: %s", METRIC_PACKAGE_HEAD, exc)
                    raise

        try:
            invoke_with_retries(
                probe,
                max_retries=self.max_retries,
                retry_interval=self.retry_interval,
                logger=self.logger,
                label="Package probe",
            )
        except self.requests.RequestException as exc:
            self.logger.error("Context validation failed: %s", exc)
            return f"Invalid zip url specified (StatusCode: {last_status['code']})"

        return None
