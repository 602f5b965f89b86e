"""Package download service with bounded retries and streamed writes."""

import os
from urllib.parse import urlparse

import requests

from hostspecializer.constants import DEFAULT_PACKAGE_NAME, METRIC_PACKAGE_DOWNLOAD, METRIC_PACKAGE_WRITE
from hostspecializer.errors import SpecializationError
from hostspecializer.services.retry import invoke_with_retries
from hostspecializer.services.validation import clean_url

CHUNK_SIZE = 4096


class PackageFetcher:
    """Downloads a remote package into the shared temp directory."""

    def __init__(
        self,
        logger,
        metrics,
        temp_dir: str,
        requests_module=requests,
        max_retries: int = 2,
        retry_interval: float = 0.5,
        timeout: float = 30.0,
    ):
        self.logger = logger
        self.metrics = metrics
        self.temp_dir = temp_dir
        self.requests = requests_module
        self.max_retries = max_retries
        self.retry_interval = retry_interval
        self.timeout = timeout

    def local_path_for(self, url: str) -> str:
        file_name = os.path.basename(urlparse(url).path) or DEFAULT_PACKAGE_NAME
        return os.path.join(self.temp_dir, file_name)

    def download(self, url: str) -> str:
        cleaned_url = clean_url(url)
        file_path = self.local_path_for(url)
        self.logger.info("Downloading package from '%s' to temp file '%s'", cleaned_url, file_path)

        def fetch():
            with self.metrics.latency_event(METRIC_PACKAGE_DOWNLOAD):
                response = None
                try:
                    response = self.requests.get(url, stream=True, timeout=self.timeout)
                    response.raise_for_status()
                except self.requests.RequestException as exc:
                    self.logger.error("Error downloading package %s: %s", cleaned_url, exc)
                    if response is not None:
                        response.close()
                    raise
            self.logger.info("%s bytes to download", response.headers.get("Content-Length", "unknown"))
            return response

        try:
            response = invoke_with_retries(
                fetch,
                max_retries=self.max_retries,
                retry_interval=self.retry_interval,
                logger=self.logger,
                label="Package download",
            )
        except self.requests.RequestException as exc:
            raise SpecializationError(f"Download failed for {cleaned_url}: {exc}") from exc

        written = 0
        with self.metrics.latency_event(METRIC_PACKAGE_WRITE):
            try:
                os.makedirs(self.temp_dir, exist_ok=True)
                with response, open(file_path, "wb") as file_obj:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if not chunk:
                            continue
                        file_obj.write(chunk)
                        written += len(chunk)
            except (OSError, self.requests.RequestException) as exc:
                raise SpecializationError(f"Could not write package to {file_path}: {exc}") from exc

        self.logger.info("%s bytes written", written)
        return file_path
