"""Remote template retrieval.

Templates and the permission manifest live on a plain HTTP(S) host and are
copied into a per-run scratch directory before deployment. The host is
trusted as the source of truth; no hash or signature is checked.
"""

import json
import shutil
import tempfile
from pathlib import Path
from types import TracebackType
from typing import Any, Dict, Optional, Type

import requests
import structlog

from azure_onboarding.config.models import TemplateSpec
from azure_onboarding.exceptions import TemplateDownloadError
from azure_onboarding.timeout_config import Timeouts, log_timeout_event

logger = structlog.get_logger(__name__)


class ScratchDirectory:
    """Working directory that is removed on exit, whether the run failed or not."""

    def __init__(self, prefix: str = "azure-onboarding-") -> None:
        self.prefix = prefix
        self.path: Optional[Path] = None

    def __enter__(self) -> Path:
        self.path = Path(tempfile.mkdtemp(prefix=self.prefix))
        logger.debug("Created scratch directory", path=str(self.path))
        return self.path

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        if self.path is not None:
            shutil.rmtree(self.path, ignore_errors=True)
            logger.debug("Removed scratch directory", path=str(self.path))
            self.path = None


class TemplateFetcher:
    """Downloads templates from ``base_url`` into a local directory."""

    def __init__(self, base_url: str, session: Optional[requests.Session] = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()

    def url_for(self, remote_path: str) -> str:
        return f"{self.base_url}/{remote_path.lstrip('/')}"

    def download(self, remote_path: str, destination: Path) -> Path:
        """Fetch ``remote_path`` and write it to ``destination``.

        Raises:
            TemplateDownloadError: On network errors, timeouts or non-2xx responses
        """
        url = self.url_for(remote_path)
        logger.info("Downloading template", url=url)

        try:
            response = self.session.get(url, timeout=Timeouts.http(Timeouts.TEMPLATE_DOWNLOAD))
        except requests.Timeout as e:
            log_timeout_event("template_download", Timeouts.TEMPLATE_DOWNLOAD, url)
            raise TemplateDownloadError(
                f"Timed out downloading {remote_path}", url=url, cause=e
            ) from e
        except requests.RequestException as e:
            raise TemplateDownloadError(
                f"Could not download {remote_path}", url=url, cause=e
            ) from e

        if not response.ok:
            raise TemplateDownloadError(
                f"Template host returned HTTP {response.status_code} for {remote_path}",
                url=url,
            )

        destination.write_bytes(response.content)
        return destination

    def fetch(self, spec: TemplateSpec, scratch: Path) -> Path:
        return self.download(spec.remote_path, scratch / spec.local_name)


def load_template(path: Path) -> Dict[str, Any]:
    """Parse a downloaded ARM template (or manifest) as a JSON object.

    Raises:
        TemplateDownloadError: If the file is not a JSON object
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise TemplateDownloadError(f"{path.name} is not valid JSON: {e}", cause=e) from e

    if not isinstance(data, dict):
        raise TemplateDownloadError(f"{path.name} must contain a JSON object")
    return data
