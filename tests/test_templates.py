"""Tests for template download and the scratch directory."""

import json
from unittest.mock import MagicMock

import pytest
import requests

from azure_onboarding.config.models import DEFAULT_TEMPLATES, TemplateKey
from azure_onboarding.exceptions import TemplateDownloadError
from azure_onboarding.templates import ScratchDirectory, TemplateFetcher, load_template

TEMPLATE_BASE_URL = "https://templates.example.com/onboarding"


def _response(content=b"{}", status=200, ok=True):
    response = MagicMock()
    response.content = content
    response.status_code = status
    response.ok = ok
    return response


class TestScratchDirectory:
    def test_removed_after_success(self):
        with ScratchDirectory() as path:
            (path / "file.json").write_text("{}")
            assert path.is_dir()

        assert not path.exists()

    def test_removed_after_failure(self):
        with pytest.raises(RuntimeError):
            with ScratchDirectory() as path:
                (path / "file.json").write_text("{}")
                raise RuntimeError("deployment failed")

        assert not path.exists()


class TestTemplateFetcher:
    def test_url_joins_base_and_path(self):
        fetcher = TemplateFetcher(TEMPLATE_BASE_URL + "/", session=MagicMock())

        assert fetcher.url_for("/templates/workspace.json") == (
            TEMPLATE_BASE_URL + "/templates/workspace.json"
        )

    def test_fetch_writes_local_file(self, tmp_path, sample_arm_template):
        session = MagicMock()
        session.get.return_value = _response(json.dumps(sample_arm_template).encode())
        fetcher = TemplateFetcher(TEMPLATE_BASE_URL, session=session)
        spec = DEFAULT_TEMPLATES[TemplateKey.WORKSPACE]

        path = fetcher.fetch(spec, tmp_path)

        assert path == tmp_path / spec.local_name
        assert load_template(path) == sample_arm_template
        assert session.get.call_args.args[0] == fetcher.url_for(spec.remote_path)

    def test_http_error(self, tmp_path):
        session = MagicMock()
        session.get.return_value = _response(status=404, ok=False)
        fetcher = TemplateFetcher(TEMPLATE_BASE_URL, session=session)

        with pytest.raises(TemplateDownloadError, match="HTTP 404") as exc_info:
            fetcher.download("templates/missing.json", tmp_path / "missing.json")

        assert exc_info.value.context["url"].endswith("templates/missing.json")
        assert not (tmp_path / "missing.json").exists()

    @pytest.mark.parametrize(
        "error", [requests.Timeout("slow"), requests.ConnectionError("dns failure")]
    )
    def test_network_errors(self, tmp_path, error):
        session = MagicMock()
        session.get.side_effect = error
        fetcher = TemplateFetcher(TEMPLATE_BASE_URL, session=session)

        with pytest.raises(TemplateDownloadError):
            fetcher.download("templates/workspace.json", tmp_path / "workspace.json")


class TestLoadTemplate:
    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("<html>not found</html>")

        with pytest.raises(TemplateDownloadError, match="not valid JSON"):
            load_template(path)

    def test_non_object(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[]")

        with pytest.raises(TemplateDownloadError, match="JSON object"):
            load_template(path)

    def test_invalid_utf8(self, tmp_path):
        path = tmp_path / "binary.json"
        path.write_bytes(b"\xff\xfe\x00{not utf-8")

        with pytest.raises(TemplateDownloadError, match="not valid JSON"):
            load_template(path)
