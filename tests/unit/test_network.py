"""Unit tests for downloads and archive extraction."""

import io
import zipfile

import httpx
import pytest

from packscript.config import NetworkConfig
from packscript.network import Downloader, unzip_file


def _downloader(volumes, handler, **config):
    return Downloader(
        NetworkConfig(**config),
        volumes,
        transport=httpx.MockTransport(handler),
        sleep=lambda _: None,
    )


class TestDownload:
    def test_download_to_path(self, volumes, sdmc):
        def handler(request):
            return httpx.Response(200, content=b"payload")

        result = _downloader(volumes, handler).download_file("https://example.com/a.bin", "sdmc:/dl/file.bin")
        assert result.ok
        assert (sdmc / "dl" / "file.bin").read_bytes() == b"payload"

    def test_download_into_directory_uses_url_name(self, volumes, sdmc):
        def handler(request):
            return httpx.Response(200, content=b"zip")

        result = _downloader(volumes, handler).download_file(
            "https://example.com/releases/theme%20pack.zip?x=1", "sdmc:/downloads/"
        )
        assert result.ok
        assert (sdmc / "downloads" / "theme pack.zip").read_bytes() == b"zip"

    def test_retries_on_server_error(self, volumes, sdmc):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) < 3:
                return httpx.Response(503)
            return httpx.Response(200, content=b"ok")

        result = _downloader(volumes, handler, retry_max=3).download_file("https://example.com/x", "sdmc:/x")
        assert result.ok
        assert len(calls) == 3

    def test_gives_up_after_retry_max(self, volumes, sdmc):
        def handler(request):
            return httpx.Response(429)

        result = _downloader(volumes, handler, retry_max=2).download_file("https://example.com/x", "sdmc:/x")
        assert not result.ok
        assert "Max retries" in result.detail
        assert not (sdmc / "x").exists()

    def test_client_error_not_retried(self, volumes, sdmc):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(404)

        result = _downloader(volumes, handler).download_file("https://example.com/x", "sdmc:/x")
        assert not result.ok
        assert len(calls) == 1
        assert list(sdmc.iterdir()) == []

    def test_network_error_retried(self, volumes):
        def handler(request):
            raise httpx.ConnectError("boom", request=request)

        result = _downloader(volumes, handler, retry_max=2).download_file("https://example.com/x", "sdmc:/x")
        assert not result.ok
        assert "Network error" in result.detail

    def test_disabled(self, volumes):
        def handler(request):
            raise AssertionError("should not be called")

        result = _downloader(volumes, handler, enabled=False).download_file("https://example.com/x", "sdmc:/x")
        assert not result.ok


def _make_zip(path, members):
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, data in members.items():
            zf.writestr(name, data)
    path.write_bytes(buf.getvalue())


class TestUnzip:
    def test_extract(self, volumes, sdmc):
        _make_zip(sdmc / "a.zip", {"theme/layout.json": "{}", "readme.txt": "hi"})
        result = unzip_file(volumes, "sdmc:/a.zip", "sdmc:/out/")
        assert result.ok
        assert (sdmc / "out" / "theme" / "layout.json").read_text() == "{}"

    def test_rejects_escaping_members(self, volumes, sdmc):
        _make_zip(sdmc / "evil.zip", {"ok.txt": "fine", "../escape.txt": "bad"})
        result = unzip_file(volumes, "sdmc:/evil.zip", "sdmc:/out/")
        assert not result.ok
        assert not (sdmc / "escape.txt").exists()
        assert not (sdmc / "out" / "ok.txt").exists()

    def test_not_a_zip(self, volumes, sdmc):
        (sdmc / "fake.zip").write_text("nope")
        assert not unzip_file(volumes, "sdmc:/fake.zip", "sdmc:/out").ok

    def test_missing_archive(self, volumes):
        assert not unzip_file(volumes, "sdmc:/none.zip", "sdmc:/out").ok


@pytest.mark.parametrize("status", [500, 502, 504])
def test_retry_status_codes(volumes, status):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(status)

    _downloader(volumes, handler, retry_max=2).download_file("https://example.com/x", "sdmc:/x")
    assert len(calls) == 2
