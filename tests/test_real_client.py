"""Tests for the httpx GitHub transport, against a mocked API."""

import base64

import httpx
import pytest

from partshub.errors import TransportError
from partshub.github.real import RealGitHub
from partshub.github.types import Repo, RepositoryContent

REPO = Repo("ksonnet", "parts")
SHA = "0123456789abcdef0123456789abcdef01234567"


def _github(handler, token=None) -> tuple[RealGitHub, list[httpx.Request]]:
    requests: list[httpx.Request] = []

    def record(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    client = httpx.Client(transport=httpx.MockTransport(record))
    return RealGitHub(http_client=client, token=token), requests


def test_commit_sha1_uses_sha_media_type():
    gh, requests = _github(lambda r: httpx.Response(200, text=SHA + "\n"))

    assert gh.commit_sha1(REPO, "v1.0") == SHA
    req = requests[0]
    assert str(req.url) == "https://api.github.com/repos/ksonnet/parts/commits/v1.0"
    assert req.headers["Accept"] == "application/vnd.github.VERSION.sha"
    assert "Authorization" not in req.headers


def test_commit_sha1_empty_ref_means_master():
    gh, requests = _github(lambda r: httpx.Response(200, text=SHA))
    gh.commit_sha1(REPO, "")
    assert requests[0].url.path == "/repos/ksonnet/parts/commits/master"


def test_commit_sha1_escapes_slashes_in_ref():
    gh, requests = _github(lambda r: httpx.Response(200, text=SHA))
    gh.commit_sha1(REPO, "feature/x")
    assert requests[0].url.raw_path == b"/repos/ksonnet/parts/commits/feature%2Fx"


def test_commit_sha1_http_error():
    gh, _ = _github(lambda r: httpx.Response(422, json={"message": "No commit found"}))
    with pytest.raises(TransportError) as exc:
        gh.commit_sha1(REPO, "nope")
    assert exc.value.status_code == 422


def test_network_failure_becomes_transport_error():
    def boom(request):
        raise httpx.ConnectError("connection refused", request=request)

    gh, _ = _github(boom)
    with pytest.raises(TransportError) as exc:
        gh.commit_sha1(REPO, "master")
    assert exc.value.status_code is None
    assert isinstance(exc.value.__cause__, httpx.ConnectError)


def test_token_is_sent():
    gh, requests = _github(lambda r: httpx.Response(200, text=SHA), token="s3cret")
    gh.commit_sha1(REPO, "master")
    assert requests[0].headers["Authorization"] == "token s3cret"


def test_contents_file():
    body = {
        "type": "file",
        "path": "incubator/registry.yaml",
        "name": "registry.yaml",
        "sha": "f" * 40,
        "size": 11,
        "encoding": "base64",
        "content": base64.b64encode(b"libraries: {}").decode() + "\n",
    }
    gh, requests = _github(lambda r: httpx.Response(200, json=body))

    entry = gh.contents(REPO, "incubator/registry.yaml", SHA)

    assert isinstance(entry, RepositoryContent)
    assert entry.get_content() == b"libraries: {}"
    assert requests[0].url.path == "/repos/ksonnet/parts/contents/incubator/registry.yaml"
    assert requests[0].url.params["ref"] == SHA


def test_contents_directory():
    body = [
        {"type": "file", "path": "pkg/parts.yaml", "name": "parts.yaml"},
        {"type": "dir", "path": "pkg/prototypes", "name": "prototypes"},
        {"type": "symlink", "path": "pkg/link", "name": "link"},
    ]
    gh, _ = _github(lambda r: httpx.Response(200, json=body))

    entries = gh.contents(REPO, "pkg", SHA)

    assert [e.type for e in entries] == ["file", "dir", "symlink"]
    assert entries[1].path == "pkg/prototypes"
    assert entries[0].content is None


def test_contents_not_found():
    gh, _ = _github(lambda r: httpx.Response(404, json={"message": "Not Found"}))
    with pytest.raises(TransportError) as exc:
        gh.contents(REPO, "missing", SHA)
    assert exc.value.status_code == 404


def test_contents_invalid_json():
    gh, _ = _github(lambda r: httpx.Response(200, text="<html>"))
    with pytest.raises(TransportError):
        gh.contents(REPO, "pkg", SHA)


def test_enterprise_base_url():
    gh, requests = _github(lambda r: httpx.Response(200, text=SHA))
    gh.set_base_url("https://github.acme.com/api/v3")
    gh.commit_sha1(REPO, "master")
    assert str(requests[0].url) == "https://github.acme.com/api/v3/repos/ksonnet/parts/commits/master"

    gh.set_base_url(None)
    assert gh.base_url == "https://api.github.com/"


def test_timeout_is_forwarded():
    seen = []

    def handler(request):
        seen.append(request.extensions["timeout"])
        return httpx.Response(200, text=SHA)

    gh, _ = _github(handler)
    gh.commit_sha1(REPO, "master", timeout=2.0)
    assert seen[0]["connect"] == 2.0


@pytest.mark.parametrize(
    "uri,expected",
    [
        ("github.com/ksonnet/parts", "https://github.com/ksonnet/parts/registry.yaml"),
        (
            "https://github.com/ksonnet/parts/tree/master/incubator/",
            "https://github.com/ksonnet/parts/tree/master/incubator/registry.yaml",
        ),
        (
            "https://github.com/ksonnet/parts/blob/master/registry.yaml",
            "https://github.com/ksonnet/parts/blob/master/registry.yaml",
        ),
    ],
)
def test_validate_url_heads_registry_yaml(uri, expected):
    gh, requests = _github(lambda r: httpx.Response(200))
    gh.validate_url(uri)
    assert requests[0].method == "HEAD"
    assert str(requests[0].url) == expected


def test_validate_url_rejects_non_200():
    gh, _ = _github(lambda r: httpx.Response(404))
    with pytest.raises(TransportError) as exc:
        gh.validate_url("github.com/ksonnet/missing")
    assert exc.value.status_code == 404


def test_get_content_without_content():
    with pytest.raises(TransportError):
        RepositoryContent(type="file", path="a").get_content()


def test_get_content_unknown_encoding():
    with pytest.raises(TransportError):
        RepositoryContent(type="file", path="a", content="x", encoding="rot13").get_content()


def test_close_leaves_injected_client_open():
    gh, _ = _github(lambda r: httpx.Response(200, text=SHA))
    gh.close()
    gh.commit_sha1(REPO, "master")


def test_close_releases_owned_client():
    gh = RealGitHub()
    gh.close()
    assert gh._http.is_closed
