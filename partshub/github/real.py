"""httpx implementation of the GitHub transport (REST API v3)."""

from __future__ import annotations

import logging
from urllib.parse import quote, urlsplit, urlunsplit

import httpx

from partshub.errors import TransportError
from partshub.github.abc import GitHub
from partshub.github.types import Repo, RepositoryContent

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.github.com/"
DEFAULT_BRANCH = "master"
DEFAULT_TIMEOUT = 10.0
REGISTRY_YAML = "registry.yaml"

_SHA_MEDIA_TYPE = "application/vnd.github.VERSION.sha"
_JSON_MEDIA_TYPE = "application/vnd.github.v3+json"


class RealGitHub(GitHub):
    """Thin wrapper around the GitHub REST API.

    Parameters
    ----------
    http_client : httpx.Client | None
        Client to send requests with. A client with a 10 second timeout is
        created when *None*.
    token : str | None
        Optional access token sent as an ``Authorization`` header.
    """

    def __init__(
        self,
        http_client: httpx.Client | None = None,
        token: str | None = None,
    ) -> None:
        self._owns_http = http_client is None
        self._http = http_client or httpx.Client(timeout=DEFAULT_TIMEOUT)
        self._token = token or ""
        self._base_url = DEFAULT_BASE_URL

    @property
    def base_url(self) -> str:
        return self._base_url

    def set_base_url(self, base_url: str | None) -> None:
        if base_url is None:
            logger.debug("using default API root %s", DEFAULT_BASE_URL)
            self._base_url = DEFAULT_BASE_URL
            return
        if not base_url.endswith("/"):
            base_url += "/"
        logger.debug("using API root %s", base_url)
        self._base_url = base_url

    def validate_url(self, url: str) -> None:
        target = _registry_yaml_url(url)
        try:
            resp = self._http.head(target, follow_redirects=True)
        except httpx.HTTPError as e:
            raise TransportError(f"verifying {target!r}: {e}") from e

        if resp.status_code != httpx.codes.OK:
            raise TransportError(
                f"{target!r} actual {resp.status_code}; expected {httpx.codes.OK}",
                status_code=resp.status_code,
            )

    def commit_sha1(self, repo: Repo, ref_spec: str, *, timeout: float | None = None) -> str:
        if not ref_spec:
            ref_spec = DEFAULT_BRANCH

        logger.debug("fetching SHA1 for %s@%s", repo, ref_spec)
        resp = self._get(
            f"repos/{repo.org}/{repo.repo}/commits/{quote(ref_spec, safe='')}",
            accept=_SHA_MEDIA_TYPE,
            timeout=timeout,
        )
        return resp.text.strip()

    def contents(
        self,
        repo: Repo,
        path: str,
        ref: str,
        *,
        timeout: float | None = None,
    ) -> RepositoryContent | list[RepositoryContent]:
        logger.debug("fetching contents for %s/%s@%s", repo, path, ref)
        resp = self._get(
            f"repos/{repo.org}/{repo.repo}/contents/{quote(path.strip('/'), safe='/')}",
            accept=_JSON_MEDIA_TYPE,
            params={"ref": ref} if ref else None,
            timeout=timeout,
        )
        try:
            data = resp.json()
        except ValueError as e:
            raise TransportError(f"invalid JSON from contents API for {repo}/{path}: {e}") from e

        if isinstance(data, list):
            return [RepositoryContent.from_api(item) for item in data]
        if isinstance(data, dict):
            return RepositoryContent.from_api(data)
        raise TransportError(f"unexpected contents payload for {repo}/{path}")

    def close(self) -> None:
        """Close the underlying ``httpx.Client`` if this instance created it."""
        if self._owns_http:
            self._http.close()

    # -- internals -----------------------------------------------------------

    def _get(
        self,
        endpoint: str,
        *,
        accept: str,
        params: dict | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        headers = {"Accept": accept}
        if self._token:
            headers["Authorization"] = f"token {self._token}"

        kwargs: dict = {"headers": headers, "params": params}
        if timeout is not None:
            kwargs["timeout"] = timeout

        url = self._base_url + endpoint
        try:
            resp = self._http.get(url, **kwargs)
        except httpx.HTTPError as e:
            raise TransportError(f"GET {url}: {e}") from e

        if resp.is_error:
            raise TransportError(
                f"GET {url}: {resp.status_code} {resp.reason_phrase}",
                status_code=resp.status_code,
            )
        return resp


def _registry_yaml_url(url: str) -> str:
    """Return the URL of the registry.yaml behind a registry URI."""
    if "://" not in url:
        url = "https://" + url
    parts = urlsplit(url)
    path = parts.path
    if not path.endswith(REGISTRY_YAML):
        path = path.rstrip("/") + "/" + REGISTRY_YAML
    return urlunsplit((parts.scheme or "https", parts.netloc, path, parts.query, ""))
