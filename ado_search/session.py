"""Authenticated access to the Azure DevOps git and code search REST APIs."""
import logging

import httpx

from .errors import UpstreamConnectionError, UpstreamError
from .models import Credentials, SearchQuery

logger = logging.getLogger(__name__)

GIT_AREA_ID = "4e080c62-fa21-4fbc-8fef-2a10a2b38049"
SEARCH_AREA_ID = "ea48a0a1-269c-42d8-b8ad-ddc8fcdcf578"
RESOURCE_AREA_API_VERSION = "7.1-preview.1"
DEFAULT_TIMEOUT = 30.0


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return body["message"]
    return f"HTTP {response.status_code} {response.reason_phrase}"


class _ApiClient:
    def __init__(self, http: httpx.AsyncClient, base_url: str, api_version: str):
        self._http = http
        self.base_url = base_url.rstrip("/")
        self.api_version = api_version

    async def _request(
        self,
        method: str,
        path: str,
        params: dict | None = None,
        json: dict | None = None,
    ) -> dict:
        url = f"{self.base_url}/{path}"
        params = {**(params or {}), "api-version": self.api_version}
        try:
            response = await self._http.request(method, url, params=params, json=json)
        except httpx.HTTPError as e:
            raise UpstreamError(f"{method} {url} failed: {e}") from e

        if response.is_error:
            raise UpstreamError(_error_message(response), status_code=response.status_code)
        # A rejected PAT can come back as a 203 sign-in page rather than a 401.
        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            raise UpstreamError(
                f"Unexpected response from {url} (HTTP {response.status_code}): not a JSON object",
                status_code=response.status_code,
            )
        return body


class GitClient(_ApiClient):
    async def get_repositories(self, project: str) -> list[dict]:
        body = await self._request("GET", f"{project}/_apis/git/repositories")
        return body.get("value") or []

    async def get_item(
        self,
        project: str,
        repository_id: str,
        path: str,
        include_content: bool = True,
        branch: str | None = None,
    ) -> dict:
        params = {
            "path": path,
            "includeContent": "true" if include_content else "false",
            "$format": "json",
        }
        if branch:
            params["versionDescriptor.version"] = branch
            params["versionDescriptor.versionType"] = "branch"
        return await self._request(
            "GET", f"{project}/_apis/git/repositories/{repository_id}/items", params=params
        )


class SearchClient(_ApiClient):
    async def fetch_code_search_results(self, project: str, query: SearchQuery) -> dict:
        body = {
            "searchText": query.text,
            "$skip": 0,
            "$top": query.top,
            "filters": query.filters(),
            "includeSnippet": query.include_snippet,
        }
        return await self._request(
            "POST", f"{project}/_apis/search/codesearchresults", json=body
        )


async def _resource_area_url(http: httpx.AsyncClient, organization_url: str, area_id: str) -> str:
    url = f"{organization_url}/_apis/resourceAreas/{area_id}"
    try:
        response = await http.get(url, params={"api-version": RESOURCE_AREA_API_VERSION})
    except httpx.HTTPError as e:
        raise UpstreamConnectionError(f"Cannot reach {organization_url}: {e}") from e
    if response.status_code == 404:
        return organization_url
    if response.is_error:
        raise UpstreamConnectionError(
            f"Resource area lookup failed for {area_id}: {_error_message(response)}"
        )
    try:
        body = response.json()
    except ValueError:
        body = None
    if not isinstance(body, dict):
        raise UpstreamConnectionError(
            f"Unexpected response from {url} (HTTP {response.status_code}): "
            "not a JSON object; check the PAT"
        )
    return body.get("locationUrl") or organization_url


class UpstreamSession:
    """Shared, read-only connection to one Azure DevOps organization.

    Built once with `connect()` and handed to every operation. Holds the
    credentials and two sub-clients: `git` for repositories and items,
    `search` for code search.
    """

    def __init__(
        self,
        credentials: Credentials,
        http: httpx.AsyncClient,
        git: GitClient,
        search: SearchClient,
    ):
        self.credentials = credentials
        self._http = http
        self.git = git
        self.search_client = search

    @property
    def project(self) -> str:
        return self.credentials.project

    @classmethod
    async def connect(
        cls,
        credentials: Credentials,
        api_version: str,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> "UpstreamSession":
        """Authenticate and locate the git and search services.

        Raises UpstreamConnectionError if either service cannot be located.
        """
        http = httpx.AsyncClient(
            auth=httpx.BasicAuth("", credentials.pat),
            headers={"Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )
        org_url = credentials.organization_url
        try:
            git_url = await _resource_area_url(http, org_url, GIT_AREA_ID)
            search_url = await _resource_area_url(http, org_url, SEARCH_AREA_ID)
        except BaseException:
            await http.aclose()
            raise

        logger.info("Connected to %s (git: %s, search: %s)", org_url, git_url, search_url)
        return cls(
            credentials,
            http,
            GitClient(http, git_url, api_version),
            SearchClient(http, search_url, api_version),
        )

    async def search(self, query: SearchQuery) -> list[dict]:
        response = await self.search_client.fetch_code_search_results(query.project, query)
        return (response or {}).get("results") or []

    async def list_repositories(self, project: str | None = None) -> list[dict]:
        return await self.git.get_repositories(project or self.project)

    async def get_file_content(
        self,
        repository_id: str,
        path: str,
        branch: str | None = None,
        include_content: bool = True,
    ) -> dict:
        return await self.git.get_item(
            self.project, repository_id, path, include_content=include_content, branch=branch
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "UpstreamSession":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()
