import json

import httpx
import pytest
import pytest_asyncio

from ado_search.models import Credentials
from ado_search.session import GIT_AREA_ID, SEARCH_AREA_ID, UpstreamSession

ORG = "acme"
PROJECT = "HCC"


class FakeAzureDevOps:
    """In-memory stand-in for the Azure DevOps REST endpoints we call."""

    def __init__(self):
        self.repositories: list[dict] = []
        self.items: dict[tuple[str, str], dict] = {}
        self.search_results: list[dict] | None = []
        self.requests: list[httpx.Request] = []
        self.search_bodies: list[dict] = []
        self.fail_with: httpx.Response | None = None

    def add_repository(self, name: str, repo_id: str) -> None:
        self.repositories.append({"id": repo_id, "name": name, "project": {"name": PROJECT}})

    def add_item(self, repo_id: str, path: str, content: str | None) -> None:
        item = {"objectId": "abc123", "path": path}
        if content is not None:
            item["content"] = content
        self.items[(repo_id, path)] = item

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if "/_apis/resourceAreas/" in path:
            area = path.rsplit("/", 1)[-1]
            location = {
                GIT_AREA_ID: f"https://dev.azure.com/{ORG}/",
                SEARCH_AREA_ID: f"https://almsearch.dev.azure.com/{ORG}/",
            }[area]
            return httpx.Response(200, json={"id": area, "locationUrl": location})

        if self.fail_with is not None:
            return self.fail_with

        if path == f"/{ORG}/{PROJECT}/_apis/search/codesearchresults":
            assert request.url.host == "almsearch.dev.azure.com"
            self.search_bodies.append(json.loads(request.content))
            if self.search_results is None:
                return httpx.Response(200, json={"count": 0})
            return httpx.Response(
                200, json={"count": len(self.search_results), "results": self.search_results}
            )

        if path == f"/{ORG}/{PROJECT}/_apis/git/repositories":
            return httpx.Response(200, json={"count": len(self.repositories), "value": self.repositories})

        prefix = f"/{ORG}/{PROJECT}/_apis/git/repositories/"
        if path.startswith(prefix) and path.endswith("/items"):
            repo_id = path[len(prefix):-len("/items")]
            item = self.items.get((repo_id, request.url.params["path"]))
            if item is None:
                return httpx.Response(404, json={
                    "message": f"TF401174: The item '{request.url.params['path']}' "
                               "could not be found in the repository.",
                    "typeKey": "GitItemNotFoundException",
                })
            return httpx.Response(200, json=item)

        return httpx.Response(404, json={"message": f"unexpected request {request.method} {path}"})


def search_hit(repository: str | None, path: str | None, file_name: str | None, project: str = PROJECT) -> dict:
    hit = {"matches": {"content": []}, "contentId": "c1"}
    if repository is not None:
        hit["repository"] = {"name": repository, "id": f"id-{repository}", "type": "git"}
    if path is not None:
        hit["path"] = path
    if file_name is not None:
        hit["fileName"] = file_name
    if project is not None:
        hit["project"] = {"name": project, "id": "p1"}
    return hit


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(organization=ORG, project=PROJECT, pat="secret-pat")


@pytest.fixture
def fake() -> FakeAzureDevOps:
    return FakeAzureDevOps()


@pytest_asyncio.fixture
async def session(fake, credentials):
    session = await UpstreamSession.connect(
        credentials, "7.1", transport=httpx.MockTransport(fake.handler)
    )
    async with session:
        yield session
