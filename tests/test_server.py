import json

import pytest
from fastmcp import Client
from fastmcp.exceptions import ToolError

from ado_search.dispatcher import OperationDispatcher
from ado_search.server import create_server

from conftest import search_hit


@pytest.fixture
def mcp(session):
    return create_server(OperationDispatcher(session))


def text_of(result) -> str:
    return "".join(c.text for c in result.content)


async def test_tools_are_declared(mcp):
    async with Client(mcp) as client:
        tools = {t.name: t for t in await client.list_tools()}

    assert set(tools) == {"search", "read"}
    assert tools["search"].inputSchema["required"] == ["query"]
    assert sorted(tools["read"].inputSchema["required"]) == ["path", "repository"]


async def test_search_end_to_end(mcp, fake):
    fake.search_results = [search_hit("Svc", "/src/a.go", "a.go")]

    async with Client(mcp) as client:
        result = await client.call_tool("search", {"query": "TODO", "repo": ""})

    assert json.loads(text_of(result)) == [
        {"repository": "Svc", "path": "/src/a.go", "fileName": "a.go", "project": "HCC"}
    ]


@pytest.mark.parametrize("repo", [42, None, ["Svc"]])
async def test_search_non_string_repo_is_ignored(mcp, fake, repo):
    fake.search_results = [
        search_hit("Svc", "/src/a.go", "a.go"),
        search_hit("Lib", "/b.go", "b.go"),
    ]

    async with Client(mcp) as client:
        result = await client.call_tool("search", {"query": "TODO", "repo": repo})

    assert [r["repository"] for r in json.loads(text_of(result))] == ["Svc", "Lib"]
    assert fake.search_bodies[-1]["filters"] == {"Project": ["HCC"]}


async def test_read_end_to_end(mcp, fake):
    fake.add_repository("Svc", "r1")
    fake.add_item("r1", "/src/a.go", "package main\n")

    async with Client(mcp) as client:
        result = await client.call_tool("read", {"repository": "SVC", "path": "/src/a.go"})

    assert text_of(result) == "package main\n"


async def test_read_missing_file_keeps_serving(mcp, fake):
    fake.add_repository("Svc", "r1")
    fake.add_item("r1", "/a.txt", "still here")

    async with Client(mcp) as client:
        with pytest.raises(ToolError, match="could not be found"):
            await client.call_tool("read", {"repository": "Svc", "path": "/missing.txt"})

        result = await client.call_tool("read", {"repository": "Svc", "path": "/a.txt"})

    assert text_of(result) == "still here"


async def test_unknown_repository_is_tool_error(mcp, fake):
    async with Client(mcp) as client:
        with pytest.raises(ToolError, match="repository not found: Ghost"):
            await client.call_tool("read", {"repository": "Ghost", "path": "/a.txt"})


class TestMain:
    ENV = {
        "AZURE_DEVOPS_ORGANIZATION": "acme",
        "AZURE_DEVOPS_PROJECT": "HCC",
        "AZURE_DEVOPS_PAT": "pat",
    }

    def test_missing_pat_stops_startup(self, tmp_path, monkeypatch):
        from click.testing import CliRunner

        from ado_search.server import main

        monkeypatch.chdir(tmp_path)
        result = CliRunner().invoke(main, [], env={**self.ENV, "AZURE_DEVOPS_PAT": ""})

        assert result.exit_code == 1
        assert "PAT is required" in result.output

    def test_connection_failure_stops_startup(self, tmp_path, monkeypatch):
        from click.testing import CliRunner

        from ado_search import server
        from ado_search.errors import UpstreamConnectionError

        async def refuse(*args, **kwargs):
            raise UpstreamConnectionError("Cannot reach https://dev.azure.com/acme")

        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr(server.UpstreamSession, "connect", refuse)
        result = CliRunner().invoke(server.main, [], env=self.ENV)

        assert result.exit_code == 1
        assert "Failed to create Azure DevOps client" in result.output
