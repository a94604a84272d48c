"""Simple MCP client for trying out a running ado-search server."""
import argparse
import asyncio
import json

from fastmcp import Client

DEFAULT_URL = "http://localhost:8080/sse"


def _text(result) -> str:
    return "".join(getattr(c, "text", "") for c in result.content)


async def cmd_search(url: str, query: str, repo: str) -> None:
    async with Client(url) as client:
        result = await client.call_tool("search", {"query": query, "repo": repo})
        records = json.loads(_text(result))
        if not records:
            print("No matches.")
        for r in records:
            print(f"{r['repository']}:{r['path']}")


async def cmd_read(url: str, repository: str, path: str, branch: str | None) -> None:
    arguments = {"repository": repository, "path": path}
    if branch:
        arguments["branch"] = branch
    async with Client(url) as client:
        result = await client.call_tool("read", arguments)
        print(_text(result))


def main() -> None:
    parser = argparse.ArgumentParser(description="ado-search MCP client")
    parser.add_argument("--url", default=DEFAULT_URL, help=f"Server URL (default: {DEFAULT_URL})")
    sub = parser.add_subparsers(dest="cmd", required=True)

    s = sub.add_parser("search", help="Search code in the configured project")
    s.add_argument("query", help="Search query")
    s.add_argument("--repo", default="", help="Restrict the search to one repository")

    r = sub.add_parser("read", help="Print a file's content")
    r.add_argument("repository", help="Repository name")
    r.add_argument("path", help="File path, e.g. /README.md")
    r.add_argument("--branch", default=None, help="Branch to read (default branch if omitted)")

    args = parser.parse_args()

    if args.cmd == "search":
        asyncio.run(cmd_search(args.url, args.query, args.repo))
    else:
        asyncio.run(cmd_read(args.url, args.repository, args.path, args.branch))


if __name__ == "__main__":
    main()
