import logging

from .models import FileContentRequest, SearchQuery, SearchRecord
from .resolver import RepositoryResolver
from .session import UpstreamSession

logger = logging.getLogger(__name__)


def _text_or_none(value) -> str | None:
    return value if isinstance(value, str) else None


def _name_of(value) -> str | None:
    if isinstance(value, dict):
        return _text_or_none(value.get("name"))
    return None


def to_search_record(hit: dict) -> SearchRecord | None:
    """Build a record from one upstream hit, or None if the hit is incomplete."""
    repository = _name_of(hit.get("repository"))
    project = _name_of(hit.get("project"))
    path = _text_or_none(hit.get("path"))
    file_name = _text_or_none(hit.get("fileName"))
    if repository is None or path is None or file_name is None or project is None:
        return None
    return SearchRecord(repository=repository, path=path, file_name=file_name, project=project)


class SearchOperation:
    def __init__(self, session: UpstreamSession):
        self._session = session

    async def execute(self, query: str, repo: str = "") -> list[SearchRecord]:
        """Run a code search in the configured project.

        Args:
            query: Search text, passed to Azure DevOps verbatim.
            repo: Optional repository name to restrict the search to.

        Returns:
            Records in upstream order. Hits missing a repository, path,
            file name or project are dropped.
        """
        search_query = SearchQuery(
            text=query,
            project=self._session.project,
            repository=repo or None,
        )
        hits = await self._session.search(search_query)

        records = []
        for hit in hits:
            record = to_search_record(hit)
            if record is None:
                logger.debug("Dropping incomplete search hit: %r", hit)
                continue
            records.append(record)
        return records


class ReadOperation:
    def __init__(self, session: UpstreamSession, resolver: RepositoryResolver | None = None):
        self._session = session
        self._resolver = resolver or RepositoryResolver(session)

    async def execute(self, repository: str, path: str, branch: str | None = None) -> str:
        """Return the text of `path` in `repository`.

        Items without content (directories, for example) read as an empty
        string. With no `branch` the repository's default branch is read.
        """
        reference = await self._resolver.resolve(self._session.project, repository)
        request = FileContentRequest(repository=reference, path=path, branch=branch or None)
        item = await self._session.get_file_content(
            request.repository.id,
            request.path,
            branch=request.branch,
            include_content=request.include_content,
        )
        content = item.get("content")
        if content is None:
            return ""
        return content
