import logging

from .errors import RepositoryNotFoundError
from .models import RepositoryReference
from .session import UpstreamSession

logger = logging.getLogger(__name__)


class RepositoryResolver:
    """Maps a human-given repository name to its Azure DevOps GUID.

    The repository list is fetched on every call, so renames upstream are
    picked up immediately.
    """

    def __init__(self, session: UpstreamSession):
        self._session = session

    async def resolve(self, project: str, name: str) -> RepositoryReference:
        target = name.lower()
        for repo in await self._session.list_repositories(project):
            repo_name = repo.get("name")
            if isinstance(repo_name, str) and repo_name.lower() == target and repo.get("id"):
                return RepositoryReference(name=repo_name, id=str(repo["id"]))

        logger.warning("Repository not found in %s: %s", project, name)
        raise RepositoryNotFoundError(name)
