import json
import logging
from collections.abc import Mapping

from pydantic import BaseModel, ValidationError

from .errors import AdoSearchError, ToolArgumentError
from .models import ReadArgs, SearchArgs
from .operations import ReadOperation, SearchOperation
from .session import UpstreamSession

logger = logging.getLogger(__name__)

ARGUMENT_MODELS: dict[str, type[BaseModel]] = {
    "search": SearchArgs,
    "read": ReadArgs,
}


class ToolOutcome(BaseModel):
    ok: bool
    text: str = ""
    error: str | None = None

    @classmethod
    def success(cls, text: str) -> "ToolOutcome":
        return cls(ok=True, text=text)

    @classmethod
    def failure(cls, error: str) -> "ToolOutcome":
        return cls(ok=False, error=error)


def _describe(e: ValidationError) -> str:
    problems = []
    for err in e.errors():
        field = ".".join(str(p) for p in err["loc"]) or "arguments"
        if err["type"] == "missing":
            problems.append(f"{field} is required")
        else:
            problems.append(f"{field} must be a string")
    return "; ".join(problems)


def validate_arguments(operation: str, arguments: Mapping | None) -> SearchArgs | ReadArgs:
    """Turn an untyped argument mapping into the operation's request model.

    Raises ToolArgumentError for unknown operations and missing or
    mistyped arguments. A non-string `repo` for search is treated as absent.
    """
    model = ARGUMENT_MODELS.get(operation)
    if model is None:
        raise ToolArgumentError(f"unknown operation: {operation}")

    args = dict(arguments or {})
    if operation == "search" and not isinstance(args.get("repo"), str):
        args.pop("repo", None)

    try:
        return model.model_validate(args)
    except ValidationError as e:
        raise ToolArgumentError(_describe(e)) from e


class OperationDispatcher:
    """Routes tool calls to the search and read operations.

    Stateless between calls apart from the shared session.
    """

    def __init__(self, session: UpstreamSession):
        self.search = SearchOperation(session)
        self.read = ReadOperation(session)

    async def dispatch(self, operation: str, arguments: Mapping | None) -> ToolOutcome:
        try:
            request = validate_arguments(operation, arguments)
        except ToolArgumentError as e:
            logger.warning("Rejected %s call: %s", operation, e)
            return ToolOutcome.failure(str(e))

        try:
            if isinstance(request, SearchArgs):
                records = await self.search.execute(request.query, request.repo)
                payload = [r.model_dump(by_alias=True) for r in records]
                return ToolOutcome.success(json.dumps(payload, separators=(",", ":")))

            content = await self.read.execute(request.repository, request.path, request.branch)
            return ToolOutcome.success(content)
        except AdoSearchError as e:
            logger.warning("%s failed: %s", operation, e)
            action = "searching code" if operation == "search" else "getting file content"
            return ToolOutcome.failure(f"error {action}: {e}")
