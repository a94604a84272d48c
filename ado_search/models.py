from pydantic import BaseModel, ConfigDict, Field

SEARCH_RESULT_CAP = 1000


class Credentials(BaseModel):
    model_config = ConfigDict(frozen=True)

    organization: str
    project: str
    pat: str = Field(repr=False)

    @property
    def organization_url(self) -> str:
        return f"https://dev.azure.com/{self.organization}"


class RepositoryReference(BaseModel):
    name: str
    id: str                            # repository GUID


class SearchQuery(BaseModel):
    text: str
    project: str
    repository: str | None = None      # None = all repositories in the project
    top: int = SEARCH_RESULT_CAP
    include_snippet: bool = True

    def filters(self) -> dict[str, list[str]]:
        filters = {"Project": [self.project]}
        if self.repository:
            filters["Repository"] = [self.repository]
        return filters


class SearchRecord(BaseModel):
    repository: str
    path: str
    file_name: str = Field(serialization_alias="fileName")
    project: str


class FileContentRequest(BaseModel):
    repository: RepositoryReference
    path: str
    branch: str | None = None          # None = upstream default branch
    include_content: bool = True


class SearchArgs(BaseModel):
    model_config = ConfigDict(strict=True)

    query: str
    repo: str = ""


class ReadArgs(BaseModel):
    model_config = ConfigDict(strict=True)

    repository: str
    path: str
    branch: str | None = None
