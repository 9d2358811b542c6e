"""Viewer session: the state a browsing UI renders from.

One ViewerSession per open viewer. User intents (load a repository, select a
file, change the filters) come in as method calls; each network round-trip
is tagged with a generation token so a slow response for a superseded
repository or file never overwrites newer state. Repository, file-list and
file-content loading are tracked separately because they complete at
different times.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from markview.document import build_document
from markview.errors import ErrorDetails, MarkViewError, describe_error
from markview.filters import apply_filters
from markview.validation import parse_repository_input

if TYPE_CHECKING:
    from collections.abc import Iterable

    from markview.document import RenderedDocument
    from markview.models.github import MarkdownFile, RepositoryMetadata, RepositoryRef
    from markview.service import RepositoryService

log = structlog.get_logger()

ROOT_GROUP = "Root"


def group_files_by_directory(files: Iterable[MarkdownFile]) -> dict[str, list[MarkdownFile]]:
    """Group by parent directory, directories sorted, files in list order."""
    grouped: dict[str, list[MarkdownFile]] = {}
    for file in files:
        directory = file.path.rpartition("/")[0] or ROOT_GROUP
        grouped.setdefault(directory, []).append(file)
    return {directory: grouped[directory] for directory in sorted(grouped)}


@dataclass
class ViewerState:
    repository: RepositoryMetadata | None = None
    ref: str | None = None
    files: list[MarkdownFile] = field(default_factory=list)
    visible_files: list[MarkdownFile] = field(default_factory=list)
    include_pattern: str = ""
    exclude_pattern: str = ""
    case_sensitive: bool = False
    filter_error: str | None = None
    selected_path: str | None = None
    document: RenderedDocument | None = None
    loading_repository: bool = False
    loading_files: bool = False
    loading_content: bool = False
    error: ErrorDetails | None = None


class ViewerSession:
    def __init__(self, service: RepositoryService) -> None:
        self._service = service
        self.state = ViewerState()
        self._load_generation = 0
        self._select_generation = 0

    @property
    def grouped_files(self) -> dict[str, list[MarkdownFile]]:
        return group_files_by_directory(self.state.visible_files)

    async def load_repository(self, text: str) -> bool:
        """Load a repository from ``owner/repo`` or a github.com URL.

        Returns True if this call's results were applied.
        """
        target = parse_repository_input(text)
        if target is None:
            self.state.error = ErrorDetails(
                message='Invalid repository format. Use "owner/repo" or a GitHub URL',
                suggestion="Please check your input and try again.",
            )
            return False

        self._load_generation += 1
        # Any in-flight file selection belongs to the previous repository
        self._select_generation += 1
        generation = self._load_generation

        state = self.state
        state.repository = None
        state.ref = target.ref
        state.files = []
        state.visible_files = []
        state.selected_path = None
        state.document = None
        state.error = None
        state.loading_repository = True
        state.loading_files = True
        state.loading_content = False

        log.info("session_load_repository", repository=target.full_name, ref=target.ref)

        try:
            metadata = await self._service.get_repository(target.owner, target.repo)
        except MarkViewError as exc:
            if generation == self._load_generation:
                # No metadata means no file listing will follow
                state.loading_files = False
                self._fail(exc)
            return False
        finally:
            if generation == self._load_generation:
                state.loading_repository = False

        if generation != self._load_generation:
            log.debug("session_stale_response_dropped", kind="repository")
            return False
        state.repository = metadata.data

        return await self._load_files(target, metadata.data, generation)

    async def _load_files(
        self, target: RepositoryRef, repository: RepositoryMetadata, generation: int
    ) -> bool:
        state = self.state
        ref = target.ref or repository.default_branch

        try:
            listing = await self._service.get_files(target.owner, target.repo, ref)
        except MarkViewError as exc:
            if generation == self._load_generation:
                self._fail(exc)
            return False
        finally:
            if generation == self._load_generation:
                state.loading_files = False

        if generation != self._load_generation:
            log.debug("session_stale_response_dropped", kind="files")
            return False

        state.files = listing.data
        self._refilter()
        return True

    async def select_file(self, path: str) -> bool:
        """Fetch and render one file. Returns True if the result was applied."""
        state = self.state
        repository = state.repository
        if repository is None:
            return False

        self._select_generation += 1
        generation = self._select_generation
        load_generation = self._load_generation

        state.selected_path = path
        state.loading_content = True
        state.error = None

        ref = state.ref or repository.default_branch
        try:
            result = await self._service.get_content(repository.owner, repository.name, path, ref)
        except MarkViewError as exc:
            if self._is_current_selection(generation, load_generation):
                self._fail(exc)
            return False
        finally:
            if self._is_current_selection(generation, load_generation):
                state.loading_content = False

        if not self._is_current_selection(generation, load_generation):
            log.debug("session_stale_response_dropped", kind="content", path=path)
            return False

        state.document = build_document(result.data, repository.owner, repository.name, ref)
        return True

    def set_filters(
        self,
        include_pattern: str = "",
        exclude_pattern: str = "",
        *,
        case_sensitive: bool = False,
    ) -> str | None:
        """Re-filter the file list. Returns the filter error, if any."""
        self.state.include_pattern = include_pattern
        self.state.exclude_pattern = exclude_pattern
        self.state.case_sensitive = case_sensitive
        self._refilter()
        return self.state.filter_error

    def clear_filters(self) -> None:
        self.set_filters("", "", case_sensitive=self.state.case_sensitive)

    # ------------------------------------------------------------------

    def _is_current_selection(self, generation: int, load_generation: int) -> bool:
        return generation == self._select_generation and load_generation == self._load_generation

    def _refilter(self) -> None:
        state = self.state
        result = apply_filters(
            state.files,
            state.include_pattern,
            state.exclude_pattern,
            case_sensitive=state.case_sensitive,
        )
        state.visible_files = result.files
        state.filter_error = result.error

    def _fail(self, exc: MarkViewError) -> None:
        details = describe_error(exc)
        log.info("session_error", kind=str(exc.kind), message=exc.message)
        self.state.error = details
