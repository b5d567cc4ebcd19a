"""Rule-based memory extraction from agent task output.

Turns the structured fields an agent reports (commit messages, changed files,
errors, test results, pipeline metadata) into candidate memories for
MemoryIngestor. Deterministic: the same output always yields the same
memories, in the same order.
"""

import re
from pathlib import PurePosixPath

from chronicle.config.models.memory import ExtractionConfig
from chronicle.memory.models import (
    EpisodeMetadata,
    EpisodeType,
    ExtractedMemory,
    IngestionInput,
    TaskOutput,
)
from chronicle.observability.logging import get_logger

logger = get_logger(__name__)

DECISION_KEYWORDS: tuple[str, ...] = (
    "chose",
    "decided",
    "selected",
    "switched to",
    "using",
    "adopted",
    "migrated to",
    "replaced",
    "prefer",
    "picked",
)

PROBLEM_KEYWORDS: tuple[str, ...] = (
    "fixed",
    "resolved",
    "bug",
    "error",
    "failure",
    "crash",
    "workaround",
    "issue",
    "patch",
    "hotfix",
)

# Capitalized words that are never tech names
_COMMON_WORDS = frozenset(
    """
    The This That When Then Given But And For Not All Any Has Was Are Were Had
    Did Does May Can Will Its Use Used Using New Old Set Get Put Run Add
    Decided Selected Chose Fixed Created Updated Removed Added Moved Changed
    Error Problem Issue Failed Success Test Tests Task Work Done With From Into
    Over Each Some Every Connection Migration Column Table Deployed Resolved
    Applied Replaced Decision Memory Fact Pattern Preference Pull Request
    Branch Commit Session
    """.split()
)

_FILE_TOKEN = re.compile(r"[\w-]+\.\w+")
_VERSION = re.compile(r"^\d+\.\d+$")
_CAPITALIZED = re.compile(r"\b[A-Z][a-zA-Z0-9]+\b")
_TECH_NAME = re.compile(r"[a-z][A-Z]|[A-Z]{2,}|\d")
_API_PATH = re.compile(r"/api/[\w/.-]+")
_SOURCE_SUFFIX = re.compile(r"(\.(spec|test))?\.(ts|js|py)$")

_API_MARKERS = ("/controllers/", "/api/", ".controller.")
_ENTITY_MARKERS = ("/entities/", ".entity.", "/models/")
_SERVICE_MARKERS = ("/services/", ".service.")
_TEST_MARKERS = (".spec.", ".test.", "__tests__")


def find_keyword(text: str, keywords: tuple[str, ...]) -> str | None:
    """First keyword contained in text, case-insensitive."""
    lowered = text.lower()
    return next((kw for kw in keywords if kw in lowered), None)


def extract_entities(text: str) -> list[str]:
    """Entity names mentioned in free text: file names, tech names, API paths."""
    entities = [
        token
        for token in _FILE_TOKEN.findall(text)
        if len(token) > 3 and not _VERSION.match(token)
    ]
    entities.extend(
        word
        for word in _CAPITALIZED.findall(text)
        if len(word) > 2 and word not in _COMMON_WORDS and _TECH_NAME.search(word)
    )
    entities.extend(_API_PATH.findall(text))
    return list(dict.fromkeys(entities))


def component_name(file_path: str) -> str:
    """File name without its source or test suffix, e.g. "user.service"."""
    return _SOURCE_SUFFIX.sub("", PurePosixPath(file_path).name)


def normalize_path(file_path: str) -> str:
    """Entity name for a file: anything before the first "src/" is dropped."""
    index = file_path.find("src/")
    if index >= 0:
        return file_path[index:]
    return file_path.removeprefix("./")


def _matching(files: list[str], markers: tuple[str, ...]) -> list[str]:
    return [f for f in files if any(marker in f for marker in markers)]


def _memory(
    episode_type: EpisodeType,
    content: str,
    confidence: float,
    entities: list[str],
    **metadata: object,
) -> ExtractedMemory:
    return ExtractedMemory(
        episode_type=episode_type,
        content=content,
        entities=list(dict.fromkeys(entities)),
        confidence=confidence,
        metadata=EpisodeMetadata(**metadata),
    )


class MemoryExtractor:
    """Extracts decisions, facts, problems, preferences and patterns.

    Confidence reflects how explicit the evidence is: decisions stated in a
    commit message 0.9, facts read from file paths and URLs 0.8, problems
    0.7, recurring outcomes 0.6 and inferred conventions 0.5.
    """

    def __init__(self, config: ExtractionConfig):
        self._config = config

    def extract(self, output: TaskOutput) -> list[ExtractedMemory]:
        """Candidate memories, capped at max_memories in extraction order."""
        memories = [
            *self._decisions(output),
            *self._facts(output),
            *self._problems(output),
            *self._preferences(output),
            *self._patterns(output),
        ]
        kept = memories[: self._config.max_memories]
        logger.debug(
            "memories_extracted",
            agent_type=output.agent_type,
            extracted=len(memories),
            kept=len(kept),
        )
        return kept

    def build_input(
        self,
        output: TaskOutput,
        *,
        project_id: str,
        workspace_id: str,
        story_id: str | None = None,
        session_id: str | None = None,
    ) -> IngestionInput:
        """Scope the extracted memories for MemoryIngestor.ingest."""
        return IngestionInput(
            project_id=project_id,
            workspace_id=workspace_id,
            agent_type=output.agent_type,
            story_id=story_id,
            session_id=session_id,
            memories=self.extract(output),
        )

    def _decisions(self, output: TaskOutput) -> list[ExtractedMemory]:
        memories = []
        for message in output.commit_messages:
            keyword = find_keyword(message, DECISION_KEYWORDS)
            if keyword is None:
                continue
            memories.append(
                _memory(
                    EpisodeType.DECISION,
                    f"Decision: {message}",
                    0.9,
                    extract_entities(message),
                    source="commit_message",
                    keyword=keyword,
                    commit_hash=output.commit_hash,
                    agent_type=output.agent_type,
                )
            )
        return memories

    def _facts(self, output: TaskOutput) -> list[ExtractedMemory]:
        memories = []
        groups = (
            ("api", _API_MARKERS, "Created or modified API endpoints"),
            ("entity", _ENTITY_MARKERS, "Created or modified database entities"),
            ("service", _SERVICE_MARKERS, "Created or modified services"),
        )
        for category, markers, label in groups:
            files = _matching(output.files_changed, markers)
            if not files:
                continue
            names = ", ".join(component_name(f) for f in files)
            memories.append(
                _memory(
                    EpisodeType.FACT,
                    f"{label}: {names}",
                    0.8,
                    [normalize_path(f) for f in files],
                    source="file_paths",
                    category=category,
                    file_count=len(files),
                    agent_type=output.agent_type,
                )
            )

        if output.deployment_url:
            memories.append(
                _memory(
                    EpisodeType.FACT,
                    f"Deployed to: {output.deployment_url}",
                    0.8,
                    ["deployment"],
                    source="deployment",
                    url=output.deployment_url,
                    agent_type=output.agent_type,
                )
            )
        if output.pr_url:
            memories.append(
                _memory(
                    EpisodeType.FACT,
                    f"Pull request created: {output.pr_url}",
                    0.8,
                    ["pull-request"],
                    source="pull_request",
                    url=output.pr_url,
                    agent_type=output.agent_type,
                )
            )
        if output.branch:
            memories.append(
                _memory(
                    EpisodeType.FACT,
                    f"Work done on branch: {output.branch}",
                    0.8,
                    [output.branch],
                    source="git",
                    branch=output.branch,
                    commit_hash=output.commit_hash,
                    agent_type=output.agent_type,
                )
            )
        return memories

    def _problems(self, output: TaskOutput) -> list[ExtractedMemory]:
        memories = []
        if output.error_message:
            memories.append(
                _memory(
                    EpisodeType.PROBLEM,
                    f"Error encountered: {output.error_message}",
                    0.7,
                    extract_entities(output.error_message),
                    source="error_message",
                    exit_code=output.exit_code,
                    agent_type=output.agent_type,
                )
            )

        results = output.test_results
        if results is not None and results.failed > 0:
            memories.append(
                _memory(
                    EpisodeType.PROBLEM,
                    f"Test failures detected: {results.failed} of {results.total} tests failed",
                    0.7,
                    ["tests"],
                    source="test_results",
                    passed=results.passed,
                    failed=results.failed,
                    total=results.total,
                    agent_type=output.agent_type,
                )
            )

        for message in output.commit_messages:
            keyword = find_keyword(message, PROBLEM_KEYWORDS)
            # Already recorded as a decision
            if keyword is None or find_keyword(message, DECISION_KEYWORDS):
                continue
            memories.append(
                _memory(
                    EpisodeType.PROBLEM,
                    f"Problem resolved: {message}",
                    0.7,
                    extract_entities(message),
                    source="commit_message",
                    keyword=keyword,
                    commit_hash=output.commit_hash,
                    agent_type=output.agent_type,
                )
            )
        return memories

    def _preferences(self, output: TaskOutput) -> list[ExtractedMemory]:
        files = output.files_changed
        if not files:
            return []

        memories = []
        test_files = _matching(files, _TEST_MARKERS)
        if test_files:
            spec_count = sum(".spec." in f for f in test_files)
            test_count = sum(".test." in f for f in test_files)
            convention = ".spec." if spec_count > test_count else ".test."
            memories.append(
                _memory(
                    EpisodeType.PREFERENCE,
                    f"Testing convention: Uses {convention} file suffix for test files "
                    f"({len(test_files)} test files)",
                    0.5,
                    [normalize_path(f) for f in test_files],
                    source="file_naming",
                    convention=convention,
                    test_file_count=len(test_files),
                    agent_type=output.agent_type,
                )
            )

        source_files = [
            f
            for f in files
            if "node_modules" not in f and ".spec." not in f and ".test." not in f
        ]
        kebab = [
            f
            for f in source_files
            if "-" in PurePosixPath(f).name and not PurePosixPath(f).name.startswith(".")
        ]
        if (
            len(source_files) >= self._config.min_naming_samples
            and len(kebab) > len(source_files) / 2
        ):
            memories.append(
                _memory(
                    EpisodeType.PREFERENCE,
                    "File naming convention: Uses kebab-case for file names",
                    0.5,
                    [],
                    source="file_naming",
                    convention="kebab-case",
                    sample_size=len(source_files),
                    agent_type=output.agent_type,
                )
            )
        return memories

    def _patterns(self, output: TaskOutput) -> list[ExtractedMemory]:
        memories = []
        results = output.test_results
        if results is not None and results.total > 0 and results.failed == 0:
            memories.append(
                _memory(
                    EpisodeType.PATTERN,
                    f"All {results.total} tests passed for {output.agent_type} agent task",
                    0.6,
                    ["tests", output.agent_type],
                    source="test_results",
                    passed=results.passed,
                    total=results.total,
                    agent_type=output.agent_type,
                )
            )

        if output.exit_code == 0 and output.duration_ms:
            seconds = round(output.duration_ms / 1000)
            memories.append(
                _memory(
                    EpisodeType.PATTERN,
                    f"{output.agent_type} agent task completed successfully in {seconds}s",
                    0.6,
                    [output.agent_type],
                    source="task_completion",
                    duration_ms=output.duration_ms,
                    exit_code=output.exit_code,
                    agent_type=output.agent_type,
                )
            )

        metadata = output.pipeline_metadata
        tech_stack = metadata.get("tech_stack", metadata.get("techStack"))
        if isinstance(tech_stack, str) and tech_stack.strip():
            memories.append(
                _memory(
                    EpisodeType.PATTERN,
                    f"Project uses tech stack: {tech_stack}",
                    0.6,
                    [part.strip() for part in tech_stack.split(",") if part.strip()],
                    source="pipeline_metadata",
                    tech_stack=tech_stack,
                    agent_type=output.agent_type,
                )
            )
        return memories
