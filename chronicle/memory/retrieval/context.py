"""Token-budgeted context assembly for agent prompts."""

import math
from dataclasses import dataclass

from chronicle.config.models.memory import QueryConfig
from chronicle.memory.models import Episode, EpisodeType, PatternRecommendation

CONTEXT_HEADER = "## Relevant Project Memory\n\n"
PATTERNS_HEADER = "### Workspace Patterns"

SECTION_HEADERS: dict[EpisodeType, str] = {
    EpisodeType.DECISION: "Decisions",
    EpisodeType.PROBLEM: "Problems Solved",
    EpisodeType.FACT: "Facts",
    EpisodeType.PATTERN: "Patterns",
    EpisodeType.PREFERENCE: "Preferences",
}


@dataclass
class AssembledSections:
    text: str
    memory_count: int
    tokens: int


class ContextBuilder:
    """Renders ranked episodes and pattern recommendations as markdown.

    Sections appear in fixed priority order. A section whose header does not
    fit the remaining budget is skipped; within a section, lines stop at the
    first one that would overflow.
    """

    def __init__(self, config: QueryConfig):
        self._config = config

    def estimate_tokens(self, text: str) -> int:
        return math.ceil(len(text) / self._config.chars_per_token)

    def build_memory_sections(self, memories: list[Episode], token_budget: int) -> AssembledSections:
        grouped: dict[EpisodeType, list[Episode]] = {}
        for memory in memories:
            grouped.setdefault(memory.episode_type, []).append(memory)

        total_tokens = self.estimate_tokens(CONTEXT_HEADER)
        sections: list[str] = []
        memory_count = 0

        for episode_type, title in SECTION_HEADERS.items():
            episodes = grouped.get(episode_type)
            if not episodes:
                continue

            header = f"### {title}"
            header_tokens = self.estimate_tokens(header + "\n")
            if total_tokens + header_tokens > token_budget:
                continue

            lines: list[str] = []
            body_tokens = 0
            for episode in episodes:
                line = self.format_memory_line(episode)
                line_tokens = self.estimate_tokens(line + "\n")
                if total_tokens + header_tokens + body_tokens + line_tokens > token_budget:
                    break
                lines.append(line)
                body_tokens += line_tokens

            if lines:
                total_tokens += header_tokens + body_tokens
                memory_count += len(lines)
                sections.append(header + "\n" + "\n".join(lines))

        if not sections:
            return AssembledSections(text="", memory_count=0, tokens=0)
        return AssembledSections(
            text=CONTEXT_HEADER + "\n\n".join(sections),
            memory_count=memory_count,
            tokens=total_tokens,
        )

    def build_patterns_section(
        self, recommendations: list[PatternRecommendation], budget: int
    ) -> AssembledSections:
        if budget <= 0 or not recommendations:
            return AssembledSections(text="", memory_count=0, tokens=0)

        total_tokens = self.estimate_tokens(PATTERNS_HEADER + "\n\n")
        lines: list[str] = []
        for rec in recommendations:
            line = (
                f"- {rec.confidence_label} {rec.pattern.content} "
                f"(observed in {rec.pattern.occurrence_count} projects, "
                f"confidence: {rec.pattern.confidence.value})"
            )
            line_tokens = self.estimate_tokens(line + "\n")
            if total_tokens + line_tokens > budget:
                break
            lines.append(line)
            total_tokens += line_tokens

        if not lines:
            return AssembledSections(text="", memory_count=0, tokens=0)
        return AssembledSections(
            text=PATTERNS_HEADER + "\n\n" + "\n".join(lines),
            memory_count=0,
            tokens=total_tokens,
        )

    @staticmethod
    def format_memory_line(episode: Episode) -> str:
        return (
            f"- [{episode.timestamp.date().isoformat()}] {episode.content} "
            f"(confidence: {episode.confidence})"
        )
