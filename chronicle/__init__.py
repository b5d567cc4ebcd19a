"""Chronicle: temporal, agent-facing memory over a property graph.

Agents record episodes (decisions, problems, facts, patterns, preferences)
while working on projects. Chronicle deduplicates them on the way in, ranks
them for new tasks, consolidates old ones into monthly summaries, and mines
patterns that recur across projects of a workspace.
"""

__version__ = "0.1.0"
