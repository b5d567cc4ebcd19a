"""Graph schema: node labels, relationship types, constraints and indexes.

Uniqueness constraints are load-bearing: concurrent sweeps rely on MERGE
against them to converge instead of duplicating nodes.
"""

# Node labels
EPISODE = "Episode"
ENTITY_REF = "EntityRef"
PROJECT = "ProjectNode"
WORKSPACE = "WorkspaceNode"
SUMMARY = "MemorySummary"
PATTERN = "WorkspacePattern"
LIFECYCLE_POLICY = "LifecyclePolicy"

# Relationship types
BELONGS_TO = "BELONGS_TO"
IN_WORKSPACE = "IN_WORKSPACE"
REFERENCES = "REFERENCES"
SUMMARIZES = "SUMMARIZES"

CONSTRAINTS: tuple[str, ...] = (
    "CREATE CONSTRAINT episode_id IF NOT EXISTS FOR (e:Episode) REQUIRE e.id IS UNIQUE",
    "CREATE CONSTRAINT entity_ref_id IF NOT EXISTS FOR (er:EntityRef) REQUIRE er.id IS UNIQUE",
    "CREATE CONSTRAINT project_node_id IF NOT EXISTS "
    "FOR (p:ProjectNode) REQUIRE p.projectId IS UNIQUE",
    "CREATE CONSTRAINT workspace_node_id IF NOT EXISTS "
    "FOR (w:WorkspaceNode) REQUIRE w.workspaceId IS UNIQUE",
    "CREATE CONSTRAINT workspace_pattern_id IF NOT EXISTS "
    "FOR (wp:WorkspacePattern) REQUIRE wp.id IS UNIQUE",
    "CREATE CONSTRAINT memory_summary_id IF NOT EXISTS "
    "FOR (s:MemorySummary) REQUIRE s.id IS UNIQUE",
    "CREATE CONSTRAINT lifecycle_policy_workspace IF NOT EXISTS "
    "FOR (lp:LifecyclePolicy) REQUIRE lp.workspaceId IS UNIQUE",
)

INDEXES: tuple[str, ...] = (
    "CREATE INDEX episode_project IF NOT EXISTS FOR (e:Episode) ON (e.projectId)",
    "CREATE INDEX episode_workspace IF NOT EXISTS FOR (e:Episode) ON (e.workspaceId)",
    "CREATE INDEX episode_timestamp IF NOT EXISTS FOR (e:Episode) ON (e.timestamp)",
    "CREATE INDEX episode_type IF NOT EXISTS FOR (e:Episode) ON (e.episodeType)",
    "CREATE INDEX entity_ref_name IF NOT EXISTS FOR (er:EntityRef) ON (er.name)",
    "CREATE INDEX summary_period IF NOT EXISTS "
    "FOR (s:MemorySummary) ON (s.projectId, s.workspaceId, s.periodStart)",
    "CREATE INDEX pattern_workspace IF NOT EXISTS FOR (wp:WorkspacePattern) ON (wp.workspaceId)",
    "CREATE INDEX pattern_type IF NOT EXISTS FOR (wp:WorkspacePattern) ON (wp.patternType)",
    "CREATE INDEX pattern_confidence IF NOT EXISTS "
    "FOR (wp:WorkspacePattern) ON (wp.confidence)",
)
