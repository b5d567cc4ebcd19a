"""Neo4j implementation of EpisodeStore.

Properties are stored camelCase on the nodes. Open metadata maps are stored
as JSON strings since Neo4j properties cannot hold nested maps.
"""

import json
from datetime import datetime
from typing import Any

from neo4j import AsyncTransaction

from chronicle.db.errors import NotFoundError
from chronicle.db.graph import GraphStore
from chronicle.memory.models import (
    EntityRef,
    Episode,
    EpisodeCreate,
    EpisodeFilter,
    EpisodeMetadata,
    GraphStats,
    LifecyclePolicy,
    MemorySummary,
    PatternFilters,
    WorkspacePattern,
    ensure_utc,
    utc_now,
)
from chronicle.memory.models.episode import new_id
from chronicle.memory.store import EpisodeStore
from chronicle.observability.logging import get_logger

logger = get_logger(__name__)

_CREATE_EPISODE = """
CREATE (e:Episode {
    id: $id,
    projectId: $projectId,
    workspaceId: $workspaceId,
    storyId: $storyId,
    agentType: $agentType,
    timestamp: $timestamp,
    episodeType: $episodeType,
    content: $content,
    confidence: $confidence,
    metadata: $metadata,
    archived: false
})
MERGE (p:ProjectNode {projectId: $projectId})
MERGE (w:WorkspaceNode {workspaceId: $workspaceId})
MERGE (e)-[:BELONGS_TO]->(p)
MERGE (e)-[:IN_WORKSPACE]->(w)
RETURN e.id AS id
"""

_LINK_ENTITIES = """
MATCH (e:Episode {id: $episodeId})
UNWIND $entityNames AS entityName
MERGE (er:EntityRef {name: entityName, projectId: $projectId, workspaceId: $workspaceId})
ON CREATE SET er.id = randomUUID(), er.entityType = 'other', er.metadata = '{}'
MERGE (e)-[:REFERENCES]->(er)
"""

_EPISODE_RETURN = """
OPTIONAL MATCH (e)-[:REFERENCES]->(er:EntityRef)
WITH e, collect(DISTINCT er.name) AS entities
RETURN e {.*} AS episode, entities
"""


def _to_datetime(value: Any) -> datetime | None:
    """Convert driver temporal values to aware datetimes."""
    if value is None:
        return None
    if hasattr(value, "to_native"):
        value = value.to_native()
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    return ensure_utc(value)


def _load_json(value: str | None) -> dict[str, Any]:
    if not value:
        return {}
    try:
        loaded = json.loads(value)
    except json.JSONDecodeError:
        logger.warning("metadata_decode_failed", value=value[:100])
        return {}
    return loaded if isinstance(loaded, dict) else {}


def _episode_from_row(row: dict[str, Any]) -> Episode:
    node = row["episode"]
    return Episode(
        id=node["id"],
        project_id=node["projectId"],
        workspace_id=node["workspaceId"],
        story_id=node.get("storyId"),
        agent_type=node.get("agentType") or "unknown",
        timestamp=_to_datetime(node["timestamp"]),
        episode_type=node["episodeType"],
        content=node.get("content") or "",
        entities=[name for name in row.get("entities") or [] if name is not None],
        confidence=node.get("confidence", 0.5),
        metadata=EpisodeMetadata.model_validate(_load_json(node.get("metadata"))),
        archived=bool(node.get("archived", False)),
        archived_at=_to_datetime(node.get("archivedAt")),
        summary_id=node.get("summaryId"),
    )


def _summary_from_row(node: dict[str, Any]) -> MemorySummary:
    return MemorySummary(
        id=node["id"],
        project_id=node["projectId"],
        workspace_id=node["workspaceId"],
        period_start=_to_datetime(node["periodStart"]),
        period_end=_to_datetime(node["periodEnd"]),
        original_episode_count=node.get("originalEpisodeCount") or 0,
        summary=node.get("summary") or "",
        key_decisions=list(node.get("keyDecisions") or []),
        key_patterns=list(node.get("keyPatterns") or []),
        archived_episode_ids=list(node.get("archivedEpisodeIds") or []),
        summarization_model=node.get("summarizationModel") or "stub",
        created_at=_to_datetime(node.get("createdAt")) or utc_now(),
        metadata=_load_json(node.get("metadata")),
    )


def _pattern_from_row(node: dict[str, Any]) -> WorkspacePattern:
    return WorkspacePattern(
        id=node["id"],
        workspace_id=node["workspaceId"],
        pattern_type=node["patternType"],
        content=node.get("content") or "",
        source_project_ids=list(node.get("sourceProjectIds") or []),
        source_episode_ids=list(node.get("sourceEpisodeIds") or []),
        confidence=node["confidence"],
        status=node.get("status") or "active",
        overridden_by=node.get("overriddenBy"),
        override_reason=node.get("overrideReason"),
        created_at=_to_datetime(node.get("createdAt")) or utc_now(),
        updated_at=_to_datetime(node.get("updatedAt")) or utc_now(),
        metadata=_load_json(node.get("metadata")),
    )


def _policy_from_row(node: dict[str, Any]) -> LifecyclePolicy:
    return LifecyclePolicy(
        workspace_id=node["workspaceId"],
        archive_after_days=node["archiveAfterDays"],
        max_memories_per_project=node["maxMemoriesPerProject"],
        retain_decisions_forever=node["retainDecisionsForever"],
        retain_patterns_forever=node["retainPatternsForever"],
        updated_at=_to_datetime(node.get("updatedAt")) or utc_now(),
    )


def _pattern_properties(pattern: WorkspacePattern) -> dict[str, Any]:
    return {
        "id": pattern.id,
        "workspaceId": pattern.workspace_id,
        "patternType": pattern.pattern_type.value,
        "content": pattern.content,
        "sourceProjectIds": pattern.source_project_ids,
        "sourceEpisodeIds": pattern.source_episode_ids,
        "occurrenceCount": pattern.occurrence_count,
        "confidence": pattern.confidence.value,
        "status": pattern.status.value,
        "overriddenBy": pattern.overridden_by,
        "overrideReason": pattern.override_reason,
        "createdAt": pattern.created_at,
        "updatedAt": pattern.updated_at,
        "metadata": json.dumps(pattern.metadata),
    }


class Neo4jEpisodeStore(EpisodeStore):
    """Neo4j-backed episode store.

    Every call goes through GraphStore, which raises GraphUnavailableError
    when the driver is not connected; engines decide how to degrade.
    """

    def __init__(self, graph: GraphStore) -> None:
        self._graph = graph

    def is_available(self) -> bool:
        return self._graph.is_connected()

    async def server_version(self) -> str | None:
        return await self._graph.server_version()

    # Episode operations
    async def add_episode(self, data: EpisodeCreate) -> Episode:
        """Create the episode, anchor nodes and entity links in one transaction."""
        episode = Episode(**data.model_dump(exclude={"metadata"}), metadata=data.metadata.model_copy())
        params = {
            "id": episode.id,
            "projectId": episode.project_id,
            "workspaceId": episode.workspace_id,
            "storyId": episode.story_id,
            "agentType": episode.agent_type,
            "timestamp": episode.timestamp,
            "episodeType": episode.episode_type.value,
            "content": episode.content,
            "confidence": episode.confidence,
            "metadata": json.dumps(episode.metadata.to_storage()),
        }
        entity_names = list(dict.fromkeys(episode.entities))

        async def work(tx: AsyncTransaction) -> None:
            result = await tx.run(_CREATE_EPISODE, params)
            await result.consume()
            if entity_names:
                result = await tx.run(
                    _LINK_ENTITIES,
                    {
                        "episodeId": episode.id,
                        "entityNames": entity_names,
                        "projectId": episode.project_id,
                        "workspaceId": episode.workspace_id,
                    },
                )
                await result.consume()

        await self._graph.run_in_transaction(work)
        logger.debug(
            "episode_created",
            episode_id=episode.id,
            project_id=episode.project_id,
            entity_count=len(entity_names),
        )
        return episode

    async def get_episode(
        self,
        episode_id: str,
        *,
        project_id: str | None = None,
        workspace_id: str | None = None,
    ) -> Episode | None:
        query = (
            "MATCH (e:Episode {id: $id}) "
            "WHERE ($projectId IS NULL OR e.projectId = $projectId) "
            "AND ($workspaceId IS NULL OR e.workspaceId = $workspaceId)"
            + _EPISODE_RETURN
        )
        rows = await self._graph.run_query(
            query, {"id": episode_id, "projectId": project_id, "workspaceId": workspace_id}
        )
        return _episode_from_row(rows[0]) if rows else None

    async def search_episodes(self, filters: EpisodeFilter) -> list[Episode]:
        conditions = ["e.projectId = $projectId", "e.workspaceId = $workspaceId"]
        params: dict[str, Any] = {
            "projectId": filters.project_id,
            "workspaceId": filters.workspace_id,
            "limit": filters.limit,
        }
        if not filters.include_archived:
            conditions.append("NOT coalesce(e.archived, false)")
        if filters.episode_types:
            conditions.append("e.episodeType IN $types")
            params["types"] = [t.value for t in filters.episode_types]
        if filters.since is not None:
            conditions.append("e.timestamp >= $since")
            params["since"] = filters.since
        if filters.until is not None:
            conditions.append("e.timestamp <= $until")
            params["until"] = filters.until
        if filters.entities:
            conditions.append(
                "EXISTS { MATCH (e)-[:REFERENCES]->(f:EntityRef) WHERE f.name IN $entityNames }"
            )
            params["entityNames"] = filters.entities

        query = (
            f"MATCH (e:Episode) WHERE {' AND '.join(conditions)} "
            "WITH e ORDER BY e.timestamp DESC LIMIT $limit"
            + _EPISODE_RETURN
            + " ORDER BY e.timestamp DESC"
        )
        rows = await self._graph.run_query(query, params)
        return [_episode_from_row(row) for row in rows]

    async def delete_episode(self, episode_id: str) -> bool:
        rows = await self._graph.run_query(
            "MATCH (e:Episode {id: $id}) DETACH DELETE e RETURN count(*) AS deleted",
            {"id": episode_id},
        )
        return bool(rows and rows[0]["deleted"])

    async def archive_episode(self, episode_id: str, summary_id: str | None = None) -> bool:
        rows = await self._graph.run_query(
            """
            MATCH (e:Episode {id: $id})
            SET e.archived = true, e.archivedAt = datetime(), e.summaryId = $summaryId
            WITH e
            OPTIONAL MATCH (s:MemorySummary {id: $summaryId})
            FOREACH (_ IN CASE WHEN s IS NULL THEN [] ELSE [1] END |
                MERGE (s)-[:SUMMARIZES]->(e))
            RETURN e.id AS id
            """,
            {"id": episode_id, "summaryId": summary_id},
        )
        return bool(rows)

    async def archive_episodes(
        self, episode_ids: list[str], summary_id: str | None = None
    ) -> int:
        if not episode_ids:
            return 0
        if summary_id is None:
            rows = await self._graph.run_query(
                """
                UNWIND $episodeIds AS episodeId
                MATCH (e:Episode {id: episodeId})
                SET e.archived = true, e.archivedAt = datetime()
                RETURN count(e) AS archived
                """,
                {"episodeIds": list(dict.fromkeys(episode_ids))},
            )
            return rows[0]["archived"] if rows else 0
        rows = await self._graph.run_query(
            """
            MATCH (s:MemorySummary {id: $summaryId})
            UNWIND $episodeIds AS episodeId
            MATCH (e:Episode {id: episodeId})
            SET e.archived = true, e.archivedAt = datetime(), e.summaryId = $summaryId
            MERGE (s)-[:SUMMARIZES]->(e)
            RETURN count(e) AS archived
            """,
            {"summaryId": summary_id, "episodeIds": list(dict.fromkeys(episode_ids))},
        )
        return rows[0]["archived"] if rows else 0

    async def update_episode_metadata(
        self, episode_id: str, metadata: EpisodeMetadata
    ) -> bool:
        rows = await self._graph.run_query(
            "MATCH (e:Episode {id: $id}) SET e.metadata = $metadata RETURN e.id AS id",
            {"id": episode_id, "metadata": json.dumps(metadata.to_storage())},
        )
        return bool(rows)

    async def count_project_episodes(
        self,
        project_id: str,
        workspace_id: str | None = None,
        *,
        archived: bool | None = None,
        since: datetime | None = None,
    ) -> int:
        rows = await self._graph.run_query(
            """
            MATCH (e:Episode {projectId: $projectId})
            WHERE ($workspaceId IS NULL OR e.workspaceId = $workspaceId)
              AND ($archived IS NULL OR coalesce(e.archived, false) = $archived)
              AND ($since IS NULL OR e.timestamp >= $since)
            RETURN count(e) AS count
            """,
            {
                "projectId": project_id,
                "workspaceId": workspace_id,
                "archived": archived,
                "since": ensure_utc(since) if since is not None else None,
            },
        )
        return rows[0]["count"] if rows else 0

    async def list_project_ids(self, workspace_id: str) -> list[str]:
        rows = await self._graph.run_query(
            """
            MATCH (e:Episode {workspaceId: $workspaceId})
            RETURN DISTINCT e.projectId AS projectId
            ORDER BY projectId
            """,
            {"workspaceId": workspace_id},
        )
        return [row["projectId"] for row in rows]

    # Entity operations
    async def add_entity_ref(
        self,
        name: str,
        project_id: str,
        workspace_id: str,
        *,
        entity_type: str = "other",
        metadata: dict[str, Any] | None = None,
    ) -> EntityRef:
        rows = await self._graph.run_query(
            """
            MERGE (er:EntityRef {name: $name, projectId: $projectId, workspaceId: $workspaceId})
            ON CREATE SET er.id = $id, er.entityType = $entityType, er.metadata = $metadata
            RETURN er {.*} AS entity
            """,
            {
                "name": name,
                "projectId": project_id,
                "workspaceId": workspace_id,
                "id": new_id(),
                "entityType": entity_type,
                "metadata": json.dumps(metadata or {}),
            },
        )
        node = rows[0]["entity"]
        return EntityRef(
            id=node["id"],
            name=node["name"],
            entity_type=node.get("entityType") or "other",
            project_id=node["projectId"],
            workspace_id=node["workspaceId"],
            metadata=_load_json(node.get("metadata")),
        )

    async def get_entity_episodes(
        self,
        entity_name: str,
        project_id: str,
        workspace_id: str,
        *,
        limit: int = 50,
    ) -> list[Episode]:
        query = (
            "MATCH (:EntityRef {name: $name, projectId: $projectId, workspaceId: $workspaceId})"
            "<-[:REFERENCES]-(e:Episode) "
            "WHERE NOT coalesce(e.archived, false) "
            "WITH e ORDER BY e.timestamp DESC LIMIT $limit"
            + _EPISODE_RETURN
            + " ORDER BY e.timestamp DESC"
        )
        rows = await self._graph.run_query(
            query,
            {
                "name": entity_name,
                "projectId": project_id,
                "workspaceId": workspace_id,
                "limit": limit,
            },
        )
        return [_episode_from_row(row) for row in rows]

    # Summary operations
    async def upsert_summary(self, summary: MemorySummary) -> MemorySummary:
        rows = await self._graph.run_query(
            """
            MERGE (s:MemorySummary {
                projectId: $projectId,
                workspaceId: $workspaceId,
                periodStart: $periodStart,
                periodEnd: $periodEnd
            })
            ON CREATE SET
                s.id = $id,
                s.originalEpisodeCount = $episodeCount,
                s.summary = $summary,
                s.keyDecisions = $keyDecisions,
                s.keyPatterns = $keyPatterns,
                s.archivedEpisodeIds = $archivedEpisodeIds,
                s.summarizationModel = $model,
                s.createdAt = $createdAt,
                s.metadata = $metadata
            ON MATCH SET
                s.originalEpisodeCount = s.originalEpisodeCount + $episodeCount,
                s.archivedEpisodeIds = s.archivedEpisodeIds + $archivedEpisodeIds,
                s.summary = $summary,
                s.keyDecisions = s.keyDecisions + [kd IN $keyDecisions WHERE NOT kd IN s.keyDecisions],
                s.keyPatterns = s.keyPatterns + [kp IN $keyPatterns WHERE NOT kp IN s.keyPatterns],
                s.metadata = $metadata
            MERGE (p:ProjectNode {projectId: $projectId})
            MERGE (w:WorkspaceNode {workspaceId: $workspaceId})
            MERGE (s)-[:BELONGS_TO]->(p)
            MERGE (s)-[:IN_WORKSPACE]->(w)
            RETURN s {.*} AS summary
            """,
            {
                "id": summary.id,
                "projectId": summary.project_id,
                "workspaceId": summary.workspace_id,
                "periodStart": summary.period_start,
                "periodEnd": summary.period_end,
                "episodeCount": summary.original_episode_count,
                "summary": summary.summary,
                "keyDecisions": summary.key_decisions,
                "keyPatterns": summary.key_patterns,
                "archivedEpisodeIds": summary.archived_episode_ids,
                "model": summary.summarization_model,
                "createdAt": summary.created_at,
                "metadata": json.dumps(summary.metadata),
            },
        )
        return _summary_from_row(rows[0]["summary"])

    async def list_summaries(
        self, project_id: str, workspace_id: str
    ) -> list[MemorySummary]:
        rows = await self._graph.run_query(
            """
            MATCH (s:MemorySummary {projectId: $projectId, workspaceId: $workspaceId})
            RETURN s {.*} AS summary
            ORDER BY s.periodStart DESC
            """,
            {"projectId": project_id, "workspaceId": workspace_id},
        )
        return [_summary_from_row(row["summary"]) for row in rows]

    # Pattern operations
    async def create_pattern(self, pattern: WorkspacePattern) -> WorkspacePattern:
        rows = await self._graph.run_query(
            """
            CREATE (wp:WorkspacePattern)
            SET wp = $props
            MERGE (w:WorkspaceNode {workspaceId: $props.workspaceId})
            MERGE (wp)-[:IN_WORKSPACE]->(w)
            RETURN wp {.*} AS pattern
            """,
            {"props": _pattern_properties(pattern)},
        )
        return _pattern_from_row(rows[0]["pattern"])

    async def update_pattern(self, pattern: WorkspacePattern) -> WorkspacePattern:
        props = _pattern_properties(pattern)
        props.pop("createdAt")
        rows = await self._graph.run_query(
            """
            MATCH (wp:WorkspacePattern {id: $id, workspaceId: $workspaceId})
            SET wp += $props
            RETURN wp {.*} AS pattern
            """,
            {"id": pattern.id, "workspaceId": pattern.workspace_id, "props": props},
        )
        if not rows:
            raise NotFoundError(f"Pattern {pattern.id} not found")
        return _pattern_from_row(rows[0]["pattern"])

    async def get_pattern(self, workspace_id: str, pattern_id: str) -> WorkspacePattern | None:
        rows = await self._graph.run_query(
            "MATCH (wp:WorkspacePattern {id: $id, workspaceId: $workspaceId}) "
            "RETURN wp {.*} AS pattern",
            {"id": pattern_id, "workspaceId": workspace_id},
        )
        return _pattern_from_row(rows[0]["pattern"]) if rows else None

    async def list_patterns(
        self, workspace_id: str, filters: PatternFilters | None = None
    ) -> list[WorkspacePattern]:
        filters = filters or PatternFilters(status=None)
        conditions = ["wp.workspaceId = $workspaceId"]
        params: dict[str, Any] = {"workspaceId": workspace_id, "limit": filters.limit}
        if filters.status is not None:
            conditions.append("wp.status = $status")
            params["status"] = filters.status.value
        if filters.pattern_type is not None:
            conditions.append("wp.patternType = $patternType")
            params["patternType"] = filters.pattern_type.value
        if filters.confidence is not None:
            conditions.append("wp.confidence = $confidence")
            params["confidence"] = filters.confidence.value

        rows = await self._graph.run_query(
            f"MATCH (wp:WorkspacePattern) WHERE {' AND '.join(conditions)} "
            "RETURN wp {.*} AS pattern "
            "ORDER BY wp.occurrenceCount DESC, wp.updatedAt DESC "
            "LIMIT $limit",
            params,
        )
        return [_pattern_from_row(row["pattern"]) for row in rows]

    async def count_patterns(self, workspace_id: str) -> int:
        rows = await self._graph.run_query(
            "MATCH (wp:WorkspacePattern {workspaceId: $workspaceId}) RETURN count(wp) AS count",
            {"workspaceId": workspace_id},
        )
        return rows[0]["count"] if rows else 0

    # Lifecycle policy
    async def get_lifecycle_policy(self, workspace_id: str) -> LifecyclePolicy | None:
        rows = await self._graph.run_query(
            "MATCH (lp:LifecyclePolicy {workspaceId: $workspaceId}) RETURN lp {.*} AS policy",
            {"workspaceId": workspace_id},
        )
        return _policy_from_row(rows[0]["policy"]) if rows else None

    async def upsert_lifecycle_policy(self, policy: LifecyclePolicy) -> LifecyclePolicy:
        rows = await self._graph.run_query(
            """
            MERGE (lp:LifecyclePolicy {workspaceId: $workspaceId})
            SET lp.archiveAfterDays = $archiveAfterDays,
                lp.maxMemoriesPerProject = $maxMemoriesPerProject,
                lp.retainDecisionsForever = $retainDecisionsForever,
                lp.retainPatternsForever = $retainPatternsForever,
                lp.updatedAt = $updatedAt
            RETURN lp {.*} AS policy
            """,
            {
                "workspaceId": policy.workspace_id,
                "archiveAfterDays": policy.archive_after_days,
                "maxMemoriesPerProject": policy.max_memories_per_project,
                "retainDecisionsForever": policy.retain_decisions_forever,
                "retainPatternsForever": policy.retain_patterns_forever,
                "updatedAt": policy.updated_at,
            },
        )
        return _policy_from_row(rows[0]["policy"]) if rows else policy

    # Statistics
    async def get_graph_stats(self) -> GraphStats:
        episode_rows = await self._graph.run_query(
            """
            MATCH (e:Episode)
            RETURN e.episodeType AS episodeType,
                   count(e) AS count,
                   sum(CASE WHEN coalesce(e.archived, false) THEN 1 ELSE 0 END) AS archived,
                   max(e.timestamp) AS lastTimestamp
            """
        )
        count_rows = await self._graph.run_query(
            """
            CALL { MATCH (er:EntityRef) RETURN count(er) AS entities }
            CALL { MATCH (s:MemorySummary) RETURN count(s) AS summaries }
            CALL { MATCH (wp:WorkspacePattern) RETURN count(wp) AS patterns }
            RETURN entities, summaries, patterns
            """
        )
        by_type = {row["episodeType"]: row["count"] for row in episode_rows}
        timestamps = [
            ts for ts in (_to_datetime(row["lastTimestamp"]) for row in episode_rows) if ts
        ]
        counts = count_rows[0] if count_rows else {}
        return GraphStats(
            total_episodes=sum(by_type.values()),
            archived_episodes=sum(row["archived"] for row in episode_rows),
            episodes_by_type=by_type,
            total_entities=counts.get("entities", 0),
            total_summaries=counts.get("summaries", 0),
            total_patterns=counts.get("patterns", 0),
            last_episode_timestamp=max(timestamps, default=None),
        )
