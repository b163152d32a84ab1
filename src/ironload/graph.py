"""
Neo4j exercise catalog.

The catalog lives in the graph:

    (:Exercise)-[:TARGETS {split}]->(:MuscleGroup)
    (:Exercise)-[:SUBSTITUTES_FOR {similarity_score, muscle_overlap_percentage}]->(:Exercise)

Soft-deleted nodes and relationships carry a ``deleted_at`` property.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv
from neo4j import Driver, GraphDatabase
from neo4j.exceptions import Neo4jError, ServiceUnavailable

from .domain import (
    Exercise,
    ExerciseCatalogEntry,
    MuscleGroup,
    MuscleGroupSplit,
    PrecomputedSubstitution,
)
from .errors import RepositoryError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config" / "neo4j.yaml"


class CatalogGraph:
    """Interface to the exercise catalog graph."""

    def __init__(self, config_path: Optional[str] = None, driver: Optional[Driver] = None):
        """
        Initialize connection to Neo4j.

        Args:
            config_path: Path to neo4j.yaml config file. If None, uses default.
            driver: Pre-built driver (skips config and env lookup)
        """
        load_dotenv()

        config: Dict[str, Any] = {}
        path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        if path.exists():
            with open(path) as f:
                config = yaml.safe_load(f) or {}

        self.uri = os.getenv("NEO4J_URI", config.get("uri", "bolt://localhost:7687"))
        self.user = os.getenv("NEO4J_USER", config.get("user", "neo4j"))
        self.database = os.getenv("NEO4J_DATABASE", config.get("database", "neo4j"))

        if driver is not None:
            self.driver = driver
            return

        password = os.getenv("NEO4J_PASSWORD")
        if not password:
            raise ValueError("NEO4J_PASSWORD environment variable must be set")

        self.driver: Driver = GraphDatabase.driver(self.uri, auth=(self.user, password))

    def close(self):
        """Close the database connection."""
        if self.driver:
            self.driver.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def execute_query(
        self,
        query: str,
        parameters: Optional[Dict[str, Any]] = None,
        operation: str = "graph_query",
    ) -> List[Dict[str, Any]]:
        """
        Execute a Cypher query and return results.

        Args:
            query: Cypher query string
            parameters: Optional query parameters
            operation: Name used in error reports

        Returns:
            List of result records as dictionaries

        Raises:
            RepositoryError: Driver or server failure
        """
        try:
            with self.driver.session(database=self.database) as session:
                result = session.run(query, parameters or {})
                return [dict(record) for record in result]
        except (Neo4jError, ServiceUnavailable) as e:
            logger.error(f"{operation} failed: {e}")
            raise RepositoryError(operation, str(e)) from e

    def execute_write(
        self,
        query: str,
        parameters: Optional[Dict[str, Any]] = None,
        operation: str = "graph_write",
    ) -> Any:
        """Execute a write and return the result summary."""
        try:
            with self.driver.session(database=self.database) as session:
                result = session.run(query, parameters or {})
                return result.consume()
        except (Neo4jError, ServiceUnavailable) as e:
            logger.error(f"{operation} failed: {e}")
            raise RepositoryError(operation, str(e)) from e

    # =========================================================================
    # Catalog reads
    # =========================================================================

    def list_catalog(self) -> Dict[str, ExerciseCatalogEntry]:
        """
        Live exercises with their live muscle splits.

        Rows with an unknown type, movement pattern or muscle group are
        rejected and logged.

        Returns:
            Exercise id -> ExerciseCatalogEntry
        """
        query = """
        MATCH (e:Exercise)
        WHERE e.deleted_at IS NULL
        OPTIONAL MATCH (e)-[t:TARGETS]->(m:MuscleGroup)
        WHERE t.deleted_at IS NULL
        RETURN
            e.id as id,
            e.name as name,
            e.type as type,
            e.movement_pattern as movement_pattern,
            e.description as description,
            collect({muscle_group: m.name, split: t.split}) as splits
        ORDER BY e.id
        """

        catalog = {}
        for record in self.execute_query(query, operation="list_catalog"):
            try:
                entry = catalog_entry_from_record(record)
            except ValidationError as e:
                logger.warning(f"Skipping catalog row {record.get('id')}: {e}")
                continue
            catalog[entry.exercise.id] = entry

        return catalog

    def get_substitution_rows(self, primary_exercise_id: str) -> List[PrecomputedSubstitution]:
        """Precomputed substitution edges pointing at an exercise."""
        query = """
        MATCH (s:Exercise)-[r:SUBSTITUTES_FOR]->(p:Exercise {id: $primary_id})
        WHERE r.deleted_at IS NULL
        RETURN
            p.id as primary_exercise_id,
            s.id as substitute_exercise_id,
            r.similarity_score as similarity_score,
            r.muscle_overlap_percentage as muscle_overlap_percentage
        ORDER BY r.similarity_score DESC, s.id
        """

        results = self.execute_query(query, {'primary_id': primary_exercise_id}, operation="get_substitution_rows")

        return [
            PrecomputedSubstitution(
                primary_exercise_id=r['primary_exercise_id'],
                substitute_exercise_id=r['substitute_exercise_id'],
                similarity_score=float(r['similarity_score'] or 0.0),
                muscle_overlap_percentage=float(r['muscle_overlap_percentage'] or 0.0),
            )
            for r in results
        ]

    # =========================================================================
    # Catalog writes
    # =========================================================================

    def set_muscle_split(self, exercise_id: str, muscle_group: MuscleGroup, split_percent: float):
        """Create or update the split of an exercise on one muscle group."""
        MuscleGroupSplit(exercise_id, muscle_group, split_percent)

        query = """
        MATCH (e:Exercise {id: $exercise_id})
        MERGE (m:MuscleGroup {name: $muscle_group})
        MERGE (e)-[t:TARGETS]->(m)
        SET t.split = $split, t.deleted_at = null
        """
        self.execute_write(query, {
            'exercise_id': exercise_id,
            'muscle_group': muscle_group.value,
            'split': split_percent,
        }, operation="set_muscle_split")

    def soft_delete_exercise(self, exercise_id: str):
        query = """
        MATCH (e:Exercise {id: $exercise_id})
        SET e.deleted_at = datetime()
        """
        self.execute_write(query, {'exercise_id': exercise_id}, operation="soft_delete_exercise")


def catalog_entry_from_record(record: Dict[str, Any]) -> ExerciseCatalogEntry:
    """Build a catalog entry from a row with an embedded ``splits`` list."""
    exercise = Exercise.from_record(record)
    splits = tuple(
        MuscleGroupSplit(
            exercise_id=exercise.id,
            muscle_group=MuscleGroup.parse(s['muscle_group']),
            split_percent=float(s['split']),
        )
        for s in record.get('splits') or []
        if s.get('muscle_group') is not None and s.get('split') is not None
    )
    return ExerciseCatalogEntry(exercise=exercise, splits=splits)
