"""
Program repository: typed CRUD over provider-authored programs and their
model training results
"""
import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..models.common import Identity, get_current_utc_time
from ..models.program import Program, ProgramInput, TrainingResult, TrainingResultInput
from ..utils.single_flight import SingleFlight
from .errors import ProgramError, StorageError
from .normalizer import as_mapping, as_optional_string, as_string, coerce_identity, decode_requirement, decode_rule_item
from .store import MongoStore

logger = logging.getLogger(__name__)

PROGRAMS_TABLE = "programs"
TRAINING_RESULTS_TABLE = "model_training_results"

PROGRAM_FIELDS = (
    "id", "provider_id", "name", "category", "description",
    "requirements", "rules", "created_at", "updated_at",
)


def as_list(value: Any) -> List[Any]:
    """Stored array column; JSON-encoded arrays are parsed, anything else is empty"""
    if isinstance(value, list):
        return value
    if isinstance(value, str) and value:
        try:
            parsed = json.loads(value)
        except ValueError:
            return []
        return parsed if isinstance(parsed, list) else []
    return []


def decode_program(raw: Any) -> Program:
    """Decode a program row; every field has a fallback"""
    row = as_mapping(raw)
    return Program(
        id=as_string(row.get("id")),
        provider_id=row.get("provider_id"),
        name=as_string(row.get("name")),
        category=as_optional_string(row.get("category")),
        description=as_optional_string(row.get("description")),
        requirements=[decode_requirement(item) for item in as_list(row.get("requirements"))],
        rules=[decode_rule_item(item) for item in as_list(row.get("rules"))],
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def compose_training_notes(
    rules_for_generator: Optional[str],
    numbered_notes: Optional[List[str]]
) -> Optional[str]:
    parts = [
        f"Generator guidance: {rules_for_generator}" if rules_for_generator else None,
        "\n".join(numbered_notes) if isinstance(numbered_notes, list) else None,
    ]
    parts = [part for part in parts if part]
    return "\n\n".join(parts) if parts else None


class ProgramService:
    """Program definitions keyed by string identity"""

    def __init__(self, store: MongoStore):
        self.store = store
        self._programs: List[Program] = []
        self._flight = SingleFlight()
        self._latest_key: Any = None
        self.last_error: Optional[str] = None

    @property
    def programs(self) -> Tuple[Program, ...]:
        return tuple(self._programs)

    @property
    def loading(self) -> bool:
        return self._flight.any_busy

    async def fetch_programs(self) -> List[Program]:
        """Load every program, newest first"""
        self._latest_key = "all"
        return await self._flight.run("all", lambda: self._fetch("all", {}))

    async def fetch_programs_by_provider(self, provider_id: Identity) -> List[Program]:
        """Load the programs of one provider, newest first"""
        key = ("provider", str(provider_id))
        self._latest_key = key
        return await self._flight.run(key, lambda: self._fetch(key, {"provider_id": coerce_identity(provider_id)}))

    async def _fetch(self, key: Any, filters: Dict[str, Any]) -> List[Program]:
        try:
            rows = await self.store.select(
                PROGRAMS_TABLE, filters, order_by="created_at", descending=True, fields=PROGRAM_FIELDS
            )
        except StorageError as e:
            logger.error(f"Failed to fetch programs: {e}")
            if key == self._latest_key:
                self.last_error = e.message
                self._programs = []
            return []
        programs = [decode_program(row) for row in rows]
        # Only the most recently requested load replaces the cache
        if key == self._latest_key:
            self._programs = programs
            self.last_error = None
        return list(programs)

    async def get_program(self, program_id: Identity) -> Optional[Program]:
        try:
            row = await self.store.select_one(
                PROGRAMS_TABLE, {"id": coerce_identity(program_id)}, fields=PROGRAM_FIELDS
            )
        except StorageError as e:
            logger.error(f"Failed to get program {program_id}: {e}")
            return None
        return decode_program(row) if row else None

    def clear_programs(self):
        self._programs = []

    async def create_program(self, payload: ProgramInput) -> str:
        """Insert a program and return its identity"""
        try:
            rows = await self.store.insert(PROGRAMS_TABLE, [payload.to_stored()])
        except StorageError as e:
            raise ProgramError(f"Failed to create program: {e.message}") from e
        program_id = as_string(rows[0].get("id"))
        logger.info(f"Program created: {program_id}")
        return program_id

    async def update_program(self, program_id: Identity, payload: ProgramInput) -> bool:
        """Replace a program's fields, returns whether a row changed"""
        values = payload.to_stored()
        values.setdefault("updated_at", get_current_utc_time())
        try:
            modified = await self.store.update(PROGRAMS_TABLE, values, {"id": coerce_identity(program_id)})
        except StorageError as e:
            raise ProgramError(f"Failed to update program: {e.message}") from e
        return modified > 0

    async def delete_program(self, program_id: Identity, provider_id: Optional[Identity] = None) -> bool:
        """
        Delete a program; when provider_id is given only that provider's
        program matches, so one provider cannot delete another's program
        """
        filters: Dict[str, Any] = {"id": coerce_identity(program_id)}
        if provider_id is not None:
            filters["provider_id"] = coerce_identity(provider_id)
        try:
            deleted = await self.store.delete(PROGRAMS_TABLE, filters)
        except StorageError as e:
            raise ProgramError(f"Failed to delete program: {e.message}") from e
        key = str(program_id)
        if deleted:
            self._programs = [program for program in self._programs if program.id != key]
        return deleted > 0

    async def save_training_result(self, result: TrainingResultInput) -> str:
        """Record the outcome of a model training run for a program"""
        row = {
            "program_id": coerce_identity(result.program_id),
            "accuracy": result.accuracy,
            "features": result.feature_schema,
            "rules_summary": result.rules_text,
            "notes": compose_training_notes(result.rules_for_generator, result.numbered_notes),
            "model_path": result.file_path,
            "csv_path": result.csv_path,
        }
        try:
            rows = await self.store.insert(TRAINING_RESULTS_TABLE, [row])
        except StorageError as e:
            raise ProgramError(f"Failed to save training result: {e.message}") from e
        return as_string(rows[0].get("id"))

    async def fetch_latest_training_result(self, program_id: Identity) -> Optional[TrainingResult]:
        """Newest training result of a program, None if it was never trained"""
        try:
            row: Optional[Mapping[str, Any]] = await self.store.select_one(
                TRAINING_RESULTS_TABLE,
                {"program_id": coerce_identity(program_id)},
                order_by="created_at",
                descending=True
            )
        except StorageError as e:
            raise ProgramError(f"Failed to fetch training result: {e.message}") from e
        return TrainingResult(**row) if row else None
