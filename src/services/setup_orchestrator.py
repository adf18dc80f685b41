"""
First-run setup workflow.

Runs the same steps the setup wizard walks through, in order:

1. Relational schema
2. Vector collection
3. Sample data (optional): students, payments, tests, notes
4. Connection checks
5. Record completion in app_config

The relational store and the vector store are written independently: if the
vector step fails after the schema step succeeded, the schema is kept and the
run stops there. Re-running is safe because every step is idempotent except
sample data, which appends rows.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from src.config import Settings
from src.models.setup_config import DatabaseConfig
from src.services.app_config_store import AppConfigStore
from src.services.connection_tester import check_databases
from src.services.errors import SetupError
from src.services.sample_data import SampleDataLoader
from src.services.schema_service import provision_schema
from src.services.vector_store import ClientFactory, VectorStoreService, create_qdrant_client

logger = logging.getLogger(__name__)


@dataclass
class StepResult:
    """Outcome of one setup step."""
    name: str
    success: bool
    message: str
    details: Optional[dict[str, Any]] = None


@dataclass
class SetupReport:
    """Outcome of a full setup run."""
    steps: list[StepResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return bool(self.steps) and all(s.success for s in self.steps)

    @property
    def failed_step(self) -> Optional[StepResult]:
        return next((s for s in self.steps if not s.success), None)


class SetupOrchestrator:
    """Sequences provisioning, seeding and verification."""

    def __init__(
        self,
        database: DatabaseConfig,
        settings: Settings,
        client_factory: ClientFactory = create_qdrant_client,
        loader_factory: Callable[[str], SampleDataLoader] = SampleDataLoader,
        include_sample_data: bool = True,
    ):
        self.database = database
        self.settings = settings
        self.client_factory = client_factory
        self.loader_factory = loader_factory
        self.include_sample_data = include_sample_data

    @property
    def connection_string(self) -> str:
        return self.database.neon.connection_string

    def run(self) -> SetupReport:
        """Run every step, stopping at the first failure."""
        report = SetupReport()

        steps: list[tuple[str, Callable[[], StepResult]]] = [
            ("schema", self._schema_step),
            ("vector_collection", self._vector_step),
        ]
        if self.include_sample_data:
            steps.append(("sample_data", self._sample_data_step))
        steps.append(("connections", self._connections_step))
        steps.append(("complete", self._complete_step))

        for name, step in steps:
            logger.info(f"Setup step: {name}")
            try:
                result = step()
            except SetupError as e:
                logger.error(f"Setup step {name} failed: {e.message} ({e.error})")
                result = StepResult(name, False, e.message, {"error": e.error} if e.error else None)

            report.steps.append(result)
            if not result.success:
                break

        return report

    def _schema_step(self) -> StepResult:
        schema = provision_schema(self.connection_string)
        return StepResult(
            "schema", True, "Database schema setup completed successfully",
            {"tables_created": schema.tables, "indexes_created": schema.indexes},
        )

    def _vector_step(self) -> StepResult:
        store = VectorStoreService.connect(self.client_factory, self.database.qdrant, self.settings)
        name = store.ensure_collection()
        return StepResult("vector_collection", True, f"Collection '{name}' is ready", {"qdrant_collection": name})

    def _sample_data_step(self) -> StepResult:
        loader = self.loader_factory(self.connection_string)
        counts = {
            "students": loader.load_students(),
            "payments": loader.load_payments(),
            "tests": loader.load_tests(),
            "notes": loader.load_notes(),
        }
        return StepResult("sample_data", True, "Sample data loaded", counts)

    def _connections_step(self) -> StepResult:
        qdrant = self.database.qdrant.model_copy(update={
            "url": self.database.qdrant.url or self.settings.qdrant_url or "",
            "api_key": self.database.qdrant.api_key or self.settings.qdrant_api_key or "",
        })
        database = self.database.model_copy(update={"qdrant": qdrant})
        summary = check_databases(database, self.client_factory)
        return StepResult("connections", summary["success"], summary["message"], summary["results"])

    def _complete_step(self) -> StepResult:
        AppConfigStore(self.connection_string).mark_setup_complete(self.settings.setup_user_id)
        return StepResult("complete", True, "Setup complete")
