"""Application context: storage handles, connectors, and telemetry built once per process.

Components receive what they need from the context explicitly; nothing here is
a module-level singleton.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from config import Settings
from connectors import build_connectors
from connectors.base import Connectors
from evals.recorder import EvaluationRecorder
from events.planning import PlanningEnvironment
from events.store import EventStore
from execution.executor import PlanExecutor
from execution.store import RunStore
from llm import LLMClient
from observability.artifacts import ArtifactRegistry
from observability.evidence import EvidenceLedger
from observability.telemetry import Telemetry
from plan.planner import LitellmPlanner
from services.database import create_db_engine, create_session_factory, init_db
from verification.service import Verifier

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Everything one process needs to run the pipeline."""

    settings: Settings
    engine: Engine
    session_factory: sessionmaker[Session]
    connectors: Connectors
    telemetry: Telemetry
    events: EventStore = field(init=False)
    runs: RunStore = field(init=False)
    evidence: EvidenceLedger = field(init=False)
    artifacts: ArtifactRegistry = field(init=False)
    verifier: Verifier = field(init=False)
    recorder: EvaluationRecorder = field(init=False)

    def __post_init__(self) -> None:
        self.events = EventStore(self.session_factory, self.planning_environment)
        self.runs = RunStore(self.session_factory)
        self.evidence = EvidenceLedger(self.session_factory)
        self.artifacts = ArtifactRegistry(self.settings.artifacts.dir, self.evidence)
        self.verifier = Verifier(self.session_factory, metrics=self.telemetry.metrics)
        self.recorder = EvaluationRecorder(
            self.settings.evals.dir,
            self.events,
            metrics=self.telemetry.metrics,
        )

    def planning_environment(self) -> PlanningEnvironment:
        """Return the capabilities and defaults the planner may rely on."""
        return PlanningEnvironment(
            capabilities=tuple(self.connectors.capabilities()),
            defaults=self.settings.environment_defaults(),
        )

    def executor(self, *, dry_run: bool | None = None) -> PlanExecutor:
        """Build a plan executor, optionally overriding the configured dry-run flag."""
        executor_settings = self.settings
        if dry_run is not None:
            execution = self.settings.execution.model_copy(update={"dry_run": dry_run})
            executor_settings = self.settings.model_copy(update={"execution": execution})
        return PlanExecutor.from_settings(
            executor_settings,
            self.connectors,
            self.runs,
            metrics=self.telemetry.metrics,
        )

    def planner(self) -> LitellmPlanner:
        """Build the LLM planner from settings."""
        return LitellmPlanner(LLMClient(self.settings.llm, self.settings.anthropic_api_key))

    def close(self) -> None:
        """Flush telemetry and release database connections."""
        self.telemetry.shutdown()
        self.engine.dispose()


def build_app_context(
    settings: Settings,
    *,
    connectors: Connectors | None = None,
    telemetry: Telemetry | None = None,
) -> AppContext:
    """Create the engine, apply the schema, and wire every component."""
    engine = create_db_engine(settings.database.url)
    init_db(engine)
    context = AppContext(
        settings=settings,
        engine=engine,
        session_factory=create_session_factory(engine),
        connectors=connectors if connectors is not None else build_connectors(settings),
        telemetry=telemetry or Telemetry.from_config(settings.observability),
    )
    logger.info(
        "Application context ready: database=%s capabilities=%s",
        engine.url.render_as_string(hide_password=True),
        ",".join(context.connectors.capabilities()) or "none",
    )
    return context
