"""
SQLAlchemy Database Models for the Program Generator

Provides persistent storage for:
- The exercise catalog
- Client questionnaire profiles
- Generated programs and their per-day exercise lines
- Generation logs (status, tokens, duration, errors)

The orchestrator talks to storage only through the ProgramRepository
protocol; SqlProgramRepository is the default implementation.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol, Sequence

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    create_engine,
    select,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, relationship, sessionmaker
from sqlalchemy.pool import StaticPool

from programgen.exceptions import PersistenceError
from programgen.plan_schemas import FlattenedProgramExercise, ProgramDraft
from programgen.schemas import CatalogExercise, ClientProfile

logger = logging.getLogger(__name__)

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class ExerciseRecord(Base):
    """
    Catalog exercise.

    List-valued fields (category, muscles, equipment) are stored as JSON.
    Inactive exercises stay in the table for history but are never offered
    to the pipeline.
    """

    __tablename__ = "exercises"

    id = Column(String, primary_key=True, default=_new_id)
    name = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=True)
    instructions = Column(Text, nullable=True)
    category = Column(JSON, nullable=False, default=list)
    difficulty = Column(String, nullable=False, default="beginner")
    muscle_group = Column(String, nullable=True)
    movement_pattern = Column(String, nullable=True)
    primary_muscles = Column(JSON, nullable=False, default=list)
    secondary_muscles = Column(JSON, nullable=False, default=list)
    force_type = Column(String, nullable=True)
    laterality = Column(String, nullable=True)
    equipment_required = Column(JSON, nullable=False, default=list)
    is_bodyweight = Column(Boolean, nullable=False, default=False)
    is_compound = Column(Boolean, nullable=False, default=False)
    video_url = Column(String, nullable=True)
    thumbnail_url = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    def __repr__(self):
        return f"<ExerciseRecord(id='{self.id}', name='{self.name}', active={self.is_active})>"

    def to_schema(self) -> CatalogExercise:
        return CatalogExercise(
            id=self.id,
            name=self.name,
            description=self.description,
            instructions=self.instructions,
            category=self.category or [],
            difficulty=self.difficulty,
            muscle_group=self.muscle_group,
            movement_pattern=self.movement_pattern,
            primary_muscles=self.primary_muscles or [],
            secondary_muscles=self.secondary_muscles or [],
            force_type=self.force_type,
            laterality=self.laterality,
            equipment_required=self.equipment_required or [],
            is_bodyweight=self.is_bodyweight,
            is_compound=self.is_compound,
            video_url=self.video_url,
            thumbnail_url=self.thumbnail_url,
            is_active=self.is_active,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class ClientProfileRecord(Base):
    """
    Client questionnaire answers.

    Attributes:
        id: Primary key
        client_id: Client identifier (unique)
        display_name: Name used in program titles
        profile_data: Full ClientProfile as JSON
        updated_at: Last questionnaire update
    """

    __tablename__ = "client_profiles"

    id = Column(Integer, primary_key=True)
    client_id = Column(String, unique=True, nullable=False, index=True)
    display_name = Column(String, nullable=True)
    profile_data = Column(JSON, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    def __repr__(self):
        return f"<ClientProfileRecord(client_id='{self.client_id}')>"


class ProgramRecord(Base):
    """
    A generated program.

    Attributes:
        id: Primary key (UUID string)
        name: Display name, e.g. "AI: muscle gain for Sam Lee"
        category: ProgramCategory value
        difficulty: ProgramDifficulty value
        ai_generation_params: Request, analysis summary, validation counts and token usage
        is_active: Whether the program is offered to clients
        created_by: User who requested the generation
    """

    __tablename__ = "programs"

    id = Column(String, primary_key=True, default=_new_id)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String, nullable=False)
    difficulty = Column(String, nullable=False)
    duration_weeks = Column(Integer, nullable=False)
    sessions_per_week = Column(Integer, nullable=False)
    split_type = Column(String, nullable=True)
    periodization = Column(String, nullable=True)
    is_ai_generated = Column(Boolean, nullable=False, default=False)
    ai_generation_params = Column(JSON, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_by = Column(String, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    # Relationships
    exercises = relationship("ProgramExerciseRecord", back_populates="program", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<ProgramRecord(id='{self.id}', name='{self.name}', weeks={self.duration_weeks})>"


class ProgramExerciseRecord(Base):
    """One exercise line on one training day of a program."""

    __tablename__ = "program_exercises"

    id = Column(Integer, primary_key=True)
    program_id = Column(String, ForeignKey("programs.id"), nullable=False, index=True)
    exercise_id = Column(String, ForeignKey("exercises.id"), nullable=False, index=True)
    week_number = Column(Integer, nullable=False)
    day_of_week = Column(Integer, nullable=False)
    order_index = Column(Integer, nullable=False)
    sets = Column(Integer, nullable=False)
    reps = Column(String, nullable=False)
    duration_seconds = Column(Integer, nullable=True)
    rest_seconds = Column(Integer, nullable=False)
    rpe_target = Column(Float, nullable=True)
    intensity_pct = Column(Float, nullable=True)
    tempo = Column(String, nullable=True)
    group_tag = Column(String, nullable=True)
    technique = Column(String, nullable=False, default="straight_set")
    notes = Column(Text, nullable=True)

    # Relationships
    program = relationship("ProgramRecord", back_populates="exercises")

    def __repr__(self):
        return (
            f"<ProgramExerciseRecord(week={self.week_number}, day={self.day_of_week}, "
            f"order={self.order_index}, exercise='{self.exercise_id}')>"
        )


class GenerationLogRecord(Base):
    """
    Audit row for one generation request.

    status moves from 'generating' to 'completed' or 'failed'.
    """

    __tablename__ = "ai_generation_logs"

    id = Column(String, primary_key=True, default=_new_id)
    program_id = Column(String, ForeignKey("programs.id"), nullable=True)
    client_id = Column(String, nullable=False, index=True)
    requested_by = Column(String, nullable=False)
    status = Column(String, nullable=False, default="generating", index=True)
    input_params = Column(JSON, nullable=True)
    output_summary = Column(JSON, nullable=True)
    error_message = Column(Text, nullable=True)
    model_used = Column(String, nullable=True)
    tokens_used = Column(Integer, nullable=True)
    duration_ms = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    completed_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<GenerationLogRecord(id='{self.id}', status='{self.status}')>"


# Database connection and session management

def get_engine(database_url: str = "sqlite:///program_generator.db"):
    """
    Create SQLAlchemy engine.

    SQLite connections are shared across threads; in-memory SQLite uses a
    single static connection so every session sees the same database.

    Args:
        database_url: Database connection string (default: SQLite file)

    Returns:
        SQLAlchemy Engine instance
    """
    if database_url.startswith("sqlite"):
        kwargs: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, echo=False, **kwargs)
    return create_engine(database_url, echo=False)


def get_session_factory(engine):
    """
    Create session factory.

    Args:
        engine: SQLAlchemy Engine instance

    Returns:
        Session factory (sessionmaker)
    """
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


def init_database(database_url: str = "sqlite:///program_generator.db"):
    """
    Initialize database and create all tables.

    Args:
        database_url: Database connection string

    Returns:
        Session factory bound to the initialized database
    """
    engine = get_engine(database_url)
    Base.metadata.create_all(engine)
    return get_session_factory(engine)


# ============================================================================
# Repository
# ============================================================================

class ProgramRepository(Protocol):
    """Storage operations the orchestrator needs."""

    async def get_active_exercises(self) -> List[CatalogExercise]:
        ...

    async def get_client_profile(self, client_id: str) -> Optional[ClientProfile]:
        ...

    async def get_available_equipment(self, client_id: str) -> List[str]:
        ...

    async def create_program_with_exercises(
        self, draft: ProgramDraft, exercises: Sequence[FlattenedProgramExercise]
    ) -> str:
        ...

    async def create_generation_log(
        self, client_id: str, requested_by: str, input_params: Dict[str, Any], model_used: str
    ) -> str:
        ...

    async def update_generation_log(self, log_id: str, **fields: Any) -> None:
        ...


class SqlProgramRepository:
    """
    ProgramRepository backed by SQLAlchemy.

    Blocking session work runs in a worker thread so it never stalls the
    event loop that drives concurrent generations.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @classmethod
    def from_url(cls, database_url: str) -> "SqlProgramRepository":
        """Create tables if needed and return a repository bound to them."""
        return cls(init_database(database_url))

    # --- Reads -------------------------------------------------------------

    def _get_active_exercises(self) -> List[CatalogExercise]:
        with self.session_factory() as session:
            rows = session.scalars(
                select(ExerciseRecord).where(ExerciseRecord.is_active.is_(True)).order_by(ExerciseRecord.name)
            ).all()
            return [row.to_schema() for row in rows]

    async def get_active_exercises(self) -> List[CatalogExercise]:
        return await asyncio.to_thread(self._get_active_exercises)

    def _get_client_profile(self, client_id: str) -> Optional[ClientProfile]:
        with self.session_factory() as session:
            row = session.scalar(select(ClientProfileRecord).where(ClientProfileRecord.client_id == client_id))
            if row is None:
                return None
            data = dict(row.profile_data)
            data["client_id"] = row.client_id
            data.setdefault("display_name", row.display_name)
            return ClientProfile.model_validate(data)

    async def get_client_profile(self, client_id: str) -> Optional[ClientProfile]:
        return await asyncio.to_thread(self._get_client_profile, client_id)

    async def get_available_equipment(self, client_id: str) -> List[str]:
        profile = await self.get_client_profile(client_id)
        return list(profile.available_equipment) if profile else []

    # --- Writes ------------------------------------------------------------

    def _create_program_with_exercises(
        self, draft: ProgramDraft, exercises: Sequence[FlattenedProgramExercise]
    ) -> str:
        with self.session_factory() as session:
            try:
                program = ProgramRecord(
                    name=draft.name,
                    description=draft.description,
                    category=draft.category.value,
                    difficulty=draft.difficulty.value,
                    duration_weeks=draft.duration_weeks,
                    sessions_per_week=draft.sessions_per_week,
                    split_type=draft.split_type.value,
                    periodization=draft.periodization.value,
                    is_ai_generated=True,
                    ai_generation_params=draft.ai_generation_params,
                    is_active=True,
                    created_by=draft.created_by,
                )
                session.add(program)
                session.flush()

                for line in exercises:
                    session.add(
                        ProgramExerciseRecord(
                            program_id=program.id,
                            exercise_id=line.exercise_id,
                            week_number=line.week_number,
                            day_of_week=line.day_of_week,
                            order_index=line.order_index,
                            sets=line.sets,
                            reps=line.reps,
                            rest_seconds=line.rest_seconds,
                            rpe_target=line.rpe_target,
                            tempo=line.tempo,
                            group_tag=line.group_tag,
                            technique=line.technique.value,
                            notes=line.notes,
                        )
                    )
                session.commit()
                return program.id
            except SQLAlchemyError as e:
                session.rollback()
                raise PersistenceError(f"Failed to save program '{draft.name}': {e}") from e

    async def create_program_with_exercises(
        self, draft: ProgramDraft, exercises: Sequence[FlattenedProgramExercise]
    ) -> str:
        """
        Save a program and all its exercise lines in one transaction.

        Raises:
            PersistenceError: If anything fails; nothing is left behind
        """
        return await asyncio.to_thread(self._create_program_with_exercises, draft, list(exercises))

    def _create_generation_log(
        self, client_id: str, requested_by: str, input_params: Dict[str, Any], model_used: str
    ) -> str:
        with self.session_factory() as session:
            log = GenerationLogRecord(
                client_id=client_id,
                requested_by=requested_by,
                status="generating",
                input_params=input_params,
                model_used=model_used,
            )
            session.add(log)
            session.commit()
            return log.id

    async def create_generation_log(
        self, client_id: str, requested_by: str, input_params: Dict[str, Any], model_used: str
    ) -> str:
        return await asyncio.to_thread(self._create_generation_log, client_id, requested_by, input_params, model_used)

    def _update_generation_log(self, log_id: str, fields: Dict[str, Any]) -> None:
        with self.session_factory() as session:
            log = session.get(GenerationLogRecord, log_id)
            if log is None:
                logger.warning("Generation log %s not found", log_id)
                return
            for key, value in fields.items():
                setattr(log, key, value)
            if fields.get("status") in ("completed", "failed") and log.completed_at is None:
                log.completed_at = _utcnow()
            session.commit()

    async def update_generation_log(self, log_id: str, **fields: Any) -> None:
        await asyncio.to_thread(self._update_generation_log, log_id, fields)

    # --- Catalog / profile maintenance --------------------------------------

    def add_exercises(self, exercises: Sequence[CatalogExercise]) -> int:
        """Insert or replace catalog exercises. Returns the number written."""
        with self.session_factory() as session:
            for ex in exercises:
                data = ex.model_dump(mode="json", exclude={"created_at", "updated_at"})
                session.merge(ExerciseRecord(**data))
            session.commit()
        return len(exercises)

    def save_client_profile(self, profile: ClientProfile) -> None:
        """Insert or update a client's questionnaire answers."""
        with self.session_factory() as session:
            row = session.scalar(
                select(ClientProfileRecord).where(ClientProfileRecord.client_id == profile.client_id)
            )
            data = profile.model_dump(mode="json", exclude={"client_id"})
            if row is None:
                row = ClientProfileRecord(client_id=profile.client_id)
                session.add(row)
            row.display_name = profile.display_name
            row.profile_data = data
            session.commit()
