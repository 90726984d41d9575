"""SQLModel-backed workflow repository for SQLite and PostgreSQL."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, List

from pydantic_core import to_jsonable_python
from sqlalchemy.ext.asyncio import create_async_engine
from sqlmodel import SQLModel, select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..contracts import (
    EXECUTION_UPDATABLE_FIELDS,
    WORKFLOW_UPDATABLE_FIELDS,
    Report,
    Workflow,
    WorkflowExecution,
)
from .repository import WorkflowRepository, check_fields
from .tables import ExecutionRow, ReportRow, WorkflowRow

logger = logging.getLogger(__name__)

_JSON_COLUMNS = frozenset({"results", "output", "steps", "sections", "source_data", "input"})


def async_database_url(database_url: str) -> str:
    """Rewrite a plain database URL to use an async driver."""
    if database_url.startswith("sqlite:///"):
        return database_url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    if database_url.startswith("postgres://"):
        return database_url.replace("postgres://", "postgresql+asyncpg://", 1)
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return database_url


def _to_column(name: str, value: Any) -> Any:
    if name in _JSON_COLUMNS:
        return to_jsonable_python(value, by_alias=True)
    return value


class SQLWorkflowRepository(WorkflowRepository):
    """Persist workflows, execution rows and reports through SQLAlchemy."""

    def __init__(self, database_url: str) -> None:
        url = async_database_url(database_url)
        connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
        self.engine = create_async_engine(
            url, echo=False, future=True, connect_args=connect_args
        )
        self._initialized = False

    async def init_db(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
        self._initialized = True

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        if not self._initialized:
            await self.init_db()
        async with AsyncSession(self.engine, expire_on_commit=False) as session:
            yield session

    async def close(self) -> None:
        await self.engine.dispose()

    # ------------------------------------------------------------------
    async def create_workflow(self, workflow: Workflow) -> Workflow:
        data = workflow.model_dump(exclude={"steps", "results"})
        row = WorkflowRow(
            **data,
            steps=[step.to_wire() for step in workflow.steps],
            results=_to_column("results", workflow.results),
        )
        async with self.session() as session:
            if await session.get(WorkflowRow, workflow.id) is not None:
                raise ValueError(f"Workflow {workflow.id} already exists")
            session.add(row)
            await session.commit()
        logger.debug(f"Stored workflow {workflow.id}")
        return workflow

    async def load_workflow(self, workflow_id: str) -> Workflow | None:
        async with self.session() as session:
            row = await session.get(WorkflowRow, workflow_id)
            if row is None:
                return None
            return Workflow.model_validate(row.model_dump())

    async def update_workflow(self, workflow_id: str, **fields: Any) -> None:
        check_fields(fields, WORKFLOW_UPDATABLE_FIELDS, "workflow")
        async with self.session() as session:
            row = await session.get(WorkflowRow, workflow_id)
            if row is None:
                return
            for name, value in fields.items():
                setattr(row, name, _to_column(name, value))
            session.add(row)
            await session.commit()

    async def list_workflows(self) -> List[Workflow]:
        async with self.session() as session:
            rows = (
                await session.exec(select(WorkflowRow).order_by(WorkflowRow.created_at))
            ).all()
            return [Workflow.model_validate(row.model_dump()) for row in rows]

    # ------------------------------------------------------------------
    async def create_execution(
        self,
        workflow_id: str,
        step_index: int,
        step_type: str,
        step_title: str,
        input: dict,
    ) -> str:
        execution = WorkflowExecution(
            workflow_id=workflow_id,
            step_index=step_index,
            step_type=step_type,
            step_title=step_title,
            input=dict(input),
        )
        data = execution.model_dump(exclude={"input", "output"})
        row = ExecutionRow(**data, input=_to_column("input", execution.input))
        async with self.session() as session:
            session.add(row)
            await session.commit()
        return execution.id

    async def update_execution(self, execution_id: str, **fields: Any) -> None:
        check_fields(fields, EXECUTION_UPDATABLE_FIELDS, "execution")
        async with self.session() as session:
            row = (
                await session.exec(select(ExecutionRow).where(ExecutionRow.id == execution_id))
            ).first()
            if row is None:
                return
            for name, value in fields.items():
                setattr(row, name, _to_column(name, value))
            session.add(row)
            await session.commit()

    async def list_executions(self, workflow_id: str) -> List[WorkflowExecution]:
        async with self.session() as session:
            rows = (
                await session.exec(
                    select(ExecutionRow)
                    .where(ExecutionRow.workflow_id == workflow_id)
                    .order_by(ExecutionRow.seq)
                )
            ).all()
            return [
                WorkflowExecution.model_validate(row.model_dump(exclude={"seq"}))
                for row in rows
            ]

    # ------------------------------------------------------------------
    async def create_report(self, report: Report) -> Report:
        data = report.model_dump(exclude={"sections", "source_data"})
        row = ReportRow(
            **data,
            sections=[section.to_wire() for section in report.sections],
            source_data=_to_column("source_data", report.source_data),
        )
        async with self.session() as session:
            session.add(row)
            await session.commit()
        return report

    async def find_report_by_workflow(self, workflow_id: str) -> Report | None:
        async with self.session() as session:
            row = (
                await session.exec(
                    select(ReportRow)
                    .where(ReportRow.workflow_id == workflow_id)
                    .order_by(ReportRow.created_at)
                )
            ).first()
            return Report.model_validate(row.model_dump()) if row else None

    async def get_report(self, report_id: str) -> Report | None:
        async with self.session() as session:
            row = await session.get(ReportRow, report_id)
            return Report.model_validate(row.model_dump()) if row else None
