from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, Column, DateTime
from sqlmodel import Field, SQLModel


class WorkflowRow(SQLModel, table=True):
    """Stored workflow: plan plus run state."""

    __tablename__ = "workflows"

    id: str = Field(primary_key=True)
    user_id: Optional[str] = Field(default=None, index=True)
    query: str
    title: str = ""
    description: str = ""
    sources: list = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    depth: str = "standard"
    output_format: str = "summary"
    steps: list = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    template_id: Optional[str] = None
    status: str = Field(default="pending")
    current_step: int = 0
    results: list = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    error_message: Optional[str] = None
    failed_step: Optional[int] = None
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    completed_at: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime(timezone=True))
    )
    report_id: Optional[str] = None


class ExecutionRow(SQLModel, table=True):
    """One attempt at running a workflow step."""

    __tablename__ = "workflow_executions"

    seq: Optional[int] = Field(default=None, primary_key=True)
    id: str = Field(index=True, unique=True)
    workflow_id: str = Field(foreign_key="workflows.id", index=True)
    step_index: int
    step_type: str
    step_title: str = ""
    input: dict = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    output: Any = Field(default=None, sa_column=Column(JSON))
    status: str = Field(default="running")
    error: Optional[str] = None
    duration_ms: Optional[int] = None
    started_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    completed_at: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime(timezone=True))
    )


class ReportRow(SQLModel, table=True):
    """Synthesized report."""

    __tablename__ = "reports"

    id: str = Field(primary_key=True)
    user_id: Optional[str] = Field(default=None, index=True)
    title: str
    summary: str
    sections: list = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    format: str = "summary"
    source_data: dict = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    workflow_id: Optional[str] = Field(default=None, index=True)
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
