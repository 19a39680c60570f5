"""
Workflow automation models.

WHAT: Local record of an n8n workflow deployed for an organization.

WHY: The n8n instance is the source of truth for execution, but the
platform keeps its own copy of each workflow's nodes and settings:
1. Maps our stable UUID reference to the id inside n8n (workflow_id)
2. Caches the configuration pushed to n8n (system message, settings)
3. Mirrors activation status for dashboards without calling n8n

HOW: Uses SQLAlchemy 2.0 with:
- Enum for status
- JSON for nodes / workflow_data / settings
"""

from datetime import datetime
from enum import Enum
from typing import Optional, TYPE_CHECKING

from sqlalchemy import (
    Integer,
    String,
    Text,
    Boolean,
    DateTime,
    ForeignKey,
    Enum as SQLEnum,
    JSON,
)
from sqlalchemy.orm import relationship, Mapped, mapped_column
from sqlalchemy.sql import func

from app.models.base import Base, generate_uuid

if TYPE_CHECKING:
    from app.models.organization import Organization


class N8nWorkflowStatus(str, Enum):
    """
    Mirrored activation status of an n8n workflow.

    - INACTIVE: Deployed but not accepting triggers
    - ACTIVE: Activated in n8n
    - ERROR: Last activation attempt failed
    """

    INACTIVE = "inactive"
    ACTIVE = "active"
    ERROR = "error"


class N8nWorkflow(Base):
    """
    Local cache of an n8n workflow definition.

    nodes and workflow_data["nodes"] both hold the node list; older records
    were imported with only one of them populated, so configuration writes
    update both.
    """

    __tablename__ = "n8n_workflows"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    org_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("organizations.id"), nullable=False, index=True
    )

    # Identifier inside the n8n instance
    workflow_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[N8nWorkflowStatus] = mapped_column(
        SQLEnum(N8nWorkflowStatus), default=N8nWorkflowStatus.INACTIVE, nullable=False
    )
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=False)

    nodes: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    workflow_data: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    settings: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, onupdate=func.now(), nullable=True
    )

    organization: Mapped["Organization"] = relationship(
        "Organization", back_populates="n8n_workflows"
    )

    def __repr__(self) -> str:
        return f"<N8nWorkflow(id={self.id}, workflow_id='{self.workflow_id}', status={self.status})>"
