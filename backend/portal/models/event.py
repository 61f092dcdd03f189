from __future__ import annotations
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates
from sqlalchemy import Integer, String, Text, Boolean, Numeric, DateTime, func
from portal.models.base import Base
from portal.utils.fsm import EVENT_FSM
from portal.workflow.records import EventRecord
from portal.workflow.states import EventStatus, ALL_STATUS_VALUES, INITIAL_STATUS

Money = Numeric(12, 2, asdecimal=False)


class Event(Base):
    __tablename__ = 'events'
    STATUS_DRAFT = INITIAL_STATUS.value
    ALL_STATUSES = ALL_STATUS_VALUES
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    location: Mapped[str] = mapped_column(String(200), nullable=False)
    event_type: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    is_planned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=STATUS_DRAFT, index=True)
    creator_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    branch_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    budget: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    planned_budget: Mapped[Optional[float]] = mapped_column(Money, nullable=True)
    planned_enquiries: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    planned_orders: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    # actual_* stay NULL until recorded; 0 is a recorded value
    actual_budget: Mapped[Optional[float]] = mapped_column(Money, nullable=True)
    actual_enquiries: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    actual_orders: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    comments = relationship(
        'EventComment',
        back_populates='event',
        cascade='all, delete-orphan',
        order_by='EventComment.id',
    )

    # Every UPDATE/DELETE is guarded by the version it was read at
    __mapper_args__ = {'version_id_col': version}

    @validates('status')
    def _check_status(self, key, value):
        value = EventStatus(value).value
        current = self.status
        if current is not None and current != value:
            EVENT_FSM.assert_can_transition(current, value)
        return value

    def to_record(self) -> EventRecord:
        return EventRecord(
            id=self.id,
            status=EventStatus(self.status),
            creator_id=self.creator_id,
            branch_id=self.branch_id,
            budget=self.budget or 0,
            planned_budget=self.planned_budget,
            planned_enquiries=self.planned_enquiries,
            planned_orders=self.planned_orders,
            actual_budget=self.actual_budget,
            actual_enquiries=self.actual_enquiries,
            actual_orders=self.actual_orders,
        )

# Status flow and who may move it: portal.workflow.engine.TRANSITIONS
