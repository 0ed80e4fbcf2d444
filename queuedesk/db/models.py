"""SQLModel table definitions mirroring the dispatch state."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, JSON, String, Text
from sqlmodel import Field, SQLModel


class CategoryTable(SQLModel, table=True):
    __tablename__ = "categories"

    id: int = Field(sa_column=Column(Integer, primary_key=True, autoincrement=False))
    name: str = Field(sa_column=Column(String(255), nullable=False))
    prefix: str = Field(sa_column=Column(String(16), nullable=False, unique=True))
    description: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    active: bool = Field(default=True, sa_column=Column(Boolean, nullable=False, default=True))
    next_sequence: int = Field(default=1, sa_column=Column(Integer, nullable=False, default=1))
    employee_ids: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))


class StationTable(SQLModel, table=True):
    """Stations; ``employee_id`` is the only stored station/employee link."""

    __tablename__ = "stations"

    id: int = Field(sa_column=Column(Integer, primary_key=True, autoincrement=False))
    number: int = Field(sa_column=Column(Integer, nullable=False, unique=True))
    status: str = Field(sa_column=Column(String(20), nullable=False))
    category_ids: list[int] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    employee_id: str | None = Field(default=None, sa_column=Column(String(64), nullable=True))


class StaffTable(SQLModel, table=True):
    """Employees and administrators, told apart by ``kind``."""

    __tablename__ = "staff"

    id: str = Field(sa_column=Column(String(64), primary_key=True))
    kind: str = Field(sa_column=Column(String(20), nullable=False))
    name: str = Field(sa_column=Column(String(255), nullable=False))
    password_hash: str = Field(default="", sa_column=Column(String(255), nullable=False, default=""))
    availability: str | None = Field(default=None, sa_column=Column(String(20), nullable=True))
    current_ticket: str | None = Field(default=None, sa_column=Column(String(64), nullable=True))
    completed_tickets: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    access_level: int | None = Field(default=None, sa_column=Column(Integer, nullable=True))


class ClientTable(SQLModel, table=True):
    __tablename__ = "clients"

    id: str = Field(sa_column=Column(String(64), primary_key=True))
    name: str = Field(sa_column=Column(String(255), nullable=False))
    contact: str | None = Field(default=None, sa_column=Column(String(255), nullable=True))


class TicketTable(SQLModel, table=True):
    __tablename__ = "tickets"

    code: str = Field(sa_column=Column(String(64), primary_key=True))
    category_id: int = Field(sa_column=Column(Integer, nullable=False, index=True))
    client_id: str = Field(sa_column=Column(String(64), nullable=False, index=True))
    status: str = Field(sa_column=Column(String(20), nullable=False))
    generated_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    attended_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    completed_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    served_by: str | None = Field(default=None, sa_column=Column(String(64), nullable=True))
    station_number: int | None = Field(default=None, sa_column=Column(Integer, nullable=True))
