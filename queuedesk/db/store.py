"""Persistence collaborators that load and flush the dispatch state."""

from __future__ import annotations

import logging
from typing import Protocol

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel, select

from queuedesk.db.models import CategoryTable, ClientTable, StaffTable, StationTable, TicketTable
from queuedesk.dispatch.models import Administrator, Category, Client, Employee, StaffMember, Station, Ticket
from queuedesk.dispatch.queue import CategoryQueue
from queuedesk.dispatch.registry import DispatchState, StationRoster
from queuedesk.dispatch.state import EmployeeAvailability, StaffKind, StationStatus, TicketStatus
from queuedesk.dispatch.timeutils import ensure_aware

logger = logging.getLogger(__name__)


class PersistenceError(RuntimeError):
    """Raised when the store cannot load or durably write the state."""


class DispatchStore(Protocol):
    async def load(self) -> DispatchState:
        ...

    async def flush(self, state: DispatchState) -> None:
        ...


class InMemoryDispatchStore:
    """Keeps the state in process; flushing only counts calls."""

    def __init__(self, state: DispatchState | None = None) -> None:
        self._state = state or DispatchState()
        self.flush_count = 0

    async def load(self) -> DispatchState:
        self._state.resolve_references()
        return self._state

    async def flush(self, state: DispatchState) -> None:
        self._state = state
        self.flush_count += 1


class SqlDispatchStore:
    """Mirror the dispatch state into SQL tables through SQLModel."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        engine: AsyncEngine | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._engine: AsyncEngine | None = engine

    @classmethod
    def from_url(cls, database_url: str, **engine_kwargs: object) -> "SqlDispatchStore":
        engine = create_async_engine(database_url, **engine_kwargs)
        return cls(async_sessionmaker(engine, expire_on_commit=False), engine=engine)

    async def ensure_schema(self) -> None:
        if self._engine is None:
            raise RuntimeError("Session factory is not bound to an async engine")
        try:
            async with self._engine.begin() as connection:
                await connection.run_sync(SQLModel.metadata.create_all)
        except SQLAlchemyError as exc:
            raise PersistenceError("Could not create the dispatch schema") from exc

    async def dispose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()

    async def load(self) -> DispatchState:
        try:
            async with self._session_factory() as session:
                categories = (await session.execute(select(CategoryTable))).scalars().all()
                stations = (await session.execute(select(StationTable))).scalars().all()
                staff = (await session.execute(select(StaffTable))).scalars().all()
                clients = (await session.execute(select(ClientTable))).scalars().all()
                tickets = (
                    await session.execute(select(TicketTable).order_by(TicketTable.generated_at.asc()))
                ).scalars().all()
        except SQLAlchemyError as exc:
            logger.exception("Loading the dispatch state failed")
            raise PersistenceError("Could not load the dispatch state") from exc

        state = DispatchState(
            categories={row.id: self._table_to_category(row) for row in categories},
            stations={row.id: self._table_to_station(row) for row in stations},
            staff={row.id: self._table_to_staff(row) for row in staff},
            clients={row.id: Client(id=row.id, name=row.name, contact=row.contact) for row in clients},
            tickets={row.code: self._table_to_ticket(row) for row in tickets},
            roster=StationRoster({row.id: row.employee_id for row in stations if row.employee_id}),
        )
        state.resolve_references()
        logger.info(
            "Loaded %s categories, %s stations, %s staff, %s tickets",
            len(state.categories),
            len(state.stations),
            len(state.staff),
            len(state.tickets),
        )
        return state

    async def flush(self, state: DispatchState) -> None:
        # rows are built before the first await so concurrent operations cannot tear the snapshot
        bindings = state.roster.bindings()
        rows: list[SQLModel] = []
        rows.extend(self._category_to_table(category) for category in list(state.categories.values()))
        rows.extend(self._station_to_table(station, bindings.get(station.id)) for station in list(state.stations.values()))
        staff = list(state.staff.values())
        rows.extend(self._staff_to_table(member) for member in staff)
        rows.extend(
            ClientTable(id=client.id, name=client.name, contact=client.contact) for client in list(state.clients.values())
        )
        rows.extend(self._ticket_to_table(ticket) for ticket in list(state.tickets.values()))
        staff_ids = [member.id for member in staff]

        try:
            async with self._session_factory() as session:
                async with session.begin():
                    await session.execute(delete(StaffTable).where(StaffTable.id.not_in(staff_ids)))
                    for row in rows:
                        await session.merge(row)
        except SQLAlchemyError as exc:
            logger.exception("Flushing the dispatch state failed")
            raise PersistenceError("Could not persist the dispatch state") from exc
        logger.debug("Flushed %s rows", len(rows))

    @staticmethod
    def _table_to_category(row: CategoryTable) -> Category:
        return Category(
            id=row.id,
            name=row.name,
            prefix=row.prefix,
            description=row.description or "",
            queue=CategoryQueue(active=row.active),
            employee_ids=list(row.employee_ids or []),
            next_sequence=row.next_sequence,
        )

    @staticmethod
    def _table_to_station(row: StationTable) -> Station:
        return Station(
            id=row.id,
            number=row.number,
            status=StationStatus(row.status),
            category_ids=[int(value) for value in row.category_ids or []],
        )

    @staticmethod
    def _table_to_staff(row: StaffTable) -> StaffMember:
        kind = StaffKind(row.kind)
        if kind is StaffKind.ADMINISTRATOR:
            return Administrator(
                id=row.id,
                name=row.name,
                password_hash=row.password_hash,
                access_level=row.access_level or 1,
            )
        return Employee(
            id=row.id,
            name=row.name,
            password_hash=row.password_hash,
            availability=EmployeeAvailability(row.availability or EmployeeAvailability.OFFLINE.value),
            current_ticket=row.current_ticket,
            completed_tickets=list(row.completed_tickets or []),
        )

    @staticmethod
    def _table_to_ticket(row: TicketTable) -> Ticket:
        return Ticket(
            code=row.code,
            category_id=row.category_id,
            client_id=row.client_id,
            generated_at=ensure_aware(row.generated_at),
            status=TicketStatus(row.status),
            attended_at=ensure_aware(row.attended_at) if row.attended_at else None,
            completed_at=ensure_aware(row.completed_at) if row.completed_at else None,
            served_by=row.served_by,
            station_number=row.station_number,
        )

    @staticmethod
    def _category_to_table(category: Category) -> CategoryTable:
        return CategoryTable(
            id=category.id,
            name=category.name,
            prefix=category.prefix,
            description=category.description,
            active=category.active,
            next_sequence=category.next_sequence,
            employee_ids=list(category.employee_ids),
        )

    @staticmethod
    def _station_to_table(station: Station, employee_id: str | None) -> StationTable:
        return StationTable(
            id=station.id,
            number=station.number,
            status=station.status.value,
            category_ids=list(station.category_ids),
            employee_id=employee_id,
        )

    @staticmethod
    def _staff_to_table(member: StaffMember) -> StaffTable:
        if isinstance(member, Administrator):
            return StaffTable(
                id=member.id,
                kind=member.kind.value,
                name=member.name,
                password_hash=member.password_hash,
                access_level=member.access_level,
                completed_tickets=[],
            )
        return StaffTable(
            id=member.id,
            kind=member.kind.value,
            name=member.name,
            password_hash=member.password_hash,
            availability=member.availability.value,
            current_ticket=member.current_ticket,
            completed_tickets=list(member.completed_tickets),
        )

    @staticmethod
    def _ticket_to_table(ticket: Ticket) -> TicketTable:
        return TicketTable(
            code=ticket.code,
            category_id=ticket.category_id,
            client_id=ticket.client_id,
            status=ticket.status.value,
            generated_at=ticket.generated_at,
            attended_at=ticket.attended_at,
            completed_at=ticket.completed_at,
            served_by=ticket.served_by,
            station_number=ticket.station_number,
        )
