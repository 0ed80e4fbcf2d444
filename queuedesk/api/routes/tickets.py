from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from queuedesk.api.schemas import (
    CategoryModel,
    ClientCreateRequest,
    ClientModel,
    DisplayModel,
    QueuePositionModel,
    TicketCreateRequest,
    TicketModel,
)
from queuedesk.dependencies.dispatch import QueueService

router = APIRouter(tags=["tickets"])


@router.post("/tickets", response_model=TicketModel, status_code=status.HTTP_201_CREATED)
async def create_ticket(payload: TicketCreateRequest, service: QueueService) -> TicketModel:
    category = service.categories.get_category(payload.category_id)
    if category is None:
        raise HTTPException(status_code=404, detail="Category not found")
    ticket = await service.create_ticket(payload.client_id, payload.category_id)
    if ticket is None:
        raise HTTPException(status_code=409, detail="Category is not accepting tickets")
    return TicketModel.from_entity(ticket, service.now())


@router.get("/tickets/{code}", response_model=TicketModel)
async def get_ticket(code: str, service: QueueService) -> TicketModel:
    ticket = service.dispatcher.get_ticket(code)
    if ticket is None:
        raise HTTPException(status_code=404, detail="Ticket not found")
    return TicketModel.from_entity(ticket, service.now())


@router.get("/tickets/{code}/position", response_model=QueuePositionModel)
async def get_queue_position(code: str, service: QueueService) -> QueuePositionModel:
    if service.dispatcher.get_ticket(code) is None:
        raise HTTPException(status_code=404, detail="Ticket not found")
    return QueuePositionModel(code=code, position=service.dispatcher.queue_position(code))


@router.post("/tickets/{code}/cancel", response_model=TicketModel)
async def cancel_ticket(code: str, service: QueueService) -> TicketModel:
    ticket = service.dispatcher.get_ticket(code)
    if ticket is None:
        raise HTTPException(status_code=404, detail="Ticket not found")
    if not await service.cancel_ticket(code):
        raise HTTPException(status_code=409, detail=f"Ticket is {ticket.status.value} and cannot be cancelled")
    return TicketModel.from_entity(ticket, service.now())


@router.get("/categories", response_model=list[CategoryModel], summary="Categories open for new tickets")
async def list_active_categories(service: QueueService) -> list[CategoryModel]:
    return [CategoryModel.from_entity(category) for category in service.categories.active_categories()]


@router.get("/categories/{category_id}/queue", response_model=list[TicketModel])
async def get_category_queue(category_id: int, service: QueueService) -> list[TicketModel]:
    waiting = service.dispatcher.waiting_tickets(category_id)
    if waiting is None:
        raise HTTPException(status_code=404, detail="Category not found")
    now = service.now()
    return [TicketModel.from_entity(ticket, now) for ticket in waiting]


@router.post("/clients", response_model=ClientModel, status_code=status.HTTP_201_CREATED)
async def register_client(payload: ClientCreateRequest, service: QueueService) -> ClientModel:
    client = await service.register_client(payload.id, payload.name, payload.contact)
    if client is None:
        raise HTTPException(status_code=409, detail="Client already registered")
    return ClientModel.from_entity(client)


@router.get("/clients/{client_id}/tickets", response_model=list[TicketModel])
async def list_client_tickets(client_id: str, service: QueueService) -> list[TicketModel]:
    now = service.now()
    return [TicketModel.from_entity(ticket, now) for ticket in service.dispatcher.tickets_for_client(client_id)]


@router.get("/display", response_model=DisplayModel, summary="Current waiting-room display")
async def get_display(service: QueueService) -> DisplayModel:
    return DisplayModel.from_snapshot(service.board.snapshot())
