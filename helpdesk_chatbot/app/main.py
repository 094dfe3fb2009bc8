import logging
from typing import List

from fastapi import Depends, FastAPI, HTTPException, status

from ..config import settings
from ..domain.catalog import ChatbotFlow
from ..domain.exceptions import InvalidFlowDefinitionError
from ..schemas.flows import FlowDraft
from ..schemas.simulation import SimulationResult
from ..schemas.stats import FlowStats
from ..services.chat import ChatbotService
from ..services.exceptions import FlowNotFoundError, FlowValidationError
from ..services.flows import FlowService
from .dependencies import get_chatbot_service, get_flow_service
from .schemas import (
    DeleteResponse,
    FlowRead,
    FlowSummary,
    FlowTestRequest,
    IncomingMessage,
    IncomingMessageResponse,
)

logging.basicConfig(level=settings.LOG_LEVEL)

app = FastAPI(title="Helpdesk Chatbot")


def _flow_read(flow: ChatbotFlow) -> FlowRead:
    return FlowRead(**flow.model_dump())


# --- Inbound hook ---

@app.post("/webhooks/messages", response_model=IncomingMessageResponse)
async def incoming_message(
    message: IncomingMessage,
    service: ChatbotService = Depends(get_chatbot_service),
):
    """
    Called by the helpdesk core once a contact message is stored.
    Never fails because of the bot: problems are logged server side.
    """
    session = await service.on_incoming_message(message.ticket_id, message.message_id, message.body)
    if session is None:
        return IncomingMessageResponse(handled=False)

    return IncomingMessageResponse(
        handled=True,
        session_id=session.id,
        current_node_id=session.current_node_id,
        completed=session.completed_at is not None,
    )


# --- Flow catalog ---

@app.get("/flows", response_model=List[FlowSummary])
def list_flows(service: FlowService = Depends(get_flow_service)):
    return [
        FlowSummary(**flow.model_dump(exclude={"definition"}), stats=counts)
        for flow, counts in service.list_flows()
    ]


@app.post("/flows", response_model=FlowRead, status_code=status.HTTP_201_CREATED)
def create_flow(draft: FlowDraft, service: FlowService = Depends(get_flow_service)):
    try:
        return _flow_read(service.create_flow(draft))
    except (FlowValidationError, InvalidFlowDefinitionError) as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/flows/{flow_id}", response_model=FlowRead)
def get_flow(flow_id: str, service: FlowService = Depends(get_flow_service)):
    try:
        return _flow_read(service.get_flow(flow_id))
    except FlowNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.patch("/flows/{flow_id}", response_model=FlowRead)
def update_flow(flow_id: str, draft: FlowDraft, service: FlowService = Depends(get_flow_service)):
    try:
        return _flow_read(service.update_flow(flow_id, draft))
    except FlowNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (FlowValidationError, InvalidFlowDefinitionError) as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.delete("/flows/{flow_id}", response_model=DeleteResponse)
def delete_flow(flow_id: str, service: FlowService = Depends(get_flow_service)):
    try:
        service.delete_flow(flow_id)
    except FlowNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return DeleteResponse(success=True)


@app.get("/flows/{flow_id}/stats", response_model=FlowStats)
def get_flow_stats(flow_id: str, service: FlowService = Depends(get_flow_service)):
    try:
        return service.get_flow_stats(flow_id)
    except FlowNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.post("/flows/{flow_id}/test", response_model=SimulationResult)
async def run_flow_test(
    flow_id: str,
    request: FlowTestRequest,
    service: ChatbotService = Depends(get_chatbot_service),
):
    """Dry-runs the flow against the given contact messages."""
    messages = [
        message.strip()
        for message in request.messages
        if isinstance(message, str) and message.strip()
    ]
    try:
        return await service.simulate(flow_id, messages)
    except FlowNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidFlowDefinitionError as e:
        raise HTTPException(status_code=400, detail=str(e))
