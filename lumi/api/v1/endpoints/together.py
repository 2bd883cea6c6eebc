"""
Together endpoints: lobby, host controls, play screen and the realtime relay.
"""
from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from sqlmodel import Session
from typing import Optional
import asyncio
import logging

from lumi.core.database import engine, get_session
from lumi.core.exceptions import LumiException
from lumi.core.security import get_current_user, resolve_user
from lumi.models.models import TogetherSession, User
from lumi.schemas.together import (
    JoinSessionRequest,
    LeaveResponse,
    LobbyResponse,
    ParticipantResponse,
    PlayResponse,
    TogetherSessionResponse,
)
from lumi.services.realtime import broadcast_topic, hub, participants_topic, session_topic
from lumi.services import together_service
from lumi.services.together_service import PlayView

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/together", tags=["together"])


def _lobby(session: Session, together: TogetherSession, user: User) -> LobbyResponse:
    return LobbyResponse(
        session=TogetherSessionResponse.model_validate(together),
        participants=[
            ParticipantResponse.model_validate(p)
            for p in together_service.list_participants(session, together.id)
        ],
        available_colors=together_service.available_colors(session, together.id),
        is_host=together.created_by == user.id,
        total_assignments=len(together_service.list_assignments(session, together.id)),
    )


@router.post("", response_model=LobbyResponse, status_code=status.HTTP_201_CREATED)
async def create_session(
    session: Session = Depends(get_session),
    user: User = Depends(get_current_user)
):
    """Open a new lobby hosted by the caller."""
    together = together_service.create_session(session, user)
    return _lobby(session, together, user)


@router.get("/{session_id}", response_model=LobbyResponse)
async def get_lobby(
    session_id: int,
    session: Session = Depends(get_session),
    user: User = Depends(get_current_user)
):
    together = together_service.get_session_or_404(session, session_id)
    return _lobby(session, together, user)


@router.post("/{session_id}/join", response_model=ParticipantResponse)
async def join(
    session_id: int,
    request: Optional[JoinSessionRequest] = None,
    session: Session = Depends(get_session),
    user: User = Depends(get_current_user)
):
    """Join the lobby, optionally claiming a colour."""
    together = together_service.get_session_or_404(session, session_id)
    color = request.color if request else None
    return together_service.join_session(session, together, user, color=color)


@router.post("/{session_id}/start", response_model=TogetherSessionResponse)
async def start(
    session_id: int,
    session: Session = Depends(get_session),
    user: User = Depends(get_current_user)
):
    together = together_service.get_session_or_404(session, session_id)
    return together_service.start_session(session, together, user)


@router.post("/{session_id}/next", response_model=TogetherSessionResponse)
async def next_assignment(
    session_id: int,
    session: Session = Depends(get_session),
    user: User = Depends(get_current_user)
):
    """Host moves everyone to the next assignment."""
    together = together_service.get_session_or_404(session, session_id)
    return together_service.advance(session, together, user)


@router.post("/{session_id}/leave", response_model=LeaveResponse)
async def leave(
    session_id: int,
    session: Session = Depends(get_session),
    user: User = Depends(get_current_user)
):
    together = together_service.get_session_or_404(session, session_id)
    return LeaveResponse(left=together_service.leave_session(session, together, user))


@router.get("/{session_id}/play", response_model=PlayResponse)
async def play(
    session_id: int,
    session: Session = Depends(get_session),
    user: User = Depends(get_current_user)
):
    """Current assignment and its content for a participant."""
    together = together_service.get_session_or_404(session, session_id)
    together_service.ensure_member(session, together, user)
    state = together_service.load_play_state(session, together)

    view = PlayView.from_play_state(state)
    return PlayResponse(
        **view.to_dict(),
        is_host=together.created_by == user.id,
        participants=[ParticipantResponse.model_validate(p) for p in state["participants"]],
    )


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        return


def _read_snapshot(session_id: int) -> dict:
    with Session(engine) as session:
        together = together_service.get_session_or_404(session, session_id)
        return together_service.session_row(together)


@router.websocket("/{session_id}/ws")
async def session_events(websocket: WebSocket, session_id: int, token: Optional[str] = Query(None)):
    """
    Relay realtime events of one session as JSON messages, to its host and
    participants only.

    The first message is a snapshot of the session row; after that every row
    change and broadcast on the session's topics is forwarded as it happens.
    Subscriptions are opened before the snapshot is read, and session rows
    older than the last one sent are dropped, so a client never misses or
    goes back on a progression step.
    """
    try:
        with Session(engine) as session:
            user = resolve_user(session, token)
            together = together_service.get_session_or_404(session, session_id)
            together_service.ensure_member(session, together, user)
    except LumiException as e:
        logger.warning(f"Rejected websocket for together session {session_id}: {str(e)}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def relay(event) -> None:
        # Publishers may run on another thread
        loop.call_soon_threadsafe(queue.put_nowait, event.to_message())

    subscriptions = []
    disconnected = None
    try:
        for topic in (session_topic(session_id), participants_topic(session_id), broadcast_topic(session_id)):
            subscriptions.append(hub.subscribe(topic, relay))
        logger.info(f"User {user.id} subscribed to together session {session_id}")

        latest = _read_snapshot(session_id)
        await websocket.send_json({"type": "snapshot", "topic": session_topic(session_id), "payload": {"new": latest}})

        disconnected = asyncio.create_task(_wait_for_disconnect(websocket))
        while True:
            next_message = asyncio.create_task(queue.get())
            done, _ = await asyncio.wait({next_message, disconnected}, return_when=asyncio.FIRST_COMPLETED)
            if next_message not in done:
                next_message.cancel()
                break
            message = next_message.result()
            row = message["payload"].get("new") if message["topic"] == session_topic(session_id) else None
            if row:
                if together_service.row_position(row) <= together_service.row_position(latest):
                    continue
                latest = row
            await websocket.send_json(message)
    except WebSocketDisconnect:
        pass
    except LumiException as e:
        logger.warning(f"Closing websocket for together session {session_id}: {str(e)}")
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
    finally:
        for subscription in subscriptions:
            subscription.unsubscribe()
        if disconnected is not None and not disconnected.done():
            disconnected.cancel()
        logger.info(f"User {user.id} unsubscribed from together session {session_id}")
