"""
Games API Endpoints.

Endpoints for listing games and driving one game session per attempt.

Handlers are async so every session (and its clock ticks) lives on the event
loop thread. When a session finishes, its discount is added to the cart on the
service's ledger executor; handlers await that write before answering, so the
session response carries the award and the cart already holds it.
"""

import asyncio

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_game_service
from api.models import (
    AwardResponse,
    ErrorResponse,
    GameResponse,
    LoseLifeRequest,
    NextThresholdResponse,
    OpenSessionRequest,
    PlayedResponse,
    PointsRequest,
    SessionResponse,
    TierResponse,
)
from domain.game_session import GameSession, LivesGameSession
from domain.scoring import next_threshold, progress_message
from services.game_service import GameService, UnknownGameError
from services.tick_scheduler import AsyncioTickScheduler

router = APIRouter()

_NOT_FOUND = {404: {"model": ErrorResponse}}


def _session_response(
    service: GameService,
    session: GameSession,
    accepted: bool | None = None,
) -> SessionResponse:
    definition = service.definition_for(session.session_id)
    product_id = service.product_for(session.session_id)
    if definition is None or product_id is None:
        raise HTTPException(status_code=404, detail=f"Game session not found: {session.session_id}")

    upcoming = next_threshold(session.score, definition.tier_table)
    award = service.award_for(session.session_id)

    return SessionResponse(
        session_id=session.session_id,
        game_type=definition.game_type.value,
        product_id=product_id,
        status=session.status.value,
        score=session.score,
        duration_seconds=session.duration.total_seconds(),
        remaining_seconds=session.remaining().total_seconds(),
        lives=session.lives if isinstance(session, LivesGameSession) else None,
        accepted=accepted,
        next_threshold=NextThresholdResponse(
            threshold=upcoming.threshold,
            points_needed=upcoming.points_needed,
            discount_percent=upcoming.discount_percent,
        ) if upcoming is not None else None,
        progress_message=progress_message(session.score, definition.tier_table),
        award=AwardResponse(
            discount_id=award.discount.discount_id,
            discount_percent=award.result.discount_percent,
            message=award.result.message,
            subtext=award.result.subtext,
            emoji=award.result.emoji,
            can_retry=award.result.can_retry,
            expires_at=award.discount.expires_at,
        ) if award is not None else None,
    )


def _require_session(service: GameService, session_id: str) -> GameSession:
    session = service.get_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Game session not found: {session_id}")
    return session


async def _settle_handoff(service: GameService, session: GameSession) -> None:
    pending = service.pending_handoff(session.session_id)
    if pending is not None:
        await asyncio.wrap_future(pending)


@router.get("/games", response_model=list[GameResponse], summary="List Games")
async def list_games(service: GameService = Depends(get_game_service)):
    """Every game in the catalog with its duration and tier table."""
    return [
        GameResponse(
            game_type=definition.game_type.value,
            title=definition.title,
            duration_seconds=definition.duration.total_seconds(),
            tier_table=definition.tier_table.name,
            tiers=[
                TierResponse(minimum_score=tier.minimum_score, discount_percent=tier.discount_percent)
                for tier in definition.tier_table.tiers
            ],
            lives=definition.lives,
            completion_bonus=definition.completion_bonus,
        )
        for definition in service.list_games()
    ]


@router.get("/games/played/{product_id}", response_model=PlayedResponse, summary="Was Game Played")
async def was_played(product_id: str, service: GameService = Depends(get_game_service)):
    """Whether a game was already played for this product in the current session."""
    return PlayedResponse(product_id=product_id, played=service.was_played(product_id))


@router.post(
    "/games/{game_type}/sessions",
    response_model=SessionResponse,
    status_code=201,
    responses=_NOT_FOUND,
    summary="Start Game Session",
)
async def open_session(game_type: str, request: OpenSessionRequest, service: GameService = Depends(get_game_service)):
    """
    Open and start a timed game session for a product.

    The session clock starts immediately and re-evaluates remaining time every tick.
    """
    try:
        session = service.open_session(game_type, request.product_id, scheduler=AsyncioTickScheduler())
        return _session_response(service, session)

    except UnknownGameError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to start game session: {str(e)}"
        )


@router.get(
    "/games/sessions/{session_id}",
    response_model=SessionResponse,
    responses=_NOT_FOUND,
    summary="Get Game Session",
)
async def get_session(session_id: str, service: GameService = Depends(get_game_service)):
    session = _require_session(service, session_id)
    session.tick()
    await _settle_handoff(service, session)
    return _session_response(service, session)


@router.post(
    "/games/sessions/{session_id}/points",
    response_model=SessionResponse,
    responses=_NOT_FOUND,
    summary="Score Points",
)
async def score_points(session_id: str, request: PointsRequest, service: GameService = Depends(get_game_service)):
    """
    Apply a point delta: positive adds, negative subtracts.

    `accepted` is false when the session is no longer playing or the delta is zero.
    """
    session = _require_session(service, session_id)
    if request.delta > 0:
        accepted = session.add_points(request.delta)
    elif request.delta < 0:
        accepted = session.subtract_points(-request.delta)
    else:
        accepted = False
    await _settle_handoff(service, session)
    return _session_response(service, session, accepted=accepted)


@router.post(
    "/games/sessions/{session_id}/lives",
    response_model=SessionResponse,
    responses={**_NOT_FOUND, 400: {"model": ErrorResponse}},
    summary="Lose Lives",
)
async def lose_lives(session_id: str, request: LoseLifeRequest, service: GameService = Depends(get_game_service)):
    session = _require_session(service, session_id)
    if not isinstance(session, LivesGameSession):
        raise HTTPException(status_code=400, detail="This game has no lives")
    accepted = session.lose_life(request.count)
    await _settle_handoff(service, session)
    return _session_response(service, session, accepted=accepted)


@router.post(
    "/games/sessions/{session_id}/end",
    response_model=SessionResponse,
    responses=_NOT_FOUND,
    summary="End Game Session",
)
async def end_session(session_id: str, service: GameService = Depends(get_game_service)):
    session = _require_session(service, session_id)
    accepted = session.end()
    await _settle_handoff(service, session)
    return _session_response(service, session, accepted=accepted)


@router.post(
    "/games/sessions/{session_id}/restart",
    response_model=SessionResponse,
    responses=_NOT_FOUND,
    summary="Restart Game Session",
)
async def restart_session(session_id: str, service: GameService = Depends(get_game_service)):
    """Reset the session and start a fresh attempt with a new clock."""
    _require_session(service, session_id)
    session = service.restart_session(session_id)
    return _session_response(service, session)


@router.delete(
    "/games/sessions/{session_id}",
    status_code=204,
    responses=_NOT_FOUND,
    summary="Close Game Session",
)
async def close_session(session_id: str, service: GameService = Depends(get_game_service)):
    """Abandon the session; its clock is cancelled and it can no longer score."""
    if not service.close_session(session_id):
        raise HTTPException(status_code=404, detail=f"Game session not found: {session_id}")
