"""
Inbound postback endpoint.

Main endpoint: GET|POST /postback (also served at / for trackers that
were configured against the bare host).
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse

from ..core.audit_log import AuditLog
from ..core.dispatcher import EventDispatcher
from ..core.pipeline import PostbackPipeline

logger = structlog.get_logger(__name__)

router = APIRouter()

_FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


async def get_postback_pipeline(request: Request) -> PostbackPipeline:
    """Dependency to build the processing pipeline from app state."""
    state = request.app.state
    settings = state.settings

    return PostbackPipeline(
        settings=settings,
        dispatcher=EventDispatcher(settings.dispatch, state.transport),
        audit_log=getattr(state, "audit_log", None) or AuditLog(None, enabled=False),
        metrics=getattr(state, "metrics", None),
    )


async def read_form_params(request: Request) -> Optional[Mapping[str, Any]]:
    """Return form body params for form-encoded POSTs, None otherwise."""
    if request.method != "POST":
        return None

    content_type = request.headers.get("content-type", "")
    if not content_type.startswith(_FORM_CONTENT_TYPES):
        return None

    try:
        return await request.form()
    except Exception as e:
        logger.warning(
            "Unreadable form body, using query parameters only",
            error=str(e),
            error_type=type(e).__name__,
        )
        return None


@router.api_route("/", methods=["GET", "POST"], include_in_schema=False)
@router.api_route(
    "/postback",
    methods=["GET", "POST"],
    response_class=PlainTextResponse,
    summary="Receive a conversion postback",
    description="""
    Receive one conversion postback and relay the derived events.

    **Parameters** (query or form, first non-empty alias wins):
    - clickid | cid | s2 - click identifier (required)
    - sum | payout - conversion value, comma decimals accepted
    - type | et | s3 - event type, defaults to Lead
    - sub12 | s1 - passthrough label

    **Response:**
    Always 200 text/plain: either "Invalid or missing data." or one
    `Fired[i/n]: ...` line per dispatched event.
    """,
)
async def receive_postback(
    request: Request,
    pipeline: PostbackPipeline = Depends(get_postback_pipeline),
) -> PlainTextResponse:
    """
    Receive a postback.

    Args:
        request: Incoming request carrying query and optional form params
        pipeline: Processing pipeline built from app state

    Returns:
        PlainTextResponse with one report line per dispatched event, or
        the invalid-data message
    """
    request_id = str(uuid.uuid4())
    start_time = datetime.now(timezone.utc)

    form = await read_form_params(request)
    outcome = await pipeline.process(request.query_params, form, request_id=request_id)

    logger.debug(
        "Postback request handled",
        request_id=request_id,
        accepted=outcome.accepted,
        events_count=len(outcome.events),
        processing_time_ms=(datetime.now(timezone.utc) - start_time).total_seconds() * 1000,
    )

    return PlainTextResponse(outcome.body, status_code=200)
