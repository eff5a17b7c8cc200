"""Mailchimp connection flow for one access point."""

import logging
from typing import Annotated

from dishka import FromDishka
from dishka.integrations.fastapi import DishkaRoute
from fastapi import APIRouter, Form, Query
from fastapi.responses import RedirectResponse

from apsync.domain.linking.command.authorize import (
    CompleteAuthorization,
    CompleteAuthorizationHandler,
    LinkStepResult,
    StartAuthorization,
    StartAuthorizationHandler,
)
from apsync.domain.linking.command.connection import (
    Disconnect,
    Disconnected,
    DisconnectHandler,
)
from apsync.domain.linking.command.select import (
    SelectAudience,
    SelectAudienceHandler,
    SelectLocation,
    SelectLocationHandler,
)
from apsync.domain.linking.query.status import (
    ConnectionStatus,
    GetConnectionStatus,
    GetConnectionStatusHandler,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/oauth", tags=["OAuth"], route_class=DishkaRoute)


@router.get("/authorize")
async def authorize(
    handler: FromDishka[StartAuthorizationHandler],
    device_id: Annotated[str | None, Query()] = None,
    redirect_url: Annotated[str | None, Query()] = None,
    audience_id: Annotated[str | None, Query()] = None,
    source_tag: Annotated[str | None, Query()] = None,
) -> RedirectResponse:
    """Start the OAuth flow and redirect to Mailchimp's consent page."""
    result = await handler.run(
        StartAuthorization(
            device_id=device_id,
            redirect_url=redirect_url,
            audience_id=audience_id,
            source_tag=source_tag,
        )
    )
    return RedirectResponse(url=result.authorization_url, status_code=302)


@router.get("/callback")
async def callback(
    handler: FromDishka[CompleteAuthorizationHandler],
    code: Annotated[str | None, Query()] = None,
    state: Annotated[str | None, Query()] = None,
    error: Annotated[str | None, Query()] = None,
) -> LinkStepResult:
    """Finish the OAuth exchange and resolve the account to a location.

    The outcome says what happens next: ``committed``, ``select_audience``,
    ``select_location`` or ``manual_entry``.
    """
    return await handler.run(CompleteAuthorization(code=code, state=state, error=error))


@router.post("/select-audience")
async def select_audience(
    handler: FromDishka[SelectAudienceHandler],
    token: Annotated[str, Form()],
    audience_id: Annotated[str, Form()],
    source_tag: Annotated[str | None, Form()] = None,
) -> LinkStepResult:
    return await handler.run(
        SelectAudience(token=token, audience_id=audience_id, source_tag=source_tag)
    )


@router.post("/select-location")
async def select_location(
    handler: FromDishka[SelectLocationHandler],
    token: Annotated[str, Form()],
    site_id: Annotated[str, Form()],
    source_tag: Annotated[str | None, Form()] = None,
) -> LinkStepResult:
    return await handler.run(SelectLocation(token=token, site_id=site_id, source_tag=source_tag))


@router.get("/status/{device_id}")
async def connection_status(
    device_id: str,
    handler: FromDishka[GetConnectionStatusHandler],
) -> ConnectionStatus:
    return await handler.run(GetConnectionStatus(device_id=device_id))


@router.delete("/disconnect/{device_id}")
async def disconnect(
    device_id: str,
    handler: FromDishka[DisconnectHandler],
) -> Disconnected:
    return await handler.run(Disconnect(device_id=device_id))
