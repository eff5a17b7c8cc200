from dishka import FromDishka
from dishka.integrations.fastapi import DishkaRoute
from fastapi import APIRouter
from pydantic import BaseModel

from apsync.domain.linking.command.connection import (
    ConnectionUpdated,
    UpdateConnection,
    UpdateConnectionHandler,
)

router = APIRouter(prefix="/connections", tags=["Connections"], route_class=DishkaRoute)


class UpdateConnectionRequest(BaseModel):
    audience_id: str | None = None
    source_tag: str | None = None


@router.patch("/{device_id}")
async def update_connection(
    device_id: str,
    body: UpdateConnectionRequest,
    handler: FromDishka[UpdateConnectionHandler],
) -> ConnectionUpdated:
    """Change the audience and/or source tag of an existing connection."""
    return await handler.run(
        UpdateConnection(
            device_id=device_id, audience_id=body.audience_id, source_tag=body.source_tag
        )
    )
