from dishka import FromDishka
from dishka.integrations.fastapi import DishkaRoute
from fastapi import APIRouter

from apsync.domain.linking.command.manual import (
    ManualEntrySaved,
    SaveManualEntry,
    SaveManualEntryHandler,
)

router = APIRouter(prefix="/setup", tags=["Setup"], route_class=DishkaRoute)


@router.post("/save")
async def save_manual_entry(
    body: SaveManualEntry,
    handler: FromDishka[SaveManualEntryHandler],
) -> ManualEntrySaved:
    """Link the device ids typed on the manual-entry screen."""
    return await handler.run(body)
