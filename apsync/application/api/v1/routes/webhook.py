"""Contact webhooks called by the captive-portal platform.

Signature verification happens in front of this service.
"""

from dishka import FromDishka
from dishka.integrations.fastapi import DishkaRoute
from fastapi import APIRouter

from apsync.domain.sync.command.sync_contact import (
    BatchSynced,
    ContactSynced,
    SyncContact,
    SyncContactHandler,
    SyncContactsBatch,
    SyncContactsBatchHandler,
)

router = APIRouter(prefix="/webhook", tags=["Webhook"], route_class=DishkaRoute)


@router.post("/contact")
async def sync_contact(
    body: SyncContact,
    handler: FromDishka[SyncContactHandler],
) -> ContactSynced:
    return await handler.run(body)


@router.post("/contacts/batch")
async def sync_contacts_batch(
    body: SyncContactsBatch,
    handler: FromDishka[SyncContactsBatchHandler],
) -> BatchSynced:
    return await handler.run(body)
