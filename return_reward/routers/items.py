"""Item lookup endpoints (read-only)."""
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from return_reward.backend import Backend
from return_reward.config import Settings
from return_reward.errors import StoreUnavailable
from return_reward.qr import qr_download_name, qr_image_url, qr_payload
from return_reward.routers.deps import get_backend, get_settings
from return_reward.schemas.records import ItemRead

router = APIRouter(tags=["Items"])


class ItemCodeResponse(BaseModel):
    """QR code data for an item."""
    item: ItemRead
    payload: str
    image_url: str
    download_name: str


@router.get("/items/{item_id}/qr", response_model=ItemCodeResponse)
async def get_item_code(
    item_id: str,
    backend: Backend = Depends(get_backend),
    settings: Settings = Depends(get_settings),
):
    """Get the QR payload and a rendered image URL for an item."""
    try:
        item = backend.items.get(item_id.strip())
    except StoreUnavailable as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message)

    if not item:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No item found with ID: {item_id}"
        )

    return ItemCodeResponse(
        item=item,
        payload=qr_payload(item.id),
        image_url=qr_image_url(item.id, settings.qr_service_url, settings.qr_size),
        download_name=qr_download_name(item.item_name),
    )
