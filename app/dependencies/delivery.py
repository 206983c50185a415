from __future__ import annotations

"""Delivery wiring: the configured storage backend behind a `MediaDeliveryResolver`."""

from fastapi import Depends

from app.core.config import settings
from app.schemas.enums import DeliveryMode
from app.services.delivery import MediaDeliveryResolver
from app.services.storage import ObjectStorage, get_storage


def get_delivery_resolver(storage: ObjectStorage = Depends(get_storage)) -> MediaDeliveryResolver:
    return MediaDeliveryResolver(
        storage,
        mode=DeliveryMode(settings.MEDIA_DELIVERY_MODE),
        signed_ttl_seconds=settings.SIGNED_URL_TTL_SECONDS,
        chunk_size=settings.STREAM_CHUNK_SIZE,
    )


__all__ = ["get_delivery_resolver"]
