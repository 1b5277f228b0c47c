from __future__ import annotations

import logging
from typing import Union

import httpx

from .config import Settings
from .errors import UpstreamAnalyticsError
from .schemas import TrustAnalytics


logger = logging.getLogger("trustreport.analytics")


async def fetch_analytics(
    client: httpx.AsyncClient,
    settings: Settings,
    user_id: Union[int, str],
    message_id: str,
) -> TrustAnalytics:
    url = f"https://{settings.trust_api_url}/@/trust/{user_id}"
    r = await client.get(
        url,
        params={"messageId": message_id},
        headers={"Authorization": settings.trust_api_token},
    )
    if not r.is_success:
        payload = r.json()
        logger.warning({"event": "analytics_error", "user_id": str(user_id), "status": r.status_code, "payload": payload})
        raise UpstreamAnalyticsError(r.status_code, payload)
    return TrustAnalytics.model_validate(r.json())
