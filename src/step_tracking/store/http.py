"""Step store client for the step API over HTTP."""
import logging
from datetime import date
from typing import Any, Dict, List, Optional

import httpx

from ..exceptions import SyncFailure
from ..models import ActivitySession, DailyStepRecord
from .base import StepRecordStore

logger = logging.getLogger(__name__)


class HttpStepStore(StepRecordStore):
    """
    Device-side StepRecordStore backed by the step API.

    Achievement checks run server-side after each upsert, so this store only
    carries record operations.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "HttpStepStore":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"[STORE] {method} {path} failed: {e}")
            raise SyncFailure(f"Step API unreachable: {e}", details={"path": path}) from e

        if response.status_code >= 400:
            logger.warning(f"[STORE] {method} {path} -> {response.status_code}: {response.text}")
            raise SyncFailure(
                f"Step API returned {response.status_code}",
                details={"path": path, "status": response.status_code},
            )

        try:
            return response.json()
        except ValueError as e:
            raise SyncFailure(f"Step API returned invalid JSON: {e}", details={"path": path}) from e

    async def upsert_daily_record(
        self, user_id: str, day: date, fields: Dict[str, Any]
    ) -> DailyStepRecord:
        body = {"user_id": user_id, "date": day.isoformat(), **fields}
        data = await self._request("POST", "/api/steps", json=body)
        return DailyStepRecord.model_validate(data["steps"])

    async def fetch_daily_record(self, user_id: str, day: date) -> Optional[DailyStepRecord]:
        data = await self._request(
            "GET", "/api/steps", params={"user_id": user_id, "date": day.isoformat()}
        )
        steps = data.get("steps")
        return DailyStepRecord.model_validate(steps) if steps else None

    async def fetch_range(
        self,
        user_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[DailyStepRecord]:
        params = {"user_id": user_id}
        if start is not None:
            params["start_date"] = start.isoformat()
        if end is not None:
            params["end_date"] = end.isoformat()
        data = await self._request("GET", "/api/steps", params=params)
        return [DailyStepRecord.model_validate(row) for row in data.get("steps", [])]

    async def upsert_activity_session(self, session: ActivitySession) -> ActivitySession:
        data = await self._request(
            "POST", "/api/sessions", json=session.model_dump(mode="json")
        )
        return ActivitySession.model_validate(data["session"])
