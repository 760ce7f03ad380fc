"""Cloud Firestore adapter for tasks, profiles and daily analytics.

Talks to the Firestore REST API. Documents are stored with Firestore's
typed value encoding, which ``encode_fields`` and ``decode_fields``
translate to and from plain Python values.
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

import httpx

from daysense.adapters.base import HTTPAdapter, WriteError
from daysense.config.settings import settings
from daysense.models import (
    DailyAnalytics,
    Task,
    TaskCreate,
    UserProfile,
    utcnow,
)

TASKS = "tasks"
PROFILES = "profiles"
ANALYTICS = "analytics"


# ── Value encoding ───────────────────────────────────────────────────


def encode_value(value: Any) -> dict[str, Any]:
    """Encode a Python value as a Firestore typed value."""
    if value is None:
        return {"nullValue": None}
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        stamp = value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
        return {"timestampValue": stamp}
    if isinstance(value, date):
        return {"stringValue": value.isoformat()}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    raise TypeError(f"Cannot encode {type(value).__name__} for Firestore")


def decode_value(value: dict[str, Any]) -> Any:
    """Decode a Firestore typed value into a Python value."""
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return value["booleanValue"]
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "timestampValue" in value:
        return datetime.fromisoformat(value["timestampValue"].replace("Z", "+00:00"))
    if "stringValue" in value:
        return value["stringValue"]
    if "arrayValue" in value:
        return [decode_value(v) for v in value["arrayValue"].get("values", [])]
    if "mapValue" in value:
        return decode_fields(value["mapValue"].get("fields", {}))
    raise ValueError(f"Unsupported Firestore value: {value}")


def encode_fields(data: dict[str, Any]) -> dict[str, Any]:
    return {key: encode_value(val) for key, val in data.items()}


def decode_fields(fields: dict[str, Any]) -> dict[str, Any]:
    return {key: decode_value(val) for key, val in fields.items()}


def decode_document(document: dict[str, Any]) -> dict[str, Any]:
    """Flatten a Firestore document into a dict with its ``id``."""
    data = decode_fields(document.get("fields", {}))
    data["id"] = document["name"].rsplit("/", 1)[-1]
    return data


def _equals(field: str, value: Any) -> dict[str, Any]:
    return {
        "fieldFilter": {
            "field": {"fieldPath": field},
            "op": "EQUAL",
            "value": encode_value(value),
        }
    }


class FirestoreAdapter(HTTPAdapter):
    """Adapter for the DaySense Firestore collections.

    Collections:
    - tasks: one document per task, keyed by generated id, owned via user_id
    - profiles: one document per user, keyed by user id
    - analytics: one document per user per day
    """

    def __init__(
        self,
        project_id: str | None = None,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.project_id = project_id if project_id is not None else settings.firebase.project_id
        self.api_key = (
            api_key if api_key is not None else settings.firebase.api_key.get_secret_value()
        )
        super().__init__(
            "firestore",
            f"{settings.firebase.firestore_url}/projects/{self.project_id}/databases/(default)",
            timeout=settings.firebase.timeout_seconds,
            transport=transport,
        )
        self._id_token: str | None = None

    def set_id_token(self, token: str | None) -> None:
        """Use the signed-in user's ID token for subsequent requests."""
        self._id_token = token

    async def connect(self) -> bool:
        if not self.project_id:
            self.logger.warning("Firebase project not configured")
            return False
        if not self.api_key:
            self.logger.warning("Firebase API key not set, requests rely on ID tokens only")

        self._open_client()
        self._connected = True
        self.logger.info("Connected to Firestore", project=self.project_id)
        return True

    async def health_check(self) -> bool:
        if not self._connected:
            return False
        try:
            await self._run_query(PROFILES, None, limit=1)
            return True
        except Exception:
            return False

    def _headers(self) -> dict[str, str]:
        if self._id_token:
            return {"Authorization": f"Bearer {self._id_token}"}
        return {}

    def _params(self, mask: list[str] | None = None) -> list[tuple[str, str]]:
        params: list[tuple[str, str]] = []
        if self.api_key:
            params.append(("key", self.api_key))
        for field in mask or []:
            params.append(("updateMask.fieldPaths", field))
        return params

    async def _run_query(
        self,
        collection: str,
        where: dict[str, Any] | None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        query: dict[str, Any] = {"from": [{"collectionId": collection}]}
        if where is not None:
            query["where"] = where
        if limit is not None:
            query["limit"] = limit

        rows = await self._request(
            "POST",
            "/documents:runQuery",
            json={"structuredQuery": query},
            params=self._params(),
            headers=self._headers(),
        )
        return [decode_document(row["document"]) for row in rows or [] if "document" in row]

    async def _create(self, collection: str, data: dict[str, Any]) -> dict[str, Any]:
        document = await self._request(
            "POST",
            f"/documents/{collection}",
            error_cls=WriteError,
            json={"fields": encode_fields(data)},
            params=self._params(),
            headers=self._headers(),
        )
        return decode_document(document)

    async def _patch(
        self, collection: str, doc_id: str, data: dict[str, Any]
    ) -> dict[str, Any]:
        document = await self._request(
            "PATCH",
            f"/documents/{collection}/{doc_id}",
            error_cls=WriteError,
            json={"fields": encode_fields(data)},
            params=self._params(mask=list(data)),
            headers=self._headers(),
        )
        return decode_document(document)

    async def _get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        document = await self._request(
            "GET",
            f"/documents/{collection}/{doc_id}",
            allow_not_found=True,
            params=self._params(),
            headers=self._headers(),
        )
        return decode_document(document) if document else None

    # ── Tasks ────────────────────────────────────────────────────────

    async def create_task(self, user_id: str, task: TaskCreate) -> Task:
        now = utcnow()
        data = {
            **task.model_dump(mode="json"),
            "user_id": user_id,
            "created_at": now,
            "updated_at": now,
        }
        created = await self._create(TASKS, data)
        self.logger.info("Task created", task_id=created["id"])
        return Task.model_validate(created)

    async def get_user_tasks(self, user_id: str) -> list[Task]:
        rows = await self._run_query(TASKS, _equals("user_id", user_id))
        return [Task.model_validate(row) for row in rows]

    async def update_task(self, task_id: str, changes: dict[str, Any]) -> Task:
        data = {**changes, "updated_at": utcnow()}
        updated = await self._patch(TASKS, task_id, data)
        return Task.model_validate(updated)

    async def delete_task(self, task_id: str) -> None:
        await self._request(
            "DELETE",
            f"/documents/{TASKS}/{task_id}",
            error_cls=WriteError,
            params=self._params(),
            headers=self._headers(),
        )
        self.logger.info("Task deleted", task_id=task_id)

    # ── Profiles ─────────────────────────────────────────────────────

    async def create_profile(self, user_id: str, profile: dict[str, Any]) -> UserProfile:
        """Create or merge a profile document."""
        data = {
            **profile,
            "id": user_id,
            "created_at": utcnow(),
            "onboarding_completed": profile.get("onboarding_completed", False),
        }
        merged = await self._patch(PROFILES, user_id, data)
        return UserProfile.model_validate(merged)

    async def get_profile(self, user_id: str) -> UserProfile | None:
        data = await self._get(PROFILES, user_id)
        return UserProfile.model_validate(data) if data else None

    async def update_profile(self, user_id: str, changes: dict[str, Any]) -> UserProfile | None:
        await self._patch(PROFILES, user_id, changes)
        return await self.get_profile(user_id)

    # ── Analytics ────────────────────────────────────────────────────

    async def upsert_daily_analytics(self, analytics: DailyAnalytics) -> DailyAnalytics:
        """Update the user's record for the day or create it."""
        where = {
            "compositeFilter": {
                "op": "AND",
                "filters": [
                    _equals("user_id", analytics.user_id),
                    _equals("date", analytics.date),
                ],
            }
        }
        existing = await self._run_query(ANALYTICS, where, limit=1)
        data = analytics.model_dump(mode="json", exclude={"id"})

        if existing:
            saved = await self._patch(ANALYTICS, existing[0]["id"], data)
        else:
            saved = await self._create(ANALYTICS, data)
        return DailyAnalytics.model_validate(saved)

    async def get_user_analytics(self, user_id: str) -> list[DailyAnalytics]:
        rows = await self._run_query(ANALYTICS, _equals("user_id", user_id))
        return [DailyAnalytics.model_validate(row) for row in rows]
