"""HTTP client for the serverless functions host."""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from facetstudio.core.config import settings
from facetstudio.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class FunctionResponse:
    """Outcome of one function call."""

    status_code: int
    body: Dict[str, Any]

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def error(self) -> str:
        return str(self.body.get("error") or f"Function returned HTTP {self.status_code}")


class FunctionsClient:
    """Calls ``{FUNCTIONS_URL}/functions/<name>`` with the anonymous bearer key.

    ``transport`` lets callers route requests in-process (tests, ASGI).
    Transport failures propagate as ``httpx.HTTPError``; no call is retried.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        anon_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.FUNCTIONS_URL).rstrip("/")
        self.anon_key = anon_key or settings.FUNCTIONS_ANON_KEY
        self.timeout = timeout or settings.FUNCTIONS_TIMEOUT
        self.transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.anon_key}",
            "Content-Type": "application/json",
        }

    async def call(self, name: str, payload: Dict[str, Any]) -> FunctionResponse:
        url = f"{self.base_url}/functions/{name}"
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(url, json=payload, headers=self._headers())

        try:
            body = response.json()
        except ValueError:
            body = {"error": response.text[:500]}
        if not isinstance(body, dict):
            body = {"data": body}

        if response.status_code >= 300:
            logger.warning("Function call failed", function=name, status=response.status_code)
        return FunctionResponse(status_code=response.status_code, body=body)

    async def generate_facets(
        self,
        job_id: str,
        category_ids: List[str],
        prompts: List[Dict[str, Any]],
    ) -> FunctionResponse:
        return await self.call(
            "generate-facets-ai",
            {"job_id": job_id, "category_ids": category_ids, "prompts": prompts},
        )

    async def analyze_level(self, level: int, payload: Dict[str, Any]) -> FunctionResponse:
        if level not in (1, 2, 3):
            raise ValueError(f"Unsupported analysis level: {level}")
        return await self.call(f"analyze-level{level}", payload)

    async def invite_user(
        self,
        email: str,
        role: str,
        client_id: Optional[str],
        full_name: Optional[str],
    ) -> FunctionResponse:
        return await self.call(
            "invite-user",
            {"email": email, "role": role, "client_id": client_id, "full_name": full_name},
        )


functions_client = FunctionsClient()
