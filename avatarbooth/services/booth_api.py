"""
Booth API Client
Talks to this service's own /api/predictions proxy, the way the booth
front end does.
"""

from typing import Any, Dict

import httpx

from avatarbooth.schemas.prediction import Prediction
from avatarbooth.services.backend import parse_prediction, send


class BoothApiClient:
    """Prediction backend backed by a running Avatar Booth API."""

    def __init__(self, http: httpx.AsyncClient, base_url: str):
        self.http = http
        self.base_url = base_url.rstrip("/")

    async def create_prediction(self, input: Dict[str, Any]) -> Prediction:
        body = await send(self.http, "POST", f"{self.base_url}/api/predictions", 201, json=input)
        return parse_prediction(body)

    async def get_prediction(self, prediction_id: str) -> Prediction:
        body = await send(self.http, "GET", f"{self.base_url}/api/predictions/{prediction_id}", 200)
        return parse_prediction(body)
