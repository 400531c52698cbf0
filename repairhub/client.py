"""
Thin client for the RepairHub JSON API.

    client = RepairHubClient("http://localhost:3000/api")
    client.login("ana@example.com", "secret123")
    repair = client.create_repair("Phone - iPhone 12", "cracked screen")
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from repairhub.config import settings

logger = logging.getLogger(__name__)

class ApiError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message

class RepairHubClient:
    def __init__(
            self,
            base_url: str = settings.API_BASE_URL,
            token: Optional[str] = None,
            http: Optional[httpx.Client] = None,
            timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.http = http or httpx.Client(timeout=timeout)

    def close(self):
        self.http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def request(
            self,
            method: str,
            path: str,
            json: Any = None,
            params: Optional[Dict[str, Any]] = None,
            auth: bool = True,
    ) -> Any:
        headers = {}
        if auth and self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        response = self.http.request(
            method,
            f"{self.base_url}{path}",
            json=json,
            params=params or None,
            headers=headers,
        )
        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.status_code >= 400:
            message = data.get("error") if isinstance(data, dict) else None
            logger.warning(f"{method} {path} failed with {response.status_code}")
            raise ApiError(response.status_code, message or response.reason_phrase)
        return data

    # Auth

    def login(self, email: str, password: str) -> dict:
        data = self.request("POST", "/auth/login", json={"email": email, "password": password}, auth=False)
        self.token = data.get("token")
        return data

    def register(self, email: str, username: str, password: str, role: str = "customer", **extra) -> dict:
        payload = {
            "email": email,
            "username": username,
            "password": password,
            "confirmPassword": extra.pop("confirmPassword", password),
            "role": role,
            **extra,
        }
        data = self.request("POST", "/auth/register", json=payload, auth=False)
        self.token = data.get("token")
        return data

    def logout(self) -> None:
        try:
            self.request("POST", "/auth/logout")
        finally:
            self.token = None
            self.http.cookies.clear()

    def profile(self) -> dict:
        return self.request("GET", "/auth/profile")["user"]

    def update_profile(self, **fields) -> dict:
        return self.request("PUT", "/auth/profile", json=fields)["user"]

    # Repairs

    def list_repairs(self) -> List[dict]:
        return self.request("GET", "/repairs")

    def create_repair(self, title: str, description: str) -> dict:
        return self.request("POST", "/repairs", json={"title": title, "description": description})

    def available_repairs(self) -> List[dict]:
        return self.request("GET", "/repairs/available")

    def get_repair(self, repair_id: str) -> dict:
        return self.request("GET", f"/repairs/{repair_id}")

    def update_repair(self, repair_id: str, **fields) -> dict:
        return self.request("PUT", f"/repairs/{repair_id}", json=fields)

    def delete_repair(self, repair_id: str) -> dict:
        return self.request("DELETE", f"/repairs/{repair_id}")

    def claim_repair(self, repair_id: str) -> dict:
        return self.request("POST", f"/repairs/{repair_id}/claim")

    # Messages

    def conversations(self) -> List[dict]:
        return self.request("GET", "/messages")

    def thread(self, repair_id: str) -> List[dict]:
        return self.request("GET", "/messages", params={"repairId": repair_id})

    def send_message(self, repair_id: str, content: str) -> dict:
        return self.request("POST", "/messages", json={"repairId": repair_id, "content": content})
