"""Uploading of dashboards to a Grafana instance over its HTTP API."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import quote, urlsplit, urlunsplit

import requests
from slugify import slugify


class GrafanaError(RuntimeError):
    """Raised when a Grafana API call fails."""


class GrafanaClient:
    """Minimal client of the Grafana HTTP API authenticated with a token."""

    def __init__(
        self,
        url: str,
        token: str,
        *,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        parts = urlsplit(url)
        self.url = urlunsplit(parts)
        print("Connecting to Grafana at", self.url)
        self._api = f"{parts.scheme}://{parts.netloc}{parts.path.rstrip('/')}/api"
        self._headers = {"Authorization": f"Bearer {token}"}
        self._session = session or requests.Session()
        self.timeout = timeout

    def _request(self, method: str, path: str, failure: str, **kwargs: Any) -> Any:
        try:
            response = self._session.request(
                method,
                self._api + path,
                headers=self._headers,
                timeout=self.timeout,
                **kwargs,
            )
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as exc:
            raise GrafanaError(f"{failure}: {exc}") from exc

    def datasource_uid_by_name(self, name: str) -> str:
        """Return the UID of the datasource with the given name."""
        body = self._request(
            "GET", f"/datasources/name/{quote(name, safe='')}", "error getting data sources"
        )
        return body.get("uid", "") if isinstance(body, dict) else ""

    def ensure_folder(self, name: str) -> str:
        """Return the UID of the folder with this title, creating it if missing."""
        folders = self._request("GET", "/folders", "error getting folders")
        for folder in folders or []:
            if folder.get("title") == name:
                return folder.get("uid", "")
        created = self._request("POST", "/folders", "error creating folder", json={"title": name})
        return created.get("uid", "") if isinstance(created, dict) else ""

    def upsert_dashboard(self, folder_uid: str, dashboard: Mapping[str, Any]) -> str:
        """Save the dashboard into the folder, replacing any with the same UID.

        The UID is derived from the dashboard title. Returns the dashboard URL.
        """
        model = dict(dashboard)
        model["uid"] = slugify(model.get("title") or "")
        body = self._request(
            "POST",
            "/dashboards/db",
            "error saving dashboard",
            json={"folderUid": folder_uid, "overwrite": True, "dashboard": model},
        )
        if not isinstance(body, dict) or "url" not in body:
            raise GrafanaError("error saving dashboard: response has no dashboard URL")
        parts = urlsplit(self.url)
        return urlunsplit((parts.scheme, parts.netloc, body["url"], parts.query, parts.fragment))