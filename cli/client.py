from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the feeds service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def get_houses(self) -> List[str]:
        payload = self._get_json("/houses")
        return list(payload.get("houses") or [])

    def get_sensors(self, house: str) -> Dict[str, Any]:
        return self._get_json(f"/houses/{house}/sensors")

    def get_series(self, house: str, params: Dict[str, Any]) -> Dict[str, Any]:
        return self._get_json(f"/houses/{house}/series", params=params)

    def get_series_csv(self, house: str, params: Dict[str, Any]) -> str:
        return self._get(f"/houses/{house}/series.csv", params=params).text

    def get_total(self, house: str, day: Optional[str] = None) -> Dict[str, Any]:
        params = {"day": day} if day else None
        return self._get_json(f"/houses/{house}/total", params=params)

    def get_logs(self, house: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {"house": house} if house else None
        payload = self._get_json("/logs", params=params)
        return list(payload.get("entries") or [])

    def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self._get(url, params=params).json()

    def _get(self, url: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        try:
            response = self._client.get(url, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.TransportError as exc:
            typer.secho(f"Could not reach {self._config.base_url}: {exc}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1) from exc
        return response

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except ValueError:
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
