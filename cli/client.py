from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, NoReturn

import httpx
import typer

from cli.config import CLIConfig

_XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class ApiClient:
    """Minimal HTTP client for the ingestion service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def upload_file(self, kind: str, path: Path) -> Dict[str, Any]:
        if not path.is_file():
            raise typer.BadParameter(f"Path {path} is not a file.")

        with path.open("rb") as handle:
            response = self._send(
                "POST",
                f"/uploads/{kind}",
                files={"file": (path.name, handle, _XLSX_CONTENT_TYPE)},
            )
        payload = response.json()
        if not isinstance(payload.get("file_id"), str):
            raise typer.BadParameter("Unexpected response payload when uploading file.")
        return payload

    def import_upload(self, kind: str, file_id: str) -> Dict[str, Any]:
        response = self._send("POST", f"/imports/{kind}", json={"file_id": file_id})
        return response.json()

    def production_stats(self, days: int) -> List[Dict[str, Any]]:
        response = self._send("GET", "/database/production-stats", params={"days": days})
        return response.json()

    def error_logs(self) -> List[str]:
        return self._send("GET", "/imports/error-logs").json()

    def clear_error_logs(self) -> None:
        self._send("DELETE", "/imports/error-logs")

    def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.TransportError as exc:
            _fail(f"Could not reach {self._config.base_url}: {exc}")
        if response.is_error:
            _fail(f"Request failed with status {response.status_code}: {_error_detail(response)}")
        return response


def _error_detail(response: httpx.Response) -> str:
    try:
        detail = response.json().get("detail")
    except (ValueError, AttributeError):
        detail = response.text.strip()
    return str(detail) if detail else "no detail provided."


def _fail(message: str) -> NoReturn:
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)
