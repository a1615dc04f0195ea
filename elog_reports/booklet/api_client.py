import http.client
import json
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, Dict, Optional

from .config import resolve_api_base, resolve_api_token
from .errors import ApiError


class ApiClient:
    """
    Minimal JSON reader for the activity-log API. Every request carries the
    bearer credential handed over by the session; the client never refreshes it.
    No timeout is applied unless the caller asks for one.
    """

    def __init__(self, base_url: Optional[str] = None, token: Optional[str] = None, timeout: Optional[float] = None):
        self.base_url = (base_url or resolve_api_base()).rstrip("/")
        self.token = resolve_api_token() if token is None else token
        self.timeout = timeout

    def _url(self, path: str, params: Optional[Dict[str, Any]] = None) -> str:
        target = f"{self.base_url}/{path.lstrip('/')}"
        if params:
            clean = {k: v for k, v in params.items() if v is not None and v != ""}
            if clean:
                target = f"{target}?{urllib.parse.urlencode(clean)}"
        return target

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        target = self._url(path, params)
        req = urllib.request.Request(target, headers=self._headers())
        kwargs = {} if self.timeout is None else {"timeout": self.timeout}
        try:
            with urllib.request.urlopen(req, **kwargs) as resp:
                return json.loads(resp.read().decode("utf-8"))
        except urllib.error.HTTPError as exc:
            raise ApiError(_error_message(exc), status=exc.code, path=path) from exc
        except urllib.error.URLError as exc:
            raise ApiError(f"Request to {path} failed: {exc.reason}", path=path) from exc
        except (OSError, http.client.HTTPException) as exc:
            raise ApiError(f"Reading {path} failed: {exc}", path=path) from exc
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ApiError(f"Response from {path} is not valid JSON", path=path) from exc


def _error_message(exc: urllib.error.HTTPError) -> str:
    # The API reports failures as {"error": "..."}; fall back to the HTTP reason.
    try:
        body = json.loads(exc.read().decode("utf-8") or "{}")
    except (ValueError, OSError, http.client.HTTPException):
        body = {}
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"HTTP {exc.code}: {exc.reason}"
