"""HTTP wrapper utilities for the pipeline board API client.

Calls never raise: failures come back as
{"status": "error", "error": <message>, "code": <code>}.
"""

import os
from typing import Optional

import requests

URL = os.environ.get("PIPELINE_SERVER_URL", "http://localhost:8000").rstrip("/")


def _error(message: str, code: Optional[str]) -> dict:
    err = {"status": "error", "error": message}
    if code:
        err["code"] = code
    return err


def _make_request(method: str, path: str, timeout: int, error_code: Optional[str], **kwargs) -> dict:
    """Generic request with error handling."""
    try:
        resp = getattr(requests, method)(f"{URL}{path}", timeout=timeout, **kwargs)
        resp.raise_for_status()
        return resp.json()
    except requests.exceptions.HTTPError:
        # Server errors already use the envelope; keep its code
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("status") == "error":
            return _error(body.get("error", "Unknown"), body.get("code") or error_code)
        text = resp.text[:200] if resp.text else "(empty)"
        return _error(f"Server returned {resp.status_code}: {text}", error_code)
    except requests.exceptions.JSONDecodeError:
        text = resp.text[:200] if resp.text else "(empty)"
        return _error(f"Invalid response ({resp.status_code}): {text}", error_code)
    except requests.RequestException as e:
        return _error(str(e), error_code)


def get(path: str, timeout: int = 10, error_code: Optional[str] = None, **kwargs) -> dict:
    return _make_request("get", path, timeout, error_code, **kwargs)


def post(path: str, timeout: int = 10, error_code: Optional[str] = None, **kwargs) -> dict:
    return _make_request("post", path, timeout, error_code, **kwargs)


def put(path: str, timeout: int = 10, error_code: Optional[str] = None, **kwargs) -> dict:
    return _make_request("put", path, timeout, error_code, **kwargs)


def patch(path: str, timeout: int = 10, error_code: Optional[str] = None, **kwargs) -> dict:
    return _make_request("patch", path, timeout, error_code, **kwargs)


def delete(path: str, timeout: int = 10, error_code: Optional[str] = None, **kwargs) -> dict:
    return _make_request("delete", path, timeout, error_code, **kwargs)
