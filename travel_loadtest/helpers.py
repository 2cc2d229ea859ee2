"""
HTTP helpers for the one-time setup and teardown of a load-test run.

Setup logs in with the configured test account and creates a travel
group, producing the :class:`SharedFixture` every virtual user reads.
These calls use a plain ``requests`` session rather than Locust's
client so that they never show up in the run's request statistics.

Key Concepts Demonstrated:
- Fail-fast setup: any unexpected status raises :class:`SetupError`
  so no load is generated against a misconfigured backend
- Reusable auth-header builder shared by setup and virtual users
- Tolerant JSON parsing for non-JSON error bodies
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import requests


class SetupError(RuntimeError):
    """Raised when login or fixture creation fails during setup."""


@dataclass(frozen=True)
class SharedFixture:
    """
    Data produced once by setup and read by every virtual user.

    Attributes:
        auth_token: Bearer token of the test account.
        test_group_id: Identifier of the group created for the run.
    """

    auth_token: str
    test_group_id: str


def safe_json(response: Any) -> dict[str, Any]:
    """Decode a JSON object body; anything else (HTML error page, list, empty) is ``{}``."""
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def auth_header(token: str, *, json_body: bool = False) -> dict[str, str]:
    """
    Bearer headers for the travel API.

    Only requests that send a JSON body (login is unauthenticated, so in
    practice just group creation) declare a ``Content-Type``; the read
    steps send ``Accept`` alone.
    """
    headers = {"Authorization": f"Bearer {token}", "Accept": "application/json"}
    if json_body:
        headers["Content-Type"] = "application/json"
    return headers


def group_payload(config: Any) -> dict[str, str]:
    """Build the group-create body from the run configuration."""
    return {
        "name": config.GROUP_NAME,
        "description": config.GROUP_DESCRIPTION,
        "start_date": config.GROUP_START_DATE,
        "end_date": config.GROUP_END_DATE,
    }


def login(
    session: requests.Session,
    base_url: str,
    *,
    email: str,
    password: str,
    timeout: float,
) -> str:
    """
    Log in with the test account and return its bearer token.

    Args:
        session: HTTP session used for setup calls.
        base_url: Root URL of the backend.
        email: Test account email.
        password: Test account password.
        timeout: Seconds to wait for the response.

    Returns:
        The token string from the response body.

    Raises:
        SetupError: On transport errors, a non-200 status, or a response
            without a token.
    """
    try:
        response = session.post(
            f"{base_url}/auth/login",
            json={"email": email, "password": password},
            timeout=timeout,
        )
    except requests.RequestException as exc:
        raise SetupError(f"Login request failed: {exc}") from exc

    if response.status_code != 200:
        raise SetupError(
            f"Login failed with status {response.status_code}; check the test credentials"
        )

    token = safe_json(response).get("token")
    if not isinstance(token, str) or not token:
        raise SetupError("Login response missing token")
    return token


def create_group(
    session: requests.Session,
    base_url: str,
    *,
    token: str,
    payload: dict[str, str],
    timeout: float,
) -> str:
    """
    Create the travel group every virtual user will read.

    Returns:
        The new group's id, as a string.

    Raises:
        SetupError: On transport errors, a non-201 status, or a response
            without an id.
    """
    try:
        response = session.post(
            f"{base_url}/groups",
            json=payload,
            headers=auth_header(token, json_body=True),
            timeout=timeout,
        )
    except requests.RequestException as exc:
        raise SetupError(f"Group creation request failed: {exc}") from exc

    if response.status_code != 201:
        raise SetupError(f"Could not create test group: status {response.status_code}")

    group_id = safe_json(response).get("id")
    if group_id is None or isinstance(group_id, bool) or str(group_id) == "":
        raise SetupError("Group creation response missing id")
    return str(group_id)


def delete_group(
    session: requests.Session,
    base_url: str,
    *,
    token: str,
    group_id: str,
    timeout: float,
) -> bool:
    """
    Delete the fixture group.

    Returns:
        ``True`` if the backend answered with a 2xx status, ``False`` on
        any other status or transport error.
    """
    try:
        response = session.delete(
            f"{base_url}/groups/{group_id}",
            headers=auth_header(token),
            timeout=timeout,
        )
    except requests.RequestException:
        return False
    return 200 <= response.status_code < 300
