"""
BSD (Blue State Digital) API client.

Signed requests go to https://<host>/page/api/<call>. Every request carries
api_ver, api_id and api_ts plus an api_mac computed as

    HMAC-SHA1(secret, "<api_id>\\n<api_ts>\\n/page/api/<call>\\n<query>")

where <query> is the unencoded query string. Most calls answer in XML, which
is converted to plain dictionaries. Long running calls answer 202 with a
deferred id that is polled until the result is ready.
"""

import asyncio
import hashlib
import hmac
import json
import time
import xml.etree.ElementTree as ET
from collections.abc import Callable
from typing import Any

import httpx

from groundcontrol.config import Settings, get_settings
from groundcontrol.shared.logging import get_logger

logger = get_logger(__name__)

API_VERSION = "2"
API_ROOT = "/page/api"
DEFERRED_NOT_READY = 503


class BSDError(Exception):
    """BSD answered with an error."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class BSDValidationError(BSDError):
    """BSD rejected the submitted values."""


class BSDExistsError(BSDError):
    """The referenced BSD object does not exist."""


def _element_to_value(element: ET.Element) -> Any:
    children = list(element)
    text = (element.text or "").strip()
    if not children and not element.attrib:
        return text or None

    value: dict[str, Any] = dict(element.attrib)
    for child in children:
        child_value = _element_to_value(child)
        if child.tag in value:
            existing = value[child.tag]
            if not isinstance(existing, list):
                value[child.tag] = [existing]
            value[child.tag].append(child_value)
        else:
            value[child.tag] = child_value
    if text:
        value["#text"] = text
    return value


def xml_to_dict(body: str) -> dict[str, Any]:
    """Convert an XML document to nested dicts.

    Attributes and child elements become keys; repeated child elements become
    lists; leaf text becomes a string.
    """
    root = ET.fromstring(body)
    return {root.tag: _element_to_value(root)}


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _with_id(record: dict[str, Any], id_key: str) -> dict[str, Any]:
    record = dict(record)
    if "id" in record:
        record[id_key] = record.pop("id")
    return record


class BSDClient:
    """Async BSD API client.

    Uses httpx for HTTP requests. Pass `http_client` to share a connection
    pool or to inject a mock transport.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
        timestamp: Callable[[], float] = time.time,
        deferred_poll_interval: float = 1.0,
        deferred_max_attempts: int = 30,
    ) -> None:
        self._settings = settings or get_settings()
        self._http_client = http_client
        self._owns_client = http_client is None
        self._timestamp = timestamp
        self._deferred_poll_interval = deferred_poll_interval
        self._deferred_max_attempts = deferred_max_attempts

    def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._settings.bsd_api_timeout_seconds)
            )
        return self._http_client

    async def close(self) -> None:
        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    @property
    def base_url(self) -> str:
        return f"https://{self._settings.bsd_host}"

    def signed_params(self, call: str, params: dict[str, Any] | None = None) -> list[tuple[str, str]]:
        """Query parameters for a signed API call, api_mac included."""
        api_id = self._settings.bsd_api_id
        api_ts = str(int(self._timestamp()))
        pairs = [("api_ver", API_VERSION), ("api_id", api_id), ("api_ts", api_ts)]
        for key, value in (params or {}).items():
            for item in _as_list(value):
                pairs.append((key, str(item)))

        query = "&".join(f"{key}={value}" for key, value in pairs)
        signing_string = f"{api_id}\n{api_ts}\n{API_ROOT}/{call}\n{query}"
        api_mac = hmac.new(
            self._settings.bsd_api_secret.encode("utf-8"),
            signing_string.encode("utf-8"),
            hashlib.sha1,
        ).hexdigest()
        return pairs + [("api_mac", api_mac)]

    async def request(
        self,
        method: str,
        call: str,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        content: str | None = None,
    ) -> str:
        """Make a signed API call and return the response body.

        Raises:
            BSDError: On any error status, after deferred results resolve.
        """
        client = self._get_client()
        url = f"{self.base_url}{API_ROOT}/{call}"

        logger.debug("BSD API request", extra={"call": call, "method": method})
        response = await client.request(
            method,
            url,
            params=self.signed_params(call, params),
            data=data,
            content=content,
        )

        if response.status_code == 202:
            return await self._deferred_result(response.text.strip())

        self._raise_for_status(call, response)
        return response.text

    async def _deferred_result(self, deferred_id: str) -> str:
        client = self._get_client()
        call = "get_deferred_results"
        url = f"{self.base_url}{API_ROOT}/{call}"

        for _ in range(self._deferred_max_attempts):
            response = await client.get(
                url, params=self.signed_params(call, {"deferred_id": deferred_id})
            )
            if response.status_code != DEFERRED_NOT_READY:
                self._raise_for_status(call, response)
                return response.text
            await asyncio.sleep(self._deferred_poll_interval)

        raise BSDError(f"Deferred result {deferred_id} was not ready in time", 504)

    def _raise_for_status(self, call: str, response: httpx.Response) -> None:
        if response.status_code < 400:
            return
        message = response.text.strip() or response.reason_phrase
        logger.warning(
            "BSD API error",
            extra={"call": call, "status_code": response.status_code, "body": message[:500]},
        )
        if response.status_code == 409:
            raise BSDExistsError(message, response.status_code)
        raise BSDError(message, response.status_code)

    async def get_form(self, signup_form_id: int | str) -> dict[str, Any]:
        body = await self.request("GET", "signup/get_form", {"signup_form_id": signup_form_id})
        form = xml_to_dict(body)["api"]["signup_form"]
        return _with_id(form, "signup_form_id")

    async def list_form_fields(self, signup_form_id: int | str) -> list[dict[str, Any]]:
        body = await self.request(
            "GET", "signup/list_form_fields", {"signup_form_id": signup_form_id}
        )
        api = xml_to_dict(body)["api"] or {}
        fields = _as_list(api.get("signup_form_field"))
        return [_with_id(field, "signup_form_field_id") for field in fields]

    async def get_constituent_group(self, cons_group_id: int | str) -> dict[str, Any]:
        body = await self.request(
            "GET", "cons_group/get_constituent_group", {"cons_group_id": cons_group_id}
        )
        group = xml_to_dict(body)["api"]["cons_group"]
        return _with_id(group, "cons_group_id")

    async def update_event(self, event: dict[str, Any]) -> dict[str, Any]:
        """Push an event's values to BSD.

        Raises:
            BSDValidationError: BSD rejected one or more values.
            BSDExistsError: The event no longer exists in BSD.
        """
        body = await self.request(
            "POST",
            "event/update_event",
            data={"event_api_version": API_VERSION, "values": json.dumps(event, default=str)},
        )
        try:
            result = json.loads(body) if body.strip() else {}
        except ValueError as exc:
            raise BSDError(f"Unreadable update_event response: {body[:200]}") from exc

        errors = result.get("validation_errors") if isinstance(result, dict) else None
        if errors:
            messages = []
            for field, problems in errors.items():
                messages.append(f"{field}: {', '.join(str(p) for p in _as_list(problems))}")
            raise BSDValidationError("; ".join(messages), 400)

        error = result.get("error") if isinstance(result, dict) else None
        if error:
            if "does not exist" in str(error):
                raise BSDExistsError(str(error), 409)
            raise BSDError(str(error))
        return result

    async def delete_events(self, event_ids: list[int | str]) -> None:
        for event_id in event_ids:
            await self.request(
                "POST",
                "event/delete_event",
                data={
                    "event_api_version": API_VERSION,
                    "values": json.dumps({"event_id": int(event_id)}),
                },
            )

    async def add_rsvp_to_event(self, rsvp: dict[str, Any]) -> str:
        """RSVP a person to an event through the public graph endpoint.

        `rsvp` holds email, zip, phone and event_id_obfuscated.
        """
        params = {key: value for key, value in rsvp.items() if value is not None}
        params["will_attend"] = "1"
        response = await self._get_client().get(
            f"{self.base_url}/page/graph/addrsvp", params=params
        )
        self._raise_for_status("graph/addrsvp", response)
        return response.text

    async def process_signup(
        self,
        signup_form_id: int | str,
        field_values: dict[int | str, Any],
    ) -> str:
        root = ET.Element("api")
        form = ET.SubElement(root, "signup_form", id=str(signup_form_id))
        for field_id, value in field_values.items():
            field = ET.SubElement(form, "signup_form_field", id=str(field_id))
            field.text = "" if value is None else str(value)
        document = '<?xml version="1.0" encoding="utf-8"?>' + ET.tostring(root, encoding="unicode")

        return await self.request("POST", "signup/process_signup", content=document)

    async def check_credentials(self, email: str, password: str) -> dict[str, Any] | None:
        """Return the constituent record for valid credentials, None otherwise."""
        try:
            body = await self.request(
                "GET", "account/check_credentials", {"userid": email, "password": password}
            )
        except BSDError as exc:
            if exc.status_code in (401, 403, 409):
                return None
            raise
        api = xml_to_dict(body).get("api") or {}
        cons = api.get("cons") if isinstance(api, dict) else None
        return cons or None

    async def set_constituent_password(self, email: str, password: str) -> None:
        await self.request(
            "POST", "account/set_cons_password", data={"userid": email, "password": password}
        )

    async def no_fail_api_request(self, method: str, *args: Any, **kwargs: Any) -> Any:
        """Call `method` and log instead of raising when BSD fails.

        Returns:
            The method's result, or None when the call failed.
        """
        try:
            return await getattr(self, method)(*args, **kwargs)
        except (BSDError, httpx.HTTPError, ET.ParseError, ValueError):
            logger.exception(
                "No-fail BSD request failed",
                extra={"bsd_method": method},
            )
            return None
