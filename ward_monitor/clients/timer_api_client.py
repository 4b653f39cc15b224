"""
HTTP client for the Partogram Service API.
Provides a clean interface for ward views to read timers and record measurements.

Error mapping:
    - Network failures, timeouts, 5xx, 408, 429 and undecodable bodies
      -> TransientSyncError
      (a ConnectionError; views keep their cached state and retry later)
    - 4xx responses -> APIResponseError (a ValueError carrying status and detail)
"""
import httpx
import logging
from typing import Optional, List, Dict, Any
from datetime import datetime

from config import PARTOGRAM_SVC_API_URL, REQUEST_TIMEOUT

logger = logging.getLogger(__name__)

# Request timeout and rate limiting: retry on the next poll
RETRYABLE_STATUS_CODES = (408, 429)


class TransientSyncError(ConnectionError):
    """The server could not be reached or failed; worth retrying."""


class APIResponseError(ValueError):
    """The server rejected the request (4xx)."""

    def __init__(self, status_code: int, detail: str, context: Optional[Dict[str, Any]] = None):
        self.status_code = status_code
        self.detail = detail
        self.context = context or {}
        super().__init__(f"API error {status_code}: {detail}")


class PartogramAPIClient:
    """Client for the Partogram Service REST API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Args:
            base_url: Service URL. Defaults to PARTOGRAM_SVC_API_URL.
            timeout: Request timeout in seconds. Defaults to REQUEST_TIMEOUT.
            transport: Custom httpx transport (e.g. httpx.MockTransport in tests).
        """
        self.base_url = base_url or PARTOGRAM_SVC_API_URL
        if not self.base_url:
            raise ValueError("PARTOGRAM_SVC_API_URL must be set in config")

        # Remove trailing slash
        self.base_url = self.base_url.rstrip("/")
        self.timeout = timeout if timeout is not None else REQUEST_TIMEOUT
        self._transport = transport

    async def _request(
        self,
        method: str,
        endpoint: str,
        **kwargs
    ) -> Any:
        """
        Make HTTP request to API.

        Returns:
            Decoded JSON body, or None for 204 responses.

        Raises:
            APIResponseError: For 4xx responses other than 408 and 429
            TransientSyncError: For 5xx, 408, 429, connection/request errors
                and bodies that are not JSON
        """
        url = f"{self.base_url}{endpoint}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.request(method, url, **kwargs)
                response.raise_for_status()
                if response.status_code == 204:
                    return None
                return response.json()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            if status_code >= 500 or status_code in RETRYABLE_STATUS_CODES:
                error_msg = f"Retryable error {status_code} on {method} {endpoint}"
                logger.warning(error_msg)
                raise TransientSyncError(error_msg) from e

            detail, context = _error_detail(e.response)
            logger.error(f"API error {status_code} on {method} {endpoint}: {detail}")
            raise APIResponseError(status_code, detail, context) from e
        except httpx.RequestError as e:
            error_msg = f"Request error: {e}"
            logger.warning(error_msg)
            raise TransientSyncError(error_msg) from e
        except ValueError as e:
            # 2xx with a body that is not JSON (e.g. a proxy login page)
            error_msg = f"Undecodable response on {method} {endpoint}: {e}"
            logger.warning(error_msg)
            raise TransientSyncError(error_msg) from e

    # Timer methods
    async def get_timers(self) -> List[Dict[str, Any]]:
        """Timer state for every patient (list view)."""
        return await self._request("GET", "/api/v1/timers")

    async def get_timer(self, patient_id: int) -> Dict[str, Any]:
        """
        Full timer state for one patient (partogram view).

        Raises:
            APIResponseError: 404 if the patient does not exist
        """
        return await self._request("GET", f"/api/v1/patients/{patient_id}/timer")

    async def get_server_time(self) -> Dict[str, Any]:
        return await self._request("GET", "/api/v1/server_time")

    # Patient methods
    async def add_patient(self, full_name: str, **details: Any) -> Dict[str, Any]:
        """
        Admit a patient.

        Args:
            full_name: Patient's full name.
            **details: Optional admission fields (age, parity, gestational_age, ...).
        """
        return await self._request(
            "POST",
            "/api/v1/patients",
            json={"full_name": full_name, **details}
        )

    async def get_patients(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        params = {"limit": limit} if limit is not None else None
        return await self._request("GET", "/api/v1/patients", params=params)

    # Measurement methods
    async def record_measurement(
        self,
        patient_id: int,
        time: Optional[datetime] = None,
        **fields: Any
    ) -> Dict[str, Any]:
        """
        Record a partogram entry.

        Args:
            patient_id: Patient the entry belongs to.
            time: Clinical time; the server uses its own clock when omitted.
            **fields: Clinical values (cervical_dilation, fetal_heart_rate, ...).

        Returns:
            Dict with the stored measurement and the recomputed timer.

        Raises:
            APIResponseError: 409 if labor is completed, 422 for invalid values
            TransientSyncError: If the server is unreachable
        """
        payload = dict(fields)
        if time is not None:
            payload["time"] = time.isoformat()

        return await self._request(
            "POST",
            f"/api/v1/patients/{patient_id}/measurements",
            json=payload
        )

    async def get_measurements(self, patient_id: int) -> List[Dict[str, Any]]:
        return await self._request("GET", f"/api/v1/patients/{patient_id}/measurements")

    async def delete_measurement(self, patient_id: int, measurement_id: int) -> None:
        await self._request("DELETE", f"/api/v1/patients/{patient_id}/measurements/{measurement_id}")

    async def complete_labor(self, patient_id: int) -> Dict[str, Any]:
        return await self._request("POST", f"/api/v1/patients/{patient_id}/complete_labor")


def _error_detail(response: httpx.Response):
    """Pull detail/context out of the service's error body, falling back to raw text."""
    try:
        body = response.json()
    except ValueError:
        return response.text, {}
    if isinstance(body, dict):
        detail = body.get("detail", response.text)
        if not isinstance(detail, str):
            # FastAPI request validation errors carry a list
            detail = str(detail)
        return detail, body.get("context") or {}
    return response.text, {}


# Global client instance
_client_instance: Optional[PartogramAPIClient] = None


def get_partogram_api_client() -> PartogramAPIClient:
    """Get or create the global API client instance."""
    global _client_instance
    if _client_instance is None:
        _client_instance = PartogramAPIClient()
    return _client_instance
