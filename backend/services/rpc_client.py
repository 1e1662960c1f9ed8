"""
Client RPC vers le backend distant (PostgREST / Supabase)

Chaque procédure stockée est appelée par son nom avec des paramètres nommés:
- Endpoint: POST {SUPABASE_URL}/rest/v1/rpc/{procedure}
- Auth: headers apikey + Authorization: Bearer {key}
- Body: JSON des paramètres (les valeurs None sont omises)

Toute erreur (HTTP, réseau, timeout) remonte en RPCError.
"""

import httpx
import logging
from typing import Any, Dict, Optional

from config import SUPABASE_URL, SUPABASE_KEY, RPC_TIMEOUT_SECONDS

logger = logging.getLogger("rpc_client")


class RPCError(Exception):
    """Remote procedure failed (backend error, network error or timeout)"""

    def __init__(self, message: str, code: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code


# ==================== HELPERS ====================

def to_optional_param(value: Optional[str]) -> Optional[str]:
    """Blank strings are sent as absent parameters"""
    if value is None or value.strip() == "":
        return None
    return value


def handle_rpc_response(data: Any, default_message: str = "RPC function failed") -> Any:
    """
    Check the {success, message} envelope some procedures answer with.

    A bare `false` or `{"success": false}` is a failure.
    """
    if data is None:
        raise RPCError("No response data received")
    if data is False:
        raise RPCError(default_message)
    if isinstance(data, dict) and "success" in data and not data["success"]:
        raise RPCError(data.get("message") or default_message)
    return data


def _error_from_response(procedure: str, resp: httpx.Response) -> RPCError:
    try:
        body = resp.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        message = body.get("message") or body.get("error") or resp.text
        code = body.get("code")
    else:
        message = resp.text or f"HTTP {resp.status_code}"
        code = None

    return RPCError(message or f"{procedure} failed", code=code, status_code=resp.status_code)


# ==================== CLIENT ====================

class SupabaseRPCClient:
    """Async caller for the remote stored procedures"""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = RPC_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
        )

    async def call(
        self,
        procedure: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Call one procedure and return its decoded JSON result.

        timeout overrides the client default for this call only.
        """
        payload = {k: v for k, v in (params or {}).items() if v is not None}
        extra = {"timeout": timeout} if timeout is not None else {}

        try:
            resp = await self._http.post(f"/rest/v1/rpc/{procedure}", json=payload, **extra)
        except httpx.TimeoutException:
            logger.error(f"RPC timeout: {procedure}")
            raise RPCError(f"Timeout - {procedure} did not respond")
        except httpx.HTTPError as e:
            logger.error(f"RPC transport error: {procedure}: {str(e)}")
            raise RPCError(str(e) or f"{procedure} failed")

        if resp.status_code >= 400:
            error = _error_from_response(procedure, resp)
            logger.error(f"RPC error: {procedure} status={resp.status_code} message={error.message}")
            raise error

        if resp.status_code == 204 or not resp.content:
            return None

        try:
            return resp.json()
        except ValueError:
            raise RPCError(f"Invalid JSON returned by {procedure}", status_code=resp.status_code)

    async def aclose(self):
        await self._http.aclose()


def get_rpc_client() -> SupabaseRPCClient:
    """Build the client from the environment"""
    if not SUPABASE_URL or not SUPABASE_KEY:
        raise ValueError("SUPABASE_URL and SUPABASE_KEY environment variables are required")
    return SupabaseRPCClient(SUPABASE_URL, SUPABASE_KEY)
