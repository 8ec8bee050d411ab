"""Flow access-node client — runs read-only Cadence scripts over REST."""
from __future__ import annotations

import asyncio
import base64
import binascii
import json
import logging
import ssl
from typing import Any, Sequence

import aiohttp
import certifi

from ...config import ChainConfig
from ...errors import QueryErrorKind, RemoteQueryError
from .cadence import TypedArg, decode_value, encode_argument
from .scripts import QuerySpec, ScriptRegistry

logger = logging.getLogger(__name__)

SCRIPTS_ENDPOINT = "/v1/scripts"


def _b64(data: str) -> str:
    return base64.b64encode(data.encode("utf-8")).decode("ascii")


def _error_message(body: str) -> str:
    """Extract the access node's error message from a failed response body."""
    try:
        payload = json.loads(body)
    except ValueError:
        return body.strip() or "empty response"
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return body.strip()


class FlowClient:
    """Executes parameterized queries against one Flow access node."""

    def __init__(
        self, config: ChainConfig, scripts: ScriptRegistry | None = None
    ) -> None:
        self.endpoint = config.access_node.rstrip("/")
        self.timeout = config.rpc_timeout
        self.scripts = scripts or ScriptRegistry(config.contracts)

    async def execute(self, spec: QuerySpec, args: Sequence[TypedArg] = ()) -> Any:
        """Run the script for ``spec`` with ``args`` and return the decoded result."""
        script = self.scripts.get(spec)
        script.check_arguments(args)
        payload = {
            "script": _b64(script.code),
            "arguments": [_b64(json.dumps(encode_argument(a))) for a in args],
        }

        logger.debug("Executing %s with %d argument(s)", spec.value, len(args))
        try:
            body = await self._post_script(payload)
        except RemoteQueryError as e:
            logger.warning("Query %s failed: %s", spec.value, e)
            raise

        return self._decode_body(body)

    async def _post_script(self, payload: dict[str, Any]) -> Any:
        url = f"{self.endpoint}{SCRIPTS_ENDPOINT}"
        ssl_context = ssl.create_default_context(cafile=certifi.where())

        try:
            connector = aiohttp.TCPConnector(ssl=ssl_context)
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.post(
                    url,
                    params={"block_height": "sealed"},
                    json=payload,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as response:
                    if response.status >= 400:
                        message = _error_message(await response.text())
                        kind = (
                            QueryErrorKind.EXECUTION
                            if response.status == 400
                            else QueryErrorKind.TRANSPORT
                        )
                        raise RemoteQueryError(kind, message, status=response.status)

                    try:
                        return await response.json(content_type=None)
                    except ValueError as e:
                        raise RemoteQueryError(
                            QueryErrorKind.DECODE, f"Response is not JSON: {e}"
                        ) from e
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            raise RemoteQueryError(
                QueryErrorKind.TRANSPORT, str(e) or type(e).__name__
            ) from e

    @staticmethod
    def _decode_body(body: Any) -> Any:
        if not isinstance(body, str):
            raise RemoteQueryError(
                QueryErrorKind.DECODE, f"Expected base64 string, got {type(body).__name__}"
            )
        try:
            node = json.loads(base64.b64decode(body, validate=True))
        except (binascii.Error, ValueError) as e:
            raise RemoteQueryError(
                QueryErrorKind.DECODE, f"Malformed script result: {e}"
            ) from e
        return decode_value(node)
