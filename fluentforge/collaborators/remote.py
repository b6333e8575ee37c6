"""Remote bytecode fetcher collaborator (Ethereum-style JSON-RPC over httpx).

No retries.  A flaky endpoint surfaces as a fetch failure, never as a
bytecode mismatch.
"""

from __future__ import annotations

import itertools
import logging
import re
from typing import Any, Protocol, runtime_checkable

import httpx

from fluentforge.core.errors import FetchError, FetchTimeoutError

logger = logging.getLogger(__name__)

_ADDRESS = re.compile(r"^0x[0-9a-fA-F]{40}$")


@runtime_checkable
class BytecodeFetcher(Protocol):
    """Reads deployed bytecode for a contract address."""

    def fetch(self, endpoint: str, chain_id: int, address: str) -> bytes:
        ...


def _decode_hex(value: Any, what: str) -> bytes:
    if not isinstance(value, str) or not value.startswith(("0x", "0X")):
        raise FetchError(f"Malformed {what} in RPC response: {value!r}")
    try:
        return bytes.fromhex(value[2:])
    except ValueError as exc:
        raise FetchError(f"Malformed {what} in RPC response: {value!r}") from exc


def _decode_quantity(value: Any) -> int:
    if not isinstance(value, str) or not value.startswith(("0x", "0X")):
        raise FetchError(f"Malformed chain id in RPC response: {value!r}")
    try:
        return int(value, 16)
    except ValueError as exc:
        raise FetchError(f"Malformed chain id in RPC response: {value!r}") from exc


class JsonRpcBytecodeFetcher:
    """Fetches code via ``eth_chainId`` + ``eth_getCode``.

    Parameters
    ----------
    timeout:
        Per-request timeout in seconds.
    transport:
        Optional httpx transport, e.g. ``httpx.MockTransport`` in tests.
    """

    def __init__(
        self, timeout: float = 10.0, transport: httpx.BaseTransport | None = None
    ) -> None:
        self.timeout = timeout
        self._transport = transport
        self._ids = itertools.count(1)

    def _call(self, client: httpx.Client, endpoint: str, method: str, params: list[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        logger.debug("RPC %s -> %s", method, endpoint)
        try:
            resp = client.post(endpoint, json=payload)
            resp.raise_for_status()
            body = resp.json()
        except httpx.TimeoutException as exc:
            raise FetchTimeoutError(
                f"RPC {method} to {endpoint} timed out after {self.timeout}s"
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise FetchError(
                f"RPC {method} to {endpoint} returned HTTP {exc.response.status_code}",
                stdout=exc.response.text,
            ) from exc
        except httpx.HTTPError as exc:
            raise FetchError(f"RPC {method} to {endpoint} failed: {exc}") from exc
        except ValueError as exc:
            raise FetchError(f"RPC {method} to {endpoint} returned invalid JSON") from exc

        if not isinstance(body, dict):
            raise FetchError(f"RPC {method} returned a non-object response")
        if body.get("error"):
            err = body["error"]
            message = err.get("message", err) if isinstance(err, dict) else err
            raise FetchError(f"RPC {method} error: {message}")
        if "result" not in body:
            raise FetchError(f"RPC {method} response has no result")
        return body["result"]

    def fetch(self, endpoint: str, chain_id: int, address: str) -> bytes:
        """Deployed code at *address*, after checking the endpoint's chain id.

        Raises
        ------
        FetchError
            Invalid address, chain mismatch, RPC failure, or no code.
        FetchTimeoutError
            If a request exceeds ``timeout``.
        """
        if not _ADDRESS.match(address):
            raise FetchError(f"Invalid contract address: {address!r}")

        with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
            remote_chain = _decode_quantity(self._call(client, endpoint, "eth_chainId", []))
            if remote_chain != chain_id:
                raise FetchError(
                    f"Chain id mismatch: endpoint reports {remote_chain}, expected {chain_id}"
                )
            code = _decode_hex(
                self._call(client, endpoint, "eth_getCode", [address, "latest"]), "code"
            )

        if not code:
            raise FetchError(f"No contract code at {address} on chain {chain_id}")
        logger.info("Fetched %d bytes of code from %s", len(code), address)
        return code
