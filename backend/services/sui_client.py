"""
SuiClient - JSON-RPC 2.0 gateway to a Sui fullnode.

No application logic lives here: fetch objects, page through events,
build unsigned move calls, submit signed transactions. Failures are
mapped to the ledger error types in services.errors.

Usage:
    client = SuiClient(rpc_url="https://fullnode.testnet.sui.io")
    room = await client.get_object("0xabc...")
    events = await client.query_events("0xpkg::money_race_v2::PlayerJoined", limit=50)
    await client.close()
"""
import base64
import itertools
import logging
from typing import Any, Dict, List, Optional

import httpx

from config.constants import GAS_BUDGET, RPC_PAGE_SIZE
from models.domain.ledger import LedgerObject, MoveCall
from services.errors import (
    LedgerRpcError,
    LedgerTimeoutError,
    LedgerUnavailableError,
    ObjectNotFoundError,
)

logger = logging.getLogger(__name__)

# Response options requested for every executed transaction
EXECUTE_OPTIONS = {
    'showEffects': True,
    'showEvents': True,
    'showObjectChanges': True,
}


class SuiClient:
    """
    Async JSON-RPC client with a bounded per-request timeout.

    One instance is created at startup and shared by all requests.
    """

    def __init__(
        self,
        rpc_url: str,
        timeout: float = 15.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.rpc_url = rpc_url
        self.timeout = timeout
        self._client = http_client
        self._ids = itertools.count(1)

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self):
        """Close the underlying HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    async def call(self, method: str, params: List[Any]) -> Any:
        """
        Issue one JSON-RPC request and return its result.

        Raises:
            LedgerTimeoutError: node did not answer in time
            LedgerUnavailableError: network or HTTP failure
            LedgerRpcError: node returned a JSON-RPC error object
        """
        payload = {
            'jsonrpc': '2.0',
            'id': next(self._ids),
            'method': method,
            'params': params,
        }
        client = self._ensure_client()

        try:
            response = await client.post(self.rpc_url, json=payload)
            response.raise_for_status()
            body = response.json()
        except httpx.TimeoutException as e:
            logger.warning(f"RPC {method} timed out after {self.timeout}s")
            raise LedgerTimeoutError(f"Ledger RPC timed out: {method}") from e
        except httpx.HTTPStatusError as e:
            logger.error(f"RPC {method} HTTP {e.response.status_code}")
            raise LedgerUnavailableError(
                f"Ledger RPC returned HTTP {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            logger.error(f"RPC {method} request failed: {e}")
            raise LedgerUnavailableError(f"Ledger RPC unreachable: {e}") from e
        except ValueError as e:
            raise LedgerUnavailableError(f"Ledger RPC returned invalid JSON: {e}") from e

        if not isinstance(body, dict):
            logger.error(f"RPC {method} returned a non-object body")
            raise LedgerUnavailableError("Ledger RPC returned a malformed response")

        if body.get('error'):
            error = body['error']
            raise LedgerRpcError(error.get('message', 'Unknown RPC error'), code=error.get('code'))

        return body.get('result')

    # =========================================================================
    # OBJECTS
    # =========================================================================

    async def get_object(
        self,
        object_id: str,
        show_content: bool = True,
        show_type: bool = True,
        show_owner: bool = False,
    ) -> LedgerObject:
        """
        Fetch one object by id.

        Raises:
            ObjectNotFoundError: the id does not resolve (deleted or never existed)
        """
        result = await self.call('sui_getObject', [
            object_id,
            {
                'showContent': show_content,
                'showType': show_type,
                'showOwner': show_owner,
            },
        ])

        data = (result or {}).get('data')
        if not data:
            error = (result or {}).get('error') or {}
            logger.info(f"Object {object_id} not found: {error.get('code', 'no data')}")
            raise ObjectNotFoundError(object_id)

        content = data.get('content') or {}
        return LedgerObject(
            object_id=data.get('objectId', object_id),
            object_type=data.get('type') or content.get('type'),
            owner=data.get('owner'),
            fields=content.get('fields') or {},
            version=data.get('version'),
        )

    # =========================================================================
    # EVENTS
    # =========================================================================

    async def query_events(
        self,
        event_type: str,
        limit: int,
        descending: bool = True,
    ) -> List[Dict[str, Any]]:
        """
        Query events of one Move type, following nextCursor until `limit`
        events are collected or the node reports no further page.
        """
        events: List[Dict[str, Any]] = []
        cursor = None

        while len(events) < limit:
            page_size = min(RPC_PAGE_SIZE, limit - len(events))
            page = await self.call('suix_queryEvents', [
                {'MoveEventType': event_type},
                cursor,
                page_size,
                descending,
            ]) or {}

            data = page.get('data') or []
            events.extend(data)

            cursor = page.get('nextCursor')
            if not page.get('hasNextPage') or not cursor or not data:
                break

        return events[:limit]

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    async def build_move_call(
        self,
        signer: str,
        move_call: MoveCall,
        gas_budget: int = GAS_BUDGET,
        gas_object: Optional[str] = None,
    ) -> str:
        """
        Have the node build an unsigned move-call transaction.

        Returns:
            Base64 transaction bytes ready for signing
        """
        result = await self.call('unsafe_moveCall', [
            signer,
            move_call.package_id,
            move_call.module,
            move_call.function,
            move_call.type_arguments,
            move_call.arguments,
            gas_object,
            str(gas_budget),
        ])
        tx_bytes = (result or {}).get('txBytes')
        if not tx_bytes:
            raise LedgerRpcError(f"Node did not return transaction bytes for {move_call.target}")
        return tx_bytes

    async def execute_transaction(self, tx_bytes: str, signatures: List[str]) -> Dict[str, Any]:
        """Submit signed transaction bytes and wait for local execution."""
        # Reject obviously corrupt payloads before they reach the node
        try:
            base64.b64decode(tx_bytes, validate=True)
        except ValueError as e:
            raise LedgerRpcError(f"Transaction bytes are not valid base64: {e}") from e

        return await self.call('sui_executeTransactionBlock', [
            tx_bytes,
            signatures,
            EXECUTE_OPTIONS,
            'WaitForLocalExecution',
        ]) or {}

    # =========================================================================
    # MISC
    # =========================================================================

    async def get_balance(self, owner: str, coin_type: Optional[str] = None) -> int:
        """Total balance of one coin type in base units (SUI when coin_type is None)."""
        params: List[Any] = [owner]
        if coin_type:
            params.append(coin_type)
        result = await self.call('suix_getBalance', params) or {}
        return int(result.get('totalBalance') or 0)

    async def get_chain_identifier(self) -> str:
        return await self.call('sui_getChainIdentifier', [])
