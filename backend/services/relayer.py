"""
Transaction relay - composes, signs and submits ledger transactions.

Two submission modes:
- backend-authoritative: the node builds the move call with the sponsor as
  sender and gas owner, the sponsor is the only signer
- sponsored: the client supplies transaction bytes and its own signature,
  the sponsor signature is appended unless the client already sent the
  complete signature list

Nothing here retries. A failed fund-moving call is surfaced to the caller,
who decides whether to try again with a fresh transaction.
"""
import asyncio
import base64
import json
import logging
from typing import List, Optional, Tuple

from config.constants import (
    CLOCK_ID,
    MAX_USDC_MINT_UNITS,
    MINT_COOLDOWN_SECONDS,
    ROOM_STRUCT,
    VAULT_STRUCT,
)
from config.settings import Settings
from models.domain.ledger import MoveCall, TransactionResult
from services.background import TaskSupervisor
from services.errors import (
    ConfigurationError,
    LedgerError,
    LedgerRejectedError,
    LedgerRpcError,
    NotFoundError,
    RateLimitedError,
    ValidationError,
)
from services.sponsor import SponsorIdentity
from services.sui_client import SuiClient
from utils.blockchain import struct_name

logger = logging.getLogger(__name__)

COOLDOWN_MARKER = 'COOLDOWN_NOT_PASSED'


def _truncate(value: str, length: int = 20) -> str:
    return value if len(value) <= length else f"{value[:length]}..."


class Relayer:
    """Builds and submits Money Race transactions on behalf of users."""

    def __init__(
        self,
        sui_client: SuiClient,
        sponsor: SponsorIdentity,
        settings: Settings,
        supervisor: TaskSupervisor,
    ):
        self.sui = sui_client
        self.sponsor = sponsor
        self.settings = settings
        self.supervisor = supervisor

    # =========================================================================
    # SUBMISSION
    # =========================================================================

    async def _submit(self, tx_bytes: str, signatures: List[str]) -> TransactionResult:
        try:
            response = await self.sui.execute_transaction(tx_bytes, signatures)
        except LedgerRpcError as e:
            logger.error(f"Transaction rejected by node: {e.message}")
            raise LedgerRejectedError(f"Transaction failed: {e.message}") from e

        result = TransactionResult.from_rpc(response)
        if result.success:
            logger.info(f"Transaction executed: {result.digest}")
        else:
            logger.warning(f"Transaction {result.digest} failed on ledger: {result.error}")
        return result

    async def execute_backend(self, move_call: MoveCall) -> TransactionResult:
        """Build with the sponsor as sender and gas owner, sign only with the sponsor."""
        logger.info(f"Backend transaction: {move_call.target}")
        try:
            tx_bytes = await self.sui.build_move_call(self.sponsor.address, move_call)
        except LedgerRpcError as e:
            logger.error(f"Could not build {move_call.target}: {e.message}")
            raise LedgerRejectedError(f"Transaction failed: {e.message}") from e

        signature = self.sponsor.sign_transaction(tx_bytes)
        return await self._submit(tx_bytes, [signature])

    def compose_signatures(self, tx_bytes: str, user_signature: str) -> List[str]:
        """
        Signature list to submit alongside tx_bytes.

        A user_signature that parses as a JSON list is already the complete
        set (user + sponsor) and is used verbatim.
        """
        try:
            parsed = json.loads(user_signature)
        except ValueError:
            parsed = None

        if isinstance(parsed, list):
            if not parsed or not all(isinstance(signature, str) and signature for signature in parsed):
                raise ValidationError("Signature list must be non-empty and contain only signature strings")
            logger.info(f"Using pre-combined signature list ({len(parsed)} signatures)")
            return parsed

        return [user_signature, self.sponsor.sign_transaction(tx_bytes)]

    async def execute_sponsored(self, tx_bytes: str, user_signature: str) -> TransactionResult:
        """Submit a client-built, client-signed transaction with the sponsor paying gas."""
        if not tx_bytes:
            raise ValidationError("Transaction bytes required")
        if not user_signature:
            raise ValidationError("User signature required")
        try:
            base64.b64decode(tx_bytes, validate=True)
        except ValueError as e:
            raise ValidationError("Transaction bytes are not valid base64") from e

        logger.info(
            f"Sponsored transaction: {len(tx_bytes)} bytes (b64), "
            f"signature {_truncate(user_signature)}"
        )
        signatures = self.compose_signatures(tx_bytes, user_signature)
        return await self._submit(tx_bytes, signatures)

    # =========================================================================
    # MONEY RACE ENTRY POINTS
    # =========================================================================

    def _move_call(self, function: str, arguments: list) -> MoveCall:
        return MoveCall(
            package_id=self.settings.package_id,
            module=self.settings.contract_module,
            function=function,
            arguments=arguments,
        )

    def _require_admin_cap(self) -> str:
        if not self.settings.admin_cap_id:
            raise ConfigurationError("ADMIN_CAP_ID is not configured")
        return self.settings.admin_cap_id

    async def create_room(
        self,
        total_periods: int,
        deposit_amount: int,
        strategy_id: int,
        start_time_ms: int,
        period_length_ms: int,
    ) -> TransactionResult:
        return await self.execute_backend(self._move_call('create_room', [
            str(total_periods),
            str(deposit_amount),
            strategy_id,
            str(start_time_ms),
            str(period_length_ms),
        ]))

    async def start_room(self, room_id: str) -> TransactionResult:
        admin_cap = self._require_admin_cap()
        return await self.execute_backend(self._move_call('start_room', [admin_cap, room_id]))

    async def finalize_room(self, room_id: str) -> TransactionResult:
        admin_cap = self._require_admin_cap()
        return await self.execute_backend(self._move_call('finalize_room', [admin_cap, room_id]))

    async def fund_reward_pool(self, vault_id: str, coin_object_id: str) -> TransactionResult:
        admin_cap = self._require_admin_cap()
        return await self.execute_backend(
            self._move_call('fund_reward_pool', [admin_cap, vault_id, coin_object_id])
        )

    async def join_room(self, room_id: str, vault_id: str, coin_object_id: str) -> TransactionResult:
        return await self.execute_backend(
            self._move_call('join_room', [room_id, vault_id, CLOCK_ID, coin_object_id])
        )

    async def deposit(
        self,
        room_id: str,
        vault_id: str,
        player_position_id: str,
        coin_object_id: str,
    ) -> TransactionResult:
        return await self.execute_backend(self._move_call('deposit', [
            room_id, vault_id, player_position_id, CLOCK_ID, coin_object_id,
        ]))

    async def claim_all(self, room_id: str, vault_id: str, player_position_id: str) -> TransactionResult:
        return await self.execute_backend(
            self._move_call('claim_all', [room_id, vault_id, player_position_id])
        )

    # =========================================================================
    # TEST TOKEN FAUCET
    # =========================================================================

    @property
    def usdc_coin_type(self) -> str:
        return f"{self.settings.usdc_package_id}::usdc::USDC"

    async def mint_usdc(self, recipient: str, amount: int) -> TransactionResult:
        """
        Mint mock USDC to recipient (base units).

        Raises:
            ValidationError: amount outside (0, MAX_USDC_MINT_UNITS]
            RateLimitedError: faucet cooldown for this recipient has not elapsed
        """
        if not recipient:
            raise ValidationError("Recipient address required")
        if amount <= 0:
            raise ValidationError("Invalid amount")
        if amount > MAX_USDC_MINT_UNITS:
            raise ValidationError("Amount too large. Maximum 1000 USDC per mint")
        if not self.settings.usdc_package_id or not self.settings.usdc_faucet_id:
            raise ConfigurationError("USDC faucet is not configured")

        move_call = MoveCall(
            package_id=self.settings.usdc_package_id,
            module='usdc',
            function='mint',
            arguments=[self.settings.usdc_faucet_id, str(amount), recipient, CLOCK_ID],
        )

        try:
            result = await self.execute_backend(move_call)
        except LedgerRejectedError as e:
            if COOLDOWN_MARKER in e.message:
                raise self._cooldown_error() from e
            raise

        if not result.success and result.error and COOLDOWN_MARKER in result.error:
            raise self._cooldown_error()
        return result

    @staticmethod
    def _cooldown_error() -> RateLimitedError:
        return RateLimitedError(
            "Cooldown period not passed. You can mint USDC once every 24 hours.",
            retry_after_seconds=MINT_COOLDOWN_SECONDS,
        )

    async def get_usdc_balance(self, address: str) -> int:
        if not self.settings.usdc_package_id:
            raise ConfigurationError("USDC package is not configured")
        return await self.sui.get_balance(address, self.usdc_coin_type)

    # =========================================================================
    # ROOM CREATION FOLLOW-UP
    # =========================================================================

    async def discover_room_objects(self, result: TransactionResult) -> Tuple[Optional[str], Optional[str]]:
        """
        Find the Room and Vault created by a create_room transaction.

        Classifies each created object by the struct name of its fully-qualified
        type. Types come from the execution response when present; otherwise each
        created object is fetched after a short delay to let the node index it.

        Returns:
            (room_id, vault_id); either may be None if it could not be classified
        """
        created = result.created_objects()
        if len(created) < 2:
            logger.error(f"Expected Room and Vault in {result.digest}, got {len(created)} created object(s)")
            return None, None

        room_id = vault_id = None
        untyped = []
        for obj in created:
            name = struct_name(obj.object_type)
            if name == ROOM_STRUCT:
                room_id = obj.object_id
            elif name == VAULT_STRUCT:
                vault_id = obj.object_id
            elif obj.object_type is None:
                untyped.append(obj.object_id)

        if room_id and vault_id:
            return room_id, vault_id

        if untyped:
            logger.info(f"Created object types not in effects, fetching {len(untyped)} object(s)")
            await asyncio.sleep(self.settings.discovery_fetch_delay_seconds)

            for object_id in untyped:
                try:
                    obj = await self.sui.get_object(object_id, show_content=False, show_type=True)
                except (LedgerError, NotFoundError) as e:
                    logger.warning(f"Failed to fetch created object {object_id}: {e}")
                    continue

                name = struct_name(obj.object_type)
                if name == ROOM_STRUCT and not room_id:
                    room_id = object_id
                elif name == VAULT_STRUCT and not vault_id:
                    vault_id = object_id

        if not room_id or not vault_id:
            logger.error(f"Could not classify Room/Vault for {result.digest}: room={room_id} vault={vault_id}")
        return room_id, vault_id

    def schedule_auto_start(self, room_id: str):
        """Start the room after the indexing delay; failure is logged by the supervisor."""
        return self.supervisor.spawn(self._auto_start(room_id), name=f"auto-start:{room_id}")

    async def _auto_start(self, room_id: str):
        await asyncio.sleep(self.settings.auto_start_delay_seconds)
        result = await self.start_room(room_id)
        if result.success:
            logger.info(f"Room auto-started: {room_id} ({result.digest})")
        else:
            logger.warning(f"Auto-start of {room_id} failed on ledger: {result.error}")
        return result
