"""
Test: Transaction relay
=======================

Signature composition, error mapping, Room/Vault discovery and the
USDC faucet guards.
"""
import base64
import json

import pytest

from config.constants import CLOCK_ID
from models.domain.ledger import TransactionResult
from services.background import TaskSupervisor
from services.errors import (
    ConfigurationError,
    LedgerRejectedError,
    LedgerRpcError,
    RateLimitedError,
    ValidationError,
)
from services.relayer import Relayer
from conftest import (
    ADMIN_CAP_ID,
    PACKAGE_ID,
    POSITION_ID,
    ROOM_ID,
    VAULT_ID,
    create_room_response,
)

TX_BYTES = base64.b64encode(b'sponsored transaction').decode()
COIN_ID = '0x' + '55' * 32


@pytest.fixture
def relayer(sui, sponsor, settings):
    return Relayer(sui, sponsor, settings, TaskSupervisor())


class TestSignatureComposition:

    def test_single_user_signature_gets_sponsor_appended(self, relayer, sponsor):
        signatures = relayer.compose_signatures(TX_BYTES, 'userSig')
        assert signatures == ['userSig', sponsor.sign_transaction(TX_BYTES)]

    def test_precombined_list_used_verbatim(self, relayer):
        combined = json.dumps(['userSig', 'sponsorSigFromClient'])
        assert relayer.compose_signatures(TX_BYTES, combined) == ['userSig', 'sponsorSigFromClient']

    @pytest.mark.asyncio
    async def test_precombined_list_is_not_signed_again(self, relayer, sui):
        await relayer.execute_sponsored(TX_BYTES, json.dumps(['a', 'b']))
        assert sui.executed == [(TX_BYTES, ['a', 'b'])]

    @pytest.mark.asyncio
    async def test_sponsored_submission(self, relayer, sui, sponsor):
        result = await relayer.execute_sponsored(TX_BYTES, 'userSig')

        assert result.success
        tx_bytes, signatures = sui.executed[0]
        assert tx_bytes == TX_BYTES
        assert len(signatures) == 2
        assert signatures[1] == sponsor.sign_transaction(TX_BYTES)

    @pytest.mark.asyncio
    @pytest.mark.parametrize('tx_bytes,signature', [('', 'sig'), (TX_BYTES, '')])
    async def test_missing_input_never_reaches_ledger(self, relayer, sui, tx_bytes, signature):
        with pytest.raises(ValidationError):
            await relayer.execute_sponsored(tx_bytes, signature)
        assert sui.executed == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize('tx_bytes', ['abc', 'not base64!', 'AAA'])
    async def test_malformed_tx_bytes_rejected_before_signing(self, relayer, sui, tx_bytes):
        with pytest.raises(ValidationError) as exc:
            await relayer.execute_sponsored(tx_bytes, 'userSig')
        assert exc.value.message == 'Transaction bytes are not valid base64'
        assert sui.executed == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize('signature_list', ['[]', '[1, 2]', '["userSig", {"sig": "x"}]', '["userSig", ""]'])
    async def test_bad_precombined_list_rejected(self, relayer, sui, signature_list):
        with pytest.raises(ValidationError):
            await relayer.execute_sponsored(TX_BYTES, signature_list)
        assert sui.executed == []


class TestSubmission:

    @pytest.mark.asyncio
    async def test_node_rejection_mapped(self, relayer, sui):
        sui.execute_responses.append(LedgerRpcError('InsufficientGas'))
        with pytest.raises(LedgerRejectedError) as exc:
            await relayer.execute_sponsored(TX_BYTES, 'userSig')
        assert exc.value.message == 'Transaction failed: InsufficientGas'

    @pytest.mark.asyncio
    async def test_failed_effects_reported_not_raised(self, relayer, sui):
        sui.execute_responses.append({
            'digest': 'D9',
            'effects': {'status': {'status': 'failure', 'error': 'MoveAbort(..., 3)'}},
        })
        result = await relayer.execute_sponsored(TX_BYTES, 'userSig')
        assert not result.success
        assert result.error == 'MoveAbort(..., 3)'

    @pytest.mark.asyncio
    async def test_backend_call_signed_by_sponsor_only(self, relayer, sui, sponsor):
        await relayer.start_room(ROOM_ID)

        move_call = sui.built[0]
        assert move_call.target == f"{PACKAGE_ID}::money_race::start_room"
        assert move_call.arguments == [ADMIN_CAP_ID, ROOM_ID]

        tx_bytes, signatures = sui.executed[0]
        assert signatures == [sponsor.sign_transaction(tx_bytes)]

    @pytest.mark.asyncio
    async def test_admin_calls_need_admin_cap(self, relayer, sui, settings):
        settings.admin_cap_id = ''
        with pytest.raises(ConfigurationError):
            await relayer.finalize_room(ROOM_ID)
        assert sui.built == []

    @pytest.mark.asyncio
    async def test_create_room_arguments(self, relayer, sui):
        await relayer.create_room(4, 10_000_000, 1, 1_700_000_000_000, 604_800_000)
        assert sui.built[0].function == 'create_room'
        assert sui.built[0].arguments == ['4', '10000000', 1, '1700000000000', '604800000']


class TestBackendPlayerCalls:

    @pytest.mark.asyncio
    async def test_join_room_passes_clock_before_coin(self, relayer, sui, sponsor):
        await relayer.join_room(ROOM_ID, VAULT_ID, COIN_ID)

        move_call = sui.built[0]
        assert move_call.target == f"{PACKAGE_ID}::money_race::join_room"
        assert move_call.arguments == [ROOM_ID, VAULT_ID, CLOCK_ID, COIN_ID]
        tx_bytes, signatures = sui.executed[0]
        assert signatures == [sponsor.sign_transaction(tx_bytes)]

    @pytest.mark.asyncio
    async def test_deposit_passes_position_then_clock(self, relayer, sui):
        await relayer.deposit(ROOM_ID, VAULT_ID, POSITION_ID, COIN_ID)

        move_call = sui.built[0]
        assert move_call.function == 'deposit'
        assert move_call.arguments == [ROOM_ID, VAULT_ID, POSITION_ID, CLOCK_ID, COIN_ID]

    @pytest.mark.asyncio
    async def test_claim_all_needs_no_clock(self, relayer, sui):
        result = await relayer.claim_all(ROOM_ID, VAULT_ID, POSITION_ID)

        assert result.success
        move_call = sui.built[0]
        assert move_call.function == 'claim_all'
        assert move_call.arguments == [ROOM_ID, VAULT_ID, POSITION_ID]
        assert CLOCK_ID not in move_call.arguments


class TestDiscovery:

    @pytest.mark.asyncio
    async def test_types_from_object_changes(self, relayer, sui):
        result = TransactionResult.from_rpc(create_room_response())
        assert await relayer.discover_room_objects(result) == (ROOM_ID, VAULT_ID)
        assert sui.get_object_calls == []

    @pytest.mark.asyncio
    async def test_order_of_created_objects_does_not_matter(self, relayer):
        response = create_room_response()
        response['effects']['created'].reverse()
        result = TransactionResult.from_rpc(response)
        assert await relayer.discover_room_objects(result) == (ROOM_ID, VAULT_ID)

    @pytest.mark.asyncio
    async def test_untyped_objects_are_fetched(self, relayer, sui):
        sui.add_object(ROOM_ID, object_type=f"{PACKAGE_ID}::money_race::Room")
        sui.add_object(VAULT_ID, object_type=f"{PACKAGE_ID}::money_race::Vault<0xcc::usdc::USDC>")

        result = TransactionResult.from_rpc(create_room_response(typed=False))
        assert await relayer.discover_room_objects(result) == (ROOM_ID, VAULT_ID)
        assert set(sui.get_object_calls) == {ROOM_ID, VAULT_ID}

    @pytest.mark.asyncio
    async def test_unfetchable_object_leaves_id_unknown(self, relayer, sui):
        sui.add_object(ROOM_ID, object_type=f"{PACKAGE_ID}::money_race::Room")

        result = TransactionResult.from_rpc(create_room_response(typed=False))
        assert await relayer.discover_room_objects(result) == (ROOM_ID, None)

    @pytest.mark.asyncio
    async def test_fewer_than_two_created_objects(self, relayer):
        response = create_room_response()
        response['effects']['created'] = response['effects']['created'][:1]
        result = TransactionResult.from_rpc(response)
        assert await relayer.discover_room_objects(result) == (None, None)


class TestAutoStart:

    @pytest.mark.asyncio
    async def test_auto_start_calls_start_room(self, relayer, sui):
        task = relayer.schedule_auto_start(ROOM_ID)
        result = await task

        assert result.success
        assert sui.built[0].function == 'start_room'

    @pytest.mark.asyncio
    async def test_auto_start_failure_is_contained(self, relayer, sui):
        sui.execute_responses.append(LedgerRpcError('EAlreadyStarted'))
        relayer.schedule_auto_start(ROOM_ID)
        await relayer.supervisor.drain()
        assert relayer.supervisor.pending == 0


class TestFaucet:

    @pytest.mark.asyncio
    @pytest.mark.parametrize('amount', [0, -5, 1000 * 1_000_000 + 1])
    async def test_amount_bounds(self, relayer, sui, amount):
        with pytest.raises(ValidationError):
            await relayer.mint_usdc('0x' + 'a1' * 32, amount)
        assert sui.built == []

    @pytest.mark.asyncio
    async def test_maximum_amount_allowed(self, relayer, sui, settings):
        result = await relayer.mint_usdc('0x' + 'a1' * 32, 1000 * 1_000_000)
        assert result.success
        assert sui.built[0].arguments[1] == str(1000 * 1_000_000)
        assert sui.built[0].package_id == settings.usdc_package_id

    @pytest.mark.asyncio
    async def test_cooldown_becomes_rate_limit(self, relayer, sui):
        sui.execute_responses.append(LedgerRpcError('MoveAbort: COOLDOWN_NOT_PASSED'))
        with pytest.raises(RateLimitedError) as exc:
            await relayer.mint_usdc('0x' + 'a1' * 32, 5_000_000)
        assert exc.value.retry_after_seconds == 86400
        assert exc.value.status_code == 429

    @pytest.mark.asyncio
    async def test_unconfigured_faucet(self, relayer, settings):
        settings.usdc_faucet_id = ''
        with pytest.raises(ConfigurationError):
            await relayer.mint_usdc('0x' + 'a1' * 32, 5_000_000)

    @pytest.mark.asyncio
    async def test_balance_uses_usdc_coin_type(self, relayer, sui, settings):
        sui.balances['0xowner'] = 2_500_000
        assert await relayer.get_usdc_balance('0xowner') == 2_500_000
        assert relayer.usdc_coin_type == f"{settings.usdc_package_id}::usdc::USDC"
