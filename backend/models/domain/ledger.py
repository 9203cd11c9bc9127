"""
Ledger domain models - objects, events and transaction results

Events are decoded at the gateway boundary into a tagged union of the
known kinds. Anything that does not match its schema is dropped by
decode_event() with a warning instead of leaking None into the folds.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union
import logging

from config.constants import USDC_DECIMALS
from utils.datetime_utils import parse_timestamp_ms

logger = logging.getLogger(__name__)


@dataclass
class LedgerObject:
    """Object returned by sui_getObject"""
    object_id: str
    object_type: Optional[str] = None
    owner: Optional[Dict[str, Any]] = None
    fields: Dict[str, Any] = field(default_factory=dict)
    version: Optional[str] = None

    @property
    def owner_address(self) -> Optional[str]:
        if isinstance(self.owner, dict):
            return self.owner.get('AddressOwner') or self.owner.get('ObjectOwner')
        return None


@dataclass
class MoveCall:
    """One entry-function call, built server-side for backend-signed transactions"""
    package_id: str
    module: str
    function: str
    arguments: List[Any] = field(default_factory=list)
    type_arguments: List[str] = field(default_factory=list)

    @property
    def target(self) -> str:
        return f"{self.package_id}::{self.module}::{self.function}"


@dataclass
class CreatedObject:
    """Entry of effects.created, with the type when the node reports it"""
    object_id: str
    object_type: Optional[str] = None


@dataclass
class TransactionResult:
    """
    Normalized execution result

    success is True iff effects.status.status == 'success'.
    """
    digest: str
    success: bool
    effects: Dict[str, Any] = field(default_factory=dict)
    object_changes: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def from_rpc(cls, response: Dict[str, Any]) -> 'TransactionResult':
        effects = response.get('effects') or {}
        status = effects.get('status') or {}
        return cls(
            digest=response.get('digest', ''),
            success=status.get('status') == 'success',
            effects=effects,
            object_changes=response.get('objectChanges') or [],
            error=status.get('error'),
        )

    def created_objects(self) -> List[CreatedObject]:
        """
        Objects created by the transaction, typed from objectChanges where the
        node included them, else from effects.created (which may lack types)
        """
        types = {
            change.get('objectId'): change.get('objectType')
            for change in self.object_changes
            if change.get('type') == 'created'
        }

        created = []
        for entry in self.effects.get('created') or []:
            reference = entry.get('reference') or {}
            object_id = reference.get('objectId')
            if not object_id:
                continue
            object_type = entry.get('objectType') or types.get(object_id)
            created.append(CreatedObject(object_id=object_id, object_type=object_type))
        return created

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'success': self.success,
            'digest': self.digest,
            'effects': self.effects,
        }
        if self.error:
            data['error'] = self.error
        return data


@dataclass(frozen=True)
class PlayerJoinedEvent:
    """PlayerJoined(room_id, player, amount, player_position_id)"""
    tx_digest: str
    event_seq: str
    room_id: str
    player: str
    amount: int
    player_position_id: str
    timestamp_ms: int
    kind: str = 'join'

    @property
    def event_id(self) -> Tuple[str, str]:
        return (self.tx_digest, self.event_seq)

    @property
    def amount_display(self) -> float:
        return self.amount / USDC_DECIMALS


@dataclass(frozen=True)
class DepositMadeEvent:
    """DepositMade(room_id, player, amount, period, total_deposits)"""
    tx_digest: str
    event_seq: str
    room_id: str
    player: str
    amount: int
    period: int
    total_deposits: int
    timestamp_ms: int
    kind: str = 'deposit'

    @property
    def event_id(self) -> Tuple[str, str]:
        return (self.tx_digest, self.event_seq)

    @property
    def amount_display(self) -> float:
        return self.amount / USDC_DECIMALS


LedgerEvent = Union[PlayerJoinedEvent, DepositMadeEvent]


def _required_str(payload: Dict[str, Any], key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value:
        raise ValueError(f"missing {key}")
    return value


def _required_int(payload: Dict[str, Any], key: str) -> int:
    value = payload.get(key)
    if value is None or isinstance(value, bool):
        raise ValueError(f"missing {key}")
    return int(value)


def decode_event(raw: Dict[str, Any]) -> Optional[LedgerEvent]:
    """
    Decode one suix_queryEvents entry

    The kind is taken from the struct name at the end of raw['type'].

    Returns:
        PlayerJoinedEvent, DepositMadeEvent, or None for unknown/malformed
    """
    event_type = raw.get('type') or ''
    payload = raw.get('parsedJson')
    event_id = raw.get('id') or {}

    if not isinstance(payload, dict):
        logger.warning(f"Dropping event without parsedJson: {event_type}")
        return None

    try:
        tx_digest = _required_str(event_id, 'txDigest')
        event_seq = str(event_id.get('eventSeq', '0'))
        timestamp_ms = parse_timestamp_ms(raw.get('timestampMs')) or 0

        if event_type.endswith('::PlayerJoined'):
            return PlayerJoinedEvent(
                tx_digest=tx_digest,
                event_seq=event_seq,
                room_id=_required_str(payload, 'room_id'),
                player=_required_str(payload, 'player'),
                amount=_required_int(payload, 'amount'),
                player_position_id=_required_str(payload, 'player_position_id'),
                timestamp_ms=timestamp_ms,
            )

        if event_type.endswith('::DepositMade'):
            return DepositMadeEvent(
                tx_digest=tx_digest,
                event_seq=event_seq,
                room_id=_required_str(payload, 'room_id'),
                player=_required_str(payload, 'player'),
                amount=_required_int(payload, 'amount'),
                period=int(payload.get('period') or 0),
                total_deposits=int(payload.get('total_deposits') or 0),
                timestamp_ms=timestamp_ms,
            )
    except (TypeError, ValueError) as e:
        logger.warning(f"Dropping malformed {event_type} event: {e}")
        return None

    logger.warning(f"Dropping event of unknown type: {event_type}")
    return None
