"""
Savings strategies - the single source of truth for strategy ids and APYs

Consumed by the yield accrual engine and the recommendation engine; the
contract stores only the numeric strategy id. Bump STRATEGY_TABLE_VERSION
whenever a rate changes so clients can tell which table an estimate used.
"""
from dataclasses import dataclass, asdict
from typing import Dict, List, Optional

STRATEGY_TABLE_VERSION = "2026-02-1"


@dataclass(frozen=True)
class Strategy:
    id: int
    name: str
    description: str
    risk_level: str  # 'low' | 'medium' | 'high'
    apy: float       # annual rate as a fraction (0.04 = 4%)

    @property
    def expected_return(self) -> float:
        """APY in percent"""
        return round(self.apy * 100, 2)

    def to_dict(self) -> Dict:
        data = asdict(self)
        return {
            'id': data['id'],
            'name': data['name'],
            'description': data['description'],
            'riskLevel': data['risk_level'],
            'expectedReturn': self.expected_return,
            'tableVersion': STRATEGY_TABLE_VERSION,
        }


STRATEGIES: List[Strategy] = [
    Strategy(
        id=0,
        name="Stable Saver",
        description="Low-risk strategy focused on steady, predictable growth. Perfect for conservative savers.",
        risk_level="low",
        apy=0.04,
    ),
    Strategy(
        id=1,
        name="Balanced Builder",
        description="Medium-risk strategy balancing growth and stability. Ideal for consistent savers.",
        risk_level="medium",
        apy=0.08,
    ),
    Strategy(
        id=2,
        name="Growth Chaser",
        description="Higher-risk strategy targeting maximum returns. Best for aggressive savers.",
        risk_level="high",
        apy=0.15,
    ),
]

_BY_ID = {strategy.id: strategy for strategy in STRATEGIES}

DEFAULT_STRATEGY_ID = 0


def get_strategy(strategy_id: int) -> Optional[Strategy]:
    return _BY_ID.get(strategy_id)


def apy_for_strategy(strategy_id: int) -> float:
    """Unknown ids accrue at the conservative rate"""
    strategy = _BY_ID.get(strategy_id, _BY_ID[DEFAULT_STRATEGY_ID])
    return strategy.apy
