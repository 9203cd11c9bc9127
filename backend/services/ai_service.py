"""
Strategy recommendation from free text.

Asks an OpenAI-compatible chat-completion endpoint (EigenAI by default) to
map a prompt onto one of the savings strategies. Any failure, or a missing
API key, falls back to keyword matching so the endpoint always answers.

The strategy list in the system prompt is rendered from
models.domain.strategy, the same table the yield engine reads.
"""
import json
import logging
import re
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI

from models.domain.strategy import STRATEGIES, STRATEGY_TABLE_VERSION, Strategy, get_strategy
from services.errors import ConfigurationError, UpstreamServiceError

logger = logging.getLogger(__name__)

LOW_RISK_KEYWORDS = ['safe', 'secure', 'stable', 'conservative', 'protect']
HIGH_RISK_KEYWORDS = ['aggressive', 'growth', 'maximum', 'risky', 'high return']
BALANCED_KEYWORDS = ['balanced', 'moderate', 'steady', 'consistent']

GOAL_KEYWORDS = [
    (('retire',), 'retirement'),
    (('house', 'home'), 'house'),
    (('emergency',), 'emergency fund'),
    (('vacation',), 'vacation'),
]

RISK_TO_STRATEGY = {'low': 0, 'medium': 1, 'high': 2}

FALLBACK_REASONING = {
    'low': 'Your preference for stability makes this conservative strategy a perfect fit.',
    'medium': 'Based on your goals, this balanced approach offers a good mix of safety and growth.',
    'high': 'Your growth-focused goals align well with this higher-risk, higher-reward strategy.',
}

FENCE_PATTERN = re.compile(r'^```(?:json)?\s*|\s*```$')


def build_system_prompt(strategies: List[Strategy] = STRATEGIES) -> str:
    lines = [
        "You are a DeFi financial advisor for the Sui blockchain. "
        "Analyze user requests and recommend investment strategies.",
        "",
        "Available strategies:",
    ]
    for strategy in strategies:
        lines.append(
            f"{strategy.id}. {strategy.name} ({strategy.risk_level.capitalize()} Risk, "
            f"~{strategy.expected_return:g}% APY) - {strategy.description}"
        )
    lines += [
        "",
        "Respond ONLY with valid JSON in this exact format:",
        '{',
        '  "recommendedStrategyId": 0,',
        '  "reasoning": "brief explanation",',
        '  "parsedIntent": {',
        '    "riskTolerance": "low|medium|high",',
        '    "goal": "brief goal description"',
        '  }',
        '}',
    ]
    return "\n".join(lines)


def strip_code_fences(text: str) -> str:
    """Remove a ```json ... ``` wrapper the model sometimes adds."""
    return FENCE_PATTERN.sub('', text.strip())


def parse_intent(text: str) -> Dict[str, Any]:
    """Keyword-based risk tolerance and goal detection."""
    lower = text.lower()

    risk = 'medium'
    if any(keyword in lower for keyword in LOW_RISK_KEYWORDS):
        risk = 'low'
    elif any(keyword in lower for keyword in HIGH_RISK_KEYWORDS):
        risk = 'high'

    goal = 'general savings'
    for keywords, name in GOAL_KEYWORDS:
        if any(keyword in lower for keyword in keywords):
            goal = name
            break

    return {'riskTolerance': risk, 'goal': goal}


def _strategy_list(recommended_id: int, reasoning: Optional[str]) -> List[Dict[str, Any]]:
    strategies = []
    for strategy in STRATEGIES:
        item = strategy.to_dict()
        item['recommended'] = strategy.id == recommended_id
        if strategy.id == recommended_id:
            item['reasoning'] = reasoning
        strategies.append(item)
    return strategies


class AIService:
    """Recommendation engine backed by an OpenAI-compatible API."""

    def __init__(
        self,
        api_key: str = "",
        base_url: Optional[str] = None,
        model: str = "deepseek-v31-terminus",
        client: Optional[AsyncOpenAI] = None,
    ):
        self.model = model
        self.client = client
        if self.client is None and api_key:
            self.client = AsyncOpenAI(api_key=api_key, base_url=base_url)
        if self.client is None:
            logger.warning("AI API key not set - recommendations use keyword fallback")

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def _complete(self, messages: List[Dict[str, str]], **options) -> Any:
        if not self.enabled:
            raise ConfigurationError("AI API key not configured")
        return await self.client.chat.completions.create(
            model=options.pop('model', None) or self.model,
            messages=messages,
            temperature=options.pop('temperature', 0.7),
            max_tokens=options.pop('max_tokens', 1024),
            **options,
        )

    async def recommend(self, prompt: str) -> Dict[str, Any]:
        """
        Best-fit strategy for a free-text prompt.

        Returns:
            {strategies: [...with recommended/reasoning], userPrompt, parsedIntent,
             source: 'ai' | 'fallback', tableVersion}
        """
        if not self.enabled:
            return self.fallback(prompt)

        try:
            response = await self._complete([
                {'role': 'system', 'content': build_system_prompt()},
                {'role': 'user', 'content': prompt},
            ])
            content = response.choices[0].message.content or ''
            parsed = json.loads(strip_code_fences(content))

            strategy_id = int(parsed['recommendedStrategyId'])
            if get_strategy(strategy_id) is None:
                raise ValueError(f"unknown strategy id {strategy_id}")

            return {
                'strategies': _strategy_list(strategy_id, parsed.get('reasoning')),
                'userPrompt': prompt,
                'parsedIntent': parsed.get('parsedIntent') or parse_intent(prompt),
                'source': 'ai',
                'tableVersion': STRATEGY_TABLE_VERSION,
            }
        except Exception as e:
            logger.warning(f"AI recommendation failed, using fallback: {e}")
            return self.fallback(prompt)

    def fallback(self, prompt: str) -> Dict[str, Any]:
        intent = parse_intent(prompt)
        risk = intent['riskTolerance']
        strategy_id = RISK_TO_STRATEGY[risk]
        return {
            'strategies': _strategy_list(strategy_id, FALLBACK_REASONING[risk]),
            'userPrompt': prompt,
            'parsedIntent': intent,
            'source': 'fallback',
            'tableVersion': STRATEGY_TABLE_VERSION,
        }

    async def general_chat(self, messages: List[Dict[str, str]], options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Pass-through chat completion; no fallback."""
        options = dict(options or {})
        allowed = {key: options[key] for key in ('model', 'temperature', 'max_tokens', 'top_p') if key in options}
        try:
            response = await self._complete(messages, **allowed)
        except ConfigurationError:
            raise
        except Exception as e:
            logger.error(f"AI chat completion failed: {e}")
            raise UpstreamServiceError(f"AI chat completion failed: {e}") from e
        return response.model_dump()

    @staticmethod
    def all_strategies() -> List[Dict[str, Any]]:
        return [strategy.to_dict() for strategy in STRATEGIES]

    @staticmethod
    def strategy_by_id(strategy_id: int) -> Optional[Dict[str, Any]]:
        strategy = get_strategy(strategy_id)
        return strategy.to_dict() if strategy else None
