"""
Test: Strategy recommendation
=============================
"""
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from models.domain.strategy import STRATEGY_TABLE_VERSION
from services.ai_service import AIService, build_system_prompt, parse_intent, strip_code_fences
from services.errors import ConfigurationError, UpstreamServiceError


def completion(content: str):
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    response.model_dump.return_value = {'choices': [{'message': {'content': content}}]}
    return response


def client_returning(content=None, error=None):
    client = MagicMock()
    client.chat.completions.create = AsyncMock(
        return_value=completion(content) if content is not None else None,
        side_effect=error,
    )
    return client


def recommended(result):
    return [strategy for strategy in result['strategies'] if strategy['recommended']]


class TestKeywordFallback:

    @pytest.mark.parametrize('prompt,risk,strategy_id', [
        ('I want something safe for my emergency fund', 'low', 0),
        ('steady monthly saving', 'medium', 1),
        ('aggressive growth please', 'high', 2),
    ])
    def test_risk_mapping(self, prompt, risk, strategy_id):
        result = AIService().fallback(prompt)
        assert result['parsedIntent']['riskTolerance'] == risk
        assert [s['id'] for s in recommended(result)] == [strategy_id]
        assert result['source'] == 'fallback'
        assert result['tableVersion'] == STRATEGY_TABLE_VERSION

    def test_goal_detection(self):
        assert parse_intent('saving for a house')['goal'] == 'house'
        assert parse_intent('nothing specific')['goal'] == 'general savings'

    @pytest.mark.asyncio
    async def test_no_key_uses_fallback(self):
        result = await AIService(api_key='').recommend('safe savings')
        assert result['source'] == 'fallback'


class TestModelRecommendation:

    @pytest.mark.asyncio
    async def test_model_answer_used(self):
        answer = json.dumps({
            'recommendedStrategyId': 2,
            'reasoning': 'You asked for growth',
            'parsedIntent': {'riskTolerance': 'high', 'goal': 'growth'},
        })
        service = AIService(client=client_returning(f"```json\n{answer}\n```"))
        result = await service.recommend('grow my money')

        assert result['source'] == 'ai'
        [strategy] = recommended(result)
        assert strategy['id'] == 2
        assert strategy['reasoning'] == 'You asked for growth'

    @pytest.mark.asyncio
    async def test_unparseable_answer_falls_back(self):
        service = AIService(client=client_returning('I think Stable Saver is best'))
        result = await service.recommend('safe please')
        assert result['source'] == 'fallback'
        assert recommended(result)[0]['id'] == 0

    @pytest.mark.asyncio
    async def test_unknown_strategy_falls_back(self):
        service = AIService(client=client_returning(json.dumps({'recommendedStrategyId': 7})))
        assert (await service.recommend('anything'))['source'] == 'fallback'

    @pytest.mark.asyncio
    async def test_upstream_error_falls_back(self):
        service = AIService(client=client_returning(error=RuntimeError('503')))
        assert (await service.recommend('anything'))['source'] == 'fallback'

    def test_prompt_lists_every_strategy(self):
        prompt = build_system_prompt()
        for name in ('Stable Saver', 'Balanced Builder', 'Growth Chaser'):
            assert name in prompt
        assert '~8% APY' in prompt

    def test_strip_code_fences(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
        assert strip_code_fences('{"a": 1}') == '{"a": 1}'


class TestChat:

    @pytest.mark.asyncio
    async def test_requires_key(self):
        with pytest.raises(ConfigurationError):
            await AIService(api_key='').general_chat([{'role': 'user', 'content': 'hi'}])

    @pytest.mark.asyncio
    async def test_pass_through(self):
        client = client_returning('hello')
        response = await AIService(client=client).general_chat(
            [{'role': 'user', 'content': 'hi'}], {'temperature': 0.2, 'stream': True},
        )
        assert response['choices'][0]['message']['content'] == 'hello'
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs['temperature'] == 0.2
        assert 'stream' not in kwargs

    @pytest.mark.asyncio
    async def test_upstream_failure(self):
        service = AIService(client=client_returning(error=RuntimeError('boom')))
        with pytest.raises(UpstreamServiceError):
            await service.general_chat([{'role': 'user', 'content': 'hi'}])
