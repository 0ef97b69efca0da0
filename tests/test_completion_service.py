from unittest.mock import MagicMock, Mock, patch

import httpx
import pytest

from shadebot.schemas.intent import IntentDefinition
from shadebot.services.completion_service import CompletionService
from shadebot.services.llm import LLMProviderError, LLMResponse, OpenAIProvider

INTENTS = [
    IntentDefinition(key="shipping", description="envíos"),
    IntentDefinition(key="measures_specific", description="medidas concretas"),
]


def _service(content: str = "", error: Exception = None) -> CompletionService:
    provider = Mock()
    if error is not None:
        provider.generate.side_effect = error
    else:
        provider.generate.return_value = LLMResponse(content=content, model="gpt-4o-mini")
    return CompletionService(provider, model="gpt-4o-mini")


class TestClassify:
    def test_parses_classification(self):
        service = _service('{"intent": "shipping", "confidence": 0.92, "reasoning": "pregunta por envío"}')
        result = service.classify("¿hacen envíos?", {"last_intent": None}, INTENTS)
        assert result.ok is True
        assert result.value.intent == "shipping"
        assert result.value.confidence == pytest.approx(0.92)

    def test_handles_code_fences(self):
        service = _service('```json\n{"intent": "measures_specific", "confidence": 0.8}\n```')
        assert service.classify("4x6", {}, INTENTS).value.intent == "measures_specific"

    def test_undefined_intent_becomes_unknown(self):
        service = _service('{"intent": "weather", "confidence": 0.99}')
        result = service.classify("¿va a llover?", {}, INTENTS)
        assert result.ok is True
        assert result.value.intent == "unknown"
        assert result.value.confidence == 0.0

    def test_confidence_is_clamped(self):
        service = _service('{"intent": "shipping", "confidence": 7}')
        assert service.classify("envíos", {}, INTENTS).value.confidence == 1.0

    def test_provider_error_is_llm_error(self):
        service = _service(error=LLMProviderError("timeout"))
        result = service.classify("hola", {}, INTENTS)
        assert result.ok is False
        assert result.error_code == "llm_error"

    def test_garbage_is_parse_error(self):
        result = _service("no sé").classify("hola", {}, INTENTS)
        assert result.ok is False
        assert result.error_code == "parse_error"

    def test_prompt_lists_intents_and_context(self):
        service = _service('{"intent": "shipping", "confidence": 0.9}')
        service.classify("¿envían?", {"last_intent": "greeting", "campaign_ref": "malla_beige"}, INTENTS)
        prompt = service.provider.generate.call_args.args[0][0]["content"]
        assert "- shipping: envíos" in prompt
        assert "Intención anterior: greeting" in prompt
        assert "Campaña activa: malla_beige" in prompt


class TestDetectEdgeCase:
    def test_unintelligible(self):
        service = _service('{"category": "UNINTELLIGIBLE", "confidence": 0.95, "reason": "spam"}')
        verdict = service.detect_edge_case("asdfgh").value
        assert verdict.is_unintelligible is True
        assert verdict.is_normal is False

    def test_complex(self):
        service = _service('{"category": "COMPLEX", "confidence": 0.93}')
        assert service.detect_edge_case("cálculo de tensores").value.is_complex is True

    def test_normal(self):
        service = _service('{"category": "NORMAL", "confidence": 0.5}')
        assert service.detect_edge_case("precio").value.is_normal is True

    def test_provider_error(self):
        result = _service(error=LLMProviderError("503", status_code=503)).detect_edge_case("hola")
        assert result.error_code == "llm_error"


class TestGenerate:
    def test_returns_stripped_text(self):
        assert _service("  Claro, con gusto.  ").generate([{"role": "user", "content": "hola"}]).value == "Claro, con gusto."

    def test_empty_completion_is_failure(self):
        result = _service("   ").generate([{"role": "user", "content": "hola"}])
        assert result.ok is False
        assert result.error_code == "empty"


class TestOpenAIProvider:
    def _client(self, response=None, error=None):
        client = MagicMock()
        client.__enter__.return_value = client
        client.__exit__.return_value = False
        if error is not None:
            client.post.side_effect = error
        else:
            client.post.return_value = response
        return client

    def test_json_mode_and_content(self):
        response = Mock(status_code=200)
        response.json.return_value = {
            "model": "gpt-4o-mini",
            "choices": [{"message": {"content": '{"intent": "shipping"}'}}],
            "usage": {"total_tokens": 12},
        }
        client = self._client(response)
        with patch("shadebot.services.llm.openai_provider.httpx.Client", return_value=client):
            result = OpenAIProvider(api_key="test-key").generate([{"role": "user", "content": "hola"}], json_mode=True)

        assert result.content == '{"intent": "shipping"}'
        payload = client.post.call_args.kwargs["json"]
        assert payload["response_format"] == {"type": "json_object"}
        assert client.post.call_args.kwargs["headers"]["Authorization"] == "Bearer test-key"

    def test_non_200_raises(self):
        client = self._client(Mock(status_code=429, text="rate limited"))
        with patch("shadebot.services.llm.openai_provider.httpx.Client", return_value=client):
            with pytest.raises(LLMProviderError) as exc_info:
                OpenAIProvider(api_key="test-key").generate([])
        assert exc_info.value.status_code == 429

    def test_transport_error_raises(self):
        client = self._client(error=httpx.ConnectTimeout("timed out"))
        with patch("shadebot.services.llm.openai_provider.httpx.Client", return_value=client):
            with pytest.raises(LLMProviderError):
                OpenAIProvider(api_key="test-key").generate([])
