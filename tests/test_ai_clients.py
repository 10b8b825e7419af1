import os
import sys
import unittest
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from gradmatch.ai.factory import get_ai_client  # noqa: E402
from gradmatch.ai.providers.openai_provider import AzureOpenAIProvider, OpenAIProvider  # noqa: E402
from gradmatch.ai.types import ChatMessage  # noqa: E402
from gradmatch.services import llm_json  # noqa: E402


def _response(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class FactoryTests(unittest.TestCase):
    def test_disabled_ai_returns_no_client(self):
        with patch.dict(os.environ, {"AI_ENABLED": "0", "OPENAI_API_KEY": "sk-test"}):
            self.assertIsNone(get_ai_client())

    def test_placeholder_key_counts_as_missing(self):
        with patch.dict(os.environ, {"AI_ENABLED": "1", "AI_PROVIDER": "openai", "OPENAI_API_KEY": "your_key_here"}):
            self.assertIsNone(get_ai_client())

    def test_openai_provider_is_built_from_env(self):
        env = {"AI_ENABLED": "1", "AI_PROVIDER": "openai", "AI_MODEL": "gpt-4o-mini", "OPENAI_API_KEY": "sk-test"}
        with patch.dict(os.environ, env):
            client = get_ai_client()
        self.assertIsInstance(client, OpenAIProvider)

    def test_unknown_provider_is_rejected(self):
        env = {"AI_ENABLED": "1", "AI_PROVIDER": "gemini", "OPENAI_API_KEY": "sk-test"}
        with patch.dict(os.environ, env):
            with self.assertRaises(ValueError):
                get_ai_client()

    def test_azure_requires_endpoint(self):
        with patch.dict(os.environ, {"AZURE_OPENAI_API_KEY": "key", "AZURE_OPENAI_ENDPOINT": ""}):
            with self.assertRaises(RuntimeError):
                AzureOpenAIProvider(model="gpt-4o-mini")


class ProviderTests(unittest.IsolatedAsyncioTestCase):
    async def test_complete_returns_message_content(self):
        provider = OpenAIProvider(model="gpt-4o-mini", api_key="sk-test")
        create = AsyncMock(return_value=_response('[{"university": "MIT"}]'))
        provider._client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))

        text = await provider.complete([ChatMessage(role="user", content="hi")])

        self.assertEqual(text, '[{"university": "MIT"}]')
        kwargs = create.await_args.kwargs
        self.assertEqual(kwargs["model"], "gpt-4o-mini")
        self.assertEqual(kwargs["messages"], [{"role": "user", "content": "hi"}])

    async def test_empty_content_raises(self):
        provider = OpenAIProvider(model="gpt-4o-mini", api_key="sk-test")
        create = AsyncMock(return_value=_response(""))
        provider._client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
        with self.assertRaises(RuntimeError):
            await provider.complete([ChatMessage(role="user", content="hi")])


class JsonCompletionTests(unittest.TestCase):
    def test_disabled_model_returns_none(self):
        with patch.dict(os.environ, {"AI_ENABLED": "0"}):
            self.assertFalse(llm_json.llm_json_enabled())
            self.assertIsNone(llm_json.json_completion(system_prompt="s", user_prompt="u", purpose="test"))

    def test_json_object_is_returned(self):
        fake = MagicMock()
        fake.chat.completions.create.return_value = _response('{"gpa": 3.5}')
        env = {"AI_ENABLED": "1", "AI_PROVIDER": "openai", "OPENAI_API_KEY": "sk-test"}
        with patch.dict(os.environ, env), patch.object(llm_json, "_client", return_value=fake):
            payload = llm_json.json_completion(system_prompt="s", user_prompt="u", purpose="test")
        self.assertEqual(payload, {"gpa": 3.5})

    def test_non_object_or_failure_returns_none(self):
        env = {"AI_ENABLED": "1", "AI_PROVIDER": "openai", "OPENAI_API_KEY": "sk-test"}
        fake = MagicMock()
        fake.chat.completions.create.return_value = _response("[1, 2]")
        with patch.dict(os.environ, env), patch.object(llm_json, "_client", return_value=fake):
            self.assertIsNone(llm_json.json_completion(system_prompt="s", user_prompt="u"))

        fake.chat.completions.create.side_effect = RuntimeError("rate limited")
        with patch.dict(os.environ, env), patch.object(llm_json, "_client", return_value=fake):
            self.assertIsNone(llm_json.json_completion(system_prompt="s", user_prompt="u"))


if __name__ == "__main__":
    unittest.main()
