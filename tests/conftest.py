"""
Shared fixtures for openrouter-cli tests
"""

import pytest

from openrouter_cli.core.config import Config


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep the real user config and API key out of every test"""
    monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))


@pytest.fixture
def config_file(tmp_path):
    return tmp_path / "openrouter" / "config.yaml"


@pytest.fixture
def config(config_file):
    return Config(api_key="sk-or-test-1234", config_path=config_file)


@pytest.fixture
def chat_payload():
    return {
        "id": "gen-123",
        "object": "chat.completion",
        "created": 1700000000,
        "model": "openai/gpt-4",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": "Hello there!"},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15},
    }


@pytest.fixture
def models_payload():
    return {
        "data": [
            {
                "id": "openai/gpt-4",
                "name": "OpenAI: GPT-4",
                "created": 1685577600,
                "context_length": 8191,
                "pricing": {"prompt": "0.00003", "completion": "0.00006"},
                "architecture": {"modality": "text->text", "tokenizer": "GPT", "instruct_type": None},
                "description": "OpenAI's flagship model",
                "top_provider": {"max_completion_tokens": 4096},
            },
            {
                "id": "anthropic/claude-3-haiku",
                "name": "Anthropic: Claude 3 Haiku",
                "created": 1710288000,
                "context_length": 200000,
                "pricing": {"prompt": "0.00000025", "completion": "0.00000125"},
                "architecture": {"modality": "text+image->text", "tokenizer": "Claude"},
            },
            {
                "id": "qwen/qwen-2-7b-instruct:free",
                "name": "Qwen 2 7B Instruct (free)",
                "created": 1721088000,
                "context_length": 32768,
                "pricing": {"prompt": "0", "completion": "0"},
                "architecture": {"modality": "", "tokenizer": "Qwen", "instruct_type": "chatml"},
            },
        ]
    }
