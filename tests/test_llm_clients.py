"""Tests for the SDK-backed completion clients."""

from __future__ import annotations

import importlib
import importlib.machinery
import sys
import types

import pytest

from investor_chat.config import LLMConfig, ProviderKind
from investor_chat.errors import ProviderError
from investor_chat.router import default_client_factories


def _patch_find_spec(monkeypatch: pytest.MonkeyPatch, name: str, spec) -> None:
    original_find_spec = importlib.util.find_spec

    def fake_find_spec(target, package=None):  # pragma: no cover - passthrough helper
        if target == name:
            return spec
        return original_find_spec(target, package)

    monkeypatch.setattr(importlib.util, "find_spec", fake_find_spec)


def _install_genai_stub(monkeypatch: pytest.MonkeyPatch, response=None):
    google_pkg = types.ModuleType("google")
    google_pkg.__path__ = []  # mark as package
    google_pkg.__spec__ = importlib.machinery.ModuleSpec("google", loader=None, is_package=True)

    stub = types.ModuleType("google.generativeai")
    stub.__spec__ = importlib.machinery.ModuleSpec(
        "google.generativeai", loader=None, is_package=False
    )
    config_args: dict[str, str] = {}
    models: list = []

    class DummyModel:
        def __init__(self, model_name: str, generation_config: dict | None = None) -> None:
            self.model_name = model_name
            self.generation_config = generation_config or {}
            self.calls: list[tuple[str, dict]] = []
            models.append(self)

        def generate_content(self, prompt, request_options=None):
            self.calls.append((prompt, request_options or {}))
            if response is not None:
                return response
            return types.SimpleNamespace(text="Gemini says hi", prompt_feedback=None)

    def configure(**kwargs):
        config_args.update(kwargs)

    stub.GenerativeModel = DummyModel
    stub.configure = configure

    _patch_find_spec(monkeypatch, "google.generativeai", stub.__spec__)
    monkeypatch.setitem(sys.modules, "google", google_pkg)
    setattr(google_pkg, "generativeai", stub)
    monkeypatch.setitem(sys.modules, "google.generativeai", stub)
    return config_args, models


def _install_openai_stub(monkeypatch: pytest.MonkeyPatch, response=None, error=None):
    stub = types.ModuleType("openai")
    stub.__spec__ = importlib.machinery.ModuleSpec("openai", loader=None, is_package=False)
    created: list[dict] = []
    requests: list[dict] = []

    class Completions:
        def create(self, **kwargs):
            requests.append(kwargs)
            if error is not None:
                raise error
            if response is not None:
                return response
            message = types.SimpleNamespace(content="  OpenAI says hi  ")
            return types.SimpleNamespace(choices=[types.SimpleNamespace(message=message)])

    class OpenAI:
        def __init__(self, **kwargs) -> None:
            created.append(kwargs)
            self.chat = types.SimpleNamespace(completions=Completions())

    stub.OpenAI = OpenAI
    _patch_find_spec(monkeypatch, "openai", stub.__spec__)
    monkeypatch.setitem(sys.modules, "openai", stub)
    return created, requests


def _reload(monkeypatch: pytest.MonkeyPatch, name: str):
    monkeypatch.delitem(sys.modules, name, raising=False)
    return importlib.import_module(name)


def test_gemini_client_completes_prompt(monkeypatch: pytest.MonkeyPatch) -> None:
    config_args, models = _install_genai_stub(monkeypatch)
    module = _reload(monkeypatch, "investor_chat.llm.gemini")

    client = module.GeminiCompletionClient(api_key="g-key", temperature=0.3, timeout=45)
    answer = client.complete("gemini-1.5-pro", "Summarize")
    client.complete("gemini-1.5-pro", "Again")

    assert answer == "Gemini says hi"
    assert config_args["api_key"] == "g-key"
    assert len(models) == 1
    assert models[0].model_name == "gemini-1.5-pro"
    assert models[0].generation_config == {"temperature": 0.3}
    assert models[0].calls[0] == ("Summarize", {"timeout": 45})


def test_gemini_client_reports_blocked_prompt(monkeypatch: pytest.MonkeyPatch) -> None:
    feedback = types.SimpleNamespace(block_reason="SAFETY")
    _install_genai_stub(
        monkeypatch,
        response=types.SimpleNamespace(text="", prompt_feedback=feedback, candidates=None),
    )
    module = _reload(monkeypatch, "investor_chat.llm.gemini")

    client = module.GeminiCompletionClient(api_key="key")
    with pytest.raises(ProviderError, match="Gemini blocked the request"):
        client.complete("gemini-1.5-pro", "prompt")


def test_gemini_client_joins_candidate_parts(monkeypatch: pytest.MonkeyPatch) -> None:
    parts = [types.SimpleNamespace(text="first"), types.SimpleNamespace(text="second")]
    candidate = types.SimpleNamespace(content=types.SimpleNamespace(parts=parts))
    _install_genai_stub(
        monkeypatch,
        response=types.SimpleNamespace(text="", prompt_feedback=None, candidates=[candidate]),
    )
    module = _reload(monkeypatch, "investor_chat.llm.gemini")

    client = module.GeminiCompletionClient(api_key="key")

    assert client.complete("gemini-1.5-pro", "prompt") == "first\nsecond"


def test_gemini_client_requires_api_key(monkeypatch: pytest.MonkeyPatch) -> None:
    _install_genai_stub(monkeypatch)
    module = _reload(monkeypatch, "investor_chat.llm.gemini")

    with pytest.raises(ValueError):
        module.GeminiCompletionClient(api_key="")


def test_openai_client_sends_single_user_message(monkeypatch: pytest.MonkeyPatch) -> None:
    created, requests = _install_openai_stub(monkeypatch)
    module = _reload(monkeypatch, "investor_chat.llm.openai_client")

    client = module.OpenAICompletionClient(api_key="sk-key", temperature=0.2, timeout=30)
    answer = client.complete("gpt-4o", "Summarize")

    assert answer == "OpenAI says hi"
    assert created == [{"api_key": "sk-key", "timeout": 30}]
    assert requests == [
        {
            "model": "gpt-4o",
            "messages": [{"role": "user", "content": "Summarize"}],
            "temperature": 0.2,
        }
    ]


def test_openai_client_wraps_transport_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    _install_openai_stub(monkeypatch, error=TimeoutError("read timed out"))
    module = _reload(monkeypatch, "investor_chat.llm.openai_client")

    client = module.OpenAICompletionClient(api_key="sk-key")
    with pytest.raises(ProviderError, match="read timed out"):
        client.complete("gpt-4o", "prompt")


def test_openai_client_rejects_unexpected_shape(monkeypatch: pytest.MonkeyPatch) -> None:
    _install_openai_stub(monkeypatch, response=types.SimpleNamespace(choices=[]))
    module = _reload(monkeypatch, "investor_chat.llm.openai_client")

    client = module.OpenAICompletionClient(api_key="sk-key")
    with pytest.raises(ProviderError, match="unexpected response shape"):
        client.complete("gpt-4o", "prompt")


def test_openai_client_rejects_empty_content(monkeypatch: pytest.MonkeyPatch) -> None:
    message = types.SimpleNamespace(content=None)
    _install_openai_stub(
        monkeypatch,
        response=types.SimpleNamespace(choices=[types.SimpleNamespace(message=message)]),
    )
    module = _reload(monkeypatch, "investor_chat.llm.openai_client")

    client = module.OpenAICompletionClient(api_key="sk-key")
    with pytest.raises(ProviderError, match="did not return any text"):
        client.complete("gpt-4o", "prompt")


def test_default_openai_request_omits_temperature(monkeypatch: pytest.MonkeyPatch) -> None:
    _created, requests = _install_openai_stub(monkeypatch)
    _reload(monkeypatch, "investor_chat.llm.openai_client")

    client = default_client_factories(LLMConfig())[ProviderKind.OPENAI]("sk-key")
    client.complete("o3-mini", "Summarize")

    assert requests == [
        {"model": "o3-mini", "messages": [{"role": "user", "content": "Summarize"}]}
    ]


def test_configured_temperature_reaches_openai(monkeypatch: pytest.MonkeyPatch) -> None:
    _created, requests = _install_openai_stub(monkeypatch)
    _reload(monkeypatch, "investor_chat.llm.openai_client")

    client = default_client_factories(LLMConfig(temperature=0.7))[ProviderKind.OPENAI]("sk-key")
    client.complete("gpt-4o", "Summarize")

    assert requests[0]["temperature"] == 0.7


def test_default_gemini_model_has_no_generation_config(monkeypatch: pytest.MonkeyPatch) -> None:
    _config_args, models = _install_genai_stub(monkeypatch)
    _reload(monkeypatch, "investor_chat.llm.gemini")

    client = default_client_factories(LLMConfig())[ProviderKind.GEMINI]("g-key")
    client.complete("gemini-1.5-pro", "Summarize")

    assert models[0].generation_config == {}
