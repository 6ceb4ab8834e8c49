"""Tests for prompt building, fence stripping and AgentConfig validation."""

import pytest

from agent_manager.core.exceptions import GenerationParseError, ProviderError
from agent_manager.domain.providers import AIProvider
from agent_manager.llm.base import (
    JSON_ONLY_SUFFIX,
    build_agent_prompt,
    parse_agent_config,
    strip_json_fences,
)
from tests.fakes import VALID_AGENT_JSON

pytestmark = pytest.mark.unit


class TestStripJsonFences:
    def test_no_fences(self):
        raw = '{"key": "value"}'
        assert strip_json_fences(raw) == '{"key": "value"}'

    def test_json_fence(self):
        raw = '```json\n{"key": "value"}\n```'
        assert strip_json_fences(raw) == '{"key": "value"}'

    def test_plain_fence(self):
        raw = '```\n{"key": "value"}\n```'
        assert strip_json_fences(raw) == '{"key": "value"}'

    def test_fence_with_whitespace(self):
        raw = '  ```json\n{"key": "value"}\n```  '
        assert strip_json_fences(raw) == '{"key": "value"}'


class TestBuildAgentPrompt:
    def test_description_is_embedded(self):
        prompt = build_agent_prompt("An agent that triages support tickets")
        assert "An agent that triages support tickets" in prompt
        assert '"select", or "radio"' in prompt

    def test_json_only_suffix(self):
        assert build_agent_prompt("x" * 10, json_only=True).endswith(JSON_ONLY_SUFFIX)
        assert not build_agent_prompt("x" * 10).endswith(JSON_ONLY_SUFFIX)


class TestParseAgentConfig:
    def test_valid_config(self):
        config = parse_agent_config(VALID_AGENT_JSON, AIProvider.GEMINI)
        assert config.name == "Research Planner"
        assert [v.name for v in config.variables] == ["topic", "depth"]
        assert config.variables[1].default_value == "deep"
        assert config.variables[1].options == ["shallow", "deep"]

    def test_fenced_config(self):
        config = parse_agent_config(f"```json\n{VALID_AGENT_JSON}\n```", AIProvider.CLAUDE)
        assert config.name == "Research Planner"

    def test_serializes_camel_case(self):
        config = parse_agent_config(VALID_AGENT_JSON, AIProvider.GEMINI)
        dumped = config.model_dump(by_alias=True, exclude_none=True)
        assert dumped["variables"][1]["defaultValue"] == "deep"

    def test_invalid_json_raises_parse_error(self):
        with pytest.raises(GenerationParseError) as exc_info:
            parse_agent_config("not json at all", AIProvider.OPENAI)
        assert exc_info.value.provider == AIProvider.OPENAI

    def test_parse_error_is_a_provider_error(self):
        with pytest.raises(ProviderError):
            parse_agent_config("[]", AIProvider.GEMINI)

    def test_missing_variables_rejected(self):
        with pytest.raises(GenerationParseError):
            parse_agent_config('{"name": "A", "description": "B"}', AIProvider.GEMINI)

    def test_unknown_variable_type_rejected(self):
        raw = (
            '{"name": "A", "description": "B", "variables": '
            '[{"name": "n", "label": "N", "type": "checkbox", "description": "d"}]}'
        )
        with pytest.raises(GenerationParseError):
            parse_agent_config(raw, AIProvider.GEMINI)

    @pytest.mark.parametrize("var_type", ["select", "radio"])
    def test_choice_variable_without_options_rejected(self, var_type):
        raw = (
            '{"name": "A", "description": "B", "variables": '
            f'[{{"name": "n", "label": "N", "type": "{var_type}", "description": "d", "options": []}}]}}'
        )
        with pytest.raises(GenerationParseError):
            parse_agent_config(raw, AIProvider.GEMINI)
