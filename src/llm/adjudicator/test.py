"""Tests for LLM adjudication of props-source violations."""

import json
import os

import pytest

from src.llm.backend import (
    AuthenticationError,
    LLMError,
    LLMTimeoutError,
    RateLimitError,
)
from src.llm.conftest import MockLLMBackend
from src.schema import load_conversation
from src.trace import ViolationDetail, collect_props_source_violations
from src.validation import (
    CHECK_COMPONENT_PROPS_SOURCE,
    ValidationReport,
    ValidationResult,
    check_component_props_source,
)

from .context import (
    SYSTEM_PROMPT,
    EvaluationCategory,
    build_evaluation_context,
    format_prompt,
    parse_llm_response,
    truncate_value,
)
from .lib import (
    AggregatedEvaluation,
    EvaluationOutcome,
    LlmConfig,
    apply_adjudication,
    evaluate_violations,
    load_llm_config,
)

APPROVE = '{"approved": true, "reasoning": "Static heading", "category": "hardcoded"}'
REJECT = '{"approved": false, "reasoning": "Invented text", "category": "unclear"}'


def _weather_conversation():
    """A transcript whose final component carries two untraceable props."""
    return load_conversation(
        {
            "conversation": [
                {"role": "user", "content": "What's the weather?"},
                {
                    "role": "assistant",
                    "content": None,
                    "toolCalls": [{"id": "call_1", "name": "get_weather"}],
                },
                {
                    "role": "tool",
                    "content": json.dumps({"temperature": 21}),
                    "toolCallId": "call_1",
                },
                {
                    "role": "assistant",
                    "content": [
                        {
                            "type": "component",
                            "component": {
                                "name": "Weather",
                                "props": {
                                    "forecast": {"headline": "Sunny spells all week"},
                                    "summary": (
                                        "An invented paragraph nobody fetched "
                                        "from any tool"
                                    ),
                                },
                            },
                        }
                    ],
                },
            ]
        }
    )


@pytest.fixture
def weather_conversation():
    return _weather_conversation()


@pytest.fixture
def weather_violations(weather_conversation):
    return collect_props_source_violations(weather_conversation)


@pytest.fixture
def enabled_config():
    return LlmConfig(api_key="test-api-key-12345")


class TestTruncateValue:
    """Tests for truncate_value."""

    @pytest.mark.unit
    def test_short_values_unchanged(self):
        """Values within budget come back equal."""
        value = {"a": [1, 2, 3], "b": "short", "c": None, "d": True}
        assert truncate_value(value) == value

    @pytest.mark.unit
    def test_long_string(self):
        """Long strings are cut at the budget and marked."""
        assert truncate_value("x" * 20, 10) == "x" * 10 + "... [truncated]"

    @pytest.mark.unit
    def test_long_list(self):
        """Long lists keep three head items, a marker and the last item."""
        assert truncate_value(list(range(10))) == [0, 1, 2, "... [6 items omitted]", 9]

    @pytest.mark.unit
    def test_four_items_kept(self):
        """A four item list is not shortened."""
        assert truncate_value([1, 2, 3, 4]) == [1, 2, 3, 4]

    @pytest.mark.unit
    def test_wide_object(self):
        """Objects keep their first ten keys plus an omission entry."""
        value = {f"k{i}": i for i in range(13)}
        result = truncate_value(value)
        assert list(result)[:10] == [f"k{i}" for i in range(10)]
        assert result["..."] == "[3 more keys omitted]"
        assert len(result) == 11

    @pytest.mark.unit
    def test_budget_halves_per_level(self):
        """Nested strings get half the parent's budget."""
        result = truncate_value({"outer": {"inner": "y" * 40}}, 100)
        assert result["outer"]["inner"] == "y" * 25 + "... [truncated]"


class TestEvaluationContext:
    """Tests for build_evaluation_context."""

    @pytest.mark.unit
    def test_context_from_violation(self, weather_conversation, weather_violations):
        """Context carries the prop, recent messages and earlier tool results."""
        context = build_evaluation_context(weather_violations[0], weather_conversation)

        assert context.component == "Weather"
        assert context.prop == "forecast"
        assert context.message_index == 3
        assert [m.role for m in context.preceding_messages] == [
            "assistant",
            "tool",
            "assistant",
        ]
        assert context.tool_results == {"call_1": {"temperature": 21}}

    @pytest.mark.unit
    def test_last_three_tool_results(self):
        """Only the three most recent earlier tool results are kept."""
        messages = [{"role": "user", "content": "hi"}]
        messages += [{"role": "tool", "content": str(i)} for i in range(5)]
        messages.append({"role": "assistant", "content": []})
        conversation = load_conversation({"conversation": messages})
        violation = ViolationDetail(message_index=6, component="C", prop="p", value={})

        context = build_evaluation_context(violation, conversation)

        assert context.tool_results == {"tool_3": 2, "tool_4": 3, "tool_5": 4}

    @pytest.mark.unit
    def test_later_tool_results_excluded(self, weather_conversation):
        """Tool results after the violating message are not shown."""
        violation = ViolationDetail(message_index=1, component="C", prop="p", value="v")
        context = build_evaluation_context(violation, weather_conversation)
        assert context.tool_results == {}
        assert len(context.preceding_messages) == 2

    @pytest.mark.unit
    def test_prop_value_truncated(self, weather_conversation):
        """Prop values are truncated before prompting."""
        violation = ViolationDetail(
            message_index=3, component="C", prop="p", value="z" * 2000
        )
        context = build_evaluation_context(violation, weather_conversation)
        assert context.prop_value == "z" * 1500 + "... [truncated]"

    @pytest.mark.unit
    def test_string_message_content_truncated(self):
        """Long plain-text messages are cut to the message budget."""
        conversation = load_conversation(
            {
                "conversation": [
                    {"role": "user", "content": "q" * 1200},
                    {"role": "assistant", "content": []},
                ]
            }
        )
        violation = ViolationDetail(message_index=1, component="C", prop="p", value="v")

        context = build_evaluation_context(violation, conversation)

        assert context.preceding_messages[0].content == "q" * 1000 + "... [truncated]"
        assert conversation.messages[0].content == "q" * 1200


class TestFormatPrompt:
    """Tests for format_prompt."""

    @pytest.mark.unit
    def test_sections(self, weather_conversation, weather_violations):
        """The prompt names the prop and embeds context sections."""
        prompt = format_prompt(
            build_evaluation_context(weather_violations[0], weather_conversation)
        )

        assert "COMPONENT: Weather" in prompt
        assert "PROP NAME: forecast" in prompt
        assert '"headline": "Sunny spells all week"' in prompt
        assert "[Message 1 - assistant]:" in prompt
        assert "[Message 2 - tool]:" in prompt
        assert "[Tool Result call_1]:" in prompt
        assert '"approved": true or false' in prompt

    @pytest.mark.unit
    def test_no_tool_results(self, weather_conversation):
        """A placeholder replaces an empty tool results section."""
        violation = ViolationDetail(message_index=1, component="C", prop="p", value="v")
        prompt = format_prompt(build_evaluation_context(violation, weather_conversation))
        assert "(No tool results available)" in prompt
        assert "[Message 1 - user]:\nWhat's the weather?" in prompt


class TestParseLlmResponse:
    """Tests for parse_llm_response."""

    @pytest.mark.unit
    def test_fenced_block(self):
        """A fenced json block is parsed."""
        result = parse_llm_response(
            '```json\n{"approved": true, "reasoning": "ok", "category":"hardcoded"}\n```'
        )
        assert result.approved is True
        assert result.reasoning == "ok"
        assert result.category == EvaluationCategory.HARDCODED

    @pytest.mark.unit
    def test_raw_json_with_prose(self):
        """Bare JSON surrounded by prose is found."""
        result = parse_llm_response(
            'Verdict: {"approved": false, "reasoning": "no", "category": "derived"} done'
        )
        assert result.approved is False
        assert result.category == EvaluationCategory.DERIVED

    @pytest.mark.unit
    def test_missing_approved(self):
        """Output without a boolean approved field is rejected."""
        result = parse_llm_response('{"reasoning": "looks fine"}')
        assert result.approved is False
        assert result.category == EvaluationCategory.UNCLEAR
        assert result.reasoning == (
            'LLM response parsing failed: Missing or invalid "approved" field'
        )

    @pytest.mark.unit
    def test_string_approved(self):
        """A string approved field is not accepted."""
        assert parse_llm_response('{"approved": "true"}').approved is False

    @pytest.mark.unit
    def test_no_json(self):
        """Replies without JSON are rejected with a diagnostic."""
        result = parse_llm_response("I cannot decide.")
        assert result.approved is False
        assert result.reasoning == "LLM response parsing failed: No JSON found in LLM response"

    @pytest.mark.unit
    def test_invalid_json(self):
        """Broken JSON is rejected."""
        result = parse_llm_response('{"approved": true,,}')
        assert result.approved is False
        assert result.reasoning.startswith("LLM response parsing failed:")

    @pytest.mark.unit
    def test_defaults(self):
        """Missing reasoning and unknown categories fall back."""
        result = parse_llm_response('{"approved": true, "category": "vibes"}')
        assert result.approved is True
        assert result.reasoning == "No reasoning provided"
        assert result.category == EvaluationCategory.UNCLEAR


class TestLlmConfig:
    """Tests for LlmConfig and load_llm_config."""

    @pytest.mark.unit
    def test_defaults(self):
        """Defaults match the documented adjudication settings."""
        config = LlmConfig()
        assert config.model == "gpt-4-turbo"
        assert config.temperature == 0.1
        assert config.max_tokens == 1000
        assert config.timeout == 30.0
        assert not config.enabled

    @pytest.mark.unit
    def test_repr_hides_key(self):
        """The API key never appears in the repr."""
        config = LlmConfig(api_key="sk-secret-value")
        assert "sk-secret-value" not in repr(config)
        assert config.enabled

    @pytest.mark.unit
    def test_load_from_environment(self, preserve_env_keys):
        """Environment values are converted and overrides win."""
        os.environ["OPENAI_API_KEY"] = "env-key"
        os.environ["LLM_MODEL"] = "gpt-4o"
        os.environ["LLM_MAX_TOKENS"] = "256"
        os.environ["LLM_TIMEOUT"] = "5"

        config = load_llm_config(model="gpt-4")

        assert config.api_key == "env-key"
        assert config.model == "gpt-4"
        assert config.max_tokens == 256
        assert config.timeout == 5.0

    @pytest.mark.unit
    def test_load_without_key(self, preserve_env_keys):
        """No key in the environment leaves adjudication disabled."""
        os.environ.pop("OPENAI_API_KEY", None)
        assert not load_llm_config().enabled


class TestEvaluateViolations:
    """Tests for evaluate_violations."""

    @pytest.mark.unit
    def test_requires_api_key(self, weather_conversation, weather_violations):
        """Adjudication refuses to run without a key."""
        with pytest.raises(AuthenticationError, match="not configured"):
            evaluate_violations(
                weather_violations, weather_conversation, LlmConfig(), MockLLMBackend()
            )

    @pytest.mark.unit
    def test_sequential_verdicts(
        self, weather_conversation, weather_violations, enabled_config
    ):
        """Each violation gets one request, and details keep input order."""
        backend = MockLLMBackend([APPROVE, REJECT])

        evaluation = evaluate_violations(
            weather_violations, weather_conversation, enabled_config, backend
        )

        assert evaluation.approved_count == 1
        assert evaluation.rejected_count == 1
        assert [d.violation for d in evaluation.details] == [
            "Message 4, Component Weather.forecast",
            "Message 4, Component Weather.summary",
        ]
        assert evaluation.details[0].category == "hardcoded"
        assert evaluation.details[1].reasoning == "Invented text"
        assert len(backend.calls) == 2
        assert backend.calls[0]["system_prompt"] == SYSTEM_PROMPT
        assert backend.calls[0]["config"].temperature == 0.1
        assert backend.calls[0]["config"].max_tokens == 1000

    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("failure", "reason"),
        [
            (LLMTimeoutError("OpenAI API request timed out after 30s"), "timed out"),
            (RateLimitError("Rate limit reached", retry_after=2.0), "Rate limit"),
            (LLMError("OpenAI API error: 500 boom"), "500 boom"),
            ("", "Empty response from OpenAI API"),
            (ConnectionError("reset by peer"), "reset by peer"),
            (RuntimeError("unexpected SDK state"), "unexpected SDK state"),
        ],
    )
    def test_failures_become_rejections(
        self, weather_conversation, weather_violations, enabled_config, failure, reason
    ):
        """Backend failures reject only the affected violation."""
        backend = MockLLMBackend([failure, APPROVE])

        evaluation = evaluate_violations(
            weather_violations, weather_conversation, enabled_config, backend
        )

        first = evaluation.details[0]
        assert first.approved is False
        assert first.category == "unclear"
        assert first.reasoning.startswith("Evaluation failed: ")
        assert reason in first.reasoning
        assert evaluation.details[1].approved is True
        assert (evaluation.approved_count, evaluation.rejected_count) == (1, 1)

    @pytest.mark.unit
    def test_context_failure_becomes_rejection(
        self, monkeypatch, weather_conversation, weather_violations, enabled_config
    ):
        """A failure before the request rejects that violation and the batch goes on."""
        from . import lib

        real_build = lib.build_evaluation_context

        def build(violation, conversation):
            if violation.prop == "forecast":
                raise KeyError("forecast")
            return real_build(violation, conversation)

        monkeypatch.setattr(lib, "build_evaluation_context", build)
        backend = MockLLMBackend([APPROVE])

        evaluation = evaluate_violations(
            weather_violations, weather_conversation, enabled_config, backend
        )

        assert evaluation.details[0].approved is False
        assert "forecast" in evaluation.details[0].reasoning
        assert evaluation.details[1].approved is True
        assert len(backend.calls) == 1

    @pytest.mark.unit
    def test_no_violations(self, weather_conversation, enabled_config):
        """Nothing to adjudicate makes no requests."""
        backend = MockLLMBackend()
        evaluation = evaluate_violations([], weather_conversation, enabled_config, backend)
        assert evaluation == AggregatedEvaluation()
        assert backend.calls == []

    @pytest.mark.unit
    def test_backend_built_from_config(self, weather_conversation):
        """Without a backend, one is built from the config's model."""
        config = LlmConfig(api_key="test-api-key-12345", model="not-a-model")
        with pytest.raises(ValueError, match="Unknown model"):
            evaluate_violations([], weather_conversation, config)


class TestEvaluationOutcome:
    """Tests for EvaluationOutcome."""

    @pytest.mark.unit
    def test_error_outcome_is_rejection(self, weather_violations):
        """An error outcome folds into a rejection."""
        outcome = EvaluationOutcome(
            violation=weather_violations[0], error=LLMError("boom")
        )
        aggregate = AggregatedEvaluation()
        aggregate.add(outcome)
        assert aggregate.rejected_count == 1
        assert aggregate.details[0].reasoning == "Evaluation failed: boom"
        assert aggregate.rejected == ["Message 4, Component Weather.forecast"]


class TestApplyAdjudication:
    """Tests for apply_adjudication."""

    def _report(self, conversation):
        return ValidationReport.from_results(
            [
                ValidationResult(check="Other", passed=True, message="ok"),
                check_component_props_source(conversation),
            ]
        )

    @pytest.mark.unit
    def test_all_approved_passes(
        self, weather_conversation, weather_violations, enabled_config
    ):
        """Approving every violation turns the props-source check green."""
        report = self._report(weather_conversation)
        assert not report.all_passed

        evaluation = evaluate_violations(
            weather_violations,
            weather_conversation,
            enabled_config,
            MockLLMBackend([APPROVE, APPROVE]),
        )
        adjudicated = apply_adjudication(report, evaluation)

        assert adjudicated.all_passed
        assert adjudicated.get(CHECK_COMPONENT_PROPS_SOURCE).passed
        assert not report.all_passed

    @pytest.mark.unit
    def test_rejections_remain(
        self, weather_conversation, weather_violations, enabled_config
    ):
        """Only rejected violations are listed after adjudication."""
        evaluation = evaluate_violations(
            weather_violations,
            weather_conversation,
            enabled_config,
            MockLLMBackend([APPROVE, REJECT]),
        )
        adjudicated = apply_adjudication(self._report(weather_conversation), evaluation)

        result = adjudicated.get(CHECK_COMPONENT_PROPS_SOURCE)
        assert not adjudicated.all_passed
        assert result.metadata == {"total_violations": 1}
        assert len(result.details) == 1
        assert result.details[0].startswith("Message 4, Component Weather.summary: ")
        assert [r.check for r in adjudicated.results] == [
            "Other",
            CHECK_COMPONENT_PROPS_SOURCE,
        ]

    @pytest.mark.unit
    def test_report_without_props_source(self):
        """Reports lacking the check are returned as-is."""
        report = ValidationReport.from_results(
            [ValidationResult(check="Other", passed=False, message="bad")]
        )
        assert apply_adjudication(report, AggregatedEvaluation()) is report
