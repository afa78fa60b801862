"""PromptRouter dispatch, dual route and fallback tests with fake providers."""

import asyncio

import pytest

from prompt_router.aliases import GEMINI_MODELS, OPENROUTER_MODELS
from prompt_router.envelope import ALL_FAILED_MESSAGE, DualEnvelope, ErrorEnvelope, TextEnvelope
from prompt_router.errors import ErrorKind, InvalidInputError, PromptTooLongError, ProviderError
from prompt_router.models import LLMProvider, Message, ProviderSpec
from prompt_router.router import PromptRouter


class FakeProvider(LLMProvider):
    """Returns scripted outcomes in order and records every invoke."""

    def __init__(self, name, models, outcomes=None):
        super().__init__(ProviderSpec(name, models["general"], models))
        self.outcomes = list(outcomes or [])
        self.calls = []

    async def invoke(self, conversation, model=None, on_token=None):
        self.calls.append({"model": model, "conversation": conversation, "on_token": on_token})
        outcome = self.outcomes.pop(0) if self.outcomes else f"{self.name} reply"
        if isinstance(outcome, Exception):
            raise outcome
        if on_token is not None:
            on_token(outcome)
        return outcome


def _fail(name, kind=ErrorKind.UNKNOWN):
    return ProviderError(name, f"{name} is down", kind=kind)


def _router(gemini_outcomes=None, openrouter_outcomes=None, **kwargs):
    gemini = FakeProvider("gemini", GEMINI_MODELS, gemini_outcomes)
    openrouter = FakeProvider("openrouter", OPENROUTER_MODELS, openrouter_outcomes)
    return PromptRouter(gemini, openrouter, **kwargs), gemini, openrouter


@pytest.mark.asyncio
async def test_regional_prompt_goes_to_gemini():
    router, gemini, openrouter = _router(["Salam!"])
    result = await router.route("Salam, nähili?")

    assert isinstance(result, TextEnvelope)
    assert result.route_tag == "single:gemini"
    assert result.category == "regional-language"
    assert result.text == "Salam!"
    assert [c["model"] for c in gemini.calls] == ["gemini-pro"]
    assert openrouter.calls == []


@pytest.mark.asyncio
async def test_coding_prompt_goes_to_openrouter_coder():
    router, gemini, openrouter = _router()
    result = await router.route("Create a todo app in React")

    assert result.route_tag == "single:openrouter"
    assert result.model == "deepseek/deepseek-coder"
    assert [c["model"] for c in openrouter.calls] == ["deepseek/deepseek-coder"]
    assert gemini.calls == []


@pytest.mark.asyncio
async def test_general_prompt_goes_to_gemini():
    router, gemini, openrouter = _router()
    result = await router.route("Tell me a joke")

    assert result.route_tag == "single:gemini"
    assert result.category == "general"
    assert len(gemini.calls) == 1
    assert openrouter.calls == []


@pytest.mark.asyncio
async def test_science_prompt_asks_both():
    router, gemini, openrouter = _router(["gemini answer"], ["llama answer"])
    result = await router.route("Explain quantum physics")

    assert isinstance(result, DualEnvelope)
    assert result.route_tag == "dual"
    assert result.responses == {"openrouter": "llama answer", "gemini": "gemini answer"}
    assert [c["model"] for c in openrouter.calls] == ["meta-llama/llama-3.1-8b-instruct:free"]
    assert [c["model"] for c in gemini.calls] == ["gemini-pro"]


@pytest.mark.asyncio
async def test_dual_keeps_both_keys_when_one_fails():
    router, gemini, openrouter = _router(
        ["gemini answer"], [_fail("openrouter", ErrorKind.RATE_LIMITED)],
    )
    result = await router.route("solve this equation")

    assert result.route_tag == "dual"
    assert result.responses == {
        "openrouter": "Error: openrouter is down",
        "gemini": "gemini answer",
    }
    assert result.results["openrouter"].error_kind == "rate_limited"
    # no fallback on the dual route
    assert len(openrouter.calls) == 1


@pytest.mark.asyncio
async def test_dual_never_raises_when_both_fail():
    router, gemini, openrouter = _router([_fail("gemini")], [RuntimeError("socket closed")])
    result = await router.route("calculate the molecule mass")

    assert isinstance(result, DualEnvelope)
    assert result.responses == {
        "openrouter": "Error: socket closed",
        "gemini": "Error: gemini is down",
    }
    assert len(openrouter.calls) == 1
    assert len(gemini.calls) == 1


@pytest.mark.asyncio
async def test_dual_does_not_stream():
    router, gemini, openrouter = _router()
    tokens = []
    await router.route("math question", on_token=tokens.append)
    assert tokens == []
    assert gemini.calls[0]["on_token"] is None
    assert openrouter.calls[0]["on_token"] is None


@pytest.mark.asyncio
async def test_primary_failure_uses_fallback_once():
    router, gemini, openrouter = _router([_fail("gemini")], ["fallback text"])
    result = await router.route("Tell me a joke")

    assert isinstance(result, TextEnvelope)
    assert result.route_tag == "fallback"
    assert result.text == "fallback text"
    assert result.model == "mistralai/mistral-7b-instruct:free"
    assert len(gemini.calls) == 1
    assert [c["model"] for c in openrouter.calls] == ["mistralai/mistral-7b-instruct:free"]


@pytest.mark.asyncio
async def test_coding_failure_falls_back_on_same_provider():
    router, gemini, openrouter = _router(None, [_fail("openrouter"), "fallback text"])
    result = await router.route("debug my website")

    assert result.route_tag == "fallback"
    assert [c["model"] for c in openrouter.calls] == [
        "deepseek/deepseek-coder",
        "mistralai/mistral-7b-instruct:free",
    ]
    assert gemini.calls == []


@pytest.mark.asyncio
async def test_all_failed_returns_error_envelope():
    router, gemini, openrouter = _router([_fail("gemini")], [_fail("openrouter", ErrorKind.NETWORK)])
    result = await router.route("Tell me a joke")

    assert isinstance(result, ErrorEnvelope)
    assert result.route_tag == "error"
    assert result.message == ALL_FAILED_MESSAGE
    assert result.error == "openrouter is down"
    assert len(openrouter.calls) == 1


@pytest.mark.asyncio
async def test_prompt_too_long_rejected_before_any_call():
    router, gemini, openrouter = _router(max_prompt_chars=10)
    with pytest.raises(PromptTooLongError) as exc_info:
        await router.route("Tell me a very long joke")

    assert exc_info.value.limit == 10
    assert exc_info.value.length == len("Tell me a very long joke")
    assert gemini.calls == []
    assert openrouter.calls == []


@pytest.mark.asyncio
async def test_length_counts_whole_conversation():
    router, gemini, openrouter = _router(max_prompt_chars=10)
    with pytest.raises(PromptTooLongError):
        await router.route([
            {"role": "user", "content": "123456"},
            {"role": "assistant", "content": "7890"},
            {"role": "user", "content": "x"},
        ])
    assert gemini.calls == []


@pytest.mark.asyncio
async def test_length_limit_disabled():
    router, gemini, openrouter = _router(max_prompt_chars=None)
    result = await router.route("joke " * 5000)
    assert result.route_tag == "single:gemini"


@pytest.mark.asyncio
@pytest.mark.parametrize("raw", ["", [], [{"role": "user", "content": "  "}]])
async def test_invalid_input_is_raised_without_fallback(raw):
    router, gemini, openrouter = _router()
    with pytest.raises(InvalidInputError):
        await router.route(raw)
    assert gemini.calls == []
    assert openrouter.calls == []


@pytest.mark.asyncio
async def test_only_last_message_is_classified():
    router, gemini, openrouter = _router()
    conversation = [
        Message("user", "write code for my app"),
        Message("assistant", "Sure, here it is."),
        Message("user", "Thanks, tell me a joke now"),
    ]
    result = await router.route(conversation)

    assert result.route_tag == "single:gemini"
    assert gemini.calls[0]["conversation"] == conversation


@pytest.mark.asyncio
async def test_streaming_passes_token_callback():
    router, gemini, openrouter = _router(None, ["def main(): pass"])
    tokens = []
    result = await router.route("write a function", on_token=tokens.append)

    assert tokens == ["def main(): pass"]
    assert result.text == "def main(): pass"


@pytest.mark.asyncio
async def test_trace_events():
    events = []
    router, gemini, openrouter = _router([_fail("gemini")], ["ok"], on_event=events.append)
    await router.route("hello there")

    assert [e.name for e in events] == [
        "route.classified", "route.dispatched", "route.fallback", "route.completed",
    ]
    assert events[0].category == "general"
    assert (events[1].provider, events[1].model) == ("gemini", "gemini-pro")
    assert events[2].model == "mistralai/mistral-7b-instruct:free"
    assert events[-1].outcome == "fallback"


@pytest.mark.asyncio
async def test_broken_trace_hook_does_not_fail_request():
    def hook(event):
        raise RuntimeError("collector offline")

    router, gemini, openrouter = _router(on_event=hook)
    result = await router.route("hello there")
    assert result.route_tag == "single:gemini"


class RendezvousProvider(FakeProvider):
    """Sets its own event, then waits for the peer's before answering."""

    def __init__(self, name, models, mine, peer, outcomes=None):
        super().__init__(name, models, outcomes)
        self.mine = mine
        self.peer = peer

    async def invoke(self, conversation, model=None, on_token=None):
        self.mine.set()
        await asyncio.wait_for(self.peer.wait(), timeout=1.0)
        return await super().invoke(conversation, model, on_token)


class DelayedProvider(FakeProvider):
    def __init__(self, name, models, outcomes=None, delay=0.05):
        super().__init__(name, models, outcomes)
        self.delay = delay

    async def invoke(self, conversation, model=None, on_token=None):
        await asyncio.sleep(self.delay)
        return await super().invoke(conversation, model, on_token)


@pytest.mark.asyncio
async def test_dual_calls_are_in_flight_together():
    gemini_started, openrouter_started = asyncio.Event(), asyncio.Event()
    gemini = RendezvousProvider("gemini", GEMINI_MODELS, gemini_started, openrouter_started, ["g"])
    openrouter = RendezvousProvider(
        "openrouter", OPENROUTER_MODELS, openrouter_started, gemini_started, ["o"],
    )
    result = await PromptRouter(gemini, openrouter).route("Explain quantum physics")

    # a sequential dispatch would time out waiting on the peer
    assert result.responses == {"openrouter": "o", "gemini": "g"}


@pytest.mark.asyncio
async def test_dual_late_failure_does_not_drop_success():
    gemini = FakeProvider("gemini", GEMINI_MODELS, ["quick answer"])
    openrouter = DelayedProvider("openrouter", OPENROUTER_MODELS, [_fail("openrouter")])
    result = await PromptRouter(gemini, openrouter).route("solve for x")

    assert result.responses == {
        "openrouter": "Error: openrouter is down",
        "gemini": "quick answer",
    }


@pytest.mark.asyncio
async def test_dual_early_failure_does_not_cancel_slow_call():
    gemini = DelayedProvider("gemini", GEMINI_MODELS, ["slow answer"])
    openrouter = FakeProvider("openrouter", OPENROUTER_MODELS, [RuntimeError("refused")])
    result = await PromptRouter(gemini, openrouter).route("balance the chemistry formula")

    assert result.responses == {"openrouter": "Error: refused", "gemini": "slow answer"}
    assert len(gemini.calls) == 1


@pytest.mark.asyncio
async def test_dual_trace_names_both_providers():
    events = []
    router, gemini, openrouter = _router(on_event=events.append)
    await router.route("what is an atom")

    dispatched = [(e.provider, e.model) for e in events if e.name == "route.dispatched"]
    assert dispatched == [
        ("openrouter", "meta-llama/llama-3.1-8b-instruct:free"),
        ("gemini", "gemini-pro"),
    ]


def test_providers_must_have_distinct_names():
    first = FakeProvider("llm", GEMINI_MODELS)
    second = FakeProvider("llm", OPENROUTER_MODELS)
    with pytest.raises(ValueError, match="distinct names"):
        PromptRouter(first, second)
