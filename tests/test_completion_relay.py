import asyncio

import pytest
from openai import OpenAIError

from app.services.completion_relay import CompletionStreamRelay, RelayState
from app.services.errors import UpstreamError


async def _run(relay: CompletionStreamRelay, received: list) -> None:
    await relay.open("system brief", "user instruction")
    async for text in relay.chunks():
        received.append(text)


def test_chunks_are_forwarded_verbatim_in_order(completion_client) -> None:
    client = completion_client(["Tomatoes", None, " need ", "", "reordering.", "Tomatoes"])
    relay = CompletionStreamRelay(client, model="gpt-test")
    received = []

    asyncio.run(_run(relay, received))

    assert received == ["Tomatoes", " need ", "reordering.", "Tomatoes"]
    assert relay.state is RelayState.COMPLETED
    assert client.stream.closed is True


def test_request_uses_fixed_parameters(completion_client) -> None:
    client = completion_client(["ok"])
    relay = CompletionStreamRelay(client, model="gpt-test")

    asyncio.run(_run(relay, []))

    [call] = client.completions.calls
    assert call["model"] == "gpt-test"
    assert call["stream"] is True
    assert call["max_tokens"] == 1000
    assert call["temperature"] == 0.7
    assert call["messages"] == [
        {"role": "system", "content": "system brief"},
        {"role": "user", "content": "user instruction"},
    ]


def test_state_moves_to_streaming_on_first_chunk(completion_client) -> None:
    relay = CompletionStreamRelay(completion_client(["first", "second"]))
    states = []

    async def _observe() -> None:
        states.append(relay.state)
        await relay.open("s", "u")
        states.append(relay.state)
        async for _ in relay.chunks():
            states.append(relay.state)
        states.append(relay.state)

    asyncio.run(_observe())

    assert states == [
        RelayState.IDLE,
        RelayState.REQUESTING,
        RelayState.STREAMING,
        RelayState.STREAMING,
        RelayState.COMPLETED,
    ]


def test_empty_stream_completes_normally(completion_client) -> None:
    relay = CompletionStreamRelay(completion_client([]))
    received = []

    asyncio.run(_run(relay, received))

    assert received == []
    assert relay.state is RelayState.COMPLETED


def test_setup_failure_raises_before_streaming(completion_client) -> None:
    relay = CompletionStreamRelay(completion_client(create_error=OpenAIError("quota exceeded")))

    with pytest.raises(UpstreamError):
        asyncio.run(relay.open("s", "u"))
    assert relay.state is RelayState.ERRORED


def test_mid_stream_failure_keeps_sent_text_and_errors(completion_client) -> None:
    client = completion_client(["partial ", "advice"], stream_error=ConnectionResetError("reset"))
    relay = CompletionStreamRelay(client)
    received = []

    with pytest.raises(UpstreamError):
        asyncio.run(_run(relay, received))

    assert received == ["partial ", "advice"]
    assert relay.state is RelayState.ERRORED
    assert client.stream.closed is True


def test_relay_is_single_use(completion_client) -> None:
    relay = CompletionStreamRelay(completion_client(["once"]))
    asyncio.run(_run(relay, []))

    with pytest.raises(RuntimeError):
        asyncio.run(relay.open("s", "u"))


def test_chunks_require_an_open_request(completion_client) -> None:
    relay = CompletionStreamRelay(completion_client(["x"]))

    async def _consume() -> None:
        async for _ in relay.chunks():
            pass

    with pytest.raises(RuntimeError):
        asyncio.run(_consume())
