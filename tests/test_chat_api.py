"""End-to-end tests for the streaming chat endpoint."""

import json

import pytest

from docassist.core.config import settings
from docassist.main import app
from docassist.services.chat_service import ChatOrchestrator, get_orchestrator, sources_frame
from tests.streams import DONE_FRAME, delta_frame

CHAT_URL = "/api/v1/chat/"


def user_turn(content="What is the leave policy?"):
    return {"messages": [{"role": "user", "content": content}]}


async def messages_of(client, headers, conversation_id):
    response = await client.get(f"/api/v1/conversations/{conversation_id}/messages", headers=headers)
    assert response.status_code == 200
    return response.json()


async def test_streams_sources_then_deltas(client, user_factory, upload_factory, gateway) -> None:
    _, headers = await user_factory("hr")
    await upload_factory(headers, text="The leave policy allows 25 days per year.",
                         file_name="leave.txt", category="hr", title="Leave Handbook")

    response = await client.post(CHAT_URL, headers=headers, json=user_turn())

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.headers["cache-control"] == "no-cache"
    expected_frame = sources_frame([{"title": "Leave Handbook", "category": "hr"}])
    assert response.content == expected_frame + b"".join(gateway.chunks)

    system_prompt = gateway.last_payload["messages"][0]["content"]
    assert "[Source: Leave Handbook]\nThe leave policy allows 25 days per year." in system_prompt


async def test_conversation_is_recorded(client, user_factory, gateway) -> None:
    _, headers = await user_factory()
    gateway.reply([delta_frame("No documents"), delta_frame(" yet."), DONE_FRAME])

    response = await client.post(CHAT_URL, headers=headers, json=user_turn("hello there"))
    conversation_id = response.headers["x-conversation-id"]

    messages = await messages_of(client, headers, conversation_id)
    assert [(m["role"], m["content"]) for m in messages] == [
        ("user", "hello there"),
        ("assistant", "No documents yet."),
    ]
    assert messages[1]["sources"] is None

    conversations = (await client.get("/api/v1/conversations/", headers=headers)).json()
    assert conversations == [
        {"id": conversation_id, "title": "hello there", "createdAt": conversations[0]["createdAt"]}
    ]


async def test_follow_up_reuses_conversation(client, user_factory, gateway) -> None:
    _, headers = await user_factory()
    first = await client.post(CHAT_URL, headers=headers, json=user_turn("first question"))
    conversation_id = first.headers["x-conversation-id"]

    follow_up = {
        "conversationId": conversation_id,
        "messages": [
            {"role": "user", "content": "first question"},
            {"role": "assistant", "content": "Hello world"},
            {"role": "user", "content": "second question"},
        ],
    }
    second = await client.post(CHAT_URL, headers=headers, json=follow_up)

    assert second.headers["x-conversation-id"] == conversation_id
    assert len(await messages_of(client, headers, conversation_id)) == 4
    assert gateway.last_payload["messages"][1:] == follow_up["messages"]


async def test_no_documents_uses_fallback_prompt(client, user_factory, gateway) -> None:
    _, headers = await user_factory()
    response = await client.post(CHAT_URL, headers=headers, json=user_turn())

    assert not response.content.startswith(b'data: {"sources"')
    assert "No documents have been uploaded yet" in gateway.last_payload["messages"][0]["content"]


async def test_other_categories_never_reach_the_prompt(client, user_factory, upload_factory, gateway) -> None:
    _, admin_headers = await user_factory("admin")
    _, dev_headers = await user_factory("developer")
    await upload_factory(admin_headers, text="Executive salary bands", file_name="pay.txt", category="hr")

    response = await client.post(CHAT_URL, headers=dev_headers, json=user_turn("salary bands"))

    assert b"sources" not in response.content
    assert "Executive salary" not in gateway.last_payload["messages"][0]["content"]


async def test_interrupted_stream_keeps_only_user_turn(client, user_factory, gateway) -> None:
    _, headers = await user_factory()
    gateway.reply([delta_frame("partial answer")])

    response = await client.post(CHAT_URL, headers=headers, json=user_turn())

    assert response.status_code == 200
    messages = await messages_of(client, headers, response.headers["x-conversation-id"])
    assert [m["role"] for m in messages] == ["user"]


@pytest.mark.parametrize(
    "status_code,message",
    [
        (429, "Rate limit exceeded. Please try again in a moment."),
        (402, "AI usage limit reached. Please add credits."),
        (500, "AI gateway error"),
    ],
)
async def test_upstream_failures(client, user_factory, gateway, status_code, message) -> None:
    _, headers = await user_factory()
    gateway.reply([b"upstream says no"], status_code=status_code)

    response = await client.post(CHAT_URL, headers=headers, json=user_turn())

    assert response.status_code == status_code
    assert response.json() == {"error": message}


async def test_unconfigured_gateway_returns_generic_error(client, user_factory, gateway) -> None:
    _, headers = await user_factory()
    config = settings.model_copy(update={"AI_GATEWAY_API_KEY": None})
    app.dependency_overrides[get_orchestrator] = lambda: ChatOrchestrator(config)

    response = await client.post(CHAT_URL, headers=headers, json=user_turn())

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}


@pytest.mark.parametrize(
    "payload",
    [
        {"messages": []},
        {"messages": [{"role": "system", "content": "hi"}]},
        {"messages": [{"role": "user", "content": "   "}]},
        {"messages": [{"role": "user", "content": "x" * 10_001}]},
        {"messages": [{"role": "user", "content": "q"}, {"role": "assistant", "content": "a"}]},
        {"messages": [{"role": "user", "content": "q"}] * 101},
        {},
    ],
)
async def test_invalid_payloads(client, user_factory, gateway, payload) -> None:
    _, headers = await user_factory()
    response = await client.post(CHAT_URL, headers=headers, json=payload)

    assert response.status_code == 400
    assert "error" in response.json()
    assert gateway.requests == []


async def test_requires_authentication(client, gateway) -> None:
    response = await client.post(CHAT_URL, json=user_turn())
    assert response.status_code == 401
    assert gateway.requests == []


async def test_foreign_conversation_forbidden(client, user_factory) -> None:
    _, owner_headers = await user_factory()
    _, other_headers = await user_factory()
    conversation_id = (await client.post(CHAT_URL, headers=owner_headers, json=user_turn())).headers[
        "x-conversation-id"
    ]

    response = await client.post(
        CHAT_URL, headers=other_headers, json={**user_turn(), "conversationId": conversation_id}
    )
    listing = await client.get(f"/api/v1/conversations/{conversation_id}/messages", headers=other_headers)

    assert response.status_code == 403
    assert listing.status_code == 403


async def test_sources_stored_with_answer(client, user_factory, upload_factory) -> None:
    _, headers = await user_factory("developer")
    await upload_factory(headers, text="Deploys happen every Tuesday.", file_name="ops.txt",
                         category="technical", title="Ops Runbook")

    response = await client.post(CHAT_URL, headers=headers, json=user_turn("When are deploys?"))

    messages = await messages_of(client, headers, response.headers["x-conversation-id"])
    assert messages[-1]["sources"] == [{"title": "Ops Runbook", "category": "technical"}]
    assert json.loads(response.content.split(b"\n\n")[0][len(b"data: "):])["sources"][0]["title"] == "Ops Runbook"
