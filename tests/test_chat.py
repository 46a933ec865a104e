from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from honest_analyst.chat import build_context_prompt, chat_with_analyst
from honest_analyst.nodes.synthesis import apply_scoring
from honest_analyst.state import ChatTurn

from conftest import FakeChatModel


def test_context_prompt_carries_scores(two_hypothesis_report, two_hypothesis_scoring):
    report = apply_scoring(two_hypothesis_report, two_hypothesis_scoring)

    prompt = build_context_prompt(report, "Which hypothesis wins?")

    assert "Topic: Why did the bridge close?" in prompt
    assert "- H1: Structural fault" in prompt
    assert "- Inspection records: {" in prompt
    assert "Cumulative Scores: {" in prompt
    assert "USER QUERY: Which hypothesis wins?" in prompt


def test_chat_returns_reply_and_new_history(two_hypothesis_report):
    fake = FakeChatModel(replies=["H1 is better supported."])
    earlier = (ChatTurn(role="user", text="Hi"), ChatTurn(role="model", text="Hello."))

    reply, history = chat_with_analyst(two_hypothesis_report, earlier, "Which wins?", llm=fake)

    assert reply == "H1 is better supported."
    assert history[:2] == earlier
    assert history[2:] == (
        ChatTurn(role="user", text="Which wins?"),
        ChatTurn(role="model", text="H1 is better supported."),
    )
    messages = fake.calls[0]
    assert isinstance(messages[0], SystemMessage)
    assert isinstance(messages[1], HumanMessage) and messages[1].content == "Hi"
    assert isinstance(messages[2], AIMessage) and messages[2].content == "Hello."
    assert messages[-1].content == "Which wins?"
