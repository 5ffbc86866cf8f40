import asyncio
from datetime import timedelta

import pytest

from conftest import FailingProvider, FakeSocket, ScriptedProvider, seed_exchange
from schoolhub.common import constants
from schoolhub.features.tutor.handler import TutoringSessionHandler
from schoolhub.features.tutor.provider import TutorProviderAdapter


def make_handler(gateway, directory, store, locks, *providers):
    adapter = TutorProviderAdapter(list(providers), retry_delay=0)
    return TutoringSessionHandler(gateway, directory, store, adapter, locks, context_limit=30, history_limit=50)


def ask(student, question):
    return {"userId": str(student["_id"]), "question": question}


async def test_first_question_with_every_model_down(db, gateway, directory, store, locks, people):
    handler = make_handler(gateway, directory, store, locks, FailingProvider("m1"), FailingProvider("m2"))
    socket = FakeSocket()

    await handler.handle(socket, ask(people.student, "What is gravity?"))

    assert socket.event_names == ["tutor-thinking", "tutor-thinking", "conversation-appended", "tutor-response"]
    assert [frame["thinking"] for frame in socket.events("tutor-thinking")] == [True, False]

    response = socket.events("tutor-response")[0]
    assert response["usedFallback"] is True
    assert response["gradeLevel"] == "7"
    assert response["question"] == "What is gravity?"
    assert response["answer"].startswith("Hey Maya!")
    assert response["answer"].endswith("🌟")
    assert response["totalConversationMessages"] == 1

    records = list(db["messages"].find({"kind": "ai-query"}))
    assert len(records) == 1
    record = records[0]
    assert record["sender"] == record["recipient"] == people.student["_id"]
    assert record["school"] == people.school
    assert record["content"].startswith("Q: What is gravity?\n\nA: ")
    assert record["answer"] == response["answer"]

    appended = socket.events("conversation-appended")[0]
    assert appended["id"] == str(record["_id"])
    assert appended["type"] == "ai-query"


async def test_follow_up_question_sees_previous_exchange(gateway, directory, store, locks, people):
    provider = ScriptedProvider("Gravity pulls things together.", "Because the Moon has less mass.")
    handler = make_handler(gateway, directory, store, locks, provider)
    socket = FakeSocket()

    await handler.handle(socket, ask(people.student, "What is gravity?"))
    await handler.handle(socket, ask(people.student, "Why is it weaker on the Moon?"))

    second = provider.transcripts[1]
    assert second[1:] == [
        {"role": "user", "content": "What is gravity?"},
        {"role": "assistant", "content": "Gravity pulls things together."},
        {"role": "user", "content": "Why is it weaker on the Moon?"},
    ]
    assert socket.events("tutor-response")[1]["totalConversationMessages"] == 3
    assert socket.events("tutor-response")[1]["usedFallback"] is False


async def test_context_keeps_only_the_latest_thirty_exchanges(db, gateway, directory, store, locks, people, base_time):
    for i in range(35):
        seed_exchange(db, people.student, f"q{i}", f"a{i}", base_time + timedelta(minutes=i))
    provider = ScriptedProvider("Fresh answer")
    handler = make_handler(gateway, directory, store, locks, provider)
    socket = FakeSocket()

    await handler.handle(socket, ask(people.student, "New question"))

    messages = provider.transcripts[0]
    assert len(messages) == 1 + 30 * 2 + 1
    assert messages[1] == {"role": "user", "content": "q5"}
    assert messages[-2] == {"role": "assistant", "content": "a34"}
    assert messages[-1] == {"role": "user", "content": "New question"}
    assert socket.events("tutor-response")[0]["totalConversationMessages"] == 61


async def test_context_ignores_other_students(db, gateway, directory, store, locks, people, base_time):
    seed_exchange(db, people.rostered, "Leo's question", "Leo's answer", base_time)
    provider = ScriptedProvider("Answer")
    handler = make_handler(gateway, directory, store, locks, provider)

    await handler.handle(FakeSocket(), ask(people.student, "Mine"))

    assert provider.transcripts[0][1:] == [{"role": "user", "content": "Mine"}]


async def test_answer_is_cleaned_before_storage(db, gateway, directory, store, locks, people):
    provider = ScriptedProvider("**Photosynthesis** is how plants eat.\n\n- They use sunlight")
    handler = make_handler(gateway, directory, store, locks, provider)
    socket = FakeSocket()

    await handler.handle(socket, ask(people.student, "What is photosynthesis?"))

    expected = "Photosynthesis is how plants eat. They use sunlight"
    assert socket.events("tutor-response")[0]["answer"] == expected
    assert db["messages"].find_one()["answer"] == expected


async def test_concurrent_questions_are_answered_in_order(gateway, directory, store, locks, people):
    class SlowProvider(ScriptedProvider):
        async def complete(self, messages):
            await asyncio.sleep(0.01)
            return await super().complete(messages)

    provider = SlowProvider("first answer", "second answer")
    handler = make_handler(gateway, directory, store, locks, provider)
    socket = FakeSocket()

    await asyncio.gather(
        handler.handle(socket, ask(people.student, "first")),
        handler.handle(socket, ask(people.student, "second")),
    )

    assert {"role": "assistant", "content": "first answer"} in provider.transcripts[1]
    assert len(locks) == 0


@pytest.mark.parametrize("attr,grade", [
    ("student", "7"),
    ("rostered", "5"),
    ("unplaced", constants.DEFAULT_GRADE_LEVEL),
])
async def test_grade_level_resolution(gateway, directory, store, locks, people, attr, grade):
    handler = make_handler(gateway, directory, store, locks)
    socket = FakeSocket()

    await handler.handle(socket, ask(getattr(people, attr), "What is gravity?"))

    response = socket.events("tutor-response")[0]
    assert response["gradeLevel"] == grade
    assert response["usedFallback"] is True


async def test_unnamed_student_is_greeted_generically(gateway, directory, store, locks, people):
    handler = make_handler(gateway, directory, store, locks)
    socket = FakeSocket()

    await handler.handle(socket, ask(people.unplaced, "What is gravity?"))

    assert socket.events("tutor-response")[0]["answer"].startswith("Hey Student!")


@pytest.mark.parametrize("question", ["", "   ", None])
async def test_empty_question_is_rejected(db, gateway, directory, store, locks, people, question):
    handler = make_handler(gateway, directory, store, locks)
    socket = FakeSocket()

    await handler.handle(socket, ask(people.student, question))

    assert socket.event_names == ["tutor-error"]
    assert socket.frames[0]["error"] == constants.ASK_A_QUESTION
    assert db["messages"].count_documents({}) == 0


@pytest.mark.parametrize("attr", ["teacher", "parent"])
async def test_only_students_can_ask(db, gateway, directory, store, locks, people, attr):
    handler = make_handler(gateway, directory, store, locks)
    socket = FakeSocket()

    await handler.handle(socket, ask(getattr(people, attr), "What is gravity?"))

    assert socket.event_names == ["tutor-error"]
    assert socket.frames[0]["error"] == constants.TUTOR_STUDENTS_ONLY
    assert db["messages"].count_documents({}) == 0


async def test_storage_failure_reports_busy_tutor(gateway, directory, store, locks, people):
    async def broken(**kwargs):
        raise RuntimeError("insert failed")

    store.create_ai_exchange = broken
    handler = make_handler(gateway, directory, store, locks)
    socket = FakeSocket()

    await handler.handle(socket, ask(people.student, "What is gravity?"))

    assert socket.event_names[-2:] == ["tutor-thinking", "tutor-error"]
    assert socket.frames[-2]["thinking"] is False
    assert socket.frames[-1]["error"] == constants.TUTOR_BUSY
    assert len(locks) == 0


async def test_learning_history_is_newest_first(db, gateway, directory, store, locks, people, base_time):
    seed_exchange(db, people.student, "older", "old answer", base_time)
    seed_exchange(db, people.student, "newer", "new answer", base_time + timedelta(minutes=5))
    handler = make_handler(gateway, directory, store, locks)
    socket = FakeSocket()

    await handler.send_learning_history(socket, {"userId": str(people.student["_id"])})

    history = socket.events("learning-history")[0]
    assert history["success"] is True
    assert history["totalCount"] == 2
    assert [session["question"] for session in history["sessions"]] == ["newer", "older"]


async def test_learning_history_for_non_student_fails(gateway, directory, store, locks, people):
    handler = make_handler(gateway, directory, store, locks)
    socket = FakeSocket()

    await handler.send_learning_history(socket, {"userId": str(people.teacher["_id"])})

    assert socket.frames == [{"mt": "learning-history", "success": False, "error": constants.TUTOR_STUDENTS_ONLY}]


async def test_markup_only_model_reply_is_never_delivered_empty(db, gateway, directory, store, locks, people):
    handler = make_handler(gateway, directory, store, locks, ScriptedProvider("```\n---\n```"))
    socket = FakeSocket()

    await handler.handle(socket, ask(people.student, "What is gravity?"))

    response = socket.events("tutor-response")[0]
    assert response["usedFallback"] is True
    assert response["answer"].startswith("Hey Maya!")
    record = db["messages"].find_one({"kind": "ai-query"})
    assert record["answer"] == response["answer"]
    assert record["content"] != "Q: What is gravity?\n\nA: "
