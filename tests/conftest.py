from datetime import datetime
from types import SimpleNamespace

import mongomock
import pytest
from bson import ObjectId

from schoolhub.common.exceptions import ProviderError
from schoolhub.database.mongo_collections import create_message, get_collections
from schoolhub.features.directory.repository import IdentityDirectory
from schoolhub.features.messaging.repository import ConversationStore
from schoolhub.features.relay.websocket_manager import RelayGateway
from schoolhub.features.tutor.provider import CompletionProvider
from schoolhub.utils.locks import KeyedLock
from schoolhub.utils.transcript import format_exchange


class FakeSocket:
    """Records every frame the gateway pushes"""

    def __init__(self, broken: bool = False):
        self.frames = []
        self.broken = broken

    async def send_json(self, data):
        if self.broken:
            raise RuntimeError("socket closed")
        self.frames.append(data)

    def events(self, mt):
        return [frame for frame in self.frames if frame["mt"] == mt]

    @property
    def event_names(self):
        return [frame["mt"] for frame in self.frames]


class FailingProvider(CompletionProvider):
    def __init__(self, name="broken-model"):
        self.name = name
        self.calls = 0

    async def complete(self, messages):
        self.calls += 1
        raise ProviderError(f"{self.name} is down")


class ScriptedProvider(CompletionProvider):
    """Replies with the scripted answers in order and keeps the transcripts it saw"""

    def __init__(self, *answers, name="scripted-model"):
        self.name = name
        self.answers = list(answers)
        self.transcripts = []

    async def complete(self, messages):
        self.transcripts.append(messages)
        return self.answers.pop(0)


def seed_exchange(db, student, question, answer, created_at):
    doc = {
        "sender": student["_id"],
        "recipient": student["_id"],
        "school": student["school"],
        "kind": "ai-query",
        "question": question,
        "answer": answer,
        "content": format_exchange(question, answer),
        "is_read": False,
        "read_at": None,
        "created_at": created_at,
    }
    return create_message(db, doc)


def seed_text(db, sender, recipient, content, created_at, conversation_type="teacher_parent", is_read=False):
    doc = {
        "sender": sender["_id"],
        "recipient": recipient["_id"],
        "school": sender["school"],
        "kind": "text",
        "content": content,
        "conversation_type": conversation_type,
        "related_student": None,
        "is_read": is_read,
        "read_at": None,
        "created_at": created_at,
    }
    return create_message(db, doc)


@pytest.fixture
def db():
    database = mongomock.MongoClient()["schoolhub_test"]
    get_collections(database)
    return database


@pytest.fixture
def people(db):
    school = ObjectId()
    other_school = ObjectId()
    classroom_id = ObjectId()

    teacher = {"_id": ObjectId(), "name": "Ms. Rivera", "role": "teacher", "email": "rivera@school.test", "school": school}
    student = {"_id": ObjectId(), "name": "Maya", "role": "student", "email": "maya@school.test", "school": school, "classroom": classroom_id, "parentEmail": "chen@home.test"}
    rostered = {"_id": ObjectId(), "name": "Leo", "role": "student", "email": "leo@school.test", "school": school, "parentEmail": "chen@home.test"}
    unplaced = {"_id": ObjectId(), "role": "student", "school": school}
    parent = {"_id": ObjectId(), "name": "Mr. Chen", "role": "parent", "email": "chen@home.test", "school": school}
    outsider = {"_id": ObjectId(), "name": "Mr. Okafor", "role": "teacher", "email": "okafor@other.test", "school": other_school}

    users = db["users"]
    for user in (teacher, student, rostered, unplaced, parent, outsider):
        users.insert_one(dict(user))
    db["classrooms"].insert_one({
        "_id": classroom_id,
        "school": school,
        "name": "7A",
        "grade": 7,
        "section": "A",
        "subject": "Science",
        "classTeacher": teacher["_id"],
        "students": [student["_id"]],
    })
    db["classrooms"].insert_one({
        "_id": ObjectId(),
        "school": school,
        "name": "5B",
        "grade": "5",
        "section": "B",
        "classTeacher": teacher["_id"],
        "students": [rostered["_id"]],
    })

    return SimpleNamespace(
        school=school,
        other_school=other_school,
        teacher=teacher,
        student=student,
        rostered=rostered,
        unplaced=unplaced,
        parent=parent,
        outsider=outsider,
    )


@pytest.fixture
def gateway():
    return RelayGateway()


@pytest.fixture
def directory(db):
    return IdentityDirectory(db)


@pytest.fixture
def store(db):
    return ConversationStore(db)


@pytest.fixture
def locks():
    return KeyedLock()


@pytest.fixture
def base_time():
    return datetime(2024, 3, 1, 9, 0, 0)
