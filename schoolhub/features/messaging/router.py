import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from pymongo.database import Database
from sentry_sdk import capture_exception

from schoolhub.common import constants
from schoolhub.features.directory.repository import IdentityDirectory, public_profile, school_of
from schoolhub.features.messaging.contacts import ContactBook
from schoolhub.features.messaging.repository import ConversationStore
from schoolhub.features.messaging.schemas import (
    ContactsResponse,
    ConversationResponse,
    ConversationSummary,
    DirectMessage,
    MessageContact,
    Participant,
)
from schoolhub.database.session import get_db
from schoolhub.utils.object_ids import id_str, require_object_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messages", tags=["messages"])


def _participant(user_id, users: Dict[str, Dict[str, Any]]) -> Participant:
    user = users.get(str(user_id))
    if user is None:
        return Participant(id=str(user_id))
    return Participant(**public_profile(user))


def _school_member(users: Dict[str, Dict[str, Any]], user_id, school_id) -> Dict[str, Any]:
    # a user of another school is reported as unknown
    user = users.get(str(user_id))
    if user is None or school_of(user) != str(school_id):
        raise HTTPException(status_code=404, detail=constants.USER_NOT_FOUND)
    return user


@router.get("/conversation/{user_id}/{other_user_id}", response_model=ConversationResponse)
async def get_conversation(
    user_id: str = Path(..., description="User reading the conversation"),
    other_user_id: str = Path(..., description="The other participant"),
    school_id: str = Query(..., alias="schoolId", description="School ID"),
    db: Database = Depends(get_db),
):
    """Text messages between two users, oldest first. Marks the ones the reader received as read."""
    user_oid = require_object_id(user_id, "userId")
    other_oid = require_object_id(other_user_id, "otherUserId")
    school_oid = require_object_id(school_id, "schoolId")
    try:
        users = await IdentityDirectory(db).get_users([user_oid, other_oid])
        reader = _school_member(users, user_oid, school_oid)
        _school_member(users, other_oid, school_oid)
        school = reader["school"]

        store = ConversationStore(db)
        marked = await store.mark_conversation_read(user_oid, other_oid, school)
        messages = [
            DirectMessage(
                id=str(message["_id"]),
                sender=_participant(message["sender"], users),
                recipient=_participant(message["recipient"], users),
                content=message["content"],
                conversationType=message.get("conversation_type"),
                relatedStudent=id_str(message.get("related_student")),
                isRead=message.get("is_read", False),
                readAt=message.get("read_at"),
                createdAt=message["created_at"],
            )
            for message in await store.get_conversation(user_oid, other_oid, school)
        ]
        if marked:
            logger.info(f"Marked {marked} messages from {other_user_id} as read for {user_id}")
        return ConversationResponse(messages=messages, markedRead=marked)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error fetching conversation: {e}")
        capture_exception(e)
        raise HTTPException(status_code=500, detail=constants.INTERNAL_SERVER_ERROR)


@router.get("/conversations/{user_id}", response_model=List[ConversationSummary])
async def get_conversations(
    user_id: str = Path(..., description="User ID"),
    school_id: str = Query(..., alias="schoolId", description="School ID"),
    db: Database = Depends(get_db),
):
    """Inbox of a user: one entry per counterpart, most recent activity first"""
    user_oid = require_object_id(user_id, "userId")
    school_oid = require_object_id(school_id, "schoolId")
    try:
        directory = IdentityDirectory(db)
        reader = _school_member(await directory.get_users([user_oid]), user_oid, school_oid)
        summaries = await ConversationStore(db).get_conversation_summaries(user_oid, reader["school"])
        users = await directory.get_users([summary["counterpart"] for summary in summaries])

        conversations = []
        for summary in summaries:
            counterpart = users.get(str(summary["counterpart"]), {})
            last_message = summary["last_message"]
            conversations.append(ConversationSummary(
                userId=str(summary["counterpart"]),
                userName=counterpart.get("name"),
                userRole=counterpart.get("role"),
                lastMessage=last_message["content"],
                lastMessageTime=last_message["created_at"],
                unreadCount=summary["unread_count"],
                totalMessages=summary["total_messages"],
                conversationType=last_message.get("conversation_type"),
            ))
        return conversations
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error fetching conversations: {e}")
        capture_exception(e)
        raise HTTPException(status_code=500, detail=constants.INTERNAL_SERVER_ERROR)


@router.get("/contacts/{user_id}", response_model=ContactsResponse)
async def get_message_contacts(
    user_id: str = Path(..., description="User ID"),
    school_id: str = Query(..., alias="schoolId", description="School ID"),
    db: Database = Depends(get_db),
):
    """People the user may start a conversation with, each with the thread type it would open"""
    user_oid = require_object_id(user_id, "userId")
    school_oid = require_object_id(school_id, "schoolId")
    try:
        directory = IdentityDirectory(db)
        user = _school_member(await directory.get_users([user_oid]), user_oid, school_oid)
        contacts = await ContactBook(directory).contacts_for(user)
        return ContactsResponse(contacts=[MessageContact(**contact) for contact in contacts])
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error loading message contacts: {e}")
        capture_exception(e)
        raise HTTPException(status_code=500, detail=constants.CONTACTS_FAILED)
