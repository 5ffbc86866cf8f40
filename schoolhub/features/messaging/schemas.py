from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime


class Participant(BaseModel):
    """Populated sender or recipient of a direct message"""
    id: str
    name: Optional[str] = None
    role: Optional[str] = None
    email: Optional[str] = None


class DirectMessage(BaseModel):
    id: str
    sender: Participant
    recipient: Participant
    content: str
    conversationType: str
    relatedStudent: Optional[str] = None
    isRead: bool
    readAt: Optional[datetime] = None
    createdAt: datetime


class ConversationResponse(BaseModel):
    success: bool = True
    messages: List[DirectMessage]
    markedRead: int = Field(..., description="Messages marked as read by this request")


class ConversationSummary(BaseModel):
    """One row of a user's inbox, keyed by the other participant"""
    userId: str
    userName: Optional[str] = None
    userRole: Optional[str] = None
    lastMessage: str
    lastMessageTime: datetime
    unreadCount: int
    totalMessages: int
    conversationType: Optional[str] = None


class MessageContact(BaseModel):
    """Someone the user may start a direct message with"""
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None
    classroom: Optional[str] = None
    gradeSection: Optional[str] = None
    subject: Optional[str] = None
    studentName: Optional[str] = None
    studentId: Optional[str] = None
    isClassTeacher: bool = False
    conversationType: str


class ContactsResponse(BaseModel):
    success: bool = True
    contacts: List[MessageContact]
