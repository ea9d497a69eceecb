# swipehire/schemas.py
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional

class Document(BaseModel):
    # Profiles, jobs and posts carry many optional fields; keep whatever the client sends
    model_config = ConfigDict(extra="allow")

    def to_document(self) -> dict:
        return self.model_dump(exclude_none=True)

class UserCreate(Document):
    email: EmailStr
    firebaseUid: Optional[str] = None
    name: Optional[str] = None
    selectedRole: Optional[str] = None

class UserUpdate(Document):
    email: Optional[EmailStr] = None

class JobCreate(Document):
    title: str
    description: Optional[str] = None
    isPublic: bool = True

class JobUpdate(Document):
    userId: str

class MatchCreate(Document):
    userId1: str
    userId2: str

class MatchStatusUpdate(BaseModel):
    status: str
    userId: Optional[str] = None

class NotificationCreate(Document):
    type: str
    title: str
    message: Optional[str] = None

class ReviewCreate(Document):
    reviewerId: str
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = None

class ChatMessageCreate(BaseModel):
    senderId: str
    message: str = Field(min_length=1)

class DiaryPostCreate(Document):
    title: Optional[str] = None
    content: str

class OwnedUpdate(Document):
    # Diary posts and reminders can only be changed by their owner
    userId: str

class EventCreate(Document):
    title: str
    date: Optional[str] = None

class ReminderCreate(Document):
    title: str
    scheduledDate: Optional[str] = None
    type: Optional[str] = None
    status: str = "pending"
