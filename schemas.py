"""
Database Schemas for the trekking community backend

Each Pydantic model represents a MongoDB collection (collection name is the lowercase class name).
Conversations, messages and notifications are embedded in the user document.
Display names on embedded records are snapshots taken at write time and are not
updated when the referenced user renames.
"""
from datetime import datetime
from typing import List, Optional, Literal
from pydantic import BaseModel, Field


class Message(BaseModel):
    sender_id: str
    name: str = Field(..., description="Sender display name at send time")
    content: str
    timestamp: datetime
    read: bool = False


class Conversation(BaseModel):
    participant_id: str = Field(..., description="Counterpart user id, unique per owner")
    name: str = Field(..., description="Counterpart display name at creation time")
    messages: List[Message] = Field(default_factory=list)


class Notification(BaseModel):
    id: str = Field(..., description="Id of the user the notification is about")
    name: str
    type: Literal["interest"] = "interest"
    message: str
    created_at: datetime
    read: bool = False


class User(BaseModel):
    name: str
    email: str
    password_hash: str = Field(..., description="bcrypt hash")
    socket_id: Optional[str] = Field(None, description="Current live connection id")
    phone: str = "N/A"
    address: str = "N/A"
    sex: str = "N/A"
    age: int = 0
    bio: str = "N/A"
    experience_level: str = "N/A"
    medical_history: List[str] = Field(default_factory=list)
    past_treks: List[str] = Field(default_factory=list)
    tokens: List[str] = Field(default_factory=list, description="Issued tokens, oldest first")
    conversations: List[Conversation] = Field(default_factory=list)
    notifications: List[Notification] = Field(default_factory=list)


class Comment(BaseModel):
    author: str
    comment: str
    timestamp: Optional[datetime] = None


class Query(BaseModel):
    email: str = Field(..., description="Author email")
    author: str
    content: str
    timestamp: datetime
    comments: List[Comment] = Field(default_factory=list)


class Findingbuddy(BaseModel):
    email: str = Field(..., description="Author email")
    author: str
    content: str
    timestamp: datetime
    author_socket_id: Optional[str] = None
    interested_users: List[str] = Field(default_factory=list)
    comments: List[Comment] = Field(default_factory=list)


class Hiddengem(BaseModel):
    title: str
    description: str
    img_src: str
    image_file: Optional[str] = None
    location: str
    posted_by: str
    timestamp: datetime
    like_count: int = Field(0, ge=0)
    dislike_count: int = Field(0, ge=0)
    liked_by: List[str] = Field(default_factory=list)
    disliked_by: List[str] = Field(default_factory=list)
    comments: List[Comment] = Field(default_factory=list)
