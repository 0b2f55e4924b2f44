"""
Friend Models - Friendship records and friends API shapes.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class FriendStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class Friendship(BaseModel):
    """A friend request between two users. Accepted rows count both ways."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    requester_id: str
    addressee_id: str
    status: FriendStatus
    requested_at: datetime
    accepted_at: Optional[datetime] = None

    def other(self, user_id: str) -> str:
        """The participant that is not user_id."""
        return self.addressee_id if self.requester_id == user_id else self.requester_id


class FriendInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    friend_id: str = Field(..., alias="friendId")
    friend_email: str = Field(..., alias="friendEmail")
    friendship_id: str = Field(..., alias="friendshipId")
    since: Optional[datetime] = None


class PendingRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    friendship_id: str = Field(..., alias="friendshipId")
    requester_email: str = Field(..., alias="requesterEmail")
    requested_at: datetime = Field(..., alias="requestedAt")
