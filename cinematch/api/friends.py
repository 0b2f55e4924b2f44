"""
Friends API endpoints - friend requests and the accepted-friends list.
"""

import logging
from datetime import datetime, timezone
from typing import List
from fastapi import APIRouter, HTTPException, status, Depends

from ..models import FriendInfo, FriendStatus, PendingRequest
from ..storage import SQLStorage, get_storage
from ..utils.auth import get_current_user_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/friends", tags=["friends"])


async def _email_of(storage: SQLStorage, user_id: str) -> str:
    user = await storage.get_user(user_id)
    return user.email if user else "Unknown"


@router.get("", response_model=List[FriendInfo])
async def get_friends(
    user_id: str = Depends(get_current_user_id),
    storage: SQLStorage = Depends(get_storage)
):
    """List accepted friends of the current user."""
    friendships = await storage.list_friendships(user_id, FriendStatus.ACCEPTED)
    friends = []
    for f in friendships:
        friend_id = f.other(user_id)
        friends.append(FriendInfo(
            friend_id=friend_id,
            friend_email=await _email_of(storage, friend_id),
            friendship_id=f.id,
            since=f.accepted_at,
        ))
    return friends


@router.post("/request/{friend_email}")
async def send_friend_request(
    friend_email: str,
    user_id: str = Depends(get_current_user_id),
    storage: SQLStorage = Depends(get_storage)
):
    """
    Send a friend request to the user with the given email.

    Raises:
        HTTPException: 400 for unknown users, self-requests and duplicates
    """
    friend_email = friend_email.strip().lower()
    if not friend_email:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email cannot be empty")

    friend = await storage.get_user_by_email(friend_email)
    if friend is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User not found")

    if friend.id == user_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot add yourself as a friend")

    existing = await storage.find_friendship(user_id, friend.id)
    if existing is not None:
        if existing.status == FriendStatus.ACCEPTED:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Already friends")
        if existing.status == FriendStatus.PENDING:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Friend request already sent")
        # A declined request may be retried
        await storage.delete_friendship(existing.id)

    friendship = await storage.create_request(user_id, friend.id)
    logger.info(f"Friend request {friendship.id}: {user_id} -> {friend.id}")

    return {"message": "Friend request sent successfully", "friendshipId": friendship.id}


async def _pending_request_for(storage: SQLStorage, friendship_id: str, user_id: str, action: str):
    friendship = await storage.get_friendship(friendship_id)
    if friendship is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Friend request not found")

    if friendship.addressee_id != user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"You can only {action} requests sent to you"
        )

    if friendship.status != FriendStatus.PENDING:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Request is not pending")

    return friendship


@router.post("/accept/{friendship_id}")
async def accept_friend_request(
    friendship_id: str,
    user_id: str = Depends(get_current_user_id),
    storage: SQLStorage = Depends(get_storage)
):
    """Accept a pending request addressed to the current user."""
    friendship = await _pending_request_for(storage, friendship_id, user_id, "accept")
    await storage.set_status(friendship.id, FriendStatus.ACCEPTED, accepted_at=datetime.now(timezone.utc))
    return {"message": "Friend request accepted"}


@router.post("/decline/{friendship_id}")
async def decline_friend_request(
    friendship_id: str,
    user_id: str = Depends(get_current_user_id),
    storage: SQLStorage = Depends(get_storage)
):
    """Decline a pending request addressed to the current user."""
    friendship = await _pending_request_for(storage, friendship_id, user_id, "decline")
    await storage.set_status(friendship.id, FriendStatus.DECLINED)
    return {"message": "Friend request declined"}


@router.get("/requests", response_model=List[PendingRequest])
async def get_pending_requests(
    user_id: str = Depends(get_current_user_id),
    storage: SQLStorage = Depends(get_storage)
):
    """List pending requests addressed to the current user."""
    requests = await storage.list_pending_for(user_id)
    return [
        PendingRequest(
            friendship_id=f.id,
            requester_email=await _email_of(storage, f.requester_id),
            requested_at=f.requested_at,
        )
        for f in requests
    ]


@router.delete("/{friendship_id}")
async def remove_friend(
    friendship_id: str,
    user_id: str = Depends(get_current_user_id),
    storage: SQLStorage = Depends(get_storage)
):
    """Remove a friendship the current user is part of."""
    friendship = await storage.get_friendship(friendship_id)
    if friendship is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Friendship not found")

    if user_id not in (friendship.requester_id, friendship.addressee_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You can only remove your own friendships"
        )

    await storage.delete_friendship(friendship.id)
    return {"message": "Friend removed successfully"}
