"""
Community boards: queries, finding-buddy posts and hidden gems.

All three share the same create / list / list-mine / comment shape. Hidden gems
also carry like and dislike votes.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, EmailStr
from pymongo import ReturnDocument

from auth import get_current_user
from database import create_document, get_collection, now_utc, serialize, to_object_id
from schemas import Comment, Findingbuddy, Hiddengem, Query

logger = logging.getLogger(__name__)

router = APIRouter()

VOTE_FIELDS = {
    "like": ("liked_by", "like_count"),
    "dislike": ("disliked_by", "dislike_count"),
}


class Board:
    def __init__(self, collection: str, label: str, owner_field: str = "email"):
        self.collection = collection
        self.label = label
        self.owner_field = owner_field

    def create(self, doc: BaseModel) -> Dict[str, Any]:
        post_id = create_document(self.collection, doc)
        return serialize(get_collection(self.collection).find_one({"_id": to_object_id(post_id)}))

    def list_all(self) -> List[Dict[str, Any]]:
        return [serialize(d) for d in get_collection(self.collection).find({}).sort("timestamp", -1)]

    def list_mine(self, owner: str) -> List[Dict[str, Any]]:
        cursor = get_collection(self.collection).find({self.owner_field: owner}).sort("timestamp", -1)
        return [serialize(d) for d in cursor]

    def add_comment(self, post_id: str, comment: str, author: str) -> Dict[str, Any]:
        oid = to_object_id(post_id)
        doc = None
        if oid is not None:
            entry = Comment(author=author, comment=comment, timestamp=now_utc())
            doc = get_collection(self.collection).find_one_and_update(
                {"_id": oid},
                {"$push": {"comments": entry.model_dump()}},
                return_document=ReturnDocument.AFTER,
            )
        if not doc:
            raise HTTPException(status_code=404, detail=f"{self.label} not found")
        return serialize(doc)

    def vote(self, post_id: str, user_id: str, direction: str) -> Dict[str, Any]:
        """
        Like or dislike a post for one user.

        Each step is a single conditional update on the post, so the sets and
        their counters always move together. A user found in the opposite set
        is moved over in the same update.
        """
        wanted_set, wanted_count = VOTE_FIELDS[direction]
        other_set, other_count = VOTE_FIELDS["dislike" if direction == "like" else "like"]
        oid = to_object_id(post_id)
        if oid is None:
            raise HTTPException(status_code=404, detail=f"{self.label} not found")
        posts = get_collection(self.collection)

        doc = posts.find_one_and_update(
            {"_id": oid, other_set: user_id},
            {
                "$pull": {other_set: user_id},
                "$addToSet": {wanted_set: user_id},
                "$inc": {wanted_count: 1, other_count: -1},
            },
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            doc = posts.find_one_and_update(
                {"_id": oid, wanted_set: {"$ne": user_id}, other_set: {"$ne": user_id}},
                {"$addToSet": {wanted_set: user_id}, "$inc": {wanted_count: 1}},
                return_document=ReturnDocument.AFTER,
            )
        if doc is None:
            if posts.count_documents({"_id": oid}) == 0:
                raise HTTPException(status_code=404, detail=f"{self.label} not found")
            raise HTTPException(status_code=400, detail=f"User already {direction}d this gem")
        return serialize(doc)


queries = Board("query", "Query")
finding_buddies = Board("findingbuddy", "FindBuddy post")
hidden_gems = Board("hiddengem", "Hidden gem", owner_field="posted_by")


class PostPayload(BaseModel):
    email: EmailStr
    author: str
    content: str


class CommentPayload(BaseModel):
    id: str
    comment: str


class TrekPayload(BaseModel):
    title: str
    description: str
    location: str
    img_src: str
    email: EmailStr
    image_file: Optional[str] = None


class VotePayload(BaseModel):
    id: str


# ---------------- Queries ----------------

@router.post("/postQuery", status_code=status.HTTP_201_CREATED)
def post_query(payload: PostPayload):
    return queries.create(Query(**payload.model_dump(), timestamp=now_utc()))


@router.get("/queries")
def my_queries(ctx=Depends(get_current_user)):
    return queries.list_mine(ctx["email"])


@router.get("/allQueries")
def all_queries(ctx=Depends(get_current_user)):
    return queries.list_all()


@router.post("/postComment")
def post_comment(payload: CommentPayload, ctx=Depends(get_current_user)):
    return queries.add_comment(payload.id, payload.comment, ctx["name"])


# ---------------- Finding buddy ----------------

@router.post("/postFindingBuddy", status_code=status.HTTP_201_CREATED)
def post_finding_buddy(payload: PostPayload):
    return finding_buddies.create(Findingbuddy(**payload.model_dump(), timestamp=now_utc()))


@router.get("/allFindingBuddyQueries")
def all_finding_buddy_queries(ctx=Depends(get_current_user)):
    return finding_buddies.list_all()


@router.get("/findingBuddyQueries")
def my_finding_buddy_queries(ctx=Depends(get_current_user)):
    return finding_buddies.list_mine(ctx["email"])


@router.post("/postFindingBuddyComment")
def post_finding_buddy_comment(payload: CommentPayload, ctx=Depends(get_current_user)):
    return finding_buddies.add_comment(payload.id, payload.comment, ctx["name"])


# ---------------- Hidden gems ----------------

@router.post("/addTrek")
def add_trek(payload: TrekPayload):
    gem = Hiddengem(
        title=payload.title,
        description=payload.description,
        location=payload.location,
        img_src=payload.img_src,
        image_file=payload.image_file,
        posted_by=payload.email,
        timestamp=now_utc(),
    )
    return {"message": "Trek added successfully!", "data": hidden_gems.create(gem)}


@router.get("/getAllHiddenGems")
def get_all_hidden_gems():
    return {"data": hidden_gems.list_all()}


@router.get("/myHiddenGems")
def my_hidden_gems(ctx=Depends(get_current_user)):
    return {"data": hidden_gems.list_mine(ctx["email"])}


@router.post("/likeHiddenGem/{gem_id}")
def like_hidden_gem(gem_id: str, payload: VotePayload):
    gem = hidden_gems.vote(gem_id, payload.id, "like")
    logger.info("Gem %s liked by %s", gem_id, payload.id)
    return {"message": "Gem liked successfully", "gem": gem}


@router.post("/dislikeHiddenGem/{gem_id}")
def dislike_hidden_gem(gem_id: str, payload: VotePayload):
    gem = hidden_gems.vote(gem_id, payload.id, "dislike")
    logger.info("Gem %s disliked by %s", gem_id, payload.id)
    return {"message": "Gem disliked successfully", "gem": gem}
