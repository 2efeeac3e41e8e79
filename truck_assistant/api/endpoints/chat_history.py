"""Stored chat conversations and their messages."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from truck_assistant.api.deps import get_store
from truck_assistant.storage.base import RecordStore
from truck_assistant.storage.schemas import ConversationCreate, StoredMessageCreate

router = APIRouter()


def _dump(record) -> dict:
    return record.model_dump(by_alias=True, mode="json")


@router.get("/conversations")
def list_conversations(
    truck_id: Optional[str] = Query(None, alias="truckId"),
    store: RecordStore = Depends(get_store),
):
    conversations = store.list_conversations(truck_id)
    return {
        "success": True,
        "conversations": [_dump(c) for c in conversations],
        "count": len(conversations),
    }


@router.post("/conversations", status_code=status.HTTP_201_CREATED)
def create_conversation(data: ConversationCreate, store: RecordStore = Depends(get_store)):
    return {"success": True, "conversation": _dump(store.create_conversation(data))}


@router.get("/conversations/{conversation_id}")
def get_conversation(conversation_id: str, store: RecordStore = Depends(get_store)):
    conversation = store.get_conversation(conversation_id)
    if conversation is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Conversation {conversation_id} not found",
        )
    messages = store.list_messages(conversation_id)
    return {
        "success": True,
        "conversation": _dump(conversation),
        "messages": [_dump(m) for m in messages],
    }


@router.post("/conversations/{conversation_id}/messages", status_code=status.HTTP_201_CREATED)
def add_message(
    conversation_id: str,
    data: StoredMessageCreate,
    store: RecordStore = Depends(get_store),
):
    return {"success": True, "message": _dump(store.add_message(conversation_id, data))}


@router.get("/conversations/{conversation_id}/messages")
def list_messages(conversation_id: str, store: RecordStore = Depends(get_store)):
    if store.get_conversation(conversation_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Conversation {conversation_id} not found",
        )
    messages = store.list_messages(conversation_id)
    return {"success": True, "messages": [_dump(m) for m in messages], "count": len(messages)}
