# messaging_api/api/schemas/conversation_schema.py
from pydantic import BaseModel, Field


# Length limits apply after trimming, in the services
class StartConversationRequest(BaseModel):
    participant_id: int
    initial_message: str = Field(min_length=1)
    project_id: int | None = None
    subject: str | None = None


class MarkReadRequest(BaseModel):
    up_to_message_id: int | None = None


class UpdateConversationSettingsRequest(BaseModel):
    is_muted: bool = False
    is_archived: bool = False
    is_pinned: bool = False
