# messaging_api/infrastructure/database/models/__init__.py
from messaging_api.infrastructure.database.models.user_model import UserModel
from messaging_api.infrastructure.database.models.project_model import ProjectModel
from messaging_api.infrastructure.database.models.conversation_model import ConversationModel
from messaging_api.infrastructure.database.models.conversation_participant_model import ConversationParticipantModel
from messaging_api.infrastructure.database.models.message_model import MessageModel, MessageType
from messaging_api.infrastructure.database.models.message_reaction_model import MessageReactionModel

__all__ = [
    "UserModel",
    "ProjectModel",
    "ConversationModel",
    "ConversationParticipantModel",
    "MessageModel",
    "MessageType",
    "MessageReactionModel",
]
