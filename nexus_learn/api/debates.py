"""FastAPI debate endpoints.

POST /v1/debates        - opening greeting for a topic and persona
POST /v1/debates/reply  - the partner's next reply to a conversation

Debates are stateless on the server: the client sends the whole history.
"""

from fastapi import APIRouter, Depends
from pydantic import Field

from nexus_learn.agents.debate import DebatePartner, opening_message
from nexus_learn.api.dependencies import get_debate_partner
from nexus_learn.models.common import NexusBase, Role
from nexus_learn.models.debate import ChatMessage, DebateConfig, DebatePersona

router = APIRouter(prefix="/v1/debates", tags=["debates"])


class DebateReplyRequest(NexusBase):
    topic: str = Field(..., min_length=1)
    persona: DebatePersona = DebatePersona.SKEPTIC
    history: list[ChatMessage] = Field(..., min_length=1)


class DebateMessageResponse(NexusBase):
    message: ChatMessage


@router.post("", status_code=201, response_model=DebateMessageResponse)
async def open_debate(body: DebateConfig) -> DebateMessageResponse:
    return DebateMessageResponse(
        message=ChatMessage(role=Role.MODEL, text=opening_message(body.topic, body.persona)),
    )


@router.post("/reply", response_model=DebateMessageResponse)
async def debate_reply(
    body: DebateReplyRequest,
    partner: DebatePartner = Depends(get_debate_partner),
) -> DebateMessageResponse:
    """Reply to the last message; upstream trouble yields a canned reply."""
    text = await partner.reply(body.history, body.topic, body.persona)
    return DebateMessageResponse(message=ChatMessage(role=Role.MODEL, text=text))
