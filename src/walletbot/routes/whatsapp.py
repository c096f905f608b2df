# This project was developed with assistance from AI tools.
"""Messaging webhook (Twilio/WhatsApp style).

Accepts form-encoded ``From`` and ``Body`` fields and answers with a
minimal XML envelope holding the engine's reply text. The endpoint is
sync so concurrent messages run on the server threadpool and are
serialized per identity by the session store.
"""

import logging
from typing import Annotated
from xml.etree import ElementTree

from fastapi import APIRouter, Depends, Form
from fastapi.responses import Response

from ..services.conversation import ConversationEngine, get_conversation_engine

logger = logging.getLogger(__name__)

router = APIRouter()


def render_reply(message: str) -> bytes:
    """Wrap reply text in ``<Response><Message>...</Message></Response>``."""
    root = ElementTree.Element("Response")
    ElementTree.SubElement(root, "Message").text = message
    return ElementTree.tostring(root, encoding="utf-8", xml_declaration=True)


@router.post("/whatsapp", response_class=Response)
def whatsapp_webhook(
    sender: Annotated[str, Form(alias="From", min_length=1)],
    body: Annotated[str, Form(alias="Body")] = "",
    engine: ConversationEngine = Depends(get_conversation_engine),
) -> Response:
    """Route one inbound message through the conversation engine."""
    reply = engine.handle(sender, body)
    return Response(content=render_reply(reply), media_type="application/xml")
