"""Pairing and reconnection routes."""

import html
import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import HTMLResponse, Response

from devocional.core import DevotionalBot
from devocional.server.deps import get_bot
from devocional.session import PairingArtifact

logger = logging.getLogger(__name__)

router = APIRouter()

QR_PAGE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta http-equiv="refresh" content="20">
  <title>Devocional Bot - Pareamento</title>
  <style>
    body {{ font-family: sans-serif; text-align: center; padding: 2rem; }}
    img {{ image-rendering: pixelated; }}
  </style>
</head>
<body>
  <h1>Escaneie o QR code</h1>
  <p>Abra o WhatsApp &gt; Aparelhos conectados &gt; Conectar um aparelho.</p>
  <img src="{data_uri}" alt="QR code {generation}">
  <p>Gerado em {created_at}</p>
</body>
</html>
"""


def _current_pairing(bot: DevotionalBot) -> PairingArtifact:
    artifact = bot.session.pairing
    if artifact is None:
        raise HTTPException(status_code=404, detail="No pairing code available")
    return artifact


@router.get("/qr", response_class=HTMLResponse)
async def qr_page(bot: DevotionalBot = Depends(get_bot)) -> HTMLResponse:
    artifact = _current_pairing(bot)
    return HTMLResponse(
        QR_PAGE.format(
            data_uri=artifact.to_data_uri(),
            generation=artifact.generation,
            created_at=html.escape(artifact.created_at.isoformat()),
        )
    )


@router.get("/qr.svg")
async def qr_svg(bot: DevotionalBot = Depends(get_bot)) -> Response:
    artifact = _current_pairing(bot)
    return Response(content=artifact.to_svg(), media_type="image/svg+xml")


@router.post("/reconnect")
async def reconnect(bot: DevotionalBot = Depends(get_bot)) -> dict[str, object]:
    """Discard stored credentials and start a fresh pairing."""
    await bot.session.force_reconnect()
    return {"success": True, **bot.session.status()}
