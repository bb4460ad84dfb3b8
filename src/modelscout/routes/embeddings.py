"""Text embedding endpoint."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request

from modelscout.errors import ModelScoutError
from modelscout.models.requests import EmbedRequest
from modelscout.models.responses import EmbedResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/embed", response_model=EmbedResponse)
def embed_endpoint(req: EmbedRequest, request: Request) -> EmbedResponse:
    """Embed texts into unit-length vectors."""
    embedder = request.app.state.services.embedder
    try:
        vectors = embedder.embed_batch(req.texts)
    except ModelScoutError as e:
        logger.warning("Embedding failed: %s", e)
        return EmbedResponse(success=False, error=str(e))
    return EmbedResponse(
        success=True,
        dim=int(vectors[0].shape[0]),
        embeddings=[v.tolist() for v in vectors],
    )
