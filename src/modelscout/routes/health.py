"""Health check endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Request

from modelscout import __version__
from modelscout.models.responses import HealthResponse

router = APIRouter()


def _detect_capabilities() -> list[str]:
    """Detect which optional runtime pieces are available."""
    caps = []
    try:
        import onnxruntime  # noqa: F401
        caps.append("onnx")
    except ImportError:
        pass
    return caps


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Return service health, model state and available capabilities."""
    services = request.app.state.services
    caps = _detect_capabilities()
    if services.definitions is not None:
        caps.append("definitions")
    if services.store.exists(services.settings.docs_corpus) or services.settings.corpus_base_url:
        caps.append("docs")
    return HealthResponse(
        status="ok",
        version=__version__,
        model_loaded=services.embedder.cell.loaded,
        capabilities=caps,
    )
