# file: app/main.py
from datetime import datetime, timezone
from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse
from app.schema import CallFinishedRequest, InboundMessageRequest, SearchRequest, VectorizeAllRequest
from app.config import get_settings
from app.orchestrator import Orchestrator
from app.logging_utils import setup_logging
from vector.embeddings import ConfigurationError, EmbeddingsNotReady, EmptyInputError

setup_logging()

app = FastAPI(title="Axiom Intro Agent", version="0.1.0")
orchestrator = Orchestrator()

@app.on_event("startup")
async def startup():
    """Initialize connections on startup"""
    await orchestrator.start()

@app.on_event("shutdown")
async def shutdown():
    await orchestrator.stop()

async def _contact_or_404(contact_id: str):
    contact = await orchestrator.get_contact(contact_id)
    if contact is None:
        raise HTTPException(status_code=404, detail=f"Contact {contact_id} not found")
    return contact

@app.get("/health")
async def health():
    """Health check with connector status"""
    try:
        status = await orchestrator.health()
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **status
        }
    except Exception as e:
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "error": str(e)}
        )

@app.post("/messages/inbound")
async def inbound_message(request: InboundMessageRequest):
    """Messaging webhook: run the message through the onboarding flow"""
    handled = await orchestrator.process_inbound_message(request.identity, request.display_name, request.text)
    return {"handled": handled}

@app.post("/contacts/{contact_id}/enrich")
async def enrich_contact(contact_id: str, force: bool = False):
    contact = await _contact_or_404(contact_id)
    enriched = await orchestrator.enrich_profile(contact, force=force)
    return {"contact": enriched.model_dump(mode="json")}

@app.post("/contacts/{contact_id}/vectorize")
async def vectorize_contact(contact_id: str, force: bool = False):
    contact = await _contact_or_404(contact_id)
    result = await orchestrator.vectorize_and_match(contact, force=force)
    return result.model_dump(mode="json")

@app.post("/vectors/vectorize-all")
async def vectorize_all(request: VectorizeAllRequest):
    max_limit = get_settings().batch_max_limit
    if request.limit < 1 or request.limit > max_limit:
        raise HTTPException(status_code=400, detail=f"limit must be between 1 and {max_limit}")
    return await orchestrator.vectorize_all(limit=request.limit, force=request.force)

@app.post("/vectors/search")
async def search(request: SearchRequest):
    if request.limit < 1 or request.limit > get_settings().batch_max_limit:
        raise HTTPException(status_code=400, detail="Invalid limit")
    try:
        results = await orchestrator.find_similar(request.query, request.limit, request.min_similarity)
    except EmptyInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (ConfigurationError, EmbeddingsNotReady) as e:
        raise HTTPException(status_code=503, detail=str(e))
    return {
        "count": len(results),
        "results": [r.model_dump(mode="json") for r in results]
    }

@app.get("/vectors/stats")
async def vector_stats():
    return await orchestrator.vectorization_stats()

@app.post("/calls/finished")
async def call_finished(request: CallFinishedRequest):
    """Mark a call as finished and start the follow-up messages"""
    result = await orchestrator.finish_call(request.contact_id)
    if result is None:
        raise HTTPException(status_code=404, detail=f"Contact {request.contact_id} not found")
    return {"status": "call_finished", **result.model_dump(mode="json")}
