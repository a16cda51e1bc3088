from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from pathlib import Path
import json
import os
import uuid

app = FastAPI(title="Mock External Services", version="1.0.0")
# Support both local development and Docker
DATA_DIR = Path("/external_stub") if os.path.exists("/external_stub") else Path(__file__).resolve().parent / "stub"

# Identities the registry refuses, and identities for which it is "down"
FORBIDDEN_IDENTITIES = set(filter(None, os.getenv("MOCK_FORBIDDEN_IDENTITIES", "").split(",")))
UNAVAILABLE_IDENTITIES = set(filter(None, os.getenv("MOCK_UNAVAILABLE_IDENTITIES", "").split(",")))


class SubmissionBody(BaseModel):
    document: str
    identity: str
    environment: str


@app.get("/health")
def health(): return {"status": "ok"}

@app.get("/tariffs")
def get_tariffs():
    file = DATA_DIR / "price_lists.json"
    if not file.exists():
        raise HTTPException(status_code=503, detail="tariffs not published")
    return JSONResponse(content=json.loads(file.read_text()))

@app.post("/submissions")
def submit(body: SubmissionBody):
    if body.identity in FORBIDDEN_IDENTITIES:
        raise HTTPException(status_code=403, detail="identity not authorized")
    if body.identity in UNAVAILABLE_IDENTITIES:
        raise HTTPException(status_code=503, detail="registry temporarily unavailable")
    if not body.document.startswith("<?xml"):
        raise HTTPException(status_code=400, detail="document is not XML")
    return {"submission_id": str(uuid.uuid4()), "environment": body.environment, "status": "accepted"}
