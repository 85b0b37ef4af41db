from __future__ import annotations  # FastAPI server exposing the interview workflow

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import feedback_router, router as interview_router


logger = logging.getLogger(__name__)

app = FastAPI(title="Interview Workflow API")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"]
)
app.include_router(interview_router)
app.include_router(feedback_router)


@app.get("/health")
def health() -> dict:  # Liveness probe
    return {"status": "ok"}
