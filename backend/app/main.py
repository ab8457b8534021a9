from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.dependencies import get_metrics_tracker, shutdown_orchestrator
from app.api.router import api_router
from app.core.exceptions import ConfigurationError
from app.core.logging import setup_logging

setup_logging()

app = FastAPI(
    title="PGx Quality Assurance API",
    description="Quality metrics, contradiction detection and fail-safe clinical explanations for pharmacogenomic reports",
    version="1.0.0"
)

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API Routers
app.include_router(api_router, prefix="/api/v1")


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    return JSONResponse(status_code=503, content=exc.to_dict())


@app.on_event("shutdown")
async def shutdown_event():
    await shutdown_orchestrator()
    get_metrics_tracker().log_summary()


@app.get("/health")
async def health_check():
    return {"status": "ok", "service": "PGx Quality Assurance"}
