from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
import logging

from . import config
from .exceptions import PlannerError

# Configure logging
logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)

# Import router after logging is configured
from .api_router import api_router

app = FastAPI(
    title="Jumbo Roll Planning Service",
    description="Interactive planning of jumbo rolls, 118\" sets and cut rolls",
)

# Global exception handler for validation errors
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.error(f"❌ VALIDATION ERROR on {request.method} {request.url}: {exc}")
    logger.error(f"❌ VALIDATION DETAILS: {exc.errors()}")
    return JSONResponse(
        status_code=422,
        content={"detail": f"Validation error: {exc.errors()}"}
    )

# Planner errors carry their own status and payload
@app.exception_handler(PlannerError)
async def planner_exception_handler(request: Request, exc: PlannerError):
    logger.warning(f"⚠️ {exc.code.upper()} on {request.method} {request.url}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

logger.info(f"CORS origins: {config.CORS_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router)

@app.get("/")
async def root():
    return {"message": "Jumbo Roll Planning Service API is Live"}

@app.get("/health")
async def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "roll_planner.main:app",
        host=config.HOST,
        port=config.PORT,
    )
