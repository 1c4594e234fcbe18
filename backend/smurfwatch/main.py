import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from smurfwatch.config import settings
from smurfwatch.routers import adaptive, forensic, temporal, upload, wallets

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="SmurfWatch API",
    description="Smurfing and money-laundering analysis over wallet transfer ledgers",
    version="1.0.0",
)

# Primary CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Fallback: inject CORS headers on every response (catches edge cases)
@app.middleware("http")
async def add_cors_headers(request: Request, call_next):
    if request.method == "OPTIONS":
        response = Response(status_code=200)
    else:
        response = await call_next(request)
    response.headers["Access-Control-Allow-Origin"] = settings.CORS_ORIGINS[0]
    response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, DELETE, OPTIONS"
    response.headers["Access-Control-Allow-Headers"] = "*"
    return response


app.include_router(upload.router)
app.include_router(wallets.router)
app.include_router(temporal.router)
app.include_router(forensic.router)
app.include_router(adaptive.router)


@app.get("/health")
async def health_check():
    return {"status": "ok"}
