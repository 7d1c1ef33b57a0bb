from datetime import datetime, timezone
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from routewise.src import exceptions, schemas
from routewise.src.constants import API_TITLE, API_VERSION
from routewise.api.controller import app_admin, app_api, app_public


app = FastAPI(title=API_TITLE, version=API_VERSION)
exceptions.registerHandlers(app)

origins = ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.mount("/admin", app_admin, "Admin Console API")
app.mount("/api", app_api, "Service API")
app.mount("/public", app_public, "Public API")


# Health check endpoint
@app.get("/health", tags=["Health Check"], response_model=schemas.HealthStatus)
async def health_check():
    return {
        "status": "OK",
        "version": API_VERSION,
        "timestamp": datetime.now(timezone.utc),
    }
