from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from trotropay.src import schemas
from trotropay.src.constants import API_PREFIX, API_TITLE, API_VERSION
from trotropay.api.controller import app_api


app = FastAPI(title=API_TITLE, version=API_VERSION)

origins = ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.mount(API_PREFIX, app_api, "TrotroPay API")


# Health check endpoint
@app.get("/health", tags=["Health Check"], response_model=schemas.HealthStatus)
async def health_check():
    return {"status": "OK", "version": API_VERSION}
