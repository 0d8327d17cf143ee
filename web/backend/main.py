from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from music_storefront.core.config import load_config
from music_storefront.core.output import setup_from_config

config = load_config()
setup_from_config(config.logging)

app = FastAPI(title="Music Storefront API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.web.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
from web.backend.routers import checkout, tracks

app.include_router(checkout.router, prefix="/api", tags=["checkout"])
app.include_router(tracks.router, prefix="/api", tags=["tracks"])


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
