import logging

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    datefmt="%H:%M:%S",
)
# Quiet noisy HTTP logs unless debugging
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sitesmith.config import Settings
from sitesmith.routes.generate import router as generate_router
from sitesmith.services.orchestrator import create_orchestrator

settings = Settings.from_env()

app = FastAPI(title="Sitesmith API")
app.state.orchestrator = create_orchestrator(settings)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(generate_router)


@app.get("/")
def root():
    return {"message": "Sitesmith API is running"}


@app.get("/health")
def health():
    orchestrator = app.state.orchestrator
    return {
        "status": "ok",
        "providers": orchestrator.router.status(),
        "activeRuns": len(orchestrator.registry.active()),
        "designHistory": len(orchestrator.guard.history),
    }
