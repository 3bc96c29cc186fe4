"""
Support Desk - FastAPI Backend
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from support_desk import __version__
from support_desk.config import get_settings
from support_desk.middleware.logging_middleware import LoggingMiddleware
from support_desk.routes import health, tickets

settings = get_settings()

app = FastAPI(
    title="Support Desk",
    description="AI-assisted IT support ticket intake and dashboard API",
    version=__version__
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(LoggingMiddleware)

app.include_router(tickets.router)
app.include_router(health.router)


@app.get("/")
async def root():
    return {"message": "Support Desk API", "version": __version__}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.app_host, port=settings.app_port)
