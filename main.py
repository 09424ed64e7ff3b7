from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
import models
from config import get_settings
from database import engine
from logging_config import configure_logging
from routers import budget, insights, transactions
from routers.utils import close_gemini_service

settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

# Create tables
models.Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Finance Advisor API starting (models: {', '.join(settings.candidate_models)})")
    yield
    await close_gemini_service()
    logger.info("Finance Advisor API stopped")


app = FastAPI(
    title="Finance Advisor API",
    version="1.0.0",
    description="Personal finance tracker with AI budget suggestions and spending advice",
    lifespan=lifespan,
)

# Cannot use "*" with allow_credentials=True, so origins are listed explicitly
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["*"],
    max_age=3600,
)

# Include routers
app.include_router(transactions.router, prefix="/api/transactions", tags=["Transactions"])
app.include_router(budget.router, prefix="/api/budget", tags=["Budget"])
app.include_router(insights.router, prefix="/api/insights", tags=["Insights"])


@app.get("/")
async def root():
    return {"message": "Finance Advisor API", "version": "1.0.0", "docs": "/docs"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=5000, reload=False)
