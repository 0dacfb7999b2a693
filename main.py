import os
import logging

from fastapi import FastAPI
from dotenv import load_dotenv

load_dotenv()

from db.init import init_db
from routers import auth, membership, subscription, attendance, gym_class
from fastapi.middleware.cors import CORSMiddleware

logger = logging.getLogger(__name__)

origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]


app = FastAPI(title="GymFlow Backend")

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials="*" not in origins,  # browsers reject credentials with a wildcard origin
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

@app.on_event("startup")
def startup():
    init_db(seed=os.getenv("SEED_ON_STARTUP", "true").lower() == "true")
    logger.info(f"Environment: {os.getenv('APP_ENV', 'development')}")

@app.get("/health")
def health_check():
    return {"status": "ok"}

# Routers
app.include_router(auth.router, prefix="/auth", tags=["Auth"])
app.include_router(membership.router, prefix="/memberships", tags=["Memberships"])
app.include_router(subscription.router, prefix="/subscriptions", tags=["Subscriptions"])
app.include_router(attendance.router, prefix="/attendances", tags=["Attendances"])
app.include_router(gym_class.router, prefix="/classes", tags=["Classes"])


@app.get("/")
def root():
    return {"message": "GymFlow Backend running successfully"}
