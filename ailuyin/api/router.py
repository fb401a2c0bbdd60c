"""Agregador de routers de la API."""
from fastapi import APIRouter
from ailuyin.api.routers import auth, health, recordings, speech

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(auth.router)
api_router.include_router(speech.router)
api_router.include_router(recordings.router)
