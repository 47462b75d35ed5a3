"""Shared router for the service's HTTP surface."""

from __future__ import annotations

from fastapi import APIRouter

api_router = APIRouter()
