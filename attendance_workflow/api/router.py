from fastapi import APIRouter

from attendance_workflow.api.attendance import attendance_router
from attendance_workflow.api.requests import requests_router

api_router = APIRouter()
api_router.include_router(requests_router)
api_router.include_router(attendance_router)
