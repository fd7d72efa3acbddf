"""
FastAPI dependencies resolving the services built by `create_app`.
"""

from fastapi import Request

from .config import Settings
from .database import Database
from .services.ai_service import AIService
from .services.broker_service import BrokerService
from .services.conversation_manager import ConversationManager


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_conversation_manager(request: Request) -> ConversationManager:
    return request.app.state.conversation_manager


def get_ai_service(request: Request) -> AIService:
    return request.app.state.ai_service


def get_broker_service(request: Request) -> BrokerService:
    return request.app.state.broker_service
