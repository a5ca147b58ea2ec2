"""
Vaidya chat - Main FastAPI Application
"""
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Literal, Optional

from fastapi import FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel, ConfigDict
import uvicorn

from app_services import ServiceContainer, build_services
from config_loader import get_app_config, get_server_config, load_config
from gemini_client import AssistantUnavailableError
from image_detection_client import ImageDetectionError, parse_detection_response
from internal.database import check_connection, dispose_backend
from logging_setup import setup_logging
from services.message_renderer import TEMPLATES_DIR, render_message, render_typing_indicator
from services.message_service import (
    ConversationExistsError,
    UnsupportedMediaTypeError,
    UploadTooLargeError,
    validate_image_upload,
)

logger = logging.getLogger(__name__)

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    avatar: Optional[str] = None
    bio: Optional[str] = None
    phone: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class SettingsUpdate(BaseModel):
    theme: Optional[Literal["light", "dark", "system"]] = None
    email_notifications: Optional[bool] = None
    push_notifications: Optional[bool] = None
    profile_visibility: Optional[Literal["public", "private"]] = None

    model_config = ConfigDict(extra="forbid")


class ConversationCreate(BaseModel):
    user_id: str
    title: str
    id: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class ConversationUpdate(BaseModel):
    title: str

    model_config = ConfigDict(extra="forbid")


def create_app(config: Optional[Dict[str, Any]] = None, services: Optional[ServiceContainer] = None) -> FastAPI:
    """Build the FastAPI app.

    Config and services are created in the lifespan unless provided, which
    lets tests hand in an in-memory backend.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage application lifespan"""
        app_config = config or load_config()
        if config is None:
            setup_logging(app_config)
        container = services or build_services(app_config)

        app.state.config = app_config
        app.state.services = container

        # A failed probe is reported but does not abort startup
        if not check_connection(container.engine):
            logger.warning("Starting without a working database connection")
        logger.info("Vaidya chat started")

        yield

        if services is None:
            dispose_backend(container.backend)
        logger.info("Vaidya chat stopped")

    app = FastAPI(
        title="Vaidya Chat",
        description="Chat with image uploads, user profiles and image detection",
        version="1.0.0",
        lifespan=lifespan,
    )
    _register_routes(app)
    return app


async def _read_upload(upload: UploadFile) -> bytes:
    data = await upload.read()
    try:
        validate_image_upload(data, upload.content_type)
    except UnsupportedMediaTypeError as e:
        raise HTTPException(status_code=415, detail=str(e))
    except UploadTooLargeError as e:
        raise HTTPException(status_code=413, detail=str(e))
    return data


def _register_routes(app: FastAPI) -> None:

    def get_services(request: Request) -> ServiceContainer:
        return request.app.state.services

    @app.get("/")
    async def root():
        return {"status": "ok", "message": "Vaidya chat is running"}

    @app.get("/health")
    async def health_check(request: Request):
        """Database connectivity probe"""
        services = get_services(request)
        database_ok = check_connection(services.engine)
        return {
            "status": "healthy" if database_ok else "degraded",
            "database": database_ok,
            "assistant_enabled": services.get_service("gemini_client") is not None,
            "image_detection_enabled": services.image_detection_client.enabled,
        }

    @app.get("/stats")
    async def get_stats(request: Request):
        """Row counts per table"""
        return get_services(request).message_service.get_stats()

    @app.get("/chat/{conversation_id}", response_class=HTMLResponse)
    async def chat_page(request: Request, conversation_id: str, user_id: Optional[str] = None, pending: bool = False):
        """Render a conversation inside the mobile layout shell"""
        services = get_services(request)
        history_limit = int(get_app_config(request.app.state.config).get("history_limit", 50))
        conversation = services.message_service.get_conversation(conversation_id)
        messages = services.message_service.get_history(conversation_id, limit=history_limit)
        bubbles = [html for html in (render_message(m) for m in messages) if html]

        context = {
            "page_title": conversation.title if conversation and conversation.title else "Vaidya Chat",
            "conversation": conversation,
            "conversation_id": conversation_id,
            "user_id": user_id or (conversation.user_id if conversation else ""),
            "bubbles": bubbles,
            "pending": pending,
            "typing_indicator": render_typing_indicator(),
            "show_nav": True,
            "layout_class": "chat-page",
            "layout_attrs": {},
        }
        return templates.TemplateResponse(request, "chat.html", context)

    @app.post("/api/conversations/{conversation_id}/messages", status_code=201)
    async def post_message(
        request: Request,
        conversation_id: str,
        user_id: str = Form(...),
        content: str = Form(""),
        reply: bool = Form(False),
        image: Optional[UploadFile] = File(None),
    ):
        services = get_services(request)
        image_bytes = None
        image_type = None
        if image is not None and image.filename:
            image_bytes = await _read_upload(image)
            image_type = image.content_type

        history_limit = int(get_app_config(request.app.state.config).get("history_limit", 50))
        history = services.message_service.get_history(conversation_id, limit=history_limit)
        try:
            user_message = services.message_service.post_message(
                conversation_id,
                user_id,
                content=content,
                image=image_bytes,
                image_content_type=image_type,
            )
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))

        result = {"messages": [user_message.to_dict()]}

        gemini_client = services.get_service("gemini_client")
        if reply and gemini_client is not None:
            try:
                text = await gemini_client.generate_reply(conversation_id, history, user_message)
                assistant_message = services.message_service.save_assistant_reply(
                    conversation_id, text, metadata={"model": gemini_client.model_name}
                )
                result["messages"].append(assistant_message.to_dict())
            except AssistantUnavailableError as e:
                logger.error(f"Assistant reply failed for conversation {conversation_id}: {e}")
                result["assistant_error"] = "Assistant is unavailable right now"
        elif reply:
            result["assistant_error"] = "Assistant replies are disabled"

        return result

    @app.get("/api/conversations")
    async def list_conversations(request: Request, user_id: str, limit: int = 50):
        services = get_services(request)
        conversations = services.message_service.list_conversations(user_id, limit=limit)
        return {"conversations": [c.to_dict() for c in conversations]}

    @app.post("/api/conversations", status_code=201)
    async def create_conversation(request: Request, data: ConversationCreate):
        services = get_services(request)
        try:
            conversation = services.message_service.create_conversation(
                data.user_id, data.title, conversation_id=data.id
            )
        except ConversationExistsError as e:
            raise HTTPException(status_code=409, detail=str(e))
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))
        return conversation.to_dict()

    @app.put("/api/conversations/{conversation_id}")
    async def rename_conversation(request: Request, conversation_id: str, data: ConversationUpdate):
        services = get_services(request)
        try:
            conversation = services.message_service.rename_conversation(conversation_id, data.title)
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))
        if conversation is None:
            raise HTTPException(status_code=404, detail="Conversation not found")
        return conversation.to_dict()

    @app.get("/api/conversations/{conversation_id}")
    async def get_conversation(request: Request, conversation_id: str):
        services = get_services(request)
        conversation = services.message_service.get_conversation(conversation_id)
        if conversation is None:
            raise HTTPException(status_code=404, detail="Conversation not found")
        messages = services.message_service.get_history(conversation_id)
        return {
            "conversation": conversation.to_dict(),
            "messages": [m.to_dict() for m in messages],
        }

    @app.delete("/api/conversations/{conversation_id}")
    async def delete_conversation(request: Request, conversation_id: str):
        services = get_services(request)
        if services.message_service.get_conversation(conversation_id) is None:
            raise HTTPException(status_code=404, detail="Conversation not found")
        deleted = services.message_service.delete_conversation(conversation_id)
        return {"deleted_messages": deleted}

    @app.get("/api/users/{user_id}/profile")
    async def get_profile(request: Request, user_id: str):
        profile = get_services(request).profile_service.get_profile(user_id)
        if profile is None:
            raise HTTPException(status_code=404, detail="Profile not found")
        return profile.to_dict()

    @app.put("/api/users/{user_id}/profile")
    async def update_profile(request: Request, user_id: str, data: ProfileUpdate):
        changes = data.model_dump(exclude_unset=True)
        try:
            profile = get_services(request).profile_service.update_profile(user_id, **changes)
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))
        return profile.to_dict()

    @app.get("/api/users/{user_id}/settings")
    async def get_settings(request: Request, user_id: str):
        return get_services(request).settings_service.get_or_default_settings(user_id).to_dict()

    @app.put("/api/users/{user_id}/settings")
    async def update_settings(request: Request, user_id: str, data: SettingsUpdate):
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        try:
            settings = get_services(request).settings_service.update_settings(user_id, **changes)
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))
        return settings.to_dict()

    @app.post("/api/image-detection")
    async def detect_image(request: Request, image: UploadFile = File(...)):
        """Forward an uploaded image to the external classifier"""
        client = get_services(request).image_detection_client
        if not client.enabled:
            raise HTTPException(status_code=503, detail="Image detection service is not configured")

        data = await _read_upload(image)
        try:
            response = await client.detect(data, filename=image.filename or "image", content_type=image.content_type)
        except ImageDetectionError as e:
            logger.error(f"Image detection failed: {e}")
            raise HTTPException(status_code=502, detail=str(e))

        parsed = parse_detection_response(response)
        return {
            "response": response.model_dump(),
            "parsed": parsed.model_dump() if parsed else None,
        }


app = create_app()


if __name__ == "__main__":

    # Load config for development
    config = load_config()
    setup_logging(config)
    server = get_server_config(config)

    uvicorn.run(
        "main:app",
        host=server["host"],
        port=server["port"],
        reload=config["app"]["debug"],
        log_level=config["app"]["log_level"].lower(),
    )
