"""
Server-side rendering of chat fragments.

A message bubble shows at most one image (the first attachment tagged
``image``) followed by the text block. Text styling depends only on whether
the role is ``user``.
"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup, escape

from models import Attachment, Message

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

IMAGE_ATTACHMENT_TYPE = "image"
USER_ROLE = "user"
PRIMARY_STYLE = "primary"
MUTED_STYLE = "muted"

# css classes per text style
BUBBLE_CLASSES = {
    PRIMARY_STYLE: "bg-primary text-primary-foreground",
    MUTED_STYLE: "bg-muted border",
}

TYPING_DOT_DELAYS_MS = (0, 150, 300)

_environment: Optional[Environment] = None


def get_environment() -> Environment:
    global _environment
    if _environment is None:
        _environment = Environment(
            loader=FileSystemLoader(str(TEMPLATES_DIR)),
            autoescape=select_autoescape(["html"]),
        )
        _environment.globals["bubble_classes"] = BUBBLE_CLASSES
    return _environment


@dataclass(frozen=True)
class MessageView:
    role: str
    image_url: Optional[str] = None
    text: Optional[str] = None
    text_style: Optional[str] = None

    @property
    def blocks(self) -> List[Tuple[str, str]]:
        """Blocks in display order: image first, text second."""
        blocks = []
        if self.image_url is not None:
            blocks.append(("image", self.image_url))
        if self.text is not None:
            blocks.append(("text", self.text))
        return blocks


def resolve_image_attachment(attachments: Optional[Iterable[Attachment]]) -> Optional[Attachment]:
    """Return the first attachment whose type is exactly ``image``."""
    if not attachments:
        return None
    for attachment in attachments:
        if attachment.type == IMAGE_ATTACHMENT_TYPE:
            return attachment
    return None


def text_style_for_role(role: str) -> str:
    return PRIMARY_STYLE if role == USER_ROLE else MUTED_STYLE


def build_message_view(message: Message) -> Optional[MessageView]:
    """Decide what a message bubble shows. None means render nothing."""
    image = resolve_image_attachment(message.attachments)
    text = message.content if message.content else None
    if image is None and text is None:
        return None
    return MessageView(
        role=message.role,
        image_url=image.url if image is not None else None,
        text=text,
        text_style=text_style_for_role(message.role) if text is not None else None,
    )


def render_message(message: Message) -> Markup:
    view = build_message_view(message)
    if view is None:
        return Markup("")
    return Markup(get_environment().get_template("message_bubble.html").render(view=view))


def typing_indicator_dots() -> List[Dict[str, int]]:
    return [{"index": i, "delay_ms": delay} for i, delay in enumerate(TYPING_DOT_DELAYS_MS)]


def render_typing_indicator() -> Markup:
    return Markup(get_environment().get_template("typing_indicator.html").render(dots=typing_indicator_dots()))


def render_layout(content: Any, show_nav: bool = True, class_name: Optional[str] = None, **attrs: Any) -> Markup:
    """Wrap content in the mobile layout shell.

    Pass ``Markup`` for already-rendered HTML; plain strings are escaped.
    ``show_nav`` is only passed through for composing pages; extra keyword
    arguments become attributes on the container.
    """
    template = get_environment().get_template("layout.html")
    return Markup(template.render(
        content=escape(content),
        show_nav=show_nav,
        layout_class=class_name,
        layout_attrs={key.replace("_", "-"): value for key, value in attrs.items()},
    ))


__all__ = [
    "MessageView",
    "TYPING_DOT_DELAYS_MS",
    "resolve_image_attachment",
    "text_style_for_role",
    "build_message_view",
    "render_message",
    "typing_indicator_dots",
    "render_typing_indicator",
    "render_layout",
    "get_environment",
]
