"""Document bootstrap helpers."""

from typing import Any, Literal

from ..schema.document import Document, Page
from ..schema.types import AgentActor, Rect, SchemaModel, UserActor, new_provenance

FramePresetName = Literal["mobile", "tablet", "desktop", "custom"]

# name, platform, width, height
FRAME_PRESETS: dict[str, tuple[str, str, float, float]] = {
    "mobile": ("iPhone 14", "mobile", 390, 844),
    "tablet": ("iPad", "tablet", 820, 1180),
    "desktop": ("Desktop", "desktop", 1440, 900),
    "custom": ("Custom Frame", "custom", 400, 600),
}


class DocumentSummary(SchemaModel):
    """Entry returned by ``list_recent``."""

    id: str
    name: str
    updated_at: str


def create_empty_document(
    name: str,
    doc_id: str,
    now: str,
    page_id: str,
    actor: UserActor | AgentActor | None = None,
) -> Document:
    """New document with a single active page named "Page 1"."""
    page = Page(
        id=page_id,
        document_id=doc_id,
        name="Page 1",
        provenance=new_provenance(now, actor or UserActor()),
    )
    return Document(
        id=doc_id,
        name=name,
        created_at=now,
        updated_at=now,
        active_page_id=page_id,
        pages={page_id: page},
    )


def frame_preset(preset: FramePresetName, x: float = 0, y: float = 0) -> dict[str, Any]:
    """Name, platform and rect for a standard device frame."""
    name, platform, w, h = FRAME_PRESETS[preset]
    return {"name": name, "platform": platform, "rect": Rect(x=x, y=y, w=w, h=h)}


def summarize(doc: Document) -> DocumentSummary:
    return DocumentSummary(id=doc.id, name=doc.name, updated_at=doc.updated_at)
