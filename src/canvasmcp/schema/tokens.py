"""Design-token resolution and usage tracking.

Values bound to a token stay bound in the document; consumers resolve them
lazily at read time through the helpers below.
"""

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from .types import (
    ColorToken,
    ColorValue,
    LiteralColor,
    LiteralTypography,
    SpacingToken,
    TokenRef,
    TypographySpec,
    TypographyToken,
    TypographyValue,
)

if TYPE_CHECKING:
    from .document import Document


def resolve_color(doc: "Document", value: ColorValue | None) -> str | None:
    """Hex string for a literal or token-bound color (None if unresolvable)."""
    if value is None:
        return None
    if isinstance(value, LiteralColor):
        return value.literal.hex
    token = doc.tokens.get(value.token_ref.token_id)
    return token.value.hex if isinstance(token, ColorToken) else None


def resolve_typography(doc: "Document", value: TypographyValue | None) -> TypographySpec | None:
    if value is None:
        return None
    if isinstance(value, LiteralTypography):
        return value.literal
    token = doc.tokens.get(value.token_ref.token_id)
    return token.value if isinstance(token, TypographyToken) else None


def resolve_spacing(doc: "Document", token_id: str) -> float | None:
    token = doc.tokens.get(token_id)
    return token.value.px if isinstance(token, SpacingToken) else None


def token_refs(value: Any) -> list[str]:
    """Token ids referenced anywhere inside a model, in field order."""
    found: list[str] = []
    stack = [value]
    while stack:
        item = stack.pop()
        if isinstance(item, TokenRef):
            found.append(item.token_id)
        elif isinstance(item, BaseModel):
            stack.extend(reversed([getattr(item, name) for name in type(item).model_fields]))
        elif isinstance(item, dict):
            stack.extend(reversed(list(item.values())))
        elif isinstance(item, (list, tuple)):
            stack.extend(reversed(item))
    return found


def token_usage(doc: "Document") -> dict[str, list[str]]:
    """Map of token id -> ids of the frames and layers that reference it."""
    usage: dict[str, list[str]] = {token_id: [] for token_id in doc.tokens}
    for owner in [*doc.frames.values(), *doc.layers.values()]:
        for token_id in dict.fromkeys(token_refs(owner)):
            usage.setdefault(token_id, []).append(owner.id)
    return usage
