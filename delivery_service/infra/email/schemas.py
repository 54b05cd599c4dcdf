"""Outbound email message model."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, EmailStr, Field, model_validator


class EmailMessage(BaseModel):
    """A single rendered email ready for a provider.

    Example:
        message = EmailMessage(
            to="jane@example.com",
            subject="Claim CLM-1 updated",
            html="<p>Approved</p>",
            text="Approved",
        )
    """

    to: EmailStr = Field(description="Recipient address")
    subject: str = Field(min_length=1, max_length=998, description="Subject line")
    html: str | None = Field(default=None, description="HTML body")
    text: str | None = Field(default=None, description="Plain text body")
    sender: str | None = Field(
        default=None,
        max_length=320,
        description="Sender override ('Name <addr>' or bare address)",
    )
    tags: dict[str, str] = Field(
        default_factory=dict,
        description="Provider tags (e.g. category) echoed back in webhooks",
    )
    headers: dict[str, Any] = Field(default_factory=dict, description="Extra headers")

    @model_validator(mode="after")
    def require_body(self) -> EmailMessage:
        """At least one of html/text must be present."""
        if not self.html and not self.text:
            msg = "Email requires an html or text body"
            raise ValueError(msg)
        return self


__all__ = ["EmailMessage"]
