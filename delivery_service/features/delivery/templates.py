"""Email template resolution and sandboxed rendering.

Templates are looked up by name: an active stored ``EmailTemplate``
wins, otherwise the built-in default of the same name is used. Names
are the lowercase category value (``payment_due``, ``welcome``, ...).

Rendering uses Jinja2's SandboxedEnvironment. HTML bodies are
autoescaped; subject and text are rendered verbatim. Undefined variables
render as empty strings.

Common variables: ``recipient_name``, ``title``, ``message``, plus every
field of the category payload.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from jinja2 import TemplateError
from jinja2.sandbox import SandboxedEnvironment

from delivery_service.features.delivery.repository import EmailTemplateRepository
from delivery_service.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)
lazy_logger = get_lazy_logger(__name__)


class TemplateNotFoundError(LookupError):
    """No stored or built-in template exists for a name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Email template not found: {name}")


class TemplateRenderError(Exception):
    """Raised when a template fails to compile or render."""

    def __init__(self, message: str, template_name: str | None = None) -> None:
        super().__init__(message)
        self.template_name = template_name


@dataclass(frozen=True, slots=True)
class TemplateSource:
    """Unrendered template parts."""

    subject: str
    html: str
    text: str | None = None


@dataclass(frozen=True, slots=True)
class RenderedTemplate:
    """Rendered subject and bodies ready to send."""

    subject: str
    html: str
    text: str | None = None
    template_id: UUID | None = None


class TemplateRenderer:
    """Sandboxed Jinja2 renderer.

    Two environments: one autoescaping for HTML, one verbatim for subject
    lines and plain text.
    """

    def __init__(self) -> None:
        self._html_env = SandboxedEnvironment(autoescape=True, trim_blocks=True, lstrip_blocks=True)
        self._text_env = SandboxedEnvironment(autoescape=False, trim_blocks=True, lstrip_blocks=True)

    def render_string(self, source: str, variables: dict[str, Any], *, html: bool = False) -> str:
        """Render one template string.

        Raises:
            TemplateRenderError: On syntax or sandbox errors.
        """
        env = self._html_env if html else self._text_env
        try:
            return env.from_string(source).render(**variables)
        except TemplateError as exc:
            raise TemplateRenderError(f"Failed to render template: {exc}") from exc

    def render(
        self,
        source: TemplateSource,
        variables: dict[str, Any],
        *,
        name: str | None = None,
        template_id: UUID | None = None,
    ) -> RenderedTemplate:
        try:
            return RenderedTemplate(
                subject=self.render_string(source.subject, variables).strip(),
                html=self.render_string(source.html, variables, html=True),
                text=self.render_string(source.text, variables) if source.text else None,
                template_id=template_id,
            )
        except TemplateRenderError as exc:
            exc.template_name = name
            raise


_SIGNOFF_HTML = "<p>Best regards,<br>Home Insurance Team</p>"
_SIGNOFF_TEXT = "Best regards,\nHome Insurance Team"

BUILTIN_TEMPLATES: dict[str, TemplateSource] = {
    "welcome": TemplateSource(
        subject="Welcome to Home Insurance, {{ recipient_name }}!",
        html=(
            "<h2>Welcome to Home Insurance!</h2>"
            "<p>Dear {{ recipient_name }},</p>"
            "<p>Your account is ready. You can view policies, submit claims and make payments online.</p>"
            "{% if login_url %}<p><a href=\"{{ login_url }}\">Sign in to your dashboard</a></p>{% endif %}"
            + _SIGNOFF_HTML
        ),
        text=(
            "Dear {{ recipient_name }},\n\nYour account is ready."
            "{% if login_url %}\nSign in: {{ login_url }}{% endif %}\n\n" + _SIGNOFF_TEXT
        ),
    ),
    "policy_created": TemplateSource(
        subject="Policy {{ policy_number }} Created",
        html=(
            "<h2>Your policy is active</h2>"
            "<p>Dear {{ recipient_name }},</p>"
            "<p><strong>Policy Number:</strong> {{ policy_number }}</p>"
            "<p><strong>Policy Type:</strong> {{ policy_type }}</p>"
            "{% if effective_date %}<p><strong>Effective Date:</strong> {{ effective_date }}</p>{% endif %}"
            + _SIGNOFF_HTML
        ),
        text=(
            "Dear {{ recipient_name }},\n\nPolicy {{ policy_number }} ({{ policy_type }}) has been created."
            "\n\n" + _SIGNOFF_TEXT
        ),
    ),
    "policy_renewal": TemplateSource(
        subject="Policy {{ policy_number }} Renewal Reminder",
        html=(
            "<h2>Policy Renewal Reminder</h2>"
            "<p>Dear {{ recipient_name }},</p>"
            "<p>Policy {{ policy_number }} renews on {{ renewal_date }}. Please review your coverage.</p>"
            + _SIGNOFF_HTML
        ),
        text=(
            "Dear {{ recipient_name }},\n\nPolicy {{ policy_number }} renews on {{ renewal_date }}.\n\n"
            + _SIGNOFF_TEXT
        ),
    ),
    "policy_expiring": TemplateSource(
        subject="Policy {{ policy_number }} Expires Soon",
        html=(
            "<h2>Your policy is expiring</h2>"
            "<p>Dear {{ recipient_name }},</p>"
            "<p>Policy {{ policy_number }} expires on {{ expiration_date }}. Renew to stay covered.</p>"
            + _SIGNOFF_HTML
        ),
        text=(
            "Dear {{ recipient_name }},\n\nPolicy {{ policy_number }} expires on {{ expiration_date }}.\n\n"
            + _SIGNOFF_TEXT
        ),
    ),
    "claim_submitted": TemplateSource(
        subject="Claim {{ claim_number }} Submitted Successfully",
        html=(
            "<h2>Claim Submitted</h2>"
            "<p>Dear {{ recipient_name }},</p>"
            "<p><strong>Claim Number:</strong> {{ claim_number }}</p>"
            "{% if policy_number %}<p><strong>Policy Number:</strong> {{ policy_number }}</p>{% endif %}"
            "<p>Our claims team will review your submission within 24-48 hours.</p>"
            + _SIGNOFF_HTML
        ),
        text="Dear {{ recipient_name }},\n\nClaim {{ claim_number }} was submitted.\n\n" + _SIGNOFF_TEXT,
    ),
    "claim_status_update": TemplateSource(
        subject="Claim {{ claim_number }} Status Update",
        html=(
            "<h2>Claim Status Update</h2>"
            "<p>Dear {{ recipient_name }},</p>"
            "<p><strong>Claim Number:</strong> {{ claim_number }}</p>"
            "<p><strong>New Status:</strong> {{ status }}</p>"
            "{% if notes %}<p>{{ notes }}</p>{% endif %}"
            + _SIGNOFF_HTML
        ),
        text=(
            "Dear {{ recipient_name }},\n\nClaim {{ claim_number }} is now {{ status }}."
            "{% if notes %}\n{{ notes }}{% endif %}\n\n" + _SIGNOFF_TEXT
        ),
    ),
    "claim_payout": TemplateSource(
        subject="Claim {{ claim_number }} Payout Processed",
        html=(
            "<h2>Claim Payout</h2>"
            "<p>Dear {{ recipient_name }},</p>"
            "<p>A payout of {{ amount }} for claim {{ claim_number }} has been processed.</p>"
            + _SIGNOFF_HTML
        ),
        text=(
            "Dear {{ recipient_name }},\n\nPayout of {{ amount }} for claim {{ claim_number }} processed.\n\n"
            + _SIGNOFF_TEXT
        ),
    ),
    "payment_due": TemplateSource(
        subject="Payment Due - Policy {{ policy_number }}",
        html=(
            "<h2>Payment Due</h2>"
            "<p>Dear {{ recipient_name }},</p>"
            "<p><strong>Policy Number:</strong> {{ policy_number }}</p>"
            "<p><strong>Amount Due:</strong> {{ amount }}</p>"
            "<p><strong>Due Date:</strong> {{ due_date }}</p>"
            + _SIGNOFF_HTML
        ),
        text=(
            "Dear {{ recipient_name }},\n\n{{ amount }} is due on {{ due_date }} for policy {{ policy_number }}.\n\n"
            + _SIGNOFF_TEXT
        ),
    ),
    "payment_confirmed": TemplateSource(
        subject="Payment Confirmation{% if policy_number %} - Policy {{ policy_number }}{% endif %}",
        html=(
            "<h2>Payment Confirmed</h2>"
            "<p>Dear {{ recipient_name }},</p>"
            "<p>We received your payment of {{ amount }}.</p>"
            "{% if reference %}<p><strong>Reference:</strong> {{ reference }}</p>{% endif %}"
            + _SIGNOFF_HTML
        ),
        text="Dear {{ recipient_name }},\n\nWe received your payment of {{ amount }}.\n\n" + _SIGNOFF_TEXT,
    ),
    "payment_failed": TemplateSource(
        subject="Payment Failed{% if policy_number %} - Policy {{ policy_number }}{% endif %}",
        html=(
            "<h2>Payment Failed</h2>"
            "<p>Dear {{ recipient_name }},</p>"
            "<p>Your payment of {{ amount }} could not be processed.</p>"
            "{% if reason %}<p><strong>Reason:</strong> {{ reason }}</p>{% endif %}"
            "<p>Please update your payment details to avoid a lapse in cover.</p>"
            + _SIGNOFF_HTML
        ),
        text="Dear {{ recipient_name }},\n\nYour payment of {{ amount }} failed.\n\n" + _SIGNOFF_TEXT,
    ),
    "general": TemplateSource(
        subject="{{ title }}",
        html="<p>Dear {{ recipient_name }},</p><p>{{ message }}</p>" + _SIGNOFF_HTML,
        text="Dear {{ recipient_name }},\n\n{{ message }}\n\n" + _SIGNOFF_TEXT,
    ),
}


class TemplateResolver:
    """Resolve a template name to rendered content.

    Stored templates come from the ``email_templates`` table; a stored
    template that fails to render falls back to the built-in default.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        renderer: TemplateRenderer | None = None,
        builtins: dict[str, TemplateSource] | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._renderer = renderer or TemplateRenderer()
        self._builtins = BUILTIN_TEMPLATES if builtins is None else builtins
        self._repository = EmailTemplateRepository()

    @property
    def renderer(self) -> TemplateRenderer:
        return self._renderer

    def has_template(self, name: str) -> bool:
        """Whether a built-in default exists for ``name``."""
        return name in self._builtins

    async def resolve(self, name: str, variables: dict[str, Any]) -> RenderedTemplate:
        """Render the template ``name`` with ``variables``.

        Raises:
            TemplateNotFoundError: No usable stored template and no built-in.
            TemplateRenderError: The built-in itself failed to render.
        """
        async with self._session_factory() as session:
            stored = await self._repository.get_active(session, name)

        if stored is not None:
            source = TemplateSource(subject=stored.subject, html=stored.html_body, text=stored.text_body)
            try:
                rendered = self._renderer.render(source, variables, name=name, template_id=stored.id)
            except TemplateRenderError:
                logger.warning(
                    "Stored template failed to render, falling back to built-in",
                    extra={"template": name, "template_id": str(stored.id)},
                    exc_info=True,
                )
            else:
                lazy_logger.debug(lambda: f"template.resolve: {name} -> stored ({stored.id})")
                return rendered

        builtin = self._builtins.get(name)
        if builtin is None:
            raise TemplateNotFoundError(name)

        lazy_logger.debug(lambda: f"template.resolve: {name} -> built-in")
        return self._renderer.render(builtin, variables, name=name)


__all__ = [
    "BUILTIN_TEMPLATES",
    "RenderedTemplate",
    "TemplateNotFoundError",
    "TemplateRenderError",
    "TemplateRenderer",
    "TemplateResolver",
    "TemplateSource",
]
