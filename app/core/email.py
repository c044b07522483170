import logging
from urllib.parse import urlencode

import resend

from app.core.constants import JinjaCompiledEmailTemplatesEnv
from app.core.settings import get_settings

logger = logging.getLogger(__name__)


def _render_template(template_name: str, **context: str) -> str:
    """Render a pre-compiled email template.

    Templates are pre-compiled with CSS inlined and HTML minified.
    Run `python scripts/compile_emails.py` after modifying source templates.

    Args:
        template_name: Name of the template file
        **context: Template variables

    Returns:
        Rendered HTML
    """
    template = JinjaCompiledEmailTemplatesEnv.get_template(template_name)
    return template.render(**context)


def init_resend() -> None:
    """Initialize Resend with API key if available."""
    settings = get_settings()
    if not settings.resend_api_key:
        return
    resend.api_key = settings.resend_api_key


def build_reset_url(email: str, reset_token: str) -> str:
    """Link to the client's reset page carrying the raw secret and the email."""
    settings = get_settings()
    query = urlencode({"token": reset_token, "email": email})
    return f"{settings.client_url.rstrip('/')}/reset-password?{query}"


def send_password_reset_email(to_email: str, reset_token: str) -> None:
    """Send password reset email via Resend.

    Args:
        to_email: Recipient email address
        reset_token: Raw reset secret; only its hash is stored
    """
    settings = get_settings()

    # Email domain
    from_email = f"noreply@{settings.app_domain}"

    html_content = _render_template(
        "password-reset.html",
        reset_url=build_reset_url(to_email, reset_token),
        expires_minutes=str(settings.reset_token_ttl_minutes),
    )

    resend.Emails.send(
        {
            "from": from_email,
            "to": to_email,
            "subject": "HandleProof - Reset Your Password",
            "html": html_content,
        }
    )
    logger.info("Password reset email sent")
