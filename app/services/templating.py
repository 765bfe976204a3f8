import html
import re
from typing import Optional

from app.core.constants import TEMPLATE_TOKENS

# Unknown {tokens} are left as-is
_TOKEN_RE = re.compile(r"\{(" + "|".join(sorted(TEMPLATE_TOKENS)) + r")\}")


def render_template(
    template: str,
    *,
    name: Optional[str] = None,
    service: Optional[str] = None,
    company: Optional[str] = None,
) -> str:
    """Substitute the follow-up tokens in *template* in a single pass.

    Missing values render as empty strings, so every known token is always
    replaced.  Substituted values are not scanned again.
    """
    values = {
        "name": name or "",
        "service": service or "",
        "company": company or "",
    }
    return _TOKEN_RE.sub(lambda match: values[match.group(1)], template)


def render_follow_up_html(subject: str, message: str, sender_name: str) -> str:
    """Wrap a plain-text follow-up in the simple HTML layout sent by email."""
    body = html.escape(message).replace("\n", "<br>")
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        '<h2 style="color: #333; border-bottom: 2px solid #007bff; padding-bottom: 10px;">'
        f"{html.escape(subject)}</h2>"
        f'<div style="line-height: 1.6; color: #555; margin: 20px 0;">{body}</div>'
        '<div style="margin-top: 30px; padding: 15px; background-color: #f8f9fa; '
        'border-left: 4px solid #007bff;">'
        '<p style="margin: 0; font-size: 12px; color: #666;">'
        f"This is an automated follow-up from {html.escape(sender_name)}. "
        "If you have any questions, please reply to this email or contact us directly."
        "</p></div></div>"
    )
