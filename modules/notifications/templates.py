"""
Email templates.

Every interpolated value is HTML-escaped: family names, child names and
the inviter's message are user input.
"""

from html import escape

from .models import EmailMessage, InvitationEmail


def _children_phrase(children: list[str]) -> str:
    if not children:
        return ""
    if len(children) == 1:
        return children[0]
    return ", ".join(children[:-1]) + " and " + children[-1]


def render_invitation_email(email: InvitationEmail) -> EmailMessage:
    """Render the invitation email in text and HTML."""
    subject = f"You've been invited to join {email.family_name} on CoParent"
    expires = email.expires_at.strftime("%B %d, %Y").replace(" 0", " ")
    children = _children_phrase(email.children)

    text_lines = [
        "Hi there!",
        "",
        f'{email.inviter_name} has invited you to join "{email.family_name}" on CoParent as a co-parent.',
    ]
    if children:
        text_lines.append(f"You'll be coordinating care for {children}.")
    if email.message:
        text_lines += ["", f"{email.inviter_name} wrote:", email.message]
    text_lines += [
        "",
        "Open the link below to accept the invitation:",
        email.invitation_url,
        "",
        f"This invitation expires on {expires}.",
        "",
        "If you didn't expect this invitation, you can safely ignore this email.",
        "",
        "The CoParent Team",
    ]

    message_html = ""
    if email.message:
        message_html = (
            '<blockquote style="border-left: 3px solid #14b8a6; margin: 16px 0; padding: 8px 16px; color: #475569;">'
            f"{escape(email.message)}</blockquote>"
        )
    children_html = ""
    if children:
        children_html = f"<p>You'll be coordinating care for <strong>{escape(children)}</strong>.</p>"

    html = f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"></head>
<body style="font-family: -apple-system, 'Segoe UI', Roboto, Arial, sans-serif; line-height: 1.6; color: #334155; max-width: 600px; margin: 0 auto; padding: 20px;">
  <h2 style="color: #0f172a;">You're invited!</h2>
  <p><strong>{escape(email.inviter_name)}</strong> has invited you to join "<strong>{escape(email.family_name)}</strong>" on CoParent as a co-parent.</p>
  {children_html}
  {message_html}
  <p style="text-align: center; margin: 32px 0;">
    <a href="{escape(email.invitation_url, quote=True)}" style="background: #0d9488; color: white; text-decoration: none; padding: 14px 32px; border-radius: 12px; font-weight: 600;">Accept invitation</a>
  </p>
  <p style="color: #64748b; font-size: 14px;">This invitation expires on {escape(expires)}.</p>
  <p style="color: #94a3b8; font-size: 12px;">If you didn't expect this invitation, you can safely ignore this email.</p>
</body>
</html>"""

    return EmailMessage(
        to=email.to,
        subject=subject,
        html=html,
        text="\n".join(text_lines),
    )
