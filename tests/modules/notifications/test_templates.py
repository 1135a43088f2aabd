from datetime import datetime, timezone

from modules.notifications.models import InvitationEmail
from modules.notifications.templates import render_invitation_email


def email(**overrides) -> InvitationEmail:
    fields = {
        "to": "sam@example.com",
        "family_name": "Rivera Family",
        "inviter_name": "Alex",
        "children": ["Ava", "Leo", "Mia"],
        "message": None,
        "invitation_url": "https://app.coparent.test/invite/tok",
        "expires_at": datetime(2026, 3, 8, tzinfo=timezone.utc),
    }
    fields.update(overrides)
    return InvitationEmail(**fields)


class TestInvitationTemplate:
    def test_text_body(self):
        message = render_invitation_email(email())
        assert message.to == "sam@example.com"
        assert "Ava, Leo and Mia" in message.text
        assert "March 8, 2026" in message.text
        assert "https://app.coparent.test/invite/tok" in message.text

    def test_user_input_is_escaped_in_html(self):
        """Family names and personal notes cannot inject markup."""
        message = render_invitation_email(email(
            family_name="<script>alert(1)</script>",
            message='<img src=x onerror="steal()">',
        ))
        assert "<script>" not in message.html
        assert "&lt;script&gt;" in message.html
        assert "<img" not in message.html

    def test_personal_note_optional(self):
        message = render_invitation_email(email())
        assert "blockquote" not in message.html
        assert "wrote:" not in message.text

    def test_no_children(self):
        message = render_invitation_email(email(children=[]))
        assert "coordinating care" not in message.text
