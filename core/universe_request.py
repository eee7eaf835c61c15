# core/universe_request.py
"""Обработка запросов пользователей на добавление новой игровой вселенной"""

import html
import logging
import math
import re
from aiohttp import web
from core.config_manager import ConfigManager
from core.mailer import ResendMailer

logger = logging.getLogger(__name__)

APP_ICON_URL = "https://github.com/devzano/CreatureRealm/blob/main/client/assets/images/icon.png?raw=true"
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

BG = "#091928"
ACCENT = "#0cd3f1"

HYPE_LABELS = {
    5: "PLEASE",
    4: "Need it",
    3: "Want it",
    2: "Interested",
}


def esc(value) -> str:
    return html.escape("" if value is None else str(value), quote=True)


def clamp_int(n: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, n))


def hype_label(rating: int) -> str:
    if rating >= 5:
        return HYPE_LABELS[5]
    return HYPE_LABELS.get(rating, "Curious")


def parse_rating(value):
    """Number -> rounded half-up and clamped to 1..5, None if not a finite number"""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return clamp_int(math.floor(number + 0.5), 1, 5)


def _text(value) -> str:
    return str(value if value is not None else "").strip()


def validate(payload):
    """
    Проверяет тело запроса.

    Returns:
        tuple: (fields, None) при успехе или (None, error_message)
    """
    rating = parse_rating(payload.get('rating'))
    fields = {
        'rating': rating,
        'name': _text(payload.get('name')),
        'email': _text(payload.get('email')),
        'universe': _text(payload.get('universe')),
        'message': _text(payload.get('message')),
    }

    if rating is None:
        return None, "Rating must be a number from 1 to 5."
    if not fields['name']:
        return None, "Name is required."
    if not fields['email']:
        return None, "Email is required."
    if not fields['universe']:
        return None, "Universe (game name) is required."
    if not fields['message']:
        return None, "Message is required."
    if not EMAIL_RE.match(fields['email']):
        return None, "Invalid email format."

    return fields, None


def build_subject(fields) -> str:
    return f"CreatureRealm - Universe Request: {fields['universe']} ({fields['rating']}/5)"


def build_text(fields) -> str:
    return (
        "CreatureRealm Universe Request\n\n"
        f"Universe: {fields['universe']}\n"
        f"Priority: {fields['rating']}/5 ({hype_label(fields['rating'])})\n"
        f"Name: {fields['name']}\n"
        f"Email: {fields['email']}\n\n"
        f"What should tracking include?\n{fields['message']}\n"
    )


def build_html(fields) -> str:
    subject = build_subject(fields)
    message_html = esc(fields['message']).replace("\n", "<br/>")
    font = "ui-sans-serif, system-ui, -apple-system, Segoe UI, Roboto, Helvetica, Arial"

    rows = "".join(
        f'<tr><td style="padding:6px 0; color:rgba(148,163,184,0.9); font-size:12px;">{label}</td>'
        f'<td style="padding:6px 0; font-size:13px; color:#f3f4f6;">{value}</td></tr>'
        for label, value in (
            ("Universe", esc(fields['universe'])),
            ("Priority", f"{esc(fields['rating'])}/5 ({esc(hype_label(fields['rating']))})"),
            ("Name", esc(fields['name'])),
            ("Email", f'<a href="mailto:{esc(fields["email"])}" style="color:{ACCENT};">{esc(fields["email"])}</a>'),
        )
    )

    return f"""<!doctype html>
<html>
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width,initial-scale=1" />
    <title>{esc(subject)}</title>
  </head>
  <body style="margin:0; padding:0; background:{BG}; color:#e5e7eb; font-family:{font};">
    <div style="display:none; max-height:0; overflow:hidden; opacity:0;">
      Universe request: {esc(fields['universe'])} &bull; Priority {esc(fields['rating'])}/5
    </div>
    <table role="presentation" width="100%" cellspacing="0" cellpadding="0" border="0" style="background:{BG}; padding:28px 12px;">
      <tr>
        <td align="center">
          <table role="presentation" width="600" cellspacing="0" cellpadding="0" border="0" style="width:100%; max-width:600px;">
            <tr>
              <td style="padding:0 0 14px 0;">
                <img src="{APP_ICON_URL}" width="34" height="34" alt="CreatureRealm" style="display:inline-block; vertical-align:middle; border-radius:12px;" />
                <span style="font-weight:800; letter-spacing:0.12em; text-transform:uppercase; font-size:11px; color:rgba(229,231,235,0.78);">CreatureRealm</span>
              </td>
            </tr>
            <tr>
              <td style="border:1px solid rgba(12,211,241,0.25); border-radius:18px; padding:20px; background:rgba(255,255,255,0.03);">
                <div style="font-size:18px; font-weight:800; color:{ACCENT}; margin-bottom:12px;">Universe Request</div>
                <table role="presentation" width="100%" cellspacing="0" cellpadding="0" border="0">{rows}</table>
                <div style="margin-top:16px; font-size:12px; color:rgba(148,163,184,0.9);">What should tracking include?</div>
                <div style="margin-top:6px; border-radius:14px; border:1px solid rgba(148,163,184,0.18); background:rgba(0,0,0,0.18); padding:14px; font-size:13px; line-height:1.55; color:rgba(243,244,246,0.92);">
                  {message_html}
                </div>
                <div style="margin-top:16px; padding-top:14px; border-top:1px solid rgba(148,163,184,0.18); font-size:11px; color:rgba(148,163,184,0.85);">
                  Tip: hit <strong style="color:#e5e7eb;">Reply</strong> to respond directly to the user.
                </div>
              </td>
            </tr>
            <tr>
              <td style="padding:14px 2px 0 2px; text-align:center; font-size:11px; color:rgba(148,163,184,0.85);">
                <span style="color:{ACCENT}; font-weight:800;">CreatureRealm</span> &bull; Universe Requests
              </td>
            </tr>
          </table>
        </td>
      </tr>
    </table>
  </body>
</html>
"""


class UniverseRequestHandler:
    def __init__(self, config: ConfigManager, transport=None):
        """
        Args:
            config: ConfigManager (секреты читаются из окружения при каждом запросе)
            transport: Подменный транспорт httpx для ResendMailer (тесты)
        """
        self.config = config
        self.transport = transport

    async def handle(self, request):
        try:
            payload = await request.json()
        except ValueError:
            payload = None
        if not isinstance(payload, dict):
            payload = {}

        fields, error = validate(payload)
        if error:
            return web.json_response({"error": error}, status=400)

        api_key = self.config.get_secret('RESEND_API_KEY')
        sender = self.config.get_secret('RESEND_FROM')
        recipient = self.config.get_secret('CREATURE_REALM_TO') or self.config.get_secret('DEV_EMAIL')

        if not api_key:
            return web.json_response({"error": "RESEND_API_KEY is not configured."}, status=500)
        if not sender or not recipient:
            return web.json_response(
                {"error": "Email routing is not configured (RESEND_FROM / CREATURE_REALM_TO or DEV_EMAIL)."},
                status=500
            )

        mailer = ResendMailer(
            api_key,
            base_url=self.config.get('resend.base_url'),
            transport=self.transport
        )

        try:
            email_id = await mailer.send({
                'from': sender,
                'to': recipient,
                'reply_to': fields['email'],
                'subject': build_subject(fields),
                'html': build_html(fields),
                'text': build_text(fields),
            })
        except Exception as e:
            logger.error(f"❌ [UniverseRequest] Resend error: {e}")
            return web.json_response({"error": "Failed to send request email."}, status=500)

        logger.info(f"✅ [UniverseRequest] Email sent {email_id}")
        return web.json_response({"success": True})
