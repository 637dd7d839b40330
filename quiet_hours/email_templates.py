"""
HTML email templates.
Inline styles only, so the markup survives most mail clients.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from html import escape

PREP_TIPS = [
    "Find a quiet, comfortable study space",
    "Silence your phone and notifications",
    "Have your study materials ready",
    "Take a deep breath and focus",
]


def format_timestamp(value: datetime) -> str:
    """e.g. ``Monday, June 1, 2026 at 2:05 PM UTC``."""
    hour = value.hour % 12 or 12
    return (
        f"{value:%A}, {value:%B} {value.day}, {value:%Y} "
        f"at {hour}:{value:%M} {value:%p} {value:%Z}"
    ).rstrip()


def format_duration(duration: timedelta) -> str:
    hours, minutes = divmod(int(duration.total_seconds() // 60), 60)
    return f"{hours}h {minutes}m" if hours else f"{minutes}m"


def reminder_subject(title: str, lead_minutes: int) -> str:
    return f'🤫 Your study session "{title}" starts in {lead_minutes} minutes!'


def render_reminder_html(
    user_name: str,
    session_title: str,
    session_description: str,
    start_time: str,
    end_time: str,
    duration: str,
    lead_minutes: int,
) -> str:
    description_block = ""
    if session_description:
        description_block = f"""
        <p style="color: #4a5568; font-size: 14px; line-height: 20px; margin: 0 0 16px 0;">
          {escape(session_description)}
        </p>"""

    tips = "\n".join(
        f'        <p style="color: #2c5282; font-size: 14px; line-height: 20px; margin: 4px 0;">• {tip}</p>'
        for tip in PREP_TIPS
    )

    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Study Session Reminder</title>
</head>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, 'Helvetica Neue', Ubuntu, sans-serif; background-color: #f6f9fc; margin: 0; padding: 0;">
  <div style="background-color: #ffffff; margin: 0 auto; padding: 20px 0 48px; margin-bottom: 64px; max-width: 600px;">
    <div style="padding: 0 48px;">
      <h1 style="color: #333; font-size: 24px; font-weight: bold; margin: 40px 0; padding: 0; text-align: center;">
        🤫 Quiet Hours Reminder
      </h1>
      <p style="color: #333; font-size: 16px; line-height: 26px;">Hi {escape(user_name)},</p>
      <p style="color: #333; font-size: 16px; line-height: 26px;">
        Your focused study session is starting in <strong>{lead_minutes} minutes</strong>!
      </p>
      <div style="background-color: #f8fafc; border: 1px solid #e2e8f0; border-radius: 8px; padding: 24px; margin: 24px 0;">
        <h2 style="color: #1a202c; font-size: 20px; font-weight: bold; margin: 0 0 12px 0;">
          📚 {escape(session_title)}
        </h2>{description_block}
        <hr style="border-color: #e2e8f0; margin: 16px 0;" />
        <p style="color: #2d3748; font-size: 14px; line-height: 20px; margin: 4px 0;">
          <strong>⏰ Start Time:</strong> {start_time}
        </p>
        <p style="color: #2d3748; font-size: 14px; line-height: 20px; margin: 4px 0;">
          <strong>⏱️ End Time:</strong> {end_time}
        </p>
        <p style="color: #2d3748; font-size: 14px; line-height: 20px; margin: 4px 0;">
          <strong>🕒 Duration:</strong> {duration}
        </p>
      </div>
      <div style="background-color: #ebf8ff; border: 1px solid #bee3f8; border-radius: 8px; padding: 20px; margin: 24px 0;">
        <h3 style="color: #2b6cb0; font-size: 16px; font-weight: bold; margin: 0 0 12px 0;">💡 Quick Prep Tips:</h3>
{tips}
      </div>
      <p style="color: #6b7280; font-size: 14px; line-height: 24px; text-align: center; margin-top: 32px;">
        Good luck with your study session! 🎯
        <br />
        - The Quiet Hours Team
      </p>
    </div>
  </div>
</body>
</html>
"""
