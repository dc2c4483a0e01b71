"""Branded HTML pages for technicians and customers arriving from SMS links.

These people cannot act on a stack trace or a JSON body, so every outcome on
an SMS-linked route renders one of these.
"""
from html import escape

from gws.core.config import settings

_LAYOUT = """<!DOCTYPE html>
<html>
<head>
  <title>{title} - {business}</title>
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <style>
    * {{ margin: 0; padding: 0; box-sizing: border-box; }}
    body {{
      font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Arial, sans-serif;
      background: #0a0e27; min-height: 100vh;
      display: flex; align-items: center; justify-content: center; padding: 20px;
    }}
    .card {{ background: #fff; border-radius: 20px; max-width: 500px; width: 100%; overflow: hidden; }}
    .card-header {{ background: linear-gradient(135deg, #0a0e27 0%, #1a2332 100%); padding: 30px 24px; text-align: center; }}
    .card-header h1 {{ color: #fff; font-size: 22px; margin-bottom: 6px; }}
    .card-header p {{ color: #78e4ff; font-size: 14px; }}
    .card-body {{ padding: 36px 24px; text-align: center; }}
    .status-icon {{ font-size: 56px; margin-bottom: 16px; }}
    .status-title {{ font-size: 22px; font-weight: 700; color: {accent}; margin-bottom: 8px; }}
    .status-subtitle {{ color: #666; font-size: 15px; line-height: 1.5; }}
    .card-footer {{ text-align: center; padding: 0 24px 28px; color: #999; font-size: 13px; }}
  </style>
</head>
<body>
  <div class="card">
    <div class="card-header">
      <h1>{heading}</h1>
      <p>{business}</p>
    </div>
    <div class="card-body">
      <div class="status-icon">{icon}</div>
      <div class="status-title">{status_title}</div>
      <div class="status-subtitle">{message}</div>
    </div>
    <div class="card-footer">{footer}</div>
  </div>
</body>
</html>
"""

GREEN = "#27ae60"
ORANGE = "#e67e22"
RED = "#dc3545"


def render_page(title: str, heading: str, icon: str, status_title: str, message: str,
                accent: str = RED, footer: str = "") -> str:
    """Render the shared card layout. ``message`` may contain trusted markup."""
    return _LAYOUT.format(
        title=escape(title),
        business=escape(settings.BUSINESS_NAME),
        heading=escape(heading),
        icon=icon,
        status_title=escape(status_title),
        message=message,
        accent=accent,
        footer=footer or f"Questions? Call us on {escape(settings.CONTACT_PHONE)}",
    )


def link_not_found_page() -> str:
    return render_page("Link Not Found", "Link Not Found", "&#10060;", "Link Not Found",
                       "This link has expired or is invalid.")


def invalid_link_page() -> str:
    return render_page("Invalid Link", "Invalid Link", "&#10060;", "Invalid Link",
                       "This link appears to be malformed or has expired.")


def not_found_page() -> str:
    return render_page("Not Found", "Not Found", "&#10060;", "Not Found",
                       "We couldn't find the job or technician this link refers to.")


def error_page() -> str:
    return render_page("Error", "Something went wrong", "&#9888;", "Something went wrong",
                       "We couldn't record that just now. Please try the link again in a few minutes.")


def response_recorded_page(first_name: str, answer: str) -> str:
    if answer == "YES":
        return render_page(
            "Response Recorded", "Response Recorded", "&#10003;", f"Thanks {first_name}!",
            "We've recorded your <strong>YES</strong> response. "
            "We'll be in touch with more details if this job goes ahead.",
            accent=GREEN,
        )
    return render_page(
        "Response Recorded", "Response Recorded", "&#128078;", f"Thanks {first_name}",
        "We've recorded your <strong>NO</strong> response. "
        "No worries, if your circumstances change, reach out anytime.",
        accent=ORANGE,
    )
