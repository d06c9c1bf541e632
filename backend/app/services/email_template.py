"""
HTML body for the "your files are ready" email.

Public API:
  render_email_html(file_count, message, processed_on, product_name) -> str
"""

import html
from datetime import date

EMAIL_SUBJECT = "Your Files Are Ready"

_GRADIENT = "linear-gradient(135deg, #6366f1, #141249)"
_ACCENT = "#6366f1"
_NO_MESSAGE = "No message has been provided."


def render_email_html(
    file_count: int,
    message: str | None,
    processed_on: date,
    product_name: str = "XyloMail",
) -> str:
    """
    Render the delivery email.

    The sender's message is HTML-escaped and shown as a quote; when it is
    empty a placeholder sentence is shown instead.
    """
    quoted = html.escape(message.strip()) if message and message.strip() else _NO_MESSAGE
    product = html.escape(product_name)
    files_label = "File" if file_count == 1 else "Files"

    return f"""\
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{EMAIL_SUBJECT}</title>
</head>
<body style="margin: 0; padding: 0; font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; background-color: #ffffff; color: #333333;">
    <div style="max-width: 600px; margin: 20px auto; text-align: center; border-radius: 10px; box-shadow: 0 4px 8px rgba(0, 0, 0, 0.2);">
        <div style="background: {_GRADIENT}; color: #ffffff; padding: 20px; border-radius: 10px 10px 0 0;">
            <h1 style="margin: 0; font-size: 24px; letter-spacing: 1px;">Your Files Have Been Delivered</h1>
        </div>
        <div style="background-color: #121212; color: #ffffff; padding: 25px; text-align: left; border-radius: 0 0 10px 10px;">
            <h2 style="font-size: 20px; color: {_ACCENT};">Dear Recipient,</h2>
            <p style="margin: 0 0 15px;">
                The files shared with you through <strong style="color: {_ACCENT};">{product}</strong>
                are attached to this email.
            </p>
            <div style="background-color: #1e1e1e; padding: 15px; border-radius: 8px; margin-bottom: 20px;">
                <p style="margin: 5px 0; color: #cccccc;"><strong>Date Processed:</strong> {processed_on.isoformat()}</p>
                <p style="margin: 5px 0; color: #cccccc;"><strong>Number of {files_label}:</strong> {file_count}</p>
                <p style="margin: 5px 0; color: #cccccc;"><strong>File Package:</strong> Delivered as a single ZIP archive.</p>
            </div>
            <p style="margin-bottom: 5px; color: {_ACCENT};">Message from the sender:</p>
            <blockquote style="font-style: italic; color: #dddddd; border-left: 4px solid {_ACCENT}; padding-left: 10px; margin: 10px 0;">
                {quoted}
            </blockquote>
            <p style="margin-top: 20px; text-align: center; font-size: 12px; color: #cccccc;">
                Secure file sharing, powered by <strong style="color: {_ACCENT};">{product}</strong>.
            </p>
        </div>
    </div>
</body>
</html>
"""
